"""
播放引擎 - 音乐播放的核心控制器

协调音频提供者、服务器队列和语音管理器，提供统一的播放控制接口。
每个服务器最多一个活动队列；队列被删除时停止播放并离开语音频道。
"""

import asyncio
import logging
from typing import Dict, List, Optional

import discord
from discord.ext import commands

from melodybot.core.errors import EngineError, NoActiveQueueError
from melodybot.core.interfaces import EventHandler, IMusicEngine, Playlist, RepeatMode, Song
from melodybot.provider import AudioProviderFactory
from melodybot.utils.config_manager import ConfigManager
from .guild_queue import GuildQueue
from .voice_manager import VoiceManager

FFMPEG_BEFORE_OPTIONS = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
FFMPEG_OPTIONS = "-vn"

EVENT_TYPES = (
    "song_started",     # queue, song
    "song_added",       # queue, song
    "playlist_added",   # queue, playlist
    "error",            # channel, error
    "queue_empty",      # queue
    "queue_finished",   # queue
    "disconnected",     # queue
    "no_related",       # queue
    "queue_deleted",    # queue
)


class MusicEngine(IMusicEngine):
    """
    播放引擎实现

    按服务器保存 GuildQueue，每个队列由一个播放循环任务驱动。
    """

    def __init__(
        self,
        bot: commands.Bot,
        provider_factory: AudioProviderFactory,
        voice_manager: VoiceManager,
        config: Optional[ConfigManager] = None
    ):
        """
        初始化播放引擎

        Args:
            bot: Discord机器人实例
            provider_factory: 音频提供者工厂
            voice_manager: 语音管理器
            config: 配置管理器
        """
        self.bot = bot
        self.provider_factory = provider_factory
        self.voice_manager = voice_manager
        self.config = config
        self.logger = logging.getLogger("melodybot.playback.engine")

        self.default_volume = config.get_default_volume() if config else 50
        self.ffmpeg_executable = config.get_ffmpeg_executable() if config else "ffmpeg"

        self._queues: Dict[int, GuildQueue] = {}
        self._playback_tasks: Dict[int, asyncio.Task] = {}
        self._event_handlers: Dict[str, List[EventHandler]] = {event: [] for event in EVENT_TYPES}

        self.logger.info("🎵 播放引擎初始化完成")

    def add_event_handler(self, event_type: str, handler: EventHandler) -> None:
        """
        添加播放事件处理器

        Args:
            event_type: 事件类型
            handler: 事件处理函数（以关键字参数接收事件数据）
        """
        if event_type in self._event_handlers:
            self._event_handlers[event_type].append(handler)
            self.logger.debug(f"添加事件处理器: {event_type}")
        else:
            self.logger.warning(f"未知事件类型: {event_type}")

    async def _trigger_event(self, event_type: str, **kwargs) -> None:
        """
        触发播放事件

        处理器中的异常只记录日志，不影响播放流程。
        """
        for handler in self._event_handlers.get(event_type, []):
            try:
                await handler(**kwargs)
            except Exception as e:
                name = getattr(handler, "__name__", repr(handler))
                self.logger.error(f"事件处理器 {name} 处理 {event_type} 时出错: {e}", exc_info=True)

    def get_queue(self, guild_id: int) -> Optional[GuildQueue]:
        return self._queues.get(guild_id)

    def _require_queue(self, guild_id: int) -> GuildQueue:
        queue = self._queues.get(guild_id)
        if queue is None:
            raise NoActiveQueueError(guild_id)
        return queue

    def _is_live(self, queue: GuildQueue) -> bool:
        return self._queues.get(queue.guild_id) is queue

    async def play(
        self,
        voice_channel: discord.abc.Connectable,
        query: str,
        member: discord.Member,
        text_channel: discord.abc.Messageable,
    ) -> None:
        """
        解析查询并加入队列

        服务器没有队列时连接语音频道、创建队列并启动播放循环。

        Raises:
            EngineError: 解析失败或无法连接语音频道
        """
        guild_id = member.guild.id
        result = await self.provider_factory.resolve(query, member)
        songs = result.songs if isinstance(result, Playlist) else [result]

        queue = self._queues.get(guild_id)
        created = queue is None
        if created:
            queue = GuildQueue(guild_id, text_channel, voice_channel, volume=self.default_volume)
            self._queues[guild_id] = queue

            success, error = await self.voice_manager.connect_to_channel(voice_channel)
            if not success:
                if self._is_live(queue):
                    del self._queues[guild_id]
                raise EngineError(f"连接语音频道失败: {error}", "无法连接到语音频道")

            self.logger.info(f"为服务器 {guild_id} 创建播放队列")

        position = queue.add(songs)

        if isinstance(result, Playlist):
            self.logger.info(f"播放列表添加到队列 - 服务器 {guild_id}: {result.name} ({len(songs)} 首)")
            await self._trigger_event("playlist_added", queue=queue, playlist=result)
        else:
            self.logger.info(f"歌曲添加到队列 - 服务器 {guild_id}: {result.title} (位置 {position})")
            if not created:
                await self._trigger_event("song_added", queue=queue, song=result)

        if created and self._is_live(queue):
            self._playback_tasks[guild_id] = asyncio.create_task(self._playback_loop(queue))

    async def skip(self, guild_id: int) -> Song:
        """
        跳到下一首歌曲

        Returns:
            将要播放的歌曲

        Raises:
            EngineError: 没有下一首歌曲
        """
        queue = self._require_queue(guild_id)
        next_index = queue.next_index(skip=True)

        if next_index is None:
            if not (queue.autoplay and await self._add_related_song(queue, notify=False)):
                raise EngineError(f"服务器 {guild_id} 没有下一首歌曲", "队列中没有下一首歌曲")
            next_index = len(queue.songs) - 1

        queue.current_index = next_index
        queue.pending_jump = True
        self.voice_manager.stop_audio(guild_id)

        song = queue.songs[next_index]
        self.logger.info(f"跳过歌曲 - 服务器 {guild_id}，下一首: {song.title}")
        return song

    async def stop(self, guild_id: int) -> None:
        queue = self._require_queue(guild_id)
        self.logger.info(f"停止播放 - 服务器 {guild_id}: 清空了 {len(queue)} 首歌曲")
        await self._destroy_queue(queue)

    def set_volume(self, guild_id: int, volume: int) -> int:
        queue = self._require_queue(guild_id)
        queue.volume = max(0, min(100, int(volume)))
        self.voice_manager.set_volume(guild_id, queue.volume)
        self.logger.debug(f"音量设置为 {queue.volume}% - 服务器 {guild_id}")
        return queue.volume

    def pause(self, guild_id: int) -> None:
        queue = self._require_queue(guild_id)
        if not self.voice_manager.pause_audio(guild_id):
            raise EngineError(f"服务器 {guild_id} 没有正在播放的音频", "当前没有可以暂停的音频")
        queue.mark_paused()

    def resume(self, guild_id: int) -> None:
        queue = self._require_queue(guild_id)
        if not self.voice_manager.resume_audio(guild_id):
            raise EngineError(f"服务器 {guild_id} 没有暂停的音频", "当前没有暂停的音频")
        queue.mark_resumed()

    def set_repeat_mode(self, guild_id: int, mode: RepeatMode) -> RepeatMode:
        queue = self._require_queue(guild_id)
        queue.repeat_mode = RepeatMode(mode)
        self.logger.debug(f"循环模式设置为 {queue.repeat_mode.name} - 服务器 {guild_id}")
        return queue.repeat_mode

    def toggle_autoplay(self, guild_id: int) -> bool:
        queue = self._require_queue(guild_id)
        queue.autoplay = not queue.autoplay
        self.logger.debug(f"自动播放{'开启' if queue.autoplay else '关闭'} - 服务器 {guild_id}")
        return queue.autoplay

    async def _playback_loop(self, queue: GuildQueue) -> None:
        """播放循环：依次播放队列中的歌曲直到队列结束或被删除"""
        guild_id = queue.guild_id
        failures = 0
        try:
            while self._is_live(queue):
                song = queue.current_song
                if song is None:
                    break

                played = await self._play_song(queue, song)
                if not self._is_live(queue):
                    return

                failures = 0 if played else failures + 1
                if failures >= max(1, len(queue.songs)):
                    self.logger.error(f"队列中的歌曲全部无法播放 - 服务器 {guild_id}")
                    break

                if queue.pending_jump:
                    queue.pending_jump = False
                    continue

                next_index = queue.next_index()
                if next_index is None:
                    if not (queue.autoplay and await self._add_related_song(queue)):
                        break
                    next_index = len(queue.songs) - 1
                queue.current_index = next_index

            if self._is_live(queue):
                self.logger.info(f"队列播放完毕 - 服务器 {guild_id}")
                await self._trigger_event("queue_finished", queue=queue)
                await self._destroy_queue(queue)

        except asyncio.CancelledError:
            self.logger.debug(f"播放循环已取消 - 服务器 {guild_id}")
            raise
        except Exception as e:
            self.logger.error(f"播放循环出错 - 服务器 {guild_id}: {e}", exc_info=True)
            await self._trigger_event("error", channel=queue.text_channel, error=e)
            await self._destroy_queue(queue)
        finally:
            if self._playback_tasks.get(guild_id) is asyncio.current_task():
                del self._playback_tasks[guild_id]

    async def _play_song(self, queue: GuildQueue, song: Song) -> bool:
        """
        播放一首歌曲并等待播放完成

        Returns:
            歌曲是否成功开始播放
        """
        guild_id = queue.guild_id
        try:
            stream_url = await self.provider_factory.get_stream_url(song)
        except Exception as e:
            self.logger.error(f"获取音频流失败 - {song.title}: {e}")
            await self._trigger_event("error", channel=queue.text_channel, error=e)
            return False

        # 获取音频流期间队列可能已被删除或跳过
        if not self._is_live(queue) or queue.pending_jump:
            return True

        source = discord.PCMVolumeTransformer(
            discord.FFmpegPCMAudio(
                stream_url,
                executable=self.ffmpeg_executable,
                before_options=FFMPEG_BEFORE_OPTIONS,
                options=FFMPEG_OPTIONS
            ),
            volume=queue.volume / 100
        )

        loop = asyncio.get_running_loop()
        playback_finished = asyncio.Event()

        def after_playing(error: Optional[Exception]) -> None:
            # 在语音线程中调用
            if error:
                self.logger.error(f"播放出错 - {song.title}: {error}")
            loop.call_soon_threadsafe(playback_finished.set)

        if not self.voice_manager.play_audio(guild_id, source, after_playing):
            source.cleanup()
            error = EngineError(f"服务器 {guild_id} 无法播放音频", "无法播放音频")
            await self._trigger_event("error", channel=queue.text_channel, error=error)
            return False

        queue.mark_started()
        self.logger.info(f"正在播放: {song.title} - 服务器 {guild_id}")
        await self._trigger_event("song_started", queue=queue, song=song)

        await playback_finished.wait()
        return True

    async def _add_related_song(self, queue: GuildQueue, notify: bool = True) -> bool:
        """
        自动播放：把一首相关歌曲加入队列末尾

        Returns:
            是否找到相关歌曲
        """
        last_song = queue.current_song or (queue.songs[-1] if queue.songs else None)
        related = None
        if last_song is not None:
            try:
                related = await self.provider_factory.find_related(last_song, {s.url for s in queue.songs})
            except Exception as e:
                self.logger.warning(f"查找相关歌曲失败 - 服务器 {queue.guild_id}: {e}")

        if related is None:
            self.logger.info(f"没有找到相关歌曲 - 服务器 {queue.guild_id}")
            if notify:
                await self._trigger_event("no_related", queue=queue)
            return False

        queue.add([related])
        self.logger.info(f"自动播放添加相关歌曲 - 服务器 {queue.guild_id}: {related.title}")
        return True

    async def _destroy_queue(self, queue: GuildQueue, disconnect: bool = True) -> None:
        """删除队列：停止播放、取消播放循环并离开语音频道"""
        guild_id = queue.guild_id
        if not self._is_live(queue):
            return

        del self._queues[guild_id]
        self.voice_manager.stop_audio(guild_id)

        task = self._playback_tasks.pop(guild_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if disconnect:
            await self.voice_manager.disconnect_from_guild(guild_id)

        self.logger.debug(f"队列已删除 - 服务器 {guild_id}")
        await self._trigger_event("queue_deleted", queue=queue)

    async def handle_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState
    ) -> None:
        """
        处理语音状态变化

        机器人被断开时删除队列；机器人所在频道只剩机器人时离开。
        """
        queue = self._queues.get(member.guild.id)
        if queue is None:
            return

        if self.bot.user is not None and member.id == self.bot.user.id:
            if before.channel is not None and after.channel is None:
                self.logger.info(f"机器人已被断开语音连接 - 服务器 {queue.guild_id}")
                await self._trigger_event("disconnected", queue=queue)
                await self._destroy_queue(queue, disconnect=False)
            elif after.channel is not None:
                queue.voice_channel = after.channel
            return

        channel = queue.voice_channel
        if channel is None or before.channel != channel or after.channel == channel:
            return

        if all(m.bot for m in channel.members):
            self.logger.info(f"语音频道已无用户，离开 - 服务器 {queue.guild_id}")
            await self._trigger_event("queue_empty", queue=queue)
            await self._destroy_queue(queue)

    async def close(self) -> None:
        """删除所有队列并释放资源"""
        for queue in list(self._queues.values()):
            await self._destroy_queue(queue)
        await self.voice_manager.cleanup_all_connections()
        await self.provider_factory.close()
        self.logger.info("播放引擎已关闭")
