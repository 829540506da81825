import logging
from typing import Any

from melodybot.core.interfaces import IMusicEngine, IPlaybackEventHandler, Playlist, Song
from melodybot.playback.guild_queue import GuildQueue
from melodybot.ui.embed_builder import EmbedBuilder
from melodybot.ui.message_delivery import safe_send


class PlaybackEvent(IPlaybackEventHandler):
    """
    播放事件处理器类

    负责把播放引擎的事件转换为文本频道中的通知，包括：
    - 正在播放 / 已添加歌曲 / 已添加播放列表
    - 播放出错
    - 语音频道无人、队列结束、连接断开、没有相关歌曲

    发送失败只记录日志。
    """

    def __init__(self):
        self.logger = logging.getLogger("melodybot.playback.event")
        self.logger.debug("🎭 播放事件处理器初始化完成")

    def register(self, engine: IMusicEngine) -> None:
        """在播放引擎上注册全部通知事件"""
        engine.add_event_handler("song_started", self.on_song_started)
        engine.add_event_handler("song_added", self.on_song_added)
        engine.add_event_handler("playlist_added", self.on_playlist_added)
        engine.add_event_handler("error", self.on_error)
        engine.add_event_handler("queue_empty", self.on_queue_empty)
        engine.add_event_handler("queue_finished", self.on_queue_finished)
        engine.add_event_handler("disconnected", self.on_disconnected)
        engine.add_event_handler("no_related", self.on_no_related)

    async def on_song_started(self, queue: GuildQueue, song: Song) -> None:
        """
        显示当前播放歌曲的详细信息

        Args:
            queue: 服务器队列
            song: 开始播放的歌曲
        """
        self.logger.debug(f"📺 显示歌曲信息 - 服务器 {queue.guild_id}, 歌曲: {song.title}")
        await safe_send(queue.text_channel, embed=EmbedBuilder.song_started(queue, song))

    async def on_song_added(self, queue: GuildQueue, song: Song) -> None:
        await safe_send(queue.text_channel, embed=EmbedBuilder.song_added(queue, song))

    async def on_playlist_added(self, queue: GuildQueue, playlist: Playlist) -> None:
        await safe_send(queue.text_channel, embed=EmbedBuilder.playlist_added(queue, playlist))

    async def on_error(self, channel: Any, error: Exception) -> None:
        self.logger.error(f"❌ 播放出错: {error}")
        await safe_send(channel, "❌ 播放时出现错误！请稍后再试。")

    async def on_queue_empty(self, queue: GuildQueue) -> None:
        await safe_send(queue.text_channel, "⏹️ 语音频道已没有其他人，机器人已离开！")

    async def on_queue_finished(self, queue: GuildQueue) -> None:
        await safe_send(queue.text_channel, "🎶 队列已播放完毕！机器人将离开语音频道。")

    async def on_disconnected(self, queue: GuildQueue) -> None:
        await safe_send(queue.text_channel, "⏹️ 机器人已断开语音连接！")

    async def on_no_related(self, queue: GuildQueue) -> None:
        await safe_send(queue.text_channel, "🔍 没有找到相关歌曲！")
