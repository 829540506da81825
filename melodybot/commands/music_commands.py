"""MelodyBot 音乐命令模块"""

import logging
import re
from typing import Optional

from melodybot.core.command_registry import CommandContext, CommandRegistry, CommandRequirement
from melodybot.core.interfaces import IMusicEngine, RepeatMode
from melodybot.provider import detect_source_name, is_spotify_url
from melodybot.ui.embed_builder import EmbedBuilder
from melodybot.ui.message_delivery import safe_delete
from melodybot.utils.config_manager import ConfigManager

NO_SONG_MESSAGE = "❌ 当前没有正在播放的歌曲！"

PLAY_ERROR_HINTS = {
    "Spotify": "请检查 Spotify 链接或换一个链接。",
    "YouTube": "请检查 YouTube 链接或换一个链接。",
    "Unknown": "请检查链接或换一首歌搜索。",
}

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def parse_volume(text: Optional[str]) -> Optional[int]:
    """
    解析音量参数

    只读取开头的整数部分（"50"、"+7"、"80%"）。

    Returns:
        0-100 之间的音量，无效时返回None
    """
    if text is None:
        return None
    match = _LEADING_INT.match(text)
    if not match:
        return None
    volume = int(match.group(1))
    if volume < 0 or volume > 100:
        return None
    return volume


class MusicCommands:
    """
    Music command handlers for MelodyBot.

    Provides commands for music playback, queue management
    and playback modes.
    """

    def __init__(self, config: ConfigManager, engine: IMusicEngine):
        """
        初始化音乐命令模块

        Args:
            config: 配置管理器
            engine: 播放引擎
        """
        self.logger = logging.getLogger("melodybot.commands.music")
        self.config = config
        self.engine = engine
        self.queue_display_limit = config.get_queue_display_limit()

        self.logger.debug("Music commands initialized")

    def register_commands(self, registry: CommandRegistry) -> None:
        """
        Register music commands with the command registry.

        Args:
            registry: Command registry instance
        """
        registry.register_command(
            name="play",
            aliases=["p"],
            callback=self.play_command,
            description="添加歌曲到队列并开始播放",
            requirement=CommandRequirement.VOICE,
            usage_examples=["!play <YouTube链接>", "!p <Spotify链接>", "!play <歌曲名称>"]
        )

        registry.register_command(
            name="skip",
            aliases=["s"],
            callback=self.skip_command,
            description="跳过当前歌曲",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="stop",
            callback=self.stop_command,
            description="停止播放并清空队列",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="queue",
            aliases=["q"],
            callback=self.queue_command,
            description="显示当前播放队列",
            requirement=CommandRequirement.QUEUE,
            no_queue_message="❌ 队列为空！"
        )

        registry.register_command(
            name="nowplaying",
            aliases=["np"],
            callback=self.nowplaying_command,
            description="显示当前歌曲",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="volume",
            aliases=["vol"],
            callback=self.volume_command,
            description="调整音量 (0-100)",
            requirement=CommandRequirement.QUEUE,
            usage_examples=["!volume 50"]
        )

        registry.register_command(
            name="pause",
            callback=self.pause_command,
            description="暂停/继续播放",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="shuffle",
            aliases=["mix"],
            callback=self.shuffle_command,
            description="随机打乱队列",
            requirement=CommandRequirement.QUEUE,
            no_queue_message="❌ 没有可以打乱的队列！"
        )

        registry.register_command(
            name="repeat",
            aliases=["loop"],
            callback=self.repeat_command,
            description="设置循环模式",
            requirement=CommandRequirement.QUEUE,
            usage_examples=["!repeat off", "!repeat song", "!repeat queue", "!repeat"]
        )

        registry.register_command(
            name="autoplay",
            callback=self.autoplay_command,
            description="切换自动播放相关歌曲",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="autoshuffle",
            callback=self.autoshuffle_command,
            description="切换每轮循环自动打乱",
            requirement=CommandRequirement.QUEUE
        )

        registry.register_command(
            name="24/7",
            aliases=["24h"],
            callback=self.mode_247_command,
            description="开启循环队列和自动随机，持续播放",
            requirement=CommandRequirement.QUEUE,
            no_queue_message="❌ 队列中至少需要 1 首歌曲！"
        )

        self.logger.debug("All music commands registered.")

    async def play_command(self, ctx: CommandContext) -> None:
        """
        Handle play command.

        Spotify 链接解析较慢，先发送一条处理中的消息，完成后删除。
        """
        if not ctx.args:
            await ctx.reply("❌ 请提供链接（YouTube/Spotify）或歌曲名称！")
            return

        query = " ".join(ctx.args)

        processing_message = None
        if is_spotify_url(query):
            processing_message = await ctx.reply("🎵 正在处理 Spotify 链接...")

        try:
            await self.engine.play(ctx.voice_channel, query, ctx.author, ctx.channel)
        except Exception as e:
            self.logger.error(f"播放失败 - {query}: {e}", exc_info=True)
            source = detect_source_name(query)
            await ctx.reply(f"❌ 无法播放音乐！{PLAY_ERROR_HINTS[source]}")
        finally:
            await safe_delete(processing_message)

    async def skip_command(self, ctx: CommandContext) -> None:
        try:
            await self.engine.skip(ctx.guild_id)
        except Exception as e:
            self.logger.error(f"跳过歌曲失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法跳过歌曲！")
            return
        await ctx.reply("⏭️ 已跳过当前歌曲！")

    async def stop_command(self, ctx: CommandContext) -> None:
        try:
            await self.engine.stop(ctx.guild_id)
        except Exception as e:
            self.logger.error(f"停止播放失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法停止播放！")
            return
        await ctx.reply("⏹️ 已停止播放并清空队列！")

    async def queue_command(self, ctx: CommandContext) -> None:
        queue = self.engine.get_queue(ctx.guild_id)
        await ctx.send(embed=EmbedBuilder.queue_listing(queue, self.queue_display_limit))

    async def nowplaying_command(self, ctx: CommandContext) -> None:
        queue = self.engine.get_queue(ctx.guild_id)
        if queue.current_song is None:
            await ctx.reply(NO_SONG_MESSAGE)
            return
        await ctx.send(embed=EmbedBuilder.now_playing(queue))

    async def volume_command(self, ctx: CommandContext) -> None:
        """Handle volume command: the argument is validated before any engine call."""
        volume = parse_volume(ctx.args[0] if ctx.args else None)
        if volume is None:
            await ctx.reply("❌ 音量必须是 0 到 100 之间的数字！")
            return

        try:
            self.engine.set_volume(ctx.guild_id, volume)
        except Exception as e:
            self.logger.error(f"调整音量失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法调整音量！")
            return
        await ctx.reply(f"🔊 音量已设置为 {volume}%！")

    async def pause_command(self, ctx: CommandContext) -> None:
        """暂停中则继续播放，否则暂停"""
        queue = self.engine.get_queue(ctx.guild_id)
        try:
            if queue.paused:
                self.engine.resume(ctx.guild_id)
                await ctx.reply("▶️ 已继续播放！")
            else:
                self.engine.pause(ctx.guild_id)
                await ctx.reply("⏸️ 已暂停播放！")
        except Exception as e:
            self.logger.error(f"暂停/继续失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法暂停或继续播放！")

    async def shuffle_command(self, ctx: CommandContext) -> None:
        queue = self.engine.get_queue(ctx.guild_id)
        if queue.remaining < 2:
            await ctx.reply("❌ 队列中至少需要 2 首歌曲才能打乱！")
            return

        try:
            queue.shuffle()
        except Exception as e:
            self.logger.error(f"打乱队列失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法打乱队列！")
            return
        await ctx.send(embed=EmbedBuilder.shuffled(queue))

    async def repeat_command(self, ctx: CommandContext) -> None:
        """
        Handle repeat command.

        明确指定 off/song/queue 或 0/1/2；没有参数或无法识别时切换到下一个模式。
        """
        queue = self.engine.get_queue(ctx.guild_id)
        mode = RepeatMode.parse(ctx.args[0] if ctx.args else None)
        if mode is None:
            mode = queue.repeat_mode.next()

        try:
            mode = self.engine.set_repeat_mode(ctx.guild_id, mode)
        except Exception as e:
            self.logger.error(f"设置循环模式失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法更改循环模式！")
            return
        await ctx.send(embed=EmbedBuilder.repeat_changed(mode, ctx.prefix))

    async def autoplay_command(self, ctx: CommandContext) -> None:
        try:
            enabled = self.engine.toggle_autoplay(ctx.guild_id)
        except Exception as e:
            self.logger.error(f"切换自动播放失败 - 服务器 {ctx.guild_id}: {e}")
            await ctx.reply("❌ 无法切换自动播放！")
            return
        await ctx.send(embed=EmbedBuilder.autoplay_toggled(enabled))

    async def autoshuffle_command(self, ctx: CommandContext) -> None:
        """切换自动随机，不要求已开启循环"""
        queue = self.engine.get_queue(ctx.guild_id)
        queue.auto_shuffle = not queue.auto_shuffle
        self.logger.info(f"自动随机{'开启' if queue.auto_shuffle else '关闭'} - 服务器 {ctx.guild_id}")
        await ctx.send(embed=EmbedBuilder.auto_shuffle_toggled(queue.auto_shuffle, ctx.prefix))

    async def mode_247_command(self, ctx: CommandContext) -> None:
        """
        Handle 24/7 command.

        依次开启循环队列、立即打乱一次、开启自动随机。
        任何一步失败都恢复原来的状态，只回复失败消息。
        """
        queue = self.engine.get_queue(ctx.guild_id)
        if queue.remaining < 2:
            await ctx.reply("❌ 至少需要 2 首歌曲才能开启 24/7 模式！")
            return

        previous_mode = queue.repeat_mode
        previous_auto_shuffle = queue.auto_shuffle
        previous_songs = list(queue.songs)
        previous_index = queue.current_index

        try:
            self.engine.set_repeat_mode(ctx.guild_id, RepeatMode.QUEUE)
            queue.shuffle()
            queue.auto_shuffle = True
        except Exception as e:
            self.logger.error(f"开启 24/7 模式失败 - 服务器 {ctx.guild_id}: {e}")
            queue.songs = previous_songs
            queue.current_index = previous_index
            queue.auto_shuffle = previous_auto_shuffle
            queue.repeat_mode = previous_mode
            await ctx.reply("❌ 无法开启 24/7 模式！")
            return

        self.logger.info(f"24/7 模式已开启 - 服务器 {ctx.guild_id} ({len(queue)} 首)")
        await ctx.send(embed=EmbedBuilder.mode_247_enabled(queue, ctx.prefix))
