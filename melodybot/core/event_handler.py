"""MelodyBot 音乐机器人事件处理器。"""
import asyncio
import logging
from typing import Any, Dict

import discord
from discord.ext import commands

from melodybot.core.command_registry import CommandRegistry

PRESENCE_TEXT = "🎵 YouTube & Spotify Music"


class EventHandler:
    """
    MelodyBot 音乐机器人事件处理器。

    管理机器人生命周期事件，把消息交给命令注册表、语音状态变化交给播放引擎。
    客户端错误和未处理的异步任务异常只记录日志。
    """

    def __init__(self, bot: commands.Bot, registry: CommandRegistry, engine: Any):
        """
        初始化事件处理器。

        Args:
            bot: Discord 机器人实例
            registry: 命令注册表
            engine: 播放引擎（需要 handle_voice_state_update）
        """
        self.logger = logging.getLogger("melodybot.events")
        self.bot = bot
        self.registry = registry
        self.engine = engine

        self._register_events()

    def _register_events(self) -> None:
        """注册 Discord 事件处理器。"""
        @self.bot.event
        async def on_ready():
            await self._on_ready()

        @self.bot.event
        async def on_message(message):
            await self._on_message(message)

        @self.bot.event
        async def on_voice_state_update(member, before, after):
            await self._on_voice_state_update(member, before, after)

        @self.bot.event
        async def on_error(event_method, *args, **kwargs):
            await self._on_error(event_method, *args, **kwargs)

        self.bot.setup_hook = self._setup_hook

        self.logger.debug("事件处理器注册完成")

    async def _setup_hook(self) -> None:
        """在事件循环中安装未处理异常的记录器。"""
        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exception = context.get("exception")
        message = context.get("message", "未处理的异步异常")
        if exception is not None:
            self.logger.error(f"未处理的异步异常: {message}", exc_info=exception)
        else:
            self.logger.error(f"未处理的异步异常: {message}")

    async def _on_ready(self) -> None:
        """处理机器人就绪事件。"""
        if self.bot.user is None:
            self.logger.error("机器人用户在 on_ready 事件中为 None")
            return

        self.logger.info(f"🎵 音乐机器人已就绪。登录为 {self.bot.user.name} ({self.bot.user.id})")

        activity = discord.Activity(
            type=discord.ActivityType.listening,
            name=PRESENCE_TEXT
        )
        await self.bot.change_presence(activity=activity)

    async def _on_message(self, message: discord.Message) -> None:
        """
        处理传入消息。

        Args:
            message: Discord 消息
        """
        if message.author == self.bot.user:
            return

        await self.registry.dispatch(message)

    async def _on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState
    ) -> None:
        await self.engine.handle_voice_state_update(member, before, after)

    async def _on_error(self, event_method: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(f"事件 {event_method} 中的未处理错误", exc_info=True)
