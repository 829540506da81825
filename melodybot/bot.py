"""MelodyBot 音乐机器人主实现"""
import asyncio
import logging
from typing import Optional

import discord
from discord.ext import commands

from melodybot.commands import GeneralCommands, MusicCommands
from melodybot.core.command_registry import CommandRegistry
from melodybot.core.dependency_container import DependencyContainer
from melodybot.core.event_handler import EventHandler
from melodybot.playback import AutoShufflePolicy, MusicEngine, PlaybackEvent, VoiceManager
from melodybot.provider import AudioProviderFactory
from melodybot.utils.config_manager import ConfigManager


class MelodyBot:
    """
    MelodyBot 音乐机器人主实现类。

    通过前缀文本命令控制的音乐机器人：
    - 支持 YouTube 链接、播放列表、关键词搜索和 Spotify 链接
    - 每个服务器一个播放队列，支持循环、自动播放和音量调整
    - 循环队列时每一轮自动重新打乱（自动随机 / 24/7 模式）
    """

    def __init__(self, config: ConfigManager):
        """
        Initialize the Discord bot.

        Args:
            config: Configuration manager
        """
        self.logger = logging.getLogger("melodybot.bot")
        self.config = config

        self.container = DependencyContainer()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.voice_states = True

        self.bot = commands.Bot(
            command_prefix=self.config.get_command_prefix(),
            intents=intents,
            help_command=None
        )

        self._register_dependencies()
        self._init_core_modules()

        self.logger.info("🎵 音乐机器人初始化成功")

    def _register_dependencies(self) -> None:
        """
        注册依赖项到依赖注入容器

        定义组件间的依赖关系，确保按正确顺序初始化。
        """
        def create_provider_factory(config: ConfigManager) -> AudioProviderFactory:
            return AudioProviderFactory(config)

        def create_voice_manager(bot: commands.Bot) -> VoiceManager:
            return VoiceManager(bot)

        def create_music_engine(
            bot: commands.Bot,
            provider_factory: AudioProviderFactory,
            voice_manager: VoiceManager,
            config: ConfigManager
        ) -> MusicEngine:
            return MusicEngine(bot, provider_factory, voice_manager, config)

        def create_playback_event(music_engine: MusicEngine) -> PlaybackEvent:
            playback_event = PlaybackEvent()
            playback_event.register(music_engine)
            return playback_event

        def create_auto_shuffle(music_engine: MusicEngine, config: ConfigManager) -> AutoShufflePolicy:
            policy = AutoShufflePolicy(music_engine, delay=config.get_auto_shuffle_delay())
            policy.register()
            return policy

        def create_command_registry(bot: commands.Bot, music_engine: MusicEngine, config: ConfigManager) -> CommandRegistry:
            registry = CommandRegistry(bot, music_engine, config.get_command_prefix())
            MusicCommands(config, music_engine).register_commands(registry)
            GeneralCommands(config).register_commands(registry)
            return registry

        def create_event_handler(
            bot: commands.Bot,
            command_registry: CommandRegistry,
            music_engine: MusicEngine
        ) -> EventHandler:
            return EventHandler(bot, command_registry, music_engine)

        self.container.register_instance("config", self.config)
        self.container.register_instance("bot", self.bot)
        self.container.register_singleton("provider_factory", create_provider_factory, ["config"])
        self.container.register_singleton("voice_manager", create_voice_manager, ["bot"])
        self.container.register_singleton(
            "music_engine", create_music_engine, ["bot", "provider_factory", "voice_manager", "config"]
        )
        self.container.register_singleton("playback_event", create_playback_event, ["music_engine"])
        self.container.register_singleton("auto_shuffle", create_auto_shuffle, ["music_engine", "config"])
        self.container.register_singleton(
            "command_registry", create_command_registry, ["bot", "music_engine", "config"]
        )
        self.container.register_singleton(
            "event_handler", create_event_handler, ["bot", "command_registry", "music_engine"]
        )

        self.container.validate_dependencies()
        self.logger.debug("📝 依赖项注册完成")

    def _init_core_modules(self) -> None:
        """
        使用依赖注入容器初始化核心机器人模块

        Raises:
            RuntimeError: 任一组件初始化失败
        """
        try:
            self.logger.debug("🔧 开始解析核心依赖项...")

            self.music_engine = self.container.resolve("music_engine")
            self.playback_event = self.container.resolve("playback_event")
            self.auto_shuffle = self.container.resolve("auto_shuffle")
            self.command_registry = self.container.resolve("command_registry")
            self.event_handler = self.container.resolve("event_handler")

            self.logger.info(f"✅ 核心模块初始化完成 - {len(self.command_registry.commands)} 个命令")

        except Exception as e:
            self.logger.error(f"❌ 核心模块初始化失败: {e}", exc_info=True)
            raise RuntimeError(f"核心模块初始化失败: {e}") from e

    async def close(self) -> None:
        """关闭 Discord 机器人并清理资源。"""
        self.logger.info("🛑 正在关闭音乐机器人...")
        try:
            await self.music_engine.close()
        except Exception as e:
            self.logger.error(f"关闭播放引擎时发生错误: {e}", exc_info=True)
        await self.bot.close()
        self.logger.info("✅ 音乐机器人关闭成功")

    async def start(self, token: str) -> None:
        """
        Start the Discord bot.

        Args:
            token: Discord bot token

        Raises:
            discord.LoginFailure: The token is invalid
        """
        self.logger.info("🚀 启动音乐机器人...")
        try:
            await self.bot.start(token)
        finally:
            if not self.bot.is_closed():
                await self.close()

    def run(self, token: str) -> None:
        """
        运行 Discord 机器人（阻塞式）。

        Args:
            token: Discord 机器人令牌

        Raises:
            discord.LoginFailure: 令牌无效
        """
        asyncio.run(self.start(token))

    @property
    def user(self) -> Optional[discord.ClientUser]:
        return self.bot.user
