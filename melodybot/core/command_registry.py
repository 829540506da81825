"""
命令注册表 - 前缀文本命令的查找表与分发

每个命令声明一个前置条件，在调用处理函数前统一检查：
- NONE: 无条件
- VOICE: 调用者必须在语音频道中
- QUEUE: 服务器必须有活动队列（不满足时不调用引擎）
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import discord
from discord.ext import commands

from melodybot.core.errors import MusicBotError
from melodybot.core.interfaces import IMusicEngine
from melodybot.ui.message_delivery import safe_reply, safe_send

DEFAULT_NO_QUEUE_MESSAGE = "❌ 当前没有正在播放的歌曲！"
NOT_IN_VOICE_MESSAGE = "❌ 你必须先加入语音频道！"
GUILD_ONLY_MESSAGE = "❌ 该命令只能在服务器中使用！"
COMMAND_FAILED_MESSAGE = "❌ 执行命令时出现错误！"


class CommandRequirement(Enum):
    """命令前置条件"""
    NONE = "none"
    VOICE = "voice"
    QUEUE = "queue"


@dataclass
class CommandContext:
    """一次命令调用的上下文"""
    bot: commands.Bot
    message: discord.Message
    command: str
    args: List[str]
    prefix: str

    @property
    def author(self) -> discord.Member:
        return self.message.author

    @property
    def guild(self) -> Optional[discord.Guild]:
        return self.message.guild

    @property
    def guild_id(self) -> int:
        return self.message.guild.id

    @property
    def channel(self) -> discord.abc.Messageable:
        return self.message.channel

    @property
    def voice_channel(self) -> Optional[discord.abc.Connectable]:
        voice = getattr(self.author, "voice", None)
        return voice.channel if voice else None

    async def reply(self, *args: Any, **kwargs: Any) -> Optional[discord.Message]:
        return await safe_reply(self.message, *args, **kwargs)

    async def send(self, *args: Any, **kwargs: Any) -> Optional[discord.Message]:
        return await safe_send(self.message.channel, *args, **kwargs)


CommandCallback = Callable[[CommandContext], Awaitable[None]]


@dataclass
class CommandSpec:
    """命令注册信息"""
    name: str
    callback: CommandCallback
    aliases: List[str] = field(default_factory=list)
    description: str = ""
    requirement: CommandRequirement = CommandRequirement.NONE
    no_queue_message: Optional[str] = None
    usage_examples: List[str] = field(default_factory=list)


class CommandRegistry:
    """
    命令注册表

    命令名和别名都映射到同一个 CommandSpec；匹配不区分大小写。
    """

    def __init__(self, bot: commands.Bot, engine: IMusicEngine, prefix: str = "!"):
        """
        Args:
            bot: Discord机器人实例
            engine: 播放引擎（用于检查活动队列）
            prefix: 命令前缀
        """
        self.bot = bot
        self.engine = engine
        self.prefix = prefix
        self.logger = logging.getLogger("melodybot.core.command_registry")
        self._commands: Dict[str, CommandSpec] = {}

    def register_command(
        self,
        name: str,
        callback: CommandCallback,
        aliases: Optional[List[str]] = None,
        description: str = "",
        requirement: CommandRequirement = CommandRequirement.NONE,
        no_queue_message: Optional[str] = None,
        usage_examples: Optional[List[str]] = None
    ) -> CommandSpec:
        """
        注册命令

        Args:
            name: 命令名称
            callback: 处理函数，接收 CommandContext
            aliases: 命令别名
            description: 命令描述
            requirement: 前置条件
            no_queue_message: 没有活动队列时的回复（QUEUE 命令）
            usage_examples: 使用示例

        Raises:
            ValueError: 命令名或别名已被注册
        """
        spec = CommandSpec(
            name=name.lower(),
            callback=callback,
            aliases=[alias.lower() for alias in aliases or []],
            description=description,
            requirement=requirement,
            no_queue_message=no_queue_message,
            usage_examples=list(usage_examples or [])
        )

        for key in [spec.name] + spec.aliases:
            if key in self._commands:
                raise ValueError(f"命令 '{key}' 已经注册")
        for key in [spec.name] + spec.aliases:
            self._commands[key] = spec

        self.logger.debug(f"注册命令: {spec.name} (别名: {spec.aliases}, 条件: {requirement.value})")
        return spec

    def get_command(self, name: str) -> Optional[CommandSpec]:
        return self._commands.get(name.lower())

    @property
    def commands(self) -> List[CommandSpec]:
        """已注册的命令（不含别名重复项）"""
        unique: List[CommandSpec] = []
        for spec in self._commands.values():
            if spec not in unique:
                unique.append(spec)
        return unique

    def parse(self, content: str) -> Optional[Tuple[str, List[str]]]:
        """
        解析消息内容

        Returns:
            (小写命令名, 参数列表)，没有前缀时返回None
        """
        if not content.startswith(self.prefix):
            return None
        parts = content[len(self.prefix):].split()
        if not parts:
            return "", []
        return parts[0].lower(), parts[1:]

    async def dispatch(self, message: discord.Message) -> bool:
        """
        分发一条消息

        处理函数中的异常在这里捕获并转换为回复，不会向上传播。

        Returns:
            消息是否被当作命令处理
        """
        if message.author.bot:
            return False

        parsed = self.parse(message.content or "")
        if parsed is None:
            return False
        name, args = parsed

        if message.guild is None:
            await safe_reply(message, GUILD_ONLY_MESSAGE)
            return True

        spec = self._commands.get(name)
        if spec is None:
            await safe_reply(message, f"❌ 未知命令！使用 `{self.prefix}help` 查看命令列表。")
            return True

        ctx = CommandContext(bot=self.bot, message=message, command=name, args=args, prefix=self.prefix)

        if not await self._check_requirement(spec, ctx):
            return True

        self.logger.debug(f"执行命令 {spec.name} - 用户 {message.author}, 参数 {args}")
        try:
            await spec.callback(ctx)
        except MusicBotError as e:
            self.logger.error(f"命令 {spec.name} 执行失败: {e}")
            await ctx.reply(f"❌ {e.user_message}")
        except Exception as e:
            self.logger.error(f"命令 {spec.name} 中的意外错误: {e}", exc_info=True)
            await ctx.reply(COMMAND_FAILED_MESSAGE)
        return True

    async def _check_requirement(self, spec: CommandSpec, ctx: CommandContext) -> bool:
        if spec.requirement == CommandRequirement.VOICE and ctx.voice_channel is None:
            await ctx.reply(NOT_IN_VOICE_MESSAGE)
            return False

        if spec.requirement == CommandRequirement.QUEUE and self.engine.get_queue(ctx.guild_id) is None:
            await ctx.reply(spec.no_queue_message or DEFAULT_NO_QUEUE_MESSAGE)
            return False

        return True
