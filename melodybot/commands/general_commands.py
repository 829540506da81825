"""MelodyBot 通用命令。"""
import logging

import discord

from melodybot.core.command_registry import CommandContext, CommandRegistry
from melodybot.ui.embed_builder import EmbedBuilder
from melodybot.utils.config_manager import ConfigManager


class GeneralCommands:
    """
    音乐机器人通用命令处理器。

    处理帮助信息和延迟查询。
    """

    def __init__(self, config: ConfigManager):
        self.logger = logging.getLogger("melodybot.commands.general")
        self.config = config

    def register_commands(self, registry: CommandRegistry) -> None:
        """
        Register general commands with the command registry.

        Args:
            registry: Command registry instance
        """
        registry.register_command(
            name="help",
            aliases=["h"],
            callback=self.help_command,
            description="显示帮助信息"
        )

        registry.register_command(
            name="ping",
            callback=self.ping_command,
            description="检查机器人延迟"
        )

        self.logger.debug("General commands registered")

    async def help_command(self, ctx: CommandContext) -> None:
        await ctx.send(embed=EmbedBuilder.help(ctx.prefix))

    async def ping_command(self, ctx: CommandContext) -> None:
        """
        显示 WebSocket 延迟。

        Args:
            ctx: 命令上下文
        """
        latency_ms = round(ctx.bot.latency * 1000, 2)
        self.logger.debug(f"Ping command invoked by {ctx.author} - {latency_ms}ms")

        if latency_ms < 100:
            color, quality = discord.Color.green(), "良好"
        elif latency_ms < 300:
            color, quality = discord.Color.orange(), "一般"
        else:
            color, quality = discord.Color.red(), "较差"

        embed = discord.Embed(
            title="🏓 Pong!",
            description=f"连接质量: **{quality}**",
            color=color
        )
        embed.add_field(name="WebSocket 延迟", value=f"**{latency_ms}ms**", inline=True)
        await ctx.send(embed=embed)
