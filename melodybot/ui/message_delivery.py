"""
消息发送辅助函数

发送、回复、删除失败（消息已删除、缺少权限等）只记录调试日志，不向上抛出。
"""

import logging
from typing import Any, Optional

import discord

logger = logging.getLogger("melodybot.ui.delivery")


async def safe_send(channel: Optional[discord.abc.Messageable], *args: Any, **kwargs: Any) -> Optional[discord.Message]:
    """向频道发送消息，失败时返回None"""
    if channel is None:
        return None
    try:
        return await channel.send(*args, **kwargs)
    except discord.HTTPException as e:
        logger.debug(f"发送消息失败: {e}")
        return None


async def safe_reply(message: discord.Message, *args: Any, **kwargs: Any) -> Optional[discord.Message]:
    """回复消息，失败时返回None"""
    try:
        return await message.reply(*args, **kwargs)
    except discord.HTTPException as e:
        logger.debug(f"回复消息失败: {e}")
        return None


async def safe_delete(message: Optional[discord.Message]) -> None:
    """删除消息，消息不存在或无法删除时静默忽略"""
    if message is None:
        return
    try:
        await message.delete()
    except discord.HTTPException as e:
        logger.debug(f"删除消息失败: {e}")
