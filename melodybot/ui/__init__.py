"""
UI组件库

- 嵌入消息构建器
- 消息发送辅助函数（发送失败静默忽略）
"""

from .embed_builder import EmbedBuilder
from .message_delivery import safe_delete, safe_reply, safe_send

__all__ = [
    'EmbedBuilder',
    'safe_delete',
    'safe_reply',
    'safe_send'
]
