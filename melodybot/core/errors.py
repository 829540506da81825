"""
错误定义

错误分为四类：
- 前置条件失败：在命令层直接回复用户
- 引擎调用失败：按命令捕获、记录并回复通用失败消息
- 传输失败：发送/删除消息失败，静默忽略
- 致命错误：启动凭据无效，进程退出
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """错误分类枚举"""
    PRECONDITION = "precondition"
    ENGINE = "engine"
    TRANSPORT = "transport"
    FATAL = "fatal"


class MusicBotError(Exception):
    """音乐机器人异常基类"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.ENGINE,
        user_message: Optional[str] = None
    ):
        """
        Args:
            message: 日志用错误消息
            category: 错误分类
            user_message: 用户友好的错误消息
        """
        super().__init__(message)
        self.category = category
        self.user_message = user_message or message


class EngineError(MusicBotError):
    """播放引擎操作失败"""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message, ErrorCategory.ENGINE, user_message)


class NoActiveQueueError(EngineError):
    """服务器没有活动队列"""

    def __init__(self, guild_id: int):
        super().__init__(f"服务器 {guild_id} 没有活动队列", "当前没有正在播放的歌曲")
        self.guild_id = guild_id


class UnsupportedSourceError(EngineError):
    """不支持的链接"""


class NoResultError(EngineError):
    """搜索或解析没有结果"""


class ConfigurationError(MusicBotError, ValueError):
    """配置无效，无法启动"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.FATAL)
