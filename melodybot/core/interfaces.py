"""
核心接口定义 - 定义命令路由与播放引擎之间的抽象接口

命令路由只通过 IMusicEngine 访问播放引擎，便于在测试中替换为内存实现。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Callable, List, Optional, TYPE_CHECKING

import discord

if TYPE_CHECKING:
    from melodybot.playback.guild_queue import GuildQueue


class RepeatMode(IntEnum):
    """队列循环模式"""
    OFF = 0
    SONG = 1
    QUEUE = 2

    def next(self) -> "RepeatMode":
        """按 OFF → SONG → QUEUE → OFF 的顺序切换"""
        return RepeatMode((self.value + 1) % 3)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RepeatMode"]:
        """
        解析用户输入的循环模式

        Args:
            value: off/song/queue 或 0/1/2

        Returns:
            对应的模式，无法识别时返回None
        """
        if value is None:
            return None
        return _REPEAT_ALIASES.get(value.lower())


_REPEAT_ALIASES = {
    "off": RepeatMode.OFF,
    "0": RepeatMode.OFF,
    "song": RepeatMode.SONG,
    "1": RepeatMode.SONG,
    "queue": RepeatMode.QUEUE,
    "2": RepeatMode.QUEUE,
}


@dataclass(frozen=True, eq=False)
class Song:
    """
    歌曲数据类

    加入队列后不可变。使用身份比较，同一首歌被点两次视为两首不同的歌曲。
    """
    title: str
    duration: int
    url: str
    requester: discord.Member
    source: str = "youtube"
    thumbnail_url: Optional[str] = None
    uploader: Optional[str] = None
    views: Optional[int] = None
    search_query: Optional[str] = None  # Spotify 歌曲通过 YouTube 搜索播放

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)

    @property
    def formatted_views(self) -> str:
        if self.views is None:
            return "N/A"
        return f"{self.views:,}"


@dataclass
class Playlist:
    """播放列表数据类"""
    name: str
    url: str
    requester: discord.Member
    songs: List[Song] = field(default_factory=list)
    source: str = "youtube"
    thumbnail_url: Optional[str] = None


def format_duration(duration: int) -> str:
    """
    格式化时长为可读字符串

    Args:
        duration: 时长（秒）

    Returns:
        格式化的时长字符串 (例: "3:45" 或 "1:23:45")
    """
    duration = max(0, int(duration or 0))
    if duration < 3600:
        minutes, seconds = divmod(duration, 60)
        return f"{minutes}:{seconds:02d}"
    hours, remainder = divmod(duration, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


EventHandler = Callable[..., Awaitable[None]]


class IMusicEngine(ABC):
    """
    播放引擎接口 - 命令路由消费的全部引擎操作

    每个服务器最多一个活动队列；所有按服务器的操作在队列不存在时抛出 EngineError。
    """

    @abstractmethod
    async def play(
        self,
        voice_channel: discord.abc.Connectable,
        query: str,
        member: discord.Member,
        text_channel: discord.abc.Messageable,
    ) -> None:
        """解析查询并加入队列，必要时创建队列并开始播放"""
        pass

    @abstractmethod
    def get_queue(self, guild_id: int) -> Optional["GuildQueue"]:
        """获取服务器的活动队列"""
        pass

    @abstractmethod
    async def skip(self, guild_id: int) -> Song:
        """跳到下一首歌曲，返回将要播放的歌曲"""
        pass

    @abstractmethod
    async def stop(self, guild_id: int) -> None:
        """停止播放、删除队列并离开语音频道"""
        pass

    @abstractmethod
    def set_volume(self, guild_id: int, volume: int) -> int:
        """设置音量 (0-100)"""
        pass

    @abstractmethod
    def pause(self, guild_id: int) -> None:
        """暂停播放"""
        pass

    @abstractmethod
    def resume(self, guild_id: int) -> None:
        """恢复播放"""
        pass

    @abstractmethod
    def set_repeat_mode(self, guild_id: int, mode: RepeatMode) -> RepeatMode:
        """设置循环模式"""
        pass

    @abstractmethod
    def toggle_autoplay(self, guild_id: int) -> bool:
        """切换自动播放，返回新状态"""
        pass

    @abstractmethod
    def add_event_handler(self, event_type: str, handler: EventHandler) -> None:
        """注册播放事件处理器"""
        pass


class IPlaybackEventHandler(ABC):
    """播放事件处理器接口"""

    @abstractmethod
    async def on_song_started(self, queue: "GuildQueue", song: Song) -> None:
        """歌曲开始播放事件"""
        pass

    @abstractmethod
    async def on_queue_finished(self, queue: "GuildQueue") -> None:
        """队列播放完毕事件"""
        pass

    @abstractmethod
    async def on_error(self, channel: Any, error: Exception) -> None:
        """播放错误事件"""
        pass
