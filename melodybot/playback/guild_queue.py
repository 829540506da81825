"""
服务器队列 - 单个服务器的歌曲列表与播放模式

歌曲列表保持一圈的播放顺序，current_index 指向正在播放的歌曲。
循环整个队列时播放位置回到 0，因此"第 0 首开始播放"即视为新一轮开始。
"""

import logging
import random
import time
from typing import Iterable, List, Optional

import discord

from melodybot.core.interfaces import RepeatMode, Song, format_duration


class GuildQueue:
    """
    单个服务器的播放队列

    由播放引擎持有，命令层只读取状态或通过引擎接口修改。
    """

    def __init__(
        self,
        guild_id: int,
        text_channel: discord.abc.Messageable,
        voice_channel: Optional[discord.abc.Connectable] = None,
        volume: int = 50
    ):
        self.guild_id = guild_id
        self.text_channel = text_channel
        self.voice_channel = voice_channel
        self.logger = logging.getLogger(f"melodybot.playback.queue.{guild_id}")

        self.songs: List[Song] = []
        self.current_index = 0
        self.repeat_mode = RepeatMode.OFF
        self.auto_shuffle = False
        self.autoplay = False
        self.volume = volume
        self.paused = False

        # 引擎在跳过或跳转时设置，播放循环据此不再自动前进
        self.pending_jump = False

        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0

    def __len__(self) -> int:
        return len(self.songs)

    @property
    def current_song(self) -> Optional[Song]:
        if 0 <= self.current_index < len(self.songs):
            return self.songs[self.current_index]
        return None

    @property
    def upcoming(self) -> List[Song]:
        """
        按播放顺序排列的后续歌曲

        循环整个队列时，当前歌曲之前的歌曲会接在末尾。
        """
        after = self.songs[self.current_index + 1:]
        if self.repeat_mode == RepeatMode.QUEUE:
            return after + self.songs[:self.current_index]
        return after

    @property
    def remaining(self) -> int:
        """尚未播放完的歌曲数量（正在播放的歌曲加上后续歌曲）"""
        if self.current_song is None:
            return len(self.upcoming)
        return 1 + len(self.upcoming)

    def index_of(self, song: Song) -> int:
        """返回歌曲在队列中的位置，不存在时返回 -1"""
        for index, queued in enumerate(self.songs):
            if queued is song:
                return index
        return -1

    def add(self, songs: Iterable[Song]) -> int:
        """
        添加歌曲到队列末尾

        Returns:
            添加后剩余待播放的歌曲数量（即最后一首歌曲的队列位置）
        """
        self.songs.extend(songs)
        return self.remaining

    def shuffle(self) -> None:
        """
        随机打乱后续歌曲，正在播放的歌曲保持原位

        不循环整个队列时，已播放的歌曲留在播放位置之前，只打乱之后的部分。
        """
        if self.repeat_mode != RepeatMode.QUEUE:
            following = self.songs[self.current_index + 1:]
            random.shuffle(following)
            self.songs = self.songs[:self.current_index + 1] + following
            self.logger.debug(f"🔀 后续歌曲已打乱 - {len(following)} 首歌曲")
            return

        current = self.current_song
        others = [song for song in self.songs if song is not current]
        random.shuffle(others)
        if current is not None:
            others.insert(self.current_index, current)
        self.songs = others
        self.logger.debug(f"🔀 队列已打乱 - {len(self.songs)} 首歌曲")

    def next_index(self, skip: bool = False) -> Optional[int]:
        """
        计算下一首歌曲的位置

        Args:
            skip: 手动跳过时单曲循环不生效

        Returns:
            下一首的位置，没有可播放的歌曲时返回None
        """
        if not self.songs:
            return None
        if self.repeat_mode == RepeatMode.SONG and not skip:
            return self.current_index
        following = self.current_index + 1
        if following < len(self.songs):
            return following
        if self.repeat_mode == RepeatMode.QUEUE:
            return 0
        return None

    @property
    def total_duration(self) -> int:
        """剩余待播放歌曲的总时长"""
        current = self.current_song
        pending = ([current] if current is not None else []) + self.upcoming
        return sum(song.duration for song in pending)

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.total_duration)

    def mark_started(self) -> None:
        """记录当前歌曲开始播放的时间"""
        self._started_at = time.monotonic()
        self._paused_at = None
        self._paused_total = 0.0
        self.paused = False

    def mark_paused(self) -> None:
        if self._paused_at is None:
            self._paused_at = time.monotonic()
        self.paused = True

    def mark_resumed(self) -> None:
        if self._paused_at is not None:
            self._paused_total += time.monotonic() - self._paused_at
            self._paused_at = None
        self.paused = False

    @property
    def current_time(self) -> float:
        """当前歌曲已播放的秒数（扣除暂停时间）"""
        if self._started_at is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else time.monotonic()
        return max(0.0, now - self._started_at - self._paused_total)

    @property
    def formatted_current_time(self) -> str:
        return format_duration(int(self.current_time))
