"""
自动随机策略 - 循环队列每一轮开始时重新打乱队列

歌曲开始播放时检查四个条件：
- 队列开启了自动随机
- 循环模式为循环整个队列
- 开始播放的歌曲位于队列第 0 位
- 队列中有超过一首歌曲

全部满足时延迟一段时间再打乱，等待队列内部状态稳定。
新建队列的第一首歌同样满足条件，因此也会被打乱。
"""

import asyncio
import logging
from typing import Dict

from melodybot.core.interfaces import IMusicEngine, RepeatMode, Song
from melodybot.playback.guild_queue import GuildQueue
from melodybot.ui.message_delivery import safe_send

AUTO_SHUFFLE_NOTICE = "🔀 **自动随机:** 已为新一轮循环重新打乱队列！"
DEFAULT_DELAY = 2.0


class AutoShufflePolicy:
    """
    自动随机策略

    每个服务器最多一个待执行的打乱任务；队列被删除时取消。
    """

    def __init__(self, engine: IMusicEngine, delay: float = DEFAULT_DELAY):
        """
        Args:
            engine: 播放引擎
            delay: 从歌曲开始播放到打乱队列的延迟（秒）
        """
        self.engine = engine
        self.delay = delay
        self.logger = logging.getLogger("melodybot.playback.auto_shuffle")
        self._pending: Dict[int, asyncio.Task] = {}

    def register(self) -> None:
        """在播放引擎上注册事件处理器"""
        self.engine.add_event_handler("song_started", self.on_song_started)
        self.engine.add_event_handler("queue_deleted", self.on_queue_deleted)

    @staticmethod
    def should_shuffle(queue: GuildQueue, song: Song) -> bool:
        return (
            queue.auto_shuffle
            and queue.repeat_mode == RepeatMode.QUEUE
            and queue.index_of(song) == 0
            and len(queue) > 1
        )

    def has_pending(self, guild_id: int) -> bool:
        task = self._pending.get(guild_id)
        return task is not None and not task.done()

    async def on_song_started(self, queue: GuildQueue, song: Song) -> None:
        if self.should_shuffle(queue, song):
            self.schedule(queue)

    async def on_queue_deleted(self, queue: GuildQueue) -> None:
        self.cancel(queue.guild_id)

    def schedule(self, queue: GuildQueue) -> asyncio.Task:
        """安排一次延迟打乱，替换该服务器尚未执行的任务"""
        self.cancel(queue.guild_id)
        task = asyncio.create_task(self._shuffle_later(queue))
        self._pending[queue.guild_id] = task
        self.logger.debug(f"🔀 {self.delay}s 后自动打乱队列 - 服务器 {queue.guild_id}")
        return task

    def cancel(self, guild_id: int) -> bool:
        """
        取消服务器待执行的打乱任务

        Returns:
            是否取消了任务
        """
        task = self._pending.pop(guild_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        self.logger.debug(f"取消自动打乱 - 服务器 {guild_id}")
        return True

    async def _shuffle_later(self, queue: GuildQueue) -> None:
        guild_id = queue.guild_id
        try:
            await asyncio.sleep(self.delay)

            # 延迟期间队列可能已被删除或只剩一首歌
            if self.engine.get_queue(guild_id) is not queue or len(queue) <= 1:
                self.logger.debug(f"队列已变化，跳过自动打乱 - 服务器 {guild_id}")
                return

            queue.shuffle()
            self.logger.info(f"🔀 自动打乱队列 - 服务器 {guild_id} ({len(queue)} 首)")
            await safe_send(queue.text_channel, AUTO_SHUFFLE_NOTICE)
        finally:
            if self._pending.get(guild_id) is asyncio.current_task():
                del self._pending[guild_id]
