"""
测试用的内存播放引擎和 Discord 模拟对象
"""

from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import discord

from melodybot.core.errors import EngineError, NoActiveQueueError
from melodybot.core.interfaces import IMusicEngine, RepeatMode, Song
from melodybot.playback.guild_queue import GuildQueue

GUILD_ID = 12345


def make_http_exception(status: int = 404, message: str = "Unknown Message") -> discord.HTTPException:
    response = MagicMock()
    response.status = status
    response.reason = "Not Found"
    return discord.NotFound(response, message)


def make_channel() -> MagicMock:
    channel = MagicMock()
    channel.id = 67890
    channel.send = AsyncMock()
    return channel


def make_member(in_voice: bool = True, bot: bool = False, member_id: int = 111111) -> MagicMock:
    member = MagicMock()
    member.id = member_id
    member.bot = bot
    member.name = "TestUser"
    member.display_name = "Test User"
    member.mention = f"<@{member_id}>"
    member.guild.id = GUILD_ID
    if in_voice:
        member.voice = MagicMock()
        member.voice.channel = MagicMock()
    else:
        member.voice = None
    return member


def make_message(content: str, author=None, guild: bool = True, channel=None) -> MagicMock:
    message = MagicMock()
    message.content = content
    message.author = author if author is not None else make_member()
    message.channel = channel if channel is not None else make_channel()
    if guild:
        message.guild = MagicMock()
        message.guild.id = GUILD_ID
    else:
        message.guild = None
    message.reply = AsyncMock()
    return message


def make_song(title: str = "Test Song", duration: int = 180, requester=None, **kwargs) -> Song:
    return Song(
        title=title,
        duration=duration,
        url=kwargs.pop("url", f"https://www.youtube.com/watch?v={title.replace(' ', '_')}"),
        requester=requester if requester is not None else make_member(),
        **kwargs
    )


class FakeMusicEngine(IMusicEngine):
    """
    内存播放引擎

    记录所有修改状态的调用；get_queue 是只读查询，不记录。
    fail_on 中的方法会抛出 EngineError。
    """

    def __init__(self):
        self.queues: Dict[int, GuildQueue] = {}
        self.calls: List[Tuple[str, tuple]] = []
        self.handlers = defaultdict(list)
        self.fail_on = set()
        self.songs_to_play: List[Song] = []

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.fail_on:
            raise EngineError(f"{name} failed")

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def create_queue(self, songs: List[Song], guild_id: int = GUILD_ID, text_channel=None) -> GuildQueue:
        queue = GuildQueue(guild_id, text_channel if text_channel is not None else make_channel())
        queue.add(songs)
        self.queues[guild_id] = queue
        return queue

    async def emit(self, event_type: str, **kwargs) -> None:
        for handler in self.handlers[event_type]:
            await handler(**kwargs)

    def _queue(self, guild_id: int) -> GuildQueue:
        queue = self.queues.get(guild_id)
        if queue is None:
            raise NoActiveQueueError(guild_id)
        return queue

    async def play(self, voice_channel, query, member, text_channel) -> None:
        self._record("play", voice_channel, query, member, text_channel)
        song = self.songs_to_play.pop(0) if self.songs_to_play else make_song(query, requester=member)
        queue = self.queues.get(member.guild.id)
        if queue is None:
            queue = self.create_queue([], member.guild.id, text_channel)
        queue.add([song])

    def get_queue(self, guild_id: int) -> Optional[GuildQueue]:
        return self.queues.get(guild_id)

    async def skip(self, guild_id: int) -> Song:
        self._record("skip", guild_id)
        queue = self._queue(guild_id)
        next_index = queue.next_index(skip=True)
        if next_index is None:
            raise EngineError("no next song")
        queue.current_index = next_index
        return queue.current_song

    async def stop(self, guild_id: int) -> None:
        self._record("stop", guild_id)
        queue = self.queues.pop(guild_id)
        await self.emit("queue_deleted", queue=queue)

    def set_volume(self, guild_id: int, volume: int) -> int:
        self._record("set_volume", guild_id, volume)
        self._queue(guild_id).volume = volume
        return volume

    def pause(self, guild_id: int) -> None:
        self._record("pause", guild_id)
        self._queue(guild_id).mark_paused()

    def resume(self, guild_id: int) -> None:
        self._record("resume", guild_id)
        self._queue(guild_id).mark_resumed()

    def set_repeat_mode(self, guild_id: int, mode: RepeatMode) -> RepeatMode:
        self._record("set_repeat_mode", guild_id, mode)
        queue = self._queue(guild_id)
        queue.repeat_mode = RepeatMode(mode)
        return queue.repeat_mode

    def toggle_autoplay(self, guild_id: int) -> bool:
        self._record("toggle_autoplay", guild_id)
        queue = self._queue(guild_id)
        queue.autoplay = not queue.autoplay
        return queue.autoplay

    def add_event_handler(self, event_type: str, handler) -> None:
        self.handlers[event_type].append(handler)
