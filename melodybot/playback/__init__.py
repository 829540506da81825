"""
播放模块 - 处理服务器队列、音频播放和语音管理

该模块负责播放的核心逻辑，包括语音连接管理、播放循环、
播放事件通知和自动随机策略。
"""

from .guild_queue import GuildQueue
from .voice_manager import VoiceManager
from .music_engine import MusicEngine
from .auto_shuffle import AutoShufflePolicy
from .playback_event import PlaybackEvent

__all__ = [
    "GuildQueue",
    "VoiceManager",
    "MusicEngine",
    "AutoShufflePolicy",
    "PlaybackEvent"
]
