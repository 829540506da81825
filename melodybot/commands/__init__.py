"""MelodyBot 音乐机器人命令模块。"""

from .general_commands import GeneralCommands
from .music_commands import MusicCommands

__all__ = [
    "GeneralCommands",
    "MusicCommands"
]
