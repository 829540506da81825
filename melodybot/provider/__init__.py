"""
音频提供者模块 - 把链接或关键词解析为歌曲

YouTube 提供者负责视频、播放列表、搜索和音频流；
Spotify 提供者只读取元数据，音频通过 YouTube 搜索获得。
"""

from .base import BaseAudioProvider
from .youtube_provider import YouTubeProvider
from .spotify_provider import SpotifyProvider
from .provider_factory import AudioProviderFactory, detect_source_name, is_spotify_url

__all__ = [
    "BaseAudioProvider",
    "YouTubeProvider",
    "SpotifyProvider",
    "AudioProviderFactory",
    "detect_source_name",
    "is_spotify_url",
]
