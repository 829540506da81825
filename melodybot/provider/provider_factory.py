"""
音频提供者工厂 - 管理和创建音频提供者实例

提供统一的接口把用户输入解析为歌曲，支持链接类型的自动检测。
"""

import logging
import re
from typing import Collection, Dict, Optional, Union

import discord

from melodybot.core.errors import UnsupportedSourceError
from melodybot.core.interfaces import Playlist, Song
from melodybot.utils.config_manager import ConfigManager
from .base import BaseAudioProvider
from .spotify_provider import SpotifyProvider
from .youtube_provider import YouTubeProvider

URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)


def detect_source_name(query: str) -> str:
    """
    猜测输入的链接类型（用于错误提示分类）

    Returns:
        "YouTube"、"Spotify" 或 "Unknown"
    """
    query = query.strip()
    if any(pattern.search(query) for pattern in SpotifyProvider.URL_PATTERNS):
        return "Spotify"
    if any(pattern.search(query) for pattern in YouTubeProvider.URL_PATTERNS):
        return "YouTube"
    return "Unknown"


def is_spotify_url(query: str) -> bool:
    return detect_source_name(query) == "Spotify"


class AudioProviderFactory:
    """
    音频提供者工厂

    链接交给对应的提供者解析，普通文本作为 YouTube 搜索关键词。
    Spotify 歌曲的音频同样来自 YouTube。
    """

    def __init__(self, config: Optional[ConfigManager] = None):
        """
        Args:
            config: 配置管理器
        """
        self.config = config
        self.logger = logging.getLogger("melodybot.provider.factory")

        self.youtube = YouTubeProvider(config)
        self.spotify = SpotifyProvider(config)

        self._provider_map: Dict[str, BaseAudioProvider] = {
            'youtube': self.youtube,
            'spotify': self.spotify,
        }

    def detect_provider_for_url(self, url: str) -> Optional[BaseAudioProvider]:
        """
        自动检测URL对应的提供者

        Returns:
            合适的提供者，未找到时返回None
        """
        for provider in self._provider_map.values():
            if provider.is_supported_url(url):
                return provider
        return None

    async def resolve(self, query: str, requester: discord.Member) -> Union[Song, Playlist]:
        """
        把用户输入解析为歌曲或播放列表

        Args:
            query: 链接或搜索关键词
            requester: 点歌人

        Raises:
            UnsupportedSourceError: 不支持的链接
            EngineError: 解析失败
        """
        query = query.strip()
        provider = self.detect_provider_for_url(query)
        if provider:
            return await provider.resolve(query, requester)

        if URL_PATTERN.match(query):
            raise UnsupportedSourceError(f"不支持的链接: {query}", "不支持的链接，目前只支持 YouTube 和 Spotify")

        return await self.youtube.search(query, requester)

    async def get_stream_url(self, song: Song) -> str:
        """
        获取歌曲的音频流地址

        Spotify 歌曲先在 YouTube 上搜索对应的视频。
        """
        url = song.url
        if song.source == "spotify":
            match = await self.youtube.search(song.search_query or song.title, song.requester)
            self.logger.debug(f"Spotify 歌曲匹配到 YouTube 视频: {song.title} -> {match.url}")
            url = match.url
        return await self.youtube.get_stream_url(url)

    async def find_related(self, song: Song, exclude_urls: Collection[str]) -> Optional[Song]:
        """查找一首相关歌曲（用于自动播放）"""
        return await self.youtube.find_related(song, exclude_urls)

    async def close(self) -> None:
        """释放提供者持有的网络会话"""
        await self.spotify.close()
