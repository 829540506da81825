"""
YouTube 音频提供者 - 处理 YouTube 视频、播放列表和关键词搜索

pytubefix 的调用都是阻塞的，统一放到线程池中执行。
"""

import asyncio
import re
from typing import Collection, Optional, Union

import discord
from pytubefix import Playlist as YouTubePlaylist
from pytubefix import Search, YouTube

from melodybot.core.errors import NoResultError
from melodybot.core.interfaces import Playlist, Song
from melodybot.utils.config_manager import ConfigManager
from .base import BaseAudioProvider

MAX_PLAYLIST_SIZE = 100


class YouTubeProvider(BaseAudioProvider):
    """
    YouTube 音频提供者

    负责把链接或关键词解析为歌曲，并在播放时获取音频流地址。
    """

    URL_PATTERNS = [
        re.compile(r'^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+', re.IGNORECASE),
    ]
    PLAYLIST_PATTERN = re.compile(r'youtube\.com/playlist\?.*list=', re.IGNORECASE)

    def __init__(self, config: Optional[ConfigManager] = None):
        """
        Args:
            config: 配置管理器
        """
        super().__init__("YouTube")
        self.config = config

        self.po_token = config.get('youtube.po_token') if config else None
        self.visitor_data = config.get('youtube.visitor_data') if config else None

        if self.po_token and self.visitor_data:
            self.logger.info("YouTube 配置已加载 (PoToken 和 VisitorData)")

    def _create_youtube_object(self, url: str) -> YouTube:
        """创建YouTube对象，应用配置"""
        if self.po_token and self.visitor_data:
            return YouTube(
                url,
                use_po_token=True,
                po_token_verifier=lambda: (self.visitor_data, self.po_token)
            )
        return YouTube(url)

    def _song_from_video(self, video: YouTube, requester: discord.Member) -> Song:
        return Song(
            title=video.title or "Unknown Title",
            duration=video.length or 0,
            url=video.watch_url,
            requester=requester,
            source="youtube",
            thumbnail_url=video.thumbnail_url,
            uploader=video.author or "Unknown Uploader",
            views=video.views
        )

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def _resolve_impl(self, url: str, requester: discord.Member) -> Union[Song, Playlist]:
        if self.PLAYLIST_PATTERN.search(url):
            return await self._run(self._load_playlist, url, requester)

        video = await self._run(self._create_youtube_object, url)
        return await self._run(self._song_from_video, video, requester)

    def _load_playlist(self, url: str, requester: discord.Member) -> Playlist:
        playlist = YouTubePlaylist(url)
        songs = []
        for video in playlist.videos:
            if len(songs) >= MAX_PLAYLIST_SIZE:
                break
            try:
                songs.append(self._song_from_video(video, requester))
            except Exception as e:
                # 私有或已删除的视频
                self.logger.warning(f"跳过无法读取的播放列表视频: {e}")

        return Playlist(
            name=playlist.title or "YouTube Playlist",
            url=url,
            requester=requester,
            songs=songs,
            source="youtube",
            thumbnail_url=songs[0].thumbnail_url if songs else None
        )

    async def search(self, query: str, requester: discord.Member) -> Song:
        """
        按关键词搜索并返回第一条结果

        Raises:
            NoResultError: 没有搜索结果
        """
        self.logger.debug(f"搜索 YouTube: {query}")
        videos = await self._run(self._search_videos, query)
        if not videos:
            raise NoResultError(f"YouTube 搜索无结果: {query}", "没有找到相关歌曲")
        song = await self._run(self._song_from_video, videos[0], requester)
        self.logger.info(f"YouTube 搜索结果: {song.title}")
        return song

    def _search_videos(self, query: str) -> list:
        return list(Search(query).videos)

    async def find_related(self, song: Song, exclude_urls: Collection[str]) -> Optional[Song]:
        """
        查找一首相关歌曲（用于自动播放）

        以上一首的作者为关键词搜索，跳过已在队列中的链接。
        """
        query = song.uploader or song.title
        videos = await self._run(self._search_videos, query)
        for video in videos:
            if video.watch_url in exclude_urls:
                continue
            return await self._run(self._song_from_video, video, song.requester)
        return None

    async def get_stream_url(self, url: str) -> str:
        """获取视频的音频流地址"""
        return await self._run(self._audio_stream_url, url)

    def _audio_stream_url(self, url: str) -> str:
        stream = self._create_youtube_object(url).streams.get_audio_only()
        if stream is None:
            raise NoResultError(f"未找到可用的音频流: {url}", "未找到可用的音频流")
        return stream.url
