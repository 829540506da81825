"""
Spotify 音频提供者 - 读取 Spotify 曲目、专辑、播放列表和艺人的元数据

Spotify 不提供音频流，歌曲通过 search_query 交给 YouTube 搜索后播放。
配置了客户端凭据时使用 Web API（Client Credentials）；
否则只能通过 oEmbed 读取单曲标题。
"""

import base64
import re
import time
from typing import Any, Dict, List, Optional, Union

import aiohttp
import discord

from melodybot.core.errors import NoResultError, UnsupportedSourceError
from melodybot.core.interfaces import Playlist, Song
from melodybot.utils.config_manager import ConfigManager
from .base import BaseAudioProvider

ACCOUNTS_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"
OEMBED_URL = "https://open.spotify.com/oembed"
ALBUM_PAGE_LIMIT = 50
PLAYLIST_PAGE_LIMIT = 100


class SpotifyProvider(BaseAudioProvider):
    """Spotify 元数据提供者"""

    URL_PATTERNS = [
        re.compile(r'^(https?://)?(open\.)?spotify\.com/(intl-[a-z]+/)?(track|album|playlist|artist)/.+', re.IGNORECASE),
    ]
    ID_PATTERN = re.compile(
        r'spotify\.com/(?:intl-[a-z]+/)?(?P<kind>track|album|playlist|artist)/(?P<id>[A-Za-z0-9]+)',
        re.IGNORECASE
    )

    def __init__(self, config: Optional[ConfigManager] = None):
        super().__init__("Spotify")
        credentials = config.get_spotify_credentials() if config else None
        self.client_id = credentials['client_id'] if credentials else None
        self.client_secret = credentials['client_secret'] if credentials else None

        self._session: Optional[aiohttp.ClientSession] = None
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

        if not credentials:
            self.logger.warning("未配置 Spotify 凭据，只支持单曲链接")

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=15))
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at - 30:
            return self._access_token

        auth = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        session = await self._get_session()
        async with session.post(
            ACCOUNTS_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            headers={"Authorization": f"Basic {auth}"}
        ) as response:
            response.raise_for_status()
            payload = await response.json()

        self._access_token = payload["access_token"]
        self._token_expires_at = time.time() + int(payload.get("expires_in", 3600))
        self.logger.debug("Spotify 访问令牌已刷新")
        return self._access_token

    async def _api_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self._get_access_token()
        session = await self._get_session()
        async with session.get(
            f"{SPOTIFY_API_BASE}{path}",
            params=params,
            headers={"Authorization": f"Bearer {token}"}
        ) as response:
            if response.status == 404:
                raise NoResultError(f"Spotify 资源不存在: {path}", "Spotify 链接无效或内容不存在")
            response.raise_for_status()
            return await response.json()

    def _parse_url(self, url: str) -> Dict[str, str]:
        match = self.ID_PATTERN.search(url)
        if not match:
            raise UnsupportedSourceError(f"无法识别的 Spotify 链接: {url}", "无法识别的 Spotify 链接")
        return {"kind": match.group("kind").lower(), "id": match.group("id")}

    async def _resolve_impl(self, url: str, requester: discord.Member) -> Union[Song, Playlist]:
        parsed = self._parse_url(url)
        kind, item_id = parsed["kind"], parsed["id"]

        if not self.has_credentials:
            if kind != "track":
                raise UnsupportedSourceError(
                    f"未配置 Spotify 凭据，无法读取 {kind}",
                    "未配置 Spotify 凭据，目前只支持 Spotify 单曲链接"
                )
            return await self._resolve_track_oembed(url, requester)

        if kind == "track":
            track = await self._api_get(f"/tracks/{item_id}")
            return self._song_from_track(track, requester)

        if kind == "album":
            album = await self._api_get(f"/albums/{item_id}")
            image = self._first_image(album.get("images"))
            items = await self._collect_items(album.get("tracks", {}), f"/albums/{item_id}/tracks", ALBUM_PAGE_LIMIT)
            tracks = [self._song_from_track(item, requester, fallback_image=image) for item in items]
            return Playlist(
                name=album.get("name", "Spotify Album"),
                url=url,
                requester=requester,
                songs=tracks,
                source="spotify",
                thumbnail_url=image
            )

        if kind == "playlist":
            playlist = await self._api_get(f"/playlists/{item_id}")
            items = await self._collect_items(
                playlist.get("tracks", {}), f"/playlists/{item_id}/tracks", PLAYLIST_PAGE_LIMIT
            )
            tracks = [
                self._song_from_track(item["track"], requester)
                for item in items
                if item.get("track") and item["track"].get("name")
            ]
            return Playlist(
                name=playlist.get("name", "Spotify Playlist"),
                url=url,
                requester=requester,
                songs=tracks,
                source="spotify",
                thumbnail_url=self._first_image(playlist.get("images"))
            )

        artist = await self._api_get(f"/artists/{item_id}")
        top = await self._api_get(f"/artists/{item_id}/top-tracks", params={"market": "US"})
        return Playlist(
            name=artist.get("name", "Spotify Artist"),
            url=url,
            requester=requester,
            songs=[self._song_from_track(track, requester) for track in top.get("tracks", [])],
            source="spotify",
            thumbnail_url=self._first_image(artist.get("images"))
        )

    async def _collect_items(
        self,
        first_page: Dict[str, Any],
        path: str,
        page_limit: int
    ) -> List[Dict[str, Any]]:
        """
        读取分页结果的全部条目

        第一页随专辑或播放列表一起返回，之后沿 next 逐页请求，直到没有下一页。
        """
        items = list(first_page.get("items") or [])
        page = first_page
        while page.get("next"):
            page = await self._api_get(path, params={"limit": page_limit, "offset": len(items)})
            page_items = page.get("items") or []
            if not page_items:
                break
            items.extend(page_items)

        if first_page.get("next"):
            self.logger.debug(f"Spotify 分页读取完成: {path} ({len(items)} 项)")
        return items

    async def _resolve_track_oembed(self, url: str, requester: discord.Member) -> Song:
        session = await self._get_session()
        async with session.get(OEMBED_URL, params={"url": url}) as response:
            if response.status != 200:
                raise NoResultError(f"Spotify oEmbed 返回 {response.status}: {url}", "无法读取 Spotify 歌曲信息")
            payload = await response.json(content_type=None)

        title = payload.get("title") or "Spotify Track"
        return Song(
            title=title,
            duration=0,
            url=url,
            requester=requester,
            source="spotify",
            thumbnail_url=payload.get("thumbnail_url"),
            search_query=title
        )

    @staticmethod
    def _first_image(images: Optional[List[Dict[str, Any]]]) -> Optional[str]:
        if images:
            return images[0].get("url")
        return None

    def _song_from_track(
        self,
        track: Dict[str, Any],
        requester: discord.Member,
        fallback_image: Optional[str] = None
    ) -> Song:
        artists = ", ".join(artist.get("name", "") for artist in track.get("artists", []) if artist.get("name"))
        name = track.get("name", "Unknown Title")
        image = self._first_image(track.get("album", {}).get("images")) or fallback_image
        return Song(
            title=f"{artists} - {name}" if artists else name,
            duration=int(track.get("duration_ms", 0)) // 1000,
            url=track.get("external_urls", {}).get("spotify", ""),
            requester=requester,
            source="spotify",
            thumbnail_url=image,
            uploader=artists or None,
            search_query=f"{artists} {name}".strip()
        )
