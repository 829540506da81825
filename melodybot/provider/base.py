"""
音频提供者基类 - 定义音频提供者的通用功能

提供音频提供者的基础实现，包含通用的错误处理和日志记录。
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Pattern, Union

import discord

from melodybot.core.errors import EngineError, NoResultError
from melodybot.core.interfaces import Playlist, Song


class BaseAudioProvider(ABC):
    """
    音频提供者基类

    子类声明 URL_PATTERNS 并实现 _resolve_impl。
    """

    URL_PATTERNS: List[Pattern] = []

    def __init__(self, name: str):
        """
        Args:
            name: 提供者名称（用于日志和错误分类）
        """
        self.name = name
        self.logger = logging.getLogger(f"melodybot.provider.{name.lower()}")
        self.logger.debug(f"{name} 音频提供者初始化完成")

    def is_supported_url(self, url: str) -> bool:
        """检查URL是否由该提供者处理"""
        return any(pattern.search(url.strip()) for pattern in self.URL_PATTERNS)

    async def resolve(self, url: str, requester: discord.Member) -> Union[Song, Playlist]:
        """
        将链接解析为歌曲或播放列表（带日志的包装方法）

        Raises:
            EngineError: 解析失败
        """
        self.logger.debug(f"开始解析 {self.name} 链接: {url}")
        try:
            result = await self._resolve_impl(url, requester)
        except EngineError:
            raise
        except Exception as e:
            self.logger.error(f"{self.name} 链接解析失败 - {url}: {e}")
            raise EngineError(f"{self.name} 链接解析失败: {e}") from e

        if isinstance(result, Playlist):
            if not result.songs:
                raise NoResultError(f"{self.name} 播放列表为空: {url}", "播放列表中没有可播放的歌曲")
            self.logger.info(f"{self.name} 播放列表解析成功: {result.name} ({len(result.songs)} 首)")
        else:
            self.logger.info(f"{self.name} 歌曲解析成功: {result.title} ({result.duration}s)")
        return result

    @abstractmethod
    async def _resolve_impl(self, url: str, requester: discord.Member) -> Union[Song, Playlist]:
        """子类实现的解析逻辑"""
        raise NotImplementedError
