"""
语音管理器 - 管理Discord语音连接和播放控制

负责Discord语音频道的连接、断开和音频播放控制。
提供统一的语音操作接口，隔离Discord API的复杂性。
"""

import logging
from typing import Callable, Dict, Optional, Tuple

import discord
from discord.ext import commands


class VoiceManager:
    """
    语音管理器

    管理Discord语音连接，支持多服务器同时连接和播放。
    """

    def __init__(self, bot: commands.Bot):
        """
        初始化语音管理器

        Args:
            bot: Discord机器人实例
        """
        self.bot = bot
        self.logger = logging.getLogger("melodybot.playback.voice_manager")

        self._voice_clients: Dict[int, discord.VoiceClient] = {}

        self.logger.debug("语音管理器初始化完成")

    def get_voice_client(self, guild_id: int) -> Optional[discord.VoiceClient]:
        """
        获取指定服务器的语音客户端

        Args:
            guild_id: 服务器ID

        Returns:
            语音客户端，如果不存在则返回None
        """
        if guild_id in self._voice_clients:
            voice_client = self._voice_clients[guild_id]
            if voice_client.is_connected():
                return voice_client
            # 清理无效连接
            del self._voice_clients[guild_id]

        guild = self.bot.get_guild(guild_id)
        if guild and guild.voice_client:
            self._voice_clients[guild_id] = guild.voice_client
            return guild.voice_client

        return None

    async def connect_to_channel(self, channel: discord.VoiceChannel) -> Tuple[bool, Optional[str]]:
        """
        连接到语音频道

        Args:
            channel: 要连接的语音频道

        Returns:
            (成功标志, 错误消息)
        """
        try:
            guild_id = channel.guild.id

            existing_client = self.get_voice_client(guild_id)
            if existing_client:
                if existing_client.channel == channel:
                    self.logger.debug(f"已连接到频道: {channel.name}")
                    return True, None
                await existing_client.move_to(channel)
                self.logger.info(f"移动到频道: {channel.name}")
                return True, None

            voice_client = await channel.connect()
            self._voice_clients[guild_id] = voice_client

            self.logger.info(f"成功连接到语音频道: {channel.name} (服务器: {channel.guild.name})")
            return True, None

        except discord.ClientException as e:
            error_msg = f"Discord客户端错误: {e}"
            self.logger.error(error_msg)
            return False, error_msg

        except Exception as e:
            error_msg = f"连接语音频道时发生未知错误: {e}"
            self.logger.error(error_msg)
            return False, error_msg

    async def disconnect_from_guild(self, guild_id: int) -> bool:
        """
        从服务器断开语音连接

        Returns:
            断开是否成功
        """
        voice_client = self.get_voice_client(guild_id)
        self._voice_clients.pop(guild_id, None)
        if not voice_client:
            self.logger.debug(f"服务器 {guild_id} 没有语音连接")
            return True

        try:
            await voice_client.disconnect()
            self.logger.info(f"已断开语音连接 - 服务器 {guild_id}")
            return True
        except Exception as e:
            self.logger.error(f"断开语音连接失败 - 服务器 {guild_id}: {e}")
            return False

    def play_audio(
        self,
        guild_id: int,
        source: discord.AudioSource,
        after_callback: Optional[Callable[[Optional[Exception]], None]] = None
    ) -> bool:
        """
        播放音频

        Args:
            guild_id: 服务器ID
            source: 音频源
            after_callback: 播放完成后的回调函数（在语音线程中调用）

        Returns:
            播放是否成功开始
        """
        voice_client = self.get_voice_client(guild_id)
        if not voice_client:
            self.logger.error(f"服务器 {guild_id} 没有语音连接")
            return False

        try:
            voice_client.play(source, after=after_callback)
        except discord.ClientException as e:
            self.logger.error(f"播放音频失败 - 服务器 {guild_id}: {e}")
            return False

        self.logger.debug(f"开始播放音频 - 服务器 {guild_id}")
        return True

    def stop_audio(self, guild_id: int) -> None:
        """停止音频播放（会触发播放完成回调）"""
        voice_client = self.get_voice_client(guild_id)
        if voice_client and (voice_client.is_playing() or voice_client.is_paused()):
            voice_client.stop()
            self.logger.debug(f"停止音频播放 - 服务器 {guild_id}")

    def pause_audio(self, guild_id: int) -> bool:
        """
        暂停音频播放

        Returns:
            暂停是否成功
        """
        voice_client = self.get_voice_client(guild_id)
        if voice_client and voice_client.is_playing():
            voice_client.pause()
            self.logger.debug(f"暂停音频播放 - 服务器 {guild_id}")
            return True
        return False

    def resume_audio(self, guild_id: int) -> bool:
        """
        恢复音频播放

        Returns:
            恢复是否成功
        """
        voice_client = self.get_voice_client(guild_id)
        if voice_client and voice_client.is_paused():
            voice_client.resume()
            self.logger.debug(f"恢复音频播放 - 服务器 {guild_id}")
            return True
        return False

    def set_volume(self, guild_id: int, volume: int) -> bool:
        """
        调整正在播放的音频音量

        Args:
            guild_id: 服务器ID
            volume: 音量 (0-100)

        Returns:
            当前音源支持调整音量时返回True
        """
        voice_client = self.get_voice_client(guild_id)
        if voice_client and isinstance(voice_client.source, discord.PCMVolumeTransformer):
            voice_client.source.volume = volume / 100
            return True
        return False

    async def cleanup_all_connections(self) -> None:
        """清理所有语音连接"""
        for guild_id in list(self._voice_clients.keys()):
            await self.disconnect_from_guild(guild_id)

        self.logger.info("所有语音连接已清理")
