"""
嵌入消息构建器

所有方法都是当前状态到 discord.Embed 的纯函数，不负责发送。
"""

from typing import List, TYPE_CHECKING

import discord

from melodybot.core.interfaces import Playlist, RepeatMode, Song

if TYPE_CHECKING:
    from melodybot.playback.guild_queue import GuildQueue


class EmbedBuilder:
    """
    嵌入消息构建器

    提供统一的嵌入消息构建方法，确保UI一致性
    """

    # 主题色彩
    COLORS = {
        'success': discord.Color.green(),
        'error': discord.Color.red(),
        'warning': discord.Color.orange(),
        'info': discord.Color.blue(),
        'neutral': discord.Color.light_grey(),
        'shuffle': discord.Color.from_rgb(255, 107, 53),
    }

    REPEAT_TEXT = {
        RepeatMode.OFF: "关闭循环",
        RepeatMode.SONG: "单曲循环",
        RepeatMode.QUEUE: "循环整个队列",
    }

    REPEAT_COLORS = {
        RepeatMode.OFF: discord.Color.from_rgb(108, 117, 125),
        RepeatMode.SONG: discord.Color.from_rgb(40, 167, 69),
        RepeatMode.QUEUE: discord.Color.from_rgb(0, 123, 255),
    }

    @classmethod
    def status_texts(cls, queue: "GuildQueue") -> List[str]:
        """队列当前启用的播放模式"""
        texts = []
        if queue.repeat_mode == RepeatMode.SONG:
            texts.append("🔁 单曲循环")
        elif queue.repeat_mode == RepeatMode.QUEUE:
            texts.append("🔁 循环队列")
        if queue.auto_shuffle:
            texts.append("🔀 自动随机")
        return texts

    @classmethod
    def song_started(cls, queue: "GuildQueue", song: Song) -> discord.Embed:
        """
        创建正在播放嵌入

        启用了循环或自动随机时附加状态字段。
        """
        embed = discord.Embed(
            title="🎵 正在播放",
            description=f"**{song.title}**",
            url=song.url or None,
            color=cls.COLORS['success']
        )
        embed.add_field(name="时长", value=song.formatted_duration, inline=True)
        embed.add_field(name="点歌人", value=song.requester.mention, inline=True)
        embed.add_field(name="播放量", value=song.formatted_views, inline=True)

        statuses = cls.status_texts(queue)
        if statuses:
            embed.add_field(name="状态", value=" • ".join(statuses), inline=False)

        if song.thumbnail_url:
            embed.set_thumbnail(url=song.thumbnail_url)
        return embed

    @classmethod
    def song_added(cls, queue: "GuildQueue", song: Song) -> discord.Embed:
        """创建歌曲已添加嵌入，队列位置即剩余待播放的歌曲数量"""
        embed = discord.Embed(
            title="✅ 已添加到队列",
            description=f"**{song.title}**",
            url=song.url or None,
            color=cls.COLORS['info']
        )
        embed.add_field(name="时长", value=song.formatted_duration, inline=True)
        embed.add_field(name="队列位置", value=str(queue.remaining), inline=True)
        embed.add_field(name="点歌人", value=song.requester.mention, inline=True)

        if song.thumbnail_url:
            embed.set_thumbnail(url=song.thumbnail_url)
        return embed

    @classmethod
    def playlist_added(cls, queue: "GuildQueue", playlist: Playlist) -> discord.Embed:
        embed = discord.Embed(
            title="📝 已添加播放列表",
            description=f"**{playlist.name}**",
            url=playlist.url or None,
            color=cls.COLORS['info']
        )
        embed.add_field(name="歌曲数量", value=str(len(playlist.songs)), inline=True)
        embed.add_field(name="点歌人", value=playlist.requester.mention, inline=True)
        embed.add_field(name="来源", value=playlist.source or "Unknown", inline=True)

        if playlist.thumbnail_url:
            embed.set_thumbnail(url=playlist.thumbnail_url)
        return embed

    @classmethod
    def queue_listing(cls, queue: "GuildQueue", limit: int = 10) -> discord.Embed:
        """
        创建队列列表嵌入

        Args:
            queue: 服务器队列
            limit: 最多显示的后续歌曲数量

        Returns:
            Discord嵌入消息
        """
        lines = []
        current = queue.current_song
        if current is not None:
            lines.append(f"**🎵 正在播放:**\n{current.title} - `{current.formatted_duration}`\n")

        upcoming = queue.upcoming
        if upcoming:
            lines.append("**📝 接下来:**")
            for index, song in enumerate(upcoming[:limit], start=1):
                lines.append(f"{index}. {song.title} - `{song.formatted_duration}`")
            if len(upcoming) > limit:
                lines.append(f"\n*...还有 {len(upcoming) - limit} 首歌曲*")

        embed = discord.Embed(
            title="🎵 播放队列",
            description="\n".join(lines) or "队列为空",
            color=cls.COLORS['info']
        )
        embed.add_field(name="歌曲总数", value=str(queue.remaining), inline=True)
        embed.add_field(name="总时长", value=queue.formatted_duration, inline=True)
        return embed

    @classmethod
    def now_playing(cls, queue: "GuildQueue") -> discord.Embed:
        song = queue.current_song
        embed = discord.Embed(
            title="🎵 正在播放",
            description=f"**{song.title}**" if song else "没有正在播放的歌曲",
            url=song.url if song and song.url else None,
            color=cls.COLORS['success']
        )
        if song is None:
            return embed

        embed.add_field(name="时长", value=song.formatted_duration, inline=True)
        embed.add_field(name="进度", value=queue.formatted_current_time, inline=True)
        embed.add_field(name="点歌人", value=song.requester.mention, inline=True)
        embed.add_field(name="播放量", value=song.formatted_views, inline=True)
        embed.add_field(name="音量", value=f"{queue.volume}%", inline=True)
        if queue.paused:
            embed.add_field(name="状态", value="⏸️ 已暂停", inline=True)

        if song.thumbnail_url:
            embed.set_thumbnail(url=song.thumbnail_url)
        return embed

    @classmethod
    def shuffled(cls, queue: "GuildQueue") -> discord.Embed:
        upcoming = queue.upcoming
        embed = discord.Embed(
            title="🔀 队列已随机打乱",
            description=f"已随机打乱 {queue.remaining} 首歌曲",
            color=cls.COLORS['shuffle']
        )
        embed.add_field(name="下一首", value=upcoming[0].title if upcoming else "无", inline=True)
        embed.add_field(name="歌曲总数", value=str(queue.remaining), inline=True)
        return embed

    @classmethod
    def repeat_changed(cls, mode: RepeatMode, prefix: str = "!") -> discord.Embed:
        embed = discord.Embed(
            title="🔁 循环模式已更改",
            description=f"**{cls.REPEAT_TEXT[mode]}**",
            color=cls.REPEAT_COLORS[mode]
        )
        embed.add_field(
            name="用法",
            value=(
                f"`{prefix}repeat off/0` - 关闭\n"
                f"`{prefix}repeat song/1` - 单曲循环\n"
                f"`{prefix}repeat queue/2` - 循环队列\n"
                f"`{prefix}repeat` - 切换到下一个模式"
            ),
            inline=False
        )
        return embed

    @classmethod
    def autoplay_toggled(cls, enabled: bool) -> discord.Embed:
        embed = discord.Embed(
            title="🎵 自动播放",
            description=f"**{'开启' if enabled else '关闭'}自动播放**",
            color=cls.COLORS['success'] if enabled else cls.REPEAT_COLORS[RepeatMode.OFF]
        )
        embed.add_field(
            name="说明",
            value="队列播放完后会自动添加相关歌曲" if enabled else "队列播放完后停止播放",
            inline=False
        )
        return embed

    @classmethod
    def auto_shuffle_toggled(cls, enabled: bool, prefix: str = "!") -> discord.Embed:
        embed = discord.Embed(
            title="🔀 自动随机",
            description=f"**{'开启' if enabled else '关闭'}自动随机**",
            color=cls.COLORS['shuffle'] if enabled else cls.REPEAT_COLORS[RepeatMode.OFF]
        )
        embed.add_field(
            name="说明",
            value="循环队列时每一轮开始都会重新随机打乱队列" if enabled else "不再自动打乱队列",
            inline=False
        )
        embed.add_field(
            name="提示",
            value=f"配合 `{prefix}repeat queue` 可以随机顺序 24/7 播放！",
            inline=False
        )
        return embed

    @classmethod
    def mode_247_enabled(cls, queue: "GuildQueue", prefix: str = "!") -> discord.Embed:
        embed = discord.Embed(
            title="🎵 24/7 模式已开启！",
            description="**机器人将以随机顺序持续播放**",
            color=cls.COLORS['shuffle']
        )
        embed.add_field(name="🔁 循环模式", value="循环整个队列", inline=True)
        embed.add_field(name="🔀 随机", value="每轮自动打乱", inline=True)
        embed.add_field(name="🎵 歌曲数量", value=str(len(queue)), inline=True)
        embed.add_field(
            name="⚙️ 已启用",
            value="✅ 循环队列\n✅ 自动随机\n✅ 持续播放",
            inline=False
        )
        embed.add_field(
            name="🛑 关闭方法",
            value=f"`{prefix}stop` 或 `{prefix}repeat off`",
            inline=False
        )
        return embed

    @classmethod
    def help(cls, prefix: str = "!") -> discord.Embed:
        """创建帮助嵌入，列出所有命令"""
        p = prefix
        embed = discord.Embed(
            title="🎵 音乐机器人使用指南",
            description="**支持 YouTube 和 Spotify** 🎶",
            color=cls.COLORS['info']
        )
        embed.add_field(
            name="🎵 播放",
            value=f"`{p}play <链接/歌名>`\n支持 YouTube 链接、Spotify 链接（单曲/专辑/播放列表）和关键词搜索",
            inline=False
        )
        embed.add_field(
            name="⏯️ 基本控制",
            value=f"`{p}skip` - 跳过当前歌曲\n`{p}stop` - 停止并清空队列\n`{p}pause` - 暂停/继续",
            inline=False
        )
        embed.add_field(
            name="🔀 高级控制",
            value=(
                f"`{p}shuffle` - 随机打乱队列\n"
                f"`{p}repeat [off/song/queue]` - 循环模式\n"
                f"`{p}autoplay` - 自动添加相关歌曲\n"
                f"`{p}autoshuffle` - 每轮循环自动打乱"
            ),
            inline=False
        )
        embed.add_field(
            name="🎵 特殊模式",
            value=f"`{p}24/7` - **随机顺序 24/7 播放**\n（自动开启循环队列和自动随机）",
            inline=False
        )
        embed.add_field(name="🔊 音量", value=f"`{p}volume <0-100>` - 调整音量", inline=False)
        embed.add_field(
            name="📋 信息",
            value=f"`{p}queue` - 查看队列\n`{p}nowplaying` - 当前歌曲\n`{p}ping` - 延迟\n`{p}help` - 本菜单",
            inline=False
        )
        embed.add_field(
            name="🎶 Spotify 示例",
            value=f"`{p}play https://open.spotify.com/track/...`\n`{p}play https://open.spotify.com/playlist/...`",
            inline=False
        )
        return embed
