"""
音乐命令测试

使用内存播放引擎验证前置条件、参数校验和各命令的回复。
"""

import unittest
from unittest.mock import AsyncMock, MagicMock, Mock, patch

from melodybot.commands.music_commands import MusicCommands, parse_volume
from melodybot.core.command_registry import DEFAULT_NO_QUEUE_MESSAGE, NOT_IN_VOICE_MESSAGE, CommandRegistry
from melodybot.core.interfaces import RepeatMode
from melodybot.ui.embed_builder import EmbedBuilder
from melodybot.utils.config_manager import ConfigManager

from fakes import GUILD_ID, FakeMusicEngine, make_http_exception, make_member, make_message, make_song


def test_music_commands_registered(mock_config, fake_engine):
    registry = CommandRegistry(MagicMock(), fake_engine, prefix="!")
    MusicCommands(mock_config, fake_engine).register_commands(registry)

    expected = {
        "play": ["p"], "skip": ["s"], "stop": [], "queue": ["q"], "nowplaying": ["np"],
        "volume": ["vol"], "pause": [], "shuffle": ["mix"], "repeat": ["loop"],
        "autoplay": [], "autoshuffle": [], "24/7": ["24h"],
    }
    for name, aliases in expected.items():
        spec = registry.get_command(name)
        assert spec is not None, name
        assert spec.aliases == aliases
        for alias in aliases:
            assert registry.get_command(alias) is spec


class TestParseVolume(unittest.TestCase):
    """测试音量参数解析"""

    def test_valid_values(self):
        cases = {"0": 0, "50": 50, "100": 100, "+7": 7, "80%": 80, " 30": 30, "42abc": 42}
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(parse_volume(text), expected)

    def test_invalid_values(self):
        for text in [None, "", "abc", "101", "-1", "%50", "loud"]:
            with self.subTest(text=text):
                self.assertIsNone(parse_volume(text))


class MusicCommandsTestCase(unittest.IsolatedAsyncioTestCase):
    """音乐命令测试基类"""

    def setUp(self):
        self.config = Mock(spec=ConfigManager)
        self.config.get_queue_display_limit.return_value = 10

        self.engine = FakeMusicEngine()
        self.registry = CommandRegistry(MagicMock(), self.engine, prefix="!")
        MusicCommands(self.config, self.engine).register_commands(self.registry)

    async def run_command(self, content: str, **kwargs):
        message = make_message(content, **kwargs)
        handled = await self.registry.dispatch(message)
        self.assertTrue(handled)
        return message

    def songs(self, count: int):
        return [make_song(f"Song {i}") for i in range(count)]


class TestNoQueueRejections(MusicCommandsTestCase):
    """没有活动队列时命令直接被拒绝，不调用引擎"""

    async def test_rejections(self):
        cases = {
            "!skip": DEFAULT_NO_QUEUE_MESSAGE,
            "!stop": DEFAULT_NO_QUEUE_MESSAGE,
            "!queue": "❌ 队列为空！",
            "!q": "❌ 队列为空！",
            "!nowplaying": DEFAULT_NO_QUEUE_MESSAGE,
            "!volume 50": DEFAULT_NO_QUEUE_MESSAGE,
            "!pause": DEFAULT_NO_QUEUE_MESSAGE,
            "!shuffle": "❌ 没有可以打乱的队列！",
            "!repeat queue": DEFAULT_NO_QUEUE_MESSAGE,
            "!autoplay": DEFAULT_NO_QUEUE_MESSAGE,
            "!autoshuffle": DEFAULT_NO_QUEUE_MESSAGE,
            "!24/7": "❌ 队列中至少需要 1 首歌曲！",
        }
        for content, expected in cases.items():
            with self.subTest(content=content):
                message = await self.run_command(content)
                message.reply.assert_awaited_once_with(expected)
                message.channel.send.assert_not_called()

        self.assertEqual(self.engine.calls, [])


class TestPlayCommand(MusicCommandsTestCase):

    async def test_requires_query(self):
        message = await self.run_command("!play")

        message.reply.assert_awaited_once_with("❌ 请提供链接（YouTube/Spotify）或歌曲名称！")
        self.assertEqual(self.engine.calls, [])

    async def test_requires_voice_channel(self):
        message = await self.run_command("!play song", author=make_member(in_voice=False))

        message.reply.assert_awaited_once_with(NOT_IN_VOICE_MESSAGE)
        self.assertEqual(self.engine.calls, [])

    async def test_search_query_joined(self):
        author = make_member()
        message = await self.run_command("!p never gonna give you up", author=author)

        self.assertEqual(
            self.engine.calls,
            [("play", (author.voice.channel, "never gonna give you up", author, message.channel))]
        )
        message.reply.assert_not_called()
        self.assertEqual(len(self.engine.get_queue(GUILD_ID)), 1)

    async def test_spotify_processing_message_deleted(self):
        processing = MagicMock()
        processing.delete = AsyncMock()
        message = make_message("!play https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT")
        message.reply.return_value = processing

        await self.registry.dispatch(message)

        message.reply.assert_awaited_once_with("🎵 正在处理 Spotify 链接...")
        processing.delete.assert_awaited_once()
        self.assertEqual(self.engine.call_names(), ["play"])

    async def test_spotify_processing_message_deleted_on_failure(self):
        self.engine.fail_on.add("play")
        processing = MagicMock()
        processing.delete = AsyncMock()
        message = make_message("!play https://open.spotify.com/album/1DFixLWuPkv3KT3TnV35m3")
        message.reply.return_value = processing

        await self.registry.dispatch(message)

        replies = [call.args[0] for call in message.reply.await_args_list]
        self.assertEqual(replies, [
            "🎵 正在处理 Spotify 链接...",
            "❌ 无法播放音乐！请检查 Spotify 链接或换一个链接。",
        ])
        processing.delete.assert_awaited_once()

    async def test_processing_message_delete_failure_ignored(self):
        processing = MagicMock()
        processing.delete = AsyncMock(side_effect=make_http_exception())
        message = make_message("!play https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT")
        message.reply.return_value = processing

        await self.registry.dispatch(message)

        message.reply.assert_awaited_once_with("🎵 正在处理 Spotify 链接...")

    async def test_error_hint_by_source(self):
        self.engine.fail_on.add("play")
        cases = {
            "!play https://www.youtube.com/watch?v=dQw4w9WgXcQ": "❌ 无法播放音乐！请检查 YouTube 链接或换一个链接。",
            "!play https://example.com/song.mp3": "❌ 无法播放音乐！请检查链接或换一首歌搜索。",
            "!play some song": "❌ 无法播放音乐！请检查链接或换一首歌搜索。",
        }
        for content, expected in cases.items():
            with self.subTest(content=content):
                message = await self.run_command(content)
                message.reply.assert_awaited_once_with(expected)


class TestPlaybackControlCommands(MusicCommandsTestCase):

    async def test_skip(self):
        self.engine.create_queue(self.songs(2))

        message = await self.run_command("!s")

        message.reply.assert_awaited_once_with("⏭️ 已跳过当前歌曲！")
        self.assertEqual(self.engine.calls, [("skip", (GUILD_ID,))])

    async def test_skip_failure(self):
        self.engine.create_queue(self.songs(1))

        message = await self.run_command("!skip")

        message.reply.assert_awaited_once_with("❌ 无法跳过歌曲！")

    async def test_stop(self):
        self.engine.create_queue(self.songs(2))

        message = await self.run_command("!stop")

        message.reply.assert_awaited_once_with("⏹️ 已停止播放并清空队列！")
        self.assertIsNone(self.engine.get_queue(GUILD_ID))

    async def test_stop_failure(self):
        self.engine.create_queue(self.songs(2))
        self.engine.fail_on.add("stop")

        message = await self.run_command("!stop")

        message.reply.assert_awaited_once_with("❌ 无法停止播放！")

    async def test_pause_toggles(self):
        queue = self.engine.create_queue(self.songs(1))

        message = await self.run_command("!pause")
        message.reply.assert_awaited_once_with("⏸️ 已暂停播放！")
        self.assertTrue(queue.paused)

        message = await self.run_command("!pause")
        message.reply.assert_awaited_once_with("▶️ 已继续播放！")
        self.assertFalse(queue.paused)

        self.assertEqual(self.engine.call_names(), ["pause", "resume"])

    async def test_pause_failure(self):
        self.engine.create_queue(self.songs(1))
        self.engine.fail_on.add("pause")

        message = await self.run_command("!pause")

        message.reply.assert_awaited_once_with("❌ 无法暂停或继续播放！")

    async def test_nowplaying(self):
        self.engine.create_queue(self.songs(1))

        message = await self.run_command("!np")

        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.description, "**Song 0**")

    async def test_queue_listing(self):
        self.engine.create_queue(self.songs(3))

        message = await self.run_command("!queue")

        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertIn("1. Song 1", embed.description)
        self.assertIn("2. Song 2", embed.description)


class TestVolumeCommand(MusicCommandsTestCase):

    def setUp(self):
        super().setUp()
        self.engine.create_queue(self.songs(1))

    async def test_invalid_volume_rejected_before_engine(self):
        for content in ["!volume abc", "!volume 101", "!volume -1", "!volume", "!vol loud"]:
            with self.subTest(content=content):
                message = await self.run_command(content)
                message.reply.assert_awaited_once_with("❌ 音量必须是 0 到 100 之间的数字！")

        self.assertEqual(self.engine.calls, [])

    async def test_valid_volume(self):
        cases = {"0": 0, "50": 50, "100": 100, "+7": 7, "80%": 80}
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.engine.calls.clear()
                message = await self.run_command(f"!volume {text}")
                self.assertEqual(self.engine.calls, [("set_volume", (GUILD_ID, expected))])
                message.reply.assert_awaited_once_with(f"🔊 音量已设置为 {expected}%！")

    async def test_volume_failure(self):
        self.engine.fail_on.add("set_volume")

        message = await self.run_command("!volume 40")

        message.reply.assert_awaited_once_with("❌ 无法调整音量！")


class TestQueueModeCommands(MusicCommandsTestCase):

    async def test_shuffle_requires_two_songs(self):
        self.engine.create_queue(self.songs(1))

        message = await self.run_command("!shuffle")

        message.reply.assert_awaited_once_with("❌ 队列中至少需要 2 首歌曲才能打乱！")
        message.channel.send.assert_not_called()

    async def test_shuffle_rejected_on_last_song(self):
        songs = self.songs(3)
        queue = self.engine.create_queue(songs)
        queue.current_index = 2

        message = await self.run_command("!shuffle")

        message.reply.assert_awaited_once_with("❌ 队列中至少需要 2 首歌曲才能打乱！")
        message.channel.send.assert_not_called()
        self.assertEqual(queue.songs, songs)

    async def test_shuffle_keeps_played_songs(self):
        songs = self.songs(5)
        queue = self.engine.create_queue(songs)
        queue.current_index = 2

        message = await self.run_command("!shuffle")

        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.description, "已随机打乱 3 首歌曲")
        self.assertEqual(queue.songs[:3], songs[:3])
        self.assertCountEqual(queue.songs[3:], songs[3:])

    async def test_shuffle(self):
        songs = self.songs(5)
        queue = self.engine.create_queue(songs)

        message = await self.run_command("!mix")

        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.title, "🔀 队列已随机打乱")
        self.assertIs(queue.songs[0], songs[0])
        self.assertCountEqual(queue.songs, songs)

    async def test_repeat_cycles(self):
        queue = self.engine.create_queue(self.songs(2))

        for expected in [RepeatMode.SONG, RepeatMode.QUEUE, RepeatMode.OFF]:
            message = await self.run_command("!repeat")
            self.assertEqual(queue.repeat_mode, expected)
            embed = message.channel.send.await_args.kwargs["embed"]
            self.assertEqual(embed.description, f"**{EmbedBuilder.REPEAT_TEXT[expected]}**")

    async def test_repeat_explicit_mode(self):
        queue = self.engine.create_queue(self.songs(2))
        cases = {"queue": RepeatMode.QUEUE, "0": RepeatMode.OFF, "SONG": RepeatMode.SONG, "2": RepeatMode.QUEUE}
        for arg, expected in cases.items():
            with self.subTest(arg=arg):
                await self.run_command(f"!loop {arg}")
                self.assertEqual(queue.repeat_mode, expected)

    async def test_repeat_unknown_argument_cycles(self):
        queue = self.engine.create_queue(self.songs(2))
        queue.repeat_mode = RepeatMode.SONG

        await self.run_command("!repeat forever")

        self.assertEqual(queue.repeat_mode, RepeatMode.QUEUE)

    async def test_repeat_failure(self):
        self.engine.create_queue(self.songs(2))
        self.engine.fail_on.add("set_repeat_mode")

        message = await self.run_command("!repeat song")

        message.reply.assert_awaited_once_with("❌ 无法更改循环模式！")

    async def test_autoplay(self):
        queue = self.engine.create_queue(self.songs(1))

        message = await self.run_command("!autoplay")

        self.assertTrue(queue.autoplay)
        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.description, "**开启自动播放**")

    async def test_autoplay_failure(self):
        self.engine.create_queue(self.songs(1))
        self.engine.fail_on.add("toggle_autoplay")

        message = await self.run_command("!autoplay")

        message.reply.assert_awaited_once_with("❌ 无法切换自动播放！")

    async def test_autoshuffle_toggles_without_repeat(self):
        queue = self.engine.create_queue(self.songs(2))

        message = await self.run_command("!autoshuffle")
        self.assertTrue(queue.auto_shuffle)
        self.assertEqual(queue.repeat_mode, RepeatMode.OFF)
        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.description, "**开启自动随机**")

        await self.run_command("!autoshuffle")
        self.assertFalse(queue.auto_shuffle)


class TestMode247Command(MusicCommandsTestCase):

    async def test_requires_two_songs(self):
        queue = self.engine.create_queue(self.songs(1))

        message = await self.run_command("!24/7")

        message.reply.assert_awaited_once_with("❌ 至少需要 2 首歌曲才能开启 24/7 模式！")
        self.assertEqual(self.engine.calls, [])
        self.assertEqual(queue.repeat_mode, RepeatMode.OFF)
        self.assertFalse(queue.auto_shuffle)

    async def test_rejected_on_last_song(self):
        songs = self.songs(3)
        queue = self.engine.create_queue(songs)
        queue.current_index = 2

        message = await self.run_command("!24/7")

        message.reply.assert_awaited_once_with("❌ 至少需要 2 首歌曲才能开启 24/7 模式！")
        self.assertEqual(queue.repeat_mode, RepeatMode.OFF)
        self.assertEqual(queue.songs, songs)

    async def test_enable(self):
        songs = self.songs(4)
        queue = self.engine.create_queue(songs)

        message = await self.run_command("!24h")

        self.assertEqual(queue.repeat_mode, RepeatMode.QUEUE)
        self.assertTrue(queue.auto_shuffle)
        self.assertCountEqual(queue.songs, songs)
        message.reply.assert_not_called()
        message.channel.send.assert_awaited_once()
        embed = message.channel.send.await_args.kwargs["embed"]
        self.assertEqual(embed.title, "🎵 24/7 模式已开启！")

    async def test_failure_restores_state(self):
        songs = self.songs(4)
        queue = self.engine.create_queue(songs)
        queue.current_index = 2

        with patch.object(queue, "shuffle", side_effect=RuntimeError("shuffle failed")):
            message = await self.run_command("!24/7")

        self.assertEqual(queue.repeat_mode, RepeatMode.OFF)
        self.assertFalse(queue.auto_shuffle)
        self.assertEqual(queue.songs, songs)
        self.assertEqual(queue.current_index, 2)
        message.reply.assert_awaited_once_with("❌ 无法开启 24/7 模式！")
        message.channel.send.assert_not_called()


if __name__ == '__main__':
    unittest.main()
