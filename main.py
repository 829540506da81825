#!/usr/bin/env python3
"""
MelodyBot 音乐机器人 - 通过前缀文本命令控制的 Discord 音乐机器人

主程序入口点，负责配置加载、机器人初始化和启动/关闭处理。
支持 YouTube 与 Spotify 链接、关键词搜索、循环队列自动随机和 24/7 播放。
"""
import logging
import sys

import discord
import yaml

from melodybot.bot import MelodyBot
from melodybot.core.errors import ConfigurationError
from melodybot.utils.config_manager import ConfigManager
from melodybot.utils.logger import setup_logger


def main() -> int:
    """
    MelodyBot 音乐机器人主入口函数。

    处理机器人的完整生命周期，包括：
    - 配置加载（环境变量优先，其次 config/config.yaml）
    - 日志系统设置
    - 机器人初始化与运行

    Returns:
        int: 退出代码（0表示成功，1表示错误）
    """
    try:
        config = ConfigManager()
    except (FileNotFoundError, yaml.YAMLError) as e:
        setup_logger()
        logger = logging.getLogger("melodybot")
        logger.error(f"❌ 配置加载失败: {e}")
        logger.error("请设置 DISCORD_TOKEN 环境变量，或复制 config/config.yaml.example 为 config/config.yaml")
        return 1

    setup_logger(
        log_level=config.get_log_level(),
        log_file=config.get_log_file(),
        max_size=config.get_log_max_size(),
        backup_count=config.get_log_backup_count()
    )
    logger = logging.getLogger("melodybot")

    logger.info("=" * 60)
    logger.info("🎵 MelodyBot 音乐机器人启动中...")
    logger.info("=" * 60)
    logger.info(f"✅ 配置加载成功 (来源: {config.source})")

    try:
        discord_token = config.get_discord_token()
    except ConfigurationError as e:
        logger.error(f"❌ Discord 令牌配置错误: {e}")
        logger.error("请设置 DISCORD_TOKEN 环境变量，或在 config/config.yaml 中设置 discord.token")
        return 1

    try:
        bot = MelodyBot(config)
        _log_bot_configuration(logger, config)

        logger.info("按 Ctrl+C 停止机器人")
        bot.run(discord_token)

    except KeyboardInterrupt:
        logger.info("🛑 用户停止了机器人 (Ctrl+C)")
        return 0
    except discord.LoginFailure as e:
        logger.error(f"❌ 登录失败，Discord 令牌无效: {e}")
        return 1
    except Exception as e:
        logger.error(f"❌ 运行音乐机器人时发生意外错误: {e}", exc_info=True)
        return 1

    return 0


def _log_bot_configuration(logger: logging.Logger, config: ConfigManager) -> None:
    """记录机器人配置摘要"""
    logger.info("📋 机器人配置摘要:")
    logger.info(f"   命令前缀: {config.get_command_prefix()}")
    logger.info(f"   默认音量: {config.get_default_volume()}%")
    logger.info(f"   自动随机延迟: {config.get_auto_shuffle_delay()} 秒")
    logger.info(f"   Spotify API: {'✅ 已配置' if config.get_spotify_credentials() else '❌ 未配置（仅支持单曲）'}")
    logger.info("=" * 60)


if __name__ == "__main__":
    sys.exit(main())
