"""
测试配置

把项目根目录加入路径，并提供常用的 fixtures
"""

import os
import sys
from unittest.mock import Mock

import pytest

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from melodybot.utils.config_manager import ConfigManager  # noqa: E402

from fakes import FakeMusicEngine  # noqa: E402


@pytest.fixture
def mock_config():
    """创建模拟配置管理器"""
    config = Mock(spec=ConfigManager)
    config.get.side_effect = lambda key, default=None: default
    config.get_command_prefix.return_value = "!"
    config.get_queue_display_limit.return_value = 10
    config.get_auto_shuffle_delay.return_value = 0.01
    return config


@pytest.fixture
def fake_engine():
    return FakeMusicEngine()
