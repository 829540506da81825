"""日志系统设置"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: int = 10485760,
    backup_count: int = 5
) -> logging.Logger:
    """
    配置 melodybot 根日志记录器

    Args:
        log_level: 日志级别名称
        log_file: 日志文件路径，为空时只输出到控制台
        max_size: 单个日志文件最大字节数
        backup_count: 保留的备份文件数量

    Returns:
        配置好的 melodybot 日志记录器
    """
    logger = logging.getLogger("melodybot")
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    logger.setLevel(level)

    # 重复调用时替换处理器
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # discord.py 自身的日志只保留警告以上
    logging.getLogger("discord").setLevel(max(level, logging.WARNING))

    return logger
