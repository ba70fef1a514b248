"""
日志工具模块

引擎各组件通过 get_logger(__name__) 取得日志器，只有入口脚本调用 setup_logging。
日志级别和日志文件可由环境变量 MOVIEW_LOG_LEVEL / MOVIEW_LOG_FILE 指定。
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_LEVEL = logging.INFO

# 环境变量名
ENV_LOG_LEVEL = "MOVIEW_LOG_LEVEL"
ENV_LOG_FILE = "MOVIEW_LOG_FILE"

# 第三方库日志器，低于 WARNING 的输出没有排查价值
QUIET_LOGGERS = ("PIL",)


def resolve_log_level(level: Union[int, str, None]) -> int:
    """
    解析日志级别

    支持整数级别或 "DEBUG"/"info" 等名称，无法识别时返回默认级别。

    Args:
        level: 日志级别或级别名称

    Returns:
        logging 模块的整数级别
    """
    if level is None:
        return DEFAULT_LOG_LEVEL
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return DEFAULT_LOG_LEVEL


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[Path] = None,
    log_format: str = LOG_FORMAT,
) -> None:
    """
    配置根日志器

    重复调用会替换之前的处理器。未指定参数时从环境变量读取。

    Args:
        level: 日志级别或级别名称，为 None 时读取 MOVIEW_LOG_LEVEL
        log_file: 日志文件路径，为 None 时读取 MOVIEW_LOG_FILE，都没有则只输出到控制台
        log_format: 日志格式字符串
    """
    if level is None:
        level = os.getenv(ENV_LOG_LEVEL)
    if log_file is None and os.getenv(ENV_LOG_FILE):
        log_file = Path(os.environ[ENV_LOG_FILE])

    formatter = logging.Formatter(log_format, LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=resolve_log_level(level), handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    获取指定名称的日志器

    Args:
        name: 日志器名称，通常使用 __name__

    Returns:
        日志器实例
    """
    return logging.getLogger(name)
