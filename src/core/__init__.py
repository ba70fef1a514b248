"""
core核心模块

提供系统基础设施，包括异常定义、接口规范、日志工具等。
"""

from .exceptions import (
    ActivationError,
    ActivationFailedError,
    AllTargetsFailedError,
    ConfigurationError,
    MoViewError,
    NoFaceDetectedError,
    SensorError,
    SensorUnavailableError,
    UnsupportedPlatformError,
)
from .logger import get_logger, resolve_log_level, setup_logging

__all__ = [
    # 异常类
    "MoViewError",
    "ConfigurationError",
    "SensorError",
    "SensorUnavailableError",
    "NoFaceDetectedError",
    "UnsupportedPlatformError",
    "ActivationError",
    "ActivationFailedError",
    "AllTargetsFailedError",
    # 日志工具
    "get_logger",
    "resolve_log_level",
    "setup_logging",
]
