"""
core.interfaces包初始化

核心接口定义，提供自动化引擎与外部协作组件之间的抽象基类。
"""

from .activation import IActivationBackend
from .scheduler import IScheduledTask, IScheduler
from .sensors import IFrameDetector, IWindowObserver
from .settings_store import IConfigurationStore, SettingsListener

__all__ = [
    "IActivationBackend",
    "IFrameDetector",
    "IWindowObserver",
    "IConfigurationStore",
    "SettingsListener",
    "IScheduler",
    "IScheduledTask",
]
