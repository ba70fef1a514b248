"""
配置模块

定义自动切换工具的配置快照模型、清洗规则与内存配置存储。

使用示例:
    >>> from src.settings import InMemorySettingsStore, sanitize_settings
    >>>
    >>> settings = sanitize_settings({"detection": {"presenceThreshold": 2}})
    >>> settings.detection.presence_threshold
    1.0
    >>> store = InMemorySettingsStore(settings)
    >>> store.update({"apps": {"gameBlacklist": [" League "]}}).apps.game_blacklist
    ['League']
"""

from .models import (
    AppRules,
    AppSettings,
    DetectionSettings,
    ListMode,
    MatchStrategy,
    MotionRegion,
    SafeFaceProfile,
    WorkTarget,
)
from .sanitizer import (
    DEFAULT_SETTINGS,
    PLACEHOLDER_LABEL,
    extract_win_process_name,
    merge_app_settings,
    merge_detection_settings,
    normalize_safe_face,
    sanitize_list,
    sanitize_region,
    sanitize_settings,
    sanitize_work_target,
)
from .store import InMemorySettingsStore

__all__ = [
    # 数据模型
    "AppSettings",
    "AppRules",
    "DetectionSettings",
    "MotionRegion",
    "SafeFaceProfile",
    "WorkTarget",
    "MatchStrategy",
    "ListMode",
    # 清洗与合并
    "DEFAULT_SETTINGS",
    "PLACEHOLDER_LABEL",
    "sanitize_settings",
    "sanitize_list",
    "sanitize_region",
    "sanitize_work_target",
    "normalize_safe_face",
    "extract_win_process_name",
    "merge_detection_settings",
    "merge_app_settings",
    # 存储
    "InMemorySettingsStore",
]
