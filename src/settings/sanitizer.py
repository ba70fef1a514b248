"""
配置清洗器

把任意来源的配置(模型实例或原始字典)强制转换到合法范围内。
清洗是全函数: 非法值被修正而不是拒绝，且满足幂等性 sanitize(sanitize(x)) == sanitize(x)。
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel
from pydantic.alias_generators import to_camel, to_snake

from src.core.logger import get_logger

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

logger = get_logger(__name__)

# 未命名安全人脸的占位名称
PLACEHOLDER_LABEL = "未命名"

# 数值字段边界
PRESENCE_THRESHOLD_RANGE = (0.0, 1.0)
FACE_RECOGNITION_THRESHOLD_RANGE = (0.0, 1.0)
MOTION_SENSITIVITY_RANGE = (0.01, 1.0)
MIN_FRAMES_BEFORE_TRIGGER = 1
MIN_COOLDOWN_SECONDS = 1
MIN_SAMPLE_INTERVAL_MS = 50

# 大于此值的时间戳按毫秒解析
_MILLISECOND_TIMESTAMP_FLOOR = 1e11

DEFAULT_SETTINGS = AppSettings()

RawSettings = Union[AppSettings, Mapping[str, Any], None]


def _as_mapping(value: Any) -> dict[str, Any]:
    """把模型或映射转换为普通字典，其他值返回空字典"""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _lookup(data: Mapping[str, Any], field: str, default: Any = None) -> Any:
    """按 snake_case 字段名或其 camelCase 别名读取值"""
    if field in data:
        return data[field]
    alias = to_camel(field)
    if alias in data:
        return data[alias]
    return default


def _snake_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """把顶层键统一转换为 snake_case"""
    return {to_snake(str(key)): value for key, value in data.items()}


def _to_float(value: Any, default: float) -> float:
    """尽量转换为浮点数，无法转换时返回默认值"""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _clamp(value: Any, lower: float, upper: float, default: float) -> float:
    """
    把数值限制在 [lower, upper]

    NaN 回退为默认值，正负无穷被截断到对应边界。
    """
    number = _to_float(value, default)
    if math.isnan(number):
        number = default
    return min(max(number, lower), upper)


def _round_at_least(value: Any, minimum: int, default: int) -> int:
    """四舍五入取整并保证不小于下限，非有限值回退为默认值"""
    number = _to_float(value, default)
    if not math.isfinite(number):
        number = default
    return max(minimum, math.floor(number + 0.5))


def _clean_str(value: Any) -> str:
    """去除首尾空白，None 视为空字符串"""
    if value is None:
        return ""
    return str(value).strip()


def sanitize_list(items: Any) -> list[str]:
    """
    清洗规则列表

    去除首尾空白、丢弃空字符串，并按首次出现顺序去重(区分大小写)。

    Args:
        items: 原始列表

    Returns:
        清洗后的列表
    """
    if items is None or isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
        return []

    result: list[str] = []
    seen: set[str] = set()
    for item in items:
        if item is None:
            continue
        cleaned = str(item).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def extract_win_process_name(
    command: Optional[str],
    fallback: Optional[str] = None,
) -> Optional[str]:
    """
    从 Windows 启动命令推导进程名

    取路径最后一段并去掉 .exe 扩展名，例如
    ``"C:\\Program Files\\Code\\Code.exe"`` -> ``"Code"``。

    Args:
        command: 启动命令
        fallback: 无法推导时的返回值

    Returns:
        进程名或 fallback
    """
    if not command:
        return fallback

    without_quotes = command.replace('"', "").strip()
    if not without_quotes:
        return fallback

    last = re.split(r"[/\\]", without_quotes)[-1]
    if not last:
        return fallback

    cleaned = re.sub(r"\.exe$", "", last, flags=re.IGNORECASE)
    return cleaned or fallback


def _coerce_timestamp(value: Any) -> datetime:
    """把毫秒/秒时间戳或 ISO 字符串转换为 datetime，失败时返回当前时间"""
    if isinstance(value, datetime):
        return value

    try:
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if not math.isfinite(value):
                return datetime.now()
            seconds = value / 1000 if abs(value) >= _MILLISECOND_TIMESTAMP_FLOOR else value
            return datetime.fromtimestamp(seconds)
    except (ValueError, OverflowError, OSError):
        pass

    return datetime.now()


def _coerce_descriptor(values: Any) -> list[float]:
    """把特征向量元素转换为有限浮点数，无法转换的元素记为 0.0"""
    if values is None or isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        return []

    descriptor = []
    for value in values:
        number = _to_float(value, 0.0)
        descriptor.append(number if math.isfinite(number) else 0.0)
    return descriptor


def normalize_safe_face(
    profile: Union[SafeFaceProfile, Mapping[str, Any]],
) -> SafeFaceProfile:
    """
    规范化安全人脸档案

    空 ID 分配新的 UUID，名称去空白(为空时使用占位名)，特征向量转换为数值。

    Args:
        profile: 原始档案

    Returns:
        规范化后的档案
    """
    data = _as_mapping(profile)

    return SafeFaceProfile(
        id=_clean_str(_lookup(data, "id")) or str(uuid4()),
        label=_clean_str(_lookup(data, "label")) or PLACEHOLDER_LABEL,
        descriptor=_coerce_descriptor(_lookup(data, "descriptor")),
        created_at=_coerce_timestamp(_lookup(data, "created_at")),
    )


def _sanitize_safe_faces(profiles: Any) -> list[SafeFaceProfile]:
    """规范化安全人脸列表，并为重复的 ID 重新分配"""
    if profiles is None or isinstance(profiles, (str, bytes)) or not isinstance(profiles, Iterable):
        return []

    result: list[SafeFaceProfile] = []
    seen_ids: set[str] = set()
    for raw in profiles:
        if not isinstance(raw, (SafeFaceProfile, Mapping)):
            continue
        profile = normalize_safe_face(raw)
        if profile.id in seen_ids:
            profile = profile.model_copy(update={"id": str(uuid4())})
        seen_ids.add(profile.id)
        result.append(profile)
    return result


def sanitize_region(region: Any) -> MotionRegion:
    """
    清洗运动检测区域

    每个分量限制在 [0, 1]，非有限值视为 0；宽或高不大于 0 时回退为整幅画面。

    Args:
        region: 原始区域

    Returns:
        清洗后的区域
    """
    data = {**DEFAULT_SETTINGS.detection.motion_region.model_dump(), **_as_mapping(region)}

    def clamp(value: Any) -> float:
        number = _to_float(value, 0.0)
        if not math.isfinite(number):
            number = 0.0
        return min(max(number, 0.0), 1.0)

    width = clamp(data.get("width"))
    height = clamp(data.get("height"))
    return MotionRegion(
        x=clamp(data.get("x")),
        y=clamp(data.get("y")),
        width=width if width > 0 else 1.0,
        height=height if height > 0 else 1.0,
    )


def sanitize_work_target(target: Any) -> Optional[WorkTarget]:
    """
    清洗工作目标

    名称去空白；macOS 进程名为空时使用名称；Windows 进程名为空时从启动命令推导；
    丢弃空参数。没有任何标识字段(名称/Bundle ID/启动命令)的目标返回 None。

    Args:
        target: 原始工作目标

    Returns:
        清洗后的工作目标，或 None
    """
    data = _as_mapping(target)

    name = _clean_str(_lookup(data, "name"))
    mac_bundle_id = _clean_str(_lookup(data, "mac_bundle_id")) or None
    win_command = _clean_str(_lookup(data, "win_command")) or None

    if not (name or mac_bundle_id or win_command):
        logger.debug(f"丢弃缺少标识字段的工作目标: {data}")
        return None

    return WorkTarget(
        name=name,
        mac_bundle_id=mac_bundle_id,
        mac_process_name=_clean_str(_lookup(data, "mac_process_name")) or name or None,
        win_command=win_command,
        win_process_name=(
            _clean_str(_lookup(data, "win_process_name"))
            or extract_win_process_name(win_command)
        ),
        args=_sanitize_args(_lookup(data, "args")),
    )


def _sanitize_args(values: Any) -> list[str]:
    """去除参数首尾空白并丢弃空参数，保留重复项"""
    if values is None or isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        return []
    cleaned = (_clean_str(value) for value in values if value is not None)
    return [value for value in cleaned if value]


def _sanitize_match_strategy(value: Any) -> MatchStrategy:
    try:
        return MatchStrategy(value)
    except (ValueError, TypeError):
        return MatchStrategy.ANY


def _sanitize_list_mode(value: Any) -> ListMode:
    if value == ListMode.WHITELIST.value:
        return ListMode.WHITELIST
    return ListMode.BLACKLIST


def _sanitize_detection(data: Mapping[str, Any]) -> DetectionSettings:
    """清洗检测参数"""
    defaults = DEFAULT_SETTINGS.detection

    def value_of(field: str) -> Any:
        return _lookup(data, field, getattr(defaults, field))

    camera_device_id = _clean_str(value_of("camera_device_id")) or None

    return DetectionSettings(
        enable_auto_switch=bool(value_of("enable_auto_switch")),
        preview_enabled=bool(value_of("preview_enabled")),
        preview_visible=bool(value_of("preview_visible")),
        presence_threshold=_clamp(
            value_of("presence_threshold"),
            *PRESENCE_THRESHOLD_RANGE,
            default=defaults.presence_threshold,
        ),
        frames_before_trigger=_round_at_least(
            value_of("frames_before_trigger"),
            MIN_FRAMES_BEFORE_TRIGGER,
            defaults.frames_before_trigger,
        ),
        cooldown_seconds=_round_at_least(
            value_of("cooldown_seconds"),
            MIN_COOLDOWN_SECONDS,
            defaults.cooldown_seconds,
        ),
        sample_interval_ms=_round_at_least(
            value_of("sample_interval_ms"),
            MIN_SAMPLE_INTERVAL_MS,
            defaults.sample_interval_ms,
        ),
        face_recognition_threshold=_clamp(
            value_of("face_recognition_threshold"),
            *FACE_RECOGNITION_THRESHOLD_RANGE,
            default=defaults.face_recognition_threshold,
        ),
        motion_sensitivity=_clamp(
            value_of("motion_sensitivity"),
            *MOTION_SENSITIVITY_RANGE,
            default=defaults.motion_sensitivity,
        ),
        motion_region_enabled=bool(value_of("motion_region_enabled")),
        motion_region=sanitize_region(value_of("motion_region")),
        safe_faces=_sanitize_safe_faces(value_of("safe_faces")),
        camera_device_id=camera_device_id,
    )


def _sanitize_apps(data: Mapping[str, Any]) -> AppRules:
    """清洗应用规则"""
    defaults = DEFAULT_SETTINGS.apps

    raw_targets = _lookup(data, "work_targets", defaults.work_targets)
    if raw_targets is None or not isinstance(raw_targets, Iterable) or isinstance(raw_targets, (str, bytes)):
        raw_targets = []

    work_targets = []
    for raw in raw_targets:
        target = sanitize_work_target(raw)
        if target is not None:
            work_targets.append(target)

    return AppRules(
        game_blacklist=sanitize_list(_lookup(data, "game_blacklist", defaults.game_blacklist)),
        game_whitelist=sanitize_list(_lookup(data, "game_whitelist", defaults.game_whitelist)),
        work_targets=work_targets,
        match_strategy=_sanitize_match_strategy(_lookup(data, "match_strategy")),
        list_mode=_sanitize_list_mode(_lookup(data, "list_mode")),
    )


def sanitize_settings(raw: RawSettings = None) -> AppSettings:
    """
    清洗完整配置

    接受模型实例或原始字典(缺失的键使用默认值)，从不抛出异常。

    Args:
        raw: 原始配置

    Returns:
        AppSettings: 合法的不可变配置快照
    """
    data = _as_mapping(raw)
    return AppSettings(
        detection=_sanitize_detection(_as_mapping(_lookup(data, "detection"))),
        apps=_sanitize_apps(_as_mapping(_lookup(data, "apps"))),
    )


def merge_detection_settings(
    current: DetectionSettings,
    partial: Optional[Mapping[str, Any]] = None,
) -> DetectionSettings:
    """
    合并检测参数的部分更新

    Args:
        current: 当前检测参数
        partial: 部分更新，支持 camelCase 键

    Returns:
        合并并清洗后的检测参数
    """
    if not partial:
        return current

    merged = {**current.model_dump(), **_snake_keys(partial)}
    return sanitize_settings({"detection": merged, "apps": DEFAULT_SETTINGS.apps}).detection


def merge_app_settings(
    current: AppRules,
    partial: Optional[Mapping[str, Any]] = None,
) -> AppRules:
    """
    合并应用规则的部分更新

    Args:
        current: 当前应用规则
        partial: 部分更新，支持 camelCase 键

    Returns:
        合并并清洗后的应用规则
    """
    if not partial:
        return current

    merged = {**current.model_dump(), **_snake_keys(partial)}
    return sanitize_settings({"detection": DEFAULT_SETTINGS.detection, "apps": merged}).apps
