"""
内存配置存储

IConfigurationStore 的内存实现。持久化由宿主应用负责，这里只缓存已清洗的快照并通知监听器。
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional, Union

from src.core.interfaces import IConfigurationStore, SettingsListener
from src.core.logger import get_logger

from .models import AppSettings, SafeFaceProfile
from .sanitizer import (
    RawSettings,
    merge_app_settings,
    merge_detection_settings,
    normalize_safe_face,
    sanitize_settings,
)

logger = get_logger(__name__)


class InMemorySettingsStore(IConfigurationStore):
    """
    内存配置存储

    所有写入都会先清洗再缓存，监听器按注册顺序同步调用。

    Attributes:
        settings: 当前配置快照
    """

    def __init__(self, initial: RawSettings = None) -> None:
        """
        初始化配置存储

        Args:
            initial: 初始配置(模型或原始字典)，为 None 时使用默认配置
        """
        self._lock = threading.RLock()
        self._cache = sanitize_settings(initial)
        self._listeners: list[SettingsListener] = []
        self._stats = {
            "total_writes": 0,
            "notifications": 0,
            "listener_errors": 0,
        }

    @property
    def settings(self) -> AppSettings:
        """获取当前配置快照"""
        return self._cache

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return {
            **self._stats,
            "listener_count": len(self._listeners),
        }

    def get(self) -> AppSettings:
        """获取当前配置快照"""
        return self._cache

    def set(self, settings: RawSettings) -> None:
        """
        替换当前配置

        Args:
            settings: 新配置(模型或原始字典)
        """
        self._commit(sanitize_settings(settings))

    def update(self, partial: Mapping[str, Any]) -> AppSettings:
        """
        部分更新配置

        Args:
            partial: 形如 {"detection": {...}, "apps": {...}} 的部分更新

        Returns:
            合并后的配置快照
        """
        with self._lock:
            current = self._cache
            detection_patch = partial.get("detection")
            apps_patch = partial.get("apps")
            merged = sanitize_settings(AppSettings(
                detection=merge_detection_settings(current.detection, detection_patch),
                apps=merge_app_settings(current.apps, apps_patch),
            ))
            self._commit(merged)
            return merged

    def modify(
        self,
        transform: Callable[[AppSettings], Optional[RawSettings]],
    ) -> Optional[AppSettings]:
        """
        在锁内读取、变换并写回配置

        Args:
            transform: 接收当前快照，返回新配置；返回 None 表示不修改

        Returns:
            写入后的配置快照，未修改时为 None
        """
        with self._lock:
            updated = transform(self._cache)
            if updated is None:
                return None
            merged = sanitize_settings(updated)
            self._commit(merged)
            return merged

    def replace_safe_faces(
        self,
        profiles: Iterable[Union[SafeFaceProfile, Mapping[str, Any]]],
    ) -> AppSettings:
        """
        替换安全人脸列表

        Args:
            profiles: 新的安全人脸档案

        Returns:
            更新后的配置快照
        """
        faces = [normalize_safe_face(profile) for profile in profiles]
        return self.modify(lambda current: current.model_copy(update={
            "detection": current.detection.model_copy(update={"safe_faces": faces}),
        }))

    def on_change(self, listener: SettingsListener) -> Callable[[], None]:
        """
        注册配置变更监听器

        注册时会立即以当前配置调用一次监听器。

        Args:
            listener: 回调函数

        Returns:
            取消注册的函数
        """
        with self._lock:
            self._listeners.append(listener)
            current = self._cache

        listener(current)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, settings: AppSettings) -> None:
        """写入缓存并通知监听器"""
        with self._lock:
            self._cache = settings
            self._stats["total_writes"] += 1
            listeners = list(self._listeners)

        logger.debug(f"配置已更新，通知 {len(listeners)} 个监听器")
        for listener in listeners:
            self._stats["notifications"] += 1
            try:
                listener(settings)
            except Exception as e:
                self._stats["listener_errors"] += 1
                logger.error(f"配置监听器执行失败: {type(e).__name__}: {e}")

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_writes": 0,
            "notifications": 0,
            "listener_errors": 0,
        }
