"""
轮询监视器

两个独立的周期性生产者:
    - WindowMonitor: 固定间隔读取前台窗口
    - PresenceMonitor: 按 sample_interval_ms 采集视频帧并执行检测

每次轮询完成后才调度下一次，stop() 可随时调用且可重复调用。
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

from src.core.exceptions import SensorUnavailableError, UnsupportedPlatformError
from src.core.logger import get_logger

from .models import RawDetectionFrame, RawWindowObservation
from .scheduler import MAX_DELAY_SECONDS

if TYPE_CHECKING:
    from src.core.interfaces import IFrameDetector, IScheduledTask, IScheduler, IWindowObserver

logger = get_logger(__name__)


# 默认窗口轮询间隔(毫秒)
DEFAULT_WINDOW_POLL_INTERVAL_MS = 2000

ErrorSink = Callable[[Exception], None]


def _to_interval_seconds(interval_ms: int) -> float:
    """毫秒间隔转换为秒，限制在 1ms 到调度器允许的最长延迟之间"""
    return min(max(1, int(interval_ms)) / 1000.0, MAX_DELAY_SECONDS)


class PollingMonitor(ABC):
    """
    轮询监视器基类

    Attributes:
        interval_seconds: 轮询间隔(秒)
        is_running: 是否正在运行
        is_suspended: 是否因传感器故障暂停
    """

    def __init__(self, scheduler: IScheduler, interval_ms: int, name: str) -> None:
        """
        初始化监视器

        Args:
            scheduler: 调度器
            interval_ms: 轮询间隔(毫秒)
            name: 监视器名称(用于日志)
        """
        self._scheduler = scheduler
        self._interval_seconds = _to_interval_seconds(interval_ms)
        self._name = name
        self._lock = threading.RLock()
        self._running = False
        self._suspended = False
        self._pending: Optional[IScheduledTask] = None
        self._stats = {
            "total_ticks": 0,
            "failed_ticks": 0,
        }

    @property
    def interval_seconds(self) -> float:
        """轮询间隔(秒)"""
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        """是否正在运行"""
        return self._running

    @property
    def is_suspended(self) -> bool:
        """是否已暂停"""
        return self._suspended

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return {
            **self._stats,
            "running": self._running,
            "suspended": self._suspended,
        }

    def start(self) -> None:
        """启动轮询，立即执行第一次"""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._suspended = False
            self._schedule(0.0)
        logger.info(f"{self._name} 已启动，间隔 {self._interval_seconds:.3f}s")

    def stop(self) -> None:
        """停止轮询并取消待执行的任务"""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._cancel_pending()
        logger.info(f"{self._name} 已停止")

    def reconfigure(self, interval_ms: int) -> None:
        """
        更新轮询间隔，并恢复因故障暂停的轮询

        Args:
            interval_ms: 新的轮询间隔(毫秒)
        """
        with self._lock:
            interval_seconds = _to_interval_seconds(interval_ms)
            changed = interval_seconds != self._interval_seconds
            self._interval_seconds = interval_seconds

            if not self._running:
                return

            if self._suspended:
                logger.info(f"{self._name} 配置已更新，恢复轮询")
                self._suspended = False
                self._cancel_pending()
                self._schedule(0.0)
            elif changed:
                self._cancel_pending()
                self._schedule(self._interval_seconds)

    def suspend(self) -> None:
        """暂停轮询，直到下一次 reconfigure()"""
        with self._lock:
            self._suspended = True
            self._cancel_pending()

    def tick(self) -> None:
        """执行一次轮询并调度下一次"""
        with self._lock:
            self._pending = None
            if not self._running or self._suspended:
                return
            self._stats["total_ticks"] += 1

            try:
                self._poll()
            except Exception as e:
                self._stats["failed_ticks"] += 1
                logger.error(f"{self._name} 轮询失败: {type(e).__name__}: {e}")

            if self._running and not self._suspended:
                self._schedule(self._interval_seconds)

    def _schedule(self, delay_seconds: float) -> None:
        self._pending = self._scheduler.call_later(delay_seconds, self.tick)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    @abstractmethod
    def _poll(self) -> None:
        """
        执行一次轮询

        子类必须实现此方法
        """
        raise NotImplementedError

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_ticks": 0,
            "failed_ticks": 0,
        }


class WindowMonitor(PollingMonitor):
    """
    前台窗口监视器

    观察器抛出 UnsupportedPlatformError 时永久停止；其他异常视为本次无窗口信息。
    """

    def __init__(
        self,
        observer: IWindowObserver,
        on_window: Callable[[Optional[RawWindowObservation]], Any],
        scheduler: IScheduler,
        interval_ms: int = DEFAULT_WINDOW_POLL_INTERVAL_MS,
        on_error: Optional[ErrorSink] = None,
    ) -> None:
        """
        初始化窗口监视器

        Args:
            observer: 前台窗口观察器
            on_window: 窗口观察结果回调
            scheduler: 调度器
            interval_ms: 轮询间隔(毫秒)
            on_error: 平台不支持时的错误回调
        """
        super().__init__(scheduler, interval_ms, name="窗口监视器")
        self._observer = observer
        self._on_window = on_window
        self._on_error = on_error
        self._unsupported = False

    @property
    def is_unsupported(self) -> bool:
        """当前平台是否不支持窗口检测"""
        return self._unsupported

    def start(self) -> None:
        """启动轮询，平台不支持时为空操作"""
        if self._unsupported:
            return
        super().start()

    def _poll(self) -> None:
        try:
            observation = self._observer.poll()
        except UnsupportedPlatformError as e:
            logger.warning(f"当前平台不支持前台窗口检测，停止轮询: {e}")
            self._stats["failed_ticks"] += 1
            self._unsupported = True
            self._running = False
            if self._on_error is not None:
                self._on_error(e)
            self._on_window(None)
            return
        except Exception as e:
            logger.warning(f"读取前台窗口失败: {type(e).__name__}: {e}")
            self._stats["failed_ticks"] += 1
            observation = None

        self._on_window(observation)


class PresenceMonitor(PollingMonitor):
    """
    在场检测监视器

    从 frame_source 取帧并交给检测器；帧源暂时没有画面(返回 None)时跳过本次。
    检测器不可用时上报错误并暂停，直到下一次配置变更。
    """

    def __init__(
        self,
        detector: IFrameDetector,
        frame_source: Callable[[], Any],
        on_presence: Callable[[RawDetectionFrame], Any],
        scheduler: IScheduler,
        interval_ms: int,
        on_error: Optional[ErrorSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        初始化在场检测监视器

        Args:
            detector: 帧检测器
            frame_source: 视频帧来源
            on_presence: 原始检测帧回调
            scheduler: 调度器
            interval_ms: 采样间隔(毫秒)
            on_error: 传感器不可用时的错误回调
            clock: 时钟函数
        """
        super().__init__(scheduler, interval_ms, name="在场检测监视器")
        self._detector = detector
        self._frame_source = frame_source
        self._on_presence = on_presence
        self._on_error = on_error
        self._clock = clock or datetime.now

    def _poll(self) -> None:
        try:
            video_frame = self._frame_source()
            if video_frame is None:
                return
            detection = self._detector.detect(video_frame)
        except SensorUnavailableError as e:
            logger.warning(f"摄像头或检测器不可用，暂停检测: {e}")
            self._stats["failed_ticks"] += 1
            self.suspend()
            if self._on_error is not None:
                self._on_error(e)
            return

        frame = RawDetectionFrame.from_detection(
            detection,
            image=video_frame,
            timestamp=self._clock(),
        )
        self._on_presence(frame)
