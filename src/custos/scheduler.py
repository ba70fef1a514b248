"""
调度器实现

ManualScheduler 由调用方推进时间，用于测试和场景回放；
ThreadingScheduler 基于 threading.Timer，用于真实运行。
"""

from __future__ import annotations

import heapq
import itertools
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from src.core.interfaces import IScheduledTask, IScheduler
from src.core.logger import get_logger

logger = get_logger(__name__)


# 单次调度允许的最长延迟(秒)
MAX_DELAY_SECONDS = threading.TIMEOUT_MAX


def clamp_delay(delay_seconds: float) -> float:
    """把调度延迟限制在 0 到 MAX_DELAY_SECONDS 之间"""
    return min(max(0.0, delay_seconds), MAX_DELAY_SECONDS)


class _ManualTask(IScheduledTask):
    """手动调度任务"""

    def __init__(self, due: datetime, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler(IScheduler):
    """
    手动调度器

    持有虚拟时钟，advance() 时按到期顺序执行任务。
    回调中新调度的任务若在推进窗口内到期也会被执行。

    Example:
        >>> scheduler = ManualScheduler()
        >>> engine = AutomationEngine(store, backend, scheduler=scheduler, clock=scheduler.now)
        >>> scheduler.advance(2.0)
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        """
        初始化手动调度器

        Args:
            start: 虚拟时钟起始时间
        """
        self._now = start or datetime(2024, 1, 1, 9, 0, 0)
        self._queue: list[tuple[datetime, int, _ManualTask]] = []
        self._counter = itertools.count()

    def now(self) -> datetime:
        """当前虚拟时间，可直接作为时钟函数注入"""
        return self._now

    @property
    def pending_count(self) -> int:
        """未取消的待执行任务数"""
        return sum(1 for _, _, task in self._queue if not task.cancelled)

    def call_later(
        self,
        delay_seconds: float,
        callback: Callable[[], None],
    ) -> IScheduledTask:
        task = _ManualTask(self._now + timedelta(seconds=clamp_delay(delay_seconds)), callback)
        heapq.heappush(self._queue, (task.due, next(self._counter), task))
        return task

    def advance(self, seconds: float) -> int:
        """
        推进虚拟时钟并执行到期任务

        Args:
            seconds: 推进的秒数

        Returns:
            执行的任务数
        """
        target = self._now + timedelta(seconds=max(0.0, seconds))
        executed = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = max(self._now, due)
            task.cancel()
            task.callback()
            executed += 1

        self._now = target
        return executed

    def shutdown(self) -> None:
        """取消所有待执行任务"""
        for _, _, task in self._queue:
            task.cancel()
        self._queue.clear()


class _TimerTask(IScheduledTask):
    """threading.Timer 任务句柄"""

    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()


class ThreadingScheduler(IScheduler):
    """
    基于 threading.Timer 的调度器

    回调在定时器线程中执行，回调中的异常会被记录而不会终止调度器。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: set[_TimerTask] = set()
        self._closed = False

    def call_later(
        self,
        delay_seconds: float,
        callback: Callable[[], None],
    ) -> IScheduledTask:
        holder: list[_TimerTask] = []

        def run() -> None:
            task = holder[0]
            with self._lock:
                self._tasks.discard(task)
            if task.cancelled:
                return
            try:
                callback()
            except Exception as e:
                logger.error(f"调度任务执行失败: {type(e).__name__}: {e}")

        timer = threading.Timer(clamp_delay(delay_seconds), run)
        timer.daemon = True
        task = _TimerTask(timer)
        holder.append(task)

        with self._lock:
            if self._closed:
                task.cancel()
                return task
            self._tasks.add(task)
        timer.start()
        return task

    def shutdown(self) -> None:
        """取消所有未执行的定时器"""
        with self._lock:
            self._closed = True
            tasks = list(self._tasks)
            self._tasks.clear()
        for task in tasks:
            task.cancel()
