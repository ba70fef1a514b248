"""
调度器接口定义

轮询定时器被抽象为可注入的调度器，使检测与分类逻辑保持同步且无需真实定时器即可测试。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class IScheduledTask(ABC):
    """已调度任务句柄"""

    @abstractmethod
    def cancel(self) -> None:
        """取消任务，已执行或已取消时为空操作"""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """是否已取消"""
        pass


class IScheduler(ABC):
    """
    调度器抽象接口
    """

    @abstractmethod
    def call_later(
        self,
        delay_seconds: float,
        callback: Callable[[], None],
    ) -> IScheduledTask:
        """
        延迟执行回调

        Args:
            delay_seconds: 延迟时间(秒)
            callback: 回调函数

        Returns:
            可取消的任务句柄
        """
        pass

    def shutdown(self) -> None:
        """释放调度器资源，默认无操作"""
        return None
