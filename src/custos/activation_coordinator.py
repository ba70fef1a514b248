"""
目标激活协调器

按顺序尝试激活工作目标，第一个成功即停止。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from src.core.exceptions import ActivationFailedError, UnsupportedPlatformError
from src.core.logger import get_logger

from .models import ActivationErrorKind, ActivationResult

if TYPE_CHECKING:
    from src.core.interfaces import IActivationBackend
    from src.settings.models import WorkTarget

logger = get_logger(__name__)


class TargetActivationCoordinator:
    """
    目标激活协调器

    单个目标失败只记录日志；平台不支持时立即终止，继续尝试没有意义。

    Attributes:
        backend: 应用激活后端
    """

    def __init__(self, backend: IActivationBackend) -> None:
        """
        初始化协调器

        Args:
            backend: 应用激活后端
        """
        self._backend = backend
        self._stats = {
            "total_requests": 0,
            "succeeded": 0,
            "unsupported": 0,
            "all_failed": 0,
            "target_failures": 0,
        }

    @property
    def backend(self) -> IActivationBackend:
        """获取激活后端"""
        return self._backend

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return self._stats.copy()

    def activate_first_available(self, targets: Sequence[WorkTarget]) -> ActivationResult:
        """
        激活第一个可用的工作目标

        Args:
            targets: 有序工作目标列表

        Returns:
            ActivationResult: 激活结果
        """
        self._stats["total_requests"] += 1
        attempted: list[str] = []

        for target in targets:
            attempted.append(target.display_name)
            try:
                self._backend.activate(target)
            except UnsupportedPlatformError as e:
                self._stats["unsupported"] += 1
                logger.warning(f"激活后端 {self._backend.name} 不支持当前平台: {e}")
                return ActivationResult.failed(
                    ActivationErrorKind.UNSUPPORTED_PLATFORM,
                    attempted,
                )
            except ActivationFailedError as e:
                self._stats["target_failures"] += 1
                logger.warning(f"激活 {target.display_name} 失败: {e}")
                continue
            except Exception as e:
                self._stats["target_failures"] += 1
                logger.warning(
                    f"激活 {target.display_name} 时出现意外错误: {type(e).__name__}: {e}"
                )
                continue

            self._stats["succeeded"] += 1
            logger.info(f"已切换到工作应用: {target.display_name}")
            return ActivationResult.succeeded(target, attempted)

        self._stats["all_failed"] += 1
        logger.error(f"没有可激活的工作目标, 已尝试: {attempted}")
        return ActivationResult.failed(ActivationErrorKind.ALL_TARGETS_FAILED, attempted)

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_requests": 0,
            "succeeded": 0,
            "unsupported": 0,
            "all_failed": 0,
            "target_failures": 0,
        }
