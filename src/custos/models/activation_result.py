"""
激活结果模型
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from src.core.exceptions import AllTargetsFailedError, UnsupportedPlatformError

if TYPE_CHECKING:
    from src.settings.models import WorkTarget


class ActivationErrorKind(str, Enum):
    """激活失败类型"""
    UNSUPPORTED_PLATFORM = "unsupported-platform"
    ALL_TARGETS_FAILED = "all-targets-failed"


@dataclass
class ActivationResult:
    """
    激活结果

    Attributes:
        success: 是否有目标激活成功
        target: 激活成功的目标
        error_kind: 失败类型
        attempted: 已尝试的目标名称(按顺序)
    """
    success: bool
    target: Optional[WorkTarget] = None
    error_kind: Optional[ActivationErrorKind] = None
    attempted: list[str] = field(default_factory=list)

    @classmethod
    def succeeded(cls, target: WorkTarget, attempted: list[str]) -> ActivationResult:
        """创建成功结果"""
        return cls(success=True, target=target, attempted=attempted)

    @classmethod
    def failed(
        cls,
        error_kind: ActivationErrorKind,
        attempted: list[str],
    ) -> ActivationResult:
        """创建失败结果"""
        return cls(success=False, error_kind=error_kind, attempted=attempted)

    def raise_for_error(self) -> None:
        """
        失败时抛出对应异常

        Raises:
            UnsupportedPlatformError: 平台不支持
            AllTargetsFailedError: 所有目标均激活失败
        """
        if self.success:
            return
        details = {"attempted": self.attempted}
        if self.error_kind == ActivationErrorKind.UNSUPPORTED_PLATFORM:
            raise UnsupportedPlatformError("当前平台不支持应用激活", details=details)
        raise AllTargetsFailedError("没有可激活的工作目标", details=details)
