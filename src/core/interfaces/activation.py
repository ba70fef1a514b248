"""
应用激活接口定义

定义把工作应用切换到前台的抽象接口。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.settings.models import WorkTarget


class IActivationBackend(ABC):
    """
    应用激活后端抽象接口

    所有平台实现（macOS AppleScript、Windows PowerShell 等）都应实现此接口。
    """

    @property
    def name(self) -> str:
        """后端名称"""
        return type(self).__name__

    @abstractmethod
    def activate(self, target: WorkTarget) -> None:
        """
        激活并前置指定工作应用

        正常返回即表示激活成功。

        Args:
            target: 工作目标

        Raises:
            ActivationFailedError: 目标不可达时抛出
            UnsupportedPlatformError: 当前平台不支持激活时抛出
        """
        pass
