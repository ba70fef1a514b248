"""
配置存储接口定义
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from src.settings.models import AppSettings


SettingsListener = Callable[["AppSettings"], None]


class IConfigurationStore(ABC):
    """
    配置存储抽象接口

    持久化机制由宿主应用决定，引擎只通过此接口读取不可变的配置快照。
    """

    @abstractmethod
    def get(self) -> AppSettings:
        """
        获取当前配置快照

        Returns:
            已清洗的配置快照
        """
        pass

    @abstractmethod
    def set(self, settings: AppSettings) -> None:
        """
        替换当前配置

        Args:
            settings: 新配置，实现方负责清洗
        """
        pass

    @abstractmethod
    def on_change(self, listener: SettingsListener) -> Callable[[], None]:
        """
        注册配置变更监听器

        Args:
            listener: 回调函数，参数为新的配置快照

        Returns:
            取消注册的函数
        """
        pass

    @abstractmethod
    def modify(
        self,
        transform: Callable[[AppSettings], Optional[AppSettings]],
    ) -> Optional[AppSettings]:
        """
        原子地读取、变换并写回配置

        读取与写入之间不会插入其他写入。

        Args:
            transform: 接收当前快照，返回新配置；返回 None 表示不修改

        Returns:
            写入后的配置快照，未修改时为 None
        """
        pass
