"""
规则过滤器基类

定义黑名单/白名单过滤器的抽象接口和通用匹配行为。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from src.settings.models import AppRules


def normalize_candidate(value: Optional[str]) -> str:
    """小写并去除首尾空白，None 视为空字符串"""
    if value is None:
        return ""
    return value.lower().strip()


@dataclass
class FilterResult:
    """
    过滤器结果

    Attributes:
        matched: 是否命中规则
        filter_name: 过滤器名称
        matched_rule: 命中的规则(原始写法)
    """
    matched: bool
    filter_name: str
    matched_rule: Optional[str] = None

    @classmethod
    def no_match(cls, filter_name: str) -> FilterResult:
        """创建未命中结果"""
        return cls(matched=False, filter_name=filter_name)

    @classmethod
    def hit(cls, filter_name: str, matched_rule: str) -> FilterResult:
        """创建命中结果"""
        return cls(matched=True, filter_name=filter_name, matched_rule=matched_rule)


class BaseRuleFilter(ABC):
    """
    规则过滤器抽象基类

    规则按顺序检查，第一个被任一候选值(不区分大小写)包含的规则即为命中。
    子类只需决定从 AppRules 中取哪一份规则列表。
    """

    def __init__(self, name: str, enabled: bool = True) -> None:
        """
        初始化过滤器

        Args:
            name: 过滤器名称
            enabled: 是否启用
        """
        self._name = name
        self._enabled = enabled
        self._stats = {
            "total_checked": 0,
            "total_matched": 0,
        }

    @property
    def name(self) -> str:
        """过滤器名称"""
        return self._name

    @property
    def enabled(self) -> bool:
        """是否启用"""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """设置启用状态"""
        self._enabled = value

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return self._stats.copy()

    def check(self, candidates: Sequence[str], rules: AppRules) -> FilterResult:
        """
        检查候选值是否命中规则

        Args:
            candidates: 已规范化(小写、去空白)的候选值
            rules: 当前应用规则

        Returns:
            FilterResult: 过滤结果
        """
        if not self._enabled:
            return FilterResult.no_match(self._name)

        self._stats["total_checked"] += 1
        matched_rule = self.find_match(self._select_rules(rules), candidates)

        if matched_rule is None:
            return FilterResult.no_match(self._name)

        self._stats["total_matched"] += 1
        return FilterResult.hit(self._name, matched_rule)

    @staticmethod
    def find_match(rule_list: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
        """
        查找第一个命中的规则

        子串匹配而非相等比较，支持部分标识(如 "league" 命中 "league of legends")。

        Args:
            rule_list: 有序规则列表
            candidates: 已规范化的候选值

        Returns:
            命中的规则，未命中返回 None
        """
        for rule in rule_list:
            target = normalize_candidate(rule)
            if not target:
                continue
            if any(target in candidate for candidate in candidates):
                return rule
        return None

    @abstractmethod
    def _select_rules(self, rules: AppRules) -> Sequence[str]:
        """
        选择此过滤器使用的规则列表

        子类必须实现此方法
        """
        raise NotImplementedError

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_checked": 0,
            "total_matched": 0,
        }
