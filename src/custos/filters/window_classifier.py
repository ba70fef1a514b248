"""
前台窗口分类器

根据匹配策略从窗口观察结果中抽取候选值，结合黑名单/白名单过滤器
判定前台应用是否为游戏应用。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from src.core.logger import get_logger
from src.settings.models import ListMode, MatchStrategy

from ..models import ActiveAppSnapshot
from .base_filter import normalize_candidate
from .blacklist_filter import BlacklistFilter
from .whitelist_filter import WhitelistFilter

if TYPE_CHECKING:
    from src.custos.models import RawWindowObservation
    from src.settings.models import AppRules

logger = get_logger(__name__)


_PATH_SEPARATORS = re.compile(r"[\\/]")


def owner_name(window: RawWindowObservation) -> Optional[str]:
    """应用名称，缺失时取进程路径的文件名"""
    if window.name and window.name.strip():
        return window.name
    if window.process_path:
        basename = _PATH_SEPARATORS.split(window.process_path.rstrip("\\/"))[-1]
        return basename or None
    return None


def _collect(*values: Optional[str]) -> list[str]:
    """规范化并丢弃空值"""
    result = []
    for value in values:
        normalized = normalize_candidate(value)
        if normalized:
            result.append(normalized)
    return result


@dataclass
class WindowCandidates:
    """
    按字段分组的匹配候选值

    Attributes:
        name: 应用名称候选
        title: 窗口标题候选
        bundle: Bundle ID 候选
        process: 进程路径与名称候选
    """
    name: list[str] = field(default_factory=list)
    title: list[str] = field(default_factory=list)
    bundle: list[str] = field(default_factory=list)
    process: list[str] = field(default_factory=list)

    @classmethod
    def from_observation(cls, window: RawWindowObservation) -> WindowCandidates:
        """从原始窗口观察结果抽取候选值"""
        name = owner_name(window)
        return cls(
            name=_collect(name),
            title=_collect(window.title),
            bundle=_collect(window.bundle_id),
            process=_collect(window.process_path, name),
        )

    def select(self, strategy: MatchStrategy) -> list[str]:
        """
        按匹配策略选择候选值

        ANY 为标题、进程、Bundle ID 的并集，名称只通过进程候选参与。
        """
        if strategy == MatchStrategy.TITLE:
            return list(self.title)
        if strategy == MatchStrategy.PROCESS:
            return list(self.process)
        if strategy == MatchStrategy.BUNDLE:
            return list(self.bundle)
        return [*self.title, *self.process, *self.bundle]


class ActiveWindowClassifier:
    """
    前台窗口分类器

    无内部状态(除统计外)，每次轮询对最新窗口重新计算。
    """

    def __init__(
        self,
        blacklist_filter: Optional[BlacklistFilter] = None,
        whitelist_filter: Optional[WhitelistFilter] = None,
    ) -> None:
        """
        初始化分类器

        Args:
            blacklist_filter: 自定义黑名单过滤器
            whitelist_filter: 自定义白名单过滤器
        """
        self._blacklist = blacklist_filter or BlacklistFilter()
        self._whitelist = whitelist_filter or WhitelistFilter()
        self._stats = {
            "total_classified": 0,
            "neutral_count": 0,
            "game_active_count": 0,
        }

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return {
            **self._stats,
            "blacklist": self._blacklist.stats,
            "whitelist": self._whitelist.stats,
        }

    def classify(
        self,
        window: Optional[RawWindowObservation],
        rules: AppRules,
        now: Optional[datetime] = None,
    ) -> ActiveAppSnapshot:
        """
        分类前台窗口

        Args:
            window: 原始窗口观察结果，None 表示无法获取
            rules: 应用规则
            now: 快照时间

        Returns:
            ActiveAppSnapshot: 前台应用快照
        """
        timestamp = now or datetime.now()
        self._stats["total_classified"] += 1

        if window is None:
            self._stats["neutral_count"] += 1
            return ActiveAppSnapshot.neutral(timestamp)

        candidates = WindowCandidates.from_observation(window).select(rules.match_strategy)

        blacklist_result = self._blacklist.check(candidates, rules)
        whitelist_result = self._whitelist.check(candidates, rules)
        is_whitelisted = whitelist_result.matched

        if rules.list_mode == ListMode.WHITELIST:
            is_blacklisted = not is_whitelisted
        else:
            is_blacklisted = blacklist_result.matched
        is_game_active = is_blacklisted and not is_whitelisted

        matched_rule = blacklist_result.matched_rule or whitelist_result.matched_rule

        if is_game_active:
            self._stats["game_active_count"] += 1

        logger.debug(
            f"窗口分类: name={owner_name(window)}, mode={rules.list_mode.value}, "
            f"strategy={rules.match_strategy.value}, game={is_game_active}, rule={matched_rule}"
        )

        return ActiveAppSnapshot(
            name=owner_name(window),
            title=window.title,
            bundle_id=window.bundle_id,
            process_path=window.process_path,
            is_blacklisted=is_blacklisted,
            is_whitelisted=is_whitelisted,
            is_game_active=is_game_active,
            matched_rule=matched_rule,
            last_updated=timestamp,
        )

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_classified": 0,
            "neutral_count": 0,
            "game_active_count": 0,
        }
        self._blacklist.reset_stats()
        self._whitelist.reset_stats()
