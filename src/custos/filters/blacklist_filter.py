"""
黑名单过滤器

检查前台窗口是否命中游戏黑名单。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .base_filter import BaseRuleFilter

if TYPE_CHECKING:
    from src.settings.models import AppRules


class BlacklistFilter(BaseRuleFilter):
    """
    黑名单过滤器

    黑名单模式下命中即视为游戏应用(除非同时命中白名单)。
    """

    def __init__(self, enabled: bool = True) -> None:
        super().__init__(name="blacklist", enabled=enabled)

    def _select_rules(self, rules: AppRules) -> Sequence[str]:
        return rules.game_blacklist
