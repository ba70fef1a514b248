"""
白名单过滤器

检查前台窗口是否命中白名单。黑名单模式下白名单是例外，白名单模式下是唯一放行条件。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .base_filter import BaseRuleFilter

if TYPE_CHECKING:
    from src.settings.models import AppRules


class WhitelistFilter(BaseRuleFilter):
    """白名单过滤器"""

    def __init__(self, enabled: bool = True) -> None:
        super().__init__(name="whitelist", enabled=enabled)

    def _select_rules(self, rules: AppRules) -> Sequence[str]:
        return rules.game_whitelist
