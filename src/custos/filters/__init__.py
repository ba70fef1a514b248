"""
Custos 窗口规则过滤器

提供黑名单/白名单过滤器以及前台窗口分类器。
"""

from .base_filter import BaseRuleFilter, FilterResult, normalize_candidate
from .blacklist_filter import BlacklistFilter
from .whitelist_filter import WhitelistFilter
from .window_classifier import ActiveWindowClassifier, WindowCandidates, owner_name

__all__ = [
    "BaseRuleFilter",
    "FilterResult",
    "normalize_candidate",
    "BlacklistFilter",
    "WhitelistFilter",
    "ActiveWindowClassifier",
    "WindowCandidates",
    "owner_name",
]
