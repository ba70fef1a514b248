"""
自动化状态模型

对外可观察的引擎状态，每个评估周期重新构建，不做增量修改。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .snapshots import ActiveAppSnapshot, PresenceSnapshot
from .trigger_decision import TriggerPhase


@dataclass
class AutomationState:
    """
    自动化状态

    Attributes:
        presence: 最新在场快照
        active_app: 最新前台应用快照
        last_switch_at: 上次成功切换时间
        cooldown_active: 是否处于冷却期
        errors: 当前的降级/错误信息
        phase: 触发状态机阶段
        visitor_streak: 连续访客帧数
    """
    presence: PresenceSnapshot
    active_app: Optional[ActiveAppSnapshot] = None
    last_switch_at: Optional[datetime] = None
    cooldown_active: bool = False
    errors: list[str] = field(default_factory=list)
    phase: TriggerPhase = TriggerPhase.IDLE
    visitor_streak: int = 0

    def to_dict(self) -> dict:
        """转换为可 JSON 序列化的字典"""
        presence = self.presence
        active_app = self.active_app
        return {
            "presence": {
                "has_visitor": presence.has_visitor,
                "confidence": presence.confidence,
                "recognized_safe": presence.recognized_safe,
                "movement_score": presence.movement_score,
                "matched_safe_ids": list(presence.matched_safe_ids),
                "last_updated": presence.timestamp.isoformat(),
            },
            "active_app": None if active_app is None else {
                "name": active_app.name,
                "title": active_app.title,
                "bundle_id": active_app.bundle_id,
                "process_path": active_app.process_path,
                "is_blacklisted": active_app.is_blacklisted,
                "is_whitelisted": active_app.is_whitelisted,
                "is_game_active": active_app.is_game_active,
                "matched_rule": active_app.matched_rule,
                "last_updated": active_app.last_updated.isoformat(),
            },
            "last_switch_at": self.last_switch_at.isoformat() if self.last_switch_at else None,
            "cooldown_active": self.cooldown_active,
            "errors": list(self.errors),
            "phase": self.phase.value,
            "visitor_streak": self.visitor_streak,
        }
