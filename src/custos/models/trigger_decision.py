"""
触发决策模型

定义触发状态机每个周期的输出 - 是否切换到工作应用以及原因。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DecisionType(str, Enum):
    """
    触发决策类型枚举

    按检查顺序排列，非 TRIGGERED 的值说明第一个未满足的条件
    """
    TRIGGERED = "triggered"                        # 所有条件满足，发出切换意图
    DISABLED = "disabled"                          # 未启用自动切换
    COOLDOWN = "cooldown"                          # 处于冷却期
    NO_VISITOR = "no_visitor"                      # 当前无访客
    INSUFFICIENT_STREAK = "insufficient_streak"    # 连续访客帧数不足
    NOT_GAME = "not_game"                          # 前台不是游戏应用


class TriggerPhase(str, Enum):
    """
    触发状态机的可观察阶段

    TRIGGERING 为瞬态，发出意图后回到 COOLING(成功) 或 ARMED(失败)
    """
    IDLE = "idle"
    ARMED = "armed"
    COOLING = "cooling"


@dataclass
class TriggerDecision:
    """
    触发决策结果

    Attributes:
        decision_type: 决策类型
        visitor_streak: 决策时的连续访客帧数
        cooldown_active: 决策时是否处于冷却期
        reason: 决策原因说明
        created_at: 决策时间
    """
    decision_type: DecisionType
    visitor_streak: int = 0
    cooldown_active: bool = False
    reason: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def should_trigger(self) -> bool:
        """是否应发出切换意图"""
        return self.decision_type == DecisionType.TRIGGERED

    @classmethod
    def create_triggered(
        cls,
        visitor_streak: int,
        created_at: Optional[datetime] = None,
    ) -> TriggerDecision:
        """创建触发决策"""
        return cls(
            decision_type=DecisionType.TRIGGERED,
            visitor_streak=visitor_streak,
            reason=f"连续 {visitor_streak} 帧检测到访客且前台为游戏应用",
            created_at=created_at or datetime.now(),
        )

    @classmethod
    def create_blocked(
        cls,
        decision_type: DecisionType,
        visitor_streak: int,
        cooldown_active: bool,
        reason: str,
        created_at: Optional[datetime] = None,
    ) -> TriggerDecision:
        """创建未触发决策"""
        return cls(
            decision_type=decision_type,
            visitor_streak=visitor_streak,
            cooldown_active=cooldown_active,
            reason=reason,
            created_at=created_at or datetime.now(),
        )
