"""
触发管理器

维护连续访客帧计数和冷却时间，根据最新的在场快照与前台应用快照
决定是否切换到工作应用。
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from src.core.logger import get_logger

from .models import DecisionType, TriggerDecision, TriggerPhase

if TYPE_CHECKING:
    from src.settings.models import AppSettings, DetectionSettings

    from .activation_coordinator import TargetActivationCoordinator
    from .models import ActivationResult, ActiveAppSnapshot, PresenceSnapshot

logger = get_logger(__name__)


class TriggerManager:
    """
    触发管理器

    连续访客帧计数和上次切换时间是唯一的可变共享状态，
    所有修改都在同一把锁内完成。

    触发条件(每次评估都独立判断):
        - 已启用自动切换
        - 不在冷却期
        - 连续访客帧数 >= frames_before_trigger
        - 前台为游戏应用

    Attributes:
        visitor_streak: 连续访客帧数
        last_switch_at: 上次成功切换时间
    """

    def __init__(
        self,
        coordinator: TargetActivationCoordinator,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        初始化触发管理器

        Args:
            coordinator: 目标激活协调器
            clock: 时钟函数，默认 datetime.now
        """
        self._coordinator = coordinator
        self._clock = clock or datetime.now
        self._lock = threading.RLock()
        self._visitor_streak = 0
        self._last_switch_at: Optional[datetime] = None
        self._stats = {
            "total_decisions": 0,
            "triggered_count": 0,
            "failed_count": 0,
            "cooldown_blocked": 0,
            "forced_count": 0,
        }

    @property
    def visitor_streak(self) -> int:
        """连续访客帧数"""
        return self._visitor_streak

    @property
    def last_switch_at(self) -> Optional[datetime]:
        """上次成功切换时间"""
        return self._last_switch_at

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return {
            **self._stats,
            "visitor_streak": self._visitor_streak,
        }

    def record_presence(self, presence: PresenceSnapshot) -> int:
        """
        用新的在场快照更新连续访客帧数

        Args:
            presence: 在场快照

        Returns:
            更新后的连续访客帧数
        """
        with self._lock:
            if presence.has_visitor:
                self._visitor_streak += 1
            else:
                self._visitor_streak = 0
            return self._visitor_streak

    def is_cooldown_active(
        self,
        settings: DetectionSettings,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        检查是否处于冷却期

        Args:
            settings: 检测参数
            now: 当前时间

        Returns:
            上次切换距今不足 cooldown_seconds 时为 True
        """
        last = self._last_switch_at
        if last is None:
            return False
        current = now or self._clock()
        return (current - last).total_seconds() < settings.cooldown_seconds

    def phase(
        self,
        settings: DetectionSettings,
        now: Optional[datetime] = None,
    ) -> TriggerPhase:
        """
        获取当前可观察阶段

        Returns:
            冷却期内为 COOLING，有连续访客帧为 ARMED，否则为 IDLE
        """
        if self.is_cooldown_active(settings, now):
            return TriggerPhase.COOLING
        if self._visitor_streak > 0:
            return TriggerPhase.ARMED
        return TriggerPhase.IDLE

    def evaluate(
        self,
        active_app: Optional[ActiveAppSnapshot],
        settings: DetectionSettings,
        now: Optional[datetime] = None,
    ) -> TriggerDecision:
        """
        评估触发条件(不修改状态)

        Args:
            active_app: 最新前台应用快照
            settings: 检测参数
            now: 当前时间

        Returns:
            TriggerDecision: 触发决策
        """
        current = now or self._clock()
        streak = self._visitor_streak
        cooldown_active = self.is_cooldown_active(settings, current)

        if not settings.enable_auto_switch:
            return TriggerDecision.create_blocked(
                DecisionType.DISABLED, streak, cooldown_active,
                "未启用自动切换", current,
            )

        if cooldown_active:
            return TriggerDecision.create_blocked(
                DecisionType.COOLDOWN, streak, cooldown_active,
                f"冷却中 (冷却时间 {settings.cooldown_seconds} 秒)", current,
            )

        if streak == 0:
            return TriggerDecision.create_blocked(
                DecisionType.NO_VISITOR, streak, cooldown_active,
                "当前无访客", current,
            )

        if streak < settings.frames_before_trigger:
            return TriggerDecision.create_blocked(
                DecisionType.INSUFFICIENT_STREAK, streak, cooldown_active,
                f"连续访客帧数不足 ({streak}/{settings.frames_before_trigger})", current,
            )

        if active_app is None or not active_app.is_game_active:
            return TriggerDecision.create_blocked(
                DecisionType.NOT_GAME, streak, cooldown_active,
                "前台不是游戏应用", current,
            )

        return TriggerDecision.create_triggered(streak, current)

    def maybe_trigger(
        self,
        active_app: Optional[ActiveAppSnapshot],
        settings: AppSettings,
        now: Optional[datetime] = None,
    ) -> tuple[TriggerDecision, Optional[ActivationResult]]:
        """
        评估触发条件，满足时激活工作目标

        成功时记录切换时间(开始冷却)，连续访客帧数保持不变；
        全部失败时不记录切换时间，下一次满足条件时会重试。

        Args:
            active_app: 最新前台应用快照
            settings: 完整配置快照
            now: 当前时间

        Returns:
            (决策, 激活结果)，未触发时激活结果为 None
        """
        with self._lock:
            current = now or self._clock()
            decision = self.evaluate(active_app, settings.detection, current)
            self._stats["total_decisions"] += 1

            if decision.decision_type == DecisionType.COOLDOWN:
                self._stats["cooldown_blocked"] += 1

            if not decision.should_trigger:
                logger.debug(f"未触发切换: {decision.reason}")
                return decision, None

            logger.info(f"触发自动切换: {decision.reason}")
            result = self._activate(settings, current)
            if result.success:
                self._stats["triggered_count"] += 1
            return decision, result

    def force_switch(
        self,
        settings: AppSettings,
        now: Optional[datetime] = None,
    ) -> ActivationResult:
        """
        手动切换，跳过连续帧与冷却检查

        成功时同样记录切换时间，后续自动触发将进入冷却。

        Args:
            settings: 完整配置快照
            now: 当前时间

        Returns:
            ActivationResult: 激活结果
        """
        with self._lock:
            current = now or self._clock()
            self._stats["forced_count"] += 1
            logger.info("手动切换到工作应用")
            return self._activate(settings, current)

    def _activate(self, settings: AppSettings, now: datetime) -> ActivationResult:
        """激活工作目标并更新切换时间"""
        result = self._coordinator.activate_first_available(settings.apps.work_targets)
        if result.success:
            self._last_switch_at = now
        else:
            self._stats["failed_count"] += 1
            logger.warning(
                f"切换失败 ({result.error_kind.value if result.error_kind else 'unknown'}), "
                f"未开始冷却"
            )
        return result

    def reset(self) -> None:
        """清除连续访客帧数和切换时间"""
        with self._lock:
            self._visitor_streak = 0
            self._last_switch_at = None

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_decisions": 0,
            "triggered_count": 0,
            "failed_count": 0,
            "cooldown_blocked": 0,
            "forced_count": 0,
        }
