"""
TriggerManager 单元测试
"""

from datetime import timedelta

import pytest

from src.custos import (
    ActiveAppSnapshot,
    DecisionType,
    PresenceSnapshot,
    TargetActivationCoordinator,
    TriggerManager,
    TriggerPhase,
)


VISITOR = PresenceSnapshot(has_visitor=True, confidence=0.9)
NO_VISITOR = PresenceSnapshot(has_visitor=False)
GAME = ActiveAppSnapshot(name="League", is_blacklisted=True, is_game_active=True)
WORK = ActiveAppSnapshot(name="Code")


@pytest.fixture
def settings(make_settings):
    """启用自动切换、2 帧触发、15 秒冷却"""
    return make_settings(
        detection={"enableAutoSwitch": True, "framesBeforeTrigger": 2, "cooldownSeconds": 15},
        apps={"workTargets": [{"name": "Code"}]},
    )


@pytest.fixture
def backend(make_backend):
    return make_backend()


@pytest.fixture
def manager(backend, clock):
    return TriggerManager(TargetActivationCoordinator(backend), clock=clock)


class TestTriggerManager:
    """触发管理器测试"""

    def test_initial_state(self, manager, settings):
        """测试初始状态"""
        assert manager.visitor_streak == 0
        assert manager.last_switch_at is None
        assert manager.is_cooldown_active(settings.detection) is False
        assert manager.phase(settings.detection) == TriggerPhase.IDLE

    def test_streak_increments_and_resets(self, manager, settings):
        """测试连续访客帧计数"""
        assert manager.record_presence(VISITOR) == 1
        assert manager.record_presence(VISITOR) == 2
        assert manager.phase(settings.detection) == TriggerPhase.ARMED
        assert manager.record_presence(NO_VISITOR) == 0

    def test_triggers_when_all_conditions_hold(self, manager, settings, backend, clock):
        """测试所有条件满足时触发"""
        manager.record_presence(VISITOR)
        decision, result = manager.maybe_trigger(GAME, settings)
        assert decision.decision_type == DecisionType.INSUFFICIENT_STREAK
        assert result is None

        manager.record_presence(VISITOR)
        decision, result = manager.maybe_trigger(GAME, settings)

        assert decision.should_trigger is True
        assert result.success is True
        assert backend.attempts == ["Code"]
        assert manager.last_switch_at == clock()
        assert manager.visitor_streak == 2
        assert manager.phase(settings.detection) == TriggerPhase.COOLING

    def test_fires_once_while_conditions_persist(self, manager, settings, backend, clock):
        """测试条件持续满足时只触发一次"""
        for _ in range(10):
            manager.record_presence(VISITOR)
            manager.maybe_trigger(GAME, settings)
            clock.advance(milliseconds=100)

        assert backend.attempts == ["Code"]

    def test_cooldown_boundary(self, manager, settings, backend, clock):
        """测试冷却边界: 14999ms 不触发，15001ms 可再次触发"""
        manager.record_presence(VISITOR)
        manager.record_presence(VISITOR)
        manager.maybe_trigger(GAME, settings)
        switched_at = clock()

        clock.advance(milliseconds=14999)
        decision, result = manager.maybe_trigger(GAME, settings)
        assert decision.decision_type == DecisionType.COOLDOWN
        assert decision.cooldown_active is True
        assert result is None

        clock.advance(milliseconds=2)
        decision, result = manager.maybe_trigger(GAME, settings)
        assert decision.should_trigger is True
        assert result.success is True
        assert manager.last_switch_at == switched_at + timedelta(milliseconds=15001)
        assert backend.attempts == ["Code", "Code"]

    @pytest.mark.parametrize("presence_count, app, enable, expected", [
        (2, GAME, False, DecisionType.DISABLED),
        (0, GAME, True, DecisionType.NO_VISITOR),
        (1, GAME, True, DecisionType.INSUFFICIENT_STREAK),
        (2, WORK, True, DecisionType.NOT_GAME),
        (2, None, True, DecisionType.NOT_GAME),
        (3, GAME, True, DecisionType.TRIGGERED),
    ])
    def test_evaluate_reports_first_failed_condition(
        self, manager, make_settings, presence_count, app, enable, expected,
    ):
        """测试评估结果说明第一个未满足的条件"""
        settings = make_settings(detection={"enableAutoSwitch": enable, "framesBeforeTrigger": 2})
        for _ in range(presence_count):
            manager.record_presence(VISITOR)

        decision = manager.evaluate(app, settings.detection)

        assert decision.decision_type == expected
        assert decision.visitor_streak == presence_count

    def test_evaluate_does_not_mutate(self, manager, settings):
        """测试 evaluate 不修改状态"""
        manager.record_presence(VISITOR)
        manager.record_presence(VISITOR)

        manager.evaluate(GAME, settings.detection)

        assert manager.last_switch_at is None
        assert manager.visitor_streak == 2

    def test_failed_activation_keeps_retrying(self, make_backend, settings, clock):
        """测试全部失败时不开始冷却，下一次继续重试"""
        backend = make_backend(fail_targets=["Code"])
        manager = TriggerManager(TargetActivationCoordinator(backend), clock=clock)
        manager.record_presence(VISITOR)
        manager.record_presence(VISITOR)

        _, first = manager.maybe_trigger(GAME, settings)
        clock.advance(milliseconds=100)
        _, second = manager.maybe_trigger(GAME, settings)

        assert first.success is False
        assert second.success is False
        assert manager.last_switch_at is None
        assert manager.visitor_streak == 2
        assert backend.attempts == ["Code", "Code"]
        assert manager.stats["failed_count"] == 2

    def test_force_switch_bypasses_gates(self, manager, settings, backend, clock):
        """测试手动切换跳过连续帧与冷却检查"""
        result = manager.force_switch(settings)

        assert result.success is True
        assert manager.last_switch_at == clock()

        clock.advance(seconds=1)
        again = manager.force_switch(settings)

        assert again.success is True
        assert backend.attempts == ["Code", "Code"]

    def test_force_switch_arms_cooldown(self, manager, settings, backend):
        """测试手动切换后自动触发进入冷却"""
        manager.force_switch(settings)
        manager.record_presence(VISITOR)
        manager.record_presence(VISITOR)

        decision, result = manager.maybe_trigger(GAME, settings)

        assert decision.decision_type == DecisionType.COOLDOWN
        assert result is None
        assert backend.attempts == ["Code"]

    def test_reset(self, manager, settings):
        """测试重置状态"""
        manager.record_presence(VISITOR)
        manager.force_switch(settings)

        manager.reset()

        assert manager.visitor_streak == 0
        assert manager.last_switch_at is None

    def test_stats_tracking(self, manager, settings, clock):
        """测试统计跟踪"""
        manager.record_presence(VISITOR)
        manager.record_presence(VISITOR)
        manager.maybe_trigger(GAME, settings)
        clock.advance(seconds=1)
        manager.maybe_trigger(GAME, settings)

        stats = manager.stats
        assert stats["total_decisions"] == 2
        assert stats["triggered_count"] == 1
        assert stats["cooldown_blocked"] == 1
        assert stats["visitor_streak"] == 2
