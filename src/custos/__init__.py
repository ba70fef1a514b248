"""
Custos 自动化决策引擎

根据摄像头在场检测和前台窗口分类，在有访客靠近且前台为游戏应用时自动切换到工作应用。

使用示例:
    >>> from src.custos import AutomationEngine, ManualScheduler, RawDetectionFrame, RawWindowObservation
    >>> from src.settings import InMemorySettingsStore
    >>>
    >>> store = InMemorySettingsStore({
    ...     "detection": {"enableAutoSwitch": True, "framesBeforeTrigger": 1},
    ...     "apps": {"gameBlacklist": ["league"], "workTargets": [{"name": "Code"}]},
    ... })
    >>> scheduler = ManualScheduler()
    >>> engine = AutomationEngine(store, backend, scheduler=scheduler, clock=scheduler.now)
    >>> engine.on_window_update(RawWindowObservation(name="League of Legends"))
    >>> state = engine.on_presence_update(RawDetectionFrame(motion_score=0.2))
    >>> state.last_switch_at is not None
    True
"""

from .activation_coordinator import TargetActivationCoordinator
from .analyzers import (
    MotionAnalyzer,
    PresenceFusionEngine,
    SafeFaceMatcher,
    cosine_similarity,
    select_best_face,
)
from .engine import AutomationEngine
from .filters import ActiveWindowClassifier, BlacklistFilter, WhitelistFilter
from .models import (
    ActivationErrorKind,
    ActivationResult,
    ActiveAppSnapshot,
    AutomationState,
    BodyObservation,
    DecisionType,
    DetectionResult,
    FaceObservation,
    PresenceSnapshot,
    RawDetectionFrame,
    RawWindowObservation,
    TriggerDecision,
    TriggerPhase,
)
from .monitors import PresenceMonitor, WindowMonitor
from .scheduler import ManualScheduler, ThreadingScheduler
from .trigger_manager import TriggerManager

__all__ = [
    # 引擎
    "AutomationEngine",
    # 组件
    "PresenceFusionEngine",
    "SafeFaceMatcher",
    "MotionAnalyzer",
    "ActiveWindowClassifier",
    "BlacklistFilter",
    "WhitelistFilter",
    "TriggerManager",
    "TargetActivationCoordinator",
    "cosine_similarity",
    "select_best_face",
    # 调度
    "ManualScheduler",
    "ThreadingScheduler",
    "WindowMonitor",
    "PresenceMonitor",
    # 模型
    "FaceObservation",
    "BodyObservation",
    "DetectionResult",
    "RawDetectionFrame",
    "RawWindowObservation",
    "PresenceSnapshot",
    "ActiveAppSnapshot",
    "TriggerDecision",
    "DecisionType",
    "TriggerPhase",
    "ActivationResult",
    "ActivationErrorKind",
    "AutomationState",
]
