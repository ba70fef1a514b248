"""
Custos 数据模型

定义自动化决策引擎使用的所有数据模型。
"""

from .activation_result import ActivationErrorKind, ActivationResult
from .automation_state import AutomationState
from .detection_frame import (
    BodyObservation,
    DetectionResult,
    FaceObservation,
    RawDetectionFrame,
    RawWindowObservation,
)
from .snapshots import ActiveAppSnapshot, PresenceSnapshot
from .trigger_decision import DecisionType, TriggerDecision, TriggerPhase

__all__ = [
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
