"""
Custos 分析器

在场融合相关的分析器: 安全人脸匹配、区域运动分析与在场融合。
"""

from .face_matcher import (
    CAPTURE_MIN_CONFIDENCE,
    FaceMatchResult,
    SafeFaceMatcher,
    cosine_similarity,
    select_best_face,
)
from .motion_analyzer import MotionAnalyzer
from .presence_analyzer import FACE_CONFIDENCE_FLOOR, PresenceFusionEngine

__all__ = [
    "CAPTURE_MIN_CONFIDENCE",
    "FACE_CONFIDENCE_FLOOR",
    "FaceMatchResult",
    "SafeFaceMatcher",
    "cosine_similarity",
    "select_best_face",
    "MotionAnalyzer",
    "PresenceFusionEngine",
]
