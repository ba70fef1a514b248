"""
在场融合分析器

把人脸置信度、人体置信度、区域运动分数和安全人脸匹配结果融合为单一的访客判定。

判定规则:
    - 运动分数达到灵敏度即视为访客(例如远处走过、人脸检测不到的人)
    - 人脸/人体置信度达到阈值时，只有无法完全归因于已识别的安全人脸才视为访客
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from src.core.logger import get_logger

from ..models import PresenceSnapshot
from .face_matcher import SafeFaceMatcher
from .motion_analyzer import MotionAnalyzer

if TYPE_CHECKING:
    from src.custos.models import RawDetectionFrame
    from src.settings.models import DetectionSettings

logger = get_logger(__name__)


# 低于或等于此置信度的人脸被丢弃
FACE_CONFIDENCE_FLOOR = 0.3


def _clamp_score(value: Optional[float]) -> float:
    """把外部提供的分数限制在 [0, 1]，非法值视为 0"""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(1.0, number))


class PresenceFusionEngine:
    """
    在场融合引擎

    持有上一帧运动栅格，其余计算均为纯函数。

    Attributes:
        matcher: 安全人脸匹配器
        motion_analyzer: 区域运动分析器
    """

    def __init__(
        self,
        matcher: Optional[SafeFaceMatcher] = None,
        motion_analyzer: Optional[MotionAnalyzer] = None,
    ) -> None:
        """
        初始化融合引擎

        Args:
            matcher: 自定义安全人脸匹配器
            motion_analyzer: 自定义运动分析器
        """
        self._matcher = matcher or SafeFaceMatcher()
        self._motion_analyzer = motion_analyzer or MotionAnalyzer()
        self._stats = {
            "total_evaluated": 0,
            "visitor_frames": 0,
            "motion_triggers": 0,
            "safe_recognitions": 0,
        }

    @property
    def matcher(self) -> SafeFaceMatcher:
        """获取安全人脸匹配器"""
        return self._matcher

    @property
    def motion_analyzer(self) -> MotionAnalyzer:
        """获取运动分析器"""
        return self._motion_analyzer

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return self._stats.copy()

    def evaluate(
        self,
        frame: RawDetectionFrame,
        settings: DetectionSettings,
    ) -> PresenceSnapshot:
        """
        评估单帧的访客状态

        Args:
            frame: 原始检测帧
            settings: 检测参数

        Returns:
            PresenceSnapshot: 在场快照
        """
        self._stats["total_evaluated"] += 1

        faces = [face for face in frame.faces if face.confidence > FACE_CONFIDENCE_FLOOR]
        bodies = list(frame.bodies)

        face_confidence = max((face.confidence for face in faces), default=0.0)
        body_confidence = max((body.confidence for body in bodies), default=0.0)
        confidence = max(face_confidence, body_confidence)

        match = self._matcher.match(
            faces,
            settings.safe_faces,
            settings.face_recognition_threshold,
        )

        face_count = len(faces)
        body_count = len(bodies)
        unknown_face_count = max(0, face_count - match.matched_count)
        extra_bodies_present = body_count > max(match.matched_count, face_count)

        movement_score = self._compute_movement(frame, settings)

        movement_trigger = movement_score >= settings.motion_sensitivity
        face_or_body_trigger = confidence >= settings.presence_threshold
        face_or_body_suggests_visitor = face_or_body_trigger and (
            unknown_face_count > 0
            or extra_bodies_present
            or not match.recognized
        )
        has_visitor = movement_trigger or face_or_body_suggests_visitor

        if has_visitor:
            self._stats["visitor_frames"] += 1
        if movement_trigger:
            self._stats["motion_triggers"] += 1
        if match.recognized:
            self._stats["safe_recognitions"] += 1

        logger.debug(
            f"在场评估: confidence={confidence:.3f}, movement={movement_score:.3f}, "
            f"faces={face_count}, unknown={unknown_face_count}, bodies={body_count}, "
            f"safe={match.recognized}, visitor={has_visitor}"
        )

        return PresenceSnapshot(
            confidence=confidence,
            has_visitor=has_visitor,
            recognized_safe=match.recognized,
            movement_score=movement_score,
            matched_safe_ids=list(match.matched_profile_ids),
            timestamp=frame.timestamp,
            face_count=face_count,
            body_count=body_count,
            unknown_face_count=unknown_face_count,
            extra_bodies_present=extra_bodies_present,
        )

    def _compute_movement(
        self,
        frame: RawDetectionFrame,
        settings: DetectionSettings,
    ) -> float:
        """优先用视频帧计算运动分数，否则使用外部提供的分数"""
        if frame.image is not None:
            return self._motion_analyzer.score(
                frame.image,
                region_enabled=settings.motion_region_enabled,
                region=settings.motion_region,
            )
        return _clamp_score(frame.motion_score)

    def reset(self) -> None:
        """清除运动历史"""
        self._motion_analyzer.reset()

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_evaluated": 0,
            "visitor_frames": 0,
            "motion_triggers": 0,
            "safe_recognitions": 0,
        }
        self._matcher.reset_stats()
        self._motion_analyzer.reset_stats()
