"""
安全人脸匹配器

用余弦相似度把检测到的人脸特征与已保存的安全人脸档案比对。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from src.core.exceptions import NoFaceDetectedError

if TYPE_CHECKING:
    from src.custos.models import DetectionResult, FaceObservation
    from src.settings.models import SafeFaceProfile


# 采集安全人脸时要求的最低置信度
CAPTURE_MIN_CONFIDENCE = 0.6


def _as_vector(values: Optional[Sequence[float]]) -> np.ndarray:
    """转换为一维 float64 向量"""
    if values is None:
        return np.zeros(0, dtype=np.float64)
    return np.asarray(values, dtype=np.float64).reshape(-1)


def cosine_similarity(
    a: Optional[Sequence[float]],
    b: Optional[Sequence[float]],
) -> float:
    """
    计算两个向量的余弦相似度

    长度不一致时只比较公共前缀；任一向量模为 0 时返回 0。

    Args:
        a: 第一个向量
        b: 第二个向量

    Returns:
        相似度 (-1.0 - 1.0)
    """
    vec_a = _as_vector(a)
    vec_b = _as_vector(b)

    length = min(vec_a.size, vec_b.size)
    if length == 0:
        return 0.0

    vec_a = vec_a[:length]
    vec_b = vec_b[:length]

    mag_a = float(np.dot(vec_a, vec_a))
    mag_b = float(np.dot(vec_b, vec_b))
    if mag_a == 0 or mag_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b)) / (math.sqrt(mag_a) * math.sqrt(mag_b))


@dataclass
class FaceMatchResult:
    """
    安全人脸匹配结果

    Attributes:
        recognized: 是否至少一张人脸命中
        matched_count: 命中的人脸数
        matched_profile_ids: 命中的档案 ID(去重，按命中顺序)
        best_scores: 每张参与比对的人脸的最佳相似度
    """
    recognized: bool = False
    matched_count: int = 0
    matched_profile_ids: list[str] = field(default_factory=list)
    best_scores: list[float] = field(default_factory=list)


class SafeFaceMatcher:
    """
    安全人脸匹配器

    对每张带特征向量的人脸，找出相似度最高的档案；
    最佳相似度不低于阈值即视为命中。零向量档案不参与比对。
    """

    def __init__(self) -> None:
        """初始化匹配器"""
        self._stats = {
            "total_faces": 0,
            "matched_faces": 0,
        }

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return self._stats.copy()

    def match(
        self,
        faces: Sequence[FaceObservation],
        profiles: Sequence[SafeFaceProfile],
        threshold: float,
    ) -> FaceMatchResult:
        """
        匹配人脸与安全档案

        Args:
            faces: 已过滤的人脸检测结果
            profiles: 安全人脸档案
            threshold: 相似度阈值

        Returns:
            FaceMatchResult: 匹配结果
        """
        if not faces or not profiles:
            return FaceMatchResult()

        candidates = [
            profile for profile in profiles
            if np.any(_as_vector(profile.descriptor))
        ]
        result = FaceMatchResult()

        for face in faces:
            if not face.has_embedding:
                continue

            self._stats["total_faces"] += 1
            best_match: Optional[SafeFaceProfile] = None
            best_score = -1.0

            for profile in candidates:
                score = cosine_similarity(face.embedding, profile.descriptor)
                if score > best_score:
                    best_score = score
                    best_match = profile

            result.best_scores.append(best_score if best_match is not None else 0.0)

            if best_match is not None and best_score >= threshold:
                self._stats["matched_faces"] += 1
                result.recognized = True
                result.matched_count += 1
                if best_match.id not in result.matched_profile_ids:
                    result.matched_profile_ids.append(best_match.id)

        return result

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_faces": 0,
            "matched_faces": 0,
        }


def select_best_face(
    detection: DetectionResult,
    min_confidence: float = CAPTURE_MIN_CONFIDENCE,
) -> FaceObservation:
    """
    选出最适合采集为安全人脸的人脸

    要求置信度高于 min_confidence 且带有非空特征向量，取置信度最高者。

    Args:
        detection: 检测结果
        min_confidence: 最低置信度

    Returns:
        最佳人脸

    Raises:
        NoFaceDetectedError: 没有满足条件的人脸时抛出
    """
    candidates = [
        face for face in detection.faces
        if face.confidence > min_confidence and face.has_embedding
    ]
    if not candidates:
        raise NoFaceDetectedError(
            "未检测到清晰的人脸，请确保面部对准摄像头并有足够光线。",
            details={"face_count": len(detection.faces)},
        )

    return max(candidates, key=lambda face: face.confidence)
