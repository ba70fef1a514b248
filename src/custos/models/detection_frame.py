"""
原始输入模型

定义由外部轮询器送入引擎的原始检测帧与窗口观察结果。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence


@dataclass
class FaceObservation:
    """
    人脸检测结果

    Attributes:
        confidence: 检测置信度 (0.0 - 1.0)
        embedding: 人脸特征向量(可选)
    """
    confidence: float
    embedding: Optional[Sequence[float]] = None

    @property
    def has_embedding(self) -> bool:
        """是否带有非空特征向量"""
        return self.embedding is not None and len(self.embedding) > 0


@dataclass
class BodyObservation:
    """
    人体检测结果

    Attributes:
        confidence: 检测置信度 (0.0 - 1.0)
    """
    confidence: float


@dataclass
class DetectionResult:
    """
    帧检测器输出

    Attributes:
        faces: 人脸检测结果列表
        bodies: 人体检测结果列表
    """
    faces: list[FaceObservation] = field(default_factory=list)
    bodies: list[BodyObservation] = field(default_factory=list)


@dataclass
class RawDetectionFrame:
    """
    单个检测周期的原始输入

    image 为当前视频帧(PIL 图像或 numpy 数组)，用于计算区域运动分数。
    没有图像时使用外部预先计算的 motion_score，两者都没有时运动分数为 0。

    Attributes:
        faces: 人脸检测结果
        bodies: 人体检测结果
        image: 当前视频帧(可选)
        motion_score: 预先计算的运动分数(可选)
        timestamp: 帧时间戳
    """
    faces: list[FaceObservation] = field(default_factory=list)
    bodies: list[BodyObservation] = field(default_factory=list)
    image: Optional[Any] = None
    motion_score: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_detection(
        cls,
        detection: DetectionResult,
        image: Optional[Any] = None,
        timestamp: Optional[datetime] = None,
    ) -> RawDetectionFrame:
        """由检测器输出构建原始帧"""
        return cls(
            faces=list(detection.faces),
            bodies=list(detection.bodies),
            image=image,
            timestamp=timestamp or datetime.now(),
        )


@dataclass
class RawWindowObservation:
    """
    前台窗口原始观察结果

    Attributes:
        name: 应用名称
        title: 窗口标题
        bundle_id: macOS Bundle ID
        process_path: 进程可执行文件路径
    """
    name: Optional[str] = None
    title: Optional[str] = None
    bundle_id: Optional[str] = None
    process_path: Optional[str] = None
