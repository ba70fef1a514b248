"""
传感器接口定义

定义窗口观察器和帧检测器的抽象接口。具体实现（AppleScript/PowerShell、
摄像头与神经网络推理）由宿主应用提供，自动化引擎只消费其输出。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from src.custos.models import DetectionResult, RawWindowObservation


class IWindowObserver(ABC):
    """
    前台窗口观察器抽象接口

    与平台相关，尽力而为。内部失败应转换为 None 并记录警告，
    不应把异常抛出接口边界。当前平台未实现时可以抛出
    UnsupportedPlatformError，轮询器将停止重试。
    """

    @abstractmethod
    def poll(self) -> Optional[RawWindowObservation]:
        """
        读取当前前台窗口

        Returns:
            原始窗口观察结果，无法获取时返回 None

        Raises:
            UnsupportedPlatformError: 当前平台不支持窗口观察时抛出
        """
        pass


class IFrameDetector(ABC):
    """
    帧检测器抽象接口

    对视频帧执行人脸/人体检测并提取人脸特征向量。
    """

    @abstractmethod
    def detect(self, video_frame: Any) -> DetectionResult:
        """
        检测视频帧中的人脸和人体

        Args:
            video_frame: 视频帧（PIL 图像或 numpy 数组）

        Returns:
            DetectionResult: 人脸与人体检测结果

        Raises:
            SensorUnavailableError: 检测器未初始化或推理失败时抛出
        """
        pass

    @abstractmethod
    def capture_embedding(self, video_frame: Any) -> Sequence[float]:
        """
        从视频帧提取最清晰人脸的特征向量

        Args:
            video_frame: 视频帧

        Returns:
            人脸特征向量

        Raises:
            NoFaceDetectedError: 画面中没有可用人脸时抛出
            SensorUnavailableError: 检测器不可用时抛出
        """
        pass
