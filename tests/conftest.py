"""
共享测试 fixture 和配置
"""

from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

import pytest
from PIL import Image

from src.core.exceptions import ActivationFailedError, UnsupportedPlatformError
from src.core.interfaces import IActivationBackend
from src.custos.models import (
    BodyObservation,
    FaceObservation,
    RawDetectionFrame,
    RawWindowObservation,
)
from src.settings import AppSettings, WorkTarget, sanitize_settings


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0.0, milliseconds: float = 0.0) -> datetime:
        self.current += timedelta(seconds=seconds, milliseconds=milliseconds)
        return self.current


class RecordingBackend(IActivationBackend):
    """记录激活顺序的测试后端"""

    def __init__(
        self,
        fail_targets: Sequence[str] = (),
        unsupported: bool = False,
        unexpected_targets: Sequence[str] = (),
    ) -> None:
        self.fail_targets = set(fail_targets)
        self.unexpected_targets = set(unexpected_targets)
        self.unsupported = unsupported
        self.attempts: list[str] = []

    def activate(self, target: WorkTarget) -> None:
        self.attempts.append(target.display_name)
        if self.unsupported:
            raise UnsupportedPlatformError("测试平台不支持")
        if target.display_name in self.unexpected_targets:
            raise RuntimeError("后端内部错误")
        if target.display_name in self.fail_targets:
            raise ActivationFailedError(f"无法激活 {target.display_name}")


@pytest.fixture
def base_timestamp() -> datetime:
    """基准时间戳"""
    return datetime(2024, 6, 15, 14, 30, 0)


@pytest.fixture
def clock(base_timestamp: datetime) -> FakeClock:
    """可手动推进的时钟"""
    return FakeClock(base_timestamp)


@pytest.fixture
def make_backend():
    """创建 RecordingBackend 的工厂函数"""

    def _make(
        fail_targets: Sequence[str] = (),
        unsupported: bool = False,
        unexpected_targets: Sequence[str] = (),
    ) -> RecordingBackend:
        return RecordingBackend(
            fail_targets=fail_targets,
            unsupported=unsupported,
            unexpected_targets=unexpected_targets,
        )

    return _make


@pytest.fixture
def make_settings():
    """创建已清洗 AppSettings 的工厂函数(键使用 camelCase)"""

    def _make(
        detection: Optional[dict[str, Any]] = None,
        apps: Optional[dict[str, Any]] = None,
    ) -> AppSettings:
        return sanitize_settings({
            "detection": detection or {},
            "apps": apps or {},
        })

    return _make


@pytest.fixture
def make_frame(base_timestamp: datetime):
    """创建 RawDetectionFrame 的工厂函数"""

    def _make(
        faces: Sequence[tuple] = (),
        bodies: Sequence[float] = (),
        motion_score: Optional[float] = None,
        image: Optional[Any] = None,
        timestamp: Optional[datetime] = None,
    ) -> RawDetectionFrame:
        face_observations = []
        for face in faces:
            confidence, embedding = (face, None) if isinstance(face, (int, float)) else face
            face_observations.append(FaceObservation(confidence=confidence, embedding=embedding))
        return RawDetectionFrame(
            faces=face_observations,
            bodies=[BodyObservation(confidence=value) for value in bodies],
            image=image,
            motion_score=motion_score,
            timestamp=timestamp or base_timestamp,
        )

    return _make


@pytest.fixture
def make_window():
    """创建 RawWindowObservation 的工厂函数"""

    def _make(
        name: Optional[str] = "League of Legends",
        title: Optional[str] = "League of Legends (TM) Client",
        bundle_id: Optional[str] = None,
        process_path: Optional[str] = None,
    ) -> RawWindowObservation:
        return RawWindowObservation(
            name=name,
            title=title,
            bundle_id=bundle_id,
            process_path=process_path,
        )

    return _make


@pytest.fixture
def make_image():
    """创建测试图像的工厂函数"""

    def _make(
        width: int = 100,
        height: int = 100,
        color: tuple = (128, 128, 128),
    ) -> Image.Image:
        return Image.new("RGB", (width, height), color)

    return _make


@pytest.fixture
def sample_image(make_image) -> Image.Image:
    """标准测试图像"""
    return make_image()
