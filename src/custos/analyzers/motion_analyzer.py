"""
运动分析器

截取配置的检测区域并缩小为固定尺寸的栅格，与上一帧栅格逐通道比较，
得到 0.0 - 1.0 的运动分数。首帧没有可比较的栅格，分数为 0。
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Optional

import numpy as np
from PIL import Image

if TYPE_CHECKING:
    from src.settings.models import MotionRegion


# 栅格宽度与最小高度
RASTER_WIDTH = 160
RASTER_MIN_HEIGHT = 90

# 无法读取尺寸时假定的画面大小
DEFAULT_FRAME_SIZE = (640, 360)

# 单通道最大差值
MAX_CHANNEL_DELTA = 255


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _to_image(frame: Any) -> Image.Image:
    """
    把视频帧转换为 PIL 图像

    Args:
        frame: PIL 图像或 numpy 数组(HxW 或 HxWxC)

    Returns:
        PIL 图像
    """
    if isinstance(frame, Image.Image):
        return frame

    array = np.asarray(frame)
    if array.dtype != np.uint8:
        array = np.clip(array, 0, MAX_CHANNEL_DELTA).astype(np.uint8)
    return Image.fromarray(array)


def _region_box(
    size: tuple[int, int],
    region_enabled: bool,
    region: Optional[MotionRegion],
) -> tuple[int, int, int, int]:
    """
    计算检测区域在像素坐标下的裁剪框

    Args:
        size: 画面尺寸 (宽, 高)
        region_enabled: 是否启用区域检测
        region: 检测区域(比例)

    Returns:
        (left, top, right, bottom) 裁剪框
    """
    width, height = size
    if width <= 0 or height <= 0:
        width, height = DEFAULT_FRAME_SIZE

    if not region_enabled or region is None:
        return 0, 0, width, height

    left = min(_round_half_up(region.x * width), width - 1)
    top = min(_round_half_up(region.y * height), height - 1)
    region_width = max(1, _round_half_up(region.width * width))
    region_height = max(1, _round_half_up(region.height * height))

    return left, top, min(left + region_width, width), min(top + region_height, height)


def _downsample(image: Image.Image, box: tuple[int, int, int, int]) -> np.ndarray:
    """
    裁剪并缩小为固定宽度的 RGB 栅格

    高度按区域宽高比计算，且不小于 RASTER_MIN_HEIGHT。

    Returns:
        展平的 RGB 栅格
    """
    left, top, right, bottom = box
    source_width = max(1, right - left)
    source_height = max(1, bottom - top)
    target_height = max(
        RASTER_MIN_HEIGHT,
        _round_half_up(RASTER_WIDTH * source_height / source_width),
    )

    raster = image.crop(box).convert("RGB").resize(
        (RASTER_WIDTH, target_height),
        resample=Image.Resampling.BILINEAR,
    )
    return np.asarray(raster, dtype=np.int16).reshape(-1)


def _raster_difference(previous: np.ndarray, current: np.ndarray) -> float:
    """
    计算两个栅格的平均逐通道绝对差

    尺寸不一致时只比较公共前缀。

    Returns:
        归一化差异 (0.0 - 1.0)
    """
    length = min(previous.size, current.size)
    length -= length % 3
    if length == 0:
        return 0.0

    delta = np.abs(current[:length].astype(np.int32) - previous[:length].astype(np.int32)).sum()
    max_delta = length * MAX_CHANNEL_DELTA
    return float(delta) / max_delta


class MotionAnalyzer:
    """
    区域运动分析器

    只保留上一帧的栅格，每次计算后替换。

    Attributes:
        has_previous: 是否已有可比较的栅格
    """

    def __init__(self) -> None:
        """初始化运动分析器"""
        self._previous: Optional[np.ndarray] = None
        self._stats = {
            "total_frames": 0,
            "first_frames": 0,
        }

    @property
    def has_previous(self) -> bool:
        """是否已有可比较的栅格"""
        return self._previous is not None

    @property
    def stats(self) -> dict:
        """获取统计信息"""
        return self._stats.copy()

    def score(
        self,
        frame: Any,
        region_enabled: bool = False,
        region: Optional[MotionRegion] = None,
    ) -> float:
        """
        计算当前帧的运动分数

        Args:
            frame: 当前视频帧
            region_enabled: 是否只检测指定区域
            region: 检测区域

        Returns:
            运动分数 (0.0 - 1.0)
        """
        image = _to_image(frame)
        box = _region_box(image.size, region_enabled, region)
        current = _downsample(image, box)

        self._stats["total_frames"] += 1
        previous = self._previous
        self._previous = current

        if previous is None:
            self._stats["first_frames"] += 1
            return 0.0

        return _raster_difference(previous, current)

    def reset(self) -> None:
        """清除保留的栅格"""
        self._previous = None

    def reset_stats(self) -> None:
        """重置统计信息"""
        self._stats = {
            "total_frames": 0,
            "first_frames": 0,
        }
