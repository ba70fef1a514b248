"""
快照模型

定义每个周期重新计算的在场快照与前台应用快照，不持久化。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class PresenceSnapshot:
    """
    在场检测快照

    融合人脸、人体与运动信号后的访客判定结果，每个检测周期替换一次。

    Attributes:
        confidence: 人脸/人体最高置信度 (0.0 - 1.0)
        has_visitor: 是否检测到访客
        recognized_safe: 是否至少识别出一张安全人脸
        movement_score: 区域运动分数 (0.0 - 1.0)
        matched_safe_ids: 命中的安全人脸 ID(去重，按命中顺序)
        timestamp: 快照时间
        face_count: 有效人脸数
        body_count: 人体数
        unknown_face_count: 未识别人脸数
        extra_bodies_present: 人体数是否多于人脸数
    """
    confidence: float = 0.0
    has_visitor: bool = False
    recognized_safe: bool = False
    movement_score: float = 0.0
    matched_safe_ids: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    face_count: int = 0
    body_count: int = 0
    unknown_face_count: int = 0
    extra_bodies_present: bool = False

    def __post_init__(self) -> None:
        """规范化分数范围"""
        self.confidence = max(0.0, min(1.0, self.confidence))
        self.movement_score = max(0.0, min(1.0, self.movement_score))

    @classmethod
    def empty(cls, timestamp: Optional[datetime] = None) -> PresenceSnapshot:
        """创建无访客快照(传感器降级时使用)"""
        return cls(timestamp=timestamp or datetime.now())


@dataclass
class ActiveAppSnapshot:
    """
    前台应用快照

    由原始窗口观察结果和当前规则计算，每次轮询重新计算。

    Attributes:
        name: 应用名称
        title: 窗口标题
        bundle_id: macOS Bundle ID
        process_path: 进程路径
        is_blacklisted: 是否命中黑名单
        is_whitelisted: 是否命中白名单
        is_game_active: 是否判定为游戏/敏感应用在前台
        matched_rule: 命中的规则(黑名单优先)
        last_updated: 更新时间
    """
    name: Optional[str] = None
    title: Optional[str] = None
    bundle_id: Optional[str] = None
    process_path: Optional[str] = None
    is_blacklisted: bool = False
    is_whitelisted: bool = False
    is_game_active: bool = False
    matched_rule: Optional[str] = None
    last_updated: datetime = field(default_factory=datetime.now)

    @classmethod
    def neutral(cls, timestamp: Optional[datetime] = None) -> ActiveAppSnapshot:
        """创建中性快照(没有窗口信息或平台不支持时使用)"""
        return cls(last_updated=timestamp or datetime.now())
