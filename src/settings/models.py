"""
配置数据模型

定义自动切换工具的不可变配置快照。所有模型使用Pydantic进行数据验证，
字段名为 snake_case，同时接受 camelCase 别名，以便直接加载桌面端保存的配置文档。
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MatchStrategy(str, Enum):
    """
    窗口匹配策略枚举

    决定哪些窗口属性参与规则匹配
    """
    ANY = "any"  # 标题、进程、Bundle ID 的并集
    TITLE = "title"  # 仅窗口标题
    PROCESS = "process"  # 仅进程路径与进程名
    BUNDLE = "bundle"  # 仅 macOS Bundle ID


class ListMode(str, Enum):
    """
    名单模式枚举
    """
    BLACKLIST = "blacklist"  # 命中黑名单视为游戏，白名单作为例外
    WHITELIST = "whitelist"  # 未命中白名单的应用都视为游戏


class _SnapshotModel(BaseModel):
    """配置快照基类: 不可变，接受 camelCase 别名"""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class MotionRegion(_SnapshotModel):
    """
    运动检测区域

    所有值均为相对画面尺寸的比例 (0.0 - 1.0)
    """
    x: float = Field(default=0.0, description="左上角横坐标比例")
    y: float = Field(default=0.0, description="左上角纵坐标比例")
    width: float = Field(default=1.0, description="宽度比例")
    height: float = Field(default=1.0, description="高度比例")


class SafeFaceProfile(_SnapshotModel):
    """
    安全人脸档案

    已知的非访客使用者的人脸特征，采集时创建，由用户删除。
    """
    id: str = Field(..., description="唯一标识")
    label: str = Field(..., description="显示名称")
    descriptor: list[float] = Field(default_factory=list, description="人脸特征向量")
    created_at: datetime = Field(default_factory=datetime.now, description="采集时间")


class WorkTarget(_SnapshotModel):
    """
    工作目标应用

    检测到访客时切换到的应用，至少需要名称、Bundle ID 或启动命令之一。
    """
    name: str = Field(default="", description="显示名称")
    mac_bundle_id: Optional[str] = Field(
        default=None,
        description="macOS bundle identifier，例如 com.microsoft.VSCode",
    )
    mac_process_name: Optional[str] = Field(
        default=None,
        description="macOS 进程名称(用于激活与最大化)",
    )
    win_command: Optional[str] = Field(
        default=None,
        description="Windows 启动命令，可以是绝对路径或 AppUserModelID",
    )
    win_process_name: Optional[str] = Field(
        default=None,
        description="Windows 进程名(不含扩展名)，用于前置已有窗口",
    )
    args: list[str] = Field(default_factory=list, description="附加启动参数")

    @property
    def display_name(self) -> str:
        """用于日志的名称"""
        return self.name or self.mac_bundle_id or self.win_command or "<unnamed>"


class DetectionSettings(_SnapshotModel):
    """
    检测参数
    """
    enable_auto_switch: bool = Field(default=False, description="是否启用自动切换")
    preview_enabled: bool = Field(default=True, description="是否启用摄像头预览")
    preview_visible: bool = Field(default=True, description="预览是否可见")
    presence_threshold: float = Field(default=0.6, description="人脸/人体置信度阈值")
    frames_before_trigger: int = Field(default=2, description="触发前所需连续访客帧数")
    cooldown_seconds: int = Field(default=15, description="切换后冷却时间(秒)")
    sample_interval_ms: int = Field(default=100, description="检测采样间隔(毫秒)")
    face_recognition_threshold: float = Field(
        default=0.42,
        description="安全人脸匹配的余弦相似度阈值",
    )
    motion_sensitivity: float = Field(default=0.05, description="运动分数触发阈值")
    motion_region_enabled: bool = Field(default=False, description="是否只检测指定区域的运动")
    motion_region: MotionRegion = Field(default_factory=MotionRegion, description="运动检测区域")
    safe_faces: list[SafeFaceProfile] = Field(default_factory=list, description="安全人脸列表")
    camera_device_id: Optional[str] = Field(default=None, description="摄像头设备ID")


class AppRules(_SnapshotModel):
    """
    应用规则
    """
    game_blacklist: list[str] = Field(default_factory=list, description="游戏黑名单(有序)")
    game_whitelist: list[str] = Field(default_factory=list, description="白名单(有序)")
    work_targets: list[WorkTarget] = Field(default_factory=list, description="工作目标(按优先级)")
    match_strategy: MatchStrategy = Field(default=MatchStrategy.ANY, description="匹配策略")
    list_mode: ListMode = Field(default=ListMode.BLACKLIST, description="名单模式")


class AppSettings(_SnapshotModel):
    """
    完整配置快照
    """
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    apps: AppRules = Field(default_factory=AppRules)
