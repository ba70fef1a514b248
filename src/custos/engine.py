"""
自动化决策引擎

串联在场融合、窗口分类、触发状态机和目标激活，是宿主应用唯一需要直接使用的入口。

处理流程:
    1. 在场检测帧 -> PresenceFusionEngine -> PresenceSnapshot -> 更新连续访客帧数
    2. 前台窗口 -> ActiveWindowClassifier -> ActiveAppSnapshot
    3. 任一更新后 TriggerManager 重新评估触发条件，满足时交给 TargetActivationCoordinator
    4. 重建 AutomationState 并按注册顺序通知观察者
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

from src.core.exceptions import ConfigurationError
from src.core.logger import get_logger
from src.settings.sanitizer import normalize_safe_face

from .activation_coordinator import TargetActivationCoordinator
from .analyzers import PresenceFusionEngine
from .filters import ActiveWindowClassifier
from .models import (
    ActivationErrorKind,
    ActivationResult,
    ActiveAppSnapshot,
    AutomationState,
    PresenceSnapshot,
    RawDetectionFrame,
    RawWindowObservation,
)
from .monitors import DEFAULT_WINDOW_POLL_INTERVAL_MS, PresenceMonitor, WindowMonitor
from .scheduler import ThreadingScheduler
from .trigger_manager import TriggerManager

if TYPE_CHECKING:
    from src.core.interfaces import (
        IActivationBackend,
        IConfigurationStore,
        IFrameDetector,
        IScheduler,
        IWindowObserver,
    )
    from src.settings.models import AppSettings, SafeFaceProfile

logger = get_logger(__name__)


StateListener = Callable[[AutomationState], None]

# 错误来源
SOURCE_PRESENCE = "presence"
SOURCE_WINDOW = "window"
SOURCE_ACTIVATION = "activation"

_ACTIVATION_MESSAGES = {
    ActivationErrorKind.UNSUPPORTED_PLATFORM: "当前平台不支持切换应用",
    ActivationErrorKind.ALL_TARGETS_FAILED: "没有可激活的工作目标",
}


def _with_safe_faces(settings: AppSettings, faces: list[SafeFaceProfile]) -> AppSettings:
    """替换配置快照中的安全人脸列表"""
    return settings.model_copy(update={
        "detection": settings.detection.model_copy(update={"safe_faces": faces}),
    })


class AutomationEngine:
    """
    自动化决策引擎

    由宿主显式构造并注入依赖，自己持有全部可变状态，
    每次评估只读取配置存储中的不可变快照。

    Attributes:
        settings: 当前配置快照
        presence_engine: 在场融合引擎
        classifier: 前台窗口分类器
        trigger_manager: 触发管理器
        coordinator: 目标激活协调器

    Example:
        >>> store = InMemorySettingsStore({"detection": {"enableAutoSwitch": True}})
        >>> engine = AutomationEngine(store, backend)
        >>> engine.on_window_update(RawWindowObservation(name="League of Legends"))
        >>> state = engine.on_presence_update(RawDetectionFrame(motion_score=0.2))
    """

    def __init__(
        self,
        settings_store: IConfigurationStore,
        activation_backend: IActivationBackend,
        *,
        window_observer: Optional[IWindowObserver] = None,
        frame_detector: Optional[IFrameDetector] = None,
        frame_source: Optional[Callable[[], Any]] = None,
        scheduler: Optional[IScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
        window_poll_interval_ms: int = DEFAULT_WINDOW_POLL_INTERVAL_MS,
        presence_engine: Optional[PresenceFusionEngine] = None,
        classifier: Optional[ActiveWindowClassifier] = None,
    ) -> None:
        """
        初始化自动化引擎

        Args:
            settings_store: 配置存储
            activation_backend: 应用激活后端
            window_observer: 前台窗口观察器(可选，start() 时启动轮询)
            frame_detector: 帧检测器(可选)
            frame_source: 视频帧来源(与 frame_detector 一起启用在场检测轮询)
            scheduler: 调度器，默认 ThreadingScheduler
            clock: 时钟函数，默认 datetime.now
            window_poll_interval_ms: 窗口轮询间隔(毫秒)
            presence_engine: 自定义在场融合引擎
            classifier: 自定义窗口分类器
        """
        self._store = settings_store
        self._clock = clock or datetime.now
        self._scheduler = scheduler or ThreadingScheduler()
        self._frame_detector = frame_detector
        self._lock = threading.RLock()

        self._presence_engine = presence_engine or PresenceFusionEngine()
        self._classifier = classifier or ActiveWindowClassifier()
        self._coordinator = TargetActivationCoordinator(activation_backend)
        self._trigger_manager = TriggerManager(self._coordinator, clock=self._clock)

        self._settings: AppSettings = settings_store.get()
        self._presence = PresenceSnapshot.empty(self._clock())
        self._window: Optional[RawWindowObservation] = None
        self._active_app: Optional[ActiveAppSnapshot] = None
        self._errors: dict[str, str] = {}
        self._listeners: list[StateListener] = []

        self._window_monitor: Optional[WindowMonitor] = None
        if window_observer is not None:
            self._window_monitor = WindowMonitor(
                window_observer,
                self.on_window_update,
                self._scheduler,
                interval_ms=window_poll_interval_ms,
                on_error=self._on_window_error,
            )

        self._presence_monitor: Optional[PresenceMonitor] = None
        if frame_detector is not None and frame_source is not None:
            self._presence_monitor = PresenceMonitor(
                frame_detector,
                frame_source,
                self.on_presence_update,
                self._scheduler,
                interval_ms=self._settings.detection.sample_interval_ms,
                on_error=self.report_sensor_unavailable,
                clock=self._clock,
            )

        self._unsubscribe_settings = settings_store.on_change(self._on_settings_changed)

        logger.info(
            f"自动化引擎初始化完成: backend={activation_backend.name}, "
            f"window_monitor={self._window_monitor is not None}, "
            f"presence_monitor={self._presence_monitor is not None}"
        )

    @property
    def settings(self) -> AppSettings:
        """当前配置快照"""
        return self._settings

    @property
    def presence_engine(self) -> PresenceFusionEngine:
        """在场融合引擎"""
        return self._presence_engine

    @property
    def classifier(self) -> ActiveWindowClassifier:
        """前台窗口分类器"""
        return self._classifier

    @property
    def trigger_manager(self) -> TriggerManager:
        """触发管理器"""
        return self._trigger_manager

    @property
    def coordinator(self) -> TargetActivationCoordinator:
        """目标激活协调器"""
        return self._coordinator

    @property
    def window_monitor(self) -> Optional[WindowMonitor]:
        """窗口监视器"""
        return self._window_monitor

    @property
    def presence_monitor(self) -> Optional[PresenceMonitor]:
        """在场检测监视器"""
        return self._presence_monitor

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def start(self) -> None:
        """启动已配置的监视器"""
        if self._window_monitor is not None:
            self._window_monitor.start()
        if self._presence_monitor is not None:
            self._presence_monitor.start()

    def stop(self) -> None:
        """停止所有监视器，可重复调用"""
        if self._window_monitor is not None:
            self._window_monitor.stop()
        if self._presence_monitor is not None:
            self._presence_monitor.stop()

    def close(self) -> None:
        """停止监视器、取消配置订阅并释放调度器"""
        self.stop()
        if self._unsubscribe_settings is not None:
            self._unsubscribe_settings()
            self._unsubscribe_settings = None
        self._scheduler.shutdown()

    def __enter__(self) -> AutomationEngine:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # 数据入口
    # ------------------------------------------------------------------

    def on_presence_update(self, frame: RawDetectionFrame) -> AutomationState:
        """
        处理一帧检测结果

        Args:
            frame: 原始检测帧

        Returns:
            AutomationState: 更新后的自动化状态
        """
        with self._lock:
            settings = self._settings
            presence = self._presence_engine.evaluate(frame, settings.detection)
            self._presence = presence
            self._errors.pop(SOURCE_PRESENCE, None)
            self._trigger_manager.record_presence(presence)
            self._run_trigger(settings)
            state = self._build_state()

        self._notify(state)
        return state

    def on_window_update(
        self,
        observation: Optional[RawWindowObservation],
    ) -> AutomationState:
        """
        处理一次前台窗口观察结果

        Args:
            observation: 原始窗口观察结果，None 表示无法获取

        Returns:
            AutomationState: 更新后的自动化状态
        """
        with self._lock:
            settings = self._settings
            self._window = observation
            self._active_app = self._classifier.classify(
                observation,
                settings.apps,
                now=self._clock(),
            )
            if observation is not None:
                self._errors.pop(SOURCE_WINDOW, None)
            self._run_trigger(settings)
            state = self._build_state()

        self._notify(state)
        return state

    def force_switch(self) -> ActivationResult:
        """
        手动切换到工作应用，跳过连续帧与冷却检查

        Returns:
            ActivationResult: 激活结果
        """
        with self._lock:
            result = self._trigger_manager.force_switch(self._settings, now=self._clock())
            self._record_activation(result)
            state = self._build_state()

        self._notify(state)
        return result

    def get_automation_state(self) -> AutomationState:
        """
        获取当前自动化状态

        Returns:
            AutomationState: 当前状态快照
        """
        with self._lock:
            return self._build_state()

    def on_state_changed(self, listener: StateListener) -> Callable[[], None]:
        """
        注册状态变更监听器

        监听器按注册顺序调用。

        Args:
            listener: 回调函数

        Returns:
            取消注册的函数
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # 降级与错误
    # ------------------------------------------------------------------

    def report_sensor_unavailable(self, error: Exception) -> AutomationState:
        """
        记录摄像头/检测器不可用，在场状态回退为无访客

        Args:
            error: 传感器错误

        Returns:
            AutomationState: 更新后的自动化状态
        """
        with self._lock:
            presence = PresenceSnapshot.empty(self._clock())
            self._presence = presence
            self._trigger_manager.record_presence(presence)
            self._errors[SOURCE_PRESENCE] = f"摄像头不可用: {error}"
            state = self._build_state()

        logger.warning(f"在场检测降级为无访客: {error}")
        self._notify(state)
        return state

    def _on_window_error(self, error: Exception) -> None:
        with self._lock:
            self._errors[SOURCE_WINDOW] = f"无法检测前台窗口: {error}"

    def _record_activation(self, result: ActivationResult) -> None:
        if result.success:
            self._errors.pop(SOURCE_ACTIVATION, None)
        elif result.error_kind is not None:
            self._errors[SOURCE_ACTIVATION] = _ACTIVATION_MESSAGES[result.error_kind]

    # ------------------------------------------------------------------
    # 安全人脸
    # ------------------------------------------------------------------

    def capture_safe_face(self, video_frame: Any, label: str = "") -> SafeFaceProfile:
        """
        从视频帧采集安全人脸并保存

        Args:
            video_frame: 视频帧
            label: 名称，为空时使用占位名

        Returns:
            新建的安全人脸档案

        Raises:
            ConfigurationError: 未配置帧检测器
            NoFaceDetectedError: 画面中没有可用人脸
        """
        if self._frame_detector is None:
            raise ConfigurationError("未配置帧检测器，无法采集安全人脸")

        descriptor = self._frame_detector.capture_embedding(video_frame)
        profile = normalize_safe_face({
            "label": label,
            "descriptor": list(descriptor),
            "created_at": self._clock(),
        })

        self._store.modify(lambda settings: _with_safe_faces(
            settings, [*settings.detection.safe_faces, profile],
        ))
        logger.info(f"已添加安全人脸: {profile.label} ({profile.id})")
        return profile

    def remove_safe_face(self, profile_id: str) -> bool:
        """
        删除安全人脸

        Args:
            profile_id: 档案 ID

        Returns:
            是否找到并删除
        """
        def without_profile(settings: AppSettings) -> Optional[AppSettings]:
            faces = [face for face in settings.detection.safe_faces if face.id != profile_id]
            if len(faces) == len(settings.detection.safe_faces):
                return None
            return _with_safe_faces(settings, faces)

        if self._store.modify(without_profile) is None:
            return False

        logger.info(f"已删除安全人脸: {profile_id}")
        return True

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _on_settings_changed(self, settings: AppSettings) -> None:
        """配置变更: 重新分类最近的窗口并调整采样间隔"""
        with self._lock:
            previous = self._settings
            self._settings = settings

            if (
                previous.detection.motion_region_enabled != settings.detection.motion_region_enabled
                or previous.detection.motion_region != settings.detection.motion_region
            ):
                self._presence_engine.reset()

            if self._active_app is not None:
                self._active_app = self._classifier.classify(
                    self._window,
                    settings.apps,
                    now=self._clock(),
                )
            state = self._build_state()

        if self._presence_monitor is not None:
            self._presence_monitor.reconfigure(settings.detection.sample_interval_ms)

        if settings is not previous:
            self._notify(state)

    def _run_trigger(self, settings: AppSettings) -> None:
        _, result = self._trigger_manager.maybe_trigger(
            self._active_app,
            settings,
            now=self._clock(),
        )
        if result is not None:
            self._record_activation(result)

    def _build_state(self) -> AutomationState:
        now = self._clock()
        detection = self._settings.detection
        return AutomationState(
            presence=self._presence,
            active_app=self._active_app,
            last_switch_at=self._trigger_manager.last_switch_at,
            cooldown_active=self._trigger_manager.is_cooldown_active(detection, now),
            errors=list(self._errors.values()),
            phase=self._trigger_manager.phase(detection, now),
            visitor_streak=self._trigger_manager.visitor_streak,
        )

    def _notify(self, state: AutomationState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception as e:
                logger.error(f"状态监听器执行失败: {type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # 统计
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """
        获取统计信息

        Returns:
            各组件统计信息的汇总
        """
        stats = {
            "presence": self._presence_engine.stats,
            "classifier": self._classifier.stats,
            "trigger": self._trigger_manager.stats,
            "activation": self._coordinator.stats,
            "listener_count": len(self._listeners),
        }
        if self._window_monitor is not None:
            stats["window_monitor"] = self._window_monitor.stats
        if self._presence_monitor is not None:
            stats["presence_monitor"] = self._presence_monitor.stats
        return stats

    def reset_stats(self) -> None:
        """重置所有组件的统计信息"""
        self._presence_engine.reset_stats()
        self._classifier.reset_stats()
        self._trigger_manager.reset_stats()
        self._coordinator.reset_stats()
        if self._window_monitor is not None:
            self._window_monitor.reset_stats()
        if self._presence_monitor is not None:
            self._presence_monitor.reset_stats()
