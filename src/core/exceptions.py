"""
MoView 自定义异常

定义系统中使用的所有异常类，遵循层级结构便于精确捕获和处理错误。
"""

from __future__ import annotations


class MoViewError(Exception):
    """
    所有MoView异常的基类

    所有模块特定异常都应继承此类，以便统一捕获和处理。
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        初始化异常

        Args:
            message: 错误信息描述
            details: 可选的详细信息字典，用于调试
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | 详情: {self.details}"
        return self.message


class ConfigurationError(MoViewError):
    """
    配置相关错误

    当引擎缺少必需的协作组件或配置不完整时抛出。
    """
    pass


class SensorError(MoViewError):
    """
    传感器相关错误

    摄像头或检测后端相关错误的基类。
    """
    pass


class SensorUnavailableError(SensorError):
    """
    传感器不可用

    摄像头或检测器初始化/取流失败时抛出。在场状态回退为无访客，
    检测循环在下一次重新配置时重试。
    """
    pass


class NoFaceDetectedError(SensorError):
    """
    未检测到人脸

    采集安全人脸时画面中没有可用的人脸，报告给调用方，不会自动重试。
    """
    pass


class UnsupportedPlatformError(MoViewError):
    """
    平台不支持

    当前操作系统未实现窗口观察或应用激活时抛出，立即失败，不重试。
    """
    pass


class ActivationError(MoViewError):
    """
    应用激活错误

    切换到工作应用失败相关错误的基类。
    """
    pass


class ActivationFailedError(ActivationError):
    """
    单个目标激活失败

    目标不可达时抛出。非致命，协调器继续尝试下一个候选目标。
    """
    pass


class AllTargetsFailedError(ActivationError):
    """
    所有目标激活失败

    没有任何工作目标可以激活。不会启动冷却，下一个满足条件的检测周期会重试。
    """
    pass
