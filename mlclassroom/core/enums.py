"""
模型生命周期相关枚举

ProjectType 是一个封闭集合，决定使用哪个 Provider Strategy。
"""

from enum import Enum


class ProjectType(str, Enum):
    """项目类型 - 决定训练使用的 Provider"""

    TEXT = "text"  # Watson Assistant
    IMAGES = "images"  # Watson Visual Recognition
    NUMBERS = "numbers"  # 内部 numbers 服务


class ServiceType(str, Enum):
    """凭据对应的 Watson 服务类型"""

    CONVERSATION = "conv"
    VISUAL_RECOGNITION = "visrec"


class ClassifierStatus(str, Enum):
    """统一的分类器状态（各 Provider 的状态词汇在边界处映射到这里）"""

    TRAINING = "Training"
    AVAILABLE = "Available"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class UserRole(str, Enum):
    STUDENT = "student"
    SUPERVISOR = "supervisor"


class Operation(str, Enum):
    """Provider 操作类型（用于错误翻译时选择通用错误文案）"""

    STATUS = "status"
    TRAIN = "train"
    TEST = "test"
    DELETE = "delete"


__all__ = ["ProjectType", "ServiceType", "ClassifierStatus", "UserRole", "Operation"]
