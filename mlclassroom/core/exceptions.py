"""
模型生命周期错误分类（封闭集合）

每个错误类型对应固定的 HTTP 状态码和面向用户的文案。
Provider 特有的失败信号只在 ErrorTranslator 中映射到这里，
其他组件只根据异常类型 / kind 做控制流判断，不做字符串匹配。
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from mlclassroom.config.constants import PROVIDER_DISPLAY_NAMES
from mlclassroom.core.enums import Operation, ProjectType


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    BAD_REQUEST = "BadRequest"
    INSUFFICIENT_CAPACITY = "InsufficientCapacity"
    CREDENTIALS_REJECTED = "CredentialsRejected"
    CREDENTIALS_MISSING = "CredentialsMissing"
    REMOTE_MODEL_MISSING = "RemoteModelMissing"
    RATE_LIMITED = "RateLimited"
    INSUFFICIENT_TRAINING_DATA = "InsufficientTrainingData"
    UNEXPECTED = "Unexpected"


class ModelLifecycleException(Exception):
    """所有对调用方可见错误的基类"""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(
        self,
        message: str | None = None,
        *,
        provider_detail: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        # 上游原始信息，仅用于日志，不返回给调用方
        self.provider_detail = provider_detail
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, message={self.message!r})"


class NotFoundException(ModelLifecycleException):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Not found"


class ForbiddenException(ModelLifecycleException):
    kind = ErrorKind.FORBIDDEN
    status_code = 403
    default_message = "Invalid access"


class InvalidRequestException(ModelLifecycleException):
    """本地校验失败，在任何网络调用之前抛出"""

    kind = ErrorKind.BAD_REQUEST
    status_code = 400
    default_message = "Missing data"


class InsufficientCapacityException(ModelLifecycleException):
    kind = ErrorKind.INSUFFICIENT_CAPACITY
    status_code = 409

    @classmethod
    def for_project_type(cls, project_type: ProjectType, **kwargs: Any) -> InsufficientCapacityException:
        provider = PROVIDER_DISPLAY_NAMES[project_type]
        return cls(
            "Your class already has created their maximum allowed number of models. "
            "Please let your teacher or group leader know that "
            f'"the {provider} service has no more room for new models"',
            **kwargs,
        )


class ProviderAuthException(ModelLifecycleException):
    """Provider 拒绝了已配置的凭据（401/403）"""

    kind = ErrorKind.CREDENTIALS_REJECTED
    status_code = 409
    default_message = (
        "The Watson credentials being used by your class were rejected. "
        "Please let your teacher or group leader know."
    )


class CredentialsMissingException(ModelLifecycleException):
    kind = ErrorKind.CREDENTIALS_MISSING
    status_code = 409

    @classmethod
    def for_project_type(cls, project_type: ProjectType, **kwargs: Any) -> CredentialsMissingException:
        return cls(
            f"No Watson credentials have been set up for training {project_type.value} projects. "
            "Please let your teacher or group leader know.",
            **kwargs,
        )


class RemoteModelMissingException(ModelLifecycleException):
    """训练服务上已不存在该模型（例如已自动过期），提示重新训练"""

    kind = ErrorKind.REMOTE_MODEL_MISSING
    status_code = 404
    default_message = (
        "Your machine learning model could not be found on the training server. Please try again"
    )


class ProviderRateLimitException(ModelLifecycleException):
    kind = ErrorKind.RATE_LIMITED
    status_code = 429

    def __init__(
        self,
        message: str | None = None,
        *,
        provider_detail: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, provider_detail=provider_detail)
        self.retry_after = retry_after

    @classmethod
    def for_project_type(cls, project_type: ProjectType, **kwargs: Any) -> ProviderRateLimitException:
        provider = PROVIDER_DISPLAY_NAMES[project_type]
        return cls(
            "Your class is making too many requests to create machine learning models "
            "at too fast a rate. "
            "Please stop now and let your teacher or group leader know that "
            f'"the {provider} service is currently rate limiting their API key"',
            **kwargs,
        )


class InsufficientTrainingDataException(ModelLifecycleException):
    kind = ErrorKind.INSUFFICIENT_TRAINING_DATA
    status_code = 400
    default_message = "Not enough training data to train the classifier"

    @classmethod
    def for_project_type(
        cls, project_type: ProjectType, **kwargs: Any
    ) -> InsufficientTrainingDataException:
        if project_type is ProjectType.IMAGES:
            return cls("Not enough images to train the classifier", **kwargs)
        return cls(**kwargs)


class UnexpectedProviderException(ModelLifecycleException):
    """无法识别的 Provider 失败，文案保持通用"""

    kind = ErrorKind.UNEXPECTED
    status_code = 500
    default_message = "Failed to communicate with the machine learning service"

    _OPERATION_MESSAGES: dict[Operation, str] = {
        Operation.STATUS: "Failed to check the status of the machine learning model",
        Operation.TRAIN: "Failed to train machine learning model",
        Operation.TEST: "Failed to test machine learning model",
        Operation.DELETE: "Failed to delete machine learning model",
    }

    @classmethod
    def for_operation(cls, operation: Operation, **kwargs: Any) -> UnexpectedProviderException:
        return cls(cls._OPERATION_MESSAGES.get(operation), **kwargs)


__all__ = [
    "ErrorKind",
    "ModelLifecycleException",
    "NotFoundException",
    "ForbiddenException",
    "InvalidRequestException",
    "InsufficientCapacityException",
    "ProviderAuthException",
    "CredentialsMissingException",
    "RemoteModelMissingException",
    "ProviderRateLimitException",
    "InsufficientTrainingDataException",
    "UnexpectedProviderException",
]
