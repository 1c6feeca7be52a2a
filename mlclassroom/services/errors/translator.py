"""
错误翻译器

将 Provider 特有的失败信号映射到封闭的错误分类。这是整个系统中
唯一对 Provider 响应文本做匹配的地方；纯逻辑，除日志外无副作用。
"""

from __future__ import annotations

import httpx

from mlclassroom.clients.errors import ProviderCallError
from mlclassroom.config.constants import PROVIDER_DISPLAY_NAMES
from mlclassroom.core.enums import Operation, ProjectType
from mlclassroom.core.error_utils import extract_error_message
from mlclassroom.core.exceptions import (
    InsufficientCapacityException,
    InsufficientTrainingDataException,
    ModelLifecycleException,
    ProviderAuthException,
    ProviderRateLimitException,
    RemoteModelMissingException,
    UnexpectedProviderException,
)
from mlclassroom.core.logger import logger
from mlclassroom.services.rate_limit.detector import detect_rate_limit

# 各 Provider 报告"容量已满"的文案片段（小写）
_CAPACITY_INDICATORS: dict[ProjectType, tuple[str, ...]] = {
    ProjectType.TEXT: (
        "maximum workspaces limit exceeded",
        "maximum number of workspaces",
        "workspace limit",
    ),
    ProjectType.IMAGES: (
        "can have only",
        "maximum number of classifiers",
        "classifier limit",
    ),
    ProjectType.NUMBERS: (),
}

# 各 Provider 报告"训练数据不足"的文案片段（小写）
_TRAINING_DATA_INDICATORS: dict[ProjectType, tuple[str, ...]] = {
    ProjectType.TEXT: (
        "not enough",
        "insufficient training data",
        "no training data",
    ),
    ProjectType.IMAGES: (
        "not enough images",
        "not enough",
        "no positive examples",
        "must have at least",
    ),
    ProjectType.NUMBERS: (
        "not enough",
        "no training data",
    ),
}

_AUTH_STATUS_CODES = frozenset({401, 403})


class ErrorTranslator:
    """Provider 错误 -> 错误分类"""

    def translate(
        self,
        error: Exception,
        *,
        provider: ProjectType,
        operation: Operation,
    ) -> ModelLifecycleException:
        """
        翻译一个 Provider 失败

        Args:
            error: Strategy 边界上捕获的原始异常
            provider: 产生错误的 Provider（按项目类型）
            operation: 正在执行的操作，决定未知错误的通用文案

        Returns:
            对应的 ModelLifecycleException（已是分类错误时原样返回）
        """
        if isinstance(error, ModelLifecycleException):
            return error

        provider_name = PROVIDER_DISPLAY_NAMES[provider]

        if isinstance(error, ProviderCallError):
            return self._translate_call_error(error, provider, provider_name, operation)

        if isinstance(error, httpx.TimeoutException):
            logger.error("[{}] {} 请求超时: {!r}", provider_name, operation.value, error)
        elif isinstance(error, httpx.RequestError):
            logger.error("[{}] {} 网络错误: {}", provider_name, operation.value, extract_error_message(error))
        else:
            logger.error(
                "[{}] {} 未知错误: {}: {}",
                provider_name,
                operation.value,
                type(error).__name__,
                extract_error_message(error),
            )
        return UnexpectedProviderException.for_operation(
            operation, provider_detail=extract_error_message(error)
        )

    def _translate_call_error(
        self,
        error: ProviderCallError,
        provider: ProjectType,
        provider_name: str,
        operation: Operation,
    ) -> ModelLifecycleException:
        # 非整数状态码无法参与分类，按缺失处理
        status_code = error.status_code if isinstance(error.status_code, int) else None
        detail = extract_error_message(error, status_code)
        text = f"{error} {error.response_text or ''}".lower()

        if status_code == 429:
            info = detect_rate_limit(error.response_headers, provider_name)
            logger.warning("[{}] {} 被限流: {}", provider_name, operation.value, info.describe())
            return ProviderRateLimitException.for_project_type(
                provider,
                provider_detail=f"{detail} ({info.describe()})",
                retry_after=info.retry_after,
            )

        # 容量不足的文案优先于状态码判断（部分 Provider 用 403 表示容量已满）
        if self._matches(text, _CAPACITY_INDICATORS[provider]):
            logger.warning("[{}] 容量已满: {}", provider_name, detail)
            return InsufficientCapacityException.for_project_type(provider, provider_detail=detail)

        if status_code in _AUTH_STATUS_CODES:
            logger.warning("[{}] 凭据被拒绝: {}", provider_name, detail)
            return ProviderAuthException(provider_detail=detail)

        if status_code == 404:
            logger.warning("[{}] 模型在 Provider 上不存在: {}", provider_name, detail)
            return RemoteModelMissingException(provider_detail=detail)

        if (
            status_code is not None
            and 400 <= status_code < 500
            and self._matches(text, _TRAINING_DATA_INDICATORS[provider])
        ):
            logger.warning("[{}] 训练数据不足: {}", provider_name, detail)
            return InsufficientTrainingDataException.for_project_type(
                provider, provider_detail=detail
            )

        logger.error("[{}] {} 无法识别的 Provider 错误: {}", provider_name, operation.value, detail)
        return UnexpectedProviderException.for_operation(operation, provider_detail=detail)

    @staticmethod
    def _matches(text: str, indicators: tuple[str, ...]) -> bool:
        return any(indicator in text for indicator in indicators)


__all__ = ["ErrorTranslator"]
