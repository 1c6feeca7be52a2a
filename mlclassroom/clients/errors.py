"""
Provider 边界上的原始失败信号

Provider Strategy 内部只抛出 ProviderCallError（或 httpx 传输异常），
由 ErrorTranslator 统一映射到对外的错误分类。
"""

from __future__ import annotations

from mlclassroom.core.enums import ProjectType


class ProviderCallError(RuntimeError):
    """Provider HTTP 调用失败，携带状态码和上游响应便于分类"""

    def __init__(
        self,
        provider: ProjectType,
        status_code: int | None,
        message: str,
        *,
        response_text: str | None = None,
        response_headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.response_text = response_text
        self.response_headers = response_headers or {}

    def __repr__(self) -> str:
        return (
            f"ProviderCallError(provider={self.provider.value}, "
            f"status_code={self.status_code}, message={str(self)!r})"
        )
