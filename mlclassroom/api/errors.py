"""
全局异常处理

错误分类 -> HTTP 状态码的唯一映射点，响应体统一为 {"error": "<message>"}。
"""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mlclassroom.core.error_utils import extract_client_error_message
from mlclassroom.core.exceptions import (
    InvalidRequestException,
    ModelLifecycleException,
    ProviderRateLimitException,
    UnexpectedProviderException,
)
from mlclassroom.core.logger import logger


async def model_lifecycle_exception_handler(
    request: Request, exc: ModelLifecycleException
) -> JSONResponse:
    if isinstance(exc, UnexpectedProviderException):
        logger.error(
            "{} {} 失败: {} (detail={})",
            request.method,
            request.url.path,
            exc.message,
            exc.provider_detail,
        )
    else:
        logger.info("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.kind.value)

    headers: dict[str, str] = {}
    if isinstance(exc, ProviderRateLimitException) and exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": extract_client_error_message(exc)},
        headers=headers or None,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.debug("请求体校验失败: {} {}", request.url.path, exc.errors())
    error = InvalidRequestException()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ModelLifecycleException, model_lifecycle_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


__all__ = ["register_exception_handlers"]
