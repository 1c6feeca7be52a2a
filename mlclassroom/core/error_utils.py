"""
错误消息处理工具函数
"""

from __future__ import annotations


def extract_error_message(error: Exception, status_code: int | None = None) -> str:
    """
    从异常中提取错误消息，优先使用上游原始响应（仅用于日志）

    Args:
        error: 异常对象
        status_code: 可选的 HTTP 状态码，用于构建更详细的错误消息

    Returns:
        错误消息字符串（原始 Provider 响应）
    """
    for attr in ("provider_detail", "response_text"):
        upstream = getattr(error, attr, None)
        if upstream and isinstance(upstream, str) and upstream.strip():
            if status_code is not None:
                return f"HTTP {status_code}: {upstream}"
            return upstream

    # str 可能为空，如 httpx 超时异常
    error_str = str(error) or repr(error)
    if status_code is not None:
        return f"HTTP {status_code}: {error_str}"
    return error_str


def extract_client_error_message(error: Exception, fallback: str = "Unexpected error") -> str:
    """
    从异常中提取可以返回给调用方的消息

    只信任已经过翻译的 message 属性，绝不回传上游原始内容。
    """
    message = getattr(error, "message", None)
    if message and isinstance(message, str) and message.strip():
        return message
    return fallback
