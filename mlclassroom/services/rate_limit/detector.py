"""
速率限制检测器 - 解析 Provider 429 响应头，提取重试提示

IBM Cloud 的 Watson 服务在限流时返回 Retry-After 以及 X-RateLimit-* 头；
numbers 服务只返回 Retry-After。本模块不做任何自动重试，只为错误对象
补充 retry_after 等信息，由调用方决定是否、何时重试。
"""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from mlclassroom.core.logger import logger


class RateLimitScope:
    """速率限制范围"""

    WINDOW = "window"  # 时间窗口内请求数耗尽（remaining == 0）
    BURST = "burst"  # 短时突发，短暂等待即可
    UNKNOWN = "unknown"


class RateLimitInfo:
    """速率限制信息"""

    def __init__(
        self,
        scope: str,
        retry_after: int | None = None,
        limit_value: int | None = None,
        remaining: int | None = None,
        reset_at: datetime | None = None,
        raw_headers: dict[str, str] | None = None,
    ):
        self.scope = scope
        self.retry_after = retry_after  # 需要等待的秒数
        self.limit_value = limit_value
        self.remaining = remaining
        self.reset_at = reset_at
        self.raw_headers = raw_headers or {}

    def describe(self) -> str:
        """用于日志 / provider_detail 的简短描述"""
        parts = [f"scope={self.scope}"]
        if self.retry_after is not None:
            parts.append(f"retry_after={self.retry_after}s")
        if self.limit_value is not None:
            parts.append(f"limit={self.limit_value}")
        if self.remaining is not None:
            parts.append(f"remaining={self.remaining}")
        if self.reset_at is not None:
            parts.append(f"reset_at={self.reset_at.isoformat()}")
        return ", ".join(parts)

    def __repr__(self) -> str:
        return f"RateLimitInfo({self.describe()})"


class RateLimitDetector:
    """
    速率限制检测器

    支持的头部：
    - retry-after: 秒数或 HTTP 日期
    - x-ratelimit-limit / x-ratelimit-remaining / x-ratelimit-reset（秒数或 epoch）
    """

    # 小于该值的 retry-after 视为突发限制
    BURST_RETRY_AFTER_SECONDS = 5

    @staticmethod
    def detect_from_headers(
        headers: dict[str, str] | None,
        provider_name: str = "unknown",
    ) -> RateLimitInfo:
        headers_lower = {k.lower(): v for k, v in (headers or {}).items()}

        retry_after = RateLimitDetector._parse_retry_after(headers_lower)
        limit_value = RateLimitDetector._parse_int(headers_lower.get("x-ratelimit-limit"))
        remaining = RateLimitDetector._parse_int(headers_lower.get("x-ratelimit-remaining"))
        reset_at = RateLimitDetector._parse_reset(headers_lower.get("x-ratelimit-reset"))

        # 没有 retry-after 但有 reset 时间，推算等待秒数
        if retry_after is None and reset_at is not None:
            retry_after = max(int((reset_at - datetime.now(timezone.utc)).total_seconds()), 0)

        if remaining is not None and remaining == 0:
            scope = RateLimitScope.WINDOW
        elif (
            remaining is None
            and retry_after is not None
            and retry_after <= RateLimitDetector.BURST_RETRY_AFTER_SECONDS
        ):
            scope = RateLimitScope.BURST
        elif retry_after is not None or limit_value is not None:
            scope = RateLimitScope.WINDOW
        else:
            scope = RateLimitScope.UNKNOWN

        info = RateLimitInfo(
            scope=scope,
            retry_after=retry_after,
            limit_value=limit_value,
            remaining=remaining,
            reset_at=reset_at,
            raw_headers=headers_lower,
        )
        logger.info("[{}] 429 限流分析: {}", provider_name, info.describe())
        return info

    @staticmethod
    def _parse_retry_after(headers: dict[str, str]) -> int | None:
        """解析 Retry-After 头"""
        retry_after_str = headers.get("retry-after")
        if not retry_after_str:
            return None

        try:
            return max(int(retry_after_str), 0)
        except ValueError:
            # HTTP 日期格式
            try:
                retry_date = parsedate_to_datetime(retry_after_str)
            except (TypeError, ValueError):
                return None
            if retry_date.tzinfo is None:
                retry_date = retry_date.replace(tzinfo=timezone.utc)
            delta = retry_date - datetime.now(timezone.utc)
            return max(int(delta.total_seconds()), 0)

    @staticmethod
    def _parse_reset(value: str | None) -> datetime | None:
        """
        解析 x-ratelimit-reset

        大于 10^9 视为 epoch 秒，否则视为相对秒数。
        """
        seconds = RateLimitDetector._parse_int(value)
        if seconds is None:
            return None
        if seconds > 1_000_000_000:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        return datetime.fromtimestamp(
            datetime.now(timezone.utc).timestamp() + seconds, tz=timezone.utc
        )

    @staticmethod
    def _parse_int(value: str | None) -> int | None:
        """安全解析整数"""
        if not value:
            return None
        try:
            return int(value)
        except (ValueError, TypeError):
            return None


def detect_rate_limit(
    headers: dict[str, str] | None,
    provider_name: str = "unknown",
) -> RateLimitInfo:
    """检测速率限制信息（便捷函数）"""
    return RateLimitDetector.detect_from_headers(headers, provider_name)
