"""
时间处理工具函数

数据库（尤其是 SQLite）可能返回不带时区的 datetime，统一视为 UTC。
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """无时区的 datetime 视为 UTC，带时区的转换到 UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    解析 Provider 返回的时间戳

    支持 ISO 8601 字符串（含 Z 后缀）和 datetime，无法解析时返回 None。
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def format_timestamp(value: datetime | None) -> str | None:
    """格式化为毫秒精度的 ISO 8601 UTC 字符串，例如 2017-05-04T12:01:00.000Z"""
    if value is None:
        return None
    utc_value = ensure_utc(value)
    assert utc_value is not None  # noqa: S101
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
