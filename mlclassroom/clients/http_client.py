"""
全局HTTP客户端池管理
避免每次 Provider 调用都创建新的 AsyncClient

1. 默认客户端：所有 Provider Strategy 共享，keep-alive 复用连接
2. 超时统一由配置限定，Provider 无响应时不会无限挂起
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from mlclassroom.config import config
from mlclassroom.core.logger import logger

# 模块级锁，避免延迟初始化的竞态条件
_default_client_lock = asyncio.Lock()


def build_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.http_connect_timeout,
        read=config.http_read_timeout,
        write=config.http_write_timeout,
        pool=config.http_pool_timeout,
    )


def build_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=config.http_max_connections,
        max_keepalive_connections=config.http_keepalive_connections,
        keepalive_expiry=config.http_keepalive_expiry,
    )


class HTTPClientPool:
    """
    全局HTTP客户端池单例

    管理可重用的 httpx.AsyncClient 实例
    """

    _instance: HTTPClientPool | None = None
    _default_client: httpx.AsyncClient | None = None

    def __new__(cls) -> "HTTPClientPool":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def _create_client(cls, **kwargs: Any) -> httpx.AsyncClient:
        client_config: dict[str, Any] = {
            "timeout": build_timeout(),
            "limits": build_limits(),
            "follow_redirects": True,
        }
        client_config.update(kwargs)
        return httpx.AsyncClient(**client_config)

    @classmethod
    async def get_default_client_async(cls) -> httpx.AsyncClient:
        """获取默认的HTTP客户端（异步安全版本）"""
        if cls._default_client is not None:
            return cls._default_client

        async with _default_client_lock:
            # 双重检查，避免重复创建
            if cls._default_client is None:
                cls._default_client = cls._create_client()
                logger.info(
                    f"全局HTTP客户端池已初始化: "
                    f"max_connections={config.http_max_connections}, "
                    f"keepalive={config.http_keepalive_connections}, "
                    f"read_timeout={config.http_read_timeout}s"
                )
        return cls._default_client

    @classmethod
    async def close_all(cls) -> None:
        """关闭所有客户端（应用关闭时调用）"""
        if cls._default_client is not None:
            await cls._default_client.aclose()
            cls._default_client = None
            logger.info("全局HTTP客户端已关闭")


async def get_http_client() -> httpx.AsyncClient:
    """获取默认HTTP客户端的便捷函数"""
    return await HTTPClientPool.get_default_client_async()


async def close_http_clients() -> None:
    await HTTPClientPool.close_all()
