"""
应用配置

所有配置项从环境变量读取，未设置时使用 constants 中的默认值。
"""

from __future__ import annotations

import os

from mlclassroom.config.constants import HttpDefaults, ProviderDefaults, TenantDefaults


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是整数: {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是数字: {value!r}")


class Config:
    """运行时配置"""

    def __init__(self) -> None:
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./mlclassroom.db")

        # HTTP 客户端（Provider 调用的超时由这里统一限定）
        self.http_connect_timeout = _env_float("HTTP_CONNECT_TIMEOUT", HttpDefaults.CONNECT_TIMEOUT)
        self.http_read_timeout = _env_float("HTTP_READ_TIMEOUT", HttpDefaults.READ_TIMEOUT)
        self.http_write_timeout = _env_float("HTTP_WRITE_TIMEOUT", HttpDefaults.WRITE_TIMEOUT)
        self.http_pool_timeout = _env_float("HTTP_POOL_TIMEOUT", HttpDefaults.POOL_TIMEOUT)
        self.http_max_connections = _env_int("HTTP_MAX_CONNECTIONS", HttpDefaults.MAX_CONNECTIONS)
        self.http_keepalive_connections = _env_int(
            "HTTP_KEEPALIVE_CONNECTIONS", HttpDefaults.KEEPALIVE_CONNECTIONS
        )
        self.http_keepalive_expiry = _env_float(
            "HTTP_KEEPALIVE_EXPIRY", HttpDefaults.KEEPALIVE_EXPIRY
        )

        # Watson API 版本
        self.conversation_api_version = os.getenv(
            "CONVERSATION_API_VERSION", ProviderDefaults.CONVERSATION_API_VERSION
        )
        self.visual_recognition_api_version = os.getenv(
            "VISUAL_RECOGNITION_API_VERSION", ProviderDefaults.VISUAL_RECOGNITION_API_VERSION
        )

        # numbers 服务（服务级凭据，不属于任何班级）
        self.numbers_service_url = os.getenv("NUMBERS_SERVICE_URL", "http://localhost:8081")
        self.numbers_service_user = os.getenv("NUMBERS_SERVICE_USER", "")
        self.numbers_service_pass = os.getenv("NUMBERS_SERVICE_PASS", "")

        # 单套凭据容量
        self.conversation_models_per_credentials = _env_int(
            "CONVERSATION_MODELS_PER_CREDENTIALS",
            ProviderDefaults.CONVERSATION_MODELS_PER_CREDENTIALS,
        )
        self.visual_recognition_models_per_credentials = _env_int(
            "VISUAL_RECOGNITION_MODELS_PER_CREDENTIALS",
            ProviderDefaults.VISUAL_RECOGNITION_MODELS_PER_CREDENTIALS,
        )

        # 租户默认策略
        self.default_max_text_models = _env_int("DEFAULT_MAX_TEXT_MODELS", TenantDefaults.MAX_TEXT_MODELS)
        self.default_max_image_models = _env_int(
            "DEFAULT_MAX_IMAGE_MODELS", TenantDefaults.MAX_IMAGE_MODELS
        )
        self.default_text_expiry_hours = _env_int(
            "DEFAULT_TEXT_EXPIRY_HOURS", TenantDefaults.TEXT_CLASSIFIER_EXPIRY_HOURS
        )
        self.default_image_expiry_hours = _env_int(
            "DEFAULT_IMAGE_EXPIRY_HOURS", TenantDefaults.IMAGE_CLASSIFIER_EXPIRY_HOURS
        )


config = Config()
