"""
统一日志系统 - 基于 loguru

日志级别策略:
- DEBUG: 调试信息，Provider 请求 URL、状态查询细节
- INFO:  模型生命周期事件（训练提交、删除、状态变更）
- WARNING: Provider 返回的可识别错误（限流、凭据被拒、模型不存在）
- ERROR: 无法识别的 Provider 错误（完整上游响应仅写入日志）

使用方式:
    from mlclassroom.core.logger import logger

    logger.info("消息")
    logger.warning("警告")
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from loguru import logger

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG").upper()

# 测试环境默认通过 LOG_DISABLE_FILE=true 关闭文件日志
DISABLE_FILE_LOG = os.getenv("LOG_DISABLE_FILE", "false").lower() == "true"

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

CONSOLE_FORMAT_DEV = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{message}</cyan>"
)

CONSOLE_FORMAT_PROD = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(
    level: str = LOG_LEVEL,
    *,
    production: bool = IS_PRODUCTION,
    file_logging: bool = not DISABLE_FILE_LOG,
    log_dir: Path | None = None,
) -> None:
    """
    (重新)配置 loguru sinks

    Args:
        level: 控制台日志级别
        production: 生产模式下关闭颜色和详细堆栈
        file_logging: 是否写入 logs/ 目录
        log_dir: 日志目录，默认为项目根目录下的 logs/
    """
    logger.remove()

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT_PROD if production else CONSOLE_FORMAT_DEV,
        level=level,
        colorize=not production,
        backtrace=not production,
        diagnose=not production,
    )

    if file_logging:
        target_dir = log_dir or PROJECT_ROOT / "logs"
        target_dir.mkdir(exist_ok=True)

        # enqueue=False: 同步写入，避免多进程信号量泄漏
        file_log_config = {
            "format": FILE_FORMAT,
            "rotation": "100 MB",
            "retention": "30 days",
            "compression": "gz",
            "enqueue": False,
            "encoding": "utf-8",
            "catch": True,
            "backtrace": not production,
            "diagnose": not production,
        }

        logger.add(  # type: ignore[call-overload]
            target_dir / "app.log",
            level="DEBUG",
            **file_log_config,
        )

        # Provider 未知错误单独归档，便于排查
        error_log_config = dict(file_log_config, rotation="50 MB")
        logger.add(  # type: ignore[call-overload]
            target_dir / "error.log",
            level="ERROR",
            **error_log_config,
        )


setup_logging()

# 第三方库噪音日志
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

__all__ = ["logger", "setup_logging"]
