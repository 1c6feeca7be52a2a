"""应用入口"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mlclassroom.api.errors import register_exception_handlers
from mlclassroom.api.models.routes import router as models_router
from mlclassroom.clients.http_client import close_http_clients
from mlclassroom.config import config
from mlclassroom.core.logger import logger
from mlclassroom.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    logger.info("服务启动: environment={}", config.environment)
    try:
        yield
    finally:
        await close_http_clients()
        logger.info("服务已停止")


def create_app() -> FastAPI:
    app = FastAPI(title="mlclassroom", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(models_router)
    return app


app = create_app()
