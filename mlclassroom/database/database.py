"""
数据库连接管理
"""

from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mlclassroom.config import config
from mlclassroom.core.logger import logger
from mlclassroom.models.database import Base

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    创建数据库引擎

    SQLite 需要显式开启外键约束；内存库使用 StaticPool 保证同一连接。
    """
    url = database_url or config.database_url
    kwargs: dict = {"future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_db(database_url: str | None = None) -> Engine:
    """初始化全局引擎和会话工厂，并创建缺失的表"""
    global _engine, _session_factory
    _engine = create_db_engine(database_url)
    _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(_engine)
    logger.info("数据库已初始化: {}", _engine.url.render_as_string(hide_password=True))
    return _engine


def create_session() -> Session:
    """创建新的数据库会话（调用方负责关闭）"""
    if _session_factory is None:
        init_db()
    assert _session_factory is not None  # noqa: S101
    return _session_factory()


def get_db() -> Iterator[Session]:
    """FastAPI 依赖：每个请求一个会话"""
    db = create_session()
    try:
        yield db
    finally:
        db.close()
