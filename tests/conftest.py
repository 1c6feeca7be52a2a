import os

os.environ.setdefault("LOG_DISABLE_FILE", "true")

import uuid
from collections.abc import Iterator
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm import Session, sessionmaker

from mlclassroom.core.enums import ClassifierStatus, ProjectType, ServiceType
from mlclassroom.core.training_types import ClassifierRecord, Credentials, FieldSpec, Project
from mlclassroom.database.database import create_db_engine
from mlclassroom.models.database import Base
from mlclassroom.services.store import SqlModelStore
from mlclassroom.utils.time_utils import utc_now


@pytest.fixture
def db_session() -> Iterator[Session]:
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db_session: Session) -> SqlModelStore:
    return SqlModelStore(db_session)


def make_project(
    store: SqlModelStore,
    project_type: ProjectType,
    *,
    class_id: str = "classid",
    user_id: str = "userid",
    name: str = "my project",
    fields: list[FieldSpec] | None = None,
) -> Project:
    return store.store_project(user_id, class_id, project_type, name, "en", fields)


def make_credentials(
    store: SqlModelStore,
    service_type: ServiceType,
    *,
    class_id: str = "classid",
    url: str = "https://watson.example.com/api",
    max_models: int | None = None,
) -> Credentials:
    return store.store_credentials(
        class_id,
        service_type,
        url,
        username=f"user-{uuid.uuid4().hex[:8]}",
        password="secret",
        max_models=max_models,
    )


def make_record(
    project: Project,
    credentials: Credentials | None,
    *,
    classifier_id: str | None = None,
    status: ClassifierStatus = ClassifierStatus.TRAINING,
    created: datetime | None = None,
    updated: datetime | None = None,
    expiry: datetime | None = None,
) -> ClassifierRecord:
    created = created or utc_now().replace(microsecond=0)
    return ClassifierRecord(
        id=str(uuid.uuid4()),
        project_id=project.id,
        project_type=project.type,
        classifier_id=classifier_id or uuid.uuid4().hex[:10],
        name=project.name,
        created=created,
        updated=updated or created,
        status=status,
        credentials_id=credentials.id if credentials else None,
        expiry=expiry if expiry is not None else created + timedelta(hours=24),
        language="en" if project.type is ProjectType.TEXT else None,
    )


class FakeStrategy:
    """替代真实 Provider 的 Strategy，方法均为 AsyncMock"""

    def __init__(self, project_type: ProjectType) -> None:
        self.project_type = project_type
        self.query_statuses = AsyncMock(side_effect=lambda _cid, records, _creds: list(records))
        self.train = AsyncMock()
        self.test = AsyncMock(return_value=[])
        self.delete = AsyncMock(return_value=None)


@pytest.fixture
def fake_strategies() -> dict[ProjectType, FakeStrategy]:
    return {project_type: FakeStrategy(project_type) for project_type in ProjectType}
