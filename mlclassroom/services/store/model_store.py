"""
模型存储

ModelStore 定义 Orchestrator 依赖的持久化接口；SqlModelStore 是基于
SQLAlchemy Session 的实现。每个方法自行提交，依赖数据库的行级原子性，
不做进程内加锁。
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from mlclassroom.config import config
from mlclassroom.core.enums import ClassifierStatus, ProjectType, ServiceType
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import (
    ClassifierRecord,
    Credentials,
    FieldSpec,
    Project,
    TenantPolicy,
)
from mlclassroom.models import database as db_models
from mlclassroom.utils.time_utils import ensure_utc, utc_now


class CredentialsInUseError(Exception):
    """仍有分类器记录引用该凭据时拒绝删除"""

    def __init__(self, credentials_id: str, classifier_count: int):
        super().__init__(
            f"credentials {credentials_id} are still used by {classifier_count} classifier(s)"
        )
        self.credentials_id = credentials_id
        self.classifier_count = classifier_count


class ModelStore(Protocol):
    """Orchestrator 使用的持久化接口"""

    def get_project(self, class_id: str, project_id: str) -> Project | None: ...

    def delete_project(self, project_id: str) -> None: ...

    def update_numbers_classifier(
        self, project_id: str, status: ClassifierStatus, created: datetime, updated: datetime
    ) -> None: ...

    def clear_numbers_classifier(self, project_id: str) -> None: ...

    def get_credentials(self, class_id: str, credentials_id: str) -> Credentials | None: ...

    def list_credentials(self, class_id: str, service_type: ServiceType) -> list[Credentials]: ...

    def count_classifiers_by_credentials(self, credentials_ids: Iterable[str]) -> dict[str, int]: ...

    def get_class_tenant(self, class_id: str) -> TenantPolicy: ...

    def count_tenant_classifiers(self, class_id: str, project_type: ProjectType) -> int: ...

    def list_classifiers(self, project_id: str) -> list[ClassifierRecord]: ...

    def get_classifier(self, project_id: str, classifier_id: str) -> ClassifierRecord | None: ...

    def store_classifier(self, class_id: str, record: ClassifierRecord) -> ClassifierRecord: ...

    def update_classifiers(self, records: Sequence[ClassifierRecord]) -> None: ...

    def delete_classifier(self, record_id: str) -> bool: ...

    def list_expired_classifiers(self, now: datetime) -> list[tuple[str, ClassifierRecord]]: ...


def _project_from_row(row: db_models.Project) -> Project:
    return Project(
        id=row.id,
        class_id=row.class_id,
        user_id=row.user_id,
        type=ProjectType(row.type),
        name=row.name,
        language=row.language,
        fields=[FieldSpec(name=f["name"], type=f.get("type", "number")) for f in row.fields or []],
        classifier_status=ClassifierStatus(row.classifier_status) if row.classifier_status else None,
        classifier_created=ensure_utc(row.classifier_created),
        classifier_updated=ensure_utc(row.classifier_updated),
    )


def _credentials_from_row(row: db_models.Credentials) -> Credentials:
    return Credentials(
        id=row.id,
        class_id=row.class_id,
        service_type=ServiceType(row.service_type),
        url=row.url,
        username=row.username,
        password=row.password,
        max_models=row.max_models,
    )


def _classifier_from_row(row: db_models.Classifier) -> ClassifierRecord:
    return ClassifierRecord(
        id=row.id,
        project_id=row.project_id,
        project_type=ProjectType(row.project_type),
        classifier_id=row.classifier_id,
        name=row.name,
        created=ensure_utc(row.created),  # type: ignore[arg-type]
        updated=ensure_utc(row.updated),  # type: ignore[arg-type]
        status=ClassifierStatus(row.status),
        credentials_id=row.credentials_id,
        expiry=ensure_utc(row.expiry),
        language=row.language,
        url=row.url,
    )


class SqlModelStore:
    """基于 SQLAlchemy 的 ModelStore 实现"""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------ 项目

    def store_project(
        self,
        user_id: str,
        class_id: str,
        project_type: ProjectType,
        name: str,
        language: str = "en",
        fields: Sequence[FieldSpec] | None = None,
    ) -> Project:
        row = db_models.Project(
            id=str(uuid.uuid4()),
            class_id=class_id,
            user_id=user_id,
            type=project_type.value,
            name=name,
            language=language,
            fields=[{"name": f.name, "type": f.type} for f in fields or []],
        )
        self.db.add(row)
        self.db.commit()
        return _project_from_row(row)

    def get_project(self, class_id: str, project_id: str) -> Project | None:
        row = (
            self.db.query(db_models.Project)
            .filter(db_models.Project.id == project_id, db_models.Project.class_id == class_id)
            .first()
        )
        return _project_from_row(row) if row else None

    def delete_project(self, project_id: str) -> None:
        row = self.db.get(db_models.Project, project_id)
        if row is None:
            return
        # relationship cascade 删除全部分类器记录
        self.db.delete(row)
        self.db.commit()

    def update_numbers_classifier(
        self, project_id: str, status: ClassifierStatus, created: datetime, updated: datetime
    ) -> None:
        row = self.db.get(db_models.Project, project_id)
        if row is None:
            return
        row.classifier_status = status.value
        row.classifier_created = created
        row.classifier_updated = updated
        self.db.commit()

    def clear_numbers_classifier(self, project_id: str) -> None:
        row = self.db.get(db_models.Project, project_id)
        if row is None:
            return
        row.classifier_status = None
        row.classifier_created = None
        row.classifier_updated = None
        self.db.commit()

    # ------------------------------------------------------------------ 凭据

    def store_credentials(
        self,
        class_id: str,
        service_type: ServiceType,
        url: str,
        username: str,
        password: str,
        max_models: int | None = None,
        credentials_id: str | None = None,
    ) -> Credentials:
        row = db_models.Credentials(
            id=credentials_id or str(uuid.uuid4()),
            class_id=class_id,
            service_type=service_type.value,
            url=url,
            username=username,
            password=password,
            max_models=max_models,
            created_at=utc_now(),
        )
        self.db.add(row)
        self.db.commit()
        return _credentials_from_row(row)

    def get_credentials(self, class_id: str, credentials_id: str) -> Credentials | None:
        row = (
            self.db.query(db_models.Credentials)
            .filter(
                db_models.Credentials.id == credentials_id,
                db_models.Credentials.class_id == class_id,
            )
            .first()
        )
        return _credentials_from_row(row) if row else None

    def list_credentials(self, class_id: str, service_type: ServiceType) -> list[Credentials]:
        rows = (
            self.db.query(db_models.Credentials)
            .filter(
                db_models.Credentials.class_id == class_id,
                db_models.Credentials.service_type == service_type.value,
            )
            .order_by(db_models.Credentials.created_at.asc(), db_models.Credentials.id.asc())
            .all()
        )
        return [_credentials_from_row(row) for row in rows]

    def count_classifiers_by_credentials(self, credentials_ids: Iterable[str]) -> dict[str, int]:
        ids = list(credentials_ids)
        counts = {credentials_id: 0 for credentials_id in ids}
        if not ids:
            return counts
        rows = (
            self.db.query(db_models.Classifier.credentials_id, func.count(db_models.Classifier.id))
            .filter(db_models.Classifier.credentials_id.in_(ids))
            .group_by(db_models.Classifier.credentials_id)
            .all()
        )
        for credentials_id, count in rows:
            counts[credentials_id] = int(count)
        return counts

    def delete_credentials(self, credentials_id: str) -> None:
        """
        删除凭据

        Raises:
            CredentialsInUseError: 仍有分类器记录引用该凭据
        """
        in_use = self.count_classifiers_by_credentials([credentials_id])[credentials_id]
        if in_use:
            raise CredentialsInUseError(credentials_id, in_use)
        row = self.db.get(db_models.Credentials, credentials_id)
        if row is None:
            return
        self.db.delete(row)
        self.db.commit()

    # ------------------------------------------------------------------ 租户策略

    def get_class_tenant(self, class_id: str) -> TenantPolicy:
        row = self.db.get(db_models.ClassTenant, class_id)
        if row is None:
            return TenantPolicy(
                class_id=class_id,
                max_text_models=config.default_max_text_models,
                max_image_models=config.default_max_image_models,
                text_classifier_expiry_hours=config.default_text_expiry_hours,
                image_classifier_expiry_hours=config.default_image_expiry_hours,
            )
        return TenantPolicy(
            class_id=row.class_id,
            max_text_models=row.max_text_models,
            max_image_models=row.max_image_models,
            text_classifier_expiry_hours=row.text_classifier_expiry_hours,
            image_classifier_expiry_hours=row.image_classifier_expiry_hours,
        )

    def store_class_tenant(self, policy: TenantPolicy) -> None:
        row = self.db.get(db_models.ClassTenant, policy.class_id)
        if row is None:
            row = db_models.ClassTenant(class_id=policy.class_id)
            self.db.add(row)
        row.max_text_models = policy.max_text_models
        row.max_image_models = policy.max_image_models
        row.text_classifier_expiry_hours = policy.text_classifier_expiry_hours
        row.image_classifier_expiry_hours = policy.image_classifier_expiry_hours
        self.db.commit()

    # ------------------------------------------------------------------ 分类器

    def count_tenant_classifiers(self, class_id: str, project_type: ProjectType) -> int:
        return (
            self.db.query(func.count(db_models.Classifier.id))
            .filter(
                db_models.Classifier.class_id == class_id,
                db_models.Classifier.project_type == project_type.value,
            )
            .scalar()
            or 0
        )

    def list_classifiers(self, project_id: str) -> list[ClassifierRecord]:
        rows = (
            self.db.query(db_models.Classifier)
            .filter(db_models.Classifier.project_id == project_id)
            .order_by(db_models.Classifier.created.desc())
            .all()
        )
        return [_classifier_from_row(row) for row in rows]

    def get_classifier(self, project_id: str, classifier_id: str) -> ClassifierRecord | None:
        row = (
            self.db.query(db_models.Classifier)
            .filter(
                db_models.Classifier.project_id == project_id,
                db_models.Classifier.classifier_id == classifier_id,
            )
            .order_by(db_models.Classifier.created.desc())
            .first()
        )
        return _classifier_from_row(row) if row else None

    def store_classifier(self, class_id: str, record: ClassifierRecord) -> ClassifierRecord:
        row = db_models.Classifier(
            id=record.id,
            project_id=record.project_id,
            class_id=class_id,
            project_type=record.project_type.value,
            classifier_id=record.classifier_id,
            credentials_id=record.credentials_id,
            name=record.name,
            language=record.language,
            url=record.url,
            status=record.status.value,
            created=record.created,
            updated=record.updated,
            expiry=record.expiry,
        )
        self.db.add(row)
        self.db.commit()
        logger.debug("已保存分类器记录: {} ({})", record.classifier_id, record.project_type.value)
        return _classifier_from_row(row)

    def update_classifiers(self, records: Sequence[ClassifierRecord]) -> None:
        """批量更新状态类字段（status / updated / expiry / name / url）"""
        if not records:
            return
        for record in records:
            row = self.db.get(db_models.Classifier, record.id)
            if row is None:
                continue
            row.classifier_id = record.classifier_id
            row.status = record.status.value
            row.updated = record.updated
            row.expiry = record.expiry
            row.name = record.name
            row.url = record.url
        self.db.commit()

    def delete_classifier(self, record_id: str) -> bool:
        row = self.db.get(db_models.Classifier, record_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def list_expired_classifiers(self, now: datetime) -> list[tuple[str, ClassifierRecord]]:
        rows = (
            self.db.query(db_models.Classifier)
            .filter(
                db_models.Classifier.expiry.isnot(None),
                db_models.Classifier.expiry <= now,
            )
            .order_by(db_models.Classifier.expiry.asc())
            .all()
        )
        return [(row.class_id, _classifier_from_row(row)) for row in rows]


__all__ = ["ModelStore", "SqlModelStore", "CredentialsInUseError"]
