"""
数据库 ORM 模型

表结构：
- projects:       项目（numbers 项目同时保存其唯一分类器的状态）
- credentials:    班级配置的 Watson 凭据，可配置多套以分摊配额
- class_tenants:  班级级别的训练策略
- classifiers:    text / images 项目训练出的模型记录
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    class_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    name = Column(String(200), nullable=False)
    language = Column(String(10), nullable=False, default="en")
    fields = Column(JSON, nullable=False, default=list)

    # numbers 项目的分类器状态
    classifier_status = Column(String(20), nullable=True)
    classifier_created = Column(DateTime(timezone=True), nullable=True)
    classifier_updated = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    classifiers = relationship(
        "Classifier",
        back_populates="project",
        cascade="all, delete-orphan",
    )


class Credentials(Base):
    __tablename__ = "credentials"

    id = Column(String(36), primary_key=True, default=_uuid)
    class_id = Column(String(36), nullable=False, index=True)
    service_type = Column(String(20), nullable=False)
    url = Column(String(500), nullable=False)
    username = Column(String(200), nullable=False)
    password = Column(String(200), nullable=False)
    # NULL 表示使用该服务类型的默认容量
    max_models = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    classifiers = relationship("Classifier", back_populates="credentials")

    __table_args__ = (Index("ix_credentials_class_service", "class_id", "service_type"),)


class ClassTenant(Base):
    __tablename__ = "class_tenants"

    class_id = Column(String(36), primary_key=True)
    max_text_models = Column(Integer, nullable=False)
    max_image_models = Column(Integer, nullable=False)
    text_classifier_expiry_hours = Column(Integer, nullable=False)
    image_classifier_expiry_hours = Column(Integer, nullable=False)


class Classifier(Base):
    __tablename__ = "classifiers"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id = Column(String(36), nullable=False, index=True)
    project_type = Column(String(20), nullable=False)
    # Provider 分配的 ID（workspace_id / classifier_id）
    classifier_id = Column(String(200), nullable=False)
    credentials_id = Column(
        String(36), ForeignKey("credentials.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    language = Column(String(10), nullable=True)
    url = Column(String(2000), nullable=True)
    status = Column(String(20), nullable=False)
    created = Column(DateTime(timezone=True), nullable=False)
    updated = Column(DateTime(timezone=True), nullable=False)
    expiry = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="classifiers")
    credentials = relationship("Credentials", back_populates="classifiers")

    __table_args__ = (Index("ix_classifiers_project_classifier", "project_id", "classifier_id"),)


__all__ = ["Base", "Project", "Credentials", "ClassTenant", "Classifier"]
