"""
模型生命周期内部表示

与数据库 ORM 解耦的领域对象：Store 负责 ORM <-> dataclass 转换，
Provider Strategy 和 Orchestrator 只处理这里的类型。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from mlclassroom.core.enums import ClassifierStatus, ProjectType, ServiceType


@dataclass(frozen=True)
class FieldSpec:
    """numbers 项目的字段定义"""

    name: str
    type: str = "number"


@dataclass
class Project:
    id: str
    class_id: str
    user_id: str
    type: ProjectType
    name: str
    language: str = "en"
    fields: list[FieldSpec] = field(default_factory=list)
    # numbers 项目自身即分类器，以下字段记录其训练状态
    classifier_status: ClassifierStatus | None = None
    classifier_created: datetime | None = None
    classifier_updated: datetime | None = None


@dataclass(frozen=True)
class Credentials:
    id: str
    class_id: str
    service_type: ServiceType
    url: str
    username: str
    password: str
    max_models: int | None = None


@dataclass(frozen=True)
class TenantPolicy:
    """班级级别的训练策略"""

    class_id: str
    max_text_models: int
    max_image_models: int
    text_classifier_expiry_hours: int
    image_classifier_expiry_hours: int

    def max_models(self, project_type: ProjectType) -> int | None:
        if project_type is ProjectType.TEXT:
            return self.max_text_models
        if project_type is ProjectType.IMAGES:
            return self.max_image_models
        return None

    def expiry_hours(self, project_type: ProjectType) -> int | None:
        if project_type is ProjectType.TEXT:
            return self.text_classifier_expiry_hours
        if project_type is ProjectType.IMAGES:
            return self.image_classifier_expiry_hours
        return None


@dataclass(frozen=True)
class CredentialCandidate:
    """一套可用于训练的凭据及其当前占用情况"""

    credentials: Credentials
    models_in_use: int
    capacity: int

    @property
    def exhausted(self) -> bool:
        return self.models_in_use >= self.capacity


@dataclass
class ClassifierRecord:
    """
    一个已训练（或训练中）的模型实例

    project_type 是变体标签：numbers 记录没有 credentials_id / expiry，
    且 classifier_id 等于项目 ID。
    """

    id: str
    project_id: str
    project_type: ProjectType
    classifier_id: str
    name: str
    created: datetime
    updated: datetime
    status: ClassifierStatus = ClassifierStatus.TRAINING
    credentials_id: str | None = None
    expiry: datetime | None = None
    language: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class Classification:
    """一次测试请求的单条结果（不持久化）"""

    class_name: str
    confidence: float
    classifier_timestamp: datetime


@dataclass(frozen=True)
class TestPayload:
    """测试请求数据，由 Orchestrator 在调用 Provider 之前校验"""

    __test__ = False  # 避免 pytest 将其当作测试类收集

    text: str | None = None
    image_url: str | None = None
    image_data: bytes | None = None
    numbers: list[float] | None = None


__all__ = [
    "FieldSpec",
    "Project",
    "Credentials",
    "TenantPolicy",
    "CredentialCandidate",
    "ClassifierRecord",
    "Classification",
    "TestPayload",
]
