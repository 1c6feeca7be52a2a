"""
凭据解析

训练路径：在班级配置的多套凭据中选择一套未满额的。
测试 / 删除路径：按显式 ID 在班级范围内查找，防止跨班级使用凭据。
"""

from __future__ import annotations

from collections.abc import Iterable

from mlclassroom.config import config
from mlclassroom.core.enums import ServiceType
from mlclassroom.core.exceptions import NotFoundException
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import CredentialCandidate, Credentials
from mlclassroom.services.store.model_store import ModelStore


def default_capacity(service_type: ServiceType) -> int:
    """单套凭据的默认模型容量"""
    if service_type is ServiceType.CONVERSATION:
        return config.conversation_models_per_credentials
    return config.visual_recognition_models_per_credentials


class CredentialResolver:
    def __init__(self, store: ModelStore) -> None:
        self.store = store

    def candidates(self, class_id: str, service_type: ServiceType) -> list[CredentialCandidate]:
        """列出班级某服务类型的全部凭据及其占用情况（按创建顺序）"""
        credentials = self.store.list_credentials(class_id, service_type)
        if not credentials:
            return []
        usage = self.store.count_classifiers_by_credentials(c.id for c in credentials)
        return [
            CredentialCandidate(
                credentials=c,
                models_in_use=usage.get(c.id, 0),
                capacity=c.max_models if c.max_models is not None else default_capacity(service_type),
            )
            for c in credentials
        ]

    def resolve(
        self,
        class_id: str,
        service_type: ServiceType,
        credentials_id: str | None = None,
    ) -> Credentials:
        """
        解析一套凭据

        Args:
            class_id: 班级 ID（租户）
            service_type: 凭据服务类型
            credentials_id: 显式指定的凭据 ID（测试 / 删除路径）

        Raises:
            NotFoundException: 凭据不存在、属于其他班级或服务类型不匹配
        """
        if credentials_id:
            credentials = self.store.get_credentials(class_id, credentials_id)
            if credentials is None or credentials.service_type is not service_type:
                logger.warning("班级 {} 中不存在凭据 {}", class_id, credentials_id)
                raise NotFoundException()
            return credentials

        candidates = self.candidates(class_id, service_type)
        if not candidates:
            raise NotFoundException()
        for candidate in candidates:
            if not candidate.exhausted:
                return candidate.credentials
        return candidates[0].credentials

    def resolve_many(self, class_id: str, credentials_ids: Iterable[str]) -> dict[str, Credentials]:
        """批量解析，无法解析的 ID 直接跳过"""
        resolved: dict[str, Credentials] = {}
        for credentials_id in set(credentials_ids):
            credentials = self.store.get_credentials(class_id, credentials_id)
            if credentials is not None:
                resolved[credentials_id] = credentials
        return resolved


__all__ = ["CredentialResolver", "default_capacity"]
