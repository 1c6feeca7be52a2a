"""
数值项目 Provider：内部 numbers 训练服务

训练是同步的，返回时模型已可用。分类器与项目一一对应，
classifier_id 即项目 ID；认证使用服务级配置而非班级凭据。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

import httpx

from mlclassroom.config import config
from mlclassroom.core.enums import ClassifierStatus, ProjectType
from mlclassroom.core.training_types import (
    Classification,
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.provider.base import ProviderStrategy
from mlclassroom.services.provider.status_mapping import NUMBERS_STATUS_MAP
from mlclassroom.utils.time_utils import parse_timestamp, utc_now


class NumbersStrategy(ProviderStrategy):
    """numbers 服务模型生命周期"""

    project_type = ProjectType.NUMBERS
    status_map = NUMBERS_STATUS_MAP

    @staticmethod
    def _auth() -> httpx.BasicAuth | None:
        if not config.numbers_service_user:
            return None
        return httpx.BasicAuth(config.numbers_service_user, config.numbers_service_pass)

    @staticmethod
    def _model_url(project_id: str) -> str:
        return f"{config.numbers_service_url.rstrip('/')}/api/models/{project_id}"

    async def query_statuses(
        self,
        class_id: str,
        records: Sequence[ClassifierRecord],
        credentials_by_id: Mapping[str, Credentials],
    ) -> list[ClassifierRecord]:
        # 状态在训练时已同步确定，保存在项目上，无需远端查询
        return list(records)

    async def _fetch_status(
        self, credentials: Credentials, record: ClassifierRecord
    ) -> tuple[ClassifierStatus, datetime | None]:
        return record.status, record.updated

    async def _train(
        self,
        project: Project,
        credentials: Credentials | None,
        *,
        existing: ClassifierRecord | None,
        expiry_hours: int | None,
    ) -> ClassifierRecord:
        body: dict[str, Any] = {
            "classid": project.class_id,
            "userid": project.user_id,
            "fields": [{"name": f.name, "type": f.type} for f in project.fields],
        }
        response = await self._request(
            "POST",
            self._model_url(project.id),
            auth=self._auth(),
            json=body,
        )
        data = self._json(response)

        now = utc_now()
        status = (
            self.normalize_status(data["status"])
            if data.get("status")
            else ClassifierStatus.AVAILABLE
        )
        return ClassifierRecord(
            id=project.id,
            project_id=project.id,
            project_type=self.project_type,
            classifier_id=project.id,
            name=project.name,
            created=existing.created if existing is not None else now,
            updated=parse_timestamp(data.get("updated")) or now,
            status=status,
        )

    async def _test(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        payload: TestPayload,
    ) -> list[Classification]:
        response = await self._request(
            "POST",
            self._model_url(record.classifier_id) + "/label",
            auth=self._auth(),
            json={"data": list(payload.numbers or [])},
        )
        data = self._json(response)

        # 服务返回 {类别: 百分比}
        results = [
            Classification(
                class_name=str(class_name),
                confidence=self._clamp_confidence(self._to_float(score) / 100.0),
                classifier_timestamp=record.updated,
            )
            for class_name, score in data.items()
        ]
        results.sort(key=lambda c: c.confidence, reverse=True)
        return results

    async def _delete(self, credentials: Credentials | None, classifier_id: str) -> None:
        await self._request("DELETE", self._model_url(classifier_id), auth=self._auth())

    @staticmethod
    def _to_float(value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0


__all__ = ["NumbersStrategy"]
