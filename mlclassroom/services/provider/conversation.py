"""
文本项目 Provider：Watson Assistant (v1 workspaces API)

- 状态: GET  /v1/workspaces/{id}
- 训练: POST /v1/workspaces（新建）或 POST /v1/workspaces/{id}（原地重训）
- 测试: POST /v1/workspaces/{id}/message
- 删除: DELETE /v1/workspaces/{id}
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

import httpx

from mlclassroom.config import config
from mlclassroom.core.enums import ClassifierStatus, ProjectType
from mlclassroom.core.exceptions import CredentialsMissingException
from mlclassroom.core.training_types import (
    Classification,
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.provider.base import ProviderStrategy
from mlclassroom.services.provider.status_mapping import CONVERSATION_STATUS_MAP
from mlclassroom.utils.time_utils import parse_timestamp, utc_now


class ConversationStrategy(ProviderStrategy):
    """Watson Assistant workspace 生命周期"""

    project_type = ProjectType.TEXT
    status_map = CONVERSATION_STATUS_MAP

    def _params(self) -> dict[str, str]:
        return {"version": config.conversation_api_version}

    @staticmethod
    def _auth(credentials: Credentials) -> httpx.BasicAuth:
        return httpx.BasicAuth(credentials.username, credentials.password)

    @staticmethod
    def _workspace_url(credentials: Credentials, workspace_id: str | None = None) -> str:
        base = credentials.url.rstrip("/") + "/v1/workspaces"
        return f"{base}/{workspace_id}" if workspace_id else base

    def _require(self, credentials: Credentials | None) -> Credentials:
        if credentials is None:
            raise CredentialsMissingException.for_project_type(self.project_type)
        return credentials

    async def _fetch_status(
        self, credentials: Credentials, record: ClassifierRecord
    ) -> tuple[ClassifierStatus, datetime | None]:
        response = await self._request(
            "GET",
            self._workspace_url(credentials, record.classifier_id),
            auth=self._auth(credentials),
            params=self._params(),
        )
        data = self._json(response)
        return self.normalize_status(data.get("status")), parse_timestamp(data.get("updated"))

    async def _train(
        self,
        project: Project,
        credentials: Credentials | None,
        *,
        existing: ClassifierRecord | None,
        expiry_hours: int | None,
    ) -> ClassifierRecord:
        credentials = self._require(credentials)
        body: dict[str, Any] = {
            "name": project.name,
            "language": project.language,
            "description": f"project {project.id}",
            "metadata": {"projectid": project.id, "classid": project.class_id},
        }

        # 已有 workspace 时原地更新，避免占用新的容量
        workspace_id = existing.classifier_id if existing is not None else None
        response = await self._request(
            "POST",
            self._workspace_url(credentials, workspace_id),
            auth=self._auth(credentials),
            params=self._params(),
            json=body,
        )
        data = self._json(response)

        now = utc_now()
        updated = parse_timestamp(data.get("updated")) or now
        expiry = updated + timedelta(hours=expiry_hours) if expiry_hours else None

        if existing is not None:
            return replace(
                existing,
                name=project.name,
                status=ClassifierStatus.TRAINING,
                updated=updated,
                expiry=expiry,
                credentials_id=credentials.id,
            )

        workspace_id = data.get("workspace_id")
        if not workspace_id:
            raise ValueError("Watson Assistant 响应缺少 workspace_id")

        return ClassifierRecord(
            id=str(uuid.uuid4()),
            project_id=project.id,
            project_type=self.project_type,
            classifier_id=workspace_id,
            name=data.get("name") or project.name,
            created=parse_timestamp(data.get("created")) or now,
            updated=updated,
            status=ClassifierStatus.TRAINING,
            credentials_id=credentials.id,
            expiry=expiry,
            language=data.get("language") or project.language,
            url=self._workspace_url(credentials, workspace_id),
        )

    async def _test(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        payload: TestPayload,
    ) -> list[Classification]:
        credentials = self._require(credentials)
        response = await self._request(
            "POST",
            self._workspace_url(credentials, record.classifier_id) + "/message",
            auth=self._auth(credentials),
            params=self._params(),
            json={"input": {"text": payload.text}, "alternate_intents": True},
        )
        data = self._json(response)

        # 保持 Provider 返回的意图顺序
        return [
            Classification(
                class_name=intent.get("intent", ""),
                confidence=self._clamp_confidence(intent.get("confidence")),
                classifier_timestamp=record.updated,
            )
            for intent in data.get("intents") or []
            if isinstance(intent, dict)
        ]

    async def _delete(self, credentials: Credentials | None, classifier_id: str) -> None:
        credentials = self._require(credentials)
        await self._request(
            "DELETE",
            self._workspace_url(credentials, classifier_id),
            auth=self._auth(credentials),
            params=self._params(),
        )


__all__ = ["ConversationStrategy"]
