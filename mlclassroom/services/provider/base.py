"""
Provider Strategy 基类

每种项目类型一个实现，对外提供统一的 {状态查询, 训练, 测试, 删除} 契约：

    class MyProviderStrategy(ProviderStrategy):
        project_type = ProjectType.TEXT
        status_map = {...}

        async def _fetch_status(self, credentials, record): ...
        async def _train(self, project, credentials, *, existing, expiry_hours): ...
        async def _test(self, credentials, record, payload): ...
        async def _delete(self, credentials, classifier_id): ...

子类只抛出原始异常（ProviderCallError / httpx 异常），公开方法负责
经 ErrorTranslator 翻译后再抛出。
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, ClassVar

import httpx

from mlclassroom.clients.errors import ProviderCallError
from mlclassroom.clients.http_client import get_http_client
from mlclassroom.config.constants import PROVIDER_DISPLAY_NAMES
from mlclassroom.core.enums import ClassifierStatus, Operation, ProjectType
from mlclassroom.core.exceptions import ModelLifecycleException, RemoteModelMissingException
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import (
    Classification,
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.errors.translator import ErrorTranslator
from mlclassroom.services.provider.status_mapping import normalize_status

# 状态查询时无需再询问 Provider 的状态
_SETTLED_STATUSES = frozenset({ClassifierStatus.FAILED, ClassifierStatus.UNKNOWN})


class ProviderStrategy(ABC):
    """Provider Strategy 契约"""

    project_type: ClassVar[ProjectType]
    status_map: ClassVar[dict[str, ClassifierStatus]] = {}

    def __init__(
        self,
        translator: ErrorTranslator | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.translator = translator or ErrorTranslator()
        # 测试中可注入带 MockTransport 的客户端；默认使用全局客户端池
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return PROVIDER_DISPLAY_NAMES[self.project_type]

    def normalize_status(self, raw: Any) -> ClassifierStatus:
        return normalize_status(self.status_map, raw)

    # ------------------------------------------------------------------ 公开契约

    async def query_statuses(
        self,
        class_id: str,
        records: Sequence[ClassifierRecord],
        credentials_by_id: Mapping[str, Credentials],
    ) -> list[ClassifierRecord]:
        """
        并发刷新每条记录的状态

        Provider 上已不存在的记录标记为 Unknown 而不是丢弃；单条记录
        查询失败不影响整批结果。返回顺序不保证与输入一致。
        """
        if not records:
            return []
        results = await asyncio.gather(
            *(
                self._refresh_record(
                    class_id,
                    record,
                    credentials_by_id.get(record.credentials_id) if record.credentials_id else None,
                )
                for record in records
            )
        )
        return list(results)

    async def train(
        self,
        project: Project,
        credentials: Credentials | None,
        *,
        existing: ClassifierRecord | None = None,
        expiry_hours: int | None = None,
    ) -> ClassifierRecord:
        try:
            record = await self._train(
                project, credentials, existing=existing, expiry_hours=expiry_hours
            )
        except Exception as exc:
            raise self._translate(exc, Operation.TRAIN) from exc
        logger.info(
            "[{}] 已提交训练: project={} classifier={} status={}",
            self.provider_name,
            project.id,
            record.classifier_id,
            record.status.value,
        )
        return record

    async def test(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        payload: TestPayload,
    ) -> list[Classification]:
        try:
            return await self._test(credentials, record, payload)
        except Exception as exc:
            raise self._translate(exc, Operation.TEST) from exc

    async def delete(self, credentials: Credentials | None, classifier_id: str) -> None:
        """删除远端模型；远端已不存在视为成功"""
        try:
            await self._delete(credentials, classifier_id)
        except ProviderCallError as exc:
            if exc.status_code == 404:
                logger.info("[{}] 远端模型已不存在，跳过删除: {}", self.provider_name, classifier_id)
                return
            raise self._translate(exc, Operation.DELETE) from exc
        except Exception as exc:
            raise self._translate(exc, Operation.DELETE) from exc
        logger.info("[{}] 已删除远端模型: {}", self.provider_name, classifier_id)

    # ------------------------------------------------------------------ 子类实现

    @abstractmethod
    async def _fetch_status(
        self, credentials: Credentials, record: ClassifierRecord
    ) -> tuple[ClassifierStatus, datetime | None]:
        """返回 (归一化状态, Provider 报告的更新时间)"""

    @abstractmethod
    async def _train(
        self,
        project: Project,
        credentials: Credentials | None,
        *,
        existing: ClassifierRecord | None,
        expiry_hours: int | None,
    ) -> ClassifierRecord: ...

    @abstractmethod
    async def _test(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        payload: TestPayload,
    ) -> list[Classification]: ...

    @abstractmethod
    async def _delete(self, credentials: Credentials | None, classifier_id: str) -> None: ...

    # ------------------------------------------------------------------ 工具方法

    async def _refresh_record(
        self,
        class_id: str,
        record: ClassifierRecord,
        credentials: Credentials | None,
    ) -> ClassifierRecord:
        if record.status in _SETTLED_STATUSES:
            return record

        if credentials is None:
            logger.warning(
                "[{}] 班级 {} 的分类器 {} 引用的凭据不存在，标记为 Unknown",
                self.provider_name,
                class_id,
                record.classifier_id,
            )
            return replace(record, status=ClassifierStatus.UNKNOWN)

        try:
            status, updated = await self._fetch_status(credentials, record)
        except Exception as exc:
            error = self._translate(exc, Operation.STATUS)
            if isinstance(error, RemoteModelMissingException):
                return replace(record, status=ClassifierStatus.UNKNOWN)
            logger.warning(
                "[{}] 查询分类器 {} 状态失败，保留原状态: {}",
                self.provider_name,
                record.classifier_id,
                error.message,
            )
            return record

        return replace(record, status=status, updated=updated or record.updated)

    def _translate(self, error: Exception, operation: Operation) -> ModelLifecycleException:
        return self.translator.translate(error, provider=self.project_type, operation=operation)

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await get_http_client()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        auth: httpx.Auth | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """发送请求；4xx/5xx 转换为 ProviderCallError"""
        client = await self._client()
        logger.debug("[{}] {} {}", self.provider_name, method, url)
        response = await client.request(method, url, auth=auth, **kwargs)
        if response.status_code >= 400:
            raise ProviderCallError(
                self.project_type,
                response.status_code,
                self._extract_error(response),
                response_text=response.text,
                response_headers=dict(response.headers),
            )
        return response

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderCallError(
                self.project_type,
                response.status_code,
                "响应不是有效的 JSON",
                response_text=response.text,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderCallError(
                self.project_type,
                response.status_code,
                "响应不是 JSON 对象",
                response_text=response.text,
            )
        return data

    @staticmethod
    def _extract_error(response: httpx.Response) -> str:
        """从错误响应中提取 Provider 的错误描述"""
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict):
            for key in ("error", "description", "message"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
                if isinstance(value, dict):
                    nested = value.get("message") or value.get("description")
                    if isinstance(nested, str) and nested:
                        return nested
        return response.text or response.reason_phrase

    @staticmethod
    def _clamp_confidence(value: Any) -> float:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return 0.0
        return min(max(confidence, 0.0), 1.0)


__all__ = ["ProviderStrategy"]
