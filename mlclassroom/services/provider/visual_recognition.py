"""
图片项目 Provider：Watson Visual Recognition (v3 classifiers API)

每次训练都会创建一个新的 classifier，旧的历史记录保留直到被删除或过期。
测试支持两种输入：图片 URL 或上传的图片文件。
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

import httpx

from mlclassroom.clients.errors import ProviderCallError
from mlclassroom.config import config
from mlclassroom.core.enums import ClassifierStatus, ProjectType
from mlclassroom.core.exceptions import CredentialsMissingException, InvalidRequestException
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import (
    Classification,
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.provider.base import ProviderStrategy
from mlclassroom.services.provider.status_mapping import VISUAL_RECOGNITION_STATUS_MAP
from mlclassroom.utils.time_utils import parse_timestamp, utc_now


class VisualRecognitionStrategy(ProviderStrategy):
    """Watson Visual Recognition classifier 生命周期"""

    project_type = ProjectType.IMAGES
    status_map = VISUAL_RECOGNITION_STATUS_MAP

    # 返回所有类别的分数，由调用方自行判断
    CLASSIFY_THRESHOLD = "0.0"

    def _params(self) -> dict[str, str]:
        return {"version": config.visual_recognition_api_version}

    @staticmethod
    def _auth(credentials: Credentials) -> httpx.BasicAuth:
        return httpx.BasicAuth(credentials.username, credentials.password)

    @staticmethod
    def _base_url(credentials: Credentials) -> str:
        return credentials.url.rstrip("/") + "/v3"

    def _require(self, credentials: Credentials | None) -> Credentials:
        if credentials is None:
            raise CredentialsMissingException.for_project_type(self.project_type)
        return credentials

    async def _fetch_status(
        self, credentials: Credentials, record: ClassifierRecord
    ) -> tuple[ClassifierStatus, datetime | None]:
        response = await self._request(
            "GET",
            f"{self._base_url(credentials)}/classifiers/{record.classifier_id}",
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
        if existing is not None:
            logger.debug(
                "[{}] 项目 {} 已有分类器 {}，仍创建新的分类器",
                self.provider_name,
                project.id,
                existing.classifier_id,
            )

        # 训练图片已预先上传，这里只提交 multipart 元数据
        response = await self._request(
            "POST",
            f"{self._base_url(credentials)}/classifiers",
            auth=self._auth(credentials),
            params=self._params(),
            files={"name": (None, project.name)},
        )
        data = self._json(response)

        classifier_id = data.get("classifier_id")
        if not classifier_id:
            raise ValueError("Visual Recognition 响应缺少 classifier_id")

        created = parse_timestamp(data.get("created")) or utc_now()
        return ClassifierRecord(
            id=str(uuid.uuid4()),
            project_id=project.id,
            project_type=self.project_type,
            classifier_id=classifier_id,
            name=data.get("name") or project.name,
            created=created,
            updated=created,
            status=self.normalize_status(data.get("status") or "training"),
            credentials_id=credentials.id,
            expiry=created + timedelta(hours=expiry_hours) if expiry_hours else None,
            url=f"{self._base_url(credentials)}/classifiers/{classifier_id}",
        )

    async def _test(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        payload: TestPayload,
    ) -> list[Classification]:
        credentials = self._require(credentials)
        if payload.image_data:
            image_part: dict[str, Any] = {
                "images_file": ("image.jpg", payload.image_data, "application/octet-stream")
            }
        elif payload.image_url:
            image_part = {"url": (None, payload.image_url)}
        else:
            raise InvalidRequestException()
        return await self._classify(credentials, record, image_part)

    async def test_url(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        image_url: str,
    ) -> list[Classification]:
        """按图片 URL 分类"""
        return await self.test(credentials, record, TestPayload(image_url=image_url))

    async def test_file(
        self,
        credentials: Credentials | None,
        record: ClassifierRecord,
        image_data: bytes,
    ) -> list[Classification]:
        """按上传的图片文件分类"""
        return await self.test(credentials, record, TestPayload(image_data=image_data))

    async def _classify(
        self,
        credentials: Credentials,
        record: ClassifierRecord,
        image_part: dict[str, Any],
    ) -> list[Classification]:
        files = {
            **image_part,
            "classifier_ids": (None, record.classifier_id),
            "threshold": (None, self.CLASSIFY_THRESHOLD),
        }
        response = await self._request(
            "POST",
            f"{self._base_url(credentials)}/classify",
            auth=self._auth(credentials),
            params=self._params(),
            files=files,
        )
        data = self._json(response)

        images = data.get("images") or []
        if not images:
            return []
        image = images[0]

        # 图片级错误（例如 URL 无法下载）以 200 返回
        image_error = image.get("error")
        if isinstance(image_error, dict):
            raise ProviderCallError(
                self.project_type,
                self._error_code(image_error.get("code")),
                image_error.get("description") or "图片分类失败",
                response_text=response.text,
            )

        # 每次调用的时间戳都不同，便于调用方区分结果
        timestamp = utc_now()
        results: list[Classification] = []
        for classifier in image.get("classifiers") or []:
            if classifier.get("classifier_id") not in (None, record.classifier_id):
                continue
            for item in classifier.get("classes") or []:
                results.append(
                    Classification(
                        class_name=item.get("class", ""),
                        confidence=self._clamp_confidence(item.get("score")),
                        classifier_timestamp=timestamp,
                    )
                )

        results.sort(key=lambda c: c.confidence, reverse=True)
        return results

    @staticmethod
    def _error_code(value: Any) -> int:
        """图片级错误的 code 可能是字符串或缺失，无法解析时按 400 处理"""
        try:
            return int(value)
        except (TypeError, ValueError):
            return 400

    async def _delete(self, credentials: Credentials | None, classifier_id: str) -> None:
        credentials = self._require(credentials)
        await self._request(
            "DELETE",
            f"{self._base_url(credentials)}/classifiers/{classifier_id}",
            auth=self._auth(credentials),
            params=self._params(),
        )


__all__ = ["VisualRecognitionStrategy"]
