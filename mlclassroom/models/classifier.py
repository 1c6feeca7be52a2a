"""
模型相关的 API 请求模型与序列化

响应字段名与既有客户端保持一致（classifierid / credentialsid / classifierTimestamp）。
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

from pydantic import BaseModel, Field

from mlclassroom.core.enums import ProjectType
from mlclassroom.core.exceptions import InvalidRequestException
from mlclassroom.core.training_types import Classification, ClassifierRecord, TestPayload
from mlclassroom.utils.time_utils import format_timestamp


class LabelRequest(BaseModel):
    """测试模型请求"""

    type: ProjectType | None = Field(None, description="项目类型")
    text: str | None = Field(None, description="待分类文本（text 项目）")
    image: str | None = Field(None, description="图片 URL（images 项目）")
    data: str | None = Field(None, description="Base64 编码的图片数据（images 项目）")
    numbers: list[float] | None = Field(None, description="数值向量（numbers 项目）")
    credentialsid: str | None = Field(None, description="训练该模型所用的凭据 ID")

    def to_payload(self) -> TestPayload:
        image_data: bytes | None = None
        if self.data:
            try:
                image_data = base64.b64decode(self.data, validate=True)
            except (binascii.Error, ValueError):
                raise InvalidRequestException() from None
        return TestPayload(
            text=self.text,
            image_url=self.image,
            image_data=image_data,
            numbers=self.numbers,
        )


def classifier_to_dict(record: ClassifierRecord) -> dict[str, Any]:
    """序列化模型记录；numbers 记录没有凭据和过期时间"""
    if record.project_type is ProjectType.NUMBERS:
        return {
            "classifierid": record.classifier_id,
            "status": record.status.value,
            "created": format_timestamp(record.created),
            "updated": format_timestamp(record.updated),
        }
    return {
        "classifierid": record.classifier_id,
        "credentialsid": record.credentials_id,
        "name": record.name,
        "status": record.status.value,
        "updated": format_timestamp(record.updated),
        "expiry": format_timestamp(record.expiry),
    }


def classification_to_dict(classification: Classification) -> dict[str, Any]:
    return {
        "class_name": classification.class_name,
        "confidence": classification.confidence,
        "classifierTimestamp": format_timestamp(classification.classifier_timestamp),
    }


__all__ = ["LabelRequest", "classifier_to_dict", "classification_to_dict"]
