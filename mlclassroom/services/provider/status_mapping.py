"""
Provider 状态词汇 -> 统一 ClassifierStatus 的映射表

每个 Provider 一张显式映射表（键为小写），未识别的状态一律视为 Unknown。
"""

from __future__ import annotations

from typing import Any

from mlclassroom.core.enums import ClassifierStatus

# Watson Assistant workspace status
CONVERSATION_STATUS_MAP: dict[str, ClassifierStatus] = {
    "available": ClassifierStatus.AVAILABLE,
    "training": ClassifierStatus.TRAINING,
    "failed": ClassifierStatus.FAILED,
    "non existent": ClassifierStatus.UNKNOWN,
    "unavailable": ClassifierStatus.UNKNOWN,
}

# Watson Visual Recognition classifier status
VISUAL_RECOGNITION_STATUS_MAP: dict[str, ClassifierStatus] = {
    "ready": ClassifierStatus.AVAILABLE,
    "training": ClassifierStatus.TRAINING,
    "retraining": ClassifierStatus.TRAINING,
    "failed": ClassifierStatus.FAILED,
}

# numbers 服务返回的状态是自由文本
NUMBERS_STATUS_MAP: dict[str, ClassifierStatus] = {
    "available": ClassifierStatus.AVAILABLE,
    "ready": ClassifierStatus.AVAILABLE,
    "trained": ClassifierStatus.AVAILABLE,
    "training": ClassifierStatus.TRAINING,
    "failed": ClassifierStatus.FAILED,
    "error": ClassifierStatus.FAILED,
}


def normalize_status(mapping: dict[str, ClassifierStatus], raw: Any) -> ClassifierStatus:
    """按映射表归一化状态，任何无法识别的值返回 Unknown"""
    if isinstance(raw, ClassifierStatus):
        return raw
    if not isinstance(raw, str):
        return ClassifierStatus.UNKNOWN
    return mapping.get(raw.strip().lower(), ClassifierStatus.UNKNOWN)


__all__ = [
    "CONVERSATION_STATUS_MAP",
    "VISUAL_RECOGNITION_STATUS_MAP",
    "NUMBERS_STATUS_MAP",
    "normalize_status",
]
