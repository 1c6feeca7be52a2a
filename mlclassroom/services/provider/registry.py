"""
Provider Strategy 注册表

按项目类型静态索引，新增项目类型时在这里登记实现。
"""

from __future__ import annotations

import httpx

from mlclassroom.core.enums import ProjectType
from mlclassroom.services.errors.translator import ErrorTranslator
from mlclassroom.services.provider.base import ProviderStrategy
from mlclassroom.services.provider.conversation import ConversationStrategy
from mlclassroom.services.provider.numbers import NumbersStrategy
from mlclassroom.services.provider.visual_recognition import VisualRecognitionStrategy

STRATEGY_CLASSES: dict[ProjectType, type[ProviderStrategy]] = {
    ProjectType.TEXT: ConversationStrategy,
    ProjectType.IMAGES: VisualRecognitionStrategy,
    ProjectType.NUMBERS: NumbersStrategy,
}


def build_default_strategies(
    translator: ErrorTranslator | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[ProjectType, ProviderStrategy]:
    """为每种项目类型创建一个 Strategy 实例，共享同一个错误翻译器"""
    translator = translator or ErrorTranslator()
    return {
        project_type: strategy_cls(translator=translator, http_client=http_client)
        for project_type, strategy_cls in STRATEGY_CLASSES.items()
    }


__all__ = ["STRATEGY_CLASSES", "build_default_strategies"]
