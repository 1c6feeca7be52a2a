"""
Provider Strategy 模块

每种项目类型一个实现，统一 {状态查询, 训练, 测试, 删除} 契约：
- ConversationStrategy: 文本项目（Watson Assistant）
- VisualRecognitionStrategy: 图片项目（Watson Visual Recognition）
- NumbersStrategy: 数值项目（内部 numbers 服务）
"""

from mlclassroom.clients.errors import ProviderCallError

from .base import ProviderStrategy
from .conversation import ConversationStrategy
from .numbers import NumbersStrategy
from .registry import STRATEGY_CLASSES, build_default_strategies
from .visual_recognition import VisualRecognitionStrategy

__all__ = [
    "ProviderStrategy",
    "ProviderCallError",
    "ConversationStrategy",
    "VisualRecognitionStrategy",
    "NumbersStrategy",
    "STRATEGY_CLASSES",
    "build_default_strategies",
]
