"""
Orchestration 模块

- ModelOrchestrator: 模型生命周期门面（列出 / 创建 / 测试 / 删除模型）
"""

from .orchestrator import ModelOrchestrator, validate_test_payload

__all__ = ["ModelOrchestrator", "validate_test_payload"]
