"""
训练策略检查

纯决策函数：只基于调用方已取到的状态（凭据候选、租户策略、已有模型数）
判断是否允许新的训练，不访问存储也不访问 Provider。

Provider 在训练时报告的容量不足仍由 ErrorTranslator 映射为
InsufficientCapacity，这里只是提前拦截。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from mlclassroom.core.enums import ProjectType
from mlclassroom.core.exceptions import (
    CredentialsMissingException,
    ErrorKind,
    InsufficientCapacityException,
    ModelLifecycleException,
)
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import CredentialCandidate, Project, TenantPolicy


@dataclass(frozen=True)
class PolicyDecision:
    """Ok 或 Denied(reason)"""

    allowed: bool
    reason: ErrorKind | None = None
    error: ModelLifecycleException | None = None

    @classmethod
    def ok(cls) -> PolicyDecision:
        return cls(allowed=True)

    @classmethod
    def denied(cls, error: ModelLifecycleException) -> PolicyDecision:
        return cls(allowed=False, reason=error.kind, error=error)

    def raise_if_denied(self) -> None:
        if not self.allowed and self.error is not None:
            raise self.error


class PolicyEnforcer:
    def authorize_training(
        self,
        project: Project,
        candidates: Sequence[CredentialCandidate],
        tenant: TenantPolicy,
        tenant_models: int,
        *,
        retraining: bool = False,
    ) -> PolicyDecision:
        """
        判断是否允许为项目训练新模型

        检查顺序：
            1. 容量：租户配额已满，或存在凭据但全部满额 -> InsufficientCapacity
            2. 凭据：班级完全未配置凭据 -> CredentialsMissing

        Args:
            project: 待训练的项目
            candidates: 该项目类型对应服务的凭据候选
            tenant: 班级策略
            tenant_models: 班级在该项目类型下已有的模型数
            retraining: 原地重训已有模型（不占用新的容量）
        """
        # numbers 项目没有容量限制，也不使用班级凭据
        if project.type is ProjectType.NUMBERS:
            return PolicyDecision.ok()

        if not retraining:
            max_models = tenant.max_models(project.type)
            tenant_full = max_models is not None and tenant_models >= max_models
            credentials_full = bool(candidates) and all(c.exhausted for c in candidates)
            if tenant_full or credentials_full:
                logger.info(
                    "班级 {} 的 {} 模型容量已满: tenant={}/{} credentials_full={}",
                    project.class_id,
                    project.type.value,
                    tenant_models,
                    max_models,
                    credentials_full,
                )
                return PolicyDecision.denied(
                    InsufficientCapacityException.for_project_type(project.type)
                )

        if not candidates:
            logger.info("班级 {} 未配置 {} 项目的凭据", project.class_id, project.type.value)
            return PolicyDecision.denied(
                CredentialsMissingException.for_project_type(project.type)
            )

        return PolicyDecision.ok()


__all__ = ["PolicyDecision", "PolicyEnforcer"]
