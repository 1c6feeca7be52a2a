"""
模型生命周期编排

对外的四个操作（列出 / 创建 / 测试 / 删除模型）在这里组合：
策略检查 -> 按项目类型选择 Provider Strategy -> 调用 -> 归一化 -> 持久化。

所有协作者（Store、凭据解析、策略检查、Provider Strategy 表）通过构造函数注入。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

from mlclassroom.config.constants import PROJECT_SERVICE_TYPES
from mlclassroom.core.enums import ProjectType
from mlclassroom.core.exceptions import (
    InvalidRequestException,
    ModelLifecycleException,
    NotFoundException,
    RemoteModelMissingException,
)
from mlclassroom.core.logger import logger
from mlclassroom.core.training_types import (
    Classification,
    ClassifierRecord,
    Credentials,
    FieldSpec,
    Project,
    TestPayload,
)
from mlclassroom.services.credentials.resolver import CredentialResolver
from mlclassroom.services.errors.translator import ErrorTranslator
from mlclassroom.services.policy.enforcer import PolicyEnforcer
from mlclassroom.services.provider.base import ProviderStrategy
from mlclassroom.services.provider.registry import build_default_strategies
from mlclassroom.services.store.model_store import ModelStore
from mlclassroom.utils.time_utils import utc_now


def validate_test_payload(
    project_type: ProjectType,
    credentials_id: str | None,
    payload: TestPayload,
    fields: Sequence[FieldSpec] | None = None,
) -> None:
    """
    在任何网络调用之前校验测试数据

    Raises:
        InvalidRequestException: 缺少该项目类型所需的数据或凭据 ID
    """
    if project_type is ProjectType.TEXT:
        valid = bool(credentials_id) and bool(payload.text and payload.text.strip())
    elif project_type is ProjectType.IMAGES:
        valid = bool(credentials_id) and bool(payload.image_url or payload.image_data)
    else:
        numbers = payload.numbers or []
        valid = bool(numbers) and (not fields or len(numbers) == len(fields))
    if not valid:
        raise InvalidRequestException()


class ModelOrchestrator:
    """模型生命周期门面"""

    def __init__(
        self,
        store: ModelStore,
        *,
        strategies: Mapping[ProjectType, ProviderStrategy] | None = None,
        resolver: CredentialResolver | None = None,
        enforcer: PolicyEnforcer | None = None,
        translator: ErrorTranslator | None = None,
    ) -> None:
        self.store = store
        self.translator = translator or ErrorTranslator()
        self.strategies = dict(strategies or build_default_strategies(self.translator))
        self.resolver = resolver or CredentialResolver(store)
        self.enforcer = enforcer or PolicyEnforcer()

    def _strategy(self, project_type: ProjectType) -> ProviderStrategy:
        try:
            return self.strategies[project_type]
        except KeyError:
            raise RuntimeError(f"未注册 {project_type.value} 项目的 Provider Strategy") from None

    # ------------------------------------------------------------------ 列出模型

    async def list_models(self, project: Project) -> list[ClassifierRecord]:
        """
        列出项目的模型并刷新训练状态

        Returns:
            按更新时间倒序排列的记录，项目未训练时为空列表
        """
        if project.type is ProjectType.NUMBERS:
            record = self._numbers_record(project)
            return [record] if record is not None else []

        records = self.store.list_classifiers(project.id)
        if not records:
            return []

        credentials_by_id = self.resolver.resolve_many(
            project.class_id, (r.credentials_id for r in records if r.credentials_id)
        )
        refreshed = await self._strategy(project.type).query_statuses(
            project.class_id, records, credentials_by_id
        )

        originals = {r.id: r for r in records}
        changed = [
            r
            for r in refreshed
            if r.id in originals
            and (r.status, r.updated) != (originals[r.id].status, originals[r.id].updated)
        ]
        if changed:
            self.store.update_classifiers(changed)
            logger.debug("项目 {} 有 {} 个模型状态发生变化", project.id, len(changed))

        # 并发查询不保证顺序，返回前统一排序
        return sorted(refreshed, key=lambda r: r.updated, reverse=True)

    # ------------------------------------------------------------------ 创建模型

    async def create_model(self, project: Project) -> ClassifierRecord:
        """
        为项目训练新模型

        Provider 调用失败时不会留下任何新记录。
        """
        strategy = self._strategy(project.type)
        tenant = self.store.get_class_tenant(project.class_id)

        if project.type is ProjectType.NUMBERS:
            self.enforcer.authorize_training(project, [], tenant, 0).raise_if_denied()
            record = await strategy.train(project, None, existing=self._numbers_record(project))
            self.store.update_numbers_classifier(
                project.id, record.status, record.created, record.updated
            )
            logger.info("numbers 项目 {} 训练完成: {}", project.id, record.status.value)
            return record

        service_type = PROJECT_SERVICE_TYPES[project.type]

        # 文本项目在已有 workspace 上原地重训
        existing: ClassifierRecord | None = None
        if project.type is ProjectType.TEXT:
            current = self.store.list_classifiers(project.id)
            existing = current[0] if current else None

        candidates = self.resolver.candidates(project.class_id, service_type)
        tenant_models = self.store.count_tenant_classifiers(project.class_id, project.type)
        self.enforcer.authorize_training(
            project, candidates, tenant, tenant_models, retraining=existing is not None
        ).raise_if_denied()

        credentials = self.resolver.resolve(
            project.class_id,
            service_type,
            existing.credentials_id if existing is not None else None,
        )

        try:
            record = await strategy.train(
                project,
                credentials,
                existing=existing,
                expiry_hours=tenant.expiry_hours(project.type),
            )
        except RemoteModelMissingException:
            if existing is not None:
                # 远端 workspace 已过期，删除本地记录后由调用方重试
                self.store.delete_classifier(existing.id)
                logger.warning(
                    "项目 {} 的 workspace {} 在 Provider 上已不存在，已删除本地记录",
                    project.id,
                    existing.classifier_id,
                )
            raise

        if existing is not None:
            self.store.update_classifiers([record])
        else:
            record = self.store.store_classifier(project.class_id, record)

        logger.info(
            "项目 {} 已提交训练: classifier={} credentials={}",
            project.id,
            record.classifier_id,
            credentials.id,
        )
        return record

    # ------------------------------------------------------------------ 测试模型

    async def test_model(
        self,
        project: Project,
        model_id: str,
        credentials_id: str | None,
        payload: TestPayload,
    ) -> list[Classification]:
        """用测试数据调用模型，返回的分类顺序与 Provider 一致"""
        validate_test_payload(project.type, credentials_id, payload, project.fields)
        strategy = self._strategy(project.type)

        if project.type is ProjectType.NUMBERS:
            record = self._numbers_record(project)
            if record is None or record.classifier_id != model_id:
                raise NotFoundException()
            return await strategy.test(None, record, payload)

        credentials = self.resolver.resolve(
            project.class_id, PROJECT_SERVICE_TYPES[project.type], credentials_id
        )
        record = self.store.get_classifier(project.id, model_id)
        if record is None:
            raise NotFoundException()
        return await strategy.test(credentials, record, payload)

    # ------------------------------------------------------------------ 删除模型

    async def delete_model(self, project: Project, model_id: str) -> None:
        """
        删除模型

        远端已不存在时仍删除本地记录；其他 Provider 错误向上抛出并保留本地记录。
        """
        strategy = self._strategy(project.type)

        if project.type is ProjectType.NUMBERS:
            record = self._numbers_record(project)
            if record is None or record.classifier_id != model_id:
                raise NotFoundException()
            await strategy.delete(None, record.classifier_id)
            self.store.clear_numbers_classifier(project.id)
            logger.info("已删除 numbers 项目 {} 的模型", project.id)
            return

        record = self.store.get_classifier(project.id, model_id)
        if record is None:
            raise NotFoundException()

        await self._delete_remote(strategy, project.class_id, record)
        self.store.delete_classifier(record.id)
        logger.info("已删除项目 {} 的模型 {}", project.id, record.classifier_id)

    async def _delete_remote(
        self, strategy: ProviderStrategy, class_id: str, record: ClassifierRecord
    ) -> None:
        credentials: Credentials | None = None
        if record.credentials_id:
            credentials = self.store.get_credentials(class_id, record.credentials_id)
        if credentials is None:
            logger.warning("模型 {} 的凭据已不存在，仅删除本地记录", record.classifier_id)
            return
        try:
            await strategy.delete(credentials, record.classifier_id)
        except RemoteModelMissingException:
            logger.info("模型 {} 在 Provider 上已不存在", record.classifier_id)

    # ------------------------------------------------------------------ 项目 / 过期清理

    async def delete_project(self, project: Project) -> None:
        """删除项目的全部远端模型，然后删除项目及其记录"""
        strategy = self._strategy(project.type)

        if project.type is ProjectType.NUMBERS:
            if self._numbers_record(project) is not None:
                await strategy.delete(None, project.id)
        else:
            for record in self.store.list_classifiers(project.id):
                try:
                    await self._delete_remote(strategy, project.class_id, record)
                except ModelLifecycleException as exc:
                    logger.warning(
                        "删除项目 {} 时无法删除远端模型 {}: {}",
                        project.id,
                        record.classifier_id,
                        exc.message,
                    )

        self.store.delete_project(project.id)
        logger.info("已删除项目 {}", project.id)

    async def delete_expired_models(self, now: datetime | None = None) -> int:
        """
        删除所有已过期的模型（由外部调度器调用）

        Returns:
            成功删除的模型数；删除失败的记录保留到下一次运行
        """
        now = now or utc_now()
        deleted = 0
        for class_id, record in self.store.list_expired_classifiers(now):
            try:
                await self._delete_remote(self._strategy(record.project_type), class_id, record)
            except ModelLifecycleException as exc:
                logger.warning("删除过期模型 {} 失败: {}", record.classifier_id, exc.message)
                continue
            self.store.delete_classifier(record.id)
            deleted += 1

        if deleted:
            logger.info("已删除 {} 个过期模型", deleted)
        return deleted

    # ------------------------------------------------------------------ numbers

    @staticmethod
    def _numbers_record(project: Project) -> ClassifierRecord | None:
        """numbers 项目自身即分类器，从项目状态合成记录"""
        if project.classifier_status is None:
            return None
        created = project.classifier_created or utc_now()
        return ClassifierRecord(
            id=project.id,
            project_id=project.id,
            project_type=ProjectType.NUMBERS,
            classifier_id=project.id,
            name=project.name,
            created=created,
            updated=project.classifier_updated or created,
            status=project.classifier_status,
        )


__all__ = ["ModelOrchestrator", "validate_test_payload"]
