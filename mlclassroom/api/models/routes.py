"""模型生命周期端点（列出 / 训练 / 测试 / 删除）"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from mlclassroom.api.base.context import RequestUser, ensure_project_access, get_request_user
from mlclassroom.core.exceptions import InvalidRequestException
from mlclassroom.core.training_types import Project
from mlclassroom.database import get_db
from mlclassroom.models.classifier import (
    LabelRequest,
    classification_to_dict,
    classifier_to_dict,
)
from mlclassroom.services.orchestration import ModelOrchestrator, validate_test_payload
from mlclassroom.services.store import SqlModelStore

router = APIRouter(
    prefix="/api/classes/{classid}/students/{studentid}/projects/{projectid}/models",
    tags=["Models"],
)


# ============== 依赖 ==============


def get_store(db: Session = Depends(get_db)) -> SqlModelStore:
    return SqlModelStore(db)


def get_orchestrator(store: SqlModelStore = Depends(get_store)) -> ModelOrchestrator:
    return ModelOrchestrator(store)


def _load_project(
    store: SqlModelStore,
    user: RequestUser,
    classid: str,
    studentid: str,
    projectid: str,
) -> Project:
    project = store.get_project(classid, projectid) if user.class_id == classid else None
    return ensure_project_access(user, classid, studentid, project)


# ============== 路由 ==============


@router.get("")
async def list_models(
    classid: str,
    studentid: str,
    projectid: str,
    user: RequestUser = Depends(get_request_user),
    store: SqlModelStore = Depends(get_store),
    orchestrator: ModelOrchestrator = Depends(get_orchestrator),
):
    """列出项目的模型

    刷新训练中模型的状态后返回，按更新时间倒序。

    **路径参数**
    - classid (str): 班级 ID
    - studentid (str): 学生 ID
    - projectid (str): 项目 ID

    **返回字段**（数组）
    - classifierid (str): Provider 分配的模型 ID（numbers 项目为项目 ID）
    - credentialsid (str): 训练所用凭据 ID（numbers 项目无此字段）
    - name (str): 模型名称（numbers 项目无此字段）
    - status (str): Training / Available / Failed / Unknown
    - updated (str): 最后更新时间
    - expiry (str): 过期时间（numbers 项目无此字段）
    - created (str): 创建时间（仅 numbers 项目）
    """
    project = _load_project(store, user, classid, studentid, projectid)
    records = await orchestrator.list_models(project)
    return [classifier_to_dict(record) for record in records]


@router.post("", status_code=201)
async def create_model(
    classid: str,
    studentid: str,
    projectid: str,
    user: RequestUser = Depends(get_request_user),
    store: SqlModelStore = Depends(get_store),
    orchestrator: ModelOrchestrator = Depends(get_orchestrator),
):
    """训练新模型

    **错误**
    - 409: 班级配额已满 / 未配置凭据 / 凭据被拒绝
    - 429: Provider 限流
    - 400: 训练数据不足
    """
    project = _load_project(store, user, classid, studentid, projectid)
    record = await orchestrator.create_model(project)
    return classifier_to_dict(record)


@router.post("/{modelid}/label")
async def test_model(
    classid: str,
    studentid: str,
    projectid: str,
    modelid: str,
    body: LabelRequest,
    user: RequestUser = Depends(get_request_user),
    store: SqlModelStore = Depends(get_store),
    orchestrator: ModelOrchestrator = Depends(get_orchestrator),
):
    """用测试数据调用模型

    **请求体字段**
    - type (str): 项目类型 text / images / numbers，必填
    - text (str): 待分类文本（text 项目）
    - image (str): 图片 URL（images 项目，与 data 二选一）
    - data (str): Base64 编码的图片数据（images 项目）
    - numbers (List[float]): 数值向量（numbers 项目）
    - credentialsid (str): 凭据 ID（text / images 项目必填）

    **返回字段**（数组，顺序与 Provider 一致）
    - class_name (str): 类别
    - confidence (float): 置信度 0-1
    - classifierTimestamp (str): 产生结果的模型版本时间
    """
    # 请求数据先于项目查找校验，缺失数据不会触发任何查询
    if body.type is None:
        raise InvalidRequestException()
    payload = body.to_payload()
    validate_test_payload(body.type, body.credentialsid, payload)

    project = _load_project(store, user, classid, studentid, projectid)
    if project.type is not body.type:
        raise InvalidRequestException()

    classifications = await orchestrator.test_model(project, modelid, body.credentialsid, payload)
    return [classification_to_dict(c) for c in classifications]


@router.delete("/{modelid}", status_code=204)
async def delete_model(
    classid: str,
    studentid: str,
    projectid: str,
    modelid: str,
    user: RequestUser = Depends(get_request_user),
    store: SqlModelStore = Depends(get_store),
    orchestrator: ModelOrchestrator = Depends(get_orchestrator),
):
    """删除模型

    项目所有者或本班级教师可删除；模型已删除时返回 404。
    """
    project = _load_project(store, user, classid, studentid, projectid)
    await orchestrator.delete_model(project, modelid)
    return Response(status_code=204)
