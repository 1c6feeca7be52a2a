"""
请求调用方上下文

身份认证由上游网关完成，网关通过请求头传入已解析的调用方：
- X-User-Id:    用户 ID
- X-User-Role:  student / supervisor
- X-Class-Id:   所属班级（租户）
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException

from mlclassroom.core.enums import UserRole
from mlclassroom.core.exceptions import ForbiddenException, NotFoundException
from mlclassroom.core.training_types import Project


@dataclass(frozen=True)
class RequestUser:
    user_id: str
    role: UserRole
    class_id: str

    @property
    def is_supervisor(self) -> bool:
        return self.role is UserRole.SUPERVISOR


def get_request_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
    x_class_id: str | None = Header(None),
) -> RequestUser:
    """FastAPI 依赖：读取上游已解析的调用方身份"""
    if not x_user_id or not x_class_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Not logged in")
    try:
        role = UserRole(x_user_role.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail="Unknown user role") from None
    return RequestUser(user_id=x_user_id, role=role, class_id=x_class_id)


def ensure_class_access(user: RequestUser, class_id: str) -> None:
    if user.class_id != class_id:
        raise ForbiddenException()


def ensure_project_access(
    user: RequestUser,
    class_id: str,
    student_id: str,
    project: Project | None,
) -> Project:
    """
    校验调用方对项目的访问权限

    - 项目不存在 -> NotFound
    - 跨班级访问 -> Forbidden
    - 学生只能访问自己的项目；教师可访问本班级任意项目
    """
    ensure_class_access(user, class_id)
    if project is None:
        raise NotFoundException()
    if project.class_id != class_id:
        raise ForbiddenException()
    if not user.is_supervisor and (student_id != user.user_id or project.user_id != user.user_id):
        raise ForbiddenException()
    return project


__all__ = ["RequestUser", "get_request_user", "ensure_class_access", "ensure_project_access"]
