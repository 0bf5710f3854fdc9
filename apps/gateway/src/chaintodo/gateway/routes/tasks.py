"""任务路由 -- 作用域为当前用户关联的钱包

GET /api/tasks: 任务列表（未关联钱包时为空列表）。
GET /api/tasks/{task_id}: 任务详情。
PATCH /api/tasks/{task_id}/metadata: 编辑链下元数据。
DELETE /api/tasks/{task_id}: 通过 API 删除任务。
"""

from chaintodo.core.models import Task, TaskMetadataUpdate, User
from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel
from starlette.responses import Response

from ..deps import get_current_user, get_task_service
from ..errors import ApiError
from ..services.task_service import TaskService

router = APIRouter()


class TaskView(BaseModel):
    """任务响应体"""

    owner: str
    task_id: int
    content: str
    completed: bool
    status: str
    priority: str
    tags: list[str]
    category: str
    due_date: str | None
    created_at: str
    updated_at: str


class TaskListResponse(BaseModel):
    tasks: list[TaskView]


def _view(task: Task) -> TaskView:
    return TaskView(
        owner=task.owner,
        task_id=task.task_id,
        content=task.content,
        completed=task.completed,
        status=task.status.value,
        priority=task.priority.value,
        tags=task.tags,
        category=task.category,
        due_date=task.due_date.isoformat() if task.due_date else None,
        created_at=task.created_at.isoformat(),
        updated_at=task.updated_at.isoformat(),
    )


def _require_wallet(user: User) -> str:
    if user.wallet_address is None:
        raise ApiError(400, "WALLET_NOT_LINKED", "link a wallet to access tasks")
    return user.wallet_address


def _not_found(task_id: int) -> ApiError:
    return ApiError(404, "TASK_NOT_FOUND", f"Task with id {task_id} does not exist")


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """查询当前钱包的任务，按 task_id 升序"""
    if user.wallet_address is None:
        return TaskListResponse(tasks=[])
    tasks = await service.list_tasks(user.wallet_address)
    return TaskListResponse(tasks=[_view(t) for t in tasks])


@router.get("/api/tasks/{task_id}", response_model=TaskView)
async def get_task(
    task_id: int = Path(ge=0),
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.get_task(_require_wallet(user), task_id)
    if task is None:
        raise _not_found(task_id)
    return _view(task)


@router.patch("/api/tasks/{task_id}/metadata", response_model=TaskView)
async def update_metadata(
    body: TaskMetadataUpdate,
    task_id: int = Path(ge=0),
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """编辑链下元数据；仅请求体中出现的字段会被写入"""
    task = await service.update_metadata(_require_wallet(user), task_id, body)
    if task is None:
        raise _not_found(task_id)
    return _view(task)


@router.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: int = Path(ge=0),
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    if not await service.delete_task(_require_wallet(user), task_id):
        raise _not_found(task_id)
    return Response(status_code=204)
