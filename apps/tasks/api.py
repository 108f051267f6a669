"""
API Router for Tasks app.
CRUD, status transitions and the audit trail of a task.
"""
from django.http import HttpRequest
from ninja import Query, Router

from apps.core.pagination import page_request
from apps.core.responses import success
from apps.core.schemas import EnvelopeOut
from apps.identity.security import require_auth
from . import services
from .dtos import TaskFilter, TaskPatch
from .schemas import TaskCreateIn, TaskFilterIn, TaskStatusIn, TaskUpdateIn

router = Router(tags=["Tasks"])


@router.post("/", response={201: EnvelopeOut}, auth=None)
def create_task(request: HttpRequest, payload: TaskCreateIn):
    principal = require_auth(request)
    task = services.create_task(principal, **payload.dict())
    return 201, success({'task': task}, "Task created successfully")


@router.get("/", response=EnvelopeOut, auth=None)
def list_tasks(request: HttpRequest, filters: Query[TaskFilterIn]):
    """
    Tasks visible to the caller.
    sort_by: created_at | start_time | end_time | priority | status | title
    """
    principal = require_auth(request)
    params = filters.dict()
    page = page_request(params.pop('page'), params.pop('limit'))
    result = services.list_tasks(principal, TaskFilter(**params), page)
    return success({'tasks': result.items, 'pagination': result.pagination()})


@router.get("/{task_id}", response=EnvelopeOut, auth=None)
def get_task(request: HttpRequest, task_id: int):
    principal = require_auth(request)
    detail = services.get_task_detail(principal, task_id)
    return success({'task': detail.task, 'updates': detail.updates})


@router.get("/{task_id}/updates", response=EnvelopeOut, auth=None)
def get_task_updates(request: HttpRequest, task_id: int):
    principal = require_auth(request)
    return success({'updates': services.list_task_updates(principal, task_id)})


@router.put("/{task_id}", response=EnvelopeOut, auth=None)
def update_task(request: HttpRequest, task_id: int, payload: TaskUpdateIn):
    principal = require_auth(request)
    patch = TaskPatch.from_dict(payload.dict(exclude_unset=True))
    task = services.update_task(principal, task_id, patch)
    return success({'task': task}, "Task updated successfully")


@router.api_operation(["PUT", "PATCH"], "/{task_id}/status", response=EnvelopeOut, auth=None)
def update_task_status(request: HttpRequest, task_id: int, payload: TaskStatusIn):
    principal = require_auth(request)
    task = services.update_task_status(principal, task_id, payload.status, payload.notes)
    return success({'task': task}, "Task status updated successfully")


@router.delete("/{task_id}", response=EnvelopeOut, auth=None)
def delete_task(request: HttpRequest, task_id: int):
    principal = require_auth(request)
    services.delete_task(principal, task_id)
    return success(message="Task deleted successfully")
