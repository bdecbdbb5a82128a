"""
api/routes/tasks.py -- Task list routes.

Routes:
  GET    /tasks
  POST   /tasks
  GET    /tasks/{id}
  PUT    /tasks/{id}
  DELETE /tasks/{id}

Like contacts, tasks are shared by every authenticated user.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import TaskIn, TaskResponse
from auth.dependencies import get_principal, require_permission
from auth.models import Permission
from core.errors import NotFound
from records.models import Task
from records.store import RecordStore

router = APIRouter(dependencies=[Depends(get_principal)])

_read = Depends(require_permission(Permission.tasks_read))
_write = Depends(require_permission(Permission.tasks_write))


@router.get("/tasks", response_model=list[TaskResponse], dependencies=[_read])
def list_tasks(request: Request) -> list[TaskResponse]:
    records: RecordStore = request.app.state.records
    return [TaskResponse.from_task(t) for t in records.list_tasks()]


@router.post("/tasks", response_model=TaskResponse, status_code=201, dependencies=[_write])
def create_task(request: Request, body: TaskIn) -> TaskResponse:
    records: RecordStore = request.app.state.records
    # mode="json" turns the priority enum into its string value.
    task_id = records.create_task(Task(**body.model_dump(mode="json")))
    task = records.get_task(task_id)
    if task is None:
        raise NotFound()
    return TaskResponse.from_task(task)


@router.get("/tasks/{task_id}", response_model=TaskResponse, dependencies=[_read])
def get_task(request: Request, task_id: int) -> TaskResponse:
    records: RecordStore = request.app.state.records
    task = records.get_task(task_id)
    if task is None:
        raise NotFound()
    return TaskResponse.from_task(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse, dependencies=[_write])
def update_task(request: Request, task_id: int, body: TaskIn) -> TaskResponse:
    records: RecordStore = request.app.state.records
    updated = records.update_task(task_id, **body.model_dump(mode="json"))
    if updated is None:
        raise NotFound()
    return TaskResponse.from_task(updated)


@router.delete("/tasks/{task_id}", status_code=204, dependencies=[_write])
def delete_task(request: Request, task_id: int) -> Response:
    records: RecordStore = request.app.state.records
    if not records.delete_task(task_id):
        raise NotFound()
    return Response(status_code=204)
