from fastapi import APIRouter, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from .deps import get_store, mutation_response
from .schemas import CreateTaskRequest

tasks_router = APIRouter()


@tasks_router.get("/")
@require_permission("TASK_MANAGER", "read")
async def list_tasks(request: Request):
    tasks = get_store(request).tasks.all()
    return success_response(data={"items": tasks, "total": len(tasks)})


@tasks_router.post("/")
@require_permission("TASK_MANAGER", "create")
async def add_task(request: Request, body: CreateTaskRequest):
    result = await get_store(request).add_task(
        body.title,
        due_date=body.due_date,
        priority=body.priority.value,
        related_order_id=body.related_order_id,
    )
    return mutation_response(result, "Task added", code=201)


@tasks_router.post("/{task_id}/toggle")
@require_permission("TASK_MANAGER", "edit")
async def toggle_task(request: Request, task_id: str):
    result = await get_store(request).toggle_task_completion(task_id)
    return mutation_response(result, "Task updated")


@tasks_router.delete("/{task_id}")
@require_permission("TASK_MANAGER", "delete")
async def delete_task(request: Request, task_id: str):
    result = await get_store(request).delete_task(task_id)
    return mutation_response(result, "Task deleted")
