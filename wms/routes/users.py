from fastapi import APIRouter, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from .deps import get_store, mutation_response
from .schemas import CreateUserRequest, UserRequest

users_router = APIRouter()


@users_router.get("/")
@require_permission("ACCOUNT_MANAGEMENT", "read")
async def list_users(request: Request):
    users = get_store(request).users.all()
    return success_response(data={"items": users, "total": len(users)})


@users_router.post("/")
@require_permission("ACCOUNT_MANAGEMENT", "create")
async def add_user(request: Request, body: CreateUserRequest):
    result = await get_store(request).add_user(body.model_dump(exclude_none=True))
    return mutation_response(result, "User created", code=201)


@users_router.put("/{user_id}")
@require_permission("ACCOUNT_MANAGEMENT", "edit")
async def update_user(request: Request, user_id: str, body: UserRequest):
    changes = body.model_dump(exclude_unset=True)
    changes["id"] = user_id
    result = await get_store(request).update_user(changes)
    return mutation_response(result, "User updated")


@users_router.delete("/{user_id}")
@require_permission("ACCOUNT_MANAGEMENT", "delete")
async def delete_user(request: Request, user_id: str):
    result = await get_store(request).delete_user(user_id)
    return mutation_response(result, "User deleted")
