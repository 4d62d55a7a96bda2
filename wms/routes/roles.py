from fastapi import APIRouter, Request

from wms.rbac import RoleConfig
from wms.rbac.decorators import require_permission
from wms.utils import success_response
from wms.utils.exceptions import NotFoundError
from .deps import get_store, mutation_response
from .schemas import CreateRoleRequest

roles_router = APIRouter()


@roles_router.get("/")
@require_permission("SETTINGS", "read")
async def list_roles(request: Request):
    configs = get_store(request).role_configs.as_dict()
    return success_response(data={role: cfg.model_dump(mode="json") for role, cfg in configs.items()})


@roles_router.get("/{role}")
@require_permission("SETTINGS", "read")
async def get_role(request: Request, role: str):
    config = get_store(request).role_configs.get(role)
    if config is None:
        raise NotFoundError(f"Role {role} not found")
    return success_response(data=config.model_dump(mode="json"))


@roles_router.put("/{role}")
@require_permission("SETTINGS", "special", "manage_settings")
async def update_role_config(request: Request, role: str, body: RoleConfig):
    """Replace the permission matrix of a role."""
    result = await get_store(request).update_role_config(role, body)
    return mutation_response(result, f"Role {role} saved")


@roles_router.post("/")
@require_permission("SETTINGS", "special", "manage_settings")
async def add_role(request: Request, body: CreateRoleRequest):
    """Create a custom role from the standard user template."""
    result = await get_store(request).add_role(body.name, body.description)
    return mutation_response(result, f"Role {body.name} created", code=201)
