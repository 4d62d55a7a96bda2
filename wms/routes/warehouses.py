from fastapi import APIRouter, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from .deps import get_store, mutation_response
from .schemas import CreateWarehouseRequest, WarehouseRequest

warehouses_router = APIRouter()


@warehouses_router.get("/")
@require_permission("WAREHOUSE_CONFIG", "read")
async def list_warehouses(request: Request):
    warehouses = get_store(request).warehouses.all()
    return success_response(data={"items": warehouses, "total": len(warehouses)})


@warehouses_router.post("/")
@require_permission("WAREHOUSE_CONFIG", "create")
async def add_warehouse(request: Request, body: CreateWarehouseRequest):
    result = await get_store(request).add_warehouse(body.model_dump(mode="json", exclude_none=True))
    return mutation_response(result, "Warehouse added", code=201)


@warehouses_router.put("/{warehouse_id}")
@require_permission("WAREHOUSE_CONFIG", "edit")
async def update_warehouse(request: Request, warehouse_id: str, body: WarehouseRequest):
    result = await get_store(request).update_warehouse(
        warehouse_id, body.model_dump(mode="json", exclude_unset=True)
    )
    return mutation_response(result, "Warehouse updated")


@warehouses_router.delete("/{warehouse_id}")
@require_permission("WAREHOUSE_CONFIG", "delete")
async def delete_warehouse(request: Request, warehouse_id: str):
    result = await get_store(request).delete_warehouse(warehouse_id)
    return mutation_response(result, "Warehouse deleted")
