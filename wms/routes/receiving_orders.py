from fastapi import APIRouter, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from .deps import get_store, mutation_response
from .schemas import BulkReceivingOrdersRequest, ReceivingOrderRequest

receiving_router = APIRouter()


@receiving_router.get("/")
@require_permission("RECEIVING_ORDERS", "read")
async def list_receiving_orders(request: Request):
    orders = get_store(request).receiving_orders.all()
    return success_response(data={"items": orders, "total": len(orders)})


@receiving_router.post("/")
@require_permission("RECEIVING_ORDERS", "create")
async def add_receiving_order(request: Request, body: ReceivingOrderRequest):
    result = await get_store(request).add_receiving_order(body.model_dump(exclude_none=True))
    return mutation_response(result, "Receiving order created", code=201)


@receiving_router.post("/import")
@require_permission("RECEIVING_ORDERS", "create")
async def import_receiving_orders(request: Request, body: BulkReceivingOrdersRequest):
    orders = [o.model_dump(exclude_none=True) for o in body.orders]
    result = await get_store(request).bulk_import_receiving_orders(orders)
    return mutation_response(result, "Receiving orders imported")


@receiving_router.post("/{order_id}/approve")
@require_permission("RECEIVING_ORDERS", "approve")
async def approve_receiving_order(request: Request, order_id: str):
    result = await get_store(request).approve_receiving_order(order_id)
    return mutation_response(result, "Receiving order approved")
