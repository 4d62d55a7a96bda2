from typing import Optional

from fastapi import APIRouter, Query, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from .deps import get_store, mutation_response
from .schemas import CreateAdjustmentRequest

adjustments_router = APIRouter()


@adjustments_router.get("/")
@require_permission("INVENTORY_ADJUSTMENT", "read")
async def list_adjustment_bills(request: Request, status: Optional[str] = Query(None)):
    bills = get_store(request).adjustment_bills.filter(lambda b: status is None or b.get("status") == status)
    return success_response(data={"items": bills, "total": len(bills)})


@adjustments_router.post("/")
@require_permission("INVENTORY_ADJUSTMENT", "create")
async def create_adjustment_bill(request: Request, body: CreateAdjustmentRequest):
    """Create a stock adjustment bill; an APPROVED bill is applied at once."""
    result = await get_store(request).create_adjustment_bill(
        [item.model_dump() for item in body.items],
        note=body.note,
        status=body.status.value,
    )
    return mutation_response(result, "Adjustment bill created", code=201)


@adjustments_router.post("/{bill_id}/approve")
@require_permission("INVENTORY_ADJUSTMENT", "approve")
async def approve_adjustment_bill(request: Request, bill_id: str):
    result = await get_store(request).approve_adjustment_bill(bill_id)
    return mutation_response(result, "Adjustment bill approved")


@adjustments_router.post("/{bill_id}/reject")
@require_permission("INVENTORY_ADJUSTMENT", "reject")
async def reject_adjustment_bill(request: Request, bill_id: str):
    result = await get_store(request).reject_adjustment_bill(bill_id)
    return mutation_response(result, "Adjustment bill rejected")
