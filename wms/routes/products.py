from typing import Optional

from fastapi import APIRouter, Query, Request

from wms.rbac.decorators import require_permission
from wms.utils import success_response
from wms.utils.exceptions import NotFoundError
from .deps import get_store, mutation_response
from .schemas import (
    BulkUpdateRequest,
    BulkUpsertRequest,
    CreateProductRequest,
    MoveProductRequest,
    StockAdjustRequest,
    UpdateProductRequest,
)

products_router = APIRouter()


@products_router.get("/")
@require_permission("INVENTORY_PRODUCT", "read")
async def list_products(
    request: Request,
    warehouse: Optional[str] = Query(None, description="Filter by warehouse"),
    status: Optional[str] = Query(None, description="Filter by stock status"),
):
    store = get_store(request)
    products = store.products.filter(
        lambda p: (warehouse is None or p.get("warehouse") == warehouse)
        and (status is None or p.get("status") == status)
    )
    return success_response(data={"items": products, "total": len(products)})


@products_router.get("/stats")
@require_permission("DASHBOARD", "read")
async def dashboard_stats(request: Request):
    return success_response(data=get_store(request).stats)


@products_router.get("/search")
@require_permission("SKU_LOOKUP", "read")
async def search_product(request: Request, q: str = Query(..., min_length=1)):
    """Exact lookup by barcode or SKU."""
    product = get_store(request).search_product(q)
    if product is None:
        raise NotFoundError("Product not found")
    return success_response(data=product)


@products_router.get("/transactions")
@require_permission("INVENTORY_QUERY", "read")
async def list_transactions(request: Request, product_id: Optional[str] = None):
    store = get_store(request)
    rows = store.transactions.filter(lambda t: product_id is None or t.get("product_id") == product_id)
    return success_response(data={"items": rows, "total": len(rows)})


@products_router.get("/shelf-logs")
@require_permission("SHELF_LOGS", "read")
async def list_shelf_logs(request: Request):
    rows = get_store(request).shelf_logs.all()
    return success_response(data={"items": rows, "total": len(rows)})


@products_router.post("/")
@require_permission("INVENTORY_PRODUCT", "create")
async def add_product(request: Request, body: CreateProductRequest):
    result = await get_store(request).add_product(body.model_dump(exclude_none=True))
    return mutation_response(result, "Product added", code=201)


@products_router.post("/bulk-upsert")
@require_permission("INVENTORY_PRODUCT", "create")
async def bulk_upsert_products(request: Request, body: BulkUpsertRequest):
    """Import a batch of products, merging with existing ones."""
    batch = [p.model_dump(exclude_none=True) for p in body.products]
    result = await get_store(request).bulk_upsert_products(batch)
    return mutation_response(result, "Products imported")


@products_router.patch("/bulk")
@require_permission("INVENTORY_PRODUCT", "edit")
async def bulk_update_products(request: Request, body: BulkUpdateRequest):
    result = await get_store(request).bulk_update_products(body.ids, body.updates)
    return mutation_response(result, "Products updated")


@products_router.post("/move")
@require_permission("SCAN_TO_SHELF", "edit")
async def move_product(request: Request, body: MoveProductRequest):
    """Put a product on a new shelf location."""
    result = await get_store(request).move_product(body.barcode, body.new_location, body.method.value)
    return mutation_response(result, "Product moved")


@products_router.get("/{product_id}")
@require_permission("INVENTORY_PRODUCT", "read")
async def get_product(request: Request, product_id: str):
    product = get_store(request).products.get(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return success_response(data=product)


@products_router.get("/{product_id}/shelf-log")
@require_permission("SHELF_LOGS", "read")
async def latest_shelf_log(request: Request, product_id: str):
    log = get_store(request).get_latest_shelf_log(product_id)
    if log is None:
        raise NotFoundError("No shelf history for this product")
    return success_response(data=log)


@products_router.put("/{product_id}")
@require_permission("INVENTORY_PRODUCT", "edit")
async def update_product(request: Request, product_id: str, body: UpdateProductRequest):
    changes = body.model_dump(exclude_unset=True, exclude={"adjustment_reason"})
    changes["id"] = product_id
    result = await get_store(request).update_product(changes, body.adjustment_reason)
    return mutation_response(result, "Product updated")


@products_router.post("/{product_id}/stock")
@require_permission("INVENTORY_ADJUSTMENT", "edit")
async def adjust_stock(request: Request, product_id: str, body: StockAdjustRequest):
    result = await get_store(request).adjust_product_stock(product_id, body.new_stock, body.reason)
    return mutation_response(result, "Stock adjusted")


@products_router.delete("/{product_id}")
@require_permission("INVENTORY_PRODUCT", "delete")
async def delete_product(request: Request, product_id: str):
    result = await get_store(request).delete_product(product_id)
    return mutation_response(result, "Product deleted")
