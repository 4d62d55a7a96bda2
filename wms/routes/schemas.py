from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from wms.preferences import Theme
from wms.sync import AdjustmentItem, AdjustmentStatus, ShelfLogMethod, TaskPriority, WarehouseType


# ── Products ─────────────────────────────────────────────────────


class ProductRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    barcode: Optional[str] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    specification: Optional[str] = None
    unit: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[str] = None
    status: Optional[str] = None
    standard_price: Optional[float] = None
    wholesale_price: Optional[float] = None
    wholesale_price2: Optional[float] = None
    purchase_price: Optional[float] = None
    origin: Optional[str] = None
    brand: Optional[str] = None
    warehouse: Optional[str] = None


class CreateProductRequest(ProductRequest):
    barcode: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    stock: int = Field(0, ge=0)


class UpdateProductRequest(ProductRequest):
    adjustment_reason: Optional[str] = None


class StockAdjustRequest(BaseModel):
    new_stock: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1)


class MoveProductRequest(BaseModel):
    barcode: str = Field(..., min_length=1)
    new_location: str = Field(..., min_length=1)
    method: ShelfLogMethod = ShelfLogMethod.SCAN


class BulkUpsertRequest(BaseModel):
    products: list[ProductRequest] = Field(..., min_length=1)


class BulkUpdateRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    updates: dict[str, Any]


# ── Adjustments ──────────────────────────────────────────────────


class CreateAdjustmentRequest(BaseModel):
    items: list[AdjustmentItem] = Field(..., min_length=1)
    note: Optional[str] = None
    status: AdjustmentStatus = AdjustmentStatus.PENDING


# ── Users ────────────────────────────────────────────────────────


class UserRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    landing_page: Optional[str] = None
    permissions: Optional[list[str]] = None
    custom_config: Optional[dict] = None


class CreateUserRequest(UserRequest):
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    role: str = "USER"


# ── Tasks ────────────────────────────────────────────────────────


class CreateTaskRequest(BaseModel):
    title: str = Field(..., min_length=1)
    due_date: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    related_order_id: Optional[str] = None


# ── Warehouses ───────────────────────────────────────────────────


class WarehouseRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    code: Optional[str] = None
    type: Optional[WarehouseType] = None
    is_main: Optional[bool] = None
    status: Optional[str] = None


class CreateWarehouseRequest(WarehouseRequest):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)


# ── Receiving orders ─────────────────────────────────────────────


class ReceivingOrderRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    receiving_serial: Optional[str] = None
    purchase_serial: Optional[str] = None
    supplier_name: Optional[str] = None
    receiving_branch: Optional[str] = None
    receipt_date: Optional[str] = None
    number_of_pieces: Optional[int] = Field(None, ge=0)
    remarks: Optional[str] = None


class BulkReceivingOrdersRequest(BaseModel):
    orders: list[ReceivingOrderRequest] = Field(..., min_length=1)


# ── Roles ────────────────────────────────────────────────────────


class CreateRoleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = ""


# ── Preferences ──────────────────────────────────────────────────


class ThemeRequest(BaseModel):
    theme: Theme
