"""Enumerations and request shapes shared by the sync commands."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

LOW_STOCK_THRESHOLD = 20


class TransactionType(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"


class ShelfLogMethod(str, Enum):
    SCAN = "SCAN"
    IMPORT = "IMPORT"
    MANUAL = "MANUAL"


class AdjustmentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TaskPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class WarehouseType(str, Enum):
    MAIN = "MAIN"
    BRANCH = "BRANCH"
    TRANSFER = "TRANSFER"


class AdjustmentItem(BaseModel):
    product_id: str
    product_name: str = ""
    sku: str = ""
    barcode: Optional[str] = None
    current_stock: int = 0
    actual_stock: int = Field(..., ge=0)
    adjustment_qty: int = 0
    reason: str = ""


def product_status(stock: Optional[int]) -> str:
    if not stock or stock <= 0:
        return "Out of Stock"
    if stock < LOW_STOCK_THRESHOLD:
        return "Low Stock"
    return "In Stock"
