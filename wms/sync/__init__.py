from .mutation import MutationOutcome, MutationResult
from .events import EventBus, ProductCreated, StockChanged, LocationChanged
from .state import DashboardState, EntityCollection
from .audit import AuditLog
from .schemas import (
    LOW_STOCK_THRESHOLD,
    AdjustmentItem,
    AdjustmentStatus,
    ReviewStatus,
    ShelfLogMethod,
    TaskPriority,
    TransactionType,
    WarehouseType,
    product_status,
)
from .store import DashboardStore

__all__ = [
    "MutationOutcome",
    "MutationResult",
    "EventBus",
    "ProductCreated",
    "StockChanged",
    "LocationChanged",
    "DashboardState",
    "EntityCollection",
    "AuditLog",
    "LOW_STOCK_THRESHOLD",
    "AdjustmentItem",
    "AdjustmentStatus",
    "ReviewStatus",
    "ShelfLogMethod",
    "TaskPriority",
    "TransactionType",
    "WarehouseType",
    "product_status",
    "DashboardStore",
]
