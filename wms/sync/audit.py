"""
Audit trail.

`AuditLog` consumes inventory events and records them as Transaction and
ShelfLog rows (remote insert, then local prepend once the write is
confirmed or queued offline). It also writes free-form entries to the
`audit_logs` table for security and configuration changes:

    await audit.log(
        module="ROLE_CONFIG",
        action="update",
        user_id="...", user_email="...", user_role="ADMIN",
        resource_id="MANAGER",
        description="Updated role MANAGER",
        before=old_config, after=new_config,
    )
"""

from typing import Any, Optional

from wms.remote import RemoteError, RemoteStore
from wms.utils import Logger, ensure_uuid, utc_now_iso
from .events import EventBus, LocationChanged, ProductCreated, StockChanged
from .schemas import ShelfLogMethod, TransactionType
from .state import DashboardState, EntityCollection

logger = Logger("wms.sync.audit")

INITIAL_ADD_REFERENCE = "INITIAL_ADD"


def _diff_fields(before: dict | None, after: dict | None) -> list[str]:
    """Field names whose values differ, ignoring bookkeeping fields."""
    if not before or not after:
        return []

    skip = {"id", "updated_at", "created_at", "updated_by"}
    changed = []
    for key in set(before.keys()) | set(after.keys()):
        if key in skip:
            continue
        if before.get(key) != after.get(key):
            changed.append(key)
    return sorted(changed)


class AuditLog:
    def __init__(self, state: DashboardState, remote: RemoteStore):
        self.state = state
        self.remote = remote

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(ProductCreated, self.on_product_created)
        bus.subscribe(StockChanged, self.on_stock_changed)
        bus.subscribe(LocationChanged, self.on_location_changed)

    # ── Event consumers ──────────────────────────────────────────

    async def on_product_created(self, event: ProductCreated) -> None:
        stock = event.product.get("stock") or 0
        if stock <= 0:
            return
        await self._record(
            self.state.transactions,
            {
                "id": ensure_uuid(),
                "type": TransactionType.INBOUND.value,
                "product_id": event.product["id"],
                "product_name": event.product.get("name"),
                "quantity": stock,
                "timestamp": event.timestamp,
                "user": event.actor_name,
                "reference_id": INITIAL_ADD_REFERENCE,
                "to_location": event.product.get("location"),
            },
        )

    async def on_stock_changed(self, event: StockChanged) -> None:
        delta = event.delta
        if delta == 0:
            return
        location = event.product.get("location")
        await self._record(
            self.state.transactions,
            {
                "id": ensure_uuid(),
                "type": (TransactionType.INBOUND if delta > 0 else TransactionType.OUTBOUND).value,
                "product_id": event.product["id"],
                "product_name": event.product.get("name"),
                "quantity": abs(delta),
                "timestamp": event.timestamp,
                "user": event.actor_name,
                "reference_id": event.reason,
                "from_location": location if delta < 0 else None,
                "to_location": location if delta > 0 else None,
            },
        )

    async def on_location_changed(self, event: LocationChanged) -> None:
        product = event.product
        await self._record(
            self.state.transactions,
            {
                "id": ensure_uuid(),
                "type": TransactionType.TRANSFER.value,
                "product_id": product["id"],
                "product_name": product.get("name"),
                "quantity": product.get("stock") or 0,
                "timestamp": event.timestamp,
                "user": event.actor_name,
                "from_location": event.old_location,
                "to_location": event.new_location,
            },
        )
        await self._record(
            self.state.shelf_logs,
            {
                "id": ensure_uuid(),
                "product_id": product["id"],
                "product_name": product.get("name"),
                "barcode": product.get("barcode"),
                "sku": product.get("sku"),
                "old_location": event.old_location,
                "new_location": event.new_location,
                "timestamp": event.timestamp,
                "operator": event.actor_name,
                "method": ShelfLogMethod(event.method).value,
            },
        )

    async def _record(self, collection: EntityCollection, row: dict) -> None:
        row = {k: v for k, v in row.items() if v is not None}
        try:
            stored = await self.remote.table(collection.name).insert(row)
        except RemoteError as exc:
            if not exc.offline:
                logger.error(f"Failed to record {collection.name} row: {exc.message}")
                return
            logger.warning(f"Offline: keeping {collection.name} row {row['id']} locally")
            stored = None
        collection.prepend(stored or row)

    # ── Free-form entries ────────────────────────────────────────

    async def log(
        self,
        module: str,
        action: str,
        user_id: str | None = None,
        user_email: str | None = None,
        user_role: str | None = None,
        resource_id: str | None = None,
        description: str = "",
        before: dict | Any = None,
        after: dict | Any = None,
    ) -> Optional[dict]:
        """Record an audit entry. Never raises; returns None when not stored."""
        entry = {
            "id": ensure_uuid(),
            "module": module,
            "action": action,
            "user_id": user_id,
            "user_email": user_email,
            "user_role": user_role,
            "resource_id": resource_id,
            "description": description,
            "before": before,
            "after": after,
            "changed_fields": _diff_fields(before, after) if before and after else None,
            "timestamp": utc_now_iso(),
        }
        try:
            return await self.remote.table("audit_logs").insert(entry) or entry
        except RemoteError as exc:
            logger.warning(f"Audit entry {module}:{action} not stored: {exc.message}")
            return None
