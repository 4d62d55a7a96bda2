"""
Dashboard store, the single owner of application state.

Every command applies its change locally first, then awaits the remote
write and reconciles:

    success            → the stored row replaces the local copy
    OfflineError       → the local change is kept, a warning is logged
    other RemoteError  → the pre-mutation snapshot is restored

Remote writes for the same (table, id) are serialised, and a reconcile only
touches a row that still holds the value its own mutation applied.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager, contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from wms.rbac import (
    RoleConfig,
    RoleConfigStore,
    RoleMetadata,
    generate_default_config,
    merge_role_config,
)
from wms.rbac.roles import CUSTOM_ROLE_COLOR
from wms.remote import RemoteError, RemoteStore
from wms.session.schemas import NotificationSettings, UserProfile
from wms.utils import Logger, TransitionValidator, ensure_uuid, epoch_ms, utc_now_iso
from .audit import AuditLog
from .events import EventBus, LocationChanged, ProductCreated, StockChanged
from .mutation import MutationOutcome, MutationResult
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
from .state import DashboardState, EntityCollection

logger = Logger("wms.sync")

SYSTEM_ACTOR = "System"

_UNSCOPED = object()

# actor of the request being served; unset outside `DashboardStore.acting_as`
_scoped_actor: ContextVar[Any] = ContextVar("wms_scoped_actor", default=_UNSCOPED)

ADJUSTMENT_FSM = TransitionValidator(
    {
        AdjustmentStatus.PENDING.value: {AdjustmentStatus.APPROVED.value, AdjustmentStatus.REJECTED.value},
        AdjustmentStatus.APPROVED.value: set(),
        AdjustmentStatus.REJECTED.value: set(),
    }
)

RECEIVING_FSM = TransitionValidator(
    {
        ReviewStatus.PENDING.value: {ReviewStatus.APPROVED.value, ReviewStatus.REJECTED.value},
        ReviewStatus.APPROVED.value: set(),
        ReviewStatus.REJECTED.value: set(),
    }
)

IMPORT_DEFAULTS = {
    "stock": 0,
    "name": "Unknown Product",
    "barcode": "NO_BARCODE",
    "category": "General",
    "unit": "PCS",
    "standard_price": 0,
    "wholesale_price": 0,
    "wholesale_price2": 0,
    "purchase_price": 0,
}

# table name, sort field, newest first
REFRESH_TABLES = (
    ("products", None, False),
    ("transactions", "timestamp", True),
    ("shelf_logs", "timestamp", True),
    ("warehouses", None, False),
    ("tasks", "created_at", True),
    ("adjustment_bills", "created_at", True),
    ("user_profiles", None, False),
)


def _filled(value: Any) -> bool:
    return value is not None and value != ""


def _local_timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class DashboardStore:
    def __init__(
        self,
        remote: RemoteStore,
        state: DashboardState | None = None,
        bus: EventBus | None = None,
        audit: AuditLog | None = None,
    ):
        self.remote = remote
        self.state = state or DashboardState()
        self.bus = bus or EventBus()
        self.audit = audit or AuditLog(self.state, remote)
        self.audit.attach(self.bus)
        self._current_user: Optional[UserProfile] = None
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    # ── Acting user ──────────────────────────────────────────────

    @property
    def current_user(self) -> Optional[UserProfile]:
        actor = _scoped_actor.get()
        return self._current_user if actor is _UNSCOPED else actor

    @current_user.setter
    def current_user(self, actor: Optional[UserProfile]) -> None:
        if _scoped_actor.get() is _UNSCOPED:
            self._current_user = actor
        else:
            _scoped_actor.set(actor)

    @contextmanager
    def acting_as(self, actor: Optional[UserProfile]):
        """
        Run the commands issued inside the block on behalf of `actor`.

        The actor is bound to the running context only, so concurrent
        requests served by one store never see each other's user, and the
        process-wide `current_user` is left untouched.
        """
        token = _scoped_actor.set(actor)
        try:
            yield actor
        finally:
            _scoped_actor.reset(token)

    # ── State accessors ──────────────────────────────────────────

    @property
    def products(self) -> EntityCollection:
        return self.state.products

    @property
    def transactions(self) -> EntityCollection:
        return self.state.transactions

    @property
    def shelf_logs(self) -> EntityCollection:
        return self.state.shelf_logs

    @property
    def users(self) -> EntityCollection:
        return self.state.users

    @property
    def adjustment_bills(self) -> EntityCollection:
        return self.state.adjustment_bills

    @property
    def tasks(self) -> EntityCollection:
        return self.state.tasks

    @property
    def warehouses(self) -> EntityCollection:
        return self.state.warehouses

    @property
    def receiving_orders(self) -> EntityCollection:
        return self.state.receiving_orders

    @property
    def role_configs(self) -> RoleConfigStore:
        return self.state.role_configs

    # ── Internals ────────────────────────────────────────────────

    def _actor_name(self) -> str:
        if self.current_user and self.current_user.name:
            return self.current_user.name
        return SYSTEM_ACTOR

    @asynccontextmanager
    async def _lock(self, table: str, row_id: str):
        """Hold the write lock of one row; the lock is dropped once nobody waits on it."""
        key = (table, row_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def _table(self, name: str):
        return self.remote.table(name)

    def _rollback(
        self,
        collection: EntityCollection,
        row_id: str,
        applied: Optional[dict],
        previous: Optional[dict],
        index: int = -1,
    ) -> None:
        current = collection.get(row_id)
        if applied is None:
            # undo a delete unless something re-created the row meanwhile
            if current is None and previous is not None:
                collection.insert_at(index, previous)
            return
        if current is not applied:
            logger.info(f"{collection.name}/{row_id} changed since this mutation; not rolled back")
            return
        if previous is None:
            collection.remove(row_id)
        else:
            collection.replace(previous)

    async def _commit(
        self,
        collection: EntityCollection,
        row_id: str,
        applied: Optional[dict],
        previous: Optional[dict],
        write: Callable[[], Awaitable[Any]],
        index: int = -1,
    ) -> MutationResult:
        """Await the remote write for an already-applied change and reconcile."""
        async with self._lock(collection.name, row_id):
            try:
                stored = await write()
            except RemoteError as exc:
                if exc.offline:
                    logger.warning(f"Offline: {collection.name}/{row_id} kept locally")
                    return MutationResult(MutationOutcome.OFFLINE, data=applied)
                logger.error(f"Remote write on {collection.name}/{row_id} failed: {exc.message}")
                self._rollback(collection, row_id, applied, previous, index)
                return MutationResult(
                    MutationOutcome.ROLLED_BACK,
                    data=previous,
                    message=exc.message,
                    error=exc,
                )

            if isinstance(stored, dict) and applied is not None and collection.get(row_id) is applied:
                collection.replace(stored)
                applied = stored
            return MutationResult(MutationOutcome.CONFIRMED, data=applied)

    async def _commit_many(
        self,
        collection: EntityCollection,
        applied: dict[str, dict],
        previous: dict[str, Optional[dict]],
        write: Callable[[], Awaitable[Any]],
    ) -> MutationResult:
        async with AsyncExitStack() as stack:
            for row_id in sorted(applied):
                await stack.enter_async_context(self._lock(collection.name, row_id))
            try:
                stored = await write()
            except RemoteError as exc:
                if exc.offline:
                    logger.warning(f"Offline: {len(applied)} {collection.name} rows kept locally")
                    return MutationResult(MutationOutcome.OFFLINE, data=list(applied.values()))
                logger.error(f"Batch write on {collection.name} failed: {exc.message}")
                for row_id, row in applied.items():
                    self._rollback(collection, row_id, row, previous.get(row_id))
                return MutationResult(
                    MutationOutcome.ROLLED_BACK,
                    message=exc.message,
                    error=exc,
                )

            result = dict(applied)
            for row in stored or []:
                row_id = row.get("id")
                if row_id in applied and collection.get(row_id) is applied[row_id]:
                    collection.replace(row)
                    result[row_id] = row
            return MutationResult(MutationOutcome.CONFIRMED, data=list(result.values()))

    async def _remove(self, collection: EntityCollection, row_id: str, label: str) -> MutationResult:
        existing = collection.get(row_id)
        if existing is None:
            return MutationResult.not_found(label)
        index = collection.index_of(row_id)
        collection.remove(row_id)
        return await self._commit(
            collection,
            row_id,
            None,
            existing,
            lambda: self._table(collection.name).delete(row_id),
            index=index,
        )

    async def _patch(
        self,
        collection: EntityCollection,
        row_id: str,
        patch: dict,
        label: str,
    ) -> MutationResult:
        existing = collection.get(row_id)
        if existing is None:
            return MutationResult.not_found(label)
        row = {**existing, **patch, "id": row_id}
        collection.replace(row)
        return await self._commit(
            collection,
            row_id,
            row,
            existing,
            lambda: self._table(collection.name).update(row_id, patch),
        )

    # ── Loading ──────────────────────────────────────────────────

    async def refresh(self) -> bool:
        """Load every table. Returns False when any table could not be read."""
        results = await asyncio.gather(
            *(
                self._table(name).select(order_by=order_by, descending=descending)
                for name, order_by, descending in REFRESH_TABLES
            ),
            self._table("role_configs").select(),
            return_exceptions=True,
        )

        complete = True
        for (name, _, _), rows in zip(REFRESH_TABLES, results):
            if isinstance(rows, BaseException):
                complete = False
                self._log_load_failure(name, rows)
                continue
            self.state.collection(name).reset(rows)

        role_rows = results[-1]
        if isinstance(role_rows, BaseException):
            complete = False
            self._log_load_failure("role_configs", role_rows)
            self.role_configs.load()
        else:
            self.role_configs.load(role_rows)
        return complete

    def _log_load_failure(self, table: str, exc: BaseException) -> None:
        if not isinstance(exc, RemoteError):
            raise exc
        if exc.offline:
            logger.warning(f"Offline: could not load {table}; keeping current state")
        else:
            logger.error(f"Could not load {table}: {exc.message}")

    # ── Queries ──────────────────────────────────────────────────

    def search_product(self, query: str) -> Optional[dict]:
        """Exact match on barcode or SKU."""
        query = (query or "").strip()
        if not query:
            return None
        return self.products.find(lambda p: p.get("barcode") == query or p.get("sku") == query)

    def get_latest_shelf_log(self, product_id: str) -> Optional[dict]:
        return self.shelf_logs.find(lambda log: log.get("product_id") == product_id)

    @property
    def stats(self) -> dict:
        today = datetime.now(timezone.utc).date().isoformat()

        def moved_today(tx: dict, tx_type: TransactionType) -> bool:
            return tx.get("type") == tx_type.value and str(tx.get("timestamp") or "")[:10] == today

        return {
            "total_products": len(self.products),
            "low_stock_items": len(self.products.filter(lambda p: (p.get("stock") or 0) < LOW_STOCK_THRESHOLD)),
            "total_inbound_today": len(self.transactions.filter(lambda t: moved_today(t, TransactionType.INBOUND))),
            "total_outbound_today": len(self.transactions.filter(lambda t: moved_today(t, TransactionType.OUTBOUND))),
        }

    # ── Products ─────────────────────────────────────────────────

    async def add_product(self, product: dict) -> MutationResult:
        barcode = product.get("barcode")
        warehouse = product.get("warehouse")
        if barcode and self.products.find(
            lambda p: p.get("barcode") == barcode and p.get("warehouse") == warehouse
        ):
            return MutationResult.rejected(
                f"Product with barcode {barcode} already exists in warehouse {warehouse}"
            )

        now = utc_now_iso()
        actor = self._actor_name()
        row = {k: v for k, v in product.items() if k != "expiry_logs"}
        row["id"] = ensure_uuid(row.get("id"))
        row["stock"] = row.get("stock") or 0
        row["wholesale_price2"] = row.get("wholesale_price2") or 0
        row["status"] = row.get("status") or product_status(row["stock"])
        row["created_at"] = row.get("created_at") or now
        row["updated_at"] = now
        row["updated_by"] = actor

        self.products.prepend(row)
        result = await self._commit(
            self.products, row["id"], row, None, lambda: self._table("products").insert(row)
        )
        if result.applied:
            await self.bus.publish(ProductCreated(product=result.data, actor_name=actor))
        return result

    async def update_product(self, product: dict, adjustment_reason: str | None = None) -> MutationResult:
        original = self.products.get(product.get("id"))
        if original is None:
            return MutationResult.not_found("Product")

        actor = self._actor_name()
        row = {**original, **{k: v for k, v in product.items() if k != "expiry_logs"}}
        old_stock = original.get("stock") or 0
        new_stock = row.get("stock") or 0
        if new_stock != old_stock and "status" not in product:
            row["status"] = product_status(new_stock)
        row["updated_at"] = utc_now_iso()
        row["updated_by"] = actor

        self.products.replace(row)
        patch = {k: v for k, v in row.items() if k != "id"}
        result = await self._commit(
            self.products,
            row["id"],
            row,
            original,
            lambda: self._table("products").update(row["id"], patch),
        )
        if result.applied and adjustment_reason and new_stock != old_stock:
            await self.bus.publish(
                StockChanged(
                    product=result.data,
                    previous_stock=old_stock,
                    new_stock=new_stock,
                    reason=adjustment_reason,
                    actor_name=actor,
                )
            )
        return result

    async def adjust_product_stock(self, product_id: str, new_stock: int, reason: str) -> MutationResult:
        return await self.update_product({"id": product_id, "stock": new_stock}, reason)

    async def delete_product(self, product_id: str) -> MutationResult:
        return await self._remove(self.products, product_id, "Product")

    async def move_product(
        self,
        barcode: str,
        new_location: str,
        method: str = ShelfLogMethod.SCAN.value,
    ) -> MutationResult:
        method = ShelfLogMethod(method).value
        product = self.products.find(lambda p: p.get("barcode") == barcode)
        if product is None:
            return MutationResult.not_found("Product")

        name = product.get("name") or barcode
        old_location = product.get("location")
        if old_location == new_location:
            return MutationResult.noop(f"{name} is already at {new_location}", data=product)

        actor = self._actor_name()
        patch = {"location": new_location, "updated_at": utc_now_iso(), "updated_by": actor}
        row = {**product, **patch}
        self.products.replace(row)
        result = await self._commit(
            self.products,
            row["id"],
            row,
            product,
            lambda: self._table("products").update(row["id"], patch),
        )
        if result.applied:
            await self.bus.publish(
                LocationChanged(
                    product=result.data,
                    old_location=old_location,
                    new_location=new_location,
                    method=method,
                    actor_name=actor,
                )
            )
            result.message = f"Moved {name} to {new_location}"
        return result

    def _match_import_row(self, incoming: dict, pending: dict[str, dict]) -> Optional[dict]:
        warehouse = incoming.get("warehouse")
        candidates = list(pending.values()) + self.products.all()
        barcode = incoming.get("barcode")
        if _filled(barcode):
            for p in candidates:
                if p.get("barcode") == barcode and p.get("warehouse") == warehouse:
                    return p
        sku = incoming.get("sku")
        if _filled(sku):
            for p in candidates:
                if p.get("sku") == sku and p.get("warehouse") == warehouse:
                    return p
        return None

    def _merge_import_row(self, incoming: dict, existing: Optional[dict], now: str, actor: str) -> dict:
        row = dict(existing or {})
        for key, value in incoming.items():
            if key != "expiry_logs" and _filled(value):
                row[key] = value
        row["id"] = existing["id"] if existing else ensure_uuid(incoming.get("id"))
        for key, default in IMPORT_DEFAULTS.items():
            if not _filled(row.get(key)):
                row[key] = default
        if not _filled(row.get("sku")):
            row["sku"] = f"SKU-{epoch_ms()}"
        row["warehouse"] = incoming.get("warehouse")
        row["status"] = product_status(row["stock"])
        row["created_at"] = row.get("created_at") or now
        row["updated_at"] = now
        row["updated_by"] = actor
        return row

    async def bulk_upsert_products(self, batch: list[dict]) -> MutationResult:
        """Import a batch, matching existing rows by (barcode, warehouse) then (sku, warehouse).

        The batch is sent as a single upsert and applied locally only once it
        is confirmed or the backend is unreachable.
        """
        if not batch:
            return MutationResult.noop("Nothing to import")

        now = utc_now_iso()
        actor = self._actor_name()
        merged: dict[str, dict] = {}
        for incoming in batch:
            row = self._merge_import_row(incoming, self._match_import_row(incoming, merged), now, actor)
            merged[row["id"]] = row
        rows = list(merged.values())

        try:
            stored = await self._table("products").upsert(rows)
        except RemoteError as exc:
            if not exc.offline:
                logger.error(f"Product import failed: {exc.message}")
                return MutationResult(MutationOutcome.ROLLED_BACK, message=exc.message, error=exc)
            logger.warning(f"Offline: {len(rows)} imported products kept locally")
            stored = None
            outcome = MutationOutcome.OFFLINE
        else:
            outcome = MutationOutcome.CONFIRMED

        applied = stored or rows
        for row in applied:
            if row["id"] in self.products:
                self.products.replace(row)
            else:
                self.products.prepend(row)
        return MutationResult(outcome, data=applied, message=f"Imported {len(applied)} products")

    async def bulk_update_products(self, product_ids: list[str], updates: dict) -> MutationResult:
        patch = {k: v for k, v in updates.items() if k != "id"}
        patch["updated_at"] = utc_now_iso()
        patch["updated_by"] = self._actor_name()

        applied: dict[str, dict] = {}
        previous: dict[str, Optional[dict]] = {}
        for product_id in product_ids:
            existing = self.products.get(product_id)
            if existing is None:
                continue
            row = {**existing, **patch}
            if "stock" in patch and "status" not in patch:
                row["status"] = product_status(row.get("stock"))
            self.products.replace(row)
            applied[product_id] = row
            previous[product_id] = existing

        if not applied:
            return MutationResult.rejected("No matching products")

        async def write():
            await self._table("products").update_many(list(applied), patch)

        return await self._commit_many(self.products, applied, previous, write)

    # ── Adjustment bills ─────────────────────────────────────────

    async def create_adjustment_bill(
        self,
        items: list[dict | AdjustmentItem],
        note: str | None = None,
        status: str = AdjustmentStatus.PENDING.value,
    ) -> MutationResult:
        status = AdjustmentStatus(status).value
        now = utc_now_iso()
        actor = self._actor_name()
        bill = {
            "id": ensure_uuid(),
            "serial_number": f"ADJ-{epoch_ms()}",
            "created_at": now,
            "created_by": actor,
            "items": [AdjustmentItem.model_validate(item).model_dump() for item in items],
            "note": note,
            "status": status,
        }
        if status != AdjustmentStatus.PENDING.value:
            bill["reviewed_by"] = actor
            bill["reviewed_at"] = now

        self.adjustment_bills.prepend(bill)
        result = await self._commit(
            self.adjustment_bills,
            bill["id"],
            bill,
            None,
            lambda: self._table("adjustment_bills").insert(bill),
        )
        if result.applied and status == AdjustmentStatus.APPROVED.value:
            await self._apply_adjustment(bill)
        return result

    async def _apply_adjustment(self, bill: dict) -> None:
        reason = f"Adjustment {bill['serial_number']}"
        for item in bill.get("items") or []:
            if item["product_id"] not in self.products:
                logger.warning(f"{reason}: product {item['product_id']} no longer exists")
                continue
            await self.update_product({"id": item["product_id"], "stock": item["actual_stock"]}, reason)

    async def _review_adjustment(self, bill_id: str, target: AdjustmentStatus) -> MutationResult:
        bill = self.adjustment_bills.get(bill_id)
        if bill is None:
            return MutationResult.not_found("Adjustment bill")
        if not ADJUSTMENT_FSM.can_transition(bill.get("status"), target.value):
            return MutationResult.noop(
                f"Adjustment bill {bill.get('serial_number')} is already {bill.get('status')}", data=bill
            )

        patch = {
            "status": target.value,
            "reviewed_by": self._actor_name(),
            "reviewed_at": utc_now_iso(),
        }
        result = await self._patch(self.adjustment_bills, bill_id, patch, "Adjustment bill")
        if result.applied and target is AdjustmentStatus.APPROVED:
            await self._apply_adjustment(result.data)
        return result

    async def approve_adjustment_bill(self, bill_id: str) -> MutationResult:
        return await self._review_adjustment(bill_id, AdjustmentStatus.APPROVED)

    async def reject_adjustment_bill(self, bill_id: str) -> MutationResult:
        return await self._review_adjustment(bill_id, AdjustmentStatus.REJECTED)

    # ── Users ────────────────────────────────────────────────────

    async def add_user(self, user: dict) -> MutationResult:
        row = {k: v for k, v in user.items() if k != "password"}
        row["id"] = ensure_uuid(row.get("id"))
        row["status"] = row.get("status") or "Active"
        row["permissions"] = row.get("permissions") or []

        self.users.append(row)
        return await self._commit(
            self.users, row["id"], row, None, lambda: self._table("user_profiles").insert(row)
        )

    async def update_user(self, user: dict) -> MutationResult:
        user_id = user.get("id")
        existing = self.users.get(user_id)
        if existing is None:
            return MutationResult.not_found("User")

        patch = {k: v for k, v in user.items() if k not in ("id", "password")}
        was_current = self.current_user
        if was_current is not None and was_current.id == user_id:
            self.current_user = UserProfile.model_validate({**was_current.model_dump(), **patch})

        result = await self._patch(self.users, user_id, patch, "User")
        if result.outcome is MutationOutcome.ROLLED_BACK and was_current is not None and was_current.id == user_id:
            self.current_user = was_current
        return result

    async def delete_user(self, user_id: str) -> MutationResult:
        return await self._remove(self.users, user_id, "User")

    async def update_notification_settings(self, settings: NotificationSettings | dict) -> MutationResult:
        if self.current_user is None:
            return MutationResult.rejected("Not signed in")
        settings = NotificationSettings.model_validate(settings)
        user_id = self.current_user.id
        payload = {"id": user_id, "notification_settings": settings.model_dump()}
        if user_id in self.users:
            return await self.update_user(payload)
        # actor without a profile row (local admin)
        self.current_user = self.current_user.model_copy(update={"notification_settings": settings})
        return MutationResult(MutationOutcome.OFFLINE, data=self.current_user.model_dump())

    # ── Tasks ────────────────────────────────────────────────────

    async def add_task(
        self,
        title: str,
        due_date: str | None = None,
        priority: str = TaskPriority.MEDIUM.value,
        related_order_id: str | None = None,
    ) -> MutationResult:
        task = {
            "id": ensure_uuid(),
            "title": title,
            "is_completed": False,
            "due_date": due_date,
            "priority": TaskPriority(priority).value,
            "created_at": utc_now_iso(),
            "related_order_id": related_order_id,
        }
        self.tasks.prepend(task)
        return await self._commit(self.tasks, task["id"], task, None, lambda: self._table("tasks").insert(task))

    async def toggle_task_completion(self, task_id: str) -> MutationResult:
        task = self.tasks.get(task_id)
        if task is None:
            return MutationResult.not_found("Task")
        return await self._patch(self.tasks, task_id, {"is_completed": not task.get("is_completed")}, "Task")

    async def delete_task(self, task_id: str) -> MutationResult:
        return await self._remove(self.tasks, task_id, "Task")

    # ── Warehouses ───────────────────────────────────────────────

    async def add_warehouse(self, warehouse: dict) -> MutationResult:
        wh_type = warehouse.get("type") or (
            WarehouseType.MAIN.value if warehouse.get("is_main") else WarehouseType.BRANCH.value
        )
        wh_type = WarehouseType(wh_type).value
        row = {
            **warehouse,
            "id": ensure_uuid(warehouse.get("id")),
            "type": wh_type,
            "is_main": wh_type == WarehouseType.MAIN.value,
            "status": warehouse.get("status") or "ACTIVE",
        }
        self.warehouses.append(row)
        return await self._commit(
            self.warehouses, row["id"], row, None, lambda: self._table("warehouses").insert(row)
        )

    async def update_warehouse(self, warehouse_id: str, updates: dict) -> MutationResult:
        patch = {k: v for k, v in updates.items() if k != "id"}
        if patch.get("type"):
            patch["type"] = WarehouseType(patch["type"]).value
            patch["is_main"] = patch["type"] == WarehouseType.MAIN.value
        return await self._patch(self.warehouses, warehouse_id, patch, "Warehouse")

    async def delete_warehouse(self, warehouse_id: str) -> MutationResult:
        return await self._remove(self.warehouses, warehouse_id, "Warehouse")

    # ── Receiving orders ─────────────────────────────────────────

    def _new_receiving_order(self, order: dict, stamp: str) -> dict:
        return {
            **order,
            "id": ensure_uuid(order.get("id")),
            "create_time": order.get("create_time") or stamp,
            "modification_time": stamp,
            "review_status": order.get("review_status") or ReviewStatus.PENDING.value,
            "order_status": order.get("order_status") or "Pending",
            "creator": order.get("creator") or self._actor_name(),
        }

    async def add_receiving_order(self, order: dict) -> MutationResult:
        row = self._new_receiving_order(
            {**order, "review_status": ReviewStatus.PENDING.value}, _local_timestamp()
        )
        self.receiving_orders.prepend(row)
        return await self._commit(
            self.receiving_orders,
            row["id"],
            row,
            None,
            lambda: self._table("receiving_orders").insert(row),
        )

    async def approve_receiving_order(self, order_id: str) -> MutationResult:
        order = self.receiving_orders.get(order_id)
        if order is None:
            return MutationResult.not_found("Receiving order")
        if not RECEIVING_FSM.can_transition(order.get("review_status"), ReviewStatus.APPROVED.value):
            return MutationResult.noop(
                f"Receiving order {order.get('receiving_serial') or order_id} is already {order.get('review_status')}",
                data=order,
            )
        stamp = _local_timestamp()
        patch = {
            "review_status": ReviewStatus.APPROVED.value,
            "reviewer": self._actor_name(),
            "review_time": stamp,
            "modification_time": stamp,
            "order_status": "Received",
        }
        return await self._patch(self.receiving_orders, order_id, patch, "Receiving order")

    async def bulk_import_receiving_orders(self, orders: list[dict]) -> MutationResult:
        if not orders:
            return MutationResult.noop("Nothing to import")
        stamp = _local_timestamp()
        applied: dict[str, dict] = {}
        previous: dict[str, Optional[dict]] = {}
        for order in orders:
            row = self._new_receiving_order(order, stamp)
            previous[row["id"]] = self.receiving_orders.get(row["id"])
            applied[row["id"]] = row
            self.receiving_orders.prepend(row)

        return await self._commit_many(
            self.receiving_orders,
            applied,
            previous,
            lambda: self._table("receiving_orders").upsert(list(applied.values())),
        )

    # ── Role configuration ───────────────────────────────────────

    async def update_role_config(self, role: str, config: RoleConfig | dict) -> MutationResult:
        """Save a role's permission matrix; keys left out keep their default grant."""
        config = merge_role_config(role, config)
        previous = self.role_configs.get(role)
        self.role_configs.set(role, config)
        row = {
            "id": role,
            "role": role,
            "config": config.model_dump(mode="json"),
            "updated_at": utc_now_iso(),
        }

        async with self._lock("role_configs", role):
            try:
                await self._table("role_configs").upsert([row])
            except RemoteError as exc:
                if not exc.offline:
                    logger.error(f"Saving role {role} failed: {exc.message}")
                    if self.role_configs.get(role) is config:
                        if previous is None:
                            self.role_configs.remove(role)
                        else:
                            self.role_configs.set(role, previous)
                    return MutationResult(
                        MutationOutcome.ROLLED_BACK, data=previous, message=exc.message, error=exc
                    )
                logger.warning(f"Offline: role {role} kept locally")
                outcome = MutationOutcome.OFFLINE
            else:
                outcome = MutationOutcome.CONFIRMED

        actor = self.current_user
        await self.audit.log(
            module="ROLE_CONFIG",
            action="update" if previous is not None else "create",
            user_id=actor.id if actor else None,
            user_email=actor.email if actor else None,
            user_role=actor.role if actor else None,
            resource_id=role,
            description=f"Saved configuration for role {role}",
            before=previous.model_dump(mode="json") if previous is not None else None,
            after=row["config"],
        )
        return MutationResult(outcome, data=config)

    async def add_role(self, name: str, description: str = "") -> MutationResult:
        name = (name or "").strip()
        if not name:
            return MutationResult.rejected("Role name is required")
        if name in self.role_configs:
            return MutationResult.rejected(f"Role {name} already exists")

        config = generate_default_config("USER").model_copy(
            update={
                "metadata": RoleMetadata(
                    description=description,
                    is_custom=True,
                    color=CUSTOM_ROLE_COLOR,
                )
            }
        )
        return await self.update_role_config(name, config)
