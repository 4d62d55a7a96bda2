"""
Realtime ingress: applies remote change notifications to local state.

    INSERT → add unless the id is already present (own optimistic insert)
    UPDATE → replace by id; unknown ids are ignored
    DELETE → remove by id

Events are applied as they arrive; there is no ordering or version check
against in-flight local mutations.
"""

import asyncio
from typing import TYPE_CHECKING, Iterable, Optional

from wms.remote import DELETE, INSERT, UPDATE, ChangeEvent, RemoteError, RemoteStore
from wms.utils import Logger

if TYPE_CHECKING:
    from wms.sync import DashboardStore

logger = Logger("wms.realtime")

RECONNECT_DELAY_SECONDS = 5.0


class RealtimeIngress:
    def __init__(
        self,
        store: "DashboardStore",
        remote: RemoteStore,
        tables: Iterable[str] = ("products",),
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
    ):
        self.store = store
        self.remote = remote
        self.tables = list(tables)
        for table in self.tables:
            try:
                store.state.collection(table)
            except KeyError:
                raise ValueError(f"No local collection for realtime table {table!r}") from None
        self.reconnect_delay = reconnect_delay
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def apply_change(self, event: ChangeEvent) -> None:
        collection = self.store.state.collection(event.table)
        if event.event_type == INSERT:
            row = event.new or {}
            if row.get("id") and row["id"] not in collection:
                collection.prepend(row)
        elif event.event_type == UPDATE:
            row = event.new or {}
            if row.get("id") in collection:
                collection.replace(row)
        elif event.event_type == DELETE:
            row_id = (event.old or {}).get("id")
            if row_id:
                collection.remove(row_id)
        else:
            logger.debug(f"Ignoring {event.event_type} on {event.table}")

    async def _consume(self, table: str) -> None:
        while True:
            try:
                async for event in self.remote.table(table).changes():
                    self.apply_change(event)
                return
            except RemoteError as exc:
                logger.warning(
                    f"Change feed for {table} interrupted: {exc.message}; "
                    f"retrying in {self.reconnect_delay}s"
                )
                await asyncio.sleep(self.reconnect_delay)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._consume(table), name=f"realtime:{table}")
            for table in self.tables
        ]
        logger.info(f"Realtime ingress listening on {', '.join(self.tables)}")

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("Realtime ingress stopped")

    async def wait(self, timeout: Optional[float] = None) -> None:
        """Wait until every change feed has ended."""
        if self._tasks:
            await asyncio.wait(self._tasks, timeout=timeout)
