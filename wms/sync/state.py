"""
In-memory application state.

`DashboardState` owns every collection the dashboard renders. Only the sync
commands and the realtime ingress write to it.
"""

from typing import Callable, Iterator, Optional

from wms.rbac import RoleConfigStore


class EntityCollection:
    """Ordered rows keyed by id."""

    def __init__(self, name: str):
        self.name = name
        self._rows: dict[str, dict] = {}

    def reset(self, rows: list[dict]) -> None:
        self._rows = {row["id"]: row for row in rows if row.get("id")}

    def get(self, row_id: str | None) -> Optional[dict]:
        if row_id is None:
            return None
        return self._rows.get(row_id)

    def find(self, predicate: Callable[[dict], bool]) -> Optional[dict]:
        for row in self._rows.values():
            if predicate(row):
                return row
        return None

    def filter(self, predicate: Callable[[dict], bool]) -> list[dict]:
        return [row for row in self._rows.values() if predicate(row)]

    def all(self) -> list[dict]:
        return list(self._rows.values())

    def index_of(self, row_id: str) -> int:
        for index, key in enumerate(self._rows):
            if key == row_id:
                return index
        return -1

    def append(self, row: dict) -> None:
        self._rows.pop(row["id"], None)
        self._rows[row["id"]] = row

    def prepend(self, row: dict) -> None:
        rest = {k: v for k, v in self._rows.items() if k != row["id"]}
        self._rows = {row["id"]: row, **rest}

    def insert_at(self, index: int, row: dict) -> None:
        items = [(k, v) for k, v in self._rows.items() if k != row["id"]]
        if index < 0 or index > len(items):
            index = len(items)
        items.insert(index, (row["id"], row))
        self._rows = dict(items)

    def replace(self, row: dict) -> None:
        """Swap a row in place; unknown ids are appended."""
        self._rows[row["id"]] = row

    def remove(self, row_id: str) -> Optional[dict]:
        return self._rows.pop(row_id, None)

    def __contains__(self, row_id: str) -> bool:
        return row_id in self._rows

    def __iter__(self) -> Iterator[dict]:
        return iter(list(self._rows.values()))

    def __len__(self) -> int:
        return len(self._rows)


class DashboardState:
    def __init__(self):
        self.products = EntityCollection("products")
        self.transactions = EntityCollection("transactions")
        self.shelf_logs = EntityCollection("shelf_logs")
        self.users = EntityCollection("user_profiles")
        self.adjustment_bills = EntityCollection("adjustment_bills")
        self.tasks = EntityCollection("tasks")
        self.warehouses = EntityCollection("warehouses")
        self.receiving_orders = EntityCollection("receiving_orders")
        self.role_configs = RoleConfigStore()
        self.role_configs.load()

    def collection(self, table: str) -> EntityCollection:
        for coll in (
            self.products,
            self.transactions,
            self.shelf_logs,
            self.users,
            self.adjustment_bills,
            self.tasks,
            self.warehouses,
            self.receiving_orders,
        ):
            if coll.name == table:
                return coll
        raise KeyError(f"Unknown table: {table}")
