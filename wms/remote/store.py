"""
Remote row store.

The dashboard treats the backend as an opaque row store: per table it can
select, insert, update by id, delete by id, upsert a batch and stream change
notifications. `MongoRemoteStore` implements that contract on MongoDB; a
row's `id` is stored as the document `_id`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import AsyncIterator, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReplaceOne, ReturnDocument
from pymongo.errors import PyMongoError

from wms.utils import serialize_doc, to_document, Logger
from .errors import classify_error

logger = Logger("wms.remote")

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """A single change notification for one row of one table."""

    table: str
    event_type: str
    new: Optional[dict] = None
    old: Optional[dict] = None


class RemoteTable(ABC):
    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def select(
        self,
        filters: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]: ...

    @abstractmethod
    async def select_one(self, filters: dict) -> Optional[dict]: ...

    @abstractmethod
    async def insert(self, row: dict) -> Optional[dict]:
        """Insert a row; returns the canonical stored row when available."""

    @abstractmethod
    async def update(self, row_id: str, patch: dict) -> Optional[dict]:
        """Patch a row by id; returns the canonical stored row when available."""

    @abstractmethod
    async def update_many(self, row_ids: list[str], patch: dict) -> None: ...

    @abstractmethod
    async def delete(self, row_id: str) -> None: ...

    @abstractmethod
    async def upsert(self, rows: list[dict]) -> list[dict]: ...

    @abstractmethod
    def changes(self) -> AsyncIterator[ChangeEvent]:
        """Async iterator over change notifications for this table."""


class RemoteStore(ABC):
    @abstractmethod
    def table(self, name: str) -> RemoteTable: ...


# ── MongoDB implementation ───────────────────────────────────────


def _remote_call(func):
    """Translate driver exceptions into RemoteError subclasses."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except PyMongoError as exc:
            raise classify_error(exc) from exc

    return wrapper


class MongoRemoteTable(RemoteTable):
    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection.name)
        self.collection = collection

    @_remote_call
    async def select(
        self,
        filters: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        cursor = self.collection.find(to_document(filters or {}))
        if order_by:
            cursor = cursor.sort(order_by, -1 if descending else 1)
        return [serialize_doc(d) async for d in cursor]

    @_remote_call
    async def select_one(self, filters: dict) -> Optional[dict]:
        doc = await self.collection.find_one(to_document(filters))
        return serialize_doc(doc) if doc else None

    @_remote_call
    async def insert(self, row: dict) -> Optional[dict]:
        doc = to_document(row)
        await self.collection.insert_one(doc)
        return serialize_doc(doc)

    @_remote_call
    async def update(self, row_id: str, patch: dict) -> Optional[dict]:
        clean = {k: v for k, v in patch.items() if k not in ("id", "_id")}
        doc = await self.collection.find_one_and_update(
            {"_id": row_id},
            {"$set": clean},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_doc(doc) if doc else None

    @_remote_call
    async def update_many(self, row_ids: list[str], patch: dict) -> None:
        clean = {k: v for k, v in patch.items() if k not in ("id", "_id")}
        await self.collection.update_many({"_id": {"$in": row_ids}}, {"$set": clean})

    @_remote_call
    async def delete(self, row_id: str) -> None:
        await self.collection.delete_one({"_id": row_id})

    @_remote_call
    async def upsert(self, rows: list[dict]) -> list[dict]:
        if not rows:
            return []
        docs = [to_document(r) for r in rows]
        await self.collection.bulk_write(
            [ReplaceOne({"_id": d["_id"]}, d, upsert=True) for d in docs],
            ordered=True,
        )
        ids = [d["_id"] for d in docs]
        stored = {}
        async for doc in self.collection.find({"_id": {"$in": ids}}):
            stored[doc["_id"]] = serialize_doc(doc)
        return [stored[i] for i in dict.fromkeys(ids) if i in stored]

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        try:
            async with self.collection.watch(full_document="updateLookup") as stream:
                async for change in stream:
                    event = self._to_event(change)
                    if event is not None:
                        yield event
        except PyMongoError as exc:
            raise classify_error(exc) from exc

    def _to_event(self, change: dict) -> Optional[ChangeEvent]:
        op = change.get("operationType")
        key = change.get("documentKey", {}).get("_id")
        if op == "insert":
            return ChangeEvent(self.name, INSERT, new=serialize_doc(change["fullDocument"]))
        if op in ("update", "replace"):
            doc = change.get("fullDocument")
            if doc is None:
                # Row vanished before the lookup; a delete event follows.
                return None
            return ChangeEvent(self.name, UPDATE, new=serialize_doc(doc))
        if op == "delete":
            return ChangeEvent(self.name, DELETE, old={"id": key})
        logger.debug(f"Ignoring change stream event '{op}' on {self.name}")
        return None


class MongoRemoteStore(RemoteStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self._tables: dict[str, MongoRemoteTable] = {}

    def table(self, name: str) -> MongoRemoteTable:
        if name not in self._tables:
            self._tables[name] = MongoRemoteTable(self.db[name])
        return self._tables[name]
