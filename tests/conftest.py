"""
Shared fixtures: an in-memory remote store and auth provider that can be
told to fail, plus a store wired to them.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from wms.remote import (
    AuthError,
    AuthEvent,
    AuthProvider,
    AuthSession,
    AuthUser,
    ChangeEvent,
    OfflineError,
    RemoteApplicationError,
    RemoteStore,
    RemoteTable,
)
from wms.session import SessionManager, UserProfile
from wms.sync import DashboardStore


def _matches(row: dict, filters: Optional[dict]) -> bool:
    return all(row.get(k) == v for k, v in (filters or {}).items())


class FakeRemoteTable(RemoteTable):
    def __init__(self, name: str):
        super().__init__(name)
        self.rows: dict[str, dict] = {}
        self.calls: list[tuple[str, object]] = []
        self.failures: dict[str, Exception] = {}
        self.hold: Optional[asyncio.Event] = None
        self._queue: Optional[asyncio.Queue] = None

    def fail(self, op: str, exc: Exception) -> None:
        self.failures[op] = exc

    def seed(self, *rows: dict) -> None:
        for row in rows:
            self.rows[row["id"]] = dict(row)

    async def _enter(self, op: str, payload=None) -> None:
        self.calls.append((op, payload))
        if self.hold is not None:
            await self.hold.wait()
        exc = self.failures.get(op) or self.failures.get("*")
        if exc is not None:
            raise exc

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    async def select(self, filters=None, order_by=None, descending=False):
        await self._enter("select", filters)
        rows = [dict(r) for r in self.rows.values() if _matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return rows

    async def select_one(self, filters):
        await self._enter("select_one", filters)
        for row in self.rows.values():
            if _matches(row, filters):
                return dict(row)
        return None

    async def insert(self, row):
        await self._enter("insert", row)
        if row["id"] in self.rows:
            raise RemoteApplicationError(f"duplicate key value violates unique constraint on {self.name}")
        self.rows[row["id"]] = dict(row)
        return dict(row)

    async def update(self, row_id, patch):
        await self._enter("update", (row_id, patch))
        if row_id not in self.rows:
            return None
        self.rows[row_id] = {**self.rows[row_id], **patch, "id": row_id}
        return dict(self.rows[row_id])

    async def update_many(self, row_ids, patch):
        await self._enter("update_many", (row_ids, patch))
        for row_id in row_ids:
            if row_id in self.rows:
                self.rows[row_id] = {**self.rows[row_id], **patch, "id": row_id}

    async def delete(self, row_id):
        await self._enter("delete", row_id)
        self.rows.pop(row_id, None)

    async def upsert(self, rows):
        await self._enter("upsert", rows)
        for row in rows:
            self.rows[row["id"]] = dict(row)
        return [dict(self.rows[row["id"]]) for row in rows]

    def push(self, event: Optional[ChangeEvent]) -> None:
        """Queue a change notification; None ends the feed."""
        self._changes().put_nowait(event)

    def _changes(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    async def changes(self):
        queue = self._changes()
        while True:
            event = await queue.get()
            if event is None:
                return
            yield event


class FakeRemoteStore(RemoteStore):
    def __init__(self):
        self.tables: dict[str, FakeRemoteTable] = {}

    def table(self, name: str) -> FakeRemoteTable:
        if name not in self.tables:
            self.tables[name] = FakeRemoteTable(name)
        return self.tables[name]

    def fail_everything(self, exc: Exception) -> None:
        for name in (
            "products",
            "transactions",
            "shelf_logs",
            "warehouses",
            "tasks",
            "adjustment_bills",
            "user_profiles",
            "role_configs",
            "receiving_orders",
            "audit_logs",
        ):
            self.table(name).fail("*", exc)


class FakeAuthProvider(AuthProvider):
    def __init__(self):
        super().__init__()
        self.accounts: dict[str, tuple[str, str]] = {}
        self.sign_in_calls: list[str] = []
        self.reset_requests: list[str] = []
        self.password_updates: list[str] = []
        self.sign_out_error: Optional[Exception] = None
        self.tokens: dict[str, AuthUser] = {}

    def add_account(self, user_id: str, email: str, password: str) -> None:
        self.accounts[email] = (user_id, password)

    def _issue(self, user_id: str, email: str, token: Optional[str] = None) -> AuthSession:
        return AuthSession(
            access_token=token or f"token-{user_id}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            user=AuthUser(id=user_id, email=email),
        )

    async def sign_in_with_password(self, email, password):
        self.sign_in_calls.append(email)
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthError("Invalid login credentials")
        self._session = self._issue(account[0], email)
        await self._emit(AuthEvent.SIGNED_IN, self._session)
        return self._session

    async def issue_token(self, email, password):
        self.sign_in_calls.append(email)
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthError("Invalid login credentials")
        issued = self._issue(account[0], email, token=f"token-{uuid.uuid4().hex}")
        self.tokens[issued.access_token] = issued.user
        return issued

    async def verify_token(self, token):
        return self.tokens.get(token)

    async def revoke_token(self, token):
        self.tokens.pop(token, None)

    async def sign_out(self):
        self._session = None
        try:
            if self.sign_out_error is not None:
                raise self.sign_out_error
        finally:
            await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self):
        return self._session

    async def refresh_session(self):
        if self._session is None:
            return None
        await self._emit(AuthEvent.TOKEN_REFRESHED, self._session)
        return self._session

    async def sign_up(self, email, password, user_id=None):
        user_id = user_id or f"auth-{len(self.accounts) + 1}"
        self.add_account(user_id, email, password)
        return AuthUser(id=user_id, email=email)

    async def reset_password_for_email(self, email):
        self.reset_requests.append(email)

    async def update_user(self, password, user_id=None):
        if user_id is not None:
            self.password_updates.append(password)
            return AuthUser(id=user_id, email="")
        if self._session is None:
            raise AuthError("Auth session missing")
        self.password_updates.append(password)
        await self._emit(AuthEvent.USER_UPDATED, self._session)
        return self._session.user


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def remote():
    return FakeRemoteStore()


@pytest.fixture()
def store(remote):
    return DashboardStore(remote)


@pytest.fixture()
def auth():
    return FakeAuthProvider()


@pytest.fixture()
def session(auth, store):
    return SessionManager(auth, store)


@pytest.fixture()
def offline():
    return OfflineError("Failed to fetch")


@pytest.fixture()
def rejected():
    return RemoteApplicationError("new row violates row-level security policy")


def make_actor(role: str = "ADMIN", **fields) -> UserProfile:
    return UserProfile(
        id=fields.pop("id", f"{role.lower()}-1"),
        name=fields.pop("name", f"{role.title()} User"),
        username=fields.pop("username", role.lower()),
        email=fields.pop("email", f"{role.lower()}@example.com"),
        role=role,
        **fields,
    )


def make_product(**fields) -> dict:
    row = {
        "id": fields.pop("id", None),
        "barcode": "8850001",
        "sku": "SKU-1",
        "name": "Jasmine Rice 5kg",
        "category": "Grocery",
        "location": "A-01-01",
        "unit": "BAG",
        "stock": 10,
        "warehouse": "Main",
    }
    row.update(fields)
    return {k: v for k, v in row.items() if v is not None}
