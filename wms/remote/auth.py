"""
Authentication sub-service.

Contract used by the session manager:
    sign_in_with_password, sign_out, get_session, refresh_session,
    on_auth_state_change, reset_password_for_email, update_user(password)

and by the HTTP boundary, which keeps no session of its own:
    issue_token, verify_token, revoke_token

`MongoAuthProvider` keeps credentials in the `auth_users` collection
(bcrypt hashes) and issues JWT access tokens as sessions. Each auth user has
a `session_version`; signing out bumps it, which invalidates every token
issued before, including tokens held by other clients.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from wms.config import settings
from wms.utils import Logger
from .errors import AuthError, RemoteError, classify_error
from .security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = Logger("wms.auth")


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthUser(BaseModel):
    id: str
    email: str


class AuthSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: AuthUser


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]
ResetNotifier = Callable[[str, str], Awaitable[None]]


class AuthProvider(ABC):
    """Listener registry and session bookkeeping shared by providers."""

    def __init__(self):
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                logger.exception(f"Auth listener failed on {event.value}")

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    @abstractmethod
    async def get_session(self) -> AuthSession | None: ...

    @abstractmethod
    async def refresh_session(self) -> AuthSession | None: ...

    @abstractmethod
    async def issue_token(self, email: str, password: str) -> AuthSession:
        """Check credentials and return a session without adopting it or notifying listeners."""

    @abstractmethod
    async def verify_token(self, token: str) -> AuthUser | None:
        """The user a bearer token belongs to, or None when it is invalid or revoked."""

    @abstractmethod
    async def revoke_token(self, token: str) -> None: ...

    @abstractmethod
    async def sign_up(self, email: str, password: str, user_id: str | None = None) -> AuthUser: ...

    @abstractmethod
    async def reset_password_for_email(self, email: str) -> None: ...

    @abstractmethod
    async def update_user(self, password: str, user_id: str | None = None) -> AuthUser:
        """Change the password of `user_id`, or of the signed-in user when omitted."""


class MongoAuthProvider(AuthProvider):
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        reset_notifier: ResetNotifier | None = None,
    ):
        super().__init__()
        self.users = db["auth_users"]
        self.reset_notifier = reset_notifier

    async def _call(self, coro):
        try:
            return await coro
        except PyMongoError as exc:
            raise classify_error(exc) from exc

    def _issue(self, user: dict) -> AuthSession:
        token, expires_at = create_access_token(
            {
                "sub": user["_id"],
                "email": user["email"],
                "ver": user.get("session_version", 0),
            }
        )
        return AuthSession(
            access_token=token,
            expires_at=expires_at,
            user=AuthUser(id=user["_id"], email=user["email"]),
        )

    async def _check_credentials(self, email: str, password: str) -> dict:
        user = await self._call(self.users.find_one({"email": email.lower()}))
        if not user or not verify_password(password, user.get("password")):
            raise AuthError("Invalid login credentials")
        if user.get("is_banned"):
            raise AuthError("User is banned")

        await self._call(
            self.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"last_sign_in_at": datetime.now(timezone.utc)}},
            )
        )
        return user

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user = await self._check_credentials(email, password)
        self._session = self._issue(user)
        await self._emit(AuthEvent.SIGNED_IN, self._session)
        return self._session

    async def issue_token(self, email: str, password: str) -> AuthSession:
        return self._issue(await self._check_credentials(email, password))

    async def verify_token(self, token: str) -> AuthUser | None:
        try:
            payload = decode_access_token(token)
        except AuthError:
            return None
        if payload.get("purpose") or not payload.get("sub"):
            return None

        try:
            user = await self._call(self.users.find_one({"_id": payload["sub"]}))
        except RemoteError as exc:
            if exc.offline:
                return AuthUser(id=payload["sub"], email=payload.get("email", ""))
            raise
        if not user or user.get("is_banned"):
            return None
        if user.get("session_version", 0) != payload.get("ver", 0):
            return None
        return AuthUser(id=user["_id"], email=user["email"])

    async def revoke_token(self, token: str) -> None:
        """Sign the token's user out everywhere."""
        user = await self.verify_token(token)
        if user is None:
            return
        await self._call(
            self.users.update_one({"_id": user.id}, {"$inc": {"session_version": 1}})
        )

    async def sign_out(self) -> None:
        session = self._session
        self._session = None
        try:
            if session is not None:
                await self._call(
                    self.users.update_one(
                        {"_id": session.user.id},
                        {"$inc": {"session_version": 1}},
                    )
                )
        finally:
            await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> AuthSession | None:
        if self._session is None:
            return None
        try:
            payload = decode_access_token(self._session.access_token)
        except AuthError:
            self._session = None
            return None

        try:
            user = await self._call(self.users.find_one({"_id": payload["sub"]}))
        except RemoteError as exc:
            if exc.offline:
                # Token is still cryptographically valid; trust it offline.
                return self._session
            raise
        if not user or user.get("session_version", 0) != payload.get("ver", 0):
            self._session = None
            return None
        return self._session

    async def refresh_session(self) -> AuthSession | None:
        current = await self.get_session()
        if current is None:
            return None
        user = await self._call(self.users.find_one({"_id": current.user.id}))
        if not user:
            return None
        self._session = self._issue(user)
        await self._emit(AuthEvent.TOKEN_REFRESHED, self._session)
        return self._session

    async def sign_up(self, email: str, password: str, user_id: str | None = None) -> AuthUser:
        email = email.lower()
        existing = await self._call(self.users.find_one({"email": email}))
        if existing:
            raise AuthError("User already registered")
        doc = {
            "_id": user_id or str(uuid.uuid4()),
            "email": email,
            "password": hash_password(password),
            "session_version": 0,
            "created_at": datetime.now(timezone.utc),
        }
        await self._call(self.users.insert_one(doc))
        return AuthUser(id=doc["_id"], email=email)

    async def reset_password_for_email(self, email: str) -> None:
        user = await self._call(self.users.find_one({"email": email.lower()}))
        if not user:
            # Unknown addresses are not disclosed to the caller.
            logger.info("Password reset requested for unknown email")
            return
        token, expires_at = create_access_token(
            {"sub": user["_id"], "purpose": "reset"},
            expires_delta=timedelta(minutes=settings.reset_token_expire_minutes),
        )
        await self._call(
            self.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"reset_token": token, "reset_expires_at": expires_at}},
            )
        )
        if self.reset_notifier is not None:
            await self.reset_notifier(user["email"], token)
        logger.info(f"Password reset issued for {user['email']}")

    async def confirm_password_reset(self, token: str, new_password: str) -> AuthUser:
        payload = decode_access_token(token)
        if payload.get("purpose") != "reset":
            raise AuthError("Invalid reset token")
        user = await self._call(
            self.users.find_one({"_id": payload["sub"], "reset_token": token})
        )
        if not user:
            raise AuthError("Reset token already used")
        await self._call(
            self.users.update_one(
                {"_id": user["_id"]},
                {
                    "$set": {"password": hash_password(new_password)},
                    "$unset": {"reset_token": "", "reset_expires_at": ""},
                    "$inc": {"session_version": 1},
                },
            )
        )
        return AuthUser(id=user["_id"], email=user["email"])

    async def update_user(self, password: str, user_id: str | None = None) -> AuthUser:
        if user_id is not None:
            user = await self._call(self.users.find_one({"_id": user_id}))
            if not user:
                raise AuthError("User not found")
            await self._call(
                self.users.update_one({"_id": user_id}, {"$set": {"password": hash_password(password)}})
            )
            return AuthUser(id=user["_id"], email=user["email"])

        session = await self.get_session()
        if session is None:
            raise AuthError("Auth session missing")
        await self._call(
            self.users.update_one(
                {"_id": session.user.id},
                {"$set": {"password": hash_password(password)}},
            )
        )
        await self._emit(AuthEvent.USER_UPDATED, session)
        return session.user
