from .errors import (
    RemoteError,
    OfflineError,
    RemoteApplicationError,
    AuthError,
    classify_error,
    is_offline_error,
)
from .store import (
    ChangeEvent,
    RemoteTable,
    RemoteStore,
    MongoRemoteStore,
    INSERT,
    UPDATE,
    DELETE,
)
from .auth import AuthEvent, AuthUser, AuthSession, AuthProvider, MongoAuthProvider

__all__ = [
    "RemoteError",
    "OfflineError",
    "RemoteApplicationError",
    "AuthError",
    "classify_error",
    "is_offline_error",
    "ChangeEvent",
    "RemoteTable",
    "RemoteStore",
    "MongoRemoteStore",
    "INSERT",
    "UPDATE",
    "DELETE",
    "AuthEvent",
    "AuthUser",
    "AuthSession",
    "AuthProvider",
    "MongoAuthProvider",
]
