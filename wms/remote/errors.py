"""
Remote failure taxonomy.

Every call into the remote store or the auth provider either succeeds or
raises a `RemoteError`:

  - OfflineError            → backend unreachable or misconfigured
  - RemoteApplicationError  → the backend answered and refused the operation
  - AuthError               → credentials or session rejected
"""

from pymongo.errors import ConfigurationError, ConnectionFailure, PyMongoError


class RemoteError(Exception):
    offline: bool = False

    def __init__(self, message: str = "Remote store error", details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class OfflineError(RemoteError):
    offline = True

    def __init__(self, message: str = "Remote store unreachable", details: str | None = None):
        super().__init__(message, details)


class RemoteApplicationError(RemoteError):
    def __init__(self, message: str = "Remote store rejected the operation", details: str | None = None):
        super().__init__(message, details)


class AuthError(RemoteError):
    def __init__(self, message: str = "Authentication failed", details: str | None = None):
        super().__init__(message, details)


def classify_error(exc: Exception) -> RemoteError:
    """Map a driver exception onto the remote failure taxonomy."""
    if isinstance(exc, RemoteError):
        return exc
    # ConnectionFailure covers AutoReconnect, NetworkTimeout and
    # ServerSelectionTimeoutError; InvalidURI is a ConfigurationError.
    if isinstance(exc, (ConnectionFailure, ConfigurationError)):
        return OfflineError(str(exc) or "Remote store unreachable")
    if isinstance(exc, PyMongoError):
        details = getattr(exc, "details", None)
        return RemoteApplicationError(str(exc), details=str(details) if details else None)
    return RemoteApplicationError(str(exc) or exc.__class__.__name__)


def is_offline_error(exc: Exception | None) -> bool:
    if exc is None:
        return False
    return classify_error(exc).offline
