from .schemas import (
    SessionState,
    UserStatus,
    NotificationSettings,
    UserProfile,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
)
from .service import SessionManager, LOCAL_ADMIN_ID

__all__ = [
    "SessionState",
    "UserStatus",
    "NotificationSettings",
    "UserProfile",
    "LoginRequest",
    "PasswordChangeRequest",
    "PasswordResetRequest",
    "SessionManager",
    "LOCAL_ADMIN_ID",
]
