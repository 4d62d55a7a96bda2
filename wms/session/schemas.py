from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from wms.rbac import RoleConfig


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PENDING = "Pending"


class NotificationSettings(BaseModel):
    alert_timing: int = Field(default=30, ge=0)
    enable_sound: bool = True
    sound_type: Literal["default", "chime", "pulse"] = "default"


class UserProfile(BaseModel):
    """The signed-in actor as read from `user_profiles`."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str = "USER"
    status: UserStatus = UserStatus.ACTIVE
    landing_page: Optional[str] = None
    permissions: list[str] = Field(default_factory=list)
    custom_config: Optional[RoleConfig] = None
    notification_settings: Optional[NotificationSettings] = None
    avatar: Optional[str] = None
    country: Optional[str] = None
    employment_type: Optional[str] = None
    plate_number: Optional[str] = None


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PasswordChangeRequest(BaseModel):
    new_password: str = Field(..., min_length=6)


class PasswordResetRequest(BaseModel):
    user_id: str
