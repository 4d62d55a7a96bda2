"""
Role configuration: per-module permission matrix + special actions.

A RoleConfig is generated from code for every known role and then overlaid
with whatever an administrator persisted. Absence of a module key in a
persisted config never means "deny": the merge fills it from the default.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .modules import ADMIN_ROLE, PERMISSION_MODULES, USER_ROLES

USER_READABLE_MODULES = {"DASHBOARD", "TASK_MANAGER", "MOBILE_HOME", "MOBILE_USER"}

CUSTOM_ROLE_COLOR = "bg-indigo-600"


class Sharing(str, Enum):
    EVERYONE = "Everyone"
    OWN_ONLY = "Own Only"


class PermissionObject(BaseModel):
    create: bool = False
    read: bool = False
    edit: bool = False
    delete: bool = False
    approve: bool = False
    reject: bool = False
    undo: bool = False
    sharing: Sharing = Sharing.OWN_ONLY


class RoleMetadata(BaseModel):
    description: Optional[str] = None
    is_custom: bool = False
    color: Optional[str] = None


class RoleConfig(BaseModel):
    objects: dict[str, PermissionObject] = Field(default_factory=dict)
    actions: dict[str, bool] = Field(default_factory=dict)
    metadata: RoleMetadata = Field(default_factory=RoleMetadata)


def get_role_metadata(role: str) -> RoleMetadata:
    if role == "ADMIN":
        return RoleMetadata(description="Full system access and configuration.", color="bg-purple-600")
    if role == "MANAGER":
        return RoleMetadata(description="Operational oversight and reporting.", color="bg-blue-600")
    if role == "INSPECTOR":
        return RoleMetadata(description="Inventory verification and quality control.", color="bg-orange-500")
    if role == "TRADER":
        return RoleMetadata(description="Sales and market data access.", color="bg-emerald-600")
    if role == "USER":
        return RoleMetadata(description="Standard access to assigned tasks.", color="bg-gray-600")
    return RoleMetadata(description="Custom user role.", color="bg-indigo-500")


def generate_default_config(role: str) -> RoleConfig:
    """Deterministic default grants for `role` over the whole module list."""
    is_admin = role == ADMIN_ROLE
    objects: dict[str, PermissionObject] = {}

    for mod in PERMISSION_MODULES:
        key = mod["key"]
        if role == "USER":
            read = key in USER_READABLE_MODULES
        else:
            # ADMIN, MANAGER, INSPECTOR and every other role read everything
            read = True
        objects[key] = PermissionObject(
            create=is_admin,
            read=read,
            edit=is_admin,
            delete=is_admin,
            approve=is_admin,
            reject=is_admin,
            undo=is_admin,
            sharing=Sharing.EVERYONE if is_admin else Sharing.OWN_ONLY,
        )

    actions = {
        "view_cost_price": is_admin or role == "MANAGER",
        "approve_adjustments": is_admin or role == "MANAGER",
        "export_data": is_admin or role in ("MANAGER", "TRADER"),
        "manage_users": is_admin,
        "manage_settings": is_admin,
    }

    return RoleConfig(objects=objects, actions=actions, metadata=get_role_metadata(role))


def _as_raw(config: RoleConfig | dict | None) -> dict:
    if config is None:
        return {}
    if isinstance(config, RoleConfig):
        return config.model_dump(mode="json", exclude_unset=True)
    return config


def merge_role_config(role: str, persisted: RoleConfig | dict | None) -> RoleConfig:
    """Overlay a persisted config on the fresh default for `role`."""
    default = generate_default_config(role)
    raw = _as_raw(persisted)

    objects = dict(default.objects)
    for key, value in (raw.get("objects") or {}).items():
        objects[key] = PermissionObject.model_validate(value)

    actions = {**default.actions, **(raw.get("actions") or {})}

    metadata = default.metadata.model_dump()
    metadata.update({k: v for k, v in (raw.get("metadata") or {}).items() if v is not None})

    return RoleConfig(
        objects=objects,
        actions=actions,
        metadata=RoleMetadata.model_validate(metadata),
    )


def overlay_config(base: RoleConfig | None, override: RoleConfig) -> RoleConfig:
    """Apply a per-user override on top of a role config, key by key."""
    if base is None:
        return override
    return RoleConfig(
        objects={**base.objects, **override.objects},
        actions={**base.actions, **override.actions},
        metadata=base.metadata,
    )


class RoleConfigStore:
    """In-memory mapping role name → RoleConfig."""

    def __init__(self):
        self._configs: dict[str, RoleConfig] = {}

    def load(self, rows: list[dict[str, Any]] | None = None) -> None:
        configs = {role: generate_default_config(role) for role in USER_ROLES}
        for row in rows or []:
            role = row.get("role")
            if not role:
                continue
            configs[role] = merge_role_config(role, row.get("config"))
        self._configs = configs

    def get(self, role: str | None) -> RoleConfig | None:
        if role is None:
            return None
        return self._configs.get(role)

    def set(self, role: str, config: RoleConfig) -> None:
        self._configs[role] = config

    def remove(self, role: str) -> None:
        self._configs.pop(role, None)

    def roles(self) -> list[str]:
        return list(self._configs.keys())

    def as_dict(self) -> dict[str, RoleConfig]:
        return dict(self._configs)

    def __contains__(self, role: str) -> bool:
        return role in self._configs

    def __len__(self) -> int:
        return len(self._configs)
