from .modules import APP_MODULES, PERMISSION_MODULES, MODULE_KEYS, USER_ROLES, ADMIN_ROLE, VIEWS
from .roles import (
    Sharing,
    PermissionObject,
    RoleMetadata,
    RoleConfig,
    RoleConfigStore,
    generate_default_config,
    get_role_metadata,
    merge_role_config,
    overlay_config,
)
from .permissions import CHECKABLE_ACTIONS, SPECIAL_ACTION, check_permission, effective_config
from .navigation import visible_modules, resolve_landing_view, fallback_view

__all__ = [
    "APP_MODULES",
    "PERMISSION_MODULES",
    "MODULE_KEYS",
    "USER_ROLES",
    "ADMIN_ROLE",
    "VIEWS",
    "Sharing",
    "PermissionObject",
    "RoleMetadata",
    "RoleConfig",
    "RoleConfigStore",
    "generate_default_config",
    "get_role_metadata",
    "merge_role_config",
    "overlay_config",
    "CHECKABLE_ACTIONS",
    "SPECIAL_ACTION",
    "check_permission",
    "effective_config",
    "visible_modules",
    "resolve_landing_view",
    "fallback_view",
]
