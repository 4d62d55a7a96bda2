"""
Permission checking.

A decision is a pure function of the actor, the role config store, the
module key ("scope") and the action. It is advisory: callers consult it
before they invoke a command; nothing here stops a command from running.
"""

from typing import Optional, Protocol

from .modules import ADMIN_ROLE
from .roles import RoleConfig, RoleConfigStore, overlay_config

CHECKABLE_ACTIONS = ("create", "read", "edit", "delete", "approve", "reject", "undo")
SPECIAL_ACTION = "special"


class Actor(Protocol):
    role: str
    custom_config: Optional[RoleConfig]


def effective_config(actor: Actor, role_configs: RoleConfigStore) -> RoleConfig | None:
    """Role config for the actor's role with the per-user override applied."""
    config = role_configs.get(actor.role)
    custom = getattr(actor, "custom_config", None)
    if custom is not None:
        return overlay_config(config, custom)
    return config


def check_permission(
    actor: Actor | None,
    role_configs: RoleConfigStore,
    scope: str,
    action: str,
    special_key: str | None = None,
) -> bool:
    """
    Decide whether `actor` may perform `action` on module `scope`.

      - no actor                    → False
      - role without any config     → actor.role == "ADMIN"
      - action "special"            → config.actions[special_key], missing → False
      - scope missing from objects  → actor.role == "ADMIN"
      - otherwise                   → the named flag of the module's grant
    """
    if action != SPECIAL_ACTION and action not in CHECKABLE_ACTIONS:
        raise ValueError(f"Unknown permission action: {action}")

    if actor is None:
        return False

    config = effective_config(actor, role_configs)
    if config is None:
        return actor.role == ADMIN_ROLE

    if action == SPECIAL_ACTION:
        if not special_key:
            return False
        return bool(config.actions.get(special_key, False))

    grant = config.objects.get(scope)
    if grant is None:
        return actor.role == ADMIN_ROLE
    return bool(getattr(grant, action))
