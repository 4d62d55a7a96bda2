"""Navigation gating: which modules are visible and where an actor lands."""

from .modules import APP_MODULES, VIEWS
from .permissions import Actor, check_permission
from .roles import RoleConfigStore

DEFAULT_VIEW = "DASHBOARD"

ROLE_HOME_VIEWS = {
    "DRIVER": "MOBILE_DRIVER",
    "BRANCH": "MOBILE_BRANCH",
    "USER": "MOBILE_USER",
}


def visible_modules(actor: Actor | None, role_configs: RoleConfigStore) -> list[dict]:
    """The module tree filtered by read permission.

    A group is shown when at least one of its children is readable.
    """
    def readable(key: str) -> bool:
        return check_permission(actor, role_configs, key, "read")

    visible: list[dict] = []
    for mod in APP_MODULES:
        children = mod.get("children")
        if children is None:
            if readable(mod["key"]):
                visible.append({"key": mod["key"], "label": mod["label"]})
            continue
        kept = [dict(child) for child in children if readable(child["key"])]
        if kept:
            visible.append({"key": mod["key"], "label": mod["label"], "children": kept})
    return visible


def resolve_landing_view(actor: Actor | None) -> str:
    """View shown right after sign-in."""
    if actor is None:
        return DEFAULT_VIEW
    landing = getattr(actor, "landing_page", None)
    if landing and landing in VIEWS:
        return landing
    return ROLE_HOME_VIEWS.get(actor.role, DEFAULT_VIEW)


def fallback_view(actor: Actor | None, role_configs: RoleConfigStore, current: str) -> str:
    """Re-route when the current view stopped being readable."""
    if actor is None or check_permission(actor, role_configs, current, "read"):
        return current
    home = ROLE_HOME_VIEWS.get(actor.role)
    if home and check_permission(actor, role_configs, home, "read"):
        return home
    return DEFAULT_VIEW
