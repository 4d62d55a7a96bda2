"""
Declarative permission gate for route handlers.

Usage:
    @router.post("/")
    @require_permission("INVENTORY_PRODUCT", "create")
    async def add_product(request: Request, body: ProductIn):
        ...

The actor is the one the bearer middleware put on `request.state`; the
handler runs with the store acting as that actor.
"""

from functools import wraps

from starlette.requests import Request

from wms.utils import Logger
from wms.utils.exceptions import AuthenticationError, PermissionDeniedError
from .permissions import check_permission

logger = Logger("wms.rbac")


def _find_request(args, kwargs) -> Request | None:
    request = kwargs.get("request")
    if request is None:
        for arg in args:
            if isinstance(arg, Request):
                return arg
    return request


def require_permission(scope: str, action: str, special_key: str | None = None):
    """
    Decorator that checks the request's actor holds `action` on `scope`
    before the handler runs.

    Must be applied AFTER the route decorator.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            if request is None:
                raise RuntimeError("Request object not found in handler")

            store = request.app.state.store
            actor = getattr(request.state, "actor", None)
            if actor is None:
                raise AuthenticationError()

            if not check_permission(actor, store.role_configs, scope, action, special_key):
                required = f"{scope}:{special_key or action}"
                logger.info(f"Denied {required} for {actor.username or actor.id} ({actor.role})")
                raise PermissionDeniedError(f"Permission denied. Requires: {required}")

            with store.acting_as(actor):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
