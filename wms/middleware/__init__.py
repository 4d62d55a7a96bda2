"""
Bearer authentication middleware.

Runs on every request:
  1. Read `Authorization: Bearer <token>`
  2. Resolve the token to a profile through the session manager
  3. Set request.state.actor (None for anonymous callers) and request.state.token

Rejecting anonymous callers is left to `require_permission`, so public
routes (login, health, docs) need no allow-list here.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from wms.utils import Logger

logger = Logger("wms.auth")


def bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


class BearerAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.actor = None
        request.state.token = None

        token = bearer_token(request)
        session = getattr(request.app.state, "session", None)
        if token is not None and session is not None:
            actor = await session.actor_for_token(token)
            if actor is None:
                logger.info(f"Rejected bearer token on {request.method} {request.url.path}")
            else:
                request.state.actor = actor
                request.state.token = token

        return await call_next(request)


__all__ = ["BearerAuthMiddleware", "bearer_token"]
