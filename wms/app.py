"""
Pam Pam WMS main application.

Assembles the dashboard core (remote store, sync store, session manager,
realtime ingress) behind the HTTP routes.
"""

import time
import traceback
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from wms.config import settings, db_manager
from wms.middleware import BearerAuthMiddleware
from wms.preferences import PreferenceStore
from wms.realtime import RealtimeIngress
from wms.remote import MongoAuthProvider, MongoRemoteStore
from wms.session import SessionManager
from wms.sync import DashboardStore
from wms.utils import Logger, error_response

# ── Route imports ────────────────────────────────────────────────
from wms.routes import (
    auth_router,
    products_router,
    adjustments_router,
    roles_router,
    users_router,
    tasks_router,
    warehouses_router,
    receiving_router,
    preferences_router,
)

logger = Logger("wms.request")


# ── Request Logging Middleware ───────────────────────────────────
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its outcome, timing and the acting user.

    Every response carries an `X-Request-ID` header matching the log lines.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        started = time.perf_counter()
        line = f"[{request_id}] {request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"{line} failed after {elapsed:.1f}ms: {exc!r}")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        actor = getattr(request.state, "actor", None)
        who = (actor.username or actor.id) if actor is not None else "anonymous"
        summary = f"{line} -> {response.status_code} in {elapsed:.1f}ms ({who})"

        if response.status_code >= 500:
            logger.error(summary)
        elif response.status_code >= 400:
            logger.warning(summary)
        else:
            logger.info(summary)

        response.headers["X-Request-ID"] = request_id
        return response


# ── Lifespan ─────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.store is not None:
        # Core supplied by the caller (tests, embedding); nothing to wire.
        yield
        return

    await db_manager.connect()
    db = db_manager.database
    remote = MongoRemoteStore(db)
    store = DashboardStore(remote)
    session = SessionManager(MongoAuthProvider(db), store)
    app.state.store = store
    app.state.session = session

    if not await store.refresh():
        logger.warning("Started with incomplete data; running in offline mode")
    await session.restore()

    ingress = RealtimeIngress(store, remote, settings.realtime_tables)
    ingress.start()
    try:
        yield
    finally:
        await ingress.stop()
        session.close()
        db_manager.close()


# ── App factory ──────────────────────────────────────────────────
def create_app(
    store: DashboardStore | None = None,
    session: SessionManager | None = None,
    preferences: PreferenceStore | None = None,
) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Warehouse dashboard core: permissions, optimistic sync, realtime",
        docs_url="/api/docs",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.session = session
    app.state.preferences = preferences or PreferenceStore()

    # ── CORS (must be first) ─────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    # ── Bearer token → request.state.actor ───────────────────
    app.add_middleware(BearerAuthMiddleware)

    # ── Request logging (wraps everything below) ─────────────
    app.add_middleware(RequestLoggingMiddleware)

    # ── HTTP errors in the standard envelope ─────────────────
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = error_response(str(exc.detail), code=exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    # ── Global exception handler ─────────────────────────────
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}:")
        logger.error(traceback.format_exc())
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": 500,
                    "message": str(exc) if settings.debug else "Internal server error",
                },
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    # ── Routes ───────────────────────────────────────────────
    v = settings.api_version  # "v1"

    app.include_router(auth_router, prefix=f"/api/{v}/auth", tags=["Authentication"])
    app.include_router(products_router, prefix=f"/api/{v}/products", tags=["Products"])
    app.include_router(adjustments_router, prefix=f"/api/{v}/adjustments", tags=["Stock Adjustments"])
    app.include_router(roles_router, prefix=f"/api/{v}/roles", tags=["Roles"])
    app.include_router(users_router, prefix=f"/api/{v}/users", tags=["Users"])
    app.include_router(tasks_router, prefix=f"/api/{v}/tasks", tags=["Tasks"])
    app.include_router(warehouses_router, prefix=f"/api/{v}/warehouses", tags=["Warehouses"])
    app.include_router(
        receiving_router,
        prefix=f"/api/{v}/receiving-orders",
        tags=["Receiving Orders"],
    )
    app.include_router(preferences_router, prefix=f"/api/{v}/preferences", tags=["Preferences"])

    # ── Health check ─────────────────────────────────────────
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "database": db_manager.is_connected,
        }

    return app
