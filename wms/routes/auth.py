from fastapi import APIRouter, Request

from wms.rbac import resolve_landing_view, visible_modules
from wms.rbac.decorators import require_permission
from wms.session import (
    LoginRequest,
    NotificationSettings,
    PasswordChangeRequest,
    PasswordResetRequest,
    SessionState,
    UserProfile,
)
from wms.utils import success_response
from wms.utils.exceptions import AuthenticationError, MutationFailedError
from .deps import get_actor, get_session, get_store, mutation_response

auth_router = APIRouter()


def _session_payload(request: Request, actor: UserProfile) -> dict:
    return {
        "state": SessionState.AUTHENTICATED.value,
        "user": actor.model_dump(mode="json"),
        "landing_view": resolve_landing_view(actor),
        "modules": visible_modules(actor, get_store(request).role_configs),
    }


@auth_router.post("/login")
async def login(request: Request, body: LoginRequest):
    """Sign in by email or username and receive a bearer token."""
    issued = await get_session(request).issue_token(body.identifier, body.password)
    if issued is None:
        raise AuthenticationError("Invalid login credentials")
    token, actor = issued
    return success_response(
        data={
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expires_at": token.expires_at.isoformat(),
            **_session_payload(request, actor),
        },
        message="Login successful",
    )


@auth_router.post("/logout")
async def logout(request: Request):
    """Revoke the presented token."""
    token = getattr(request.state, "token", None)
    if token is not None:
        await get_session(request).revoke_token(token)
    return success_response(message="Logged out")


@auth_router.get("/me")
async def me(request: Request):
    """Current actor, landing view and the navigation it may see."""
    return success_response(data=_session_payload(request, get_actor(request)))


@auth_router.post("/change-password")
async def change_password(request: Request, body: PasswordChangeRequest):
    actor = get_actor(request)
    if not await get_session(request).change_password(body.new_password, actor=actor):
        raise MutationFailedError("Password could not be changed")
    return success_response(message="Password changed")


@auth_router.post("/reset-password")
@require_permission("ACCOUNT_MANAGEMENT", "special", "manage_users")
async def reset_password(request: Request, body: PasswordResetRequest):
    """Send a password reset link to a user's email."""
    if not await get_session(request).reset_password(body.user_id):
        raise MutationFailedError("Password reset could not be sent")
    return success_response(message="Password reset sent")


@auth_router.put("/notification-settings")
async def update_notification_settings(request: Request, body: NotificationSettings):
    actor = get_actor(request)
    store = get_store(request)
    with store.acting_as(actor):
        result = await store.update_notification_settings(body)
    return mutation_response(result, "Notification settings updated")
