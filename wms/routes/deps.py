"""Shared helpers for route handlers."""

from fastapi import Request

from wms.session import SessionManager, UserProfile
from wms.sync import DashboardStore, MutationOutcome, MutationResult
from wms.utils import success_response
from wms.utils.exceptions import AuthenticationError, ConflictError, MutationFailedError, NotFoundError


def get_store(request: Request) -> DashboardStore:
    return request.app.state.store


def get_session(request: Request) -> SessionManager:
    return request.app.state.session


def get_actor(request: Request) -> UserProfile:
    """The caller resolved from its bearer token; 401 when there is none."""
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise AuthenticationError()
    return actor


def mutation_response(result: MutationResult, message: str, code: int = 200):
    """Map a command outcome onto the response envelope.

    Offline results are still successes: the change is live locally.
    """
    if result.outcome is MutationOutcome.REJECTED:
        if result.missing:
            raise NotFoundError(result.message)
        raise ConflictError(result.message)
    if result.outcome is MutationOutcome.ROLLED_BACK:
        raise MutationFailedError(result.message)

    data = result.data
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    return success_response(
        data={"outcome": result.outcome.value, "record": data},
        message=result.message or message,
        code=code,
    )
