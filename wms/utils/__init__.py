from .helpers import (
    is_valid_uuid,
    ensure_uuid,
    utc_now_iso,
    epoch_ms,
    serialize_doc,
    to_document,
    success_response,
    error_response,
)
from .logger import Logger
from .fsm import TransitionValidator

__all__ = [
    "is_valid_uuid",
    "ensure_uuid",
    "utc_now_iso",
    "epoch_ms",
    "serialize_doc",
    "to_document",
    "success_response",
    "error_response",
    "Logger",
    "TransitionValidator",
]
