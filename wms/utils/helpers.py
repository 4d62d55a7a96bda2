import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_PATTERN.match(value))


def ensure_uuid(value: Optional[str] = None) -> str:
    """Return `value` if it is a UUID string, otherwise a fresh UUID4."""
    if is_valid_uuid(value):
        return value
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_ms() -> int:
    return int(time.time() * 1000)


def serialize_doc(doc):
    """Recursively turn a stored document into a plain row.

    `_id` becomes `id`; datetimes become ISO strings.
    """
    if not doc:
        return doc

    if isinstance(doc, list):
        return [serialize_doc(d) for d in doc]

    if isinstance(doc, dict):
        clean = {}
        for k, v in doc.items():
            key = "id" if k == "_id" else k
            if isinstance(v, datetime):
                clean[key] = v.isoformat()
            elif isinstance(v, (dict, list)):
                clean[key] = serialize_doc(v)
            else:
                clean[key] = v
        return clean

    return doc


def to_document(row: dict) -> dict:
    """Inverse of `serialize_doc` for the identifier field."""
    doc = {k: v for k, v in row.items() if k != "id"}
    if row.get("id") is not None:
        doc["_id"] = row["id"]
    return doc


def success_response(
    data: Optional[Any] = None,
    message: str = "Success",
    code: int = 200,
) -> JSONResponse:
    """Standard success JSON response."""
    content = {"success": True, "message": message}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=code, content=content)


def error_response(
    message: str,
    code: int = 400,
    data: Optional[Any] = None,
) -> JSONResponse:
    """Standard error JSON response."""
    content = {"success": False, "error": {"code": code, "message": message}}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=code, content=content)
