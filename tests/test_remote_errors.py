from pymongo.errors import (
    DuplicateKeyError,
    InvalidURI,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from wms.remote import (
    OfflineError,
    RemoteApplicationError,
    classify_error,
    is_offline_error,
)
from wms.utils import ensure_uuid, is_valid_uuid, serialize_doc, to_document


def test_transport_failures_are_offline():
    assert isinstance(classify_error(ServerSelectionTimeoutError("no servers")), OfflineError)
    assert isinstance(classify_error(InvalidURI("bad uri")), OfflineError)
    assert is_offline_error(ServerSelectionTimeoutError("timeout"))


def test_backend_refusals_are_application_errors():
    dup = classify_error(DuplicateKeyError("E11000 duplicate key"))
    assert isinstance(dup, RemoteApplicationError)
    assert not dup.offline
    assert not is_offline_error(OperationFailure("not authorized"))
    assert not is_offline_error(None)


def test_remote_errors_pass_through():
    err = OfflineError("Failed to fetch")
    assert classify_error(err) is err


def test_ensure_uuid():
    existing = "3f2b8a4e-1c2d-4e5f-8a9b-0c1d2e3f4a5b"
    assert ensure_uuid(existing) == existing
    generated = ensure_uuid("prod-17")
    assert generated != "prod-17"
    assert is_valid_uuid(generated)
    assert is_valid_uuid(ensure_uuid())


def test_document_round_trip_uses_id():
    doc = to_document({"id": "p-1", "name": "Rice"})
    assert doc == {"_id": "p-1", "name": "Rice"}
    assert serialize_doc(doc) == {"id": "p-1", "name": "Rice"}
