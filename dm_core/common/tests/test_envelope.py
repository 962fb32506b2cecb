# backend/dm_core/common/tests/test_envelope.py
import pytest
from django.test import RequestFactory
from rest_framework import status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from dm_core.common.api.envelope import build_meta, success_response
from dm_core.common.api.exceptions import (
    ConflictError,
    NotImplementedYet,
    api_exception_handler,
    flatten_validation_errors,
)
from dm_core.common.middleware import RequestIdMiddleware


def _request(**headers):
    return RequestFactory().get("/api/v1/verification/audit", **headers)


def test_success_response_omits_none_sections():
    req = _request()
    res = success_response(req, [1, 2], pagination=None, summary={"totalEntries": 2})

    assert res.status_code == 200
    assert res.data["success"] is True
    assert res.data["data"] == [1, 2]
    assert "pagination" not in res.data
    assert res.data["summary"] == {"totalEntries": 2}
    assert set(res.data["meta"]) >= {"timestamp", "version", "requestId"}


def test_build_meta_reuses_request_id():
    req = _request()
    req.request_id = "abc-123"
    meta = build_meta(req, updatedCount=3)
    assert meta["requestId"] == "abc-123"
    assert meta["updatedCount"] == 3
    assert meta["version"] == "1.0"


def test_flatten_validation_errors_dotted_paths():
    detail = {
        "entityIds": ["At least one entity ID is required"],
        "foodData": {"foodSource": ["At least one food source is required"]},
        "conditions": {"assessmentTypes": {0: ['"LOGISTICS" is not a valid choice.']}},
    }
    out = flatten_validation_errors(detail)

    assert {"field": "entityIds", "message": "At least one entity ID is required"} in out
    assert {"field": "foodData.foodSource", "message": "At least one food source is required"} in out
    assert any(e["field"] == "conditions.assessmentTypes.0" for e in out)


def test_exception_handler_validation_envelope():
    req = _request()
    res = api_exception_handler(ValidationError({"reason": ["Rejection reason is required."]}), {"request": req})

    assert res.status_code == 400
    assert res.data["success"] is False
    assert res.data["code"] == "validation_error"
    assert res.data["error"] == "Validation failed"
    assert res.data["errors"] == [{"field": "reason", "message": "Rejection reason is required."}]
    assert "requestId" in res.data["meta"]


@pytest.mark.parametrize(
    "exc, http_status, code",
    [
        (NotFound("Entity not found."), 404, "not_found"),
        (PermissionDenied("Insufficient permissions. Coordinator role required."), 403, "permission_denied"),
        (ConflictError("Only submitted assessments can be verified."), 409, "conflict"),
        (NotImplementedYet(), 501, "not_implemented"),
    ],
)
def test_exception_handler_maps_codes(exc, http_status, code):
    res = api_exception_handler(exc, {"request": _request()})
    assert res.status_code == http_status
    assert res.data["code"] == code
    assert res.data["error"] == str(exc.detail)
    assert "errors" not in res.data


def test_exception_handler_unhandled_is_500_envelope():
    res = api_exception_handler(RuntimeError("boom"), {"request": _request(), "view": None})
    assert res.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert res.data == {
        "success": False,
        "error": "Unexpected server error.",
        "code": "server_error",
        "meta": res.data["meta"],
    }


def test_request_id_middleware_echoes_sane_header():
    req = _request(HTTP_X_REQUEST_ID="client-42")
    mw = RequestIdMiddleware(get_response=lambda r: None)
    mw.process_request(req)
    assert req.request_id == "client-42"

    from django.http import HttpResponse

    res = mw.process_response(req, HttpResponse())
    assert res["X-Request-Id"] == "client-42"


def test_request_id_middleware_replaces_garbage_header():
    req = _request(HTTP_X_REQUEST_ID="bad id\nwith newline")
    RequestIdMiddleware(get_response=lambda r: None).process_request(req)
    assert req.request_id != "bad id\nwith newline"
    assert len(req.request_id) == 32
