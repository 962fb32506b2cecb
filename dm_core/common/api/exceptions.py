#base/backend/dm_core/common/api/exceptions.py

from __future__ import annotations

import logging
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from dm_core.common.api.envelope import build_meta

logger = logging.getLogger(__name__)

VALIDATION_FAILED_MSG = "Validation failed"
NON_FIELD_KEY = "non_field_errors"


def build_error_envelope(
    *,
    request=None,
    code: str,
    message: str,
    errors: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """
    Canonical error envelope.
    Reusable from Django middleware (JsonResponse) and DRF (Response).
    `errors` is only emitted for validation failures.
    """
    body: dict[str, Any] = {
        "success": False,
        "error": message,
        "code": code,
    }
    if errors:
        body["errors"] = errors
    body["meta"] = build_meta(request)
    return body


class ConflictError(APIException):
    """
    409 Conflict that still flows through the global exception handler.
    Use when business rules block an action (e.g. verifying an already verified assessment).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class NotImplementedYet(APIException):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_detail = "This operation is not implemented yet."
    default_code = "not_implemented"


def flatten_validation_errors(detail: Any, prefix: str = "") -> list[dict[str, str]]:
    """
    DRF nests errors as dict -> list -> str (and deeper for nested serializers).
    Flatten to [{field, message}] with dotted field paths.
    """
    if isinstance(detail, dict):
        out: list[dict[str, str]] = []
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            out.extend(flatten_validation_errors(value, field))
        return out

    if isinstance(detail, (list, tuple)):
        out = []
        for idx, item in enumerate(detail):
            if isinstance(item, (dict, list, tuple)):
                field = f"{prefix}.{idx}" if prefix else str(idx)
                out.extend(flatten_validation_errors(item, field))
            else:
                out.append({"field": prefix or NON_FIELD_KEY, "message": str(item)})
        return out

    return [{"field": prefix or NON_FIELD_KEY, "message": str(detail)}]


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, (Http404, NotFound)):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def _message_for(exc: Exception, data: Any) -> str:
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    if isinstance(data, list) and len(data) == 1 and not isinstance(data[0], (dict, list)):
        return str(data[0])
    if isinstance(exc, ValidationError):
        return VALIDATION_FAILED_MSG
    return "Request failed."


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        view = context.get("view")
        logger.exception(
            "Unhandled API error in %s (request_id=%s)",
            view.__class__.__name__ if view is not None else "unknown view",
            getattr(request, "request_id", None),
        )
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)
    data = response.data

    errors = None
    if isinstance(exc, ValidationError):
        errors = flatten_validation_errors(data)

    message = _message_for(exc, data)

    if http_status >= 500:
        logger.error("API error %s: %s", http_status, message)
    else:
        logger.debug("API error %s (%s): %s", http_status, code, message)

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            errors=errors,
        ),
        status=http_status,
        headers=response.headers,
    )
