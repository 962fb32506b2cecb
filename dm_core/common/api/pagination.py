from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 200


def paginate(request, queryset, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    Shared pagination helper to enforce a stable contract:
      { count, next, previous, results }
    """
    p = paginator or DefaultPagination()
    page = p.paginate_queryset(queryset, request)
    if page is not None:
        ser = serializer_class(page, many=True)
        return p.get_paginated_response(ser.data)

    # If pagination is disabled for some reason, fall back to a non-paginated list.
    ser = serializer_class(queryset, many=True)
    return Response(ser.data)


# -------------------------------------------------------------------
# Envelope-style pagination (verification dashboard endpoints)
# -------------------------------------------------------------------

@dataclass(frozen=True)
class PageWindow:
    page: int
    size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def slice(self, qs):
        return qs[self.offset:self.offset + self.size]

    def describe(self, total: int, *, size_key: str = "limit") -> dict[str, int]:
        total_pages = (total + self.size - 1) // self.size if self.size else 0
        return {
            "page": self.page,
            size_key: self.size,
            "total": total,
            "totalPages": total_pages,
        }


def _int_param(params: Mapping[str, Any], name: str, default: int) -> int:
    raw = params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: "A valid integer is required."})


def parse_page_window(
    params: Mapping[str, Any],
    *,
    size_param: str,
    default_size: int,
    max_size: int,
    page_param: str = "page",
) -> PageWindow:
    """
    page >= 1, 1 <= size <= max_size. Out-of-range values are clamped;
    non-integers are a validation error.
    """
    page = max(1, _int_param(params, page_param, 1))
    size = _int_param(params, size_param, default_size)
    size = max(1, min(size, max_size))
    return PageWindow(page=page, size=size)
