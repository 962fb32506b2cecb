# backend/dm_core/common/tests/test_pagination.py
import pytest
from rest_framework.exceptions import ValidationError

from dm_core.common.api.pagination import PageWindow, parse_page_window


def test_defaults_when_params_missing():
    w = parse_page_window({}, size_param="limit", default_size=20, max_size=100)
    assert w == PageWindow(page=1, size=20)
    assert w.offset == 0


def test_clamps_out_of_range_values():
    w = parse_page_window({"page": "0", "pageSize": "500"}, size_param="pageSize", default_size=50, max_size=100)
    assert w.page == 1
    assert w.size == 100


def test_non_integer_is_validation_error():
    with pytest.raises(ValidationError):
        parse_page_window({"limit": "ten"}, size_param="limit", default_size=20, max_size=100)


def test_describe_counts_pages():
    w = PageWindow(page=2, size=20)
    assert w.offset == 20
    assert w.describe(41) == {"page": 2, "limit": 20, "total": 41, "totalPages": 3}
    assert w.describe(0, size_key="pageSize") == {"page": 2, "pageSize": 20, "total": 0, "totalPages": 0}
