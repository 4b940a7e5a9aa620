"""Tests for page/limit validation."""

import pytest

from videotube.errors import ValidationError
from videotube.pagination import MAX_LIMIT, PageParams, validate_page


def test_defaults():
    assert validate_page(None, None) == PageParams(page=1, limit=10)


def test_skip():
    assert validate_page(3, 20).skip == 40


def test_oversized_limit_clamped():
    params = validate_page(2, MAX_LIMIT + 1)
    assert params.limit == MAX_LIMIT
    assert params.skip == MAX_LIMIT


@pytest.mark.parametrize(("page", "limit"), [(0, 1), (1, 0), (-5, 10), (1, -1)])
def test_rejected(page, limit):
    with pytest.raises(ValidationError):
        validate_page(page, limit)
