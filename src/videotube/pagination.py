"""Page/limit pagination for aggregated feeds.

Validated before any query is issued, so a bad page never reaches the DB.
"""

from __future__ import annotations

from dataclasses import dataclass

from videotube.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def validate_page(page: int | None, limit: int | None) -> PageParams:
    """Normalize page/limit, falling back to defaults when absent.

    A limit above MAX_LIMIT is clamped to MAX_LIMIT.

    Raises:
        ValidationError: page or limit below 1.
    """
    page = DEFAULT_PAGE if page is None else page
    limit = DEFAULT_LIMIT if limit is None else limit
    if page < 1 or limit < 1:
        msg = "page and limit must be positive integers"
        raise ValidationError(msg, details={"page": page, "limit": limit})
    return PageParams(page=page, limit=min(limit, MAX_LIMIT))
