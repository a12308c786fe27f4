"""Page request normalization shared by list operations."""

from typing import Optional

from fundledger.config import LedgerConfig
from fundledger.domain.entities import PageRequest


def resolve_page_request(request: Optional[PageRequest], config: LedgerConfig) -> PageRequest:
    """Clamp a page request to the configured limits.

    ``page`` below 1 becomes 1; a missing or non-positive ``page_size``
    becomes the configured default; sizes above the maximum are capped.
    """
    request = request or PageRequest()
    page = request.page if request.page and request.page > 0 else 1
    page_size = request.page_size
    if page_size is None or page_size < 1:
        page_size = config.default_page_size
    page_size = min(page_size, config.max_page_size)
    return PageRequest(page=page, page_size=page_size, sort=request.sort)
