"""
Page validation and per-page image URL derivation.

Pages are 1-based for clients. Upstream URL templates encode the first
page as `_p0`, so page N lives at `_p{N-1}`.
"""

import re
from typing import Optional

from .errors import PageOutOfRange, PageSelectorMismatch, UpstreamMalformed

FIRST_PAGE_MARKER = "_p0"


def validate_page(page_count: int, page: Optional[int]) -> int:
    """
    Check a requested page against the illustration's page count.

    Returns:
        The effective 1-based page (1 when no page was requested).

    Raises:
        PageSelectorMismatch: selector given for a single-page illustration,
            or missing for a multi-page one
        PageOutOfRange: selector beyond the last page
    """
    if page is not None:
        if page_count == 1:
            raise PageSelectorMismatch("Illustration is single-page, page selector not applicable")
        if page_count < page:
            raise PageOutOfRange(f"Page {page} does not exist ({page_count} pages)")
        return page

    if page_count != 1:
        raise PageSelectorMismatch(f"Illustration has {page_count} pages, page selector required")
    return 1


def _marker_pattern(illust_id: Optional[str]) -> re.Pattern:
    if illust_id:
        # /<id>_p0 followed by the extension or a size suffix (_master1200)
        return re.compile(rf"(?<=/)({re.escape(illust_id)}){FIRST_PAGE_MARKER}(?=[._])")
    # digits + _p0 inside the last path segment
    return re.compile(rf"(?<=/)(\d+){FIRST_PAGE_MARKER}(?=[._][^/]*$)")


def derive_image_url(regular_url: str, page: int, illust_id: Optional[str] = None) -> str:
    """
    Substitute the page marker of a template URL for `page`.

    Only the marker attached to the illustration id is touched, so other
    `_p0` substrings elsewhere in the URL are left alone.

    Raises:
        UpstreamMalformed: no anchored marker exists but page > 1
    """
    if page == 1:
        return regular_url

    resolved, count = _marker_pattern(illust_id).subn(
        rf"\g<1>_p{page - 1}", regular_url, count=1
    )
    if count != 1:
        raise UpstreamMalformed(
            f"No page marker in image URL template: {regular_url[:120]}",
            illust_id=illust_id,
        )
    return resolved
