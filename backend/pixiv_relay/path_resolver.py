"""
Inbound path parsing: /<illustId>[-<page>].<jpg|jpeg|png|gif>
"""

import re

from .errors import InvalidPage, UnrecognizedPath
from .models import ImageRequest

# The extension is accepted for client compatibility only; the served
# content type always comes from upstream.
IMAGE_PATH_RE = re.compile(r"/(?P<illust_id>\d+)(?:-(?P<page>\d+))?\.(?:jpg|jpeg|png|gif)", re.ASCII)

# Longer page selectors are clamped to a page no illustration has.
MAX_PAGE_DIGITS = 9
OVERSIZED_PAGE = 10 ** MAX_PAGE_DIGITS


def parse_image_path(path: str) -> ImageRequest:
    """
    Parse a request path into an ImageRequest.

    Raises:
        UnrecognizedPath: path does not have the expected shape
        InvalidPage: page selector is 0 (or all zeros)
    """
    match = IMAGE_PATH_RE.fullmatch(path)
    if not match:
        raise UnrecognizedPath(f"Not an image path: {path[:80]!r}")

    illust_id = match.group("illust_id")
    raw_page = match.group("page")
    if raw_page is None:
        return ImageRequest(illust_id=illust_id)

    digits = raw_page.lstrip("0")
    if not digits:
        raise InvalidPage(f"Page must be >= 1, got {raw_page[:20]}", illust_id=illust_id)

    page = int(digits) if len(digits) <= MAX_PAGE_DIGITS else OVERSIZED_PAGE
    return ImageRequest(illust_id=illust_id, page=page)
