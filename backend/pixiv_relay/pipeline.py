"""
Relay Pipeline

Sequences one inbound request through the relay stages:
    parse path -> fetch metadata -> validate page -> derive URL -> relay image

Stages raise RelayError subclasses; this is the only place they are turned
into HTTP status codes. Nothing is retried.
"""

import logging
from typing import Optional

from fastapi.responses import Response

from .errors import (
    BadRequest,
    NotFound,
    RelayError,
    RelayInternalError,
    UpstreamMalformed,
    UpstreamUnreachable,
)
from .metadata import MetadataFetcher
from .models import ImageRequest
from .pages import derive_image_url, validate_page
from .path_resolver import parse_image_path
from .relay import ImageRelay

logger = logging.getLogger(__name__)

# Checked in order, first isinstance match wins
STATUS_CODES = (
    (BadRequest, 400),
    (NotFound, 404),
    (UpstreamUnreachable, 500),
    (UpstreamMalformed, 500),
    (RelayInternalError, 500),
)


def error_response(status_code: int) -> Response:
    """Empty plain-text response. Error details stay in the server log."""
    return Response(status_code=status_code, media_type="text/plain")


class RelayPipeline:
    """Per-request orchestration of the relay stages."""

    def __init__(self, metadata_fetcher: MetadataFetcher, image_relay: ImageRelay):
        self.metadata_fetcher = metadata_fetcher
        self.image_relay = image_relay

    @staticmethod
    def status_for(error: RelayError) -> int:
        for error_type, status_code in STATUS_CODES:
            if isinstance(error, error_type):
                return status_code
        return 500

    async def handle(self, path: str) -> Response:
        """Serve one image path. Always returns a response."""
        stage = "parse"
        request: Optional[ImageRequest] = None
        try:
            request = parse_image_path(path)

            stage = "metadata"
            metadata = await self.metadata_fetcher.fetch(request.illust_id)

            stage = "validate"
            page = validate_page(metadata.page_count, request.page)

            stage = "derive"
            url = derive_image_url(metadata.regular_url, page, illust_id=request.illust_id)

            stage = "relay"
            logger.debug(f"[Relay] {request.describe()} -> {url}")
            return await self.image_relay.relay(url, request)

        except RelayError as e:
            status_code = self.status_for(e)
            target = request.describe() if request else f"path {path[:80]!r}"
            log = logger.warning if status_code < 500 else logger.error
            log(f"[Relay] {stage} failed for {target} -> {status_code}: {type(e).__name__}: {e}")
            return error_response(status_code)
