"""
Illustration Metadata Fetchers

Resolves an illustration id into IllustrationMetadata (page count and
image URL template) using one of two upstream sources:
- ApiMetadataFetcher: the ajax JSON endpoint
- HtmlMetadataFetcher: the artwork page, reading the preload JSON embedded
  in a <meta> element

Both implement MetadataFetcher. FallbackMetadataFetcher chains several of
them in a fixed order.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Sequence

import httpx
from bs4 import BeautifulSoup

from .config import RelaySettings
from .constants import ARTWORK_PAGE_URL, ILLUST_API_URL, PRELOAD_META_ID
from .errors import UpstreamMalformed, UpstreamNotFound, UpstreamUnreachable
from .headers import UpstreamHeaders
from .models import IllustrationMetadata, decode_illust_payload

logger = logging.getLogger(__name__)


class MetadataFetcher(ABC):
    """Fetch illustration metadata by id."""

    name: str = "metadata"

    @abstractmethod
    async def fetch(self, illust_id: str) -> IllustrationMetadata:
        """
        Raises:
            UpstreamNotFound: upstream does not know the illustration
            UpstreamMalformed: upstream payload could not be interpreted
            UpstreamUnreachable: transport-level failure
        """


class _HttpMetadataFetcher(MetadataFetcher):
    """Shared GET handling for the HTTP-backed strategies."""

    def __init__(self, http_client: httpx.AsyncClient, headers: Mapping[str, str]):
        self.http_client = http_client
        self.headers = headers

    async def _get(self, url: str, illust_id: str) -> httpx.Response:
        try:
            response = await self.http_client.get(url, headers=self.headers)
        except httpx.HTTPError as e:
            raise UpstreamUnreachable(
                f"{self.name} request failed: {type(e).__name__}: {e}",
                illust_id=illust_id,
            ) from e

        if not response.is_success:
            raise UpstreamNotFound(
                f"{self.name} request returned HTTP {response.status_code}",
                illust_id=illust_id,
            )
        return response


# ============================================
# Ajax API strategy
# ============================================

class ApiMetadataFetcher(_HttpMetadataFetcher):
    """
    Reads GET /ajax/illust/<id>?lang=en

    Response shape: {"error": bool, "message": str, "body": {...} | []}
    """

    name = "api"

    async def fetch(self, illust_id: str) -> IllustrationMetadata:
        url = ILLUST_API_URL.format(illust_id=illust_id)
        logger.debug(f"[Metadata] API fetch: {url}")
        response = await self._get(url, illust_id)

        try:
            document = response.json()
        except ValueError as e:
            raise UpstreamMalformed("API response is not JSON", illust_id=illust_id) from e

        if not isinstance(document, dict):
            raise UpstreamMalformed("API response is not a JSON object", illust_id=illust_id)

        if document.get("error"):
            raise UpstreamNotFound(
                f"API reported error: {document.get('message') or 'no message'}",
                illust_id=illust_id,
            )

        body = document.get("body")
        if not body:
            raise UpstreamNotFound("API response has an empty body", illust_id=illust_id)

        return decode_illust_payload(body, illust_id)


# ============================================
# Artwork page strategy
# ============================================

def extract_preload_data(html: str) -> Any:
    """
    Pull the preload JSON document out of an artwork page.

    The page carries it as:
        <meta name="preload-data" id="meta-preload-data" content='{...}'>

    Raises:
        UpstreamMalformed: element missing or its content is not JSON
    """
    soup = BeautifulSoup(html, "html.parser")
    meta = soup.find("meta", id=PRELOAD_META_ID)
    content = meta.get("content") if meta is not None else None
    if not content:
        raise UpstreamMalformed(f"No #{PRELOAD_META_ID} element in artwork page")

    try:
        return json.loads(content)
    except ValueError as e:
        raise UpstreamMalformed(f"#{PRELOAD_META_ID} content is not JSON") from e


class HtmlMetadataFetcher(_HttpMetadataFetcher):
    """Reads GET /en/artworks/<id> and indexes the preload data by id."""

    name = "html"

    async def fetch(self, illust_id: str) -> IllustrationMetadata:
        url = ARTWORK_PAGE_URL.format(illust_id=illust_id)
        logger.debug(f"[Metadata] HTML fetch: {url}")
        response = await self._get(url, illust_id)

        # httpx has already undone the gzip/deflate transfer encoding
        try:
            preload = extract_preload_data(response.text)
        except UpstreamMalformed as e:
            e.illust_id = illust_id
            raise

        illusts = preload.get("illust") if isinstance(preload, dict) else None
        if not isinstance(illusts, dict) or illust_id not in illusts:
            raise UpstreamMalformed(
                f"Preload data has no entry for illust {illust_id}",
                illust_id=illust_id,
            )

        return decode_illust_payload(illusts[illust_id], illust_id)


# ============================================
# Fallback chain
# ============================================

class FallbackMetadataFetcher(MetadataFetcher):
    """
    Try several strategies in order.

    A malformed or unreachable result moves on to the next strategy. A
    not-found answer is definitive and stops the chain.
    """

    name = "fallback"

    def __init__(self, fetchers: Sequence[MetadataFetcher]):
        if not fetchers:
            raise ValueError("FallbackMetadataFetcher needs at least one fetcher")
        self.fetchers: List[MetadataFetcher] = list(fetchers)

    async def fetch(self, illust_id: str) -> IllustrationMetadata:
        last_error = None
        for fetcher in self.fetchers:
            try:
                return await fetcher.fetch(illust_id)
            except (UpstreamMalformed, UpstreamUnreachable) as e:
                logger.warning(
                    f"[Metadata] {fetcher.name} failed for illust {illust_id}: {e}, trying next source"
                )
                last_error = e
        raise last_error


FETCHERS = {
    "api": ApiMetadataFetcher,
    "html": HtmlMetadataFetcher,
}


def build_metadata_fetcher(
    settings: RelaySettings,
    http_client: httpx.AsyncClient,
    headers: UpstreamHeaders,
) -> MetadataFetcher:
    """Select the metadata strategy (or chain) named in the settings."""
    header_sets = {"api": headers.api, "html": headers.html}
    fetchers = [
        FETCHERS[source](http_client, header_sets[source])
        for source in settings.metadata_sources
    ]
    if len(fetchers) == 1:
        return fetchers[0]
    return FallbackMetadataFetcher(fetchers)
