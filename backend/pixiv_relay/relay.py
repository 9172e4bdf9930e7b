"""
Image Relay

Fetches the resolved image from the upstream CDN and streams it to the
client unmodified, optionally teeing the bytes into the ImageStore.
"""

import logging
from typing import AsyncIterator, Dict, Mapping, Optional

import httpx
from fastapi.responses import StreamingResponse

from .constants import CACHE_CONTROL
from .errors import RelayInternalError
from .models import ImageRequest
from .store import ImageStore, StoreWriter

logger = logging.getLogger(__name__)


class UpstreamStreamingResponse(StreamingResponse):
    """
    StreamingResponse that owns an open upstream response.

    Starlette leaves the body iterator suspended (or never started) when
    the client goes away, so both are closed here once sending ends.
    """

    def __init__(self, upstream: httpx.Response, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.upstream = upstream

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()
            await self.upstream.aclose()


class ImageRelay:
    """
    Streams upstream images to clients.

    Usage:
        relay = ImageRelay(http_client, headers.image, store)
        response = await relay.relay(url, image_request)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        headers: Mapping[str, str],
        store: Optional[ImageStore] = None,
    ):
        self.http_client = http_client
        self.headers = headers
        self.store = store

    async def relay(self, url: str, request: ImageRequest) -> StreamingResponse:
        """
        Open the upstream image and return a response streaming its body.

        Raises:
            RelayInternalError: transport failure or non-success status
        """
        upstream_request = self.http_client.build_request("GET", url, headers=self.headers)
        try:
            upstream = await self.http_client.send(upstream_request, stream=True)
        except httpx.HTTPError as e:
            raise RelayInternalError(
                f"Image request failed: {type(e).__name__}: {e}",
                illust_id=request.illust_id,
            ) from e

        if not upstream.is_success:
            await upstream.aclose()
            raise RelayInternalError(
                f"Image request returned HTTP {upstream.status_code}: {url[:120]}",
                illust_id=request.illust_id,
            )

        return UpstreamStreamingResponse(
            upstream,
            self._stream(upstream, request),
            status_code=200,
            headers=self._response_headers(upstream),
        )

    @staticmethod
    def _response_headers(upstream: httpx.Response) -> Dict[str, str]:
        headers = {
            "Age": "0",
            "Cache-Control": CACHE_CONTROL,
        }
        content_type = upstream.headers.get("content-type")
        if content_type:
            headers["Content-Type"] = content_type

        # The body is re-emitted decoded, so a length only holds for identity encoding
        content_length = upstream.headers.get("content-length")
        if content_length and not upstream.headers.get("content-encoding"):
            headers["Content-Length"] = content_length
        return headers

    def _open_writer(self, request: ImageRequest) -> Optional[StoreWriter]:
        if self.store is None:
            return None
        try:
            return self.store.open_writer(request)
        except OSError as e:
            logger.error(f"[ImageRelay] Store unavailable for {request.describe()}: {e}")
            return None

    async def _stream(
        self,
        upstream: httpx.Response,
        request: ImageRequest,
    ) -> AsyncIterator[bytes]:
        completed = False
        relayed = 0
        writer: Optional[StoreWriter] = None
        try:
            # the finally below owns the temp file from here on
            writer = self._open_writer(request)
            async for chunk in upstream.aiter_bytes():
                if writer is not None:
                    try:
                        writer.write(chunk)
                    except OSError as e:
                        logger.error(f"[ImageRelay] Store write failed for {request.describe()}: {e}")
                        writer.discard()
                        writer = None
                relayed += len(chunk)
                yield chunk
            completed = True
            logger.info(f"[ImageRelay] Relayed {request.describe()} ({relayed} bytes)")
        except httpx.HTTPError as e:
            logger.error(
                f"[ImageRelay] Upstream stream aborted for {request.describe()} "
                f"after {relayed} bytes: {type(e).__name__}: {e}"
            )
            raise
        finally:
            if writer is not None:
                if completed:
                    self._commit(writer, request)
                else:
                    writer.discard()
            await upstream.aclose()

    @staticmethod
    def _commit(writer: StoreWriter, request: ImageRequest) -> None:
        try:
            writer.commit()
        except OSError as e:
            logger.error(f"[ImageRelay] Store commit failed for {request.describe()}: {e}")
            writer.discard()
