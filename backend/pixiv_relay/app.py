"""
Application factory: wires settings, the shared HTTP client and the relay
components into a FastAPI app.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from .config import RelaySettings
from .headers import UpstreamHeaders
from .metadata import build_metadata_fetcher
from .pipeline import RelayPipeline
from .relay import ImageRelay
from .routes_fastapi import router
from .store import ImageStore

logger = logging.getLogger(__name__)


def build_pipeline(settings: RelaySettings, http_client: httpx.AsyncClient) -> RelayPipeline:
    """Build the per-process relay pipeline. Header sets are built here, once."""
    headers = UpstreamHeaders.from_settings(settings)
    store = ImageStore(settings.store_path) if settings.cache_to_disk else None
    return RelayPipeline(
        metadata_fetcher=build_metadata_fetcher(settings, http_client, headers),
        image_relay=ImageRelay(http_client, headers.image, store),
    )


def create_app(
    settings: RelaySettings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create the relay app.

    Args:
        settings: validated configuration
        http_client: upstream client; one is created (and closed on
            shutdown) when not given
    """
    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(
            timeout=settings.timeout,
            follow_redirects=True,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[Relay] Serving on port {settings.port}")
        yield
        if owns_client:
            await http_client.aclose()

    app = FastAPI(
        title="pixiv-relay",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.pipeline = build_pipeline(settings, http_client)
    app.include_router(router)
    return app
