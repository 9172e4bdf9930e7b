"""
Relay API Routes

Provides endpoints for:
- GET /<illustId>.<ext>          - single-image illustrations
- GET /<illustId>-<page>.<ext>   - page of a multi-image illustration
- GET /favicon.ico               - always 404
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from .pipeline import RelayPipeline, error_response


# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Relay"])


def get_pipeline(request: Request) -> RelayPipeline:
    return request.app.state.pipeline


# ============================================
# Endpoints
# ============================================

@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Browsers ask for this on every page view; there is none."""
    return error_response(404)


@router.get("/{image_path:path}")
async def relay_image(image_path: str, request: Request) -> Response:
    """
    Relay an illustration image from pixiv.

    Example:
        GET /12345678.jpg
        GET /23456789-2.png
    """
    pipeline = get_pipeline(request)
    return await pipeline.handle("/" + image_path)
