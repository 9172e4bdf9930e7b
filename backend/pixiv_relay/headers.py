"""
Upstream Header Sets

Header templates for upstream requests, built once from settings and
shared read-only by every request.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .config import RelaySettings
from .constants import PIXIV_REFERER


@dataclass(frozen=True)
class UpstreamHeaders:
    """Read-only header sets for the three kinds of upstream calls."""
    api: Mapping[str, str]           # ajax metadata endpoint
    html: Mapping[str, str]          # artwork page (browser-shaped)
    image: Mapping[str, str]         # image CDN, never carries the cookie

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "UpstreamHeaders":
        user_agent = settings.user_agent

        api = {
            "User-Agent": user_agent,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": PIXIV_REFERER,
        }

        # Complete browser-like headers, the artwork page serves a stripped
        # document to clients that don't look like a browser
        html = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
        }

        if settings.cookies:
            api["Cookie"] = settings.cookies
            html["Cookie"] = settings.cookies

        # Referer is what gets us past hotlink protection
        image = {
            "User-Agent": user_agent,
            "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": PIXIV_REFERER,
            "Sec-Fetch-Dest": "image",
            "Sec-Fetch-Mode": "no-cors",
            "Sec-Fetch-Site": "cross-site",
        }

        return cls(
            api=MappingProxyType(api),
            html=MappingProxyType(html),
            image=MappingProxyType(image),
        )
