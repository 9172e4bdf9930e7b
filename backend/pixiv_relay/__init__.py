"""
pixiv Image Relay

Serves pixiv illustration images under short paths, fetching them with the
headers pixiv's hotlink protection requires.

Features:
- /<illustId>.jpg and /<illustId>-<page>.jpg paths
- Metadata from the ajax API or the artwork page, with optional fallback
- Streamed responses with long-lived cache headers
- Optional at-most-once on-disk copy of every relayed image
"""

from .app import create_app
from .config import RelaySettings, load_settings
from .routes_fastapi import router

__all__ = ["create_app", "RelaySettings", "load_settings", "router"]
