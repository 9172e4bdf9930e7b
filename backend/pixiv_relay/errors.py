"""
Relay Errors

Classified failures raised by the pipeline stages.

Every stage either returns its result or raises one of these. Only the
pipeline translates them into HTTP status codes.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for failures that terminate a single relay request."""

    def __init__(self, message: str, illust_id: Optional[str] = None):
        super().__init__(message)
        self.illust_id = illust_id


# ============================================
# Client errors
# ============================================

class BadRequest(RelayError):
    """The request cannot be served as asked."""


class UnrecognizedPath(BadRequest):
    """Path does not look like /<id>[-<page>].<ext>."""


class InvalidPage(BadRequest):
    """Page selector parsed but is below 1."""


class PageSelectorMismatch(BadRequest):
    """Page selector given for a single-page illustration, or missing for a multi-page one."""


class NotFound(RelayError):
    """The requested illustration or page does not exist."""


class UpstreamNotFound(NotFound):
    """Upstream reported the illustration as unknown."""


class PageOutOfRange(NotFound):
    """Requested page is beyond the illustration's page count."""


# ============================================
# Upstream / internal errors
# ============================================

class UpstreamUnreachable(RelayError):
    """Transport-level failure while talking to upstream."""


class UpstreamMalformed(RelayError):
    """Upstream answered with a payload we cannot interpret."""


class RelayInternalError(RelayError):
    """Image fetch failed after the metadata was resolved."""


class ConfigError(Exception):
    """Configuration file missing or invalid. Fatal at startup."""
