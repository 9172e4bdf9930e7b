"""
Relay Models

Request/metadata data structures and the pydantic decoder used to turn
upstream JSON into typed metadata.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import STORE_EXTENSION
from .errors import UpstreamMalformed


# ============================================
# Pipeline data
# ============================================

@dataclass(frozen=True)
class ImageRequest:
    """Parsed inbound request: illustration id and optional 1-based page."""
    illust_id: str
    page: Optional[int] = None

    @property
    def cache_name(self) -> str:
        """File name used by the on-disk store: <id>[-<page>].jpg"""
        if self.page is None:
            return f"{self.illust_id}{STORE_EXTENSION}"
        return f"{self.illust_id}-{self.page}{STORE_EXTENSION}"

    def describe(self) -> str:
        if self.page is None:
            return f"illust {self.illust_id}"
        return f"illust {self.illust_id} page {self.page}"


@dataclass(frozen=True)
class IllustrationMetadata:
    """What the relay needs to know about an illustration."""
    page_count: int
    regular_url: str                 # template URL, first page encoded as _p0


# ============================================
# Upstream payload decoder
# ============================================

class IllustUrls(BaseModel):
    """`urls` object of an illustration payload"""
    model_config = ConfigDict(extra="ignore")

    regular: str = Field(..., min_length=1)


class IllustPayload(BaseModel):
    """
    Per-illustration object as found in both the ajax API body and the
    artwork page preload data. Only the fields the relay uses are declared.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    page_count: int = Field(..., alias="pageCount", ge=1)
    urls: IllustUrls

    def to_metadata(self) -> IllustrationMetadata:
        return IllustrationMetadata(
            page_count=self.page_count,
            regular_url=self.urls.regular,
        )


def decode_illust_payload(payload: Any, illust_id: str) -> IllustrationMetadata:
    """
    Decode an upstream illustration object into metadata.

    Raises:
        UpstreamMalformed: if required fields are missing or ill-typed
    """
    try:
        return IllustPayload.model_validate(payload).to_metadata()
    except ValidationError as e:
        raise UpstreamMalformed(
            f"Illustration payload rejected: {e.error_count()} invalid field(s)",
            illust_id=illust_id,
        ) from e
