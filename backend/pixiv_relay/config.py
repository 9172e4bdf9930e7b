"""
Relay Configuration

Settings are read once at startup from a JSON file and validated into an
immutable RelaySettings object. Only configure through the file (or the
environment variable naming it), never in code.

Example pixiv-relay.config:
    {
        "Port": 8080,
        "UserAgent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) ...",
        "Cookies": "PHPSESSID=...",
        "CacheToDisk": true,
        "StorePath": "store",
        "MetadataSources": ["api", "html"]
    }
"""

import os
import logging
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DEFAULT_CONFIG_FILE
from .errors import ConfigError

logger = logging.getLogger(__name__)

# Config file location (overridable per process)
CONFIG_PATH = os.getenv("PIXIV_RELAY_CONFIG", DEFAULT_CONFIG_FILE)


class RelaySettings(BaseModel):
    """Validated process configuration. Keys use the config file spelling."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    port: int = Field(..., alias="Port", ge=1, le=65535)
    user_agent: str = Field(..., alias="UserAgent", min_length=1)
    cookies: Optional[str] = Field(None, alias="Cookies")

    cache_to_disk: bool = Field(False, alias="CacheToDisk")
    store_path: Path = Field(Path("store"), alias="StorePath")

    # Metadata strategies, tried in order
    metadata_sources: List[Literal["api", "html"]] = Field(
        default_factory=lambda: ["api"], alias="MetadataSources", min_length=1
    )

    timeout: float = Field(30.0, alias="Timeout", gt=0)
    host: str = Field("0.0.0.0", alias="Host")

    @field_validator("user_agent")
    @classmethod
    def _strip_user_agent(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("UserAgent must not be blank")
        return value

    @field_validator("cookies", mode="before")
    @classmethod
    def _invalid_cookies_to_none(cls, value):
        # Cookies are optional: anything but a non-blank string means none
        if not isinstance(value, str) or not value.strip():
            return None
        return value


def load_settings(path: Union[str, Path, None] = None) -> RelaySettings:
    """
    Load and validate the config file.

    Raises:
        ConfigError: file unreadable, not JSON, or a required field invalid
    """
    config_path = Path(path or CONFIG_PATH)

    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    try:
        settings = RelaySettings.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}:\n{e}") from e

    if settings.cookies is None:
        logger.warning("[Config] No or invalid Cookies, metadata requests will be anonymous")

    logger.info(
        f"[Config] Loaded {config_path} (port={settings.port}, "
        f"cache_to_disk={settings.cache_to_disk}, sources={settings.metadata_sources})"
    )
    return settings
