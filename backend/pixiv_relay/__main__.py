"""
pixiv-relay server

Usage:
    python -m pixiv_relay --config pixiv-relay.config
    pixiv-relay --config /etc/pixiv-relay.config --verbose

Then request images as:
    http://localhost:8080/<illustId>.jpg          single-image illustrations
    http://localhost:8080/<illustId>-<page>.jpg   multi-image illustrations
"""

import sys
import logging
import argparse

import uvicorn

from .app import create_app
from .config import CONFIG_PATH, load_settings
from .errors import ConfigError
from .store import ImageStore

logger = logging.getLogger("pixiv_relay")


def setup_logging(verbose: bool = False) -> None:
    """Configure the root handler for the relay's module loggers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Relay pixiv illustration images")
    parser.add_argument("--config", default=CONFIG_PATH, help=f"Config file (default: {CONFIG_PATH})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if settings.cache_to_disk:
        ImageStore(settings.store_path).ensure_directory()
        logger.info(f"[ImageStore] Caching images to {settings.store_path}")

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if args.verbose else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
