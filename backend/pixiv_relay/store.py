"""
Image Store

Flat file store for relayed images:
- One file per (illustration id, page): <root>/<id>[-<page>].jpg
- Existence of the file is the only state (no index, no expiry)
- At-most-once writes: an existing file is never rewritten
- Writes go to a temporary .part file and are moved into place with an
  atomic rename, so readers never observe a truncated image

Cache structure:
store/
├── 12345678.jpg
├── 23456789-1.jpg
└── 23456789-2.jpg
"""

import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from .models import ImageRequest

logger = logging.getLogger(__name__)


class StoreWriter:
    """Accumulates one image into a temp file, then commits or discards it."""

    def __init__(self, target: Path):
        self.target = target
        fd, tmp_name = tempfile.mkstemp(
            prefix=target.name + ".",
            suffix=".part",
            dir=str(target.parent),
        )
        self.tmp_path = Path(tmp_name)
        self._file = os.fdopen(fd, "wb")
        self.bytes_written = 0

    def write(self, chunk: bytes) -> None:
        self._file.write(chunk)
        self.bytes_written += len(chunk)

    def commit(self) -> bool:
        """
        Move the temp file into place.

        Returns:
            True if this writer created the file, False if another writer
            got there first (the temp file is dropped in that case).
        """
        self._file.close()
        if self.target.exists():
            self._unlink_tmp()
            return False

        os.replace(self.tmp_path, self.target)
        logger.info(f"[ImageStore] Stored: {self.target} ({self.bytes_written} bytes)")
        return True

    def discard(self) -> None:
        """Drop a partial write."""
        self._file.close()
        self._unlink_tmp()
        logger.debug(f"[ImageStore] Discarded partial write for {self.target}")

    def _unlink_tmp(self) -> None:
        try:
            self.tmp_path.unlink()
        except FileNotFoundError:
            pass


class ImageStore:
    """Deterministic-path file store for relayed images."""

    def __init__(self, root: Union[str, Path] = "store"):
        self.root = Path(root)

    def path_for(self, request: ImageRequest) -> Path:
        """Get the file path for a request."""
        return self.root / request.cache_name

    def exists(self, request: ImageRequest) -> bool:
        return self.path_for(request).exists()

    def ensure_directory(self) -> None:
        """
        Create the store directory if absent.

        A plain file occupying the directory path is removed first. Safe to
        call concurrently.
        """
        if self.root.exists() and not self.root.is_dir():
            logger.warning(f"[ImageStore] Removing non-directory at store path: {self.root}")
            self.root.unlink(missing_ok=True)
        self.root.mkdir(parents=True, exist_ok=True)

    def open_writer(self, request: ImageRequest) -> Optional[StoreWriter]:
        """
        Start writing the image for `request`.

        Returns:
            A StoreWriter, or None if the image is already stored.
        """
        target = self.path_for(request)
        if self.exists(request):
            logger.debug(f"[ImageStore] Already stored: {target}")
            return None

        self.ensure_directory()
        return StoreWriter(target)
