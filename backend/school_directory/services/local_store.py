"""
School Directory Backend — Local Disk Blob Store
==================================================

What:  Stores school images as files in a public directory.
How:   Async writes with aiofiles; names are `<timestamp>-<original-filename>`.
Who:   Selected when STORAGE_BACKEND=local (the default).

Directory Structure:
    public/
    └── schoolImages/
        ├── 1717171717171-oak-hill.png
        └── 1717171717342-riverside.jpg

    The stored key is the bare filename; the client-facing reference is
    `/schoolImages/<filename>`, served by routes/schools.py.
"""

import logging
import os
from pathlib import Path

import aiofiles

from school_directory.exceptions import StorageWriteError
from school_directory.services.blob_store import (
    BlobStore,
    StoredImage,
    safe_filename,
    unique_timestamp,
)

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Blob Store backed by a directory on the local filesystem."""

    name = "local"

    def __init__(self, root: str, url_prefix: str):
        """
        Args:
            root: Directory the images are written to (created if missing)
            url_prefix: Public URL path the directory is served under
        """
        self.root = Path(root).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalBlobStore initialized with root=%s", self.root)

    def path_for(self, key: str) -> Path:
        """
        Resolve a key to a path inside the root.

        Raises:
            StorageWriteError: the key would escape the root directory
        """
        path = (self.root / key).resolve()
        if path.parent != self.root:
            raise StorageWriteError(
                message="Invalid image path",
                context={"key": key},
            )
        return path

    async def save(self, filename: str, content: bytes, content_type: str) -> StoredImage:
        key = f"{unique_timestamp()}-{safe_filename(filename)}"
        path = self.root / key

        try:
            # Root may have been removed since startup (tmp cleaners, volume remounts)
            self.root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", path, str(e))
            raise StorageWriteError(
                message="Failed to save image",
                details=str(e),
                context={"path": str(path)},
            )

        logger.info("Image stored: %s (%d bytes)", key, len(content))
        return StoredImage(key=key, url=f"{self.url_prefix}/{key}")

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            os.remove(path)
            logger.info("Image deleted: %s", key)
        except FileNotFoundError:
            logger.debug("Delete: image already gone: %s", key)
        except OSError as e:
            raise StorageWriteError(
                message="Failed to delete image",
                details=str(e),
                context={"path": str(path)},
            )

    async def health_check(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)
