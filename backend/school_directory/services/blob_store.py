"""
School Directory Backend — Abstract Blob Store Interface
==========================================================

What:  Abstract base class for image storage backends.
Why:   The upsert workflow must not care whether images live on local disk or
       in a remote object store; the backend is selected by configuration.
How:   Concrete implementations inherit from BlobStore and implement
       save(), delete() and health_check().

Implementations:
    - LocalBlobStore (local_store.py): files under PUBLIC_DIR/IMAGE_FOLDER
    - S3BlobStore (s3_store.py): objects under the IMAGE_FOLDER prefix of a bucket

Naming:
    Every stored name starts with a millisecond timestamp followed by the
    sanitized original filename. The timestamp is strictly increasing within
    the process, so two uploads of "logo.png" in the same millisecond still
    get distinct names.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePath

_UNSAFE_CHARS = re.compile(r"[^\w.-]+")

_last_timestamp = 0


def unique_timestamp() -> int:
    """Millisecond timestamp, bumped past the last one handed out."""
    global _last_timestamp
    now = int(time.time() * 1000)
    _last_timestamp = max(now, _last_timestamp + 1)
    return _last_timestamp


def safe_filename(original: str) -> str:
    """
    Reduce a client-supplied filename to a single safe path component.

    Directory parts are dropped (no traversal) and characters outside
    [A-Za-z0-9_.-] are replaced with underscores.
    """
    name = PurePath(original.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "image"


@dataclass(frozen=True)
class StoredImage:
    """Result of a successful write: identifier for deletion, reference for clients."""
    key: str
    url: str


class BlobStore(ABC):
    """
    Abstract interface for image storage.

    Contract:
        - save() writes the bytes under a new unique name and returns both the
          storage key and the client-facing reference
        - delete() removes a previously stored image by key; deleting a key
          that no longer exists is not an error
        - Backend-specific failures are wrapped in StorageWriteError
    """

    #: Short backend name used in logs and the health check
    name: str = "abstract"

    @abstractmethod
    async def save(self, filename: str, content: bytes, content_type: str) -> StoredImage:
        """
        Store an image.

        Args:
            filename: Original client filename (sanitized by the implementation)
            content: Raw image bytes, already validated
            content_type: Declared MIME type (image/jpeg or image/png)

        Raises:
            StorageWriteError: the write did not complete
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a stored image.

        Raises:
            StorageWriteError: the backend refused or failed the deletion
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe used by GET /health."""
        ...
