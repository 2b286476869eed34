"""
School Directory Backend — Image File Service
===============================================

What:  Validates uploaded school images and writes/removes them through the
       configured Blob Store.
Why:   Keeps upload rules (type, size, presence) in one place and gives the
       workflow two clearly different operations: store() which fails loudly
       and discard() which never fails.
Who:   Called by SchoolService.

Validation order (cheapest first, all before any write):
    0. Declared size: multipart part size checked before the bytes are read
    1. Presence:  create requires an image
    2. Extension: .jpg / .jpeg / .png
    3. MIME type: declared content type image/jpeg or image/png
    4. Size:      non-empty and at most MAX_FILE_SIZE bytes
    5. Content:   header bytes sniffed with `filetype`; must be JPEG or PNG and
                  agree with the declared type (a GIF renamed to .png is refused)
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

import filetype

from school_directory.config import Settings, settings
from school_directory.exceptions import StorageWriteError, ValidationError
from school_directory.services.blob_store import BlobStore, StoredImage
from school_directory.services.local_store import LocalBlobStore
from school_directory.services.s3_store import S3BlobStore

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}


@dataclass
class ImageUpload:
    """An image as received from the client, fully read into memory."""
    filename: str
    content: bytes
    content_type: str


def build_blob_store(config: Settings) -> BlobStore:
    """Instantiate the Blob Store selected by STORAGE_BACKEND."""
    if config.storage_backend == "s3":
        return S3BlobStore(
            bucket_name=config.s3_bucket_name or "",
            folder=config.image_folder,
            region=config.s3_region,
            access_key_id=config.s3_access_key_id,
            secret_access_key=config.s3_secret_access_key,
            endpoint_url=config.s3_endpoint_url,
            public_base_url=config.s3_public_base_url,
        )
    return LocalBlobStore(
        root=str(PurePath(config.public_dir) / config.image_folder),
        url_prefix=config.image_url_prefix,
    )


class FileService:
    """
    Image validation plus store/discard on top of a BlobStore.

    store()   → used for the primary write; StorageWriteError propagates
    discard() → used for compensation and stale-image cleanup; logs and
                swallows every failure, returns whether the delete succeeded
    """

    def __init__(self, blob_store: BlobStore, max_file_size: Optional[int] = None):
        self.blob_store = blob_store
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = PurePath(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message="Only JPEG or PNG images are allowed",
                field="image",
                details=f"File extension '{ext or '(none)'}' is not supported",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str]) -> str:
        mime_type = (content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Only JPEG or PNG images are allowed",
                field="image",
                details=f"Content type '{mime_type or '(none)'}' is not supported",
                context={"content_type": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def validate_size(self, content: bytes) -> None:
        max_mb = self.max_file_size / (1024 * 1024)

        if not content:
            raise ValidationError(
                message="Image file is empty",
                field="image",
            )

        if len(content) > self.max_file_size:
            raise ValidationError(
                message=f"Image exceeds maximum size of {max_mb:.0f}MB",
                field="image",
                details=f"Received {len(content) / (1024 * 1024):.1f}MB",
                context={"max_size": self.max_file_size, "actual_size": len(content)},
            )

    def validate_declared_size(self, declared_size: Optional[int]) -> None:
        """
        Reject an upload by its reported size before reading it.

        Called with the multipart part size; `validate_size` still checks the
        bytes actually read, in case the two disagree.
        """
        if declared_size and declared_size > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image exceeds maximum size of {max_mb:.0f}MB",
                field="image",
                details=f"Received {declared_size / (1024 * 1024):.1f}MB",
                context={"max_size": self.max_file_size, "reported_size": declared_size},
            )

    def validate_content(self, content: bytes, declared_type: str) -> str:
        """
        Check the file's header bytes, not just what the client claims.

        Returns: Detected MIME type.
        Raises:  ValidationError if the bytes are not JPEG/PNG, or are a
                 different image type than the one declared.
        """
        detected = filetype.guess_mime(content)
        if detected not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Only JPEG or PNG images are allowed",
                field="image",
                details=f"File content is '{detected or 'unknown'}'",
                context={"detected": detected, "declared": declared_type},
            )

        if ALLOWED_MIME_TYPES[detected] != ALLOWED_MIME_TYPES[declared_type]:
            raise ValidationError(
                message="Only JPEG or PNG images are allowed",
                field="image",
                details=f"Declared '{declared_type}' but file content is '{detected}'",
                context={"detected": detected, "declared": declared_type},
            )
        return detected

    def validate_image(self, image: Optional[ImageUpload], required: bool) -> Optional[ImageUpload]:
        """
        Run every upload check; returns the image unchanged, or None when no
        image was supplied and none is required.
        """
        if image is None:
            if required:
                raise ValidationError(message="Image is required", field="image")
            return None

        self.validate_extension(image.filename)
        declared_type = self.validate_content_type(image.content_type)
        self.validate_size(image.content)
        self.validate_content(image.content, declared_type)
        return image

    async def store(self, image: ImageUpload) -> StoredImage:
        """Write a validated image. Raises StorageWriteError on failure."""
        return await self.blob_store.save(
            filename=image.filename,
            content=image.content,
            content_type=self.validate_content_type(image.content_type),
        )

    async def discard(self, key: Optional[str], reason: str) -> bool:
        """
        Best-effort image deletion.

        Cleanup is never user-facing: a failure here is logged with the key
        so the orphan can be found later, and the caller carries on.
        """
        if not key:
            return True
        try:
            await self.blob_store.delete(key)
            return True
        except StorageWriteError as e:
            logger.warning(
                "Image cleanup failed (%s) for key %s: %s | %s",
                reason, key, e.message, e.details,
            )
        except Exception as e:
            logger.error(
                "Unexpected error during image cleanup (%s) for key %s: %s",
                reason, key, str(e), exc_info=True,
            )
        return False


file_service = FileService(build_blob_store(settings))
