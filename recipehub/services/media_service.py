"""
RecipeHub Backend — Media Service
===================================

What:  Validates uploaded recipe images, hands them to the configured image
       host, and releases images that are replaced or whose recipe is deleted.
How:   Validation happens before any network or disk I/O; release is
       fire-and-log so a media host outage never fails a committed write.
Who:   RecipeService (create/update/delete) and the /media route.

Validation order:
    1. Extension must be .jpg, .jpeg or .png
    2. Declared content type must be image/jpeg or image/png
    3. File must be non-empty and at most settings.max_image_size (5MB)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from recipehub.config import settings
from recipehub.exceptions import ValidationError
from recipehub.services.media_base import MediaBackend

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg": ".jpg", ".jpeg": ".jpg", ".png": ".png"}

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}


@dataclass
class ImageUpload:
    """An image received in a multipart request, read fully into memory."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class MediaService:

    def __init__(self, backend: Optional[MediaBackend] = None):
        self._backend = backend

    @property
    def backend(self) -> MediaBackend:
        if self._backend is None:
            self._backend = build_backend()
        return self._backend

    def validate(self, image: ImageUpload) -> str:
        """
        Check extension, content type and size.

        Returns:
            Normalized extension (".jpg" or ".png").

        Raises:
            ValidationError with a message naming the allowed types or size.
        """
        ext = Path(image.filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message="Only .jpg and .png files are allowed",
                field="image",
                context={"extension": ext},
            )

        content_type = (image.content_type or "").split(";", 1)[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message="Only .jpg and .png files are allowed",
                field="image",
                context={"content_type": content_type},
            )

        size = len(image.content)
        if size == 0:
            raise ValidationError(message="Uploaded image is empty", field="image")
        if size > settings.max_image_size:
            max_mb = settings.max_image_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

        return ALLOWED_EXTENSIONS[ext]

    async def upload(self, image: ImageUpload) -> str:
        """Validate and store an image; returns its public URL."""
        extension = self.validate(image)
        content_type = "image/png" if extension == ".png" else "image/jpeg"
        return await self.backend.upload(image.content, extension, content_type)

    async def release(self, url: Optional[str]) -> None:
        """
        Destroy the image behind `url`, if any.

        Never raises: failures are logged and left for manual cleanup, the
        database state stays authoritative.
        """
        if not url:
            return
        try:
            await self.backend.destroy(url)
        except Exception as e:
            logger.warning("Failed to release image %s: %s", url, str(e))


def build_backend() -> MediaBackend:
    """Instantiate the backend named by settings.media_backend."""
    if settings.media_backend == "cloudinary":
        from recipehub.services.cloudinary_media import CloudinaryMediaBackend
        return CloudinaryMediaBackend()
    from recipehub.services.local_media import LocalMediaBackend
    return LocalMediaBackend()


media_service = MediaService()
