"""
RecipeHub Backend — Local Disk Media Backend
==============================================

What:  Stores images under settings.storage_root and serves them at
       settings.media_url_prefix (GET /media/{path}).
How:   Date-organized directories with UUID filenames, async writes with
       aiofiles.

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-....jpg
                └── e5f6a7b8-....png

URL form: /media/2024/01/15/a1b2c3d4-....jpg; the public reference is the
path relative to the storage root.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from recipehub.config import settings
from recipehub.exceptions import MediaStorageError, ValidationError
from recipehub.services.media_base import MediaBackend

logger = logging.getLogger(__name__)


class LocalMediaBackend(MediaBackend):

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            url_prefix: Override settings.media_url_prefix.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.media_url_prefix).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalMediaBackend initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Map a relative media path to a file under the storage root.

        Raises:
            ValidationError: the path escapes the storage root (../ traversal)
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path

    async def upload(self, content: bytes, extension: str, content_type: str) -> str:
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise MediaStorageError(
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return f"{self.url_prefix}/{relative_path}"

    def public_ref(self, url: str) -> str:
        prefix = f"{self.url_prefix}/"
        return url[len(prefix):] if url.startswith(prefix) else url.lstrip("/")

    async def destroy(self, url: str) -> None:
        path = self.resolve(self.public_ref(url))
        if not path.exists():
            logger.debug("Destroy: file already gone: %s", path.name)
            return
        await aiofiles.os.remove(path)
        logger.info("Image removed: %s", path.name)
