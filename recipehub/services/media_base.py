"""
RecipeHub Backend — Abstract Media Backend Interface
======================================================

What:  The contract every image host implementation fulfils.
Who:   LocalMediaBackend (disk, development/tests) and
       CloudinaryMediaBackend (production). MediaService selects one from
       settings.media_backend.
"""

from abc import ABC, abstractmethod


class MediaBackend(ABC):
    """
    Image host: store bytes and get a URL back; destroy by that URL later.
    """

    @abstractmethod
    async def upload(self, content: bytes, extension: str, content_type: str) -> str:
        """
        Store an already-validated image.

        Args:
            content: Raw image bytes
            extension: Normalized extension including the dot (".jpg" or ".png")
            content_type: Declared MIME type

        Returns:
            Public URL stored on the recipe as imageUrl.
        """
        ...

    @abstractmethod
    async def destroy(self, url: str) -> None:
        """
        Delete the image behind a URL previously returned by `upload`.

        Raises on failure; MediaService.release() logs and absorbs the error.
        """
        ...

    @abstractmethod
    def public_ref(self, url: str) -> str:
        """Derive the host's identifier for the image from its URL."""
        ...

    def is_available(self) -> bool:
        """Cheap, local availability signal for the health endpoint."""
        return True
