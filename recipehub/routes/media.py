"""
RecipeHub Backend — Local Media Route
=======================================

What:  Serves images stored by the local media backend at /media/{path}.
       With the Cloudinary backend images are served by Cloudinary and this
       route answers 404.
"""

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from recipehub.exceptions import NotFoundError
from recipehub.services.local_media import LocalMediaBackend
from recipehub.services.media_service import media_service

router = APIRouter(tags=["Media"])


@router.get(
    "/media/{file_path:path}",
    summary="Serve an uploaded recipe image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found"},
    },
)
async def serve_media(file_path: str) -> FileResponse:
    backend = media_service.backend
    if not isinstance(backend, LocalMediaBackend):
        raise NotFoundError(resource="file", resource_id=file_path)

    # Raises ValidationError (400) for paths escaping the storage root
    full_path = backend.resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    media_type = mimetypes.guess_type(full_path.name)[0] or "application/octet-stream"
    return FileResponse(
        path=str(full_path),
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
