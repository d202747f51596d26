"""
RecipeHub Backend — Recipe & Comment Route Handlers
=====================================================

What:  /recipes CRUD plus comment add/delete.
How:   Thin handlers: collect form/JSON input, hand it to RecipeService or
       CommentService together with the caller's username, serialize the
       result. Every endpoint requires a bearer token.

Multipart fields (POST/PUT /recipes):
    name, cuisine, cookingTime, ingredients (JSON array of {name, quantity}),
    methodSteps (JSON array or comma-separated), nutritionalInfo,
    youtubeLink, image (file, optional)
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Path, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recipehub.database import get_db_session
from recipehub.routes.deps import get_current_user
from recipehub.schemas.auth import CurrentUser
from recipehub.schemas.common import ErrorResponse, MessageResponse
from recipehub.schemas.recipe import CommentCreate, CommentResult, RecipeResponse
from recipehub.services.comment_service import comment_service
from recipehub.services.media_service import ImageUpload
from recipehub.services.recipe_service import recipe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["Recipes"])

_AUTH_ERRORS = {
    403: {"description": "Missing/invalid token or not permitted", "model": ErrorResponse},
}


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Browsers send an empty, unnamed part when no file is chosen; treat it as absent."""
    if image is None or not image.filename:
        return None
    try:
        content = await image.read()
    finally:
        await image.close()
    logger.info("Received image upload: filename=%s, size=%d bytes", image.filename, len(content))
    return ImageUpload(filename=image.filename, content=content, content_type=image.content_type)


def _form_fields(**fields: Optional[str]) -> Dict[str, Any]:
    return {name: value for name, value in fields.items() if value is not None}


@router.get(
    "",
    response_model=List[RecipeResponse],
    responses=_AUTH_ERRORS,
    summary="List all recipes",
)
async def list_recipes(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[RecipeResponse]:
    recipes = await recipe_service.list_recipes(db)
    return [RecipeResponse.model_validate(r) for r in recipes]


@router.get(
    "/{recipe_id}",
    response_model=RecipeResponse,
    responses={**_AUTH_ERRORS, 404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a single recipe",
)
async def get_recipe(
    recipe_id: int = Path(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    recipe = await recipe_service.get_recipe(db, recipe_id)
    return RecipeResponse.model_validate(recipe)


@router.post(
    "",
    status_code=201,
    response_model=RecipeResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Missing or invalid fields or image", "model": ErrorResponse},
        503: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Create a recipe",
    description="Multipart form. The image (jpg/png, max 5MB) is optional.",
)
async def create_recipe(
    name: Optional[str] = Form(None),
    cuisine: Optional[str] = Form(None),
    cookingTime: Optional[str] = Form(None),
    ingredients: Optional[str] = Form(None),
    methodSteps: Optional[str] = Form(None),
    nutritionalInfo: Optional[str] = Form(None),
    youtubeLink: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    fields = _form_fields(
        name=name,
        cuisine=cuisine,
        cookingTime=cookingTime,
        ingredients=ingredients,
        methodSteps=methodSteps,
        nutritionalInfo=nutritionalInfo,
        youtubeLink=youtubeLink,
    )
    recipe = await recipe_service.create_recipe(
        db,
        fields,
        owner=user.username,
        image=await _read_image(image),
    )
    return RecipeResponse.model_validate(recipe)


@router.put(
    "/{recipe_id}",
    response_model=RecipeResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Invalid fields or image", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
        409: {"description": "Concurrent modification", "model": ErrorResponse},
    },
    summary="Update your own recipe",
    description="Only fields sent with a non-empty value are changed.",
)
async def update_recipe(
    background_tasks: BackgroundTasks,
    recipe_id: int = Path(...),
    name: Optional[str] = Form(None),
    cuisine: Optional[str] = Form(None),
    cookingTime: Optional[str] = Form(None),
    ingredients: Optional[str] = Form(None),
    methodSteps: Optional[str] = Form(None),
    nutritionalInfo: Optional[str] = Form(None),
    youtubeLink: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    changes = _form_fields(
        name=name,
        cuisine=cuisine,
        cookingTime=cookingTime,
        ingredients=ingredients,
        methodSteps=methodSteps,
        nutritionalInfo=nutritionalInfo,
        youtubeLink=youtubeLink,
    )
    recipe = await recipe_service.update_recipe(
        db,
        recipe_id,
        changes,
        requester=user.username,
        image=await _read_image(image),
        background_tasks=background_tasks,
    )
    return RecipeResponse.model_validate(recipe)


@router.delete(
    "/{recipe_id}",
    response_model=MessageResponse,
    responses={**_AUTH_ERRORS, 404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Delete a recipe (owner or admin)",
)
async def delete_recipe(
    background_tasks: BackgroundTasks,
    recipe_id: int = Path(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await recipe_service.delete_recipe(
        db,
        recipe_id,
        requester=user.username,
        background_tasks=background_tasks,
    )
    return MessageResponse(message="Recipe deleted successfully")


@router.post(
    "/{recipe_id}/comment",
    response_model=CommentResult,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Blank comment or rating outside 1-5", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Comment on and rate a recipe",
)
async def add_comment(
    body: CommentCreate,
    recipe_id: int = Path(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResult:
    recipe = await comment_service.add_comment(
        db,
        recipe_id,
        text=body.comment,
        rating=body.rating,
        author=user.username,
    )
    return CommentResult(
        message="Comment added successfully",
        recipe=RecipeResponse.model_validate(recipe),
    )


@router.delete(
    "/{recipe_id}/comments/{index}",
    response_model=CommentResult,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Comment index out of range", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Delete a comment by position (admin only)",
)
async def delete_comment(
    recipe_id: int = Path(...),
    index: int = Path(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResult:
    recipe = await comment_service.delete_comment(
        db,
        recipe_id,
        index=index,
        requester=user.username,
    )
    return CommentResult(
        message="Comment deleted successfully",
        recipe=RecipeResponse.model_validate(recipe),
    )
