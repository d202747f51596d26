"""
RecipeHub Backend — Recipe Service (Business Logic Orchestrator)
==================================================================

What:  Create, read, list, update and delete recipes.
How:   Composes IdAllocator, MediaService and AccessPolicy with the request's
       database session. Every write to an existing recipe goes through
       compare_and_swap(), which CommentService shares.
Who:   Called by the /recipes route handlers.

Orchestration Flow (POST /recipes):
    ┌──────────┐    ┌────────────┐    ┌────────────┐    ┌──────────┐
    │ Validate │───▶│  Upload    │───▶│  Allocate  │───▶│  Insert  │
    │  fields  │    │  image     │    │  ID        │    │  (DB)    │
    └──────────┘    └────────────┘    └────────────┘    └──────────┘

    Insert fails after the upload → uploaded image is released, error
    propagates to the global handler.

Compare-and-swap (PUT /recipes/{id}, comments):
    1. Read the row and its version
    2. Compute the new column values from that snapshot
    3. UPDATE recipes SET ..., version = v + 1 WHERE id = :id AND version = v
    4. Zero rows updated → another writer won; re-read and go to 2
       (tenacity, settings.cas_max_attempts) → ConflictError when exhausted

Media release:
    Replaced or orphaned images are released only after the database write
    committed, as a FastAPI background task when one is available.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from fastapi import BackgroundTasks
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from recipehub.config import settings
from recipehub.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    RecipeHubError,
)
from recipehub.models.recipe import Recipe, _utcnow
from recipehub.schemas.recipe import RecipeCreate, RecipeUpdate, validate_fields
from recipehub.services.access_policy import access_policy
from recipehub.services.id_allocator import recipe_id_allocator
from recipehub.services.media_service import ImageUpload, media_service

logger = logging.getLogger(__name__)

# Column changes computed from a snapshot; None or {} means "nothing to write".
Mutation = Callable[[Recipe], Optional[Dict[str, Any]]]


class StaleWriteError(Exception):
    """The row's version moved between read and write."""


async def load_recipe(db: AsyncSession, recipe_id: int, fresh: bool = False) -> Recipe:
    """
    Fetch a recipe or raise NotFoundError.

    `fresh=True` bypasses the session's identity map, so the caller sees the
    version another writer just committed.
    """
    stmt = select(Recipe).where(Recipe.id == recipe_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    recipe = (await db.execute(stmt)).scalar_one_or_none()
    if recipe is None:
        raise NotFoundError(resource="Recipe", resource_id=str(recipe_id))
    return recipe


async def _write_once(db: AsyncSession, recipe_id: int, mutate: Mutation) -> bool:
    recipe = await load_recipe(db, recipe_id, fresh=True)
    changes = mutate(recipe)
    if not changes:
        return False

    expected = recipe.version
    result = await db.execute(
        update(Recipe)
        .where(Recipe.id == recipe_id, Recipe.version == expected)
        .values(**changes, version=expected + 1, updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.debug("Recipe %d: version %d is stale, retrying", recipe_id, expected)
        raise StaleWriteError(recipe_id)
    return True


async def compare_and_swap(db: AsyncSession, recipe_id: int, mutate: Mutation) -> Recipe:
    """
    Apply `mutate` to the current recipe atomically and commit.

    `mutate` receives a snapshot and returns the column values to write. It
    must not modify the snapshot; it may raise an application error to abort.
    It can run more than once.

    Returns:
        The recipe as stored after the write.

    Raises:
        NotFoundError: the recipe does not exist (or was deleted meanwhile)
        ConflictError: every attempt lost to a concurrent writer
    """
    written = False
    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StaleWriteError),
            stop=stop_after_attempt(settings.cas_max_attempts),
            wait=wait_random(0, 0.05),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        ):
            with attempt:
                written = await _write_once(db, recipe_id, mutate)
    except StaleWriteError:
        logger.warning(
            "Recipe %d: giving up after %d conflicting writes",
            recipe_id,
            settings.cas_max_attempts,
        )
        raise ConflictError(context={"recipe_id": recipe_id})

    if written:
        await db.commit()
    return await load_recipe(db, recipe_id, fresh=True)


def _truthy_changes(data: RecipeUpdate) -> Dict[str, Any]:
    """Fields present in the request with a truthy value; 0, "" and [] are skipped."""
    return {
        field: value
        for field, value in data.model_dump(exclude_none=True).items()
        if value
    }


class RecipeService:
    """
    Business logic layer for recipe documents.

    Error Handling Strategy:
        Application errors (ValidationError, NotFoundError, ForbiddenError,
        ConflictError, media errors) propagate unchanged. Unexpected
        SQLAlchemy errors on insert/delete are wrapped in DatabaseError.
    """

    async def create_recipe(
        self,
        db: AsyncSession,
        fields: Union[RecipeCreate, Mapping[str, Any]],
        owner: str,
        image: Optional[ImageUpload] = None,
    ) -> Recipe:
        """
        Validate, upload the image, allocate an ID and insert.

        Args:
            db: Request session
            fields: RecipeCreate, or raw form fields to validate against it
            owner: Username of the authenticated creator
            image: Optional uploaded image

        Raises:
            ValidationError: missing/invalid fields or image
            MediaServiceError / CircuitBreakerOpenError: image host failure
            DatabaseError: allocation or insert failed
        """
        data = fields if isinstance(fields, RecipeCreate) else validate_fields(RecipeCreate, fields)

        image_url = await media_service.upload(image) if image is not None else ""

        try:
            recipe_id = await recipe_id_allocator.next()
            recipe = Recipe(
                id=recipe_id,
                name=data.name,
                cuisine=data.cuisine,
                cooking_time=data.cooking_time,
                ingredients=[i.model_dump() for i in data.ingredients],
                method_steps=list(data.method_steps),
                nutritional_info=data.nutritional_info,
                youtube_link=data.youtube_link,
                image_url=image_url,
                comments=[],
                rating=0,
                created_by=owner,
                version=1,
            )
            db.add(recipe)
            await db.commit()
        except RecipeHubError:
            await media_service.release(image_url)
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            await media_service.release(image_url)
            logger.error("Failed to insert recipe: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "create_recipe"})

        logger.info("Recipe %d created by %s", recipe.id, owner)
        return recipe

    async def get_recipe(self, db: AsyncSession, recipe_id: int) -> Recipe:
        return await load_recipe(db, recipe_id)

    async def list_recipes(self, db: AsyncSession) -> List[Recipe]:
        """All recipes in ID order. No filtering or pagination."""
        result = await db.execute(select(Recipe).order_by(Recipe.id))
        return list(result.scalars().all())

    async def update_recipe(
        self,
        db: AsyncSession,
        recipe_id: int,
        changes: Union[RecipeUpdate, Mapping[str, Any]],
        requester: str,
        image: Optional[ImageUpload] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Recipe:
        """
        Apply the truthy fields of `changes` and optionally replace the image.

        Order of checks: 404 if absent, then 403 unless `requester` created
        the recipe. Neither check uploads anything or touches the row.

        The previous image is released once, after the new URL is committed.
        If the write fails, the newly uploaded image is released instead.
        """
        data = changes if isinstance(changes, RecipeUpdate) else validate_fields(RecipeUpdate, changes)

        recipe = await load_recipe(db, recipe_id)
        if not access_policy.can_edit(requester, recipe):
            raise ForbiddenError(
                message="You can only edit your own recipes",
                context={"recipe_id": recipe_id, "user": requester},
            )

        values = _truthy_changes(data)
        new_image_url = await media_service.upload(image) if image is not None else ""
        if new_image_url:
            values["image_url"] = new_image_url

        replaced: Dict[str, str] = {}

        def mutate(current: Recipe) -> Dict[str, Any]:
            if new_image_url:
                replaced["image_url"] = current.image_url
            return dict(values)

        try:
            updated = await compare_and_swap(db, recipe_id, mutate)
        except Exception:
            await media_service.release(new_image_url)
            raise

        previous = replaced.get("image_url")
        if previous and previous != new_image_url:
            await self._release_later(background_tasks, previous)

        logger.info("Recipe %d updated by %s (fields=%s)", recipe_id, requester, sorted(values))
        return updated

    async def delete_recipe(
        self,
        db: AsyncSession,
        recipe_id: int,
        requester: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        """
        Remove a recipe; allowed for the creator and privileged users.

        The image is released after the delete committed; release failures are
        logged only.
        """
        recipe = await load_recipe(db, recipe_id)
        if not access_policy.can_delete(requester, recipe):
            raise ForbiddenError(
                message="You can only delete your own recipes",
                context={"recipe_id": recipe_id, "user": requester},
            )

        image_url = recipe.image_url
        try:
            await db.delete(recipe)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to delete recipe %d: %s", recipe_id, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "delete_recipe", "recipe_id": recipe_id})

        logger.info("Recipe %d deleted by %s", recipe_id, requester)
        if image_url:
            await self._release_later(background_tasks, image_url)

    async def _release_later(self, background_tasks: Optional[BackgroundTasks], url: str) -> None:
        if background_tasks is not None:
            background_tasks.add_task(media_service.release, url)
        else:
            await media_service.release(url)


# Module-level singleton
recipe_service = RecipeService()
