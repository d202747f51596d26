"""
RecipeHub Backend — Comment & Rating Service
==============================================

What:  Appends and removes recipe comments and keeps `rating` in step.
How:   Each mutation is a read-modify-write of the comments list through
       compare_and_swap(), so two users commenting at the same time both land
       and the stored rating always matches the stored comments.

Rating formula:
    rating = round_half_up(sum(ratings) / len(ratings), 1), or 0 when empty
    e.g. [4, 2] → 3.0; [2, 2, 2, 3] → 2.3; [1, 2] → 1.5
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recipehub.exceptions import ForbiddenError, ValidationError
from recipehub.models.recipe import Recipe
from recipehub.services.access_policy import access_policy
from recipehub.services.recipe_service import compare_and_swap

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def compute_rating(comments: Iterable[Mapping[str, Any]]) -> float:
    """Mean of the comment ratings to one decimal, halves rounded up; 0 for no comments."""
    ratings = [int(c["rating"]) for c in comments]
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _validate_comment(text: Optional[str], rating: Any) -> int:
    if text is None or not str(text).strip():
        raise ValidationError(message="Comment text is required", field="comment")
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(
            message=f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}",
            field="rating",
        )
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            message=f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            field="rating",
            context={"rating": rating},
        )
    return rating


class CommentService:

    async def add_comment(
        self,
        db: AsyncSession,
        recipe_id: int,
        text: Optional[str],
        rating: Any,
        author: str,
    ) -> Recipe:
        """
        Append {comment, rating} and recompute the recipe's rating.

        Raises:
            ValidationError: blank text, or rating not an integer in 1..5
            NotFoundError: no such recipe
        """
        rating = _validate_comment(text, rating)

        def mutate(current: Recipe) -> Dict[str, Any]:
            comments = list(current.comments or []) + [{"comment": text, "rating": rating}]
            return {"comments": comments, "rating": compute_rating(comments)}

        recipe = await compare_and_swap(db, recipe_id, mutate)
        logger.info(
            "Comment added to recipe %d by %s (rating=%d, average=%.1f)",
            recipe_id,
            author,
            rating,
            recipe.rating,
        )
        return recipe

    async def delete_comment(
        self,
        db: AsyncSession,
        recipe_id: int,
        index: int,
        requester: str,
    ) -> Recipe:
        """
        Remove the comment at `index`; later comments shift down by one.

        Order of checks: 403 for non-privileged users (before any read),
        404 if the recipe is absent, 400 if `index` is out of range.
        """
        if not access_policy.can_delete_comment(requester):
            raise ForbiddenError(
                message="Only administrators can delete comments",
                context={"recipe_id": recipe_id, "user": requester},
            )

        def mutate(current: Recipe) -> Dict[str, Any]:
            comments = list(current.comments or [])
            if not 0 <= index < len(comments):
                raise ValidationError(
                    message="Invalid comment index",
                    field="index",
                    context={"index": index, "count": len(comments)},
                )
            del comments[index]
            return {"comments": comments, "rating": compute_rating(comments)}

        recipe = await compare_and_swap(db, recipe_id, mutate)
        logger.info("Comment %d removed from recipe %d by %s", index, recipe_id, requester)
        return recipe


# Module-level singleton
comment_service = CommentService()
