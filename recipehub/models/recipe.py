"""
RecipeHub Backend — Recipe SQLAlchemy Model
=============================================

What:  ORM model for the `recipes` table.
How:   Ingredients, method steps and comments are ordered JSON lists stored
       on the row; a recipe is always read and written as one document.
Who:   RecipeService and CommentService.

Column notes:
    - id: allocated by IdAllocator (counters table), never autoincremented here
    - comments: list of {"comment": str, "rating": int}; list position is the
      comment's address for deletion
    - rating: cached mean of comments[].rating, one decimal, 0 when empty
    - version: compare-and-swap counter; every write is
      UPDATE ... WHERE id = :id AND version = :expected
    - created_by: username of the creator, used by AccessPolicy

JSON columns are replaced with new list objects on every change; in-place
mutation would not be detected by the ORM.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from recipehub.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recipe(Base):
    """
    A shared recipe document.

    Lifecycle:
        1. Created by an authenticated user (created_by = creator)
        2. Fields edited by the owner; comments appended by any user
        3. Comments removed by an admin
        4. Deleted by the owner or an admin (image released afterwards)
    """

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
        comment="Sequential ID from the recipe_id counter",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cuisine: Mapped[str] = mapped_column(String(120), nullable=False)
    cooking_time: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Minutes"
    )

    ingredients: Mapped[List[Dict[str, str]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    method_steps: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    nutritional_info: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    youtube_link: Mapped[str] = mapped_column(
        String(500), nullable=False, default="", server_default=text("''")
    )
    image_url: Mapped[str] = mapped_column(
        String(500), nullable=False, default="", server_default=text("''")
    )

    comments: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    rating: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0")
    )

    created_by: Mapped[str] = mapped_column(
        String(150), nullable=False, index=True
    )

    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return (
            f"<Recipe(id={self.id}, name='{self.name}', "
            f"created_by='{self.created_by}', rating={self.rating})>"
        )
