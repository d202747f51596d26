"""
RecipeHub Backend — Counter SQLAlchemy Model
==============================================

What:  Named integer counters (`counters` table).
Who:   IdAllocator, which increments the `recipe_id` row atomically.
"""

from sqlalchemy import Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from recipehub.database import Base


class Counter(Base):
    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Last value handed out; 0 means nothing allocated yet
    value: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    def __repr__(self) -> str:
        return f"<Counter(name='{self.name}', value={self.value})>"
