# Importing the models registers their tables on Base.metadata
from recipehub.models.counter import Counter
from recipehub.models.recipe import Recipe
from recipehub.models.user import User

__all__ = ["Counter", "Recipe", "User"]
