"""
RecipeHub Backend — Access Policy
===================================

What:  Decides which identity may mutate or delete a recipe or comment.
How:   Pure checks over usernames and a fixed set of privileged (admin)
       usernames taken from settings.admin_usernames.

Rules:
    can_edit(user, recipe)    = user is the recipe's creator
    can_delete(user, recipe)  = creator, or privileged
    can_delete_comment(user)  = privileged
"""

from typing import Iterable

from recipehub.config import settings
from recipehub.models.recipe import Recipe


class AccessPolicy:
    def __init__(self, privileged: Iterable[str]):
        self.privileged = frozenset(privileged)

    def is_privileged(self, username: str) -> bool:
        return username in self.privileged

    def can_edit(self, username: str, recipe: Recipe) -> bool:
        return username == recipe.created_by

    def can_delete(self, username: str, recipe: Recipe) -> bool:
        return username == recipe.created_by or self.is_privileged(username)

    def can_delete_comment(self, username: str) -> bool:
        return self.is_privileged(username)


access_policy = AccessPolicy(settings.admin_usernames_set)
