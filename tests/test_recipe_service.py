"""
RecipeHub Backend — Recipe Service Tests
==========================================

What:  Recipe CRUD rules at the service layer: field validation, ID
       allocation, ownership, the truthy-field update rule, and image
       replacement/release.
How:   Real SQLite database; images go to the temporary local storage root.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import BackgroundTasks

from conftest import storage_path_for
from recipehub.exceptions import ForbiddenError, NotFoundError, ValidationError
from recipehub.services.access_policy import AccessPolicy
from recipehub.services.media_service import ImageUpload, media_service
from recipehub.services.recipe_service import RecipeService


@pytest.fixture
def fields():
    return {
        "name": "Pad Thai",
        "cuisine": "Thai",
        "cookingTime": "30",
        "ingredients": '[{"name": "rice noodles", "quantity": "200 g"}]',
        "methodSteps": '["Soak noodles", "Stir fry"]',
        "nutritionalInfo": "600 kcal",
    }


def _jpeg(content: bytes, name: str = "dish.jpg") -> ImageUpload:
    return ImageUpload(filename=name, content=content, content_type="image/jpeg")


class TestAccessPolicy:

    def setup_method(self):
        self.policy = AccessPolicy({"admin"})

    def test_owner_can_edit_and_delete(self):
        recipe = type("R", (), {"created_by": "alice"})()
        assert self.policy.can_edit("alice", recipe)
        assert self.policy.can_delete("alice", recipe)

    def test_admin_can_delete_but_not_edit(self):
        recipe = type("R", (), {"created_by": "alice"})()
        assert not self.policy.can_edit("admin", recipe)
        assert self.policy.can_delete("admin", recipe)
        assert self.policy.can_delete_comment("admin")

    def test_other_user_has_no_rights(self):
        recipe = type("R", (), {"created_by": "alice"})()
        assert not self.policy.can_edit("bob", recipe)
        assert not self.policy.can_delete("bob", recipe)
        assert not self.policy.can_delete_comment("bob")


class TestCreateRecipe:

    def setup_method(self):
        self.service = RecipeService()

    @pytest.mark.asyncio
    async def test_create_sets_defaults_and_owner(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        assert recipe.id == 1
        assert recipe.created_by == "alice"
        assert recipe.cooking_time == 30
        assert recipe.ingredients == [{"name": "rice noodles", "quantity": "200 g"}]
        assert recipe.method_steps == ["Soak noodles", "Stir fry"]
        assert recipe.comments == []
        assert recipe.rating == 0
        assert recipe.image_url == ""
        assert recipe.youtube_link == ""

    @pytest.mark.asyncio
    async def test_ids_increase_and_are_not_reused(self, db_session, fields):
        first = await self.service.create_recipe(db_session, fields, owner="alice")
        second = await self.service.create_recipe(db_session, fields, owner="alice")
        await self.service.delete_recipe(db_session, second.id, requester="alice")
        third = await self.service.create_recipe(db_session, fields, owner="bob")

        assert (first.id, second.id, third.id) == (1, 2, 3)

    @pytest.mark.asyncio
    async def test_comma_separated_method_steps(self, db_session, fields):
        fields["methodSteps"] = " Soak noodles , , Stir fry,Serve "
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")
        assert recipe.method_steps == ["Soak noodles", "Stir fry", "Serve"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "cuisine", "cookingTime", "ingredients"])
    async def test_missing_required_field(self, db_session, fields, missing):
        del fields[missing]
        with pytest.raises(ValidationError):
            await self.service.create_recipe(db_session, fields, owner="alice")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field, value",
        [
            ("cookingTime", "0"),
            ("cookingTime", "-5"),
            ("cookingTime", "soon"),
            ("ingredients", "not json"),
            ("ingredients", '[{"name": "salt"}]'),
            ("ingredients", '{"name": "salt", "quantity": "1 pinch"}'),
        ],
    )
    async def test_invalid_field_values(self, db_session, fields, field, value):
        fields[field] = value
        with pytest.raises(ValidationError):
            await self.service.create_recipe(db_session, fields, owner="alice")

    @pytest.mark.asyncio
    async def test_invalid_fields_allocate_no_id(self, db_session, fields):
        with pytest.raises(ValidationError):
            await self.service.create_recipe(db_session, {**fields, "cookingTime": "0"}, owner="alice")
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")
        assert recipe.id == 1

    @pytest.mark.asyncio
    async def test_create_with_image(self, db_session, fields, sample_image_bytes):
        recipe = await self.service.create_recipe(
            db_session, fields, owner="alice", image=_jpeg(sample_image_bytes)
        )
        assert recipe.image_url.startswith("/media/")
        assert storage_path_for(recipe.image_url).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_invalid_image_rejected_before_insert(self, db_session, fields):
        image = ImageUpload(filename="dish.gif", content=b"GIF89a", content_type="image/gif")
        with pytest.raises(ValidationError):
            await self.service.create_recipe(db_session, fields, owner="alice", image=image)
        assert await self.service.list_recipes(db_session) == []

    @pytest.mark.asyncio
    async def test_uploaded_image_released_when_allocation_fails(self, db_session, fields, sample_image_bytes):
        from recipehub.exceptions import DatabaseError

        with patch(
            "recipehub.services.recipe_service.recipe_id_allocator.next",
            new=AsyncMock(side_effect=DatabaseError()),
        ), patch(
            "recipehub.services.recipe_service.media_service.release",
            new=AsyncMock(),
        ) as release:
            with pytest.raises(DatabaseError):
                await self.service.create_recipe(
                    db_session, fields, owner="alice", image=_jpeg(sample_image_bytes)
                )

        release.assert_awaited_once()
        url = release.await_args.args[0]
        assert url.startswith("/media/")


class TestReadRecipes:

    def setup_method(self):
        self.service = RecipeService()

    @pytest.mark.asyncio
    async def test_get_missing_recipe(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_recipe(db_session, 42)

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_id(self, db_session, fields):
        for name in ["A", "B", "C"]:
            await self.service.create_recipe(db_session, {**fields, "name": name}, owner="alice")

        recipes = await self.service.list_recipes(db_session)
        assert [r.id for r in recipes] == [1, 2, 3]
        assert [r.name for r in recipes] == ["A", "B", "C"]


class TestUpdateRecipe:

    def setup_method(self):
        self.service = RecipeService()

    @pytest.mark.asyncio
    async def test_owner_updates_truthy_fields_only(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")
        old_version = recipe.version

        updated = await self.service.update_recipe(
            db_session,
            recipe.id,
            {"name": "Pad See Ew", "cookingTime": "0", "cuisine": "", "nutritionalInfo": ""},
            requester="alice",
        )

        assert updated.name == "Pad See Ew"
        assert updated.cooking_time == 30
        assert updated.cuisine == "Thai"
        assert updated.nutritional_info == "600 kcal"
        assert updated.version == old_version + 1

    @pytest.mark.asyncio
    async def test_whitespace_only_text_leaves_field_unchanged(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        updated = await self.service.update_recipe(
            db_session, recipe.id, {"name": "   ", "cuisine": "\t"}, requester="alice"
        )

        assert updated.name == "Pad Thai"
        assert updated.cuisine == "Thai"

    @pytest.mark.asyncio
    async def test_updated_text_is_stripped(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        updated = await self.service.update_recipe(
            db_session, recipe.id, {"name": "  Pad Kra Pao  "}, requester="alice"
        )

        assert updated.name == "Pad Kra Pao"

    @pytest.mark.asyncio
    async def test_non_owner_forbidden_and_record_unchanged(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        with pytest.raises(ForbiddenError):
            await self.service.update_recipe(db_session, recipe.id, {"name": "Hacked"}, requester="bob")
        # Privileged users cannot edit either
        with pytest.raises(ForbiddenError):
            await self.service.update_recipe(db_session, recipe.id, {"name": "Hacked"}, requester="admin")

        stored = await self.service.get_recipe(db_session, recipe.id)
        await db_session.refresh(stored)
        assert stored.name == "Pad Thai"
        assert stored.version == 1

    @pytest.mark.asyncio
    async def test_forbidden_update_uploads_nothing(self, db_session, fields, sample_image_bytes):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        with patch(
            "recipehub.services.recipe_service.media_service.upload",
            new=AsyncMock(),
        ) as upload:
            with pytest.raises(ForbiddenError):
                await self.service.update_recipe(
                    db_session, recipe.id, {}, requester="bob", image=_jpeg(sample_image_bytes)
                )
        upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_missing_recipe(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_recipe(db_session, 7, {"name": "x"}, requester="alice")

    @pytest.mark.asyncio
    async def test_image_replacement_releases_old_image_once(self, db_session, fields, sample_image_bytes, sample_png_bytes):
        recipe = await self.service.create_recipe(
            db_session, fields, owner="alice", image=_jpeg(sample_image_bytes)
        )
        old_url = recipe.image_url
        background_tasks = BackgroundTasks()

        updated = await self.service.update_recipe(
            db_session,
            recipe.id,
            {},
            requester="alice",
            image=ImageUpload(filename="new.png", content=sample_png_bytes, content_type="image/png"),
            background_tasks=background_tasks,
        )

        assert updated.image_url != old_url
        assert updated.image_url.endswith(".png")
        assert len(background_tasks.tasks) == 1
        # Release runs after the response, so the old file is still there
        assert storage_path_for(old_url).exists()

        await background_tasks()
        assert not storage_path_for(old_url).exists()
        assert storage_path_for(updated.image_url).read_bytes() == sample_png_bytes


class TestDeleteRecipe:

    def setup_method(self):
        self.service = RecipeService()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requester", ["alice", "admin"])
    async def test_owner_or_admin_can_delete(self, db_session, fields, sample_image_bytes, requester):
        recipe = await self.service.create_recipe(
            db_session, fields, owner="alice", image=_jpeg(sample_image_bytes)
        )

        await self.service.delete_recipe(db_session, recipe.id, requester=requester)

        with pytest.raises(NotFoundError):
            await self.service.get_recipe(db_session, recipe.id)
        assert not storage_path_for(recipe.image_url).exists()

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, db_session, fields):
        recipe = await self.service.create_recipe(db_session, fields, owner="alice")

        with pytest.raises(ForbiddenError):
            await self.service.delete_recipe(db_session, recipe.id, requester="bob")
        assert (await self.service.get_recipe(db_session, recipe.id)).id == recipe.id

    @pytest.mark.asyncio
    async def test_delete_missing_recipe(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_recipe(db_session, 3, requester="admin")

    @pytest.mark.asyncio
    async def test_release_failure_does_not_fail_delete(self, db_session, fields, sample_image_bytes):
        recipe = await self.service.create_recipe(
            db_session, fields, owner="alice", image=_jpeg(sample_image_bytes)
        )

        with patch.object(media_service, "_backend", _FailingBackend()):
            await self.service.delete_recipe(db_session, recipe.id, requester="alice")

        with pytest.raises(NotFoundError):
            await self.service.get_recipe(db_session, recipe.id)


class _FailingBackend:
    async def destroy(self, url):
        raise OSError("media host down")
