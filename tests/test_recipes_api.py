"""
RecipeHub Backend — Recipe API Tests
======================================

What:  The HTTP contract of /recipes, comments, /media, / and /health:
       status codes, camelCase bodies, error format, and permissions.
How:   Real app through httpx ASGITransport against a temporary SQLite DB.
"""

import pytest

from conftest import login_as, storage_path_for


async def _create(client, headers, form, files=None):
    response = await client.post("/recipes", data=form, files=files, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestServiceRoutes:

    @pytest.mark.asyncio
    async def test_root_greeting(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to RecipeHub!"}

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["database"] == "connected"
        assert body["media"] == "available"
        assert "uptimeSeconds" in body

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"


class TestRecipeCrud:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        created = await _create(test_client, alice, recipe_form)

        assert created["id"] == 1
        assert created["createdBy"] == "alice"
        assert created["cookingTime"] == 20
        assert created["methodSteps"] == ["Boil pasta", "Fry guanciale", "Mix with eggs"]
        assert created["ingredients"][0] == {"name": "spaghetti", "quantity": "200 g"}
        assert created["comments"] == []
        assert created["rating"] == 0
        assert created["imageUrl"] == ""
        assert "version" not in created

        response = await test_client.get("/recipes/1", headers=alice)
        assert response.status_code == 200
        assert response.json()["name"] == "Carbonara"

    @pytest.mark.asyncio
    async def test_list_all_in_id_order(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        bob = await login_as(test_client, "bob")
        await _create(test_client, alice, recipe_form)
        await _create(test_client, bob, {**recipe_form, "name": "Amatriciana"})

        response = await test_client.get("/recipes", headers=alice)
        assert response.status_code == 200
        assert [(r["id"], r["createdBy"]) for r in response.json()] == [(1, "alice"), (2, "bob")]

    @pytest.mark.asyncio
    async def test_missing_field_is_400(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        del recipe_form["cuisine"]

        response = await test_client.post("/recipes", data=recipe_form, headers=alice)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "cuisine" in body["message"]
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_get_missing_is_404(self, test_client):
        alice = await login_as(test_client, "alice")
        response = await test_client.get("/recipes/99", headers=alice)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_non_numeric_id_is_400(self, test_client):
        alice = await login_as(test_client, "alice")
        response = await test_client.get("/recipes/abc", headers=alice)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_owner_update_ignores_falsy_values(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        await _create(test_client, alice, recipe_form)

        response = await test_client.put(
            "/recipes/1",
            data={"cookingTime": "0", "youtubeLink": "https://youtu.be/abc", "name": ""},
            headers=alice,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cookingTime"] == 20
        assert body["name"] == "Carbonara"
        assert body["youtubeLink"] == "https://youtu.be/abc"

    @pytest.mark.asyncio
    async def test_non_owner_update_is_403_and_unchanged(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        bob = await login_as(test_client, "bob")
        await _create(test_client, alice, recipe_form)

        response = await test_client.put("/recipes/1", data={"name": "Bob's now"}, headers=bob)
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

        stored = (await test_client.get("/recipes/1", headers=alice)).json()
        assert stored["name"] == "Carbonara"

    @pytest.mark.asyncio
    async def test_update_missing_is_404(self, test_client):
        alice = await login_as(test_client, "alice")
        response = await test_client.put("/recipes/5", data={"name": "x"}, headers=alice)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_permissions(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        bob = await login_as(test_client, "bob")
        admin = await login_as(test_client, "admin")
        await _create(test_client, alice, recipe_form)
        await _create(test_client, alice, recipe_form)

        response = await test_client.delete("/recipes/1", headers=bob)
        assert response.status_code == 403

        response = await test_client.delete("/recipes/1", headers=alice)
        assert response.status_code == 200
        assert response.json() == {"message": "Recipe deleted successfully"}

        response = await test_client.delete("/recipes/2", headers=admin)
        assert response.status_code == 200

        response = await test_client.delete("/recipes/2", headers=admin)
        assert response.status_code == 404


class TestRecipeImages:

    @pytest.mark.asyncio
    async def test_upload_replace_and_delete_image(self, test_client, recipe_form, sample_image_bytes, sample_png_bytes):
        alice = await login_as(test_client, "alice")
        created = await _create(
            test_client, alice, recipe_form,
            files={"image": ("dish.jpg", sample_image_bytes, "image/jpeg")},
        )
        first_url = created["imageUrl"]
        assert first_url.startswith("/media/")

        served = await test_client.get(first_url)
        assert served.status_code == 200
        assert served.content == sample_image_bytes

        response = await test_client.put(
            "/recipes/1",
            data={"name": "Carbonara v2"},
            files={"image": ("dish.png", sample_png_bytes, "image/png")},
            headers=alice,
        )
        assert response.status_code == 200
        second_url = response.json()["imageUrl"]
        assert second_url != first_url
        # Old image released by the background task after the response
        assert not storage_path_for(first_url).exists()
        assert storage_path_for(second_url).exists()

        await test_client.delete("/recipes/1", headers=alice)
        assert not storage_path_for(second_url).exists()

    @pytest.mark.asyncio
    async def test_disallowed_image_type_is_400(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        response = await test_client.post(
            "/recipes",
            data=recipe_form,
            files={"image": ("anim.gif", b"GIF89a....", "image/gif")},
            headers=alice,
        )
        assert response.status_code == 400
        assert "Only .jpg and .png" in response.json()["message"]

        listed = await test_client.get("/recipes", headers=alice)
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_media_path_traversal_rejected(self, test_client):
        response = await test_client.get("/media/..%2F..%2Fetc%2Fpasswd")
        assert response.status_code in (400, 404)

    @pytest.mark.asyncio
    async def test_missing_media_is_404(self, test_client):
        response = await test_client.get("/media/2024/01/01/nothing.jpg")
        assert response.status_code == 404


class TestComments:

    @pytest.mark.asyncio
    async def test_alice_scenario(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        bob = await login_as(test_client, "bob")
        carol = await login_as(test_client, "carol")
        admin = await login_as(test_client, "admin")
        await _create(test_client, alice, recipe_form)

        response = await test_client.post("/recipes/1/comment", json={"comment": "Lovely", "rating": 4}, headers=bob)
        assert response.status_code == 200
        assert response.json()["message"] == "Comment added successfully"

        response = await test_client.post("/recipes/1/comment", json={"comment": "Too salty", "rating": 2}, headers=carol)
        recipe = response.json()["recipe"]
        assert recipe["rating"] == 3.0
        assert len(recipe["comments"]) == 2

        response = await test_client.delete("/recipes/1/comments/0", headers=admin)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Comment deleted successfully"
        assert body["recipe"]["rating"] == 2.0
        assert body["recipe"]["comments"] == [{"comment": "Too salty", "rating": 2}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"comment": "x", "rating": 0},
        {"comment": "x", "rating": 6},
        {"comment": "", "rating": 3},
        {"rating": 3},
        {"comment": "x"},
        {"comment": "x", "rating": "five"},
    ])
    async def test_invalid_comment_is_400(self, test_client, recipe_form, payload):
        alice = await login_as(test_client, "alice")
        await _create(test_client, alice, recipe_form)

        response = await test_client.post("/recipes/1/comment", json=payload, headers=alice)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_comment_on_missing_recipe_is_404(self, test_client):
        bob = await login_as(test_client, "bob")
        response = await test_client.post("/recipes/3/comment", json={"comment": "hi", "rating": 3}, headers=bob)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_comment_checks(self, test_client, recipe_form):
        alice = await login_as(test_client, "alice")
        admin = await login_as(test_client, "admin")
        await _create(test_client, alice, recipe_form)
        await test_client.post("/recipes/1/comment", json={"comment": "ok", "rating": 3}, headers=alice)

        response = await test_client.delete("/recipes/1/comments/0", headers=alice)
        assert response.status_code == 403

        response = await test_client.delete("/recipes/1/comments/1", headers=admin)
        assert response.status_code == 400

        response = await test_client.delete("/recipes/9/comments/0", headers=admin)
        assert response.status_code == 404
