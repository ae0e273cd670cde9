"""
RecipeBox — Recipe API Integration Tests
========================================

What:  HTTP-level tests for recipes, images, notes, links and tags.
How:   httpx AsyncClient → FastAPI app (ASGITransport) → real SQLite database.

Test Strategy:
    ✅ Access levels: viewer reads, editor writes
    ✅ 201 + Location on create, 204 on update/delete
    ✅ Body/path id mismatches are 400 with the error envelope
    ✅ Search parameters and X-Total-Count
    ✅ Image upload, main image, and the public file server
"""

import pytest

from recipebox.schemas.user import AccessLevel

ADMIN, EDITOR, VIEWER = AccessLevel.ADMIN, AccessLevel.EDITOR, AccessLevel.VIEWER
RECIPES = "/api/v1/recipes"


async def create_recipe(client, headers, **fields):
    body = {"name": "Untitled", **fields}
    response = await client.post(RECIPES, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestRecipeCrud:

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.get(RECIPES)

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, test_client):
        response = await test_client.get(RECIPES, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_viewer_cannot_create(self, test_client, auth):
        response = await test_client.post(RECIPES, json={"name": "Soup"}, headers=auth[VIEWER])

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_create_returns_location(self, test_client, auth):
        response = await test_client.post(
            RECIPES, json={"name": "Soup", "tags": ["dinner"]}, headers=auth[EDITOR]
        )

        assert response.status_code == 201
        recipe = response.json()
        assert response.headers["Location"] == f"{RECIPES}/{recipe['id']}"
        assert recipe["state"] == "active"
        assert recipe["tags"] == ["dinner"]

    @pytest.mark.asyncio
    async def test_create_without_name_is_rejected(self, test_client, auth):
        response = await test_client.post(RECIPES, json={"ingredients": "water"}, headers=auth[EDITOR])
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_viewer_can_read(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR], name="Bread")

        response = await test_client.get(f"{RECIPES}/{recipe['id']}", headers=auth[VIEWER])

        assert response.status_code == 200
        assert response.json()["name"] == "Bread"

    @pytest.mark.asyncio
    async def test_update(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR], name="Bread", tags=["a"])

        response = await test_client.put(
            f"{RECIPES}/{recipe['id']}",
            json={"name": "Rye Bread", "tags": ["b"]},
            headers=auth[EDITOR],
        )

        assert response.status_code == 204
        fetched = (await test_client.get(f"{RECIPES}/{recipe['id']}", headers=auth[VIEWER])).json()
        assert fetched["name"] == "Rye Bread"
        assert fetched["tags"] == ["b"]

    @pytest.mark.asyncio
    async def test_update_with_mismatched_id(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])

        response = await test_client.put(
            f"{RECIPES}/{recipe['id']}",
            json={"id": recipe["id"] + 1, "name": "Other"},
            headers=auth[EDITOR],
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "id"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_delete(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])

        assert (await test_client.delete(f"{RECIPES}/{recipe['id']}", headers=auth[EDITOR])).status_code == 204

        response = await test_client.get(f"{RECIPES}/{recipe['id']}", headers=auth[VIEWER])
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_state(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR], name="Old Favourite")

        response = await test_client.put(f"{RECIPES}/{recipe['id']}/state", json="archived", headers=auth[EDITOR])

        assert response.status_code == 204
        assert (await test_client.get(f"{RECIPES}/{recipe['id']}", headers=auth[VIEWER])).json()["state"] == "archived"

    @pytest.mark.asyncio
    async def test_rating(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])
        url = f"{RECIPES}/{recipe['id']}/rating"

        assert (await test_client.get(url, headers=auth[VIEWER])).json() == 0.0
        assert (await test_client.put(url, json=4.5, headers=auth[EDITOR])).status_code == 204
        assert (await test_client.get(url, headers=auth[VIEWER])).json() == 4.5
        assert (await test_client.put(url, json=7, headers=auth[EDITOR])).status_code == 400


class TestRecipeSearch:

    @pytest.mark.asyncio
    async def test_total_count_header_and_paging(self, test_client, auth):
        for name in ("Apple Pie", "Banana Bread", "Carrot Cake"):
            await create_recipe(test_client, auth[EDITOR], name=name)

        response = await test_client.get(RECIPES, params={"count": 2, "page": 2}, headers=auth[VIEWER])

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        body = response.json()
        assert body["total"] == 3
        assert [r["name"] for r in body["recipes"]] == ["Carrot Cake"]

    @pytest.mark.asyncio
    async def test_query_fields_and_tags(self, test_client, auth):
        await create_recipe(test_client, auth[EDITOR], name="Garlic Bread", tags=["side"])
        await create_recipe(test_client, auth[EDITOR], name="Pasta", ingredients="garlic", tags=["dinner"])

        by_name = await test_client.get(RECIPES, params={"q": "garlic", "fields": "name"}, headers=auth[VIEWER])
        by_tag = await test_client.get(
            RECIPES, params=[("q", "garlic"), ("tags", "dinner"), ("tags", "lunch")], headers=auth[VIEWER]
        )

        assert [r["name"] for r in by_name.json()["recipes"]] == ["Garlic Bread"]
        assert [r["name"] for r in by_tag.json()["recipes"]] == ["Pasta"]

    @pytest.mark.asyncio
    async def test_states_and_sort(self, test_client, auth):
        first = await create_recipe(test_client, auth[EDITOR], name="A")
        await create_recipe(test_client, auth[EDITOR], name="B")
        await test_client.put(f"{RECIPES}/{first['id']}/state", json="deleted", headers=auth[EDITOR])

        active = await test_client.get(RECIPES, headers=auth[VIEWER])
        everything = await test_client.get(
            RECIPES,
            params=[("states", "active"), ("states", "deleted"), ("sort", "name"), ("dir", "desc")],
            headers=auth[VIEWER],
        )

        assert [r["name"] for r in active.json()["recipes"]] == ["B"]
        assert [r["name"] for r in everything.json()["recipes"]] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_invalid_page(self, test_client, auth):
        response = await test_client.get(RECIPES, params={"page": 0}, headers=auth[VIEWER])
        assert response.status_code == 400


class TestImagesApi:

    @pytest.mark.asyncio
    async def test_upload_and_serve(self, test_client, auth, sample_image_bytes):
        recipe = await create_recipe(test_client, auth[EDITOR])
        base = f"{RECIPES}/{recipe['id']}"

        response = await test_client.post(
            f"{base}/images",
            files={"file": ("cake.jpg", sample_image_bytes, "image/jpeg")},
            headers=auth[EDITOR],
        )

        assert response.status_code == 201, response.text
        image = response.json()
        assert response.headers["Location"] == f"{base}/images/{image['id']}"

        main = await test_client.get(f"{base}/image", headers=auth[VIEWER])
        assert main.json()["id"] == image["id"]

        served = await test_client.get(image["thumbnail_url"])
        assert served.status_code == 200
        assert served.headers["content-type"] == "image/jpeg"
        assert served.headers["cache-control"] == "public, max-age=86400"

    @pytest.mark.asyncio
    async def test_upload_non_image(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])

        response = await test_client.post(
            f"{RECIPES}/{recipe['id']}/images",
            files={"file": ("notes.jpg", b"definitely not a jpeg", "image/jpeg")},
            headers=auth[EDITOR],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_set_main_image_and_delete(self, test_client, auth, sample_image_bytes):
        recipe = await create_recipe(test_client, auth[EDITOR])
        base = f"{RECIPES}/{recipe['id']}"
        ids = []
        for name in ("a.jpg", "b.jpg"):
            uploaded = await test_client.post(
                f"{base}/images", files={"file": (name, sample_image_bytes, "image/jpeg")}, headers=auth[EDITOR]
            )
            ids.append(uploaded.json()["id"])

        assert (await test_client.put(f"{base}/image", json=ids[1], headers=auth[EDITOR])).status_code == 204
        assert (await test_client.get(f"{base}/image", headers=auth[VIEWER])).json()["id"] == ids[1]

        assert (await test_client.delete(f"{base}/images/{ids[1]}", headers=auth[EDITOR])).status_code == 204
        assert (await test_client.get(f"{base}/image", headers=auth[VIEWER])).json()["id"] == ids[0]
        assert [i["id"] for i in (await test_client.get(f"{base}/images", headers=auth[VIEWER])).json()] == [ids[0]]

    @pytest.mark.asyncio
    async def test_missing_upload_is_404(self, test_client):
        assert (await test_client.get("/uploads/nothing-here.jpg")).status_code == 404


class TestNotesLinksTags:

    @pytest.mark.asyncio
    async def test_notes(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])
        base = f"{RECIPES}/{recipe['id']}/notes"

        created = await test_client.post(base, json={"text": "less sugar"}, headers=auth[EDITOR])
        assert created.status_code == 201
        note = created.json()
        assert created.headers["Location"] == f"{base}/{note['id']}"

        edited = await test_client.put(f"{base}/{note['id']}", json={"text": "much less sugar"}, headers=auth[EDITOR])
        assert edited.status_code == 204
        assert [n["text"] for n in (await test_client.get(base, headers=auth[VIEWER])).json()] == ["much less sugar"]

        assert (await test_client.delete(f"{base}/{note['id']}", headers=auth[EDITOR])).status_code == 204
        assert (await test_client.get(base, headers=auth[VIEWER])).json() == []

    @pytest.mark.asyncio
    async def test_note_with_wrong_recipe_id(self, test_client, auth):
        recipe = await create_recipe(test_client, auth[EDITOR])

        response = await test_client.post(
            f"{RECIPES}/{recipe['id']}/notes",
            json={"recipe_id": recipe["id"] + 100, "text": "misplaced"},
            headers=auth[EDITOR],
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "recipe_id"

    @pytest.mark.asyncio
    async def test_links(self, test_client, auth):
        burger = await create_recipe(test_client, auth[EDITOR], name="Burger")
        fries = await create_recipe(test_client, auth[EDITOR], name="Fries")

        created = await test_client.post(f"{RECIPES}/{burger['id']}/links", json=fries["id"], headers=auth[EDITOR])
        assert created.status_code == 201
        assert created.headers["Location"] == f"{RECIPES}/{burger['id']}/links/{fries['id']}"

        from_fries = await test_client.get(f"{RECIPES}/{fries['id']}/links", headers=auth[VIEWER])
        assert [r["name"] for r in from_fries.json()] == ["Burger"]

        removed = await test_client.delete(f"{RECIPES}/{fries['id']}/links/{burger['id']}", headers=auth[EDITOR])
        assert removed.status_code == 204
        assert (await test_client.get(f"{RECIPES}/{burger['id']}/links", headers=auth[VIEWER])).json() == []

    @pytest.mark.asyncio
    async def test_tags(self, test_client, auth):
        await create_recipe(test_client, auth[EDITOR], name="Soup", tags=["dinner", "winter"])
        await create_recipe(test_client, auth[EDITOR], name="Stew", tags=["dinner"])

        response = await test_client.get(
            "/api/v1/tags", params={"sort": "frequency", "dir": "desc"}, headers=auth[VIEWER]
        )

        assert response.status_code == 200
        assert list(response.json().items()) == [("dinner", 2), ("winter", 1)]
