"""RecipeBox — Tag Service Tests: frequencies, ordering and limits."""

import pytest
import pytest_asyncio

from recipebox.exceptions import ValidationError
from recipebox.schemas.recipe import RecipeRequest
from recipebox.services.recipe_service import recipe_service
from recipebox.services.tag_service import tag_service


class TestTagService:

    @pytest_asyncio.fixture
    async def tagged(self, db_session):
        for name, tags in (
            ("Soup", ["dinner", "winter"]),
            ("Stew", ["dinner", "winter"]),
            ("Roast", ["dinner"]),
            ("Pancakes", ["breakfast"]),
        ):
            await recipe_service.create(db_session, RecipeRequest(name=name, tags=tags))

    @pytest.mark.asyncio
    async def test_counts_alphabetical_by_default(self, db_session, tagged):
        tags = await tag_service.list_all(db_session)

        assert list(tags.items()) == [("breakfast", 1), ("dinner", 3), ("winter", 2)]

    @pytest.mark.asyncio
    async def test_frequency_descending(self, db_session, tagged):
        tags = await tag_service.list_all(db_session, sort_by="frequency", sort_dir="desc")
        assert list(tags) == ["dinner", "winter", "breakfast"]

    @pytest.mark.asyncio
    async def test_tag_descending(self, db_session, tagged):
        tags = await tag_service.list_all(db_session, sort_dir="desc")
        assert list(tags) == ["winter", "dinner", "breakfast"]

    @pytest.mark.asyncio
    async def test_unknown_sort_is_alphabetical(self, db_session, tagged):
        tags = await tag_service.list_all(db_session, sort_by="popularity")
        assert list(tags) == ["breakfast", "dinner", "winter"]

    @pytest.mark.asyncio
    async def test_count_limits_entries(self, db_session, tagged):
        tags = await tag_service.list_all(db_session, sort_by="frequency", sort_dir="desc", count=1)
        assert tags == {"dinner": 3}

    @pytest.mark.asyncio
    async def test_random_returns_everything(self, db_session, tagged):
        tags = await tag_service.list_all(db_session, sort_by="random")
        assert tags == {"breakfast": 1, "dinner": 3, "winter": 2}

    @pytest.mark.asyncio
    async def test_count_must_be_positive(self, db_session):
        with pytest.raises(ValidationError):
            await tag_service.list_all(db_session, count=0)

    @pytest.mark.asyncio
    async def test_no_recipes_no_tags(self, db_session):
        assert await tag_service.list_all(db_session) == {}
