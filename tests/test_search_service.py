"""
RecipeBox — Search Service Tests
================================

What:  The filter → SQL builder, run for real against SQLite and compiled
       (not executed) for Postgres.

What we test:
    ✅ State default and explicit state sets
    ✅ Text matching across all / selected fields, LIKE wildcards escaped
    ✅ Tag any-of and picture presence predicates
    ✅ Every sort key, unknown-key fallback, rating tie-break
    ✅ total ignores paging; pages partition the full result
    ✅ Postgres full-text SQL and prefix terms
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.dialects import postgresql

from recipebox.exceptions import ValidationError
from recipebox.models import Recipe, RecipeImage, RecipeRating, RecipeTag
from recipebox.schemas.search import RecipeState, SearchField, SearchFilter
from recipebox.services.search_service import (
    build_order_by,
    build_search_statements,
    normalize_sort,
    prefix_terms,
    resolve_search_fields,
    search_service,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


async def add_recipe(
    db,
    name,
    *,
    ingredients="",
    directions="",
    state="active",
    tags=(),
    rating=None,
    image=False,
    offset_minutes=0,
):
    stamp = BASE_TIME + timedelta(minutes=offset_minutes)
    recipe = Recipe(
        name=name,
        ingredients=ingredients,
        directions=directions,
        current_state=state,
        created_at=stamp,
        modified_at=stamp,
    )
    db.add(recipe)
    await db.flush()

    for tag in tags:
        db.add(RecipeTag(recipe_id=recipe.id, tag=tag))
    if rating is not None:
        db.add(RecipeRating(recipe_id=recipe.id, rating=rating))
    if image:
        picture = RecipeImage(
            recipe_id=recipe.id,
            name="main.jpg",
            url=f"/uploads/recipes/{recipe.id}/images/main.jpg",
            thumbnail_url=f"/uploads/recipes/{recipe.id}/thumbs/main.jpg",
        )
        db.add(picture)
        await db.flush()
        recipe.image_id = picture.id
        recipe.modified_at = stamp
    await db.flush()
    return recipe


async def names(db, **filter_kwargs):
    page = filter_kwargs.pop("page", 1)
    count = filter_kwargs.pop("count", 50)
    result = await search_service.find(db, SearchFilter(**filter_kwargs), page=page, count=count)
    return [r.name for r in result.recipes]


class TestFieldResolution:

    def test_empty_means_all_fields(self):
        assert resolve_search_fields([]) == [SearchField.NAME, SearchField.INGREDIENTS, SearchField.DIRECTIONS]

    def test_keeps_canonical_order(self):
        assert resolve_search_fields(["directions", "name"]) == [SearchField.NAME, SearchField.DIRECTIONS]

    def test_only_unsupported_falls_back_to_all(self):
        assert resolve_search_fields(["storage_instructions", "bogus"]) == list(resolve_search_fields([]))

    def test_unsupported_mixed_with_supported_is_ignored(self):
        assert resolve_search_fields(["bogus", "INGREDIENTS"]) == [SearchField.INGREDIENTS]


class TestSortNormalization:

    def test_unknown_key_falls_back_to_name_ascending(self):
        assert normalize_sort("popularity", "") == ("name", "asc")

    def test_direction_is_case_insensitive(self):
        key, direction = normalize_sort("Rating", "DESC")
        assert (key.value, direction.value) == ("rating", "desc")

    def test_rating_sort_breaks_ties_on_modified_then_id(self):
        clauses = [str(c) for c in build_order_by("rating", "desc")]
        assert "modified_at DESC" in clauses[1]
        assert clauses[2].endswith("recipe.id ASC")

    def test_id_sort_has_no_redundant_tiebreak(self):
        assert len(build_order_by("id", "asc")) == 1

    def test_random_sort_is_single_clause(self):
        assert "random" in str(build_order_by("random", "asc")[0]).lower()


class TestPostgresCompilation:

    def _sql(self, search_filter):
        page_stmt, _ = build_search_statements(search_filter, "postgresql", page=2, count=10)
        return str(page_stmt.compile(dialect=postgresql.dialect()))

    def test_text_uses_full_text_search(self):
        sql = self._sql(SearchFilter(query="chicken soup", fields=["name"]))
        assert "to_tsvector('english', recipe.name)" in sql
        assert "plainto_tsquery('english'" in sql
        assert "to_tsquery('english'" in sql
        assert "recipe.ingredients" not in sql.split("WHERE", 1)[1]

    def test_paging_offset(self):
        sql = self._sql(SearchFilter())
        assert "LIMIT" in sql and "OFFSET" in sql

    def test_prefix_terms(self):
        assert prefix_terms("chick soup") == "chick:* & soup:*"

    def test_prefix_terms_strip_operators(self):
        assert prefix_terms("a&b | (c) !") == "ab:* & c:*"


class TestBuildValidation:

    @pytest.mark.parametrize("page,count", [(0, 10), (1, 0), (-1, -1)])
    def test_page_and_count_must_be_positive(self, page, count):
        with pytest.raises(ValidationError):
            build_search_statements(SearchFilter(), "sqlite", page=page, count=count)


class TestFind:

    @pytest.mark.asyncio
    async def test_defaults_to_active_only(self, db_session):
        await add_recipe(db_session, "Active")
        await add_recipe(db_session, "Archived", state="archived")
        await add_recipe(db_session, "Deleted", state="deleted")

        assert await names(db_session) == ["Active"]

    @pytest.mark.asyncio
    async def test_explicit_states(self, db_session):
        await add_recipe(db_session, "Active")
        await add_recipe(db_session, "Archived", state="archived")
        await add_recipe(db_session, "Deleted", state="deleted")

        found = await names(db_session, states=[RecipeState.ARCHIVED, RecipeState.DELETED])
        assert found == ["Archived", "Deleted"]

    @pytest.mark.asyncio
    async def test_query_searches_all_fields_by_default(self, db_session):
        await add_recipe(db_session, "Garlic Bread")
        await add_recipe(db_session, "Pasta", ingredients="2 cloves garlic")
        await add_recipe(db_session, "Roast", directions="Rub with GARLIC")
        await add_recipe(db_session, "Salad")

        assert await names(db_session, query="garlic") == ["Garlic Bread", "Pasta", "Roast"]

    @pytest.mark.asyncio
    async def test_query_restricted_to_fields(self, db_session):
        await add_recipe(db_session, "Garlic Bread")
        await add_recipe(db_session, "Pasta", ingredients="garlic")

        assert await names(db_session, query="garlic", fields=["ingredients"]) == ["Pasta"]

    @pytest.mark.asyncio
    async def test_unsupported_fields_search_everything(self, db_session):
        await add_recipe(db_session, "Garlic Bread")
        await add_recipe(db_session, "Pasta", ingredients="garlic")

        assert await names(db_session, query="garlic", fields=["nutrition_info"]) == ["Garlic Bread", "Pasta"]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, db_session):
        await add_recipe(db_session, "100% Rye")
        await add_recipe(db_session, "1000 Island Dressing")

        assert await names(db_session, query="100%") == ["100% Rye"]
        assert await names(db_session, query="_") == []

    @pytest.mark.asyncio
    async def test_blank_query_matches_everything(self, db_session):
        await add_recipe(db_session, "A")
        await add_recipe(db_session, "B")

        assert await names(db_session, query="   ") == ["A", "B"]

    @pytest.mark.asyncio
    async def test_tags_match_any(self, db_session):
        await add_recipe(db_session, "Soup", tags=["dinner", "winter"])
        await add_recipe(db_session, "Pancakes", tags=["breakfast"])
        await add_recipe(db_session, "Toast")

        assert await names(db_session, tags=["winter", "breakfast"]) == ["Pancakes", "Soup"]

    @pytest.mark.asyncio
    async def test_with_pictures(self, db_session):
        await add_recipe(db_session, "Pictured", image=True)
        await add_recipe(db_session, "Plain")

        assert await names(db_session, with_pictures=True) == ["Pictured"]
        assert await names(db_session, with_pictures=False) == ["Plain"]
        assert await names(db_session, with_pictures=None) == ["Pictured", "Plain"]

    @pytest.mark.asyncio
    async def test_predicates_are_anded(self, db_session):
        await add_recipe(db_session, "Garlic Soup", tags=["dinner"], image=True)
        await add_recipe(db_session, "Garlic Toast", tags=["dinner"])
        await add_recipe(db_session, "Garlic Eggs", tags=["breakfast"], image=True)
        await add_recipe(db_session, "Garlic Stew", tags=["dinner"], image=True, state="archived")

        found = await names(db_session, query="garlic", tags=["dinner"], with_pictures=True)
        assert found == ["Garlic Soup"]

    @pytest.mark.asyncio
    async def test_compact_projection(self, db_session):
        pictured = await add_recipe(db_session, "Pictured", rating=4.5, image=True)
        await add_recipe(db_session, "Unrated")

        result = await search_service.find(db_session, SearchFilter())
        by_name = {r.name: r for r in result.recipes}
        assert by_name["Pictured"].average_rating == 4.5
        assert by_name["Pictured"].thumbnail_url == f"/uploads/recipes/{pictured.id}/thumbs/main.jpg"
        assert by_name["Unrated"].average_rating == 0.0
        assert by_name["Unrated"].thumbnail_url == ""


class TestFindOrdering:

    @pytest.mark.asyncio
    async def test_name_descending(self, db_session):
        for name in ("b", "c", "a"):
            await add_recipe(db_session, name)
        assert await names(db_session, sort_by="name", sort_dir="desc") == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_unknown_sort_falls_back_to_name_ascending(self, db_session):
        for name in ("b", "c", "a"):
            await add_recipe(db_session, name)
        assert await names(db_session, sort_by="nonsense") == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_created_sort(self, db_session):
        await add_recipe(db_session, "second", offset_minutes=2)
        await add_recipe(db_session, "first", offset_minutes=1)
        await add_recipe(db_session, "third", offset_minutes=3)

        assert await names(db_session, sort_by="created") == ["first", "second", "third"]
        assert await names(db_session, sort_by="created", sort_dir="desc") == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_rating_ties_prefer_recently_modified(self, db_session):
        await add_recipe(db_session, "old four", rating=4, offset_minutes=1)
        await add_recipe(db_session, "five", rating=5, offset_minutes=0)
        await add_recipe(db_session, "new four", rating=4, offset_minutes=5)
        await add_recipe(db_session, "unrated", offset_minutes=9)

        assert await names(db_session, sort_by="rating", sort_dir="desc") == [
            "five", "new four", "old four", "unrated",
        ]

    @pytest.mark.asyncio
    async def test_identical_sort_values_are_deterministic(self, db_session):
        for _ in range(5):
            await add_recipe(db_session, "Same")

        first = await search_service.find(db_session, SearchFilter())
        second = await search_service.find(db_session, SearchFilter())
        ids = [r.id for r in first.recipes]
        assert ids == sorted(ids)
        assert ids == [r.id for r in second.recipes]

    @pytest.mark.asyncio
    async def test_random_sort_returns_every_match(self, db_session):
        for name in ("a", "b", "c"):
            await add_recipe(db_session, name)
        assert sorted(await names(db_session, sort_by="random")) == ["a", "b", "c"]


class TestFindPaging:

    @pytest.mark.asyncio
    async def test_total_ignores_paging(self, db_session):
        for i in range(7):
            await add_recipe(db_session, f"Recipe {i}")
        await add_recipe(db_session, "Hidden", state="deleted")

        result = await search_service.find(db_session, SearchFilter(), page=2, count=3)
        assert result.total == 7
        assert [r.name for r in result.recipes] == ["Recipe 3", "Recipe 4", "Recipe 5"]

    @pytest.mark.asyncio
    async def test_pages_partition_the_full_result(self, db_session):
        for i in range(10):
            await add_recipe(db_session, f"Dish {i % 3}", rating=i % 2)

        search_filter = SearchFilter(sort_by="rating", sort_dir="desc")
        full = await search_service.find(db_session, search_filter, page=1, count=100)

        paged = []
        for page in range(1, 5):
            result = await search_service.find(db_session, search_filter, page=page, count=3)
            assert result.total == 10
            paged.extend(r.id for r in result.recipes)

        assert paged == [r.id for r in full.recipes]
        assert len(set(paged)) == 10

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db_session):
        await add_recipe(db_session, "Only")
        result = await search_service.find(db_session, SearchFilter(), page=5, count=10)
        assert result.recipes == []
        assert result.total == 1
