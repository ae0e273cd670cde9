"""
RecipeBox — Recipe Search Service
=================================

What:  Turns a SearchFilter into one paged SELECT plus one COUNT.
Why:   The recipe list, saved filters, and the home page all search through
       this single entry point, so every caller sees identical semantics.
How:   Independent predicate groups are built as SQLAlchemy expressions and
       ANDed together. The same WHERE feeds both the page query and COUNT(*).

Predicate groups:
    1. State     current_state IN (:states)      — or = 'active' when none given
    2. Text      OR across selected fields       — dialect specific (see below)
    3. Tags      EXISTS (recipe_tag ... tag IN (:tags))
    4. Pictures  EXISTS / NOT EXISTS (recipe_image ...)

Dialect variance (text predicate):
    sqlite      field LIKE '%' || :q || '%'   (LIKE is case-insensitive for ASCII)
    postgresql  to_tsvector('english', field) @@ plainto_tsquery('english', :q)
                OR to_tsvector('english', field) @@ to_tsquery('english', :terms)
                where :terms is "word1:* & word2:*" so partial words match

Ordering:
    id | created | modified | rating | random | name (also the fallback)
    Rating ties break on modified_at DESC. Every non-random ordering ends
    with recipe.id so pages never overlap or skip rows when sort values tie.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import Select, and_, exists, func, literal_column, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from recipebox.database import dialect_name
from recipebox.exceptions import ValidationError
from recipebox.models import Recipe, RecipeImage, RecipeRating, RecipeTag
from recipebox.schemas.search import (
    SUPPORTED_SEARCH_FIELDS,
    RecipeCompact,
    RecipeState,
    SearchField,
    SearchFilter,
    SearchResult,
    SortBy,
    SortDir,
)
from recipebox.services import database_errors

logger = logging.getLogger(__name__)

_TS_CONFIG = literal_column("'english'")

# Characters with meaning inside to_tsquery(); stripped from user terms
_TSQUERY_SPECIAL = re.compile(r"[&|!():*<>'\"\\]")

# Computed columns of the compact projection
avg_rating = func.coalesce(RecipeRating.rating, 0).label("avg_rating")
thumbnail_url = func.coalesce(RecipeImage.thumbnail_url, "").label("thumbnail_url")


# ── Predicate builders ────────────────────────────────────────────────────

def resolve_search_fields(fields: Iterable[str]) -> List[SearchField]:
    """
    Selected fields in canonical order.

    Unsupported names are ignored. When nothing supported remains (including
    the empty list) every supported field is searched.
    """
    requested = {str(getattr(f, "value", f)).strip().lower() for f in fields}
    selected = [field for field in SUPPORTED_SEARCH_FIELDS if field.value in requested]
    return selected or list(SUPPORTED_SEARCH_FIELDS)


def prefix_terms(query: str) -> str:
    """'chick soup' → 'chick:* & soup:*' for Postgres prefix matching."""
    terms = []
    for word in query.split():
        cleaned = _TSQUERY_SPECIAL.sub("", word)
        if cleaned:
            terms.append(f"{cleaned}:*")
    return " & ".join(terms)


def text_predicate(dialect: str, query: str, fields: Sequence[SearchField]) -> ColumnElement[bool]:
    columns = [getattr(Recipe, field.value) for field in fields]
    if dialect == "postgresql":
        terms = prefix_terms(query)
        clauses = []
        for column in columns:
            vector = func.to_tsvector(_TS_CONFIG, column)
            match = vector.op("@@")(func.plainto_tsquery(_TS_CONFIG, query))
            if terms:
                match = or_(match, vector.op("@@")(func.to_tsquery(_TS_CONFIG, terms)))
            clauses.append(match)
        return or_(*clauses)
    return or_(*(column.contains(query, autoescape=True) for column in columns))


def build_conditions(search_filter: SearchFilter, dialect: str) -> List[ColumnElement[bool]]:
    """All WHERE predicates for the filter, to be ANDed."""
    conditions: List[ColumnElement[bool]] = []

    states = [RecipeState(s).value for s in search_filter.states]
    if states:
        conditions.append(Recipe.current_state.in_(states))
    else:
        conditions.append(Recipe.current_state == RecipeState.ACTIVE.value)

    query = search_filter.query.strip()
    if query:
        fields = resolve_search_fields(search_filter.fields)
        conditions.append(text_predicate(dialect, query, fields))

    tags = [t for t in search_filter.tags if t]
    if tags:
        conditions.append(
            exists().where(and_(RecipeTag.recipe_id == Recipe.id, RecipeTag.tag.in_(tags)))
        )

    if search_filter.with_pictures is not None:
        has_picture = exists().where(RecipeImage.recipe_id == Recipe.id)
        conditions.append(has_picture if search_filter.with_pictures else not_(has_picture))

    return conditions


def normalize_sort(sort_by: object, sort_dir: object) -> Tuple[SortBy, SortDir]:
    """Unknown keys fall back to name; anything but 'desc' is ascending."""
    raw_by = str(getattr(sort_by, "value", sort_by) or "").strip().lower()
    raw_dir = str(getattr(sort_dir, "value", sort_dir) or "").strip().lower()
    try:
        key = SortBy(raw_by)
    except ValueError:
        key = SortBy.NAME
    direction = SortDir.DESC if raw_dir == SortDir.DESC.value else SortDir.ASC
    return key, direction


def build_order_by(sort_by: object, sort_dir: object) -> List[ColumnElement]:
    key, direction = normalize_sort(sort_by, sort_dir)
    if key is SortBy.RANDOM:
        return [func.random()]

    column = {
        SortBy.ID: Recipe.id,
        SortBy.CREATED: Recipe.created_at,
        SortBy.MODIFIED: Recipe.modified_at,
        SortBy.RATING: avg_rating,
        SortBy.NAME: Recipe.name,
    }[key]
    clauses = [column.desc() if direction is SortDir.DESC else column.asc()]

    if key is SortBy.RATING:
        # Ratings collide constantly; most recently touched wins
        clauses.append(Recipe.modified_at.desc())
    if key is not SortBy.ID:
        clauses.append(Recipe.id.asc())
    return clauses


def compact_select() -> Select:
    """SELECT of the RecipeCompact projection with its rating and thumbnail joins."""
    return (
        select(
            Recipe.id,
            Recipe.name,
            Recipe.current_state,
            Recipe.created_at,
            Recipe.modified_at,
            avg_rating,
            thumbnail_url,
        )
        .select_from(Recipe)
        .outerjoin(RecipeRating, RecipeRating.recipe_id == Recipe.id)
        .outerjoin(RecipeImage, RecipeImage.id == Recipe.image_id)
    )


def to_compact(row) -> RecipeCompact:
    return RecipeCompact(
        id=row.id,
        name=row.name,
        state=row.current_state,
        created_at=row.created_at,
        modified_at=row.modified_at,
        average_rating=float(row.avg_rating or 0),
        thumbnail_url=row.thumbnail_url or "",
    )


def build_search_statements(
    search_filter: SearchFilter,
    dialect: str,
    page: int,
    count: int,
) -> Tuple[Select, Select]:
    """
    Returns (page_statement, count_statement) sharing one WHERE clause.

    Raises:
        ValidationError: page or count below 1
    """
    if page < 1:
        raise ValidationError(message="page must be 1 or greater", field="page")
    if count < 1:
        raise ValidationError(message="count must be 1 or greater", field="count")

    conditions = build_conditions(search_filter, dialect)

    page_stmt = (
        compact_select()
        .where(*conditions)
        .order_by(*build_order_by(search_filter.sort_by, search_filter.sort_dir))
        .limit(count)
        .offset(count * (page - 1))
    )
    count_stmt = select(func.count()).select_from(Recipe).where(*conditions)
    return page_stmt, count_stmt


class SearchService:
    """Runs recipe searches against the session's database."""

    async def find(
        self,
        db: AsyncSession,
        search_filter: SearchFilter,
        page: int = 1,
        count: int = 20,
        dialect: Optional[str] = None,
    ) -> SearchResult:
        dialect = dialect or dialect_name(db)
        page_stmt, count_stmt = build_search_statements(search_filter, dialect, page, count)

        with database_errors("find recipes"):
            total = (await db.execute(count_stmt)).scalar_one()
            rows = (await db.execute(page_stmt)).all()

        logger.debug(
            "Search q=%r tags=%s states=%s sort=%s/%s page=%d → %d of %d",
            search_filter.query,
            search_filter.tags,
            search_filter.states,
            search_filter.sort_by,
            search_filter.sort_dir,
            page,
            len(rows),
            total,
        )
        return SearchResult(recipes=[to_compact(row) for row in rows], total=total)


search_service = SearchService()
