"""Create recipe, user and configuration tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  The full initial schema: recipes and their child tables (tags,
       rating, images, notes, links), users with settings, favorite tags and
       saved search filters, plus the single-row app configuration.
How:   Ids are BIGINT on Postgres and INTEGER on SQLite so SQLite
       auto-increments them. Every child table cascades on parent delete.

Rollback: downgrade() drops every table (destructive — all data lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _recipe_fk(name: str = "recipe_id", primary_key: bool = False) -> sa.Column:
    return sa.Column(
        name,
        ID,
        sa.ForeignKey("recipe.id", ondelete="CASCADE"),
        nullable=False,
        primary_key=primary_key,
    )


def _user_fk() -> sa.Column:
    return sa.Column("user_id", ID, sa.ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)


def upgrade() -> None:
    # ── Recipes ───────────────────────────────────────────────────────────
    op.create_table(
        "recipe",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("serving_size", sa.Text(), nullable=False, server_default=""),
        sa.Column("nutrition_info", sa.Text(), nullable=False, server_default=""),
        sa.Column("ingredients", sa.Text(), nullable=False, server_default=""),
        sa.Column("directions", sa.Text(), nullable=False, server_default=""),
        sa.Column("storage_instructions", sa.Text(), nullable=False, server_default=""),
        sa.Column("source_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("current_state", sa.String(20), nullable=False, server_default="active"),
        # Main image pointer; plain column, no foreign key
        sa.Column("image_id", ID, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_recipe_name", "recipe", ["name"])
    op.create_index("idx_recipe_current_state", "recipe", ["current_state"])

    op.create_table(
        "recipe_tag",
        _recipe_fk(primary_key=True),
        sa.Column("tag", sa.Text(), primary_key=True),
    )
    op.create_index("idx_recipe_tag_tag", "recipe_tag", ["tag"])

    op.create_table(
        "recipe_rating",
        _recipe_fk(primary_key=True),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
    )

    op.create_table(
        "recipe_image",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        _recipe_fk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_recipe_image_recipe_id", "recipe_image", ["recipe_id"])

    op.create_table(
        "recipe_note",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        _recipe_fk(),
        sa.Column("note", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_recipe_note_recipe_id", "recipe_note", ["recipe_id"])

    op.create_table(
        "recipe_link",
        _recipe_fk(primary_key=True),
        _recipe_fk("dest_recipe_id", primary_key=True),
    )

    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "app_user",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("access_level", sa.String(20), nullable=False, server_default="viewer"),
        *_timestamps(),
    )

    op.create_table(
        "app_user_settings",
        _user_fk(),
        sa.Column("home_title", sa.Text(), nullable=True),
        sa.Column("home_image_url", sa.Text(), nullable=True),
    )

    op.create_table(
        "app_user_favorite_tag",
        _user_fk(),
        sa.Column("tag", sa.Text(), primary_key=True),
    )

    op.create_table(
        "search_filter",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("user_id", ID, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("query", sa.Text(), nullable=False, server_default=""),
        sa.Column("with_pictures", sa.Boolean(), nullable=True),
        sa.Column("sort_by", sa.String(20), nullable=False, server_default="name"),
        sa.Column("sort_dir", sa.String(4), nullable=False, server_default="asc"),
    )

    for table, column, column_type in (
        ("search_filter_field", "field_name", sa.String(50)),
        ("search_filter_state", "state", sa.String(20)),
        ("search_filter_tag", "tag", sa.Text()),
    ):
        op.create_table(
            table,
            sa.Column(
                "search_filter_id",
                ID,
                sa.ForeignKey("search_filter.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(column, column_type, primary_key=True),
        )

    # ── Configuration ─────────────────────────────────────────────────────
    op.create_table(
        "app_configuration",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "app_configuration",
        "search_filter_tag",
        "search_filter_state",
        "search_filter_field",
        "search_filter",
        "app_user_favorite_tag",
        "app_user_settings",
        "app_user",
        "recipe_link",
        "recipe_note",
        "recipe_image",
        "recipe_rating",
        "recipe_tag",
        "recipe",
    ):
        op.drop_table(table)
