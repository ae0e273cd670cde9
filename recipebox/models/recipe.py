"""
RecipeBox — Recipe SQLAlchemy Models
====================================

What:  ORM models for `recipe` and the tables that hang off it
       (tags, rating, images, notes, links).
How:   Every child row references recipe.id with ON DELETE CASCADE, so
       deleting a recipe removes its tags, rating, images, notes and links
       in the same statement.

Table Design Rationale:
    - recipe.image_id points at the "main" image. It is a plain column rather
      than a foreign key because recipe ↔ recipe_image would otherwise form a
      cycle; the image service keeps it consistent.
    - recipe_rating holds one row per recipe (absent means 0).
    - recipe_link rows are directional on disk but treated as symmetric.
"""

from typing import Optional

from sqlalchemy import Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recipebox.database import Base
from recipebox.models.common import IdType, TimestampMixin


class Recipe(TimestampMixin, Base):
    """A single recipe. `current_state` is one of active, archived, deleted."""

    __tablename__ = "recipe"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    serving_size: Mapped[str] = mapped_column(Text, nullable=False, default="")
    nutrition_info: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ingredients: Mapped[str] = mapped_column(Text, nullable=False, default="")
    directions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    storage_instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_state: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    image_id: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)

    __table_args__ = (
        Index("idx_recipe_name", "name"),
        Index("idx_recipe_current_state", "current_state"),
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, name='{self.name}', state='{self.current_state}')>"


class RecipeTag(Base):
    __tablename__ = "recipe_tag"

    recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(Text, primary_key=True)

    __table_args__ = (Index("idx_recipe_tag_tag", "tag"),)


class RecipeRating(Base):
    __tablename__ = "recipe_rating"

    recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), primary_key=True
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class RecipeImage(TimestampMixin, Base):
    """An uploaded image; url/thumbnail_url are the public paths of the two renditions."""

    __tablename__ = "recipe_image"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_recipe_image_recipe_id", "recipe_id"),)


class RecipeNote(TimestampMixin, Base):
    __tablename__ = "recipe_note"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    note: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_recipe_note_recipe_id", "recipe_id"),)


class RecipeLink(Base):
    __tablename__ = "recipe_link"

    recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), primary_key=True
    )
    dest_recipe_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("recipe.id", ondelete="CASCADE"), primary_key=True
    )
