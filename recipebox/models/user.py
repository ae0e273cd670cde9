"""
RecipeBox — User SQLAlchemy Models
==================================

What:  Accounts, per-user settings, favorite tags, and saved search filters.

    A saved filter is split across four tables: the scalar parts live in
    `search_filter`, and each list-valued part (fields, states, tags) gets its
    own child table. Updates delete and recreate the child rows.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recipebox.database import Base
from recipebox.models.common import IdType, TimestampMixin


class AppUser(TimestampMixin, Base):
    """`access_level` is one of admin, editor, viewer."""

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    access_level: Mapped[str] = mapped_column(String(20), nullable=False, default="viewer")

    def __repr__(self) -> str:
        return f"<AppUser(id={self.id}, username='{self.username}', level='{self.access_level}')>"


class AppUserSettings(Base):
    __tablename__ = "app_user_settings"

    user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True
    )
    home_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    home_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class AppUserFavoriteTag(Base):
    __tablename__ = "app_user_favorite_tag"

    user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(Text, primary_key=True)


class SearchFilterRecord(Base):
    __tablename__ = "search_filter"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    query: Mapped[str] = mapped_column(Text, nullable=False, default="")
    with_pictures: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    sort_by: Mapped[str] = mapped_column(String(20), nullable=False, default="name")
    sort_dir: Mapped[str] = mapped_column(String(4), nullable=False, default="asc")


class SearchFilterField(Base):
    __tablename__ = "search_filter_field"

    search_filter_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("search_filter.id", ondelete="CASCADE"), primary_key=True
    )
    field_name: Mapped[str] = mapped_column(String(50), primary_key=True)


class SearchFilterState(Base):
    __tablename__ = "search_filter_state"

    search_filter_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("search_filter.id", ondelete="CASCADE"), primary_key=True
    )
    state: Mapped[str] = mapped_column(String(20), primary_key=True)


class SearchFilterTag(Base):
    __tablename__ = "search_filter_tag"

    search_filter_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("search_filter.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(Text, primary_key=True)
