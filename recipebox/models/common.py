"""
RecipeBox — Shared Column Types
===============================

What:  Column types and mixins reused by every table.
Why:   The same schema must work on SQLite and Postgres.

    SQLite only auto-increments a column declared exactly INTEGER PRIMARY KEY,
    while Postgres wants BIGINT identities, hence the variant id type.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

IdType = BigInteger().with_variant(Integer(), "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """created_at / modified_at columns; modified_at refreshes on every UPDATE."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
