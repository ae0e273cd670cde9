# Services package init
"""
RecipeBox — Services Layer
==========================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services receive an AsyncSession per call, run their statements inside
       the request's transaction, and return Pydantic schemas.

Service Inventory:
    - SearchService:     Dynamic recipe search (filter → WHERE/ORDER BY/LIMIT)
    - RecipeService:     Recipe CRUD, tags, rating, state
    - TagService:        Tag frequency listing
    - ImageService:      Upload pipeline (decode, orient, resize, thumbnail) + image rows
    - FileService:       Storage root I/O (save, delete, walk) with path confinement
    - NoteService:       Recipe notes
    - LinkService:       Symmetric recipe links
    - UserService:       Accounts, passwords, settings, saved filters
    - AuthService:       Token issue/verify, credential check
    - AppConfigService:  Single-row app configuration
    - BackupService:     Zip export of data and uploads
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from recipebox.exceptions import DatabaseError

logger = logging.getLogger(__name__)


@contextmanager
def database_errors(operation: str) -> Iterator[None]:
    """
    Wraps SQLAlchemy failures in DatabaseError.

    Application errors (NotFoundError, ValidationError, ...) pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
        raise DatabaseError(context={"operation": operation, "error": str(e)}) from e
