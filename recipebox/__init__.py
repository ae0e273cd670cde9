"""
RecipeBox — Application Package Initializer
===========================================

What: Marks the `recipebox` directory as a Python package.
Why:  Enables module imports like `from recipebox.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth guards
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Search, CRUD drivers, image pipeline
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch SQL directly; services never touch HTTP objects.
"""

__version__ = "1.0.0"
__copyright__ = "Copyright © 2024 RecipeBox contributors"
