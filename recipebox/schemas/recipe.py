"""
RecipeBox — Recipe, Image, Note Schemas
=======================================

What:  Pydantic models for the recipe API contract.
Why:   API contracts change independently of the database schema, and
       request bodies need different optionality than responses
       (a client never sends created_at).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from recipebox.schemas.search import RecipeState


class RecipeRequest(BaseModel):
    """
    Body of POST/PUT /recipes.

    `id` may be sent on PUT; if present it must match the path id.
    """
    id: Optional[int] = Field(default=None, description="Must match the path id on update")
    name: str = Field(min_length=1, description="Recipe name")
    serving_size: str = ""
    nutrition_info: str = ""
    ingredients: str = ""
    directions: str = ""
    storage_instructions: str = ""
    source_url: str = ""
    tags: List[str] = Field(default_factory=list)


class RecipeResponse(BaseModel):
    id: int
    name: str
    serving_size: str
    nutrition_info: str
    ingredients: str
    directions: str
    storage_instructions: str
    source_url: str
    tags: List[str]
    state: RecipeState
    created_at: datetime
    modified_at: datetime


class RecipeImageResponse(BaseModel):
    id: int
    recipe_id: int
    name: str
    url: str = Field(description="Public path of the full-size image")
    thumbnail_url: str = Field(description="Public path of the square thumbnail")
    created_at: datetime
    modified_at: datetime

    model_config = {"from_attributes": True}


class NoteRequest(BaseModel):
    id: Optional[int] = Field(default=None, description="Must match the path id on update")
    recipe_id: Optional[int] = Field(default=None, description="Must match the path recipe id")
    text: str = Field(min_length=1)


class NoteResponse(BaseModel):
    id: int
    recipe_id: int
    text: str
    created_at: datetime
    modified_at: datetime
