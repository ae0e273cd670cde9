"""
RecipeBox — User & Auth Schemas
===============================

Security: password hashes never appear in any response model.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AccessLevel(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class UserResponse(BaseModel):
    id: int
    username: str
    access_level: AccessLevel
    created_at: datetime
    modified_at: datetime

    model_config = {"from_attributes": True}


class UserRequest(BaseModel):
    """PUT /users/{id}. `id`, when sent, must match the path."""
    id: Optional[int] = None
    username: str = Field(min_length=1)
    access_level: AccessLevel


class UserCreateRequest(BaseModel):
    username: str = Field(min_length=1)
    access_level: AccessLevel = AccessLevel.VIEWER
    password: str = Field(min_length=1)


class PasswordChangeRequest(BaseModel):
    """`current_password` is required unless an admin resets someone else's."""
    current_password: Optional[str] = None
    new_password: str = Field(min_length=1)


class UserSettings(BaseModel):
    user_id: Optional[int] = None
    home_title: Optional[str] = None
    home_image_url: Optional[str] = None
    favorite_tags: List[str] = Field(default_factory=list)


class Credentials(BaseModel):
    username: str
    password: str


class AuthenticationResponse(BaseModel):
    token: str = Field(description="Bearer token (JWT, HS256)")
    user: UserResponse
