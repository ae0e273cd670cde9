# Routes package init
"""
RecipeBox — API Routes Package
==============================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource. Everything is mounted under
       API_PREFIX except /health and the read-only /uploads file server.

Route Inventory:
    - auth.py:        POST /auth
    - app_config.py:  GET /app/info, GET|PUT /app/configuration
    - recipes.py:     /recipes (find + CRUD), /recipes/{id}/state, /rating
    - images.py:      /recipes/{id}/images, /recipes/{id}/image
    - notes.py:       /recipes/{id}/notes
    - links.py:       /recipes/{id}/links
    - tags.py:        GET /tags
    - uploads.py:     POST /uploads, GET /uploads/{path}
    - users.py:       /users, /users/{id}/..., /users/current/...
    - backups.py:     POST /backups
    - health.py:      GET /health

Design Principle:
    Routes are THIN. They pull data out of the request, check that body ids
    agree with path ids, call a service, and pick the status code.
    Business logic belongs in services.

Status codes:
    201 + Location  resource created
    204             update or delete succeeded
"""

from typing import Optional

from recipebox.exceptions import ValidationError

API_PREFIX = "/api/v1"


def ensure_matching_id(body_id: Optional[int], path_id: int, field: str = "id") -> None:
    """A body id is optional, but when present it must equal the path id."""
    if body_id is not None and body_id != path_id:
        raise ValidationError(
            message=f"The {field} in the body ({body_id}) does not match the path ({path_id})",
            field=field,
        )
