"""
RecipeBox — Error Types
=======================

What:  Every failure a service can report, each tied to one HTTP status.
How:   Classes declare `status_code`, `error_code` and a default message.
       Instances carry a client-safe message plus a `context` dict; the
       handlers in main.py render both into the error envelope
       {error, message, details, request_id}.

    RecipeBoxError                    500  server_error
    ├── ValidationError               400  validation_error
    ├── AuthenticationError           401  unauthorized
    ├── ForbiddenError                403  forbidden
    ├── NotFoundError                 404  not_found
    ├── RateLimitExceededError        429  rate_limit_exceeded
    ├── FileStorageError              500  server_error
    └── DatabaseError                 500  server_error

Request bodies that fail pydantic validation never reach these classes;
FastAPI answers them with its own 422.
"""

from typing import Any, Dict, Optional


class RecipeBoxError(Exception):
    """
    Base class. `message` is shown to the client, `context` is for logs and
    the `details` field of the envelope.
    """

    status_code = 500
    error_code = "server_error"
    default_message = "Something went wrong while handling the request"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context = dict(context or {})
        super().__init__(self.message)


class ValidationError(RecipeBoxError):
    """
    Input that parses but breaks a rule: a body id that disagrees with the
    path, a rating above 5, a text file posted as an image, a taken username.
    """

    status_code = 400
    error_code = "validation_error"
    default_message = "The request is not valid"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.field = field
        if field:
            self.context["field"] = field


class AuthenticationError(RecipeBoxError):
    """No token, a bad token, a token for a deleted user, or wrong credentials."""

    status_code = 401
    error_code = "unauthorized"
    default_message = "Log in to continue"


class ForbiddenError(RecipeBoxError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Your access level does not allow this"


class NotFoundError(RecipeBoxError):
    """
    A recipe, image, note, user, filter or file that isn't there.

    Services raise it with the kind of thing and its id, e.g.
    NotFoundError(resource="recipe", resource_id=12) → "recipe 12 not found".
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, context)
        self.context["resource"] = resource
        if resource_id is not None:
            self.context["resource_id"] = str(resource_id)


class RateLimitExceededError(RecipeBoxError):
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Too many requests; retry in {retry_after}s", context)
        self.retry_after = retry_after
        self.context["retry_after"] = retry_after


class FileStorageError(RecipeBoxError):
    """Reading or writing beneath STORAGE_ROOT failed (disk full, permissions)."""

    default_message = "Could not read or write stored files"


class DatabaseError(RecipeBoxError):
    """
    A SQLAlchemy failure, wrapped by services.database_errors. The statement
    and driver error stay in `context`; clients only see the generic message.
    """

    default_message = "The database could not complete the request"
