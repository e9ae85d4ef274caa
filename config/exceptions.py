"""Custom exception hierarchy for the publishing core."""

from typing import Optional


class QuillError(Exception):
    """Base exception for all OpenQuill errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Lookup Errors ----

class NotFoundError(QuillError):
    """Referenced book, chapter or profile does not exist."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind.capitalize()} not found", {f"{kind}_id": identifier})
        self.kind = kind
        self.identifier = identifier


# ---- Permission Errors ----

class PermissionDeniedError(QuillError):
    """Edit attempted by a user who does not own the resource."""

    def __init__(self, actor_id: str, resource: str):
        super().__init__(
            "You do not have permission to modify this resource",
            {"actor_id": actor_id, "resource": resource},
        )
        self.actor_id = actor_id
        self.resource = resource


# ---- Backend Errors ----

class BackendError(QuillError):
    """Opaque failure from the database or object storage layer."""


class DatabaseError(BackendError):
    """Database operation failed."""


class StorageError(BackendError):
    """Object storage operation failed."""


# ---- Validation Errors ----

class ValidationError(QuillError):
    """Input validation failed."""


class ImageValidationError(ValidationError):
    """Uploaded image has the wrong type or is too large."""

    def __init__(self, message: str, content_type: str = "", size: int = 0):
        super().__init__(message, {"content_type": content_type, "size": size})
        self.content_type = content_type
        self.size = size


class UsernameTakenError(ValidationError):
    """Requested username already belongs to another profile."""

    def __init__(self, username: str):
        super().__init__("Username is already taken", {"username": username})
        self.username = username


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""
