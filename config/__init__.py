"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    QuillError,
    NotFoundError,
    PermissionDeniedError,
    BackendError,
    DatabaseError,
    StorageError,
    ValidationError,
    ImageValidationError,
    UsernameTakenError,
    InvalidConfigError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "QuillError",
    "NotFoundError",
    "PermissionDeniedError",
    "BackendError",
    "DatabaseError",
    "StorageError",
    "ValidationError",
    "ImageValidationError",
    "UsernameTakenError",
    "InvalidConfigError",
]
