"""Enumerations for publication state tracking."""

from enum import Enum


class BookStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHING = "publishing"
    COMPLETED = "completed"


# Statuses a reader is allowed to see in listings
READER_VISIBLE_STATUSES = (BookStatus.PUBLISHING, BookStatus.COMPLETED)
