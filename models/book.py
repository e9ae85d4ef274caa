"""Book data model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import BookStatus
from models.upload import UploadFile


@dataclass
class Book:
    """Represents an authored work and its denormalized chapter counters."""
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    author_id: str = ""
    author_name: str = ""
    cover_image: Optional[str] = None  # Public URL in the asset store
    genres: list[str] = field(default_factory=list)
    total_chapters: int = 0
    published_chapters: int = 0
    status: BookStatus = BookStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class BookForm:
    """Author-supplied fields for creating a book."""
    title: str = ""
    description: str = ""
    genres: list[str] = field(default_factory=list)
    cover_image: Optional[UploadFile] = None
