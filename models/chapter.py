"""Chapter data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Chapter:
    """Represents a single, independently publishable chapter."""
    id: Optional[str] = None
    book_id: str = ""
    chapter_number: int = 0  # Ordering key; gaps remain after deletions
    title: str = ""
    content: str = ""  # HTML subset from the chapter editor
    word_count: int = 0
    is_published: bool = False
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ChapterForm:
    """Author-supplied fields for a chapter."""
    title: str = ""
    content: str = ""
