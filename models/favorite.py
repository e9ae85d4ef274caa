"""Favorite book and favorite author models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class FavoriteBook:
    id: Optional[str] = None
    user_id: str = ""
    book_id: str = ""
    book_title: str = ""  # Snapshot taken when favorited
    created_at: Optional[datetime] = None


@dataclass
class FavoriteAuthor:
    id: Optional[str] = None
    user_id: str = ""
    author_id: str = ""
    author_name: str = ""
    created_at: Optional[datetime] = None
