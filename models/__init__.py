"""Models package: database, record dataclasses, and enums."""

from models.database import Database
from models.book import Book, BookForm
from models.chapter import Chapter, ChapterForm
from models.favorite import FavoriteBook, FavoriteAuthor
from models.profile import UserProfile, ProfileForm
from models.upload import UploadFile
from models.enums import BookStatus, READER_VISIBLE_STATUSES

__all__ = [
    "Database",
    "Book",
    "BookForm",
    "Chapter",
    "ChapterForm",
    "FavoriteBook",
    "FavoriteAuthor",
    "UserProfile",
    "ProfileForm",
    "UploadFile",
    "BookStatus",
    "READER_VISIBLE_STATUSES",
]
