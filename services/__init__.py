"""Services package: book, favorite and profile operations."""

from services.book_service import BookService
from services.favorite_service import FavoriteService
from services.profile_service import ProfileService, normalize_username

__all__ = [
    "BookService",
    "FavoriteService",
    "ProfileService",
    "normalize_username",
]
