"""Reader favorites: books and authors."""

import logging

from config.exceptions import NotFoundError
from models.book import Book
from models.database import Database
from models.favorite import FavoriteAuthor, FavoriteBook

logger = logging.getLogger(__name__)


class FavoriteService:
    """Adds, removes and lists a reader's favorite books and authors.

    Adding something already favorited and removing something that is not are
    both quiet no-ops.
    """

    def __init__(self, db: Database):
        self.db = db

    # ---- Books ----

    def add_favorite_book(self, user_id: str, book_id: str) -> bool:
        """Favorite a book; returns False if it already was."""
        book = self.db.get_book(book_id)
        if book is None:
            raise NotFoundError("book", book_id)
        added = self.db.add_favorite_book(
            FavoriteBook(user_id=user_id, book_id=book_id, book_title=book.title)
        )
        if added:
            logger.info("User %s favorited book %s", user_id, book_id)
        else:
            logger.debug("Book %s already in favorites of %s", book_id, user_id)
        return added

    def remove_favorite_book(self, user_id: str, book_id: str) -> bool:
        removed = self.db.remove_favorite_book(user_id, book_id)
        if not removed:
            logger.debug("Book %s not in favorites of %s", book_id, user_id)
        return removed

    def toggle_favorite_book(self, user_id: str, book_id: str) -> bool:
        """Flip the favorite state; returns True if the book is now a favorite."""
        if self.db.is_book_favorited(user_id, book_id):
            self.remove_favorite_book(user_id, book_id)
            return False
        self.add_favorite_book(user_id, book_id)
        return True

    def is_book_favorited(self, user_id: str, book_id: str) -> bool:
        return self.db.is_book_favorited(user_id, book_id)

    def get_favorite_books(self, user_id: str) -> list[FavoriteBook]:
        return self.db.get_favorite_books(user_id)

    def get_favorite_books_with_details(self, user_id: str) -> list[tuple[FavoriteBook, Book]]:
        """Favorites paired with the current book record; vanished books are skipped."""
        pairs = []
        for favorite in self.db.get_favorite_books(user_id):
            book = self.db.get_book(favorite.book_id)
            if book is None:
                logger.debug("Skipping favorite %s: book %s is gone", favorite.id, favorite.book_id)
                continue
            pairs.append((favorite, book))
        return pairs

    # ---- Authors ----

    def add_favorite_author(self, user_id: str, author_id: str, author_name: str) -> bool:
        """Favorite an author; returns False if they already were."""
        added = self.db.add_favorite_author(
            FavoriteAuthor(user_id=user_id, author_id=author_id, author_name=author_name)
        )
        if added:
            logger.info("User %s favorited author %s", user_id, author_id)
        return added

    def remove_favorite_author(self, user_id: str, author_id: str) -> bool:
        return self.db.remove_favorite_author(user_id, author_id)

    def toggle_favorite_author(self, user_id: str, author_id: str, author_name: str) -> bool:
        """Flip the favorite state; returns True if the author is now a favorite."""
        if self.db.is_author_favorited(user_id, author_id):
            self.remove_favorite_author(user_id, author_id)
            return False
        self.add_favorite_author(user_id, author_id, author_name)
        return True

    def is_author_favorited(self, user_id: str, author_id: str) -> bool:
        return self.db.is_author_favorited(user_id, author_id)

    def get_favorite_authors(self, user_id: str) -> list[FavoriteAuthor]:
        return self.db.get_favorite_authors(user_id)
