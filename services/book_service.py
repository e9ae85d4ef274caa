"""Book and chapter operations for authors and readers.

Authors own their books; every mutating call takes the acting user's id and
is rejected for anyone else. Book status (draft/publishing/completed) and
per-chapter publication are independent of each other: a draft book may
hold published chapters and a published book may have none.
"""

import logging
from typing import Optional

from config.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    QuillError,
    ValidationError,
)
from config.settings import Settings
from models.book import Book, BookForm
from models.chapter import Chapter, ChapterForm
from models.database import Database
from models.enums import BookStatus, READER_VISIBLE_STATUSES
from models.upload import UploadFile
from storage.asset_store import AssetStore, validate_image_file
from tools.content_formatter import format_content
from tools.text_utils import count_content_words

logger = logging.getLogger(__name__)


class BookService:
    """Author and reader operations over books and chapters."""

    def __init__(self, db: Database, assets: AssetStore, settings: Settings):
        self.db = db
        self.assets = assets
        self.settings = settings

    # ---- Helpers ----

    def _require_book(self, book_id: str) -> Book:
        book = self.db.get_book(book_id)
        if book is None:
            raise NotFoundError("book", book_id)
        return book

    def _require_chapter(self, chapter_id: str) -> Chapter:
        chapter = self.db.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError("chapter", chapter_id)
        return chapter

    def _require_owner(self, book: Book, actor_id: str):
        if book.author_id != actor_id:
            raise PermissionDeniedError(actor_id, f"book:{book.id}")

    def _owned_chapter(self, chapter_id: str, actor_id: str) -> Chapter:
        chapter = self._require_chapter(chapter_id)
        self._require_owner(self._require_book(chapter.book_id), actor_id)
        return chapter

    def _validate_image(self, file: UploadFile):
        validate_image_file(file, self.settings.max_image_bytes, self.settings.allowed_image_types)

    @staticmethod
    def _clean_genres(genres: list[str]) -> list[str]:
        seen: list[str] = []
        for genre in genres:
            genre = genre.strip()
            if genre and genre not in seen:
                seen.append(genre)
        return seen

    # ---- Books ----

    def create_book(self, author_id: str, author_name: str, form: BookForm) -> str:
        """Create a draft book, uploading its cover first if one is given.

        The cover is stored before the record is written, so a failed upload
        leaves nothing behind.
        """
        title, description = form.title.strip(), form.description.strip()
        if not title:
            raise ValidationError("Book title is required")
        if not description:
            raise ValidationError("Book description is required")
        if form.cover_image is not None:
            self._validate_image(form.cover_image)

        book = Book(
            title=title,
            description=description,
            author_id=author_id,
            author_name=author_name,
            genres=self._clean_genres(form.genres),
            status=BookStatus.DRAFT,
        )
        book.id = Database.new_id()
        if form.cover_image is not None:
            book.cover_image = self.assets.upload_book_cover(form.cover_image, book.id, author_id)

        try:
            book_id = self.db.create_book(book)
        except DatabaseError:
            if book.cover_image:
                self.assets.discard(book.cover_image)
            raise
        logger.info("Book %s created by %s: %s", book_id, author_id, title)
        return book_id

    def update_book(
        self,
        book_id: str,
        actor_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        genres: Optional[list[str]] = None,
        cover_image: Optional[UploadFile] = None,
    ) -> Book:
        """Apply the given edits; fields left as None keep their value.

        A new cover replaces the old one: the upload must succeed for the
        update to happen, the old file is then removed best-effort.
        """
        book = self._require_book(book_id)
        self._require_owner(book, actor_id)

        if title is not None:
            if not title.strip():
                raise ValidationError("Book title is required")
            book.title = title.strip()
        if description is not None:
            if not description.strip():
                raise ValidationError("Book description is required")
            book.description = description.strip()
        if genres is not None:
            book.genres = self._clean_genres(genres)

        old_cover = None
        if cover_image is not None:
            self._validate_image(cover_image)
            old_cover = book.cover_image
            book.cover_image = self.assets.upload_book_cover(cover_image, book_id, actor_id)

        try:
            self.db.update_book(book)
        except QuillError:
            if cover_image is not None and book.cover_image:
                self.assets.discard(book.cover_image)
            raise
        if old_cover:
            self.assets.discard(old_cover)
        logger.info("Book %s updated by %s", book_id, actor_id)
        return self._require_book(book_id)

    def delete_book(self, book_id: str, actor_id: str):
        """Delete the chapters, then the book, then release the cover."""
        book = self._require_book(book_id)
        self._require_owner(book, actor_id)
        deleted = self.db.delete_book(book_id)
        if deleted is not None and deleted.cover_image:
            self.assets.discard(deleted.cover_image)

    def publish_book(self, book_id: str, actor_id: str):
        self._set_status(book_id, actor_id, BookStatus.PUBLISHING)

    def unpublish_book(self, book_id: str, actor_id: str):
        self._set_status(book_id, actor_id, BookStatus.DRAFT)

    def _set_status(self, book_id: str, actor_id: str, status: BookStatus):
        book = self._require_book(book_id)
        self._require_owner(book, actor_id)
        if book.status == BookStatus.COMPLETED:
            raise ValidationError("Completed books cannot change status", {"book_id": book_id})
        if book.status == status:
            logger.debug("Book %s already %s", book_id, status.value)
            return
        self.db.set_book_status(book_id, status)
        logger.info("Book %s status %s -> %s", book_id, book.status.value, status.value)

    def get_book(self, book_id: str) -> Book:
        return self._require_book(book_id)

    def list_user_books(self, author_id: str) -> list[Book]:
        """All of an author's books, any status, most recently updated first."""
        return self.db.list_books(author_id=author_id)

    def list_published_books(self, author_id: Optional[str] = None) -> list[Book]:
        """Books readers may see: status publishing or completed.

        Filtering is on the book record only; how many chapters are actually
        published does not matter.
        """
        return self.db.list_books(author_id=author_id, statuses=READER_VISIBLE_STATUSES)

    # ---- Chapters ----

    def create_chapter(self, book_id: str, actor_id: str, form: ChapterForm) -> str:
        """Append an unpublished chapter after the current last one."""
        title, content = form.title.strip(), form.content
        if not title:
            raise ValidationError("Chapter title is required")
        if not content or not content.strip():
            raise ValidationError("Chapter content is required")
        book = self._require_book(book_id)
        self._require_owner(book, actor_id)

        chapter = Chapter(
            book_id=book_id,
            chapter_number=0,  # next free number, assigned in the same transaction
            title=title,
            content=content,
            word_count=count_content_words(content),
        )
        chapter_id = self.db.create_chapter(chapter)
        logger.info("Chapter %s added to book %s", chapter_id, book_id)
        return chapter_id

    def update_chapter(
        self,
        chapter_id: str,
        actor_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Chapter:
        chapter = self._owned_chapter(chapter_id, actor_id)
        if title is not None:
            if not title.strip():
                raise ValidationError("Chapter title is required")
            chapter.title = title.strip()
        if content is not None:
            if not content.strip():
                raise ValidationError("Chapter content is required")
            chapter.content = content
            chapter.word_count = count_content_words(content)
        self.db.update_chapter(chapter)
        return self._require_chapter(chapter_id)

    def publish_chapter(self, chapter_id: str, actor_id: str) -> bool:
        """Publish a chapter. Returns False if it was already published."""
        self._owned_chapter(chapter_id, actor_id)
        changed = self.db.publish_chapter(chapter_id)
        if changed:
            logger.info("Chapter %s published", chapter_id)
        else:
            logger.debug("Chapter %s already published", chapter_id)
        return changed

    def unpublish_chapter(self, chapter_id: str, actor_id: str) -> bool:
        """Unpublish a chapter. Returns False if it was not published."""
        self._owned_chapter(chapter_id, actor_id)
        changed = self.db.unpublish_chapter(chapter_id)
        if changed:
            logger.info("Chapter %s unpublished", chapter_id)
        else:
            logger.debug("Chapter %s already unpublished", chapter_id)
        return changed

    def delete_chapter(self, chapter_id: str, actor_id: str):
        self._owned_chapter(chapter_id, actor_id)
        deleted = self.db.delete_chapter(chapter_id)
        logger.info("Chapter %s (#%d) deleted from book %s",
                    chapter_id, deleted.chapter_number, deleted.book_id)

    def get_chapter(self, chapter_id: str) -> Chapter:
        return self._require_chapter(chapter_id)

    def get_book_chapters(self, book_id: str) -> list[Chapter]:
        """Every chapter of a book in chapter-number order (author view)."""
        return self.db.get_chapters(book_id)

    def get_published_chapters(self, book_id: str) -> list[Chapter]:
        """Published chapters of a book in chapter-number order (reader view)."""
        return self.db.get_chapters(book_id, published_only=True)

    def render_chapter(self, chapter_id: str) -> str:
        """Formatted, display-safe HTML for a chapter's content."""
        return format_content(self._require_chapter(chapter_id).content)

    def recount_chapters(self, book_id: str) -> tuple[int, int]:
        """Rebuild a book's counters from its chapters; returns (total, published)."""
        before = self._require_book(book_id)
        total, published = self.db.recount_chapters(book_id)
        if (total, published) != (before.total_chapters, before.published_chapters):
            logger.warning(
                "Book %s counters repaired: total %d -> %d, published %d -> %d",
                book_id, before.total_chapters, total, before.published_chapters, published,
            )
        return total, published
