"""SQLite document store: books, chapters, profiles, favorites.

Chapter lifecycle writes (create, publish, unpublish, delete) update the
owning book's ``total_chapters``/``published_chapters`` inside the same
transaction as the chapter write, so the counters cannot drift.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Sequence

from config.exceptions import DatabaseError, NotFoundError, UsernameTakenError
from models.book import Book
from models.chapter import Chapter
from models.enums import BookStatus
from models.favorite import FavoriteAuthor, FavoriteBook
from models.profile import UserProfile

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    uid TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL DEFAULT '',
    display_name TEXT NOT NULL DEFAULT '',
    profile_pic TEXT,
    bio TEXT DEFAULT '',
    location TEXT DEFAULT '',
    social_links TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    author_id TEXT NOT NULL,
    author_name TEXT NOT NULL DEFAULT '',
    cover_image TEXT,
    genres TEXT,
    total_chapters INTEGER NOT NULL DEFAULT 0 CHECK (total_chapters >= 0),
    published_chapters INTEGER NOT NULL DEFAULT 0
        CHECK (published_chapters >= 0 AND published_chapters <= total_chapters),
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'publishing', 'completed')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chapters (
    id TEXT PRIMARY KEY,
    book_id TEXT NOT NULL REFERENCES books(id),
    chapter_number INTEGER NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    word_count INTEGER NOT NULL DEFAULT 0,
    is_published INTEGER NOT NULL DEFAULT 0,
    published_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS favorite_books (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    book_id TEXT NOT NULL,
    book_title TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    UNIQUE (user_id, book_id)
);

CREATE TABLE IF NOT EXISTS favorite_authors (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    author_id TEXT NOT NULL,
    author_name TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    UNIQUE (user_id, author_id)
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_chapters_book_number ON chapters(book_id, chapter_number)",
    "CREATE INDEX IF NOT EXISTS idx_chapters_book_published ON chapters(book_id, is_published)",
    "CREATE INDEX IF NOT EXISTS idx_books_author_updated ON books(author_id, updated_at)",
    "CREATE INDEX IF NOT EXISTS idx_books_status_updated ON books(status, updated_at)",
    "CREATE INDEX IF NOT EXISTS idx_favorite_books_user ON favorite_books(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_favorite_authors_user ON favorite_authors(user_id)",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _new_id() -> str:
    return uuid.uuid4().hex


class Database:
    """SQLite database manager for books, chapters and reader data."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @staticmethod
    def new_id() -> str:
        """Return a fresh document id."""
        return _new_id()

    def _get_conn(self) -> sqlite3.Connection:
        # Autocommit mode; _session opens transactions explicitly
        conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _session(self, write: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection; ``write`` wraps the block in one IMMEDIATE transaction.

        ``sqlite3.Error`` is re-raised as :class:`DatabaseError`; any other
        exception rolls the transaction back and propagates unchanged.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open database: {e}", {"path": str(self.db_path)}) from e
        try:
            if write:
                conn.execute("BEGIN IMMEDIATE")
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error("Database operation failed: %s", e)
            raise DatabaseError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _init_db(self):
        with self._session() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._session() as conn:
            for sql in _MIGRATION_SQL:
                conn.execute(sql)

    # ---- Book CRUD ----

    def create_book(self, book: Book) -> str:
        book_id = book.id or _new_id()
        now = _now()
        with self._session(write=True) as conn:
            conn.execute(
                "INSERT INTO books (id, title, description, author_id, author_name, "
                "cover_image, genres, total_chapters, published_chapters, status, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, ?, ?, ?)",
                (book_id, book.title, book.description, book.author_id,
                 book.author_name, book.cover_image, json.dumps(book.genres),
                 book.status.value, now, now),
            )
        return book_id

    def get_book(self, book_id: str) -> Optional[Book]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if not row:
                return None
            return self._row_to_book(row)

    def update_book(self, book: Book):
        """Write the author-editable fields of a book.

        Chapter counters are not written here; only the chapter lifecycle
        methods below change them.
        """
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "UPDATE books SET title=?, description=?, genres=?, cover_image=?, "
                "status=?, updated_at=? WHERE id=?",
                (book.title, book.description, json.dumps(book.genres),
                 book.cover_image, book.status.value, _now(), book.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("book", book.id or "")

    def set_book_status(self, book_id: str, status: BookStatus):
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "UPDATE books SET status=?, updated_at=? WHERE id=?",
                (status.value, _now(), book_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("book", book_id)

    def delete_book(self, book_id: str) -> Optional[Book]:
        """Delete a book, its chapters and favorites pointing at it.

        Returns the deleted book (so the caller can release its cover), or
        None when it did not exist.
        """
        with self._session(write=True) as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if not row:
                return None
            chapters = conn.execute("DELETE FROM chapters WHERE book_id = ?", (book_id,)).rowcount
            conn.execute("DELETE FROM favorite_books WHERE book_id = ?", (book_id,))
            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        logger.info("Book %s and %d chapters deleted", book_id, chapters)
        return self._row_to_book(row)

    def list_books(
        self,
        author_id: Optional[str] = None,
        statuses: Optional[Sequence[BookStatus]] = None,
    ) -> list[Book]:
        """List books, newest update first, optionally filtered by author and status."""
        clauses, params = [], []
        if author_id is not None:
            clauses.append("author_id = ?")
            params.append(author_id)
        if statuses is not None:
            if not statuses:
                return []
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(s.value for s in statuses)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT * FROM books {where} ORDER BY updated_at DESC, rowid DESC",
                params,
            ).fetchall()
            return [self._row_to_book(r) for r in rows]

    def _row_to_book(self, row) -> Book:
        return Book(
            id=row["id"], title=row["title"], description=row["description"],
            author_id=row["author_id"], author_name=row["author_name"],
            cover_image=row["cover_image"],
            genres=json.loads(row["genres"]) if row["genres"] else [],
            total_chapters=row["total_chapters"],
            published_chapters=row["published_chapters"],
            status=BookStatus(row["status"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    # ---- Chapter reads ----

    def get_chapter(self, chapter_id: str) -> Optional[Chapter]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM chapters WHERE id = ?", (chapter_id,)).fetchone()
            if not row:
                return None
            return self._row_to_chapter(row)

    def get_chapters(self, book_id: str, published_only: bool = False) -> list[Chapter]:
        with self._session() as conn:
            if published_only:
                rows = conn.execute(
                    "SELECT * FROM chapters WHERE book_id = ? AND is_published = 1 "
                    "ORDER BY chapter_number",
                    (book_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM chapters WHERE book_id = ? ORDER BY chapter_number",
                    (book_id,),
                ).fetchall()
            return [self._row_to_chapter(r) for r in rows]

    def update_chapter(self, chapter: Chapter):
        """Write title, content and word count. Publication state is untouched."""
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "UPDATE chapters SET title=?, content=?, word_count=?, updated_at=? WHERE id=?",
                (chapter.title, chapter.content, chapter.word_count, _now(), chapter.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("chapter", chapter.id or "")

    def _row_to_chapter(self, row) -> Chapter:
        return Chapter(
            id=row["id"], book_id=row["book_id"],
            chapter_number=row["chapter_number"], title=row["title"],
            content=row["content"], word_count=row["word_count"],
            is_published=bool(row["is_published"]),
            published_at=_parse_ts(row["published_at"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    # ---- Chapter lifecycle (keeps book counters in sync) ----

    def create_chapter(self, chapter: Chapter) -> str:
        """Insert an unpublished chapter and bump the book's total_chapters.

        A ``chapter_number`` of 0 or less is replaced by the next free number.
        """
        chapter_id = chapter.id or _new_id()
        now = _now()
        with self._session(write=True) as conn:
            if not conn.execute("SELECT 1 FROM books WHERE id = ?", (chapter.book_id,)).fetchone():
                raise NotFoundError("book", chapter.book_id)
            number = chapter.chapter_number
            if number <= 0:
                row = conn.execute(
                    "SELECT COALESCE(MAX(chapter_number), 0) + 1 AS next_ch "
                    "FROM chapters WHERE book_id = ?",
                    (chapter.book_id,),
                ).fetchone()
                number = row["next_ch"]
            conn.execute(
                "INSERT INTO chapters (id, book_id, chapter_number, title, content, "
                "word_count, is_published, published_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, 0, NULL, ?, ?)",
                (chapter_id, chapter.book_id, number, chapter.title,
                 chapter.content, chapter.word_count, now, now),
            )
            conn.execute(
                "UPDATE books SET total_chapters = total_chapters + 1, updated_at = ? "
                "WHERE id = ?",
                (now, chapter.book_id),
            )
        logger.debug("Chapter %s created as #%d of book %s", chapter_id, number, chapter.book_id)
        return chapter_id

    def publish_chapter(self, chapter_id: str) -> bool:
        """Mark a chapter published and bump published_chapters.

        Returns False (and changes nothing) if it was already published.
        """
        now = _now()
        with self._session(write=True) as conn:
            row = conn.execute(
                "SELECT book_id, is_published FROM chapters WHERE id = ?", (chapter_id,)
            ).fetchone()
            if not row:
                raise NotFoundError("chapter", chapter_id)
            if row["is_published"]:
                return False
            conn.execute(
                "UPDATE chapters SET is_published = 1, published_at = ?, updated_at = ? "
                "WHERE id = ?",
                (now, now, chapter_id),
            )
            conn.execute(
                "UPDATE books SET published_chapters = MIN(total_chapters, published_chapters + 1), "
                "updated_at = ? WHERE id = ?",
                (now, row["book_id"]),
            )
        return True

    def unpublish_chapter(self, chapter_id: str) -> bool:
        """Mark a chapter unpublished and decrement published_chapters (floored at 0).

        Returns False (and changes nothing) if it was not published.
        """
        now = _now()
        with self._session(write=True) as conn:
            row = conn.execute(
                "SELECT book_id, is_published FROM chapters WHERE id = ?", (chapter_id,)
            ).fetchone()
            if not row:
                raise NotFoundError("chapter", chapter_id)
            if not row["is_published"]:
                return False
            conn.execute(
                "UPDATE chapters SET is_published = 0, published_at = NULL, updated_at = ? "
                "WHERE id = ?",
                (now, chapter_id),
            )
            conn.execute(
                "UPDATE books SET published_chapters = "
                "MIN(total_chapters, MAX(0, published_chapters - 1)), "
                "updated_at = ? WHERE id = ?",
                (now, row["book_id"]),
            )
        return True

    def delete_chapter(self, chapter_id: str) -> Chapter:
        """Delete a chapter and decrement the book's counters (floored at 0)."""
        with self._session(write=True) as conn:
            row = conn.execute("SELECT * FROM chapters WHERE id = ?", (chapter_id,)).fetchone()
            if not row:
                raise NotFoundError("chapter", chapter_id)
            was_published = 1 if row["is_published"] else 0
            conn.execute("DELETE FROM chapters WHERE id = ?", (chapter_id,))
            # SET expressions all read the pre-update row
            conn.execute(
                "UPDATE books SET total_chapters = MAX(0, total_chapters - 1), "
                "published_chapters = MIN(MAX(0, total_chapters - 1), "
                "MAX(0, published_chapters - ?)), updated_at = ? WHERE id = ?",
                (was_published, _now(), row["book_id"]),
            )
        return self._row_to_chapter(row)

    def recount_chapters(self, book_id: str) -> tuple[int, int]:
        """Recompute a book's counters from its live chapter rows.

        Returns:
            (total_chapters, published_chapters) after the repair.
        """
        with self._session(write=True) as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(is_published), 0) AS published "
                "FROM chapters WHERE book_id = ?",
                (book_id,),
            ).fetchone()
            cursor = conn.execute(
                "UPDATE books SET total_chapters = ?, published_chapters = ? WHERE id = ?",
                (row["total"], row["published"], book_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("book", book_id)
        return row["total"], row["published"]

    # ---- Profile CRUD ----

    def create_profile(self, profile: UserProfile):
        with self._session(write=True) as conn:
            try:
                conn.execute(
                    "INSERT INTO users (uid, username, email, display_name, profile_pic, "
                    "bio, location, social_links, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (profile.uid, profile.username.lower(), profile.email,
                     profile.display_name, profile.profile_pic, profile.bio,
                     profile.location, json.dumps(profile.social_links), _now()),
                )
            except sqlite3.IntegrityError as e:
                if "username" in str(e):
                    raise UsernameTakenError(profile.username) from e
                raise

    def get_profile(self, uid: str) -> Optional[UserProfile]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE uid = ?", (uid,)).fetchone()
            return self._row_to_profile(row) if row else None

    def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ?", (username.lower(),)
            ).fetchone()
            return self._row_to_profile(row) if row else None

    def update_profile(self, profile: UserProfile):
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "UPDATE users SET display_name=?, profile_pic=?, bio=?, location=?, "
                "social_links=?, updated_at=? WHERE uid=?",
                (profile.display_name, profile.profile_pic, profile.bio,
                 profile.location, json.dumps(profile.social_links), _now(),
                 profile.uid),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("profile", profile.uid)

    def _row_to_profile(self, row) -> UserProfile:
        return UserProfile(
            uid=row["uid"], username=row["username"], email=row["email"],
            display_name=row["display_name"] or row["username"],
            profile_pic=row["profile_pic"], bio=row["bio"] or "",
            location=row["location"] or "",
            social_links=json.loads(row["social_links"]) if row["social_links"] else {},
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    # ---- Favorites ----

    def add_favorite_book(self, favorite: FavoriteBook) -> bool:
        """Insert a favorite; returns False if the user already had it."""
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO favorite_books (id, user_id, book_id, book_title, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (favorite.id or _new_id(), favorite.user_id, favorite.book_id,
                 favorite.book_title, _now()),
            )
            return cursor.rowcount == 1

    def remove_favorite_book(self, user_id: str, book_id: str) -> bool:
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "DELETE FROM favorite_books WHERE user_id = ? AND book_id = ?",
                (user_id, book_id),
            )
            return cursor.rowcount > 0

    def is_book_favorited(self, user_id: str, book_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute(
                "SELECT 1 FROM favorite_books WHERE user_id = ? AND book_id = ?",
                (user_id, book_id),
            ).fetchone()
            return row is not None

    def get_favorite_books(self, user_id: str) -> list[FavoriteBook]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM favorite_books WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
            return [
                FavoriteBook(
                    id=r["id"], user_id=r["user_id"], book_id=r["book_id"],
                    book_title=r["book_title"], created_at=_parse_ts(r["created_at"]),
                )
                for r in rows
            ]

    def add_favorite_author(self, favorite: FavoriteAuthor) -> bool:
        """Insert a favorite author; returns False if the user already had it."""
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO favorite_authors (id, user_id, author_id, author_name, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (favorite.id or _new_id(), favorite.user_id, favorite.author_id,
                 favorite.author_name, _now()),
            )
            return cursor.rowcount == 1

    def remove_favorite_author(self, user_id: str, author_id: str) -> bool:
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "DELETE FROM favorite_authors WHERE user_id = ? AND author_id = ?",
                (user_id, author_id),
            )
            return cursor.rowcount > 0

    def is_author_favorited(self, user_id: str, author_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute(
                "SELECT 1 FROM favorite_authors WHERE user_id = ? AND author_id = ?",
                (user_id, author_id),
            ).fetchone()
            return row is not None

    def get_favorite_authors(self, user_id: str) -> list[FavoriteAuthor]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM favorite_authors WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
            return [
                FavoriteAuthor(
                    id=r["id"], user_id=r["user_id"], author_id=r["author_id"],
                    author_name=r["author_name"], created_at=_parse_ts(r["created_at"]),
                )
                for r in rows
            ]
