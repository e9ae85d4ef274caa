"""Shared pytest fixtures for the openquill test suite."""

import pytest


# ---------------------------------------------------------------------------
# Database / storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_openquill.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


@pytest.fixture
def assets(tmp_path):
    """Return an AssetStore rooted in tmp_path."""
    from storage.asset_store import AssetStore
    return AssetStore(tmp_path / "assets", "https://cdn.test/assets/")


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "openquill.db",
        asset_root=tmp_path / "assets",
        asset_base_url="https://cdn.test/assets",
        log_dir=tmp_path / "logs",
        max_image_bytes=1024,
    )


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def book_service(db, assets, settings):
    from services.book_service import BookService
    return BookService(db, assets, settings)


@pytest.fixture
def favorite_service(db):
    from services.favorite_service import FavoriteService
    return FavoriteService(db)


@pytest.fixture
def profile_service(db, assets, settings):
    from services.profile_service import ProfileService
    return ProfileService(db, assets, settings)


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

AUTHOR_ID = "author-1"
READER_ID = "reader-1"


@pytest.fixture
def png_upload():
    """Return a small PNG upload well under the size limit."""
    from models.upload import UploadFile
    return UploadFile(filename="cover.png", content_type="image/png", data=b"\x89PNG\r\n\x1a\n" + b"0" * 64)


@pytest.fixture
def sample_book(db):
    """Insert and return a sample draft Book record."""
    from models.book import Book
    book = Book(
        title="The Lantern Road",
        description="A courier crosses a country that keeps moving.",
        author_id=AUTHOR_ID,
        author_name="Mara Quill",
        genres=["Fantasy", "Adventure"],
    )
    book.id = db.create_book(book)
    return db.get_book(book.id)


@pytest.fixture
def sample_chapter(db, sample_book):
    """Insert and return a sample unpublished Chapter record."""
    from models.chapter import Chapter
    chapter = Chapter(
        book_id=sample_book.id,
        title="Departure",
        content="<p>The road was <b>waiting</b>.</p>",
        word_count=4,
    )
    chapter_id = db.create_chapter(chapter)
    return db.get_chapter(chapter_id)
