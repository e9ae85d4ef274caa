"""Tests for the openquill command line."""

import pytest
from click.testing import CliRunner
from rich.console import Console

from cli.main import cli
from cli.theme import QUILL_THEME
from models.book import Book
from models.chapter import Chapter
from models.database import Database
from models.enums import BookStatus


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """Point the CLI at a temp database and return it."""
    db_path = tmp_path / "cli" / "openquill.db"
    monkeypatch.setenv("SQLITE_DB_PATH", str(db_path))
    monkeypatch.setenv("ASSET_ROOT", str(tmp_path / "cli" / "assets"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "cli" / "logs"))
    return Database(db_path)


@pytest.fixture
def runner(monkeypatch):
    # wide console so table cells are not wrapped
    monkeypatch.setattr("cli.main.console", Console(theme=QUILL_THEME, width=200))
    return CliRunner()


@pytest.fixture
def seeded(cli_db):
    live = cli_db.create_book(Book(title="Harbor Lights", description="d", author_id="a1",
                                   status=BookStatus.PUBLISHING))
    cli_db.create_book(Book(title="Secret Draft", description="d", author_id="a1"))
    chapter = cli_db.create_chapter(Chapter(
        book_id=live, title="Landfall",
        content="Hello <script>x()</script><i>sailor</i>\n\nGoodbye", word_count=3,
    ))
    return {"book": live, "chapter": chapter}


class TestBooksCommand:
    def test_lists_only_visible_books(self, runner, seeded):
        result = runner.invoke(cli, ["books"])
        assert result.exit_code == 0
        assert "Harbor Lights" in result.output
        assert "Secret Draft" not in result.output

    def test_author_shelf_includes_drafts(self, runner, seeded):
        result = runner.invoke(cli, ["books", "--author", "a1"])
        assert result.exit_code == 0
        assert "Secret Draft" in result.output

    def test_empty(self, runner, cli_db):
        result = runner.invoke(cli, ["books"])
        assert result.exit_code == 0
        assert "No books found." in result.output


class TestBookCommand:
    def test_shows_chapters(self, runner, seeded):
        result = runner.invoke(cli, ["book", seeded["book"]])
        assert result.exit_code == 0
        assert "Harbor Lights" in result.output
        assert "Landfall" in result.output

    def test_missing_book_exits_nonzero(self, runner, cli_db):
        result = runner.invoke(cli, ["book", "ghost"])
        assert result.exit_code == 1
        assert "Book not found" in result.output


class TestRenderCommand:
    def test_prints_sanitized_html(self, runner, seeded):
        result = runner.invoke(cli, ["render", seeded["chapter"]])
        assert result.exit_code == 0
        assert result.output.strip() == "<p>Hello <i>sailor</i></p><p>Goodbye</p>"

    def test_missing_chapter(self, runner, cli_db):
        result = runner.invoke(cli, ["render", "ghost"])
        assert result.exit_code == 1


class TestFormatCommand:
    def test_formats_stdin(self, runner, cli_db):
        result = runner.invoke(cli, ["format"], input="one\n\ntwo")
        assert result.exit_code == 0
        assert result.output.strip() == "<p>one</p><p>two</p>"

    def test_formats_file(self, runner, cli_db, tmp_path):
        source = tmp_path / "chapter.html"
        source.write_text('<div onclick="x">Hi</div>', encoding="utf-8")
        result = runner.invoke(cli, ["format", str(source)])
        assert result.exit_code == 0
        assert result.output.strip() == "<p>Hi</p>"


class TestRecountCommand:
    def test_repairs_counters(self, runner, cli_db, seeded):
        with cli_db._session(write=True) as conn:
            conn.execute("UPDATE books SET total_chapters = 7 WHERE id = ?", (seeded["book"],))
        result = runner.invoke(cli, ["recount", seeded["book"]])
        assert result.exit_code == 0
        assert "Counters rebuilt" in result.output
        assert cli_db.get_book(seeded["book"]).total_chapters == 1

    def test_missing_book(self, runner, cli_db):
        result = runner.invoke(cli, ["recount", "ghost"])
        assert result.exit_code == 1


class TestConfiguration:
    def test_invalid_settings_exit_nonzero(self, runner, cli_db, monkeypatch):
        monkeypatch.setenv("MAX_IMAGE_BYTES", "0")
        result = runner.invoke(cli, ["books"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "max_image_bytes" in result.output


class TestMarkupInUserText:
    @pytest.fixture
    def bracket_book(self, cli_db):
        book_id = cli_db.create_book(Book(title="Notes [/draft]", description="[bold]raw[/bold]",
                                          author_id="a1", author_name="[red]Ann",
                                          genres=["[x]"], status=BookStatus.PUBLISHING))
        cli_db.create_chapter(Chapter(book_id=book_id, title="Part [1]"))
        return book_id

    def test_listing_prints_brackets_literally(self, runner, bracket_book):
        result = runner.invoke(cli, ["books"])
        assert result.exit_code == 0
        assert "Notes [/draft]" in result.output

    def test_detail_prints_brackets_literally(self, runner, bracket_book):
        result = runner.invoke(cli, ["book", bracket_book])
        assert result.exit_code == 0
        assert "Notes [/draft]" in result.output
        assert "[bold]raw[/bold]" in result.output
        assert "Part [1]" in result.output
