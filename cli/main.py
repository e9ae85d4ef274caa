"""CLI entry point: OpenQuill operator console.

Usage:
  openquill books                 list books visible to readers
  openquill books -a AUTHOR_ID    list one author's shelf (all statuses)
  openquill book BOOK_ID          book detail and chapter table
  openquill render CHAPTER_ID     print a chapter's formatted HTML
  openquill format FILE           format an HTML file (or - for stdin)
  openquill recount BOOK_ID       rebuild a book's chapter counters
"""

import logging
import sys

import click
from pydantic import ValidationError as PydanticValidationError
from rich.markup import escape

from cli.theme import (
    get_console,
    app_header,
    book_table,
    book_summary_panel,
    chapter_table,
    success_panel,
)
from config.exceptions import InvalidConfigError, QuillError
from config.logging_config import setup_logging
from config.settings import Settings
from models.database import Database
from services.book_service import BookService
from storage.asset_store import AssetStore
from tools.content_formatter import format_content
from tools.text_utils import count_content_words

console = get_console()


def _load_settings() -> Settings:
    try:
        return Settings()
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise InvalidConfigError("Invalid configuration", {"fields": fields}) from e


def _init_logging(settings: Settings, verbose: bool):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def _book_service(settings: Settings) -> BookService:
    db = Database(settings.sqlite_db_path)
    assets = AssetStore(settings.asset_root, settings.asset_base_url)
    return BookService(db, assets, settings)


def _fail(err: QuillError):
    console.print(f"[error]{escape(str(err))}[/]")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose):
    """OpenQuill: self-publishing platform core.

    \b
    Inspect books and chapters, render chapter content and
    repair chapter counters from the command line.
    """
    try:
        ctx.obj = _load_settings()
    except InvalidConfigError as e:
        _fail(e)
    _init_logging(ctx.obj, verbose)


@cli.command()
@click.option("--author", "-a", "author_id", default=None, help="Show every book of this author")
@click.pass_obj
def books(settings, author_id):
    """List books.

    \b
    Without --author only books readers can see (publishing or
    completed) are listed.
    """
    service = _book_service(settings)
    console.print(app_header())
    console.print()

    if author_id:
        found = service.list_user_books(author_id)
        title = f"Books by {escape(author_id)}"
    else:
        found = service.list_published_books()
        title = "Published books"

    if not found:
        console.print("[warning]No books found.[/]")
        return
    console.print(book_table(found, title=title))


@cli.command()
@click.argument("book_id")
@click.pass_obj
def book(settings, book_id):
    """Show a book and its chapters."""
    service = _book_service(settings)
    try:
        found = service.get_book(book_id)
    except QuillError as e:
        _fail(e)

    console.print(app_header())
    console.print()
    console.print(book_summary_panel(found))
    console.print()

    chapters = service.get_book_chapters(book_id)
    if chapters:
        console.print(chapter_table(chapters))
    else:
        console.print("[muted]No chapters yet.[/]")


@cli.command()
@click.argument("chapter_id")
@click.pass_obj
def render(settings, chapter_id):
    """Print a chapter's formatted HTML."""
    service = _book_service(settings)
    try:
        html = service.render_chapter(chapter_id)
    except QuillError as e:
        _fail(e)
    click.echo(html)


@cli.command(name="format")
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--stats", is_flag=True, help="Also print the word count to stderr")
def format_file(source, stats):
    """Format rich-text HTML from SOURCE (file path or - for stdin)."""
    raw = source.read()
    click.echo(format_content(raw))
    if stats:
        click.echo(f"words: {count_content_words(raw)}", err=True)


@cli.command()
@click.argument("book_id")
@click.pass_obj
def recount(settings, book_id):
    """Rebuild a book's chapter counters from its chapters."""
    service = _book_service(settings)
    try:
        before = service.get_book(book_id)
        total, published = service.recount_chapters(book_id)
    except QuillError as e:
        _fail(e)

    console.print(success_panel(
        "Counters rebuilt",
        f"  [stat.label]total:[/] {before.total_chapters} -> [stat.value]{total}[/]\n"
        f"  [stat.label]published:[/] {before.published_chapters} -> [stat.value]{published}[/]",
    ))


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
