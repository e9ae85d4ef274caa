"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

from models.enums import BookStatus
from tools.text_utils import excerpt

QUILL_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "genre": "bold",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
})

STATUS_COLORS = {
    BookStatus.DRAFT: "yellow",
    BookStatus.PUBLISHING: "green",
    BookStatus.COMPLETED: "cyan",
}


def get_console() -> Console:
    """Return a Console instance with the application theme applied."""
    return Console(theme=QUILL_THEME)


def app_header(title: str = "openquill") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def status_label(status: BookStatus) -> str:
    return f"[{STATUS_COLORS.get(status, 'white')}]{status.value}[/]"


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def book_table(books: list, title: str = "Books") -> Table:
    """Return a table listing books with their status and chapter counters."""
    table = Table(title=title, show_lines=True, border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Genres", style="genre")
    table.add_column("Status")
    table.add_column("Chapters", justify="right")

    for b in books:
        table.add_row(
            b.id,
            escape(b.title),
            escape(b.author_name or b.author_id),
            escape(", ".join(b.genres[:2])) + (f" +{len(b.genres) - 2}" if len(b.genres) > 2 else ""),
            status_label(b.status),
            f"{b.published_chapters}/{b.total_chapters}",
        )
    return table


def book_summary_panel(book) -> Panel:
    """Return a Panel with a book's metadata and counters.

    Args:
        book: Book record.
    """
    body = (
        f"  [stat.label]Author:[/] {escape(book.author_name or book.author_id)}  "
        f"[muted]|[/]  [stat.label]Status:[/] {status_label(book.status)}  "
        f"[muted]|[/]  [stat.label]Chapters:[/] "
        f"[stat.value]{book.published_chapters}[/] published of "
        f"[stat.value]{book.total_chapters}[/]\n"
        f"  [stat.label]Genres:[/] [genre]{escape(', '.join(book.genres)) or '-'}[/]\n"
        f"  [stat.label]Description:[/] {escape(excerpt(book.description, 200))}"
    )
    return Panel(
        body,
        title=f"[bold]{escape(book.title)}[/] [muted](ID: {book.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def chapter_table(chapters: list) -> Table:
    table = Table(title="Chapters", border_style="dim")
    table.add_column("#", style="chapter.num", justify="right")
    table.add_column("ID", style="muted")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Published")

    for ch in chapters:
        published = (
            f"[green]{ch.published_at:%Y-%m-%d %H:%M}[/]"
            if ch.is_published and ch.published_at else
            ("[green]yes[/]" if ch.is_published else "[muted]no[/]")
        )
        table.add_row(str(ch.chapter_number), ch.id, escape(ch.title) or "-", f"{ch.word_count:,}", published)
    return table
