"""Tools package: content formatting and text utilities."""

from tools.content_formatter import format_content, ALLOWED_TAGS
from tools.text_utils import (
    count_words,
    count_content_words,
    html_to_text,
    excerpt,
)

__all__ = [
    "format_content",
    "ALLOWED_TAGS",
    "count_words",
    "count_content_words",
    "html_to_text",
    "excerpt",
]
