"""Text utilities: word counting, plain-text extraction, excerpts."""

from bs4 import BeautifulSoup

from tools.content_formatter import DROPPED_TAGS


def count_words(text: str) -> int:
    """Count words by splitting on whitespace runs.

    Empty tokens never count, so repeated spaces, tabs and newlines are the
    same as a single space.
    """
    if not text:
        return 0
    return len(text.split())


def html_to_text(html: str) -> str:
    """Return the visible text of an HTML fragment.

    Line breaks and paragraph ends become spaces so adjacent paragraphs do
    not merge into one word.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(list(DROPPED_TAGS)):
        if not tag.decomposed:
            tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with(" ")
    for block in soup.find_all(["p", "div"]):
        block.append(" ")
    return soup.get_text()


def count_content_words(html: str) -> int:
    """Word count persisted on a chapter: words in the visible text of its content."""
    return count_words(html_to_text(html))


def excerpt(text: str, char_limit: int = 150) -> str:
    """Shorten text to ``char_limit`` characters, marking the cut with '...'."""
    if not text:
        return ""
    text = " ".join(text.split())
    if len(text) <= char_limit:
        return text
    return text[:char_limit].rstrip() + "..."
