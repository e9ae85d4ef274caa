"""Allow-list formatter for chapter rich text.

Chapter content comes from a contenteditable editor and is stored as a small
HTML subset. ``format_content`` turns it into a display-ready fragment:
the markup is parsed into a tree, anything outside the allow-list is removed
or unwrapped, attributes are stripped, and plain-text line breaks become
paragraphs and ``<br/>`` tags. Text is re-escaped on output, so an encoded
``&lt;script&gt;`` in the source stays text.
"""

import re

from bs4 import BeautifulSoup
from bs4.element import PreformattedString, Tag

ALLOWED_TAGS = frozenset({"b", "strong", "i", "em", "br", "p", "div"})

# Removed together with everything inside them
DROPPED_TAGS = (
    "script", "style", "iframe", "object", "embed", "template",
    "noscript", "textarea", "title", "head",
)

_BLOCK_GAP_RE = re.compile(r"(</?p>)\s+(?=</?p>)")
_BLANK_LINE_RE = re.compile(r"\n\s*\n")
_BR_RUN_RE = re.compile(r"(?:<br\s*/?>\s*){3,}", re.IGNORECASE)

_MAX_PASSES = 4


def _strip_to_allow_list(soup: BeautifulSoup) -> None:
    # Comments, doctypes, CDATA and processing instructions
    for node in list(soup.descendants):
        if isinstance(node, PreformattedString):
            node.extract()

    for tag in soup.find_all(list(DROPPED_TAGS)):
        if not tag.decomposed:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        tag.attrs = {}
        if tag.name == "div":
            tag.name = "p"

    for text in soup.find_all(string=True):
        if "\xa0" in text:
            text.replace_with(text.replace("\xa0", " "))


def _apply_line_breaks(html: str) -> str:
    html = _BLOCK_GAP_RE.sub(r"\1", html)
    html = _BLANK_LINE_RE.sub("</p><p>", html)
    html = html.replace("\n", "<br/>")
    html = _BR_RUN_RE.sub("</p><p>", html)
    html = html.strip()
    if html and not html.startswith("<p>") and not html.startswith("<br"):
        html = f"<p>{html}</p>"
    return html


def _drop_empty_paragraphs(soup: BeautifulSoup) -> None:
    for p in soup.find_all("p"):
        if not p.decomposed and not p.get_text(strip=True):
            p.decompose()


def _is_visible(node) -> bool:
    if isinstance(node, Tag):
        return node.name == "br" or bool(node.get_text(strip=True))
    return bool(node.strip())


def _wrap_leading_text(soup: BeautifulSoup) -> None:
    # Text left in front of the first paragraph once empty ones are gone
    run = []
    for node in soup.contents:
        if isinstance(node, Tag) and node.name == "p":
            break
        run.append(node)
    visible = [n for n in run if _is_visible(n)]
    if not visible:
        return
    if isinstance(visible[0], Tag) and visible[0].name == "br":
        return
    wrapper = soup.new_tag("p")
    run[0].insert_before(wrapper)
    for node in run:
        wrapper.append(node.extract())


def _format_pass(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    _strip_to_allow_list(soup)

    # Line-break rules can split inline tags; the second parse repairs nesting
    soup = BeautifulSoup(_apply_line_breaks(str(soup)), "html.parser")
    _drop_empty_paragraphs(soup)
    _wrap_leading_text(soup)
    return str(soup).strip()


def format_content(html: str) -> str:
    """Return a display-safe HTML fragment for stored chapter content.

    Pure and deterministic; formatting an already formatted fragment returns
    it unchanged.
    """
    if not html or not html.strip():
        return ""
    html = html.replace("\r\n", "\n").replace("\r", "\n")

    result = _format_pass(html)
    # Removing empty paragraphs can join <br> runs; repeat until stable
    for _ in range(_MAX_PASSES):
        again = _format_pass(result)
        if again == result:
            break
        result = again
    return result
