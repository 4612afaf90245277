import re
from typing import Callable

import markdown

from documents import DocumentKind
from errors import UnsupportedDocumentType

MarkdownRenderer = Callable[[str], str]

PLAIN_TEXT = "text/plain"
HTML = "text/html"


def auto_link_urls(text: str) -> str:
    return re.sub(
        r'(?<!\]\()(?<!\()(?<!<)(https?://[^\s<>\)\]]+)',
        lambda m: f'[{m.group(1)}]({m.group(1)})',
        text,
    )


def render_markdown(text: str) -> str:
    text = auto_link_urls(text)
    html = markdown.markdown(text, extensions=["fenced_code", "tables", "sane_lists"])
    # external links open in a new tab
    return re.sub(
        r'<a href="(https?://[^"]+)"',
        r'<a href="\1" target="_blank" rel="noopener noreferrer"',
        html,
    )


def render(kind: DocumentKind, content: bytes,
           markdown_renderer: MarkdownRenderer = render_markdown) -> tuple[str, str]:
    text = content.decode("utf-8", errors="replace")
    if kind is DocumentKind.PLAIN_TEXT:
        return PLAIN_TEXT, text
    if kind is DocumentKind.MARKDOWN:
        return HTML, markdown_renderer(text)
    raise UnsupportedDocumentType(f"no renderer for {kind!r}")
