"""Markdown to HTML for streamed assistant content.

Only the small subset the chatbot produces is supported: tables, ATX
headings (levels 1-3), fenced and inline code, links, bold, italic and line
breaks. The whole accumulated text is re-rendered on every update, so every
stage is a pure function that accepts any string, including markdown cut
off at an arbitrary point (an unclosed fence simply stays literal text).

Stages run in a fixed order, each on the previous stage's output. Input is
escaped first, so the only markup in the result is what the stages emit.
"""

import html
import re
from functools import partial
from typing import Callable
from urllib.parse import urljoin, urlsplit

DEFAULT_ORIGIN = "http://localhost:9123"
PLACEHOLDER_URL = "#"
ALLOWED_SCHEMES = ("http", "https")
TABLE_CLASS = "table table-sm table-striped table-bordered"

_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)

_LINE_SPLIT = re.compile(r"\r?\n")
_TABLE_ROW = re.compile(r"^\s*\|(.+)\|\s*$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*(:?-{3,}:?\s*\|\s*)+(:?-{3,}:?)\s*\|?\s*$")

# Checked from the longest marker down so "### x" is never taken as "# ..."
_HEADINGS = (
    ("h3", re.compile(r"^###[ \t]+(.+)$", re.MULTILINE)),
    ("h2", re.compile(r"^##[ \t]+(.+)$", re.MULTILINE)),
    ("h1", re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)),
)

_FENCE = re.compile(r"```(?:([\w+#.-]+)[ \t]*\n)?([\s\S]*?)```")
_INLINE_CODE = re.compile(r"(?<!`)`([^`]+)`(?!`)")
_CODE_SPANS = re.compile(r"(<pre>[\s\S]*?</pre>|<code>[\s\S]*?</code>)")

_LINK = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_BOLD = re.compile(r"\*\*([^*\n]+)\*\*")
_ITALIC = re.compile(r"(^|\W)\*([^*\s](?:[^*\n]*[^*\s])?)\*(?=\W|$)")

Stage = Callable[[str], str]


def _outside_code(text: str, transform: Stage) -> str:
    """Apply ``transform`` to everything except generated code elements."""
    parts = _CODE_SPANS.split(text)
    parts[::2] = [transform(part) for part in parts[::2]]
    return "".join(parts)


def escape_html(text: str) -> str:
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


def _split_cells(row: str) -> list[str]:
    return [cell.strip() for cell in row.split("|")]


def _table_html(header: list[str], rows: list[list[str]]) -> str:
    head = "".join(f"<th>{cell}</th>" for cell in header)
    body = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return (
        f'<table class="{TABLE_CLASS}">'
        f"<thead><tr>{head}</tr></thead>"
        f"<tbody>{body}</tbody>"
        "</table>"
    )


def convert_tables(text: str) -> str:
    """Turn pipe tables into ``<table>`` elements.

    A table needs a ``| a | b |`` header directly followed by a separator
    row such as ``|---|:--:|``. Following pipe rows become the body. Each
    table is emitted on a single line so the line-break stage leaves it
    intact. Line endings are normalized to ``\\n``.
    """
    lines = _LINE_SPLIT.split(text)
    out = []
    i = 0
    while i < len(lines):
        line = lines[i]
        header = _TABLE_ROW.match(line)
        if not header or i + 1 >= len(lines) or not _TABLE_SEPARATOR.match(lines[i + 1]):
            out.append(line)
            i += 1
            continue

        i += 2
        rows = []
        while i < len(lines):
            row = _TABLE_ROW.match(lines[i])
            if not row:
                break
            rows.append(_split_cells(row.group(1)))
            i += 1
        out.append(_table_html(_split_cells(header.group(1)), rows))
    return "\n".join(out)


def convert_headings(text: str) -> str:
    for tag, pattern in _HEADINGS:
        text = pattern.sub(rf"<{tag}>\1</{tag}>", text)
    return text


def _fence_html(match: re.Match) -> str:
    language, code = match.group(1), match.group(2)
    if language:
        return f'<pre><code class="language-{language}">{code}</code></pre>'
    return f"<pre><code>{code}</code></pre>"


def convert_code(text: str) -> str:
    """Fenced blocks first, then single-backtick spans outside them."""
    text = _FENCE.sub(_fence_html, text)
    return _outside_code(text, lambda part: _INLINE_CODE.sub(r"<code>\1</code>", part))


def safe_url(url: str, origin: str = DEFAULT_ORIGIN) -> str:
    """Resolve ``url`` against ``origin``; anything but http(s) becomes ``#``.

    Absolute URLs must carry a host of their own: ``http://`` alone is
    rejected rather than borrowing the origin's host. ``http:path`` with the
    origin's scheme and no ``//`` is relative to the origin. Out of range
    ports are rejected.
    """
    try:
        parts = urlsplit(url)
        relative = not parts.scheme or (
            parts.scheme == urlsplit(origin).scheme
            and not url[len(parts.scheme) + 1:].startswith("//")
        )
        if relative:
            url = urljoin(origin, url)
            parts = urlsplit(url)
        parts.port  # raises ValueError when out of range
    except ValueError:
        return PLACEHOLDER_URL
    if parts.scheme not in ALLOWED_SCHEMES or not parts.hostname:
        return PLACEHOLDER_URL
    return url


def _link_html(match: re.Match, origin: str) -> str:
    label, target = match.group(1), match.group(2)
    # The target is already escaped; unescape before resolving, re-escape for
    # the attribute. '*' is encoded so the emphasis stage can't reach inside.
    href = escape_html(safe_url(html.unescape(target), origin)).replace("*", "%2A")
    return f'<a href="{href}" target="_blank" rel="noopener noreferrer">{label}</a>'


def convert_links(text: str, origin: str = DEFAULT_ORIGIN) -> str:
    return _outside_code(text, lambda part: _LINK.sub(lambda m: _link_html(m, origin), part))


def _emphasis(part: str) -> str:
    part = _BOLD.sub(r"<strong>\1</strong>", part)
    return _ITALIC.sub(r"\1<em>\2</em>", part)


def convert_emphasis(text: str) -> str:
    """``**bold**`` before ``*italic*`` so bold is not read as nested italics."""
    return _outside_code(text, _emphasis)


def convert_line_breaks(text: str) -> str:
    """Newlines become ``<br>``, except inside code where they are kept."""
    return _outside_code(text, lambda part: _LINE_SPLIT.sub("<br>", part))


def pipeline(origin: str = DEFAULT_ORIGIN) -> tuple[Stage, ...]:
    """The ordered stages used by ``render`` for a given page origin."""
    return (
        escape_html,
        convert_tables,
        convert_headings,
        convert_code,
        partial(convert_links, origin=origin),
        convert_emphasis,
        convert_line_breaks,
    )


STAGES = pipeline()


def render(raw: str, origin: str = DEFAULT_ORIGIN) -> str:
    """Render accumulated markdown to sanitized HTML. Never raises."""
    if not raw:
        return ""
    stages = STAGES if origin == DEFAULT_ORIGIN else pipeline(origin)
    text = raw
    for stage in stages:
        text = stage(text)
    return text
