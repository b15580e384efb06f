"""Metadata extraction for Markdown articles.

Turns a raw Markdown document into the fields a post needs (title, excerpt,
tags, date, read time, cover image).  Each field is resolved independently:
front matter first, then whatever can be inferred from the body.

Front matter is a tiny YAML subset::

    ---
    title: My post
    excerpt: "Short summary"
    tags:
      - python
      - sqlite
    ---

Older articles carry their metadata inline instead, e.g.
``**Теги**: a, b`` or ``Publication Date: 1 May 2024``.

Everything here is a pure function of its inputs; the only filesystem access
is the optional ``stat`` used for the modification time.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from time import time
from typing import Any, Optional, Union

EXCERPT_MAX_CHARS = 180
WORDS_PER_MINUTE = 200

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)
_FM_KEY_RE = re.compile(r"^([A-Za-z0-9_]+)\s*:\s*(.*?)\s*$")
_FM_ITEM_RE = re.compile(r"^\s*-\s+(.*?)\s*$")

_H1_RE = re.compile(r"^[ \t]*#[ \t]+(.+?)[ \t]*$", re.M)
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MD_SYNTAX_RE = re.compile(r"[`*_>#-]")
_WS_RE = re.compile(r"\s+")
_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")

_MD_IMAGE_RE = re.compile(r"!\[[^\]]*\]\((\S+?)(?:\s+[\"'][^\"']*[\"'])?\)")
_HTML_IMAGE_RE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']", re.I)


def _legacy_label(labels: str) -> list[re.Pattern[str]]:
    """Patterns for ``**Label**: value`` / ``**Label:** value`` and plain ``Label: value``."""
    return [
        re.compile(
            rf"\*\*(?:{labels})(?:\*\*[ \t]*:|[ \t]*:\*\*)[ \t]*(.+?)[ \t]*$", re.I | re.M
        ),
        re.compile(rf"^[ \t]*(?:{labels})[ \t]*:[ \t]*(.+?)[ \t]*$", re.I | re.M),
    ]


_LEGACY_TAGS = _legacy_label("Теги|Tags")
_LEGACY_DATE = _legacy_label("Дата публикации|Publication Date")
_LEGACY_READ_TIME = _legacy_label("Время чтения|Read time")

FrontMatter = dict[str, Union[str, list[str]]]


@dataclass
class MarkdownMeta:
    slug: str
    lang: str
    title: str
    excerpt: str
    tags: list[str] = field(default_factory=list)
    date: str = ""
    read_time: str = ""
    cover_url: str = ""
    mtime_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "lang": self.lang,
            "title": self.title,
            "excerpt": self.excerpt,
            "tags": list(self.tags),
            "date": self.date,
            "readTime": self.read_time,
            "coverUrl": self.cover_url,
            "mtimeMs": self.mtime_ms,
        }


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def parse_front_matter(markdown: str) -> tuple[Optional[FrontMatter], str]:
    """Split *markdown* into ``(front_matter, content)``.

    Without a complete ``---`` block the front matter is ``None`` and the
    content is the whole document.
    """
    match = _FRONT_MATTER_RE.match(markdown)
    if match is None:
        return None, markdown

    fm: FrontMatter = {}
    current_key: Optional[str] = None
    for line in match.group(1).splitlines():
        kv = _FM_KEY_RE.match(line)
        if kv:
            current_key = kv.group(1)
            fm[current_key] = _unquote(kv.group(2))
            continue
        item = _FM_ITEM_RE.match(line)
        if item and current_key:
            existing = fm.get(current_key)
            if not isinstance(existing, list):
                existing = []
                fm[current_key] = existing
            existing.append(_unquote(item.group(1)))

    return fm, markdown[match.end():]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def strip_markdown(markdown: str) -> str:
    """Reduce Markdown to plain words: link text kept, syntax characters dropped."""
    text = _MD_LINK_RE.sub(r"\1", markdown)
    text = _MD_SYNTAX_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def extract_first_heading(markdown: str) -> str:
    match = _H1_RE.search(markdown)
    return match.group(1).strip() if match else ""


def strip_first_heading(markdown: str) -> str:
    return _H1_RE.sub("", markdown, count=1).strip()


def extract_first_paragraph(markdown: str) -> str:
    """First non-empty block once the level-1 heading is removed, as plain text."""
    body = strip_first_heading(markdown)
    for block in _BLOCK_SPLIT_RE.split(body):
        if block.strip():
            return strip_markdown(block)
    return ""


def extract_first_markdown_image(markdown: str) -> str:
    match = _MD_IMAGE_RE.search(markdown)
    return match.group(1).strip() if match else ""


def extract_first_html_image(markdown: str) -> str:
    match = _HTML_IMAGE_RE.search(markdown)
    return match.group(1).strip() if match else ""


def _first_match(patterns: list[re.Pattern[str]], text: str) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return ""


def parse_legacy_meta(markdown: str) -> tuple[list[str], str, str]:
    """Return ``(tags, date, read_time)`` from inline labelled lines."""
    raw_tags = _first_match(_LEGACY_TAGS, markdown)
    tags = [t.strip() for t in raw_tags.split(",") if t.strip()] if raw_tags else []
    return tags, _first_match(_LEGACY_DATE, markdown), _first_match(_LEGACY_READ_TIME, markdown)


def estimate_read_time(markdown: str, lang: str = "ru") -> str:
    """``max(1, round(words / 200))`` minutes, e.g. ``"2 мин"`` / ``"2 min"``."""
    text = strip_markdown(markdown)
    words = len(text.split()) if text else 0
    # Half-up rounding; round() would round 2.5 down to 2.
    minutes = max(1, math.floor(words / WORDS_PER_MINUTE + 0.5))
    return f"{minutes} мин" if lang == "ru" else f"{minutes} min"


def file_mtime_ms(path: Optional[Union[str, Path]]) -> int:
    """Modification time of *path* in epoch ms; now when there is no file."""
    if path is not None:
        try:
            return int(os.stat(path).st_mtime * 1000)
        except FileNotFoundError:
            pass
    return int(time() * 1000)


def generate_slug(title: str) -> str:
    """URL-safe slug: ``"Hello, World!"`` → ``"hello-world"``."""
    slug = re.sub(r"[^\w\s-]", "", title.lower().strip())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _fm_text(fm: Optional[FrontMatter], *keys: str) -> str:
    if not fm:
        return ""
    for key in keys:
        value = fm.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def extract_meta(
    slug: str,
    markdown: str,
    lang: str = "ru",
    path: Optional[Union[str, Path]] = None,
) -> MarkdownMeta:
    """Resolve every metadata field of a Markdown article.

    Precedence, per field:

    - title: front matter → first ``# heading`` → *slug*
    - excerpt: front matter → first paragraph after the heading → title
      (at most 180 characters)
    - cover: front matter ``coverUrl``/``cover`` → first Markdown image →
      first ``<img src>``
    - tags / date / read time: front matter → inline legacy labels; read
      time finally falls back to an estimate from the word count

    Args:
        slug: Identifier used as the last-resort title.
        markdown: Raw document, optionally starting with front matter.
        lang: ``"ru"`` or ``"en"``; only affects the read-time unit.
        path: Backing file whose mtime becomes ``mtime_ms``.
    """
    fm, content = parse_front_matter(markdown)

    title = _fm_text(fm, "title") or extract_first_heading(content) or slug.strip()
    excerpt = _fm_text(fm, "excerpt") or extract_first_paragraph(content) or title
    cover_url = (
        _fm_text(fm, "coverUrl", "cover")
        or extract_first_markdown_image(content)
        or extract_first_html_image(content)
    )

    legacy_tags, legacy_date, legacy_read_time = parse_legacy_meta(content)
    fm_tags = fm.get("tags") if fm else None
    if isinstance(fm_tags, list):
        tags = [t.strip() for t in fm_tags if t.strip()]
    else:
        tags = legacy_tags

    date = _fm_text(fm, "date") or legacy_date
    read_time = (
        _fm_text(fm, "readTime") or legacy_read_time or estimate_read_time(content, lang)
    )

    return MarkdownMeta(
        slug=slug,
        lang=lang,
        title=title.strip(),
        excerpt=excerpt.strip()[:EXCERPT_MAX_CHARS],
        tags=tags,
        date=date,
        read_time=read_time,
        cover_url=cover_url,
        mtime_ms=file_mtime_ms(path),
    )
