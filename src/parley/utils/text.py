"""Text helpers for titles, slugs, usernames and post rendering."""

from __future__ import annotations

import html
import re

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,20}$")

DEFAULT_SLUG = "topic"


def clean_title(title: str) -> str:
    """Collapse whitespace and capitalize the first letter.

    >>> clean_title("  this is   some post ")
    'This is some post'
    """
    cleaned = _WHITESPACE_RE.sub(" ", title).strip()
    if not cleaned:
        return cleaned
    return cleaned[0].upper() + cleaned[1:]


def slugify(title: str) -> str:
    """Return a lowercase, dash separated slug; falls back to ``topic``."""
    slug = _SLUG_STRIP_RE.sub("-", title.lower()).strip("-")
    return slug or DEFAULT_SLUG


def parse_usernames(value: str | None) -> list[str]:
    """Split a comma separated username list, dropping blanks and duplicates.

    Order is preserved. Names are compared exactly, as usernames are stored.
    """
    if not value:
        return []
    seen: set[str] = set()
    names: list[str] = []
    for part in value.split(","):
        name = part.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def cook(raw: str) -> str:
    """Render raw post text as escaped HTML paragraphs."""
    paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(raw.strip()) if p.strip()]
    return "\n".join(
        "<p>" + html.escape(paragraph).replace("\n", "<br>") + "</p>" for paragraph in paragraphs
    )
