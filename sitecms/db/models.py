"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The store serialises /
deserialises to and from these types.  ``to_dict()`` produces the camelCase
shape the website frontend consumes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


def dump_list(values: Any) -> str:
    """Serialise a list-valued field for a ``*_json`` column.

    Items are stored as given, so numbers and objects read back unchanged.
    Anything that is not a list or tuple is stored as an empty list.
    """
    if not isinstance(values, (list, tuple)):
        values = []
    return json.dumps(list(values), ensure_ascii=False, default=str)


def load_list(raw: str | None) -> list[Any]:
    """Inverse of :func:`dump_list`; unparsable or non-list text gives ``[]``."""
    try:
        value = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


@dataclass
class Post:
    slug: str
    lang: str
    title: str
    content: str
    excerpt: str = ""
    tags: list[Any] = field(default_factory=list)
    date: str = ""
    read_time: str = ""
    cover_url: str = ""
    created_at_ms: int = 0
    updated_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "lang": self.lang,
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "tags": list(self.tags),
            "date": self.date,
            "readTime": self.read_time,
            "coverUrl": self.cover_url,
            "createdAtMs": self.created_at_ms,
            "updatedAtMs": self.updated_at_ms,
        }


@dataclass
class PostMeta:
    """Index-listing view of a post (everything except the body)."""

    slug: str
    lang: str
    title: str
    excerpt: str
    tags: list[Any]
    date: str
    read_time: str
    cover_url: str
    updated_at_ms: int

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
            "mtimeMs": self.updated_at_ms,
        }


@dataclass
class Project:
    id: str
    lang: str
    title: str
    description: str = ""
    full_description: str = ""
    image: str = ""
    technologies: list[Any] = field(default_factory=list)
    features: list[Any] = field(default_factory=list)
    demo_url: str = ""
    github_url: str = ""
    created_at_ms: int = 0
    updated_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fullDescription": self.full_description,
            "image": self.image,
            "technologies": list(self.technologies),
            "features": list(self.features),
            "demoUrl": self.demo_url,
            "githubUrl": self.github_url,
            "updatedAtMs": self.updated_at_ms,
        }
