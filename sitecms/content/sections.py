"""File-based content sections.

Some sections of the site (case studies, landing articles) stay as plain
Markdown files instead of living in the SQLite store.  A section is a
directory relative to one or more roots, e.g. ``public/krasotulya-crm`` under
both the production dist root and the repo checkout:

- reads try each *read root* in order and the first file found wins;
- writes and deletes go to **every** *write root* so the copies stay in sync.

``<slug>.md`` is the Russian variant, ``<slug>.en.md`` the English one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from sitecms.config import Settings

logger = logging.getLogger(__name__)

SECTIONS: dict[str, str] = {
    "blog": "public/blog",
    "krasotulya-crm": "public/krasotulya-crm",
}


def filename_for(slug: str, lang: str = "ru") -> str:
    return f"{slug}.en.md" if lang == "en" else f"{slug}.md"


@dataclass
class SectionFile:
    content: str
    path: Path


class SectionFileHandler:
    """Read/write/list facade over one Markdown section across several roots."""

    def __init__(
        self,
        rel_dir: str | Path,
        read_roots: Iterable[Optional[Path]] = (),
        write_roots: Iterable[Optional[Path]] = (),
    ) -> None:
        self.rel_dir = Path(rel_dir)
        self.read_roots = [Path(r) for r in read_roots if r]
        self.write_roots = [Path(r) for r in write_roots if r]

    def _dir(self, root: Path) -> Path:
        return root / self.rel_dir

    def _slugs_in(self, root: Path) -> list[str]:
        directory = self._dir(root)
        try:
            names = [p.name for p in directory.iterdir()]
        except FileNotFoundError:
            return []
        slugs = {
            name[: -len(".md")]
            for name in names
            if name.endswith(".md") and not name.endswith(".en.md")
        }
        return sorted(slugs)

    def list_slugs(self) -> list[str]:
        """Distinct slugs, one per article regardless of language variants.

        The first read root holding any article wins; when none has any the
        (empty) union is returned.
        """
        for root in self.read_roots:
            slugs = self._slugs_in(root)
            if slugs:
                return slugs
        union: set[str] = set()
        for root in self.read_roots:
            union.update(self._slugs_in(root))
        return sorted(union)

    def read(self, slug: str, lang: str = "ru") -> Optional[SectionFile]:
        """Return the first copy found across the read roots, or ``None``."""
        filename = filename_for(slug, lang)
        for root in self.read_roots:
            path = self._dir(root) / filename
            try:
                content = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                continue
            return SectionFile(content=content, path=path)
        return None

    def write(self, slug: str, content: str, lang: str = "ru") -> list[Path]:
        """Write the article to every write root.  Returns the written paths."""
        filename = filename_for(slug, lang)
        paths: list[Path] = []
        for root in self.write_roots:
            directory = self._dir(root)
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / filename
            path.write_text(content, encoding="utf-8")
            paths.append(path)
        logger.debug("wrote %s to %d root(s)", filename, len(paths))
        return paths

    def remove(self, slug: str, lang: str = "ru") -> None:
        """Delete the article from every write root; missing copies are ignored."""
        filename = filename_for(slug, lang)
        for root in self.write_roots:
            try:
                (self._dir(root) / filename).unlink()
            except FileNotFoundError:
                pass


def section_handler(section: str, settings: Settings) -> Optional[SectionFileHandler]:
    """Handler for a known section name, or ``None`` for an unknown one."""
    rel_dir = SECTIONS.get(section)
    if rel_dir is None:
        return None
    roots = settings.content_roots
    return SectionFileHandler(rel_dir, read_roots=roots, write_roots=roots)
