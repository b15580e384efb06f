"""Seed the content store from legacy flat files.

Before the SQLite store existed, posts were Markdown files and project lists
were JSON arrays.  On startup :func:`bootstrap_if_empty` imports them, but
only into empty tables, so content already managed through the store is never
overwritten.

Candidate locations, in preference order:

    posts:     <dist_root>/blog/*.md, <repo_root>/public/blog/*.md
    projects:  <root>/content/projects.<lang>.json,
               <root>/public/content/projects.<lang>.json
               for root in (dist_root, repo_root)

Posts come from the first directory that yields anything; later directories
are not merged in.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from sitecms.config import LANGS, Settings
from sitecms.content.meta import extract_meta
from sitecms.db.store import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class BootstrapReport:
    imported: int = 0
    updated: int = 0
    skipped_existing: int = 0
    source_dir: Optional[Path] = None
    project_langs: list[str] = field(default_factory=list)


def _post_key(path: Path) -> tuple[str, str]:
    """``hello.en.md`` → ``("hello", "en")``; ``hello.md`` → ``("hello", "ru")``."""
    name = path.name
    if name.lower().endswith(".en.md"):
        return name[: -len(".en.md")], "en"
    return name[: -len(".md")], "ru"


def _read_markdown(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("skipping unreadable legacy post %s: %s", path, exc)
        return None


def bootstrap_posts(store: ContentStore, settings: Settings) -> BootstrapReport:
    """Import legacy Markdown posts into an empty posts table.

    With ``settings.sync_from_fs`` the import also runs against a populated
    table and refreshes rows whose file is newer than the stored
    ``updated_at_ms``.
    """
    report = BootstrapReport()
    if store.count_posts() > 0 and not settings.sync_from_fs:
        logger.debug("posts table not empty; skipping legacy import")
        return report

    for directory in settings.legacy_blog_dirs:
        if not directory.is_dir():
            continue

        for path in sorted(directory.glob("*.md")):
            if not path.is_file():
                continue
            slug, lang = _post_key(path)
            markdown = _read_markdown(path)
            if not markdown or not markdown.strip():
                continue

            meta = extract_meta(slug, markdown, lang, path=path)
            existing = store.get_post(slug, lang)
            if existing is not None:
                if settings.sync_from_fs and meta.mtime_ms > existing.updated_at_ms:
                    store.upsert_post(
                        slug=slug,
                        lang=lang,
                        title=meta.title,
                        content=markdown,
                        excerpt=meta.excerpt,
                        tags=meta.tags,
                        date=meta.date,
                        read_time=meta.read_time,
                        cover_url=meta.cover_url,
                        updated_at_ms=meta.mtime_ms,
                    )
                    report.updated += 1
                else:
                    report.skipped_existing += 1
                continue

            store.upsert_post(
                slug=slug,
                lang=lang,
                title=meta.title,
                content=markdown,
                excerpt=meta.excerpt,
                tags=meta.tags,
                date=meta.date,
                read_time=meta.read_time,
                cover_url=meta.cover_url,
                created_at_ms=meta.mtime_ms,
                updated_at_ms=meta.mtime_ms,
            )
            report.imported += 1

        if report.imported or report.updated:
            report.source_dir = directory
            break

    return report


def _project_candidates(settings: Settings, lang: str) -> list[Path]:
    filename = f"projects.{lang}.json"
    paths: list[Path] = []
    for root in settings.content_roots:
        paths.append(root / "content" / filename)
        paths.append(root / "public" / "content" / filename)
    return paths


def _load_project_list(path: Path) -> Optional[list[Any]]:
    """Parse *path* as a JSON array; anything else counts as not found."""
    if not path.is_file():
        return None
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("ignoring malformed project file %s: %s", path, exc)
        return None
    if not isinstance(parsed, list):
        logger.warning("ignoring project file %s: top-level value is not an array", path)
        return None
    return parsed


def bootstrap_projects(store: ContentStore, settings: Settings) -> list[str]:
    """Import ``projects.<lang>.json`` for every language with no projects yet.

    Returns:
        The languages that were imported.
    """
    imported: list[str] = []
    for lang in LANGS:
        if store.count_projects(lang) > 0:
            continue
        for path in _project_candidates(settings, lang):
            projects = _load_project_list(path)
            if projects is None:
                continue
            stored = store.replace_projects(lang, projects)
            logger.info("imported %d %s project(s) from %s", len(stored), lang, path)
            imported.append(lang)
            break
    return imported


def bootstrap_if_empty(store: ContentStore, settings: Settings) -> BootstrapReport:
    """Run both legacy imports and log what happened."""
    report = bootstrap_posts(store, settings)
    report.project_langs = bootstrap_projects(store, settings)
    if report.imported or report.updated:
        logger.info(
            "legacy posts: imported=%d updated=%d skipped=%d from %s",
            report.imported,
            report.updated,
            report.skipped_existing,
            report.source_dir,
        )
    return report
