"""Content store: the sole read/write gateway to posts and projects.

One :class:`ContentStore` is opened by the composition root (the FastAPI
lifespan or a CLI command) and passed to everything that needs it::

    store = ContentStore.open(settings.db_path)
    try:
        store.upsert_post(slug="hello", lang="ru", title="Hello", content="# Hello")
    finally:
        store.close()

Every mutating operation runs under one lock: read-compute-write, then the
full database image is persisted to the backing file, and only then does the
next writer start.  All threads share one connection, where an open
transaction is visible to every cursor, so reads take the same (re-entrant)
lock and never observe a half-applied write.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from time import time
from typing import Any, Iterable, Iterator, Mapping, Optional

from sitecms.db.connection import open_database, persist_database
from sitecms.db.migrations import migrate
from sitecms.db.models import Post, PostMeta, Project, dump_list, load_list

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time() * 1000)


def safe_lang(lang: Any) -> str:
    """Normalise a language code: ``"en"`` stays, anything else is ``"ru"``."""
    return "en" if str(lang or "").strip() == "en" else "ru"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def _row_to_post(row: sqlite3.Row) -> Post:
    return Post(
        slug=row["slug"],
        lang=row["lang"],
        title=row["title"],
        content=row["content_md"],
        excerpt=row["excerpt"],
        tags=load_list(row["tags_json"]),
        date=row["date_text"],
        read_time=row["read_time_text"],
        cover_url=row["cover_url"] or "",
        created_at_ms=int(row["created_at_ms"] or 0),
        updated_at_ms=int(row["updated_at_ms"] or 0),
    )


def _row_to_post_meta(row: sqlite3.Row) -> PostMeta:
    return PostMeta(
        slug=row["slug"],
        lang=row["lang"],
        title=row["title"],
        excerpt=row["excerpt"],
        tags=load_list(row["tags_json"]),
        date=row["date_text"],
        read_time=row["read_time_text"],
        cover_url=row["cover_url"] or "",
        updated_at_ms=int(row["updated_at_ms"] or 0),
    )


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["project_id"],
        lang=row["lang"],
        title=row["title"],
        description=row["description"],
        full_description=row["full_description_md"],
        image=row["image_url"],
        technologies=load_list(row["technologies_json"]),
        features=load_list(row["features_json"]),
        demo_url=row["demo_url"] or "",
        github_url=row["github_url"] or "",
        created_at_ms=int(row["created_at_ms"] or 0),
        updated_at_ms=int(row["updated_at_ms"] or 0),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class ContentStore:
    """Posts and projects held in an in-memory SQLite database.

    Args:
        conn: A migrated connection, usually from :func:`open_database`.
        db_path: Backing file written after every mutation.  ``None`` keeps
            the store purely in memory.
    """

    def __init__(self, conn: sqlite3.Connection, db_path: Optional[Path] = None) -> None:
        self._conn = conn
        self.db_path = Path(db_path) if db_path is not None else None
        self._lock = threading.RLock()

    @classmethod
    def open(cls, db_path: Optional[Path] = None) -> "ContentStore":
        """Load *db_path* (or start empty if it does not exist) and migrate it.

        Raises:
            sqlite3.DatabaseError: The file exists but is not a database.
            SchemaVersionError: The stored schema version is corrupt.
        """
        conn = open_database(db_path)
        try:
            migrate(conn)
        except Exception:
            conn.close()
            raise
        logger.info("content store ready (%s)", db_path or ":memory:")
        return cls(conn, db_path)

    def close(self) -> None:
        self._conn.close()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        """Run one mutation: lock, transaction, then persist before unlocking."""
        with self._lock:
            with self._conn:
                yield self._conn
            self._persist()

    def _persist(self) -> None:
        if self.db_path is not None:
            persist_database(self._conn, self.db_path)

    def save(self) -> None:
        """Write the database image to its file (a no-op for in-memory stores)."""
        with self._lock:
            self._persist()

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def get_post(self, slug: str, lang: str) -> Optional[Post]:
        """Fetch one post by ``(slug, lang)``.  Returns ``None`` if not found."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM posts WHERE slug = ? AND lang = ?",
                (str(slug), safe_lang(lang)),
            ).fetchone()
        return _row_to_post(row) if row else None

    def upsert_post(
        self,
        slug: str,
        lang: str,
        title: Any = "",
        content: Any = "",
        excerpt: Any = "",
        tags: Any = None,
        date: Any = "",
        read_time: Any = "",
        cover_url: Any = "",
        created_at_ms: Optional[int] = None,
        updated_at_ms: Optional[int] = None,
    ) -> Post:
        """Insert a post or replace the fields of an existing one.

        Missing values become empty strings / an empty tag list.  The
        ``created_at_ms`` of an existing row is always kept; for a new row the
        caller's value is used, falling back to now.  ``updated_at_ms``
        defaults to now.

        Returns:
            The stored :class:`~sitecms.db.models.Post` as read back.
        """
        slug = str(slug)
        lang = safe_lang(lang)
        now = now_ms()
        updated = int(updated_at_ms) if updated_at_ms is not None else now

        with self._write() as conn:
            existing = conn.execute(
                "SELECT created_at_ms FROM posts WHERE slug = ? AND lang = ?",
                (slug, lang),
            ).fetchone()
            if existing and existing["created_at_ms"]:
                created = int(existing["created_at_ms"])
            else:
                created = int(created_at_ms) if created_at_ms is not None else now

            conn.execute(
                """
                INSERT INTO posts (
                    slug, lang, title, content_md, excerpt, tags_json,
                    date_text, read_time_text, cover_url, created_at_ms, updated_at_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(slug, lang) DO UPDATE SET
                    title = excluded.title,
                    content_md = excluded.content_md,
                    excerpt = excluded.excerpt,
                    tags_json = excluded.tags_json,
                    date_text = excluded.date_text,
                    read_time_text = excluded.read_time_text,
                    cover_url = excluded.cover_url,
                    updated_at_ms = excluded.updated_at_ms
                """,
                (
                    slug,
                    lang,
                    _text(title),
                    _text(content),
                    _text(excerpt),
                    dump_list(tags),
                    _text(date),
                    _text(read_time),
                    _text(cover_url),
                    created,
                    updated,
                ),
            )
            stored = self.get_post(slug, lang)

        return stored  # type: ignore[return-value]

    def delete_post(self, slug: str, lang: str) -> bool:
        """Delete one post.  Returns ``True`` if a row was removed."""
        with self._write() as conn:
            cur = conn.execute(
                "DELETE FROM posts WHERE slug = ? AND lang = ?",
                (str(slug), safe_lang(lang)),
            )
            removed = cur.rowcount > 0
        return removed

    def list_post_metas(self, lang: str) -> list[PostMeta]:
        """Return post metadata for *lang*, most recently updated first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT slug, lang, title, excerpt, tags_json, date_text,
                       read_time_text, cover_url, updated_at_ms
                FROM posts
                WHERE lang = ?
                ORDER BY updated_at_ms DESC
                """,
                (safe_lang(lang),),
            ).fetchall()
        return [_row_to_post_meta(r) for r in rows]

    def count_posts(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM posts").fetchone()[0]

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self, lang: str) -> list[Project]:
        """Return the project set for *lang*, most recently updated first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM projects WHERE lang = ? ORDER BY updated_at_ms DESC",
                (safe_lang(lang),),
            ).fetchall()
        return [_row_to_project(r) for r in rows]

    def replace_projects(
        self, lang: str, projects: Iterable[Mapping[str, Any]]
    ) -> list[Project]:
        """Swap the whole project set for *lang* for *projects*.

        Entries are camelCase mappings as posted by the admin UI.  Entries with
        a blank ``id`` are skipped.  Delete and reinsert run in one transaction
        under the write lock.

        Returns:
            The freshly stored project set.
        """
        lang = safe_lang(lang)
        now = now_ms()

        with self._write() as conn:
            conn.execute("DELETE FROM projects WHERE lang = ?", (lang,))
            for p in projects:
                if not isinstance(p, Mapping):
                    continue
                project_id = _text(p.get("id")).strip()
                if not project_id:
                    continue
                conn.execute(
                    """
                    INSERT INTO projects (
                        project_id, lang, title, description, full_description_md,
                        image_url, technologies_json, features_json, demo_url,
                        github_url, created_at_ms, updated_at_ms
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        project_id,
                        lang,
                        _text(p.get("title") or project_id),
                        _text(p.get("description")),
                        _text(p.get("fullDescription")),
                        _text(p.get("image")),
                        dump_list(p.get("technologies")),
                        dump_list(p.get("features")),
                        _text(p.get("demoUrl")),
                        _text(p.get("githubUrl")),
                        now,
                        now,
                    ),
                )
            stored_projects = self.get_projects(lang)

        return stored_projects

    def count_projects(self, lang: Optional[str] = None) -> int:
        with self._lock:
            if lang is None:
                row = self._conn.execute("SELECT COUNT(*) FROM projects").fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM projects WHERE lang = ?", (safe_lang(lang),)
                ).fetchone()
        return row[0]
