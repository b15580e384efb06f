"""Schema creation and incremental migrations.

``migrate(conn)`` is idempotent and safe to call on every process start, on a
fresh empty database as well as on one that is already up to date.

The schema version lives in ``_meta(key, value)`` under ``schema_version``.
Migrations are additive only.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)


class SchemaVersionError(RuntimeError):
    """The stored schema version is unreadable or newer than this code."""


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

_V1_POSTS = """
CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT NOT NULL,
    lang TEXT NOT NULL,
    title TEXT NOT NULL,
    content_md TEXT NOT NULL,
    excerpt TEXT NOT NULL DEFAULT '',
    tags_json TEXT NOT NULL DEFAULT '[]',
    date_text TEXT NOT NULL DEFAULT '',
    read_time_text TEXT NOT NULL DEFAULT '',
    created_at_ms INTEGER NOT NULL,
    updated_at_ms INTEGER NOT NULL,
    UNIQUE(slug, lang)
);

CREATE INDEX IF NOT EXISTS idx_posts_lang_updated ON posts(lang, updated_at_ms DESC);
"""

_V2_PROJECTS = """
CREATE TABLE IF NOT EXISTS projects (
    project_id TEXT NOT NULL,
    lang TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    full_description_md TEXT NOT NULL DEFAULT '',
    image_url TEXT NOT NULL DEFAULT '',
    technologies_json TEXT NOT NULL DEFAULT '[]',
    features_json TEXT NOT NULL DEFAULT '[]',
    demo_url TEXT,
    github_url TEXT,
    created_at_ms INTEGER NOT NULL,
    updated_at_ms INTEGER NOT NULL,
    PRIMARY KEY(project_id, lang)
);

CREATE INDEX IF NOT EXISTS idx_projects_lang_updated ON projects(lang, updated_at_ms DESC);
"""

_V3_POST_COVER = """
ALTER TABLE posts ADD COLUMN cover_url TEXT NOT NULL DEFAULT '';
"""

MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_POSTS),
    (2, _V2_PROJECTS),
    (3, _V3_POST_COVER),
]

SCHEMA_VERSION = MIGRATIONS[-1][0]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def current_version(conn: sqlite3.Connection) -> int:
    """Return the stored schema version (0 if ``_meta`` is absent or empty).

    Raises:
        SchemaVersionError: If the stored value is not an integer.
    """
    table = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = '_meta'"
    ).fetchone()
    if table is None:
        return 0

    row = conn.execute(
        "SELECT value FROM _meta WHERE key = 'schema_version'"
    ).fetchone()
    if row is None or row[0] in (None, ""):
        return 0
    try:
        return int(row[0])
    except (TypeError, ValueError) as exc:
        raise SchemaVersionError(f"Invalid schema_version in _meta: {row[0]!r}") from exc


def migrate(conn: sqlite3.Connection) -> int:
    """Apply every pending migration and record the new version.

    Returns:
        The schema version after migrating.

    Raises:
        SchemaVersionError: If the stored version is corrupt or newer than
            :data:`SCHEMA_VERSION`.
    """
    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS _meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

    applied = current_version(conn)
    if applied > SCHEMA_VERSION:
        raise SchemaVersionError(
            f"Database schema_version {applied} is newer than supported {SCHEMA_VERSION}"
        )

    version = applied
    for step, sql in MIGRATIONS:
        if step > version:
            # executescript() commits first and runs the DDL outside any
            # implicit transaction.
            conn.executescript(sql)
            version = step
            logger.info("applied schema migration v%d", step)

    if version != applied:
        with conn:
            conn.execute(
                """
                INSERT INTO _meta(key, value) VALUES('schema_version', ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (str(version),),
            )

    return version
