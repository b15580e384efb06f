"""Database layer tests: schema migrations and the content store.

Most tests use a purely in-memory store so they are fast and isolated; the
persistence tests write to pytest's ``tmp_path``.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Generator

import pytest

from sitecms.db.connection import open_database
from sitecms.db.migrations import SCHEMA_VERSION, SchemaVersionError, current_version, migrate
from sitecms.db.models import Post
from sitecms.db.store import ContentStore, safe_lang


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store() -> Generator[ContentStore, None, None]:
    """In-memory store with the schema migrated."""
    s = ContentStore.open(None)
    yield s
    s.close()


def _columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [r[1] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class TestMigrate:
    def test_fresh_db_reaches_latest_version(self) -> None:
        conn = open_database(None)
        assert current_version(conn) == 0
        assert migrate(conn) == SCHEMA_VERSION == 3
        assert current_version(conn) == 3

    def test_tables_and_columns(self, store: ContentStore) -> None:
        conn = store.connection
        assert _columns(conn, "posts") == [
            "id", "slug", "lang", "title", "content_md", "excerpt", "tags_json",
            "date_text", "read_time_text", "created_at_ms", "updated_at_ms", "cover_url",
        ]
        assert _columns(conn, "projects") == [
            "project_id", "lang", "title", "description", "full_description_md",
            "image_url", "technologies_json", "features_json", "demo_url",
            "github_url", "created_at_ms", "updated_at_ms",
        ]
        indexes = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
        }
        assert {"idx_posts_lang_updated", "idx_projects_lang_updated"} <= indexes

    def test_migrate_is_idempotent(self, store: ContentStore) -> None:
        assert migrate(store.connection) == 3
        assert migrate(store.connection) == 3

    def test_partial_database_is_upgraded(self) -> None:
        conn = open_database(None)
        conn.executescript(
            """
            CREATE TABLE _meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);
            INSERT INTO _meta VALUES ('schema_version', '2');
            CREATE TABLE posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT, slug TEXT NOT NULL, lang TEXT NOT NULL,
                title TEXT NOT NULL, content_md TEXT NOT NULL, excerpt TEXT NOT NULL DEFAULT '',
                tags_json TEXT NOT NULL DEFAULT '[]', date_text TEXT NOT NULL DEFAULT '',
                read_time_text TEXT NOT NULL DEFAULT '', created_at_ms INTEGER NOT NULL,
                updated_at_ms INTEGER NOT NULL, UNIQUE(slug, lang)
            );
            INSERT INTO posts (slug, lang, title, content_md, created_at_ms, updated_at_ms)
            VALUES ('old', 'ru', 'Old', 'body', 1, 1);
            """
        )
        assert migrate(conn) == 3
        row = conn.execute("SELECT cover_url FROM posts WHERE slug = 'old'").fetchone()
        assert row[0] == ""

    def test_corrupt_version_is_fatal(self) -> None:
        conn = open_database(None)
        conn.executescript(
            """
            CREATE TABLE _meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);
            INSERT INTO _meta VALUES ('schema_version', 'banana');
            """
        )
        with pytest.raises(SchemaVersionError):
            migrate(conn)

    def test_future_version_is_fatal(self) -> None:
        conn = open_database(None)
        conn.executescript(
            """
            CREATE TABLE _meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);
            INSERT INTO _meta VALUES ('schema_version', '99');
            """
        )
        with pytest.raises(SchemaVersionError):
            migrate(conn)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class TestPosts:
    def test_get_missing_post_returns_none(self, store: ContentStore) -> None:
        assert store.get_post("nope", "ru") is None

    def test_upsert_returns_stored_post(self, store: ContentStore) -> None:
        post = store.upsert_post(
            slug="hello",
            lang="en",
            title="Hello",
            content="# Hello",
            excerpt="Hi",
            tags=["a", "b"],
            date="1 May",
            read_time="2 min",
            cover_url="/img.png",
            updated_at_ms=500,
        )
        assert isinstance(post, Post)
        assert post.slug == "hello"
        assert post.lang == "en"
        assert post.tags == ["a", "b"]
        assert post.cover_url == "/img.png"
        assert post.updated_at_ms == 500

    def test_missing_fields_degrade_to_empty(self, store: ContentStore) -> None:
        post = store.upsert_post(slug="bare", lang="ru", tags="not-a-list")
        assert post.title == ""
        assert post.content == ""
        assert post.tags == []
        assert post.created_at_ms > 0

    def test_created_at_preserved_on_second_upsert(self, store: ContentStore) -> None:
        first = store.upsert_post(
            slug="s", lang="ru", title="T", content="c",
            created_at_ms=100, updated_at_ms=100,
        )
        second = store.upsert_post(
            slug="s", lang="ru", title="T", content="c",
            created_at_ms=999, updated_at_ms=200,
        )
        assert first.created_at_ms == 100
        assert second.created_at_ms == 100
        assert second.updated_at_ms == 200
        assert store.count_posts() == 1

    def test_languages_are_independent(self, store: ContentStore) -> None:
        store.upsert_post(slug="s", lang="ru", title="RU", content="ru")
        store.upsert_post(slug="s", lang="en", title="EN", content="en")
        assert store.count_posts() == 2

        assert store.delete_post("s", "en") is True
        assert store.get_post("s", "en") is None
        assert store.get_post("s", "ru").title == "RU"  # type: ignore[union-attr]

    def test_delete_missing_returns_false(self, store: ContentStore) -> None:
        assert store.delete_post("ghost", "ru") is False

    def test_unknown_lang_normalised_to_ru(self, store: ContentStore) -> None:
        store.upsert_post(slug="s", lang="de", title="T", content="c")
        assert store.get_post("s", "ru") is not None
        assert safe_lang("en") == "en"
        assert safe_lang(None) == "ru"

    def test_list_metas_ordered_by_updated_desc(self, store: ContentStore) -> None:
        for slug, updated in (("a", 100), ("b", 300), ("c", 200)):
            store.upsert_post(slug=slug, lang="ru", title=slug, content="x", updated_at_ms=updated)
        store.upsert_post(slug="z", lang="en", title="z", content="x", updated_at_ms=1000)

        metas = store.list_post_metas("ru")
        assert [m.slug for m in metas] == ["b", "c", "a"]
        assert [m.updated_at_ms for m in metas] == [300, 200, 100]
        assert not hasattr(metas[0], "content")

    def test_corrupt_tags_json_reads_as_empty(self, store: ContentStore) -> None:
        store.upsert_post(slug="s", lang="ru", title="T", content="c", tags=["x"])
        with store.connection:
            store.connection.execute("UPDATE posts SET tags_json = 'oops'")
        assert store.get_post("s", "ru").tags == []  # type: ignore[union-attr]

    def test_concurrent_upserts_keep_first_created_at(self, store: ContentStore) -> None:
        store.upsert_post(slug="race", lang="ru", title="T", content="c", created_at_ms=42)

        def worker(i: int) -> None:
            store.upsert_post(
                slug="race", lang="ru", title=f"T{i}", content="c",
                created_at_ms=1000 + i, updated_at_ms=2000 + i,
            )

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        post = store.get_post("race", "ru")
        assert post is not None
        assert post.created_at_ms == 42
        assert store.count_posts() == 1


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class TestProjects:
    def test_replace_is_a_full_swap(self, store: ContentStore) -> None:
        store.replace_projects("ru", [{"id": "a", "title": "A"}, {"id": "b", "title": "B"}])
        store.replace_projects("en", [{"id": "e", "title": "E"}])

        result = store.replace_projects("ru", [{"id": "c", "title": "C"}])

        assert [p.id for p in result] == ["c"]
        assert [p.id for p in store.get_projects("ru")] == ["c"]
        assert [p.id for p in store.get_projects("en")] == ["e"]

    def test_fields_round_trip(self, store: ContentStore) -> None:
        stored = store.replace_projects(
            "en",
            [
                {
                    "id": " crm ",
                    "title": "CRM",
                    "description": "Short",
                    "fullDescription": "## Long",
                    "image": "/crm.png",
                    "technologies": ["React", "Node"],
                    "features": ["Booking"],
                    "demoUrl": "https://demo",
                }
            ],
        )
        p = stored[0]
        assert p.id == "crm"
        assert p.lang == "en"
        assert p.full_description == "## Long"
        assert p.technologies == ["React", "Node"]
        assert p.features == ["Booking"]
        assert p.demo_url == "https://demo"
        assert p.github_url == ""
        assert p.to_dict()["fullDescription"] == "## Long"

    def test_non_string_list_items_round_trip(self, store: ContentStore) -> None:
        stored = store.replace_projects(
            "en", [{"id": "a", "technologies": ["React", 18, {"name": "Node"}], "features": [True]}]
        )
        assert stored[0].technologies == ["React", 18, {"name": "Node"}]
        assert stored[0].features == [True]

    def test_blank_ids_skipped_and_title_defaults(self, store: ContentStore) -> None:
        stored = store.replace_projects("ru", [{"id": "  "}, {"title": "no id"}, {"id": "x"}, "junk"])
        assert [(p.id, p.title) for p in stored] == [("x", "x")]

    def test_failed_replace_rolls_back(self, store: ContentStore) -> None:
        store.replace_projects("ru", [{"id": "keep"}])
        with pytest.raises(sqlite3.IntegrityError):
            store.replace_projects("ru", [{"id": "dup"}, {"id": "dup"}])
        assert [p.id for p in store.get_projects("ru")] == ["keep"]

    def test_count_projects(self, store: ContentStore) -> None:
        store.replace_projects("ru", [{"id": "a"}, {"id": "b"}])
        assert store.count_projects("ru") == 2
        assert store.count_projects("en") == 0
        assert store.count_projects() == 2

    def test_readers_never_see_a_partial_replace(self, store: ContentStore) -> None:
        first = [{"id": f"a{i}"} for i in range(50)]
        second = [{"id": f"b{i}"} for i in range(50)]
        store.replace_projects("ru", first)

        seen: set[int] = set()
        done = threading.Event()

        def read() -> None:
            while True:
                seen.add(len(store.get_projects("ru")))
                if done.is_set():
                    break

        reader = threading.Thread(target=read)
        reader.start()
        try:
            for i in range(40):
                store.replace_projects("ru", second if i % 2 == 0 else first)
        finally:
            done.set()
            reader.join()

        assert seen == {50}

    def test_readers_never_see_rolled_back_rows(self, store: ContentStore) -> None:
        store.replace_projects("ru", [{"id": "keep"}])
        doomed = [{"id": f"x{i}"} for i in range(30)] + [{"id": "x0"}]

        seen: set[tuple[str, ...]] = set()
        done = threading.Event()

        def read() -> None:
            while True:
                seen.add(tuple(p.id for p in store.get_projects("ru")))
                if done.is_set():
                    break

        reader = threading.Thread(target=read)
        reader.start()
        try:
            for _ in range(20):
                with pytest.raises(sqlite3.IntegrityError):
                    store.replace_projects("ru", doomed)
        finally:
            done.set()
            reader.join()

        assert seen == {("keep",)}


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:
    def test_missing_file_starts_empty(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "content.sqlite"
        s = ContentStore.open(db_path)
        assert s.count_posts() == 0
        assert not db_path.exists()
        s.close()

    def test_writes_are_persisted_and_reloaded(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "content.sqlite"
        s = ContentStore.open(db_path)
        s.upsert_post(slug="p", lang="ru", title="Persisted", content="c", created_at_ms=7)
        s.replace_projects("en", [{"id": "proj"}])
        s.close()
        assert db_path.is_file()

        reopened = ContentStore.open(db_path)
        post = reopened.get_post("p", "ru")
        assert post is not None
        assert post.title == "Persisted"
        assert post.created_at_ms == 7
        assert [p.id for p in reopened.get_projects("en")] == ["proj"]
        assert current_version(reopened.connection) == SCHEMA_VERSION
        reopened.close()

    def test_delete_is_persisted(self, tmp_path: Path) -> None:
        db_path = tmp_path / "content.sqlite"
        s = ContentStore.open(db_path)
        s.upsert_post(slug="p", lang="ru", title="T", content="c")
        s.delete_post("p", "ru")
        s.close()

        reopened = ContentStore.open(db_path)
        assert reopened.get_post("p", "ru") is None
        reopened.close()

    def test_save_writes_empty_migrated_db(self, tmp_path: Path) -> None:
        db_path = tmp_path / "content.sqlite"
        s = ContentStore.open(db_path)
        s.save()
        s.close()

        conn = sqlite3.connect(db_path)
        row = conn.execute("SELECT value FROM _meta WHERE key = 'schema_version'").fetchone()
        conn.close()
        assert row[0] == "3"

    def test_corrupt_file_is_fatal(self, tmp_path: Path) -> None:
        db_path = tmp_path / "content.sqlite"
        db_path.write_bytes(b"this is definitely not a sqlite database" * 100)
        with pytest.raises(sqlite3.DatabaseError):
            ContentStore.open(db_path)
        # The broken file is left untouched.
        assert db_path.read_bytes().startswith(b"this is definitely")
