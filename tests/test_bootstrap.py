"""Tests for the legacy flat-file import."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Generator

import pytest

from sitecms.config import Settings
from sitecms.content.bootstrap import bootstrap_if_empty, bootstrap_posts, bootstrap_projects
from sitecms.db.store import ContentStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / "public" / "blog").mkdir(parents=True)
    return root


@pytest.fixture()
def cfg(repo: Path) -> Settings:
    return Settings(repo_root=repo, dist_root=None, sqlite_path="content.sqlite", sync_from_fs=False)


@pytest.fixture()
def store(cfg: Settings) -> Generator[ContentStore, None, None]:
    s = ContentStore.open(cfg.db_path)
    yield s
    s.close()


def _write(path: Path, text: str, mtime: int | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class TestBootstrapPosts:
    def test_cold_start_imports_both_languages(self, store, cfg, repo) -> None:
        blog = repo / "public" / "blog"
        _write(blog / "hello.md", "# Hello\n\nWorld.", mtime=1_700_000_000)
        _write(blog / "hello.en.md", "# Hello EN\n\nWorld EN.")

        report = bootstrap_posts(store, cfg)

        assert report.imported == 2
        assert report.source_dir == blog
        ru = store.get_post("hello", "ru")
        en = store.get_post("hello", "en")
        assert ru is not None and ru.title == "Hello"
        assert en is not None and en.title == "Hello EN"
        assert ru.excerpt == "World."
        assert ru.created_at_ms == ru.updated_at_ms == 1_700_000_000_000

        assert store.delete_post("hello", "ru") is True
        assert store.get_post("hello", "en") is not None
        assert store.delete_post("hello", "en") is True

    def test_imported_posts_are_persisted(self, store, cfg, repo) -> None:
        _write(repo / "public" / "blog" / "a.md", "# A")
        bootstrap_posts(store, cfg)

        reopened = ContentStore.open(cfg.db_path)
        assert reopened.get_post("a", "ru") is not None
        reopened.close()

    def test_populated_store_is_left_alone(self, store, cfg, repo) -> None:
        store.upsert_post(slug="existing", lang="ru", title="Kept", content="c", updated_at_ms=5)
        before = [(m.slug, m.updated_at_ms) for m in store.list_post_metas("ru")]
        _write(repo / "public" / "blog" / "new.md", "# New")
        _write(repo / "public" / "blog" / "existing.md", "# Changed")

        report = bootstrap_posts(store, cfg)

        assert report.imported == 0
        assert [(m.slug, m.updated_at_ms) for m in store.list_post_metas("ru")] == before
        assert store.get_post("existing", "ru").title == "Kept"  # type: ignore[union-attr]

    def test_dist_root_wins_over_repo(self, store, repo, tmp_path) -> None:
        dist = tmp_path / "dist"
        _write(dist / "blog" / "from-dist.md", "# Dist")
        _write(repo / "public" / "blog" / "from-repo.md", "# Repo")
        cfg = Settings(repo_root=repo, dist_root=dist, sqlite_path="content.sqlite")

        report = bootstrap_posts(store, cfg)

        assert report.imported == 1
        assert store.get_post("from-dist", "ru") is not None
        assert store.get_post("from-repo", "ru") is None

    def test_empty_dist_falls_back_to_repo(self, store, repo, tmp_path) -> None:
        dist = tmp_path / "dist"
        (dist / "blog").mkdir(parents=True)
        _write(repo / "public" / "blog" / "from-repo.md", "# Repo")
        cfg = Settings(repo_root=repo, dist_root=dist, sqlite_path="content.sqlite")

        assert bootstrap_posts(store, cfg).imported == 1
        assert store.get_post("from-repo", "ru") is not None

    def test_blank_and_undecodable_files_skipped(self, store, cfg, repo) -> None:
        blog = repo / "public" / "blog"
        _write(blog / "blank.md", "   \n")
        (blog / "binary.md").write_bytes(b"\xff\xfe\x00bad")
        _write(blog / "good.md", "# Good")

        report = bootstrap_posts(store, cfg)

        assert report.imported == 1
        assert store.count_posts() == 1

    def test_front_matter_fields_imported(self, store, cfg, repo) -> None:
        _write(
            repo / "public" / "blog" / "fm.en.md",
            "---\ntitle: FM\ntags:\n  - a\ncover: /c.png\n---\nBody words here.",
        )
        bootstrap_posts(store, cfg)
        post = store.get_post("fm", "en")
        assert post is not None
        assert (post.title, post.tags, post.cover_url) == ("FM", ["a"], "/c.png")
        assert post.read_time == "1 min"
        assert post.content.startswith("---\ntitle: FM")

    def test_sync_mode_refreshes_newer_files(self, store, repo) -> None:
        cfg = Settings(repo_root=repo, dist_root=None, sqlite_path="content.sqlite", sync_from_fs=True)
        store.upsert_post(slug="a", lang="ru", title="Old", content="old", created_at_ms=1, updated_at_ms=1)
        store.upsert_post(slug="b", lang="ru", title="Newer in DB", content="b", updated_at_ms=10**13)
        _write(repo / "public" / "blog" / "a.md", "# Fresh", mtime=1_700_000_000)
        _write(repo / "public" / "blog" / "b.md", "# Stale", mtime=1_700_000_000)

        report = bootstrap_posts(store, cfg)

        assert (report.updated, report.skipped_existing) == (1, 1)
        a = store.get_post("a", "ru")
        assert a.title == "Fresh"  # type: ignore[union-attr]
        assert a.created_at_ms == 1  # type: ignore[union-attr]
        assert store.get_post("b", "ru").title == "Newer in DB"  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class TestBootstrapProjects:
    def test_imports_each_language(self, store, cfg, repo) -> None:
        _write(repo / "content" / "projects.ru.json", json.dumps([{"id": "a", "title": "A"}]))
        _write(repo / "public" / "content" / "projects.en.json", json.dumps([{"id": "b"}]))

        assert bootstrap_projects(store, cfg) == ["ru", "en"]
        assert [p.id for p in store.get_projects("ru")] == ["a"]
        assert [p.id for p in store.get_projects("en")] == ["b"]

    def test_malformed_candidate_falls_through(self, store, cfg, repo) -> None:
        _write(repo / "content" / "projects.ru.json", "{not json")
        _write(repo / "public" / "content" / "projects.ru.json", json.dumps([{"id": "ok"}]))
        _write(repo / "content" / "projects.en.json", json.dumps({"id": "object"}))

        assert bootstrap_projects(store, cfg) == ["ru"]
        assert [p.id for p in store.get_projects("ru")] == ["ok"]
        assert store.get_projects("en") == []

    def test_dist_root_checked_first(self, store, repo, tmp_path) -> None:
        dist = tmp_path / "dist"
        _write(dist / "public" / "content" / "projects.ru.json", json.dumps([{"id": "dist"}]))
        _write(repo / "content" / "projects.ru.json", json.dumps([{"id": "repo"}]))
        cfg = Settings(repo_root=repo, dist_root=dist, sqlite_path="content.sqlite")

        bootstrap_projects(store, cfg)
        assert [p.id for p in store.get_projects("ru")] == ["dist"]

    def test_existing_language_not_overwritten(self, store, cfg, repo) -> None:
        store.replace_projects("ru", [{"id": "kept"}])
        _write(repo / "content" / "projects.ru.json", json.dumps([{"id": "new"}]))
        _write(repo / "content" / "projects.en.json", json.dumps([{"id": "en"}]))

        assert bootstrap_projects(store, cfg) == ["en"]
        assert [p.id for p in store.get_projects("ru")] == ["kept"]


class TestBootstrapIfEmpty:
    def test_runs_both_and_is_a_noop_the_second_time(self, store, cfg, repo) -> None:
        _write(repo / "public" / "blog" / "p.md", "# P")
        _write(repo / "content" / "projects.en.json", json.dumps([{"id": "x"}]))

        first = bootstrap_if_empty(store, cfg)
        assert first.imported == 1
        assert first.project_langs == ["en"]

        metas = [(m.slug, m.updated_at_ms) for m in store.list_post_metas("ru")]
        _write(repo / "public" / "blog" / "other.md", "# Other")
        second = bootstrap_if_empty(store, cfg)
        assert second.imported == 0
        assert second.project_langs == []
        assert [(m.slug, m.updated_at_ms) for m in store.list_post_metas("ru")] == metas
