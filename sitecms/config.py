"""Centralised settings for the site content backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

LANGS: tuple[str, ...] = ("ru", "en")


def _optional_path(name: str) -> Optional[Path]:
    raw = os.environ.get(name, "").strip()
    return Path(raw) if raw else None


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Filesystem roots
    # ------------------------------------------------------------------
    repo_root: Path = field(
        default_factory=lambda: Path(os.environ.get("CONTENT_REPO_ROOT") or Path.cwd())
    )
    # Production directory served by nginx (contains blog/, content/ ...)
    dist_root: Optional[Path] = field(
        default_factory=lambda: _optional_path("CONTENT_DIST_ROOT")
    )

    # ------------------------------------------------------------------
    # SQLite store
    # ------------------------------------------------------------------
    sqlite_path: str = field(
        default_factory=lambda: os.environ.get(
            "SQLITE_PATH", str(Path("server") / "data" / "content.sqlite")
        )
    )
    sync_from_fs: bool = field(
        default_factory=lambda: os.environ.get("SQLITE_SYNC_FROM_FS", "").strip() == "1"
    )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    api_key: str = field(default_factory=lambda: os.environ.get("API_KEY", ""))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "3001")))
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        p = Path(self.sqlite_path)
        return p if p.is_absolute() else self.repo_root / p

    @property
    def content_roots(self) -> list[Path]:
        """Roots in preference order: dist root first, then the repo checkout."""
        return [r for r in (self.dist_root, self.repo_root) if r is not None]

    @property
    def legacy_blog_dirs(self) -> list[Path]:
        """Directories scanned for legacy Markdown posts, in preference order."""
        dirs = []
        if self.dist_root is not None:
            dirs.append(self.dist_root / "blog")
        dirs.append(self.repo_root / "public" / "blog")
        return dirs


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging once for an entry point (API server or CLI)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Module-level instance used by the entry points:
#   from sitecms.config import settings
settings = Settings()
