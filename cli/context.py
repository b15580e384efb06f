"""Shared state for CLI commands.

Each command opens the content store for its own duration::

    with open_store() as store:
        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sitecms.config import settings
from sitecms.db.store import ContentStore


@contextmanager
def open_store() -> Iterator[ContentStore]:
    """Open (and migrate) the store at ``settings.db_path``; close it afterwards."""
    store = ContentStore.open(settings.db_path)
    try:
        yield store
    finally:
        store.close()
