"""Database layer package.

Public re-exports so callers can write::

    from sitecms.db import ContentStore, migrate
"""

from sitecms.db.connection import open_database, persist_database
from sitecms.db.migrations import SchemaVersionError, current_version, migrate
from sitecms.db.store import ContentStore, safe_lang

__all__ = [
    "ContentStore",
    "SchemaVersionError",
    "current_version",
    "migrate",
    "open_database",
    "persist_database",
    "safe_lang",
]
