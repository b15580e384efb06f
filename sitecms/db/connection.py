"""In-memory SQLite engine backed by a single database file.

The whole database lives in memory for the lifetime of the process.  It is
loaded from its file once at startup and written back in full after every
write::

    conn = open_database(path)
    ...
    persist_database(conn, path)
"""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Optional


def open_database(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Return an in-memory connection holding the contents of *db_path*.

    A missing file is the normal first-run state and yields an empty database.
    Any other read failure (permissions, a directory in the way) propagates.
    A file that is not a SQLite database fails on the first query with
    :class:`sqlite3.DatabaseError`.

    Args:
        db_path: Backing file.  ``None`` gives a purely in-memory database.

    Returns:
        A :class:`sqlite3.Connection` with ``row_factory`` set to
        :class:`sqlite3.Row`.
    """
    raw = b""
    if db_path is not None:
        try:
            raw = Path(db_path).read_bytes()
        except FileNotFoundError:
            pass

    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row

    if raw:
        try:
            conn.deserialize(raw)
            # Forces a read of the header so a corrupt file fails here.
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        except sqlite3.DatabaseError:
            conn.close()
            raise

    return conn


def persist_database(conn: sqlite3.Connection, db_path: Path) -> None:
    """Write the full database image to *db_path*.

    The image goes to a sibling temporary file first and is then renamed over
    the target, so readers never see a half-written file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = db_path.with_name(db_path.name + ".tmp")
    tmp_path.write_bytes(conn.serialize())
    os.replace(tmp_path, db_path)
