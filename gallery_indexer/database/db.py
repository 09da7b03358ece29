"""
Snapshot store connection handling.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseError
from .schema import init_schema

MEMORY = ":memory:"

# `list` requests may run while an `index` run holds the write lock
BUSY_TIMEOUT_MS = 5000


class DBManager:
    def __init__(self, db_path: Union[Path, str]):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Opens the store (creating the file and its folder on first use) and
        makes sure the schema is current.
        """
        if self._conn:
            return self._conn

        target = str(self.db_path)
        if target != MEMORY:
            Path(target).parent.mkdir(parents=True, exist_ok=True)

        logging.info(f"Opening snapshot store: {target}")
        try:
            conn = sqlite3.connect(target)
            if target != MEMORY:
                # single writer, concurrent readers
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS};")
            init_schema(conn)
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open snapshot store {target}: {e}") from e

        self._conn = conn
        return conn

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
