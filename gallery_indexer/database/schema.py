"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def init_schema(conn: sqlite3.Connection):
    """
    Applies the snapshot store schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Last full snapshot per directory
        # The aggregate columns duplicate the JSON body so they can be queried directly
        conn.execute("""
        CREATE TABLE IF NOT EXISTS directories (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            rel_path        TEXT NOT NULL UNIQUE,   -- canonical path relative to the library root
            name            TEXT NOT NULL,
            parent_path     TEXT NOT NULL,
            last_modified   INTEGER NOT NULL,       -- ms
            last_scanned    INTEGER NOT NULL,       -- ms
            media_count     INTEGER NOT NULL DEFAULT 0,
            video_count     INTEGER NOT NULL DEFAULT 0,
            directory_count INTEGER NOT NULL DEFAULT 0,
            cover_name      TEXT,
            cover_dir       TEXT,
            snapshot_json   TEXT NOT NULL,
            saved_at        TEXT NOT NULL
        );
        """)

        # 3. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_directories_parent ON directories(parent_path);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_directories_scanned ON directories(last_scanned);")

    logging.debug("Database schema initialized.")
