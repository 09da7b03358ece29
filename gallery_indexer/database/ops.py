import json
import sqlite3
import logging
from datetime import datetime, UTC
from typing import Optional, Tuple, List

from ..exceptions import DatabaseError
from ..models import DirectorySnapshot
from ..paths import normalize_dir_path


class SnapshotStore:
    """
    Keeps the last full snapshot of every directory.
    Partial (cover-only) snapshots are never stored; they are not authoritative.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def save(self, snapshot: DirectorySnapshot):
        """Inserts or replaces the snapshot stored for the snapshot's directory."""
        if snapshot.is_partial or snapshot.last_scanned == 0:
            raise DatabaseError(f"Refusing to store partial snapshot of {snapshot.relative_path}")

        now_iso = datetime.now(UTC).isoformat()
        cover = snapshot.cover
        cover_dir = None
        if cover is not None and cover.directory is not None:
            cover_dir = normalize_dir_path(cover.directory.path + cover.directory.name)

        try:
            self.conn.execute("""
                INSERT INTO directories (
                    rel_path, name, parent_path, last_modified, last_scanned,
                    media_count, video_count, directory_count,
                    cover_name, cover_dir, snapshot_json, saved_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(rel_path) DO UPDATE SET
                    name = excluded.name,
                    parent_path = excluded.parent_path,
                    last_modified = excluded.last_modified,
                    last_scanned = excluded.last_scanned,
                    media_count = excluded.media_count,
                    video_count = excluded.video_count,
                    directory_count = excluded.directory_count,
                    cover_name = excluded.cover_name,
                    cover_dir = excluded.cover_dir,
                    snapshot_json = excluded.snapshot_json,
                    saved_at = excluded.saved_at
            """, (
                snapshot.relative_path, snapshot.name, snapshot.path,
                snapshot.last_modified, snapshot.last_scanned,
                snapshot.media_count, snapshot.video_count, snapshot.directory_count,
                cover.name if cover else None, cover_dir,
                json.dumps(snapshot.to_dict()), now_iso,
            ))
            self.conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to store snapshot of {snapshot.relative_path}: {e}") from e

        logging.debug(f"Stored snapshot of {snapshot.relative_path}")

    def load(self, rel_path: str) -> Optional[DirectorySnapshot]:
        row = self._fetch_one("SELECT snapshot_json FROM directories WHERE rel_path = ?", rel_path)
        if row is None:
            return None
        try:
            return DirectorySnapshot.from_dict(json.loads(row[0]))
        except (ValueError, KeyError, TypeError) as e:
            # A body we cannot read is as good as no cache entry
            logging.warning(f"Discarding unreadable snapshot of {rel_path}: {e}")
            return None

    def known_state(self, rel_path: str) -> Optional[Tuple[int, int]]:
        """(last_modified, last_scanned) of the stored snapshot, if any."""
        row = self._fetch_one(
            "SELECT last_modified, last_scanned FROM directories WHERE rel_path = ?", rel_path)
        if row is None:
            return None
        return int(row[0]), int(row[1])

    def delete(self, rel_path: str):
        try:
            self.conn.execute("DELETE FROM directories WHERE rel_path = ?", (normalize_dir_path(rel_path),))
            self.conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to delete snapshot of {rel_path}: {e}") from e

    def list_paths(self) -> List[str]:
        cur = self.conn.cursor()
        cur.execute("SELECT rel_path FROM directories ORDER BY rel_path")
        return [r[0] for r in cur.fetchall()]

    def _fetch_one(self, sql: str, rel_path: str):
        try:
            cur = self.conn.cursor()
            cur.execute(sql, (normalize_dir_path(rel_path),))
            return cur.fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to read snapshot of {rel_path}: {e}") from e
