import logging
import sqlite3
import threading
from collections import deque
from typing import Optional

from tqdm import tqdm

from .cache.freshness import Freshness, FreshnessGate
from .database.ops import SnapshotStore
from .exceptions import DirectoryNotFoundError, MetadataExtractionError, ScanAbortedError, ScanError
from .models import DirectorySnapshot, ScanSettings
from .paths import normalize_dir_path
from .scanning.directory import DirectoryScanner


class GalleryManager:
    """
    Serves directory listings from the snapshot store, rescanning when the
    directory changed on disk or the client does not hold the latest scan.
    """

    def __init__(self, scanner: DirectoryScanner, store: SnapshotStore,
                 gate: Optional[FreshnessGate] = None):
        self.scanner = scanner
        self.store = store
        self.gate = gate or FreshnessGate()

    @classmethod
    def from_connection(cls, scanner: DirectoryScanner, conn: sqlite3.Connection) -> 'GalleryManager':
        return cls(scanner, SnapshotStore(conn))

    def list_directory(self,
                       relative_dir: str,
                       known_last_modified: Optional[int] = None,
                       known_last_scanned: Optional[int] = None,
                       cancel_event: Optional[threading.Event] = None) -> Optional[DirectorySnapshot]:
        """
        Returns None when the client's (known_last_modified, known_last_scanned)
        still describe the newest scan, otherwise a freshly scanned snapshot.
        """
        rel = normalize_dir_path(relative_dir)

        try:
            current_last_modified = self.scanner.stat_last_modified(rel)
        except DirectoryNotFoundError:
            self.store.delete(rel)
            raise

        cached = self.store.load(rel)
        if cached is not None and cached.last_modified != current_last_modified:
            logging.info(f"Directory changed on disk, dropping cached snapshot: {rel}")
            cached = None

        if self.gate.resolve(cached, known_last_modified, known_last_scanned) is Freshness.NOT_MODIFIED:
            logging.debug(f"Not modified: {rel}")
            return None

        snapshot = self.scanner.scan(rel, cancel_event=cancel_event)
        self.store.save(snapshot)
        return snapshot


class LibraryIndexer:
    """Full scan of every reachable directory, breadth first, persisted as it goes."""

    def __init__(self, scanner: DirectoryScanner, store: SnapshotStore):
        self.scanner = scanner
        self.store = store

    def index(self,
              relative_dir: str = '.',
              settings: Optional[ScanSettings] = None,
              cancel_event: Optional[threading.Event] = None,
              show_progress: bool = True) -> int:
        """
        Returns the number of directories indexed.
        Failures below the starting directory are logged and that subtree skipped.
        """
        root = normalize_dir_path(relative_dir)
        queue = deque([root])
        indexed = 0

        logging.info(f"Indexing library from {root}...")
        with tqdm(desc="Indexing", unit="dir", disable=not show_progress) as bar:
            while queue:
                rel = queue.popleft()
                try:
                    snapshot = self.scanner.scan(rel, settings, cancel_event)
                except ScanAbortedError:
                    raise
                except (ScanError, MetadataExtractionError) as e:
                    if rel == root:
                        raise
                    logging.error(f"Failed to index directory {rel}: {e}")
                    continue

                self.store.save(snapshot)
                indexed += 1
                bar.update(1)

                # children are only there when not excluded
                for child in snapshot.directories:
                    queue.append(child.relative_path)

        logging.info(f"Indexing complete. Indexed {indexed} directories.")
        return indexed
