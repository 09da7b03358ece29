import pytest
import sqlite3
from pathlib import Path

from gallery_indexer.config import IndexingConfig
from gallery_indexer.database.schema import init_schema
from gallery_indexer.database.ops import SnapshotStore
from gallery_indexer.exceptions import MetadataExtractionError
from gallery_indexer.models import MediaDimension, PhotoMetadata, VideoMetadata
from gallery_indexer.scanning.directory import DirectoryScanner


class FakeLoader:
    """Records which files were parsed. Names in `fail` raise on load."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.photo_calls = []
        self.video_calls = []

    def load_photo_metadata(self, path: Path) -> PhotoMetadata:
        self.photo_calls.append(path.name)
        if path.name in self.fail:
            raise MetadataExtractionError(f"corrupt photo {path.name}", str(path))
        return PhotoMetadata(size=MediaDimension(4, 3), file_size=path.stat().st_size)

    def load_video_metadata(self, path: Path) -> VideoMetadata:
        self.video_calls.append(path.name)
        if path.name in self.fail:
            raise RuntimeError(f"corrupt container {path.name}")
        return VideoMetadata(duration=1.5, file_size=path.stat().st_size)


def make_tree(root: Path, files):
    """Creates files (and their parent folders) below root. Paths ending in '/' are empty dirs."""
    for rel in files:
        p = root / rel
        if rel.endswith('/'):
            p.mkdir(parents=True, exist_ok=True)
        else:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(b"x")
    return root


@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def store(conn):
    """Returns a SnapshotStore attached to the in-memory DB."""
    return SnapshotStore(conn)


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def library(tmp_path):
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def make_scanner(library, loader):
    """Factory: make_scanner(**config_overrides) -> DirectoryScanner over `library`."""
    def _make(metadata_loader=None, max_workers=None, **overrides):
        cfg = IndexingConfig(image_root=library, **overrides)
        return DirectoryScanner(cfg, metadata_loader or loader, max_workers=max_workers)
    return _make
