import pytest
from types import SimpleNamespace
from datetime import datetime
from PIL import Image

import gallery_indexer.metadata.extract as extract_module
from gallery_indexer.exceptions import MetadataExtractionError
from gallery_indexer.metadata.extract import MetadataExtractor
from gallery_indexer.models import MediaDimension

# Mock MediaInfo class structure
class MockTrack:
    def __init__(self, **kwargs):
        self.track_type = "General"
        for k, v in kwargs.items():
            setattr(self, k, v)

class MockMediaInfo:
    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def can_parse(cls):
        return True

    @classmethod
    def parse(cls, path):
        return cls([
            MockTrack(duration=5000, recorded_date="2023-01-01 12:00:00", overall_bit_rate="8000000"),
            MockTrack(track_type="Video", width=1920, height=1080, rotation="90.000", frame_rate="29.970"),
        ])

class BrokenMediaInfo(MockMediaInfo):
    @classmethod
    def parse(cls, path):
        raise RuntimeError("truncated container")

class UnavailableMediaInfo(MockMediaInfo):
    @classmethod
    def can_parse(cls):
        return False

@pytest.fixture
def no_exiftool(monkeypatch):
    monkeypatch.setattr(extract_module.shutil, "which", lambda name: None)

def test_video_metadata_extraction(monkeypatch, tmp_path, no_exiftool):
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)

    vid = tmp_path / "test.mp4"
    vid.write_bytes(b"0123456789")

    meta = MetadataExtractor().load_video_metadata(vid)

    assert meta.creation_date == datetime(2023, 1, 1, 12, 0, 0)
    assert meta.duration == 5.0
    # rotated by 90 degrees
    assert meta.size == MediaDimension(1080, 1920)
    assert meta.fps == pytest.approx(29.97)
    assert meta.bit_rate == 8000000
    assert meta.file_size == 10

def test_video_backend_failure_raises(monkeypatch, tmp_path, no_exiftool):
    monkeypatch.setattr(extract_module, "MediaInfo", BrokenMediaInfo)
    vid = tmp_path / "bad.mp4"
    vid.touch()

    with pytest.raises(MetadataExtractionError):
        MetadataExtractor().load_video_metadata(vid)

def test_video_without_backend_keeps_file_size(monkeypatch, tmp_path, no_exiftool):
    monkeypatch.setattr(extract_module, "MediaInfo", UnavailableMediaInfo)
    vid = tmp_path / "clip.mp4"
    vid.write_bytes(b"abc")

    meta = MetadataExtractor().load_video_metadata(vid)
    assert meta.file_size == 3
    assert meta.duration is None

def test_photo_size_from_pillow(tmp_path):
    img = tmp_path / "photo.jpg"
    Image.new("RGB", (30, 20), color="red").save(img)

    meta = MetadataExtractor().load_photo_metadata(img)

    assert meta.size == MediaDimension(30, 20)
    assert meta.file_size == img.stat().st_size
    assert meta.creation_date is None

def test_photo_exif_fields_and_orientation(monkeypatch, tmp_path):
    img = tmp_path / "portrait.jpg"
    Image.new("RGB", (40, 10)).save(img)

    tags = {
        "EXIF DateTimeOriginal": "2021:05:06 07:08:09",
        "Image Model": " PhoneCam ",
        "EXIF LensModel": "Wide",
        "Image Orientation": SimpleNamespace(values=[6]),
    }
    monkeypatch.setattr(MetadataExtractor, "_read_exif", lambda self, p: tags)

    meta = MetadataExtractor().load_photo_metadata(img)

    assert meta.creation_date == datetime(2021, 5, 6, 7, 8, 9)
    assert meta.camera_model == "PhoneCam"
    assert meta.lens_model == "Wide"
    assert meta.orientation == 6
    assert meta.size == MediaDimension(10, 40)

def test_unreadable_photo_raises(tmp_path):
    bad = tmp_path / "broken.jpg"
    bad.write_bytes(b"definitely not a jpeg")

    with pytest.raises(MetadataExtractionError) as exc:
        MetadataExtractor().load_photo_metadata(bad)
    assert exc.value.path == str(bad)

def test_flexible_date_parsing():
    ex = MetadataExtractor()
    assert ex._parse_flexible_date("UTC 2022-03-04 05:06:07") == datetime(2022, 3, 4, 5, 6, 7)
    assert ex._parse_flexible_date("2022:03:04 05:06:07.123") == datetime(2022, 3, 4, 5, 6, 7)
    assert ex._parse_flexible_date("garbage") is None
    assert ex._parse_flexible_date("") is None
