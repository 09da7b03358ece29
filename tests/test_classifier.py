from gallery_indexer import config
from gallery_indexer.config import IndexingConfig, MetaFileConfig
from gallery_indexer.models import SidecarKind
from gallery_indexer.scanning.classifier import EntryKind, FormatRegistry, MediaClassifier


def test_classify_by_extension():
    c = MediaClassifier(FormatRegistry())
    assert c.classify("a.jpg") is EntryKind.PHOTO
    assert c.classify("A.JPEG") is EntryKind.PHOTO
    assert c.classify("scan.tiff") is EntryKind.PHOTO
    assert c.classify("clip.MOV") is EntryKind.VIDEO
    assert c.classify("track.gpx") is EntryKind.SIDECAR
    assert c.classify("notes.txt") is EntryKind.UNKNOWN
    assert c.classify("noext") is EntryKind.UNKNOWN


def test_appledouble_files_are_ignored():
    c = MediaClassifier(FormatRegistry())
    assert c.classify("._IMG_0001.jpg") is EntryKind.UNKNOWN


def test_registry_from_config_uses_configured_extensions(tmp_path):
    cfg = IndexingConfig(image_root=tmp_path, photo_extensions=[".JPG"], video_extensions=[])
    reg = FormatRegistry.from_config(cfg)
    assert reg.is_photo("x.jpg")
    assert not reg.is_photo("x.png")
    assert not reg.is_video("x.mp4")
    assert reg.sidecar_kind("route.GPX") is SidecarKind.GPX


def test_sidecar_type_switches():
    c = MediaClassifier(FormatRegistry(), MetaFileConfig(gpx=True, markdown=False, pg2conf=True))
    assert c.is_sidecar_type_enabled(".gpx")
    assert not c.is_sidecar_type_enabled(".md")
    assert c.is_sidecar_type_enabled(".PG2CONF")
    assert not c.is_sidecar_type_enabled(".txt")


def test_default_extension_sets_do_not_overlap():
    assert not (config.PHOTO_EXTS & config.VIDEO_EXTS)
    assert not (set(config.SIDECAR_EXTS) & (config.PHOTO_EXTS | config.VIDEO_EXTS))
