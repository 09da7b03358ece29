import json
from pathlib import Path

import pytest

from gallery_indexer import config
from gallery_indexer.config import IndexingConfig, MetaFileConfig, config_from_dict, load_config
from gallery_indexer.exceptions import ConfigError


def write_config(tmp_path, payload):
    p = tmp_path / "indexer.json"
    p.write_text(json.dumps(payload) if not isinstance(payload, str) else payload, encoding="utf-8")
    return p


def test_defaults(tmp_path):
    cfg = IndexingConfig(image_root=str(tmp_path))
    assert cfg.image_root == tmp_path
    assert cfg.video_enabled
    assert cfg.exclude_folder_list == ()
    assert cfg.meta_file == MetaFileConfig()
    assert cfg.max_workers == config.DEFAULT_MAX_WORKERS
    assert ".jpg" in cfg.photo_extensions


def test_load_config_from_file(tmp_path):
    p = write_config(tmp_path, {
        "image_root": "/srv/photos",
        "exclude_folder_list": ["/srv/photos/private", "2019/tmp", ".thumbnails"],
        "exclude_file_list": [".ignore"],
        "video_enabled": False,
        "meta_file": {"markdown": False},
        "max_workers": 2,
    })

    cfg = load_config(p)

    assert cfg.image_root == Path("/srv/photos")
    assert cfg.exclude_folder_list == ("/srv/photos/private", "2019/tmp", ".thumbnails")
    assert cfg.exclude_file_list == (".ignore",)
    assert not cfg.video_enabled
    assert cfg.meta_file == MetaFileConfig(gpx=True, markdown=False, pg2conf=True)
    assert cfg.max_workers == 2


def test_explicit_root_wins(tmp_path):
    p = write_config(tmp_path, {"image_root": "/srv/photos"})
    assert load_config(p, image_root=tmp_path).image_root == tmp_path


def test_extensions_are_lowercased(tmp_path):
    cfg = config_from_dict({"photo_extensions": [".JPG", ".Png"]}, image_root=tmp_path)
    assert cfg.photo_extensions == frozenset({".jpg", ".png"})


@pytest.mark.parametrize("payload", [
    "{not json",
    "[1, 2]",
    {"image_root": "/x", "surprise": 1},
    {"image_root": "/x", "exclude_folder_list": "private"},
    {"image_root": "/x", "video_enabled": "yes"},
    {"image_root": "/x", "max_workers": 0},
    {"image_root": "/x", "meta_file": {"exif": True}},
    {"exclude_folder_list": []},
])
def test_invalid_configs_raise(tmp_path, payload):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, payload))


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json")
