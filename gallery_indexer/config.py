"""
Configuration constants and the indexing configuration snapshot.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

from .exceptions import ConfigError

# --- File Type Definitions ---
JPEG_EXTS = {'.jpg', '.jpeg', '.jpe', '.gif', '.png', '.webp', '.bmp'}
TIFF_EXTS = {'.tif', '.tiff'}
PHOTO_EXTS = JPEG_EXTS | TIFF_EXTS
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg',
              '.webm', '.ogv', '.mkv'}

# Sidecar extension to sidecar type
# Used to quickly classify files without complex if/else chains
SIDECAR_EXTS = {
    '.gpx': 'gpx',
    '.md': 'markdown',
    '.pg2conf': 'pg2conf',
}

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# --- Scanning & Performance ---
DEFAULT_MAX_WORKERS = 4
MAX_WORKERS_LIMIT = 16


@dataclass(frozen=True)
class MetaFileConfig:
    """Per-type switches for sidecar files."""
    gpx: bool = True
    markdown: bool = True
    pg2conf: bool = True

    def is_enabled(self, sidecar_type: str) -> bool:
        return bool(getattr(self, sidecar_type, False))


@dataclass(frozen=True)
class IndexingConfig:
    """
    Immutable snapshot of everything the scanner needs to know about the library.
    Passed explicitly into the scanner instead of being read from globals.
    """
    image_root: Path
    exclude_folder_list: tuple = ()
    exclude_file_list: tuple = ()
    video_enabled: bool = True
    meta_file: MetaFileConfig = field(default_factory=MetaFileConfig)
    max_workers: int = DEFAULT_MAX_WORKERS
    photo_extensions: FrozenSet[str] = frozenset(PHOTO_EXTS)
    video_extensions: FrozenSet[str] = frozenset(VIDEO_EXTS)

    def __post_init__(self):
        # Accept lists from callers but store tuples so the snapshot stays hashable
        object.__setattr__(self, 'image_root', Path(self.image_root))
        object.__setattr__(self, 'exclude_folder_list', tuple(self.exclude_folder_list))
        object.__setattr__(self, 'exclude_file_list', tuple(self.exclude_file_list))
        object.__setattr__(self, 'photo_extensions', frozenset(e.lower() for e in self.photo_extensions))
        object.__setattr__(self, 'video_extensions', frozenset(e.lower() for e in self.video_extensions))


_KNOWN_KEYS = {
    'image_root', 'exclude_folder_list', 'exclude_file_list',
    'video_enabled', 'meta_file', 'max_workers',
    'photo_extensions', 'video_extensions',
}


def load_config(config_path: Path, image_root: Optional[Path] = None) -> IndexingConfig:
    """
    Reads an IndexingConfig from a JSON file.

    Example:
        {
          "image_root": "/srv/photos",
          "exclude_folder_list": ["/srv/photos/private", "2019/tmp", ".thumbnails"],
          "exclude_file_list": [".ignore"],
          "video_enabled": true,
          "meta_file": {"gpx": true, "markdown": false}
        }

    An explicit image_root argument (e.g. from the CLI) wins over the file.
    """
    try:
        with config_path.open('r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")

    unknown = set(raw) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(sorted(unknown))}")

    return config_from_dict(raw, image_root)


def config_from_dict(raw: Dict[str, Any], image_root: Optional[Path] = None) -> IndexingConfig:
    root = image_root if image_root is not None else raw.get('image_root')
    if root is None:
        raise ConfigError("image_root is required")

    kwargs: Dict[str, Any] = {'image_root': Path(root)}

    for key in ('exclude_folder_list', 'exclude_file_list', 'photo_extensions', 'video_extensions'):
        if key in raw:
            value = raw[key]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{key} must be a list of strings")
            kwargs[key] = value

    if 'video_enabled' in raw:
        if not isinstance(raw['video_enabled'], bool):
            raise ConfigError("video_enabled must be a boolean")
        kwargs['video_enabled'] = raw['video_enabled']

    if 'max_workers' in raw:
        if not isinstance(raw['max_workers'], int) or raw['max_workers'] < 1:
            raise ConfigError("max_workers must be a positive integer")
        kwargs['max_workers'] = raw['max_workers']

    if 'meta_file' in raw:
        meta = raw['meta_file']
        if not isinstance(meta, dict) or not all(isinstance(v, bool) for v in meta.values()):
            raise ConfigError("meta_file must map sidecar types to booleans")
        bad = set(meta) - set(SIDECAR_EXTS.values())
        if bad:
            raise ConfigError(f"Unknown sidecar types: {', '.join(sorted(bad))}")
        kwargs['meta_file'] = MetaFileConfig(**meta)

    return IndexingConfig(**kwargs)
