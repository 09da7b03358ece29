from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from .. import config
from ..config import IndexingConfig, MetaFileConfig
from ..models import SidecarKind

PathLike = Union[str, Path]


class EntryKind(Enum):
    PHOTO = 'photo'
    VIDEO = 'video'
    SIDECAR = 'sidecar'
    UNKNOWN = 'unknown'


def _ext(path: PathLike) -> str:
    return Path(path).suffix.lower()


class FormatRegistry:
    """Extension lookup for the file types the scanner understands."""

    def __init__(self,
                 photo_extensions: Iterable[str] = config.PHOTO_EXTS,
                 video_extensions: Iterable[str] = config.VIDEO_EXTS,
                 sidecar_extensions: Mapping[str, str] = config.SIDECAR_EXTS):
        self.photo_extensions = frozenset(e.lower() for e in photo_extensions)
        self.video_extensions = frozenset(e.lower() for e in video_extensions)
        self.sidecar_extensions = {e.lower(): SidecarKind(t) for e, t in sidecar_extensions.items()}

    @classmethod
    def from_config(cls, cfg: IndexingConfig) -> 'FormatRegistry':
        return cls(cfg.photo_extensions, cfg.video_extensions)

    def is_photo(self, path: PathLike) -> bool:
        return _ext(path) in self.photo_extensions

    def is_video(self, path: PathLike) -> bool:
        return _ext(path) in self.video_extensions

    def is_sidecar(self, path: PathLike) -> bool:
        return _ext(path) in self.sidecar_extensions

    def sidecar_kind(self, path: PathLike) -> Optional[SidecarKind]:
        return self.sidecar_extensions.get(_ext(path))


class MediaClassifier:
    def __init__(self, registry: FormatRegistry, meta_file: MetaFileConfig = MetaFileConfig()):
        self.registry = registry
        self.meta_file = meta_file

    def classify(self, path: PathLike) -> EntryKind:
        # ignore AppleDouble / dot-underscore files from macOS
        if Path(path).name.startswith("._"):
            return EntryKind.UNKNOWN

        if self.registry.is_photo(path):
            return EntryKind.PHOTO
        if self.registry.is_video(path):
            return EntryKind.VIDEO
        if self.registry.is_sidecar(path):
            return EntryKind.SIDECAR
        return EntryKind.UNKNOWN

    def is_sidecar_type_enabled(self, extension: str) -> bool:
        kind = self.registry.sidecar_extensions.get(extension.lower())
        if kind is None:
            return False
        return self.meta_file.is_enabled(kind.value)
