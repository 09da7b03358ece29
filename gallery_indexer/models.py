import copy
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Union

from .paths import normalize_dir_path


class MediaKind(str, Enum):
    PHOTO = 'photo'
    VIDEO = 'video'


class SidecarKind(str, Enum):
    GPX = 'gpx'
    MARKDOWN = 'markdown'
    PG2CONF = 'pg2conf'


@dataclass(frozen=True)
class DirectoryRef:
    """Non-owning pointer from a file back to the directory that lists it."""
    path: str
    name: str


@dataclass
class MediaDimension:
    width: int
    height: int


@dataclass
class PhotoMetadata:
    size: Optional[MediaDimension] = None
    creation_date: Optional[datetime] = None
    file_size: Optional[int] = None
    camera_model: Optional[str] = None
    lens_model: Optional[str] = None
    orientation: Optional[int] = None


@dataclass
class VideoMetadata:
    size: Optional[MediaDimension] = None
    creation_date: Optional[datetime] = None
    file_size: Optional[int] = None
    duration: Optional[float] = None    # seconds
    bit_rate: Optional[int] = None
    fps: Optional[float] = None


Metadata = Union[PhotoMetadata, VideoMetadata]


@dataclass
class MediaEntry:
    """
    A photo or video found in a directory.
    `kind` is resolved once by the classifier; `metadata` is None when loading was skipped.
    """
    name: str
    kind: MediaKind
    directory: Optional[DirectoryRef] = None
    metadata: Optional[Metadata] = None

    @property
    def is_photo(self) -> bool:
        return self.kind == MediaKind.PHOTO

    @property
    def is_video(self) -> bool:
        return self.kind == MediaKind.VIDEO

    def clone_for(self, directory: DirectoryRef) -> 'MediaEntry':
        return MediaEntry(
            name=self.name,
            kind=self.kind,
            directory=directory,
            metadata=copy.deepcopy(self.metadata),
        )


@dataclass
class SidecarFile:
    name: str
    kind: SidecarKind
    directory: Optional[DirectoryRef] = None


@dataclass
class DirectorySnapshot:
    """
    One scanned directory. `path` is the canonical parent path (e.g. './' or '2023/')
    and `name` the leaf name, so `path + name` identifies the directory.
    """
    name: str
    path: str
    last_modified: int                  # ms, max(ctime, mtime)
    last_scanned: int                   # ms wall clock; 0 for partial snapshots
    is_partial: bool = False
    directories: List['DirectorySnapshot'] = field(default_factory=list)
    media: List[MediaEntry] = field(default_factory=list)
    meta_files: List[SidecarFile] = field(default_factory=list)
    media_count: int = 0
    video_count: int = 0
    directory_count: int = 0
    cover: Optional[MediaEntry] = None
    valid_cover: bool = False

    @property
    def ref(self) -> DirectoryRef:
        return DirectoryRef(path=self.path, name=self.name)

    @property
    def relative_path(self) -> str:
        return normalize_dir_path(self.path + self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'path': self.path,
            'last_modified': self.last_modified,
            'last_scanned': self.last_scanned,
            'is_partial': self.is_partial,
            'media_count': self.media_count,
            'video_count': self.video_count,
            'directory_count': self.directory_count,
            'valid_cover': self.valid_cover,
            'cover': _media_to_dict(self.cover) if self.cover else None,
            'directories': [d.to_dict() for d in self.directories],
            'media': [_media_to_dict(m) for m in self.media],
            'meta_files': [_sidecar_to_dict(s) for s in self.meta_files],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DirectorySnapshot':
        return cls(
            name=data['name'],
            path=data['path'],
            last_modified=int(data['last_modified']),
            last_scanned=int(data['last_scanned']),
            is_partial=bool(data.get('is_partial', False)),
            directories=[cls.from_dict(d) for d in data.get('directories', [])],
            media=[_media_from_dict(m) for m in data.get('media', [])],
            meta_files=[_sidecar_from_dict(s) for s in data.get('meta_files', [])],
            media_count=int(data.get('media_count', 0)),
            video_count=int(data.get('video_count', 0)),
            directory_count=int(data.get('directory_count', 0)),
            cover=_media_from_dict(data['cover']) if data.get('cover') else None,
            valid_cover=bool(data.get('valid_cover', False)),
        )


@dataclass(frozen=True)
class ScanSettings:
    cover_only: bool = False
    no_meta_file: bool = False
    no_video: bool = False
    no_photo: bool = False
    no_directory: bool = False
    no_metadata: bool = False   # skip parsing files for exif, iptc, container data

    @property
    def skips_all_content(self) -> bool:
        return self.no_photo and self.no_meta_file and self.no_video

    def with_changes(self, **changes) -> 'ScanSettings':
        return dataclasses.replace(self, **changes)


COVER_ONLY = ScanSettings(cover_only=True)


# --- Serialization helpers ---

def _ref_to_dict(ref: Optional[DirectoryRef]) -> Optional[Dict[str, str]]:
    return {'path': ref.path, 'name': ref.name} if ref else None


def _ref_from_dict(data: Optional[Dict[str, str]]) -> Optional[DirectoryRef]:
    return DirectoryRef(path=data['path'], name=data['name']) if data else None


def _metadata_to_dict(meta: Optional[Metadata]) -> Optional[Dict[str, Any]]:
    if meta is None:
        return None
    out = dataclasses.asdict(meta)
    if meta.creation_date is not None:
        out['creation_date'] = meta.creation_date.isoformat()
    return out


def _metadata_from_dict(kind: MediaKind, data: Optional[Dict[str, Any]]) -> Optional[Metadata]:
    if data is None:
        return None
    values = dict(data)
    if values.get('size'):
        values['size'] = MediaDimension(**values['size'])
    if values.get('creation_date'):
        values['creation_date'] = datetime.fromisoformat(values['creation_date'])
    if kind == MediaKind.VIDEO:
        return VideoMetadata(**values)
    return PhotoMetadata(**values)


def _media_to_dict(media: MediaEntry) -> Dict[str, Any]:
    return {
        'name': media.name,
        'kind': media.kind.value,
        'directory': _ref_to_dict(media.directory),
        'metadata': _metadata_to_dict(media.metadata),
    }


def _media_from_dict(data: Dict[str, Any]) -> MediaEntry:
    kind = MediaKind(data['kind'])
    return MediaEntry(
        name=data['name'],
        kind=kind,
        directory=_ref_from_dict(data.get('directory')),
        metadata=_metadata_from_dict(kind, data.get('metadata')),
    )


def _sidecar_to_dict(sidecar: SidecarFile) -> Dict[str, Any]:
    return {
        'name': sidecar.name,
        'kind': sidecar.kind.value,
        'directory': _ref_to_dict(sidecar.directory),
    }


def _sidecar_from_dict(data: Dict[str, Any]) -> SidecarFile:
    return SidecarFile(
        name=data['name'],
        kind=SidecarKind(data['kind']),
        directory=_ref_from_dict(data.get('directory')),
    )
