import os
import stat
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional

from .. import config
from ..config import IndexingConfig
from ..exceptions import (
    DirectoryNotFoundError,
    NotADirectoryScanError,
    ScanAbortedError,
    ScanError,
    ScanIOError,
)
from ..metadata.extract import MetadataExtractor, MetadataLoader
from ..models import (
    COVER_ONLY,
    DirectorySnapshot,
    MediaEntry,
    MediaKind,
    ScanSettings,
    SidecarFile,
)
from ..paths import (
    calc_last_modified,
    dir_name,
    join_relative,
    normalize_dir_path,
    parent_path,
    to_absolute,
)
from .classifier import EntryKind, FormatRegistry, MediaClassifier
from .exclusion import ExclusionFilter


class ProbeOutcome(Enum):
    FOUND = 'found'            # subtree produced a cover
    EXHAUSTED = 'exhausted'    # subtree scanned, nothing usable as cover
    SKIPPED = 'skipped'        # subtree vanished or could not be read


class CoverProbe(NamedTuple):
    snapshot: Optional[DirectorySnapshot]
    outcome: ProbeOutcome


class _Step(Enum):
    CONTINUE = 'continue'
    STOP = 'stop'


def now_ms() -> int:
    return int(time.time() * 1000)


class DirectoryScanner:
    """
    Builds DirectorySnapshots for directories of the library.

    A full scan lists one directory level. Every subdirectory is visited only
    through a cover probe: a cover-only scan that stops at the first photo, so
    the parent can show a thumbnail for it without indexing its contents.
    """

    def __init__(self,
                 cfg: IndexingConfig,
                 metadata_loader: Optional[MetadataLoader] = None,
                 max_workers: Optional[int] = None):
        self.config = cfg
        self.image_root = cfg.image_root
        self.classifier = MediaClassifier(FormatRegistry.from_config(cfg), cfg.meta_file)
        self.exclusion = ExclusionFilter(cfg.exclude_folder_list, cfg.exclude_file_list)
        self.metadata = metadata_loader if metadata_loader is not None else MetadataExtractor()

        workers = max_workers if max_workers is not None else cfg.max_workers
        self.max_workers = max(1, min(workers, config.MAX_WORKERS_LIMIT))

    def scan(self,
             relative_dir: str = '.',
             settings: Optional[ScanSettings] = None,
             cancel_event: Optional[threading.Event] = None) -> DirectorySnapshot:
        """
        Scans one directory of the library.

        Args:
            relative_dir: Directory path relative to the library root.
            settings: Switches limiting what is collected (default: everything).
            cancel_event: When set, the scan raises ScanAbortedError at the next entry.

        Raises:
            DirectoryNotFoundError, NotADirectoryScanError, ScanIOError: the
                requested directory cannot be scanned.
            MetadataExtractionError: a photo's metadata could not be loaded.
            ScanAbortedError: cancel_event was set.
        """
        settings = settings or ScanSettings()
        return self._scan_directory(relative_dir, settings, cancel_event, fan_out=True)

    def scan_no_metadata(self,
                         relative_dir: str = '.',
                         settings: Optional[ScanSettings] = None,
                         cancel_event: Optional[threading.Event] = None) -> DirectorySnapshot:
        """Structural listing only: every media entry in the tree has metadata=None."""
        settings = (settings or ScanSettings()).with_changes(no_metadata=True)
        return self.scan(relative_dir, settings, cancel_event)

    def stat_last_modified(self, relative_dir: str) -> int:
        """Current last_modified of a directory, without listing it."""
        relative_dir = normalize_dir_path(relative_dir)
        absolute_dir = to_absolute(self.image_root, relative_dir)
        return calc_last_modified(self._stat_directory(absolute_dir, relative_dir))

    # --- Traversal ---

    def _scan_directory(self,
                        relative_dir: str,
                        settings: ScanSettings,
                        cancel_event: Optional[threading.Event],
                        fan_out: bool) -> DirectorySnapshot:
        relative_dir = normalize_dir_path(relative_dir)
        self._check_cancel(cancel_event, relative_dir)

        absolute_dir = to_absolute(self.image_root, relative_dir)
        dir_stat = self._stat_directory(absolute_dir, relative_dir)

        snapshot = DirectorySnapshot(
            name=dir_name(relative_dir),
            path=parent_path(relative_dir),
            last_modified=calc_last_modified(dir_stat),
            last_scanned=now_ms(),
        )

        # nothing to scan, we are here for the empty dir
        if settings.skips_all_content:
            return snapshot

        subdirs: List[str] = []
        for entry in self._list_entries(absolute_dir, relative_dir):
            self._check_cancel(cancel_event, relative_dir)
            if self._process_entry(entry, snapshot, settings, subdirs) is _Step.STOP:
                break

        probe_settings = COVER_ONLY.with_changes(no_metadata=settings.no_metadata)
        if settings.cover_only:
            if snapshot.cover is None:
                self._descend_for_cover(snapshot, subdirs, relative_dir, absolute_dir,
                                        probe_settings, cancel_event)
        else:
            snapshot.directories = self._probe_children(subdirs, relative_dir, absolute_dir,
                                                        probe_settings, cancel_event, fan_out)
            if snapshot.cover is None:
                self._adopt_child_cover(snapshot, snapshot.directories)

        snapshot.media_count = len(snapshot.media)
        snapshot.video_count = sum(1 for m in snapshot.media if m.is_video)

        logging.debug(
            f"Scanned {relative_dir}: {snapshot.media_count} media, "
            f"{snapshot.directory_count} dirs, partial={settings.cover_only}"
        )
        return snapshot

    def _process_entry(self,
                       entry: os.DirEntry,
                       snapshot: DirectorySnapshot,
                       settings: ScanSettings,
                       subdirs: List[str]) -> _Step:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = not is_dir and entry.is_file(follow_symlinks=False)
        except OSError as e:
            logging.warning(f"Cannot stat {entry.path}, skipping: {e}")
            return _Step.CONTINUE

        if is_dir:
            # counts physical structure, even if the subdirectory is skipped later
            snapshot.directory_count += 1
            if not settings.no_directory:
                subdirs.append(entry.name)
            return _Step.CONTINUE

        # symlinked entries are neither directories nor files here
        if not is_file:
            return _Step.CONTINUE

        kind = self.classifier.classify(entry.name)
        if kind is EntryKind.PHOTO:
            return self._add_photo(entry, snapshot, settings)
        if kind is EntryKind.VIDEO:
            self._add_video(entry, snapshot, settings)
        elif kind is EntryKind.SIDECAR:
            self._add_sidecar(entry, snapshot, settings)
        return _Step.CONTINUE

    def _add_photo(self, entry: os.DirEntry, snapshot: DirectorySnapshot, settings: ScanSettings) -> _Step:
        if settings.no_photo:
            return _Step.CONTINUE

        # Photo metadata failures propagate and fail the directory
        metadata = None if settings.no_metadata else self.metadata.load_photo_metadata(Path(entry.path))
        photo = MediaEntry(name=entry.name, kind=MediaKind.PHOTO, metadata=metadata)

        if snapshot.cover is None:
            snapshot.cover = photo.clone_for(snapshot.ref)
            snapshot.valid_cover = True

        # the cover stays in the media list too, so it is persisted and queryable
        snapshot.media.append(photo)

        if settings.cover_only:
            return _Step.STOP
        return _Step.CONTINUE

    def _add_video(self, entry: os.DirEntry, snapshot: DirectorySnapshot, settings: ScanSettings):
        if not self.config.video_enabled or settings.no_video or settings.cover_only:
            return

        metadata = None
        if not settings.no_metadata:
            try:
                metadata = self.metadata.load_video_metadata(Path(entry.path))
            except Exception as e:
                logging.warning(f"Media loading error, skipping: {entry.name}, reason: {e}")
                return

        snapshot.media.append(MediaEntry(name=entry.name, kind=MediaKind.VIDEO, metadata=metadata))

    def _add_sidecar(self, entry: os.DirEntry, snapshot: DirectorySnapshot, settings: ScanSettings):
        if settings.no_meta_file or settings.cover_only:
            return
        if not self.classifier.is_sidecar_type_enabled(Path(entry.name).suffix):
            return
        kind = self.classifier.registry.sidecar_kind(entry.name)
        snapshot.meta_files.append(SidecarFile(name=entry.name, kind=kind))

    # --- Cover probes ---

    def _probe_cover(self,
                     relative_dir: str,
                     settings: ScanSettings,
                     cancel_event: Optional[threading.Event]) -> CoverProbe:
        try:
            child = self._scan_directory(relative_dir, settings, cancel_event, fan_out=False)
        except ScanAbortedError:
            raise
        except ScanError as e:
            # deleted or unreadable since the parent was listed
            logging.warning(f"Skipping directory {relative_dir}: {e}")
            return CoverProbe(None, ProbeOutcome.SKIPPED)

        child.last_scanned = 0  # it was not fully scanned
        child.is_partial = True
        outcome = ProbeOutcome.FOUND if child.cover is not None else ProbeOutcome.EXHAUSTED
        return CoverProbe(child, outcome)

    def _probe_children(self,
                        names: List[str],
                        relative_dir: str,
                        absolute_dir: Path,
                        settings: ScanSettings,
                        cancel_event: Optional[threading.Event],
                        fan_out: bool) -> List[DirectorySnapshot]:
        targets = [join_relative(relative_dir, name) for name in names
                   if not self._is_excluded(name, relative_dir, absolute_dir)]

        if not fan_out or self.max_workers <= 1 or len(targets) <= 1:
            probes = [self._probe_cover(t, settings, cancel_event) for t in targets]
        else:
            # Results are collected in listing order; only this thread touches the parent
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(targets))) as pool:
                futures = [pool.submit(self._probe_cover, t, settings, cancel_event) for t in targets]
                try:
                    probes = [f.result() for f in futures]
                except BaseException:
                    for f in futures:
                        f.cancel()
                    raise

        return [p.snapshot for p in probes if p.snapshot is not None]

    def _descend_for_cover(self,
                           snapshot: DirectorySnapshot,
                           names: List[str],
                           relative_dir: str,
                           absolute_dir: Path,
                           settings: ScanSettings,
                           cancel_event: Optional[threading.Event]):
        """No photo at this level: take the cover of the first subdirectory that has one."""
        for name in names:
            if self._is_excluded(name, relative_dir, absolute_dir):
                continue
            probe = self._probe_cover(join_relative(relative_dir, name), settings, cancel_event)
            if probe.outcome is ProbeOutcome.FOUND:
                snapshot.directories.append(probe.snapshot)
                self._adopt_child_cover(snapshot, [probe.snapshot])
                return

    def _adopt_child_cover(self, snapshot: DirectorySnapshot, children: List[DirectorySnapshot]):
        for child in children:
            if child.cover is not None:
                # keeps the back-reference to the directory that actually holds the photo
                snapshot.cover = child.cover.clone_for(child.cover.directory)
                snapshot.valid_cover = True
                return

    # --- Filesystem helpers ---

    def _is_excluded(self, name: str, relative_dir: str, absolute_dir: Path) -> bool:
        if self.exclusion.should_exclude(name, relative_dir, absolute_dir):
            logging.debug(f"Excluded directory: {join_relative(relative_dir, name)}")
            return True
        return False

    def _stat_directory(self, absolute_dir: Path, relative_dir: str) -> os.stat_result:
        try:
            st = os.stat(absolute_dir)
        except FileNotFoundError as e:
            raise DirectoryNotFoundError(f"Directory not found: {relative_dir}", relative_dir) from e
        except NotADirectoryError as e:
            raise NotADirectoryScanError(f"Not a directory: {relative_dir}", relative_dir) from e
        except OSError as e:
            raise ScanIOError(f"Cannot stat {relative_dir}: {e}", relative_dir) from e

        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryScanError(f"Not a directory: {relative_dir}", relative_dir)
        return st

    def _list_entries(self, absolute_dir: Path, relative_dir: str) -> List[os.DirEntry]:
        try:
            with os.scandir(absolute_dir) as it:
                entries = list(it)
        except FileNotFoundError as e:
            raise DirectoryNotFoundError(f"Directory not found: {relative_dir}", relative_dir) from e
        except OSError as e:
            raise ScanIOError(f"Cannot list {relative_dir}: {e}", relative_dir) from e

        # Sort for stable traversal order
        entries.sort(key=lambda e: e.name.lower())
        return entries

    def _check_cancel(self, cancel_event: Optional[threading.Event], relative_dir: str):
        if cancel_event is not None and cancel_event.is_set():
            raise ScanAbortedError(f"Scan aborted at {relative_dir}", relative_dir)
