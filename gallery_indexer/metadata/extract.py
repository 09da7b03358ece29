import json
import logging
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import exifread
from PIL import Image
from pymediainfo import MediaInfo

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import MediaDimension, PhotoMetadata, VideoMetadata

# EXIF orientations 5-8 are rotated by 90 degrees
ROTATED_ORIENTATIONS = {5, 6, 7, 8}


class MetadataLoader(Protocol):
    """What the scanner needs from a metadata backend."""

    def load_photo_metadata(self, path: Path) -> PhotoMetadata: ...

    def load_video_metadata(self, path: Path) -> VideoMetadata: ...


class MetadataExtractor:
    """
    Unified interface for extracting metadata from media files.

    Strategies:
      - Images: 'Pillow' for pixel size, 'exifread' for EXIF (fast, Python-native).
      - Video: 'pymediainfo' (fast wrapper) -> falls back to 'exiftool' (robust).

    Unreadable files raise MetadataExtractionError. The scanner lets photo
    failures propagate and skips videos that fail.
    """

    def load_photo_metadata(self, path: Path) -> PhotoMetadata:
        try:
            file_size = path.stat().st_size
            with Image.open(path) as im:
                width, height = im.width, im.height
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise MetadataExtractionError(f"Cannot read image {path}: {e}", str(path)) from e

        meta = PhotoMetadata(size=MediaDimension(width, height), file_size=file_size)

        tags = self._read_exif(path)
        if not tags:
            # Not really an error, just means "no EXIF at all".
            logging.debug(f"No EXIF tags found for {path}")
            return meta

        meta.creation_date = self._parse_exif_date(tags)

        if 'Image Model' in tags:
            meta.camera_model = str(tags['Image Model']).strip()
        if 'EXIF LensModel' in tags:
            meta.lens_model = str(tags['EXIF LensModel']).strip()

        orientation = self._orientation(tags)
        if orientation is not None:
            meta.orientation = orientation
            if orientation in ROTATED_ORIENTATIONS:
                meta.size = MediaDimension(height, width)

        return meta

    def load_video_metadata(self, path: Path) -> VideoMetadata:
        try:
            file_size = path.stat().st_size
        except OSError as e:
            raise MetadataExtractionError(f"Cannot stat video {path}: {e}", str(path)) from e

        errors = []

        # Strategy 1: Try MediaInfo (Fastest, usually sufficient)
        if MediaInfo.can_parse():
            try:
                meta = self._extract_mediainfo(path)
                if meta.duration is not None or meta.size is not None:
                    meta.file_size = file_size
                    return meta
            except Exception as e:
                logging.debug(f"MediaInfo failed for {path}: {e}")
                errors.append(f"mediainfo: {e}")

        # Strategy 2: Try ExifTool (Robust fallback, requires system install)
        if shutil.which("exiftool"):
            try:
                meta = self._extract_exiftool(path)
                meta.file_size = file_size
                return meta
            except (subprocess.CalledProcessError, ValueError, OSError) as e:
                logging.debug(f"ExifTool failed for {path}: {e}")
                errors.append(f"exiftool: {e}")

        if errors:
            raise MetadataExtractionError(
                f"Cannot parse video {path}: {'; '.join(errors)}", str(path))

        logging.debug(f"No video metadata backend available for {path}; using file size only")
        return VideoMetadata(file_size=file_size)

    # --- Internal Extraction Helpers ---

    def _read_exif(self, path: Path) -> Dict[str, Any]:
        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                return exifread.process_file(f, details=False)
        except Exception as e:
            logging.warning(f"EXIF read failed for {path}: {e}")
            return {}

    def _orientation(self, tags) -> Optional[int]:
        tag = tags.get('Image Orientation')
        if tag is None:
            return None
        try:
            return int(tag.values[0])
        except (AttributeError, IndexError, TypeError, ValueError):
            return None

    def _extract_mediainfo(self, path: Path) -> VideoMetadata:
        """Parses video using pymediainfo."""
        mi = MediaInfo.parse(str(path))
        meta = VideoMetadata()

        for track in mi.tracks:
            if track.track_type == "General":
                if getattr(track, "duration", None):
                    # MediaInfo duration is in milliseconds
                    meta.duration = float(track.duration) / 1000.0

                # Priority: Original -> Encoded -> Tagged
                for field in ("recorded_date", "encoded_date", "tagged_date"):
                    val = getattr(track, field, None)
                    if val:
                        dt = self._parse_flexible_date(val)
                        if dt:
                            meta.creation_date = dt
                            break

                if meta.bit_rate is None and getattr(track, "overall_bit_rate", None):
                    meta.bit_rate = int(float(track.overall_bit_rate))

            elif track.track_type == "Video":
                if track.width and track.height:
                    meta.size = self._video_size(int(track.width), int(track.height),
                                                 getattr(track, "rotation", None))
                if getattr(track, "bit_rate", None):
                    meta.bit_rate = int(float(track.bit_rate))
                if getattr(track, "frame_rate", None):
                    meta.fps = float(track.frame_rate)
        return meta

    def _extract_exiftool(self, path: Path) -> VideoMetadata:
        """
        Wraps the 'exiftool' command line utility.
        Must be installed and on the system PATH.
        """
        # -j = JSON output
        # -n = No formatting (returns seconds as float, clean dates)
        cmd = ["exiftool", "-j", "-n", str(path)]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data_list = json.loads(out)

        meta = VideoMetadata()
        if not data_list:
            return meta

        tags = data_list[0]

        for field in ("CreateDate", "CreationDate", "DateTimeOriginal", "MediaCreateDate"):
            if tags.get(field):
                dt = self._parse_flexible_date(str(tags[field]))
                if dt:
                    meta.creation_date = dt
                    break

        if tags.get("Duration"):
            # Exiftool with -n returns seconds as float/int
            meta.duration = float(tags["Duration"])

        if tags.get("ImageWidth") and tags.get("ImageHeight"):
            meta.size = self._video_size(int(tags["ImageWidth"]), int(tags["ImageHeight"]),
                                         tags.get("Rotation"))
        if tags.get("AvgBitrate"):
            meta.bit_rate = int(float(tags["AvgBitrate"]))
        if tags.get("VideoFrameRate"):
            meta.fps = float(tags["VideoFrameRate"])

        return meta

    def _video_size(self, width: int, height: int, rotation) -> MediaDimension:
        try:
            if rotation is not None and int(float(rotation)) % 180 == 90:
                return MediaDimension(height, width)
        except (TypeError, ValueError):
            pass
        return MediaDimension(width, height)

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Helper to parse standard EXIF date strings from exifread."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    # EXIF format is usually "YYYY:MM:DD HH:MM:SS"
                    dt_str = str(tags[tag]).replace(':', '-', 2)
                    return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    continue
        return None

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles various date formats (ISO, UTC suffixes, Exiftool quirks).
        Returns a naive datetime object.
        """
        if not dt_str:
            return None

        clean = str(dt_str).replace("UTC", "").strip()

        try:
            return datetime.fromisoformat(clean)
        except ValueError:
            pass

        try:
            clean_exif = clean.replace(":", "-", 2)
            # Handle potential sub-second precision which strptime hates
            if "." in clean_exif:
                clean_exif = clean_exif.split(".")[0]
            return datetime.strptime(clean_exif, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            pass

        return None

