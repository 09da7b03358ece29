import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import IndexingConfig, load_config
from .core import GalleryManager, LibraryIndexer
from .database.db import DBManager
from .database.ops import SnapshotStore
from .exceptions import GalleryIndexerError, ScanError
from .models import ScanSettings
from .scanning.directory import DirectoryScanner

def setup_logging(log_file: Optional[Path], verbose: bool):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Gallery Indexer: scan a media library into cacheable directory snapshots")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("--config", type=Path, default=None, help="JSON indexing config (exclusions, sidecar types, ...)")
    p.add_argument("--max-workers", type=int, default=None, help="Parallel cover probes per directory")

    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan one directory and print its snapshot as JSON")
    scan.add_argument("root", type=Path, help="Library root")
    scan.add_argument("directory", nargs="?", default=".", help="Directory relative to the root")
    scan.add_argument("--cover-only", action="store_true", help="Stop at the first photo")
    scan.add_argument("--no-metadata", action="store_true", help="Skip EXIF/container parsing")
    scan.add_argument("--no-photo", action="store_true", help="Skip photos")
    scan.add_argument("--no-video", action="store_true", help="Skip videos")
    scan.add_argument("--no-meta-file", action="store_true", help="Skip sidecar files")
    scan.add_argument("--no-directory", action="store_true", help="Do not probe subdirectories")
    scan.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")

    lst = sub.add_parser("list", help="List a directory through the snapshot cache")
    lst.add_argument("root", type=Path, help="Library root")
    lst.add_argument("directory", nargs="?", default=".", help="Directory relative to the root")
    lst.add_argument("--db", type=Path, required=True, help="SQLite snapshot store")
    lst.add_argument("--known-last-modified", type=int, default=None)
    lst.add_argument("--known-last-scanned", type=int, default=None)
    lst.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")

    idx = sub.add_parser("index", help="Fully scan and store every directory of the library")
    idx.add_argument("root", type=Path, help="Library root")
    idx.add_argument("directory", nargs="?", default=".", help="Directory relative to the root")
    idx.add_argument("--db", type=Path, required=True, help="SQLite snapshot store")
    idx.add_argument("--no-metadata", action="store_true", help="Skip EXIF/container parsing")
    idx.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    return p.parse_args(argv)

def build_config(args) -> IndexingConfig:
    root = args.root.resolve()
    if args.config:
        return load_config(args.config, image_root=root)
    return IndexingConfig(image_root=root)

def write_json(payload, output: Optional[Path]):
    text = json.dumps(payload, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        logging.info(f"Wrote {output}")
    else:
        print(text)

def run(args) -> int:
    cfg = build_config(args)
    scanner = DirectoryScanner(cfg, max_workers=args.max_workers)

    if args.command == "scan":
        settings = ScanSettings(
            cover_only=args.cover_only,
            no_meta_file=args.no_meta_file,
            no_video=args.no_video,
            no_photo=args.no_photo,
            no_directory=args.no_directory,
            no_metadata=args.no_metadata,
        )
        snapshot = scanner.scan(args.directory, settings)
        write_json(snapshot.to_dict(), args.output)
        return 0

    with DBManager(args.db) as conn:
        store = SnapshotStore(conn)

        if args.command == "list":
            manager = GalleryManager(scanner, store)
            snapshot = manager.list_directory(
                args.directory, args.known_last_modified, args.known_last_scanned)
            if snapshot is None:
                write_json({"not_modified": True}, args.output)
            else:
                write_json(snapshot.to_dict(), args.output)
            return 0

        settings = ScanSettings(no_metadata=args.no_metadata)
        LibraryIndexer(scanner, store).index(args.directory, settings, show_progress=not args.no_progress)
        return 0

def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except ScanError as e:
        logging.error(f"Scan failed: {e}")
        sys.exit(2)
    except GalleryIndexerError as e:
        logging.error(str(e))
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error.")
        sys.exit(1)

if __name__ == "__main__":
    main()
