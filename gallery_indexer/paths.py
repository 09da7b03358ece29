"""
Canonical forms for library-relative directory paths.

All paths handled by the scanner are relative to the library root and use
'/' as separator. The root itself is '.', and parent paths carry a trailing
separator ('./' for top level directories, '2023/' below that) so that
`parent + name` always yields the directory again.
"""
import os
from pathlib import Path

SEP = '/'
ROOT = '.'


def normalize_dir_path(dir_path: str) -> str:
    """
    Collapses empty, '.' and '..' segments and mixed separators.
    Never raises; '..' cannot climb above the library root.
    """
    if not dir_path:
        return ROOT

    segments = []
    for seg in str(dir_path).replace('\\', SEP).split(SEP):
        if seg in ('', '.'):
            continue
        if seg == '..':
            if segments:
                segments.pop()
            continue
        segments.append(seg)

    return SEP.join(segments) if segments else ROOT


def parent_path(dir_path: str) -> str:
    """'a/b' -> 'a/', 'a' -> './', '.' -> './'"""
    normalized = normalize_dir_path(dir_path)
    head, _, _ = normalized.rpartition(SEP)
    return (head or ROOT) + SEP


def dir_name(dir_path: str) -> str:
    if not dir_path or not str(dir_path).strip():
        return ROOT
    normalized = normalize_dir_path(dir_path)
    return normalized.rpartition(SEP)[2]


def path_from_parent(path: str, name: str) -> str:
    """Path of a named child, with trailing separator: ('a/', 'b') -> 'a/b/'"""
    return join_relative(path, name) + SEP


def join_relative(parent: str, name: str) -> str:
    return normalize_dir_path(f"{parent}{SEP}{name}")


def to_absolute(image_root: Path, relative_path: str) -> Path:
    normalized = normalize_dir_path(relative_path)
    if normalized == ROOT:
        return image_root
    return image_root.joinpath(*normalized.split(SEP))


def calc_last_modified(stat_result: os.stat_result) -> int:
    """Latest of ctime/mtime in milliseconds."""
    return max(stat_result.st_ctime_ns, stat_result.st_mtime_ns) // 1_000_000
