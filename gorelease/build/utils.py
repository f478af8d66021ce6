"""Utility functions for the gorelease build pipeline.

This module contains the file-system helpers used by the build pipeline:
command lookup, entry-point discovery, archive creation, checksums and
removal of previous build output.
"""

from __future__ import annotations

import gzip
import hashlib
import os
import pathlib
import shutil
import tarfile
import zipfile
from typing import Iterable, List, Optional, Sequence, Union

# Fixed timestamp for archive members so archives only change with content
ARCHIVE_EPOCH = 315532800  # 1980-01-01, the earliest time a zip entry can hold

DEFAULT_SKIP_DIRS = frozenset({"vendor", "node_modules"})


def check_command(name: str) -> bool:
    """Check if a command is available on PATH.

    Args:
        name: Command name

    Returns:
        True if the command can be executed, False otherwise
    """
    return shutil.which(name) is not None


def missing_commands(names: Iterable[str]) -> List[str]:
    """Return the commands from ``names`` that are not available."""
    return [name for name in names if not check_command(name)]


def find_files(
        base_dir: Union[str, pathlib.Path],
        filename: str,
        exclude_dirs: Optional[Sequence[Union[str, pathlib.Path]]] = None,
) -> List[pathlib.Path]:
    """Find every file called ``filename`` below ``base_dir``.

    Hidden directories, vendored dependencies and the directories listed in
    ``exclude_dirs`` are not searched. Results are sorted so the outcome does
    not depend on directory iteration order.

    Args:
        base_dir: Directory to search
        filename: Exact file name to look for
        exclude_dirs: Directories (absolute, or relative to ``base_dir``) to skip

    Returns:
        Sorted list of matching paths
    """
    base_dir = pathlib.Path(base_dir)
    excluded = set()
    for directory in exclude_dirs or []:
        directory = pathlib.Path(directory)
        if not directory.is_absolute():
            directory = base_dir / directory
        excluded.add(os.path.normpath(directory))

    matches = []
    for root, dirs, files in os.walk(base_dir):
        dirs[:] = [
            d for d in dirs
            if not d.startswith(".")
            and d not in DEFAULT_SKIP_DIRS
            and os.path.normpath(os.path.join(root, d)) not in excluded
        ]
        if filename in files:
            matches.append(pathlib.Path(root) / filename)
    return sorted(matches)


def calculate_file_hash(path: Union[str, pathlib.Path], algorithm: str = "sha256") -> str:
    """Calculate the hash of a file.

    Args:
        path: Path to the file
        algorithm: Any algorithm name known to hashlib

    Returns:
        Lowercase hex digest of the file contents
    """
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _archive_members(source_dir: pathlib.Path) -> List[pathlib.Path]:
    """All paths below ``source_dir`` (including itself), sorted."""
    members = [source_dir]
    for root, dirs, files in os.walk(source_dir):
        dirs.sort()
        root_path = pathlib.Path(root)
        members.extend(root_path / d for d in dirs)
        members.extend(root_path / f for f in sorted(files))
    return sorted(members)


def _normalize_tarinfo(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    info.mtime = ARCHIVE_EPOCH
    return info


def create_tarball(source_dir: Union[str, pathlib.Path], output_path: Union[str, pathlib.Path]) -> None:
    """Create a ``.tar.gz`` archive whose single top-level entry is ``source_dir``.

    Owners and timestamps are normalized and entries sorted, so the same
    inputs always produce the same bytes.
    """
    source_dir = pathlib.Path(source_dir)
    base = source_dir.parent
    with open(output_path, "wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for member in _archive_members(source_dir):
                    tar.add(
                        member,
                        arcname=member.relative_to(base).as_posix(),
                        recursive=False,
                        filter=_normalize_tarinfo,
                    )


def create_zip(source_dir: Union[str, pathlib.Path], output_path: Union[str, pathlib.Path]) -> None:
    """Create a ``.zip`` archive whose single top-level entry is ``source_dir``."""
    source_dir = pathlib.Path(source_dir)
    base = source_dir.parent
    with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for member in _archive_members(source_dir):
            arcname = member.relative_to(base).as_posix()
            if member.is_dir():
                arcname += "/"
            info = zipfile.ZipInfo(arcname, date_time=(1980, 1, 1, 0, 0, 0))
            mode = member.stat().st_mode & 0o777
            if member.is_dir():
                info.external_attr = (0o40000 | mode) << 16 | 0x10
                zf.writestr(info, b"")
            else:
                info.external_attr = (0o100000 | mode) << 16
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, member.read_bytes())


def remove_directories(paths: Iterable[pathlib.Path]) -> List[pathlib.Path]:
    """Remove each existing directory in ``paths``.

    Returns:
        The directories that were removed
    """
    removed = []
    for path in paths:
        if path.is_dir():
            shutil.rmtree(path)
            removed.append(path)
    return removed
