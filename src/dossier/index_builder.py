"""Enumerate every PDF under the archive root into the manifest.

The scan is a depth-first walk in filesystem enumeration order.  A file
is included when its name ends in ``.pdf`` case-insensitively.  Paths in
the output are always POSIX style regardless of platform.

Nothing is written until the whole tree has been scanned, so any I/O
error aborts the build with the previous index (if any) untouched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from dossier.errors import ArchiveRootMissing, ConfigError
from dossier.manifest import save_manifest
from dossier.models import ROOT_DIRECTORY, FileEntry
from dossier.paths import public_url

logger = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"


def is_pdf(name: str) -> bool:
    return name.lower().endswith(PDF_SUFFIX)


def _walk(directory: Path) -> Iterator[tuple[Path, os.DirEntry[str]]]:
    """Yield (parent, entry) for every file below *directory*, depth first.

    Directory symlinks are not followed so a link cycle cannot recurse
    forever.  OSErrors propagate.
    """
    with os.scandir(directory) as it:
        children = list(it)
    for child in children:
        if child.is_dir(follow_symlinks=False):
            yield from _walk(Path(child.path))
        elif child.is_file():
            yield directory, child


def directory_label(archive_root: Path, parent: Path) -> str:
    """Parent directory relative to the archive root, or ``"root"``."""
    rel = parent.relative_to(archive_root).as_posix()
    return ROOT_DIRECTORY if rel in ("", ".") else rel


def scan_archive(archive_root: Path, public_root: Path) -> list[FileEntry]:
    """Scan *archive_root* and return one FileEntry per PDF.

    Args:
        archive_root: Directory to enumerate.
        public_root: Served web root; entry paths are relative to it.

    Raises:
        ArchiveRootMissing: If *archive_root* is not an existing directory.
        ConfigError: If *archive_root* is not inside *public_root*.
        OSError: On any traversal error.
    """
    if not archive_root.is_dir():
        raise ArchiveRootMissing(str(archive_root))
    try:
        archive_root.relative_to(public_root)
    except ValueError as e:
        raise ConfigError(
            f"archive_root {archive_root} is not inside public_root {public_root}",
            hint="Entry paths are served relative to public_root; move the archive under it.",
        ) from e

    entries: list[FileEntry] = []
    for parent, child in _walk(archive_root):
        if not is_pdf(child.name):
            continue
        full = parent / child.name
        entries.append(
            FileEntry(
                name=child.name,
                path=public_url(public_root, full),
                directory=directory_label(archive_root, parent),
                size=child.stat().st_size,
            )
        )
    return entries


def build_index(
    archive_root: Path,
    public_root: Path,
    output: Path,
    *,
    sort: bool = True,
) -> list[FileEntry]:
    """Scan the archive and replace *output* with the full manifest.

    Args:
        archive_root: Directory to enumerate.
        public_root: Served web root.
        output: Manifest file to overwrite.
        sort: Order entries by path for a reproducible manifest; when
            False, filesystem enumeration order is kept.

    Returns:
        The entries written.
    """
    logger.info("Scanning %s", archive_root)
    entries = scan_archive(archive_root, public_root)
    if sort:
        entries.sort(key=lambda e: e.path)
    save_manifest(output, entries)
    logger.info("Wrote %d entries to %s", len(entries), output)
    return entries
