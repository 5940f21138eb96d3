"""Canonical directory names and public-path mapping for Dossier.

Layout:
  <project>/dossier.yaml           project configuration
  <project>/.dossier/              metadata store and its lock file
  <project>/public/                public root, served as "/"
  <project>/public/epstein/        archive root, scanned by dossier-index

Manifest paths are URL paths relative to the public root ("/epstein/a/x.pdf").
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from dossier.errors import UnsafePath

DOT_DIR = ".dossier"


def public_url(public_root: Path, file_path: Path) -> str:
    """URL path of *file_path* as served from *public_root*.

    Platform separators are normalized to ``/`` and the result is rooted.
    """
    rel = file_path.relative_to(public_root)
    return "/" + rel.as_posix()


def resolve_public(public_root: Path, url_path: str) -> Path:
    """Map a manifest URL path back to a file under *public_root*.

    Raises:
        UnsafePath: If the path is not rooted or climbs out of the root.
    """
    if not url_path.startswith("/"):
        raise UnsafePath(url_path, "path is not rooted")
    parts = PurePosixPath(url_path).parts[1:]
    if ".." in parts:
        raise UnsafePath(url_path, "path contains '..'")
    return public_root.joinpath(*parts)
