"""Read/write the archive manifest: a JSON array of FileEntry records.

Writes are atomic (write to .tmp, rename) and always replace the whole
file.  Reads accept either a local file or an http(s) URL; the URL is
fetched once with a plain GET and no retries.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import anyio
import httpx

from dossier.errors import ManifestError
from dossier.models import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


def save_manifest(path: Path, entries: list[FileEntry]) -> None:
    """Write the manifest atomically, pretty-printed.

    The full array is serialized before anything touches *path*, so a
    failure leaves either the previous file or nothing.
    """
    text = json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(text + "\n", encoding="utf-8")
        tmp.replace(path)
    finally:
        tmp.unlink(missing_ok=True)


def parse_manifest(data: Any, source: str = "<memory>") -> list[FileEntry]:
    """Validate decoded JSON and build entries, preserving order.

    Raises:
        ManifestError: If *data* is not a list of valid records or a path repeats.
    """
    if not isinstance(data, list):
        raise ManifestError(source, f"expected a JSON array, got {type(data).__name__}")

    entries: list[FileEntry] = []
    seen: set[str] = set()
    for i, record in enumerate(data):
        if not isinstance(record, dict):
            raise ManifestError(source, f"item {i} is not an object")
        try:
            entry = FileEntry.from_dict(record)
        except ValueError as e:
            raise ManifestError(source, f"item {i}: {e}") from e
        if entry.path in seen:
            raise ManifestError(source, f"duplicate path {entry.path}")
        seen.add(entry.path)
        entries.append(entry)
    return entries


def load_manifest_file(path: Path) -> list[FileEntry]:
    """Load and validate a manifest from disk.

    Raises:
        ManifestError: If the file is missing, not JSON, or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(str(path), e.strerror or str(e)) from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(str(path), f"invalid JSON ({e.msg} at line {e.lineno})") from e
    return parse_manifest(data, str(path))


async def fetch_manifest(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[FileEntry]:
    """GET the manifest from *url* and validate it.

    Args:
        url: Absolute http(s) URL of the manifest.
        client: Optional shared client; a short-lived one is used otherwise.
        timeout: Request timeout in seconds when no client is given.

    Raises:
        ManifestError: On transport errors, non-2xx status, or bad content.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own:
                resp = await own.get(url)
        else:
            resp = await client.get(url)
    except httpx.HTTPError as e:
        raise ManifestError(url, f"{type(e).__name__}: {e}") from e

    if resp.status_code >= 400:
        raise ManifestError(url, f"HTTP {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as e:
        raise ManifestError(url, "response is not JSON") from e
    return parse_manifest(data, url)


def is_url(source: str | Path) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


async def load_manifest(
    source: str | Path,
    *,
    client: httpx.AsyncClient | None = None,
) -> list[FileEntry]:
    """Load the manifest from a URL or a local path without blocking the loop."""
    if is_url(source):
        return await fetch_manifest(str(source), client=client)
    path = Path(source)
    entries = await anyio.to_thread.run_sync(load_manifest_file, path)
    logger.debug("Loaded %d manifest entries from %s", len(entries), path)
    return entries
