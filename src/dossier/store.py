"""Metadata store contract and the two stores shipped with Dossier.

The browser reads the whole store once at startup and then writes single
path updates without waiting for them.  Any object with the two async
methods of :class:`MetadataStore` can back it, e.g. a hosted table.

- :class:`MemoryMetadataStore` keeps records in a dict (tests, guest mode).
- :class:`JsonMetadataStore` keeps them in ``.dossier/file_metadata.json``.
  Writes are atomic (write to .tmp, rename) under a cross-process flock.

Store format::

    {"version": 1,
     "files": {"/epstein/a/x.pdf": {"is_selected": true, "file_type": "image"}}}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol

import anyio

from dossier.config import DossierConfig
from dossier.errors import MetadataStoreError
from dossier.filelock import DEFAULT_LOCK_TIMEOUT, LockTimeout, file_lock
from dossier.models import FileType

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class MetadataStore(Protocol):
    async def get_all_file_metadata(self) -> list[dict[str, Any]]:
        """Every stored record as ``{"path", "is_selected"?, "file_type"?}``."""
        ...

    async def save_file_metadata(
        self,
        path: str,
        *,
        selected: bool | None = None,
        file_type: FileType | None = None,
    ) -> None:
        """Upsert the given fields for *path*; omitted fields are kept."""
        ...


def _apply(record: dict[str, Any], selected: bool | None, file_type: FileType | None) -> None:
    if selected is not None:
        record["is_selected"] = selected
    if file_type is not None:
        record["file_type"] = FileType(file_type).value


class MemoryMetadataStore:
    """In-process store. Records are lost when the process exits."""

    def __init__(self, records: dict[str, dict[str, Any]] | None = None) -> None:
        self.records: dict[str, dict[str, Any]] = {
            k: dict(v) for k, v in (records or {}).items()
        }

    async def get_all_file_metadata(self) -> list[dict[str, Any]]:
        return [{"path": p, **r} for p, r in self.records.items()]

    async def save_file_metadata(
        self,
        path: str,
        *,
        selected: bool | None = None,
        file_type: FileType | None = None,
    ) -> None:
        _apply(self.records.setdefault(path, {}), selected, file_type)


class JsonMetadataStore:
    """Store backed by a single JSON file."""

    def __init__(self, path: Path, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self.path = path
        self.lock_timeout = lock_timeout

    @classmethod
    def from_config(cls, cfg: DossierConfig) -> JsonMetadataStore:
        return cls(cfg.metadata_file)

    # -- sync core (runs in a worker thread) ------------------------------

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise MetadataStoreError(f"{self.path} is not valid JSON ({e.msg})") from e
        if not isinstance(data, dict) or not isinstance(data.get("files", {}), dict):
            raise MetadataStoreError(f"{self.path} does not contain a 'files' mapping")
        return data.get("files", {})

    def _write(self, files: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = {"version": STORE_VERSION, "files": files}
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            with file_lock(self.path, self.lock_timeout):
                yield
        except LockTimeout as e:
            raise MetadataStoreError(
                f"{self.path} is locked by another process (waited {e.timeout:.1f}s)"
            ) from e

    def read_all(self) -> list[dict[str, Any]]:
        with self._locked():
            files = self._read()
        return [{"path": p, **r} for p, r in files.items() if isinstance(r, dict)]

    def save(
        self,
        path: str,
        selected: bool | None = None,
        file_type: FileType | None = None,
    ) -> None:
        with self._locked():
            files = self._read()
            record = files.get(path)
            if not isinstance(record, dict):
                record = {}
            _apply(record, selected, file_type)
            files[path] = record
            self._write(files)
        logger.debug("Saved metadata for %s: %s", path, record)

    # -- async surface ----------------------------------------------------

    async def get_all_file_metadata(self) -> list[dict[str, Any]]:
        return await anyio.to_thread.run_sync(self.read_all)

    async def save_file_metadata(
        self,
        path: str,
        *,
        selected: bool | None = None,
        file_type: FileType | None = None,
    ) -> None:
        await anyio.to_thread.run_sync(self.save, path, selected, file_type)
