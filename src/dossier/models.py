"""Record types shared by the index builder and the browser model.

FileEntry is produced once per scan and never edited.  FileMetadata is
the user-editable overlay keyed by ``FileEntry.path``; a missing field
means "use the default" rather than a stored value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Sentinel directory for files directly under the archive root.
ROOT_DIRECTORY = "root"


class FileType(str, Enum):
    """Manual classification of an archive file."""

    DOC = "doc"
    IMAGE = "image"

    def flipped(self) -> FileType:
        return FileType.IMAGE if self is FileType.DOC else FileType.DOC


@dataclass(frozen=True)
class FileEntry:
    """One PDF in the manifest."""

    name: str
    path: str  # rooted URL path, unique across the manifest
    directory: str  # POSIX path relative to the archive root, or "root"
    size: int  # bytes at scan time

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "directory": self.directory,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileEntry:
        """Build an entry from a manifest record.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        try:
            name = data["name"]
            path = data["path"]
            directory = data["directory"]
            size = data["size"]
        except KeyError as e:
            raise ValueError(f"record missing field {e.args[0]!r}") from e
        if not all(isinstance(v, str) for v in (name, path, directory)):
            raise ValueError(f"record has non-string name/path/directory: {data!r}")
        # bool is an int subclass; a manifest never stores sizes as booleans
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError(f"record has invalid size {size!r} for {path}")
        return cls(name=name, path=path, directory=directory, size=size)


@dataclass
class FileMetadata:
    """Stored overlay for one path.  ``None`` fields were never set."""

    is_selected: bool | None = None
    file_type: FileType | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FileMetadata:
        """Parse a store record, ignoring unknown or malformed fields."""
        selected = record.get("is_selected")
        raw_type = record.get("file_type")
        try:
            file_type = FileType(raw_type) if raw_type else None
        except ValueError:
            file_type = None
        return cls(
            is_selected=bool(selected) if selected is not None else None,
            file_type=file_type,
        )
