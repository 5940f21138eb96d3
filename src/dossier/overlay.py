"""Sparse per-path metadata overlay with default resolution.

The overlay never touches FileEntry objects.  Lookups resolve as
``effective(path) = overlay[path] ?? infer_default(path)`` field by field,
so a stored type override survives while selection stays at its default
and vice versa.
"""

from __future__ import annotations

from typing import Any, Iterable

from dossier.models import FileMetadata, FileType

# Directory segment that marks scanned photographs rather than documents.
IMAGE_SEGMENT = "IMAGES"


def infer_default_type(path: str) -> FileType:
    """Default type for *path*: image if any directory segment is ``IMAGES``."""
    segments = path.split("/")[:-1]
    return FileType.IMAGE if IMAGE_SEGMENT in segments else FileType.DOC


class MetadataOverlay:
    """Mutable path → FileMetadata mapping, created lazily on first write."""

    def __init__(self) -> None:
        self._items: dict[str, FileMetadata] = {}

    def _ensure(self, path: str) -> FileMetadata:
        item = self._items.get(path)
        if item is None:
            item = FileMetadata()
            self._items[path] = item
        return item

    # -- resolution -------------------------------------------------------

    def is_selected(self, path: str) -> bool:
        item = self._items.get(path)
        return bool(item and item.is_selected)

    def effective_type(self, path: str) -> FileType:
        item = self._items.get(path)
        if item is not None and item.file_type is not None:
            return item.file_type
        return infer_default_type(path)

    def selected_paths(self) -> set[str]:
        return {p for p, item in self._items.items() if item.is_selected}

    # -- mutation ---------------------------------------------------------

    def set_selected(self, path: str, selected: bool) -> None:
        self._ensure(path).is_selected = selected

    def set_type(self, path: str, file_type: FileType) -> None:
        self._ensure(path).file_type = file_type

    def toggle_selected(self, path: str) -> bool:
        """Flip selection for *path*. Returns the new value."""
        new = not self.is_selected(path)
        self.set_selected(path, new)
        return new

    def toggle_type(self, path: str) -> FileType:
        """Flip the effective type for *path*. Returns the new type."""
        new = self.effective_type(path).flipped()
        self.set_type(path, new)
        return new

    def hydrate(
        self,
        records: Iterable[dict[str, Any]],
        keep: dict[str, set[str]] | None = None,
    ) -> int:
        """Merge store records into the overlay.

        Args:
            records: ``{"path", "is_selected"?, "file_type"?}`` dicts.
            keep: path → field names already set locally; those fields
                are not overwritten by the stored values.

        Returns:
            Number of records applied.
        """
        keep = keep or {}
        applied = 0
        for record in records:
            path = record.get("path")
            if not isinstance(path, str) or not path:
                continue
            stored = FileMetadata.from_record(record)
            local = keep.get(path, set())
            if stored.is_selected is not None and "is_selected" not in local:
                self.set_selected(path, stored.is_selected)
            if stored.file_type is not None and "file_type" not in local:
                self.set_type(path, stored.file_type)
            applied += 1
        return applied
