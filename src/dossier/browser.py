"""Archive browser model: in-memory search, filter and pagination.

The browser owns one session's view of the archive:

- ``entries``: the manifest, loaded once and read-only afterwards;
- ``overlay``: per-path selection and type overrides, hydrated once from
  the metadata store;
- the filter state (search term, directory, type, hide-completed) and the
  current page.

:meth:`ArchiveBrowser.view` derives the visible subset from that state and
nothing else, so it can be called after every change.  Toggles update the
overlay first and then write to the store in the background; the write
is never awaited and its failure is only logged.

Usage::

    async with ArchiveBrowser.from_config(load_config(), linkage) as browser:
        await browser.load()
        browser.set_search_term("flight")
        view = browser.view()
        browser.toggle_selection(view.page_items[0].path)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio
import httpx

from dossier.config import PAGE_SIZE, DossierConfig
from dossier.errors import (
    DossierError,
    InvalidFilter,
    PageOutOfRange,
    SessionNotStarted,
)
from dossier.linkage import NO_ANALYSES, AnalysisLinkage
from dossier.manifest import load_manifest
from dossier.models import FileEntry, FileType
from dossier.overlay import MetadataOverlay
from dossier.store import JsonMetadataStore, MetadataStore

logger = logging.getLogger(__name__)

ALL = "all"
TYPE_FILTERS = [ALL, FileType.DOC.value, FileType.IMAGE.value]

# Row actions returned by action_for()
ACTION_OPEN = "open"
ACTION_ANALYZE = "analyze"


@dataclass(frozen=True)
class ArchiveView:
    """Snapshot of what the browser shows for the current state."""

    visible: tuple[FileEntry, ...]
    page_items: tuple[FileEntry, ...]
    page: int
    page_size: int
    total_pages: int  # 0 when nothing matches
    directory_options: tuple[str, ...]
    total_count: int
    selected_count: int
    loading: bool

    @property
    def is_empty(self) -> bool:
        return not self.visible


def paginate(items: tuple[FileEntry, ...], page: int, page_size: int) -> tuple[FileEntry, ...]:
    """1-based page window over *items*; past the end yields ``()``."""
    start = (page - 1) * page_size
    return items[start : start + page_size]


def page_count(n_items: int, page_size: int) -> int:
    return math.ceil(n_items / page_size)


class ArchiveBrowser:
    """Session-scoped archive state with derived views."""

    def __init__(
        self,
        store: MetadataStore | None = None,
        linkage: AnalysisLinkage = NO_ANALYSES,
        *,
        guest: bool = False,
        page_size: int = PAGE_SIZE,
        source: str | Path | None = None,
    ) -> None:
        self.store = store
        self.source = source
        self.linkage = linkage
        self.guest = guest
        self.page_size = page_size

        self.entries: tuple[FileEntry, ...] = ()
        self.loading = True
        self.overlay = MetadataOverlay()
        self.overlay_loaded = False
        self.active: FileEntry | None = None

        self.search_term = ""
        self.directory_filter = ALL
        self.type_filter = ALL
        self.hide_completed = False
        self.page = 1

        self._by_path: dict[str, FileEntry] = {}
        # Fields changed locally before the overlay arrived; stored values
        # must not overwrite them.
        self._local: dict[str, set[str]] = {}
        self._tg: anyio.abc.TaskGroup | None = None

    @classmethod
    def from_config(
        cls,
        cfg: DossierConfig,
        linkage: AnalysisLinkage = NO_ANALYSES,
        *,
        guest: bool = False,
    ) -> ArchiveBrowser:
        """Browser backed by the project's JSON store and manifest source."""
        return cls(
            JsonMetadataStore.from_config(cfg),
            linkage,
            guest=guest,
            source=cfg.manifest_source,
        )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ArchiveBrowser:
        tg = anyio.create_task_group()
        await tg.__aenter__()
        self._tg = tg
        return self

    async def __aexit__(self, *exc_info: Any) -> bool | None:
        tg, self._tg = self._tg, None
        # waits for outstanding metadata writes
        return await tg.__aexit__(*exc_info)

    async def load(
        self,
        source: str | Path | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Load the manifest and the overlay concurrently.

        Either may finish first.  Failures leave the browser in its empty
        (or default-metadata) state and are logged, never raised.
        *source* defaults to the one given at construction.
        """
        source = source if source is not None else self.source
        if source is None:
            raise ValueError("ArchiveBrowser.load() needs a manifest source")
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._load_entries, source, client)
            tg.start_soon(self._load_overlay)

    async def _load_entries(self, source: str | Path, client: httpx.AsyncClient | None) -> None:
        try:
            entries = await load_manifest(source, client=client)
        except DossierError as e:
            logger.error("Manifest load failed, showing empty archive: %s", e)
            entries = []
        self.set_entries(entries)

    async def _load_overlay(self) -> None:
        if self.store is None:
            return
        try:
            records = await self.store.get_all_file_metadata()
        except Exception as e:
            logger.warning("Metadata load failed, using defaults: %s", e)
            return
        applied = self.overlay.hydrate(records, keep=self._local)
        self.overlay_loaded = True
        logger.debug("Hydrated %d metadata records", applied)

    def set_entries(self, entries: list[FileEntry]) -> None:
        """Install the session's entries and end the loading state."""
        self.entries = tuple(entries)
        self._by_path = {e.path: e for e in self.entries}
        self.active = self.entries[0] if self.entries else None
        self.loading = False

    # ------------------------------------------------------------------
    # Filter state
    # ------------------------------------------------------------------

    def set_search_term(self, term: str) -> None:
        self.search_term = term
        self.page = 1

    def set_directory_filter(self, directory: str) -> None:
        self.directory_filter = directory
        self.page = 1

    def set_type_filter(self, type_filter: str) -> None:
        value = getattr(type_filter, "value", type_filter)
        if value not in TYPE_FILTERS:
            raise InvalidFilter("type filter", str(type_filter), TYPE_FILTERS)
        self.type_filter = value
        self.page = 1

    def set_hide_completed(self, hide: bool) -> None:
        self.hide_completed = bool(hide)

    def set_page(self, page: int) -> None:
        if page < 1:
            raise PageOutOfRange(page)
        self.page = page

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    def effective_type(self, path: str) -> FileType:
        return self.overlay.effective_type(path)

    def is_selected(self, path: str) -> bool:
        return self.overlay.is_selected(path)

    def _matches(self, entry: FileEntry, needle: str) -> bool:
        if needle and needle not in entry.name.lower():
            return False
        if self.directory_filter != ALL and entry.directory != self.directory_filter:
            return False
        if self.type_filter != ALL and self.effective_type(entry.path).value != self.type_filter:
            return False
        if self.hide_completed and self.linkage.has_analysis(entry.path):
            return False
        return True

    def visible(self) -> tuple[FileEntry, ...]:
        """Entries passing every active filter, in manifest order."""
        needle = self.search_term.lower()
        return tuple(e for e in self.entries if self._matches(e, needle))

    def directory_options(self) -> tuple[str, ...]:
        """Sorted distinct directories of the whole archive, ignoring filters."""
        return tuple(sorted({e.directory for e in self.entries}))

    def view(self) -> ArchiveView:
        visible = self.visible()
        return ArchiveView(
            visible=visible,
            page_items=paginate(visible, self.page, self.page_size),
            page=self.page,
            page_size=self.page_size,
            total_pages=page_count(len(visible), self.page_size),
            directory_options=self.directory_options(),
            total_count=len(self.entries),
            selected_count=len(self.overlay.selected_paths()),
            loading=self.loading,
        )

    # ------------------------------------------------------------------
    # Toggles
    # ------------------------------------------------------------------

    def _require_session(self, operation: str) -> None:
        if self.store is not None and self._tg is None:
            raise SessionNotStarted(operation)

    def toggle_selection(self, path: str) -> bool:
        """Flip selection for *path* now; persist in the background.

        Returns:
            The new selection state.
        """
        self._require_session("toggle selection")
        selected = self.overlay.toggle_selected(path)
        self._local.setdefault(path, set()).add("is_selected")
        self._persist_soon(path, {"selected": selected})
        return selected

    def toggle_type(self, path: str) -> FileType:
        """Flip the effective type of *path* now; persist in the background."""
        self._require_session("toggle type")
        file_type = self.overlay.toggle_type(path)
        self._local.setdefault(path, set()).add("file_type")
        self._persist_soon(path, {"file_type": file_type})
        return file_type

    def _persist_soon(self, path: str, changes: dict[str, Any]) -> None:
        if self.store is None or self._tg is None:
            return
        self._tg.start_soon(self._persist, path, changes)

    async def _persist(self, path: str, changes: dict[str, Any]) -> None:
        try:
            await self.store.save_file_metadata(path, **changes)  # type: ignore[union-attr]
        except Exception as e:
            logger.warning("Metadata write for %s failed (%s): %s", path, changes, e)

    # ------------------------------------------------------------------
    # Active file and row actions
    # ------------------------------------------------------------------

    def set_active(self, path: str) -> bool:
        """Make *path* the active file. Returns False for unknown paths."""
        entry = self._by_path.get(path)
        if entry is None:
            return False
        self.active = entry
        return True

    def move_active(self, step: int = 1) -> FileEntry | None:
        """Move the active file by *step* within the current page, wrapping.

        Nothing moves when there is no active file, the page is empty, or
        the active file is not on the current page.
        """
        items = self.view().page_items
        if self.active is None or not items:
            return self.active
        try:
            index = items.index(self.active)
        except ValueError:
            return self.active
        self.active = items[(index + step) % len(items)]
        return self.active

    def action_for(self, path: str) -> str | None:
        """Row action: open an existing analysis, start one, or nothing for guests."""
        if self.linkage.has_analysis(path):
            return ACTION_OPEN
        return None if self.guest else ACTION_ANALYZE

    def open_analysis(self, path: str) -> bool:
        if not self.linkage.has_analysis(path):
            return False
        self.linkage.open_analysis(path)
        return True
