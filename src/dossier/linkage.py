"""Analysis linkage: which archive files already have an analysis.

The linkage is owned by whatever produces analyses; the browser only asks
``has_analysis`` (to hide completed files and to pick the row action) and
calls ``open_analysis`` on request.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol


class AnalysisLinkage(Protocol):
    def has_analysis(self, path: str) -> bool: ...

    def open_analysis(self, path: str) -> None: ...


class StaticAnalysisLinkage:
    """Linkage over a fixed set of paths with an optional open callback."""

    def __init__(
        self,
        paths: Iterable[str] = (),
        on_open: Callable[[str], None] | None = None,
    ) -> None:
        self._paths = frozenset(paths)
        self._on_open = on_open

    def has_analysis(self, path: str) -> bool:
        return path in self._paths

    def open_analysis(self, path: str) -> None:
        if self._on_open is not None:
            self._on_open(path)


NO_ANALYSES = StaticAnalysisLinkage()
