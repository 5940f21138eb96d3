"""Exception hierarchy for Dossier.

Every error message includes: what happened, why, and what to do next.
Only :class:`ArchiveRootMissing` is fatal; the browser model catches the
load and write errors and degrades to its empty/default state.
"""


class DossierError(Exception):
    """Base class for all Dossier errors."""


class ArchiveRootMissing(DossierError):
    """The archive directory to index does not exist."""

    def __init__(self, root: str):
        super().__init__(
            f"Archive root '{root}' does not exist. "
            f"Nothing was indexed and no index file was written. "
            f"Check 'archive_root' in dossier.yaml or set DOSSIER_ROOT to the project directory."
        )
        self.root = root


class ManifestError(DossierError):
    """The manifest could not be read or is malformed."""

    def __init__(self, source: str, detail: str):
        super().__init__(
            f"Could not load manifest from '{source}': {detail}. "
            f"Re-run dossier-index to regenerate it."
        )
        self.source = source
        self.detail = detail


class MetadataStoreError(DossierError):
    """The metadata store could not be read or written."""

    def __init__(self, detail: str):
        super().__init__(
            f"Metadata store error: {detail}. "
            f"Selections and type overrides fall back to their defaults until the store is fixed."
        )
        self.detail = detail


class UnsafePath(DossierError):
    """A manifest path escapes the public root or is not rooted."""

    def __init__(self, value: str, reason: str):
        super().__init__(
            f"Rejected unsafe path '{value}': {reason}. "
            f"Manifest paths must start with '/' and must not contain '..'."
        )
        self.value = value
        self.reason = reason


class InvalidFilter(DossierError):
    """A filter setter received a value outside its allowed set."""

    def __init__(self, field: str, value: str, allowed: list[str]):
        allowed_str = ", ".join(f"'{a}'" for a in allowed)
        super().__init__(f"Invalid {field} '{value}'. Allowed values: {allowed_str}.")
        self.field = field
        self.value = value
        self.allowed = allowed


class PageOutOfRange(DossierError):
    """Requested page number is below 1."""

    def __init__(self, page: int):
        super().__init__(f"Page numbers start at 1. Requested page {page}.")
        self.page = page


class SessionNotStarted(DossierError):
    """A persisted toggle was used outside an open browser session."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: the browser session is not open. "
            f"Use 'async with ArchiveBrowser(...)' before toggling files."
        )
        self.operation = operation


class ConfigError(DossierError):
    """Project configuration is invalid."""

    def __init__(self, detail: str, hint: str = ""):
        msg = f"Configuration error: {detail}."
        if hint:
            msg += f" {hint}"
        super().__init__(msg)
        self.detail = detail
        self.hint = hint
