"""Dossier project configuration: loads and validates dossier.yaml.

The config file lives at the project root.  Every key is optional; a
missing file yields the defaults, which match the layout the web front
end serves (``public/`` as web root, ``public/epstein/`` as archive).

Relative paths are resolved against the project root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dossier.errors import ConfigError
from dossier.paths import DOT_DIR

CONFIG_NAME = "dossier.yaml"
ROOT_ENV = "DOSSIER_ROOT"

# Items per browser page.  Fixed, not read from config.
PAGE_SIZE = 24

DEFAULT_PREVIEW_WIDTH = 280
DEFAULT_PREVIEW_DWELL = 0.2  # seconds


@dataclass
class DossierConfig:
    """Parsed dossier.yaml with paths resolved against the project root."""

    project_root: Path = field(default_factory=Path.cwd)
    public_root: Path = Path("public")
    archive_root: Path = Path("public/epstein")
    index_file: Path = Path("public/epstein-index.json")
    manifest_url: str = ""
    metadata_file: Path = Path(DOT_DIR) / "file_metadata.json"
    preview_width: int = DEFAULT_PREVIEW_WIDTH
    preview_dwell: float = DEFAULT_PREVIEW_DWELL
    sort_index: bool = True

    def __post_init__(self) -> None:
        for name in ("public_root", "archive_root", "index_file", "metadata_file"):
            value = Path(getattr(self, name))
            if not value.is_absolute():
                value = self.project_root / value
            setattr(self, name, value)

    @property
    def manifest_source(self) -> str | Path:
        """Where the browser loads the manifest from."""
        return self.manifest_url or self.index_file


def project_root() -> Path:
    """Project root: DOSSIER_ROOT env var, else the working directory."""
    root = os.environ.get(ROOT_ENV)
    return Path(root) if root else Path.cwd()


def config_path(root: Path) -> Path:
    return root / CONFIG_NAME


def _path(data: dict[str, Any], key: str, default: Path) -> Path:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty path string, got {value!r}")
    return Path(value)


def load_config(root: Path | None = None) -> DossierConfig:
    """Load and validate dossier.yaml. Returns defaults if the file is missing."""
    root = root if root is not None else project_root()
    p = config_path(root)
    if not p.exists():
        return DossierConfig(project_root=root)

    raw = p.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"expected a YAML mapping in {p}, got {type(data).__name__}")

    defaults = DossierConfig(project_root=root)

    manifest_url = data.get("manifest_url", "") or ""
    if not isinstance(manifest_url, str):
        raise ConfigError(f"'manifest_url' must be a string, got {manifest_url!r}")
    if manifest_url and not manifest_url.startswith(("http://", "https://")):
        raise ConfigError(
            f"'manifest_url' must be an http(s) URL, got '{manifest_url}'",
            hint="Leave it empty to read index_file from disk.",
        )

    width = data.get("preview_width", DEFAULT_PREVIEW_WIDTH)
    if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
        raise ConfigError(f"'preview_width' must be a positive integer, got {width!r}")

    dwell = data.get("preview_dwell", DEFAULT_PREVIEW_DWELL)
    if isinstance(dwell, bool) or not isinstance(dwell, (int, float)) or dwell < 0:
        raise ConfigError(f"'preview_dwell' must be a non-negative number, got {dwell!r}")

    return DossierConfig(
        project_root=root,
        public_root=_path(data, "public_root", defaults.public_root),
        archive_root=_path(data, "archive_root", defaults.archive_root),
        index_file=_path(data, "index_file", defaults.index_file),
        manifest_url=manifest_url,
        metadata_file=_path(data, "metadata_file", defaults.metadata_file),
        preview_width=width,
        preview_dwell=float(dwell),
        sort_index=bool(data.get("sort_index", True)),
    )
