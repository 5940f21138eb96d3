#!/usr/bin/env python3
"""Build the archive manifest.

Scans the archive root for PDFs and replaces the index file with the full
list.  Takes no flags: locations come from dossier.yaml in the project
root (DOSSIER_ROOT, else the working directory) or the defaults.

Usage:
    dossier-index
    DOSSIER_ROOT=/srv/site python -m dossier.cli

Exit status is 0 on success and 1 if the archive root is missing, the
configuration is invalid, or the scan fails.  On failure no index file
is written.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dossier.config import load_config, project_root
from dossier.errors import ArchiveRootMissing, ConfigError
from dossier.index_builder import build_index

logger = logging.getLogger("dossier")

LOG_LEVEL_ENV = "DOSSIER_LOG_LEVEL"


def configure_logging() -> None:
    """Attach a stderr handler to the package logger (idempotent)."""
    if any(getattr(h, "_dossier_cli", False) for h in logger.handlers):
        return
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(process)d] %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
    )
    handler._dossier_cli = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.WARNING))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dossier-index",
        description="Index every PDF under the archive root into the manifest JSON file.",
    )
    parser.parse_args(argv)
    configure_logging()

    try:
        cfg = load_config(project_root())
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1

    print(f"Scanning {cfg.archive_root}...")
    try:
        entries = build_index(
            cfg.archive_root,
            cfg.public_root,
            cfg.index_file,
            sort=cfg.sort_index,
        )
    except ArchiveRootMissing as e:
        print(f"Directory not found: {cfg.archive_root}", file=sys.stderr)
        logger.debug("%s", e)
        return 1
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1
    except OSError as e:
        logger.error("Scan of %s failed: %s", cfg.archive_root, e)
        print(f"Scan failed: {e}", file=sys.stderr)
        return 1

    print(f"Found {len(entries)} PDF files.")
    print(f"Index saved to {cfg.index_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
