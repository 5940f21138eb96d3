"""Shared test fixtures for Dossier."""

import json
from pathlib import Path

import pytest

from dossier.models import FileEntry


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """A project with public/epstein/ holding a few PDFs and one non-PDF.

    Layout::

        public/epstein/top.pdf
        public/epstein/DataSet 1/VOL00001/IMAGES/0001/EFTA00001.pdf
        public/epstein/DataSet 1/VOL00001/NATIVES/notes.txt
        public/epstein/DataSet 2/report.PDF
    """
    archive = tmp_path / "public" / "epstein"
    images = archive / "DataSet 1" / "VOL00001" / "IMAGES" / "0001"
    natives = archive / "DataSet 1" / "VOL00001" / "NATIVES"
    ds2 = archive / "DataSet 2"
    for d in (images, natives, ds2):
        d.mkdir(parents=True)

    (archive / "top.pdf").write_bytes(b"%PDF-1.4 top")
    (images / "EFTA00001.pdf").write_bytes(b"%PDF-1.4 " + b"x" * 100)
    (natives / "notes.txt").write_text("not a pdf", encoding="utf-8")
    (ds2 / "report.PDF").write_bytes(b"%PDF-1.4 report")
    return tmp_path


@pytest.fixture
def make_entries():
    """Factory: n entries named doc000.pdf .. in one directory."""

    def _make(n: int, directory: str = "DataSet 1") -> list[FileEntry]:
        return [
            FileEntry(
                name=f"doc{i:03d}.pdf",
                path=f"/epstein/{directory}/doc{i:03d}.pdf",
                directory=directory,
                size=1000 + i,
            )
            for i in range(n)
        ]

    return _make


SAMPLE_ENTRIES = [
    FileEntry(name="Flight Log 1991.pdf", path="/epstein/logs/Flight Log 1991.pdf", directory="logs", size=2048),
    FileEntry(name="flight-manifest.pdf", path="/epstein/logs/flight-manifest.pdf", directory="logs", size=512),
    FileEntry(
        name="EFTA00001.pdf",
        path="/epstein/DataSet 1/IMAGES/0001/EFTA00001.pdf",
        directory="DataSet 1/IMAGES/0001",
        size=4096,
    ),
    FileEntry(name="deposition.pdf", path="/epstein/deposition.pdf", directory="root", size=1048576),
    FileEntry(name="Exhibit A.pdf", path="/epstein/court/Exhibit A.pdf", directory="court", size=0),
]


@pytest.fixture
def sample_entries() -> list[FileEntry]:
    return list(SAMPLE_ENTRIES)


@pytest.fixture
def sample_manifest(tmp_path: Path) -> Path:
    """SAMPLE_ENTRIES written as a manifest file."""
    path = tmp_path / "epstein-index.json"
    path.write_text(json.dumps([e.to_dict() for e in SAMPLE_ENTRIES], indent=2), encoding="utf-8")
    return path
