"""Tests for dossier.preview: first-page rendering, cancellation, placement.

PDFs are generated on the fly with PyMuPDF.
"""

from __future__ import annotations

from pathlib import Path

import anyio
import fitz
import httpx
import pytest

from dossier.cancellation import CancelToken
from dossier.config import DossierConfig
from dossier.preview import (
    PLACEHOLDER_MESSAGE,
    HoverPreview,
    Preview,
    PreviewRenderer,
    Rect,
    place_preview,
)

PNG_MAGIC = b"\x89PNG"


def _make_pdf(path: Path, width: float = 200, height: float = 400) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = fitz.open()
    page = doc.new_page(width=width, height=height)
    page.insert_text((20, 50), "EFTA00001")
    doc.new_page(width=width, height=height)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def public_root(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    _make_pdf(root / "epstein" / "a.pdf")
    (root / "epstein" / "broken.pdf").write_bytes(b"not really a pdf")
    return root


class RecordingRenderer(PreviewRenderer):
    """Keeps the documents it opened; optionally runs a hook after opening."""

    def __init__(self, *args, after_open=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.opened: list[fitz.Document] = []
        self.after_open = after_open

    async def open_document(self, path):
        doc = await super().open_document(path)
        self.opened.append(doc)
        if self.after_open is not None:
            self.after_open()
        return doc


class TestPlacement:
    VIEWPORT = (1000, 800)
    SIZE = (280, 400)

    def test_prefers_right(self):
        assert place_preview(Rect(100, 100, 200, 40), self.SIZE, self.VIEWPORT) == (312, 100)

    def test_falls_back_to_left(self):
        assert place_preview(Rect(600, 100, 200, 40), self.SIZE, self.VIEWPORT) == (308, 100)

    def test_falls_back_to_padding(self):
        x, _ = place_preview(Rect(50, 100, 300, 40), self.SIZE, (400, 800))
        assert x == 16

    def test_clamped_above_bottom(self):
        _, y = place_preview(Rect(100, 700, 200, 40), self.SIZE, self.VIEWPORT)
        assert y == 800 - 400 - 16

    def test_taller_than_viewport_pins_top(self):
        _, y = place_preview(Rect(100, 300, 200, 40), (280, 900), self.VIEWPORT)
        assert y == 16


class TestRenderer:
    def test_needs_a_source(self):
        with pytest.raises(ValueError):
            PreviewRenderer()

    @pytest.mark.anyio
    async def test_render_scales_to_width(self, public_root):
        renderer = PreviewRenderer(public_root)
        preview = await renderer.render("/epstein/a.pdf", 100, CancelToken())
        assert preview is not None
        assert not preview.unavailable
        assert (preview.width, preview.height) == (100, 200)
        assert preview.png.startswith(PNG_MAGIC)

    @pytest.mark.anyio
    async def test_document_closed_after_render(self, public_root):
        renderer = RecordingRenderer(public_root)
        await renderer.render("/epstein/a.pdf", 100, CancelToken())
        assert renderer.opened and renderer.opened[0].is_closed

    @pytest.mark.anyio
    async def test_missing_file_placeholder(self, public_root):
        preview = await PreviewRenderer(public_root).render("/epstein/nope.pdf", 280, CancelToken())
        assert preview == Preview.placeholder("/epstein/nope.pdf", 280)
        assert preview.unavailable
        assert preview.message == PLACEHOLDER_MESSAGE

    @pytest.mark.anyio
    async def test_corrupt_file_placeholder(self, public_root):
        preview = await PreviewRenderer(public_root).render("/epstein/broken.pdf", 280, CancelToken())
        assert preview.unavailable

    @pytest.mark.anyio
    async def test_traversal_placeholder(self, public_root):
        preview = await PreviewRenderer(public_root).render("/../secret.pdf", 280, CancelToken())
        assert preview.unavailable

    @pytest.mark.anyio
    async def test_cancelled_before_start(self, public_root):
        token = CancelToken()
        token.cancel()
        renderer = RecordingRenderer(public_root)
        assert await renderer.render("/epstein/a.pdf", 100, token) is None
        assert renderer.opened[0].is_closed

    @pytest.mark.anyio
    async def test_cancelled_after_document_load(self, public_root):
        token = CancelToken()
        renderer = RecordingRenderer(public_root, after_open=token.cancel)
        assert await renderer.render("/epstein/a.pdf", 100, token) is None
        assert renderer.opened[0].is_closed

    @pytest.mark.anyio
    async def test_render_from_base_url(self, public_root):
        pdf_bytes = (public_root / "epstein" / "a.pdf").read_bytes()

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://archive.example/epstein/a.pdf"
            return httpx.Response(200, content=pdf_bytes)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            renderer = PreviewRenderer(base_url="https://archive.example/", client=client)
            preview = await renderer.render("/epstein/a.pdf", 50, CancelToken())
        assert (preview.width, preview.height) == (50, 100)

    @pytest.mark.anyio
    async def test_http_error_placeholder(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))) as client:
            renderer = PreviewRenderer(base_url="https://archive.example", client=client)
            preview = await renderer.render("/epstein/a.pdf", 50, CancelToken())
        assert preview.unavailable


class Collector:
    """on_result callback that remembers previews and signals the first one."""

    def __init__(self):
        self.results: list[Preview] = []
        self.event = anyio.Event()

    def __call__(self, preview: Preview) -> None:
        self.results.append(preview)
        self.event.set()

    async def wait(self) -> None:
        with anyio.fail_after(5):
            await self.event.wait()


class TestHoverPreview:
    @pytest.mark.anyio
    async def test_show_publishes_after_dwell(self, public_root):
        seen = Collector()
        async with HoverPreview(PreviewRenderer(public_root), seen, width=100, dwell=0.01) as hover:
            hover.show("/epstein/a.pdf")
            assert seen.results == []
            await seen.wait()
            assert hover.current is seen.results[0]
        assert [r.path for r in seen.results] == ["/epstein/a.pdf"]
        assert seen.results[0].width == 100

    @pytest.mark.anyio
    async def test_dismiss_during_dwell(self, public_root):
        seen = Collector()
        renderer = RecordingRenderer(public_root)
        async with HoverPreview(renderer, seen, dwell=0.05) as hover:
            token = hover.show("/epstein/a.pdf")
            hover.dismiss()
            assert token.cancelled
            await anyio.sleep(0.1)
        assert seen.results == []
        assert renderer.opened == []

    @pytest.mark.anyio
    async def test_new_hover_cancels_previous(self, public_root):
        _make_pdf(public_root / "epstein" / "b.pdf")
        seen = Collector()
        async with HoverPreview(PreviewRenderer(public_root), seen, dwell=0.02) as hover:
            first = hover.show("/epstein/a.pdf")
            hover.show("/epstein/b.pdf")
            assert first.cancelled
            await seen.wait()
            await anyio.sleep(0.05)
        assert [r.path for r in seen.results] == ["/epstein/b.pdf"]

    @pytest.mark.anyio
    async def test_dismiss_during_render(self, public_root):
        seen = Collector()
        holder: dict[str, HoverPreview] = {}
        renderer = RecordingRenderer(public_root, after_open=lambda: holder["hover"].dismiss())
        async with HoverPreview(renderer, seen, dwell=0) as hover:
            holder["hover"] = hover
            hover.show("/epstein/a.pdf")
            with anyio.fail_after(5):
                while not renderer.opened:
                    await anyio.sleep(0.01)
        assert seen.results == []
        assert hover.current is None
        assert renderer.opened[0].is_closed

    @pytest.mark.anyio
    async def test_error_publishes_placeholder(self, public_root):
        seen = Collector()
        async with HoverPreview(PreviewRenderer(public_root), seen, dwell=0) as hover:
            hover.show("/epstein/broken.pdf")
            await seen.wait()
        assert len(seen.results) == 1 and seen.results[0].unavailable
        assert hover.current is None  # cleared on exit

    @pytest.mark.anyio
    async def test_show_outside_session(self, public_root):
        hover = HoverPreview(PreviewRenderer(public_root), lambda p: None)
        with pytest.raises(RuntimeError):
            hover.show("/epstein/a.pdf")

    @pytest.mark.anyio
    async def test_from_config_uses_preview_settings(self, tmp_path, public_root):
        cfg = DossierConfig(project_root=tmp_path, preview_width=120, preview_dwell=0)
        seen = Collector()
        hover = HoverPreview.from_config(cfg, seen)
        assert hover.renderer.public_root == public_root
        assert hover.dwell == 0
        async with hover:
            hover.show("/epstein/a.pdf")
            await seen.wait()
        assert seen.results[0].width == 120
