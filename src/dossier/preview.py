"""Hover preview: first-page raster of an archive PDF using PyMuPDF (fitz).

A preview starts only after the pointer has dwelt on a file for
``dwell`` seconds.  Rendering runs in stages (document load, page load,
page render), each in a worker thread; the request's
:class:`~dossier.cancellation.CancelToken` is checked after every stage
and a cancelled render closes its document and publishes nothing.

A render that fails for any reason yields a placeholder preview instead of
an image; it never affects other previews or the browser state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio
import fitz  # PyMuPDF
import httpx

from dossier.cancellation import Cancelled, CancelToken
from dossier.config import DEFAULT_PREVIEW_DWELL, DEFAULT_PREVIEW_WIDTH, DossierConfig
from dossier.paths import resolve_public

logger = logging.getLogger(__name__)

PLACEHOLDER_MESSAGE = "Preview unavailable"

# Placement around the hovered row, in pixels.
PREVIEW_GAP = 12
VIEWPORT_PADDING = 16


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class Preview:
    """Rendered first page, or a placeholder when ``png`` is None."""

    path: str
    width: int
    height: int
    png: bytes | None = None
    message: str | None = None

    @property
    def unavailable(self) -> bool:
        return self.png is None

    @classmethod
    def placeholder(cls, path: str, width: int) -> Preview:
        return cls(path=path, width=width, height=0, message=PLACEHOLDER_MESSAGE)


def place_preview(
    anchor: Rect,
    size: tuple[float, float],
    viewport: tuple[float, float],
    *,
    gap: float = PREVIEW_GAP,
    padding: float = VIEWPORT_PADDING,
) -> tuple[float, float]:
    """Top-left corner for a preview of *size* next to *anchor*.

    Right of the anchor if it fits, else left of it, else pinned to the
    left padding.  Vertically aligned with the anchor top and clamped so
    the preview never runs past the bottom of the viewport.
    """
    width, height = size
    vw, vh = viewport

    x = anchor.right + gap
    if x + width > vw - padding:
        x = anchor.x - gap - width
        if x < padding:
            x = padding

    y = min(anchor.y, vh - height - padding)
    y = max(y, padding)
    return x, y


def _render_page(page: Any, width: int) -> tuple[bytes, int, int]:
    """Rasterize *page* scaled to *width* pixels wide, keeping aspect ratio."""
    scale = width / page.rect.width
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
    return pix.tobytes("png"), pix.width, pix.height


class PreviewRenderer:
    """Opens archive PDFs from the public root or a base URL and renders page 1."""

    def __init__(
        self,
        public_root: Path | None = None,
        *,
        base_url: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if public_root is None and not base_url:
            raise ValueError("PreviewRenderer needs a public_root or a base_url")
        self.public_root = public_root
        self.base_url = base_url.rstrip("/")
        self.client = client

    async def _fetch(self, url: str) -> bytes:
        if self.client is not None:
            resp = await self.client.get(url)
        else:
            async with httpx.AsyncClient(timeout=15.0) as client:
                resp = await client.get(url)
        resp.raise_for_status()
        return resp.content

    async def open_document(self, path: str) -> fitz.Document:
        if self.base_url:
            data = await self._fetch(self.base_url + path)
            return await anyio.to_thread.run_sync(
                lambda: fitz.open(stream=data, filetype="pdf")
            )
        file_path = resolve_public(self.public_root, path)  # type: ignore[arg-type]
        return await anyio.to_thread.run_sync(fitz.open, str(file_path))

    async def render(self, path: str, width: int, token: CancelToken) -> Preview | None:
        """Render page 1 of *path* at *width* pixels.

        Returns:
            The preview, a placeholder on error, or None if cancelled.
        """
        doc = None
        try:
            doc = await self.open_document(path)
            token.check("document load")
            page = await anyio.to_thread.run_sync(doc.load_page, 0)
            token.check("page load")
            png, w, h = await anyio.to_thread.run_sync(_render_page, page, width)
            token.check("page render")
            return Preview(path=path, width=w, height=h, png=png)
        except Cancelled:
            return None
        except Exception as e:
            if token.cancelled:
                return None
            logger.warning("Preview of %s failed: %s", path, e)
            return Preview.placeholder(path, width)
        finally:
            if doc is not None:
                doc.close()


class HoverPreview:
    """Dwell-gated preview controller; at most one render is current.

    Usage::

        async with HoverPreview(renderer, on_result=show) as hover:
            hover.show("/epstein/a/x.pdf")
            ...
            hover.dismiss()
    """

    def __init__(
        self,
        renderer: PreviewRenderer,
        on_result: Callable[[Preview], None],
        *,
        width: int = DEFAULT_PREVIEW_WIDTH,
        dwell: float = DEFAULT_PREVIEW_DWELL,
    ) -> None:
        self.renderer = renderer
        self.on_result = on_result
        self.width = width
        self.dwell = dwell
        self.current: Preview | None = None
        self._token: CancelToken | None = None
        self._tg: anyio.abc.TaskGroup | None = None

    @classmethod
    def from_config(
        cls,
        cfg: DossierConfig,
        on_result: Callable[[Preview], None],
        *,
        client: httpx.AsyncClient | None = None,
    ) -> HoverPreview:
        """Preview of files under the project's public root, sized by config."""
        return cls(
            PreviewRenderer(cfg.public_root, client=client),
            on_result,
            width=cfg.preview_width,
            dwell=cfg.preview_dwell,
        )

    async def __aenter__(self) -> HoverPreview:
        tg = anyio.create_task_group()
        await tg.__aenter__()
        self._tg = tg
        return self

    async def __aexit__(self, *exc_info: Any) -> bool | None:
        self.dismiss()
        tg, self._tg = self._tg, None
        return await tg.__aexit__(*exc_info)

    def show(self, path: str) -> CancelToken:
        """Start a preview of *path*, cancelling any previous one."""
        if self._tg is None:
            raise RuntimeError("HoverPreview.show() called outside 'async with'")
        self.dismiss()
        token = CancelToken()
        self._token = token
        self._tg.start_soon(self._run, path, token)
        return token

    def dismiss(self) -> None:
        """Cancel the pending or in-flight preview and clear the current one."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self.current = None

    async def _run(self, path: str, token: CancelToken) -> None:
        await anyio.sleep(self.dwell)
        if token.cancelled:
            logger.debug("Preview of %s dismissed during dwell", path)
            return
        result = await self.renderer.render(path, self.width, token)
        if result is None or token.cancelled:
            return
        self.current = result
        self.on_result(result)
