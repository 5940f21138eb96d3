"""Cooperative cancellation for multi-stage async work.

A :class:`CancelToken` is created per request (one hover preview, say)
and handed to the work.  The work calls :meth:`CancelToken.check` after
every suspension point; whoever owns the token calls
:meth:`CancelToken.cancel` when the result is no longer wanted.

Usage::

    token = CancelToken()
    doc = await open_document(path)
    token.check("document load")   # raises Cancelled if cancel() was called
    page = await load_page(doc)

The token is backed by ``threading.Event`` so blocking stages running in
worker threads can read it too.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger("dossier")


class Cancelled(Exception):
    """Raised by :meth:`CancelToken.check` when the token is set."""


class CancelToken:
    """One-shot cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if it was already requested."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self, context: str = "") -> None:
        """Raise :class:`Cancelled` if cancellation was requested.

        Args:
            context: Optional label for log messages (e.g. "page render").
        """
        if self._event.is_set():
            msg = f"Operation cancelled{f' after {context}' if context else ''}"
            logger.debug("CANCEL %s", msg)
            raise Cancelled(msg)
