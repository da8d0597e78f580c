# src/application/page_registry.py

import asyncio
from typing import Dict

from src.domain.errors import PageNotReady
from src.domain.models import Viewport


class PageRegistry:
    """
    Per-document page state: which pages have a built layout, and the
    viewport each one was rendered with. One registry per open document;
    dropping it tears the state down.
    """

    def __init__(self):
        self._viewports: Dict[int, Viewport] = {}
        self._ready_events: Dict[int, asyncio.Event] = {}

    def mark_ready(self, page_number: int, viewport: Viewport) -> None:
        existing = self._viewports.get(page_number)
        if existing is not None and existing != viewport:
            raise ValueError(
                f"Page {page_number} already has a viewport; "
                f"viewports are fixed for a page's lifetime."
            )
        self._viewports[page_number] = viewport
        self._event(page_number).set()

    def is_ready(self, page_number: int) -> bool:
        return page_number in self._viewports

    async def wait_until_ready(self, page_number: int, timeout: float) -> bool:
        """True once the page is ready; False if timeout elapses first."""
        if self.is_ready(page_number):
            return True
        try:
            await asyncio.wait_for(self._event(page_number).wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def viewport(self, page_number: int) -> Viewport:
        try:
            return self._viewports[page_number]
        except KeyError:
            raise PageNotReady(page_number) from None

    def ready_pages(self) -> list[int]:
        return sorted(self._viewports)

    def _event(self, page_number: int) -> asyncio.Event:
        if page_number not in self._ready_events:
            self._ready_events[page_number] = asyncio.Event()
        return self._ready_events[page_number]
