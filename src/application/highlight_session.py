# src/application/highlight_session.py

import asyncio
from enum import Enum
from typing import Optional

from src.application.geometry_resolver import GeometryResolver
from src.application.page_registry import PageRegistry
from src.domain.errors import GeometryUnavailable, PageNotReady
from src.domain.interfaces import HighlightRendererPort
from src.domain.models import HighlightRect, MatchSpan


# Same budget as 30 polls × 50 ms, awaited on a readiness event instead.
DEFAULT_READY_TIMEOUT_SECONDS = 1.5
DEFAULT_EXPIRY_SECONDS = 6.0


class HighlightState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    APPLIED = "applied"


class HighlightSession:
    """
    Owns the single visible highlight of one document session.

        IDLE ──request──▶ PENDING ──page ready──▶ APPLIED ──expiry/clear──▶ IDLE
                             └──── timeout ────▶ IDLE

    A newer request() or clear() supersedes any request still waiting for
    its page. Nothing here raises to the caller: every failure degrades to
    "no visible highlight".
    """

    def __init__(
        self,
        pages: PageRegistry,
        geometry: GeometryResolver,
        renderer: HighlightRendererPort,
        ready_timeout: float = DEFAULT_READY_TIMEOUT_SECONDS,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
    ):
        self._pages = pages
        self._geometry = geometry
        self._renderer = renderer
        self._ready_timeout = ready_timeout
        self._expiry_seconds = expiry_seconds

        self._state = HighlightState.IDLE
        self._active_match: Optional[MatchSpan] = None
        self._active_rect: Optional[HighlightRect] = None
        self._visible = False
        self._generation = 0
        self._expiry_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> HighlightState:
        return self._state

    @property
    def active_match(self) -> Optional[MatchSpan]:
        return self._active_match

    @property
    def active_rect(self) -> Optional[HighlightRect]:
        """None while idle, or when the active highlight used the text-scan fallback."""
        return self._active_rect

    async def request(self, match: MatchSpan) -> Optional[HighlightRect]:
        self._generation += 1
        generation = self._generation
        if self._state is HighlightState.IDLE:
            self._state = HighlightState.PENDING
        print(f"[HighlightSession] Requested highlight on page {match.page_number} ({match.line_id or 'no line'}).")

        ready = await self._pages.wait_until_ready(match.page_number, self._ready_timeout)
        if generation != self._generation:
            return None

        if not ready:
            print(f"[HighlightSession] Page {match.page_number} not ready after {self._ready_timeout}s — no highlight.")
            self._reset()
            return None

        try:
            viewport = self._pages.viewport(match.page_number)
        except PageNotReady:
            self._reset()
            return None

        self._erase_visible()
        try:
            rect = self._geometry.resolve_rect(match, viewport)
        except GeometryUnavailable as error:
            print(f"[HighlightSession] {error} — using text-scan fallback.")
            rect = None
            self._renderer.draw_text_fallback(match)
        else:
            self._renderer.draw(match, rect)

        self._visible = True
        self._active_match = match
        self._active_rect = rect
        self._state = HighlightState.APPLIED
        self._schedule_expiry(generation)
        return rect

    def clear(self) -> None:
        """Back to IDLE from any state. Clearing nothing is a no-op."""
        self._generation += 1
        self._reset()

    def _reset(self) -> None:
        self._cancel_expiry()
        self._erase_visible()
        self._active_match = None
        self._active_rect = None
        self._state = HighlightState.IDLE

    def _erase_visible(self) -> None:
        if self._visible:
            self._renderer.erase()
            self._visible = False

    def _schedule_expiry(self, generation: int) -> None:
        self._cancel_expiry()
        loop = asyncio.get_running_loop()
        self._expiry_handle = loop.call_later(self._expiry_seconds, self._expire, generation)

    def _cancel_expiry(self) -> None:
        if self._expiry_handle is not None:
            self._expiry_handle.cancel()
            self._expiry_handle = None

    def _expire(self, generation: int) -> None:
        self._expiry_handle = None
        print("[HighlightSession] Highlight expired.")
        self._erase_visible()
        self._active_match = None
        self._active_rect = None
        # A newer request may still be waiting for its page.
        if generation == self._generation:
            self._state = HighlightState.IDLE
        else:
            self._state = HighlightState.PENDING
