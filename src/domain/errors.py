# src/domain/errors.py

from typing import Optional


class HighlightError(Exception):
    """Base class for every recoverable failure in the search/highlight core."""


class MalformedFragment(HighlightError, ValueError):
    """Fragment with missing or invalid geometry. Skipped, never fatal to a page."""


class GeometryUnavailable(HighlightError, LookupError):
    """No segment or coordinate data could place the match on the page."""

    def __init__(self, message: str, phrase: Optional[str] = None):
        super().__init__(message)
        self.phrase = phrase


class PageNotReady(HighlightError, RuntimeError):
    """The page's visual layout (and its viewport) is not built yet."""

    def __init__(self, page_number: int):
        super().__init__(f"Page {page_number} layout is not ready.")
        self.page_number = page_number


class ReconstructionCancelled(HighlightError, RuntimeError):
    """A corpus build was superseded (document switched or session closed)."""
