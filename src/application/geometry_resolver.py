# src/application/geometry_resolver.py

from typing import Callable, Iterable, List, Optional

import numpy as np

from src.application.corpus import Corpus
from src.domain.errors import GeometryUnavailable
from src.domain.models import BoundingBox, HighlightRect, MatchSpan, Segment, Viewport


def page_box_to_rect(box: BoundingBox, viewport: Viewport) -> HighlightRect:
    """
    Page space → pixel space for one baseline-relative box.

    The transformed point is the box's baseline origin; pixel y grows
    downward, so the top edge sits one scaled height above it.
    """
    left, baseline = viewport.apply(box.x, box.y)
    width = box.width * viewport.scale
    height = box.height * viewport.scale
    return HighlightRect(left=left, top=baseline - height, width=width, height=height)


def union_rects(rects: Iterable[HighlightRect]) -> HighlightRect:
    edges = np.array([[r.left, r.top, r.right, r.bottom] for r in rects], dtype=np.float64)
    if edges.size == 0:
        raise ValueError("Cannot take the union of zero rectangles.")
    left, top = edges[:, 0].min(), edges[:, 1].min()
    right, bottom = edges[:, 2].max(), edges[:, 3].max()
    return HighlightRect(
        left=float(left),
        top=float(top),
        width=float(right - left),
        height=float(bottom - top),
    )


class GeometryResolver:
    """
    Turns a MatchSpan into the pixel-space rectangle to highlight.

    Strategies, first success wins:
        1. Segment-based   — line id + char offsets → overlapping segments
        2. Direct-coordinate — raw page_box carried by the match
        3. Neither         — GeometryUnavailable; caller falls back to a
                             text scan for match.phrase
    """

    def __init__(self, corpus_provider: Callable[[], Optional[Corpus]]):
        self._corpus_provider = corpus_provider

    def resolve_rect(self, match: MatchSpan, viewport: Viewport) -> HighlightRect:
        if match.line_id is not None:
            segments = self._overlapping_segments(match)
            if segments:
                return union_rects(
                    page_box_to_rect(_segment_box(s), viewport) for s in segments
                )

        if match.page_box is not None:
            return page_box_to_rect(match.page_box, viewport)

        raise GeometryUnavailable(
            f"No geometry for match on page {match.page_number} "
            f"(line={match.line_id}, span=[{match.char_start},{match.char_end}])",
            phrase=match.phrase,
        )

    def _overlapping_segments(self, match: MatchSpan) -> List[Segment]:
        corpus = self._corpus_provider()
        if corpus is None:
            return []
        line = corpus.find_line(match.line_id)
        if line is None:
            return []
        return [s for s in line.segments if s.overlaps(match.char_start, match.char_end)]


def _segment_box(segment: Segment) -> BoundingBox:
    return BoundingBox(x=segment.x, y=segment.y, width=segment.width, height=segment.height)
