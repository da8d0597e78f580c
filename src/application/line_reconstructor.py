# src/application/line_reconstructor.py

import math
from typing import Iterable, List, Optional

from src.domain.errors import MalformedFragment
from src.domain.models import BoundingBox, Fragment, Line, Segment, SEGMENT_SEPARATOR


# Fragments whose baselines differ by at most this many layout units
# belong to the same visual line.
DEFAULT_Y_TOLERANCE = 3.0


def make_line_id(page_number: int, ordinal: int) -> str:
    return f"p{page_number}-l{ordinal}"


class _OpenLine:
    """Accumulator for the line currently being grown."""

    def __init__(self, fragment: Fragment):
        self.origin_y = fragment.origin_y
        self.text = fragment.text
        self.box = BoundingBox(
            x=fragment.origin_x,
            y=fragment.origin_y,
            width=fragment.width,
            height=fragment.height,
        )
        self.segments: List[Segment] = [_segment(fragment, 0)]

    def append(self, fragment: Fragment) -> None:
        char_start = len(self.text) + len(SEGMENT_SEPARATOR)
        self.text = self.text + SEGMENT_SEPARATOR + fragment.text
        self.segments.append(_segment(fragment, char_start))
        self.box = self.box.union(BoundingBox(
            x=fragment.origin_x,
            y=fragment.origin_y,
            width=fragment.width,
            height=fragment.height,
        ))


def _segment(fragment: Fragment, char_start: int) -> Segment:
    return Segment(
        text=fragment.text,
        x=fragment.origin_x,
        y=fragment.origin_y,
        width=fragment.width,
        height=fragment.height,
        char_start=char_start,
        char_end=char_start + len(fragment.text) - 1,
    )


class LineReconstructor:
    """
    Groups one page's positioned fragments into logical lines.

    Fragments are consumed in stream order (left-to-right within a visual
    line). A fragment joins the open line when its baseline is within
    y_tolerance of the line's *seed* baseline; comparing against the seed
    rather than the previous fragment stops drift along long lines.

    Fragments inside a line are joined by a single space, which no segment
    covers, so segment offsets map back onto fragment text exactly.
    """

    def __init__(self, y_tolerance: float = DEFAULT_Y_TOLERANCE):
        if y_tolerance < 0:
            raise ValueError(f"y_tolerance must be >= 0, got {y_tolerance}")
        self._y_tolerance = y_tolerance

    @property
    def y_tolerance(self) -> float:
        return self._y_tolerance

    def reconstruct(
        self,
        fragments: Iterable[Fragment],
        page_number: Optional[int] = None,
    ) -> List[Line]:
        closed: List[_OpenLine] = []
        current: Optional[_OpenLine] = None
        skipped = 0

        for fragment in fragments:
            try:
                self._validate(fragment, page_number)
            except MalformedFragment as error:
                skipped += 1
                print(f"[LineReconstructor] ⚠ Skipping fragment: {error}")
                continue

            if page_number is None:
                page_number = fragment.page_number

            if not fragment.text:
                continue

            if current is None:
                current = _OpenLine(fragment)
            elif abs(fragment.origin_y - current.origin_y) <= self._y_tolerance:
                current.append(fragment)
            else:
                closed.append(current)
                current = _OpenLine(fragment)

        if current is not None:
            closed.append(current)

        lines = []
        for accumulator in closed:
            if not accumulator.text:
                continue
            lines.append(Line(
                line_id=make_line_id(page_number, len(lines)),
                page_number=page_number,
                text=accumulator.text,
                bounding_box=accumulator.box,
                segments=accumulator.segments,
            ))

        if skipped:
            print(f"[LineReconstructor] Page {page_number}: skipped {skipped} malformed fragment(s).")
        return lines

    @staticmethod
    def _validate(fragment: Fragment, page_number: Optional[int]) -> None:
        if not isinstance(fragment, Fragment):
            raise MalformedFragment(f"Expected Fragment, got {type(fragment).__name__}")
        if not isinstance(fragment.text, str):
            raise MalformedFragment(f"Fragment text must be a string, got {fragment.text!r}")

        for name in ("origin_x", "origin_y", "width", "height"):
            value = getattr(fragment, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise MalformedFragment(f"Fragment '{fragment.text[:20]}' has invalid {name}: {value!r}")

        if fragment.width < 0 or fragment.height < 0:
            raise MalformedFragment(
                f"Fragment '{fragment.text[:20]}' has negative size "
                f"({fragment.width} x {fragment.height})"
            )
        if page_number is not None and fragment.page_number != page_number:
            raise MalformedFragment(
                f"Fragment '{fragment.text[:20]}' belongs to page {fragment.page_number}, "
                f"not page {page_number}"
            )
