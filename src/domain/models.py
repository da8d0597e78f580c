# src/domain/models.py

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple

import numpy as np


SEGMENT_SEPARATOR = " "


def fold_case(text: str) -> str:
    """
    Lowercase character by character, keeping len(result) == len(text).
    Characters whose lowercase form is longer (e.g. "İ") stay as they are,
    so offsets found in the folded text index the original one.
    """
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


@dataclass(frozen=True)
class Fragment:
    """
    One atomic run of text as emitted by the upstream layout extractor.
    Coordinates are page-space, baseline-relative (y grows upward).
    """
    text: str
    origin_x: float
    origin_y: float
    width: float
    height: float
    page_number: int = 1


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Grow rightwards and upwards only: left edge and origin stay fixed."""
        return BoundingBox(
            x=self.x,
            y=self.y,
            width=max(self.right, other.right) - self.x,
            height=max(self.height, other.height),
        )


@dataclass(frozen=True)
class Segment:
    """
    A fragment's placement inside a reconstructed line.
    char_start / char_end are inclusive offsets into Line.text.
    """
    text: str
    x: float
    y: float
    width: float
    height: float
    char_start: int
    char_end: int

    def overlaps(self, start: int, end: int) -> bool:
        return not (self.char_end < start or self.char_start > end)


@dataclass
class Line:
    """A logical row of text on one page, with per-fragment offsets."""
    line_id: str
    page_number: int
    text: str
    bounding_box: BoundingBox
    segments: List[Segment] = field(default_factory=list)

    def rebuild_text(self) -> str:
        return SEGMENT_SEPARATOR.join(s.text for s in self.segments)

    def __repr__(self) -> str:
        preview = self.text[:60]
        return f"Line(id='{self.line_id}', segments={len(self.segments)}, text='{preview}')"


@dataclass(frozen=True)
class MatchCandidate:
    """Raw hit from an approximate matcher. Lower score = better."""
    char_start: int
    char_end: int
    score: float


@dataclass
class MatchSpan:
    """
    Ranked search result.

    Spans produced from a Corpus carry line_id + offsets; spans from a
    page-level search carry page_box (raw page coordinates) or only phrase.
    """
    line_id: Optional[str]
    page_number: int
    char_start: int
    char_end: int
    score: float
    snippet: str
    phrase: str = ""
    query: str = ""
    page_box: Optional[BoundingBox] = None

    def __repr__(self) -> str:
        return (
            f"MatchSpan(score={self.score:.4f}, page={self.page_number}, "
            f"line='{self.line_id}', span=[{self.char_start},{self.char_end}], "
            f"snippet='{self.snippet[:60]}')"
        )


class Rotation(IntEnum):
    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270


# (rotate_a, rotate_b, rotate_c, rotate_d) per rotation, y axis flipped.
_ROTATION_COEFFICIENTS = {
    Rotation.DEG_0:   (1, 0, 0, -1),
    Rotation.DEG_90:  (0, 1, 1, 0),
    Rotation.DEG_180: (-1, 0, 0, 1),
    Rotation.DEG_270: (0, -1, -1, 0),
}


@dataclass(frozen=True)
class Viewport:
    """
    Per-page render parameters. transform is the affine (a, b, c, d, e, f):
        x' = a*x + c*y + e
        y' = b*x + d*y + f
    """
    scale: float
    rotation: Rotation = Rotation.DEG_0
    transform: Tuple[float, float, float, float, float, float] = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

    def __post_init__(self):
        if not math.isfinite(self.scale) or self.scale <= 0:
            raise ValueError(f"Viewport scale must be positive, got {self.scale}")
        object.__setattr__(self, "rotation", Rotation(self.rotation))
        if len(self.transform) != 6:
            raise ValueError("Viewport transform must have exactly 6 components.")

    @classmethod
    def for_page(
        cls,
        page_width: float,
        page_height: float,
        scale: float = 1.0,
        rotation: int = 0,
    ) -> "Viewport":
        """
        Standard PDF page viewport: flips the y axis and rotates about the
        page centre so the result lands in top-left-origin pixel space.
        """
        rotation = Rotation(rotation % 360)
        rotate_a, rotate_b, rotate_c, rotate_d = _ROTATION_COEFFICIENTS[rotation]
        center_x = page_width / 2
        center_y = page_height / 2

        if rotate_a == 0:
            offset_x = abs(center_y) * scale
            offset_y = abs(center_x) * scale
        else:
            offset_x = abs(center_x) * scale
            offset_y = abs(center_y) * scale

        transform = (
            rotate_a * scale,
            rotate_b * scale,
            rotate_c * scale,
            rotate_d * scale,
            offset_x - rotate_a * scale * center_x - rotate_c * scale * center_y,
            offset_y - rotate_b * scale * center_x - rotate_d * scale * center_y,
        )
        return cls(scale=scale, rotation=rotation, transform=transform)

    @property
    def matrix(self) -> np.ndarray:
        a, b, c, d, e, f = self.transform
        return np.array([[a, c, e], [b, d, f]], dtype=np.float64)

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        px, py = self.matrix @ np.array([x, y, 1.0])
        return float(px), float(py)


@dataclass(frozen=True)
class HighlightRect:
    """Box in rendered-pixel space (y grows downward)."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class PageLayout:
    """Everything the fragment source knows about one page."""
    page_number: int
    width: float
    height: float
    fragments: Tuple[Fragment, ...] = ()
