# src/infrastructure/page_search.py

import re
from pathlib import Path
from typing import Dict, List, Optional

import fitz  # PyMuPDF

from src.domain.interfaces import ApproximateMatcherPort
from src.domain.models import BoundingBox, MatchSpan


DEFAULT_FALLBACK_FUZZINESS = 0.4
DEFAULT_MAX_RESULTS = 10

_WHITESPACE_RUN = re.compile(r"\s+")


class PdfPageSearch:
    """
    Coarse search over whole-page text, for when no line corpus exists yet.

    One best hit per page. The matched phrase is then looked up with
    PyMuPDF's search_for() to attach raw page coordinates; a phrase that
    cannot be located is returned without coordinates and will be shown
    through the text-scan fallback.
    """

    def __init__(
        self,
        matcher: ApproximateMatcherPort,
        max_results: int = DEFAULT_MAX_RESULTS,
    ):
        self._matcher = matcher
        self._max_results = max_results
        self._file_path: Optional[Path] = None
        self._page_texts: Dict[int, str] = {}

    def index(self, file_path: Path) -> None:
        file_path = Path(file_path)
        with fitz.open(str(file_path)) as pdf:
            self._page_texts = {i + 1: page.get_text() for i, page in enumerate(pdf)}
        self._file_path = file_path
        print(f"[PageSearch] Indexed {len(self._page_texts)} page(s) of {file_path.name}")

    def is_ready(self) -> bool:
        return self._file_path is not None

    def search(self, query: str, fuzziness: float = DEFAULT_FALLBACK_FUZZINESS) -> List[MatchSpan]:
        query = (query or "").strip()
        if not query or not self.is_ready():
            return []

        spans: List[MatchSpan] = []
        for page_number, text in sorted(self._page_texts.items()):
            candidates = self._matcher.find(text, query, fuzziness)
            if not candidates:
                continue
            best = min(candidates, key=lambda c: c.score)
            phrase = text[best.char_start:best.char_end + 1]
            spans.append(MatchSpan(
                line_id=None,
                page_number=page_number,
                char_start=best.char_start,
                char_end=best.char_end,
                score=best.score,
                snippet=_WHITESPACE_RUN.sub(" ", phrase).strip(),
                phrase=phrase,
                query=query,
            ))

        ranked = sorted(spans, key=lambda s: s.score)[:self._max_results]
        self._attach_page_boxes(ranked)
        return ranked

    def _attach_page_boxes(self, spans: List[MatchSpan]) -> None:
        if not spans:
            return
        with fitz.open(str(self._file_path)) as pdf:
            for span in spans:
                span.page_box = _locate(pdf[span.page_number - 1], span.phrase)


def _locate(page, phrase: str) -> Optional[BoundingBox]:
    """First hit of phrase on the page, flipped to baseline-relative coordinates."""
    needle = _WHITESPACE_RUN.sub(" ", phrase).strip()
    if not needle:
        return None
    rects = page.search_for(needle)
    if not rects:
        return None
    rect = rects[0]
    return BoundingBox(
        x=rect.x0,
        y=page.rect.height - rect.y1,
        width=rect.width,
        height=rect.height,
    )
