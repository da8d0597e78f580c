# src/domain/interfaces.py

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from .models import HighlightRect, MatchCandidate, MatchSpan, PageLayout


class FragmentSourcePort(ABC):
    """
    Port for any layout extractor that emits positioned text fragments.
    Fragments are returned per page, in the extractor's stream order.
    """

    @abstractmethod
    def load_pages(self, file_path: Path) -> List[PageLayout]: ...


class ApproximateMatcherPort(ABC):
    """
    Port for the fuzzy scoring algorithm.
    Scores are algorithm-defined but must be lower-is-better and comparable
    across calls within one search.
    """

    @abstractmethod
    def find(
        self,
        text: str,
        query: str,
        fuzziness: float,
    ) -> List[MatchCandidate]: ...


class HighlightRendererPort(ABC):
    """
    Drawing side of a highlight. Only HighlightSession talks to this port.
    """

    @abstractmethod
    def draw(self, match: MatchSpan, rect: HighlightRect) -> None: ...

    @abstractmethod
    def draw_text_fallback(self, match: MatchSpan) -> None:
        """
        Mark the first literal occurrence of match.phrase on the page.
        Approximate: may not be the occurrence that was scored.
        """
        ...

    @abstractmethod
    def erase(self) -> None: ...
