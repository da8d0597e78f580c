# src/application/match_resolver.py

import re
from typing import List, Optional

from src.application.corpus import Corpus
from src.domain.interfaces import ApproximateMatcherPort
from src.domain.models import Line, MatchCandidate, MatchSpan, fold_case


DEFAULT_SNIPPET_PADDING = 60
DEFAULT_MAX_RESULTS = 10

# Score assigned to literal substring hits the matcher missed.
# Worst value on the default 0..1 scale, so real fuzzy hits rank first.
EXACT_FALLBACK_SCORE = 1.0

_WHITESPACE_RUN = re.compile(r"\s+")


def build_snippet(text: str, char_start: int, char_end: int, padding: int = DEFAULT_SNIPPET_PADDING) -> str:
    """Context window around [char_start, char_end], whitespace collapsed."""
    if not text:
        return ""
    window_start = max(0, char_start - padding)
    window_end = min(len(text) - 1, char_end + padding)
    return _WHITESPACE_RUN.sub(" ", text[window_start:window_end + 1]).strip()


class MatchResolver:
    """
    Runs the approximate matcher over every line of a Corpus and turns the
    raw (start, end, score) hits into ranked, displayable MatchSpans.

    The scoring itself is delegated; this class owns the literal-substring
    safety net, snippet expansion, stable ranking and the result cap.
    """

    def __init__(
        self,
        matcher: ApproximateMatcherPort,
        snippet_padding: int = DEFAULT_SNIPPET_PADDING,
        max_results: int = DEFAULT_MAX_RESULTS,
    ):
        self._matcher = matcher
        self._snippet_padding = snippet_padding
        self._max_results = max_results

    def search(self, corpus: Optional[Corpus], query: str, fuzziness: float) -> List[MatchSpan]:
        query = (query or "").strip()
        if not query:
            return []
        if not 0.0 <= fuzziness <= 1.0:
            raise ValueError(f"Fuzziness must be within [0, 1], got {fuzziness}")
        if corpus is None or len(corpus) == 0:
            return []

        spans: List[MatchSpan] = []
        for line in corpus.all_lines():
            candidates = self._matcher.find(line.text, query, fuzziness)
            if not candidates:
                literal = self._literal_candidate(line.text, query)
                candidates = [literal] if literal else []

            for candidate in candidates:
                span = self._to_span(line, candidate, query)
                if span is not None:
                    spans.append(span)

        # sorted() is stable: tied scores keep discovery order.
        ranked = sorted(spans, key=lambda s: s.score)
        return ranked[:self._max_results]

    @staticmethod
    def _literal_candidate(text: str, query: str) -> Optional[MatchCandidate]:
        index = fold_case(text).find(fold_case(query))
        if index == -1:
            return None
        return MatchCandidate(
            char_start=index,
            char_end=index + len(query) - 1,
            score=EXACT_FALLBACK_SCORE,
        )

    def _to_span(self, line: Line, candidate: MatchCandidate, query: str) -> Optional[MatchSpan]:
        char_start = max(0, candidate.char_start)
        char_end = min(len(line.text) - 1, candidate.char_end)
        if char_end < char_start:
            return None

        return MatchSpan(
            line_id=line.line_id,
            page_number=line.page_number,
            char_start=char_start,
            char_end=char_end,
            score=candidate.score,
            snippet=build_snippet(line.text, char_start, char_end, self._snippet_padding),
            phrase=line.text[char_start:char_end + 1],
            query=query,
        )
