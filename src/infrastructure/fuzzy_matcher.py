# src/infrastructure/fuzzy_matcher.py

from difflib import SequenceMatcher
from typing import List

from src.domain.interfaces import ApproximateMatcherPort
from src.domain.models import MatchCandidate, fold_case


# fuzziness * scale = highest accepted score. 1.0 maps the slider 1:1
# onto the 0..1 dissimilarity scale (0 = exact, 1 = anything).
DEFAULT_THRESHOLD_SCALE = 1.0
DEFAULT_MAX_CANDIDATES = 3
MIN_QUERY_LENGTH = 1
# Window lengths tried per side of len(query). Bounds the scan at high
# fuzziness to (2 * MAX_WINDOW_SLACK + 1) passes over the text.
MAX_WINDOW_SLACK = 3


class SequenceMatcherStrategy(ApproximateMatcherPort):
    """
    Sliding-window fuzzy matcher built on difflib.SequenceMatcher.

    Every window of len(query) ± slack characters (slack capped at
    MAX_WINDOW_SLACK) is scored as 1 - ratio(query, window),
    case-insensitive. Windows at or under the threshold are kept;
    overlapping windows collapse to the best one.
    Candidates come back in text order.
    """

    def __init__(
        self,
        threshold_scale: float = DEFAULT_THRESHOLD_SCALE,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ):
        self._threshold_scale = threshold_scale
        self._max_candidates = max_candidates

    def threshold_for(self, fuzziness: float) -> float:
        return min(1.0, max(0.0, fuzziness * self._threshold_scale))

    def find(self, text: str, query: str, fuzziness: float) -> List[MatchCandidate]:
        query = fold_case(query)
        haystack = fold_case(text)
        if len(query) < MIN_QUERY_LENGTH or not haystack:
            return []

        scored = self._score_windows(haystack, query, self.threshold_for(fuzziness))
        selected = self._select_non_overlapping(scored)
        return sorted(selected, key=lambda c: c.char_start)

    def _score_windows(self, haystack: str, query: str, threshold: float) -> List[MatchCandidate]:
        slack = min(int(len(query) * threshold), MAX_WINDOW_SLACK)
        # Query-length windows first: on equal scores they win the overlap pass.
        lengths = sorted(
            {max(1, min(len(haystack), len(query) + delta)) for delta in range(-slack, slack + 1)},
            key=lambda n: (abs(n - len(query)), n),
        )

        matcher = SequenceMatcher(autojunk=False)
        matcher.set_seq2(query)

        candidates = []
        for length in lengths:
            for start in range(0, len(haystack) - length + 1):
                window = haystack[start:start + length]
                if window[0].isspace() or window[-1].isspace():
                    continue
                matcher.set_seq1(window)
                if 1.0 - matcher.real_quick_ratio() > threshold:
                    continue
                if 1.0 - matcher.quick_ratio() > threshold:
                    continue
                score = 1.0 - matcher.ratio()
                if score <= threshold:
                    candidates.append(MatchCandidate(start, start + length - 1, score))
        return candidates

    def _select_non_overlapping(self, candidates: List[MatchCandidate]) -> List[MatchCandidate]:
        # Stable: equal scores keep the earlier window.
        ranked = sorted(candidates, key=lambda c: c.score)
        selected: List[MatchCandidate] = []
        for candidate in ranked:
            if len(selected) >= self._max_candidates:
                break
            if any(not (c.char_end < candidate.char_start or c.char_start > candidate.char_end) for c in selected):
                continue
            selected.append(candidate)
        return selected
