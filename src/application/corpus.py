# src/application/corpus.py

import asyncio
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from src.application.line_reconstructor import LineReconstructor
from src.domain.errors import ReconstructionCancelled
from src.domain.models import Fragment, Line


class Corpus:
    """
    Immutable set of reconstructed lines for one open document.

    A Corpus is never mutated after construction: a newer document, or a
    later stage of the same build, produces a new instance that replaces
    this one wholesale.
    """

    def __init__(self, lines: Iterable[Line] = (), is_complete: bool = True):
        self._lines: Tuple[Line, ...] = tuple(lines)
        self._index: Dict[str, Line] = {}
        for line in self._lines:
            if line.line_id in self._index:
                raise ValueError(f"Duplicate line id in corpus: {line.line_id}")
            self._index[line.line_id] = line
        self._is_complete = is_complete

    @classmethod
    def empty(cls) -> "Corpus":
        return cls(())

    @classmethod
    def build(
        cls,
        per_page_fragments: Mapping[int, Sequence[Fragment]],
        reconstructor: Optional[LineReconstructor] = None,
    ) -> "Corpus":
        """Reconstruct every page synchronously, in page order."""
        reconstructor = reconstructor or LineReconstructor()
        lines: List[Line] = []
        for page_number in sorted(per_page_fragments):
            lines.extend(reconstructor.reconstruct(per_page_fragments[page_number], page_number))
        return cls(lines)

    @property
    def is_complete(self) -> bool:
        return self._is_complete

    def find_line(self, line_id: str) -> Optional[Line]:
        return self._index.get(line_id)

    def all_lines(self) -> Tuple[Line, ...]:
        return self._lines

    def page_numbers(self) -> List[int]:
        return sorted({line.page_number for line in self._lines})

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        state = "complete" if self._is_complete else "partial"
        return f"Corpus(lines={len(self._lines)}, pages={len(self.page_numbers())}, {state})"


class CorpusBuilder:
    """
    Reconstructs the pages of one document as independent concurrent tasks.

    Lifecycle:
    - build()   → runs every page, returns the complete Corpus
    - partial() → snapshot of the pages finished so far (best-effort search)
    - cancel()  → checked before each page starts and after each finishes;
                  build() then raises ReconstructionCancelled and the
                  partial result is discarded
    """

    def __init__(
        self,
        per_page_fragments: Mapping[int, Sequence[Fragment]],
        reconstructor: Optional[LineReconstructor] = None,
        on_page_done: Optional[Callable[[Corpus], None]] = None,
    ):
        self._pages = {page: tuple(fragments) for page, fragments in per_page_fragments.items()}
        self._reconstructor = reconstructor or LineReconstructor()
        self._on_page_done = on_page_done
        self._completed: Dict[int, List[Line]] = {}
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def partial(self) -> Corpus:
        return Corpus(self._ordered_lines(), is_complete=False)

    async def build(self) -> Corpus:
        self._raise_if_cancelled()
        print(f"[CorpusBuilder] Reconstructing {len(self._pages)} page(s)...")

        tasks = [
            asyncio.ensure_future(self._reconstruct_page(page, fragments))
            for page, fragments in self._pages.items()
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                page, lines = await next_done
                self._raise_if_cancelled()
                self._completed[page] = lines
                if self._on_page_done is not None:
                    self._on_page_done(self.partial())
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._completed.clear()
            raise

        corpus = Corpus(self._ordered_lines(), is_complete=True)
        print(f"[CorpusBuilder] Built {corpus!r}")
        return corpus

    async def _reconstruct_page(self, page_number: int, fragments: Tuple[Fragment, ...]) -> Tuple[int, List[Line]]:
        self._raise_if_cancelled()
        lines = await asyncio.to_thread(self._reconstructor.reconstruct, fragments, page_number)
        return page_number, lines

    def _ordered_lines(self) -> List[Line]:
        return [
            line
            for page in sorted(self._completed)
            for line in self._completed[page]
        ]

    def _raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ReconstructionCancelled("Corpus build was cancelled.")
