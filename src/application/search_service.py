# src/application/search_service.py

import asyncio
from typing import List, Mapping, Optional, Sequence

from src.application.corpus import Corpus, CorpusBuilder
from src.application.geometry_resolver import GeometryResolver
from src.application.highlight_session import (
    DEFAULT_EXPIRY_SECONDS,
    DEFAULT_READY_TIMEOUT_SECONDS,
    HighlightSession,
)
from src.application.line_reconstructor import LineReconstructor
from src.application.match_resolver import MatchResolver
from src.application.page_registry import PageRegistry
from src.domain.errors import ReconstructionCancelled
from src.domain.interfaces import ApproximateMatcherPort, HighlightRendererPort
from src.domain.models import Fragment, HighlightRect, MatchSpan, Viewport


class DocumentSearchService:
    """
    Query surface for one open document: search, highlight, clear, corpus.

    Lifecycle:
    - open_document() → cancels any previous build, resets page state,
                        reconstructs pages concurrently
    - while building  → search() sees partial snapshots (best effort)
    - when finished   → the complete Corpus replaces the partial one

    Corpus snapshots are swapped by reference, never merged, so a search
    sees either one whole snapshot or another.
    """

    def __init__(
        self,
        matcher: ApproximateMatcherPort,
        renderer: HighlightRendererPort,
        reconstructor: Optional[LineReconstructor] = None,
        match_resolver: Optional[MatchResolver] = None,
        ready_timeout: float = DEFAULT_READY_TIMEOUT_SECONDS,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
    ):
        self._reconstructor = reconstructor or LineReconstructor()
        self._match_resolver = match_resolver or MatchResolver(matcher)
        self._renderer = renderer
        self._ready_timeout = ready_timeout
        self._expiry_seconds = expiry_seconds

        self._corpus: Corpus = Corpus.empty()
        self._builder: Optional[CorpusBuilder] = None
        self._geometry = GeometryResolver(self.get_corpus)
        self._pages = PageRegistry()
        self._session = self._new_session()

    # ─── Document lifecycle ──────────────────────────────────────────────────

    async def open_document(self, per_page_fragments: Mapping[int, Sequence[Fragment]]) -> Corpus:
        """
        Reconstruct a newly loaded document and publish its Corpus.
        Raises ReconstructionCancelled if another open_document() or close()
        supersedes this one before it finishes.
        """
        return await self.start_document(per_page_fragments)

    def start_document(self, per_page_fragments: Mapping[int, Sequence[Fragment]]) -> "asyncio.Task[Corpus]":
        """
        Reset the session for a new document now and build it in the
        background. Pages may be marked ready as soon as this returns.
        """
        self._reset_document()

        builder = CorpusBuilder(
            per_page_fragments,
            reconstructor=self._reconstructor,
            on_page_done=lambda snapshot: self._publish(builder, snapshot),
        )
        self._builder = builder
        return asyncio.ensure_future(self._build(builder))

    async def _build(self, builder: CorpusBuilder) -> Corpus:
        corpus = await builder.build()
        if builder is not self._builder:
            raise ReconstructionCancelled("Document was replaced while building.")

        self._corpus = corpus
        self._builder = None
        return corpus

    def mark_page_ready(self, page_number: int, viewport: Viewport) -> None:
        """Called by the rendering side once a page's layout is built."""
        self._pages.mark_ready(page_number, viewport)

    def close(self) -> None:
        self._reset_document()

    # ─── Query surface ───────────────────────────────────────────────────────

    def search(self, query: str, fuzziness: float) -> List[MatchSpan]:
        """
        Ranked matches over the current snapshot. Empty until the first
        page is reconstructed; check corpus_ready to choose a fallback.
        """
        corpus = self._corpus
        if not (query or "").strip():
            return []
        if len(corpus) == 0:
            print("[SearchService] No lines reconstructed yet — returning no results.")
            return []

        results = self._match_resolver.search(corpus, query, fuzziness)
        if not corpus.is_complete:
            print(f"[SearchService] Searched a partial corpus ({len(corpus)} lines).")
        return results

    async def highlight(self, match: MatchSpan) -> Optional[HighlightRect]:
        return await self._session.request(match)

    def clear_highlight(self) -> None:
        self._session.clear()

    def get_corpus(self) -> Corpus:
        return self._corpus

    @property
    def corpus_ready(self) -> bool:
        return len(self._corpus) > 0

    @property
    def active_match(self) -> Optional[MatchSpan]:
        return self._session.active_match

    @property
    def highlight_session(self) -> HighlightSession:
        return self._session

    # ─── Private ─────────────────────────────────────────────────────────────

    def _publish(self, builder: CorpusBuilder, snapshot: Corpus) -> None:
        if builder is self._builder and not builder.cancelled:
            self._corpus = snapshot

    def _reset_document(self) -> None:
        if self._builder is not None:
            print("[SearchService] Cancelling in-flight reconstruction.")
            self._builder.cancel()
            self._builder = None
        self._session.clear()
        self._corpus = Corpus.empty()
        self._pages = PageRegistry()
        self._session = self._new_session()

    def _new_session(self) -> HighlightSession:
        return HighlightSession(
            pages=self._pages,
            geometry=self._geometry,
            renderer=self._renderer,
            ready_timeout=self._ready_timeout,
            expiry_seconds=self._expiry_seconds,
        )
