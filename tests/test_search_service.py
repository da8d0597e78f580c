# tests/test_search_service.py

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from src.application.line_reconstructor import LineReconstructor
from src.application.search_service import DocumentSearchService
from src.domain.errors import ReconstructionCancelled
from src.domain.models import Fragment, HighlightRect, Viewport
from src.infrastructure.fuzzy_matcher import SequenceMatcherStrategy


def _document(*rows_per_page) -> dict:
    return {
        page: [
            Fragment(text=row, origin_x=10, origin_y=700 - i * 20, width=8 * len(row), height=10, page_number=page)
            for i, row in enumerate(rows)
        ]
        for page, rows in enumerate(rows_per_page, start=1)
    }


def _service(renderer=None) -> DocumentSearchService:
    return DocumentSearchService(
        matcher=SequenceMatcherStrategy(),
        renderer=renderer or MagicMock(),
        ready_timeout=0.05,
    )


def test_search_before_any_document_returns_empty_results():
    service = _service()

    assert service.search("anything", 0.3) == []
    assert not service.corpus_ready


def test_empty_query_returns_no_results():
    assert _service().search("   ", 0.3) == []


def test_open_document_then_search_ranks_exact_match_first():
    service = _service()
    asyncio.run(service.open_document(_document(
        ["enzymes for dough strength", "baking powder blend"],
        ["dough conditioner with enzymes"],
    )))

    results = service.search("enzymes", 0.2)

    assert service.corpus_ready
    assert service.get_corpus().is_complete
    assert {r.line_id for r in results} == {"p1-l0", "p2-l0"}
    assert all(r.score == 0.0 for r in results)
    assert results[0].line_id == "p1-l0"


def test_highlight_resolves_rect_and_exposes_active_match():
    renderer = MagicMock()
    service = _service(renderer)

    async def scenario():
        await service.open_document(_document(["Hello World"]))
        service.mark_page_ready(1, Viewport(scale=1.0, transform=(1.0, 0.0, 0.0, 1.0, 0.0, 0.0)))
        match = service.search("world", 0.0)[0]
        return match, await service.highlight(match)

    match, rect = asyncio.run(scenario())

    assert rect == HighlightRect(left=10, top=690, width=88, height=10)
    assert service.active_match is match
    renderer.draw.assert_called_once_with(match, rect)


def test_highlight_on_unrendered_page_is_silent_noop():
    renderer = MagicMock()
    service = _service(renderer)

    async def scenario():
        await service.open_document(_document(["Hello World"]))
        return await service.highlight(service.search("hello", 0.0)[0])

    assert asyncio.run(scenario()) is None
    assert service.active_match is None
    renderer.draw.assert_not_called()


def test_new_document_replaces_corpus_instead_of_merging():
    service = _service()

    async def scenario():
        await service.open_document(_document(["first document text"]))
        first = service.get_corpus()
        await service.open_document(_document(["second document text"]))
        return first, service.get_corpus()

    first, second = asyncio.run(scenario())

    assert first is not second
    assert [line.text for line in second.all_lines()] == ["second document text"]
    assert service.search("first", 0.0) == []


def test_switching_documents_cancels_in_flight_build():
    service = _service()

    async def scenario():
        pending = asyncio.create_task(service.open_document(_document(["old a"], ["old b"], ["old c"])))
        await asyncio.sleep(0)
        await service.open_document(_document(["new document"]))
        with pytest.raises(ReconstructionCancelled):
            await pending

    asyncio.run(scenario())

    assert [line.text for line in service.get_corpus().all_lines()] == ["new document"]


def test_close_discards_corpus_and_highlight():
    service = _service()
    asyncio.run(service.open_document(_document(["text"])))

    service.close()

    assert not service.corpus_ready
    assert service.search("text", 0.0) == []


def test_pages_marked_ready_while_building_are_kept():
    service = _service()

    async def scenario():
        build = service.start_document(_document(["Hello World"]))
        service.mark_page_ready(1, Viewport.for_page(612, 792))
        await build
        return await service.highlight(service.search("hello", 0.0)[0])

    rect = asyncio.run(scenario())

    assert rect is not None
    assert rect.top == pytest.approx(792 - 700 - 10)


class _GatedReconstructor(LineReconstructor):
    """Holds one page back until the test opens the gate."""

    def __init__(self, held_page: int):
        super().__init__()
        self.gate = threading.Event()
        self._held_page = held_page

    def reconstruct(self, fragments, page_number=None):
        if page_number == self._held_page:
            self.gate.wait(timeout=5)
        return super().reconstruct(fragments, page_number)


async def _until(predicate, attempts: int = 500):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


def test_search_during_build_sees_published_partial_snapshot():
    reconstructor = _GatedReconstructor(held_page=2)
    service = DocumentSearchService(
        matcher=SequenceMatcherStrategy(),
        renderer=MagicMock(),
        reconstructor=reconstructor,
    )

    async def scenario():
        build = service.start_document(_document(["enzymes on page one"], ["enzymes on page two"]))
        try:
            await _until(lambda: service.corpus_ready)
            partial_results = service.search("enzymes", 0.0)
            partial_corpus = service.get_corpus()
        finally:
            reconstructor.gate.set()
        await build
        return partial_results, partial_corpus

    partial_results, partial_corpus = asyncio.run(scenario())

    assert not partial_corpus.is_complete
    assert [r.line_id for r in partial_results] == ["p1-l0"]
    assert service.get_corpus().is_complete
    assert {r.line_id for r in service.search("enzymes", 0.0)} == {"p1-l0", "p2-l0"}


def test_cancelled_build_never_overwrites_newer_corpus():
    reconstructor = _GatedReconstructor(held_page=2)
    service = DocumentSearchService(
        matcher=SequenceMatcherStrategy(),
        renderer=MagicMock(),
        reconstructor=reconstructor,
    )

    async def scenario():
        old_build = service.start_document(_document(["old page one"], ["old page two"]))
        try:
            await _until(lambda: service.corpus_ready)
            await service.open_document(_document(["new document"]))
        finally:
            reconstructor.gate.set()
        with pytest.raises(ReconstructionCancelled):
            await old_build

    asyncio.run(scenario())

    assert [line.text for line in service.get_corpus().all_lines()] == ["new document"]
    assert service.search("old", 0.0) == []
