# tests/test_page_search.py

import fitz
import pytest

from src.application.geometry_resolver import GeometryResolver
from src.domain.models import Viewport
from src.infrastructure.fuzzy_matcher import SequenceMatcherStrategy
from src.infrastructure.page_search import PdfPageSearch


@pytest.fixture
def sample_pdf(tmp_path):
    path = tmp_path / "fallback.pdf"
    with fitz.open() as doc:
        doc.new_page().insert_text((72, 100), "Nothing relevant here", fontsize=12)
        doc.new_page().insert_text((72, 300), "Amylase improves dough strength", fontsize=12)
        doc.save(str(path))
    return path


@pytest.fixture
def page_search(sample_pdf) -> PdfPageSearch:
    search = PdfPageSearch(SequenceMatcherStrategy())
    search.index(sample_pdf)
    return search


def test_not_ready_before_index():
    search = PdfPageSearch(SequenceMatcherStrategy())
    assert search.is_ready() is False
    assert search.search("dough") == []


def test_finds_page_and_attaches_page_box(page_search):
    results = page_search.search("dough strength", 0.2)

    assert results[0].page_number == 2
    assert results[0].line_id is None
    assert results[0].phrase.lower() == "dough strength"
    assert results[0].page_box is not None


def test_page_box_resolves_through_direct_coordinates(page_search):
    match = page_search.search("dough strength", 0.2)[0]
    viewport = Viewport.for_page(595, 842, scale=1.0)

    rect = GeometryResolver(lambda: None).resolve_rect(match, viewport)

    # Baseline was placed 300pt from the top of the page.
    assert 280 < rect.top < 300
    assert rect.left > 72
    assert rect.width > 0


def test_empty_query_returns_nothing(page_search):
    assert page_search.search("  ") == []
