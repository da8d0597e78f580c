# tests/test_document_loader.py

import fitz
import pytest

from src.application.corpus import Corpus
from src.infrastructure.document_loader import PdfFragmentLoader, fragments_by_page


PAGE_WIDTH = 595
PAGE_HEIGHT = 842


@pytest.fixture
def sample_pdf(tmp_path):
    """Two pages; page 1 holds two visual lines, page 2 holds one."""
    path = tmp_path / "sample.pdf"
    with fitz.open() as doc:
        first = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        first.insert_text((72, 100), "Alpha beta gamma", fontsize=12)
        first.insert_text((72, 200), "Delta epsilon", fontsize=12)
        second = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        second.insert_text((72, 100), "Zeta eta theta", fontsize=12)
        doc.save(str(path))
    return path


def test_load_pages_yields_page_sizes_and_fragments(sample_pdf):
    pages = PdfFragmentLoader().load_pages(sample_pdf)

    assert [page.page_number for page in pages] == [1, 2]
    assert pages[0].width == pytest.approx(PAGE_WIDTH)
    assert pages[0].height == pytest.approx(PAGE_HEIGHT)
    assert all(f.page_number == 1 for f in pages[0].fragments)
    assert " ".join(f.text for f in pages[1].fragments) == "Zeta eta theta"


def test_coordinates_are_flipped_to_bottom_origin(sample_pdf):
    pages = PdfFragmentLoader().load_pages(sample_pdf)
    alpha = next(f for f in pages[0].fragments if f.text == "Alpha")

    # Baseline at 100pt from the top → roughly 742pt above the bottom.
    assert PAGE_HEIGHT - 110 < alpha.origin_y < PAGE_HEIGHT - 95
    assert alpha.origin_x == pytest.approx(72, abs=1)
    assert alpha.width > 0 and alpha.height > 0


def test_loaded_fragments_reconstruct_into_visual_lines(sample_pdf):
    pages = PdfFragmentLoader().load_pages(sample_pdf)
    corpus = Corpus.build(fragments_by_page(pages))

    assert [line.text for line in corpus.all_lines()] == [
        "Alpha beta gamma",
        "Delta epsilon",
        "Zeta eta theta",
    ]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        PdfFragmentLoader().load_pages(tmp_path / "absent.pdf")


def test_unsupported_type_raises(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ValueError, match="Unsupported"):
        PdfFragmentLoader().load_pages(path)
