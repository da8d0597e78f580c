# src/infrastructure/document_loader.py

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import fitz  # PyMuPDF
import pdfplumber

from src.domain.interfaces import FragmentSourcePort
from src.domain.models import Fragment, PageLayout


# pdfplumber word grouping, in PDF units.
DEFAULT_X_TOLERANCE = 2
DEFAULT_Y_TOLERANCE = 2


def fragments_by_page(pages: Sequence[PageLayout]) -> Dict[int, Tuple[Fragment, ...]]:
    return {page.page_number: page.fragments for page in pages}


class PdfFragmentLoader(FragmentSourcePort):
    """
    Extracts positioned text fragments from a PDF, page by page.

    Coordinates are converted from the extractors' top-left origin to
    baseline-relative page space (y grows upward from the page bottom):
        origin_y = page_height - box_bottom_from_top

    The box bottom stands in for the baseline so that the pixel-space top
    (origin - height) lands on the glyph box top.

    pdfplumber words are tried first; PyMuPDF spans are the fallback when
    pdfplumber fails or finds no text at all.
    """

    def __init__(
        self,
        x_tolerance: float = DEFAULT_X_TOLERANCE,
        y_tolerance: float = DEFAULT_Y_TOLERANCE,
    ):
        self._x_tolerance = x_tolerance
        self._y_tolerance = y_tolerance

    def load_pages(self, file_path: Path) -> List[PageLayout]:
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Document not found: {file_path}")
        if file_path.suffix.lower() != ".pdf":
            raise ValueError(f"Unsupported document type: {file_path.suffix or '(none)'}")

        pages = self._extract_pages_pdfplumber(file_path)
        if not any(page.fragments for page in pages):
            pages = self._extract_pages_pymupdf(file_path)

        fragment_count = sum(len(page.fragments) for page in pages)
        print(f"[DocumentLoader] Loaded {fragment_count} fragments from {len(pages)} page(s) of {file_path.name}")
        return pages

    # ─── Private: Extractors ──────────────────────────────────────────────────

    def _extract_pages_pdfplumber(self, file_path: Path) -> List[PageLayout]:
        try:
            pages = []
            with pdfplumber.open(str(file_path)) as pdf:
                for i, page in enumerate(pdf.pages):
                    page_number = i + 1
                    words = page.extract_words(
                        x_tolerance=self._x_tolerance,
                        y_tolerance=self._y_tolerance,
                        use_text_flow=True,
                    )
                    fragments = tuple(
                        Fragment(
                            text=word["text"],
                            origin_x=float(word["x0"]),
                            origin_y=float(page.height - word["bottom"]),
                            width=float(word["x1"] - word["x0"]),
                            height=float(word["bottom"] - word["top"]),
                            page_number=page_number,
                        )
                        for word in words
                        if word["text"]
                    )
                    pages.append(PageLayout(
                        page_number=page_number,
                        width=float(page.width),
                        height=float(page.height),
                        fragments=fragments,
                    ))
            return pages
        except Exception as error:
            print(f"[DocumentLoader] pdfplumber error on {file_path.name}: {error}")
            return []

    def _extract_pages_pymupdf(self, file_path: Path) -> List[PageLayout]:
        try:
            pages = []
            with fitz.open(str(file_path)) as pdf:
                for i, page in enumerate(pdf):
                    page_number = i + 1
                    page_height = page.rect.height
                    fragments = []
                    for block in page.get_text("dict")["blocks"]:
                        # type 0 = text block; images have no "lines"
                        for line in block.get("lines", []):
                            for span in line["spans"]:
                                if not span["text"]:
                                    continue
                                x0, y0, x1, y1 = span["bbox"]
                                fragments.append(Fragment(
                                    text=span["text"],
                                    origin_x=float(x0),
                                    origin_y=float(page_height - y1),
                                    width=float(x1 - x0),
                                    height=float(y1 - y0),
                                    page_number=page_number,
                                ))
                    pages.append(PageLayout(
                        page_number=page_number,
                        width=float(page.rect.width),
                        height=float(page_height),
                        fragments=tuple(fragments),
                    ))
            return pages
        except Exception as error:
            print(f"[DocumentLoader] PyMuPDF error on {file_path.name}: {error}")
            return []
