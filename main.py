# main.py

import asyncio
import sys
from pathlib import Path
from typing import List

from src.application.search_service import DocumentSearchService
from src.domain.errors import ReconstructionCancelled
from src.domain.models import MatchSpan, PageLayout, Viewport
from src.infrastructure.document_loader import PdfFragmentLoader, fragments_by_page
from src.infrastructure.fuzzy_matcher import SequenceMatcherStrategy
from src.infrastructure.page_search import PdfPageSearch
from src.interface.cli import (
    ConsoleHighlightRenderer,
    ask_continue,
    display_corpus_status,
    display_error,
    display_notice,
    display_results,
    display_welcome_banner,
    prompt_for_fuzziness,
    prompt_for_query,
)


VIEWPORT_SCALE = 1.5
DEFAULT_FUZZINESS = 0.3
FALLBACK_FUZZINESS = 0.4


async def main(pdf_path: Path) -> None:
    display_welcome_banner()

    # ── 1. Wire infrastructure ───────────────────────────────────────────────
    matcher = SequenceMatcherStrategy()
    service = DocumentSearchService(
        matcher=matcher,
        renderer=ConsoleHighlightRenderer(),
    )
    page_search = PdfPageSearch(matcher)

    try:
        pages = await asyncio.to_thread(PdfFragmentLoader().load_pages, pdf_path)
        page_search.index(pdf_path)
    except (FileNotFoundError, ValueError, RuntimeError) as error:
        display_error(str(error))
        sys.exit(1)

    # ── 2. Build corpus while pages report their layout ──────────────────────
    try:
        build = service.start_document(fragments_by_page(pages))
        _mark_layouts_ready(service, pages)
        corpus = await build
    except ReconstructionCancelled as error:
        display_error(str(error))
        sys.exit(1)

    display_corpus_status(corpus)

    # ── 3. Interactive search loop ───────────────────────────────────────────
    fuzziness = DEFAULT_FUZZINESS
    while True:
        query = await asyncio.to_thread(prompt_for_query)
        fuzziness = await asyncio.to_thread(prompt_for_fuzziness, fuzziness)

        results, source = _run_search(service, page_search, query, fuzziness)
        display_results(query, results, source)

        if results:
            await service.highlight(results[0])
        else:
            service.clear_highlight()

        if not await asyncio.to_thread(ask_continue):
            break

    service.close()


def _mark_layouts_ready(service: DocumentSearchService, pages: List[PageLayout]) -> None:
    for page in pages:
        service.mark_page_ready(
            page.page_number,
            Viewport.for_page(page.width, page.height, scale=VIEWPORT_SCALE),
        )


def _run_search(
    service: DocumentSearchService,
    page_search: PdfPageSearch,
    query: str,
    fuzziness: float,
) -> tuple[List[MatchSpan], str]:
    """Corpus search first; whole-page search when no lines exist yet."""
    if not service.corpus_ready:
        display_notice("No lines reconstructed yet. Falling back to page search.")
        return page_search.search(query, max(fuzziness, FALLBACK_FUZZINESS)), "page search"
    try:
        return service.search(query, fuzziness), "corpus"
    except ValueError as error:
        display_error(str(error))
        return [], "corpus"


if __name__ == "__main__":
    if len(sys.argv) != 2:
        display_error("Usage: python main.py <document.pdf>")
        sys.exit(2)
    asyncio.run(main(Path(sys.argv[1])))
