# src/interface/cli.py

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import FloatPrompt, Prompt
from rich.table import Table
from rich.text import Text

from src.application.corpus import Corpus
from src.domain.interfaces import HighlightRendererPort
from src.domain.models import HighlightRect, MatchSpan


console = Console()

# Loosest setting offered to users, matching the viewer's search slider.
MAX_FUZZINESS = 0.6


def display_welcome_banner() -> None:
    console.print(Panel.fit(
        "[bold cyan]🔍 Fuzzy Document Search[/bold cyan]\n"
        "[dim]Line reconstruction + on-page match geometry[/dim]",
        box=box.DOUBLE,
        border_style="cyan",
    ))


def display_corpus_status(corpus: Corpus) -> None:
    pages = corpus.page_numbers()
    console.print(
        f"\n[green]✓[/green] Corpus built — [bold]{len(corpus)}[/bold] lines "
        f"across [bold]{len(pages)}[/bold] page(s).\n"
    )


def prompt_for_query() -> str:
    return Prompt.ask("\n[bold yellow]❓ Search for[/bold yellow]")


def prompt_for_fuzziness(default: float, maximum: float = MAX_FUZZINESS) -> float:
    while True:
        value = FloatPrompt.ask(f"[dim]Fuzziness (0 = exact, {maximum} = loosest)[/dim]", default=default)
        if 0.0 <= value <= maximum:
            return value
        display_error(f"Fuzziness must be between 0 and {maximum}.")


def display_results(query: str, results: List[MatchSpan], source: str = "corpus") -> None:
    if not results:
        console.print(f"\n[dim]No matches for[/dim] [italic]\"{query}\"[/italic]\n")
        return

    table = Table(
        title=f"Matches for \"{query}\" [dim]({source})[/dim]",
        box=box.ROUNDED,
        show_lines=True,
    )
    table.add_column("#", justify="right", style="bold")
    table.add_column("Page", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Context")

    for rank, result in enumerate(results, start=1):
        score_color = _score_to_color(result.score)
        table.add_row(
            str(rank),
            str(result.page_number),
            Text(f"{result.score:.3f}", style=score_color),
            _highlighted_snippet(result),
        )

    console.print(table)


def display_error(message: str) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}\n")


def display_notice(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def ask_continue() -> bool:
    answer = Prompt.ask(
        "\n[dim]Search again?[/dim]",
        choices=["y", "n"],
        default="y",
    )
    return answer.lower() == "y"


class ConsoleHighlightRenderer(HighlightRendererPort):
    """Prints highlight changes instead of drawing them."""

    def __init__(self, output: Optional[Console] = None):
        self._console = output or console

    def draw(self, match: MatchSpan, rect: HighlightRect) -> None:
        self._console.print(Panel(
            f"page {match.page_number}  "
            f"left={rect.left:.1f}  top={rect.top:.1f}  "
            f"width={rect.width:.1f}  height={rect.height:.1f}",
            title="[bold]Highlight[/bold]",
            border_style="green",
            box=box.ROUNDED,
        ))

    def draw_text_fallback(self, match: MatchSpan) -> None:
        self._console.print(Panel(
            f"page {match.page_number}  first occurrence of \"{match.phrase.strip()}\"",
            title="[bold]Highlight (text scan)[/bold]",
            border_style="yellow",
            box=box.ROUNDED,
        ))

    def erase(self) -> None:
        self._console.print("[dim]Highlight cleared.[/dim]")


def _highlighted_snippet(result: MatchSpan) -> Text:
    snippet = Text(result.snippet)
    phrase = " ".join(result.phrase.split())
    if phrase:
        snippet.highlight_words([phrase], style="bold black on yellow", case_sensitive=False)
    return snippet


def _score_to_color(score: float) -> str:
    # Lower is better.
    if score <= 0.15:
        return "green"
    elif score <= 0.40:
        return "yellow"
    else:
        return "red"
