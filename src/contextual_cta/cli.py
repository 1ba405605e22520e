"""
Command-line interface for Contextual CTA.

Inserts contextual CTAs into an HTML, Markdown or plain-text article using
an offer catalog from a JSON, CSV or Excel file.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .annotator import PipelineCancelled
from .chunker import ContentValidationError
from .config import PipelineConfig
from .llm_client import DEFAULT_MODEL, LLMClientError, create_llm_client
from .models import CampaignType, ContentFormat
from .offer_catalog import OfferCatalogError, load_offers
from .pipeline import CtaInsertionPipeline, PipelineError, PipelineResult

console = Console()

FORMAT_BY_SUFFIX = {
    ".html": ContentFormat.HTML,
    ".htm": ContentFormat.HTML,
    ".md": ContentFormat.MARKDOWN,
    ".markdown": ContentFormat.MARKDOWN,
    ".txt": ContentFormat.TEXT,
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _detect_format(path: Path, explicit: Optional[str]) -> ContentFormat:
    if explicit:
        return ContentFormat.from_value(explicit)
    return FORMAT_BY_SUFFIX.get(path.suffix.lower(), ContentFormat.TEXT)


@click.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--offers",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Path to offer catalog (JSON, CSV or Excel).",
)
@click.option(
    "--keyword",
    "-k",
    type=str,
    required=True,
    help="Target keyword of the article (used for utm_term).",
)
@click.option(
    "--campaign",
    type=click.Choice([c.value for c in CampaignType]),
    default=CampaignType.BLOG_CREATOR.value,
    show_default=True,
    help="Campaign the CTAs are attributed to.",
)
@click.option(
    "--competitor",
    type=str,
    default=None,
    help="Competitor name for competitor_conquesting campaigns.",
)
@click.option(
    "--format",
    "content_format",
    type=click.Choice([f.value for f in ContentFormat]),
    default=None,
    help="Content format. Detected from the file extension when omitted.",
)
@click.option(
    "--strategy",
    type=click.Choice(["conservative", "moderate", "aggressive"]),
    default="moderate",
    show_default=True,
    help="Insertion strategy preset.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Where to write the enhanced document. Prints to stdout when omitted.",
)
@click.option(
    "--report",
    type=click.Path(path_type=Path),
    default=None,
    help="Optional JSON report of every insertion.",
)
@click.option(
    "--api-key",
    type=str,
    envvar="ANTHROPIC_API_KEY",
    help="Anthropic API key. Can also be set via ANTHROPIC_API_KEY env var.",
)
@click.option(
    "--model",
    type=str,
    default=DEFAULT_MODEL,
    show_default=True,
    help="Claude model used as the text-understanding oracle.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
def main(
    input_file: Path,
    offers: Path,
    keyword: str,
    campaign: str,
    competitor: Optional[str],
    content_format: Optional[str],
    strategy: str,
    output: Optional[Path],
    report: Optional[Path],
    api_key: Optional[str],
    model: str,
    verbose: bool,
) -> None:
    """
    Contextual CTA - Insert relevant calls-to-action into an article.

    Examples:

        contextual-cta article.html --offers offers.json -k "cold email outreach" -o out.html

        contextual-cta post.md --offers offers.csv -k "sales prospecting" --campaign reddit_content_creator
    """
    _configure_logging(verbose)

    console.print(Panel.fit(
        "[bold blue]Contextual CTA[/bold blue]\n"
        "Matching article paragraphs to offers and inserting CTAs",
        border_style="blue",
    ), highlight=False)

    try:
        fmt = _detect_format(input_file, content_format)
        with console.status("[bold green]Loading content..."):
            content = input_file.read_text(encoding="utf-8")
            offer_list = load_offers(offers)
            if verbose:
                console.print(f"  Loaded {len(content):,} characters of {fmt.value}")
                console.print(f"  Loaded {len(offer_list)} offers from: {offers}")

        oracle = create_llm_client(api_key=api_key, model=model)
        pipeline = CtaInsertionPipeline(oracle, PipelineConfig.for_strategy(strategy))

        with console.status("[bold green]Analyzing and inserting CTAs..."):
            result = pipeline.run(
                content,
                offer_list,
                target_keyword=keyword,
                campaign_type=campaign,
                content_format=fmt,
                competitor_name=competitor,
            )

        if output:
            output.write_text(result.document.enhanced_content, encoding="utf-8")
        if report:
            report.write_text(json.dumps(result.document.to_dict(), indent=2), encoding="utf-8")

        _display_summary(result, verbose)

        if output:
            console.print(f"\n[bold green]Success![/bold green] Output saved to: {output}")
        else:
            click.echo(result.document.enhanced_content)

    except ContentValidationError as e:
        console.print(f"[red]Invalid content ({e.code}):[/red] {e}")
        sys.exit(1)
    except OfferCatalogError as e:
        console.print(f"[red]Offer catalog error:[/red] {e}")
        sys.exit(1)
    except LLMClientError as e:
        console.print(f"[red]LLM error:[/red] {e}")
        sys.exit(1)
    except PipelineCancelled as e:
        console.print(f"[yellow]Cancelled:[/yellow] {e}")
        sys.exit(130)
    except PipelineError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        sys.exit(1)


def _display_summary(result: PipelineResult, verbose: bool) -> None:
    """Display insertion summary."""
    document = result.document
    console.print("\n[bold]Insertion Summary[/bold]")

    stats = Table(show_header=False)
    stats.add_column("Metric", style="cyan")
    stats.add_column("Value", style="green")
    stats.add_row("Paragraphs", str(document.original_paragraphs))
    stats.add_row("Candidates", str(len(result.analysis.candidates)))
    stats.add_row("Matches", str(len(result.matching.matches)))
    stats.add_row("CTAs inserted", str(document.total_insertions))
    stats.add_row("CTA density", f"{document.cta_density}%")
    stats.add_row("Average confidence", f"{document.average_cta_confidence}%")
    stats.add_row("Words", f"{document.original_word_count} -> {document.enhanced_word_count}")
    console.print(stats)

    if document.insertions:
        table = Table(title="Insertions", show_header=True)
        table.add_column("Position", style="cyan")
        table.add_column("Anchor text", style="green")
        table.add_column("Offer")
        table.add_column("Confidence", justify="right")
        table.add_column("Status")
        for record in document.insertions:
            status = "[green]inserted[/green]" if record.success else f"[red]skipped[/red] {record.reason}"
            table.add_row(
                str(record.position),
                record.cta.anchor_text,
                record.cta.offer_id,
                f"{record.cta.confidence}%",
                status,
            )
        console.print(table)

    if verbose and result.matching.unmatched_chunk_ids:
        console.print(
            f"\n[dim]Unmatched candidates: {', '.join(result.matching.unmatched_chunk_ids)}[/dim]"
        )


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
