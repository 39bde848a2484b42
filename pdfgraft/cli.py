"""
Command-line interface for pdfgraft.
"""

import os
import sys

import click
from rich.console import Console
from rich.table import Table

from pdfgraft import __version__
from pdfgraft.core.utils import format_file_size, get_logger, resolve_path
from pdfgraft.exceptions import PdfGraftError
from pdfgraft.merge import merge_pdfs
from pdfgraft.metadata import get_pdf_info, validate_pdf
from pdfgraft.service import CommandLoop
from pdfgraft.settings import MergeConfig, SplitConfig
from pdfgraft.split import split_pdf

console = Console()
error_console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _fail(error):
    console.print(f"\n[bold red]✗ Error:[/bold red] {error}")
    sys.exit(1)


def _parse_order(ctx, param, value):
    if value is None:
        return None
    try:
        return [int(item) for item in value.split(",") if item.strip()]
    except ValueError:
        raise click.BadParameter("expected comma-separated integers such as 2,0,1")


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--log-level',
    default='WARNING',
    show_default=True,
    help='Logging verbosity (logs go to stderr)',
    type=click.Choice(LOG_LEVELS, case_sensitive=False)
)
def cli(log_level):
    """
    pdfgraft - merge PDFs and split them by page range.
    """
    get_logger("pdfgraft", level=log_level, stream=sys.stderr)


@cli.command(name="merge")
@click.argument('inputs', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.argument('output', type=click.Path(dir_okay=False))
@click.option(
    '--order',
    callback=_parse_order,
    help='File order as 0-based indices, e.g. 2,0,1',
    type=str
)
@click.option('--no-metadata', is_flag=True, help='Do not copy the first file\'s document info')
@click.option('--no-bookmarks', is_flag=True, help='Do not carry bookmarks over')
@click.option('--optimize', is_flag=True, help='Drop unused objects and compress streams')
@click.option(
    '--compression-level',
    default=None,
    help='zlib level used with --optimize (1-9)',
    type=click.IntRange(1, 9)
)
def merge_command(inputs, output, order, no_metadata, no_bookmarks, optimize, compression_level):
    """
    Merge INPUTS into OUTPUT.

    Examples:

        pdfgraft merge a.pdf b.pdf merged.pdf

        pdfgraft merge a.pdf b.pdf c.pdf merged.pdf --order 2,0,1
    """
    try:
        options = {
            "preserve_metadata": not no_metadata,
            "keep_bookmarks": not no_bookmarks,
            "optimize_size": optimize,
        }
        if compression_level is not None:
            options["compression_level"] = compression_level
        config = MergeConfig.from_mapping(options)

        console.print(f"\n[bold cyan]Merging {len(inputs)} files...[/bold cyan]")
        result = merge_pdfs(inputs, output, page_order=order, config=config)

        table = Table(title="Merge Result", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Output", str(resolve_path(result.output_path)))
        table.add_row("Files merged", str(result.files_merged))
        table.add_row("Pages", str(result.total_pages))
        table.add_row("Size", format_file_size(result.file_size))
        table.add_row("Metadata preserved", "Yes" if result.metadata_preserved else "No")
        table.add_row("Bookmarks", str(result.bookmarks_copied))
        table.add_row("Time", f"{result.processing_time_ms} ms")
        console.print(table)
        console.print(f"\n[bold green]✓ Successfully merged into {os.path.basename(output)}[/bold green]\n")

    except PdfGraftError as e:
        _fail(e)


@cli.command(name="split")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.argument('ranges', type=str)
@click.option(
    '--output-dir', '-o',
    default='./output',
    help='Output directory',
    type=click.Path(file_okay=False)
)
@click.option(
    '--pattern', '-p',
    default=None,
    help='File name pattern using {index}, {range}, {start} and {end}',
    type=str
)
@click.option('--no-metadata', is_flag=True, help='Do not copy document info into the outputs')
def split_command(input_pdf, ranges, output_dir, pattern, no_metadata):
    """
    Split INPUT_PDF into one file per page range.

    Examples:

        pdfgraft split input.pdf 1-3,5,7-10

        pdfgraft split input.pdf 1-2,3-4 -o parts --pattern "chapter_{range}"
    """
    try:
        options = {"preserve_metadata": not no_metadata}
        if pattern is not None:
            options["naming_pattern"] = pattern
        config = SplitConfig.from_mapping(options)

        console.print(f"\n[bold cyan]Splitting {os.path.basename(input_pdf)}...[/bold cyan]")
        result = split_pdf(input_pdf, output_dir, ranges, config=config)

        table = Table(title="Created Files")
        table.add_column("Range", style="cyan", no_wrap=True)
        table.add_column("File", style="green")
        table.add_column("Pages", justify="right")
        table.add_column("Size", justify="right")
        for stat in result.range_stats:
            table.add_row(
                stat.range.label(),
                os.path.basename(stat.output_file),
                str(stat.page_count),
                format_file_size(stat.file_size),
            )
        console.print(table)
        console.print(f"\n[bold green]✓ Successfully split into {result.files_created} files[/bold green]")
        console.print(f"[dim]Output directory: {os.path.abspath(output_dir)}[/dim]\n")

    except PdfGraftError as e:
        _fail(e)


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
def show_info(input_pdf):
    """
    Display information about a PDF file.

    Example:

        pdfgraft info input.pdf
    """
    try:
        info = get_pdf_info(input_pdf)

        table = Table(title=f"PDF Information: {os.path.basename(input_pdf)}")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("File Path", os.path.abspath(input_pdf))
        table.add_row("File Size", format_file_size(info.file_size))
        table.add_row("PDF Version", info.pdf_version)
        table.add_row("Number of Pages", str(info.page_count))
        table.add_row("Encrypted", "Yes" if info.is_encrypted else "No")
        if info.first_page_size:
            width, height = info.first_page_size
            table.add_row("First Page", f"{width:g} x {height:g} pt")
        for label, value in (
            ("Title", info.title),
            ("Author", info.author),
            ("Subject", info.subject),
            ("Creator", info.creator),
            ("Producer", info.producer),
        ):
            if value:
                table.add_row(label, value)
        if info.keywords:
            table.add_row("Keywords", ", ".join(info.keywords))
        table.add_row("Annotations", "Yes" if info.has_annotations else "No")
        table.add_row("Forms", "Yes" if info.has_forms else "No")
        table.add_row(
            "Objects",
            ", ".join(f"{name}: {count}" for name, count in sorted(info.object_counts.items())),
        )
        table.add_row("Load Time", f"{info.load_time_ms} ms")

        console.print()
        console.print(table)
        console.print()

    except PdfGraftError as e:
        _fail(e)


@cli.command(name="validate")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
def validate_command(input_pdf):
    """
    Check that a PDF loads and has a sound page tree.

    Exits with status 1 when the document is not valid.
    """
    try:
        report = validate_pdf(input_pdf, extract_metadata=False)
    except PdfGraftError as e:
        _fail(e)

    if report.issues:
        table = Table(title="Validation Issues")
        table.add_column("Severity", style="cyan", no_wrap=True)
        table.add_column("Kind")
        table.add_column("Description", style="yellow")
        table.add_column("Suggestion", style="dim")
        for issue in report.issues:
            table.add_row(issue.severity, issue.kind, issue.description, issue.suggestion or "")
        console.print(table)

    for recommendation in report.recommendations:
        console.print(f"[yellow]• {recommendation}[/yellow]")

    if not report.is_valid:
        console.print(f"[bold red]✗ {os.path.basename(input_pdf)} is not valid[/bold red]")
        sys.exit(1)
    console.print(f"[bold green]✓ {os.path.basename(input_pdf)} is valid[/bold green]")


@cli.command(name="serve")
def serve_command():
    """
    Answer JSON requests read line by line from stdin.
    """
    error_console.print(f"[dim]pdfgraft {__version__} reading requests from stdin[/dim]")
    CommandLoop(sys.stdin, sys.stdout).run()


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
