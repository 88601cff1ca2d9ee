"""CLI interface

Typer-based command line, Rich console output
"""

import threading
import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table
from rich.panel import Panel
from txt2epub.utils.logger import get_logger, setup_logging, verbosity_to_level
from txt2epub.config.loader import (
    Config, ConfigurationError, get_config, load_config, with_overrides
)
from txt2epub.stages.assembler import STDIN_PATH, is_markup_source, read_source, transform
from txt2epub.stages.batch import BatchConverter, ConversionCancelled
from txt2epub.stages.chapter import make_chapter_list
from txt2epub.stages.packager import BookMetadata, EPUBPackager
from txt2epub.stages.rules import build_rule_set

VERSION = "0.4.0"

GENERIC_ERROR_EXIT_CODE = 1
USAGE_ERROR_EXIT_CODE = 2

logger = get_logger(__name__)
console = Console()
app = typer.Typer(help="txt2epub - convert plain text manuscripts to EPUB")


def derive_output_path(files: List[str], output_file: Optional[str]) -> str:
    """Output file name

    With a single input file, the input path with its extension replaced by
    .epub. Standard input or several inputs need an explicit name.

    Raises:
        ValueError: no inputs, or no output name and none can be derived
    """
    if not files:
        raise ValueError("No input files specified")
    if output_file:
        return output_file
    if len(files) > 1:
        raise ValueError("Output file (-o) must be specified with multiple input files")
    if files[0] == STDIN_PATH:
        raise ValueError("Output file (-o) must be specified when input is stdin")

    path = Path(files[0])
    return str(path.with_suffix(".epub")) if path.suffix else f"{files[0]}.epub"


def _load_settings(config_path: Optional[str]) -> Config:
    if config_path:
        return load_config(config_path)
    return get_config()


def _setup_cli_logging(config: Config, loglevel: Optional[int]) -> None:
    console_level = verbosity_to_level(loglevel) if loglevel is not None else config.logging.console_level
    setup_logging(
        level=config.logging.file_level,
        console_level=console_level,
        log_file=config.logging.log_file
    )


def _fail(message: str, code: int = USAGE_ERROR_EXIT_CODE) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=code)


@app.command()
def convert(
    files: List[str] = typer.Argument(None, help="Input text files in chapter order ('-' for stdin)"),
    output_file: Optional[str] = typer.Option(None, "--output-file", "-o", help="EPUB output filename"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Book title (default: output filename)"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Book author (default: unknown)"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Book language (default: en)"),
    cover_image: Optional[str] = typer.Option(None, "--cover-image", "-c", help="Image file to use as the cover"),
    first_lines: bool = typer.Option(False, "--first-lines", "-f", help="First line of each file is the chapter heading"),
    para_indent: bool = typer.Option(False, "--para-indent", "-p", help="Paragraph indent replaces blank line spacing"),
    extra_para: bool = typer.Option(False, "--extra-para", "-x", help="Every input line is a paragraph"),
    remove_pagenum: bool = typer.Option(False, "--remove-pagenum", "-r", help="Try to remove page numbers"),
    ignore_indent: bool = typer.Option(False, "--ignore-indent", "-i", help="Don't break paragraph on indent"),
    ignore_markdown: bool = typer.Option(False, "--ignore-markdown", "-m", help="Do not respect Markdown formatting"),
    verbatim: Optional[str] = typer.Option(None, "--verbatim", help="Delimiter around text copied without escaping"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Parallel conversion workers"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Configuration file (YAML)"),
    loglevel: Optional[int] = typer.Option(None, "--loglevel", help="Log verbosity, 0 (default) - 3"),
    strict: bool = typer.Option(False, "--strict", help="Fail instead of packaging unreadable chapters as error notices"),
):
    """Convert text files into an EPUB book"""
    try:
        config = _load_settings(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        _fail(str(e))

    _setup_cli_logging(config, loglevel)

    options = with_overrides(
        config.conversion,
        markdown=False if ignore_markdown else None,
        indent_as_paragraph=False if ignore_indent else None,
        strip_pagenumbers=True if remove_pagenum else None,
        first_line_is_title=True if first_lines else None,
        one_paragraph_per_line=True if extra_para else None,
        paragraph_indent_styling=True if para_indent else None,
        verbatim_delimiter=verbatim
    )

    try:
        rules = build_rule_set(options)
        epub_file = derive_output_path(files or [], output_file)
    except ValueError as e:
        # ConfigurationError included
        logger.error(str(e))
        _fail(str(e))

    book_title = title or config.book.title or Path(epub_file).stem
    logger.debug(f"Book title \"{book_title}\"")

    console.print(Panel.fit(f"📖 {book_title}", style="bold blue"))

    chapters = make_chapter_list(
        files,
        first_lines=options.first_line_is_title,
        encoding=options.encoding,
        default_encoding=config.processing.default_encoding,
        auto_detect=config.processing.auto_detect_encoding
    )
    converter = BatchConverter(
        rules,
        max_workers=workers or config.processing.max_workers,
        markup_extensions=config.epub.markup_extensions,
        default_encoding=config.processing.default_encoding,
        auto_detect_encoding=config.processing.auto_detect_encoding
    )

    cancel_event = threading.Event()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        ) as progress:
            task = progress.add_task("[cyan]Converting chapters...", total=len(chapters))
            result = converter.run(
                chapters,
                cancel_event=cancel_event,
                on_progress=lambda fragment: progress.advance(task)
            )
    except (KeyboardInterrupt, ConversionCancelled):
        _fail("Conversion cancelled, no output written", GENERIC_ERROR_EXIT_CODE)

    summary = result.summary()
    if strict and summary["failed"]:
        names = ", ".join(chapters[f.index].source for f in result.failed)
        _fail(f"Can't read: {names}", GENERIC_ERROR_EXIT_CODE)

    packager = EPUBPackager(
        BookMetadata(
            title=book_title,
            author=author or config.book.author,
            language=language or config.book.language,
            cover_image=cover_image or config.book.cover_image
        ),
        cover_size=config.epub.cover_size
    )
    try:
        epub_path = packager.package(chapters, result.fragments, epub_file)
    except OSError as e:
        logger.error(f"Can't write output file {epub_file}: {e}")
        _fail(f"Can't write output file {epub_file}: {e}", GENERIC_ERROR_EXIT_CODE)

    table = Table(title="Conversion result")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Chapters", str(summary["total"]))
    table.add_row("Converted", str(summary["success"]))
    table.add_row("Unreadable", str(summary["failed"]))
    console.print(table)

    console.print(f"\n✅ EPUB created: [green]{epub_path}[/green]")


@app.command()
def preview(
    file: str = typer.Argument(..., help="Input text file ('-' for stdin)"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Document title (default: filename)"),
    first_lines: bool = typer.Option(False, "--first-lines", "-f", help="First line is the chapter heading"),
    para_indent: bool = typer.Option(False, "--para-indent", "-p", help="Paragraph indent replaces blank line spacing"),
    extra_para: bool = typer.Option(False, "--extra-para", "-x", help="Every input line is a paragraph"),
    remove_pagenum: bool = typer.Option(False, "--remove-pagenum", "-r", help="Try to remove page numbers"),
    ignore_indent: bool = typer.Option(False, "--ignore-indent", "-i", help="Don't break paragraph on indent"),
    ignore_markdown: bool = typer.Option(False, "--ignore-markdown", "-m", help="Do not respect Markdown formatting"),
    verbatim: Optional[str] = typer.Option(None, "--verbatim", help="Delimiter around text copied without escaping"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Configuration file (YAML)"),
):
    """Print the XHTML document for one file"""
    try:
        config = _load_settings(config_path)
        options = with_overrides(
            config.conversion,
            markdown=False if ignore_markdown else None,
            indent_as_paragraph=False if ignore_indent else None,
            strip_pagenumbers=True if remove_pagenum else None,
            first_line_is_title=True if first_lines else None,
            one_paragraph_per_line=True if extra_para else None,
            paragraph_indent_styling=True if para_indent else None,
            verbatim_delimiter=verbatim
        )
        rules = build_rule_set(options)
    except (FileNotFoundError, ConfigurationError) as e:
        _fail(str(e))

    try:
        content = read_source(file)
    except OSError as e:
        _fail(f"Can't read file {file}: {e}", GENERIC_ERROR_EXIT_CODE)

    doc_title = title or make_chapter_list([file])[0].title
    xhtml = transform(
        content,
        doc_title,
        rules=rules,
        is_markup=is_markup_source(file, config.epub.markup_extensions),
        default_encoding=config.processing.default_encoding,
        auto_detect=config.processing.auto_detect_encoding
    )
    typer.echo(xhtml, nl=False)


@app.command()
def version():
    """Show version information"""
    console.print(f"txt2epub {VERSION}")
    console.print("Distributed according to the terms of the GPL, v3.0")


def main():
    app()


if __name__ == "__main__":
    main()
