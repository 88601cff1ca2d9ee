"""Text cleanup utilities

Chapter title derivation from file names and first lines
"""

import re
from pathlib import Path
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


def title_from_filename(path: str) -> str:
    """Chapter title from a file name: base name without its last extension

    Examples:
        >>> title_from_filename("/books/draft/chapter_01.txt")
        'chapter_01'

        >>> title_from_filename("notes.v2.txt")
        'notes.v2'

        >>> title_from_filename("README")
        'README'
    """
    if path == "-":
        return "stdin"

    name = Path(path).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def clean_chapter_title(line: str) -> str:
    """Chapter title from the first line of a file

    Strips Markdown heading markers and the bold/italic delimiters around the
    whole line, and collapses runs of whitespace.

    Examples:
        >>> clean_chapter_title("# Chapter One  ")
        'Chapter One'

        >>> clean_chapter_title("*The   Storm*")
        'The Storm'
    """
    # 1. heading markers
    title = re.sub(r'^\s*#+\s*', '', line)

    # 2. emphasis wrapped around the whole title
    title = re.sub(r'^([*_])(.*)\1$', r'\2', title.strip())

    # 3. whitespace runs
    title = re.sub(r'\s+', ' ', title)

    title = title.strip()

    logger.debug(f"Title cleaned: '{line}' → '{title}'")

    return title
