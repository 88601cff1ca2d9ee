"""Chapter data structure

One input file maps to one chapter, in manifest order.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
from txt2epub.stages.assembler import decode_content, read_source, split_lines, STDIN_PATH
from txt2epub.utils.text_cleaner import clean_chapter_title, title_from_filename
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Chapter:
    """One chapter of the book

    Attributes:
        index: chapter ordinal, 0-based (the N of fileN.html)
        title: navigation title
        source: input file path ("-" for standard input)
    """
    index: int
    title: str
    source: str

    @property
    def file_name(self) -> str:
        return f"file{self.index}.html"

    def __repr__(self):
        return f"<Chapter {self.index}: {self.title} ({self.source})>"


def first_line_title(
    path: str,
    encoding: Optional[str] = None,
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> Optional[str]:
    """Title from the first line of a file, None when unreadable or empty

    The file is decoded the same way as its chapter body.
    """
    if path == STDIN_PATH:
        # stdin can only be read once; the body needs it
        return None

    try:
        content = read_source(path)
    except OSError as e:
        logger.warning(f"Can't read first line of {path}: {e}")
        return None

    text = decode_content(content, encoding=encoding, default_encoding=default_encoding, auto_detect=auto_detect)
    lines = split_lines(text)
    if not lines:
        return None
    return clean_chapter_title(lines[0]) or None


def make_chapter_list(
    paths: Sequence[str],
    first_lines: bool = False,
    encoding: Optional[str] = None,
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> List[Chapter]:
    """Build the chapter list from input files

    Args:
        paths: input files in book order
        first_lines: use each file's first line as its title (falls back to
            the file name)
        encoding: forced input encoding
        default_encoding: fallback input encoding
        auto_detect: allow chardet detection

    Returns:
        Chapter list
    """
    chapters = []
    for index, path in enumerate(paths):
        title = None
        if first_lines:
            title = first_line_title(path, encoding, default_encoding, auto_detect)
        if not title:
            title = title_from_filename(path)
        chapters.append(Chapter(index=index, title=title, source=path))

    logger.debug(f"Chapter list: {len(chapters)} chapters")
    return chapters
