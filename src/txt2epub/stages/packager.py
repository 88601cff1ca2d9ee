"""EPUB packaging

EbookLib-based package: metadata, cover, manifest (file0.html ...),
navigation (nav document plus NCX) and spine. The archive is written to a
temporary file and moved into place only when writing succeeded, so a failed
run leaves no partial book behind.
"""

import os
import tempfile
import xxhash
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Sequence
from ebooklib import epub
from PIL import Image
from txt2epub.stages.assembler import Fragment
from txt2epub.stages.chapter import Chapter
from txt2epub.stages.epub_templates import (
    COVER_IMAGE, create_chapter_item, create_cover_html, create_toc_links
)
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_COVER_SIZE = {"width": 600, "height": 900}


@dataclass
class BookMetadata:
    """Package metadata strings"""
    title: str = "unknown"
    author: str = "unknown"
    language: str = "en"
    cover_image: Optional[str] = None


def book_identifier(fragments: Sequence[Fragment]) -> str:
    """Stable identifier derived from the book content

    Same XHTML in the same order gives the same identifier, so rebuilding an
    unchanged book does not look like a new title to a reading system.
    """
    hasher = xxhash.xxh64()
    for fragment in fragments:
        hasher.update(fragment.xhtml.encode("utf-8"))
    digest = hasher.hexdigest().upper()
    return f"txt2epub-{digest[:8]}-{digest[8:12]}-{digest[12:]}"


def load_cover(path: str, cover_size: Optional[Dict[str, int]] = None) -> Optional[bytes]:
    """Read and downscale the cover image, as JPEG bytes

    Returns:
        JPEG data, or None when the image can't be read
    """
    size = cover_size or DEFAULT_COVER_SIZE
    try:
        with Image.open(path) as img:
            img.thumbnail((size["width"], size["height"]), Image.Resampling.LANCZOS)
            out = BytesIO()
            img.convert("RGB").save(out, "JPEG", quality=90)
    except OSError as e:
        logger.error(f"Can't read cover image file: {path} ({e})")
        return None

    return out.getvalue()


class EPUBPackager:
    """Fragments + chapter list -> EPUB file"""

    def __init__(
        self,
        metadata: BookMetadata,
        cover_size: Optional[Dict[str, int]] = None
    ):
        """
        Args:
            metadata: title, author, language, cover image path
            cover_size: maximum cover size {"width": ..., "height": ...}
        """
        self.metadata = metadata
        self.cover_size = cover_size or DEFAULT_COVER_SIZE

    def build_book(self, chapters: Sequence[Chapter], fragments: Sequence[Fragment]) -> epub.EpubBook:
        """Assemble the in-memory book

        Args:
            chapters: chapter list, in book order
            fragments: one fragment per chapter, same order

        Returns:
            EpubBook ready to be written
        """
        if len(chapters) != len(fragments):
            raise ValueError(f"{len(chapters)} chapters but {len(fragments)} fragments")

        book = epub.EpubBook()
        book.FOLDER_NAME = "OEBPS"

        book.set_identifier(book_identifier(fragments))
        book.set_title(self.metadata.title or "unknown")
        book.set_language(self.metadata.language or "en")
        author = self.metadata.author or "unknown"
        book.add_author(author, file_as=author, role="aut")

        spine_items = []

        if self.metadata.cover_image:
            cover_page = self._add_cover(book, self.metadata.cover_image)
            if cover_page is not None:
                spine_items.append(cover_page)

        for chapter, fragment in zip(chapters, fragments):
            item = create_chapter_item(chapter, fragment)
            book.add_item(item)
            spine_items.append(item)

        book.toc = create_toc_links(chapters)

        # EbookLib writes an EPUB 3 package, which requires the nav document;
        # the NCX keeps EPUB 2 reading systems working
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())

        book.spine = spine_items
        return book

    def _add_cover(self, book: epub.EpubBook, cover_path: str) -> Optional[epub.EpubItem]:
        """Cover image (Images/cover.jpg) plus its cover.html page"""
        if not Path(cover_path).is_file():
            logger.error(f"Can't read cover image file: {cover_path}")
            return None

        data = load_cover(cover_path, self.cover_size)
        if data is None:
            return None

        book.set_cover(COVER_IMAGE, data, create_page=False)
        cover_page = create_cover_html()
        book.add_item(cover_page)
        logger.info("Creating cover page")
        return cover_page

    def write(self, book: epub.EpubBook, output_path: str) -> Path:
        """Write the book, replacing `output_path` only on success

        Raises:
            OSError: the archive could not be written
        """
        target = Path(output_path).absolute()
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.stem}-", suffix=".epub.tmp", dir=target.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            tmp_path.unlink()
            logger.debug(f"Creating zipfile {tmp_path}")
            epub.write_epub(str(tmp_path), book, {})
            if not tmp_path.exists() or tmp_path.stat().st_size == 0:
                raise OSError(f"Can't write output file {target}")
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        logger.info(f"✅ EPUB created: {target}")
        return target

    def package(self, chapters: Sequence[Chapter], fragments: Sequence[Fragment], output_path: str) -> Path:
        """build_book + write"""
        book = self.build_book(chapters, fragments)
        return self.write(book, output_path)
