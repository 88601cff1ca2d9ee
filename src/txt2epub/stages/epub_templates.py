"""EPUB XHTML templates

Chapter documents, the cover page and the navigation links, as EbookLib items.
"""

from ebooklib import epub
from typing import List, Sequence
from txt2epub.stages.assembler import Fragment
from txt2epub.stages.chapter import Chapter
from txt2epub.stages.escaper import escape_entities

XHTML_MEDIA_TYPE = "application/xhtml+xml"
COVER_PAGE = "cover.html"
COVER_IMAGE = "Images/cover.jpg"


def create_chapter_item(chapter: Chapter, fragment: Fragment) -> epub.EpubItem:
    """Chapter document (fileN.html), stored exactly as assembled"""
    return epub.EpubItem(
        uid=f"file{chapter.index}",
        file_name=chapter.file_name,
        media_type=XHTML_MEDIA_TYPE,
        content=fragment.xhtml.encode("utf-8")
    )


def create_toc_links(chapters: Sequence[Chapter]) -> List[epub.Link]:
    """One navigation entry per chapter, in chapter order"""
    return [epub.Link(ch.file_name, ch.title, f"file{ch.index}") for ch in chapters]


def create_cover_html(image_path: str = COVER_IMAGE, file_name: str = COVER_PAGE) -> epub.EpubItem:
    """Cover page showing the cover image"""
    content = f"""<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
<title>Cover</title>
</head>
<body>
<p>
<img src="{escape_entities(image_path)}" alt="cover"/>
</p>
</body>
</html>
"""

    return epub.EpubItem(
        uid="cover",
        file_name=file_name,
        media_type=XHTML_MEDIA_TYPE,
        content=content.encode("utf-8")
    )
