"""Line assembler

Drives the line pipeline over a whole file and wraps the result in a minimal
XHTML document:

    escape -> page number filter -> Markdown chain -> indent segmenter
"""

import re
import sys
import chardet
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union
from txt2epub.config.loader import ConversionOptions
from txt2epub.stages.rules import RuleSet, build_rule_set
from txt2epub.stages.escaper import escape_entities, escape_segments, protect_verbatim, restore_verbatim
from txt2epub.stages.markdown import apply_markdown, apply_inline_markdown, strip_pagenum
from txt2epub.stages.paragraph import is_blank, segment_indent
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

MARKUP_EXTENSIONS = (".html", ".htm", ".xhtml")
STDIN_PATH = "-"

# chardet results below this confidence are ignored
MIN_ENCODING_CONFIDENCE = 0.7

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_DOCUMENT_START = re.compile(r"^\s*(<\?xml|<!DOCTYPE|<html)", re.IGNORECASE)
_TITLE_MARKER = re.compile(r"^#+\s*")

PARAGRAPH_STYLE = """<style>
p {
 text-indent: 1.5em;
 margin-bottom: 0em;
 margin-top: 0em;
}
p.first-in-chapter {
 text-indent: 0;
}
</style>
"""


@dataclass(frozen=True)
class Fragment:
    """Transformed chapter

    Attributes:
        index: chapter ordinal (manifest order)
        title: text of the <title> element and navigation label
        xhtml: complete XHTML document
        ok: False when the source could not be read and `xhtml` holds an error notice
    """
    index: int
    title: str
    xhtml: str
    ok: bool = True


def decode_content(
    content: bytes,
    encoding: Optional[str] = None,
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> str:
    """Decode raw file content

    Args:
        content: raw bytes
        encoding: forced encoding (skips detection)
        default_encoding: last resort, decoded with errors="replace"
        auto_detect: consult chardet when the bytes are not valid UTF-8

    Returns:
        decoded text
    """
    if encoding:
        return content.decode(encoding, errors="replace")

    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    if auto_detect:
        result = chardet.detect(content[:10000])
        detected = result.get("encoding")
        confidence = result.get("confidence") or 0
        if detected and confidence > MIN_ENCODING_CONFIDENCE:
            logger.debug(f"Encoding detected: {detected} ({confidence:.2f})")
            try:
                return content.decode(detected, errors="replace")
            except LookupError:
                logger.warning(f"Unknown encoding reported by detector: {detected}")
        else:
            logger.debug(f"Low confidence encoding: {detected} ({confidence:.2f})")

    return content.decode(default_encoding, errors="replace")


def split_lines(text: str) -> List[str]:
    """Split on \\r\\n, \\r or \\n; a final terminator does not open another line"""
    lines = _LINE_BREAK.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def format_line(line: str, rules: RuleSet, first_line: bool = False, after_title: bool = False) -> str:
    """Run one body line through the pipeline

    Verbatim regions are held out of every rule and restored at the end.
    """
    line, spans = protect_verbatim(escape_segments(line, rules))
    line = strip_pagenum(line, rules)
    line = apply_markdown(line, rules)
    line = segment_indent(line, rules, first_line=first_line, after_title=after_title)
    return restore_verbatim(line, spans)


def format_title_line(line: str, rules: RuleSet) -> str:
    """Escape a chapter title line; heading markers dropped, inline bold/italic only"""
    line = _TITLE_MARKER.sub("", line.strip())
    line, spans = protect_verbatim(escape_segments(line, rules))
    return restore_verbatim(apply_inline_markdown(line, rules), spans)


def document_head(title: str, paragraph_indent_styling: bool = False) -> str:
    head = [
        '<?xml version="1.0" encoding="UTF-8"?>\n',
        '<html xmlns="http://www.w3.org/1999/xhtml">\n',
        "<head>\n",
        f"<title>{escape_entities(title)}</title>\n",
    ]
    if paragraph_indent_styling:
        head.append(PARAGRAPH_STYLE)
    head.append("</head>\n")
    head.append("<body>\n")
    return "".join(head)


DOCUMENT_TAIL = "</body>\n</html>\n"


def _assemble_text(lines: Sequence[str], rules: RuleSet) -> str:
    options = rules.options
    parts: List[str] = []

    body_start = 0
    if options.first_line_is_title and lines:
        parts.append(f"<h1>{format_title_line(lines[0], rules)}</h1>\n")
        body_start = 1

    parts.append('<p class="first-in-chapter">\n' if options.paragraph_indent_styling else "<p>\n")

    for idx in range(body_start, len(lines)):
        line = lines[idx]
        if options.blank_line_as_paragraph and is_blank(line):
            parts.append("</p><p>\n")

        parts.append(format_line(
            line,
            rules,
            first_line=(idx == 0),
            after_title=(body_start == 1 and idx == 1)
        ))
        parts.append("\n")

        if options.one_paragraph_per_line:
            parts.append("</p><p>\n")

    parts.append("</p>\n")
    return "".join(parts)


def transform(
    content: Union[bytes, str],
    title: str,
    options: Optional[ConversionOptions] = None,
    rules: Optional[RuleSet] = None,
    *,
    is_markup: bool = False,
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> str:
    """Turn one file's content into an XHTML document

    Args:
        content: file content (bytes are decoded, see decode_content)
        title: text of the <title> element
        options: conversion options (ignored when `rules` is given)
        rules: precompiled RuleSet shared across a run
        is_markup: the source is already HTML; lines are copied unmodified and
            a complete document is returned as is
        default_encoding: fallback encoding
        auto_detect: allow encoding detection

    Returns:
        XHTML document

    Raises:
        ConfigurationError: invalid options (only when `rules` is not given)
    """
    if rules is None:
        rules = build_rule_set(options or ConversionOptions())

    if isinstance(content, bytes):
        text = decode_content(
            content,
            encoding=rules.options.encoding,
            default_encoding=default_encoding,
            auto_detect=auto_detect
        )
    else:
        text = content

    if is_markup:
        if _DOCUMENT_START.match(text):
            return text
        lines = split_lines(text)
        body = "".join(f"{line}\n" for line in lines)
        return document_head(title) + body + DOCUMENT_TAIL

    lines = split_lines(text)
    head = document_head(title, rules.options.paragraph_indent_styling)
    return head + _assemble_text(lines, rules) + DOCUMENT_TAIL


def read_source(path: str) -> bytes:
    """Read a source file; `-` reads standard input"""
    if path == STDIN_PATH:
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def is_markup_source(path: str, markup_extensions: Sequence[str] = MARKUP_EXTENSIONS) -> bool:
    return Path(path).suffix.lower() in {ext.lower() for ext in markup_extensions}


def read_error_xhtml(path: str, title: str) -> str:
    """Stand-in document for a chapter whose source cannot be read"""
    message = escape_entities(f"Can't read file {path}")
    body = f"<p>\n{message}\n</p>\n"
    return document_head(title) + body + DOCUMENT_TAIL


def text_file_to_xhtml(
    path: str,
    title: str,
    rules: RuleSet,
    markup_extensions: Sequence[str] = MARKUP_EXTENSIONS,
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> str:
    """Read and transform one source file

    Raises:
        OSError: the file cannot be read
    """
    logger.info(f"Processing file {path}")
    content = read_source(path)
    return transform(
        content,
        title,
        rules=rules,
        is_markup=is_markup_source(path, markup_extensions),
        default_encoding=default_encoding,
        auto_detect=auto_detect
    )
