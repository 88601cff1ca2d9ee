"""Line assembler tests

Whole-file transformation: document skeleton, paragraphs, titles, markup
passthrough and decoding.
"""

from txt2epub.config.loader import ConversionOptions
from txt2epub.stages.assembler import (
    decode_content, split_lines, transform, text_file_to_xhtml, document_head, DOCUMENT_TAIL
)
from txt2epub.stages.rules import build_rule_set


def _body(xhtml: str) -> str:
    """Everything between <body> and </body>"""
    return xhtml.split("<body>\n", 1)[1].rsplit("</body>", 1)[0]


def test_end_to_end_chapter():
    """Title, blank line paragraph, inline markup"""
    content = "Chapter One\n\n  This line is indented.\n*bold* and _italic_.\n".encode("utf-8")
    options = ConversionOptions(markdown=True, indent_as_paragraph=True, first_line_is_title=True)

    xhtml = transform(content, "Chapter One", options)

    assert xhtml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
    assert "<title>Chapter One</title>" in xhtml
    assert _body(xhtml) == (
        "<h1>Chapter One</h1>\n"
        "<p>\n"
        "</p><p>\n"
        "\n"
        "  This line is indented.\n"
        "<b>bold</b> and <i>italic</i>.\n"
        "</p>\n"
    )
    assert xhtml.endswith(DOCUMENT_TAIL)


def test_plain_lines_are_identity_modulo_escaping():
    options = ConversionOptions(markdown=True, indent_as_paragraph=True)
    content = b"Tom & Jerry <3\r\nsecond line\r\n"

    body = _body(transform(content, "t", options))

    assert body == "<p>\nTom &amp; Jerry &lt;3\nsecond line\n</p>\n"


def test_indented_paragraphs():
    options = ConversionOptions(indent_as_paragraph=True)
    content = b"   First line of the file\nstill first\n    Second paragraph\n"

    body = _body(transform(content, "t", options))

    # first line never opens a paragraph of its own
    assert body == (
        "<p>\n"
        "   First line of the file\n"
        "still first\n"
        "</p><p>Second paragraph\n"
        "</p>\n"
    )


def test_one_paragraph_per_line():
    options = ConversionOptions(one_paragraph_per_line=True)
    body = _body(transform(b"a\nb\n", "t", options))
    assert body == "<p>\na\n</p><p>\nb\n</p><p>\n</p>\n"


def test_blank_line_paragraphing_can_be_disabled():
    options = ConversionOptions(blank_line_as_paragraph=False)
    body = _body(transform(b"a\n\nb\n", "t", options))
    assert "</p><p>" not in body


def test_paragraph_indent_styling():
    options = ConversionOptions(paragraph_indent_styling=True, first_line_is_title=True)
    xhtml = transform(b"Title\n    Opening\n    Next\n", "Title", options)

    head = xhtml.split("<body>", 1)[0]
    assert "<style>" in head
    assert "p.first-in-chapter" in head

    assert _body(xhtml) == (
        "<h1>Title</h1>\n"
        '<p class="first-in-chapter">\n'
        '</p><p class="first-in-chapter">Opening\n'
        "</p><p>Next\n"
        "</p>\n"
    )


def test_title_line_escaped_without_block_markup():
    options = ConversionOptions(first_line_is_title=True)
    xhtml = transform(b"  Fish & *Chips*  \nbody\n", "Fish", options)
    assert "<h1>Fish &amp; <b>Chips</b></h1>" in xhtml


def test_title_element_is_escaped():
    xhtml = transform(b"x\n", "Q&A <live>")
    assert "<title>Q&amp;A &lt;live&gt;</title>" in xhtml


def test_page_numbers_removed_when_enabled():
    content = b"Some text\n    17\nMore text\n"

    on = _body(transform(content, "t", ConversionOptions(strip_pagenumbers=True, indent_as_paragraph=False)))
    off = _body(transform(content, "t", ConversionOptions(strip_pagenumbers=False, indent_as_paragraph=False)))

    assert "17" not in on
    assert "    17\n" in off


def test_verbatim_passthrough_in_document():
    options = ConversionOptions(verbatim_delimiter="`")
    body = _body(transform(b"see `<em>this</em>` & that\n", "t", options))
    assert body == "<p>\nsee <em>this</em> &amp; that\n</p>\n"


def test_markup_source_is_copied():
    content = b"<p>Already <b>marked</b> up</p>\n<p>&amp; done</p>\n"
    xhtml = transform(content, "t", is_markup=True)
    assert _body(xhtml) == "<p>Already <b>marked</b> up</p>\n<p>&amp; done</p>\n"


def test_retransforming_document_is_noop():
    """A finished document fed back as markup comes out unchanged"""
    options = ConversionOptions(markdown=True, first_line_is_title=True)
    first = transform(b"Title\n*a* & <b>\n\nnext\n", "Title", options)

    second = transform(first.encode("utf-8"), "Title", ConversionOptions(markdown=False), is_markup=True)

    assert second == first


def test_empty_file():
    xhtml = transform(b"", "Empty", ConversionOptions(first_line_is_title=True))
    assert _body(xhtml) == "<p>\n</p>\n"


def test_split_lines():
    assert split_lines("a\nb\n") == ["a", "b"]
    assert split_lines("a\r\nb\rc") == ["a", "b", "c"]
    assert split_lines("a\n\n") == ["a", ""]
    assert split_lines("") == []


def test_decode_content():
    assert decode_content("héllo".encode("utf-8")) == "héllo"
    assert decode_content("\ufeffbom".encode("utf-8")) == "bom"
    assert decode_content("héllo".encode("latin-1"), encoding="latin-1") == "héllo"

    # invalid UTF-8 never raises
    text = decode_content(b"caf\xe9", auto_detect=False, default_encoding="utf-8")
    assert text == "caf\ufffd"


def test_text_file_to_xhtml(tmp_path):
    source = tmp_path / "chapter.txt"
    source.write_text("# Heading\ntext\n", encoding="utf-8")
    rules = build_rule_set(ConversionOptions())

    xhtml = text_file_to_xhtml(str(source), "Chapter", rules)

    assert "<h1>Heading</h1>" in xhtml


def test_html_source_detected_by_extension(tmp_path):
    source = tmp_path / "chapter.html"
    source.write_text("<p>*not bold*</p>\n", encoding="utf-8")
    rules = build_rule_set(ConversionOptions())

    xhtml = text_file_to_xhtml(str(source), "Chapter", rules)

    assert "<p>*not bold*</p>" in xhtml
    assert xhtml.startswith(document_head("Chapter"))


def test_verbatim_region_bypasses_markdown():
    """Raw HTML in a verbatim region keeps its underscores and asterisks"""
    options = ConversionOptions(verbatim_delimiter="`")
    content = b'see `<a href="my_file_name.html">*x*</a>` here\n'

    body = _body(transform(content, "t", options))

    assert body == '<p>\nsee <a href="my_file_name.html">*x*</a> here\n</p>\n'


def test_verbatim_region_inside_markdown_constructs():
    options = ConversionOptions(verbatim_delimiter="`", first_line_is_title=True)
    content = b"Title `_raw_`\n# Heading `#1 *`\n*bold `a_b_c`* & _it_\n    `<hr/>` indented\n"

    body = _body(transform(content, "t", options))

    assert body == (
        "<h1>Title _raw_</h1>\n"
        "<p>\n"
        "<h1>Heading #1 *</h1>\n"
        "<b>bold a_b_c</b> &amp; <i>it</i>\n"
        "</p><p><hr/> indented\n"
        "</p>\n"
    )


def test_title_line_drops_heading_marker():
    """The <h1> text agrees with the navigation title"""
    options = ConversionOptions(first_line_is_title=True)

    xhtml = transform(b"## Chapter *One*\nbody\n", "Chapter One", options)

    assert "<h1>Chapter <b>One</b></h1>" in xhtml
    assert "#" not in _body(xhtml)
