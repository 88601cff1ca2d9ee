"""Markdown substitution chain and page number filter tests"""

from txt2epub.config.loader import ConversionOptions
from txt2epub.stages.markdown import apply_markdown, apply_inline_markdown, strip_pagenum
from txt2epub.stages.rules import build_rule_set


MD = build_rule_set(ConversionOptions(markdown=True))
NO_MD = build_rule_set(ConversionOptions(markdown=False))


def test_bold_and_italic():
    assert apply_markdown("*bold*", MD) == "<b>bold</b>"
    assert apply_markdown("_it_", MD) == "<i>it</i>"
    assert apply_markdown("*a* _b_ *c*", MD) == "<b>a</b> <i>b</i> <b>c</b>"

    # shortest match
    assert apply_markdown("*a* b *c*", MD) == "<b>a</b> b <b>c</b>"


def test_heading_precedence():
    """Longest prefix first; h1/h2 never touch a level 3 heading"""
    assert apply_markdown("### Title", MD) == "<h3>Title</h3>"
    assert apply_markdown("## Title", MD) == "<h2>Title</h2>"
    assert apply_markdown("# Title", MD) == "<h1>Title</h1>"
    assert apply_markdown("#Title", MD) == "<h1>Title</h1>"

    # only at line start
    assert apply_markdown("Issue #3", MD) == "Issue #3"


def test_inline_markup_inside_heading():
    assert apply_markdown("## The *big* day", MD) == "<h2>The <b>big</b> day</h2>"


def test_hard_break():
    assert apply_markdown("end of verse  ", MD) == "end of verse<br/>"
    assert apply_markdown("one space ", MD) == "one space "
    # heading swallows the trailing spaces before the break rule runs
    assert apply_markdown("# Title  ", MD) == "<h1>Title  </h1>"


def test_markdown_disabled_is_passthrough():
    for line in ["*bold*", "_it_", "### Title", "verse  "]:
        assert apply_markdown(line, NO_MD) == line
        assert apply_inline_markdown(line, NO_MD) == line


def test_inline_markdown_skips_headings():
    assert apply_inline_markdown("# *Chapter*", MD) == "# <b>Chapter</b>"


def test_strip_pagenum():
    on = build_rule_set(ConversionOptions(strip_pagenumbers=True))
    off = build_rule_set(ConversionOptions(strip_pagenumbers=False))

    assert strip_pagenum("    42", on) == ""
    assert strip_pagenum("  7", on) == ""
    assert strip_pagenum("    42", off) == "    42"

    # one space is not enough, digits must follow the indentation
    assert strip_pagenum(" 42", on) == " 42"
    assert strip_pagenum("  Chapter 42", on) == "  Chapter 42"
    assert strip_pagenum("In 1999", on) == "In 1999"

    # text after the digits survives
    assert strip_pagenum("   12 continued", on) == " continued"


def test_docstring_examples():
    import doctest
    from txt2epub.stages import markdown

    assert doctest.testmod(markdown).failed == 0
