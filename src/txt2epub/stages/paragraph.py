"""Paragraph segmentation

Blank lines and indented lines both close the current paragraph and open a
new one. The blank-line policy is applied by the assembler, which sees the
raw line; the indent policy rewrites the line itself.
"""

from txt2epub.stages.rules import RuleSet
from txt2epub.stages.rewriter import rewrite


def is_blank(line: str) -> bool:
    """True for a line that is empty after terminator normalization"""
    return line == ""


def segment_indent(line: str, rules: RuleSet, first_line: bool = False, after_title: bool = False) -> str:
    """Turn a line-leading run of 3+ whitespace into a paragraph break

    Args:
        line: line after escaping and Markdown substitution
        rules: run RuleSet
        first_line: the first line of the file; never rewritten, since no
            paragraph content precedes it
        after_title: the line right after the chapter title; with paragraph
            indent styling the new paragraph gets class "first-in-chapter"

    Returns:
        line with the indentation replaced by `</p><p>` (or the
        first-in-chapter variant)
    """
    options = rules.options
    if not options.indent_as_paragraph or first_line:
        return line

    if after_title and options.paragraph_indent_styling:
        return rewrite(line, rules.first_indent)
    return rewrite(line, rules.indent)
