"""Markdown substitution chain and page number filter"""

from txt2epub.stages.rules import RuleSet, BOLD, ITALIC
from txt2epub.stages.rewriter import rewrite


def apply_markdown(line: str, rules: RuleSet) -> str:
    """Run bold, italic, h3, h2, h1 and hard break rules in that order

    Each rule consumes the output of the previous one. Passthrough when
    Markdown is disabled in the run options.

    Examples:
        >>> from txt2epub.config.loader import ConversionOptions
        >>> from txt2epub.stages.rules import build_rule_set
        >>> rules = build_rule_set(ConversionOptions(markdown=True))
        >>> apply_markdown("### Title", rules)
        '<h3>Title</h3>'
    """
    if not rules.options.markdown:
        return line

    for rule in rules.markdown:
        line = rewrite(line, rule)
    return line


def apply_inline_markdown(line: str, rules: RuleSet) -> str:
    """Bold and italic only (used for chapter title lines)"""
    if not rules.options.markdown:
        return line
    return rewrite(rewrite(line, BOLD), ITALIC)


def strip_pagenum(line: str, rules: RuleSet) -> str:
    """Drop a leading run of 2+ whitespace followed by digits

    A line holding nothing but an indented page number becomes empty. Lines
    are returned unchanged unless page number stripping is enabled.
    """
    if not rules.options.strip_pagenumbers:
        return line
    return rewrite(line, rules.page_number)
