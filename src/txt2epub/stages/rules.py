"""Pattern rule set

Match/replace rules used by the line pipeline. A RuleSet is compiled once per
run from the conversion options and shared read-only by every worker.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from txt2epub.config.loader import ConversionOptions, ConfigurationError, check_encoding
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

# Marks verbatim region boundaries after encoding. A lone surrogate can never
# come out of strict decoding, so it cannot collide with manuscript text.
SENTINEL = "\ud800"

PARAGRAPH_BREAK = "</p><p>"
FIRST_PARAGRAPH_BREAK = '</p><p class="first-in-chapter">'


class Extraction(Enum):
    """How a rule turns a match into replacement text"""
    WRAP = "wrap"        # prefix + captured text + suffix
    REPLACE = "replace"  # fixed literal
    DISCARD = "discard"  # nothing


@dataclass(frozen=True)
class PatternRule:
    """One match expression paired with a replacement policy

    Attributes:
        name: rule name (for logging)
        pattern: compiled match expression
        extraction: replacement policy
        prefix: WRAP only, emitted before the captured text
        suffix: WRAP only, emitted after the captured text
        replacement: REPLACE only, the fixed literal
        group: WRAP only, the capture group to wrap
    """
    name: str
    pattern: re.Pattern
    extraction: Extraction
    prefix: str = ""
    suffix: str = ""
    replacement: str = ""
    group: int = 1

    def replace(self, match: re.Match) -> str:
        """Replacement text for one match of this rule"""
        if self.extraction is Extraction.DISCARD:
            return ""
        if self.extraction is Extraction.REPLACE:
            return self.replacement

        if self.pattern.groups >= self.group:
            inner = match.group(self.group) or ""
        else:
            inner = match.group(0)
        return f"{self.prefix}{inner}{self.suffix}"


def wrap_rule(name: str, pattern: str, tag: str) -> PatternRule:
    """Rule wrapping group 1 of `pattern` in <tag>...</tag>"""
    return PatternRule(
        name=name,
        pattern=re.compile(pattern),
        extraction=Extraction.WRAP,
        prefix=f"<{tag}>",
        suffix=f"</{tag}>"
    )


def replace_rule(name: str, pattern: str, replacement: str) -> PatternRule:
    return PatternRule(
        name=name,
        pattern=re.compile(pattern),
        extraction=Extraction.REPLACE,
        replacement=replacement
    )


def discard_rule(name: str, pattern: str) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(pattern), extraction=Extraction.DISCARD)


BOLD = wrap_rule("bold", r"\*(.*?)\*", "b")
ITALIC = wrap_rule("italic", r"_(.*?)_", "i")
H3 = wrap_rule("h3", r"^###\s*(.*)$", "h3")
H2 = wrap_rule("h2", r"^##\s*(.*)$", "h2")
H1 = wrap_rule("h1", r"^#\s*(.*)$", "h1")
HARD_BREAK = replace_rule("br", r"  $", "<br/>")
INDENT = replace_rule("indent", r"^\s{3,}", PARAGRAPH_BREAK)
FIRST_INDENT = replace_rule("first_indent", r"^\s{3,}", FIRST_PARAGRAPH_BREAK)
PAGE_NUMBER = discard_rule("pagenum", r"^\s{2,}\d+")

# Order is significant: headings longest prefix first, hard break last
MARKDOWN_CHAIN = (BOLD, ITALIC, H3, H2, H1, HARD_BREAK)


def verbatim_rule(delimiter: str) -> PatternRule:
    """REPLACE rule turning each delimiter occurrence into the sentinel

    Raises:
        ConfigurationError: empty delimiter, or one that can never occur in a line
    """
    if not delimiter:
        raise ConfigurationError("Verbatim delimiter must not be empty")
    if any(c in delimiter for c in ("\n", "\r")):
        raise ConfigurationError(f"Verbatim delimiter must not contain a line break: {delimiter!r}")
    if SENTINEL in delimiter:
        raise ConfigurationError("Verbatim delimiter must not contain the reserved sentinel character")
    return replace_rule("verbatim", re.escape(delimiter), SENTINEL)


@dataclass(frozen=True)
class RuleSet:
    """Immutable rules for one run"""
    options: ConversionOptions
    verbatim: Optional[PatternRule] = None
    markdown: tuple = MARKDOWN_CHAIN
    page_number: PatternRule = PAGE_NUMBER
    indent: PatternRule = INDENT
    first_indent: PatternRule = FIRST_INDENT


def build_rule_set(options: ConversionOptions) -> RuleSet:
    """Compile the rules for a run

    Args:
        options: conversion options

    Returns:
        RuleSet shared by every file of the run

    Raises:
        ConfigurationError: invalid verbatim delimiter or unknown input encoding
    """
    if options.encoding is not None:
        check_encoding(options.encoding, "conversion.encoding")

    verbatim = None
    if options.verbatim_delimiter is not None:
        verbatim = verbatim_rule(options.verbatim_delimiter)
        logger.debug(f"Verbatim delimiter: {options.verbatim_delimiter!r}")

    return RuleSet(options=options, verbatim=verbatim)
