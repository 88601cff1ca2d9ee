"""HTML escaping with verbatim regions

The verbatim delimiter is first collapsed to a single sentinel character so
the escaper only needs one flag to know whether it is inside a region.

Verbatim text must also survive the Markdown and paragraph rules. While
those run, each region is stood in for by a placeholder built from the
sentinel and Private Use Area characters, which no rule pattern can match,
and the region text is put back once the line is finished.
"""

import re
from typing import List, Optional, Tuple
from txt2epub.stages.rules import RuleSet, PatternRule, SENTINEL
from txt2epub.stages.rewriter import rewrite

ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
}

# placeholder digits: U+E000 .. U+E009
_PLACEHOLDER_DIGIT_BASE = 0xE000
_PLACEHOLDER = re.compile(SENTINEL + "([\ue000-\ue009]+)" + SENTINEL)

Segment = Tuple[str, bool]


def encode_verbatim(line: str, rule: Optional[PatternRule]) -> str:
    """Replace every verbatim delimiter with the sentinel

    Args:
        line: raw line
        rule: verbatim rule from the RuleSet (None when no delimiter is configured)

    Returns:
        line with delimiters replaced; unchanged when `rule` is None
    """
    if rule is None:
        return line
    return rewrite(line, rule)


def escape_segments(line: str, rules: Optional[RuleSet] = None) -> List[Segment]:
    """Split a line into (text, is_verbatim) segments, escaping the normal ones

    Delimiters are dropped. An unpaired delimiter leaves the rest of the line
    verbatim. Empty segments are not returned.
    """
    encoded = encode_verbatim(line, rules.verbatim if rules else None)

    segments: List[Segment] = []
    buf: List[str] = []
    in_verbatim = False
    for c in encoded:
        if c == SENTINEL:
            if buf:
                segments.append(("".join(buf), in_verbatim))
                buf = []
            in_verbatim = not in_verbatim
        elif in_verbatim:
            buf.append(c)
        else:
            buf.append(ENTITIES.get(c, c))

    if buf:
        segments.append(("".join(buf), in_verbatim))
    return segments


def escape(line: str, rules: Optional[RuleSet] = None) -> str:
    """Escape &, < and > outside verbatim regions

    Delimiters are removed from the output; text between a pair of them is
    copied literally. An unpaired delimiter leaves the rest of the line
    verbatim.

    Args:
        line: raw line
        rules: RuleSet carrying the verbatim rule (None: no verbatim handling)

    Returns:
        escaped line, never containing the sentinel

    Examples:
        >>> escape("a & b")
        'a &amp; b'
    """
    return "".join(text for text, _ in escape_segments(line, rules))


def _placeholder(index: int) -> str:
    digits = "".join(chr(_PLACEHOLDER_DIGIT_BASE + int(d)) for d in str(index))
    return f"{SENTINEL}{digits}{SENTINEL}"


def protect_verbatim(segments: List[Segment]) -> Tuple[str, List[str]]:
    """Join segments, standing in a placeholder for every verbatim one

    Returns:
        (line with placeholders, verbatim texts in placeholder order)
    """
    out = []
    spans: List[str] = []
    for text, verbatim in segments:
        if verbatim:
            out.append(_placeholder(len(spans)))
            spans.append(text)
        else:
            out.append(text)
    return "".join(out), spans


def restore_verbatim(line: str, spans: List[str]) -> str:
    """Put verbatim texts back in place of their placeholders"""
    if not spans:
        return line

    def _restore(match: re.Match) -> str:
        index = int("".join(str(ord(c) - _PLACEHOLDER_DIGIT_BASE) for c in match.group(1)))
        return spans[index]

    return _PLACEHOLDER.sub(_restore, line)


def escape_entities(text: str) -> str:
    """Plain escaping for titles and metadata embedded in generated markup"""
    return "".join(ENTITIES.get(c, c) for c in text)
