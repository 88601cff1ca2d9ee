"""Sequential rewriter

Leftmost, non-overlapping match-and-replace of one rule over one line.
"""

from typing import List
from txt2epub.stages.rules import PatternRule


def rewrite(line: str, rule: PatternRule) -> str:
    """Apply `rule` to every non-overlapping match in `line`, left to right

    The search resumes where the previous match ended, so text produced by a
    replacement is never matched again. `^` keeps referring to the start of
    the line, not to the resume position.

    A zero-length match emits its replacement, then the following character
    is copied unchanged so the scan always moves forward; at the end of the
    line it emits the replacement once and stops.

    Args:
        line: input line, no line terminator
        rule: rule to apply

    Returns:
        rewritten line

    Example:
        >>> from txt2epub.stages.rules import BOLD
        >>> rewrite("*a* and *b*", BOLD)
        '<b>a</b> and <b>b</b>'
    """
    out: List[str] = []
    cursor = 0
    end_of_line = len(line)

    while cursor <= end_of_line:
        match = rule.pattern.search(line, cursor)
        if match is None:
            break

        start, end = match.span()
        out.append(line[cursor:start])
        out.append(rule.replace(match))

        if end == start:
            # force progress past a zero-length match
            out.append(line[end:end + 1])
            cursor = end + 1
        else:
            cursor = end

    out.append(line[cursor:])
    return "".join(out)
