"""Search-match highlighting for display names.

Matched characters are wrapped one by one in ``[==]`` / ``[!==]`` markers,
which the rendering layer turns into highlighted runs.
"""

from __future__ import annotations

import re


MARK_START = "[==]"
MARK_END = "[!==]"


def mark(chars: str) -> str:
    """Wrap every character of a string in highlight markers."""
    return "".join(f"{MARK_START}{char}{MARK_END}" for char in chars)


def highlight_exact(text: str, keyword: str) -> str:
    """Mark the first case-insensitive occurrence of ``keyword`` in ``text``."""
    if not keyword:
        return ""
    return re.sub(
        re.escape(keyword),
        lambda match: mark(match.group(0)),
        text,
        count=1,
        flags=re.IGNORECASE,
    )


def highlight_fuzzy(text: str, keyword: str) -> str:
    """Mark the characters of ``text`` matching ``keyword`` as a subsequence.

    Walks ``text`` once, marking each character equal (case-insensitively)
    to the next pending keyword character. Keyword characters left over
    once ``text`` is exhausted are ignored.
    """
    if not keyword:
        return ""

    pending = list(keyword.upper())
    marked: list[str] = []
    for char in text:
        if pending and char.upper() == pending[0]:
            pending.pop(0)
            marked.append(mark(char))
        else:
            marked.append(char)
    return "".join(marked)
