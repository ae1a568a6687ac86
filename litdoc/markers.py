"""Trailing exclusion markers.

A marker is ``%`` (document) or ``&`` (slides), optionally followed by a
scope suffix: ``p`` paragraph, ``l`` list, ``i`` list item.  Markers sit
at the end of a line, separated from the text by whitespace, and can be
stacked (``some text %p &``).
"""
import re
from enum import Enum
from typing import List, Optional, Tuple

DOC_MARKER = "%"
SLIDES_MARKER = "&"


class FilterTarget(Enum):
    """Output an exclusion pass is preparing content for."""
    DOC = DOC_MARKER
    SLIDES = SLIDES_MARKER

    @property
    def symbol(self) -> str:
        return self.value

PARAGRAPH_SCOPE = "p"
LIST_SCOPE = "l"
LIST_ITEM_SCOPE = "i"

TRAILING_MARKERS = re.compile(r"(?:(?:^|\s+)[%&][ipl]?)+\s*$")
ONE_MARKER = re.compile(r"([%&])([ipl]?)")


def find_markers(text: str) -> List[Tuple[str, str]]:
    """Return the ``(symbol, scope)`` pairs trailing *text*."""
    match = TRAILING_MARKERS.search(text)
    if not match:
        return []
    return ONE_MARKER.findall(match.group(0))


def has_marker(text: str, symbol: str, scope: Optional[str] = None) -> bool:
    """Check for *symbol* with exactly *scope* (``None`` = bare marker)."""
    wanted = scope or ""
    return any(sym == symbol and suffix == wanted for sym, suffix in find_markers(text))


def strip_markers(text: str) -> str:
    """Remove every trailing marker, for both targets."""
    return TRAILING_MARKERS.sub("", text)
