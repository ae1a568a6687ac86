"""
Exclusion filter.

Removes the content flagged by exclusion markers for one target (the
rendered document or the slide deck).  Nothing is renumbered: the line
level API returns every kept line together with its line number in the
*original* document, so edits and slide spans computed on the original
text stay valid.

Marker scopes (``%`` shown, ``&`` works the same for slides)::

    ```python helper %        block and its output region removed
    A whole paragraph %p      paragraph removed
    - first item %l           whole list removed
    - one item %i             item and its continuation lines removed
    A single line %           line removed
"""
import logging
from typing import Dict, List, Optional, Set, Tuple

from .markers import (
    LIST_ITEM_SCOPE,
    LIST_SCOPE,
    PARAGRAPH_SCOPE,
    FilterTarget,
    has_marker,
    strip_markers,
)
from .models import StructuralModel
from .structure import (
    ATX_ANY_RE,
    FENCE_RE,
    LIST_ITEM_RE,
    SETEXT_H1_RE,
    THEMATIC_BREAK_RE,
    attached_output,
    parse,
    split_lines,
)

logger = logging.getLogger(__name__)

__all__ = ["FilterTarget", "exclude", "exclude_lines"]

KeptLine = Tuple[int, str]


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


class ExclusionFilter:
    """Compute the kept lines of one document for one target."""

    def __init__(self, raw_text: str, model: StructuralModel, target: FilterTarget):
        self.lines = split_lines(raw_text)
        self.model = model
        self.target = target
        self.symbol = target.symbol
        self.dropped: Set[int] = set()
        self.rewritten: Dict[int, str] = {}
        self.fenced: Set[int] = set()
        for record in list(model.blocks) + list(model.outputs):
            self.fenced.update(range(record.start_line, record.end_line + 1))

    def run(self) -> List[KeptLine]:
        self._filter_blocks()
        for kind, members in self._prose_units():
            if kind == "list":
                self._filter_list(members)
            else:
                self._filter_paragraph(members)
        return self._collect()

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def _filter_blocks(self) -> None:
        for block in self.model.blocks:
            if block.is_excluded_for(self.target):
                logger.debug("Excluding block '%s' (lines %d-%d) for %s",
                             block.name, block.start_line, block.end_line, self.target.name)
                self.dropped.update(range(block.start_line, block.end_line + 1))
                region = attached_output(self.model, self.lines, block)
                if region is not None:
                    self.dropped.update(range(region.start_line, region.end_line + 1))
                continue

            opener = self.lines[block.start_line - 1]
            match = FENCE_RE.match(opener)
            info = match.group(3)
            cleaned_info = strip_markers(info)
            if cleaned_info != info:
                self.rewritten[block.start_line] = (match.group(1) + match.group(2) + cleaned_info).rstrip()

    # ------------------------------------------------------------------
    # Prose
    # ------------------------------------------------------------------
    def _is_blank(self, lineno: int) -> bool:
        return not self.lines[lineno - 1].strip()

    def _is_structural(self, lineno: int) -> bool:
        """Headings and breaks are never filtered."""
        line = self.lines[lineno - 1]
        return bool(ATX_ANY_RE.match(line) or THEMATIC_BREAK_RE.match(line) or SETEXT_H1_RE.match(line))

    def _is_list_item(self, lineno: int) -> bool:
        return bool(LIST_ITEM_RE.match(self.lines[lineno - 1]))

    def _is_prose(self, lineno: int) -> bool:
        return not (lineno in self.fenced or self._is_blank(lineno) or self._is_structural(lineno))

    def _prose_units(self):
        """Yield ``("paragraph" | "list", [line numbers])`` in source order."""
        total = len(self.lines)
        lineno = 1
        while lineno <= total:
            if not self._is_prose(lineno):
                lineno += 1
                continue

            members = []
            if self._is_list_item(lineno):
                while lineno <= total:
                    if self._is_prose(lineno):
                        members.append(lineno)
                        lineno += 1
                        continue
                    if lineno in self.fenced or not self._is_blank(lineno):
                        break
                    # a blank line continues the list only if the list goes on after it
                    following = lineno
                    while following <= total and self._is_blank(following):
                        following += 1
                    if following > total or not self._is_prose(following):
                        break
                    if not (self._is_list_item(following) or _indent(self.lines[following - 1]) > 0):
                        break
                    members.extend(range(lineno, following))
                    lineno = following
                yield "list", members
            else:
                while lineno <= total and self._is_prose(lineno) and not self._is_list_item(lineno):
                    members.append(lineno)
                    lineno += 1
                yield "paragraph", members

    def _filter_paragraph(self, members: List[int]) -> None:
        if has_marker(self.lines[members[0] - 1], self.symbol, PARAGRAPH_SCOPE):
            self.dropped.update(members)
            return
        self._filter_lines(members)

    def _filter_list(self, members: List[int]) -> None:
        if has_marker(self.lines[members[0] - 1], self.symbol, LIST_SCOPE):
            self.dropped.update(members)
            return

        items = [lineno for lineno in members if self._is_list_item(lineno)]
        for lineno in items:
            if lineno in self.dropped:
                continue
            line = self.lines[lineno - 1]
            if has_marker(line, self.symbol, LIST_ITEM_SCOPE) or has_marker(line, self.symbol):
                self.dropped.update(self._item_extent(lineno, members))
        self._filter_lines([lineno for lineno in members if lineno not in self.dropped])

    def _item_extent(self, item_line: int, members: List[int]) -> List[int]:
        """The item's own line plus everything up to the next sibling or parent item."""
        indent = _indent(self.lines[item_line - 1])
        extent = [item_line]
        for lineno in members:
            if lineno <= item_line:
                continue
            if self._is_list_item(lineno) and _indent(self.lines[lineno - 1]) <= indent:
                break
            extent.append(lineno)
        return extent

    def _filter_lines(self, members: List[int]) -> None:
        for lineno in members:
            line = self.lines[lineno - 1]
            if has_marker(line, self.symbol):
                self.dropped.add(lineno)
                continue
            cleaned = strip_markers(line)
            if cleaned != line:
                self.rewritten[lineno] = cleaned

    # ------------------------------------------------------------------
    def _collect(self) -> List[KeptLine]:
        kept: List[KeptLine] = []
        gap = False
        for lineno, line in enumerate(self.lines, 1):
            if lineno in self.dropped:
                gap = True
                continue
            text = self.rewritten.get(lineno, line)
            # don't leave two blank lines where a unit used to be
            if gap and not text.strip() and (not kept or not kept[-1][1].strip()):
                gap = False
                continue
            gap = False
            kept.append((lineno, text))
        return kept


def exclude_lines(
    raw_text: str,
    target: FilterTarget = FilterTarget.DOC,
    model: Optional[StructuralModel] = None,
) -> List[KeptLine]:
    """
    Return the kept ``(original_line_number, text)`` pairs for *target*.

    Raises:
        ParseError: if the document is malformed
    """
    if model is None:
        model = parse(raw_text)
    return ExclusionFilter(raw_text, model, target).run()


def join_lines(raw_text: str, kept: List[KeptLine]) -> str:
    newline = "\r\n" if "\r\n" in raw_text else "\n"
    text = newline.join(line for _, line in kept)
    if text and raw_text.endswith("\n"):
        text += newline
    return text


def exclude(raw_text: str, target: FilterTarget = FilterTarget.DOC) -> str:
    """
    Remove everything marked for exclusion from *target* and return the
    cleaned markdown.
    """
    return join_lines(raw_text, exclude_lines(raw_text, target))
