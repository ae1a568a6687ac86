"""
Line-accurate structural parser.

One linear scan over the document recovers the fenced blocks, the
previously spliced ``output`` regions and the slide markers.  Nothing is
nested: every record is a contiguous line range, stored in source order.

Block syntax::

    ```python hello export=src/hello.py use=[helpers] args=[n=3] %
    print("hello")
    ```

The first word of the info string is the language; the first free word
after removing ``use=``, ``export=`` and ``args=`` is the block name
(defaulting to the opening line number).  Trailing ``%`` / ``&`` tokens
are exclusion markers, see :mod:`litdoc.markers`.

Slide markers are level-1 headings (ATX ``# Title`` or a setext ``===``
underline) and thematic breaks.  ``---`` repeats the previous slide's
title, ``--- ---`` and the other break forms start an untitled slide.
"""
import hashlib
import logging
import re
import threading
from collections import OrderedDict
from typing import List, Optional, Tuple

from .errors import ParseError
from .markers import DOC_MARKER, SLIDES_MARKER, find_markers, strip_markers
from .models import Block, OutputRegion, Slide, StructuralModel

logger = logging.getLogger(__name__)

OUTPUT_INFO = "output"
REPEAT_TITLE = "---"

FENCE_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})(.*)$")
ATX_H1_RE = re.compile(r"^ {0,3}#(?:[ \t]+(.*?))?[ \t]*$")
ATX_ANY_RE = re.compile(r"^ {0,3}#{1,6}(?:[ \t]|$)")
THEMATIC_BREAK_RE = re.compile(r"^ {0,3}(?:(?:-[ \t]*){3,}|(?:\*[ \t]*){3,}|(?:_[ \t]*){3,})$")
SETEXT_H1_RE = re.compile(r"^ {0,3}=+[ \t]*$")
SETEXT_H2_RE = re.compile(r"^ {0,3}-+[ \t]*$")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+]|\d{1,9}[.)])(?:[ \t]+|$)")
BLOCKQUOTE_RE = re.compile(r"^ {0,3}>")

# Info-string options, as written by the original literate syntax
USE_RE = re.compile(r"use=\[([^\]]*)\]")
EXPORT_RE = re.compile(r"export\s*=\s*(\S+)")
ARGS_RE = re.compile(r"args=\[([^\]]*)\]")


def parse_info_string(info: str) -> dict:
    """
    Split a fence info string into its parts.

    Returns a dict with ``language``, ``name`` (``None`` when absent),
    ``tangle_target``, ``imports``, ``args`` and the two exclusion flags.
    """
    markers = find_markers(info)
    info = strip_markers(info).strip()

    language, _, meta = info.partition(" ")
    meta = meta.strip()

    imports: Tuple[str, ...] = ()
    use_match = USE_RE.search(meta)
    if use_match:
        imports = tuple(part.strip() for part in use_match.group(1).split(",") if part.strip())
        meta = USE_RE.sub("", meta, count=1)

    export_match = EXPORT_RE.search(meta)
    tangle_target = export_match.group(1) if export_match else None
    if export_match:
        meta = EXPORT_RE.sub("", meta, count=1)

    args: Tuple[Tuple[str, str], ...] = ()
    args_match = ARGS_RE.search(meta)
    if args_match:
        pairs = []
        for item in args_match.group(1).split(";"):
            key, sep, value = item.partition("=")
            if sep and key.strip():
                pairs.append((key.strip(), value.strip()))
        args = tuple(pairs)
        meta = ARGS_RE.sub("", meta, count=1)

    words = meta.split()
    return {
        "language": language,
        "name": words[0] if words else None,
        "tangle_target": tangle_target,
        "imports": imports,
        "args": args,
        "excluded": (DOC_MARKER, "") in markers,
        "excluded_from_slides": (SLIDES_MARKER, "") in markers,
    }


def split_lines(text: str) -> List[str]:
    """
    Split *text* into lines on ``\\n`` only, dropping one trailing ``\\r``
    per line.  Form feeds and Unicode separators stay inside their line,
    so numbering matches what an editor shows.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def split_lines_keepends(text: str) -> List[str]:
    """Like :func:`split_lines` but each line keeps its terminator."""
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def _heading_title(text: Optional[str]) -> str:
    if not text:
        return ""
    # optional closing sequence: "# Title ##"
    text = re.sub(r"(?:^|[ \t]+)#+[ \t]*$", "", text)
    return text.strip()


class StructureParser:
    """
    Single-pass scanner turning raw text into a :class:`StructuralModel`.
    """

    def __init__(self, raw_text: str):
        self.raw_text = raw_text
        self.lines = split_lines(raw_text)

    def parse(self) -> StructuralModel:
        blocks: List[Block] = []
        outputs: List[OutputRegion] = []
        slides: List[Slide] = []

        first_content_line = None
        # paragraph tracking, needed to tell setext underlines from breaks
        paragraph_start = None
        paragraph_lines: List[str] = []
        in_list = False

        lineno = 0
        total = len(self.lines)
        while lineno < total:
            line = self.lines[lineno]
            current = lineno + 1
            stripped = line.strip()

            if stripped and first_content_line is None:
                first_content_line = current

            fence = self._match_fence(line)
            if fence is not None:
                indent, marker, info = fence
                close_index = self._find_closing_fence(lineno, indent, marker)
                if info.strip() == OUTPUT_INFO:
                    outputs.append(OutputRegion(current, close_index + 1))
                else:
                    blocks.append(self._make_block(current, close_index + 1, indent, marker, info))
                paragraph_start, paragraph_lines, in_list = None, [], False
                lineno = close_index + 1
                continue

            if not stripped:
                paragraph_start, paragraph_lines, in_list = None, [], False
                lineno += 1
                continue

            if paragraph_start is not None and not in_list:
                if SETEXT_H1_RE.match(line):
                    title = " ".join(part.strip() for part in paragraph_lines)
                    slides.append(Slide(paragraph_start, title, "heading"))
                    paragraph_start, paragraph_lines = None, []
                    lineno += 1
                    continue
                if SETEXT_H2_RE.match(line):
                    # underline of a level-2 heading, not a slide break
                    paragraph_start, paragraph_lines = None, []
                    lineno += 1
                    continue

            if THEMATIC_BREAK_RE.match(line):
                if stripped == REPEAT_TITLE and slides:
                    title = slides[-1].tag
                else:
                    title = ""
                slides.append(Slide(current, title, "break"))
                paragraph_start, paragraph_lines, in_list = None, [], False
                lineno += 1
                continue

            h1 = ATX_H1_RE.match(line)
            if h1:
                slides.append(Slide(current, _heading_title(h1.group(1)), "heading"))
                paragraph_start, paragraph_lines, in_list = None, [], False
                lineno += 1
                continue

            if ATX_ANY_RE.match(line) or BLOCKQUOTE_RE.match(line):
                paragraph_start, paragraph_lines, in_list = None, [], False
                lineno += 1
                continue

            if LIST_ITEM_RE.match(line):
                in_list = True
            if paragraph_start is None:
                paragraph_start = current
            paragraph_lines.append(line)
            lineno += 1

        if first_content_line is not None and (not slides or first_content_line < slides[0].start_line):
            slides.insert(0, Slide(1, "", "implicit"))

        model = StructuralModel(
            line_count=total,
            blocks=tuple(blocks),
            outputs=tuple(outputs),
            slides=tuple(slides),
        )
        for name in model.duplicate_names():
            lines = [str(block.start_line) for block in model.blocks_named(name)]
            logger.warning(
                "Block name '%s' is used %d times (lines %s); the first one wins",
                name, len(lines), ", ".join(lines),
            )
        return model

    def _match_fence(self, line: str) -> Optional[Tuple[int, str, str]]:
        match = FENCE_RE.match(line)
        if not match:
            return None
        indent, marker, info = match.groups()
        # a backtick fence's info string cannot contain backticks
        if marker[0] == "`" and "`" in info:
            return None
        return len(indent), marker, info.strip()

    def _find_closing_fence(self, open_index: int, indent: int, marker: str) -> int:
        """Return the 0-based index of the closing fence line."""
        char, length = marker[0], len(marker)
        for index in range(open_index + 1, len(self.lines)):
            fence = self._match_fence(self.lines[index])
            if fence is None:
                continue
            _, inner_marker, inner_info = fence
            if inner_marker[0] != char or len(inner_marker) < length:
                continue
            if not inner_info:
                return index
            raise ParseError(
                index + 1,
                f"block opened before the block starting at line {open_index + 1} was closed",
            )
        raise ParseError(open_index + 1, "block is never closed")

    def _make_block(self, start: int, end: int, indent: int, marker: str, info: str) -> Block:
        parts = parse_info_string(info)
        body_lines = self.lines[start:end - 1]
        if indent:
            body_lines = [_dedent(line, indent) for line in body_lines]
        return Block(
            name=parts["name"] or str(start),
            start_line=start,
            end_line=end,
            language=parts["language"],
            body="\n".join(body_lines),
            fence=marker,
            excluded=parts["excluded"],
            excluded_from_slides=parts["excluded_from_slides"],
            tangle_target=parts["tangle_target"],
            imports=parts["imports"],
            args=parts["args"],
        )


def _dedent(line: str, indent: int) -> str:
    removable = len(line) - len(line.lstrip(" "))
    return line[min(indent, removable):]


def attached_output(model: StructuralModel, lines: List[str], block: Block) -> Optional[OutputRegion]:
    """
    Return the output region belonging to *block*: the first ``output``
    fence after the block, separated from it by blank lines only.
    """
    lineno = block.end_line + 1
    while lineno <= len(lines) and not lines[lineno - 1].strip():
        lineno += 1
    return model.output_at(lineno)


class ParseCache:
    """Bounded read-through cache of parse results keyed by content hash."""

    def __init__(self, max_entries: int = 64):
        self.max_entries = max_entries
        self.cache: "OrderedDict[str, StructuralModel]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def key_for(raw_text: str) -> str:
        return hashlib.sha256(raw_text.encode("utf-8")).hexdigest()

    def get(self, raw_text: str) -> StructuralModel:
        key = self.key_for(raw_text)
        with self._lock:
            model = self.cache.get(key)
            if model is not None:
                self.cache.move_to_end(key)
                return model

        model = StructureParser(raw_text).parse()

        with self._lock:
            self.cache[key] = model
            self.cache.move_to_end(key)
            while len(self.cache) > self.max_entries:
                self.cache.popitem(last=False)
        return model

    def clear(self) -> None:
        with self._lock:
            self.cache.clear()

    def __len__(self) -> int:
        return len(self.cache)


_default_cache = ParseCache()


def parse(raw_text: str, use_cache: bool = True) -> StructuralModel:
    """
    Parse *raw_text* into its structural model.

    Raises:
        ParseError: unterminated or nested blocks
    """
    if use_cache:
        return _default_cache.get(raw_text)
    return StructureParser(raw_text).parse()


def document_hash(raw_text: str) -> str:
    return ParseCache.key_for(raw_text)
