"""
Data models for the literate-document engine.
"""
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

from .markers import FilterTarget


@dataclass(frozen=True)
class Block:
    """
    A fenced, named range of source lines.

    ``start_line`` is the opening fence and ``end_line`` the closing fence
    (1-based, inclusive).  ``body`` holds the lines strictly between them.
    """
    name: str
    start_line: int
    end_line: int
    language: str = ""
    body: str = ""
    fence: str = "```"
    excluded: bool = False  # carries the document marker (%)
    excluded_from_slides: bool = False  # carries the slides marker (&)
    tangle_target: Optional[str] = None  # export=<path>
    imports: Tuple[str, ...] = ()  # use=[a, b]
    args: Tuple[Tuple[str, str], ...] = ()  # args=[k=v; k2=v2]

    @property
    def tag(self):
        """Alias for name, the term used by editor front-ends."""
        return self.name

    def is_excluded_for(self, target) -> bool:
        """Check whether the block carries the marker of *target*."""
        if target is FilterTarget.DOC:
            return self.excluded
        return self.excluded_from_slides

    def args_dict(self) -> Dict[str, str]:
        return dict(self.args)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["tag"] = self.name
        data["imports"] = list(self.imports)
        data["args"] = self.args_dict()
        return data


@dataclass(frozen=True)
class OutputRegion:
    """A previously spliced ```output fence (inclusive line range)."""
    start_line: int
    end_line: int


@dataclass(frozen=True)
class Slide:
    """
    First line of a slide.

    ``kind`` is ``heading`` (``# Title``), ``break`` (a thematic break) or
    ``implicit`` (content before the first marker).  ``tag`` is the slide
    title, empty when untitled.
    """
    start_line: int
    tag: str = ""
    kind: str = "heading"

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class StructuralModel:
    """Blocks, output regions and slides of one document snapshot."""
    line_count: int
    blocks: Tuple[Block, ...] = ()
    outputs: Tuple[OutputRegion, ...] = ()
    slides: Tuple[Slide, ...] = ()

    def find_block(self, name: str) -> Optional[Block]:
        """Return the first block called *name* in source order."""
        for block in self.blocks:
            if block.name == name:
                return block
        return None

    def blocks_named(self, name: str) -> List[Block]:
        return [block for block in self.blocks if block.name == name]

    def duplicate_names(self) -> List[str]:
        seen = set()
        duplicates = []
        for block in self.blocks:
            if block.name in seen and block.name not in duplicates:
                duplicates.append(block.name)
            seen.add(block.name)
        return duplicates

    def output_at(self, line: int) -> Optional[OutputRegion]:
        for region in self.outputs:
            if region.start_line == line:
                return region
        return None

    def slide_spans(self) -> List[Tuple[int, int]]:
        """
        Inclusive line spans, one per slide.

        The spans partition ``[1, line_count]``: the first one starts at
        line 1 and each ends right before the next slide starts.
        """
        spans = []
        for index, slide in enumerate(self.slides):
            start = 1 if index == 0 else slide.start_line
            if index + 1 < len(self.slides):
                end = self.slides[index + 1].start_line - 1
            else:
                end = self.line_count
            spans.append((start, end))
        return spans


@dataclass(frozen=True)
class Edit:
    """
    Replace lines ``start_line`` .. ``end_line - 1`` with ``content``.

    ``start_line == end_line`` is a pure insertion before ``start_line``;
    ``line_count + 1`` addresses the end of the document.
    """
    start_line: int
    end_line: int
    content: str

    def is_insertion(self) -> bool:
        return self.start_line == self.end_line

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one block to completion."""
    stdout: str
    stderr: str
    status: int

    @property
    def ok(self):
        return self.status == 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TangleFileStatus:
    """Per-target outcome of a tangle run."""
    target: str
    path: Optional[str] = None
    blocks: List[str] = field(default_factory=list)
    ok: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TangleReport:
    files: List[TangleFileStatus] = field(default_factory=list)

    @property
    def file_count(self):
        """Number of files actually written."""
        return sum(1 for status in self.files if status.ok)

    @property
    def failed(self):
        return [status for status in self.files if not status.ok]

    def to_dict(self) -> Dict:
        return {
            "file_count": self.file_count,
            "files": [status.to_dict() for status in self.files],
        }
