"""
Tangle extractor.

Blocks are stitched together with ``@[name]`` macros: the reference is
replaced by the named block's (expanded) body, indented like the
reference.  Blocks with ``export=<path>`` are written to disk, blocks
sharing a path are concatenated in source order.
"""
import logging
import os
import re
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import BlockNotFound, ExpansionError, TangleWriteError
from .models import Block, StructuralModel, TangleFileStatus, TangleReport
from .structure import parse

logger = logging.getLogger(__name__)

MACRO_RE = re.compile(r"@\[([A-Za-z0-9_.-]+)\]")


class MacroExpander:
    """Recursive ``@[name]`` expansion over one structural model."""

    def __init__(self, model: StructuralModel):
        self.model = model
        self._expanded: Dict[str, str] = {}

    def expand(self, block: Block) -> str:
        return self._expand_body(block, [block.name])

    def expand_name(self, name: str, chain: Sequence[str] = ()) -> str:
        chain = list(chain) + [name]
        if name in chain[:-1]:
            raise ExpansionError(name, "Macro cycle: " + " -> ".join(chain), chain)
        if name in self._expanded:
            return self._expanded[name]
        block = self.model.find_block(name)
        if block is None:
            referrer = chain[-2] if len(chain) > 1 else name
            raise ExpansionError(name, f"Block '{referrer}' references unknown block '{name}'", chain)
        text = self._expand_body(block, chain)
        self._expanded[name] = text
        return text

    def _expand_body(self, block: Block, chain: List[str]) -> str:
        lines = []
        for line in block.body.split("\n"):
            match = MACRO_RE.search(line)
            if not match:
                lines.append(line)
                continue
            prefix = line[:match.start()]
            if prefix.strip():
                # inline reference: splice the text as-is
                lines.append(MACRO_RE.sub(lambda m: self.expand_name(m.group(1), chain), line))
                continue
            expansion = self.expand_name(match.group(1), chain)
            rest = MACRO_RE.sub(lambda m: self.expand_name(m.group(1), chain), line[match.end():])
            expanded_lines = expansion.split("\n")
            expanded_lines[-1] += rest
            lines.extend(prefix + part if part else part for part in expanded_lines)
        return "\n".join(lines)


def expand_block(raw_text: str, name: str, model: Optional[StructuralModel] = None) -> str:
    """
    Return the macro-expanded source of block *name*.

    Raises:
        BlockNotFound: no block with that name
        ExpansionError: missing macro target or cycle
    """
    if model is None:
        model = parse(raw_text)
    block = model.find_block(name)
    if block is None:
        raise BlockNotFound(name)
    return MacroExpander(model).expand(block)


def _resolve_target(output_dir: Path, target: str) -> Path:
    if os.path.isabs(target):
        raise ValueError(f"absolute export path '{target}' is not allowed")
    root = output_dir.resolve()
    path = (root / target).resolve()
    if path != root and root not in path.parents:
        raise ValueError(f"export path '{target}' escapes {root}")
    return path


def tangle_files(raw_text: str, output_dir, model: Optional[StructuralModel] = None) -> TangleReport:
    """
    Write every export target and report per-file success.

    Raises:
        ParseError: the document is malformed
    """
    if model is None:
        model = parse(raw_text)
    output_dir = Path(output_dir)

    # keyed by resolved path, or by the raw target when it cannot resolve
    groups: "OrderedDict[object, List[Block]]" = OrderedDict()
    unresolved: Dict[str, str] = {}
    for block in model.blocks:
        if not block.tangle_target or block.excluded:
            continue
        try:
            key = _resolve_target(output_dir, block.tangle_target)
        except ValueError as exc:
            key = block.tangle_target
            unresolved[key] = str(exc)
        groups.setdefault(key, []).append(block)

    report = TangleReport()
    expander = MacroExpander(model)
    for key, blocks in groups.items():
        target = blocks[0].tangle_target
        status = TangleFileStatus(target=target, blocks=[block.name for block in blocks])
        report.files.append(status)
        try:
            if not isinstance(key, Path):
                raise ValueError(unresolved[key])
            path = key
            status.path = str(path)
            content = "\n".join(expander.expand(block) for block in blocks) + "\n"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except (OSError, ValueError, ExpansionError) as exc:
            status.error = str(exc)
            logger.warning("Could not tangle %s: %s", target, exc)
            continue
        status.ok = True
        logger.info("Tangled %d block(s) into %s", len(blocks), path)

    return report


def tangle(raw_text: str, output_dir) -> int:
    """
    Write every export target under *output_dir*; return the number of files.

    Raises:
        ParseError: the document is malformed
        TangleWriteError: one or more targets failed (carries the report)
    """
    report = tangle_files(raw_text, output_dir)
    if report.failed:
        raise TangleWriteError(report)
    return report.file_count
