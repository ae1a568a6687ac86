"""
Output splicer.

Turns the captured output of a block into an :class:`~litdoc.models.Edit`
against the source document: a fresh ``output`` region right after the
block, or a replacement of the region already attached to it.
"""
import logging
import re
from typing import Optional, Union

from .errors import BlockNotFound, InvalidRange
from .models import Edit, ExecutionResult, StructuralModel
from .structure import OUTPUT_INFO, attached_output, parse, split_lines, split_lines_keepends

logger = logging.getLogger(__name__)

BACKTICK_RUN_RE = re.compile(r"^\s*(`{3,})", re.MULTILINE)


def output_payload(output: Union[ExecutionResult, str]) -> str:
    """Text placed inside the output fence."""
    if isinstance(output, ExecutionResult):
        stdout = output.stdout.rstrip("\n")
        stderr = output.stderr.rstrip("\n")
        return f"Output:\n{stdout}\n\nStderr:\n{stderr}\n\nExit code: {output.status}"
    return str(output).rstrip("\n")


def fence_for(payload: str) -> str:
    """A backtick fence longer than any fence-like run inside *payload*."""
    longest = max((len(run) for run in BACKTICK_RUN_RE.findall(payload)), default=0)
    return "`" * max(3, longest + 1)


def output_region(output: Union[ExecutionResult, str]) -> str:
    payload = output_payload(output)
    fence = fence_for(payload)
    return f"{fence}{OUTPUT_INFO}\n{payload}\n{fence}\n"


def format_output(
    raw_text: str,
    block_name: str,
    output: Union[ExecutionResult, str],
    model: Optional[StructuralModel] = None,
) -> Edit:
    """
    Build the edit that records *output* under the block *block_name*.

    Raises:
        BlockNotFound: no block with that name
        ParseError: the document is malformed
    """
    if model is None:
        model = parse(raw_text)
    block = model.find_block(block_name)
    if block is None:
        raise BlockNotFound(block_name)

    region = output_region(output)
    existing = attached_output(model, split_lines(raw_text), block)
    if existing is not None:
        logger.debug("Replacing output of '%s' at lines %d-%d", block_name, existing.start_line, existing.end_line)
        return Edit(existing.start_line, existing.end_line + 1, region)

    insert_at = block.end_line + 1
    logger.debug("Inserting output of '%s' at line %d", block_name, insert_at)
    return Edit(insert_at, insert_at, "\n" + region)


def apply_edit(raw_text: str, edit: Edit) -> str:
    """
    Return *raw_text* with *edit* applied.

    Raises:
        InvalidRange: the edit does not fit the document
    """
    lines = split_lines_keepends(raw_text)
    line_count = len(lines)
    if not 1 <= edit.start_line <= edit.end_line <= line_count + 1:
        raise InvalidRange(edit.start_line, edit.end_line, line_count)

    before = lines[:edit.start_line - 1]
    after = lines[edit.end_line - 1:]
    if before and not before[-1].endswith("\n"):
        before[-1] += "\n"

    content = edit.content
    if after and content and not content.endswith("\n"):
        content += "\n"
    return "".join(before) + content + "".join(after)
