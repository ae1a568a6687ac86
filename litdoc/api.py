"""
Engine API.

Every operation takes the full document text and is independent of any
previous call; results are dataclasses with ``to_dict()`` for transport.

    >>> from litdoc import api
    >>> blocks = api.parse_blocks(text)
    >>> result = api.execute_block(text, "setup")
    >>> edit = api.format_output(text, "setup", result)
    >>> text = api.apply_edit(text, edit)
"""
import logging
import threading
from typing import List, Optional, Union

from . import exclusion, executor, pdf, renderer, slides, splicer, tangle as tangler
from .config import DEFAULT_CODE_THEME, DEFAULT_THEME
from .models import Block, Edit, ExecutionResult, Slide, TangleReport
from .structure import parse

logger = logging.getLogger(__name__)


def exclude(raw_text: str) -> str:
    """Document text with every ``%`` exclusion applied."""
    return exclusion.exclude(raw_text, exclusion.FilterTarget.DOC)


def parse_slides(raw_text: str) -> List[Slide]:
    return list(parse(raw_text).slides)


def parse_blocks(raw_text: str) -> List[Block]:
    return list(parse(raw_text).blocks)


def execute_block(
    raw_text: str,
    block_name: str,
    *,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    cwd=None,
) -> ExecutionResult:
    return executor.execute(raw_text, block_name, timeout=timeout, cancel_event=cancel_event, cwd=cwd)


def format_output(raw_text: str, block_name: str, output: Union[ExecutionResult, str]) -> Edit:
    return splicer.format_output(raw_text, block_name, output)


def apply_edit(raw_text: str, edit: Edit) -> str:
    return splicer.apply_edit(raw_text, edit)


def run_block(raw_text: str, block_name: str, **kwargs) -> Edit:
    """Execute a block and return the edit recording its output."""
    result = execute_block(raw_text, block_name, **kwargs)
    return format_output(raw_text, block_name, result)


def gen_slides(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME) -> List[str]:
    return slides.gen_slides(raw_text, theme, code_theme)


def preview_html(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                 base_dir=None) -> str:
    return renderer.preview_html(raw_text, theme, code_theme, base_dir)


def preview_slides(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                   base_dir=None) -> str:
    return renderer.preview_slides(raw_text, theme, code_theme, base_dir)


def save_pdf(raw_text: str, theme: str, output_path, code_theme: str = DEFAULT_CODE_THEME, base_dir=None) -> str:
    return pdf.save_pdf(raw_text, theme, output_path, code_theme, base_dir)


def save_slides_pdf(raw_text: str, theme: str, code_theme: str, output_path, base_dir=None) -> str:
    return pdf.save_slides_pdf(raw_text, theme, code_theme, output_path, base_dir)


def tangle(raw_text: str, output_dir) -> int:
    return tangler.tangle(raw_text, output_dir)


def tangle_files(raw_text: str, output_dir) -> TangleReport:
    return tangler.tangle_files(raw_text, output_dir)


def expand_block(raw_text: str, block_name: str) -> str:
    return tangler.expand_block(raw_text, block_name)
