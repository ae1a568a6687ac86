"""
Slide generator: one HTML fragment per slide.

Each slide is rendered on its own from the slides-target kept lines of
its span, so a broken construct on one slide cannot leak into the next.
"""
import logging
from typing import List, Optional

from .config import DEFAULT_CODE_THEME, DEFAULT_THEME
from .exclusion import FilterTarget, exclude_lines
from .models import StructuralModel
from .renderer import Renderer
from .structure import parse

logger = logging.getLogger(__name__)


def slide_markdown(raw_text: str, model: Optional[StructuralModel] = None) -> List[str]:
    """
    Markdown source of every slide, in source order.

    A thematic-break slide loses its marker line and, when it repeats the
    previous title, starts with that title as a heading.

    Raises:
        ParseError: the document is malformed
    """
    if model is None:
        model = parse(raw_text)
    kept = exclude_lines(raw_text, FilterTarget.SLIDES, model)

    sources = []
    for slide, (start, end) in zip(model.slides, model.slide_spans()):
        lines = [
            text for lineno, text in kept
            if start <= lineno <= end and not (slide.kind == "break" and lineno == slide.start_line)
        ]
        if slide.kind == "break" and slide.tag:
            lines.insert(0, f"# {slide.tag}")
        sources.append("\n".join(lines).strip("\n") + "\n")
    return sources


def slide_fragments(raw_text: str, renderer: Renderer, model: Optional[StructuralModel] = None) -> List[str]:
    """Render every slide with *renderer*; errors propagate."""
    return [renderer.render_fragment(source) for source in slide_markdown(raw_text, model)]


def gen_slides(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME) -> List[str]:
    """
    One HTML fragment per slide, or ``[]`` if anything goes wrong.

    Failures are logged, never raised: callers use this for live previews
    where a half-typed document is the normal case.
    """
    try:
        return slide_fragments(raw_text, Renderer(theme, code_theme))
    except Exception as exc:
        logger.warning("Slide generation failed: %s", exc)
        logger.debug("Slide generation traceback", exc_info=True)
        return []
