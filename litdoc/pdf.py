"""
PDF export through headless Chromium (pyppeteer).

The document prints on A4 pages; the deck prints one 16:9 page per
``section.slide``.
"""
import asyncio
import concurrent.futures
import logging
from pathlib import Path

from pyppeteer import launch
from pyppeteer.errors import PyppeteerError

from .config import DEFAULT_CODE_THEME, DEFAULT_THEME
from .errors import ExportError
from .renderer import Renderer

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--allow-file-access-from-files",
    "--disable-web-security",
    "--allow-file-access",
    "--no-sandbox",
]

DOCUMENT_PDF_OPTIONS = {
    "format": "A4",
    "printBackground": True,
    "margin": {"top": "16mm", "bottom": "16mm", "left": "14mm", "right": "14mm"},
}

# 16:9, matching the themes' --slide-width / --slide-height
DECK_PDF_OPTIONS = {
    "width": "960px",
    "height": "540px",
    "printBackground": True,
    "margin": {"top": "0", "bottom": "0", "left": "0", "right": "0"},
}


async def _print_pdf(html: str, output_path: Path, options: dict) -> None:
    browser = await launch(
        args=BROWSER_ARGS,
        handleSIGINT=False,
        handleSIGTERM=False,
        handleSIGHUP=False,
    )
    try:
        page = await browser.newPage()
        await page.setContent(html)
        await page.pdf({"path": str(output_path), **options})
    finally:
        await browser.close()


def _run_sync(coro):
    """Run *coro* from scripts and from code already inside an event loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


def html_to_pdf(html: str, output_path, *, deck: bool = False) -> str:
    """
    Print *html* to *output_path*.

    Raises:
        ExportError: the browser failed or the file could not be written
    """
    output_path = Path(output_path).expanduser()
    options = DECK_PDF_OPTIONS if deck else DOCUMENT_PDF_OPTIONS
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        _run_sync(_print_pdf(html, output_path, options))
    except (PyppeteerError, OSError, asyncio.TimeoutError) as exc:
        raise ExportError(output_path, str(exc) or type(exc).__name__) from exc

    if not output_path.is_file():
        raise ExportError(output_path, "browser produced no file")
    logger.info("PDF written to %s", output_path)
    return f"PDF saved to {output_path}"


def save_pdf(raw_text: str, theme: str, output_path, code_theme: str = DEFAULT_CODE_THEME, base_dir=None) -> str:
    """Render the document and print it to PDF."""
    html = Renderer(theme, code_theme, base_dir).document(raw_text)
    return html_to_pdf(html, output_path)


def save_slides_pdf(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                    output_path="slides.pdf", base_dir=None) -> str:
    """Render the deck and print it to PDF, one page per slide."""
    html = Renderer(theme, code_theme, base_dir).deck(raw_text)
    return html_to_pdf(html, output_path, deck=True)
