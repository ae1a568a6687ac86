"""
Markdown to themed HTML.

The renderer only ever sees text the exclusion filter has already
cleaned.  Post-processing with BeautifulSoup groups each block with its
output region and embeds local images so the page is self-contained.
"""
import base64
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup
from jinja2 import DictLoader, Environment, select_autoescape
from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.front_matter import front_matter_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .config import DEFAULT_CODE_THEME, DEFAULT_THEME
from .exclusion import FilterTarget, exclude
from .markdown_plugins import literate_fence_plugin
from .paths import resolve_asset
from .structure import parse
from .theme_loader import check_code_theme, get_code_css, get_css

logger = logging.getLogger(__name__)

# Layout that themes don't need to repeat
PAGE_CSS = """
html, body { margin: 0; padding: 0; box-sizing: border-box; }
.deck { display: flex; flex-direction: column; align-items: center; gap: 24px; padding: 24px 0; }
.slide { box-sizing: border-box; position: relative; page-break-after: always; }
.deck .slide { box-shadow: 0 2px 12px rgba(0, 0, 0, .25); }
@media print {
    .deck { display: block; padding: 0; }
    .deck .slide { box-shadow: none; }
    .code-block, .code-execution-pair { break-inside: avoid; }
}
"""

PAGE_TEMPLATES = {
    "base.html": """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{{ title }}</title>
<style>{{ page_css | safe }}</style>
<style>{{ theme_css | safe }}</style>
<style>{{ code_css | safe }}</style>
</head>
<body>
{% block body %}{% endblock %}
</body>
</html>
""",
    "document.html": """{% extends "base.html" %}
{% block body %}<article class="markdown-body">
{{ content | safe }}
</article>{% endblock %}
""",
    "deck.html": """{% extends "base.html" %}
{% block body %}<main class="deck">
{% for slide in slides %}<section class="slide" data-index="{{ loop.index0 }}">
{{ slide | safe }}
</section>
{% endfor %}</main>{% endblock %}
""",
}

_page_env = Environment(
    loader=DictLoader(PAGE_TEMPLATES),
    autoescape=select_autoescape(["html"]),
)


def build_markdown() -> MarkdownIt:
    """markdown-it-py with the plugins the literate syntax relies on."""
    md = MarkdownIt("commonmark", {"html": True, "linkify": False, "typographer": True})
    md.enable(["table", "strikethrough"])
    return (
        md
        .use(front_matter_plugin)
        .use(footnote_plugin)
        .use(tasklists_plugin)
        .use(literate_fence_plugin)
    )


class Renderer:
    """
    Themed HTML renderer.

    Raises ConfigurationError on construction if the theme or the code
    theme is unknown.
    """

    def __init__(self, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                 base_dir: Optional[Path] = None):
        self.theme = theme
        self.code_theme = check_code_theme(code_theme)
        self.theme_css = get_css(theme)
        self.code_css = get_code_css(code_theme)
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.markdown = build_markdown()

    def render_fragment(self, markdown_text: str) -> str:
        """Markdown to an HTML fragment (no page shell)."""
        html = self.markdown.render(markdown_text)
        return self._post_process(html)

    def _post_process(self, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")

        for block in soup.select("div.code-block"):
            sibling = block.find_next_sibling()
            if sibling is None or "output" not in (sibling.get("class") or []):
                continue
            pair = soup.new_tag("div", attrs={"class": "code-execution-pair"})
            block.insert_before(pair)
            pair.append(block.extract())
            pair.append(sibling.extract())

        for img in soup.find_all("img", src=True):
            data_uri = self._embed_image(img["src"])
            if data_uri:
                img["src"] = data_uri

        return str(soup)

    def _embed_image(self, src: str) -> Optional[str]:
        path = resolve_asset(src, base_dir=self.base_dir)
        if path is None:
            return None
        if not path.is_file():
            logger.warning("Image not found: %s", src)
            return None
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    def _page(self, template: str, title: str, **context) -> str:
        return _page_env.get_template(template).render(
            title=title,
            page_css=PAGE_CSS,
            theme_css=self.theme_css,
            code_css=self.code_css,
            **context,
        )

    def document(self, raw_text: str) -> str:
        """
        Full HTML page for the document target.

        Raises:
            ParseError: the document is malformed
        """
        model = parse(raw_text)
        content = self.render_fragment(exclude(raw_text, FilterTarget.DOC))
        return self._page("document.html", _document_title(model), content=content)

    def deck(self, raw_text: str) -> str:
        """
        Full HTML page with one ``section.slide`` per slide.

        Raises:
            ParseError: the document is malformed
        """
        from .slides import slide_fragments

        model = parse(raw_text)
        fragments = slide_fragments(raw_text, self, model)
        return self._page("deck.html", _document_title(model), slides=fragments)


def _document_title(model) -> str:
    for slide in model.slides:
        if slide.tag:
            return slide.tag
    return "Document"


def preview_html(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                 base_dir: Optional[Path] = None) -> str:
    return Renderer(theme, code_theme, base_dir).document(raw_text)


def preview_slides(raw_text: str, theme: str = DEFAULT_THEME, code_theme: str = DEFAULT_CODE_THEME,
                   base_dir: Optional[Path] = None) -> str:
    return Renderer(theme, code_theme, base_dir).deck(raw_text)
