from html import escape

from markdown_it import MarkdownIt
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import ClassNotFound, TextLexer, get_lexer_by_name

from ..structure import OUTPUT_INFO, parse_info_string


def _highlight(code: str, language: str, formatter: HtmlFormatter) -> str:
    try:
        lexer = get_lexer_by_name(language or "text")
    except ClassNotFound:
        lexer = TextLexer()
    return highlight(code, lexer, formatter)


def literate_fence_plugin(md: MarkdownIt, cssclass: str = "highlight"):
    """Markdown-it-py plugin that renders literate fences.

    Named blocks get a ``block-header`` with their name and language and
    are highlighted with Pygments; ``output`` fences become an ``output``
    box with an ``OUTPUT`` header.  Exclusion markers and block options
    (``export=``, ``use=[...]``) never reach the HTML.  Pairing a block
    with its output is left to the renderer's post-processing.
    """
    formatter = HtmlFormatter(cssclass=cssclass)

    def _render_fence(self, tokens, idx, options, env):
        token = tokens[idx]
        info = token.info.strip()

        if info == OUTPUT_INFO:
            return (
                '<div class="output">'
                '<div class="output-header">OUTPUT</div>'
                f'<div class="{cssclass}"><pre>{escape(token.content)}</pre></div>'
                "</div>\n"
            )

        parts = parse_info_string(info)
        language = parts["language"]
        header = ""
        if parts["name"]:
            header = (
                '<div class="block-header">'
                f'<span class="block-tag">{escape(parts["name"])}</span>'
                f'<span class="block-language">{escape(language)}</span>'
                "</div>"
            )
        name_attr = f' data-block="{escape(parts["name"])}"' if parts["name"] else ""
        return (
            f'<div class="code-block"{name_attr}>'
            f"{header}"
            f"{_highlight(token.content, language, formatter)}"
            "</div>\n"
        )

    md.add_render_rule("fence", _render_fence)
