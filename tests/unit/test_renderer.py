"""Test HTML rendering."""
import pytest

from litdoc.errors import ConfigurationError, ParseError
from litdoc.renderer import Renderer, preview_html, preview_slides


DOC = """# Report

Intro text.

Internal note %

```python hello
print("x")
```

```output
x
```

```python secret_block %
print("hidden")
```

| Name | Age |
|------|-----|
| John | 25  |

- [x] done
"""


def test_document_page():
    html = preview_html(DOC, "default")

    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Report</title>" in html
    assert "<h1>Report</h1>" in html
    assert ".highlight" in html
    assert "font-family" in html
    assert "Internal note" not in html
    assert "secret_block" not in html


def test_blocks_get_header_and_highlighting():
    html = preview_html(DOC, "default")

    assert '<span class="block-tag">hello</span>' in html
    assert '<div class="highlight">' in html
    assert 'class="code-execution-pair"' in html
    assert '<div class="output-header">OUTPUT</div>' in html


def test_tables_and_task_lists():
    html = preview_html(DOC, "default")

    assert "<th>Name</th>" in html
    assert 'type="checkbox"' in html


def test_fence_options_do_not_leak():
    html = preview_html("```python tool export=out.py use=[lib] &\nx = 1\n```\n", "default")
    assert "export=" not in html
    assert "use=" not in html
    assert "&amp;" not in html


def test_unnamed_block_has_no_header():
    html = Renderer().render_fragment("```python\nx = 1\n```\n")
    assert "block-header" not in html
    assert 'class="code-block"' in html


def test_deck_page():
    html = preview_slides("# One\nfirst\n\n# Two\nsecond &\n", "dark", "monokai")

    assert html.count('<section class="slide"') == 2
    assert "#1a1a1a" in html
    assert "second" not in html


def test_local_images_are_embedded(tmp_path):
    (tmp_path / "dot.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    html = Renderer(base_dir=tmp_path).render_fragment("![dot](dot.png)\n")

    assert 'src="data:image/png;base64,' in html


def test_remote_images_are_left_alone():
    html = Renderer().render_fragment("![logo](https://example.com/logo.png)\n")
    assert 'src="https://example.com/logo.png"' in html


def test_unknown_themes():
    with pytest.raises(ConfigurationError):
        preview_html(DOC, "no-such-theme")
    with pytest.raises(ConfigurationError):
        preview_slides(DOC, "default", "no-such-code-theme")


def test_parse_error_propagates():
    with pytest.raises(ParseError):
        preview_html("```python x\nnever closed\n", "default")
