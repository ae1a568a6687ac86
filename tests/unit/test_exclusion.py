"""Test the exclusion filter."""
import pytest

from litdoc.errors import ParseError
from litdoc.exclusion import FilterTarget, exclude, exclude_lines


MIXED_DOC = """# Notes

Intro paragraph %p
with two lines

Visible line
hidden line %
slides only &

- keep
- drop %i
  continuation
- keep too

```python helper %
x = 1 %
```

```output
1
```

```python demo &
print("demo")
```
"""


def test_excluded_block_drops_its_output():
    doc = "# T\n\n```python helper %\nx = 1\n```\n\n```output\nhi\n```\n\nkept\n"
    assert exclude(doc) == "# T\n\nkept\n"


def test_paragraph_scope():
    doc = "First line %p\nsecond line\n\nOther\n"
    assert exclude(doc) == "Other\n"


def test_paragraph_marker_must_be_on_first_line():
    doc = "First line\nsecond line %p\n"
    # a scoped marker elsewhere is just stripped
    assert exclude(doc) == "First line\nsecond line\n"


def test_line_marker():
    assert exclude("keep this\ndrop this %\nkeep too\n") == "keep this\nkeep too\n"


def test_other_target_markers_are_stripped():
    assert exclude("Visible in doc &\n") == "Visible in doc\n"
    assert exclude("Visible in slides %\nshown\n", FilterTarget.SLIDES) == "Visible in slides\nshown\n"


def test_list_scope():
    assert exclude("- a %l\n- b\n\nafter\n") == "after\n"


def test_list_item_scope_takes_continuation_and_children():
    doc = "- one\n- two %i\n  continued\n  - nested\n- three\n"
    assert exclude(doc) == "- one\n- three\n"


def test_percent_inside_text_is_not_a_marker():
    assert exclude("Growth was 50%\n") == "Growth was 50%\n"


def test_headings_and_bodies_are_never_altered():
    doc = "# Title %\n\n```python code\nx = 1 %\n```\n"
    assert exclude(doc) == doc


def test_block_marker_for_other_target_is_stripped_from_fence():
    doc = "```python demo &\nprint(1)\n```\n"
    assert exclude(doc) == "```python demo\nprint(1)\n```\n"
    assert exclude(doc, FilterTarget.SLIDES) == ""


def test_mixed_document():
    cleaned = exclude(MIXED_DOC)

    assert "Intro paragraph" not in cleaned
    assert "hidden line" not in cleaned
    assert "slides only\n" in cleaned
    assert "drop" not in cleaned and "continuation" not in cleaned
    assert "- keep\n- keep too" in cleaned
    assert "helper" not in cleaned and "```output" not in cleaned
    assert '```python demo\nprint("demo")' in cleaned


def test_slides_target():
    cleaned = exclude(MIXED_DOC, FilterTarget.SLIDES)

    assert "slides only" not in cleaned
    assert "demo" not in cleaned
    assert "hidden line" in cleaned
    assert "```python helper\nx = 1 %\n```" in cleaned


@pytest.mark.parametrize("target", [FilterTarget.DOC, FilterTarget.SLIDES])
def test_exclusion_is_idempotent(target):
    once = exclude(MIXED_DOC, target)
    assert exclude(once, target) == once


def test_kept_lines_carry_original_numbers():
    assert exclude_lines("a\nb %\nc\n") == [(1, "a"), (3, "c")]


def test_parse_errors_propagate():
    with pytest.raises(ParseError):
        exclude("```python x\nnever closed\n")


def test_crlf_document_keeps_its_line_endings():
    doc = "# Title\r\n\r\nkept\r\ndropped %\r\n"
    assert exclude(doc) == "# Title\r\n\r\nkept\r\n"


def test_separators_inside_prose_are_kept():
    doc = "# Title\n\npage\x0cbreak here\nhidden %\n"

    assert exclude(doc) == "# Title\n\npage\x0cbreak here\n"
    assert exclude_lines(doc)[-1] == (3, "page\x0cbreak here")
