"""Test the structural parser."""
import logging

import pytest

from litdoc.errors import ParseError
from litdoc.models import Slide
from litdoc.structure import ParseCache, parse, parse_info_string, split_lines, split_lines_keepends


def test_block_line_range_and_body(setup_doc):
    model = parse(setup_doc)

    assert len(model.blocks) == 1
    block = model.blocks[0]
    assert (block.name, block.start_line, block.end_line) == ("setup", 3, 5)
    assert block.language == "sh"
    assert block.body == "echo hi"
    assert model.line_count == 5


def test_block_fences_round_trip():
    """Every block's range starts and ends on a fence line of the source."""
    text = "```python a\nx = 1\n```\n\ntext\n\n~~~sh b\necho\n~~~\n"
    lines = text.splitlines()

    for block in parse(text).blocks:
        assert lines[block.start_line - 1].startswith(block.fence)
        assert lines[block.end_line - 1].strip() == block.fence
        assert block.start_line < block.end_line


def test_unnamed_block_is_named_after_its_line():
    model = parse("intro\n\n```python\nprint(1)\n```\n")
    assert model.blocks[0].name == "3"


def test_info_string_options():
    parts = parse_info_string("python main export=src/main.py use=[a, b] args=[n=3; mode=fast] %")

    assert parts["language"] == "python"
    assert parts["name"] == "main"
    assert parts["tangle_target"] == "src/main.py"
    assert parts["imports"] == ("a", "b")
    assert parts["args"] == (("n", "3"), ("mode", "fast"))
    assert parts["excluded"] is True
    assert parts["excluded_from_slides"] is False


def test_slides_marker_on_block():
    model = parse("```python demo &\nx\n```\n")
    block = model.blocks[0]
    assert block.name == "demo"
    assert block.excluded_from_slides
    assert not block.excluded


def test_longer_fence_contains_shorter_ones():
    text = "````md doc\n```python\nx\n```\n````\n"
    model = parse(text)

    assert [(b.name, b.start_line, b.end_line) for b in model.blocks] == [("doc", 1, 5)]


def test_unterminated_block_raises_at_opening_line():
    with pytest.raises(ParseError) as info:
        parse("intro\n\n```python x\nprint(1)\n")
    assert info.value.line == 3


def test_nested_block_raises_at_inner_line():
    with pytest.raises(ParseError) as info:
        parse("```python a\nx\n```python b\ny\n```\n")
    assert info.value.line == 3


def test_output_fence_is_not_a_block():
    text = "```sh run\necho hi\n```\n\n```output\nhi\n```\n"
    model = parse(text)

    assert [b.name for b in model.blocks] == ["run"]
    assert len(model.outputs) == 1
    assert (model.outputs[0].start_line, model.outputs[0].end_line) == (5, 7)


def test_slide_spans_partition_document():
    text = "\n".join(["# A"] + ["text"] * 8 + ["# B"] + ["more"] * 5) + "\n"
    model = parse(text)

    assert [s.start_line for s in model.slides] == [1, 10]
    assert model.slide_spans() == [(1, 9), (10, 15)]


def test_thematic_breaks_repeat_or_clear_title():
    text = "# Title\ntext\n\n---\nmore\n\n--- ---\nlast\n"
    model = parse(text)

    assert model.slides == (
        Slide(1, "Title", "heading"),
        Slide(4, "Title", "break"),
        Slide(7, "", "break"),
    )


def test_setext_headings():
    text = "Intro\n===\n\nText\nSub\n---\n"
    model = parse(text)

    # the --- under "Sub" underlines a level-2 heading
    assert model.slides == (Slide(1, "Intro", "heading"),)


def test_content_before_first_marker_gets_implicit_slide():
    model = parse("Preface\n\n# One\n")
    assert model.slides == (Slide(1, "", "implicit"), Slide(3, "One", "heading"))
    assert model.slide_spans() == [(1, 2), (3, 3)]


def test_leading_blank_lines_belong_to_first_slide():
    model = parse("\n\n# One\nx\n")
    assert [s.start_line for s in model.slides] == [3]
    assert model.slide_spans() == [(1, 4)]


def test_blank_document_has_no_slides():
    assert parse("").slides == ()
    assert parse("\n\n  \n").slides == ()


def test_headings_inside_blocks_are_not_slides():
    model = parse("# Real\n\n```python x\n# comment\n```\n")
    assert [s.tag for s in model.slides] == ["Real"]


def test_duplicate_names_first_wins(caplog):
    text = "```sh dup\necho 1\n```\n\n```sh dup\necho 2\n```\n"
    with caplog.at_level(logging.WARNING):
        model = parse(text, use_cache=False)

    assert model.find_block("dup").body == "echo 1"
    assert len(model.blocks_named("dup")) == 2
    assert "dup" in caplog.text


def test_parse_is_deterministic_and_cached():
    text = "# A\n\n```sh x\necho\n```\n"
    assert parse(text) is parse(text)
    assert parse(text, use_cache=False) == parse(text)


def test_parse_cache_is_bounded():
    cache = ParseCache(max_entries=2)
    for text in ("# one\n", "# two\n", "# three\n"):
        cache.get(text)
    assert len(cache) == 2


def test_lines_split_on_newline_only():
    text = "a\x0cb\nc d\r\ne\n"

    assert split_lines(text) == ["a\x0cb", "c d", "e"]
    assert split_lines_keepends(text) == ["a\x0cb\n", "c d\r\n", "e\n"]
    assert split_lines("") == []
    assert split_lines_keepends("no newline") == ["no newline"]


def test_unicode_separators_do_not_shift_line_numbers():
    doc = "# Title\nfirst second\x1c\n\n```sh s\nprint\x0cme\n```\n"
    block = parse(doc).blocks[0]

    assert (block.start_line, block.end_line) == (4, 6)
    assert block.body == "print\x0cme"
