"""Test tangling and macro expansion."""
import pytest

from litdoc.errors import BlockNotFound, ExpansionError, ParseError, TangleWriteError
from litdoc.tangle import expand_block, tangle, tangle_files


APP_DOC = '''# Tangle

```python imports export=src/app.py
import sys
```

```python helper
def greet():
    return "hi"
```

```python main export=src/app.py
@[helper]
print(greet())
```

```sh other export=run.sh %
echo excluded
```
'''


def test_blocks_sharing_a_target_are_concatenated(tmp_path):
    assert tangle(APP_DOC, tmp_path) == 1

    app = tmp_path / "src" / "app.py"
    assert app.read_text() == 'import sys\ndef greet():\n    return "hi"\nprint(greet())\n'
    assert not (tmp_path / "run.sh").exists()


def test_no_targets_writes_nothing(tmp_path):
    out = tmp_path / "out"
    out.mkdir()

    assert tangle("# Nothing\n\n```python x\nprint(1)\n```\n", out) == 0
    assert list(out.iterdir()) == []


def test_report_lists_blocks_per_file(tmp_path):
    report = tangle_files(APP_DOC, tmp_path)

    assert [status.target for status in report.files] == ["src/app.py"]
    assert report.files[0].blocks == ["imports", "main"]
    assert report.files[0].ok
    assert report.to_dict()["file_count"] == 1


def test_escaping_target_fails_alone(tmp_path):
    doc = (
        "```sh good export=good.sh\necho ok\n```\n\n"
        "```sh bad export=../evil.sh\necho no\n```\n"
    )
    out = tmp_path / "out"

    with pytest.raises(TangleWriteError) as info:
        tangle(doc, out)

    assert isinstance(info.value, OSError)
    assert [status.target for status in info.value.report.failed] == ["../evil.sh"]
    assert (out / "good.sh").read_text() == "echo ok\n"
    assert not (tmp_path / "evil.sh").exists()


def test_missing_macro_fails_that_file(tmp_path):
    doc = "```python x export=x.py\n@[nowhere]\n```\n"
    report = tangle_files(doc, tmp_path)

    assert report.file_count == 0
    assert "nowhere" in report.failed[0].error


def test_expansion_keeps_indentation():
    doc = (
        "```python outer\ndef f():\n    @[inner]\n```\n\n"
        "```python inner\nx = 1\nreturn x\n```\n"
    )
    assert expand_block(doc, "outer") == "def f():\n    x = 1\n    return x"


def test_inline_macro_reference():
    doc = "```sh name\nworld\n```\n\n```sh greet\necho hello @[name]!\n```\n"
    assert expand_block(doc, "greet") == "echo hello world!"


def test_expand_unknown_block():
    with pytest.raises(BlockNotFound):
        expand_block(APP_DOC, "nope")


def test_expand_cycle():
    doc = "```sh a\n@[b]\n```\n\n```sh b\n@[a]\n```\n"
    with pytest.raises(ExpansionError) as info:
        expand_block(doc, "a")
    assert info.value.chain == ["a", "b", "a"]


def test_parse_error_short_circuits(tmp_path):
    with pytest.raises(ParseError):
        tangle("```python x export=x.py\nprint(1)\n", tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_every_macro_on_a_line_is_expanded():
    doc = (
        "```sh a\nA\n```\n\n```sh b\nB\n```\n\n"
        "```sh main\n@[a] @[b]\n```\n"
    )
    assert expand_block(doc, "main") == "A B"


def test_equivalent_targets_share_one_file(tmp_path):
    doc = (
        "```sh one export=a.sh\necho 1\n```\n\n"
        "```sh two export=./a.sh\necho 2\n```\n\n"
        "```sh three export=sub/../a.sh\necho 3\n```\n"
    )

    assert tangle(doc, tmp_path) == 1
    assert (tmp_path / "a.sh").read_text() == "echo 1\necho 2\necho 3\n"

    report = tangle_files(doc, tmp_path)
    assert [status.target for status in report.files] == ["a.sh"]
    assert report.files[0].blocks == ["one", "two", "three"]


def test_form_feed_survives_tangling(tmp_path):
    doc = "```python code export=code.py\na = 1\n\x0c\nb = 2\n```\n"

    assert tangle(doc, tmp_path) == 1
    assert (tmp_path / "code.py").read_text() == "a = 1\n\x0c\nb = 2\n"
