"""Test the language registry and source assembly."""
import sys
from pathlib import Path

import pytest

from litdoc.errors import ConfigurationError
from litdoc.languages import Language, LanguageRegistry, render_source


def test_builtin_runners():
    registry = LanguageRegistry()

    python = registry.resolve("Python")
    assert python.command[0] == sys.executable
    assert python.extension == "py"
    assert registry.resolve("bash").command[0] == "bash"
    assert registry.resolve("c").template is not None


def test_build_command_substitutes_file():
    language = Language("demo", ("run", "--file={file}", "-q"), "txt")
    assert language.build_command(Path("/tmp/a.txt")) == ["run", "--file=/tmp/a.txt", "-q"]


def test_build_command_appends_file_without_placeholder():
    language = Language("demo", ("run",))
    assert language.build_command(Path("/tmp/a")) == ["run", "/tmp/a"]


def test_unregistered_language_falls_back_to_path():
    registry = LanguageRegistry([])

    runner = registry.resolve("sh")
    assert runner is not None
    assert runner.command[-1] == "{file}"
    assert registry.resolve("no-such-language-xyz") is None
    assert registry.resolve("") is None


def test_user_overrides():
    registry = LanguageRegistry()
    registry.update_from_settings({
        "ruby": {"command": "ruby -w {file}", "extension": "rb"},
        "python": {"extension": "pyw"},
    })

    assert registry.get("ruby").command == ("ruby", "-w", "{file}")
    assert registry.get("python").extension == "pyw"
    assert registry.get("python").command[0] == sys.executable


def test_new_language_needs_a_command():
    with pytest.raises(ConfigurationError):
        LanguageRegistry().update_from_settings({"cobol": {"extension": "cob"}})


def test_render_without_template_prepends_imports():
    language = Language("python", ("python", "{file}"), "py")
    assert render_source(language, "print(x)", "x = 1") == "x = 1\nprint(x)\n"


def test_c_template_wraps_body_in_main():
    source = render_source(LanguageRegistry().get("c"), 'printf("hi\\n");')

    assert "int main(void) {" in source
    assert '    printf("hi\\n");' in source


def test_broken_template():
    language = Language("demo", ("demo",), template="{{ missing }}")
    with pytest.raises(ConfigurationError):
        render_source(language, "body")
