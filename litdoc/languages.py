"""
Language registry: how to run a body of source text.

Each :class:`Language` is a command line (``{file}`` is replaced by the
scratch file path), the scratch file extension and an optional Jinja2
wrapper template.  Templates see three variables:

``imports``
    expanded source of the blocks named in ``use=[...]``
``body``
    the expanded block body
``args``
    the ``args=[k=v; ...]`` options as a dict
"""
import logging
import shlex
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

FILE_PLACEHOLDER = "{file}"

C_TEMPLATE = """\
#include <stdio.h>
#include <stdlib.h>
#include <string.h>

{{ imports }}

int main(void) {
{{ body | indent(4, true) }}
    return 0;
}
"""

RUST_TEMPLATE = """\
{{ imports }}

fn main() {
{{ body | indent(4, true) }}
}
"""

# compile next to the scratch file, then replace the shell with the binary
COMPILE_AND_RUN_C = 'cc -o "$0.bin" "$0" && exec "$0.bin"'
COMPILE_AND_RUN_RUST = 'rustc -o "$0.bin" "$0" && exec "$0.bin"'


@dataclass(frozen=True)
class Language:
    name: str
    command: Sequence[str]
    extension: str = ""
    template: Optional[str] = None

    def build_command(self, path: Path) -> List[str]:
        parts = [part.replace(FILE_PLACEHOLDER, str(path)) for part in self.command]
        if not any(FILE_PLACEHOLDER in part for part in self.command):
            parts.append(str(path))
        return parts


_template_env = Environment(
    loader=DictLoader({}),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def render_source(language: Language, body: str, imports: str = "", args: Optional[Mapping[str, str]] = None) -> str:
    """
    Assemble the runnable source of a block.

    Without a wrapper template the imports are simply prepended.

    Raises:
        ConfigurationError: the wrapper template is broken
    """
    if not language.template:
        if imports:
            return f"{imports}\n{body}\n"
        return f"{body}\n"
    try:
        template = _template_env.from_string(language.template)
        return template.render(imports=imports, body=body, args=dict(args or {}))
    except TemplateError as exc:
        raise ConfigurationError(f"Wrapper template for '{language.name}' failed: {exc}") from exc


def _builtin_languages() -> List[Language]:
    python = Language("python", (sys.executable, FILE_PLACEHOLDER), "py")
    shell = Language("sh", ("sh", FILE_PLACEHOLDER), "sh")
    return [
        python,
        Language("python3", python.command, "py"),
        Language("py", python.command, "py"),
        shell,
        Language("shell", shell.command, "sh"),
        Language("bash", ("bash", FILE_PLACEHOLDER), "sh"),
        Language("c", ("sh", "-c", COMPILE_AND_RUN_C, FILE_PLACEHOLDER), "c", C_TEMPLATE),
        Language("rust", ("sh", "-c", COMPILE_AND_RUN_RUST, FILE_PLACEHOLDER), "rs", RUST_TEMPLATE),
        Language("javascript", ("node", FILE_PLACEHOLDER), "js"),
        Language("js", ("node", FILE_PLACEHOLDER), "js"),
        Language("node", ("node", FILE_PLACEHOLDER), "js"),
    ]


class LanguageRegistry:
    """Strategy map from a block's declared language to its runner."""

    def __init__(self, languages: Optional[Sequence[Language]] = None):
        self._languages: Dict[str, Language] = {}
        for language in _builtin_languages() if languages is None else languages:
            self.register(language)

    def register(self, language: Language) -> None:
        self._languages[language.name.lower()] = language

    def names(self) -> List[str]:
        return sorted(self._languages)

    def get(self, name: str) -> Optional[Language]:
        return self._languages.get(name.lower())

    def resolve(self, name: str) -> Optional[Language]:
        """
        Return the runner for *name*.

        Unregistered languages that name an executable on ``PATH`` run as
        ``<name> <file>``.
        """
        if not name:
            return None
        language = self.get(name)
        if language is not None:
            return language
        executable = shutil.which(name)
        if executable:
            logger.debug("No runner registered for '%s', using %s", name, executable)
            return Language(name, (executable, FILE_PLACEHOLDER))
        return None

    def update_from_settings(self, overrides: Mapping[str, Mapping]) -> None:
        """Apply ``[languages.<name>]`` tables from the user configuration."""
        for name, entry in overrides.items():
            base = self.get(name)
            command = entry.get("command")
            if isinstance(command, str):
                command = shlex.split(command)
            if command is None:
                if base is None:
                    raise ConfigurationError(f"languages.{name}: a new language needs a command")
                command = base.command
            self.register(Language(
                name=name,
                command=tuple(command),
                extension=entry.get("extension", base.extension if base else ""),
                template=entry.get("template", base.template if base else None),
            ))
            logger.debug("Runner for '%s' configured: %s", name, " ".join(command))


def registry_from_settings(settings) -> LanguageRegistry:
    registry = LanguageRegistry()
    registry.update_from_settings(settings.languages)
    return registry
