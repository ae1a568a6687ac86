"""User configuration.

Settings are resolved from three layers, later ones winning:

1. built-in defaults,
2. ``config.toml`` in the configuration directory,
3. environment variables (``LITDOC_CONFIG_DIR``, ``LITDOC_TEMP_DIR``,
   ``LITDOC_TIMEOUT``).

Example ``~/.config/litdoc/config.toml``::

    [execution]
    timeout = 30

    [render]
    theme = "dark"
    code_theme = "monokai"

    [languages.ruby]
    command = ["ruby", "{file}"]
    extension = "rb"
"""
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "LITDOC_CONFIG_DIR"
TEMP_DIR_ENV = "LITDOC_TEMP_DIR"
TIMEOUT_ENV = "LITDOC_TIMEOUT"

CONFIG_FILENAME = "config.toml"
DEFAULT_THEME = "default"
DEFAULT_CODE_THEME = "default"

LANGUAGE_KEYS = {"command", "extension", "template"}


@dataclass
class Settings:
    config_dir: Path
    temp_dir: Path
    timeout: Optional[float] = None
    theme: str = DEFAULT_THEME
    code_theme: str = DEFAULT_CODE_THEME
    languages: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME


def default_config_dir() -> Path:
    value = os.environ.get(CONFIG_DIR_ENV)
    if value:
        return Path(value).expanduser()
    return Path.home() / ".config" / "litdoc"


def default_temp_dir() -> Path:
    value = os.environ.get(TEMP_DIR_ENV)
    if value:
        return Path(value).expanduser()
    return Path(tempfile.gettempdir()) / "litdoc"


def parse_timeout(value: Any, source: str) -> Optional[float]:
    """Turn a timeout setting into seconds; empty or ``0`` disables it."""
    if value is None or value == "":
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{source}: timeout must be a number of seconds, got {value!r}")
    if seconds < 0:
        raise ConfigurationError(f"{source}: timeout must not be negative, got {value!r}")
    return seconds or None


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{path}: {exc}") from exc


def _check_languages(table: Any, path: Path) -> Dict[str, Dict[str, Any]]:
    if not isinstance(table, dict):
        raise ConfigurationError(f"{path}: [languages] must be a table")
    languages = {}
    for name, entry in table.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{path}: [languages.{name}] must be a table")
        unknown = set(entry) - LANGUAGE_KEYS
        if unknown:
            raise ConfigurationError(
                f"{path}: unknown keys in [languages.{name}]: {', '.join(sorted(unknown))}"
            )
        command = entry.get("command")
        if command is not None and not (
            isinstance(command, str)
            or (isinstance(command, list) and all(isinstance(part, str) for part in command))
        ):
            raise ConfigurationError(f"{path}: languages.{name}.command must be a string or a list of strings")
        languages[name.lower()] = dict(entry)
    return languages


def _table(data: dict, key: str, path: Path) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigurationError(f"{path}: [{key}] must be a table")
    return value


def load_settings(config_dir: Optional[Path] = None) -> Settings:
    """
    Build the effective :class:`Settings`.

    Raises:
        ConfigurationError: malformed ``config.toml`` or invalid values
    """
    settings = Settings(
        config_dir=Path(config_dir) if config_dir else default_config_dir(),
        temp_dir=default_temp_dir(),
    )

    path = settings.config_file
    if path.is_file():
        logger.debug("Reading configuration from %s", path)
        data = _read_toml(path)

        execution = _table(data, "execution", path)
        if "timeout" in execution:
            settings.timeout = parse_timeout(execution["timeout"], str(path))

        render = _table(data, "render", path)
        for key in ("theme", "code_theme"):
            if key in render:
                if not isinstance(render[key], str):
                    raise ConfigurationError(f"{path}: render.{key} must be a string")
                setattr(settings, key, render[key])

        if "languages" in data:
            settings.languages = _check_languages(data["languages"], path)

    if os.environ.get(TIMEOUT_ENV) is not None:
        settings.timeout = parse_timeout(os.environ[TIMEOUT_ENV], TIMEOUT_ENV)

    return settings
