"""Exception taxonomy for the literate-document engine.

Every failure the engine reports derives from :class:`LitdocError` and
carries enough context (line number, block name, path) for a caller to
act on it without re-parsing the document.  ``to_dict`` gives the tagged
form used by the CLI's ``--json`` mode.
"""
from typing import Any, Dict, Optional


class LitdocError(Exception):
    """Base class for engine errors."""

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ParseError(LitdocError):
    """Malformed or overlapping block markers."""

    def __init__(self, line: int, message: str):
        self.line = line
        self.message = message
        super().__init__(f"line {line}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["line"] = self.line
        return data


class BlockNotFound(LitdocError):
    """A referenced block name is absent from the structural model."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Block not found: {name}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["block"] = self.name
        return data


class ExpansionError(LitdocError):
    """A ``@[name]`` macro references a missing block or forms a cycle."""

    def __init__(self, block: str, message: str, chain=()):
        self.block = block
        self.chain = list(chain)
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["block"] = self.block
        data["chain"] = self.chain
        return data


class ExecutionError(LitdocError):
    """A block could not be run to completion.

    A non-zero exit status is *not* an ``ExecutionError``; it is reported
    in :class:`~litdoc.models.ExecutionResult`.  ``reason`` is a short
    machine-readable code (``not_found``, ``unsupported_language``,
    ``expansion_failed``, ``write_failed``, ``spawn_failed``, ``busy``,
    ``timeout``, ``cancelled``).
    """

    def __init__(self, reason: str, message: str, block: Optional[str] = None):
        self.reason = reason
        self.block = block
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        data["block"] = self.block
        return data


class ExecutionTimeout(ExecutionError):
    """The child process outlived its timeout and was killed."""

    def __init__(self, block: str, timeout: float):
        self.timeout = timeout
        super().__init__("timeout", f"Block '{block}' timed out after {timeout:g}s", block)


class ExecutionCancelled(ExecutionError):
    """The caller cancelled the execution and the child was killed."""

    def __init__(self, block: str):
        super().__init__("cancelled", f"Execution of block '{block}' was cancelled", block)


class ConfigurationError(LitdocError):
    """Unknown theme / code theme or an invalid configuration value."""


class InvalidRange(LitdocError):
    """An Edit references lines outside the document it is applied to."""

    def __init__(self, start_line: int, end_line: int, line_count: int):
        self.start_line = start_line
        self.end_line = end_line
        self.line_count = line_count
        super().__init__(
            f"Edit range [{start_line}, {end_line}) is outside a document of {line_count} lines"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(start_line=self.start_line, end_line=self.end_line, line_count=self.line_count)
        return data


class ExportError(LitdocError, OSError):
    """The PDF backend failed or the output could not be written."""

    def __init__(self, path: str, message: str):
        self.path = str(path)
        LitdocError.__init__(self, f"{path}: {message}")

    def __str__(self) -> str:
        return LitdocError.__str__(self)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["path"] = self.path
        return data


class TangleWriteError(LitdocError, OSError):
    """One or more tangle targets failed; ``report`` holds per-file status."""

    def __init__(self, report):
        self.report = report
        failed = [f"{status.target} ({status.error})" for status in report.failed]
        LitdocError.__init__(
            self,
            f"{len(failed)} of {len(report.files)} tangle targets failed: " + ", ".join(failed),
        )

    def __str__(self) -> str:
        return LitdocError.__str__(self)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["files"] = [status.to_dict() for status in self.report.files]
        return data
