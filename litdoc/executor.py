"""
Block executor.

Runs one named block as a child process and captures its output.  The
child leads its own process group so that a timeout or a cancellation
can kill everything it spawned (compilers, shells, grandchildren).
"""
import logging
import os
import re
import signal
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import Optional, Set, Tuple

from .config import Settings, load_settings
from .errors import ConfigurationError, ExecutionCancelled, ExecutionError, ExecutionTimeout, ExpansionError
from .languages import LanguageRegistry, registry_from_settings, render_source
from .models import Block, ExecutionResult, StructuralModel
from .paths import prepare_workspace
from .structure import document_hash, parse
from .tangle import MacroExpander

logger = logging.getLogger(__name__)

# how often a running child is checked for cancellation
POLL_INTERVAL = 0.1
SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass
    proc.communicate()


class Executor:
    """
    Runs blocks; at most one in-flight run per (document, block name).

    One instance is meant to be shared by every caller editing the same
    documents, so that a double click does not start the same block twice.
    """

    def __init__(self, settings: Optional[Settings] = None, registry: Optional[LanguageRegistry] = None):
        self.settings = settings or load_settings()
        self.registry = registry or registry_from_settings(self.settings)
        self._in_flight: Set[Tuple[str, str]] = set()
        self._lock = threading.Lock()

    def execute(
        self,
        raw_text: str,
        block_name: str,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        cwd=None,
    ) -> ExecutionResult:
        """
        Run block *block_name* of *raw_text* to completion.

        A non-zero exit status is a normal result.  *timeout* defaults to
        the configured one; *cancel_event* may be set from another thread.

        Raises:
            ParseError: the document is malformed
            ExecutionError: the block could not be run (see ``reason``)
        """
        model = parse(raw_text)
        block = model.find_block(block_name)
        if block is None:
            raise ExecutionError("not_found", f"Block not found: {block_name}", block_name)

        key = (document_hash(raw_text), block_name)
        with self._lock:
            if key in self._in_flight:
                raise ExecutionError("busy", f"Block '{block_name}' is already running", block_name)
            self._in_flight.add(key)
        try:
            return self._run(model, block, timeout if timeout is not None else self.settings.timeout,
                             cancel_event, cwd)
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def _source_for(self, model: StructuralModel, block: Block, language) -> str:
        expander = MacroExpander(model)
        try:
            body = expander.expand(block)
            imports = "\n".join(expander.expand_name(name) for name in block.imports)
            return render_source(language, body, imports, block.args_dict())
        except (ExpansionError, ConfigurationError) as exc:
            raise ExecutionError("expansion_failed", str(exc), block.name) from exc

    def _run(self, model: StructuralModel, block: Block, timeout, cancel_event, cwd) -> ExecutionResult:
        language = self.registry.resolve(block.language)
        if language is None:
            raise ExecutionError(
                "unsupported_language",
                f"No runner for language '{block.language or '(none)'}' of block '{block.name}'",
                block.name,
            )
        source = self._source_for(model, block, language)

        try:
            scratch_dir = prepare_workspace(self.settings.temp_dir)
            fd, scratch = tempfile.mkstemp(
                prefix=SAFE_NAME_RE.sub("_", block.name) + "_",
                suffix=f".{language.extension}" if language.extension else "",
                dir=scratch_dir,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source)
        except OSError as exc:
            raise ExecutionError("write_failed", f"Cannot write scratch file: {exc}", block.name) from exc

        scratch_path = Path(scratch)
        command = language.build_command(scratch_path)
        logger.debug("Running block '%s': %s", block.name, " ".join(command))
        try:
            return self._spawn(block.name, command, timeout, cancel_event, cwd)
        finally:
            for leftover in (scratch_path, scratch_path.with_name(scratch_path.name + ".bin")):
                try:
                    leftover.unlink()
                except FileNotFoundError:
                    pass

    def _spawn(self, name: str, command, timeout, cancel_event, cwd) -> ExecutionResult:
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as exc:
            raise ExecutionError("spawn_failed", f"Cannot start {command[0]}: {exc}", name) from exc

        deadline = time.monotonic() + timeout if timeout else None
        while True:
            wait = None
            if cancel_event is not None:
                wait = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    _kill_group(proc)
                    logger.warning("Block '%s' timed out after %gs", name, timeout)
                    raise ExecutionTimeout(name, timeout)
                wait = remaining if wait is None else min(wait, remaining)
            try:
                stdout, stderr = proc.communicate(timeout=wait)
                break
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    _kill_group(proc)
                    logger.info("Block '%s' cancelled", name)
                    raise ExecutionCancelled(name)

        result = ExecutionResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            status=proc.returncode,
        )
        logger.debug("Block '%s' exited with status %d", name, result.status)
        return result


_default_executor: Optional[Executor] = None
_default_lock = threading.Lock()


def default_executor() -> Executor:
    global _default_executor
    with _default_lock:
        if _default_executor is None:
            _default_executor = Executor()
        return _default_executor


def execute(raw_text: str, block_name: str, **kwargs) -> ExecutionResult:
    """Run a block with the process-wide :class:`Executor`."""
    return default_executor().execute(raw_text, block_name, **kwargs)
