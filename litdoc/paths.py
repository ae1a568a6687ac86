#!/usr/bin/env python3
"""Utility helpers for resolving scratch directories and document assets.

Executed blocks are written to a scratch directory (``<tmp>/litdoc`` by
default, see :mod:`litdoc.config`).  If that directory cannot be created
(e.g. read-only share) we fall back to :pyfunc:`tempfile.mkdtemp`.

The configured directory is kept between runs; a fallback directory is
deleted by an ``atexit`` hook.
"""
from __future__ import annotations

import atexit
import errno
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger(__name__)

__all__ = ["prepare_workspace", "resolve_asset"]

_cleanup_registered: Set[Path] = set()


def prepare_workspace(tmp_dir: str | Path) -> Path:
    """Create the scratch directory and register its cleanup.

    Parameters
    ----------
    tmp_dir
        Preferred scratch directory.  Created if it does not exist.  When
        it cannot be created a system temp directory is used instead and
        removed at process exit.

    Returns
    -------
    The absolute :class:`pathlib.Path` where scratch files should be placed.
    """
    proposed = Path(tmp_dir).expanduser().resolve()
    use_fallback = False

    try:
        proposed.mkdir(parents=True, exist_ok=True)
    except OSError as exc:  # permission denied, read-only FS, …
        if exc.errno not in (errno.EACCES, errno.EROFS):
            raise
        use_fallback = True

    if use_fallback:
        tmp_path = Path(tempfile.mkdtemp(prefix="litdoc_tmp_"))
        logger.warning("Cannot create %s, using %s for scratch files", proposed, tmp_path)
    else:
        tmp_path = proposed

    if use_fallback and tmp_path not in _cleanup_registered:
        _cleanup_registered.add(tmp_path)

        def _cleanup() -> None:
            # never fail the interpreter at exit
            shutil.rmtree(tmp_path, ignore_errors=True)

        atexit.register(_cleanup)

    return tmp_path


def resolve_asset(src: str, *, base_dir: Path) -> Optional[Path]:
    """Return the file on disk that *src* points to, or None for remote assets.

    Rules
    -----
    1. Remote URLs and data-URIs are not local files.
    2. ``file://`` URLs are stripped to an absolute path first.
    3. Relative paths are resolved against *base_dir*.
    """
    if src.startswith(("http://", "https://", "data:", "//")):
        return None

    if src.startswith("file://"):
        return Path(src[7:]).expanduser().resolve()
    return (Path(base_dir) / src).expanduser().resolve()
