#!/usr/bin/env python3
"""
Command-line entry point.

    litdoc blocks notes.md
    litdoc run notes.md setup          # execute and splice output in place
    litdoc tangle notes.md -o build/
    litdoc deck-pdf notes.md -o slides.pdf --theme dark
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from . import api
from .config import load_settings
from .errors import LitdocError
from .exclusion import FilterTarget, exclude
from .executor import Executor
from .splicer import apply_edit, format_output
from .theme_loader import list_available_themes, list_code_themes

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="litdoc", description="Run, render and tangle literate markdown documents.")
    p.add_argument("--debug", action="store_true", help="Verbose logging and full tracebacks")
    p.add_argument("--json", action="store_true", help="Machine-readable output")
    sub = p.add_subparsers(dest="command", required=True)

    def with_file(name, help_text):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("markdown", type=Path, help="Markdown document")
        return cmd

    with_file("blocks", "List the blocks of a document")
    with_file("slides", "List the slides of a document")

    cmd = with_file("exclude", "Print the document with exclusions applied")
    cmd.add_argument("--slides", action="store_true", help="Apply slide (&) markers instead of document (%%) markers")

    for name, help_text in (("execute", "Run a block and print its output"),
                            ("run", "Run a block and record its output in the document")):
        cmd = with_file(name, help_text)
        cmd.add_argument("block", help="Block name")
        cmd.add_argument("--timeout", type=float, help="Seconds before the block is killed")

    cmd = with_file("tangle", "Write every export= target")
    cmd.add_argument("--output", "-o", type=Path, help="Output directory (default: next to the document)")

    cmd = with_file("expand", "Print the macro-expanded source of a block")
    cmd.add_argument("block", help="Block name")

    for name, help_text, default in (("html", "Render the document to HTML", None),
                                     ("deck", "Render the slide deck to HTML", None),
                                     ("pdf", "Export the document to PDF", "document.pdf"),
                                     ("deck-pdf", "Export the slide deck to PDF", "slides.pdf")):
        cmd = with_file(name, help_text)
        cmd.add_argument("--output", "-o", type=Path, default=default and Path(default),
                         help="Destination file" + (f" (default: {default})" if default else " (default: stdout)"))
        cmd.add_argument("--theme", "-t", help="CSS theme (see `litdoc themes`)")
        cmd.add_argument("--code-theme", help="Pygments style for code blocks")

    sub.add_parser("themes", help="List page themes and code themes")
    return p


def _emit(args, data, text: str) -> None:
    if args.json:
        print(json.dumps(data, indent=2))
    elif text:
        print(text)


def _write_or_print(args, html: str) -> None:
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(html, encoding="utf-8")
        _emit(args, {"path": str(args.output)}, f"Written to {args.output}")
    else:
        print(html)


def _dispatch(args) -> int:
    settings = load_settings()

    if args.command == "themes":
        themes, code_themes = list_available_themes(), list_code_themes()
        _emit(args, {"themes": themes, "code_themes": code_themes},
              "Themes: " + ", ".join(themes) + "\nCode themes: " + ", ".join(code_themes))
        return 0

    path: Path = args.markdown
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read %s: %s", path, exc.strerror or exc)
        return 1
    base_dir = path.resolve().parent

    if args.command == "blocks":
        blocks = api.parse_blocks(raw_text)
        rows = [
            f"{b.name:<20} {b.start_line:>5}-{b.end_line:<5} {b.language or '-':<12}"
            + (f" -> {b.tangle_target}" if b.tangle_target else "")
            + (" (excluded)" if b.excluded else "")
            for b in blocks
        ]
        _emit(args, [b.to_dict() for b in blocks], "\n".join(rows))

    elif args.command == "slides":
        slides = api.parse_slides(raw_text)
        rows = [f"{s.start_line:>5}  {s.kind:<8} {s.tag}" for s in slides]
        _emit(args, [s.to_dict() for s in slides], "\n".join(rows))

    elif args.command == "exclude":
        target = FilterTarget.SLIDES if args.slides else FilterTarget.DOC
        cleaned = exclude(raw_text, target)
        _emit(args, {"text": cleaned}, cleaned.rstrip("\n"))

    elif args.command in ("execute", "run"):
        executor = Executor(settings)
        result = executor.execute(raw_text, args.block, timeout=args.timeout, cwd=base_dir)
        if args.command == "execute":
            text = result.stdout.rstrip("\n")
            if result.stderr:
                sys.stderr.write(result.stderr)
            _emit(args, result.to_dict(), text)
            return 0
        edit = format_output(raw_text, args.block, result)
        path.write_text(apply_edit(raw_text, edit), encoding="utf-8")
        _emit(args, {"result": result.to_dict(), "edit": edit.to_dict()},
              f"Block '{args.block}' exited with status {result.status}; output recorded in {path}")

    elif args.command == "tangle":
        report = api.tangle_files(raw_text, args.output or base_dir)
        rows = [
            f"{'ok' if status.ok else 'FAILED':<7} {status.target}" + ("" if status.ok else f": {status.error}")
            for status in report.files
        ]
        _emit(args, report.to_dict(), "\n".join(rows) or "Nothing to tangle")
        return 0 if not report.failed else 1

    elif args.command == "expand":
        source = api.expand_block(raw_text, args.block)
        _emit(args, {"block": args.block, "source": source}, source)

    else:
        theme = args.theme or settings.theme
        code_theme = args.code_theme or settings.code_theme
        if args.command == "html":
            _write_or_print(args, api.preview_html(raw_text, theme, code_theme, base_dir))
        elif args.command == "deck":
            _write_or_print(args, api.preview_slides(raw_text, theme, code_theme, base_dir))
        elif args.command == "pdf":
            message = api.save_pdf(raw_text, theme, args.output, code_theme, base_dir)
            _emit(args, {"path": str(args.output)}, message)
        else:
            message = api.save_slides_pdf(raw_text, theme, code_theme, args.output, base_dir)
            _emit(args, {"path": str(args.output)}, message)

    return 0


def main(argv=None) -> int:
    """Command-line entry point for litdoc."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s  %(message)s",
    )

    try:
        return _dispatch(args)
    except LitdocError as exc:
        if args.debug:
            raise
        if args.json:
            print(json.dumps(exc.to_dict(), indent=2))
        else:
            logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
