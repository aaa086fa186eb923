"""
context: assemble selected files of a project into one Markdown document for an LLM.

Overview
--------
Files are selected with include patterns (literal paths or find-style globs where
``*`` also matches ``/``) and pruned with exclude substrings. The document is
written to standard output and contains, in order:

   - a title,
   - the current branch and the three most recent commits (``--git``),
   - a map of every file tracked by git (disable with ``--no-ls-files``),
   - one fenced code block per selected file,
   - a trailing prompt (``--prompt=FILE``, disable with ``--no-prompt``).

The run aborts when the cumulative size of the selected files exceeds
``--max-size`` (500KB by default). ``--truncate-large`` keeps only the head of
files above a threshold instead.

Usage
-----
Run ``context --help`` for full options. Common examples:
    - Every Python file except tests:
        context '*.py' --exclude=tests/
    - Two files with git metadata and sizes, no trailing prompt:
        context src/app.py src/util.py --git --show-sizes --no-prompt
    - Pipe into an LLM CLI:
        context 'src/*' --truncate-large=8KB | llm "Document this module"
"""

from __future__ import annotations

import argparse
import io
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from llm_context import __version__
from llm_context.config import DEFAULT_MAX_SIZE
from llm_context.exceptions import ContextError, InvalidSizeError
from llm_context.logging import logger, setup_logging
from llm_context.output_construction import render_context
from llm_context.selection import select_files
from llm_context.settings import Settings, env_defaults
from llm_context.sizes import human_size, parse_size
from llm_context.vcs import GitInfo, NoVersionControl

if TYPE_CHECKING:
    from collections.abc import Sequence

EPILOG = """\
Sizes accept B, K/KB, M/MB and G/GB suffixes (powers of 1024, case-insensitive).
Exclude patterns are plain substrings: --exclude=node_modules/ drops every path
containing "node_modules/".

Examples:
  context '*.py' --exclude=tests/
  context src/app.py --git --show-sizes --no-prompt
  context 'src/*' --max-size=1MB --truncate-large=16KB --summary
"""


class ContextHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Help formatter printing ``Usage:`` instead of argparse's ``usage:``."""

    def add_usage(self, usage, actions, groups, prefix=None) -> None:  # noqa: ANN001
        if prefix is None:
            prefix = "Usage: "
        super().add_usage(usage, actions, groups, prefix)


def size_arg(text: str) -> int:
    """Parse a size argument for argparse.

    Raises:
        argparse.ArgumentTypeError: if the size is malformed.
    """
    try:
        return parse_size(text)
    except InvalidSizeError as e:
        raise argparse.ArgumentTypeError(e.message) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Defaults for ``--max-size`` and ``--prompt`` come from ``LLM_CONTEXT_MAX_SIZE`` and
    ``LLM_CONTEXT_PROMPT`` (environment or ``.env``) when set.

    Returns:
        argparse.ArgumentParser: the parser
    """
    env = env_defaults()
    p = argparse.ArgumentParser(
        prog="context",
        description="Concatenate selected files into a Markdown context document for an LLM.",
        epilog=EPILOG,
        formatter_class=ContextHelpFormatter,
        allow_abbrev=False,
    )
    p.add_argument(
        "patterns",
        nargs="*",
        metavar="PATTERN",
        help="Literal path or glob pattern of files to include.",
    )
    p.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Include pattern (repeatable, same as a positional PATTERN).",
    )
    p.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Drop every path containing PATTERN (repeatable).",
    )
    p.add_argument(
        "--max-size",
        type=size_arg,
        default=env.get("MAX_SIZE", str(DEFAULT_MAX_SIZE)),
        metavar="SIZE",
        help=f"Abort when the total size exceeds SIZE (default: {human_size(DEFAULT_MAX_SIZE)}).",
    )
    p.add_argument(
        "--truncate-large",
        type=size_arg,
        default=None,
        metavar="SIZE",
        help="Only include the first SIZE bytes of larger files.",
    )
    p.add_argument("--git", action="store_true", help="Include branch and recent commits.")
    p.add_argument(
        "--show-sizes",
        "--show-file-sizes",
        dest="show_sizes",
        action="store_true",
        help="Show the size of each file next to its name.",
    )
    p.add_argument(
        "--no-ls-files",
        dest="ls_files",
        action="store_false",
        help="Do not include the list of files tracked by git.",
    )
    p.add_argument(
        "--prompt",
        type=Path,
        default=env.get("PROMPT"),
        metavar="FILE",
        help="Append the contents of FILE (default: the packaged prompt).",
    )
    p.add_argument(
        "--no-prompt",
        dest="use_prompt",
        action="store_false",
        help="Do not append a prompt.",
    )
    p.add_argument("--summary", action="store_true", help="Add a one-line summary for each file.")
    p.add_argument("--log-file", type=str, default="", metavar="FILE", help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse the command line into validated Settings.

    ``--help`` and ``--version`` exit with status 0; unknown ``--`` options and invalid
    values exit with status 2 after printing a diagnostic to stderr. Any other token that
    starts with a single dash, such as ``-notes.md``, is kept as an include pattern.

    Args:
        argv (Sequence[str] | None): the arguments, without the program name; defaults
            to ``sys.argv[1:]``

    Returns:
        Settings: the run configuration
    """
    p = build_parser()
    args, extras = p.parse_known_intermixed_args(argv)
    unknown = [tok for tok in extras if tok.startswith("--") and tok != "--"]
    if unknown:
        p.error(f"unrecognized arguments: {' '.join(unknown)}")
    patterns = [*args.patterns, *(tok for tok in extras if tok != "--")]
    try:
        return Settings(
            include=[*patterns, *args.include],
            exclude=args.exclude,
            max_size=args.max_size,
            truncate_large=args.truncate_large,
            git=args.git,
            show_sizes=args.show_sizes,
            ls_files=args.ls_files,
            prompt=args.prompt,
            use_prompt=args.use_prompt,
            summary=args.summary,
            log_file=args.log_file,
        )
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        p.error(errors)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    root = Path.cwd()
    vcs = GitInfo(root) if settings.git or settings.ls_files else NoVersionControl()
    try:
        selected = select_files(settings.include, settings.exclude, root=root)
        budget = render_context(sys.stdout, selected, settings=settings, root=root, vcs=vcs)
    except ContextError as e:
        sys.stdout.flush()
        logger.error("context_failed", error=str(e), kind=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("context_rendered", files=len(selected), total_bytes=budget.total)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
