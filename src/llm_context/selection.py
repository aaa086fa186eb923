from __future__ import annotations

import fnmatch
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from llm_context.config import VCS_DIRS
from llm_context.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class PatternExpander(Protocol):
    """Capability that turns one include pattern into matching paths."""

    def expand(self, pattern: str) -> list[str]: ...


def to_posix(path: str) -> str:
    """Normalize a path string to POSIX form without a leading ``./``.

    Args:
        path (str): the path as given on the command line

    Returns:
        str: e.g. ``"src/app.py"`` for ``"./src/app.py"`` or ``"src\\app.py"``
    """
    return Path(path.replace("\\", "/")).as_posix()


def normalize_pattern(pattern: str) -> str:
    """Strip whitespace, backslashes and leading ``./`` segments from a glob pattern.

    Args:
        pattern (str): the glob pattern

    Returns:
        str: the normalized pattern, possibly empty
    """
    out = (pattern or "").strip().replace("\\", "/")
    while out.startswith("./"):
        out = out[2:]
    return out


def walk_files(root: Path) -> list[str]:
    """Walk the directory tree rooted at `root` and return every file path.

    Version-control metadata directories are pruned.

    Args:
        root (Path): the root directory to walk

    Returns:
        list[str]: the POSIX paths of all files found, relative to `root`
    """
    results: list[str] = []
    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in VCS_DIRS)
        base = Path(current).relative_to(root)
        results.extend((base / f).as_posix() for f in sorted(files))
    return results


class FilesystemExpander:
    """Expand patterns against the file tree with find-like semantics.

    An existing path is taken literally. Anything else is matched against every relative
    path under `root` with `fnmatch`, where ``*`` also matches ``/``. The tree is walked
    lazily, at most once per expander.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or Path.cwd()
        self._tree: list[str] | None = None

    def tree(self) -> list[str]:
        if self._tree is None:
            self._tree = walk_files(self.root)
        return self._tree

    def expand(self, pattern: str) -> list[str]:
        if pattern and (self.root / pattern).exists():
            return [to_posix(pattern)]
        glob = normalize_pattern(pattern)
        if not glob:
            return []
        return [rel for rel in self.tree() if fnmatch.fnmatchcase(rel, glob)]


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular and readable.

    Symbolic links are followed, so a broken link is not a regular file.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular and readable, False otherwise.
    """
    try:
        st = path.stat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and os.access(path, os.R_OK)


def is_excluded(rel: str, excludes: Iterable[str]) -> bool:
    """Check if any exclude pattern occurs in a path.

    Exclusion is plain substring containment, not glob matching.

    Args:
        rel (str): the candidate path
        excludes (Iterable[str]): the exclude patterns

    Returns:
        bool: True if `rel` contains one of the non-empty patterns
    """
    return any(exc and exc in rel for exc in excludes)


def select_files(
    includes: Sequence[str],
    excludes: Sequence[str],
    *,
    root: Path | None = None,
    expander: PatternExpander | None = None,
) -> list[str]:
    """Build the candidate file set for a run.

    The union of all include pattern expansions is deduplicated, filtered with the
    exclude substrings, sorted and finally stripped of anything that is not a regular,
    readable file.

    Args:
        includes (Sequence[str]): literal paths or glob patterns
        excludes (Sequence[str]): exclude substrings
        root (Path | None): directory patterns are resolved against; defaults to the
            current directory
        expander (PatternExpander | None): pattern expansion capability; defaults to a
            `FilesystemExpander` over `root`

    Returns:
        list[str]: the selected paths, sorted ascending
    """
    root = root or Path.cwd()
    expander = expander or FilesystemExpander(root)

    candidates: set[str] = set()
    for pattern in includes:
        matches = expander.expand(pattern)
        if not matches:
            logger.debug("pattern_matched_nothing", pattern=pattern)
        candidates.update(matches)

    kept = sorted(rel for rel in candidates if not is_excluded(rel, excludes))
    selected = [rel for rel in kept if is_regular_file(root / rel)]
    logger.debug(
        "files_selected",
        candidates=len(candidates),
        excluded=len(candidates) - len(kept),
        skipped=len(kept) - len(selected),
        selected=len(selected),
    )
    return selected
