from __future__ import annotations

import shutil
import subprocess  # noqa: S404
from pathlib import Path
from typing import Protocol

from llm_context.config import RECENT_COMMITS
from llm_context.exceptions import GitCommandError, NotAGitRepositoryError

_LOG_FORMAT = "%h %s (%an, %ar)"


class VersionControlInfo(Protocol):
    """Read-only view of the version control metadata around the working directory."""

    def available(self) -> bool: ...

    def branch(self) -> str: ...

    def recent_commits(self, limit: int = RECENT_COMMITS) -> list[str]: ...

    def tracked_files(self) -> list[str]: ...


class NoVersionControl:
    """Stand-in used when version control is disabled or absent."""

    def available(self) -> bool:
        return False

    def branch(self) -> str:
        return ""

    def recent_commits(self, limit: int = RECENT_COMMITS) -> list[str]:  # noqa: ARG002
        return []

    def tracked_files(self) -> list[str]:
        return []


class GitInfo:
    """Query git through its command-line binary.

    Args:
        repo (Path | None): a directory inside the work tree; defaults to the current
            directory.
        git_bin (str): name or path of the git executable.
    """

    def __init__(self, repo: Path | None = None, git_bin: str = "git") -> None:
        self.repo = repo or Path.cwd()
        self.git_bin = git_bin
        self._available: bool | None = None

    def run(self, *args: str, cwd: Path | None = None) -> str:
        """Run a git command and return its standard output.

        Raises:
            GitCommandError: if git exits with a non-zero status.
        """
        command = [self.git_bin, *args]
        out = subprocess.run(  # noqa: S603
            command,
            cwd=str(cwd or self.repo),
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
            check=False,
        )
        if out.returncode != 0:
            raise GitCommandError(
                command=" ".join(command),
                returncode=out.returncode,
                stdout=out.stdout,
                stderr=out.stderr,
            )
        return out.stdout

    def available(self) -> bool:
        """Tell whether a git binary exists and the repo directory is inside a work tree."""
        if self._available is None:
            if shutil.which(self.git_bin) is None:
                self._available = False
            else:
                try:
                    self._available = self.run("rev-parse", "--is-inside-work-tree").strip() == "true"
                except (GitCommandError, OSError):
                    self._available = False
        return self._available

    def toplevel(self) -> Path:
        """Return the root of the work tree.

        Raises:
            NotAGitRepositoryError: if the directory is not inside a git work tree.
        """
        if not self.available():
            raise NotAGitRepositoryError(folder=self.repo)
        return Path(self.run("rev-parse", "--show-toplevel").strip())

    def branch(self) -> str:
        return self.run("rev-parse", "--abbrev-ref", "HEAD").strip()

    def recent_commits(self, limit: int = RECENT_COMMITS) -> list[str]:
        out = self.run("log", f"-{limit}", f"--pretty=format:{_LOG_FORMAT}")
        return [line for line in out.splitlines() if line.strip()]

    def tracked_files(self) -> list[str]:
        """List every tracked file of the work tree, relative to its root, sorted."""
        out = self.run("-c", "core.quotepath=off", "ls-files", cwd=self.toplevel())
        return sorted(line for line in out.splitlines() if line.strip())
