from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ContextError(Exception):
    """Base exception for errors raised while assembling a context document."""

    def __str__(self) -> str:
        return getattr(self, "message", self.__class__.__name__)


@dataclass(frozen=True)
class InvalidSizeError(ContextError, ValueError):
    """Raised when a human-readable size string cannot be parsed."""

    text: str

    @property
    def message(self) -> str:
        return f"Invalid size {self.text!r}: expected <number>[B|K|KB|M|MB|G|GB]"


@dataclass(frozen=True)
class SizeLimitExceededError(ContextError):
    """Raised when the cumulative size of the selected files exceeds the limit."""

    limit: int
    total: int
    path: str

    @property
    def message(self) -> str:
        # Imported lazily: sizes imports this module.
        from llm_context.sizes import human_size  # noqa: PLC0415

        return (
            f"Total size {human_size(self.total)} exceeds the maximum size limit of "
            f"{human_size(self.limit)} (while adding {self.path})"
        )


@dataclass(frozen=True)
class MissingPromptFileError(ContextError):
    """Raised when the trailing prompt is enabled but its file does not exist."""

    path: Path

    @property
    def message(self) -> str:
        return f"Prompt file not found: {self.path}"


@dataclass(frozen=True)
class GitCommandError(ContextError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def message(self) -> str:
        return f"`{self.command}` failed with exit code {self.returncode}: {self.stderr.strip()}"


@dataclass(frozen=True)
class NotAGitRepositoryError(ContextError):
    """Raised when the specified directory is not inside a Git work tree."""

    folder: Path
    message: str = "The specified directory is not a Git repository."
