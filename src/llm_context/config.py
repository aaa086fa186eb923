from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, computed_field

if TYPE_CHECKING:
    from collections.abc import Callable

    SummarizerFn = Callable[[Path], str]

_ = Path()

KIB = 1024
DEFAULT_MAX_SIZE = 500 * KIB
RECENT_COMMITS = 3

SIZE_UNITS: dict[str, int] = {
    "": 1,
    "B": 1,
    "K": KIB,
    "KB": KIB,
    "M": KIB**2,
    "MB": KIB**2,
    "G": KIB**3,
    "GB": KIB**3,
}
HUMAN_UNITS = ("B", "KB", "MB", "GB", "TB")

# Directories never descended into when expanding glob patterns.
VCS_DIRS = frozenset({".git", ".hg", ".svn"})

DEFAULT_PROMPT_FILE = Path(__file__).parent / "prompts" / "default_prompt.md"

TITLE = "# Code Context"
GIT_SECTION = "## Git Information"
REPOSITORY_MAP_SECTION = "## Repository Files"
FILES_SECTION = "## Files"
PROMPT_SECTION = "## Prompt"


class FileType(StrEnum):
    """Categorization of file types for fence tags and summaries.

    This is a heuristic classification based on file extensions only.
    """

    TEXT = auto()
    PYTHON = auto()
    TOML = auto()
    JSON = auto()
    MARKDOWN = auto()
    YAML = auto()
    HTML = auto()
    CSS = auto()
    JAVASCRIPT = auto()
    TYPESCRIPT = auto()
    BASH = auto()
    RUST = auto()
    GO = auto()
    PHP = auto()
    SQL = auto()
    JAVA = auto()
    C = auto()
    CPP = auto()
    XML = auto()
    INI = auto()
    OTHER = auto()


EXT2LANG: dict[str, FileType] = {
    ".bash": FileType.BASH,
    ".c": FileType.C,
    ".cc": FileType.CPP,
    ".cfg": FileType.INI,
    ".conf": FileType.INI,
    ".cpp": FileType.CPP,
    ".css": FileType.CSS,
    ".cxx": FileType.CPP,
    ".go": FileType.GO,
    ".h": FileType.C,
    ".hpp": FileType.CPP,
    ".htm": FileType.HTML,
    ".html": FileType.HTML,
    ".ini": FileType.INI,
    ".java": FileType.JAVA,
    ".js": FileType.JAVASCRIPT,
    ".json": FileType.JSON,
    ".markdown": FileType.MARKDOWN,
    ".md": FileType.MARKDOWN,
    ".mjs": FileType.JAVASCRIPT,
    ".php": FileType.PHP,
    ".py": FileType.PYTHON,
    ".rs": FileType.RUST,
    ".sh": FileType.BASH,
    ".sql": FileType.SQL,
    ".toml": FileType.TOML,
    ".ts": FileType.TYPESCRIPT,
    ".tsx": FileType.TYPESCRIPT,
    ".txt": FileType.TEXT,
    ".xml": FileType.XML,
    ".yaml": FileType.YAML,
    ".yml": FileType.YAML,
    ".zsh": FileType.BASH,
}

_FENCE_LANGUAGE: dict[FileType, str] = {
    FileType.PYTHON: "python",
    FileType.TOML: "toml",
    FileType.JSON: "json",
    FileType.MARKDOWN: "markdown",
    FileType.YAML: "yaml",
    FileType.HTML: "html",
    FileType.CSS: "css",
    FileType.JAVASCRIPT: "javascript",
    FileType.TYPESCRIPT: "typescript",
    FileType.BASH: "bash",
    FileType.RUST: "rust",
    FileType.GO: "go",
    FileType.PHP: "php",
    FileType.SQL: "sql",
    FileType.JAVA: "java",
    FileType.C: "c",
    FileType.CPP: "cpp",
    FileType.XML: "xml",
    FileType.INI: "ini",
    FileType.TEXT: "text",
}

# Leading markers stripped from comment lines when deriving a summary.
COMMENT_PREFIXES = ("///", "//", "#", "--", ";", "/*", "*/", "*", "<!--", '"""', "'''")

SUMMARIZERS: dict[str, Callable[[Path], str]] = {}


def guess_file_type(path: Path) -> FileType:
    """Heuristic guess of file type based on extension.

    Args:
        path (Path): The file path to guess the type for.

    Returns:
        FileType: The guessed file type, or FileType.OTHER if unknown.
    """
    return EXT2LANG.get(path.suffix.lower(), FileType.OTHER)


def fence_language(path: Path) -> str:
    """Get the code fence info string for a file.

    Known extensions map to a language name; unknown extensions are used verbatim
    (without the dot) and files without an extension get no tag.

    Args:
        path (Path): The file path.

    Returns:
        str: The info string for the opening fence, possibly empty.
    """
    file_type = guess_file_type(path)
    if file_type is FileType.OTHER:
        return path.suffix.lstrip(".").lower()
    return _FENCE_LANGUAGE[file_type]


class FileRecord(BaseModel):
    """Lightweight metadata for a file included in the context document.

    Attributes:
        path: Path to the file on disk, as selected.
        rel: POSIX form of the path, used in headings.
        size: File size in bytes.
        truncate_at: Per-file truncation threshold in bytes; None disables truncation.
        file_type: Categorized file type.
        language: Code fence info string.
        is_truncated: Whether only the first `truncate_at` bytes are emitted.
        emitted_size: Bytes counted against the size budget.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="File path")
    rel: str = Field(..., description="File path in POSIX form")
    size: int = Field(..., ge=0, description="File size in bytes")
    truncate_at: int | None = Field(
        default=None,
        ge=0,
        description="Truncation threshold in bytes; None means no truncation",
    )

    @computed_field
    @property
    def file_type(self) -> FileType:
        """Categorize the file type based on its extension."""
        return guess_file_type(self.path)

    @computed_field
    @property
    def language(self) -> str:
        """Get the code fence info string for the file."""
        return fence_language(self.path)

    @computed_field
    @property
    def is_truncated(self) -> bool:
        """Determine if the file is larger than the truncation threshold."""
        if self.truncate_at is None:
            return False
        return self.size > self.truncate_at

    @computed_field
    @property
    def emitted_size(self) -> int:
        """Number of bytes of the file that end up in the document."""
        if self.truncate_at is not None and self.is_truncated:
            return self.truncate_at
        return self.size


def register_summarizer(
    key: str | list[str],
) -> Callable[[SummarizerFn], SummarizerFn]:
    """Decorator to register a summary function based on file suffix or name.

    Args:
        key (str | list[str]): The lower-cased file suffix (e.g. ".yaml") or exact file name
            (e.g. "pyproject.toml") that the decorated function handles. Can be a single
            string or a list of strings for multiple keys.

    Returns:
        Callable[[SummarizerFn], SummarizerFn]: A decorator that registers the given function
        in the SUMMARIZERS mapping under the specified key(s) and returns it.
    """

    def decorator(func: SummarizerFn) -> SummarizerFn:
        for k in [key] if isinstance(key, str) else key:
            SUMMARIZERS[k] = func
        return func

    return decorator
