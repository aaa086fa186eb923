from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from llm_context.config import (
    DEFAULT_PROMPT_FILE,
    FILES_SECTION,
    GIT_SECTION,
    PROMPT_SECTION,
    RECENT_COMMITS,
    REPOSITORY_MAP_SECTION,
    TITLE,
    FileRecord,
)
from llm_context.exceptions import GitCommandError, NotAGitRepositoryError
from llm_context.file_manipulation import make_fence, make_record, read_content, read_prompt, summarize_file
from llm_context.logging import logger
from llm_context.sizes import SizeBudget, human_size
from llm_context.vcs import NoVersionControl

if TYPE_CHECKING:
    from collections.abc import Sequence

    from llm_context.settings import Settings
    from llm_context.vcs import VersionControlInfo


def write_git_section(out: TextIO, vcs: VersionControlInfo) -> None:
    """Write the branch name and the most recent commits, if git can tell them.

    Args:
        out (TextIO): the output stream
        vcs (VersionControlInfo): version control capability
    """
    if not vcs.available():
        logger.debug("git_section_skipped", reason="unavailable")
        return
    try:
        branch = vcs.branch()
        commits = vcs.recent_commits(RECENT_COMMITS)
    except GitCommandError as e:
        logger.warning("git_section_skipped", reason=e.message)
        return
    out.write(f"{GIT_SECTION}\n\n")
    out.write(f"Branch: {branch}\n\n")
    out.write("Recent commits:\n")
    for commit in commits:
        out.write(f"- {commit}\n")
    out.write("\n")


def write_repository_map(out: TextIO, vcs: VersionControlInfo) -> None:
    """Write every tracked file of the repository, independent of the selection.

    Args:
        out (TextIO): the output stream
        vcs (VersionControlInfo): version control capability
    """
    if not vcs.available():
        logger.debug("repository_map_skipped", reason="unavailable")
        return
    try:
        tracked = vcs.tracked_files()
    except (GitCommandError, NotAGitRepositoryError) as e:
        logger.warning("repository_map_skipped", reason=e.message)
        return
    out.write(f"{REPOSITORY_MAP_SECTION}\n\n")
    out.write("```text\n")
    for rel in tracked:
        out.write(f"{rel}\n")
    out.write("```\n\n")


def write_file_section(out: TextIO, rec: FileRecord, *, show_sizes: bool, summary: bool) -> None:
    """Write the heading, optional summary and fenced content of one file.

    Args:
        out (TextIO): the output stream
        rec (FileRecord): the file to render
        show_sizes (bool): annotate the heading with the human-readable size
        summary (bool): add a summary line before the content
    """
    heading = f"### {rec.rel}"
    if show_sizes:
        heading += f" (Size: {human_size(rec.size)})"
    out.write(f"{heading}\n\n")

    content = read_content(rec)
    if summary:
        out.write(f"> Summary: {summarize_file(rec, content)}\n\n")

    fence = make_fence(content)
    body = content if content.endswith("\n") or not content else content + "\n"
    out.write(f"{fence}{rec.language}\n{body}{fence}\n")
    if rec.is_truncated and rec.truncate_at is not None:
        omitted = rec.size - rec.truncate_at
        out.write(
            f"\n*[File truncated: showing first {human_size(rec.truncate_at)} of "
            f"{human_size(rec.size)} ({human_size(omitted)} omitted)]*\n",
        )
        logger.info("file_truncated", path=rec.rel, size=rec.size, kept=rec.truncate_at)
    out.write("\n")


def write_files_section(
    out: TextIO,
    selected: Sequence[str],
    *,
    root: Path,
    settings: Settings,
) -> SizeBudget:
    """Write the Files section, enforcing the size budget file by file.

    Args:
        out (TextIO): the output stream
        selected (Sequence[str]): the sorted candidate file set
        root (Path): the directory the candidate paths are relative to
        settings (Settings): run configuration

    Raises:
        SizeLimitExceededError: as soon as a file would push the total above
            `settings.max_size`; that file is not written.

    Returns:
        SizeBudget: the final budget
    """
    out.write(f"{FILES_SECTION}\n\n")
    budget = SizeBudget(limit=settings.max_size)
    for rel in selected:
        rec = make_record(rel, root=root, truncate_at=settings.truncate_large)
        budget = budget.add(rec.emitted_size, rec.rel)
        logger.debug("file_rendered", path=rec.rel, size=rec.size, total=budget.total)
        write_file_section(out, rec, show_sizes=settings.show_sizes, summary=settings.summary)
    return budget


def write_prompt_section(out: TextIO, prompt_file: Path) -> None:
    """Append the verbatim prompt text.

    Raises:
        MissingPromptFileError: if the prompt file does not exist.
    """
    text = read_prompt(prompt_file)
    out.write(f"{PROMPT_SECTION}\n\n")
    out.write(text if text.endswith("\n") else text + "\n")


def render_context(
    out: TextIO,
    selected: Sequence[str],
    *,
    settings: Settings,
    root: Path | None = None,
    vcs: VersionControlInfo | None = None,
) -> SizeBudget:
    """Stream the context document for the selected files to `out`.

    Sections are written in a fixed order: title, git information, repository map,
    files, prompt. Optional git sections are skipped silently when version control is
    unavailable; hard errors propagate and leave whatever was already written.

    Args:
        out (TextIO): the output stream
        selected (Sequence[str]): the sorted candidate file set
        settings (Settings): run configuration
        root (Path | None): directory the candidate paths are relative to; defaults to
            the current directory
        vcs (VersionControlInfo | None): version control capability; defaults to none

    Returns:
        SizeBudget: the final size budget of the run
    """
    root = root or Path.cwd()
    vcs = vcs or NoVersionControl()

    out.write(f"{TITLE}\n\n")
    if settings.git:
        write_git_section(out, vcs)
    if settings.ls_files:
        write_repository_map(out, vcs)
    budget = write_files_section(out, selected, root=root, settings=settings)
    if settings.use_prompt:
        write_prompt_section(out, settings.prompt or DEFAULT_PROMPT_FILE)
    return budget


def build_context(
    selected: Sequence[str],
    *,
    settings: Settings,
    root: Path | None = None,
    vcs: VersionControlInfo | None = None,
) -> str:
    """Render the context document into a string.

    Args:
        selected (Sequence[str]): the sorted candidate file set
        settings (Settings): run configuration
        root (Path | None): directory the candidate paths are relative to
        vcs (VersionControlInfo | None): version control capability

    Returns:
        str: the whole Markdown document
    """
    out = io.StringIO()
    render_context(out, selected, settings=settings, root=root, vcs=vcs)
    return out.getvalue()
