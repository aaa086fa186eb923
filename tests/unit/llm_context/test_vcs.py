from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from llm_context import vcs
from llm_context.exceptions import GitCommandError, NotAGitRepositoryError
from llm_context.vcs import GitInfo, NoVersionControl

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.mark.unit
def test_no_version_control_is_empty() -> None:
    none = NoVersionControl()

    assert none.available() is False
    assert none.branch() == ""
    assert none.recent_commits() == []
    assert none.tracked_files() == []


@pytest.mark.unit
def test_git_unavailable_without_binary(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(vcs.shutil, "which", return_value=None)
    run_mock = mocker.patch.object(vcs.subprocess, "run")

    info = GitInfo(tmp_path)

    assert info.available() is False
    run_mock.assert_not_called()
    with pytest.raises(NotAGitRepositoryError):
        info.toplevel()


@pytest.mark.unit
def test_git_unavailable_outside_work_tree(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(vcs.shutil, "which", return_value="/usr/bin/git")
    run_mock = mocker.patch.object(
        vcs.subprocess,
        "run",
        return_value=completed(returncode=128, stderr="fatal: not a git repository"),
    )

    info = GitInfo(tmp_path)

    assert info.available() is False
    assert info.available() is False
    run_mock.assert_called_once()


@pytest.mark.unit
def test_git_queries_parse_output(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(vcs.shutil, "which", return_value="/usr/bin/git")
    outputs = {
        ("rev-parse", "--is-inside-work-tree"): "true\n",
        ("rev-parse", "--show-toplevel"): f"{tmp_path}\n",
        ("rev-parse", "--abbrev-ref", "HEAD"): "feature/x\n",
        ("log", "-3", "--pretty=format:%h %s (%an, %ar)"): "a1 fix (Ann, 2 days ago)\nb2 add (Bob, 3 weeks ago)",
        ("-c", "core.quotepath=off", "ls-files"): "src/b.py\nREADME.md\n\n",
    }
    mocker.patch.object(
        vcs.subprocess,
        "run",
        side_effect=lambda command, **_: completed(outputs[tuple(command[1:])]),
    )

    info = GitInfo(tmp_path)

    assert info.available() is True
    assert info.branch() == "feature/x"
    assert info.recent_commits() == ["a1 fix (Ann, 2 days ago)", "b2 add (Bob, 3 weeks ago)"]
    assert info.tracked_files() == ["README.md", "src/b.py"]


@pytest.mark.unit
def test_git_failure_raises_command_error(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(vcs.subprocess, "run", return_value=completed(returncode=128, stderr="bad revision"))

    with pytest.raises(GitCommandError) as exc_info:
        GitInfo(tmp_path).branch()

    assert exc_info.value.returncode == 128
    assert "bad revision" in str(exc_info.value)
