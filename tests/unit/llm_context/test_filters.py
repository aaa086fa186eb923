from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from llm_context import selection
from llm_context.selection import (
    FilesystemExpander,
    is_excluded,
    is_regular_file,
    normalize_pattern,
    select_files,
    to_posix,
    walk_files,
)

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class StaticExpander:
    def __init__(self, matches: dict[str, list[str]]) -> None:
        self.matches = matches
        self.calls: list[str] = []

    def expand(self, pattern: str) -> list[str]:
        self.calls.append(pattern)
        return self.matches.get(pattern, [])


@pytest.mark.unit
def test_normalize_pattern_strips_and_normalizes() -> None:
    assert normalize_pattern("  ./src/*.py ") == "src/*.py"
    assert normalize_pattern("src\\*.py") == "src/*.py"
    assert normalize_pattern("") == ""


@pytest.mark.unit
def test_to_posix_drops_leading_dot_segment() -> None:
    assert to_posix("./src/file1.js") == "src/file1.js"
    assert to_posix("src/file1.js") == "src/file1.js"


@pytest.mark.unit
def test_walk_files_prunes_vcs_directories(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "a.py").write_text("", encoding="utf-8")
    (tmp_path / "b.py").write_text("", encoding="utf-8")

    assert sorted(walk_files(tmp_path)) == ["b.py", "pkg/a.py"]


@pytest.mark.unit
def test_glob_star_matches_across_directories(project: Path) -> None:
    expander = FilesystemExpander(project)

    assert sorted(expander.expand("*.js")) == [
        "node_modules/exclude_me.js",
        "src/file1.js",
        "src/file2.js",
        "test.js",
    ]
    assert sorted(expander.expand("./src/*")) == ["src/file1.js", "src/file2.js"]


@pytest.mark.unit
def test_literal_path_is_taken_as_is(project: Path) -> None:
    weird = project / "[abc].txt"
    weird.write_text("literal\n", encoding="utf-8")

    assert FilesystemExpander(project).expand("[abc].txt") == ["[abc].txt"]
    assert FilesystemExpander(project).expand("./src/file1.js") == ["src/file1.js"]


@pytest.mark.unit
def test_is_excluded_uses_substring_containment() -> None:
    assert is_excluded("node_modules/exclude_me.js", ["node_modules/"])
    assert is_excluded("src/file1.js", ["e1.j"])
    assert is_excluded("src/file1.js", ["src/file1.js"])
    assert not is_excluded("src/file1.js", ["*.js"])
    assert not is_excluded("src/file1.js", [""])


@pytest.mark.unit
def test_is_regular_file_rejects_directories_and_broken_links(tmp_path: Path) -> None:
    regular = tmp_path / "a.txt"
    regular.write_text("x", encoding="utf-8")
    broken = tmp_path / "broken"
    broken.symlink_to(tmp_path / "missing")

    assert is_regular_file(regular)
    assert not is_regular_file(tmp_path)
    assert not is_regular_file(broken)
    assert not is_regular_file(tmp_path / "missing")


@pytest.mark.unit
def test_select_files_respects_includes_excludes(project: Path) -> None:
    selected = select_files(["*.js"], ["node_modules/"], root=project)

    assert selected == ["src/file1.js", "src/file2.js", "test.js"]


@pytest.mark.unit
def test_select_files_deduplicates_and_sorts(project: Path) -> None:
    selected = select_files(["test.js", "src/file2.js", "./src/file2.js", "src/*"], [], root=project)

    assert selected == ["src/file1.js", "src/file2.js", "test.js"]


@pytest.mark.unit
def test_select_files_without_includes_is_empty(project: Path) -> None:
    assert select_files([], [], root=project) == []


@pytest.mark.unit
def test_select_files_drops_directories_and_missing_files(project: Path) -> None:
    selected = select_files(["src", "does/not/exist.py"], [], root=project)

    assert selected == []


@pytest.mark.unit
def test_select_files_skips_broken_symlinks(project: Path) -> None:
    (project / "dangling.js").symlink_to(project / "gone.js")

    assert select_files(["*.js"], ["src/", "node_modules"], root=project) == ["test.js"]


@pytest.mark.unit
@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="root can read any file")
def test_select_files_skips_unreadable_files(project: Path) -> None:
    secret = project / "secret.js"
    secret.write_text("// secret\n", encoding="utf-8")
    secret.chmod(0)

    assert "secret.js" not in select_files(["*.js"], [], root=project)


@pytest.mark.unit
def test_select_files_uses_injected_expander(tmp_path: Path) -> None:
    for name in ("b.txt", "a.txt", "skip.txt"):
        (tmp_path / name).write_text(name, encoding="utf-8")
    expander = StaticExpander({"first": ["b.txt", "skip.txt"], "second": ["a.txt", "b.txt"]})

    selected = select_files(["first", "second"], ["skip"], root=tmp_path, expander=expander)

    assert expander.calls == ["first", "second"]
    assert selected == ["a.txt", "b.txt"]


@pytest.mark.unit
def test_select_files_logs_selection_stats_at_debug(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "a.txt").write_text("a", encoding="utf-8")
    logger_mock = mocker.patch.object(selection, "logger")
    expander = StaticExpander({"a.txt": ["a.txt"]})

    select_files(["a.txt", "*.nothing"], [], root=tmp_path, expander=expander)

    logger_mock.debug.assert_any_call("pattern_matched_nothing", pattern="*.nothing")
    logger_mock.debug.assert_any_call("files_selected", candidates=1, excluded=0, skipped=0, selected=1)
    logger_mock.info.assert_not_called()
