from __future__ import annotations

from pathlib import Path

import pytest

LARGE_PADDING = 3500
SMALL_PADDING = 500


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a small project tree and make it the current directory."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "file1.js").write_text("// Test file 1 - identifiable content\n", encoding="utf-8")
    (tmp_path / "src" / "file2.js").write_text("// Test file 2 - identifiable content\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "exclude_me.js").write_text(
        "// Should be excluded - node_modules content\n",
        encoding="utf-8",
    )
    (tmp_path / "test.js").write_text(
        "// Test file header\n"
        "// This is a description\n"
        "// A third comment line\n"
        "// And one more comment\n"
        "function test() {\n"
        "  // This is a function\n"
        '  console.log("Hello");\n'
        "}\n",
        encoding="utf-8",
    )
    (tmp_path / "large.txt").write_bytes(
        b"This is a large test file that should be more than 3KB in size.\n" + b"\0" * LARGE_PADDING,
    )
    (tmp_path / "small.txt").write_bytes(
        b"This is a small test file that should be less than 2KB in size.\n" + b"\0" * SMALL_PADDING,
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LLM_CONTEXT_MAX_SIZE", raising=False)
    monkeypatch.delenv("LLM_CONTEXT_PROMPT", raising=False)
    return tmp_path
