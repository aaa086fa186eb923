from __future__ import annotations

import ast
import json
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomlkit
import yaml
from tomlkit.exceptions import ParseError

from llm_context.config import COMMENT_PREFIXES, SUMMARIZERS, FileRecord, register_summarizer
from llm_context.exceptions import MissingPromptFileError
from llm_context.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

MAX_SUMMARY_COMMENT_LINES = 3
MAX_SUMMARY_ITEMS = 8

_CONSTRUCT_PATTERN = re.compile(
    r"^\s*(?:export\s+)?(?:pub(?:\(crate\))?\s+)?(?:async\s+)?(?:default\s+)?"
    r"(?P<kind>def|class|function|fn|func|struct|enum|interface|trait|impl|type|module)\s+"
    r"(?P<name>[A-Za-z_$][\w$]*)",
    re.MULTILINE,
)


def make_record(rel: str, *, root: Path, truncate_at: int | None = None) -> FileRecord:
    """Create the FileRecord of a selected file.

    Args:
        rel (str): the selected path, as returned by the file selector
        root (Path): the directory `rel` is relative to
        truncate_at (int | None): per-file truncation threshold in bytes, if any

    Returns:
        FileRecord: the record with the file's current size
    """
    path = root / rel
    return FileRecord(path=path, rel=rel, size=path.stat().st_size, truncate_at=truncate_at)


def read_content(rec: FileRecord) -> str:
    """Read the part of a file that goes into the document.

    Only the first `rec.truncate_at` bytes are read for truncated files. Bytes that are
    not valid UTF-8 (including a multi-byte character cut by truncation) are dropped.

    Args:
        rec (FileRecord): the file record

    Returns:
        str: the decoded content
    """
    with rec.path.open("rb") as f:
        data = f.read(rec.truncate_at) if rec.is_truncated else f.read()
    return data.decode("utf-8", errors="ignore")


def make_fence(text: str) -> str:
    """Return a backtick fence longer than any backtick run inside `text`.

    Args:
        text (str): the content to be fenced

    Returns:
        str: at least three backticks
    """
    longest = max((len(m) for m in re.findall(r"`+", text)), default=0)
    return "`" * max(3, longest + 1)


def strip_comment_marker(line: str) -> str | None:
    """Return the text of a comment line, or None if the line is not a comment.

    Args:
        line (str): a source line

    Returns:
        str | None: the comment text without its marker (may be empty)
    """
    s = line.strip()
    for prefix in COMMENT_PREFIXES:
        if s.startswith(prefix):
            if s.startswith("#!"):
                return ""
            text = s.removeprefix(prefix)
            for suffix in ("*/", "-->", '"""', "'''"):
                text = text.removesuffix(suffix)
            return text.strip(" *-#/")
    return None


def leading_comments(lines: Sequence[str], limit: int = MAX_SUMMARY_COMMENT_LINES) -> list[str]:
    """Collect the first non-empty comment lines at the top of a file.

    Blank lines before the first comment are skipped; the first code line ends the scan.

    Args:
        lines (Sequence[str]): the file lines
        limit (int): maximum number of comment lines to return

    Returns:
        list[str]: the comment texts
    """
    out: list[str] = []
    for line in lines:
        if not line.strip():
            if out:
                break
            continue
        text = strip_comment_marker(line)
        if text is None:
            break
        if text:
            out.append(text)
        if len(out) >= limit:
            break
    return out


def declared_constructs(text: str, limit: int = MAX_SUMMARY_ITEMS) -> list[str]:
    """Find declared functions, classes and types with a language-agnostic regex.

    Args:
        text (str): the file content
        limit (int): maximum number of constructs to return

    Returns:
        list[str]: entries such as ``"function test"`` in order of appearance
    """
    seen: list[str] = []
    for m in _CONSTRUCT_PATTERN.finditer(text):
        item = f"{m['kind']} {m['name']}"
        if item not in seen:
            seen.append(item)
        if len(seen) >= limit:
            break
    return seen


def join_items(label: str, items: Sequence[str]) -> str:
    shown = ", ".join(items[:MAX_SUMMARY_ITEMS])
    if len(items) > MAX_SUMMARY_ITEMS:
        shown += f", … (+{len(items) - MAX_SUMMARY_ITEMS} more)"
    return f"{label}: {shown}"


def summarize_mapping(kind: str, data: Any) -> str:  # noqa: ANN401
    if isinstance(data, dict) and data:
        return join_items(f"{kind} with keys", [str(k) for k in data])
    if isinstance(data, list):
        return f"{kind} list with {len(data)} items"
    return ""


@register_summarizer([".yaml", ".yml"])
def summarize_yaml(path: Path) -> str:
    """Summarize a YAML file by the top-level keys of its first document.

    Args:
        path (Path): the YAML file

    Returns:
        str: the summary, or an empty string if the file is not a YAML mapping or list
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8", errors="ignore"))
    except (yaml.YAMLError, RecursionError) as e:
        logger.warning("yaml_summary_failed", path=str(path), error=str(e))
        return ""
    return summarize_mapping("YAML document", data)


@register_summarizer(".toml")
def summarize_toml(path: Path) -> str:
    """Summarize a TOML file by its top-level tables and keys.

    Args:
        path (Path): the TOML file

    Returns:
        str: the summary, or an empty string if the file cannot be parsed
    """
    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8", errors="ignore"))
    except ParseError as e:
        logger.warning("toml_summary_failed", path=str(path), error=str(e))
        return ""
    return summarize_mapping("TOML document", dict(doc))


@register_summarizer(".json")
def summarize_json(path: Path) -> str:
    """Summarize a JSON file by its top-level keys or length.

    Args:
        path (Path): the JSON file

    Returns:
        str: the summary, or an empty string if the file is not valid JSON
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8", errors="ignore"))
    except (ValueError, RecursionError) as e:
        logger.warning("json_summary_failed", path=str(path), error=str(e))
        return ""
    return summarize_mapping("JSON document", data)


@register_summarizer(".py")
def summarize_python(path: Path) -> str:
    """Summarize a Python module by its docstring or its top-level definitions.

    Args:
        path (Path): the Python source file

    Returns:
        str: the first docstring line, the list of top-level definitions, or an empty
            string if the module is empty or cannot be parsed
    """
    try:
        tree = ast.parse(path.read_text(encoding="utf-8", errors="ignore"))
    except (SyntaxError, ValueError, RecursionError):
        return ""
    doc = ast.get_docstring(tree)
    if doc and doc.strip():
        return doc.strip().splitlines()[0]
    defs: list[str] = []
    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            defs.append(f"class {node.name}")
        elif isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
            defs.append(f"def {node.name}")
    return join_items("Defines", defs) if defs else ""


def summarize_text(text: str) -> str:
    """Summarize arbitrary source text.

    Leading comment lines win; otherwise declared constructs are listed; otherwise the
    size of the text is described.

    Args:
        text (str): the file content

    Returns:
        str: a non-empty summary
    """
    lines = text.splitlines()
    comments = leading_comments(lines)
    if comments:
        return " ".join(comments)
    constructs = declared_constructs(text)
    if constructs:
        return join_items("Declares", constructs)
    return f"{len(lines)} lines, {len(text.encode('utf-8'))} bytes"


def summarize_file(rec: FileRecord, content: str) -> str:
    """Derive the one-line synopsis shown in summary mode.

    A summarizer registered for the file name or suffix is tried first, then the generic
    text heuristics of `summarize_text` apply to the emitted content.

    Args:
        rec (FileRecord): the file record
        content (str): the (possibly truncated) content emitted for the file

    Returns:
        str: a non-empty, single-line summary
    """
    summarizer = SUMMARIZERS.get(rec.path.name.lower()) or SUMMARIZERS.get(rec.path.suffix.lower())
    summary = summarizer(rec.path) if summarizer and not rec.is_truncated else ""
    if not summary:
        summary = summarize_text(content)
    return " ".join(summary.split())


def read_prompt(path: Path) -> str:
    """Read the trailing prompt file verbatim.

    Args:
        path (Path): the prompt file

    Raises:
        MissingPromptFileError: if the file does not exist or is not a file.

    Returns:
        str: the file content
    """
    if not path.is_file():
        raise MissingPromptFileError(path=path)
    return path.read_text(encoding="utf-8", errors="ignore")
