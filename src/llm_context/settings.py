from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field

from llm_context.config import DEFAULT_MAX_SIZE

ENV_PREFIX = "LLM_CONTEXT_"
ENV_KEYS = ("MAX_SIZE", "PROMPT")


def env_defaults() -> dict[str, str]:
    """Collect ``LLM_CONTEXT_*`` defaults from a ``.env`` file and the environment.

    The ``.env`` file is looked up from the current directory upwards. Values from the
    process environment take precedence over the file.

    Returns:
        dict[str, str]: the non-empty values keyed by their name without the prefix,
            e.g. ``{"MAX_SIZE": "1MB"}``.
    """
    env_file = find_dotenv(usecwd=True)
    values = dotenv_values(env_file) if env_file else {}
    out: dict[str, str] = {}
    for key in ENV_KEYS:
        name = ENV_PREFIX + key
        value = os.environ.get(name) or values.get(name)
        if value:
            out[key] = value
    return out


class Settings(BaseModel):
    """Configuration settings for a single context run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    include: list[str] = Field(default_factory=list, description="Include patterns.")
    exclude: list[str] = Field(default_factory=list, description="Exclude substrings.")
    max_size: int = Field(
        default=DEFAULT_MAX_SIZE,
        gt=0,
        description="Abort when the cumulative size exceeds this many bytes.",
    )
    truncate_large: int | None = Field(
        default=None,
        ge=0,
        description="Truncate files above this many bytes; None disables truncation.",
    )
    git: bool = Field(default=False, description="Include the git information block.")
    show_sizes: bool = Field(default=False, description="Annotate files with their size.")
    ls_files: bool = Field(default=True, description="Include the repository map.")
    prompt: Path | None = Field(
        default=None,
        description="Trailing prompt file; None selects the packaged default.",
    )
    use_prompt: bool = Field(default=True, description="Append the trailing prompt.")
    summary: bool = Field(default=False, description="Add a summary line per file.")
    log_file: str = Field(default="", description="Log file path.")
