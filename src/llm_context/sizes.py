"""Human-readable sizes and the running size budget of a context run."""

from __future__ import annotations

import re
from dataclasses import dataclass

from llm_context.config import HUMAN_UNITS, KIB, SIZE_UNITS
from llm_context.exceptions import InvalidSizeError, SizeLimitExceededError

_SIZE_PATTERN = re.compile(r"^\s*(?P<number>\d+(?:\.\d*)?|\.\d+)\s*(?P<unit>[a-z]*)\s*$", re.IGNORECASE)


def parse_size(text: str) -> int:
    """Parse a human-readable size such as ``2KB`` or ``1.5m`` into bytes.

    Units are case-insensitive powers of 1024: ``K``/``KB``, ``M``/``MB`` and
    ``G``/``GB``. A bare number (or ``B``) is a byte count. Fractional results are
    floored.

    Args:
        text (str): the size to parse

    Raises:
        InvalidSizeError: if the text is not a non-negative number with a known unit.

    Returns:
        int: the size in bytes
    """
    match = _SIZE_PATTERN.match(text or "")
    if match is None:
        raise InvalidSizeError(text=text)
    unit = match["unit"].upper()
    if unit not in SIZE_UNITS:
        raise InvalidSizeError(text=text)
    return int(float(match["number"]) * SIZE_UNITS[unit])


def human_size(nbytes: int) -> str:
    """Render a byte count with the largest unit that keeps the value >= 1.

    Args:
        nbytes (int): the size in bytes

    Returns:
        str: e.g. ``"512B"``, ``"2KB"`` or ``"3.5KB"``
    """
    value = float(nbytes)
    unit = HUMAN_UNITS[0]
    for unit in HUMAN_UNITS:
        if value < KIB or unit == HUMAN_UNITS[-1]:
            break
        value /= KIB
    text = f"{value:.1f}".removesuffix(".0")
    return f"{text}{unit}"


@dataclass(frozen=True)
class SizeBudget:
    """Running total of bytes emitted, checked against the configured maximum.

    The budget is immutable: `add` returns the updated budget so the caller threads it
    through the per-file loop.
    """

    limit: int
    total: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.total)

    def add(self, nbytes: int, path: str) -> SizeBudget:
        """Account for `nbytes` more bytes coming from `path`.

        Raises:
            SizeLimitExceededError: if the new total is above the limit.
        """
        total = self.total + nbytes
        if total > self.limit:
            raise SizeLimitExceededError(limit=self.limit, total=total, path=path)
        return SizeBudget(limit=self.limit, total=total)
