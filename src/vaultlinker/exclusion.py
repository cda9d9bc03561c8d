"""Per-line exclusion zones: text that must never be back-populated."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import LinkSpan

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]+\)")
_INLINE_CODE_RE = re.compile(r"`[^`]+`")

Zone = tuple[int, int]


def collect_exclusion_zones(
    line: str,
    line_number: int,
    link_spans: Iterable[LinkSpan] = (),
) -> list[Zone]:
    """Return the half-open ranges of ``line`` that are off limits.

    Only spans recorded for ``line_number`` are used, so zones found on other
    lines never leak into this one.
    """
    zones: list[Zone] = [
        (span.start, span.end) for span in link_spans if span.line_number == line_number
    ]

    for pattern in (_MARKDOWN_LINK_RE, _INLINE_CODE_RE):
        for m in pattern.finditer(line):
            zones.append((m.start(), m.end()))

    zones.sort()
    return zones


def compile_do_not_back_populate(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile exclusion entries into case-insensitive whole-word regexes."""
    compiled: list[re.Pattern[str]] = []
    for index, pattern in enumerate(patterns):
        if not isinstance(pattern, str) or not pattern.strip():
            raise ValueError(
                f"do_not_back_populate: entry at index {index} is empty or not a string"
            )
        try:
            compiled.append(re.compile(rf"\b{re.escape(pattern.strip())}\b", re.IGNORECASE))
        except re.error as e:
            raise ValueError(f"do_not_back_populate: invalid pattern {pattern!r}: {e}") from e
    return compiled


def overlaps_zone(start: int, end: int, zones: list[Zone]) -> bool:
    """Check if ``[start, end)`` intersects any zone (zones sorted by start)."""
    for z_start, z_end in zones:
        if z_start >= end:
            break
        if start < z_end and end > z_start:
            return True
    return False
