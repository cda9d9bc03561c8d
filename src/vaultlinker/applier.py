"""Rewrite document text with its unambiguous matches."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from itertools import groupby

from .models import CandidateMatch

log = logging.getLogger(__name__)


class ApplyConsistencyError(ValueError):
    """Recorded matches no longer line up with the document text."""


def _line_order(m: CandidateMatch) -> tuple[int, int]:
    return (m.line_number, -m.position)


def apply_line(line: str, matches: list[CandidateMatch]) -> str:
    """Apply matches for one line, right to left so offsets stay valid."""
    updated = line
    previous_start: int | None = None

    for m in sorted(matches, key=lambda m: -m.position):
        if previous_start is not None and m.end > previous_start:
            raise ApplyConsistencyError(
                f"line {m.line_number}: match {m.found_text!r} at {m.position} overlaps another match"
            )
        actual = updated[m.position:m.end]
        if actual != m.found_text:
            raise ApplyConsistencyError(
                f"line {m.line_number}: expected {m.found_text!r} at {m.position}, found {actual!r}"
            )
        updated = updated[:m.position] + m.replacement_text + updated[m.end:]
        previous_start = m.position

    opened = updated.count("[[") - line.count("[[")
    closed = updated.count("]]") - line.count("]]")
    if opened != closed:
        raise ApplyConsistencyError(f"unbalanced wikilink brackets after edit: {updated!r}")
    if "[[[" in updated or "]]]" in updated:
        log.warning("Possible nested wikilink after replacement: %s", updated)
    return updated


def apply_matches(content: str, matches: Iterable[CandidateMatch]) -> str:
    """Return ``content`` with every match replaced.

    Either every match is applied or :class:`ApplyConsistencyError` is raised
    and nothing is; a partial edit is never returned.
    """
    ordered = sorted(matches, key=_line_order)
    if not ordered:
        return content

    lines = content.splitlines(keepends=True)

    for line_number, group in groupby(ordered, key=lambda m: m.line_number):
        idx = line_number - 1
        if not 0 <= idx < len(lines):
            raise ApplyConsistencyError(
                f"line {line_number} is out of range ({len(lines)} lines)"
            )
        raw = lines[idx]
        body = raw.rstrip("\r\n")
        lines[idx] = apply_line(body, list(group)) + raw[len(body):]

    return "".join(lines)
