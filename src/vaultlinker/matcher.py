"""Find back-populate candidates in a document, one line at a time."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from .exclusion import Zone, collect_exclusion_zones, compile_do_not_back_populate, overlaps_zone
from .line_classifier import LineClassifier
from .models import CandidateMatch, Document
from .pattern_index import Hit, PatternIndex, target_key
from .wikilinks import format_aliased_wikilink, strip_md_extension

log = logging.getLogger(__name__)

_APOSTROPHES = ("'", "’")


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def is_word_boundary(line: str, start: int, end: int) -> bool:
    """Whether ``line[start:end]`` is a whole word.

    A following ``'t`` (as in "don't") counts as part of the word; other
    possessives such as ``'s`` do not.
    """
    if start > 0 and _is_word_char(line[start - 1]):
        return False
    if end < len(line):
        if _is_word_char(line[end]):
            return False
        if line[end] in _APOSTROPHES and line[end + 1:end + 2] in ("t", "T"):
            return False
    return True


def is_in_markdown_table(line: str, start: int, end: int) -> bool:
    """Whether the span sits between cell delimiters of a table row."""
    trimmed = line.strip()
    return (
        trimmed.startswith("|")
        and trimmed.endswith("|")
        and trimmed.count("|") > 2
        and "|" in line[:start]
        and "|" in line[end:]
    )


def build_replacement(target: str, found_text: str, *, in_table: bool = False) -> str:
    """Link text for ``found_text``, keeping its casing as the display text."""
    replacement = format_aliased_wikilink(target, found_text)
    if in_table:
        replacement = replacement.replace("|", "\\|")
    return replacement


def _resolve_overlaps(hits: Iterable[Hit]) -> list[Hit]:
    # Lower alias index = higher priority; the loser of an overlap is dropped whole.
    accepted: list[Hit] = []
    for hit in sorted(hits, key=lambda h: (h[2], h[0])):
        start, end, _ = hit
        if any(start < a_end and a_start < end for a_start, a_end, _ in accepted):
            continue
        accepted.append(hit)
    accepted.sort()
    return accepted


def find_line_matches(
    line: str,
    line_number: int,
    index: PatternIndex,
    exclusion_zones: list[Zone],
    document_id: str,
) -> list[CandidateMatch]:
    """Candidate matches on one line, left to right and non-overlapping."""
    hits = [
        (start, end, idx)
        for start, end, idx in index.find_all(line)
        if not overlaps_zone(start, end, exclusion_zones) and is_word_boundary(line, start, end)
    ]

    matches: list[CandidateMatch] = []
    for start, end, idx in _resolve_overlaps(hits):
        alias = index.aliases[idx]
        found_text = line[start:end]
        in_table = is_in_markdown_table(line, start, end)
        target = strip_md_extension(alias.target)
        matches.append(
            CandidateMatch(
                document_id=document_id,
                line_number=line_number,
                position=start,
                found_text=found_text,
                replacement_text=build_replacement(target, found_text, in_table=in_table),
                target=target,
                in_table=in_table,
                candidate_targets=index.tied_targets(idx),
                line_text=line,
            )
        )
    return matches


def filter_self_references(
    matches: Iterable[CandidateMatch],
    document_title: str,
    document_aliases: Iterable[str] = (),
) -> list[CandidateMatch]:
    """Drop matches that would link a document to itself."""
    own = {target_key(name) for name in (document_title, *document_aliases)}
    return [m for m in matches if not any(target_key(t) in own for t in m.targets)]


def find_document_matches(
    document: Document,
    index: PatternIndex,
    do_not_back_populate: Sequence[re.Pattern[str]] = (),
) -> list[CandidateMatch]:
    """Scan a whole document and return its self-filtered candidate matches."""
    patterns = [*do_not_back_populate, *compile_do_not_back_populate(document.do_not_back_populate)]
    classifier = LineClassifier()
    matches: list[CandidateMatch] = []

    for line_idx, line in enumerate(document.lines):
        if not line.strip():
            continue
        if classifier.update_for_line(line):
            continue
        if any(p.search(line) for p in patterns):
            continue

        line_number = line_idx + 1
        zones = collect_exclusion_zones(line, line_number, document.link_spans)
        matches.extend(find_line_matches(line, line_number, index, zones, document.id))

    kept = filter_self_references(matches, document.title, document.aliases)
    if len(kept) != len(matches):
        log.debug("%s: dropped %d self-referencing matches", document.id, len(matches) - len(kept))
    return kept
