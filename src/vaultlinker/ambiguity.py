"""Corpus-wide split of candidate matches into safe and ambiguous ones."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import AmbiguousMatch, CandidateMatch, MatchPartition
from .pattern_index import fold_case, target_key

log = logging.getLogger(__name__)


def _match_order(m: CandidateMatch) -> tuple[str, int, int]:
    return (m.document_id, m.line_number, m.position)


def distinct_targets(matches: Iterable[CandidateMatch]) -> tuple[str, ...]:
    """Targets implied by ``matches``, deduplicated case-insensitively."""
    seen: dict[str, str] = {}
    for m in matches:
        for target in m.targets:
            seen.setdefault(target_key(target), target)
    return tuple(seen[key] for key in sorted(seen))


def partition_matches(all_matches: Iterable[CandidateMatch]) -> MatchPartition:
    """Group every match by case-folded found text and split by target count.

    A display text that can refer to more than one target is ambiguous
    everywhere in the corpus, including documents where only one of the
    targets shows up.
    """
    by_text: dict[str, list[CandidateMatch]] = {}
    for m in all_matches:
        by_text.setdefault(fold_case(m.found_text), []).append(m)

    unambiguous: list[CandidateMatch] = []
    ambiguous: list[CandidateMatch] = []
    groups: list[AmbiguousMatch] = []

    for key in sorted(by_text):
        text_matches = sorted(by_text[key], key=_match_order)
        targets = distinct_targets(text_matches)
        if len(targets) > 1:
            ambiguous.extend(text_matches)
            groups.append(AmbiguousMatch(key, targets, tuple(text_matches)))
        else:
            unambiguous.extend(text_matches)

    if groups:
        log.info(
            "%d ambiguous display texts (%d matches) withheld from auto-apply",
            len(groups),
            len(ambiguous),
        )

    return MatchPartition(
        unambiguous=tuple(sorted(unambiguous, key=_match_order)),
        ambiguous=tuple(sorted(ambiguous, key=_match_order)),
        groups=tuple(groups),
    )
