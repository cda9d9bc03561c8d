"""Aho-Corasick index over every known display text."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import ahocorasick

from .models import Alias
from .wikilinks import strip_md_extension

log = logging.getLogger(__name__)

Hit = tuple[int, int, int]  # (start, end, alias index)


def fold_case(text: str) -> str:
    """Lowercase ``text`` without changing its length.

    Characters whose lowercase form is longer (e.g. ``İ``) are kept as-is so
    offsets in the folded text are offsets in the original.
    """
    return "".join(low if len(low := ch.lower()) == 1 else ch for ch in text)


def target_key(target: str) -> str:
    return strip_md_extension(target).lower()


class PatternIndex:
    """Immutable multi-pattern matcher built once per run.

    ``aliases`` is sorted by :attr:`Alias.sort_key`, so a lower alias index
    means a higher priority when hits overlap.
    """

    def __init__(self, aliases: Iterable[Alias]):
        self.aliases: tuple[Alias, ...] = tuple(sorted(set(aliases), key=lambda a: a.sort_key))
        self._automaton = ahocorasick.Automaton()
        self._tied_targets: dict[str, tuple[str, ...]] = {}

        by_key: dict[str, list[int]] = {}
        for idx, alias in enumerate(self.aliases):
            folded = fold_case(alias.display_text)
            by_key.setdefault(folded, []).append(idx)

            targets = self._tied_targets.get(folded, ())
            if target_key(alias.target) not in {target_key(t) for t in targets}:
                self._tied_targets[folded] = (*targets, strip_md_extension(alias.target))

        for folded, indices in by_key.items():
            self._automaton.add_word(folded, (folded, tuple(indices)))
        if by_key:
            self._automaton.make_automaton()

        log.debug("Built pattern index: %d aliases, %d patterns", len(self.aliases), len(by_key))

    @classmethod
    def build(cls, aliases: Iterable[Alias]) -> PatternIndex:
        return cls(aliases)

    def __len__(self) -> int:
        return len(self.aliases)

    def find_all(self, line: str) -> list[Hit]:
        """Every hit in ``line``, overlapping ones included, ordered by (start, index)."""
        if not self.aliases or not line:
            return []

        hits: list[Hit] = []
        for end_idx, (key, indices) in self._automaton.iter(fold_case(line)):
            start = end_idx - len(key) + 1
            for idx in indices:
                hits.append((start, end_idx + 1, idx))
        hits.sort(key=lambda h: (h[0], h[2]))
        return hits

    def tied_targets(self, alias_index: int) -> tuple[str, ...]:
        """Every distinct target that shares this alias's display text."""
        alias = self.aliases[alias_index]
        return self._tied_targets[fold_case(alias.display_text)]
