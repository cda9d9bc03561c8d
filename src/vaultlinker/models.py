"""Data models for vault documents, link aliases and back-populate matches."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Alias:
    """A display text that should become a link to ``target``."""

    display_text: str
    target: str
    is_alias: bool = False

    def __post_init__(self) -> None:
        if not self.display_text or not self.display_text.strip():
            raise ValueError("Alias display_text must not be empty")
        if not self.is_alias and self.display_text != self.target:
            raise ValueError(
                f"Non-alias display text {self.display_text!r} must equal "
                f"its target {self.target!r}"
            )

    @classmethod
    def for_title(cls, title: str) -> Alias:
        return cls(display_text=title, target=title, is_alias=False)

    @property
    def sort_key(self) -> tuple[int, int, str, str]:
        # Longest display text (in UTF-8 bytes) first, aliases before plain titles.
        return (
            -len(self.display_text.encode("utf-8")),
            0 if self.is_alias else 1,
            self.display_text,
            self.target,
        )


@dataclass(frozen=True)
class LinkSpan:
    """A span of one line already claimed by a link or an invalid link."""

    line_number: int
    start: int
    end: int
    text: str
    reason: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.reason is None


@dataclass
class Document:
    """In-memory snapshot of one markdown note.

    ``content`` is the full file text, front matter included; line numbers
    everywhere are 1-based positions in it.
    """

    path: Path
    title: str
    content: str
    aliases: list[str] = field(default_factory=list)
    link_spans: list[LinkSpan] = field(default_factory=list)
    wikilinks: list[Alias] = field(default_factory=list)
    frontmatter: dict | None = None
    do_not_back_populate: list[str] = field(default_factory=list)
    relative_path: str = ""

    @property
    def id(self) -> str:
        return self.relative_path or str(self.path)

    @property
    def lines(self) -> list[str]:
        return self.content.splitlines()

    @property
    def identity(self) -> set[str]:
        return {name.lower() for name in [self.title, *self.aliases]}


@dataclass(frozen=True)
class CandidateMatch:
    """One plain-text occurrence of a known display text.

    ``position`` is a ``str`` index into ``line_text``; ``line_number`` is
    1-based and counts front matter lines.
    """

    document_id: str
    line_number: int
    position: int
    found_text: str
    replacement_text: str
    target: str
    in_table: bool = False
    candidate_targets: tuple[str, ...] = ()
    line_text: str = ""

    @property
    def end(self) -> int:
        return self.position + len(self.found_text)

    @property
    def byte_position(self) -> int:
        return len(self.line_text[: self.position].encode("utf-8"))

    @property
    def targets(self) -> tuple[str, ...]:
        return self.candidate_targets or (self.target,)


@dataclass(frozen=True)
class AmbiguousMatch:
    """Matches whose display text could link to more than one target."""

    display_text: str
    targets: tuple[str, ...]
    matches: tuple[CandidateMatch, ...]


@dataclass(frozen=True)
class MatchPartition:
    unambiguous: tuple[CandidateMatch, ...] = ()
    ambiguous: tuple[CandidateMatch, ...] = ()
    groups: tuple[AmbiguousMatch, ...] = ()

    def ambiguous_groups(self) -> tuple[AmbiguousMatch, ...]:
        return self.groups

    def unambiguous_for(self, document_id: str) -> list[CandidateMatch]:
        return [m for m in self.unambiguous if m.document_id == document_id]

    @property
    def document_ids(self) -> list[str]:
        """Documents with at least one unambiguous match, in first-seen order."""
        return list(dict.fromkeys(m.document_id for m in self.unambiguous))


@dataclass(frozen=True)
class DocumentError:
    """A per-document failure collected during a run."""

    document_id: str
    stage: str
    message: str
