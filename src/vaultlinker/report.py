"""Markdown report of back-populate matches for human review."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from itertools import groupby
from pathlib import Path

from .models import CandidateMatch, DocumentError, LinkSpan, MatchPartition
from .pattern_index import fold_case
from .wikilinks import (
    SILENT_REASONS,
    escape_brackets,
    escape_pipe,
    format_aliased_wikilink,
    format_wikilink,
)

log = logging.getLogger(__name__)

_HIGHLIGHT_OPEN = '<span style="color: red;">'
_HIGHLIGHT_CLOSE = "</span>"
_SILENT_MESSAGES = frozenset(reason.value for reason in SILENT_REASONS)


def highlight_matches(text: str, positions: Iterable[int], length: int) -> str:
    """Wrap each ``text[pos:pos + length]`` in a highlight span."""
    parts: list[str] = []
    last_end = 0
    for start in sorted(positions):
        parts.append(text[last_end:start])
        parts.append(_HIGHLIGHT_OPEN + text[start:start + length] + _HIGHLIGHT_CLOSE)
        last_end = start + length
    parts.append(text[last_end:])
    return "".join(parts)


def markdown_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> list[str]:
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join("---" for _ in headers) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return lines


def _file_link(document_id: str) -> str:
    return format_wikilink(Path(document_id).stem)


def _pluralize(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _match_rows(matches: Sequence[CandidateMatch], *, with_replacement: bool) -> list[list[str]]:
    rows: list[list[str]] = []
    keyed = sorted(matches, key=lambda m: (Path(m.document_id).stem.lower(), m.line_number, m.position))
    for (doc_id, line_number), group in groupby(keyed, key=lambda m: (m.document_id, m.line_number)):
        line_matches = list(group)
        first = line_matches[0]
        highlighted = highlight_matches(
            first.line_text, [m.position for m in line_matches], len(first.found_text)
        )
        row = [_file_link(doc_id), str(line_number), escape_pipe(highlighted), str(len(line_matches))]
        if with_replacement:
            replacement = first.replacement_text if first.in_table else escape_pipe(first.replacement_text)
            row.extend([replacement, escape_brackets(replacement)])
        rows.append(row)
    return rows


def reportable_invalid_links(
    invalid_links: Iterable[tuple[str, LinkSpan]],
) -> list[tuple[str, LinkSpan]]:
    """Invalid wikilinks worth showing, ordered by file then line.

    Emails, raw urls and tags are only kept out of matching.
    """
    keep = [
        (doc_id, span) for doc_id, span in invalid_links
        if not span.is_valid and span.reason not in _SILENT_MESSAGES
    ]
    return sorted(keep, key=lambda item: (item[0].lower(), item[1].line_number, item[1].start))


def _by_found_text(matches: Iterable[CandidateMatch]) -> dict[str, list[CandidateMatch]]:
    groups: dict[str, list[CandidateMatch]] = {}
    for m in matches:
        groups.setdefault(fold_case(m.found_text), []).append(m)
    return dict(sorted(groups.items()))


def render_report(
    partition: MatchPartition,
    *,
    alias_count: int,
    scanned: int,
    errors: Sequence[DocumentError] = (),
    applied: bool = False,
    invalid_links: Iterable[tuple[str, LinkSpan]] = (),
) -> str:
    """Render ambiguous groups, unambiguous matches, invalid wikilinks and errors.

    ``invalid_links`` pairs a document id with one of its link spans.
    """
    out: list[str] = ["# back populate wikilinks", ""]
    out.append(
        f"searched {_pluralize(scanned, 'file')} for {_pluralize(alias_count, 'display text')}"
    )
    out.append("")

    groups = partition.ambiguous_groups()
    if groups:
        out.extend(["## ambiguous matches", ""])
        out.append("these display texts can refer to more than one note and were not changed")
        out.append("")
        for group in groups:
            out.append(f'### "{group.display_text}" matches {len(group.targets)} targets')
            out.append("")
            for target in group.targets:
                out.append("- " + escape_brackets(format_aliased_wikilink(target, group.display_text)))
            out.append("")
            out.extend(markdown_table(
                ["file name", "line", "text", "occurrences"],
                _match_rows(group.matches, with_replacement=False),
            ))
            out.append("")

    if partition.unambiguous:
        files = {m.document_id for m in partition.unambiguous}
        verb = "replaced" if applied else "will replace"
        out.extend(["## unambiguous matches", ""])
        out.append(
            f"{_pluralize(len(partition.unambiguous), 'match')} in {_pluralize(len(files), 'file')} ({verb})"
        )
        out.append("")
        for key, text_matches in _by_found_text(partition.unambiguous).items():
            text_files = {m.document_id for m in text_matches}
            out.append(
                f'### found: "{text_matches[0].found_text}" '
                f"({_pluralize(len(text_matches), 'occurrence')} in {_pluralize(len(text_files), 'file')})"
            )
            out.append("")
            out.extend(markdown_table(
                ["file name", "line", "text", "occurrences", verb, "source text"],
                _match_rows(text_matches, with_replacement=True),
            ))
            out.append("")

    if not groups and not partition.unambiguous:
        out.extend(["no matches found", ""])

    invalid = reportable_invalid_links(invalid_links)
    if invalid:
        out.extend(["## invalid wikilinks", ""])
        out.append(f"{_pluralize(len(invalid), 'invalid wikilink')} left untouched")
        out.append("")
        out.extend(markdown_table(
            ["file name", "line", "text", "reason"],
            (
                [_file_link(doc_id), str(span.line_number), escape_pipe(escape_brackets(span.text)), span.reason]
                for doc_id, span in invalid
            ),
        ))
        out.append("")

    if errors:
        out.extend(["## errors", ""])
        out.extend(markdown_table(
            ["document", "stage", "message"],
            ([escape_pipe(e.document_id), e.stage, escape_pipe(e.message)] for e in errors),
        ))
        out.append("")

    return "\n".join(out)


def write_report(path: Path, text: str, *, dry_run: bool = False) -> Path:
    if dry_run:
        log.info("[DRY RUN] Would write report %s (%d chars)", path, len(text))
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    log.info("Wrote report %s", path)
    return path
