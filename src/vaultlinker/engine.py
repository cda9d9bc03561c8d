"""Orchestrator: load vault -> index aliases -> scan -> partition -> report -> apply."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .ambiguity import partition_matches
from .applier import apply_matches
from .config import Config
from .matcher import find_document_matches
from .models import CandidateMatch, Document, DocumentError, MatchPartition
from .pattern_index import PatternIndex
from .persist import persist_document
from .report import render_report, write_report
from .vault import collect_aliases, load_vault, select_documents

log = logging.getLogger(__name__)


@dataclass
class BackPopulateResult:
    documents_scanned: int = 0
    alias_count: int = 0
    partition: MatchPartition = field(default_factory=MatchPartition)
    modified: list[Path] = field(default_factory=list)
    errors: list[DocumentError] = field(default_factory=list)
    report_path: Path | None = None

    @property
    def unambiguous_count(self) -> int:
        return len(self.partition.unambiguous)

    @property
    def ambiguous_count(self) -> int:
        return len(self.partition.ambiguous)


def find_all_matches(
    documents: Sequence[Document],
    index: PatternIndex,
    patterns: Sequence[re.Pattern[str]] = (),
    max_workers: int = 4,
) -> tuple[list[CandidateMatch], list[DocumentError]]:
    """Scan every document in parallel. A failing document is reported, not raised."""

    def scan(doc: Document) -> list[CandidateMatch] | DocumentError:
        try:
            return find_document_matches(doc, index, patterns)
        except Exception as e:
            log.error("Failed to scan %s", doc.id, exc_info=True)
            return DocumentError(doc.id, "match", str(e))

    matches: list[CandidateMatch] = []
    errors: list[DocumentError] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for outcome in executor.map(scan, documents):
            if isinstance(outcome, DocumentError):
                errors.append(outcome)
            else:
                matches.extend(outcome)

    log.debug("Found %d candidate matches in %d documents", len(matches), len(documents))
    return matches, errors


def apply_partition(
    documents: Sequence[Document],
    partition: MatchPartition,
    max_workers: int = 4,
) -> tuple[dict[str, str], list[DocumentError]]:
    """Apply unambiguous matches per document. Returns new contents keyed by document id."""
    by_id = {doc.id: doc for doc in documents}
    targets = [by_id[doc_id] for doc_id in partition.document_ids if doc_id in by_id]

    def apply(doc: Document) -> tuple[str, str | DocumentError]:
        try:
            return doc.id, apply_matches(doc.content, partition.unambiguous_for(doc.id))
        except Exception as e:
            log.error("Failed to apply matches to %s", doc.id, exc_info=True)
            return doc.id, DocumentError(doc.id, "apply", str(e))

    contents: dict[str, str] = {}
    errors: list[DocumentError] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for doc_id, outcome in executor.map(apply, targets):
            if isinstance(outcome, DocumentError):
                errors.append(outcome)
            else:
                contents[doc_id] = outcome
    return contents, errors


def run_back_populate(config: Config, *, dry_run: bool = False) -> BackPopulateResult:
    """Run a single back-populate pass over the vault."""
    result = BackPopulateResult()

    documents, load_errors = load_vault(config)
    result.errors.extend(load_errors)
    if not documents:
        log.warning("No markdown notes found in %s", config.vault_path)
        return result

    # Aliases come from the whole vault even when only a few files are scanned.
    index = PatternIndex.build(collect_aliases(documents))
    result.alias_count = len(index)

    selected = select_documents(documents, config)
    result.documents_scanned = len(selected)
    if not selected:
        log.warning("No notes matched file_filter %r", config.file_filter)

    matches, match_errors = find_all_matches(
        selected, index, config.exclusion_patterns, config.max_workers
    )
    result.errors.extend(match_errors)
    result.partition = partition_matches(matches)

    should_apply = config.apply_changes and result.partition.unambiguous
    if should_apply:
        contents, apply_errors = apply_partition(selected, result.partition, config.max_workers)
        result.errors.extend(apply_errors)
        by_id = {doc.id: doc for doc in selected}
        for doc_id, content in contents.items():
            try:
                result.modified.append(persist_document(by_id[doc_id], content, dry_run=dry_run))
            except OSError as e:
                log.error("Failed to write %s", doc_id, exc_info=True)
                result.errors.append(DocumentError(doc_id, "persist", str(e)))

    text = render_report(
        result.partition,
        alias_count=result.alias_count,
        scanned=result.documents_scanned,
        errors=result.errors,
        applied=bool(should_apply) and not dry_run,
        invalid_links=[(doc.id, span) for doc in selected for span in doc.link_spans if not span.is_valid],
    )
    try:
        result.report_path = write_report(config.report_path, text, dry_run=dry_run)
    except OSError:
        log.error("Failed to write report %s", config.report_path, exc_info=True)

    log.info(
        "Back-populate complete: %d unambiguous, %d ambiguous, %d notes %s",
        result.unambiguous_count,
        result.ambiguous_count,
        len(result.modified),
        "would change" if dry_run else "changed",
    )
    return result
