"""Load a vault's markdown notes into in-memory documents."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import yaml

from .config import Config
from .line_classifier import LineClassifier
from .models import Alias, Document, DocumentError, LinkSpan
from .wikilinks import extract_wikilinks, strip_md_extension

log = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split ``text`` into (raw YAML, body). YAML is None when absent."""
    m = _FRONTMATTER_RE.match(text)
    if not m:
        return None, text
    return m.group(1), text[m.end():]


def parse_frontmatter(text: str, path: Path | None = None) -> dict | None:
    raw, _ = split_frontmatter(text)
    if raw is None:
        return None
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError:
        log.warning("Invalid front matter in %s", path or "<text>", exc_info=True)
        return None
    return data if isinstance(data, dict) else None


def _string_list(value: object) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def scan_links(content: str) -> tuple[list[LinkSpan], list[Alias]]:
    """Find link spans and link-derived aliases outside front matter and code."""
    spans: list[LinkSpan] = []
    wikilinks: list[Alias] = []
    classifier = LineClassifier()

    for line_idx, line in enumerate(content.splitlines()):
        if classifier.update_for_line(line):
            continue
        line_number = line_idx + 1
        extracted = extract_wikilinks(line)

        for link in extracted.valid:
            spans.append(LinkSpan(line_number, link.start, link.end, line[link.start:link.end]))
            target = strip_md_extension(link.target)
            if link.is_image or not target:
                continue
            if link.is_alias:
                wikilinks.append(Alias(link.display_text, target, is_alias=True))
            else:
                wikilinks.append(Alias.for_title(target))

        for invalid in extracted.invalid:
            spans.append(
                LinkSpan(line_number, invalid.start, invalid.end, invalid.content, invalid.reason.value)
            )

    return spans, wikilinks


def load_document(path: Path, vault_path: Path | None = None) -> Document:
    """Read and parse one note. Raises OSError/UnicodeDecodeError on read failure."""
    # Keeps CRLF line endings intact.
    content = path.read_bytes().decode("utf-8")
    frontmatter = parse_frontmatter(content, path)
    spans, wikilinks = scan_links(content)

    relative_path = path.name
    if vault_path is not None:
        try:
            relative_path = path.relative_to(vault_path).as_posix()
        except ValueError:
            relative_path = str(path)

    fm = frontmatter or {}
    return Document(
        path=path,
        title=path.stem,
        content=content,
        aliases=_string_list(fm.get("aliases")),
        link_spans=spans,
        wikilinks=wikilinks,
        frontmatter=frontmatter,
        do_not_back_populate=_string_list(fm.get("do_not_back_populate")),
        relative_path=relative_path,
    )


def _is_ignored(path: Path, ignored: Iterable[Path]) -> bool:
    return any(path.is_relative_to(folder) for folder in ignored)


def find_markdown_files(config: Config) -> list[Path]:
    """Every non-ignored ``*.md`` under the vault, sorted for reproducible runs."""
    ignored = config.ignored_dirs
    return sorted(p for p in config.vault_path.rglob("*.md") if p.is_file() and not _is_ignored(p, ignored))


def load_vault(config: Config) -> tuple[list[Document], list[DocumentError]]:
    """Load every note in the vault; unreadable notes are reported, not raised."""
    documents: list[Document] = []
    errors: list[DocumentError] = []

    for md_file in find_markdown_files(config):
        try:
            documents.append(load_document(md_file, config.vault_path))
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Failed to load %s", md_file, exc_info=True)
            errors.append(DocumentError(str(md_file), "load", str(e)))

    log.debug("Loaded %d documents from %s", len(documents), config.vault_path)
    return documents, errors


def select_documents(documents: list[Document], config: Config) -> list[Document]:
    """Apply ``file_filter`` and ``file_limit`` to pick the documents to scan."""
    selected = documents
    name = config.normalized_file_filter
    if name is not None:
        selected = [
            d for d in selected
            if d.path.name == name or d.path.as_posix().endswith("/" + name)
        ]
    if config.file_limit is not None:
        selected = selected[: config.file_limit]
    return selected


def collect_aliases(documents: Iterable[Document]) -> set[Alias]:
    """Every display text known to the vault.

    Each note contributes its title, its front matter aliases and every valid
    wikilink in its body (``[[A|b]]`` makes ``b`` an alias of ``A``).
    """
    aliases: set[Alias] = set()
    for doc in documents:
        aliases.add(Alias.for_title(doc.title))
        for name in doc.aliases:
            aliases.add(Alias(name, doc.title, is_alias=True))
        aliases.update(doc.wikilinks)

    log.debug("Collected %d aliases", len(aliases))
    return aliases
