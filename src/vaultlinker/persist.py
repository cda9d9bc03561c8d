"""Write back-populated notes to disk."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

import yaml

from .models import Document
from .vault import split_frontmatter

log = logging.getLogger(__name__)

DATE_MODIFIED_KEY = "date_modified"
_DATE_MODIFIED_LINE = re.compile(rf"^{DATE_MODIFIED_KEY}[ \t]*:[^\r\n]*", re.MULTILINE)


def update_date_modified(content: str, today: date | None = None) -> str:
    """Stamp ``date_modified`` into existing front matter.

    Only the ``date_modified`` line is touched: comments, flow style and line
    endings of the rest of the front matter are kept as written. Notes without
    front matter, or with front matter that is not a YAML mapping, are
    returned unchanged.
    """
    raw, _ = split_frontmatter(content)
    if raw is None:
        return content
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError:
        log.warning("Leaving unparseable front matter untouched")
        return content
    if not isinstance(data, dict):
        return content

    newline = "\r\n" if content.startswith("---\r\n") else "\n"
    start = len("---") + len(newline)
    end = start + len(raw)
    stamp = f"{DATE_MODIFIED_KEY}: '{(today or date.today()).isoformat()}'"

    if _DATE_MODIFIED_LINE.search(raw):
        new_raw = _DATE_MODIFIED_LINE.sub(lambda _: stamp, raw)
    else:
        new_raw = raw + newline + stamp
    return content[:start] + new_raw + content[end:]


def persist_document(
    document: Document,
    new_content: str,
    *,
    dry_run: bool = False,
    today: date | None = None,
) -> Path:
    """Write the edited note. Returns the path written."""
    filepath = document.path
    content = update_date_modified(new_content, today)

    if dry_run:
        log.info("[DRY RUN] Would write %s (%d chars)", filepath, len(content))
        return filepath

    # newline="" writes line endings as they are in content
    filepath.write_text(content, encoding="utf-8", newline="")
    document.content = content
    log.info("Wrote %s (%d chars)", filepath, len(content))
    return filepath
