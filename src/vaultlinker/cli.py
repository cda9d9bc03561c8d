"""Command-line interface for vaultlinker."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from .config import load_config
from .engine import run_back_populate
from .watcher import watch


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="vaultlinker",
        description="Back-populate wikilinks into plain-text mentions across an Obsidian vault",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to config YAML (default: ~/.config/vaultlinker/config.yaml)",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Rewrite notes with unambiguous matches (overrides apply_changes)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be written without writing files",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and re-scan when notes change",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--file-filter",
        default=None,
        help="Only scan this note (e.g. 'Note', 'Note.md' or '[[Note]]')",
    )
    parser.add_argument(
        "--file-limit",
        type=int,
        default=None,
        help="Scan at most this many notes",
    )

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    overrides: dict = {}
    if args.apply:
        overrides["apply_changes"] = True
    if args.file_filter is not None:
        overrides["file_filter"] = args.file_filter
    if args.file_limit is not None:
        overrides["file_limit"] = args.file_limit

    try:
        config = load_config(args.config)
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1) from None

    if args.watch:
        watch(config, dry_run=args.dry_run)
        return

    result = run_back_populate(config, dry_run=args.dry_run)
    print(
        f"Scanned {result.documents_scanned} note(s): "
        f"{result.unambiguous_count} unambiguous, {result.ambiguous_count} ambiguous match(es)"
    )
    if result.modified:
        verb = "Would update" if args.dry_run else "Updated"
        print(f"{verb} {len(result.modified)} note(s)")
    if result.errors:
        print(f"{len(result.errors)} note(s) failed; see report", file=sys.stderr)
