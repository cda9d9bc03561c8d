"""Wikilink scanning and formatting.

The scanner walks a single line and reports every ``[[...]]`` it finds,
valid or not, with its span. Valid links feed the alias table and, together
with the invalid ones, become exclusion zones for back-population.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

OPENING_WIKILINK = "[["
CLOSING_WIKILINK = "]]"
MARKDOWN_SUFFIX = ".md"

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_BARE_URL_RE = re.compile(r"https?://\S+")
_TAG_RE = re.compile(r"(?:^|\s)(#[a-zA-Z0-9_-]+)")


class InvalidReason(Enum):
    DOUBLE_ALIAS = "contains multiple alias separators"
    EMPTY = "contains empty wikilink"
    EMAIL_ADDRESS = "ignore email addresses for back population"
    NESTED_OPENING = "contains a nested opening"
    RAW_URL = "ignore raw urls for back population"
    TAG = "ignore tags for back population"
    UNMATCHED_CLOSING = "contains unmatched closing brackets ']]'"
    UNMATCHED_MARKDOWN_OPENING = "'[' without following match"
    UNMATCHED_OPENING = "contains unmatched opening brackets '[['"
    UNMATCHED_SINGLE = "contains unmatched bracket '[' or ']'"


# Reported as exclusion zones but not as wikilink problems.
SILENT_REASONS = frozenset({InvalidReason.EMAIL_ADDRESS, InvalidReason.RAW_URL, InvalidReason.TAG})


@dataclass(frozen=True)
class ParsedLink:
    target: str
    display_text: str
    is_alias: bool
    start: int
    end: int
    is_image: bool = False


@dataclass(frozen=True)
class InvalidLink:
    content: str
    reason: InvalidReason
    start: int
    end: int


@dataclass
class ExtractedWikilinks:
    valid: list[ParsedLink] = field(default_factory=list)
    invalid: list[InvalidLink] = field(default_factory=list)


def strip_md_extension(text: str) -> str:
    return text.removesuffix(MARKDOWN_SUFFIX)


def format_wikilink(target: str) -> str:
    """Wrap a target in ``[[...]]``, dropping any ``.md`` suffix."""
    return f"{OPENING_WIKILINK}{strip_md_extension(target)}{CLOSING_WIKILINK}"


def format_aliased_wikilink(target: str, display_text: str) -> str:
    """Build ``[[target|display]]``, or ``[[target]]`` when they are identical."""
    target = strip_md_extension(target)
    if target == display_text:
        return format_wikilink(target)
    return f"{OPENING_WIKILINK}{target}|{display_text}{CLOSING_WIKILINK}"


def escape_pipe(text: str) -> str:
    """Escape every ``|`` that is not already escaped."""
    out: list[str] = []
    backslashes = 0
    for ch in text:
        if ch == "|" and backslashes % 2 == 0:
            out.append("\\")
        out.append(ch)
        backslashes = backslashes + 1 if ch == "\\" else 0
    return "".join(out)


def escape_brackets(text: str) -> str:
    return text.replace("[", r"\[").replace("]", r"\]")


def extract_wikilinks(line: str) -> ExtractedWikilinks:
    """Scan one line for wikilinks, returning valid and invalid ones with spans."""
    result = ExtractedWikilinks()
    _add_special_patterns(line, result)

    n = len(line)
    i = 0
    markdown_opening: int | None = None
    last_position = 0

    while i < n:
        ch = line[i]

        if ch == "\\":
            i += 2
            continue

        if ch == "]" and line.startswith("]", i + 1):
            result.invalid.append(
                InvalidLink(line[last_position:i + 2], InvalidReason.UNMATCHED_CLOSING, last_position, i + 2)
            )
            markdown_opening = None
            last_position = i + 2
            i += 2
            continue

        if ch == "]":
            markdown_opening = None
        elif ch == "[":
            if line.startswith("[", i + 1):
                if markdown_opening is not None:
                    _add_unmatched_markdown(line, markdown_opening, i, result)
                    markdown_opening = None
                is_image = i > 0 and line[i - 1] == "!"
                parsed, i = _parse_wikilink(line, i + 2, is_image=is_image)
                if isinstance(parsed, ParsedLink):
                    result.valid.append(parsed)
                    last_position = i
                else:
                    result.invalid.append(parsed)
                continue
            if markdown_opening is not None:
                _add_unmatched_markdown(line, markdown_opening, i, result)
            markdown_opening = i

        i += 1

    if markdown_opening is not None:
        _add_unmatched_markdown(line, markdown_opening, n, result)

    return result


def _add_special_patterns(line: str, result: ExtractedWikilinks) -> None:
    for m in _EMAIL_RE.finditer(line):
        result.invalid.append(InvalidLink(m.group(0), InvalidReason.EMAIL_ADDRESS, m.start(), m.end()))
    for m in _BARE_URL_RE.finditer(line):
        result.invalid.append(InvalidLink(m.group(0), InvalidReason.RAW_URL, m.start(), m.end()))
    for m in _TAG_RE.finditer(line):
        result.invalid.append(InvalidLink(m.group(1), InvalidReason.TAG, m.start(1), m.end(1)))


def _add_unmatched_markdown(line: str, start: int, end: int, result: ExtractedWikilinks) -> None:
    content = line[start:end].strip()
    result.invalid.append(
        InvalidLink(content, InvalidReason.UNMATCHED_MARKDOWN_OPENING, start, start + len(content))
    )


def _parse_wikilink(
    line: str, pos: int, *, is_image: bool = False
) -> tuple[ParsedLink | InvalidLink, int]:
    """Parse the body of a wikilink whose ``[[`` ends just before ``pos``.

    Returns the parsed link and the index just past it.
    """
    start = pos - 2
    n = len(line)
    target: list[str] = []
    display: list[str] | None = None
    invalid: list[str] | None = None
    reason: InvalidReason | None = None

    def current() -> list[str]:
        if invalid is not None:
            return invalid
        return display if display is not None else target

    def go_invalid(why: InvalidReason) -> list[str]:
        nonlocal invalid, reason
        if invalid is None:
            text = "".join(target)
            if display is not None:
                text += "|" + "".join(display)
            invalid = list(text)
            reason = why
        return invalid

    def on_pipe(raw: str) -> None:
        nonlocal display
        if display is None:
            display = []
        else:
            go_invalid(InvalidReason.DOUBLE_ALIAS).append(raw)

    i = pos
    while i < n:
        c = line[i]
        closing = c == "]" and line.startswith("]", i + 1)

        if invalid is not None:
            if closing:
                return InvalidLink(f"[[{''.join(invalid)}]]", reason, start, i + 2), i + 2
            invalid.append(c)
            i += 1
            continue

        if c == "\\":
            if i + 1 < n:
                if line[i + 1] == "|":
                    on_pipe("\\|")
                else:
                    current().append(line[i + 1])
            i += 2
            continue

        if c == "|":
            on_pipe("|")
        elif closing:
            return _finish(target, display, start, i + 2, is_image), i + 2
        elif c == "]":
            go_invalid(InvalidReason.UNMATCHED_SINGLE).append(c)
        elif c == "[":
            if line.startswith("[", i + 1):
                go_invalid(InvalidReason.NESTED_OPENING).extend("[[")
                i += 1
            else:
                go_invalid(InvalidReason.UNMATCHED_SINGLE).append(c)
        else:
            current().append(c)
        i += 1

    content = go_invalid(InvalidReason.UNMATCHED_OPENING)
    return InvalidLink(f"[[{''.join(content)}", reason, start, n), n


def _finish(
    target: list[str], display: list[str] | None, start: int, end: int, is_image: bool
) -> ParsedLink | InvalidLink:
    target_text = "".join(target).strip()
    if display is None:
        if not target_text:
            return InvalidLink("[[]]", InvalidReason.EMPTY, start, end)
        return ParsedLink(target_text, target_text, False, start, end, is_image)

    display_text = "".join(display).strip()
    if not target_text or not display_text:
        return InvalidLink(f"[[{''.join(target)}|{''.join(display)}]]", InvalidReason.EMPTY, start, end)
    return ParsedLink(target_text, display_text, True, start, end, is_image)
