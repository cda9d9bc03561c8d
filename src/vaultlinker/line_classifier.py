"""Front matter / fenced code tracking for a forward line-by-line scan."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

FRONTMATTER_DELIMITER = "---"
CODE_FENCE = "```"


class LineState(Enum):
    BODY = "body"
    FRONTMATTER = "frontmatter"
    CODE_BLOCK = "code_block"


@dataclass(frozen=True)
class ClassifierState:
    location: LineState = LineState.BODY
    frontmatter_delimiter_count: int = 0
    # Code block that was open when front matter started.
    suspended_code_block: bool = False

    @property
    def in_frontmatter(self) -> bool:
        return self.location is LineState.FRONTMATTER

    @property
    def in_code_block(self) -> bool:
        return self.location is LineState.CODE_BLOCK

    @property
    def should_skip(self) -> bool:
        return self.location is not LineState.BODY


INITIAL_STATE = ClassifierState()


def transition(state: ClassifierState, line: str) -> tuple[ClassifierState, bool]:
    """Advance ``state`` past ``line``; the bool says whether to skip the line.

    Delimiter lines are always skipped. An odd number of front matter
    delimiters so far means we are inside front matter. A code fence opened
    inside front matter is ignored. A fenced block left open swallows the
    rest of the document.
    """
    trimmed = line.strip()

    if trimmed == FRONTMATTER_DELIMITER:
        count = state.frontmatter_delimiter_count + 1
        if count % 2:
            return ClassifierState(LineState.FRONTMATTER, count, state.in_code_block), True
        location = LineState.CODE_BLOCK if state.suspended_code_block else LineState.BODY
        return ClassifierState(location, count), True

    if not state.in_frontmatter and trimmed.startswith(CODE_FENCE):
        location = LineState.BODY if state.in_code_block else LineState.CODE_BLOCK
        return replace(state, location=location), True

    return state, state.should_skip


class LineClassifier:
    """Stateful wrapper around :func:`transition`, one per document scan."""

    def __init__(self) -> None:
        self.state = INITIAL_STATE

    @property
    def in_frontmatter(self) -> bool:
        return self.state.in_frontmatter

    @property
    def in_code_block(self) -> bool:
        return self.state.in_code_block

    def update_for_line(self, line: str) -> bool:
        self.state, skip = transition(self.state, line)
        return skip
