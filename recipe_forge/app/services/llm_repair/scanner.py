"""Shared character-scanning state for the string-aware repair passes."""

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

WHITESPACE = " \t\r\n"


class FrameKind(str, enum.Enum):
    OBJECT = "object"
    ARRAY = "array"


@dataclass
class Frame:
    kind: FrameKind
    expecting_key: bool = False


@dataclass
class RepairState:
    in_string: bool = False
    escaped: bool = False
    bracket_stack: List[Frame] = field(default_factory=list)

    @property
    def top(self) -> Optional[Frame]:
        return self.bracket_stack[-1] if self.bracket_stack else None

    def push(self, kind: FrameKind) -> None:
        self.bracket_stack.append(Frame(kind=kind, expecting_key=kind is FrameKind.OBJECT))

    def pop(self) -> None:
        if self.bracket_stack:
            self.bracket_stack.pop()

    def step_string(self, ch: str) -> None:
        """Advance string/escape tracking for one character."""
        if self.in_string:
            if self.escaped:
                self.escaped = False
            elif ch == "\\":
                self.escaped = True
            elif ch == '"':
                self.in_string = False
        elif ch == '"':
            self.in_string = True


def find_string_end(text: str, open_index: int, quote: str = '"') -> int:
    """Index of the quote closing the string opened at ``open_index``, or -1."""
    escaped = False
    for i in range(open_index + 1, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == quote:
            return i
    return -1


def next_significant(text: str, start: int) -> int:
    """Index of the first non-whitespace character at or after ``start``, or -1."""
    for i in range(start, len(text)):
        if text[i] not in WHITESPACE:
            return i
    return -1


def last_significant(chars: Sequence[str]) -> str:
    """Last non-whitespace character already emitted, or '' when there is none."""
    for chunk in reversed(chars):
        stripped = chunk.rstrip(WHITESPACE)
        if stripped:
            return stripped[-1]
    return ""


def find_excess_nesting(text: str, limit: int) -> int:
    """Index of the first bracket opening past ``limit`` levels of nesting, or -1.

    Brackets inside string literals are ignored.
    """
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            close = find_string_end(text, i)
            if close == -1:
                return -1
            i = close + 1
            continue
        if ch in "{[":
            depth += 1
            if depth > limit:
                return i
        elif ch in "}]":
            depth = max(0, depth - 1)
        i += 1
    return -1
