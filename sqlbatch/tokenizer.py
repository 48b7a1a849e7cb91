"""
Split a SQL script into individual statements.

The scanner understands just enough of the MySQL client syntax to find
statement boundaries **safely**: quoted literals, ``\\`` escapes, nested
``/* … */`` blocks, ``-- `` / ``# `` line comments and the client‑side
``DELIMITER`` directive.  It is *not* a SQL parser – odd input simply yields
a differently split list, the tokenizer itself never raises.
"""
from __future__ import annotations

import dataclasses
import re

from sqlbatch.constants import DEFAULT_DELIMITER

_QUOTES = "'\"`"
_LINE_COMMENT_RE = re.compile(r"(?:--|#)\s")
_DIRECTIVE_RE = re.compile(r"DELIMITER[ \t]+", re.IGNORECASE)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def _trim(text: str) -> str:
    """Strip surrounding whitespace, except a character protected by a trailing escape."""
    text = text.lstrip()
    trimmed = text.rstrip()
    backslashes = len(trimmed) - len(trimmed.rstrip("\\"))
    if backslashes % 2 and len(trimmed) < len(text):
        return text[: len(trimmed) + 1]
    return trimmed


@dataclasses.dataclass(frozen=True)
class Statement:
    """One complete SQL unit, numbered in source order (1‑based)."""

    index: int
    text: str
    # Delimiter that closed the statement, ``None`` for unterminated trailing text
    delimiter: str | None = None

    def __str__(self) -> str:
        return self.text


@dataclasses.dataclass
class ParserState:
    """Scan context for a single :func:`tokenize` call."""

    delimiter: str = DEFAULT_DELIMITER
    quote: str | None = None
    escaped: bool = False
    depth: int = 0
    # Offset right after the last committed statement or directive line
    mark: int = 0
    buffer: list[str] = dataclasses.field(default_factory=list)
    statements: list[Statement] = dataclasses.field(default_factory=list)

    def commit(self, delimiter: str | None, keep_empty: bool = True) -> None:
        text = _trim("".join(self.buffer))
        self.buffer.clear()
        if text or keep_empty:
            self.statements.append(Statement(len(self.statements) + 1, text, delimiter))

    def at_boundary(self, script: str, pos: int) -> bool:
        """
        True when nothing but whitespace and closed block comments precedes
        *pos* since the start of its line or the last statement end, whichever
        is later.  Earlier lines of the current statement are not looked at.
        """
        line_start = script.rfind("\n", 0, pos) + 1
        prefix = script[max(line_start, self.mark):pos]
        return not _BLOCK_COMMENT_RE.sub("", prefix).strip()


def tokenize(
    script: str,
    delimiter: str = DEFAULT_DELIMITER,
    *,
    keep_empty: bool = True,
) -> list[Statement]:
    """
    Return the statements of *script* in source order.

    *delimiter* is the initial statement terminator; ``DELIMITER`` lines in the
    script replace it for everything that follows.  Blank statements (``;;``)
    are kept unless *keep_empty* is false.  Whatever non‑blank text is left
    after the last delimiter becomes a final statement.
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")

    state = ParserState(delimiter=delimiter)
    pos, end = 0, len(script)
    while pos < end:
        pos = _step(script, pos, state, keep_empty)

    # the last statement does not need a terminating delimiter
    if "".join(state.buffer).strip():
        state.commit(None)
    return state.statements


def _step(script: str, pos: int, state: ParserState, keep_empty: bool) -> int:
    """Consume the token at *pos* and return the offset of the next one."""
    char = script[pos]

    if state.escaped:
        state.escaped = False
        state.buffer.append(char)
        return pos + 1

    if char == "\\":
        state.escaped = True
        state.buffer.append(char)
        return pos + 1

    if state.quote is None:
        if script.startswith("/*", pos):
            state.depth += 1
            state.buffer.append("/*")
            return pos + 2

        if state.depth:
            if script.startswith("*/", pos):
                state.depth -= 1
                state.buffer.append("*/")
                return pos + 2
            state.buffer.append(char)
            return pos + 1

        # An unmatched "*/" at depth 0 falls through as plain text
        if _LINE_COMMENT_RE.match(script, pos):
            eol = script.find("\n", pos)
            return len(script) if eol == -1 else eol

    if state.quote is not None:
        if char == state.quote:
            state.quote = None
        state.buffer.append(char)
        return pos + 1

    if char in _QUOTES:
        state.quote = char
        state.buffer.append(char)
        return pos + 1

    if char in "dD":
        m = _DIRECTIVE_RE.match(script, pos)
        if m and state.at_boundary(script, pos):
            return _directive(script, m.end(), state)

    if script.startswith(state.delimiter, pos):
        state.commit(state.delimiter, keep_empty)
        state.mark = pos + len(state.delimiter)
        return state.mark

    state.buffer.append(char)
    return pos + 1


def _directive(script: str, pos: int, state: ParserState) -> int:
    """
    Switch to the delimiter spelled on the rest of the current line.

    Without a line break the remaining input is the new delimiter.  An empty
    token leaves the active delimiter untouched.
    """
    eol = script.find("\n", pos)
    stop = len(script) if eol == -1 else eol
    token = script[pos:stop].strip()
    if token:
        state.delimiter = token
    state.mark = stop if eol == -1 else eol + 1
    return state.mark


def render(statements: list[Statement], delimiter: str = DEFAULT_DELIMITER) -> str:
    """
    Write *statements* back as a script, each followed by its own delimiter.

    ``DELIMITER`` lines are emitted wherever the governing delimiter changes,
    so that :func:`tokenize` splits the output exactly like the input.
    """
    lines: list[str] = []
    current = delimiter
    for stmt in statements:
        delim = stmt.delimiter or current
        if delim != current:
            lines.append(f"DELIMITER {delim}")
            current = delim
        lines.append(stmt.text + delim)
    return "\n".join(lines) + "\n" if lines else ""
