"""Extraction of user-defined ``val`` declarations from document text."""

from __future__ import annotations

import bisect
import logging
import re
from typing import Dict, List, Tuple

from .protocol import UserSymbol

logger = logging.getLogger("ergoscript.lsp.symbols")

_VAL_PATTERN = re.compile(
    r"\bval\s+(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*(?::\s*(?P<type>[^=\n]+?))?\s*=(?![=>])[ \t]*"
)
_BLOCK_COMMENT = re.compile(r"/\*.*?(?:\*/|\Z)", re.DOTALL)
_MAX_CONTINUATION_LINES = 50
_TRAILING_OPERATOR = re.compile(r"(?:&&|\|\||[-+*/%<>=!&|^])\s*$")
_OPENERS = frozenset("([{")
_CLOSERS = frozenset(")]}")


def extract_user_symbols(text: str) -> Dict[str, UserSymbol]:
    """Return every ``val`` declared in *text*, keyed by name.

    Declarations inside nested blocks are included; a later declaration of
    the same name replaces the earlier one.
    """

    symbols: Dict[str, UserSymbol] = {}
    if not text:
        return symbols
    line_starts = _line_starts(text)
    block_comments = _block_comments(text)
    for match in _VAL_PATTERN.finditer(text):
        if _in_comment(text, match.start(), block_comments) or _in_string(text, match.start()):
            continue
        name = match.group("name")
        expression = _read_expression(text, match.end())
        line_number = bisect.bisect_right(line_starts, match.start()) - 1
        declared = match.group("type")
        symbols[name] = UserSymbol(
            name=name,
            expression=expression,
            line_number=line_number,
            declared_type=declared.strip() if declared else None,
        )
        logger.debug("Found user symbol %s = %s (line %s)", name, expression, line_number)
    return symbols


def strip_line_comment(line: str) -> str:
    in_string = False
    index = 0
    while index < len(line):
        char = line[index]
        if char == '"' and (index == 0 or line[index - 1] != "\\"):
            in_string = not in_string
        elif not in_string and line.startswith("//", index):
            return line[:index]
        index += 1
    return line


def _read_expression(text: str, start: int) -> str:
    """Read the right-hand side starting at *start*.

    The expression ends at the end of the line unless brackets opened on it
    are still unbalanced or the line ends with a binary operator, in which
    case following lines are appended.
    """

    lines: List[str] = []
    depth = 0
    position = start
    for _ in range(_MAX_CONTINUATION_LINES):
        end = text.find("\n", position)
        if end == -1:
            end = len(text)
        line = strip_line_comment(text[position:end])
        lines.append(line)
        depth = _bracket_depth(line, depth)
        if end >= len(text):
            break
        if depth <= 0 and not _continues(line, first=len(lines) == 1):
            break
        position = end + 1
    return "\n".join(lines).strip()


def _continues(line: str, first: bool) -> bool:
    stripped = line.strip()
    if not stripped:
        return first
    return _TRAILING_OPERATOR.search(stripped) is not None and not stripped.endswith("=>")


def _bracket_depth(line: str, depth: int) -> int:
    in_string = False
    for char in line:
        if char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
    return depth


def _in_comment(text: str, offset: int, block_comments: List[Tuple[int, int]]) -> bool:
    line_start = text.rfind("\n", 0, offset) + 1
    prefix = text[line_start:offset]
    if strip_line_comment(prefix) != prefix:
        return True
    index = bisect.bisect_right(block_comments, (offset, len(text) + 1)) - 1
    return index >= 0 and block_comments[index][0] <= offset < block_comments[index][1]


def _in_string(text: str, offset: int) -> bool:
    line_start = text.rfind("\n", 0, offset) + 1
    in_string = False
    for index in range(line_start, offset):
        if text[index] == '"' and (index == line_start or text[index - 1] != "\\"):
            in_string = not in_string
    return in_string


def _block_comments(text: str) -> List[Tuple[int, int]]:
    return [(match.start(), match.end()) for match in _BLOCK_COMMENT.finditer(text)]


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for index, char in enumerate(text):
        if char == "\n":
            starts.append(index + 1)
    return starts


__all__ = ["extract_user_symbols", "strip_line_comment"]
