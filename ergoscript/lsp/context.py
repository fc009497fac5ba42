"""Classification of the text around the cursor for completion."""

from __future__ import annotations

import re
from typing import Optional

from lsprotocol.types import Position

from .protocol import CompletionContext, CompletionContextKind

# Only this much text before the cursor is inspected.
_WINDOW = 4096

_REGISTER_HEAD = re.compile(r"(?:^|\.)\s*R[4-9]$")
_GETVAR_HEAD = re.compile(r"(?:^|[^A-Za-z0-9_])getVar$")
_TRAILING_IDENTIFIER = re.compile(r"[A-Za-z0-9_]*$")
_NOT_CALLABLE = frozenset({"if", "else", "val", "def", "while", "for"})
_MATCHING_OPENER = {")": "(", "]": "[", "}": "{"}


def classify(text: str, position: Position, trigger: Optional[str] = None) -> CompletionContext:
    """Classify the completion context at *position*.

    Never raises: positions outside the document and unparsable text give a
    general context.
    """

    before = text_before(text, position)
    if before is None:
        return CompletionContext.general()

    prefix = _TRAILING_IDENTIFIER.search(before).group(0)
    rest = before[: len(before) - len(prefix)]
    stripped = rest.rstrip()

    if trigger == "." or stripped.endswith("."):
        if stripped.endswith("."):
            receiver = scan_receiver(stripped[:-1])
            if receiver and is_register_receiver(receiver):
                return CompletionContext(
                    CompletionContextKind.REGISTER_GETTER_ACCESS, receiver=receiver, prefix=prefix
                )
            return CompletionContext(CompletionContextKind.MEMBER_ACCESS, receiver=receiver, prefix=prefix)

    call = _enclosing_call(rest)
    if call is not None:
        name, argument_index = call
        if name:
            return CompletionContext(
                CompletionContextKind.CALL_ARGUMENT,
                function_name=name,
                argument_index=argument_index,
                prefix=prefix,
            )
        if trigger == "(":
            return CompletionContext(CompletionContextKind.CALL_ARGUMENT, prefix=prefix)

    return CompletionContext.general(prefix)


def text_before(text: str, position: Position) -> Optional[str]:
    """Document text up to *position*, limited to a trailing window."""

    line = position.line
    character = position.character
    if line < 0 or character < 0:
        return None
    lines = text.split("\n")
    if line >= len(lines) or character > len(lines[line]):
        return None
    offset = sum(len(previous) + 1 for previous in lines[:line]) + character
    return text[max(0, offset - _WINDOW): offset]


def is_register_receiver(receiver: str) -> bool:
    """Whether *receiver* ends with ``R<n>[T]`` or ``getVar[T](id)``."""

    receiver = receiver.rstrip()
    if receiver.endswith(")"):
        head = _strip_trailing_group(receiver)
        if not head.endswith("]"):
            return False
        return _GETVAR_HEAD.search(_strip_trailing_group(head)) is not None
    if receiver.endswith("]"):
        return _REGISTER_HEAD.search(_strip_trailing_group(receiver)) is not None
    return False


def _strip_trailing_group(text: str) -> str:
    opening = _find_opening(text, len(text) - 1)
    if opening < 0:
        return ""
    return text[:opening].rstrip()


def scan_receiver(text: str) -> str:
    """Return the postfix chain that ends at the end of *text*.

    ``OUTPUTS.filter { b => b.value > 0 }(0)`` is returned whole, as is
    ``SELF.R4[Int]``.  Scanning stops at the first character that cannot be
    part of the chain.
    """

    index = len(text.rstrip())
    end = index
    expect_atom = True
    while index > 0:
        char = text[index - 1]
        if expect_atom:
            if char in _MATCHING_OPENER:
                opening = _find_opening(text, index - 1)
                if opening < 0:
                    break
                index = opening
                expect_atom = _continues_before_group(text, index)
                if expect_atom:
                    index = _skip_space_before_group(text, index)
                else:
                    break
                continue
            if _is_identifier_char(char):
                while index > 0 and _is_identifier_char(text[index - 1]):
                    index -= 1
                expect_atom = False
                continue
            break
        # After an identifier: the chain continues only through a dot.
        probe = index
        while probe > 0 and text[probe - 1] in " \t\r\n":
            probe -= 1
        if probe > 0 and text[probe - 1] == ".":
            index = probe - 1
            while index > 0 and text[index - 1] in " \t\r\n":
                index -= 1
            expect_atom = True
            continue
        break
    return text[index:end].strip()


def _continues_before_group(text: str, index: int) -> bool:
    """Whether something belonging to the chain precedes a bracket group."""

    probe = _skip_space_before_group(text, index)
    if probe == 0:
        return False
    previous = text[probe - 1]
    return _is_identifier_char(previous) or previous in ")]}."


def _skip_space_before_group(text: str, index: int) -> int:
    # Only a block argument may be separated from its method by whitespace.
    if index < len(text) and text[index] != "{":
        return index
    while index > 0 and text[index - 1] in " \t\r\n":
        index -= 1
    return index


def _find_opening(text: str, close_index: int) -> int:
    depth = 0
    index = close_index
    while index >= 0:
        char = text[index]
        if char in _MATCHING_OPENER:
            depth += 1
        elif char in "([{":
            depth -= 1
            if depth == 0:
                return index
        index -= 1
    return -1


def _enclosing_call(text: str) -> Optional[tuple]:
    """Find the innermost unclosed ``(`` before the cursor.

    Returns ``(function_name, argument_index)``; the name is empty when the
    parenthesis is not preceded by an identifier.  Returns ``None`` when the
    cursor is not inside parentheses of the current block.
    """

    depth = 0
    commas = 0
    index = len(text) - 1
    while index >= 0:
        char = text[index]
        if char in ")]}":
            depth += 1
        elif char in "([{":
            if depth > 0:
                depth -= 1
            elif char == "(":
                return _callee(text, index), commas
            else:
                return None
        elif char == "," and depth == 0:
            commas += 1
        elif char == ";" and depth == 0:
            return None
        index -= 1
    return None


def _callee(text: str, paren_index: int) -> str:
    probe = paren_index
    # Skip explicit type arguments: getVar[Int](
    if probe > 0 and text[probe - 1] == "]":
        opening = _find_opening(text, probe - 1)
        if opening < 0:
            return ""
        probe = opening
    end = probe
    while probe > 0 and _is_identifier_char(text[probe - 1]):
        probe -= 1
    name = text[probe:end]
    if not name or name[0].isdigit() or name in _NOT_CALLABLE:
        return ""
    return name


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


__all__ = ["classify", "text_before", "scan_receiver", "is_register_receiver"]
