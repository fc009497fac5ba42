"""Hover composition for built-in names and user-defined values."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple

from lsprotocol.types import Hover, MarkupContent, MarkupKind, Position, Range

from ..lang.vocabulary import Builtin, lookup_builtin
from .inference import infer_type
from .protocol import HoverInfo, UserSymbol
from .symbols import extract_user_symbols

logger = logging.getLogger("ergoscript.lsp.hover")

USER_SYMBOL_CATEGORY = "Variable"


def describe(symbol: UserSymbol, resolved_type: str) -> HoverInfo:
    """Hover payload for a user-defined ``val``."""

    return HoverInfo(
        signature=f"val {symbol.name}: {resolved_type}",
        description=(
            f"User-defined value (line {symbol.line_number + 1}).\n\n"
            f"**Inferred type:** `{resolved_type}`\n\n"
            f"**Expression:** `{symbol.expression}`"
        ),
        category=USER_SYMBOL_CATEGORY,
    )


def describe_builtin(builtin: Builtin) -> HoverInfo:
    return HoverInfo(
        signature=builtin.hover_signature(),
        description=builtin.hover_description(),
        category=builtin.category,
        examples=builtin.examples,
        related=builtin.related,
    )


def hover_info(
    text: str,
    name: str,
    symbols: Optional[Mapping[str, UserSymbol]] = None,
) -> Optional[HoverInfo]:
    """Resolve *name* against the built-ins first, then the document's values."""

    builtin = lookup_builtin(name)
    if builtin is not None:
        return describe_builtin(builtin)
    if symbols is None:
        symbols = extract_user_symbols(text)
    symbol = symbols.get(name)
    if symbol is None:
        return None
    resolved = infer_type(symbol.expression, symbols)
    if resolved is None and symbol.declared_type:
        resolved = symbol.declared_type
    if resolved is None:
        logger.debug("No type inferred for %s", name)
        return None
    return describe(symbol, resolved)


def identifier_at(text: str, line: int, character: int) -> Optional[Tuple[str, int, int]]:
    """Return ``(name, start, end)`` of the identifier under the cursor.

    A leading ``@`` is kept so annotations resolve as a whole.
    """

    lines = text.split("\n")
    if line < 0 or line >= len(lines):
        return None
    current = lines[line]
    if character < 0 or character >= len(current) or not _is_identifier_char(current[character]):
        return None
    start = character
    while start > 0 and _is_identifier_char(current[start - 1]):
        start -= 1
    end = character
    while end < len(current) and _is_identifier_char(current[end]):
        end += 1
    if start > 0 and current[start - 1] == "@":
        start -= 1
    return current[start:end], start, end


def hover_at(text: str, position: Position) -> Optional[Hover]:
    found = identifier_at(text, position.line, position.character)
    if found is None:
        return None
    name, start, end = found
    info = hover_info(text, name)
    if info is None:
        return None
    return Hover(
        contents=MarkupContent(kind=MarkupKind.Markdown, value=info.to_markdown()),
        range=Range(
            start=Position(line=position.line, character=start),
            end=Position(line=position.line, character=end),
        ),
    )


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


__all__ = [
    "USER_SYMBOL_CATEGORY",
    "describe",
    "describe_builtin",
    "hover_info",
    "identifier_at",
    "hover_at",
]
