"""Shared value types for the ErgoScript language server."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Tuple

from lsprotocol.types import Position, Range


@dataclass(slots=True, frozen=True)
class UserSymbol:
    """A ``val`` declaration found in a document.

    ``line_number`` is 0-based.  ``expression`` is the raw right-hand side.
    """

    name: str
    expression: str
    line_number: int
    declared_type: Optional[str] = None


@dataclass(slots=True)
class HoverInfo:
    """Structured hover payload, rendered to Markdown by the hover provider."""

    description: str
    signature: Optional[str] = None
    category: Optional[str] = None
    examples: Tuple[str, ...] = field(default_factory=tuple)
    related: Tuple[str, ...] = field(default_factory=tuple)

    def to_markdown(self) -> str:
        parts = []
        if self.signature:
            parts.append(f"```ergoscript\n{self.signature}\n```")
        parts.append(self.description)
        if self.category:
            parts.append(f"**Category:** {self.category}")
        if self.examples:
            rendered = "\n".join(self.examples)
            parts.append(f"**Examples:**\n```ergoscript\n{rendered}\n```")
        if self.related:
            parts.append("**See also:** " + ", ".join(f"`{name}`" for name in self.related))
        return "\n\n".join(parts)


class CompletionContextKind(Enum):
    """Where the cursor sits, as far as completion is concerned."""

    GENERAL = auto()
    MEMBER_ACCESS = auto()
    REGISTER_GETTER_ACCESS = auto()
    CALL_ARGUMENT = auto()


@dataclass(slots=True, frozen=True)
class CompletionContext:
    """Result of classifying the text before the cursor.

    ``receiver`` is set for member and register-getter access, ``function_name``
    for call arguments and ``prefix`` holds the partially typed identifier.
    """

    kind: CompletionContextKind
    receiver: Optional[str] = None
    function_name: Optional[str] = None
    argument_index: int = 0
    prefix: str = ""

    @classmethod
    def general(cls, prefix: str = "") -> "CompletionContext":
        return cls(CompletionContextKind.GENERAL, prefix=prefix)


__all__ = [
    "UserSymbol",
    "HoverInfo",
    "CompletionContextKind",
    "CompletionContext",
    "Position",
    "Range",
]
