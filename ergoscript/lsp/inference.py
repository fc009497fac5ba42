"""Heuristic type inference over ErgoScript expression text.

The engine works on raw source text rather than a typed AST so that it keeps
working while the user is typing.  It understands literals, the global
constants, box/context/option/collection members, the built-in function
table, top-level operators and references to other ``val`` declarations.
Anything else is reported as unknown (``None``), which callers treat as "no
type to show" rather than as an error.

Element types that cannot be derived from local context (``map``,
``flatMap``, ``fold`` and the second half of ``zip``) are reported with the
``T`` placeholder.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Set, Tuple

from ..lang.vocabulary import (
    AVL_TREE_PROPERTY_TYPES,
    BOX_PROPERTY_TYPES,
    CONTEXT_PROPERTY_TYPES,
    FUNCTION_RETURN_TYPES,
    GLOBAL_TYPES,
    NUMERIC_CONVERSION_TYPES,
    NUMERIC_TYPES,
    REGISTER_NAMES,
    SIGMA_PROP_PROPERTY_TYPES,
)
from .protocol import UserSymbol

logger = logging.getLogger("ergoscript.lsp.inference")

UNRESOLVED = "T"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_HEAD = re.compile(r'[A-Za-z_][A-Za-z0-9_]*|\d+L?\b|"(?:[^"\\]|\\.)*"')
_INT_LITERAL = re.compile(r"\d+")
_LONG_LITERAL = re.compile(r"\d+L")

_BOOLEAN_OPERATORS = ("&&", "||", "==", "!=", ">=", "<=", ">", "<")
_ARITHMETIC_OPERATORS = ("++", "+", "-", "*", "/", "%", "&", "|", "^")
_ALL_OPERATORS = (
    "&&", "||", "==", "!=", ">=", "<=", "=>", "++", "<<", ">>",
    ">", "<", "+", "-", "*", "/", "%", "&", "|", "^",
)
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(")]}")

# Members that never take an argument list; a following ``(i)`` indexes the result.
_PROPERTIES = frozenset(
    set(BOX_PROPERTY_TYPES)
    | set(CONTEXT_PROPERTY_TYPES)
    | set(AVL_TREE_PROPERTY_TYPES)
    | set(SIGMA_PROP_PROPERTY_TYPES)
    | set(NUMERIC_CONVERSION_TYPES)
    | {"size", "indices", "isEmpty", "nonEmpty", "isDefined", "reverse", "bitwiseInverse"}
)

Segment = Tuple[str, str]

# Nesting limit for one request; deeper expressions are reported as unknown.
MAX_DEPTH = 64
# Past this depth, earlier declarations are resolved first and memoized.
_PREFETCH_DEPTH = 16


def infer_type(expression: str, symbols: Optional[Mapping[str, UserSymbol]] = None) -> Optional[str]:
    """Infer the type of *expression*, resolving names through *symbols*.

    Returns ``None`` when no rule applies.
    """

    return TypeInferencer(symbols or {}).infer(expression)


class TypeInferencer:
    """Single-use inference context.

    Each top-level call gets its own instance so the cycle guard and the memo
    of resolved names never leak between requests.  Nesting is capped at
    :data:`MAX_DEPTH`; anything deeper is unknown.
    """

    def __init__(self, symbols: Mapping[str, UserSymbol]) -> None:
        self.symbols = symbols
        self._resolving: Set[str] = set()
        self._resolved: Dict[str, Optional[str]] = {}
        self._depth = 0
        self._in_order: Optional[List[UserSymbol]] = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def infer(self, expression: str) -> Optional[str]:
        if self._depth >= MAX_DEPTH:
            logger.debug("Inference depth limit reached")
            return None
        self._depth += 1
        try:
            return self._infer(expression)
        finally:
            self._depth -= 1

    def _infer(self, expression: str) -> Optional[str]:
        expr = (expression or "").strip().rstrip(";").strip()
        if not expr:
            return None

        if expr.startswith("(") and find_closing(expr, 0) == len(expr) - 1:
            return self._infer_parenthesized(expr[1:-1])
        if expr.startswith("{") and find_closing(expr, 0) == len(expr) - 1:
            return self._infer_block(expr[1:-1])
        if re.match(r"if\s*\(", expr):
            return self._infer_if(expr)

        operators = top_level_operators(expr)
        if any(op == "=>" for _, op in operators):
            return None
        if any(op in _BOOLEAN_OPERATORS for _, op in operators):
            return "Boolean"
        arithmetic = [(index, op) for index, op in operators if op in _ARITHMETIC_OPERATORS]
        if arithmetic:
            # The first operand with a known type decides.
            start = 0
            for index, op in arithmetic + [(len(expr), "")]:
                operand = self.infer(expr[start:index])
                if operand is not None:
                    return operand
                start = index + len(op)
            return None

        if expr.startswith("!"):
            return "Boolean"
        if expr.startswith("-"):
            return self.infer(expr.lstrip("- \t"))

        return self._infer_chain(expr)

    # ------------------------------------------------------------------
    # Structured forms
    # ------------------------------------------------------------------
    def _infer_parenthesized(self, inner: str) -> Optional[str]:
        if not inner.strip():
            return "Unit"
        parts = split_top_level(inner, ",")
        if len(parts) == 1:
            return self.infer(inner)
        components = [self.infer(part) or UNRESOLVED for part in parts]
        return "(" + ", ".join(components) + ")"

    def _infer_block(self, body: str) -> Optional[str]:
        statements = [s for s in split_statements(body) if s.strip()]
        if not statements:
            return "Unit"
        result = statements[-1].strip()
        if result.startswith("val ") or result.startswith("def "):
            return "Unit"
        return self.infer(result)

    def _infer_if(self, expr: str) -> Optional[str]:
        open_paren = expr.index("(")
        close_paren = find_closing(expr, open_paren)
        if close_paren < 0:
            return None
        rest = expr[close_paren + 1:]
        branches = split_top_level_keyword(rest, "else")
        then_type = self.infer(branches[0])
        if then_type is not None:
            return then_type
        if len(branches) > 1:
            return self.infer(branches[1])
        return None

    # ------------------------------------------------------------------
    # Postfix chains: head followed by .member, [T], (args) and {block}
    # ------------------------------------------------------------------
    def _infer_chain(self, expr: str) -> Optional[str]:
        parsed = parse_chain(expr)
        if parsed is None:
            return None
        head, segments = parsed
        current, consumed = self._infer_head(head, segments)
        index = consumed
        while index < len(segments):
            if current is None:
                return None
            kind, text = segments[index]
            if kind == "member":
                current, index = self._apply_member(current, text, segments, index + 1)
            elif kind == "args":
                current = element_type(current) if is_collection(current) else None
                index += 1
            else:
                return None
        return current

    def _infer_head(self, head: str, segments: List[Segment]) -> Tuple[Optional[str], int]:
        if head.startswith("(") or head.startswith("{"):
            return self.infer(head), 0
        if head.startswith('"'):
            return "String", 0
        if _LONG_LITERAL.fullmatch(head):
            return "Long", 0
        if _INT_LITERAL.fullmatch(head):
            return "Int", 0
        if head in ("true", "false"):
            return "Boolean", 0

        type_args, call_args, consumed = _leading_application(segments)
        if head == "Coll":
            if type_args is not None:
                return f"Coll[{type_args}]", consumed
            if call_args is not None:
                first = split_top_level(call_args, ",")[0] if call_args.strip() else ""
                element = self.infer(first) if first else None
                return f"Coll[{element or UNRESOLVED}]", consumed
            return None, 0
        if head == "getVar" and type_args is not None:
            return f"Option[{type_args}]", consumed
        if head == "deserializeTo" and type_args is not None:
            return type_args, consumed
        if head in ("min", "max") and call_args is not None:
            first = split_top_level(call_args, ",")[0]
            return self.infer(first), consumed
        if head in GLOBAL_TYPES:
            return GLOBAL_TYPES[head], 0
        if head in FUNCTION_RETURN_TYPES and call_args is not None:
            return FUNCTION_RETURN_TYPES[head], consumed
        if call_args is not None:
            return None, consumed
        return self._resolve_symbol(head), 0

    def _resolve_symbol(self, name: str) -> Optional[str]:
        symbol = self.symbols.get(name)
        if symbol is None:
            return None
        if name in self._resolved:
            return self._resolved[name]
        if name in self._resolving:
            logger.debug("Cyclic definition while resolving %s", name)
            return None
        if self._depth >= _PREFETCH_DEPTH:
            self._resolve_earlier(symbol)
        self._resolving.add(name)
        try:
            resolved = symbol.declared_type or self.infer(symbol.expression)
        finally:
            self._resolving.discard(name)
        self._resolved[name] = resolved
        return resolved

    def _resolve_earlier(self, symbol: UserSymbol) -> None:
        """Resolve the declarations above *symbol* in source order.

        Each one then finds its references already memoized, so a long chain
        of ``val`` aliases does not nest once per hop.
        """
        if self._in_order is None:
            self._in_order = sorted(self.symbols.values(), key=lambda other: other.line_number)
        for other in self._in_order:
            if other.line_number >= symbol.line_number:
                break
            if other.name not in self._resolved and other.name not in self._resolving:
                self._resolve_symbol(other.name)

    def _apply_member(
        self, receiver: str, name: str, segments: List[Segment], index: int
    ) -> Tuple[Optional[str], int]:
        if name in _PROPERTIES:
            resolved = member_type(receiver, name, None)
            return resolved, index
        if name in REGISTER_NAMES:
            if index < len(segments) and segments[index][0] == "types":
                resolved = member_type(receiver, name, segments[index][1].strip())
                return resolved, index + 1
            return member_type(receiver, name, None), index
        if name == "get" and is_option(receiver):
            return option_inner(receiver), index

        type_args = None
        first_arg = None
        while index < len(segments) and segments[index][0] in ("types", "args", "block"):
            kind, text = segments[index]
            if kind == "types" and type_args is None:
                type_args = text.strip()
            elif kind == "args" and first_arg is None:
                first_arg = text
            index += 1
        return member_type(receiver, name, type_args, first_arg=first_arg, inferencer=self), index


# ----------------------------------------------------------------------
# Member tables
# ----------------------------------------------------------------------
def member_type(
    receiver: str,
    name: str,
    type_args: Optional[str],
    *,
    first_arg: Optional[str] = None,
    inferencer: Optional[TypeInferencer] = None,
) -> Optional[str]:
    """Type of ``receiver.name`` or ``None`` when the member is unknown."""

    if receiver == "Box":
        if name in BOX_PROPERTY_TYPES:
            return BOX_PROPERTY_TYPES[name]
        if name in REGISTER_NAMES:
            return f"Option[{type_args or UNRESOLVED}]"
        if name == "getReg":
            return f"Option[{type_args or UNRESOLVED}]"
        return None

    if is_option(receiver):
        inner = option_inner(receiver)
        if name in ("get", "getOrElse"):
            return inner
        if name in ("isDefined", "isEmpty", "nonEmpty"):
            return "Boolean"
        if name == "map":
            return f"Option[{UNRESOLVED}]"
        if name == "filter":
            return receiver
        return None

    if is_collection(receiver):
        element = element_type(receiver)
        if name == "size":
            return "Int"
        if name == "indices":
            return "Coll[Int]"
        if name in ("isEmpty", "nonEmpty", "exists", "forall", "startsWith", "endsWith"):
            return "Boolean"
        if name in ("filter", "slice", "append", "patch", "updated", "updateMany", "reverse"):
            return receiver
        if name in ("map", "flatMap"):
            return f"Coll[{UNRESOLVED}]"
        if name == "fold":
            return UNRESOLVED
        if name == "zip":
            return f"Coll[({element}, {UNRESOLVED})]"
        if name in ("apply", "getOrElse"):
            return element
        if name == "get":
            return f"Option[{element}]"
        if name in ("indexOf", "lastIndexOf"):
            return "Int"
        return None

    if receiver == "Context":
        if name in CONTEXT_PROPERTY_TYPES:
            return CONTEXT_PROPERTY_TYPES[name]
        if name == "getVar":
            return f"Option[{type_args or UNRESOLVED}]"
        return None

    if receiver == "AvlTree":
        if name in AVL_TREE_PROPERTY_TYPES:
            return AVL_TREE_PROPERTY_TYPES[name]
        if name == "contains":
            return "Boolean"
        if name == "get":
            return "Option[Coll[Byte]]"
        if name in ("insert", "update", "remove"):
            return "Option[AvlTree]"
        return None

    if receiver == "SigmaProp":
        return SIGMA_PROP_PROPERTY_TYPES.get(name)

    if receiver in NUMERIC_TYPES:
        if name in NUMERIC_CONVERSION_TYPES:
            return NUMERIC_CONVERSION_TYPES[name]
        if name in ("bitwiseInverse", "bitwiseOr", "bitwiseAnd", "bitwiseXor", "shiftLeft", "shiftRight"):
            return receiver
        return None

    if receiver == "GroupElement":
        if name in ("exp", "multiply", "negate"):
            return "GroupElement"
        if name == "getEncoded":
            return "Coll[Byte]"
        return None

    if is_tuple(receiver):
        match = re.fullmatch(r"_(\d+)", name)
        if match:
            components = tuple_components(receiver)
            position = int(match.group(1)) - 1
            if 0 <= position < len(components):
                return components[position]
        return None

    return None


# ----------------------------------------------------------------------
# Type descriptor helpers
# ----------------------------------------------------------------------
def is_collection(tpe: Optional[str]) -> bool:
    return _unwrap(tpe, "Coll") is not None


def is_option(tpe: Optional[str]) -> bool:
    return _unwrap(tpe, "Option") is not None


def is_tuple(tpe: Optional[str]) -> bool:
    return bool(tpe) and tpe.startswith("(") and find_closing(tpe, 0) == len(tpe) - 1


def element_type(tpe: Optional[str]) -> Optional[str]:
    return _unwrap(tpe, "Coll")


def option_inner(tpe: Optional[str]) -> Optional[str]:
    return _unwrap(tpe, "Option")


def tuple_components(tpe: str) -> List[str]:
    return [part.strip() for part in split_top_level(tpe[1:-1], ",")]


def _unwrap(tpe: Optional[str], constructor: str) -> Optional[str]:
    if not tpe:
        return None
    prefix = constructor + "["
    if not tpe.startswith(prefix):
        return None
    if find_closing(tpe, len(constructor)) != len(tpe) - 1:
        return None
    return tpe[len(prefix):-1].strip()


# ----------------------------------------------------------------------
# Text scanning helpers (bracket and string aware)
# ----------------------------------------------------------------------
def find_closing(text: str, start: int) -> int:
    """Index of the bracket closing the one at *start*, or -1."""

    depth = 0
    index = start
    length = len(text)
    while index < length:
        char = text[index]
        if char == '"':
            index = _skip_string(text, index)
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth == 0:
                return index
            if depth < 0:
                return -1
        index += 1
    return -1


def _skip_string(text: str, start: int) -> int:
    index = start + 1
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == '"':
            return index + 1
        index += 1
    return len(text)


def top_level_operators(expr: str) -> List[Tuple[int, str]]:
    """Binary operators at bracket depth zero, in source order."""

    found: List[Tuple[int, str]] = []
    depth = 0
    index = 0
    length = len(expr)
    while index < length:
        char = expr[index]
        if char == '"':
            index = _skip_string(expr, index)
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
        elif depth == 0:
            for op in _ALL_OPERATORS:
                if expr.startswith(op, index):
                    if op == "!=" or _has_left_operand(expr, index):
                        found.append((index, op))
                    index += len(op)
                    break
            else:
                index += 1
            continue
        index += 1
    return found


def _has_left_operand(expr: str, index: int) -> bool:
    position = index - 1
    while position >= 0 and expr[position] in " \t\r\n":
        position -= 1
    if position < 0:
        return False
    previous = expr[position]
    return previous.isalnum() or previous in "_)]}\""


def split_top_level(text: str, separator: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    start = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char == '"':
            index = _skip_string(text, index)
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
        elif depth == 0 and text.startswith(separator, index):
            parts.append(text[start:index])
            index += len(separator)
            start = index
            continue
        index += 1
    parts.append(text[start:])
    return parts


def split_statements(body: str) -> List[str]:
    statements: List[str] = []
    for chunk in split_top_level(body, ";"):
        statements.extend(split_top_level(chunk, "\n"))
    merged: List[str] = []
    for statement in statements:
        stripped = statement.strip()
        # A line starting with an operator or dot continues the previous one.
        if merged and stripped and (stripped[0] in ".&|+*/%" or stripped.startswith("else")):
            merged[-1] = merged[-1] + " " + stripped
        else:
            merged.append(statement)
    return merged


def split_top_level_keyword(text: str, keyword: str) -> List[str]:
    pattern = re.compile(rf"\b{keyword}\b")
    depth = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char == '"':
            index = _skip_string(text, index)
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
        elif depth == 0 and pattern.match(text, index) and (index == 0 or not text[index - 1].isalnum()):
            return [text[:index], text[index + len(keyword):]]
        index += 1
    return [text]


def parse_chain(expr: str) -> Optional[Tuple[str, List[Segment]]]:
    """Split ``head.member[T](args){block}...`` into head and segments.

    Returns ``None`` when the text is not a single postfix chain.
    """

    expr = expr.strip()
    if not expr:
        return None
    if expr[0] in "({":
        end = find_closing(expr, 0)
        if end < 0:
            return None
        head = expr[: end + 1]
        index = end + 1
    else:
        match = _HEAD.match(expr)
        if match is None:
            return None
        head = match.group(0)
        index = match.end()

    segments: List[Segment] = []
    length = len(expr)
    while index < length:
        while index < length and expr[index] in " \t\r\n":
            index += 1
        if index >= length:
            break
        char = expr[index]
        if char == ".":
            index += 1
            while index < length and expr[index] in " \t":
                index += 1
            match = _IDENTIFIER.match(expr, index)
            if match is None:
                return None
            segments.append(("member", match.group(0)))
            index = match.end()
        elif char in _OPENERS:
            end = find_closing(expr, index)
            if end < 0:
                return None
            kind = {"(": "args", "[": "types", "{": "block"}[char]
            segments.append((kind, expr[index + 1:end]))
            index = end + 1
        else:
            return None
    return head, segments


def _leading_application(segments: List[Segment]) -> Tuple[Optional[str], Optional[str], int]:
    """Type arguments and call arguments directly applied to the head."""

    type_args = None
    call_args = None
    consumed = 0
    if consumed < len(segments) and segments[consumed][0] == "types":
        type_args = segments[consumed][1].strip()
        consumed += 1
    if consumed < len(segments) and segments[consumed][0] in ("args", "block"):
        call_args = segments[consumed][1]
        consumed += 1
    return type_args, call_args, consumed


__all__ = [
    "UNRESOLVED",
    "infer_type",
    "TypeInferencer",
    "member_type",
    "is_collection",
    "is_option",
    "is_tuple",
    "element_type",
    "option_inner",
    "tuple_components",
    "find_closing",
    "top_level_operators",
    "split_top_level",
    "split_statements",
    "parse_chain",
]
