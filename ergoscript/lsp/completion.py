"""Completion items for ErgoScript documents."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    InsertTextFormat,
    Position,
)

from ..lang.vocabulary import (
    ANNOTATIONS,
    AVL_TREE_MEMBERS,
    BOX_MEMBERS,
    COLLECTION_MEMBERS,
    COMMON_MEMBERS,
    CONTEXT_MEMBERS,
    FUNCTION_ARGUMENT_TYPES,
    FUNCTION_RETURN_TYPES,
    FUNCTIONS,
    GLOBAL_CONSTANTS,
    GLOBAL_TYPES,
    KEYWORDS,
    NUMERIC_MEMBERS,
    NUMERIC_TYPES,
    OPTION_MEMBERS,
    SIGMA_PROP_MEMBERS,
    TYPES,
    Builtin,
    BuiltinKind,
)
from .context import classify
from .inference import element_type, infer_type, is_collection, is_option, is_tuple, tuple_components
from .protocol import CompletionContext, CompletionContextKind, UserSymbol
from .symbols import extract_user_symbols

logger = logging.getLogger("ergoscript.lsp.completion")

_KIND_MAP: Dict[BuiltinKind, CompletionItemKind] = {
    BuiltinKind.KEYWORD: CompletionItemKind.Keyword,
    BuiltinKind.CONSTANT: CompletionItemKind.Constant,
    BuiltinKind.FUNCTION: CompletionItemKind.Function,
    BuiltinKind.PROPERTY: CompletionItemKind.Property,
    BuiltinKind.METHOD: CompletionItemKind.Method,
    BuiltinKind.TYPE: CompletionItemKind.Class,
    BuiltinKind.ANNOTATION: CompletionItemKind.Snippet,
}

_NUMERIC_LITERAL = re.compile(r".*\d+[LB]?$")


def complete(text: str, position: Position, trigger: Optional[str] = None) -> CompletionList:
    """Completion list for the cursor at *position*.

    Never fails; unknown contexts fall back to the general catalog.
    """

    context = classify(text, position, trigger)
    logger.debug("Completion context %s at %s:%s", context.kind.name, position.line, position.character)
    try:
        items = completions_for(context, text)
    except Exception as exc:
        logger.debug("Completion for %s failed: %s", context.kind.name, exc, exc_info=True)
        items = general_completions()
    return CompletionList(is_incomplete=False, items=items)


def completions_for(context: CompletionContext, text: str) -> List[CompletionItem]:
    if context.kind is CompletionContextKind.MEMBER_ACCESS:
        symbols = extract_user_symbols(text)
        return member_completions(context.receiver or "", symbols)
    if context.kind is CompletionContextKind.REGISTER_GETTER_ACCESS:
        return _from_builtins(OPTION_MEMBERS)
    if context.kind is CompletionContextKind.CALL_ARGUMENT:
        symbols = extract_user_symbols(text)
        return argument_completions(context.function_name, context.argument_index, symbols)
    return general_completions(extract_user_symbols(text))


def general_completions(symbols: Optional[Mapping[str, UserSymbol]] = None) -> List[CompletionItem]:
    items = _from_builtins(KEYWORDS + GLOBAL_CONSTANTS + FUNCTIONS + TYPES + ANNOTATIONS)
    if symbols:
        taken = {item.label for item in items}
        items.extend(item for item in _symbol_items(symbols) if item.label not in taken)
    return items


def member_completions(receiver: str, symbols: Optional[Mapping[str, UserSymbol]] = None) -> List[CompletionItem]:
    receiver_type = infer_type(receiver, symbols or {}) if receiver else None
    logger.debug("Receiver %r inferred as %s", receiver, receiver_type)
    if receiver_type is not None and is_tuple(receiver_type):
        return _tuple_items(receiver_type)
    return _from_builtins(member_catalog(receiver, receiver_type))


def member_catalog(receiver: str, receiver_type: Optional[str]) -> Tuple[Builtin, ...]:
    """Pick the member catalog for a receiver, by type first and by name second."""

    if receiver_type == "Box":
        return BOX_MEMBERS
    if is_collection(receiver_type):
        if element_type(receiver_type) == "Box":
            return COLLECTION_MEMBERS + BOX_MEMBERS
        return COLLECTION_MEMBERS
    if is_option(receiver_type):
        return OPTION_MEMBERS
    if receiver_type == "Context":
        return CONTEXT_MEMBERS
    if receiver_type == "AvlTree":
        return AVL_TREE_MEMBERS
    if receiver_type == "SigmaProp":
        return SIGMA_PROP_MEMBERS
    if receiver_type in NUMERIC_TYPES:
        return NUMERIC_MEMBERS

    # Receiver could not be typed; guess from its spelling.
    if receiver == "CONTEXT":
        return CONTEXT_MEMBERS
    if receiver == "SELF" or receiver.startswith("OUTPUTS(") or receiver.startswith("INPUTS("):
        return BOX_MEMBERS
    if "LastBlockUtxoRootHash" in receiver or "AvlTree" in receiver:
        return AVL_TREE_MEMBERS
    if "prop" in receiver.lower():
        return SIGMA_PROP_MEMBERS
    if _NUMERIC_LITERAL.match(receiver):
        return NUMERIC_MEMBERS
    return COMMON_MEMBERS


def argument_completions(
    function_name: Optional[str],
    argument_index: int,
    symbols: Optional[Mapping[str, UserSymbol]] = None,
) -> List[CompletionItem]:
    """Functions, globals and user values, expected-type matches sorted first."""

    expected = _expected_argument_type(function_name, argument_index)
    items: List[CompletionItem] = []
    for builtin in FUNCTIONS:
        items.append(_builtin_item(builtin, _rank(expected, FUNCTION_RETURN_TYPES.get(builtin.name), builtin.name)))
    for builtin in GLOBAL_CONSTANTS:
        items.append(_builtin_item(builtin, _rank(expected, GLOBAL_TYPES.get(builtin.name), builtin.name)))
    if symbols:
        items.extend(_symbol_items(symbols, expected))
    return items


def _expected_argument_type(function_name: Optional[str], argument_index: int) -> Optional[str]:
    if not function_name:
        return None
    expected = FUNCTION_ARGUMENT_TYPES.get(function_name)
    if not expected or argument_index >= len(expected):
        return None
    return expected[argument_index]


def _rank(expected: Optional[str], actual: Optional[str], label: str) -> Optional[str]:
    if expected is None:
        return None
    bucket = "0" if actual == expected else "1"
    return f"{bucket}_{label.lower()}"


def _from_builtins(entries: Iterable[Builtin]) -> List[CompletionItem]:
    return [_builtin_item(entry) for entry in entries]


def _builtin_item(builtin: Builtin, sort_text: Optional[str] = None) -> CompletionItem:
    return CompletionItem(
        label=builtin.name,
        kind=_KIND_MAP[builtin.kind],
        detail=builtin.detail,
        documentation=builtin.documentation,
        insert_text=builtin.insert_text,
        insert_text_format=InsertTextFormat.Snippet if builtin.is_snippet else InsertTextFormat.PlainText,
        sort_text=sort_text,
    )


def _symbol_items(
    symbols: Mapping[str, UserSymbol], expected: Optional[str] = None
) -> List[CompletionItem]:
    items = []
    for symbol in sorted(symbols.values(), key=lambda entry: entry.line_number):
        resolved = symbol.declared_type or infer_type(symbol.expression, symbols)
        items.append(
            CompletionItem(
                label=symbol.name,
                kind=CompletionItemKind.Variable,
                detail=resolved or "val",
                documentation=f"User-defined value (line {symbol.line_number + 1}): {symbol.expression}",
                insert_text=symbol.name,
                insert_text_format=InsertTextFormat.PlainText,
                sort_text=_rank(expected, resolved, symbol.name),
            )
        )
    return items


def _tuple_items(tuple_type: str) -> List[CompletionItem]:
    items = []
    for position, component in enumerate(tuple_components(tuple_type), start=1):
        label = f"_{position}"
        items.append(
            CompletionItem(
                label=label,
                kind=CompletionItemKind.Field,
                detail=component,
                documentation=f"Component {position} of the tuple {tuple_type}.",
                insert_text=label,
                insert_text_format=InsertTextFormat.PlainText,
            )
        )
    return items


__all__ = [
    "complete",
    "completions_for",
    "general_completions",
    "member_completions",
    "member_catalog",
    "argument_completions",
]
