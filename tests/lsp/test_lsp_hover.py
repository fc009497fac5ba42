from __future__ import annotations

from lsprotocol.types import Position

from ergoscript.lsp.hover import describe, hover_at, hover_info, identifier_at
from ergoscript.lsp.protocol import UserSymbol

DOCUMENT = """val boxValue = SELF.value
val amount = boxValue
val key: Coll[Byte] = mystery()
sigmaProp(HEIGHT > 10 && amount > 0L && key.size > 0)
"""


def test_describe_user_symbol() -> None:
    info = describe(UserSymbol(name="limit", expression="100", line_number=2), "Int")

    assert info.signature == "val limit: Int"
    assert info.category == "Variable"
    assert "line 3" in info.description
    assert "`100`" in info.description


def test_hover_info_resolves_symbol_chain() -> None:
    info = hover_info(DOCUMENT, "amount")

    assert info is not None
    assert info.signature == "val amount: Long"


def test_hover_info_falls_back_to_declared_type() -> None:
    info = hover_info(DOCUMENT, "key")

    assert info is not None
    assert info.signature == "val key: Coll[Byte]"


def test_hover_info_for_builtin() -> None:
    info = hover_info(DOCUMENT, "HEIGHT")

    assert info is not None
    assert info.signature == "HEIGHT: Int"
    assert info.category == "Global Constant"


def test_hover_info_unknown_name() -> None:
    assert hover_info(DOCUMENT, "nothingHere") is None


def test_hover_at_renders_markdown() -> None:
    hover = hover_at(DOCUMENT, Position(line=1, character=6))

    assert hover is not None
    assert "val amount: Long" in hover.contents.value
    assert hover.range.start.character == 4
    assert hover.range.end.character == 10


def test_hover_at_whitespace_or_outside() -> None:
    assert hover_at(DOCUMENT, Position(line=0, character=3)) is None
    assert hover_at(DOCUMENT, Position(line=40, character=0)) is None


def test_identifier_at_keeps_annotation_marker() -> None:
    assert identifier_at("@contract def f() = 1", 0, 3) == ("@contract", 0, 9)
