from __future__ import annotations

import pytest

from ergoscript.compiler.lexer import Lexer, TokenType, tokenize
from ergoscript.errors import ScriptSyntaxError


def _types(source: str) -> list:
    return [token.type for token in tokenize(source)]


def test_numbers_and_suffixes() -> None:
    tokens = tokenize("100 1000000L 0xff")

    assert [(t.type, t.value) for t in tokens[:3]] == [
        (TokenType.INT, "100"),
        (TokenType.LONG, "1000000"),
        (TokenType.INT, "0xff"),
    ]


def test_operators_and_arrows() -> None:
    tokens = tokenize("a >= b && c => d == e = f")
    values = [t.value for t in tokens if t.type is TokenType.OPERATOR]

    assert values == [">=", "&&", "=="]
    assert TokenType.FAT_ARROW in _types("x => x")
    assert TokenType.ASSIGN in _types("val x = 1")


def test_positions_are_one_based() -> None:
    tokens = tokenize("val x = 1\n  HEIGHT")
    height = tokens[4]

    assert tokens[0].line == 1 and tokens[0].column == 1
    assert height.value == "HEIGHT"
    assert (height.line, height.column) == (2, 3)
    assert height.newline_before


def test_comments_are_collected() -> None:
    lexer = Lexer("// line\n/* block\n */ val x = 1")
    tokens = lexer.tokenize()

    assert [c.block for c in lexer.comments] == [False, True]
    assert lexer.comments[1].text == "/* block\n */"
    assert lexer.comments[1].line == 2
    assert tokens[0].type is TokenType.VAL


def test_string_escapes() -> None:
    token = tokenize(r'"a\"b\n"')[0]

    assert token.type is TokenType.STRING
    assert token.value == 'a"b\n'


def test_unterminated_string() -> None:
    with pytest.raises(ScriptSyntaxError) as exc_info:
        tokenize('val s = "open')

    assert exc_info.value.line == 1
    assert exc_info.value.column == 9


def test_unterminated_block_comment() -> None:
    with pytest.raises(ScriptSyntaxError):
        tokenize("/* never closed")


def test_unexpected_character() -> None:
    with pytest.raises(ScriptSyntaxError) as exc_info:
        tokenize("HEIGHT # 1")

    assert "Unexpected character" in exc_info.value.message


def test_bad_numeric_suffix() -> None:
    with pytest.raises(ScriptSyntaxError):
        tokenize("100abc")
