from __future__ import annotations

import pytest

from ergoscript.lsp.inference import infer_type, parse_chain, top_level_operators
from ergoscript.lsp.symbols import extract_user_symbols


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("100", "Int"),
        ("1000000L", "Long"),
        ("true", "Boolean"),
        ('"text"', "String"),
        ("HEIGHT", "Int"),
        ("SELF", "Box"),
        ("OUTPUTS", "Coll[Box]"),
        ("SELF.value", "Long"),
        ("SELF.tokens", "Coll[(Coll[Byte], Long)]"),
        ("SELF.creationInfo", "(Int, Coll[Byte])"),
        ("OUTPUTS(0).propositionBytes", "Coll[Byte]"),
        ("SELF.R4[Int]", "Option[Int]"),
        ("SELF.R4[Int].get", "Int"),
        ("SELF.R6[Int].getOrElse(0)", "Int"),
        ("SELF.R5[Coll[Byte]].isDefined", "Boolean"),
        ("blake2b256(SELF.propositionBytes)", "Coll[Byte]"),
        ("sigmaProp(HEIGHT > 1)", "SigmaProp"),
        ("atLeast(2, Coll(a, b))", "SigmaProp"),
        ("allOf(Coll(true, false))", "Boolean"),
        ("HEIGHT > 100", "Boolean"),
        ("a && b", "Boolean"),
        ("x != y", "Boolean"),
        ("HEIGHT + 1", "Int"),
        ("OUTPUTS.size", "Int"),
        ("OUTPUTS.isEmpty", "Boolean"),
        ("OUTPUTS.exists { b => b.value > 0 }", "Boolean"),
        ("OUTPUTS.filter { b => b.value > 0 }", "Coll[Box]"),
        ("OUTPUTS.filter { b => b.value > 0 }.size", "Int"),
        ("OUTPUTS.map { b => b.value }", "Coll[T]"),
        ("OUTPUTS.fold(0L, { (a: Long, b: Box) => a + b.value })", "T"),
        ("OUTPUTS.zip(INPUTS)", "Coll[(Box, T)]"),
        ("SELF.tokens(0)._2", "Long"),
        ("(1, true)", "(Int, Boolean)"),
        ("(1, mystery)", "(Int, T)"),
        ("()", "Unit"),
        ("Coll(1, 2)", "Coll[Int]"),
        ("Coll[Byte]()", "Coll[Byte]"),
        ("getVar[Int](1)", "Option[Int]"),
        ("if (HEIGHT > 1) 1L else 2L", "Long"),
        ("{ val x = 1; x > 0 }", "Boolean"),
        ("HEIGHT.toLong", "Long"),
    ],
)
def test_infer_type(expression: str, expected: str) -> None:
    assert infer_type(expression) == expected


@pytest.mark.parametrize("expression", ["unknownFunction()", "", "mystery", "SELF.nothing", "(x: Int) => x"])
def test_unknown_expressions_are_absent(expression: str) -> None:
    assert infer_type(expression) is None


def test_symbol_chain_resolution() -> None:
    symbols = extract_user_symbols("val boxValue = SELF.value\nval amount = boxValue\n")

    assert infer_type("amount", symbols) == "Long"
    assert infer_type("amount + 1", symbols) == "Long"


def test_member_access_on_symbol() -> None:
    symbols = extract_user_symbols("val out = OUTPUTS(0)\n")

    assert infer_type("out.value", symbols) == "Long"


def test_declared_type_is_preferred() -> None:
    symbols = extract_user_symbols("val key: Coll[Byte] = mystery()\n")

    assert infer_type("key", symbols) == "Coll[Byte]"
    assert infer_type("key.size", symbols) == "Int"


def test_cyclic_definitions_resolve_to_absent() -> None:
    symbols = extract_user_symbols("val a = b\nval b = a\n")

    assert infer_type("a", symbols) is None


def test_top_level_operators_skip_nested_ones() -> None:
    operators = top_level_operators("f(a > b) && c")

    assert operators == [(9, "&&")]


def test_prefix_minus_is_not_a_binary_operator() -> None:
    assert top_level_operators("-x") == []
    assert infer_type("-5") == "Int"


def test_parse_chain_segments() -> None:
    head, segments = parse_chain("SELF.R4[Int].getOrElse(0)")

    assert head == "SELF"
    assert segments == [("member", "R4"), ("types", "Int"), ("member", "getOrElse"), ("args", "0")]


def _alias_chain(length: int, head: str) -> str:
    lines = [f"val v0 = {head}"]
    lines.extend(f"val v{i} = v{i - 1}" for i in range(1, length))
    return "\n".join(lines) + "\n"


def test_long_alias_chain_resolves() -> None:
    symbols = extract_user_symbols(_alias_chain(250, "SELF.value"))

    assert len(symbols) == 250
    assert infer_type("v249", symbols) == "Long"
    assert infer_type("v249.toBytes", symbols) == "Coll[Byte]"


def test_long_operator_chain() -> None:
    symbols = extract_user_symbols("val x = SELF.value\n")

    assert infer_type(" + ".join(["x"] * 1500), symbols) == "Long"
    assert infer_type(" + ".join(["y"] * 1500)) is None


def test_repeated_prefix_minus() -> None:
    assert infer_type("-" * 1500 + "5") == "Int"


def test_deep_nesting_is_unknown() -> None:
    assert infer_type("(" * 1500 + "1" + ")" * 1500) is None


def test_large_document_extraction() -> None:
    text = "".join(f"val value{i} = SELF.R4[Int].get + {i}\n" for i in range(5000))
    symbols = extract_user_symbols(text)

    assert len(symbols) == 5000
    assert symbols["value4999"].line_number == 4999
    assert infer_type("value4999", symbols) == "Int"
