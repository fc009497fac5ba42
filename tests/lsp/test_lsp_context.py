from __future__ import annotations

from lsprotocol.types import Position

from ergoscript.lsp.context import classify, is_register_receiver, scan_receiver
from ergoscript.lsp.protocol import CompletionContextKind


def _end_of(text: str) -> Position:
    lines = text.split("\n")
    return Position(line=len(lines) - 1, character=len(lines[-1]))


def test_dot_trigger_gives_member_access() -> None:
    context = classify("SELF.", _end_of("SELF."), ".")

    assert context.kind is CompletionContextKind.MEMBER_ACCESS
    assert context.receiver == "SELF"


def test_partial_member_keeps_member_access() -> None:
    context = classify("SELF.va", _end_of("SELF.va"))

    assert context.kind is CompletionContextKind.MEMBER_ACCESS
    assert context.receiver == "SELF"
    assert context.prefix == "va"


def test_keyword_looking_fragment_after_dot() -> None:
    context = classify("OUTPUTS(0).val", _end_of("OUTPUTS(0).val"))

    assert context.kind is CompletionContextKind.MEMBER_ACCESS
    assert context.receiver == "OUTPUTS(0)"


def test_register_access_gives_getter_context() -> None:
    context = classify("SELF.R4[Int].", _end_of("SELF.R4[Int]."), ".")

    assert context.kind is CompletionContextKind.REGISTER_GETTER_ACCESS
    assert context.receiver == "SELF.R4[Int]"


def test_open_paren_gives_call_argument() -> None:
    context = classify("sigmaProp(", _end_of("sigmaProp("), "(")

    assert context.kind is CompletionContextKind.CALL_ARGUMENT
    assert context.function_name == "sigmaProp"
    assert context.argument_index == 0


def test_argument_index_counts_commas() -> None:
    text = "atLeast(2, "
    context = classify(text, _end_of(text))

    assert context.kind is CompletionContextKind.CALL_ARGUMENT
    assert context.function_name == "atLeast"
    assert context.argument_index == 1


def test_closed_call_is_general() -> None:
    text = "val ok = sigmaProp(true) && H"
    context = classify(text, _end_of(text))

    assert context.kind is CompletionContextKind.GENERAL
    assert context.prefix == "H"


def test_out_of_range_positions_are_general() -> None:
    assert classify("SELF.", Position(line=3, character=0)).kind is CompletionContextKind.GENERAL
    assert classify("SELF.", Position(line=0, character=40)).kind is CompletionContextKind.GENERAL
    assert classify("", Position(line=0, character=0)).kind is CompletionContextKind.GENERAL


def test_scan_receiver_keeps_whole_chain() -> None:
    assert scan_receiver("val x = OUTPUTS.filter { b => b.value > 0 }(0)") == "OUTPUTS.filter { b => b.value > 0 }(0)"
    assert scan_receiver("HEIGHT > SELF.R4[Int]") == "SELF.R4[Int]"


def test_register_receiver_shapes() -> None:
    assert is_register_receiver("SELF.R4[Coll[Byte]]")
    assert is_register_receiver("getVar[Int](1)")
    assert not is_register_receiver("SELF.tokens")
    assert not is_register_receiver("OUTPUTS(0)")
