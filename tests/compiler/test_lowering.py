from __future__ import annotations

import pytest

from ergoscript.compiler import Lowering, parse_program
from ergoscript.compiler.tree import BlockValue, Constant, OpCode, SigmaJunction
from ergoscript.compiler.types import SInt, SSigmaProp
from ergoscript.errors import ScriptTypeError, UnsupportedFeatureError
from ergoscript.templates import compile_source


def lower(source: str):
    program = parse_program(source)
    return Lowering().lower_root(program.statements, program.result, {}, program)


def test_boolean_root_is_wrapped() -> None:
    root = lower("HEIGHT > 100")

    assert root.tpe == SSigmaProp
    assert root.opcode == OpCode.BOOL_TO_SIGMA_PROP
    assert root == lower("sigmaProp(HEIGHT > 100)")


def test_single_use_value_is_inlined() -> None:
    root = lower("val limit = 100\nsigmaProp(HEIGHT > limit)")

    assert root == lower("sigmaProp(HEIGHT > 100)")
    assert root.args[0].args[1] == Constant(100, SInt)


def test_unused_value_is_dropped() -> None:
    root = lower("val unused = 5\nsigmaProp(HEIGHT > 100)")

    assert not isinstance(root, BlockValue)


def test_shared_value_stays_in_block() -> None:
    root = lower("val h = HEIGHT\nsigmaProp(h > 1 && h < 10)")

    assert isinstance(root, BlockValue)
    assert [item.id for item in root.items] == [1]
    assert root.tpe == SSigmaProp


def test_sigma_junctions_flatten() -> None:
    root = lower("sigmaProp(HEIGHT > 1) && sigmaProp(HEIGHT > 2) && sigmaProp(HEIGHT > 3)")

    assert isinstance(root, SigmaJunction)
    assert root.opcode == OpCode.SIGMA_AND
    assert len(root.items) == 3


def test_mixed_junctions_do_not_flatten() -> None:
    root = lower("(sigmaProp(HEIGHT > 1) || sigmaProp(HEIGHT > 2)) && sigmaProp(HEIGHT > 3)")

    assert root.opcode == OpCode.SIGMA_AND
    assert len(root.items) == 2
    assert root.items[0].opcode == OpCode.SIGMA_OR


def test_boolean_operand_of_sigma_junction() -> None:
    root = lower("HEIGHT > 1 && sigmaProp(HEIGHT > 2)")

    assert root.items[0].opcode == OpCode.BOOL_TO_SIGMA_PROP


def test_literals_move_to_constants() -> None:
    template = compile_source("sigmaProp(HEIGHT > 100)")

    assert template.const_types == ["04"]
    assert template.const_values == ["c801"]
    assert template.expression_tree == "d191a37300"


def test_literal_takes_operand_type() -> None:
    template = compile_source("sigmaProp(SELF.value > 1000)")

    assert template.const_types == ["05"]
    assert template.const_values == ["d00f"]


def test_comparison_needs_numbers() -> None:
    with pytest.raises(ScriptTypeError):
        lower("sigmaProp(HEIGHT > true)")


def test_root_must_be_a_proposition() -> None:
    with pytest.raises(ScriptTypeError) as excinfo:
        lower("HEIGHT + 1")

    assert "SigmaProp or Boolean" in excinfo.value.message


def test_unknown_identifier_position() -> None:
    with pytest.raises(ScriptTypeError) as excinfo:
        lower("sigmaProp(foo > 1)")

    assert excinfo.value.message == "Unknown identifier 'foo'"
    assert excinfo.value.line == 1
    assert excinfo.value.column == 11


def test_int_literal_out_of_range() -> None:
    with pytest.raises(ScriptTypeError):
        lower("sigmaProp(HEIGHT > 3000000000)")


def test_if_without_else_is_unsupported() -> None:
    with pytest.raises(UnsupportedFeatureError):
        lower("sigmaProp(if (HEIGHT > 10) true)")
