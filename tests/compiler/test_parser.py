from __future__ import annotations

import pytest

from ergoscript.compiler import ast
from ergoscript.compiler.parser import parse_expression, parse_program, parse_type
from ergoscript.compiler.types import SInt, SLong, coll, func, option, tuple_of
from ergoscript.errors import ScriptSyntaxError


def test_precedence_follows_first_character() -> None:
    expr = parse_expression("a || b && c == d + e * f")

    assert isinstance(expr, ast.Binary) and expr.op == "||"
    right = expr.right
    assert right.op == "&&"
    assert right.right.op == "=="
    assert right.right.right.op == "+"
    assert right.right.right.right.op == "*"


def test_binary_operators_are_left_associative() -> None:
    expr = parse_expression("a - b - c")

    assert expr.op == "-"
    assert isinstance(expr.left, ast.Binary)
    assert expr.right.name == "c"


def test_negative_literal() -> None:
    expr = parse_expression("-5")

    assert isinstance(expr, ast.Literal)
    assert expr.value == -5


def test_postfix_chain() -> None:
    expr = parse_expression("SELF.R4[Coll[Byte]].get")

    assert isinstance(expr, ast.Select) and expr.name == "get"
    register = expr.receiver
    assert isinstance(register, ast.TypeApply)
    assert register.type_args == [coll(parse_type("Byte"))]
    assert register.callee.name == "R4"


def test_lambda_forms() -> None:
    single = parse_expression("OUTPUTS.exists { b => b.value > 0 }")
    typed = parse_expression("OUTPUTS.fold(0L, { (acc: Long, b: Box) => acc + b.value })")

    assert isinstance(single, ast.Apply)
    assert isinstance(single.args[0], ast.Lambda)
    assert [p.name for p in single.args[0].params] == ["b"]
    fold_lambda = typed.args[1]
    assert isinstance(fold_lambda, ast.Lambda)
    assert [p.type for p in fold_lambda.params] == [SLong, parse_type("Box")]


def test_tuple_and_unit() -> None:
    assert isinstance(parse_expression("(1, 2L)"), ast.TupleExpr)
    unit = parse_expression("()")
    assert isinstance(unit, ast.Literal) and unit.kind == "Unit"


def test_if_else() -> None:
    expr = parse_expression("if (HEIGHT > 10) 1 else 2")

    assert isinstance(expr, ast.If)
    assert expr.else_branch.value == 2


def test_program_statements_and_result() -> None:
    program = parse_program("val a = 1\ndef twice(x: Int) = x * 2\nsigmaProp(twice(a) > 1)")

    assert [type(s).__name__ for s in program.statements] == ["ValDecl", "DefDecl"]
    assert isinstance(program.result, ast.Apply)


def test_line_break_ends_statement() -> None:
    program = parse_program("val a = HEIGHT\n(a, a)")

    assert isinstance(program.statements[0].value, ast.Name)
    assert isinstance(program.result, ast.TupleExpr)


def test_line_break_inside_parentheses_is_ignored() -> None:
    program = parse_program("sigmaProp(\n  HEIGHT >\n  100\n)")

    assert program.statements == []
    assert isinstance(program.result.args[0], ast.Binary)


def test_annotated_definition() -> None:
    program = parse_program("/* doc */\n@contract def lock(h: Int = 1) = sigmaProp(HEIGHT > h)")
    contract = program.contract()

    assert contract is not None
    assert contract.annotation("contract").offset == len("/* doc */\n")
    assert contract.params[0].type == SInt
    assert contract.params[0].default.value == 1
    assert program.comments[0].text == "/* doc */"


def test_types() -> None:
    assert parse_type("Coll[(Coll[Byte], Long)]") == coll(tuple_of(coll(parse_type("Byte")), SLong))
    assert parse_type("Option[Int]") == option(SInt)
    assert parse_type("Int => Boolean") == func([SInt], parse_type("Boolean"))


def test_unknown_type() -> None:
    with pytest.raises(ScriptSyntaxError):
        parse_type("Foo")


def test_missing_semicolon_between_statements() -> None:
    with pytest.raises(ScriptSyntaxError) as exc_info:
        parse_program("val a = 1 val b = 2\nsigmaProp(true)")

    assert exc_info.value.line == 1
    assert exc_info.value.column == 11


def test_annotation_requires_def() -> None:
    with pytest.raises(ScriptSyntaxError):
        parse_program("@contract val x = 1")


def test_trailing_tokens_after_expression() -> None:
    with pytest.raises(ScriptSyntaxError):
        parse_expression("1 2")
