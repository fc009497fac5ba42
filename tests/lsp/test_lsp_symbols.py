from __future__ import annotations

from ergoscript.lsp.symbols import extract_user_symbols, strip_line_comment


def test_declarations_are_collected_with_line_numbers() -> None:
    symbols = extract_user_symbols("val a = 1\n\nval b: Long = 2L\n")

    assert set(symbols) == {"a", "b"}
    assert symbols["a"].expression == "1"
    assert symbols["a"].line_number == 0
    assert symbols["a"].declared_type is None
    assert symbols["b"].expression == "2L"
    assert symbols["b"].line_number == 2
    assert symbols["b"].declared_type == "Long"


def test_later_declaration_wins() -> None:
    symbols = extract_user_symbols("val x = 1\nval x = true\n")

    assert len(symbols) == 1
    assert symbols["x"].expression == "true"
    assert symbols["x"].line_number == 1


def test_unbalanced_brackets_continue_on_next_lines() -> None:
    symbols = extract_user_symbols("val xs = Coll(\n  1,\n  2\n)\nval y = 3")

    assert symbols["xs"].expression == "Coll(\n  1,\n  2\n)"
    assert symbols["y"].line_number == 4


def test_comments_are_ignored() -> None:
    text = '// val hidden = 1\n/* val alsoHidden = 2 */\nval shown = 3 // three\n'
    symbols = extract_user_symbols(text)

    assert list(symbols) == ["shown"]
    assert symbols["shown"].expression == "3"


def test_nested_declarations_are_included() -> None:
    symbols = extract_user_symbols("{\n  val inner = HEIGHT\n  inner > 1\n}")

    assert symbols["inner"].line_number == 1


def test_empty_document() -> None:
    assert extract_user_symbols("") == {}


def test_strip_line_comment_respects_strings() -> None:
    assert strip_line_comment('val s = "a//b" // note') == 'val s = "a//b" '


def test_val_text_inside_strings_is_not_a_declaration() -> None:
    text = 'val message = "val fake = 1"\nval escaped = "say \\"val other = 2\\""\n'
    symbols = extract_user_symbols(text)

    assert set(symbols) == {"message", "escaped"}
    assert symbols["message"].expression == '"val fake = 1"'


def test_trailing_operator_continues_on_next_line() -> None:
    symbols = extract_user_symbols("val total = SELF.value +\n  OUTPUTS(0).value\nval after = 1")

    assert symbols["total"].expression == "SELF.value +\n  OUTPUTS(0).value"
    assert symbols["after"].line_number == 2


def test_right_hand_side_on_the_next_line() -> None:
    symbols = extract_user_symbols("val ok =\n  HEIGHT > 10 &&\n  HEIGHT < 20\nsigmaProp(ok)")

    assert symbols["ok"].expression == "HEIGHT > 10 &&\n  HEIGHT < 20"


def test_lambda_arrow_does_not_continue() -> None:
    symbols = extract_user_symbols("val f = (x: Int) =>\nval g = 2")

    assert symbols["f"].expression == "(x: Int) =>"
    assert symbols["g"].expression == "2"
