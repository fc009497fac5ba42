from __future__ import annotations

import pytest

from ergoscript.compiler.lexer import Comment
from ergoscript.compiler.types import SInt, SSigmaProp, coll
from ergoscript.errors import (
    MalformedDocstring,
    MissingDefault,
    MissingParamDoc,
    MissingTypeAnnotation,
    ScriptSyntaxError,
)
from ergoscript.templates.extractor import extract_template, is_template_source, parse_docstring


def _source(docstring: str, signature: str, body: str = "sigmaProp(HEIGHT > minHeight)") -> str:
    return f"{docstring}\n@contract def {signature} = {body}\n"


DOC = "/* Height lock.\n * @param minHeight Height after which the box can be spent\n */"


def test_height_lock_draft(read_contract) -> None:
    draft = extract_template(read_contract("height_lock.es"))

    assert draft.name == "heightLock"
    assert len(draft.parameters) == 1
    parameter = draft.parameters[0]
    assert parameter.name == "minHeight"
    assert parameter.type == SInt
    assert parameter.default.value == 100


def test_multisig_draft_types(read_contract) -> None:
    draft = extract_template(read_contract("multisig.es"))

    assert [p.name for p in draft.parameters] == ["threshold", "keys"]
    assert draft.parameter("keys").type == coll(SSigmaProp)


def test_payment_channel_draft(read_contract) -> None:
    draft = extract_template(read_contract("payment_channel.es"))

    assert [(p.name, str(p.type)) for p in draft.parameters] == [
        ("alice", "SigmaProp"),
        ("bob", "SigmaProp"),
        ("timeout", "Int"),
    ]


def test_parameters_follow_declaration_order() -> None:
    doc = "/* Two values.\n * @param b Second\n * @param a First\n */"
    draft = extract_template(_source(doc, "pair(a: Int = 1, b: Int = 2)", "sigmaProp(HEIGHT > a + b)"))

    assert [p.name for p in draft.parameters] == ["a", "b"]
    assert draft.parameter("a").description == "First"
    assert draft.parameter("b").description == "Second"


def test_missing_param_doc() -> None:
    doc = "/* Height lock without docs. */"
    with pytest.raises(MissingParamDoc) as exc_info:
        extract_template(_source(doc, "lock(minHeight: Int = 100)"))

    assert exc_info.value.parameter == "minHeight"
    assert exc_info.value.line == 2
    assert "@param minHeight" in exc_info.value.hint


def test_missing_default() -> None:
    with pytest.raises(MissingDefault) as exc_info:
        extract_template(_source(DOC, "lock(minHeight: Int)"))

    assert exc_info.value.parameter == "minHeight"


def test_missing_type_annotation() -> None:
    with pytest.raises(MissingTypeAnnotation) as exc_info:
        extract_template(_source(DOC, "lock(minHeight = 100)"))

    assert exc_info.value.parameter == "minHeight"


def test_line_comment_is_not_a_docstring() -> None:
    doc = "// @param minHeight Height after which the box can be spent"
    with pytest.raises(MalformedDocstring):
        extract_template(_source(doc, "lock(minHeight: Int = 100)"))


def test_docstring_must_be_adjacent() -> None:
    source = DOC + "\nval unrelated = 1\n@contract def lock(minHeight: Int = 100) = sigmaProp(HEIGHT > minHeight)\n"
    with pytest.raises(MalformedDocstring):
        extract_template(source)


def test_missing_contract() -> None:
    with pytest.raises(MalformedDocstring):
        extract_template("/* @param x Something */\nsigmaProp(true)")


def test_contract_must_be_last() -> None:
    source = _source(DOC, "lock(minHeight: Int = 100)") + "val trailing = 1\n"
    with pytest.raises(ScriptSyntaxError):
        extract_template(source)


def test_duplicate_param_tag() -> None:
    doc = "/* Lock.\n * @param minHeight First\n * @param minHeight Again\n */"
    with pytest.raises(MalformedDocstring) as exc_info:
        extract_template(_source(doc, "lock(minHeight: Int = 100)"))

    assert exc_info.value.parameter == "minHeight"


def test_unknown_param_tag_is_ignored() -> None:
    doc = "/* Lock.\n * @param minHeight Height\n * @param ghost Not a parameter\n */"
    draft = extract_template(_source(doc, "lock(minHeight: Int = 100)"))

    assert [p.name for p in draft.parameters] == ["minHeight"]


def test_parse_docstring_strips_decoration() -> None:
    text = "/**\n * Locks funds.\n *\n * @param owner Key of the\n *   owner\n * @return ignored\n */"
    comment = Comment(text=text, block=True, start=0, end=len(text), line=1, column=1)

    description, params = parse_docstring(comment)

    assert description == "Locks funds."
    assert params == {"owner": "Key of the owner"}


def test_parse_docstring_requires_param_name() -> None:
    text = "/* Broken.\n * @param\n */"
    comment = Comment(text=text, block=True, start=0, end=len(text), line=1, column=1)

    with pytest.raises(MalformedDocstring):
        parse_docstring(comment)


def test_template_markers() -> None:
    assert is_template_source("/* x */ @contract def f() = true")
    assert not is_template_source("sigmaProp(HEIGHT > 100)")
