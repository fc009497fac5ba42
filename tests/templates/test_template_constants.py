from __future__ import annotations

import pytest

from ergoscript.compiler.literals import encode_p2pk_address
from ergoscript.config import ConstantDefinition
from ergoscript.errors import ConfigError
from ergoscript.templates import compile_source
from ergoscript.templates.constants import find_constant_references, render_constant, substitute_constants

PK = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


def _constant(type_name: str, value: str, name: str = "VALUE") -> ConstantDefinition:
    return ConstantDefinition(name=name, type=type_name, value=value)


class TestRenderConstant:
    """Rendering of project constants as ErgoScript literals."""

    def test_integers(self):
        assert render_constant(_constant("Int", "100")) == "100"
        assert render_constant(_constant("Long", "100")) == "100L"
        assert render_constant(_constant("BigInt", "-5")) == 'bigInt("-5")'

    def test_boolean(self):
        assert render_constant(_constant("Boolean", "true")) == "true"
        with pytest.raises(ConfigError):
            render_constant(_constant("Boolean", "yes"))

    def test_string_is_escaped(self):
        assert render_constant(_constant("String", 'say "hi"')) == '"say \\"hi\\""'

    def test_bytes_accept_hex_prefix(self):
        assert render_constant(_constant("Coll[Byte]", "0xdeadbeef")) == 'fromBase16("deadbeef")'
        with pytest.raises(ConfigError):
            render_constant(_constant("Coll[Byte]", "xyz"))

    def test_group_element(self):
        assert render_constant(_constant("GroupElement", PK)) == f'decodePoint(fromBase16("{PK}"))'
        with pytest.raises(ConfigError):
            render_constant(_constant("GroupElement", "00ff"))

    def test_sigma_prop_from_address(self):
        address = encode_p2pk_address(bytes.fromhex(PK))
        assert render_constant(_constant("SigmaProp", address)) == f'PK("{address}")'

    def test_sigma_prop_expression_kept(self):
        expression = f'proveDlog(decodePoint(fromBase16("{PK}")))'
        assert render_constant(_constant("SigmaProp", expression)) == expression

    def test_environment_value(self):
        constant = _constant("Int", "env:LOCK_HEIGHT")
        assert render_constant(constant, {"LOCK_HEIGHT": "42"}) == "42"
        with pytest.raises(ConfigError):
            render_constant(constant, {})

    def test_unsupported_type(self):
        with pytest.raises(ConfigError):
            render_constant(_constant("Box", "1"))


class TestSubstituteConstants:
    """``$NAME`` replacement in contract sources."""

    def test_references_in_order(self):
        assert find_constant_references("$B > $A && $B < 10") == ["B", "A"]

    def test_substitution_compiles(self):
        constants = {"MIN_HEIGHT": _constant("Int", "100", name="MIN_HEIGHT")}
        source = substitute_constants("sigmaProp(HEIGHT > $MIN_HEIGHT)", constants)

        assert source == "sigmaProp(HEIGHT > 100)"
        assert compile_source(source).const_values == ["c801"]

    def test_all_errors_reported_together(self):
        constants = {"FLAG": _constant("Boolean", "maybe", name="FLAG")}

        with pytest.raises(ConfigError) as exc_info:
            substitute_constants("$FLAG && $MISSING", constants)

        message = exc_info.value.message
        assert "Undefined constant: $MISSING" in message
        assert "FLAG" in message

    def test_lowercase_names_are_left_alone(self):
        assert substitute_constants("val x = $lower", {}) == "val x = $lower"
