"""Compile-time evaluation of constant expressions.

Template parameter defaults and instantiation values are written in
ErgoScript syntax and must reduce to a constant of the declared type:
numeric, Boolean and String literals, ``fromBase16/58/64`` byte strings,
``Coll(...)`` and tuples of constants, ``decodePoint``/``groupGenerator``
points and ``proveDlog``/``PK`` propositions.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Any, Optional

import base58

from ..errors import InvalidDefault
from . import ast
from .serializer import GROUP_ELEMENT_SIZE, ProveDHTuple, ProveDlog
from .types import SByteArray, SGroupElement, SType, fits

NETWORK_PREFIXES = {"mainnet": 0x00, "testnet": 0x10}
P2PK_ADDRESS_TYPE = 0x01
CHECKSUM_LENGTH = 4

# Compressed encoding of the secp256k1 generator.
GROUP_GENERATOR = bytes.fromhex("0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")

_CONVERSIONS = {"toByte", "toShort", "toInt", "toLong", "toBigInt"}
_NARROW_TYPES = {"Byte", "Short", "Int"}


def decode_base16(text: str) -> bytes:
    return bytes.fromhex(text)


def decode_base58(text: str) -> bytes:
    return base58.b58decode(text)


def decode_base64(text: str) -> bytes:
    return base64.b64decode(text, validate=True)


BASE_DECODERS = {
    "fromBase16": decode_base16,
    "fromBase58": decode_base58,
    "fromBase64": decode_base64,
}


def _checksum(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()[:CHECKSUM_LENGTH]


def network_prefix(network: str) -> int:
    try:
        return NETWORK_PREFIXES[network]
    except KeyError:
        raise ValueError(f"Unknown network '{network}' (expected mainnet or testnet)") from None


def decode_p2pk_address(address: str, network: str = "mainnet") -> bytes:
    """Return the public key encoded in a pay-to-public-key address."""
    data = base58.b58decode(address)
    if len(data) != 1 + GROUP_ELEMENT_SIZE + CHECKSUM_LENGTH:
        raise ValueError(f"'{address}' is not a P2PK address")
    head, checksum = data[:-CHECKSUM_LENGTH], data[-CHECKSUM_LENGTH:]
    if _checksum(head) != checksum:
        raise ValueError(f"Invalid checksum in address '{address}'")
    if head[0] & 0x0F != P2PK_ADDRESS_TYPE:
        raise ValueError(f"'{address}' is not a P2PK address")
    if head[0] & 0xF0 != network_prefix(network):
        raise ValueError(f"Address '{address}' does not belong to {network}")
    return head[1:]


def encode_p2pk_address(public_key: bytes, network: str = "mainnet") -> str:
    if len(public_key) != GROUP_ELEMENT_SIZE:
        raise ValueError(f"Public key must be {GROUP_ELEMENT_SIZE} bytes")
    head = bytes([network_prefix(network) | P2PK_ADDRESS_TYPE]) + public_key
    return base58.b58encode(head + _checksum(head)).decode("ascii")


def check_point(data: bytes) -> bytes:
    if len(data) != GROUP_ELEMENT_SIZE:
        raise ValueError(f"Group element must be {GROUP_ELEMENT_SIZE} bytes, got {len(data)}")
    if data[0] not in (0x02, 0x03) and any(data):
        raise ValueError("Group element must be a compressed point")
    return bytes(data)


def evaluate_literal(
    expr: ast.Expression,
    tpe: SType,
    *,
    network: str = "mainnet",
    path: Optional[str] = None,
    parameter: Optional[str] = None,
) -> Any:
    """Reduce *expr* to a Python value of type *tpe*.

    Raises :class:`~ergoscript.errors.InvalidDefault` when the expression is
    not a constant of that type.
    """
    try:
        return _evaluate(expr, tpe, network)
    except ValueError as exc:
        raise InvalidDefault(
            str(exc),
            parameter=parameter,
            path=path,
            line=expr.line or None,
            column=expr.column or None,
        ) from exc


def _evaluate(expr: ast.Expression, tpe: SType, network: str) -> Any:
    if tpe.is_numeric:
        value = _integer(expr, tpe)
        if not fits(value, tpe):
            raise ValueError(f"Value {value} is out of range for {tpe}")
        return value
    if tpe.name in ("Boolean", "String", "Unit"):
        if isinstance(expr, ast.Literal) and expr.kind == tpe.name:
            return () if tpe.name == "Unit" else expr.value
        raise ValueError(f"Expected a {tpe} literal")
    if tpe.is_collection:
        return _collection(expr, tpe.elem, network)
    if tpe.is_tuple:
        if not isinstance(expr, ast.TupleExpr) or len(expr.items) != len(tpe.args):
            raise ValueError(f"Expected a tuple of type {tpe}")
        return tuple(_evaluate(item, item_type, network) for item, item_type in zip(expr.items, tpe.args))
    if tpe == SGroupElement:
        return _group_element(expr, network)
    if tpe.name == "SigmaProp":
        return _sigma_prop(expr, network)
    raise ValueError(f"Values of type {tpe} cannot be written as constants")


def _integer(expr: ast.Expression, tpe: SType) -> int:
    if isinstance(expr, ast.Literal) and expr.kind in ("Int", "Long"):
        if expr.kind == "Long" and tpe.name in _NARROW_TYPES:
            raise ValueError(f"Long literal cannot be used as {tpe}")
        return expr.value
    if isinstance(expr, ast.Unary) and expr.op == "-":
        return -_integer(expr.operand, tpe)
    if isinstance(expr, ast.Select) and expr.name in _CONVERSIONS:
        return _integer(expr.receiver, SType("BigInt"))
    call = _call(expr)
    if call is not None and call[0] == "bigInt" and tpe.name == "BigInt":
        return int(_string_argument(call[1], "bigInt"))
    raise ValueError(f"Expected a {tpe} literal")


def _collection(expr: ast.Expression, elem: SType, network: str) -> Any:
    call = _call(expr)
    if call is None:
        raise ValueError(f"Expected a Coll[{elem}] value")
    name, args, type_args = call
    if name in BASE_DECODERS:
        if elem.name != "Byte":
            raise ValueError(f"{name} produces Coll[Byte], not Coll[{elem}]")
        return BASE_DECODERS[name](_string_argument(args, name))
    if name != "Coll":
        raise ValueError(f"Expected a Coll[{elem}] value")
    if type_args and type_args != [elem]:
        raise ValueError(f"Expected Coll[{elem}], found Coll[{type_args[0]}]")
    items = [_evaluate(item, elem, network) for item in args]
    if elem.name == "Byte":
        return bytes(item & 0xFF for item in items)
    return tuple(items)


def _group_element(expr: ast.Expression, network: str) -> bytes:
    if isinstance(expr, ast.Name) and expr.name == "groupGenerator":
        return GROUP_GENERATOR
    call = _call(expr)
    if call is not None and call[0] == "decodePoint" and len(call[1]) == 1:
        return check_point(_evaluate(call[1][0], SByteArray, network))
    raise ValueError("Expected decodePoint(...) or groupGenerator")


def _sigma_prop(expr: ast.Expression, network: str) -> Any:
    call = _call(expr)
    if call is not None:
        name, args, _ = call
        if name == "proveDlog" and len(args) == 1:
            return ProveDlog(_group_element(args[0], network))
        if name == "proveDHTuple" and len(args) == 4:
            return ProveDHTuple(*(_group_element(arg, network) for arg in args))
        if name == "PK":
            return ProveDlog(decode_p2pk_address(_string_argument(args, "PK"), network))
    raise ValueError("Expected proveDlog(...), proveDHTuple(...) or PK(\"address\")")


def _call(expr: ast.Expression):
    """Return ``(name, args, type_args)`` when *expr* calls a plain name."""
    if not isinstance(expr, ast.Apply):
        return None
    callee = expr.callee
    type_args = []
    if isinstance(callee, ast.TypeApply):
        type_args = list(callee.type_args)
        callee = callee.callee
    if not isinstance(callee, ast.Name):
        return None
    return callee.name, expr.args, type_args


def _string_argument(args, name: str) -> str:
    if len(args) != 1 or not isinstance(args[0], ast.Literal) or args[0].kind != "String":
        raise ValueError(f"{name} expects a single string literal")
    return args[0].value


__all__ = [
    "NETWORK_PREFIXES",
    "GROUP_GENERATOR",
    "BASE_DECODERS",
    "decode_base16",
    "decode_base58",
    "decode_base64",
    "decode_p2pk_address",
    "encode_p2pk_address",
    "network_prefix",
    "check_point",
    "evaluate_literal",
]
