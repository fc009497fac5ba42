"""ErgoScript types and their ErgoTree binary encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple


@dataclass(frozen=True)
class SType:
    """A type in the ErgoTree type system.

    Parametric types keep their arguments in ``args``: ``Coll`` and
    ``Option`` have one, ``Tuple`` has one per component and ``Func`` has
    the argument types followed by the result type.
    """

    name: str
    args: Tuple["SType", ...] = ()

    def __str__(self) -> str:
        if self.name == "Tuple":
            return "(" + ", ".join(str(arg) for arg in self.args) + ")"
        if self.name == "Func":
            domain = ", ".join(str(arg) for arg in self.args[:-1])
            return f"({domain}) => {self.args[-1]}"
        if self.args:
            return f"{self.name}[" + ", ".join(str(arg) for arg in self.args) + "]"
        return self.name

    @property
    def is_numeric(self) -> bool:
        return self.name in NUMERIC_RANK

    @property
    def is_collection(self) -> bool:
        return self.name == "Coll"

    @property
    def is_option(self) -> bool:
        return self.name == "Option"

    @property
    def is_tuple(self) -> bool:
        return self.name == "Tuple"

    @property
    def is_function(self) -> bool:
        return self.name == "Func"

    @property
    def elem(self) -> "SType":
        """Element type of a ``Coll`` or ``Option``."""
        return self.args[0]

    @property
    def result(self) -> "SType":
        return self.args[-1]

    @property
    def domain(self) -> Tuple["SType", ...]:
        return self.args[:-1]


SBoolean = SType("Boolean")
SByte = SType("Byte")
SShort = SType("Short")
SInt = SType("Int")
SLong = SType("Long")
SBigInt = SType("BigInt")
SGroupElement = SType("GroupElement")
SSigmaProp = SType("SigmaProp")
SBox = SType("Box")
SAvlTree = SType("AvlTree")
SContext = SType("Context")
SHeader = SType("Header")
SPreHeader = SType("PreHeader")
SGlobal = SType("Global")
SString = SType("String")
SUnit = SType("Unit")
SAny = SType("Any")


def coll(elem: SType) -> SType:
    return SType("Coll", (elem,))


def option(elem: SType) -> SType:
    return SType("Option", (elem,))


def tuple_of(*items: SType) -> SType:
    return SType("Tuple", tuple(items))


def func(domain: Sequence[SType], result: SType) -> SType:
    return SType("Func", tuple(domain) + (result,))


SByteArray = coll(SByte)

NUMERIC_RANK: Dict[str, int] = {"Byte": 0, "Short": 1, "Int": 2, "Long": 3, "BigInt": 4}

NUMERIC_BOUNDS: Dict[str, Tuple[int, int]] = {
    "Byte": (-(2**7), 2**7 - 1),
    "Short": (-(2**15), 2**15 - 1),
    "Int": (-(2**31), 2**31 - 1),
    "Long": (-(2**63), 2**63 - 1),
    "BigInt": (-(2**255), 2**255 - 1),
}

# Types that need no arguments, by source name.
NAMED_TYPES: Dict[str, SType] = {
    t.name: t
    for t in (
        SBoolean, SByte, SShort, SInt, SLong, SBigInt, SGroupElement, SSigmaProp,
        SBox, SAvlTree, SContext, SHeader, SPreHeader, SGlobal, SString, SUnit, SAny,
    )
}

# Type constructors and their arity.
TYPE_CONSTRUCTORS: Dict[str, int] = {"Coll": 1, "Option": 1}


def wider(left: SType, right: SType) -> SType:
    """Return the wider of two numeric types."""
    return left if NUMERIC_RANK[left.name] >= NUMERIC_RANK[right.name] else right


def fits(value: int, tpe: SType) -> bool:
    low, high = NUMERIC_BOUNDS[tpe.name]
    return low <= value <= high


# ---------------------------------------------------------------------------
# Binary encoding

PRIMITIVE_CODES: Dict[str, int] = {
    "Boolean": 1,
    "Byte": 2,
    "Short": 3,
    "Int": 4,
    "Long": 5,
    "BigInt": 6,
    "GroupElement": 7,
    "SigmaProp": 8,
}

PRIM_RANGE = 12
COLL_CODE = 12
NESTED_COLL_CODE = 24
OPTION_CODE = 36
OPTION_COLL_CODE = 48
PAIR1_CODE = 60
PAIR2_CODE = 72
TRIPLE_CODE = 72
PAIR_SYMMETRIC_CODE = 84
QUADRUPLE_CODE = 84
TUPLE_CODE = 96

OBJECT_CODES: Dict[str, int] = {
    "Any": 97,
    "Unit": 98,
    "Box": 99,
    "AvlTree": 100,
    "Context": 101,
    "String": 102,
    "Header": 104,
    "PreHeader": 105,
    "Global": 106,
}

_PRIMITIVES_BY_CODE = {code: NAMED_TYPES[name] for name, code in PRIMITIVE_CODES.items()}
_OBJECTS_BY_CODE = {code: NAMED_TYPES[name] for name, code in OBJECT_CODES.items()}


def type_code(tpe: SType) -> int:
    """Type id used by ``PropertyCall``/``MethodCall`` nodes."""
    if tpe.name in PRIMITIVE_CODES:
        return PRIMITIVE_CODES[tpe.name]
    if tpe.name in OBJECT_CODES:
        return OBJECT_CODES[tpe.name]
    if tpe.is_collection:
        return COLL_CODE
    if tpe.is_option:
        return OPTION_CODE
    raise ValueError(f"Type {tpe} has no method table")


def _prim_code(tpe: SType) -> Optional[int]:
    return PRIMITIVE_CODES.get(tpe.name) if not tpe.args else None


def serialize_type(tpe: SType) -> bytes:
    out = bytearray()
    _write_type(out, tpe)
    return bytes(out)


def _write_type(out: bytearray, tpe: SType) -> None:
    code = _prim_code(tpe)
    if code is not None:
        out.append(code)
        return
    if tpe.name in OBJECT_CODES:
        out.append(OBJECT_CODES[tpe.name])
        return
    if tpe.is_collection:
        elem = tpe.elem
        elem_code = _prim_code(elem)
        if elem_code is not None:
            out.append(COLL_CODE + elem_code)
        elif elem.is_collection and _prim_code(elem.elem) is not None:
            out.append(NESTED_COLL_CODE + _prim_code(elem.elem))
        else:
            out.append(COLL_CODE)
            _write_type(out, elem)
        return
    if tpe.is_option:
        elem = tpe.elem
        elem_code = _prim_code(elem)
        if elem_code is not None:
            out.append(OPTION_CODE + elem_code)
        elif elem.is_collection and _prim_code(elem.elem) is not None:
            out.append(OPTION_COLL_CODE + _prim_code(elem.elem))
        else:
            out.append(OPTION_CODE)
            _write_type(out, elem)
        return
    if tpe.is_tuple:
        items = tpe.args
        if len(items) == 2:
            first, second = items
            first_code, second_code = _prim_code(first), _prim_code(second)
            if first_code is not None:
                if first == second:
                    out.append(PAIR_SYMMETRIC_CODE + first_code)
                else:
                    out.append(PAIR1_CODE + first_code)
                    _write_type(out, second)
            elif second_code is not None:
                out.append(PAIR2_CODE + second_code)
                _write_type(out, first)
            else:
                out.append(PAIR1_CODE)
                _write_type(out, first)
                _write_type(out, second)
            return
        if len(items) == 3:
            out.append(TRIPLE_CODE)
        elif len(items) == 4:
            out.append(QUADRUPLE_CODE)
        else:
            out.append(TUPLE_CODE)
            out.append(len(items))
        for item in items:
            _write_type(out, item)
        return
    raise ValueError(f"Type {tpe} cannot be serialized")


def read_type(data: bytes, pos: int = 0) -> Tuple[SType, int]:
    """Decode one type starting at *pos*; returns the type and the next offset."""
    code = data[pos]
    pos += 1
    if 0 < code < PRIM_RANGE:
        return _primitive(code), pos
    if code in _OBJECTS_BY_CODE:
        return _OBJECTS_BY_CODE[code], pos
    if code < TUPLE_CODE:
        constructor, prim = divmod(code, PRIM_RANGE)
        constructor *= PRIM_RANGE
        if constructor == COLL_CODE:
            if prim:
                return coll(_primitive(prim)), pos
            elem, pos = read_type(data, pos)
            return coll(elem), pos
        if constructor == NESTED_COLL_CODE:
            if not prim:
                raise ValueError(f"Invalid type code {code}")
            return coll(coll(_primitive(prim))), pos
        if constructor == OPTION_CODE:
            if prim:
                return option(_primitive(prim)), pos
            elem, pos = read_type(data, pos)
            return option(elem), pos
        if constructor == OPTION_COLL_CODE:
            if not prim:
                raise ValueError(f"Invalid type code {code}")
            return option(coll(_primitive(prim))), pos
        if constructor == PAIR1_CODE:
            if prim:
                second, pos = read_type(data, pos)
                return tuple_of(_primitive(prim), second), pos
            first, pos = read_type(data, pos)
            second, pos = read_type(data, pos)
            return tuple_of(first, second), pos
        if constructor == PAIR2_CODE:
            if prim:
                first, pos = read_type(data, pos)
                return tuple_of(first, _primitive(prim)), pos
            return _read_items(data, pos, 3)
        if constructor == PAIR_SYMMETRIC_CODE:
            if prim:
                return tuple_of(_primitive(prim), _primitive(prim)), pos
            return _read_items(data, pos, 4)
    if code == TUPLE_CODE:
        return _read_items(data, pos + 1, data[pos])
    raise ValueError(f"Invalid type code {code}")


def _read_items(data: bytes, pos: int, count: int) -> Tuple[SType, int]:
    items = []
    for _ in range(count):
        item, pos = read_type(data, pos)
        items.append(item)
    return tuple_of(*items), pos


def _primitive(code: int) -> SType:
    try:
        return _PRIMITIVES_BY_CODE[code]
    except KeyError:
        raise ValueError(f"Invalid primitive type code {code}") from None


def type_from_hex(text: str) -> SType:
    data = bytes.fromhex(text)
    tpe, end = read_type(data)
    if end != len(data):
        raise ValueError(f"Trailing bytes after type in {text!r}")
    return tpe


__all__ = [
    "SType",
    "SBoolean",
    "SByte",
    "SShort",
    "SInt",
    "SLong",
    "SBigInt",
    "SGroupElement",
    "SSigmaProp",
    "SBox",
    "SAvlTree",
    "SContext",
    "SHeader",
    "SPreHeader",
    "SGlobal",
    "SString",
    "SUnit",
    "SAny",
    "SByteArray",
    "NAMED_TYPES",
    "TYPE_CONSTRUCTORS",
    "NUMERIC_BOUNDS",
    "coll",
    "option",
    "tuple_of",
    "func",
    "wider",
    "fits",
    "type_code",
    "serialize_type",
    "read_type",
    "type_from_hex",
]
