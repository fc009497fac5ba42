"""Typed ErgoTree intermediate representation.

Every node knows its type and how to write itself with a
:class:`~ergoscript.compiler.serializer.SigmaByteWriter`.  Most operations
are written as an opcode followed by their operands in order and share the
:class:`Op` node; the rest have their own layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

from .types import SBoolean, SSigmaProp, SType, func

if TYPE_CHECKING:
    from .serializer import SigmaByteWriter


class OpCode(IntEnum):
    VAL_USE = 0x72
    CONSTANT_PLACEHOLDER = 0x73
    LONG_TO_BYTE_ARRAY = 0x7A
    BYTE_ARRAY_TO_BIGINT = 0x7B
    BYTE_ARRAY_TO_LONG = 0x7C
    DOWNCAST = 0x7D
    UPCAST = 0x7E
    GROUP_GENERATOR = 0x82
    CONCRETE_COLLECTION = 0x83
    CONCRETE_COLLECTION_BOOLEAN_CONSTANT = 0x85
    TUPLE = 0x86
    SELECT_FIELD = 0x8C
    LT = 0x8F
    LE = 0x90
    GT = 0x91
    GE = 0x92
    EQ = 0x93
    NEQ = 0x94
    IF = 0x95
    AND = 0x96
    OR = 0x97
    AT_LEAST = 0x98
    MINUS = 0x99
    PLUS = 0x9A
    XOR = 0x9B
    MULTIPLY = 0x9C
    DIVISION = 0x9D
    MODULO = 0x9E
    EXPONENTIATE = 0x9F
    MULTIPLY_GROUP = 0xA0
    MIN = 0xA1
    MAX = 0xA2
    HEIGHT = 0xA3
    INPUTS = 0xA4
    OUTPUTS = 0xA5
    LAST_BLOCK_UTXO_ROOT_HASH = 0xA6
    SELF = 0xA7
    MINER_PUBKEY = 0xAC
    MAP_COLLECTION = 0xAD
    EXISTS = 0xAE
    FOR_ALL = 0xAF
    FOLD = 0xB0
    SIZE_OF = 0xB1
    BY_INDEX = 0xB2
    APPEND = 0xB3
    SLICE = 0xB4
    FILTER = 0xB5
    EXTRACT_AMOUNT = 0xC1
    EXTRACT_SCRIPT_BYTES = 0xC2
    EXTRACT_BYTES = 0xC3
    EXTRACT_BYTES_WITH_NO_REF = 0xC4
    EXTRACT_ID = 0xC5
    EXTRACT_REGISTER_AS = 0xC6
    EXTRACT_CREATION_INFO = 0xC7
    CALC_BLAKE2B256 = 0xCB
    CALC_SHA256 = 0xCC
    PROVE_DLOG = 0xCD
    PROVE_DH_TUPLE = 0xCE
    SIGMA_PROP_BYTES = 0xD0
    BOOL_TO_SIGMA_PROP = 0xD1
    VAL_DEF = 0xD6
    BLOCK_VALUE = 0xD8
    FUNC_VALUE = 0xD9
    FUNC_APPLY = 0xDA
    PROPERTY_CALL = 0xDB
    METHOD_CALL = 0xDC
    GET_VAR = 0xE3
    OPTION_GET = 0xE4
    OPTION_GET_OR_ELSE = 0xE5
    OPTION_IS_DEFINED = 0xE6
    SIGMA_AND = 0xEA
    SIGMA_OR = 0xEB
    BIN_OR = 0xEC
    BIN_AND = 0xED
    DECODE_POINT = 0xEE
    LOGICAL_NOT = 0xEF
    NEGATION = 0xF0
    BIN_XOR = 0xF4
    XOR_OF = 0xFF
    CONTEXT = 0xFE


RELATIONS = frozenset({OpCode.LT, OpCode.LE, OpCode.GT, OpCode.GE, OpCode.EQ, OpCode.NEQ})

Transform = Callable[["Node"], "Node"]


class Node:
    """Base class of IR nodes."""

    tpe: SType

    def children(self) -> Tuple["Node", ...]:
        return ()

    def map_children(self, fn: Transform) -> "Node":
        return self

    def serialize(self, w: "SigmaByteWriter") -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Constant(Node):
    value: Any
    tpe: SType

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_constant(self.value, self.tpe)


@dataclass(frozen=True)
class ConstantPlaceholder(Node):
    """Reference to a constant slot reserved in advance (template parameters)."""

    index: int
    tpe: SType

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_placeholder(self.index)


@dataclass(frozen=True)
class ValUse(Node):
    id: int
    tpe: SType

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.VAL_USE).put_uint(self.id)


@dataclass(frozen=True)
class ValDef(Node):
    id: int
    rhs: Node

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return self.rhs.tpe

    def children(self) -> Tuple[Node, ...]:
        return (self.rhs,)

    def map_children(self, fn: Transform) -> Node:
        return ValDef(self.id, fn(self.rhs))

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.VAL_DEF).put_uint(self.id).put_value(self.rhs)


@dataclass(frozen=True)
class BlockValue(Node):
    items: Tuple[ValDef, ...]
    result: Node

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return self.result.tpe

    def children(self) -> Tuple[Node, ...]:
        return self.items + (self.result,)

    def map_children(self, fn: Transform) -> Node:
        return BlockValue(tuple(fn(item) for item in self.items), fn(self.result))

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.BLOCK_VALUE).put_uint(len(self.items))
        for item in self.items:
            w.put_value(item)
        w.put_value(self.result)


@dataclass(frozen=True)
class FuncValue(Node):
    args: Tuple[Tuple[int, SType], ...]
    body: Node

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return func([arg_type for _, arg_type in self.args], self.body.tpe)

    def children(self) -> Tuple[Node, ...]:
        return (self.body,)

    def map_children(self, fn: Transform) -> Node:
        return FuncValue(self.args, fn(self.body))

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.FUNC_VALUE).put_uint(len(self.args))
        for arg_id, arg_type in self.args:
            w.put_uint(arg_id).put_type(arg_type)
        w.put_value(self.body)


@dataclass(frozen=True)
class FuncApply(Node):
    func: Node
    args: Tuple[Node, ...]
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        return (self.func,) + self.args

    def map_children(self, fn: Transform) -> Node:
        return FuncApply(fn(self.func), tuple(fn(arg) for arg in self.args), self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.FUNC_APPLY).put_value(self.func).put_uint(len(self.args))
        for arg in self.args:
            w.put_value(arg)


@dataclass(frozen=True)
class Op(Node):
    """An opcode followed by its operands."""

    opcode: OpCode
    args: Tuple[Node, ...]
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        return self.args

    def map_children(self, fn: Transform) -> Node:
        return Op(self.opcode, tuple(fn(arg) for arg in self.args), self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        if self.opcode in RELATIONS and _boolean_constants(self.args):
            # Two Boolean literals are packed into a single bit set.
            w.put_byte(self.opcode).put_byte(OpCode.CONCRETE_COLLECTION_BOOLEAN_CONSTANT)
            w.put_bits([bool(arg.value) for arg in self.args])
            return
        w.put_byte(self.opcode)
        for arg in self.args:
            w.put_value(arg)


def _boolean_constants(args: Tuple[Node, ...]) -> bool:
    return len(args) == 2 and all(isinstance(arg, Constant) and arg.tpe == SBoolean for arg in args)


@dataclass(frozen=True)
class Cast(Node):
    """``Upcast``/``Downcast``: the operand followed by the target type."""

    opcode: OpCode
    input: Node
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        return (self.input,)

    def map_children(self, fn: Transform) -> Node:
        return Cast(self.opcode, fn(self.input), self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(self.opcode).put_value(self.input).put_type(self.tpe)


@dataclass(frozen=True)
class ConcreteCollection(Node):
    items: Tuple[Node, ...]
    elem_type: SType

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return SType("Coll", (self.elem_type,))

    def children(self) -> Tuple[Node, ...]:
        return self.items

    def map_children(self, fn: Transform) -> Node:
        return ConcreteCollection(tuple(fn(item) for item in self.items), self.elem_type)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.CONCRETE_COLLECTION).put_uint(len(self.items)).put_type(self.elem_type)
        for item in self.items:
            w.put_value(item)


@dataclass(frozen=True)
class TupleNode(Node):
    items: Tuple[Node, ...]

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return SType("Tuple", tuple(item.tpe for item in self.items))

    def children(self) -> Tuple[Node, ...]:
        return self.items

    def map_children(self, fn: Transform) -> Node:
        return TupleNode(tuple(fn(item) for item in self.items))

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.TUPLE).put_byte(len(self.items))
        for item in self.items:
            w.put_value(item)


@dataclass(frozen=True)
class SelectField(Node):
    """Tuple component access; ``index`` is 1-based."""

    input: Node
    index: int
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        return (self.input,)

    def map_children(self, fn: Transform) -> Node:
        return SelectField(fn(self.input), self.index, self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.SELECT_FIELD).put_value(self.input).put_byte(self.index)


@dataclass(frozen=True)
class ExtractRegisterAs(Node):
    input: Node
    register: int
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        return (self.input,)

    def map_children(self, fn: Transform) -> Node:
        return ExtractRegisterAs(fn(self.input), self.register, self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.EXTRACT_REGISTER_AS).put_value(self.input).put_byte(self.register)
        w.put_type(self.tpe.elem)


@dataclass(frozen=True)
class ByIndex(Node):
    input: Node
    index: Node
    default: Optional[Node]
    tpe: SType

    def children(self) -> Tuple[Node, ...]:
        if self.default is None:
            return (self.input, self.index)
        return (self.input, self.index, self.default)

    def map_children(self, fn: Transform) -> Node:
        default = fn(self.default) if self.default is not None else None
        return ByIndex(fn(self.input), fn(self.index), default, self.tpe)

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.BY_INDEX).put_value(self.input).put_value(self.index)
        if self.default is None:
            w.put_byte(0)
        else:
            w.put_byte(1).put_value(self.default)


@dataclass(frozen=True)
class GetVar(Node):
    var_id: int
    tpe: SType

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(OpCode.GET_VAR).put_byte(self.var_id).put_type(self.tpe.elem)


@dataclass(frozen=True)
class SigmaJunction(Node):
    """``SigmaAnd``/``SigmaOr`` over any number of propositions."""

    opcode: OpCode
    items: Tuple[Node, ...]

    @property
    def tpe(self) -> SType:  # type: ignore[override]
        return SSigmaProp

    def children(self) -> Tuple[Node, ...]:
        return self.items

    def map_children(self, fn: Transform) -> Node:
        return SigmaJunction(self.opcode, tuple(fn(item) for item in self.items))

    def serialize(self, w: "SigmaByteWriter") -> None:
        w.put_byte(self.opcode).put_uint(len(self.items))
        for item in self.items:
            w.put_value(item)


@dataclass(frozen=True)
class MethodCall(Node):
    """Method of a built-in type; properties are written without arguments."""

    type_id: int
    method_id: int
    obj: Node
    args: Tuple[Node, ...]
    tpe: SType
    is_property: bool = False

    def children(self) -> Tuple[Node, ...]:
        return (self.obj,) + self.args

    def map_children(self, fn: Transform) -> Node:
        return MethodCall(
            self.type_id,
            self.method_id,
            fn(self.obj),
            tuple(fn(arg) for arg in self.args),
            self.tpe,
            self.is_property,
        )

    def serialize(self, w: "SigmaByteWriter") -> None:
        if self.is_property:
            w.put_byte(OpCode.PROPERTY_CALL).put_byte(self.type_id).put_byte(self.method_id)
            w.put_value(self.obj)
            return
        w.put_byte(OpCode.METHOD_CALL).put_byte(self.type_id).put_byte(self.method_id)
        w.put_value(self.obj).put_uint(len(self.args))
        for arg in self.args:
            w.put_value(arg)


def leaf(opcode: OpCode, tpe: SType) -> Op:
    return Op(opcode, (), tpe)


def unary(opcode: OpCode, operand: Node, tpe: SType) -> Op:
    return Op(opcode, (operand,), tpe)


def relation(opcode: OpCode, left: Node, right: Node) -> Op:
    return Op(opcode, (left, right), SBoolean)


def transform(node: Node, fn: Transform) -> Node:
    """Rebuild *node* bottom-up, applying *fn* to every node."""
    return fn(node.map_children(lambda child: transform(child, fn)))


def walk(node: Node):
    """Yield *node* and its descendants in pre-order."""
    yield node
    for child in node.children():
        yield from walk(child)


__all__ = [
    "OpCode",
    "Node",
    "Constant",
    "ConstantPlaceholder",
    "ValUse",
    "ValDef",
    "BlockValue",
    "FuncValue",
    "FuncApply",
    "Op",
    "Cast",
    "ConcreteCollection",
    "TupleNode",
    "SelectField",
    "ExtractRegisterAs",
    "ByIndex",
    "GetVar",
    "SigmaJunction",
    "MethodCall",
    "leaf",
    "unary",
    "relation",
    "transform",
    "walk",
]
