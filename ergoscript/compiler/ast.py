"""Syntax tree produced by the ErgoScript parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .lexer import Comment
from .types import SType

__all__ = [
    "Node",
    "Expression",
    "Literal",
    "Name",
    "Unary",
    "Binary",
    "If",
    "Block",
    "Lambda",
    "TupleExpr",
    "Select",
    "Apply",
    "TypeApply",
    "Param",
    "ValDecl",
    "DefDecl",
    "Annotation",
    "Program",
]


@dataclass
class Node:
    """Base class for syntax nodes; positions are 1-based."""

    line: int = field(default=0, kw_only=True)
    column: int = field(default=0, kw_only=True)


class Expression(Node):
    pass


# ==================== Expressions ====================


@dataclass
class Literal(Expression):
    """Literal value; ``kind`` is one of Int, Long, Boolean, String, Unit."""

    value: Any
    kind: str


@dataclass
class Name(Expression):
    """Identifier reference: x"""

    name: str


@dataclass
class Unary(Expression):
    """Prefix operation: !x, -x"""

    op: str
    operand: Expression


@dataclass
class Binary(Expression):
    """Infix operation: left op right"""

    op: str
    left: Expression
    right: Expression


@dataclass
class If(Expression):
    condition: Expression
    then_branch: Expression
    else_branch: Optional[Expression] = None


@dataclass
class Block(Expression):
    """Braced block: { statements; result }"""

    statements: List[Node] = field(default_factory=list)
    result: Optional[Expression] = None


@dataclass
class Lambda(Expression):
    """Anonymous function: (x: T) => body"""

    params: List["Param"] = field(default_factory=list)
    body: Optional[Expression] = None


@dataclass
class TupleExpr(Expression):
    items: List[Expression] = field(default_factory=list)


@dataclass
class Select(Expression):
    """Member access: receiver.name"""

    receiver: Expression
    name: str


@dataclass
class Apply(Expression):
    """Application: callee(args), also used for indexing."""

    callee: Expression
    args: List[Expression] = field(default_factory=list)


@dataclass
class TypeApply(Expression):
    """Explicit type arguments: callee[T1, T2]"""

    callee: Expression
    type_args: List[SType] = field(default_factory=list)


# ==================== Declarations ====================


@dataclass
class Param(Node):
    name: str
    type: Optional[SType] = None
    default: Optional[Expression] = None


@dataclass
class ValDecl(Node):
    """Value definition: val name: T = value"""

    name: str
    value: Expression
    type: Optional[SType] = None


@dataclass
class Annotation(Node):
    """``@name`` in front of a definition; ``offset`` is its source index."""

    name: str
    offset: int = 0


@dataclass
class DefDecl(Node):
    """Function definition: def name(params): T = body

    ``params`` is ``None`` for a parameterless ``def name = body``.
    """

    name: str
    params: Optional[List[Param]]
    body: Expression
    return_type: Optional[SType] = None
    annotations: List[Annotation] = field(default_factory=list)

    def annotation(self, name: str) -> Optional[Annotation]:
        for annotation in self.annotations:
            if annotation.name == name:
                return annotation
        return None


@dataclass
class Program(Node):
    """A parsed source file.

    ``statements`` holds every top-level statement in order; ``result`` is
    the trailing expression of a plain script, ``None`` when the file ends
    with a definition.
    """

    statements: List[Node] = field(default_factory=list)
    result: Optional[Expression] = None
    comments: List[Comment] = field(default_factory=list)

    def contract(self) -> Optional[DefDecl]:
        for statement in self.statements:
            if isinstance(statement, DefDecl) and statement.annotation("contract"):
                return statement
        return None
