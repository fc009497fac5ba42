"""Typed lowering of the syntax tree to the ErgoTree IR.

Lowering resolves names, checks operand types, applies the numeric
widening rules and maps every construct to its tree node.  Literals become
:class:`~ergoscript.compiler.tree.Constant` nodes, which the serializer later
moves into the constants table.  A final pass inlines values used once,
drops unused ones and renumbers the remaining definitions in pre-order.
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import ScriptTypeError, UnsupportedFeatureError
from . import ast
from .literals import BASE_DECODERS, check_point, decode_p2pk_address
from .serializer import ProveDHTuple, ProveDlog
from .tree import (
    BlockValue,
    ByIndex,
    Cast,
    ConcreteCollection,
    Constant,
    ExtractRegisterAs,
    FuncApply,
    FuncValue,
    GetVar,
    MethodCall,
    Node,
    Op,
    OpCode,
    SelectField,
    SigmaJunction,
    TupleNode,
    ValDef,
    ValUse,
    leaf,
    relation,
    unary,
    walk,
)
from .types import (
    NUMERIC_RANK,
    SAvlTree,
    SBigInt,
    SBoolean,
    SBox,
    SByte,
    SByteArray,
    SContext,
    SGroupElement,
    SHeader,
    SInt,
    SLong,
    SPreHeader,
    SSigmaProp,
    SString,
    SType,
    SUnit,
    coll,
    fits,
    option,
    tuple_of,
    wider,
)

logger = logging.getLogger(__name__)

TOKENS_TYPE = coll(tuple_of(SByteArray, SLong))

GLOBALS: Dict[str, Tuple[OpCode, SType]] = {
    "HEIGHT": (OpCode.HEIGHT, SInt),
    "SELF": (OpCode.SELF, SBox),
    "INPUTS": (OpCode.INPUTS, coll(SBox)),
    "OUTPUTS": (OpCode.OUTPUTS, coll(SBox)),
    "CONTEXT": (OpCode.CONTEXT, SContext),
    "LastBlockUtxoRootHash": (OpCode.LAST_BLOCK_UTXO_ROOT_HASH, SAvlTree),
    "minerPubKey": (OpCode.MINER_PUBKEY, SByteArray),
    "groupGenerator": (OpCode.GROUP_GENERATOR, SGroupElement),
}

UNSUPPORTED_FUNCTIONS = frozenset(
    {
        "serialize",
        "deserializeTo",
        "substConstants",
        "executeFromVar",
        "executeFromSelfReg",
        "unsignedBigInt",
        "outerJoin",
        "avlTree",
    }
)

_ARITHMETIC = {
    "+": OpCode.PLUS,
    "-": OpCode.MINUS,
    "*": OpCode.MULTIPLY,
    "/": OpCode.DIVISION,
    "%": OpCode.MODULO,
}
_COMPARISONS = {"<": OpCode.LT, "<=": OpCode.LE, ">": OpCode.GT, ">=": OpCode.GE}
_EQUALITY = {"==": OpCode.EQ, "!=": OpCode.NEQ}

_BOX_PROPERTIES: Dict[str, Tuple[OpCode, SType]] = {
    "value": (OpCode.EXTRACT_AMOUNT, SLong),
    "propositionBytes": (OpCode.EXTRACT_SCRIPT_BYTES, SByteArray),
    "bytes": (OpCode.EXTRACT_BYTES, SByteArray),
    "bytesWithoutRef": (OpCode.EXTRACT_BYTES_WITH_NO_REF, SByteArray),
    "id": (OpCode.EXTRACT_ID, SByteArray),
    "creationInfo": (OpCode.EXTRACT_CREATION_INFO, tuple_of(SInt, SByteArray)),
}
_REGISTERS = {f"R{index}": index for index in range(10)}

# name -> (type id, method id, result type)
_CONTEXT_PROPERTIES: Dict[str, Tuple[int, int, SType]] = {
    "dataInputs": (101, 1, coll(SBox)),
    "headers": (101, 2, coll(SHeader)),
    "preHeader": (101, 3, SPreHeader),
    "selfBoxIndex": (101, 8, SInt),
}
_AVL_PROPERTIES: Dict[str, Tuple[int, SType]] = {
    "digest": (1, SByteArray),
    "enabledOperations": (2, SByte),
    "keyLength": (3, SInt),
    "valueLengthOpt": (4, option(SInt)),
    "isInsertAllowed": (5, SBoolean),
    "isUpdateAllowed": (6, SBoolean),
    "isRemoveAllowed": (7, SBoolean),
}
_AVL_METHODS: Dict[str, Tuple[int, Tuple[SType, ...], SType]] = {
    "contains": (9, (SByteArray, SByteArray), SBoolean),
    "get": (10, (SByteArray, SByteArray), option(SByteArray)),
    "getMany": (11, (coll(SByteArray), SByteArray), coll(option(SByteArray))),
    "insert": (12, (coll(tuple_of(SByteArray, SByteArray)), SByteArray), option(SAvlTree)),
    "update": (13, (coll(tuple_of(SByteArray, SByteArray)), SByteArray), option(SAvlTree)),
    "remove": (14, (coll(SByteArray), SByteArray), option(SAvlTree)),
}
_NUMERIC_CONVERSIONS = {
    "toByte": SByte,
    "toShort": SType("Short"),
    "toInt": SInt,
    "toLong": SLong,
    "toBigInt": SBigInt,
}

Args = Optional[List[ast.Expression]]


class Scope:
    """Lexical scope mapping names to the IR node a reference expands to."""

    def __init__(self, parent: Optional["Scope"] = None, names: Optional[Mapping[str, Node]] = None):
        self.parent = parent
        self.names: Dict[str, Node] = dict(names or {})

    def lookup(self, name: str) -> Optional[Node]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.names:
                return scope.names[name]
            scope = scope.parent
        return None

    def define(self, name: str, node: Node) -> None:
        self.names[name] = node

    def child(self) -> "Scope":
        return Scope(self)


class Lowering:
    """Lowers one contract body; not reusable across contracts."""

    def __init__(self, *, network: str = "mainnet", path: Optional[str] = None):
        self.network = network
        self.path = path
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Errors

    def type_error(self, message: str, node: ast.Node) -> ScriptTypeError:
        return ScriptTypeError(message, path=self.path, line=node.line or None, column=node.column or None)

    def unsupported(self, message: str, node: ast.Node) -> UnsupportedFeatureError:
        return UnsupportedFeatureError(message, path=self.path, line=node.line or None, column=node.column or None)

    def _fresh_id(self) -> int:
        return next(self._ids)

    # ------------------------------------------------------------------
    # Entry point

    def lower_root(
        self,
        statements: Sequence[ast.Node],
        result: Optional[ast.Expression],
        bindings: Mapping[str, Node],
        origin: ast.Node,
    ) -> Node:
        """Lower a contract body and coerce it to a ``SigmaProp``."""
        scope = Scope(None, bindings)
        root = self.lower_block(statements, result, scope, origin)
        if root.tpe == SBoolean:
            root = unary(OpCode.BOOL_TO_SIGMA_PROP, root, SSigmaProp)
        elif root.tpe != SSigmaProp:
            raise self.type_error(f"Contract must evaluate to SigmaProp or Boolean, found {root.tpe}", origin)
        return optimize(root)

    # ------------------------------------------------------------------
    # Statements

    def lower_block(
        self,
        statements: Sequence[ast.Node],
        result: Optional[ast.Expression],
        scope: Scope,
        origin: ast.Node,
    ) -> Node:
        if result is None:
            raise self.type_error("Block must end with an expression", origin)
        items: List[ValDef] = []
        for statement in statements:
            if isinstance(statement, ast.ValDecl):
                rhs = self.lower(statement.value, scope)
                if statement.type is not None:
                    rhs = self.coerce(rhs, statement.type, statement.value)
                items.append(self._define(statement.name, rhs, scope))
            elif isinstance(statement, ast.DefDecl):
                if statement.annotations:
                    raise self.type_error("Annotated definitions are only allowed at the top level", statement)
                items.append(self._define(statement.name, self.lower_def(statement, scope), scope))
            else:
                raise self.unsupported("Only the last expression of a block may be a bare expression", statement)
        value = self.lower(result, scope)
        if not items:
            return value
        return BlockValue(tuple(items), value)

    def _define(self, name: str, rhs: Node, scope: Scope) -> ValDef:
        val_id = self._fresh_id()
        scope.define(name, ValUse(val_id, rhs.tpe))
        return ValDef(val_id, rhs)

    def lower_def(self, definition: ast.DefDecl, scope: Scope) -> Node:
        if definition.params is None:
            body = self.lower(definition.body, scope)
            if definition.return_type is not None:
                body = self.coerce(body, definition.return_type, definition.body)
            return body
        for param in definition.params:
            if param.type is None:
                raise self.type_error(f"Parameter '{param.name}' of '{definition.name}' needs a type", param)
        lam = ast.Lambda(definition.params, definition.body, line=definition.line, column=definition.column)
        function, _ = self.lower_lambda(lam, scope, return_type=definition.return_type)
        return function

    # ------------------------------------------------------------------
    # Expressions

    def lower(self, expr: ast.Expression, scope: Scope) -> Node:
        method = getattr(self, f"_lower_{type(expr).__name__}", None)
        if method is None:
            raise self.unsupported(f"Unsupported expression {type(expr).__name__}", expr)
        return method(expr, scope)

    def _lower_Literal(self, expr: ast.Literal, scope: Scope) -> Node:
        if expr.kind == "Int":
            if not fits(expr.value, SInt):
                raise self.type_error(f"Integer literal {expr.value} is out of range for Int", expr)
            return Constant(expr.value, SInt)
        if expr.kind == "Long":
            if not fits(expr.value, SLong):
                raise self.type_error(f"Long literal {expr.value} is out of range", expr)
            return Constant(expr.value, SLong)
        if expr.kind == "Boolean":
            return Constant(bool(expr.value), SBoolean)
        if expr.kind == "String":
            return Constant(expr.value, SString)
        return Constant((), SUnit)

    def _lower_Name(self, expr: ast.Name, scope: Scope) -> Node:
        bound = scope.lookup(expr.name)
        if bound is not None:
            return bound
        if expr.name in GLOBALS:
            opcode, tpe = GLOBALS[expr.name]
            return leaf(opcode, tpe)
        if expr.name in _FUNCTIONS or expr.name in BASE_DECODERS:
            raise self.type_error(f"Function '{expr.name}' must be called with arguments", expr)
        raise self.type_error(f"Unknown identifier '{expr.name}'", expr)

    def _lower_Unary(self, expr: ast.Unary, scope: Scope) -> Node:
        operand = self.lower(expr.operand, scope)
        if expr.op == "!":
            self.expect_type(operand, SBoolean, expr.operand)
            return unary(OpCode.LOGICAL_NOT, operand, SBoolean)
        if not operand.tpe.is_numeric:
            raise self.type_error(f"Cannot negate a value of type {operand.tpe}", expr)
        if isinstance(operand, Constant):
            return self._numeric_constant(-operand.value, operand.tpe, expr)
        return unary(OpCode.NEGATION, operand, operand.tpe)

    def _lower_Binary(self, expr: ast.Binary, scope: Scope) -> Node:
        op = expr.op
        left = self.lower(expr.left, scope)
        right = self.lower(expr.right, scope)
        if op in ("&&", "||"):
            return self._logical(op, left, right, expr)
        if op in ("&", "|", "^"):
            if left.tpe == SBoolean and right.tpe == SBoolean:
                opcode = {"&": OpCode.BIN_AND, "|": OpCode.BIN_OR, "^": OpCode.BIN_XOR}[op]
                return Op(opcode, (left, right), SBoolean)
            if left.tpe.is_numeric and right.tpe.is_numeric:
                raise self.unsupported(f"Bitwise operator '{op}' on numeric values is not supported", expr)
            raise self.type_error(f"Operator '{op}' is not defined for {left.tpe} and {right.tpe}", expr)
        if op == "++":
            if not left.tpe.is_collection or left.tpe != right.tpe:
                raise self.type_error(f"Cannot append {right.tpe} to {left.tpe}", expr)
            return Op(OpCode.APPEND, (left, right), left.tpe)
        if op in _EQUALITY:
            left, right = self.unify(left, right, expr)
            return relation(_EQUALITY[op], left, right)
        if op in _COMPARISONS:
            left, right = self.unify_numeric(left, right, expr)
            return relation(_COMPARISONS[op], left, right)
        if op in _ARITHMETIC:
            if op == "+" and SString in (left.tpe, right.tpe):
                raise self.unsupported("String concatenation is not supported", expr)
            left, right = self.unify_numeric(left, right, expr)
            return Op(_ARITHMETIC[op], (left, right), left.tpe)
        raise self.unsupported(f"Operator '{op}' is not supported", expr)

    def _logical(self, op: str, left: Node, right: Node, expr: ast.Node) -> Node:
        allowed = (SBoolean, SSigmaProp)
        if left.tpe not in allowed or right.tpe not in allowed:
            raise self.type_error(f"Operator '{op}' is not defined for {left.tpe} and {right.tpe}", expr)
        if left.tpe == SBoolean and right.tpe == SBoolean:
            return Op(OpCode.BIN_AND if op == "&&" else OpCode.BIN_OR, (left, right), SBoolean)
        opcode = OpCode.SIGMA_AND if op == "&&" else OpCode.SIGMA_OR
        items: List[Node] = []
        for side in (left, right):
            if side.tpe == SBoolean:
                side = unary(OpCode.BOOL_TO_SIGMA_PROP, side, SSigmaProp)
            if isinstance(side, SigmaJunction) and side.opcode == opcode:
                items.extend(side.items)
            else:
                items.append(side)
        return SigmaJunction(opcode, tuple(items))

    def _lower_If(self, expr: ast.If, scope: Scope) -> Node:
        if expr.else_branch is None:
            raise self.unsupported("'if' without 'else' is not supported", expr)
        condition = self.lower(expr.condition, scope)
        self.expect_type(condition, SBoolean, expr.condition)
        then_branch = self.lower(expr.then_branch, scope)
        else_branch = self.lower(expr.else_branch, scope)
        if {then_branch.tpe, else_branch.tpe} == {SBoolean, SSigmaProp}:
            then_branch, else_branch = (self.to_sigma_prop(then_branch), self.to_sigma_prop(else_branch))
        else:
            then_branch, else_branch = self.unify(then_branch, else_branch, expr)
        return Op(OpCode.IF, (condition, then_branch, else_branch), then_branch.tpe)

    def _lower_Block(self, expr: ast.Block, scope: Scope) -> Node:
        return self.lower_block(expr.statements, expr.result, scope.child(), expr)

    def _lower_Lambda(self, expr: ast.Lambda, scope: Scope) -> Node:
        function, _ = self.lower_lambda(expr, scope)
        return function

    def _lower_TupleExpr(self, expr: ast.TupleExpr, scope: Scope) -> Node:
        return TupleNode(tuple(self.lower(item, scope) for item in expr.items))

    def _lower_Select(self, expr: ast.Select, scope: Scope) -> Node:
        return self.member(self.lower(expr.receiver, scope), expr.name, [], None, scope, expr)

    def _lower_TypeApply(self, expr: ast.TypeApply, scope: Scope) -> Node:
        if isinstance(expr.callee, ast.Select):
            receiver = self.lower(expr.callee.receiver, scope)
            return self.member(receiver, expr.callee.name, expr.type_args, None, scope, expr)
        raise self.type_error("Type arguments are only allowed on calls and register access", expr)

    def _lower_Apply(self, expr: ast.Apply, scope: Scope) -> Node:
        callee = expr.callee
        type_args: List[SType] = []
        if isinstance(callee, ast.TypeApply):
            type_args = list(callee.type_args)
            callee = callee.callee
        if isinstance(callee, ast.Name) and scope.lookup(callee.name) is None:
            return self.call_function(callee.name, type_args, expr.args, scope, expr)
        if isinstance(callee, ast.Select):
            receiver = self.lower(callee.receiver, scope)
            return self.member(receiver, callee.name, type_args, expr.args, scope, expr)
        if type_args:
            raise self.type_error("Unexpected type arguments", expr)
        return self.apply_value(self.lower(callee, scope), expr.args, scope, expr)

    def apply_value(self, target: Node, args: List[ast.Expression], scope: Scope, expr: ast.Node) -> Node:
        """Apply a non-builtin value: index a collection or call a function."""
        if target.tpe.is_collection:
            self._arity("apply", args, 1, expr)
            index = self.coerce(self.lower(args[0], scope), SInt, args[0])
            return ByIndex(target, index, None, target.tpe.elem)
        if target.tpe.is_function:
            domain = target.tpe.domain
            if len(args) != len(domain):
                raise self.type_error(f"Function expects {len(domain)} arguments, got {len(args)}", expr)
            values = tuple(
                self.coerce(self.lower(arg, scope), arg_type, arg) for arg, arg_type in zip(args, domain)
            )
            return FuncApply(target, values, target.tpe.result)
        raise self.type_error(f"Value of type {target.tpe} cannot be applied", expr)

    # ------------------------------------------------------------------
    # Lambdas

    def lower_lambda(
        self,
        lam: ast.Lambda,
        scope: Scope,
        arg_types: Optional[Sequence[SType]] = None,
        *,
        pack: bool = False,
        return_type: Optional[SType] = None,
    ) -> Tuple[FuncValue, List[SType]]:
        """Lower a lambda, taking missing parameter types from *arg_types*.

        With *pack*, several parameters are passed as one tuple argument and
        read back with ``SelectField``.
        """
        if arg_types is not None and len(arg_types) != len(lam.params):
            raise self.type_error(f"Expected a function of {len(arg_types)} parameters", lam)
        types: List[SType] = []
        for position, param in enumerate(lam.params):
            tpe = param.type or (arg_types[position] if arg_types is not None else None)
            if tpe is None:
                raise self.type_error(f"Missing type for parameter '{param.name}'", param)
            types.append(tpe)
        inner = scope.child()
        args: List[Tuple[int, SType]] = []
        if pack and len(types) > 1:
            arg_id = self._fresh_id()
            packed = tuple_of(*types)
            argument = ValUse(arg_id, packed)
            for position, param in enumerate(lam.params):
                inner.define(param.name, SelectField(argument, position + 1, types[position]))
            args.append((arg_id, packed))
        else:
            for param, tpe in zip(lam.params, types):
                arg_id = self._fresh_id()
                inner.define(param.name, ValUse(arg_id, tpe))
                args.append((arg_id, tpe))
        body = self.lower(lam.body, inner)
        if return_type is not None:
            body = self.coerce(body, return_type, lam.body)
        return FuncValue(tuple(args), body), types

    def function_argument(
        self,
        arg: ast.Expression,
        arg_types: Sequence[SType],
        scope: Scope,
        *,
        pack: bool = False,
    ) -> Tuple[Node, List[SType]]:
        if isinstance(arg, ast.Lambda):
            return self.lower_lambda(arg, scope, arg_types, pack=pack)
        value = self.lower(arg, scope)
        if not value.tpe.is_function:
            raise self.type_error(f"Expected a function, found {value.tpe}", arg)
        return value, list(value.tpe.domain)

    # ------------------------------------------------------------------
    # Type helpers

    def expect_type(self, node: Node, tpe: SType, expr: ast.Node) -> None:
        if node.tpe != tpe:
            raise self.type_error(f"Type mismatch: expected {tpe}, found {node.tpe}", expr)

    def coerce(self, node: Node, target: SType, expr: ast.Node) -> Node:
        if node.tpe == target:
            return node
        if node.tpe.is_numeric and target.is_numeric:
            if isinstance(node, Constant):
                return self._numeric_constant(node.value, target, expr)
            if NUMERIC_RANK[node.tpe.name] < NUMERIC_RANK[target.name]:
                return Cast(OpCode.UPCAST, node, target)
        if target == SSigmaProp and node.tpe == SBoolean:
            return self.to_sigma_prop(node)
        raise self.type_error(f"Type mismatch: expected {target}, found {node.tpe}", expr)

    def convert(self, node: Node, target: SType, expr: ast.Node) -> Node:
        """Explicit numeric conversion such as ``x.toLong``."""
        if node.tpe == target:
            return node
        if isinstance(node, Constant):
            return self._numeric_constant(node.value, target, expr)
        if NUMERIC_RANK[node.tpe.name] < NUMERIC_RANK[target.name]:
            return Cast(OpCode.UPCAST, node, target)
        return Cast(OpCode.DOWNCAST, node, target)

    def _numeric_constant(self, value: int, tpe: SType, expr: ast.Node) -> Constant:
        if not fits(value, tpe):
            raise self.type_error(f"Value {value} is out of range for {tpe}", expr)
        return Constant(value, tpe)

    def unify_numeric(self, left: Node, right: Node, expr: ast.Node) -> Tuple[Node, Node]:
        if not left.tpe.is_numeric or not right.tpe.is_numeric:
            raise self.type_error(f"Numeric operands expected, found {left.tpe} and {right.tpe}", expr)
        return self.unify(left, right, expr)

    def unify(self, left: Node, right: Node, expr: ast.Node) -> Tuple[Node, Node]:
        if left.tpe == right.tpe:
            return left, right
        if left.tpe.is_numeric and right.tpe.is_numeric:
            # A literal takes the type of the other operand when it fits.
            if isinstance(right, Constant) and not isinstance(left, Constant) and fits(right.value, left.tpe):
                return left, Constant(right.value, left.tpe)
            if isinstance(left, Constant) and not isinstance(right, Constant) and fits(left.value, right.tpe):
                return Constant(left.value, right.tpe), right
            target = wider(left.tpe, right.tpe)
            return self.coerce(left, target, expr), self.coerce(right, target, expr)
        raise self.type_error(f"Type mismatch: {left.tpe} and {right.tpe}", expr)

    def to_sigma_prop(self, node: Node) -> Node:
        if node.tpe == SBoolean:
            return unary(OpCode.BOOL_TO_SIGMA_PROP, node, SSigmaProp)
        return node

    def _arity(self, name: str, args: Args, count: int, expr: ast.Node) -> List[ast.Expression]:
        if args is None:
            raise self.type_error(f"'{name}' must be called with {count} argument(s)", expr)
        if len(args) != count:
            raise self.type_error(f"'{name}' expects {count} argument(s), got {len(args)}", expr)
        return args

    def _lower_args(
        self, name: str, args: Args, types: Sequence[SType], scope: Scope, expr: ast.Node
    ) -> Tuple[Node, ...]:
        self._arity(name, args, len(types), expr)
        return tuple(self.coerce(self.lower(arg, scope), tpe, arg) for arg, tpe in zip(args, types))

    # ------------------------------------------------------------------
    # Built-in functions

    def call_function(
        self,
        name: str,
        type_args: List[SType],
        args: List[ast.Expression],
        scope: Scope,
        expr: ast.Apply,
    ) -> Node:
        if name in UNSUPPORTED_FUNCTIONS:
            raise self.unsupported(f"'{name}' is not supported", expr)
        if name in BASE_DECODERS:
            text = self._string_literal(name, args, expr)
            try:
                return Constant(BASE_DECODERS[name](text), SByteArray)
            except ValueError as exc:
                raise self.type_error(f"Invalid argument to {name}: {exc}", expr) from exc
        handler = _FUNCTIONS.get(name)
        if handler is None:
            if name in GLOBALS:
                return self.apply_value(self._lower_Name(ast.Name(name), scope), args, scope, expr)
            raise self.type_error(f"Unknown function '{name}'", expr)
        if type_args and name not in ("getVar", "Coll"):
            raise self.type_error(f"'{name}' does not take type arguments", expr)
        return handler(self, type_args, args, scope, expr)

    def _string_literal(self, name: str, args: List[ast.Expression], expr: ast.Node) -> str:
        if len(args) != 1 or not isinstance(args[0], ast.Literal) or args[0].kind != "String":
            raise self.type_error(f"'{name}' expects a string literal", expr)
        return args[0].value

    def _fn_sigma_prop(self, type_args, args, scope, expr) -> Node:
        (value,) = self._lower_args("sigmaProp", args, [SBoolean], scope, expr)
        return unary(OpCode.BOOL_TO_SIGMA_PROP, value, SSigmaProp)

    def _fn_prove_dlog(self, type_args, args, scope, expr) -> Node:
        (point,) = self._lower_args("proveDlog", args, [SGroupElement], scope, expr)
        if isinstance(point, Constant):
            return Constant(ProveDlog(point.value), SSigmaProp)
        return unary(OpCode.PROVE_DLOG, point, SSigmaProp)

    def _fn_prove_dh_tuple(self, type_args, args, scope, expr) -> Node:
        points = self._lower_args("proveDHTuple", args, [SGroupElement] * 4, scope, expr)
        if all(isinstance(point, Constant) for point in points):
            return Constant(ProveDHTuple(*(point.value for point in points)), SSigmaProp)
        return Op(OpCode.PROVE_DH_TUPLE, points, SSigmaProp)

    def _fn_at_least(self, type_args, args, scope, expr) -> Node:
        bound, props = self._lower_args("atLeast", args, [SInt, coll(SSigmaProp)], scope, expr)
        return Op(OpCode.AT_LEAST, (bound, props), SSigmaProp)

    def _fn_byte_array_to_bigint(self, type_args, args, scope, expr) -> Node:
        (data,) = self._lower_args("byteArrayToBigInt", args, [SByteArray], scope, expr)
        return unary(OpCode.BYTE_ARRAY_TO_BIGINT, data, SBigInt)

    def _fn_byte_array_to_long(self, type_args, args, scope, expr) -> Node:
        (data,) = self._lower_args("byteArrayToLong", args, [SByteArray], scope, expr)
        return unary(OpCode.BYTE_ARRAY_TO_LONG, data, SLong)

    def _fn_long_to_byte_array(self, type_args, args, scope, expr) -> Node:
        (value,) = self._lower_args("longToByteArray", args, [SLong], scope, expr)
        return unary(OpCode.LONG_TO_BYTE_ARRAY, value, SByteArray)

    def _fn_decode_point(self, type_args, args, scope, expr) -> Node:
        (data,) = self._lower_args("decodePoint", args, [SByteArray], scope, expr)
        if isinstance(data, Constant):
            try:
                return Constant(check_point(data.value), SGroupElement)
            except ValueError as exc:
                raise self.type_error(str(exc), expr) from exc
        return unary(OpCode.DECODE_POINT, data, SGroupElement)

    def _fn_xor(self, type_args, args, scope, expr) -> Node:
        left, right = self._lower_args("xor", args, [SByteArray, SByteArray], scope, expr)
        return Op(OpCode.XOR, (left, right), SByteArray)

    def _fn_get_var(self, type_args, args, scope, expr) -> Node:
        if len(type_args) != 1:
            raise self.type_error("getVar requires one type argument, e.g. getVar[Int](1)", expr)
        self._arity("getVar", args, 1, expr)
        var_id = self.lower(args[0], scope)
        if not (isinstance(var_id, Constant) and var_id.tpe.is_numeric and 0 <= var_id.value <= 255):
            raise self.type_error("getVar expects a constant variable id between 0 and 255", args[0])
        return GetVar(var_id.value, option(type_args[0]))

    def _fn_coll(self, type_args, args, scope, expr) -> Node:
        items = [self.lower(arg, scope) for arg in args]
        if type_args:
            elem = type_args[0]
        elif items:
            elem = items[0].tpe
        else:
            raise self.type_error("Cannot infer the element type of an empty Coll(); use Coll[T]()", expr)
        items = [self.coerce(item, elem, arg) for item, arg in zip(items, args)]
        if all(isinstance(item, Constant) for item in items):
            if elem == SByte:
                return Constant(bytes(item.value & 0xFF for item in items), SByteArray)
            return Constant(tuple(item.value for item in items), coll(elem))
        return ConcreteCollection(tuple(items), elem)

    def _fn_pk(self, type_args, args, scope, expr) -> Node:
        address = self._string_literal("PK", args, expr)
        try:
            return Constant(ProveDlog(decode_p2pk_address(address, self.network)), SSigmaProp)
        except ValueError as exc:
            raise self.type_error(f"Invalid address: {exc}", expr) from exc

    def _fn_big_int(self, type_args, args, scope, expr) -> Node:
        text = self._string_literal("bigInt", args, expr)
        try:
            value = int(text)
        except ValueError as exc:
            raise self.type_error(f"Invalid BigInt literal '{text}'", expr) from exc
        return self._numeric_constant(value, SBigInt, expr)

    # ------------------------------------------------------------------
    # Members

    def member(
        self,
        receiver: Node,
        name: str,
        type_args: List[SType],
        args: Args,
        scope: Scope,
        expr: ast.Node,
    ) -> Node:
        """Lower ``receiver.name[type_args](args)``; *args* is ``None`` without a call."""
        tpe = receiver.tpe
        if tpe.is_tuple and name.startswith("_") and name[1:].isdigit():
            index = int(name[1:])
            if not 1 <= index <= len(tpe.args):
                raise self.type_error(f"Tuple {tpe} has no component {name}", expr)
            return self._then_apply(SelectField(receiver, index, tpe.args[index - 1]), args, scope, expr)
        if tpe == SBox:
            return self._box_member(receiver, name, type_args, args, scope, expr)
        if tpe.is_collection:
            return self._collection_member(receiver, name, args, scope, expr)
        if tpe.is_option:
            return self._option_member(receiver, name, args, scope, expr)
        if tpe == SContext:
            return self._context_member(receiver, name, type_args, args, scope, expr)
        if tpe == SAvlTree:
            return self._avl_tree_member(receiver, name, args, scope, expr)
        if tpe == SGroupElement:
            return self._group_element_member(receiver, name, args, scope, expr)
        if tpe == SSigmaProp:
            if name == "propBytes":
                return self._then_apply(unary(OpCode.SIGMA_PROP_BYTES, receiver, SByteArray), args, scope, expr)
            if name == "isProven":
                raise self.unsupported("'isProven' is not supported", expr)
        if tpe.is_numeric:
            if name in _NUMERIC_CONVERSIONS:
                return self._then_apply(self.convert(receiver, _NUMERIC_CONVERSIONS[name], expr), args, scope, expr)
            if name in ("toBytes", "toBits"):
                raise self.unsupported(f"'{name}' is not supported", expr)
        raise self.type_error(f"Value of type {tpe} has no member '{name}'", expr)

    def _then_apply(self, node: Node, args: Args, scope: Scope, expr: ast.Node) -> Node:
        if args is None:
            return node
        return self.apply_value(node, args, scope, expr)

    def _box_member(self, receiver, name, type_args, args, scope, expr) -> Node:
        if name in _BOX_PROPERTIES:
            opcode, tpe = _BOX_PROPERTIES[name]
            return self._then_apply(unary(opcode, receiver, tpe), args, scope, expr)
        if name == "tokens":
            tokens = MethodCall(99, 8, receiver, (), TOKENS_TYPE, is_property=True)
            return self._then_apply(tokens, args, scope, expr)
        if name in _REGISTERS:
            if len(type_args) != 1:
                raise self.type_error(f"Register access requires a type argument, e.g. {name}[Int]", expr)
            register = ExtractRegisterAs(receiver, _REGISTERS[name], option(type_args[0]))
            return self._then_apply(register, args, scope, expr)
        if name == "getReg":
            raise self.unsupported("'getReg' is not supported", expr)
        raise self.type_error(f"Box has no member '{name}'", expr)

    def _collection_member(self, receiver, name, args, scope, expr) -> Node:
        tpe = receiver.tpe
        elem = tpe.elem
        if name == "size":
            return self._then_apply(unary(OpCode.SIZE_OF, receiver, SInt), args, scope, expr)
        if name in ("isEmpty", "nonEmpty"):
            size = unary(OpCode.SIZE_OF, receiver, SInt)
            opcode = OpCode.EQ if name == "isEmpty" else OpCode.GT
            return relation(opcode, size, Constant(0, SInt))
        if name == "indices":
            return self._then_apply(MethodCall(12, 14, receiver, (), coll(SInt), is_property=True), args, scope, expr)
        if name == "get":
            raise self.unsupported("Coll.get is not supported; use apply or getOrElse", expr)
        if name in ("map", "exists", "forall", "filter", "flatMap"):
            (arg,) = self._arity(name, args, 1, expr)
            function, _ = self.function_argument(arg, [elem], scope)
            result = function.tpe.result
            if name == "map":
                return Op(OpCode.MAP_COLLECTION, (receiver, function), coll(result))
            if name == "flatMap":
                if not result.is_collection:
                    raise self.type_error(f"flatMap expects a function returning a collection, found {result}", arg)
                return MethodCall(12, 15, receiver, (function,), result)
            if result != SBoolean:
                raise self.type_error(f"'{name}' expects a predicate returning Boolean, found {result}", arg)
            opcode = {"exists": OpCode.EXISTS, "forall": OpCode.FOR_ALL, "filter": OpCode.FILTER}[name]
            return Op(opcode, (receiver, function), tpe if name == "filter" else SBoolean)
        if name == "fold":
            zero_arg, op_arg = self._arity(name, args, 2, expr)
            zero = self.lower(zero_arg, scope)
            function, param_types = self.function_argument(op_arg, [zero.tpe, elem], scope, pack=True)
            accumulator = param_types[0]
            zero = self.coerce(zero, accumulator, zero_arg)
            if function.tpe.result != accumulator:
                raise self.type_error(
                    f"fold function must return {accumulator}, found {function.tpe.result}", op_arg
                )
            return Op(OpCode.FOLD, (receiver, zero, function), accumulator)
        if name == "apply":
            return self.apply_value(receiver, self._arity(name, args, 1, expr), scope, expr)
        if name == "getOrElse":
            index, default = self._lower_args(name, args, [SInt, elem], scope, expr)
            return ByIndex(receiver, index, default, elem)
        if name == "slice":
            start, end = self._lower_args(name, args, [SInt, SInt], scope, expr)
            return Op(OpCode.SLICE, (receiver, start, end), tpe)
        if name == "append":
            (other,) = self._lower_args(name, args, [tpe], scope, expr)
            return Op(OpCode.APPEND, (receiver, other), tpe)
        if name == "patch":
            values = self._lower_args(name, args, [SInt, tpe, SInt], scope, expr)
            return MethodCall(12, 19, receiver, values, tpe)
        if name == "updated":
            values = self._lower_args(name, args, [SInt, elem], scope, expr)
            return MethodCall(12, 20, receiver, values, tpe)
        if name == "updateMany":
            values = self._lower_args(name, args, [coll(SInt), tpe], scope, expr)
            return MethodCall(12, 21, receiver, values, tpe)
        if name == "indexOf":
            values = self._lower_args(name, args, [elem, SInt], scope, expr)
            return MethodCall(12, 26, receiver, values, SInt)
        if name == "zip":
            self._arity(name, args, 1, expr)
            other = self.lower(args[0], scope)
            if not other.tpe.is_collection:
                raise self.type_error(f"zip expects a collection, found {other.tpe}", args[0])
            return MethodCall(12, 29, receiver, (other,), coll(tuple_of(elem, other.tpe.elem)))
        raise self.type_error(f"Collection has no member '{name}'", expr)

    def _option_member(self, receiver, name, args, scope, expr) -> Node:
        elem = receiver.tpe.elem
        if name == "get":
            return self._then_apply(unary(OpCode.OPTION_GET, receiver, elem), args, scope, expr)
        if name == "isDefined":
            return unary(OpCode.OPTION_IS_DEFINED, receiver, SBoolean)
        if name == "isEmpty":
            return unary(OpCode.LOGICAL_NOT, unary(OpCode.OPTION_IS_DEFINED, receiver, SBoolean), SBoolean)
        if name == "getOrElse":
            (default,) = self._lower_args(name, args, [elem], scope, expr)
            return Op(OpCode.OPTION_GET_OR_ELSE, (receiver, default), elem)
        if name in ("map", "filter"):
            (arg,) = self._arity(name, args, 1, expr)
            function, _ = self.function_argument(arg, [elem], scope)
            if name == "map":
                return MethodCall(36, 7, receiver, (function,), option(function.tpe.result))
            if function.tpe.result != SBoolean:
                raise self.type_error("filter expects a predicate returning Boolean", arg)
            return MethodCall(36, 8, receiver, (function,), receiver.tpe)
        raise self.type_error(f"Option has no member '{name}'", expr)

    def _context_member(self, receiver, name, type_args, args, scope, expr) -> Node:
        if name in GLOBALS and name not in ("CONTEXT", "groupGenerator"):
            opcode, tpe = GLOBALS[name]
            return self._then_apply(leaf(opcode, tpe), args, scope, expr)
        if name in _CONTEXT_PROPERTIES:
            type_id, method_id, tpe = _CONTEXT_PROPERTIES[name]
            node = MethodCall(type_id, method_id, receiver, (), tpe, is_property=True)
            return self._then_apply(node, args, scope, expr)
        if name == "getVar":
            return self._fn_get_var(type_args, args or [], scope, expr)
        raise self.type_error(f"Context has no member '{name}'", expr)

    def _avl_tree_member(self, receiver, name, args, scope, expr) -> Node:
        if name in _AVL_PROPERTIES:
            method_id, tpe = _AVL_PROPERTIES[name]
            node = MethodCall(100, method_id, receiver, (), tpe, is_property=True)
            return self._then_apply(node, args, scope, expr)
        if name in _AVL_METHODS:
            method_id, arg_types, tpe = _AVL_METHODS[name]
            values = self._lower_args(name, args, arg_types, scope, expr)
            return MethodCall(100, method_id, receiver, values, tpe)
        raise self.type_error(f"AvlTree has no member '{name}'", expr)

    def _group_element_member(self, receiver, name, args, scope, expr) -> Node:
        if name == "getEncoded":
            node = MethodCall(7, 2, receiver, (), SByteArray, is_property=True)
            return self._then_apply(node, args, scope, expr)
        if name == "negate":
            return MethodCall(7, 5, receiver, (), SGroupElement, is_property=True)
        if name == "exp":
            (exponent,) = self._lower_args(name, args, [SBigInt], scope, expr)
            return Op(OpCode.EXPONENTIATE, (receiver, exponent), SGroupElement)
        if name == "multiply":
            (other,) = self._lower_args(name, args, [SGroupElement], scope, expr)
            return Op(OpCode.MULTIPLY_GROUP, (receiver, other), SGroupElement)
        raise self.type_error(f"GroupElement has no member '{name}'", expr)


def _boolean_aggregate(name: str, opcode: OpCode) -> Callable:
    def handler(self: Lowering, type_args, args, scope, expr) -> Node:
        (values,) = self._lower_args(name, args, [coll(SBoolean)], scope, expr)
        return unary(opcode, values, SBoolean)

    return handler


def _sigma_aggregate(name: str, opcode: OpCode) -> Callable:
    # Only a literal Coll(...) argument can be lowered to a proposition list.
    def handler(self: Lowering, type_args, args, scope, expr) -> Node:
        self._arity(name, args, 1, expr)
        literal = args[0]
        callee = literal.callee if isinstance(literal, ast.Apply) else None
        if isinstance(callee, ast.TypeApply):
            callee = callee.callee
        if not (isinstance(callee, ast.Name) and callee.name == "Coll"):
            raise self.unsupported(f"'{name}' requires a Coll(...) literal argument", expr)
        items = tuple(self.coerce(self.lower(item, scope), SSigmaProp, item) for item in literal.args)
        return SigmaJunction(opcode, items)

    return handler


def _hash(name: str, opcode: OpCode) -> Callable:
    def handler(self: Lowering, type_args, args, scope, expr) -> Node:
        (data,) = self._lower_args(name, args, [SByteArray], scope, expr)
        return unary(opcode, data, SByteArray)

    return handler


def _min_max(name: str, opcode: OpCode) -> Callable:
    def handler(self: Lowering, type_args, args, scope, expr) -> Node:
        self._arity(name, args, 2, expr)
        left, right = self.unify_numeric(self.lower(args[0], scope), self.lower(args[1], scope), expr)
        return Op(opcode, (left, right), left.tpe)

    return handler


_FUNCTIONS: Dict[str, Callable] = {
    "sigmaProp": Lowering._fn_sigma_prop,
    "proveDlog": Lowering._fn_prove_dlog,
    "proveDHTuple": Lowering._fn_prove_dh_tuple,
    "atLeast": Lowering._fn_at_least,
    "allOf": _boolean_aggregate("allOf", OpCode.AND),
    "anyOf": _boolean_aggregate("anyOf", OpCode.OR),
    "xorOf": _boolean_aggregate("xorOf", OpCode.XOR_OF),
    "allZK": _sigma_aggregate("allZK", OpCode.SIGMA_AND),
    "anyZK": _sigma_aggregate("anyZK", OpCode.SIGMA_OR),
    "blake2b256": _hash("blake2b256", OpCode.CALC_BLAKE2B256),
    "sha256": _hash("sha256", OpCode.CALC_SHA256),
    "byteArrayToBigInt": Lowering._fn_byte_array_to_bigint,
    "byteArrayToLong": Lowering._fn_byte_array_to_long,
    "longToByteArray": Lowering._fn_long_to_byte_array,
    "decodePoint": Lowering._fn_decode_point,
    "xor": Lowering._fn_xor,
    "min": _min_max("min", OpCode.MIN),
    "max": _min_max("max", OpCode.MAX),
    "getVar": Lowering._fn_get_var,
    "Coll": Lowering._fn_coll,
    "PK": Lowering._fn_pk,
    "bigInt": Lowering._fn_big_int,
}


# ----------------------------------------------------------------------
# Definition inlining


def optimize(root: Node) -> Node:
    """Inline single-use values, drop unused ones and renumber the rest."""
    while True:
        uses = Counter(node.id for node in walk(root) if isinstance(node, ValUse))
        simplified = _inline(root, uses, {})
        if simplified == root:
            break
        root = simplified
    return renumber(root)


def _inline(node: Node, uses: Counter, substitutions: Dict[int, Node]) -> Node:
    if isinstance(node, ValUse):
        return substitutions.get(node.id, node)
    if isinstance(node, BlockValue):
        items: List[ValDef] = []
        for item in node.items:
            rhs = _inline(item.rhs, uses, substitutions)
            count = uses.get(item.id, 0)
            if count == 0:
                logger.debug("Dropping unused definition %d", item.id)
                continue
            if count == 1:
                substitutions[item.id] = rhs
                continue
            items.append(ValDef(item.id, rhs))
        result = _inline(node.result, uses, substitutions)
        if not items:
            return result
        return BlockValue(tuple(items), result)
    return node.map_children(lambda child: _inline(child, uses, substitutions))


def renumber(root: Node) -> Node:
    """Assign definition ids 1, 2, ... in pre-order."""
    counter = itertools.count(1)
    mapping: Dict[int, int] = {}

    def visit(node: Node) -> Node:
        if isinstance(node, ValDef):
            mapping[node.id] = next(counter)
            return ValDef(mapping[node.id], visit(node.rhs))
        if isinstance(node, FuncValue):
            args = []
            for arg_id, arg_type in node.args:
                mapping[arg_id] = next(counter)
                args.append((mapping[arg_id], arg_type))
            return FuncValue(tuple(args), visit(node.body))
        if isinstance(node, ValUse):
            return ValUse(mapping[node.id], node.tpe)
        return node.map_children(visit)

    return visit(root)


__all__ = ["Lowering", "Scope", "GLOBALS", "optimize", "renumber"]
