"""Recursive-descent parser for ErgoScript.

Operator precedence follows Scala: it is decided by the first character of
the operator, from lowest to highest ``|``, ``^``, ``&``, ``= !``,
``< >``, ``+ -``, ``* / %``.  All binary operators are left associative.

Line breaks end a statement inside braces and at the top level when the
token after the break can start a new statement.  Inside parentheses and
brackets line breaks are ignored.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ..errors import ScriptSyntaxError
from . import ast
from .lexer import Lexer, Token, TokenType
from .types import NAMED_TYPES, TYPE_CONSTRUCTORS, SType, func, tuple_of

_PRECEDENCE = {
    "|": 1,
    "^": 2,
    "&": 3,
    "=": 4,
    "!": 4,
    "<": 5,
    ">": 5,
    "+": 6,
    "-": 6,
    "*": 7,
    "/": 7,
    "%": 7,
}

# Tokens that continue the current statement even after a line break.
_CONTINUATION_TYPES = frozenset(
    {
        TokenType.RPAREN,
        TokenType.RBRACE,
        TokenType.RBRACKET,
        TokenType.COMMA,
        TokenType.DOT,
        TokenType.COLON,
        TokenType.ASSIGN,
        TokenType.FAT_ARROW,
        TokenType.ELSE,
        TokenType.EOF,
    }
)
_PREFIX_OPERATORS = frozenset({"!", "-", "+"})


class Parser:
    def __init__(self, tokens: List[Token], path: Optional[str] = None):
        self.tokens = tokens
        self.path = path
        self.pos = 0
        self._newline_sensitive = [True]

    # ------------------------------------------------------------------
    # Token helpers

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 1) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type is not TokenType.EOF:
            self.pos += 1
        return token

    def check(self, token_type: TokenType, value: Optional[str] = None) -> bool:
        token = self.current()
        return token.type is token_type and (value is None or token.value == value)

    def match(self, token_type: TokenType, value: Optional[str] = None) -> Optional[Token]:
        if self.check(token_type, value):
            return self.advance()
        return None

    def expect(self, token_type: TokenType, description: str) -> Token:
        if not self.check(token_type):
            raise self.error(f"Expected {description}, found {self._describe(self.current())}")
        return self.advance()

    def error(self, message: str, token: Optional[Token] = None) -> ScriptSyntaxError:
        token = token or self.current()
        return ScriptSyntaxError(message, path=self.path, line=token.line, column=token.column)

    def at_statement_break(self) -> bool:
        """Whether a line break before the current token ends the statement."""
        token = self.current()
        if not self._newline_sensitive[-1] or not token.newline_before:
            return False
        if token.type in _CONTINUATION_TYPES:
            return False
        if token.type is TokenType.OPERATOR:
            return token.value in _PREFIX_OPERATORS
        return True

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type is TokenType.EOF:
            return "end of input"
        return f"'{token.value}'"

    @staticmethod
    def _position(token: Token) -> dict:
        return {"line": token.line, "column": token.column}

    # ------------------------------------------------------------------
    # Statements

    def program(self) -> ast.Program:
        first = self.current()
        statements, result = self._sequence(TokenType.EOF)
        self.expect(TokenType.EOF, "end of input")
        return ast.Program(statements=statements, result=result, **self._position(first))

    def _sequence(self, terminator: TokenType) -> Tuple[List[ast.Node], Optional[ast.Expression]]:
        statements: List[ast.Node] = []
        while True:
            while self.match(TokenType.SEMICOLON):
                pass
            if self.check(terminator):
                break
            statements.append(self.statement())
            if self.check(terminator):
                break
            if self.match(TokenType.SEMICOLON):
                continue
            if not self.current().newline_before:
                raise self.error(f"Expected ';' or a new line, found {self._describe(self.current())}")
        result = None
        if statements and isinstance(statements[-1], ast.Expression):
            result = statements.pop()
        return statements, result

    def statement(self) -> ast.Node:
        annotations = []
        while self.check(TokenType.AT):
            at = self.advance()
            name = self.expect(TokenType.IDENTIFIER, "annotation name")
            annotations.append(ast.Annotation(name.value, offset=at.offset, **self._position(at)))
        if annotations:
            if not self.check(TokenType.DEF):
                raise self.error("Annotations must be followed by a 'def'")
            return self.def_declaration(annotations)
        if self.check(TokenType.VAL):
            return self.val_declaration()
        if self.check(TokenType.DEF):
            return self.def_declaration([])
        return self.expression()

    def val_declaration(self) -> ast.ValDecl:
        keyword = self.advance()
        name = self.expect(TokenType.IDENTIFIER, "value name")
        declared = None
        if self.match(TokenType.COLON):
            declared = self.type_expression()
        self.expect(TokenType.ASSIGN, "'='")
        value = self.expression()
        return ast.ValDecl(name.value, value, declared, **self._position(keyword))

    def def_declaration(self, annotations: List[ast.Annotation]) -> ast.DefDecl:
        keyword = self.advance()
        name = self.expect(TokenType.IDENTIFIER, "function name")
        params = None
        if self.check(TokenType.LPAREN):
            params = self.parameters()
        return_type = None
        if self.match(TokenType.COLON):
            return_type = self.type_expression()
        self.expect(TokenType.ASSIGN, "'='")
        body = self.expression()
        position = self._position(annotations[0]) if annotations else self._position(keyword)
        return ast.DefDecl(name.value, params, body, return_type, annotations, **position)

    def parameters(self) -> List[ast.Param]:
        self.expect(TokenType.LPAREN, "'('")
        self._newline_sensitive.append(False)
        params: List[ast.Param] = []
        if not self.check(TokenType.RPAREN):
            while True:
                token = self.expect(TokenType.IDENTIFIER, "parameter name")
                declared = None
                default = None
                if self.match(TokenType.COLON):
                    declared = self.type_expression()
                if self.match(TokenType.ASSIGN):
                    default = self.expression()
                params.append(ast.Param(token.value, declared, default, **self._position(token)))
                if not self.match(TokenType.COMMA):
                    break
        self.expect(TokenType.RPAREN, "')'")
        self._newline_sensitive.pop()
        return params

    # ------------------------------------------------------------------
    # Expressions

    def expression(self) -> ast.Expression:
        token = self.current()
        if token.type is TokenType.IDENTIFIER and self.peek().type is TokenType.FAT_ARROW:
            self.advance()
            self.advance()
            param = ast.Param(token.value, **self._position(token))
            return ast.Lambda([param], self.expression(), **self._position(token))
        if token.type is TokenType.LPAREN and self._lambda_ahead():
            params = self.lambda_parameters()
            self.expect(TokenType.FAT_ARROW, "'=>'")
            return ast.Lambda(params, self.expression(), **self._position(token))
        return self.binary(0)

    def binary(self, min_precedence: int) -> ast.Expression:
        left = self.prefix()
        while True:
            token = self.current()
            if token.type is not TokenType.OPERATOR or token.value == "!":
                break
            if self.at_statement_break():
                break
            precedence = _PRECEDENCE[token.value[0]]
            if precedence < min_precedence:
                break
            self.advance()
            right = self.binary(precedence + 1)
            left = ast.Binary(token.value, left, right, **self._position(token))
        return left

    def prefix(self) -> ast.Expression:
        token = self.current()
        if token.type is TokenType.OPERATOR and token.value in _PREFIX_OPERATORS:
            self.advance()
            if token.value == "-" and self.current().type in (TokenType.INT, TokenType.LONG):
                literal = self.number_literal(negative=True)
                literal.line, literal.column = token.line, token.column
                return self.postfix(literal)
            operand = self.prefix()
            if token.value == "+":
                return operand
            return ast.Unary(token.value, operand, **self._position(token))
        return self.postfix(self.primary())

    def postfix(self, expr: ast.Expression) -> ast.Expression:
        while True:
            token = self.current()
            if token.type is TokenType.DOT:
                self.advance()
                name = self.expect(TokenType.IDENTIFIER, "member name")
                expr = ast.Select(expr, name.value, **self._position(name))
            elif self.at_statement_break():
                break
            elif token.type is TokenType.LPAREN:
                expr = ast.Apply(expr, self.arguments(), **self._position(token))
            elif token.type is TokenType.LBRACKET:
                expr = ast.TypeApply(expr, self.type_arguments(), **self._position(token))
            elif token.type is TokenType.LBRACE:
                expr = ast.Apply(expr, [self.block()], **self._position(token))
            else:
                break
        return expr

    def primary(self) -> ast.Expression:
        token = self.current()
        if token.type in (TokenType.INT, TokenType.LONG):
            return self.number_literal()
        if token.type is TokenType.STRING:
            self.advance()
            return ast.Literal(token.value, "String", **self._position(token))
        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self.advance()
            return ast.Literal(token.type is TokenType.TRUE, "Boolean", **self._position(token))
        if token.type is TokenType.IDENTIFIER:
            self.advance()
            return ast.Name(token.value, **self._position(token))
        if token.type is TokenType.LPAREN:
            return self.parenthesized()
        if token.type is TokenType.LBRACE:
            return self.block()
        if token.type is TokenType.IF:
            return self.if_expression()
        raise self.error(f"Unexpected {self._describe(token)}")

    def number_literal(self, negative: bool = False) -> ast.Literal:
        token = self.advance()
        value = int(token.value, 16) if token.value[:2].lower() == "0x" else int(token.value)
        if negative:
            value = -value
        kind = "Long" if token.type is TokenType.LONG else "Int"
        return ast.Literal(value, kind, **self._position(token))

    def parenthesized(self) -> ast.Expression:
        opening = self.advance()
        self._newline_sensitive.append(False)
        if self.match(TokenType.RPAREN):
            self._newline_sensitive.pop()
            return ast.Literal(None, "Unit", **self._position(opening))
        items = [self.expression()]
        while self.match(TokenType.COMMA):
            items.append(self.expression())
        self.expect(TokenType.RPAREN, "')'")
        self._newline_sensitive.pop()
        if len(items) == 1:
            return items[0]
        return ast.TupleExpr(items, **self._position(opening))

    def block(self) -> ast.Expression:
        """Parse ``{ ... }``: a block, or a lambda written as ``{ x => ... }``."""
        opening = self.expect(TokenType.LBRACE, "'{'")
        self._newline_sensitive.append(True)
        params = None
        token = self.current()
        if token.type is TokenType.IDENTIFIER and self.peek().type is TokenType.FAT_ARROW:
            self.advance()
            self.advance()
            params = [ast.Param(token.value, **self._position(token))]
        elif token.type is TokenType.LPAREN and self._lambda_ahead():
            params = self.lambda_parameters()
            self.expect(TokenType.FAT_ARROW, "'=>'")
        body_start = self.current()
        statements, result = self._sequence(TokenType.RBRACE)
        self.expect(TokenType.RBRACE, "'}'")
        self._newline_sensitive.pop()
        if params is None:
            return ast.Block(statements, result, **self._position(opening))
        body: ast.Expression
        if statements or result is None:
            body = ast.Block(statements, result, **self._position(body_start))
        else:
            body = result
        return ast.Lambda(params, body, **self._position(opening))

    def if_expression(self) -> ast.If:
        keyword = self.advance()
        self.expect(TokenType.LPAREN, "'(' after 'if'")
        self._newline_sensitive.append(False)
        condition = self.expression()
        self.expect(TokenType.RPAREN, "')'")
        self._newline_sensitive.pop()
        then_branch = self.expression()
        else_branch = None
        if self.match(TokenType.ELSE):
            else_branch = self.expression()
        return ast.If(condition, then_branch, else_branch, **self._position(keyword))

    def arguments(self) -> List[ast.Expression]:
        self.expect(TokenType.LPAREN, "'('")
        self._newline_sensitive.append(False)
        args: List[ast.Expression] = []
        if not self.check(TokenType.RPAREN):
            args.append(self.expression())
            while self.match(TokenType.COMMA):
                args.append(self.expression())
        self.expect(TokenType.RPAREN, "')'")
        self._newline_sensitive.pop()
        return args

    def lambda_parameters(self) -> List[ast.Param]:
        self.expect(TokenType.LPAREN, "'('")
        self._newline_sensitive.append(False)
        params: List[ast.Param] = []
        if not self.check(TokenType.RPAREN):
            while True:
                token = self.expect(TokenType.IDENTIFIER, "parameter name")
                declared = self.type_expression() if self.match(TokenType.COLON) else None
                params.append(ast.Param(token.value, declared, **self._position(token)))
                if not self.match(TokenType.COMMA):
                    break
        self.expect(TokenType.RPAREN, "')'")
        self._newline_sensitive.pop()
        return params

    def _lambda_ahead(self) -> bool:
        """Whether the parenthesis at the current token opens a parameter list."""
        depth = 0
        index = self.pos
        while index < len(self.tokens):
            token = self.tokens[index]
            if token.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
                depth += 1
            elif token.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
                depth -= 1
                if depth == 0:
                    return self.tokens[index + 1].type is TokenType.FAT_ARROW
            elif token.type is TokenType.EOF:
                return False
            index += 1
        return False

    # ------------------------------------------------------------------
    # Types

    def type_arguments(self) -> List[SType]:
        self.expect(TokenType.LBRACKET, "'['")
        self._newline_sensitive.append(False)
        args = [self.type_expression()]
        while self.match(TokenType.COMMA):
            args.append(self.type_expression())
        self.expect(TokenType.RBRACKET, "']'")
        self._newline_sensitive.pop()
        return args

    def type_expression(self) -> SType:
        token = self.current()
        if token.type is TokenType.LPAREN:
            self.advance()
            self._newline_sensitive.append(False)
            items: List[SType] = []
            if not self.check(TokenType.RPAREN):
                items.append(self.type_expression())
                while self.match(TokenType.COMMA):
                    items.append(self.type_expression())
            self.expect(TokenType.RPAREN, "')'")
            self._newline_sensitive.pop()
            if self.match(TokenType.FAT_ARROW):
                return func(items, self.type_expression())
            if not items:
                raise self.error("Empty type", token)
            tpe = items[0] if len(items) == 1 else tuple_of(*items)
        else:
            name = self.expect(TokenType.IDENTIFIER, "type name")
            if name.value in NAMED_TYPES:
                tpe = NAMED_TYPES[name.value]
            elif name.value in TYPE_CONSTRUCTORS:
                if not self.check(TokenType.LBRACKET):
                    raise self.error(f"Type '{name.value}' requires type arguments", name)
                args = self.type_arguments()
                if len(args) != TYPE_CONSTRUCTORS[name.value]:
                    raise self.error(f"Wrong number of type arguments for '{name.value}'", name)
                tpe = SType(name.value, tuple(args))
            else:
                raise self.error(f"Unknown type '{name.value}'", name)
        if self.check(TokenType.FAT_ARROW):
            self.advance()
            return func([tpe], self.type_expression())
        return tpe


def parse_program(source: str, path: Optional[str] = None) -> ast.Program:
    """Parse a complete source file."""
    lexer = Lexer(source, path)
    program = Parser(lexer.tokenize(), path).program()
    program.comments = lexer.comments
    return program


def parse_expression(source: str, path: Optional[str] = None) -> ast.Expression:
    """Parse *source* as a single expression."""
    parser = Parser(Lexer(source, path).tokenize(), path)
    parser._newline_sensitive = [False]
    expr = parser.expression()
    if not parser.check(TokenType.EOF):
        raise parser.error(f"Unexpected {parser._describe(parser.current())} after expression")
    return expr


def parse_type(source: str) -> SType:
    """Parse a type such as ``Coll[(Coll[Byte], Long)]``."""
    parser = Parser(Lexer(source).tokenize())
    tpe = parser.type_expression()
    if not parser.check(TokenType.EOF):
        raise parser.error(f"Unexpected {parser._describe(parser.current())} after type")
    return tpe


__all__ = ["Parser", "parse_program", "parse_expression", "parse_type"]
