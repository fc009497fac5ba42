"""Tokenizer for ErgoScript sources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from ..errors import ScriptSyntaxError


class TokenType(Enum):
    # Literals
    INT = auto()
    LONG = auto()
    STRING = auto()
    IDENTIFIER = auto()

    # Keywords
    VAL = auto()
    DEF = auto()
    IF = auto()
    ELSE = auto()
    TRUE = auto()
    FALSE = auto()

    # Operators (value carries the spelling)
    OPERATOR = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    SEMICOLON = auto()
    ASSIGN = auto()
    FAT_ARROW = auto()
    AT = auto()

    EOF = auto()


KEYWORDS = {
    "val": TokenType.VAL,
    "def": TokenType.DEF,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

# Longest spellings first.
OPERATORS = ("==", "!=", "<=", ">=", "&&", "||", "++", "+", "-", "*", "/", "%", "<", ">", "!", "&", "|", "^")

PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    "@": TokenType.AT,
}


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    column: int
    offset: int = 0
    newline_before: bool = False

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


@dataclass
class Comment:
    """A source comment; ``block`` is true for ``/* ... */`` comments."""

    text: str
    block: bool
    start: int
    end: int
    line: int
    column: int


class Lexer:
    """Converts source text into tokens.

    Comments are not emitted as tokens but are kept in :attr:`comments`
    so that docstrings can be recovered later.  Each token records whether
    a line break separates it from the previous token, which the parser
    uses to end statements.
    """

    def __init__(self, source: str, path: Optional[str] = None):
        self.source = source
        self.path = path
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.comments: List[Comment] = []
        self._newline_pending = False

    def error(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> ScriptSyntaxError:
        return ScriptSyntaxError(
            message,
            path=self.path,
            line=line if line is not None else self.line,
            column=column if column is not None else self.column,
        )

    def peek(self, offset: int = 0) -> Optional[str]:
        pos = self.pos + offset
        if pos < len(self.source):
            return self.source[pos]
        return None

    def advance(self) -> Optional[str]:
        if self.pos >= len(self.source):
            return None
        char = self.source[self.pos]
        self.pos += 1
        if char == "\n":
            self.line += 1
            self.column = 1
            self._newline_pending = True
        else:
            self.column += 1
        return char

    def skip_whitespace(self) -> None:
        while self.peek() is not None and self.peek() in " \t\r\n":
            self.advance()

    def read_comment(self) -> None:
        start, line, column = self.pos, self.line, self.column
        if self.peek(1) == "/":
            while self.peek() is not None and self.peek() != "\n":
                self.advance()
            self.comments.append(Comment(self.source[start:self.pos], False, start, self.pos, line, column))
            return
        self.advance()
        self.advance()
        while True:
            if self.peek() is None:
                raise self.error("Unterminated block comment", line, column)
            if self.peek() == "*" and self.peek(1) == "/":
                self.advance()
                self.advance()
                break
            self.advance()
        self.comments.append(Comment(self.source[start:self.pos], True, start, self.pos, line, column))

    def read_string(self) -> str:
        line, column = self.line, self.column
        self.advance()  # opening quote
        chars = []
        while True:
            char = self.peek()
            if char is None or char == "\n":
                raise self.error("Unterminated string literal", line, column)
            if char == '"':
                self.advance()
                break
            if char == "\\":
                self.advance()
                escape = self.advance()
                if escape == "n":
                    chars.append("\n")
                elif escape == "t":
                    chars.append("\t")
                elif escape == "r":
                    chars.append("\r")
                elif escape in ('"', "\\", "'"):
                    chars.append(escape)
                else:
                    raise self.error(f"Invalid escape sequence '\\{escape}'", line, column)
                continue
            chars.append(self.advance())
        return "".join(chars)

    def read_number(self) -> str:
        chars = []
        if self.peek() == "0" and self.peek(1) in ("x", "X"):
            chars.append(self.advance())
            chars.append(self.advance())
            while self.peek() is not None and self.peek() in "0123456789abcdefABCDEF":
                chars.append(self.advance())
            if len(chars) == 2:
                raise self.error("Invalid hexadecimal literal")
        else:
            while self.peek() is not None and self.peek().isdigit():
                chars.append(self.advance())
        return "".join(chars)

    def read_identifier(self) -> str:
        chars = []
        while self.peek() is not None and (self.peek().isalnum() or self.peek() == "_"):
            chars.append(self.advance())
        return "".join(chars)

    def add_token(self, token_type: TokenType, value: str, line: int, column: int, offset: int) -> None:
        self.tokens.append(
            Token(
                type=token_type,
                value=value,
                line=line,
                column=column,
                offset=offset,
                newline_before=self._newline_pending,
            )
        )
        self._newline_pending = False

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, ending with an ``EOF`` token."""
        while True:
            self.skip_whitespace()
            char = self.peek()
            if char is None:
                break
            line, column, offset = self.line, self.column, self.pos

            if char == "/" and self.peek(1) in ("/", "*"):
                self.read_comment()
                continue

            if char == '"':
                self.add_token(TokenType.STRING, self.read_string(), line, column, offset)
                continue

            if char.isdigit():
                digits = self.read_number()
                if self.peek() in ("L", "l"):
                    self.advance()
                    self.add_token(TokenType.LONG, digits, line, column, offset)
                else:
                    self.add_token(TokenType.INT, digits, line, column, offset)
                if self.peek() is not None and (self.peek().isalpha() or self.peek() == "_"):
                    raise self.error(f"Invalid numeric literal suffix '{self.peek()}'")
                continue

            if char.isalpha() or char == "_":
                value = self.read_identifier()
                self.add_token(KEYWORDS.get(value, TokenType.IDENTIFIER), value, line, column, offset)
                continue

            if char == "=" and self.peek(1) == ">":
                self.advance()
                self.advance()
                self.add_token(TokenType.FAT_ARROW, "=>", line, column, offset)
                continue

            operator = self._match_operator()
            if operator is not None:
                for _ in operator:
                    self.advance()
                self.add_token(TokenType.OPERATOR, operator, line, column, offset)
                continue

            if char == "=":
                self.advance()
                self.add_token(TokenType.ASSIGN, "=", line, column, offset)
                continue

            if char in PUNCTUATION:
                self.advance()
                self.add_token(PUNCTUATION[char], char, line, column, offset)
                continue

            raise self.error(f"Unexpected character '{char}'")

        self.add_token(TokenType.EOF, "", self.line, self.column, self.pos)
        return self.tokens

    def _match_operator(self) -> Optional[str]:
        for operator in OPERATORS:
            if self.source.startswith(operator, self.pos):
                return operator
        return None


def tokenize(source: str, path: Optional[str] = None) -> List[Token]:
    return Lexer(source, path).tokenize()


__all__ = ["TokenType", "Token", "Comment", "Lexer", "KEYWORDS", "tokenize"]
