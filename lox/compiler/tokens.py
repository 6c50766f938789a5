"""
Lox Token Definitions

Defines all token kinds and the Token class produced by the scanner.
"""

from enum import Enum, auto
from dataclasses import dataclass


class TokenKind(Enum):
    """All token kinds in Lox."""

    # Single-character tokens
    LEFT_PAREN = auto()    # (
    RIGHT_PAREN = auto()   # )
    LEFT_BRACE = auto()    # {
    RIGHT_BRACE = auto()   # }
    COMMA = auto()         # ,
    DOT = auto()           # .
    MINUS = auto()         # -
    PLUS = auto()          # +
    SEMICOLON = auto()     # ;
    SLASH = auto()         # /
    STAR = auto()          # *

    # One or two character tokens
    BANG = auto()          # !
    BANG_EQUAL = auto()    # !=
    EQUAL = auto()         # =
    EQUAL_EQUAL = auto()   # ==
    GREATER = auto()       # >
    GREATER_EQUAL = auto() # >=
    LESS = auto()          # <
    LESS_EQUAL = auto()    # <=

    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()

    # Keywords
    AND = auto()
    CLASS = auto()
    ELSE = auto()
    FALSE = auto()
    FOR = auto()
    FUN = auto()
    IF = auto()
    NIL = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()
    SUPER = auto()
    THIS = auto()
    TRUE = auto()
    VAR = auto()
    WHILE = auto()

    # Special
    ERROR = auto()
    EOF = auto()


# Keyword mapping
KEYWORDS = {
    'and': TokenKind.AND,
    'class': TokenKind.CLASS,
    'else': TokenKind.ELSE,
    'false': TokenKind.FALSE,
    'for': TokenKind.FOR,
    'fun': TokenKind.FUN,
    'if': TokenKind.IF,
    'nil': TokenKind.NIL,
    'or': TokenKind.OR,
    'print': TokenKind.PRINT,
    'return': TokenKind.RETURN,
    'super': TokenKind.SUPER,
    'this': TokenKind.THIS,
    'true': TokenKind.TRUE,
    'var': TokenKind.VAR,
    'while': TokenKind.WHILE,
}


@dataclass(frozen=True)
class Token:
    """
    A classified slice of source text.

    The token keeps a reference to the text it was scanned from plus an
    offset and length; the lexeme is only sliced out when asked for.
    Error tokens point into their own message instead of the source.
    """

    kind: TokenKind
    source: str
    start: int
    length: int
    line: int

    @classmethod
    def error(cls, message: str, line: int) -> 'Token':
        """Build an error token whose lexeme is the diagnostic message."""
        return cls(TokenKind.ERROR, message, 0, len(message), line)

    @property
    def lexeme(self) -> str:
        return self.source[self.start:self.start + self.length]

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.lexeme!r}, line={self.line})"

    def is_keyword(self) -> bool:
        """Check if this token is a keyword."""
        return self.kind in KEYWORDS.values()

    def is_literal(self) -> bool:
        """Check if this token is a literal value."""
        return self.kind in (TokenKind.NUMBER, TokenKind.STRING,
                             TokenKind.TRUE, TokenKind.FALSE, TokenKind.NIL)
