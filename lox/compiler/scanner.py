"""
Lox Scanner

Turns source text into tokens, one token per call.
"""

from typing import List
from .tokens import Token, TokenKind, KEYWORDS


SINGLE_CHAR_TOKENS = {
    '(': TokenKind.LEFT_PAREN,
    ')': TokenKind.RIGHT_PAREN,
    '{': TokenKind.LEFT_BRACE,
    '}': TokenKind.RIGHT_BRACE,
    ',': TokenKind.COMMA,
    '.': TokenKind.DOT,
    '-': TokenKind.MINUS,
    '+': TokenKind.PLUS,
    ';': TokenKind.SEMICOLON,
    '/': TokenKind.SLASH,
    '*': TokenKind.STAR,
}

# First character -> (kind without '=', kind with '=')
ONE_OR_TWO_CHAR_TOKENS = {
    '!': (TokenKind.BANG, TokenKind.BANG_EQUAL),
    '=': (TokenKind.EQUAL, TokenKind.EQUAL_EQUAL),
    '<': (TokenKind.LESS, TokenKind.LESS_EQUAL),
    '>': (TokenKind.GREATER, TokenKind.GREATER_EQUAL),
}


def is_digit(c: str) -> bool:
    return '0' <= c <= '9'


def is_alpha(c: str) -> bool:
    return 'a' <= c <= 'z' or 'A' <= c <= 'Z' or c == '_'


class Scanner:
    """
    Lexical scanner for Lox source code.

    A forward-only cursor: each call to scan_token() produces the next
    token. Once the source is exhausted every call returns an EOF token,
    so the compiler can always look one token ahead.
    """

    def __init__(self, source: str):
        """
        Initialize the scanner.

        Args:
            source: Lox source code to scan
        """
        self.source = source
        self.start = 0      # Start of current token
        self.current = 0    # Current position
        self.line = 1       # Current line number

    def scan_token(self) -> Token:
        """Scan and return the next token."""
        self.skip_whitespace()
        self.start = self.current

        if self.is_at_end():
            return self.make_token(TokenKind.EOF)

        c = self.advance()

        if is_alpha(c):
            return self.identifier()
        if is_digit(c):
            return self.number()

        if c in SINGLE_CHAR_TOKENS:
            return self.make_token(SINGLE_CHAR_TOKENS[c])

        if c in ONE_OR_TWO_CHAR_TOKENS:
            single, double = ONE_OR_TWO_CHAR_TOKENS[c]
            return self.make_token(double if self.match('=') else single)

        if c == '"':
            return self.string()

        return self.error_token("Unexpected character.")

    def tokenize(self) -> List[Token]:
        """
        Scan the rest of the source.

        Returns:
            List of tokens, ending with the EOF token
        """
        tokens = []
        while True:
            token = self.scan_token()
            tokens.append(token)
            if token.kind == TokenKind.EOF:
                return tokens

    def advance(self) -> str:
        """Consume and return the current character."""
        c = self.source[self.current]
        self.current += 1
        return c

    def peek(self) -> str:
        """Return the current character without consuming it."""
        if self.is_at_end():
            return '\0'
        return self.source[self.current]

    def peek_next(self) -> str:
        """Return the next character without consuming it."""
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    def match(self, expected: str) -> bool:
        """Consume the current character if it matches expected."""
        if self.is_at_end():
            return False
        if self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def make_token(self, kind: TokenKind) -> Token:
        return Token(kind, self.source, self.start, self.current - self.start, self.line)

    def error_token(self, message: str) -> Token:
        return Token.error(message, self.line)

    def skip_whitespace(self) -> None:
        """Skip spaces, newlines and // comments."""
        while True:
            c = self.peek()
            if c in ' \r\t':
                self.advance()
            elif c == '\n':
                self.line += 1
                self.advance()
            elif c == '/' and self.peek_next() == '/':
                # A comment goes until the end of the line
                while self.peek() != '\n' and not self.is_at_end():
                    self.advance()
            else:
                return

    def string(self) -> Token:
        """Scan a string literal; the token spans both quotes."""
        while self.peek() != '"' and not self.is_at_end():
            if self.peek() == '\n':
                self.line += 1
            self.advance()

        if self.is_at_end():
            return self.error_token("Unterminated string.")

        # Closing quote
        self.advance()
        return self.make_token(TokenKind.STRING)

    def number(self) -> Token:
        """Scan a number literal."""
        while is_digit(self.peek()):
            self.advance()

        # Fractional part, only if a digit follows the '.'
        if self.peek() == '.' and is_digit(self.peek_next()):
            self.advance()
            while is_digit(self.peek()):
                self.advance()

        return self.make_token(TokenKind.NUMBER)

    def identifier(self) -> Token:
        """Scan an identifier or keyword."""
        while is_alpha(self.peek()) or is_digit(self.peek()):
            self.advance()

        text = self.source[self.start:self.current]
        return self.make_token(KEYWORDS.get(text, TokenKind.IDENTIFIER))
