"""
Lox Compiler

A single-pass compiler: parses expressions with Pratt's technique and
emits bytecode straight into a chunk, with no intermediate AST.
"""

import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import List, NamedTuple, Optional, TextIO

from .tokens import Token, TokenKind
from .scanner import Scanner
from .chunk import Chunk, Instruction, OpCode, MAX_CONSTANTS
from .value import Value
from .errors import CompileError


# Deepest nesting of sub-expressions. Each level costs a few Python frames.
MAX_NESTING = 200


class Precedence(IntEnum):
    """Binding power, lowest to highest."""
    NONE = 0
    ASSIGNMENT = 1  # =
    OR = 2          # or
    AND = 3         # and
    EQUALITY = 4    # == !=
    COMPARISON = 5  # < > <= >=
    TERM = 6        # + -
    FACTOR = 7      # * /
    UNARY = 8       # ! -
    CALL = 9        # . ()
    PRIMARY = 10

    def higher(self) -> 'Precedence':
        """The next level up; PRIMARY is its own ceiling."""
        return Precedence(min(self + 1, Precedence.PRIMARY))


class ParseRule(NamedTuple):
    """Compiler method names for a token in prefix and infix position."""
    prefix: Optional[str]
    infix: Optional[str]
    precedence: Precedence


NO_RULE = ParseRule(None, None, Precedence.NONE)

# The table that drives the whole parser. Kinds not listed have no rule.
RULES = {
    TokenKind.LEFT_PAREN:    ParseRule('grouping', None,     Precedence.NONE),
    TokenKind.MINUS:         ParseRule('unary',    'binary', Precedence.TERM),
    TokenKind.PLUS:          ParseRule(None,       'binary', Precedence.TERM),
    TokenKind.SLASH:         ParseRule(None,       'binary', Precedence.FACTOR),
    TokenKind.STAR:          ParseRule(None,       'binary', Precedence.FACTOR),
    TokenKind.BANG:          ParseRule('unary',    None,     Precedence.NONE),
    TokenKind.BANG_EQUAL:    ParseRule(None,       'binary', Precedence.EQUALITY),
    TokenKind.EQUAL_EQUAL:   ParseRule(None,       'binary', Precedence.EQUALITY),
    TokenKind.GREATER:       ParseRule(None,       'binary', Precedence.COMPARISON),
    TokenKind.GREATER_EQUAL: ParseRule(None,       'binary', Precedence.COMPARISON),
    TokenKind.LESS:          ParseRule(None,       'binary', Precedence.COMPARISON),
    TokenKind.LESS_EQUAL:    ParseRule(None,       'binary', Precedence.COMPARISON),
    TokenKind.STRING:        ParseRule('string',   None,     Precedence.NONE),
    TokenKind.NUMBER:        ParseRule('number',   None,     Precedence.NONE),
    TokenKind.FALSE:         ParseRule('literal',  None,     Precedence.NONE),
    TokenKind.NIL:           ParseRule('literal',  None,     Precedence.NONE),
    TokenKind.TRUE:          ParseRule('literal',  None,     Precedence.NONE),
}

# Operator -> opcodes emitted after both operands. Operators without their
# own opcode are built from two existing ones.
BINARY_OPCODES = {
    TokenKind.PLUS: (OpCode.ADD,),
    TokenKind.MINUS: (OpCode.SUBTRACT,),
    TokenKind.STAR: (OpCode.MULTIPLY,),
    TokenKind.SLASH: (OpCode.DIVIDE,),
    TokenKind.EQUAL_EQUAL: (OpCode.EQUAL,),
    TokenKind.BANG_EQUAL: (OpCode.EQUAL, OpCode.NOT),
    TokenKind.GREATER: (OpCode.GREATER,),
    TokenKind.GREATER_EQUAL: (OpCode.LESS, OpCode.NOT),
    TokenKind.LESS: (OpCode.LESS,),
    TokenKind.LESS_EQUAL: (OpCode.GREATER, OpCode.NOT),
}

LITERAL_OPCODES = {
    TokenKind.FALSE: OpCode.FALSE,
    TokenKind.NIL: OpCode.NIL,
    TokenKind.TRUE: OpCode.TRUE,
}


def get_rule(kind: TokenKind) -> ParseRule:
    return RULES.get(kind, NO_RULE)


@dataclass
class Parser:
    """Parser state: one token of lookahead plus the panic-mode flags."""
    previous: Optional[Token] = None
    current: Optional[Token] = None
    had_error: bool = False
    panic_mode: bool = False


class Compiler:
    """
    Compiles one expression into a chunk.

    Errors do not unwind: the first one sets panic mode, which silences
    the diagnostics that would otherwise cascade from it, and parsing
    carries on to the end. CompileError is raised once, at the end.
    """

    def __init__(self, source: str, debug: bool = False,
                 error_stream: Optional[TextIO] = None,
                 out: Optional[TextIO] = None):
        """
        Initialize the compiler.

        Args:
            source: Lox source code
            debug: Print the disassembled chunk after a successful compile
            error_stream: Where diagnostics are printed (default: stderr)
            out: Where the debug disassembly is printed (default: stdout)
        """
        self.scanner = Scanner(source)
        self.parser = Parser()
        self.chunk = Chunk()
        self.debug = debug
        self.error_stream = error_stream
        self.out = out
        self.depth = 0
        self.diagnostics: List[str] = []

    def compile(self) -> Chunk:
        """
        Compile the source.

        Returns:
            The finished chunk

        Raises:
            CompileError: If any diagnostic was reported
        """
        self.advance()
        self.expression()
        self.consume(TokenKind.EOF, "Expect end of expression.")
        self.end_compiler()

        if self.parser.had_error:
            raise CompileError(self.diagnostics)
        return self.chunk

    # =========================================================================
    # Token handling
    # =========================================================================

    def advance(self) -> None:
        self.parser.previous = self.parser.current

        while True:
            self.parser.current = self.scanner.scan_token()
            if self.parser.current.kind != TokenKind.ERROR:
                break
            self.error_at_current(self.parser.current.lexeme)

    def consume(self, kind: TokenKind, message: str) -> None:
        if self.parser.current.kind == kind:
            self.advance()
            return
        self.error_at_current(message)

    # =========================================================================
    # Error reporting
    # =========================================================================

    def error_at_current(self, message: str) -> None:
        self.error_at(self.parser.current, message)

    def error(self, message: str) -> None:
        self.error_at(self.parser.previous, message)

    def error_at(self, token: Token, message: str) -> None:
        if self.parser.panic_mode:
            return
        self.parser.panic_mode = True
        self.parser.had_error = True

        if token.kind == TokenKind.EOF:
            location = " at end"
        elif token.kind == TokenKind.ERROR:
            # The lexeme is the message itself
            location = ""
        else:
            location = f" at '{token.lexeme}'"

        diagnostic = f"[line {token.line}] Error{location}: {message}"
        self.diagnostics.append(diagnostic)
        print(diagnostic, file=self.error_stream or sys.stderr)

    # =========================================================================
    # Emission
    # =========================================================================

    def emit(self, opcode: OpCode, operand: Optional[int] = None) -> None:
        self.chunk.add_instruction(Instruction(opcode, operand), self.parser.previous.line)

    def make_constant(self, value: Value) -> int:
        index = self.chunk.add_constant(value)
        if index >= MAX_CONSTANTS:
            self.error("Too many constants in one chunk.")
            return 0
        return index

    def emit_constant(self, value: Value) -> None:
        self.emit(OpCode.CONSTANT, self.make_constant(value))

    def end_compiler(self) -> None:
        self.emit(OpCode.RETURN)

        if self.debug and not self.parser.had_error:
            print(self.chunk.disassemble("code"), file=self.out or sys.stdout)

    # =========================================================================
    # Expressions
    # =========================================================================

    def expression(self) -> None:
        self.parse_precedence(Precedence.ASSIGNMENT)

    def parse_precedence(self, precedence: Precedence) -> None:
        """Parse an expression whose operators bind at least this tightly."""
        self.advance()
        if self.depth >= MAX_NESTING:
            self.error("Expression nests too deeply.")
            return
        prefix_rule = get_rule(self.parser.previous.kind).prefix
        if prefix_rule is None:
            self.error("Expected prefix expression")
            return

        self.depth += 1
        try:
            getattr(self, prefix_rule)()

            while precedence <= get_rule(self.parser.current.kind).precedence:
                self.advance()
                infix_rule = get_rule(self.parser.previous.kind).infix
                getattr(self, infix_rule)()
        finally:
            self.depth -= 1

    def number(self) -> None:
        self.emit_constant(Value.number(float(self.parser.previous.lexeme)))

    def string(self) -> None:
        # Strip the surrounding quotes
        self.emit_constant(Value.string(self.parser.previous.lexeme[1:-1]))

    def literal(self) -> None:
        self.emit(LITERAL_OPCODES[self.parser.previous.kind])

    def grouping(self) -> None:
        self.expression()
        self.consume(TokenKind.RIGHT_PAREN, "Expect ')' after expression")

    def unary(self) -> None:
        operator = self.parser.previous.kind

        # Compile the operand
        self.parse_precedence(Precedence.UNARY)

        if operator == TokenKind.MINUS:
            self.emit(OpCode.NEGATE)
        else:
            self.emit(OpCode.NOT)

    def binary(self) -> None:
        # The left operand has already been compiled
        operator = self.parser.previous.kind
        rule = get_rule(operator)
        self.parse_precedence(rule.precedence.higher())

        for opcode in BINARY_OPCODES[operator]:
            self.emit(opcode)


def compile_source(source: str, debug: bool = False,
                   error_stream: Optional[TextIO] = None,
                   out: Optional[TextIO] = None) -> Chunk:
    """
    Compile Lox source code to a chunk.

    Args:
        source: Lox source code string
        debug: Print the disassembly of the finished chunk
        error_stream: Where diagnostics are printed (default: stderr)
        out: Where the disassembly is printed (default: stdout)

    Returns:
        Chunk ready for VM execution

    Raises:
        CompileError: If compilation fails
    """
    return Compiler(source, debug=debug, error_stream=error_stream, out=out).compile()
