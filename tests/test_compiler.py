"""
Lox Compiler Tests

Tests for the Lox front end: scanner, compiler, chunk and disassembler.
"""

import io
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from lox.compiler import (
    compile_source, Compiler, Precedence, Scanner, Chunk, Instruction, OpCode,
    Value, disassemble_chunk, disassemble_instruction,
)
from lox.compiler.chunk import MAX_CONSTANTS
from lox.compiler.compiler import MAX_NESTING
from lox.compiler.tokens import TokenKind
from lox.compiler.errors import CompileError, InternalError


def kinds(source):
    return [token.kind for token in Scanner(source).tokenize()]


def opcodes(chunk):
    return [instruction.opcode for instruction in chunk]


def compile_quietly(source):
    return compile_source(source, error_stream=io.StringIO())


# =============================================================================
# Scanner Tests
# =============================================================================

class TestScannerBasics:
    """Basic scanner functionality tests."""

    def test_empty_source(self):
        tokens = Scanner("").tokenize()
        assert len(tokens) == 1
        assert tokens[0].kind == TokenKind.EOF

    def test_whitespace_only(self):
        tokens = Scanner("   \t\r\n  \n").tokenize()
        assert len(tokens) == 1
        assert tokens[0].kind == TokenKind.EOF
        assert tokens[0].line == 3

    def test_eof_repeats(self):
        scanner = Scanner("1")
        assert scanner.scan_token().kind == TokenKind.NUMBER
        assert scanner.scan_token().kind == TokenKind.EOF
        assert scanner.scan_token().kind == TokenKind.EOF

    def test_comment_skipped(self):
        tokens = Scanner("1 // the rest is ignored\n2").tokenize()
        assert [t.kind for t in tokens] == [TokenKind.NUMBER, TokenKind.NUMBER, TokenKind.EOF]
        assert tokens[0].line == 1
        assert tokens[1].line == 2

    def test_lexeme_is_slice_of_source(self):
        source = "  12.5 + x"
        token = Scanner(source).scan_token()
        assert token.source is source
        assert (token.start, token.length) == (2, 4)
        assert token.lexeme == "12.5"

    def test_unexpected_character_is_error_token(self):
        tokens = Scanner("1 @ 2").tokenize()
        assert [t.kind for t in tokens] == [
            TokenKind.NUMBER, TokenKind.ERROR, TokenKind.NUMBER, TokenKind.EOF]
        assert tokens[1].lexeme == "Unexpected character."


class TestScannerNumbers:
    """Number literal tests."""

    def test_integer(self):
        token = Scanner("42").scan_token()
        assert token.kind == TokenKind.NUMBER
        assert token.lexeme == "42"

    def test_float(self):
        token = Scanner("123.4").scan_token()
        assert token.kind == TokenKind.NUMBER
        assert token.lexeme == "123.4"

    def test_trailing_dot_is_separate_token(self):
        tokens = Scanner("1.").tokenize()
        assert [t.kind for t in tokens] == [TokenKind.NUMBER, TokenKind.DOT, TokenKind.EOF]
        assert tokens[0].lexeme == "1"

    def test_leading_dot_is_separate_token(self):
        assert kinds(".5") == [TokenKind.DOT, TokenKind.NUMBER, TokenKind.EOF]


class TestScannerStrings:
    """String literal tests."""

    def test_string_spans_quotes(self):
        token = Scanner('"hello"').scan_token()
        assert token.kind == TokenKind.STRING
        assert token.lexeme == '"hello"'

    def test_empty_string(self):
        token = Scanner('""').scan_token()
        assert token.kind == TokenKind.STRING
        assert token.lexeme == '""'

    def test_multiline_string_counts_lines(self):
        tokens = Scanner('"a\nb" 1').tokenize()
        assert tokens[0].kind == TokenKind.STRING
        assert tokens[1].line == 2

    def test_unterminated_string(self):
        token = Scanner('"hello').scan_token()
        assert token.kind == TokenKind.ERROR
        assert token.lexeme == "Unterminated string."


class TestScannerKeywords:
    """Keyword and identifier tests."""

    @pytest.mark.parametrize("keyword,expected_kind", [
        ("and", TokenKind.AND),
        ("class", TokenKind.CLASS),
        ("else", TokenKind.ELSE),
        ("false", TokenKind.FALSE),
        ("for", TokenKind.FOR),
        ("fun", TokenKind.FUN),
        ("if", TokenKind.IF),
        ("nil", TokenKind.NIL),
        ("or", TokenKind.OR),
        ("print", TokenKind.PRINT),
        ("return", TokenKind.RETURN),
        ("super", TokenKind.SUPER),
        ("this", TokenKind.THIS),
        ("true", TokenKind.TRUE),
        ("var", TokenKind.VAR),
        ("while", TokenKind.WHILE),
    ])
    def test_keywords(self, keyword, expected_kind):
        token = Scanner(keyword).scan_token()
        assert token.kind == expected_kind
        assert token.is_keyword()

    @pytest.mark.parametrize("name", ["andy", "fo", "t", "True", "_tmp", "x1_y2", "classes"])
    def test_identifiers(self, name):
        token = Scanner(name).scan_token()
        assert token.kind == TokenKind.IDENTIFIER
        assert token.lexeme == name


class TestScannerOperators:
    """Operator and punctuation tests."""

    @pytest.mark.parametrize("op,expected_kind", [
        ("(", TokenKind.LEFT_PAREN),
        (")", TokenKind.RIGHT_PAREN),
        ("{", TokenKind.LEFT_BRACE),
        ("}", TokenKind.RIGHT_BRACE),
        (",", TokenKind.COMMA),
        (".", TokenKind.DOT),
        ("-", TokenKind.MINUS),
        ("+", TokenKind.PLUS),
        (";", TokenKind.SEMICOLON),
        ("/", TokenKind.SLASH),
        ("*", TokenKind.STAR),
        ("!", TokenKind.BANG),
        ("!=", TokenKind.BANG_EQUAL),
        ("=", TokenKind.EQUAL),
        ("==", TokenKind.EQUAL_EQUAL),
        (">", TokenKind.GREATER),
        (">=", TokenKind.GREATER_EQUAL),
        ("<", TokenKind.LESS),
        ("<=", TokenKind.LESS_EQUAL),
    ])
    def test_operators(self, op, expected_kind):
        token = Scanner(op).scan_token()
        assert token.kind == expected_kind
        assert token.lexeme == op

    def test_two_char_probe_only_looks_one_ahead(self):
        assert kinds("===") == [TokenKind.EQUAL_EQUAL, TokenKind.EQUAL, TokenKind.EOF]
        assert kinds("<>") == [TokenKind.LESS, TokenKind.GREATER, TokenKind.EOF]


# =============================================================================
# Compiler Tests
# =============================================================================

class TestCompilerEmission:
    """Instruction sequences produced for valid expressions."""

    def test_number_literal(self):
        chunk = compile_quietly("123.4")
        assert chunk.instructions == [Instruction.constant(0), Instruction(OpCode.RETURN)]
        assert chunk.constants == [Value.number(123.4)]

    def test_unary_minus(self):
        chunk = compile_quietly("-123.4")
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.NEGATE, OpCode.RETURN]
        assert chunk.constant_at(chunk.instruction_at(0).operand) == Value.number(123.4)

    def test_binary_operator(self):
        chunk = compile_quietly("1 + 2")
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.CONSTANT, OpCode.ADD, OpCode.RETURN]

    def test_arithmetic_precedence(self):
        chunk = compile_quietly("1 + 2 * 3")
        assert chunk.constants == [Value.number(1), Value.number(2), Value.number(3)]
        assert chunk.instructions == [
            Instruction.constant(0),
            Instruction.constant(1),
            Instruction.constant(2),
            Instruction(OpCode.MULTIPLY),
            Instruction(OpCode.ADD),
            Instruction(OpCode.RETURN),
        ]

    def test_grouping(self):
        chunk = compile_quietly("(1 + 2) * 3")
        assert chunk.instructions == [
            Instruction.constant(0),
            Instruction.constant(1),
            Instruction(OpCode.ADD),
            Instruction.constant(2),
            Instruction(OpCode.MULTIPLY),
            Instruction(OpCode.RETURN),
        ]

    def test_left_associative(self):
        chunk = compile_quietly("1 - 2 - 3")
        assert opcodes(chunk) == [
            OpCode.CONSTANT, OpCode.CONSTANT, OpCode.SUBTRACT,
            OpCode.CONSTANT, OpCode.SUBTRACT, OpCode.RETURN,
        ]

    def test_unary_binds_tighter_than_binary(self):
        chunk = compile_quietly("-1 * 2")
        assert opcodes(chunk) == [
            OpCode.CONSTANT, OpCode.NEGATE, OpCode.CONSTANT, OpCode.MULTIPLY, OpCode.RETURN]

    def test_nested_unary(self):
        chunk = compile_quietly("!!-1")
        assert opcodes(chunk) == [
            OpCode.CONSTANT, OpCode.NEGATE, OpCode.NOT, OpCode.NOT, OpCode.RETURN]

    @pytest.mark.parametrize("source,expected", [
        ("true", [OpCode.TRUE]),
        ("false", [OpCode.FALSE]),
        ("nil", [OpCode.NIL]),
        ("!nil", [OpCode.NIL, OpCode.NOT]),
    ])
    def test_literals(self, source, expected):
        assert opcodes(compile_quietly(source)) == expected + [OpCode.RETURN]

    @pytest.mark.parametrize("op,expected", [
        ("==", [OpCode.EQUAL]),
        ("!=", [OpCode.EQUAL, OpCode.NOT]),
        (">", [OpCode.GREATER]),
        (">=", [OpCode.LESS, OpCode.NOT]),
        ("<", [OpCode.LESS]),
        ("<=", [OpCode.GREATER, OpCode.NOT]),
    ])
    def test_comparisons(self, op, expected):
        chunk = compile_quietly(f"1 {op} 2")
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.CONSTANT] + expected + [OpCode.RETURN]

    def test_comparison_binds_looser_than_term(self):
        chunk = compile_quietly("1 + 2 < 3")
        assert opcodes(chunk) == [
            OpCode.CONSTANT, OpCode.CONSTANT, OpCode.ADD,
            OpCode.CONSTANT, OpCode.LESS, OpCode.RETURN,
        ]

    def test_string_literal(self):
        chunk = compile_quietly('"hello"')
        assert chunk.constants == [Value.string("hello")]
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.RETURN]

    def test_line_numbers(self):
        chunk = compile_quietly("1 +\n2")
        assert chunk.lines == [1, 2, 2, 2]
        assert len(chunk.lines) == len(chunk.instructions)

    def test_debug_prints_disassembly(self, capsys):
        Compiler("1", debug=True).compile()
        out = capsys.readouterr().out
        assert out.startswith("== code ==\n")
        assert "OpReturn" in out


class TestCompilerErrors:
    """Diagnostics and panic-mode recovery."""

    def test_unterminated_grouping(self, capsys):
        with pytest.raises(CompileError) as excinfo:
            compile_source("(1 + 2")
        assert excinfo.value.diagnostics == [
            "[line 1] Error at end: Expect ')' after expression"]
        err = capsys.readouterr().err
        assert err == "[line 1] Error at end: Expect ')' after expression\n"

    def test_missing_operand(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly("1 +")
        assert excinfo.value.diagnostics == [
            "[line 1] Error at end: Expected prefix expression"]

    def test_token_without_prefix_rule(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly(")")
        assert excinfo.value.diagnostics == [
            "[line 1] Error at ')': Expected prefix expression"]

    def test_trailing_tokens(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly("1 2")
        assert excinfo.value.diagnostics == [
            "[line 1] Error at '2': Expect end of expression."]

    def test_empty_source(self):
        with pytest.raises(CompileError):
            compile_quietly("")

    def test_lexical_error_omits_lexeme(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly('"abc')
        assert excinfo.value.diagnostics == ["[line 1] Error: Unterminated string."]

    def test_unexpected_character_is_recoverable(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly("1 + @")
        assert excinfo.value.diagnostics == ["[line 1] Error: Unexpected character."]

    def test_panic_mode_reports_once(self):
        stream = io.StringIO()
        with pytest.raises(CompileError) as excinfo:
            compile_source("(1 + ) ) * (", error_stream=stream)
        assert len(excinfo.value.diagnostics) == 1
        assert stream.getvalue().count("\n") == 1

    def test_error_line(self):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly("1 +\n\n*")
        assert excinfo.value.diagnostics == [
            "[line 3] Error at '*': Expected prefix expression"]

    def test_compiler_state_after_error(self):
        compiler = Compiler("(1", error_stream=io.StringIO())
        with pytest.raises(CompileError):
            compiler.compile()
        assert compiler.parser.had_error
        assert compiler.parser.panic_mode
        # Return is still emitted
        assert compiler.chunk.instructions[-1] == Instruction(OpCode.RETURN)

    def test_too_many_constants(self):
        source = " + ".join(["1"] * (MAX_CONSTANTS + 1))
        with pytest.raises(CompileError) as excinfo:
            compile_quietly(source)
        assert excinfo.value.diagnostics == [
            "[line 1] Error at '1': Too many constants in one chunk."]

    def test_constant_limit_is_inclusive(self):
        chunk = compile_quietly(" + ".join(["1"] * MAX_CONSTANTS))
        assert len(chunk.constants) == MAX_CONSTANTS


class TestNesting:
    """Deeply nested expressions end as a CompileError."""

    def test_deep_grouping(self):
        depth = MAX_NESTING - 1
        chunk = compile_quietly("(" * depth + "1" + ")" * depth)
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.RETURN]

    def test_grouping_too_deep(self):
        depth = MAX_NESTING
        with pytest.raises(CompileError) as excinfo:
            compile_quietly("(" * depth + "1" + ")" * depth)
        assert excinfo.value.diagnostics == [
            "[line 1] Error at '1': Expression nests too deeply."]

    @pytest.mark.parametrize("source,lexeme", [
        ("(" * 1000 + "1" + ")" * 1000, "("),
        ("-" * 2000 + "1", "-"),
        ("!" * 2000 + "true", "!"),
        ("1" + " == (1" * 1000 + ")" * 1000, "1"),
    ])
    def test_reported_once(self, source, lexeme):
        with pytest.raises(CompileError) as excinfo:
            compile_quietly(source)
        assert excinfo.value.diagnostics == [
            f"[line 1] Error at '{lexeme}': Expression nests too deeply."]

    def test_depth_resets_between_operands(self):
        left = "(" * (MAX_NESTING - 1) + "1" + ")" * (MAX_NESTING - 1)
        chunk = compile_quietly(f"{left} + {left}")
        assert opcodes(chunk) == [OpCode.CONSTANT, OpCode.CONSTANT, OpCode.ADD, OpCode.RETURN]


class TestPrecedence:
    """Precedence ladder tests."""

    def test_ordering(self):
        ladder = [
            Precedence.NONE, Precedence.ASSIGNMENT, Precedence.OR, Precedence.AND,
            Precedence.EQUALITY, Precedence.COMPARISON, Precedence.TERM,
            Precedence.FACTOR, Precedence.UNARY, Precedence.CALL, Precedence.PRIMARY,
        ]
        assert ladder == sorted(ladder)

    def test_higher(self):
        assert Precedence.TERM.higher() == Precedence.FACTOR
        assert Precedence.NONE.higher() == Precedence.ASSIGNMENT
        assert Precedence.PRIMARY.higher() == Precedence.PRIMARY


# =============================================================================
# Chunk Tests
# =============================================================================

class TestChunk:
    """Chunk container tests."""

    def test_parallel_sequences(self):
        chunk = Chunk()
        chunk.add_instruction(Instruction(OpCode.NIL), 1)
        chunk.add_instruction(Instruction(OpCode.RETURN), 2)
        assert len(chunk) == 2
        assert chunk.lines == [1, 2]
        assert chunk.line_at(1) == 2

    def test_constants_not_deduplicated(self):
        chunk = Chunk()
        assert chunk.add_constant(Value.number(1)) == 0
        assert chunk.add_constant(Value.number(1)) == 1

    def test_out_of_range_access_is_fatal(self):
        chunk = Chunk()
        with pytest.raises(InternalError):
            chunk.instruction_at(0)
        with pytest.raises(InternalError):
            chunk.line_at(0)
        with pytest.raises(InternalError):
            chunk.constant_at(-1)

    def test_mnemonics(self):
        assert OpCode.RETURN.mnemonic == "OpReturn"
        assert OpCode.CONSTANT.mnemonic == "OpConstant"
        assert repr(Instruction.constant(3)) == "OpConstant(3)"


class TestChunkSerialization:
    """Binary format tests."""

    def test_round_trip(self):
        chunk = compile_quietly('(1.5 + 2) * -3 == "x" != !nil')
        restored = Chunk.deserialize(chunk.serialize())
        assert restored.instructions == chunk.instructions
        assert restored.lines == chunk.lines
        assert restored.constants == chunk.constants

    def test_bad_magic(self):
        with pytest.raises(ValueError):
            Chunk.deserialize(b"NOPE" + bytes(16))

    def test_line_table_mismatch(self):
        chunk = compile_quietly("1 + 2")
        chunk.lines.pop()
        with pytest.raises(InternalError):
            Chunk.deserialize(chunk.serialize())

    def test_constant_reference_out_of_range(self):
        chunk = Chunk()
        chunk.add_instruction(Instruction.constant(5), 1)
        with pytest.raises(InternalError):
            Chunk.deserialize(chunk.serialize())

    @pytest.mark.parametrize("cut", [
        4,      # magic only
        6,      # header, no constant count
        10,     # constant count, no constants
        15,     # inside the first number constant
    ])
    def test_truncated_header_and_constants(self, cut):
        data = compile_quietly('1.5 + "text"').serialize()
        with pytest.raises(ValueError):
            Chunk.deserialize(data[:cut])

    def test_truncated_string_constant(self):
        data = compile_quietly('"a long string constant"').serialize()
        end = data.index(b"constant") + 4
        with pytest.raises(ValueError):
            Chunk.deserialize(data[:end])

    def test_truncated_code(self):
        data = compile_quietly("1 + 2").serialize()
        # Drop everything after the first opcode byte and half its operand
        start = len(data) - (4 + 4 * 4) - 8
        with pytest.raises(ValueError):
            Chunk.deserialize(data[:start + 2])

    def test_truncated_line_table(self):
        data = compile_quietly("1 + 2").serialize()
        with pytest.raises(ValueError):
            Chunk.deserialize(data[:-3])

    def test_trailing_bytes(self):
        data = compile_quietly("1 + 2").serialize()
        with pytest.raises(ValueError):
            Chunk.deserialize(data + b"\x00")

    def test_invalid_utf8_in_string_constant(self):
        data = compile_quietly('"zz"').serialize()
        with pytest.raises(ValueError):
            Chunk.deserialize(data.replace(b"zz", b"\xff\xfe"))


# =============================================================================
# Disassembler Tests
# =============================================================================

class TestDisassembler:
    """Textual disassembly format."""

    def make_chunk(self):
        chunk = Chunk()
        index = chunk.add_constant(Value.number(1.2))
        chunk.add_instruction(Instruction.constant(index), 123)
        chunk.add_instruction(Instruction(OpCode.NEGATE), 123)
        chunk.add_instruction(Instruction(OpCode.RETURN), 124)
        return chunk

    def test_constant_instruction(self):
        text = disassemble_instruction(self.make_chunk(), 0)
        assert text == "0000  123 " + "OpConstant".ljust(16) + "    0 '1.2'"

    def test_continuation_marker(self):
        assert disassemble_instruction(self.make_chunk(), 1) == "0001    | OpNegate"

    def test_new_line_is_printed(self):
        assert disassemble_instruction(self.make_chunk(), 2) == "0002  124 OpReturn"

    def test_whole_chunk(self):
        text = disassemble_chunk(self.make_chunk(), "test chunk")
        lines = text.split("\n")
        assert lines[0] == "== test chunk =="
        assert len(lines) == 4
        assert self.make_chunk().disassemble("test chunk") == text
