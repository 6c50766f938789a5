"""
Lox Compiler Package

Scans Lox source and compiles it in a single pass to a bytecode chunk
for the stack VM.
"""

from .tokens import Token, TokenKind
from .scanner import Scanner
from .value import Value, ValueType
from .chunk import Chunk, Instruction, OpCode
from .compiler import Compiler, Precedence, compile_source
from .debug import disassemble_chunk, disassemble_instruction
from .errors import LoxError, CompileError, RuntimeError, InternalError

__all__ = [
    "Token",
    "TokenKind",
    "Scanner",
    "Value",
    "ValueType",
    "Chunk",
    "Instruction",
    "OpCode",
    "Compiler",
    "Precedence",
    "compile_source",
    "disassemble_chunk",
    "disassemble_instruction",
    "LoxError",
    "CompileError",
    "RuntimeError",
    "InternalError",
    "compile_file",
]


def compile_file(filepath: str, debug: bool = False) -> Chunk:
    """
    Compile a Lox source file to a chunk.

    Args:
        filepath: Path to a .lox source file

    Returns:
        Chunk ready for VM execution
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    return compile_source(source, debug=debug)
