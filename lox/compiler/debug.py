"""
Lox Disassembler

Renders chunks as text for debugging. Only reads the chunk.
"""

from .chunk import Chunk, OpCode


def disassemble_chunk(chunk: Chunk, name: str) -> str:
    """Disassemble every instruction in a chunk under a header line."""
    lines = [f"== {name} =="]
    for offset in range(len(chunk)):
        lines.append(disassemble_instruction(chunk, offset))
    return "\n".join(lines)


def disassemble_instruction(chunk: Chunk, offset: int) -> str:
    """
    Disassemble a single instruction.

    Format: zero-padded offset, source line (or '   |' when the line is
    the same as the previous instruction's), mnemonic, and for constants
    the pool index and value.
    """
    instruction = chunk.instruction_at(offset)
    line = chunk.line_at(offset)

    if offset > 0 and line == chunk.line_at(offset - 1):
        line_field = "   |"
    else:
        line_field = f"{line:4d}"

    prefix = f"{offset:04d} {line_field} "

    if instruction.opcode == OpCode.CONSTANT:
        index = instruction.operand
        value = chunk.constant_at(index)
        return f"{prefix}{instruction.opcode.mnemonic:<16s} {index:4d} '{value}'"

    return f"{prefix}{instruction.opcode.mnemonic}"
