"""
Lox Bytecode Format

Defines the instruction set and the compiled chunk container.
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional
import struct

from .errors import InternalError
from .value import Value, ValueType


class OpCode(IntEnum):
    """Lox VM opcodes."""

    # Constants and literals
    CONSTANT = 0x01      # operand: constant index (u16)
    NIL = 0x02
    TRUE = 0x03
    FALSE = 0x04

    # Arithmetic
    ADD = 0x20
    SUBTRACT = 0x21
    MULTIPLY = 0x22
    DIVIDE = 0x23
    NEGATE = 0x24

    # Comparison and logic
    EQUAL = 0x30
    GREATER = 0x31
    LESS = 0x32
    NOT = 0x33

    # Control flow
    RETURN = 0x50

    @property
    def mnemonic(self) -> str:
        """Disassembler name, e.g. OpConstant."""
        return "Op" + self.name.title().replace("_", "")


# Opcodes that carry an operand
OPERAND_OPCODES = frozenset({OpCode.CONSTANT})

# Largest number of constants addressable by a u16 operand
MAX_CONSTANTS = 0x10000


@dataclass(frozen=True)
class Instruction:
    """A single decoded instruction: opcode plus optional operand."""

    opcode: OpCode
    operand: Optional[int] = None

    @classmethod
    def constant(cls, index: int) -> 'Instruction':
        return cls(OpCode.CONSTANT, index)

    def __repr__(self) -> str:
        if self.operand is None:
            return self.opcode.mnemonic
        return f"{self.opcode.mnemonic}({self.operand})"


@dataclass
class Chunk:
    """
    Container for compiled Lox bytecode.

    Three parallel append-only sequences: the instructions, the source
    line of each instruction, and the constant pool. The compiler is the
    only writer; once compilation finishes the chunk is only read.
    """

    # Magic number for file format
    MAGIC = b'LOX\x00'
    VERSION = 1

    instructions: List[Instruction] = field(default_factory=list)
    lines: List[int] = field(default_factory=list)
    constants: List[Value] = field(default_factory=list)

    def add_instruction(self, instruction: Instruction, line: int) -> int:
        """Append an instruction, returning its offset."""
        offset = len(self.instructions)
        self.instructions.append(instruction)
        self.lines.append(line)
        return offset

    def add_constant(self, value: Value) -> int:
        """Add a constant to the pool, returning its index."""
        self.constants.append(value)
        return len(self.constants) - 1

    def instruction_at(self, offset: int) -> Instruction:
        if not 0 <= offset < len(self.instructions):
            raise InternalError(f"Instruction offset {offset} out of range")
        return self.instructions[offset]

    def line_at(self, offset: int) -> int:
        if not 0 <= offset < len(self.lines):
            raise InternalError(f"Line table offset {offset} out of range")
        return self.lines[offset]

    def constant_at(self, index: int) -> Value:
        if not 0 <= index < len(self.constants):
            raise InternalError(f"Constant index {index} out of range")
        return self.constants[index]

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __repr__(self) -> str:
        return f"<Chunk of {len(self.instructions)} instructions, {len(self.constants)} constants>"

    def disassemble(self, name: str) -> str:
        """Disassemble the chunk to human-readable text."""
        from .debug import disassemble_chunk
        return disassemble_chunk(self, name)

    def serialize(self) -> bytes:
        """Serialize the chunk to binary format."""
        output = bytearray()

        # Header
        output.extend(self.MAGIC)
        output.extend(struct.pack('<H', self.VERSION))

        # Constant pool
        output.extend(struct.pack('<I', len(self.constants)))
        for const in self.constants:
            output.append(const.type)
            if const.type == ValueType.NIL:
                pass
            elif const.type == ValueType.BOOL:
                output.append(1 if const.data else 0)
            elif const.type == ValueType.NUMBER:
                output.extend(struct.pack('<d', const.data))
            elif const.type == ValueType.STRING:
                encoded = const.data.encode('utf-8')
                output.extend(struct.pack('<I', len(encoded)))
                output.extend(encoded)

        # Code: opcode byte, followed by a u16 operand where the opcode takes one
        code = bytearray()
        for instruction in self.instructions:
            code.append(instruction.opcode)
            if instruction.opcode in OPERAND_OPCODES:
                code.extend(struct.pack('<H', instruction.operand))
        output.extend(struct.pack('<I', len(self.instructions)))
        output.extend(struct.pack('<I', len(code)))
        output.extend(code)

        # Line table
        output.extend(struct.pack('<I', len(self.lines)))
        for line in self.lines:
            output.extend(struct.pack('<I', line))

        return bytes(output)

    @classmethod
    def deserialize(cls, data: bytes) -> 'Chunk':
        """
        Deserialize a chunk from binary format.

        Raises:
            ValueError: If the data is not a well-formed chunk
            InternalError: If the chunk breaks its own invariants
        """
        try:
            return cls._read(data)
        except (struct.error, IndexError, UnicodeDecodeError) as e:
            raise ValueError(f"Truncated or corrupt bytecode: {e}") from e

    @classmethod
    def _read(cls, data: bytes) -> 'Chunk':
        offset = 0

        # Header
        magic = data[offset:offset+4]
        if magic != cls.MAGIC:
            raise ValueError("Invalid bytecode magic number")
        offset += 4

        version = struct.unpack_from('<H', data, offset)[0]
        if version != cls.VERSION:
            raise ValueError(f"Unsupported bytecode version: {version}")
        offset += 2

        chunk = cls()

        # Read constants
        const_count = struct.unpack_from('<I', data, offset)[0]
        offset += 4

        for _ in range(const_count):
            const_type = data[offset]
            offset += 1

            if const_type == ValueType.NIL:
                chunk.constants.append(Value.nil())
            elif const_type == ValueType.BOOL:
                chunk.constants.append(Value.boolean(data[offset] != 0))
                offset += 1
            elif const_type == ValueType.NUMBER:
                value = struct.unpack_from('<d', data, offset)[0]
                chunk.constants.append(Value.number(value))
                offset += 8
            elif const_type == ValueType.STRING:
                length = struct.unpack_from('<I', data, offset)[0]
                offset += 4
                if offset + length > len(data):
                    raise ValueError("Truncated or corrupt bytecode: string constant runs past the end")
                value = data[offset:offset+length].decode('utf-8')
                chunk.constants.append(Value.string(value))
                offset += length
            else:
                raise ValueError(f"Unknown constant type: {const_type}")

        # Read code
        instruction_count, code_len = struct.unpack_from('<II', data, offset)
        offset += 8
        code_end = offset + code_len

        while offset < code_end:
            try:
                opcode = OpCode(data[offset])
            except ValueError:
                raise ValueError(f"Invalid opcode 0x{data[offset]:02x} at byte {offset}") from None
            offset += 1
            operand = None
            if opcode in OPERAND_OPCODES:
                operand = struct.unpack_from('<H', data, offset)[0]
                offset += 2
                if operand >= len(chunk.constants):
                    raise InternalError(f"Constant index {operand} out of range")
            chunk.instructions.append(Instruction(opcode, operand))

        if offset != code_end:
            raise ValueError("Truncated or corrupt bytecode: operand runs past the code section")
        if len(chunk.instructions) != instruction_count:
            raise InternalError(
                f"Header declares {instruction_count} instructions, found {len(chunk.instructions)}")

        # Read line table
        line_count = struct.unpack_from('<I', data, offset)[0]
        offset += 4
        if line_count != instruction_count:
            raise InternalError(
                f"Line table has {line_count} entries for {instruction_count} instructions")
        chunk.lines = list(struct.unpack_from(f'<{line_count}I', data, offset))
        offset += 4 * line_count

        if offset != len(data):
            raise ValueError(f"Trailing bytes after chunk: {len(data) - offset}")

        return chunk
