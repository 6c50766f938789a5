"""
Lox Virtual Machine

A stack-based interpreter for compiled Lox chunks.
"""

import sys
from typing import Callable, List, Optional, TextIO

import numpy as np

from ..compiler.chunk import Chunk, OpCode
from ..compiler.debug import disassemble_instruction
from ..compiler.errors import InternalError, RuntimeError
from ..compiler.value import Value


class VM:
    """
    Executes a chunk against an operand stack.

    The instruction pointer and stack are reset by every interpret()
    call, so one VM can run many chunks, but not concurrently.
    """

    def __init__(self, debug: bool = False, out: Optional[TextIO] = None):
        """
        Initialize the VM.

        Args:
            debug: Trace the stack and each instruction before executing it
            out: Where the trace is printed (default: stdout)
        """
        self.debug = debug
        self.out = out
        self.chunk: Optional[Chunk] = None
        self.ip = 0
        self.stack: List[Value] = []

    def interpret(self, chunk: Chunk) -> Value:
        """
        Execute a chunk.

        Args:
            chunk: Compiled chunk

        Returns:
            The value popped by the Return instruction

        Raises:
            RuntimeError: On a type error or a chunk without Return
        """
        self.chunk = chunk
        self.ip = 0
        self.reset_stack()
        return self.run()

    def run(self) -> Value:
        chunk = self.chunk

        while self.ip < len(chunk):
            if self.debug:
                self.trace()

            instruction = chunk.instruction_at(self.ip)
            self.ip += 1
            opcode = instruction.opcode

            if opcode == OpCode.CONSTANT:
                self.push(chunk.constant_at(instruction.operand))

            elif opcode == OpCode.NIL:
                self.push(Value.nil())

            elif opcode == OpCode.TRUE:
                self.push(Value.boolean(True))

            elif opcode == OpCode.FALSE:
                self.push(Value.boolean(False))

            # Arithmetic
            elif opcode == OpCode.NEGATE:
                if not self.peek().is_number():
                    raise self.runtime_error("Operand must be a number.")
                self.push(Value.number(-self.pop().data))

            elif opcode == OpCode.ADD:
                b = self.peek(0)
                a = self.peek(1)
                if a.is_string() and b.is_string():
                    self.pop()
                    self.pop()
                    self.push(Value.string(a.data + b.data))
                elif a.is_number() and b.is_number():
                    self.binary_op(np.add, Value.number)
                else:
                    raise self.runtime_error("Operands must be two numbers or two strings.")

            elif opcode == OpCode.SUBTRACT:
                self.binary_op(np.subtract, Value.number)

            elif opcode == OpCode.MULTIPLY:
                self.binary_op(np.multiply, Value.number)

            elif opcode == OpCode.DIVIDE:
                self.binary_op(np.divide, Value.number)

            # Comparison
            elif opcode == OpCode.EQUAL:
                b = self.pop()
                a = self.pop()
                self.push(Value.boolean(a == b))

            elif opcode == OpCode.GREATER:
                self.binary_op(np.greater, Value.boolean)

            elif opcode == OpCode.LESS:
                self.binary_op(np.less, Value.boolean)

            elif opcode == OpCode.NOT:
                self.push(Value.boolean(self.pop().is_falsey()))

            elif opcode == OpCode.RETURN:
                return self.pop()

            else:
                raise InternalError(f"Unknown opcode {opcode!r}")

        raise self.runtime_error("Reached end of chunk without a return.")

    # =========================================================================
    # Stack
    # =========================================================================

    def reset_stack(self) -> None:
        self.stack = []

    def push(self, value: Value) -> None:
        self.stack.append(value)

    def pop(self) -> Value:
        if not self.stack:
            raise InternalError("Stack underflow")
        return self.stack.pop()

    def peek(self, distance: int = 0) -> Value:
        if distance >= len(self.stack):
            raise InternalError("Stack underflow")
        return self.stack[-1 - distance]

    # =========================================================================
    # Helpers
    # =========================================================================

    def binary_op(self, op: Callable, wrap: Callable[[object], Value]) -> None:
        """Apply a numeric operator to the top two values, left operand deeper."""
        if not self.peek(0).is_number() or not self.peek(1).is_number():
            raise self.runtime_error("Operands must be numbers.")
        b = self.pop()
        a = self.pop()
        # Overflow and division by zero give inf/NaN, as IEEE-754 says
        with np.errstate(all='ignore'):
            result = op(a.data, b.data)
        self.push(wrap(result))

    def runtime_error(self, message: str) -> RuntimeError:
        """Build an error at the line of the instruction just executed."""
        line = None
        if self.chunk is not None and len(self.chunk) > 0:
            line = self.chunk.line_at(max(self.ip - 1, 0))
        self.reset_stack()
        return RuntimeError(message, line)

    def trace(self) -> None:
        out = self.out or sys.stdout
        stack = "".join(f"[ {value} ]" for value in self.stack)
        print(f"          {stack}", file=out)
        print(disassemble_instruction(self.chunk, self.ip), file=out)
