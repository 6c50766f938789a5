"""
Lox Context

The main interface for compiling and executing Lox code.
"""

from typing import Optional, TextIO
from dataclasses import dataclass

from ..compiler import Chunk, Compiler
from .vm import VM
from ..compiler.value import Value


@dataclass
class Script:
    """
    A compiled Lox expression.

    Holds the chunk and the source it came from.
    """

    source: str
    chunk: Chunk
    filename: Optional[str] = None

    def disassemble(self) -> str:
        """Get disassembly of the chunk."""
        return self.chunk.disassemble(self.filename or "code")

    def save(self, path: str) -> None:
        """Save the compiled chunk to a file."""
        data = self.chunk.serialize()
        with open(path, 'wb') as f:
            f.write(data)

    @classmethod
    def load(cls, path: str) -> 'Script':
        """Load a compiled chunk from a file."""
        with open(path, 'rb') as f:
            data = f.read()
        chunk = Chunk.deserialize(data)
        return cls(source="", chunk=chunk, filename=path)


class Context:
    """
    Lox execution context.

    Pairs the compiler with one VM. This is the main entry point for
    using Lox from Python.

    Example:
        ctx = Context()
        result = ctx.interpret('(1 + 2) * 3')
        print(result)  # 9
    """

    def __init__(self, debug: bool = False,
                 error_stream: Optional[TextIO] = None,
                 out: Optional[TextIO] = None):
        """
        Create a new Lox context.

        Args:
            debug: Print compiled chunks and trace VM execution
            error_stream: Where compile diagnostics go (default: stderr)
            out: Where compiled chunks and VM traces are printed (default: stdout)
        """
        self.debug = debug
        self.error_stream = error_stream
        self.out = out
        self.vm = VM(debug=debug, out=out)

    def compile(self, source: str, filename: Optional[str] = None) -> Script:
        """
        Compile Lox source code.

        Args:
            source: Lox source code string
            filename: Optional filename for the disassembly header

        Returns:
            Compiled Script object

        Raises:
            CompileError: If compilation fails
        """
        compiler = Compiler(source, debug=self.debug,
                            error_stream=self.error_stream, out=self.out)
        return Script(source=source, chunk=compiler.compile(), filename=filename)

    def compile_file(self, path: str) -> Script:
        """Compile a Lox source file."""
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.compile(source, filename=path)

    def execute(self, script: Script) -> Value:
        """
        Execute a compiled script.

        Raises:
            RuntimeError: If execution fails
        """
        return self.vm.interpret(script.chunk)

    def interpret(self, source: str) -> Value:
        """Compile and execute source in one step."""
        return self.execute(self.compile(source))


def run(source: str) -> Value:
    """
    Quick function to evaluate one Lox expression.

    Args:
        source: Lox source code

    Returns:
        Result value
    """
    return Context().interpret(source)
