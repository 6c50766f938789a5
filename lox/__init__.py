"""
Lox - Bytecode Expression Language

Lox expressions are compiled in a single pass to a compact bytecode
chunk and executed on a stack-based virtual machine.

Example:
    import lox

    ctx = lox.Context()
    script = ctx.compile('1 + 2 * 3')
    result = ctx.execute(script)
    print(result)  # 7
"""

from .api.context import Context, Script, run
from .api.vm import VM
from .compiler import (
    compile_source, compile_file, Chunk, Value,
    LoxError, CompileError, RuntimeError, InternalError,
)

__version__ = "0.1.0"
__author__ = "Lox Team"

__all__ = [
    # Main API
    'Context',
    'Script',
    'run',
    'VM',

    # Compiler
    'compile_source',
    'compile_file',
    'Chunk',
    'Value',

    # Errors
    'LoxError',
    'CompileError',
    'RuntimeError',
    'InternalError',
]


def version() -> str:
    """Get Lox version string."""
    return __version__
