"""
Lox Python API

Provides the Python interface for running Lox expressions on the stack VM.
"""

from .context import Context, Script, run
from .vm import VM
from ..compiler.value import Value, ValueType

__all__ = [
    'Context',
    'Script',
    'run',
    'VM',
    'Value',
    'ValueType',
]
