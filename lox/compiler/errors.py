"""
Lox Errors

Defines exception classes for compile-time and run-time errors.
"""

from typing import List, Optional


class LoxError(Exception):
    """Base exception for all user-facing Lox errors."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with location information."""
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


class CompileError(LoxError):
    """
    Raised when compilation reported one or more diagnostics.

    The partially emitted chunk is discarded; the diagnostics are kept in
    the order they were reported.
    """

    def __init__(self, diagnostics: List[str]):
        self.diagnostics = list(diagnostics)
        message = "\n".join(self.diagnostics) if self.diagnostics else "Compilation failed"
        super().__init__(message)


class RuntimeError(LoxError):
    """Raised for errors during chunk execution."""
    pass


class InternalError(Exception):
    """
    Raised when a compiler or VM invariant is broken.

    Not a LoxError: these never come from user input and drivers must not
    report them as ordinary compile or runtime errors.
    """
    pass
