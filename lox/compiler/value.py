"""
Lox Value Model

Tagged runtime values shared by the compiler's constant pool and the VM.
"""

from typing import Any
from dataclasses import dataclass
from enum import IntEnum
import numpy as np


class ValueType(IntEnum):
    """Value tags. Heap object tags will start after STRING."""
    NIL = 0
    BOOL = 1
    NUMBER = 2
    STRING = 3


def format_number(n: float) -> str:
    """Shortest round-trip text for a number, without a trailing '.0'."""
    if np.isnan(n):
        return "NaN"
    return np.format_float_positional(np.float64(n), unique=True, trim='-')


@dataclass(frozen=True, eq=False)
class Value:
    """
    A Lox runtime value.

    Numbers are IEEE-754 doubles held as numpy.float64 so that arithmetic
    overflow and division by zero produce inf/NaN instead of raising.
    Values are immutable; the VM copies them on and off its stack.
    """

    type: ValueType
    data: Any

    @classmethod
    def nil(cls) -> 'Value':
        """Create a nil value."""
        return cls(ValueType.NIL, None)

    @classmethod
    def boolean(cls, value: bool) -> 'Value':
        """Create a boolean value."""
        return cls(ValueType.BOOL, bool(value))

    @classmethod
    def number(cls, value: float) -> 'Value':
        """Create a number value (64-bit float)."""
        return cls(ValueType.NUMBER, np.float64(value))

    @classmethod
    def string(cls, value: str) -> 'Value':
        """Create a string value."""
        return cls(ValueType.STRING, value)

    @classmethod
    def from_python(cls, value: Any) -> 'Value':
        """Convert a Python value to a Value."""
        if value is None:
            return cls.nil()
        elif isinstance(value, (bool, np.bool_)):
            return cls.boolean(value)
        elif isinstance(value, (int, float, np.floating, np.integer)):
            return cls.number(value)
        elif isinstance(value, str):
            return cls.string(value)
        elif isinstance(value, Value):
            return value
        else:
            raise TypeError(f"Cannot convert {type(value)} to Value")

    def to_python(self) -> Any:
        """Convert to the closest Python value."""
        if self.type == ValueType.NUMBER:
            return float(self.data)
        return self.data

    def is_nil(self) -> bool:
        return self.type == ValueType.NIL

    def is_bool(self) -> bool:
        return self.type == ValueType.BOOL

    def is_number(self) -> bool:
        return self.type == ValueType.NUMBER

    def is_string(self) -> bool:
        return self.type == ValueType.STRING

    def is_truthy(self) -> bool:
        """Only nil and false are falsey."""
        if self.type == ValueType.NIL:
            return False
        if self.type == ValueType.BOOL:
            return self.data
        return True

    def is_falsey(self) -> bool:
        return not self.is_truthy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.type != other.type:
            return False
        if self.type == ValueType.NIL:
            return True
        return bool(self.data == other.data)

    def __hash__(self) -> int:
        return hash((self.type, self.data))

    def __str__(self) -> str:
        if self.type == ValueType.NIL:
            return 'nil'
        elif self.type == ValueType.BOOL:
            return 'true' if self.data else 'false'
        elif self.type == ValueType.NUMBER:
            return format_number(self.data)
        return self.data

    def __repr__(self) -> str:
        if self.type == ValueType.STRING:
            return f"Value(string, {self.data!r})"
        return f"Value({self.type.name.lower()}, {self})"
