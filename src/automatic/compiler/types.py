"""
autoMATic Type System
=====================

This module defines the closed set of types of the autoMATic language and
a few helpers the analyzer and the code generator share.

Supported Types
---------------
- int: 32-bit signed integer
- bool: truth value
- float: 64-bit IEEE double
- void: no value (function returns only)
- string: reference to an immutable character string
- matrix<elem, R, C>: R x C matrix of int, float or bool elements
- auto: placeholder resolved from an initializer during analysis

Type Representation
-------------------
Types are immutable Type objects compared structurally. Two matrix types
are equal only if element type, rows and columns all match, so a
matrix<int, 2, 3> is never assignable to a matrix<int, 3, 2>.

| Type               | LLVM representation          |
|--------------------|------------------------------|
| int                | i32                          |
| bool               | i1                           |
| float              | double                       |
| void               | void                         |
| string             | i8*                          |
| matrix<e, R, C>    | [R x [C x e]]* (nullable)    |
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


# =============================================================================
# Base Type Enumeration
# =============================================================================

class BaseType(Enum):
    """
    Fundamental autoMATic type kinds.
    """
    INT = auto()
    BOOL = auto()
    FLOAT = auto()
    VOID = auto()
    STRING = auto()
    MATRIX = auto()
    AUTO = auto()

    def __str__(self) -> str:
        """Return the source keyword."""
        return self.name.lower()


# Element types a matrix may hold
MATRIX_ELEMENT_TYPES = frozenset({BaseType.INT, BaseType.FLOAT, BaseType.BOOL})


# =============================================================================
# Type Representation
# =============================================================================

@dataclass(frozen=True)
class Type:
    """
    Represents an autoMATic type.

    Attributes:
        base: The type kind
        element: For matrices, the element kind (None otherwise)
        rows: For matrices, the number of rows
        cols: For matrices, the number of columns

    Examples:
        - int                 : Type(INT)
        - matrix<float, 2, 3> : Type(MATRIX, FLOAT, 2, 3)
    """
    base: BaseType
    element: Optional[BaseType] = None
    rows: int = 0
    cols: int = 0

    def __str__(self) -> str:
        if self.base == BaseType.MATRIX:
            return f"matrix<{self.element}, {self.rows}, {self.cols}>"
        return str(self.base)

    @property
    def is_matrix(self) -> bool:
        return self.base == BaseType.MATRIX

    @property
    def is_numeric(self) -> bool:
        """Return True for int and float."""
        return self.base in (BaseType.INT, BaseType.FLOAT)

    @property
    def is_printable(self) -> bool:
        """Return True for types accepted by the 'print' built-in."""
        return self.base in (BaseType.INT, BaseType.FLOAT, BaseType.BOOL)

    @property
    def is_void(self) -> bool:
        return self.base == BaseType.VOID

    @property
    def is_auto(self) -> bool:
        return self.base == BaseType.AUTO

    @property
    def element_type(self) -> "Type":
        """
        Return the scalar type of a matrix's elements.

        Raises:
            ValueError: If this is not a matrix type
        """
        if not self.is_matrix:
            raise ValueError(f"'{self}' is not a matrix type")
        return Type(self.element)


# =============================================================================
# Common Types
# =============================================================================

INT = Type(BaseType.INT)
BOOL = Type(BaseType.BOOL)
FLOAT = Type(BaseType.FLOAT)
VOID = Type(BaseType.VOID)
STRING = Type(BaseType.STRING)
AUTO = Type(BaseType.AUTO)


def matrix_type(element: BaseType, rows: int, cols: int) -> Type:
    """
    Create a matrix type.

    Args:
        element: Element kind (INT, FLOAT or BOOL)
        rows: Number of rows (non-negative)
        cols: Number of columns (non-negative)

    Raises:
        ValueError: If the element kind is not a scalar or a dimension
            is negative
    """
    if element not in MATRIX_ELEMENT_TYPES:
        raise ValueError(f"invalid matrix element type '{element}'")
    if rows < 0 or cols < 0:
        raise ValueError("matrix dimensions must be non-negative")
    return Type(BaseType.MATRIX, element, rows, cols)
