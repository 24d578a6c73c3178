"""
autoMATic Error Hierarchy
=========================

This module defines the root of the exception hierarchy for the autoMATic
toolchain. All exceptions inherit from AutomaticError, allowing callers
to catch every toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
AutomaticError (base)
└── CompilerError (see automatic.compiler.errors)
    ├── LexicalError - scanning and preprocessing errors
    ├── ParseError - syntax errors
    ├── SemanticError - scope and type errors
    └── InternalCompilerError - analyzer defects caught during generation

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. This allows for detailed error messages that help users
quickly locate and fix issues in their source code.

Error messages follow this format:
    filename:line:column: error: description
    source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    This class is used throughout the compiler to track where tokens,
    statements, and errors occur in the source file. The immutable
    (frozen) design ensures locations cannot be accidentally modified.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class AutomaticError(Exception):
    """
    Base exception for all autoMATic errors.

    Provides common functionality for error messages including source
    location tracking, source line context, and optional hints:

        try:
            compile_source(text)
        except AutomaticError as e:
            print(f"Error: {e}")

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            gcd.mc:5:12: error: undeclared identifier 'gdc'
                return gdc(a, b);
                       ^
            hint: did you mean 'gcd'?
        """
        parts = []

        # Location prefix
        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Source context with caret pointer
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        # Hint for fixing
        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)
