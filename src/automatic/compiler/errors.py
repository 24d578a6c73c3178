"""
autoMATic Compiler Error Hierarchy
==================================

This module defines the exception hierarchy for the autoMATic compiler.
All exceptions inherit from CompilerError, which itself inherits from
the base AutomaticError for consistent error handling across the toolchain.

Compilation is all-or-nothing: the first error raised by any stage aborts
the whole pipeline and no IR is produced. There is no error collection.

Exception Hierarchy
-------------------
CompilerError (base for all compiler errors)
├── LexicalError - scanning errors
│   ├── UnterminatedStringError - missing closing quote
│   ├── InvalidCharacterError - character outside the language
│   └── PreprocessorError - malformed or unbalanced directive
│       └── IncludeError - include target missing or circular
├── ParseError - syntax errors
│   ├── UnexpectedTokenError - token does not fit the grammar
│   └── MissingTokenError - required token absent
├── SemanticError - scope and type errors
│   ├── UndeclaredIdentifierError - unresolvable name
│   ├── DuplicateDeclarationError - name declared twice in one scope
│   ├── TypeMismatchError - operand/assignment/return type error
│   ├── ArgumentCountError - wrong arity in a call
│   ├── InvalidLValueError - assignment to a non-variable
│   └── AutoWithoutInitializerError - 'auto' needs an initializer
└── InternalCompilerError - analyzer defect detected by the generator
"""

from typing import Optional, List

from automatic.errors import AutomaticError, SourceLocation


# =============================================================================
# Base Compiler Exception
# =============================================================================

class CompilerError(AutomaticError):
    """
    Base exception for all autoMATic compiler errors.

    Inherits location, source-line and hint formatting from
    AutomaticError. Catch this class to handle any failed compilation.
    """
    pass


# =============================================================================
# Lexical Errors (Scanner, Lexer and Preprocessor)
# =============================================================================

class LexicalError(CompilerError):
    """
    Lexical error in autoMATic source code.

    Raised before parsing when the text cannot be scanned into tokens.

    Examples:
        - Unterminated string literal or block comment
        - Character that belongs to no token
        - Integer literal outside the signed 32-bit range
    """
    pass


class UnterminatedStringError(LexicalError):
    """
    Unterminated string literal.

    Raised when a string literal is not closed before the end of the
    line or file. Strings have no escapes, so a string can never contain
    a double quote.

    Example:
        printstr("hello);
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "unterminated string literal",
            location=location,
            hint="add closing '\"' to complete the string",
            source_line=source_line,
        )


class InvalidCharacterError(LexicalError):
    """
    Invalid character in source code.

    Raised when the lexer encounters a character that does not start
    any autoMATic token.
    """

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (0x{ord(char):02X})",
            location=location,
            source_line=source_line,
        )


class PreprocessorError(LexicalError):
    """
    Error while processing a directive.

    Raised when a '#' line does not name a known directive, when a
    directive has the wrong arguments, or when '#ifdef'/'#ifndef' and
    '#end' do not pair up.
    """
    pass


class IncludeError(PreprocessorError):
    """
    Error including a unit.

    Raised when:
        - Include target not found
        - Circular include detected
        - Include target cannot be read
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        search_paths: Optional[List[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            paths_str = ", ".join(self.search_paths)
            hint = f"searched in: {paths_str}"

        super().__init__(
            f"cannot include '{filename}': {reason}",
            location=location,
            hint=hint,
        )


# =============================================================================
# Syntax Errors (Parser)
# =============================================================================

class ParseError(CompilerError):
    """
    Syntax error in autoMATic source code.

    Raised by the parser on the first token that does not fit the
    grammar. The parser performs no recovery.
    """
    pass


class UnexpectedTokenError(ParseError):
    """
    Unexpected token during parsing.

    Raised when the parser encounters a token that doesn't match
    the expected grammar rule, including an unexpected end of input.
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        hint = None
        if expected:
            hint = f"expected {expected}"

        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MissingTokenError(ParseError):
    """
    Required token is missing.

    Raised when a required token (like ';' or ')') is not found
    where expected.
    """

    def __init__(
        self,
        expected: str,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found
        super().__init__(
            f"expected {expected} before '{found}'",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Semantic Errors (Scopes and Types)
# =============================================================================

class SemanticError(CompilerError):
    """
    Semantic error in autoMATic source code.

    Raised during semantic analysis when the code is syntactically
    correct but violates the language's scoping or typing rules.
    """
    pass


class UndeclaredIdentifierError(SemanticError):
    """
    Reference to an undeclared variable or function.

    The analyzer suggests similarly-named identifiers that are visible
    at the point of use, helping to catch typos.
    """

    def __init__(
        self,
        identifier: str,
        kind: str = "identifier",
        location: Optional[SourceLocation] = None,
        similar_identifiers: Optional[List[str]] = None,
    ):
        self.identifier = identifier
        self.similar_identifiers = similar_identifiers or []

        hint = None
        if self.similar_identifiers:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_identifiers[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undeclared {kind} '{identifier}'",
            location=location,
            hint=hint,
        )


class DuplicateDeclarationError(SemanticError):
    """
    Identifier declared multiple times in one scope.

    Raised for duplicate globals, locals within one block, formals of one
    function, and function names (including built-in names).
    """

    def __init__(
        self,
        identifier: str,
        kind: str = "variable",
        location: Optional[SourceLocation] = None,
    ):
        self.identifier = identifier
        super().__init__(
            f"duplicate {kind} '{identifier}'",
            location=location,
        )


class TypeMismatchError(SemanticError):
    """
    Type mismatch or type-related error.

    Raised when:
        - Operands of an operator have unsuitable or differing types
        - Assigned, returned or passed values do not match
        - A condition is not Bool
        - A matrix literal is ragged or mixes element types
    """

    def __init__(
        self,
        message: str,
        expected_type: Optional[str] = None,
        actual_type: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ):
        self.expected_type = expected_type
        self.actual_type = actual_type

        hint = None
        if expected_type and actual_type:
            hint = f"expected '{expected_type}', got '{actual_type}'"

        super().__init__(message, location=location, hint=hint)


class ArgumentCountError(SemanticError):
    """
    Wrong number of arguments in a function call.
    """

    def __init__(
        self,
        function_name: str,
        expected: int,
        actual: int,
        location: Optional[SourceLocation] = None,
    ):
        self.function_name = function_name
        self.expected = expected
        self.actual = actual

        word = "argument" if expected == 1 else "arguments"
        super().__init__(
            f"'{function_name}' expects {expected} {word}, got {actual}",
            location=location,
        )


class InvalidLValueError(SemanticError):
    """
    Invalid left-hand side of assignment.

    Examples of invalid lvalues:
        - 42 = x
        - (a + b) = x
        - f() = x
    """

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "expression is not assignable",
            location=location,
            hint="left side of assignment must be a variable or matrix element",
        )


class AutoWithoutInitializerError(SemanticError):
    """
    'auto' declaration that cannot be inferred.

    Raised for 'auto' locals without an initializer, 'auto' globals and
    'auto' formals: the placeholder type needs a value to resolve from.
    """

    def __init__(self, name: str, location: Optional[SourceLocation] = None):
        self.name = name
        super().__init__(
            f"cannot infer type of '{name}': 'auto' requires an initializer",
            location=location,
        )


# =============================================================================
# Internal Errors (Code Generation)
# =============================================================================

class InternalCompilerError(CompilerError):
    """
    Internal compiler error.

    Raised by the code generator when the typed tree violates an
    invariant the analyzer is supposed to guarantee, for example an
    unresolved 'auto' type or a Void value used as an operand. Seeing
    this error always means a compiler bug, never a user mistake.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(f"internal error: {message}", location=location)
