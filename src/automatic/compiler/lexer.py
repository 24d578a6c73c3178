"""
autoMATic Lexer (Tokenizer)
===========================

This module implements the lexer for the autoMATic language. It converts
preprocessed source text into a stream of tokens for the parser.

Token Categories
----------------
- Keywords: int, bool, float, void, string, matrix, auto, if, else,
  while, for, return, true, false
- Identifiers: variable and function names
- Integer literals: decimal digit runs in the signed 32-bit range
- Float literals: digits '.' digits (no exponent)
- Strings: "double quoted", no escape sequences
- Operators: + - * / = == != < <= > >= && || !
- Delimiters: ( ) { } [ ] ; ,

Comments
--------
- Single-line: // comment
- Multi-line: /* comment */

Example Usage
-------------
>>> from automatic.compiler.lexer import Lexer
>>> for token in Lexer('int x = 42;', "test.mc").tokenize():
...     print(token)
Token(INT, 'int', 1:1)
Token(IDENTIFIER, 'x', 1:5)
Token(ASSIGN, '=', 1:7)
Token(INT_LITERAL, 42, 1:9)
Token(SEMICOLON, ';', 1:11)
Token(EOF, 1:12)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, Union
import string

from automatic.errors import SourceLocation
from automatic.compiler.errors import (
    LexicalError,
    UnterminatedStringError,
    InvalidCharacterError,
)


# Largest integer literal that fits a signed 32-bit int
INT_MAX = 2**31 - 1


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token types for the autoMATic language.

    Keywords are distinguished from identifiers to simplify parsing.
    """

    # === Structural Tokens ===
    EOF = auto()

    # === Identifiers and Literals ===
    IDENTIFIER = auto()
    INT_LITERAL = auto()
    FLOAT_LITERAL = auto()
    STRING_LITERAL = auto()

    # === Keywords - Types ===
    INT = auto()            # int
    BOOL = auto()           # bool
    FLOAT = auto()          # float
    VOID = auto()           # void
    STRING = auto()         # string
    MATRIX = auto()         # matrix
    AUTO = auto()           # auto

    # === Keywords - Control Flow ===
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    RETURN = auto()

    # === Keywords - Literals ===
    TRUE = auto()
    FALSE = auto()

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    GT = auto()             # >
    LE = auto()             # <=
    GE = auto()             # >=

    # === Logical Operators ===
    AND = auto()            # &&
    OR = auto()             # ||
    NOT = auto()            # !

    # === Assignment ===
    ASSIGN = auto()         # =

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    LBRACKET = auto()       # [
    RBRACKET = auto()       # ]
    SEMICOLON = auto()      # ;
    COMMA = auto()          # ,


# =============================================================================
# Keyword Mapping
# =============================================================================

KEYWORDS: dict[str, TokenType] = {
    # Types
    "int": TokenType.INT,
    "bool": TokenType.BOOL,
    "float": TokenType.FLOAT,
    "void": TokenType.VOID,
    "string": TokenType.STRING,
    "matrix": TokenType.MATRIX,
    "auto": TokenType.AUTO,

    # Control flow
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "return": TokenType.RETURN,

    # Boolean literals
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

TYPE_KEYWORDS = frozenset({
    TokenType.INT,
    TokenType.BOOL,
    TokenType.FLOAT,
    TokenType.VOID,
    TokenType.STRING,
    TokenType.MATRIX,
    TokenType.AUTO,
})


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from autoMATic source code.

    Attributes:
        type: The TokenType classification
        value: Token value (str for names and strings, int or float for
            numeric literals, None for EOF)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: Union[str, int, float, None]
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        """Format token for debugging output."""
        if self.value is not None:
            if isinstance(self.value, (int, float)):
                return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_type_keyword(self) -> bool:
        """Return True if this token starts a type."""
        return self.type in TYPE_KEYWORDS


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes autoMATic source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"
    DIGITS = frozenset(string.digits)

    SINGLE_TOKENS = {
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.STAR,
        "/": TokenType.SLASH,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "{": TokenType.LBRACE,
        "}": TokenType.RBRACE,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        ";": TokenType.SEMICOLON,
        ",": TokenType.COMMA,
    }

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, always ending with EOF

        Raises:
            LexicalError: If invalid input is encountered
        """
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                break
            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: Union[str, int, float, None],
        start_line: Optional[int] = None,
        start_column: Optional[int] = None,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line or self._line,
            column=start_column or self._column,
            filename=self.filename,
        )

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r\f\v":
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue

            break

    def _skip_block_comment(self) -> None:
        start_line = self._line
        start_col = self._column

        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise LexicalError(
            "unterminated block comment",
            SourceLocation(self.filename, start_line, start_col),
            hint="add closing */ to terminate the comment",
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column

        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(start_line, start_column)

        if char in self.DIGITS:
            return self._scan_number(start_line, start_column)

        if char == '"':
            return self._scan_string(start_line, start_column)

        return self._scan_operator(start_line, start_column)

    def _scan_identifier(self, start_line: int, start_column: int) -> Token:
        """Scan an identifier or keyword."""
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)
        token_type = KEYWORDS.get(name, TokenType.IDENTIFIER)
        return self._make_token(token_type, name, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan an integer or float literal.

        A float needs digits on both sides of the point: '1.5' is a
        float, '1.' is the integer 1 followed by an invalid '.'.
        """
        chars = []
        while self._peek() in self.DIGITS:
            chars.append(self._advance())

        if self._peek() == "." and self._peek(1) in self.DIGITS:
            chars.append(self._advance())
            while self._peek() in self.DIGITS:
                chars.append(self._advance())
            return self._make_token(
                TokenType.FLOAT_LITERAL,
                float("".join(chars)),
                start_line,
                start_column,
            )

        text = "".join(chars)
        value = int(text)
        if value > INT_MAX:
            raise LexicalError(
                f"integer literal '{text}' out of range",
                SourceLocation(self.filename, start_line, start_column),
                hint=f"integer literals must not exceed {INT_MAX}",
                source_line=self._get_current_line(),
            )
        return self._make_token(TokenType.INT_LITERAL, value, start_line, start_column)

    def _scan_string(self, start_line: int, start_column: int) -> Token:
        """Scan a double-quoted string literal. There are no escapes."""
        self._advance()  # opening "

        chars = []
        while not self._at_end() and self._peek() not in ('"', "\n"):
            chars.append(self._advance())

        if not self._match('"'):
            raise UnterminatedStringError(
                SourceLocation(self.filename, start_line, start_column),
                self._get_current_line(),
            )

        return self._make_token(
            TokenType.STRING_LITERAL,
            "".join(chars),
            start_line,
            start_column,
        )

    def _scan_operator(self, start_line: int, start_column: int) -> Token:
        char = self._advance()

        if char == "=":
            if self._match("="):
                return self._make_token(TokenType.EQ, "==", start_line, start_column)
            return self._make_token(TokenType.ASSIGN, "=", start_line, start_column)

        if char == "!":
            if self._match("="):
                return self._make_token(TokenType.NE, "!=", start_line, start_column)
            return self._make_token(TokenType.NOT, "!", start_line, start_column)

        if char == "<":
            if self._match("="):
                return self._make_token(TokenType.LE, "<=", start_line, start_column)
            return self._make_token(TokenType.LT, "<", start_line, start_column)

        if char == ">":
            if self._match("="):
                return self._make_token(TokenType.GE, ">=", start_line, start_column)
            return self._make_token(TokenType.GT, ">", start_line, start_column)

        if char == "&" and self._match("&"):
            return self._make_token(TokenType.AND, "&&", start_line, start_column)

        if char == "|" and self._match("|"):
            return self._make_token(TokenType.OR, "||", start_line, start_column)

        if char in self.SINGLE_TOKENS:
            return self._make_token(self.SINGLE_TOKENS[char], char, start_line, start_column)

        raise InvalidCharacterError(
            char,
            SourceLocation(self.filename, start_line, start_column),
            self._get_current_line(),
        )

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize SOURCE into a list ending with an EOF token."""
    return list(Lexer(source, filename).tokenize())
