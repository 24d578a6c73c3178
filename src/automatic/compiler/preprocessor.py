"""
autoMATic Preprocessor
======================

This module implements the directive-driven preprocessor that runs before
the language lexer. It handles:
- #define macros (boolean flags and single-token values)
- #undef
- #include directives
- Conditional inclusion (#ifdef, #ifndef, #end)

The preprocessor works on a token stream produced by its own scanner
(PPScanner) rather than on regular expressions over whole lines. The
scanner knows only uppercase identifiers, so macro names are always
written in capitals and ordinary lowercase program text flows through
untouched.

Supported Directives
--------------------
#include "file"           - Splice another unit's preprocessed text
#define NAME             - Define NAME (boolean, for #ifdef only)
#define NAME value       - Define NAME as an integer, string or NAME
#undef NAME              - Remove NAME (no error if undefined)
#ifdef NAME ... #end     - Keep region if NAME is defined
#ifndef NAME ... #end    - Keep region if NAME is not defined

Directive keywords are case-insensitive: '#define' and '#DEFINE' are the
same directive. A directive must be the first non-blank text on its line.

Line Structure
--------------
Whitespace, line ends and comments are re-emitted verbatim. A directive
line and every line of an excluded region are replaced by a bare line
end, so line numbers in the main unit survive preprocessing up to the
first #include.

Example
-------
>>> from automatic.compiler.preprocessor import Preprocessor
>>> source = '''#define SIZE 3
... int f() { return SIZE; }
... '''
>>> print(Preprocessor(source, "test.mc").process())
<BLANKLINE>
int f() { return 3; }
<BLANKLINE>
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional

from automatic.errors import SourceLocation
from automatic.compiler.errors import (
    LexicalError,
    UnterminatedStringError,
    PreprocessorError,
    IncludeError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Scanner Tokens
# =============================================================================

class PPTokenType(Enum):
    """
    Token kinds produced by the preprocessor scanner.
    """

    # === Structural ===
    EOF = auto()
    NEWLINE = auto()
    WHITESPACE = auto()     # run of blanks, tabs, carriage returns
    COMMENT = auto()        # // or /* */ comment, passed through verbatim

    # === Values ===
    IDENTIFIER = auto()     # [A-Z_][A-Z0-9_]*
    INTEGER = auto()        # digit run
    STRING = auto()         # "..." without escapes

    # === Directive keywords (only after a leading '#') ===
    INCLUDE = auto()
    DEFINE = auto()
    UNDEF = auto()
    IFDEF = auto()
    IFNDEF = auto()
    END = auto()

    # === Anything else, one character at a time ===
    CHAR = auto()


DIRECTIVES: dict[str, PPTokenType] = {
    "INCLUDE": PPTokenType.INCLUDE,
    "DEFINE": PPTokenType.DEFINE,
    "UNDEF": PPTokenType.UNDEF,
    "IFDEF": PPTokenType.IFDEF,
    "IFNDEF": PPTokenType.IFNDEF,
    "END": PPTokenType.END,
}

# Token kinds allowed as the value of '#define NAME value'
MACRO_VALUE_TYPES = (PPTokenType.INTEGER, PPTokenType.STRING, PPTokenType.IDENTIFIER)


@dataclass(frozen=True)
class PPToken:
    """
    A single preprocessor scanner token.

    Attributes:
        type: Token kind
        text: Exact source text of the token
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        glued: For identifiers, True when a letter, digit or underscore
            touches the identifier on either side (such text is never
            substituted)
        value: Decoded value (int for INTEGER, str contents for STRING)
    """
    type: PPTokenType
    text: str
    line: int
    column: int
    glued: bool = False
    value: Optional[object] = None


# =============================================================================
# Scanner
# =============================================================================

class PPScanner:
    """
    Splits raw source text into PPToken objects.

    Besides ordinary tokenizing, the scanner can skip an excluded
    conditional region without tokenizing it (see skip_region), which
    keeps stray quotes or characters inside dead code from causing
    errors.
    """

    IDENT_START = "ABCDEFGHIJKLMNOPQRSTUVWXYZ_"
    IDENT_CHARS = IDENT_START + "0123456789"
    DIGITS = frozenset("0123456789")

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

        # True while only blanks have been seen on the current line
        self._at_line_start = True

    def tokens(self) -> Iterator[PPToken]:
        """Yield tokens up to and including EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.type == PPTokenType.EOF:
                return

    # =========================================================================
    # Character Access
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

    def _current_line_text(self) -> str:
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    def location(self) -> SourceLocation:
        """Return the scanner's current position."""
        return SourceLocation(self.filename, self._line, self._column)

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def next_token(self) -> PPToken:
        """
        Scan and return the next token.

        Raises:
            LexicalError: On an unterminated string or block comment
            PreprocessorError: On an unknown directive keyword
        """
        line = self._line
        column = self._column
        start = self._pos

        if self._at_end():
            return PPToken(PPTokenType.EOF, "", line, column)

        char = self._peek()

        if char == "\n":
            self._advance()
            self._at_line_start = True
            return PPToken(PPTokenType.NEWLINE, "\n", line, column)

        if char in " \t\r\f\v":
            while self._peek() and self._peek() in " \t\r\f\v":
                self._advance()
            return PPToken(PPTokenType.WHITESPACE, self.source[start:self._pos], line, column)

        if char == "/" and self._peek(1) in ("/", "*"):
            self._scan_comment(line, column)
            return PPToken(PPTokenType.COMMENT, self.source[start:self._pos], line, column)

        at_line_start = self._at_line_start
        self._at_line_start = False

        if char == "#" and at_line_start:
            return self._scan_directive(line, column)

        if char == '"':
            return self._scan_string(line, column)

        if char in self.DIGITS:
            while self._peek() in self.DIGITS:
                self._advance()
            text = self.source[start:self._pos]
            return PPToken(PPTokenType.INTEGER, text, line, column, value=int(text))

        if char in self.IDENT_START:
            return self._scan_identifier(line, column)

        self._advance()
        return PPToken(PPTokenType.CHAR, char, line, column)

    def _scan_comment(self, line: int, column: int) -> None:
        """Consume a // or /* */ comment."""
        self._advance()
        if self._advance() == "/":
            while not self._at_end() and self._peek() != "\n":
                self._advance()
            return

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise LexicalError(
            "unterminated block comment",
            SourceLocation(self.filename, line, column),
            hint="add closing */ to terminate the comment",
        )

    def _scan_string(self, line: int, column: int) -> PPToken:
        """Scan a double-quoted string. No escape sequences are recognized."""
        start = self._pos
        self._advance()  # opening "

        while not self._at_end() and self._peek() not in ('"', "\n"):
            self._advance()

        if self._peek() != '"':
            raise UnterminatedStringError(
                SourceLocation(self.filename, line, column),
                self._current_line_text(),
            )

        self._advance()  # closing "
        text = self.source[start:self._pos]
        return PPToken(PPTokenType.STRING, text, line, column, value=text[1:-1])

    def _scan_identifier(self, line: int, column: int) -> PPToken:
        start = self._pos
        while self._peek() and self._peek() in self.IDENT_CHARS:
            self._advance()

        before = self.source[start - 1] if start > 0 else ""
        after = self._peek()
        glued = _is_word_char(before) or _is_word_char(after)

        return PPToken(
            PPTokenType.IDENTIFIER,
            self.source[start:self._pos],
            line,
            column,
            glued=glued,
        )

    def _scan_directive(self, line: int, column: int) -> PPToken:
        """Scan '#', interleaved blanks and the directive keyword."""
        start = self._pos
        self._advance()  # '#'

        while self._peek() in (" ", "\t"):
            self._advance()

        word_start = self._pos
        while self._peek().isalpha():
            self._advance()
        word = self.source[word_start:self._pos]

        token_type = DIRECTIVES.get(word.upper())
        if token_type is None:
            raise PreprocessorError(
                f"malformed directive '#{word}'" if word else "malformed directive '#'",
                SourceLocation(self.filename, line, column),
                hint="known directives: #include, #define, #undef, #ifdef, #ifndef, #end",
                source_line=self._current_line_text(),
            )

        return PPToken(token_type, self.source[start:self._pos], line, column)

    # =========================================================================
    # Excluded Regions
    # =========================================================================

    def skip_region(self, start: SourceLocation) -> int:
        """
        Skip raw lines up to and including the matching '#end' line.

        Only directive lines are examined: '#ifdef' and '#ifndef' open a
        nested region, '#end' closes one. Nothing else in the region is
        tokenized.

        Args:
            start: Location of the conditional that opened the region

        Returns:
            The number of line ends consumed

        Raises:
            PreprocessorError: If the unit ends before the matching '#end'
        """
        depth = 1
        newlines = 0

        while not self._at_end():
            line_end = self.source.find("\n", self._pos)
            if line_end == -1:
                line_end = len(self.source)
            text = self.source[self._pos:line_end].strip()

            # Consume the line, keeping line/column bookkeeping intact
            while self._pos < line_end:
                self._advance()
            if self._peek() == "\n":
                self._advance()
                newlines += 1
            self._at_line_start = True

            if not text.startswith("#"):
                continue

            keyword = text[1:].lstrip(" \t")
            word = ""
            for ch in keyword:
                if not ch.isalpha():
                    break
                word += ch
            word = word.upper()

            if word in ("IFDEF", "IFNDEF"):
                depth += 1
            elif word == "END":
                depth -= 1
                if depth == 0:
                    return newlines

        raise PreprocessorError(
            "unterminated conditional: missing '#end'",
            start,
        )


def _is_word_char(char: str) -> bool:
    return bool(char) and (char.isalnum() or char == "_")


# =============================================================================
# Macros
# =============================================================================

@dataclass
class Macro:
    """
    A preprocessor macro.

    Attributes:
        name: Macro name (uppercase identifier)
        value: Replacement token, or None for a boolean macro
        location: Where the macro was defined (None for predefined)
    """
    name: str
    value: Optional[PPToken] = None
    location: Optional[SourceLocation] = None

    @property
    def is_boolean(self) -> bool:
        """Return True if this macro only marks NAME as defined."""
        return self.value is None


# =============================================================================
# Preprocessor
# =============================================================================

class Preprocessor:
    """
    Preprocessor for autoMATic source code.

    Processes #define, #undef, #include and conditional directives,
    producing expanded source text for the language lexer. One instance
    handles one compilation: its macro table starts from the predefined
    macros and is mutated as directives are encountered.

    Attributes:
        source: Original source code
        filename: Source filename for error reporting and include lookup
        include_paths: Directories to search for include files
    """

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        include_paths: Optional[list[str]] = None,
        defines: Optional[dict[str, Optional[str]]] = None,
    ):
        """
        Initialize the preprocessor.

        Args:
            source: Source code to preprocess
            filename: Source filename for error reporting
            include_paths: Directories to search for includes
            defines: Predefined macros, name -> value text (None for a
                boolean macro). Values must scan as a single integer,
                string or identifier token.
        """
        self.source = source
        self.filename = filename
        self.include_paths = include_paths or ["."]

        self._macros: dict[str, Macro] = {}

        # Include stack to detect circular includes
        self._include_stack: list[str] = []

        for name, value in (defines or {}).items():
            self.define(name, value)

    # =========================================================================
    # Macro Table
    # =========================================================================

    def define(self, name: str, value: Optional[str] = None) -> None:
        """
        Define a macro from text.

        Raises:
            PreprocessorError: If NAME is not an uppercase identifier or
                the value is not exactly one integer, string or identifier
        """
        name_tokens = _significant_tokens(name, "<command line>")
        if len(name_tokens) != 1 or name_tokens[0].type != PPTokenType.IDENTIFIER:
            raise PreprocessorError(
                f"invalid macro name '{name}'",
                hint="macro names are uppercase identifiers like MAX_SIZE",
            )

        token = None
        if value is not None:
            value_tokens = _significant_tokens(value, "<command line>")
            if len(value_tokens) != 1 or value_tokens[0].type not in MACRO_VALUE_TYPES:
                raise PreprocessorError(
                    f"invalid value '{value}' for macro '{name}'",
                    hint="a macro value is one integer, string or macro name",
                )
            token = value_tokens[0]

        self._macros[name] = Macro(name, token)

    def is_defined(self, name: str) -> bool:
        """Return True if NAME is currently defined."""
        return name in self._macros

    def get_macros(self) -> dict[str, Macro]:
        """Return a copy of the macro table."""
        return dict(self._macros)

    # =========================================================================
    # Processing
    # =========================================================================

    def process(self) -> str:
        """
        Process the source code and return the expanded result.

        Returns:
            Preprocessed source code with macros substituted, includes
            spliced and excluded regions removed.

        Raises:
            LexicalError: If preprocessing fails (PreprocessorError and
                IncludeError are subclasses)
        """
        self._include_stack = [self._unit_key(self.filename)]
        return self._process_unit(self.source, self.filename)

    def _process_unit(self, source: str, filename: str) -> str:
        """Preprocess one unit (the main file or an included one)."""
        scanner = PPScanner(source, filename)
        output: list[str] = []

        # Locations of the currently open (taken) conditionals
        open_conditionals: list[SourceLocation] = []

        token = scanner.next_token()
        while token.type != PPTokenType.EOF:
            if token.type in DIRECTIVES.values():
                self._process_directive(token, scanner, output, open_conditionals)
            elif token.type == PPTokenType.IDENTIFIER:
                output.append(self._expand(token))
            else:
                output.append(token.text)
            token = scanner.next_token()

        if open_conditionals:
            raise PreprocessorError(
                "unterminated conditional: missing '#end'",
                open_conditionals[-1],
            )

        return "".join(output)

    def _process_directive(
        self,
        directive: PPToken,
        scanner: PPScanner,
        output: list[str],
        open_conditionals: list[SourceLocation],
    ) -> None:
        """Process one directive line, consuming its line end."""
        location = SourceLocation(scanner.filename, directive.line, directive.column)
        args, ended_with_newline = self._read_arguments(scanner)
        keyword = directive.type.name.lower()

        if directive.type == PPTokenType.INCLUDE:
            if len(args) != 1 or args[0].type != PPTokenType.STRING:
                raise self._malformed(keyword, location, 'expected #include "file"')
            output.append(self._process_include(args[0].value, location))

        elif directive.type == PPTokenType.DEFINE:
            if not (1 <= len(args) <= 2) or args[0].type != PPTokenType.IDENTIFIER:
                raise self._malformed(keyword, location, "expected #define NAME [value]")
            if len(args) == 2 and args[1].type not in MACRO_VALUE_TYPES:
                raise self._malformed(
                    keyword, location, "a macro value is one integer, string or macro name"
                )
            name = args[0].text
            value = args[1] if len(args) == 2 else None
            self._macros[name] = Macro(name, value, location)
            logger.debug(f"{location}: define {name} = {value.text if value else '(flag)'}")

        elif directive.type == PPTokenType.UNDEF:
            if len(args) != 1 or args[0].type != PPTokenType.IDENTIFIER:
                raise self._malformed(keyword, location, "expected #undef NAME")
            self._macros.pop(args[0].text, None)

        elif directive.type in (PPTokenType.IFDEF, PPTokenType.IFNDEF):
            if len(args) != 1 or args[0].type != PPTokenType.IDENTIFIER:
                raise self._malformed(keyword, location, f"expected #{keyword} NAME")
            defined = args[0].text in self._macros
            keep = defined if directive.type == PPTokenType.IFDEF else not defined

            if keep:
                open_conditionals.append(location)
            elif ended_with_newline:
                skipped = scanner.skip_region(location)
                output.append("\n" * skipped)
            else:
                raise PreprocessorError("unterminated conditional: missing '#end'", location)

        elif directive.type == PPTokenType.END:
            if args:
                raise self._malformed(keyword, location, "#end takes no arguments")
            if not open_conditionals:
                raise PreprocessorError(
                    "'#end' without matching '#ifdef' or '#ifndef'",
                    location,
                )
            open_conditionals.pop()

        if ended_with_newline:
            output.append("\n")

    def _read_arguments(self, scanner: PPScanner) -> tuple[list[PPToken], bool]:
        """
        Collect the significant tokens of a directive line.

        Returns:
            Tuple of (argument tokens, True if the line ended with a
            line end rather than end of input)
        """
        args = []
        while True:
            token = scanner.next_token()
            if token.type == PPTokenType.NEWLINE:
                return args, True
            if token.type == PPTokenType.EOF:
                return args, False
            if token.type in (PPTokenType.WHITESPACE, PPTokenType.COMMENT):
                continue
            args.append(token)

    def _malformed(self, keyword: str, location: SourceLocation, hint: str) -> PreprocessorError:
        return PreprocessorError(f"malformed #{keyword} directive", location, hint=hint)

    # =========================================================================
    # Macro Expansion
    # =========================================================================

    def _expand(self, token: PPToken) -> str:
        """Return the replacement text for an identifier token."""
        if token.glued:
            return token.text
        return self._expand_name(token.text, set())

    def _expand_name(self, name: str, expanding: set[str]) -> str:
        macro = self._macros.get(name)
        if macro is None or macro.is_boolean or name in expanding:
            return name

        value = macro.value
        if value.type == PPTokenType.IDENTIFIER:
            expanding.add(name)
            return self._expand_name(value.text, expanding)
        return value.text

    # =========================================================================
    # Includes
    # =========================================================================

    def _process_include(self, target: str, location: SourceLocation) -> str:
        """Resolve, read and preprocess an included unit."""
        current_dir = Path(location.filename).parent
        search_paths = [current_dir] + [Path(p) for p in self.include_paths]

        include_path = None
        for path in search_paths:
            candidate = path / target
            if candidate.is_file():
                include_path = candidate
                break

        if include_path is None:
            raise IncludeError(
                target,
                "file not found",
                location,
                search_paths=[str(p) for p in search_paths],
            )

        key = self._unit_key(str(include_path))
        if key in self._include_stack:
            raise IncludeError(target, "circular include detected", location)

        try:
            include_source = include_path.read_text(encoding="utf-8")
        except OSError as e:
            raise IncludeError(target, str(e), location)

        logger.debug(f"{location}: including {include_path}")

        self._include_stack.append(key)
        try:
            return self._process_unit(include_source, str(include_path))
        finally:
            self._include_stack.pop()

    @staticmethod
    def _unit_key(filename: str) -> str:
        """Return the identity used for circular include detection."""
        path = Path(filename)
        if path.is_file():
            return str(path.resolve())
        return filename


def _significant_tokens(text: str, filename: str) -> list[PPToken]:
    """Scan TEXT, dropping whitespace, comments and line ends."""
    scanner = PPScanner(text, filename)
    return [
        token for token in scanner.tokens()
        if token.type not in (
            PPTokenType.WHITESPACE,
            PPTokenType.COMMENT,
            PPTokenType.NEWLINE,
            PPTokenType.EOF,
        )
    ]


# =============================================================================
# Convenience Function
# =============================================================================

def preprocess(
    source: str,
    filename: str = "<input>",
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, Optional[str]]] = None,
) -> str:
    """
    Preprocess autoMATic source code.

    Args:
        source: Source code to preprocess
        filename: Source filename for error reporting
        include_paths: Directories to search for includes
        defines: Predefined macros (name -> value text or None)

    Returns:
        Preprocessed source code
    """
    return Preprocessor(source, filename, include_paths, defines).process()
