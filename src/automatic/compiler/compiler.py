"""
autoMATic Compiler Main Module
==============================

This module provides the main compiler interface for autoMATic.
It orchestrates the complete compilation process:

    Source → Preprocess → Lex → Parse → Analyze → Generate → LLVM IR

Usage
-----
Command line:
    $ automc matmul.mc -o matmul.ll

Programmatic:
    >>> from automatic.compiler import compile_source
    >>> ir_text = compile_source('int main() { print(42); return 0; }')

The generated IR text can be run with ``lli`` or compiled with ``llc``.

Compilation Pipeline
--------------------
1. **Preprocessing**: Expand macros, process includes and conditionals
2. **Lexical Analysis**: Convert source to tokens
3. **Parsing**: Build the Abstract Syntax Tree (AST)
4. **Semantic Analysis**: Resolve scopes and types into the typed tree
5. **Code Generation**: Lower the typed tree to an llvmlite module

Error Handling
--------------
Compilation stops at the first error. The CompilerError raised by the
failing stage propagates out of compile_source unchanged, so no IR is
ever produced for an invalid program.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from llvmlite.ir import Module

from automatic.compiler.preprocessor import Preprocessor
from automatic.compiler.lexer import Lexer, Token
from automatic.compiler.parser import Parser
from automatic.compiler.semant import SemanticAnalyzer
from automatic.compiler.codegen import CodeGenerator
from automatic.compiler.ast import ProgramNode
from automatic.compiler.sast import SProgram

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        include_paths: Directories to search for include files
        defines: Predefined macros, name -> value text (None for a flag)
        module_name: Name given to the generated LLVM module
        target_triple: Target triple written into the module (optional)
    """
    include_paths: list[str] = None
    defines: dict[str, Optional[str]] = field(default_factory=dict)
    module_name: str = "autoMATic"
    target_triple: Optional[str] = None

    def __post_init__(self):
        if self.include_paths is None:
            self.include_paths = ["."]


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        success: True if compilation succeeded
        ir: Generated LLVM IR text
        module: The llvmlite module the IR was printed from
        preprocessed_source: Source after preprocessing
        ast: Abstract syntax tree
        typed_program: Typed tree produced by semantic analysis
        token_count: Number of tokens lexed (excluding EOF)
    """
    filename: str = ""
    success: bool = False
    ir: str = ""
    module: Optional[Module] = None
    preprocessed_source: str = ""
    ast: Optional[ProgramNode] = None
    typed_program: Optional[SProgram] = None
    token_count: int = 0


class AutomaticCompiler:
    """
    autoMATic compiler targeting LLVM IR.

    Each compile call builds a fresh preprocessor, scope arena and code
    generator, so one compiler instance can be reused for many units.

    Example:
        compiler = AutomaticCompiler()
        result = compiler.compile_file("matmul.mc")
        print(result.ir)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        """
        Initialize the compiler.

        Args:
            options: Compiler configuration (uses defaults if None)
        """
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile autoMATic source code to LLVM IR.

        Args:
            source: autoMATic source code string
            filename: Source filename for error messages

        Returns:
            CompilerResult holding the IR and every intermediate form

        Raises:
            CompilerError: On the first lexical, preprocessor, syntax or
                semantic error
        """
        result = CompilerResult(filename=filename)

        result.preprocessed_source = self.preprocess(source, filename)
        tokens = self._lex(result.preprocessed_source, filename)
        result.token_count = len(tokens) - 1

        result.ast = self._parse(tokens, filename, result.preprocessed_source.splitlines())
        result.typed_program = SemanticAnalyzer().analyze(result.ast)

        generator = CodeGenerator(self.options.module_name, self.options.target_triple)
        result.module = generator.generate(result.typed_program)
        result.ir = str(result.module)
        result.success = True

        logger.debug(
            f"compiled {filename}: {result.token_count} tokens, "
            f"{len(result.typed_program.functions)} functions"
        )
        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile an autoMATic source file to LLVM IR.

        Args:
            filepath: Path to the source file

        Returns:
            CompilerResult containing the IR

        Raises:
            CompilerError: If compilation fails
            FileNotFoundError: If the source file is not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        # The preprocessor searches the file's own directory first
        source = path.read_text(encoding="utf-8")

        return self.compile_source(source, filepath)

    def parse(self, source: str, filename: str = "<input>") -> ProgramNode:
        """
        Preprocess, tokenize and parse SOURCE without analyzing it.

        Raises:
            CompilerError: On the first lexical, preprocessor or syntax error
        """
        preprocessed = self.preprocess(source, filename)
        tokens = self._lex(preprocessed, filename)
        return self._parse(tokens, filename, preprocessed.splitlines())

    def preprocess(self, source: str, filename: str = "<input>") -> str:
        """Run the preprocessor with this compiler's include paths and macros."""
        preprocessor = Preprocessor(
            source,
            filename,
            self.options.include_paths,
            self.options.defines,
        )
        return preprocessor.process()

    def _lex(self, source: str, filename: str) -> list[Token]:
        """Tokenize preprocessed source."""
        return list(Lexer(source, filename).tokenize())

    def _parse(self, tokens: list[Token], filename: str, source_lines: list[str]) -> ProgramNode:
        """Parse tokens into AST."""
        return Parser(tokens, filename, source_lines).parse()


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, Optional[str]]] = None,
) -> str:
    """
    Compile autoMATic source code to LLVM IR text.

    This is the primary high-level interface for compiling autoMATic.

    Args:
        source: autoMATic source code
        filename: Source filename for error messages
        include_paths: Directories to search for includes
        defines: Predefined macros

    Returns:
        Generated LLVM IR

    Raises:
        CompilerError: If compilation fails

    Example:
        >>> ir_text = compile_source('''
        ... int main() {
        ...     matrix<int, 2, 2> m = [[1, 2], [3, 4]];
        ...     print(m[1][0]);
        ...     return 0;
        ... }
        ... ''')
    """
    options = CompilerOptions(include_paths=include_paths or ["."], defines=defines or {})
    return AutomaticCompiler(options).compile_source(source, filename).ir


def compile_file(
    filepath: str,
    output_path: Optional[str] = None,
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, Optional[str]]] = None,
) -> str:
    """
    Compile an autoMATic source file to LLVM IR text.

    Args:
        filepath: Path to the source file
        output_path: Optional path to write the IR to
        include_paths: Directories to search for includes
        defines: Predefined macros

    Returns:
        Generated LLVM IR

    Raises:
        CompilerError: If compilation fails
        FileNotFoundError: If the source file is not found

    Example:
        >>> compile_file("matmul.mc", "matmul.ll")
    """
    options = CompilerOptions(include_paths=include_paths or ["."], defines=defines or {})
    result = AutomaticCompiler(options).compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.ir, encoding="utf-8")

    return result.ir
