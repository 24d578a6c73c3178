"""
autoMATic - A Matrix Language Compiler for LLVM
===============================================

autoMATic is a small statically typed, C-like language whose distinctive
feature is the fixed-size matrix type ``matrix<elem, rows, cols>``. This
package compiles autoMATic programs to LLVM IR.

Main Components
---------------
- **compiler**: preprocessor, lexer, parser, semantic analyzer and LLVM
  code generator
- **cli**: the ``automc`` command-line compiler

Quick Start
-----------
Compile a program:
    >>> from automatic import compile_source
    >>> ir_text = compile_source('int main() { print(1 + 2); return 0; }')

Or use the command-line tool:
    $ automc hello.mc -o hello.ll
    $ lli hello.ll
"""

__version__ = "1.0.0"

from automatic.errors import AutomaticError, SourceLocation
from automatic.compiler import (
    AutomaticCompiler,
    CompilerOptions,
    CompilerResult,
    CompilerError,
    compile_source,
    compile_file,
)

__all__ = [
    "__version__",
    "AutomaticError",
    "SourceLocation",
    "AutomaticCompiler",
    "CompilerOptions",
    "CompilerResult",
    "CompilerError",
    "compile_source",
    "compile_file",
]
