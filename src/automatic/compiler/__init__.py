"""
autoMATic Compiler
==================

This package implements the compiler for autoMATic, a small C-like
language with first-class fixed-size matrices, targeting LLVM IR.

The implementation provides:

- A directive-driven preprocessor (#define, #undef, #include, #ifdef,
  #ifndef, #end)
- A lexer (tokenizer) for autoMATic source code
- A recursive descent parser producing an AST
- A semantic analyzer producing a typed tree over a scope arena
- A code generator emitting LLVM IR through llvmlite

Pipeline
--------
    Source → Preprocessor → Lexer → Parser → AST → Analyzer → Typed tree
           → Code Generator → LLVM IR

Usage
-----
>>> from automatic.compiler import compile_source
>>> source = '''
... int main() {
...     auto m = [[1, 2], [3, 4]];
...     print(rows(m));
...     return 0;
... }
... '''
>>> print(compile_source(source))  # LLVM IR text

Language Summary
----------------
- Types: int, bool, float, string, void, matrix<elem, rows, cols>, auto
- Operators: + - * / == != < <= > >= && || ! unary -, assignment
- Control flow: if/else, while, for, return
- Built-ins: print, printstr, rows, cols
"""

from automatic.compiler.compiler import (
    AutomaticCompiler,
    CompilerOptions,
    CompilerResult,
    compile_source,
    compile_file,
)
from automatic.compiler.errors import (
    CompilerError,
    LexicalError,
    PreprocessorError,
    IncludeError,
    ParseError,
    SemanticError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
    TypeMismatchError,
    ArgumentCountError,
    InternalCompilerError,
)
from automatic.compiler.preprocessor import Preprocessor, preprocess
from automatic.compiler.lexer import Lexer, Token, TokenType, tokenize
from automatic.compiler.parser import Parser, parse_source
from automatic.compiler.semant import SemanticAnalyzer, analyze
from automatic.compiler.codegen import CodeGenerator, generate, desugar_for
from automatic.compiler.ast import ASTPrinter, ProgramNode

__all__ = [
    # Main API
    "AutomaticCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    "compile_file",
    # Errors
    "CompilerError",
    "LexicalError",
    "PreprocessorError",
    "IncludeError",
    "ParseError",
    "SemanticError",
    "UndeclaredIdentifierError",
    "DuplicateDeclarationError",
    "TypeMismatchError",
    "ArgumentCountError",
    "InternalCompilerError",
    # Stages
    "Preprocessor",
    "preprocess",
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    "Parser",
    "parse_source",
    "SemanticAnalyzer",
    "analyze",
    "CodeGenerator",
    "generate",
    "desugar_for",
    # AST
    "ASTPrinter",
    "ProgramNode",
]
