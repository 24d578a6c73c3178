"""
automc - autoMATic Compiler Command-Line Interface
==================================================

This module implements the command-line interface for the autoMATic
compiler. It reads one source unit (a file, or standard input) and
writes LLVM IR that can be run with ``lli`` or compiled with ``llc``.

Usage Examples
--------------
Compile to standard output:
    $ automc matmul.mc

With output file:
    $ automc matmul.mc -o matmul.ll

With include path and predefined macros:
    $ automc -I ./lib -D DEBUG -D SIZE=4 matmul.mc

Run the result:
    $ automc matmul.mc | lli

Verbose mode:
    $ automc -v matmul.mc
"""

import logging
from pathlib import Path
from typing import Optional

import click

from automatic import __version__
from automatic.compiler import AutomaticCompiler, CompilerOptions
from automatic.compiler.ast import ASTPrinter
from automatic.cli.errors import handle_cli_exception

logger = logging.getLogger(__name__)


def parse_defines(
    ctx: click.Context,
    param: click.Parameter,
    values: tuple[str, ...],
) -> dict[str, Optional[str]]:
    """Turn repeated ``-D NAME[=VALUE]`` options into a macro table."""
    defines: dict[str, Optional[str]] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not name:
            raise click.BadParameter(f"missing macro name in '{item}'", ctx=ctx, param=param)
        defines[name] = value if sep else None
    return defines


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    default="-",
    type=click.Path(exists=True, dir_okay=False, allow_dash=True),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output IR file (default: standard output)",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-D", "--define",
    "defines",
    multiple=True,
    callback=parse_defines,
    metavar="NAME[=VALUE]",
    help="Predefine a macro (can be repeated)",
)
@click.option(
    "-E", "--preprocess-only",
    is_flag=True,
    help="Preprocess only, output to stdout",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "--module-name",
    default="autoMATic",
    show_default=True,
    help="Name of the generated LLVM module",
)
@click.option(
    "--triple",
    default=None,
    help="Target triple to record in the module",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="automc")
def main(
    input_file: str,
    output: Optional[Path],
    include: tuple[Path, ...],
    defines: dict[str, Optional[str]],
    preprocess_only: bool,
    ast: bool,
    module_name: str,
    triple: Optional[str],
    verbose: bool,
) -> None:
    """
    Compile autoMATic source code to LLVM IR.

    INPUT_FILE is the source file to compile; '-' (the default) reads
    standard input.

    \b
    Examples:
        automc matmul.mc               # IR on stdout
        automc matmul.mc -o out.ll     # Specify output file
        automc -I lib/ matmul.mc       # Add include path
        automc -D SIZE=4 matmul.mc     # Predefine a macro
        automc -E matmul.mc            # Preprocess only
        automc --ast matmul.mc         # Show the syntax tree
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    include_paths = [str(p) for p in include] + ["."]
    if input_file == "-":
        filename = "<stdin>"
    else:
        filename = input_file

    options = CompilerOptions(
        include_paths=include_paths,
        defines=defines,
        module_name=module_name,
        target_triple=triple,
    )

    try:
        with click.open_file(input_file, "r", encoding="utf-8") as stream:
            source = stream.read()

        logger.debug(f"compiling {filename}, include paths: {', '.join(include_paths)}")
        compiler = AutomaticCompiler(options)

        # Preprocess only mode
        if preprocess_only:
            click.echo(compiler.preprocess(source, filename), nl=False)
            return

        # AST dump mode
        if ast:
            click.echo(ASTPrinter().print(compiler.parse(source, filename)))
            return

        result = compiler.compile_source(source, filename)

        if output is None:
            click.echo(result.ir)
        else:
            output.write_text(result.ir, encoding="utf-8")
            if verbose:
                click.echo(f"Compiled {filename} -> {output}", err=True)

        logger.debug(
            f"{result.token_count} tokens, {len(result.ast.declarations)} declarations"
        )

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
