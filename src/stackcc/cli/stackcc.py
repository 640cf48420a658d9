"""
stackcc - Compiler Command-Line Interface
=========================================

Usage Examples
--------------
Basic compilation:
    $ stackcc prog.c

With output file:
    $ stackcc prog.c -o prog.asm

Inspect the front end:
    $ stackcc --tokens prog.c
    $ stackcc --ast prog.c

Full pipeline to an executable:
    $ stackcc prog.c && nasm -f elf32 prog.asm && ld -m elf_i386 prog.o -o prog
"""

import logging
from pathlib import Path
from typing import Optional

import click

from stackcc import __version__
from stackcc.ast import ASTPrinter
from stackcc.cli.errors import handle_cli_exception
from stackcc.compiler import CompilerOptions, StackCCompiler

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: input.asm)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token list and exit (for debugging)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the AST and exit (for debugging)",
)
@click.option(
    "--no-runtime",
    is_flag=True,
    help="Library mode: omit the _start entry stub",
)
@click.option(
    "--entry",
    default="main",
    show_default=True,
    help="Function called by the _start entry stub",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="stackcc")
def main(
    input_file: Path,
    output: Optional[Path],
    tokens: bool,
    ast: bool,
    no_runtime: bool,
    entry: str,
    verbose: bool,
) -> None:
    """
    Compile a tiny C program to 32-bit NASM assembly.

    INPUT_FILE is the source file (.c) to compile.

    \b
    Examples:
        stackcc prog.c               # Outputs prog.asm
        stackcc prog.c -o out.asm    # Specify output file
        stackcc --ast prog.c         # Dump the syntax tree
        stackcc --no-runtime lib.c   # No _start stub

    \b
    Supported language:
        - Global int/float/char declarations
        - Functions without parameters
        - return, expression and block statements
        - Integer literals, +, -, =, calls
    """
    setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".asm")

    options = CompilerOptions(emit_runtime=not no_runtime, entry_point=entry)

    try:
        source = input_file.read_text(encoding="utf-8")
        compiler = StackCCompiler(options)

        if tokens:
            for token in compiler.grammar.lex(source, str(input_file)):
                click.echo(repr(token))
            return

        if ast:
            tree = compiler.parse_source(source, str(input_file))
            click.echo(ASTPrinter().print(tree))
            return

        result = compiler.compile_source(source, str(input_file))
        output.write_text(result.assembly, encoding="utf-8")

        if verbose:
            click.echo(f"Tokenized: {result.token_count} tokens")
            click.echo(f"Parsed: {len(result.ast)} top-level items")
            click.echo(f"Wrote {len(result.assembly)} bytes to {output}")

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
