"""
tcc - TCode Compiler Command-Line Interface
===========================================

This module implements the command-line interface for the TCode compiler.
It compiles TCode programs into 8051 assembly from the terminal.

Usage Examples
--------------
Basic compilation:
    $ tcc blink.tc

With output file:
    $ tcc blink.tc -o blink.asm

With include path:
    $ tcc -I ./lib blink.tc

Print the parsed command tree:
    $ tcc --ast blink.tc

Verbose mode:
    $ tcc -v blink.tc
"""

import logging
from pathlib import Path
from typing import Optional

import click

from tcode import __version__
from tcode.cli.errors import handle_cli_exception
from tcode.compiler import TCodeCompiler, CompilerOptions
from tcode.compiler.commands import CommandPrinter


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
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the parsed command tree and exit (for debugging)",
)
@click.option(
    "--no-guard",
    is_flag=True,
    help="Do not disable interrupts around main-program commands",
)
@click.option(
    "-c", "--comments",
    is_flag=True,
    help="Echo each source line as a comment in the assembly",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="tcc")
def main(
    input_file: Path,
    output: Optional[Path],
    include: tuple[Path, ...],
    ast: bool,
    no_guard: bool,
    comments: bool,
    verbose: bool,
) -> None:
    """
    Compile TCode source for the 8051 microcontroller.

    INPUT_FILE is the TCode source file to compile.

    The compiler produces 8051 assembly that includes the register
    definition file reg8051.inc and can be fed to any 8051 assembler.

    \b
    Examples:
        tcc blink.tc                 # Outputs blink.asm
        tcc blink.tc -o out.asm      # Specify output file
        tcc -I lib/ blink.tc         # Add include path
        tcc --ast blink.tc           # Print command tree
        tcc -v blink.tc              # Verbose output

    \b
    Language features:
        - bool, int, char and cint variables mapped onto internal RAM
        - if/else, while, fortil loops and plain blocks
        - Methods with parameters and return values
        - Timer, counter and external interrupt handlers
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if output is None:
        output = input_file.with_suffix(".asm")

    options = CompilerOptions(
        include_paths=[str(p) for p in include],
        output_comments=comments,
        guard_interrupts=not no_guard,
    )

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...")
            if options.include_paths:
                click.echo(f"Include paths: {', '.join(options.include_paths)}")

        compiler = TCodeCompiler(options)
        result = compiler.compile_file(str(input_file))
        if result.error is not None:
            handle_cli_exception(result.error, verbose)

        if ast:
            printer = CommandPrinter()
            click.echo(printer.print(result.program))
            return

        output.write_text(result.assembly, encoding="utf-8")

        if verbose:
            program = result.program
            click.echo(f"Wrote {len(result.assembly)} bytes to {output}")
            click.echo(
                f"Parsed: {len(program.commands)} commands, "
                f"{len(program.methods)} methods, "
                f"{len(program.interrupts)} interrupt handlers"
            )

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
