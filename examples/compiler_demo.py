#!/usr/bin/env python3
"""
stackcc Compiler Demo
=====================

This script demonstrates how to use the stackcc API to:
1. Tokenize a program with the grammar's vocabulary
2. Parse it and print the syntax tree
3. Generate assembly, with and without the _start stub
4. Handle compilation errors

Usage:
    python examples/compiler_demo.py

The generated program can be assembled on a Linux host with:
    nasm -f elf32 demo.asm && ld -m elf_i386 demo.o -o demo && ./demo; echo $?
"""

from pathlib import Path

from stackcc import ASTPrinter, CompilerOptions, StackCCError, StackCCompiler

PROGRAM = """\
// Globals are zero-initialized dword cells
int x;
int y;

int seven() {
    return 7;
}

int main() {
    x = 4;
    y = seven();
    return x + y;   // exit status 11
}
"""


def main():
    compiler = StackCCompiler()

    # ==========================================================================
    # 1. Tokens
    # ==========================================================================
    print("Tokens:")
    for token in compiler.grammar.lex(PROGRAM, "demo.c")[:8]:
        print(f"  {token}")
    print("  ...")

    # ==========================================================================
    # 2. Syntax tree
    # ==========================================================================
    result = compiler.compile_source(PROGRAM, "demo.c")
    print("\nAST:")
    print(ASTPrinter().print(result.ast))

    # ==========================================================================
    # 3. Assembly
    # ==========================================================================
    output = Path("demo.asm")
    output.write_text(result.assembly)
    print(f"\nWrote {len(result.assembly)} bytes to {output}:")
    print(result.assembly)

    # Library mode: no _start stub, only functions and globals
    library = StackCCompiler(CompilerOptions(emit_runtime=False))
    print("Library mode:")
    print(library.compile_source("int one() { return 1; }").assembly)

    # ==========================================================================
    # 4. Errors
    # ==========================================================================
    for source in ("int x", "int x; #", "int main() { return 1.5; }"):
        try:
            compiler.compile_source(source, "bad.c")
        except StackCCError as e:
            print(f"{e}\n")


if __name__ == "__main__":
    main()
