"""
stackcc Compiler Main Module
============================

This module provides the main compiler interface. It orchestrates the
complete compilation process:

    Source → Lex → Parse → Generate → Assembly

Usage
-----
Command line:
    $ stackcc prog.c -o prog.asm

Programmatic:
    >>> from stackcc import compile_c
    >>> asm = compile_c('int main() { return 0; }')

The output is NASM source for 32-bit x86. Assemble and link it with:

    $ nasm -f elf32 prog.asm && ld -m elf_i386 prog.o -o prog

Error Handling
--------------
Compilation stops at the first error. Lexical errors come from the
lexer; a program that does not parse as a whole raises ParseError
pointing at the furthest token the parser reached; constructs without
an emission rule raise CodeGenError.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from stackcc.ast import Node
from stackcc.codegen import CodeGenerator
from stackcc.combinators import TokenStream
from stackcc.errors import ParseError
from stackcc.grammar import Grammar, default_grammar
from stackcc.lexer import Token, TokenKind

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        emit_runtime: If True (default), emit the _start entry stub that
            calls the entry point and exits with its return value. Set to
            False for "library mode" output containing only the user's
            functions and globals.
        entry_point: Name of the function _start calls.
    """
    emit_runtime: bool = True
    entry_point: str = "main"


@dataclass
class CompilerResult:
    """
    Result of compiling one source text.

    Attributes:
        filename: Source filename
        tokens: Token list produced by the lexer
        ast: The translation_unit node
        assembly: Generated assembly text
        success: True if every stage completed
    """
    filename: str = "<input>"
    tokens: list[Token] = field(default_factory=list)
    ast: Optional[Node] = None
    assembly: str = ""
    success: bool = False

    @property
    def token_count(self) -> int:
        return len(self.tokens)


class StackCCompiler:
    """
    Compiler for the stackcc language.

    Example:
        compiler = StackCCompiler()
        result = compiler.compile_file("prog.c")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
        grammar: Rule graph used for lexing and parsing
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        grammar: Optional[Grammar] = None,
    ):
        self.options = options or CompilerOptions()
        self.grammar = grammar or default_grammar()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile source code to assembly.

        Raises:
            LexicalError: If the source contains unrecognized input
            ParseError: If the source is not a complete program
            CodeGenError: If a construct has no emission rule
        """
        result = CompilerResult(filename=filename)

        # Stage 1: Lexical analysis
        result.tokens = self.grammar.lex(source, filename)
        logger.debug("%s: %d tokens", filename, result.token_count)

        # Stage 2: Parsing
        result.ast = self._parse(result.tokens, source)
        logger.debug("%s: %d top-level items", filename, len(result.ast))

        # Stage 3: Code generation
        generator = CodeGenerator(
            emit_runtime=self.options.emit_runtime,
            entry_point=self.options.entry_point,
        )
        result.assembly = generator.generate(result.ast)
        result.success = True
        logger.debug("%s: %d bytes of assembly", filename, len(result.assembly))

        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile a source file to assembly.

        Raises:
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")
        return self.compile_source(path.read_text(encoding="utf-8"), str(path))

    def parse_source(self, source: str, filename: str = "<input>") -> Node:
        """
        Lex and parse source code without generating assembly.

        Raises:
            LexicalError: If the source contains unrecognized input
            ParseError: If the source is not a complete program
        """
        return self._parse(self.grammar.lex(source, filename), source)

    def _parse(self, tokens: list[Token], source: str) -> Node:
        stream = TokenStream(tokens)
        try:
            ast = self.grammar.parse_stream(stream)
        except RecursionError:
            # Every nesting level costs a fixed run of combinator frames
            raise self._parse_error(stream, source, reason="nesting too deep") from None
        if ast is None:
            raise self._parse_error(stream, source)
        return ast

    @staticmethod
    def _parse_error(
        stream: TokenStream,
        source: str,
        reason: Optional[str] = None,
    ) -> ParseError:
        """Point the error at the token where the parser stopped making progress."""
        token = stream.furthest_token()
        lines = source.splitlines()
        source_line = lines[token.line - 1] if 0 < token.line <= len(lines) else None
        found = "" if token.kind is TokenKind.EOF else token.text
        return ParseError(found, token.location, source_line=source_line, reason=reason)


def compile_c(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile source code and return the assembly text.

    Raises:
        StackCCError: If compilation fails
    """
    return StackCCompiler(options).compile_source(source, filename).assembly


def compile_file(filepath: str, options: Optional[CompilerOptions] = None) -> str:
    """Compile a source file and return the assembly text."""
    return StackCCompiler(options).compile_file(filepath).assembly
