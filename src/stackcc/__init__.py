"""
stackcc - A Tiny C-to-x86 Stack-Machine Compiler
================================================

This package translates a tiny subset of C into 32-bit NASM assembly
that uses the hardware stack as an evaluation stack.

Pipeline
--------
    Source → Lexer → Token Stream → Combinator Grammar → AST → Code Generator → Assembly

- **lexer**: source text to tokens, driven by the grammar's vocabulary
- **combinators**: a reusable backtracking parser-combinator engine
- **grammar**: the language's rules wired from combinators
- **ast**: the tagged-variant syntax tree
- **codegen**: single-pass tree walk emitting assembly
- **compiler**: the facade tying the stages together

Usage
-----
>>> from stackcc import compile_c
>>> print(compile_c('''
... int x;
... int y;
... int main() {
...     x = 4;
...     y = 7;
...     return x + y;
... }
... '''))

Or from the command line:
    $ stackcc prog.c -o prog.asm

Language Subset
---------------
Supported:
- Global declarations of int, float, char (all become 4-byte cells)
- Function definitions without parameters
- Statements: declaration, expression, return, block
- Expressions: integer literals, identifiers, '+', '-', '=', calls

Not supported:
- Local variables, parameters, call arguments
- Control flow
- Floating-point code generation
- Type checking
"""

__version__ = "1.0.0"

from stackcc.errors import (
    StackCCError,
    SourceLocation,
    LexicalError,
    ParseError,
    GrammarError,
    CodeGenError,
    UnsupportedFeatureError,
    InvalidAssignmentTargetError,
)
from stackcc.lexer import Lexer, Token, TokenKind, Vocabulary, lex
from stackcc.combinators import NO_MATCH, Parser, TokenStream
from stackcc.ast import ASTPrinter, Node, NodeTag
from stackcc.grammar import Grammar, default_grammar, parse_source
from stackcc.codegen import CodeGenerator, EmissionContext, EmissionMode
from stackcc.compiler import (
    CompilerOptions,
    CompilerResult,
    StackCCompiler,
    compile_c,
    compile_file,
)

__all__ = [
    # Version
    "__version__",
    # Main API
    "StackCCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_c",
    "compile_file",
    # Errors
    "StackCCError",
    "SourceLocation",
    "LexicalError",
    "ParseError",
    "GrammarError",
    "CodeGenError",
    "UnsupportedFeatureError",
    "InvalidAssignmentTargetError",
    # Lexer
    "Lexer",
    "Token",
    "TokenKind",
    "Vocabulary",
    "lex",
    # Parsing
    "NO_MATCH",
    "Parser",
    "TokenStream",
    "Grammar",
    "default_grammar",
    "parse_source",
    # AST
    "ASTPrinter",
    "Node",
    "NodeTag",
    # Code Generator
    "CodeGenerator",
    "EmissionContext",
    "EmissionMode",
]
