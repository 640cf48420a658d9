"""
stackcc Lexer (Tokenizer)
=========================

This module converts source text into a list of tokens for the
combinator parser.

Token Kinds
-----------
| Kind    | Example      | Notes                                      |
|---------|--------------|--------------------------------------------|
| INT     | 42           | digits not followed by '.'                 |
| FLOAT   | 3.14, 3.     | lexed, parsed, never generated             |
| SYMBOL  | ( ) ; + *    | taken from the grammar vocabulary          |
| KEYWORD | int return   | taken from the grammar vocabulary          |
| ID      | main, x_1    | any other word                             |
| EOF     |              | always the last token                      |

Vocabulary
----------
The lexer has no built-in list of keywords or symbols. They are
registered by the grammar while its rules are built and handed to the
lexer as a frozen Vocabulary, so the set of recognized terminals always
matches what the grammar can actually use.

Example Usage
-------------
>>> from stackcc.grammar import default_grammar
>>> from stackcc.lexer import lex
>>> for token in lex("int x;", default_grammar().vocabulary):
...     print(token)
Token(KEYWORD, 'int', 1:1)
Token(ID, 'x', 1:5)
Token(SYMBOL, ';', 1:6)
Token(EOF, 1:7)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from stackcc.errors import GrammarError, LexicalError, SourceLocation


# =============================================================================
# Token Kinds
# =============================================================================

class TokenKind(Enum):
    """Lexical category of a token."""

    INT = "int"
    FLOAT = "float"
    SYMBOL = "symbol"
    KEYWORD = "keyword"
    ID = "id"
    EOF = "eof"


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token: its kind and literal text.

    Line, column and filename are carried for diagnostics only.

    Attributes:
        kind: The TokenKind classification
        text: Literal source text ("" for EOF)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    kind: TokenKind
    text: str
    line: int = 1
    column: int = 1
    filename: str = "<input>"

    def __repr__(self) -> str:
        if self.kind is TokenKind.EOF:
            return f"Token({self.kind.name}, {self.line}:{self.column})"
        return f"Token({self.kind.name}, {self.text!r}, {self.line}:{self.column})"

    __str__ = __repr__

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)


# =============================================================================
# Vocabulary
# =============================================================================

class Vocabulary:
    """
    Keywords and symbols recognized by the lexer.

    Populated by the grammar while its terminal rules are constructed,
    then frozen. Registering the same text twice is harmless; registering
    anything after freeze() raises GrammarError.
    """

    def __init__(self) -> None:
        self._keywords: set[str] = set()
        self._symbols: list[str] = []
        self._frozen = False

    def add_keyword(self, text: str) -> None:
        self._check_mutable(text)
        self._keywords.add(text)

    def add_symbol(self, text: str) -> None:
        self._check_mutable(text)
        if text not in self._symbols:
            self._symbols.append(text)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def keywords(self) -> frozenset[str]:
        return frozenset(self._keywords)

    @property
    def symbols(self) -> tuple[str, ...]:
        """Symbols in registration order."""
        return tuple(self._symbols)

    def symbols_by_priority(self) -> list[str]:
        """
        Symbols in the order the lexer tries them.

        Longer symbols come first so a two-character symbol is never split;
        symbols of equal length keep their registration order.
        """
        return sorted(self._symbols, key=len, reverse=True)

    def is_keyword(self, word: str) -> bool:
        return word in self._keywords

    def _check_mutable(self, text: str) -> None:
        if self._frozen:
            raise GrammarError(f"cannot register '{text}': vocabulary is frozen")


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes stackcc source code.

    At each position the lexer skips whitespace and then tries, in fixed
    priority order: a line comment, a float literal, an integer literal,
    a vocabulary symbol, and a word (keyword or identifier). Anything else
    is a fatal LexicalError.

    Usage:
        lexer = Lexer(source_text, vocabulary, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        vocabulary: Keywords and symbols registered by the grammar
        filename: Name of the source file (for error reporting)
    """

    WHITESPACE = re.compile(r"\s+")
    LINE_COMMENT = re.compile(r"//[^\n]*")
    FLOAT = re.compile(r"\d+\.\d*")
    # Digits directly followed by '.' belong to a float
    INT = re.compile(r"\d+(?!\.)")
    WORD = re.compile(r"[A-Za-z_]\w*", re.ASCII)
    NON_WHITESPACE = re.compile(r"\S+")

    def __init__(
        self,
        source: str,
        vocabulary: Vocabulary,
        filename: str = "<input>",
    ):
        self.source = source
        self.vocabulary = vocabulary
        self.filename = filename

        self._pos = 0
        self._symbols = vocabulary.symbols_by_priority()

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, always ending with a single EOF token

        Raises:
            LexicalError: If unrecognized input is encountered
        """
        while True:
            self._skip(self.WHITESPACE)
            if self._at_end():
                break

            if self._skip(self.LINE_COMMENT):
                continue

            token = self._scan_token()
            if token is None:
                raise self._error()
            yield token

        yield self._make_token(TokenKind.EOF, "", self._pos)

    # =========================================================================
    # Scanning
    # =========================================================================

    def _scan_token(self) -> Optional[Token]:
        start = self._pos

        for kind, pattern in ((TokenKind.FLOAT, self.FLOAT), (TokenKind.INT, self.INT)):
            match = pattern.match(self.source, self._pos)
            if match:
                self._pos = match.end()
                return self._make_token(kind, match.group(), start)

        for symbol in self._symbols:
            if self.source.startswith(symbol, self._pos):
                self._pos += len(symbol)
                return self._make_token(TokenKind.SYMBOL, symbol, start)

        match = self.WORD.match(self.source, self._pos)
        if match:
            self._pos = match.end()
            word = match.group()
            kind = TokenKind.KEYWORD if self.vocabulary.is_keyword(word) else TokenKind.ID
            return self._make_token(kind, word, start)

        return None

    def _skip(self, pattern: re.Pattern) -> bool:
        """Advance past a match of pattern at the current position."""
        match = pattern.match(self.source, self._pos)
        if match:
            self._pos = match.end()
            return True
        return False

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    # =========================================================================
    # Token Creation and Diagnostics
    # =========================================================================

    def _position(self, offset: int) -> tuple[int, int]:
        """Convert a character offset to a (line, column) pair."""
        line = self.source.count("\n", 0, offset) + 1
        line_start = self.source.rfind("\n", 0, offset) + 1
        return line, offset - line_start + 1

    def _make_token(self, kind: TokenKind, text: str, offset: int) -> Token:
        line, column = self._position(offset)
        return Token(kind=kind, text=text, line=line, column=column, filename=self.filename)

    def _error(self) -> LexicalError:
        """Build a LexicalError for the run of characters at the current position."""
        match = self.NON_WHITESPACE.match(self.source, self._pos)
        text = match.group() if match else self.source[self._pos:]
        line, column = self._position(self._pos)

        line_start = self.source.rfind("\n", 0, self._pos) + 1
        line_end = self.source.find("\n", self._pos)
        if line_end == -1:
            line_end = len(self.source)

        return LexicalError(
            text,
            SourceLocation(self.filename, line, column),
            source_line=self.source[line_start:line_end],
        )


def lex(source: str, vocabulary: Vocabulary, filename: str = "<input>") -> list[Token]:
    """
    Tokenize source text into a list ending with EOF.

    Raises:
        LexicalError: If unrecognized input is encountered
    """
    return list(Lexer(source, vocabulary, filename).tokenize())
