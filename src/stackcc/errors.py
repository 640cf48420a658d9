"""
stackcc Error Hierarchy
=======================

This module defines the exception hierarchy for the stackcc compiler.
All exceptions inherit from StackCCError, allowing callers to catch all
compiler errors with a single except clause if desired.

Exception Hierarchy
-------------------
StackCCError (base)
├── LexicalError - unrecognized run of characters in the source
├── ParseError - the program did not parse as a complete translation unit
├── GrammarError - the combinator graph itself is malformed
└── CodeGenError - construct with no emission rule
    ├── UnsupportedFeatureError - parseable but not generatable (float)
    └── InvalidAssignmentTargetError - assignment to a non-identifier

Backtracking failures inside the parser are NOT exceptions. A combinator
that does not match returns the NO_MATCH sentinel and the caller tries
the next alternative. Only the outermost "the whole program did not parse"
condition is escalated, as ParseError, by the compiler facade.

Error Message Format
--------------------
    filename:line:column: error: description
        source_line_text
            ^
    hint: suggestion for fixing
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception
# =============================================================================

class StackCCError(Exception):
    """
    Base exception for all stackcc errors.

    Provides source location tracking, source line context and an optional
    hint, formatted the way a C compiler reports diagnostics.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The actual source text at the error location
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            prog.c:1:8: error: unrecognized input '#'
                int x; #
                       ^
        """
        parts = []

        # Location prefix
        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Source context with caret pointer
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Front-End Errors
# =============================================================================

class LexicalError(StackCCError):
    """
    Unrecognized input in the source text.

    Lexing is fatal: when raised, no part of the token sequence is usable.

    Attributes:
        text: The offending run of non-whitespace characters
    """

    def __init__(
        self,
        text: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.text = text
        super().__init__(
            f"unrecognized input '{text}'",
            location=location,
            source_line=source_line,
        )


class ParseError(StackCCError):
    """
    The source did not parse as a complete translation unit.

    Raised by the compiler facade when the top-level rule fails or stops
    before end of input. No partial AST is available.

    Attributes:
        found: Text of the token where parsing stopped ("" at end of input)
        reason: Replaces the default description when given
    """

    def __init__(
        self,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.found = found
        self.reason = reason
        if reason:
            message = f"could not parse program: {reason}"
        elif found:
            message = f"could not parse program near '{found}'"
        else:
            message = "could not parse program: unexpected end of input"
        super().__init__(message, location=location, source_line=source_line)


class GrammarError(StackCCError):
    """
    The combinator graph is malformed.

    Raised for an unassigned forward reference, a forward reference assigned
    twice, or a vocabulary modified after it was frozen. These indicate a
    bug in grammar construction, never a problem with the program being
    compiled.
    """
    pass


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodeGenError(StackCCError):
    """
    Error during code generation.

    Raised when the code generator reaches a node or operator that has no
    emission rule.
    """
    pass


class UnsupportedFeatureError(CodeGenError):
    """
    Parseable but unsupported language feature.

    Float literals are lexed and parsed as primary expressions but there
    is no floating-point code generation.
    """

    def __init__(
        self,
        feature: str,
        location: Optional[SourceLocation] = None,
        alternative: Optional[str] = None,
    ):
        self.feature = feature
        super().__init__(
            f"unsupported feature: {feature}",
            location=location,
            hint=alternative,
        )


class InvalidAssignmentTargetError(CodeGenError):
    """
    Left-hand side of an assignment is not an identifier.

    Examples:
        4 = x;
        (a + b) = x;
        f() = x;
    """

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "expression is not assignable",
            location=location,
            hint="left side of assignment must be a global variable",
        )
