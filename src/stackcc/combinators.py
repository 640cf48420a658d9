"""
Parser Combinator Engine
========================

Backtracking recursive-descent parsing built from small composable
parsers. Each parser consumes a prefix of a TokenStream and returns a
value, or returns NO_MATCH and leaves the stream exactly where it found
it.

Checkpoint / Rewind
-------------------
Parser.parse() is the only public entry point of every combinator and
the only place the rewind rule lives:

    saved = stream.save()
    result = self._parse(stream)
    if result is NO_MATCH:
        stream.load(saved)

Subclasses implement _parse() and call child.parse() on their children,
so the rule holds for composites as well as terminals. A _parse() hook
may leave the stream anywhere when it fails.

Primitives
----------
| Class                          | Succeeds with                          |
|--------------------------------|----------------------------------------|
| ForwardRef                     | whatever its target returns            |
| TokenCondition / TokenValue /  | the consumed Token                     |
| TokenKindMatcher               |                                        |
| Action                         | fn(value)                              |
| Or                             | first successful alternative           |
| And                            | fn([v1, v2, ...])                      |
| ZeroOrMore                     | fn([v, ...]), never fails              |
| SeparatedBy                    | [v, ...], never fails                  |
| PrefixOperation                | fn(p1, fn(p2, ... fn(pn, operand)))    |
| PostfixOperation               | fn(...fn(fn(operand, s1), s2)..., sn)  |
| LeftAssociativeBinaryOperation | fn(fn(a, op, b), op, c) ...            |

Precedence is expressed by composition: a tighter-binding rule is the
operand parser of a looser one.
"""

from typing import Any, Callable, Optional, Sequence

from stackcc.errors import GrammarError
from stackcc.lexer import Token, TokenKind


class _NoMatch:
    """Type of the NO_MATCH sentinel."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"

    def __bool__(self) -> bool:
        return False


NO_MATCH = _NoMatch()


# =============================================================================
# Token Stream
# =============================================================================

class TokenStream:
    """
    Repositionable cursor over an immutable token sequence.

    The sequence must end with an EOF token. The cursor never moves past
    EOF: next() at EOF returns EOF and stays put.

    Attributes:
        furthest: Highest position ever reached, used to point parse
            failure diagnostics at the token where progress stopped
    """

    def __init__(self, tokens: Sequence[Token]):
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            raise ValueError("token sequence must end with an EOF token")
        self._tokens = tuple(tokens)
        self._position = 0
        self.furthest = 0

    def save(self) -> int:
        return self._position

    def load(self, position: int) -> None:
        self._position = position

    def peek(self) -> Token:
        return self._tokens[self._position]

    def next(self) -> Token:
        token = self._tokens[self._position]
        if token.kind is not TokenKind.EOF:
            self._position += 1
            self.furthest = max(self.furthest, self._position)
        return token

    def at_end(self) -> bool:
        return self.peek().kind is TokenKind.EOF

    def furthest_token(self) -> Token:
        return self._tokens[self.furthest]

    def __len__(self) -> int:
        return len(self._tokens)


# =============================================================================
# Base Parser
# =============================================================================

class Parser:
    """
    Base class for all combinators.

    Attributes:
        name: Optional rule name shown in repr() for debugging
    """

    name: Optional[str] = None

    def parse(self, stream: TokenStream) -> Any:
        """
        Attempt to parse at the current position.

        Returns the parsed value, or NO_MATCH with the stream rewound to
        where it was before the attempt.
        """
        saved = stream.save()
        result = self._parse(stream)
        if result is NO_MATCH:
            stream.load(saved)
        return result

    def _parse(self, stream: TokenStream) -> Any:
        raise NotImplementedError

    def separated_by(self, separator: "Parser") -> "SeparatedBy":
        return SeparatedBy(self, separator)

    def named(self, name: str) -> "Parser":
        """Set the rule name and return self, for use while wiring grammars."""
        self.name = name
        return self

    def __repr__(self) -> str:
        if self.name:
            return f"<{type(self).__name__} {self.name}>"
        return f"<{type(self).__name__}>"


# =============================================================================
# Forward Reference
# =============================================================================

class ForwardRef(Parser):
    """
    Placeholder for a rule that is defined later.

    Allows recursive and mutually recursive grammars: create the reference,
    use it inside other rules, then define() it once all rules exist.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self.target: Optional[Parser] = None

    def define(self, parser: Parser) -> None:
        if self.target is not None:
            raise GrammarError(f"forward reference {self.name or '?'} is already defined")
        self.target = parser

    @property
    def is_defined(self) -> bool:
        return self.target is not None

    def _parse(self, stream: TokenStream) -> Any:
        if self.target is None:
            raise GrammarError(f"forward reference {self.name or '?'} used before definition")
        return self.target.parse(stream)


# =============================================================================
# Terminal Matchers
# =============================================================================

class TokenCondition(Parser):
    """Consume one token satisfying predicate."""

    def __init__(self, predicate: Callable[[Token], bool]):
        self.predicate = predicate

    def _parse(self, stream: TokenStream) -> Any:
        token = stream.peek()
        # EOF is only ever consumed by an explicit EOF kind matcher
        if token.kind is TokenKind.EOF and not self._accepts_eof():
            return NO_MATCH
        if self.predicate(token):
            return stream.next()
        return NO_MATCH

    def _accepts_eof(self) -> bool:
        return False


class TokenValue(TokenCondition):
    """Consume one token whose literal text equals value."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(lambda token: token.text == value)

    def __repr__(self) -> str:
        return f"<TokenValue {self.value!r}>"


class TokenKindMatcher(TokenCondition):
    """Consume one token of the given kind."""

    def __init__(self, kind: TokenKind):
        self.kind = kind
        super().__init__(lambda token: token.kind is kind)

    def _accepts_eof(self) -> bool:
        return self.kind is TokenKind.EOF

    def __repr__(self) -> str:
        return f"<TokenKindMatcher {self.kind.name}>"


# =============================================================================
# Composites
# =============================================================================

class Action(Parser):
    """Transform the value of parser with fn."""

    def __init__(self, parser: Parser, fn: Callable[[Any], Any]):
        self.parser = parser
        self.fn = fn

    def _parse(self, stream: TokenStream) -> Any:
        result = self.parser.parse(stream)
        if result is NO_MATCH:
            return NO_MATCH
        return self.fn(result)


class Or(Parser):
    """
    Ordered alternation.

    Alternatives are tried in declaration order and the first success wins,
    so an earlier alternative that matches a prefix of a later one shadows it.
    """

    def __init__(self, *parsers: Parser):
        self.parsers = list(parsers)

    def _parse(self, stream: TokenStream) -> Any:
        for parser in self.parsers:
            result = parser.parse(stream)
            if result is not NO_MATCH:
                return result
        return NO_MATCH


class And(Parser):
    """Sequence. All children must match; fn reduces the list of their values."""

    def __init__(self, parsers: Sequence[Parser], fn: Callable[[list], Any]):
        self.parsers = list(parsers)
        self.fn = fn

    def _parse(self, stream: TokenStream) -> Any:
        results = []
        for parser in self.parsers:
            result = parser.parse(stream)
            if result is NO_MATCH:
                return NO_MATCH
            results.append(result)
        return self.fn(results)


class ZeroOrMore(Parser):
    """
    Repeat parser until it fails; fn reduces the collected values.

    Never fails. The repeated parser must consume input on success or the
    loop does not terminate.
    """

    def __init__(self, parser: Parser, fn: Callable[[list], Any] = list):
        self.parser = parser
        self.fn = fn

    def _parse(self, stream: TokenStream) -> Any:
        results = []
        while True:
            result = self.parser.parse(stream)
            if result is NO_MATCH:
                return self.fn(results)
            results.append(result)


class SeparatedBy(Parser):
    """
    Possibly empty list of content items separated by separator.

    A separator that is not followed by a content item is left unconsumed.
    """

    def __init__(self, content: Parser, separator: Parser):
        self.content = content
        self.separator = separator
        self._pair = And([separator, content], lambda results: results[1])

    def _parse(self, stream: TokenStream) -> Any:
        first = self.content.parse(stream)
        if first is NO_MATCH:
            return []
        results = [first]
        while True:
            result = self._pair.parse(stream)
            if result is NO_MATCH:
                return results
            results.append(result)


class PrefixOperation(Parser):
    """
    Zero or more prefix operators followed by an operand.

    The prefixes are applied innermost first, so for `* * x` the result is
    fn(star1, fn(star2, x)).
    """

    def __init__(
        self,
        prefix: Parser,
        operand: Parser,
        fn: Callable[[Any, Any], Any],
    ):
        self.prefix = prefix
        self.operand = operand
        self.fn = fn
        self._prefixes = ZeroOrMore(prefix)

    def _parse(self, stream: TokenStream) -> Any:
        prefixes = self._prefixes.parse(stream)
        result = self.operand.parse(stream)
        if result is NO_MATCH:
            return NO_MATCH
        for prefix in reversed(prefixes):
            result = self.fn(prefix, result)
        return result


class PostfixOperation(Parser):
    """An operand followed by any number of postfixes, folded left to right."""

    def __init__(
        self,
        operand: Parser,
        postfix: Parser,
        fn: Callable[[Any, Any], Any],
    ):
        self.operand = operand
        self.postfix = postfix
        self.fn = fn

    def _parse(self, stream: TokenStream) -> Any:
        result = self.operand.parse(stream)
        if result is NO_MATCH:
            return NO_MATCH
        while True:
            postfix = self.postfix.parse(stream)
            if postfix is NO_MATCH:
                return result
            result = self.fn(result, postfix)


class LeftAssociativeBinaryOperation(Parser):
    """
    operand (operator operand)*, folded left: a - b - c is (a - b) - c.

    A matched operator must be followed by an operand; if it is not, the
    whole operation fails rather than stopping before the operator.
    """

    def __init__(
        self,
        operand: Parser,
        operator: Parser,
        fn: Callable[[Any, Any, Any], Any],
    ):
        self.operand = operand
        self.operator = operator
        self.fn = fn

    def _parse(self, stream: TokenStream) -> Any:
        left = self.operand.parse(stream)
        if left is NO_MATCH:
            return NO_MATCH
        while True:
            op = self.operator.parse(stream)
            if op is NO_MATCH:
                return left
            right = self.operand.parse(stream)
            if right is NO_MATCH:
                return NO_MATCH
            left = self.fn(left, op, right)
