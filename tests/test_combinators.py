"""
Parser Combinator Engine Tests
==============================

Tests for TokenStream and every combinator primitive, with particular
attention to the checkpoint/rewind rule: a failed parse never moves the
stream.
"""

import pytest

from stackcc.combinators import (
    NO_MATCH,
    Action,
    And,
    ForwardRef,
    LeftAssociativeBinaryOperation,
    Or,
    PostfixOperation,
    PrefixOperation,
    SeparatedBy,
    TokenCondition,
    TokenKindMatcher,
    TokenStream,
    TokenValue,
    ZeroOrMore,
)
from stackcc.errors import GrammarError
from stackcc.lexer import Token, TokenKind, Vocabulary, lex


# =============================================================================
# Helpers
# =============================================================================

VOCAB = Vocabulary()
for _symbol in ("(", ")", ",", "+", "-", "*", ";"):
    VOCAB.add_symbol(_symbol)
VOCAB.add_keyword("int")
VOCAB.freeze()


def stream(source: str) -> TokenStream:
    return TokenStream(lex(source, VOCAB))


ID = TokenKindMatcher(TokenKind.ID)
INT = TokenKindMatcher(TokenKind.INT)
PLUS = TokenValue("+")
COMMA = TokenValue(",")


def texts(tokens) -> list:
    return [t.text for t in tokens]


def assert_rewinds(parser, source: str, advance: int = 0):
    """Parser must fail and leave the stream where it was."""
    s = stream(source)
    for _ in range(advance):
        s.next()
    before = s.save()
    assert parser.parse(s) is NO_MATCH
    assert s.save() == before


# =============================================================================
# Token Stream
# =============================================================================

class TestTokenStream:

    def test_requires_eof(self):
        with pytest.raises(ValueError):
            TokenStream([Token(TokenKind.ID, "x")])

    def test_save_and_load(self):
        s = stream("a b c")
        mark = s.save()
        s.next()
        s.next()
        assert s.peek().text == "c"
        s.load(mark)
        assert s.peek().text == "a"

    def test_never_moves_past_eof(self):
        s = stream("a")
        s.next()
        assert s.next().kind == TokenKind.EOF
        assert s.next().kind == TokenKind.EOF
        assert s.save() == 1
        assert s.at_end()

    def test_furthest_survives_rewind(self):
        s = stream("a b c")
        s.next()
        s.next()
        s.load(0)
        assert s.furthest == 2
        assert s.furthest_token().text == "c"


# =============================================================================
# Terminals
# =============================================================================

class TestTerminals:

    def test_token_value(self):
        s = stream("+ x")
        assert PLUS.parse(s).text == "+"
        assert s.peek().text == "x"

    def test_token_value_failure_rewinds(self):
        assert_rewinds(PLUS, "x +")

    def test_token_kind(self):
        s = stream("42")
        assert INT.parse(s).kind == TokenKind.INT

    def test_token_kind_failure_rewinds(self):
        assert_rewinds(INT, "x")

    def test_token_condition(self):
        short = TokenCondition(lambda t: len(t.text) < 3)
        assert short.parse(stream("ab")).text == "ab"
        assert_rewinds(short, "abcd")

    def test_terminals_do_not_consume_eof(self):
        anything = TokenCondition(lambda t: True)
        s = stream("")
        assert anything.parse(s) is NO_MATCH

    def test_eof_matcher(self):
        eof = TokenKindMatcher(TokenKind.EOF)
        assert eof.parse(stream("")).kind == TokenKind.EOF
        assert_rewinds(eof, "x")


# =============================================================================
# Composites
# =============================================================================

class TestAction:

    def test_maps_success(self):
        upper = Action(ID, lambda t: t.text.upper())
        assert upper.parse(stream("abc")) == "ABC"

    def test_failure_is_not_mapped(self):
        calls = []
        parser = Action(ID, calls.append)
        assert_rewinds(parser, "42")
        assert calls == []


class TestOr:

    def test_first_success_wins(self):
        parser = Or(Action(ID, lambda t: "first"), Action(ID, lambda t: "second"))
        assert parser.parse(stream("x")) == "first"

    def test_falls_through_to_later_alternative(self):
        parser = Or(INT, ID)
        assert parser.parse(stream("x")).text == "x"

    def test_all_fail(self):
        assert_rewinds(Or(INT, PLUS), "x")

    def test_failed_alternative_does_not_leak_consumption(self):
        """A partly matching first branch is rewound before the second runs."""
        two_ids = And([ID, ID], lambda r: "pair")
        one_id = Action(ID, lambda t: "single")
        parser = Or(two_ids, one_id)
        s = stream("x +")
        assert parser.parse(s) == "single"
        assert s.peek().text == "+"


class TestAnd:

    def test_reduces_results(self):
        parser = And([ID, PLUS, INT], lambda r: texts(r))
        assert parser.parse(stream("a + 1")) == ["a", "+", "1"]

    def test_partial_match_rewinds(self):
        parser = And([ID, PLUS, INT], lambda r: r)
        assert_rewinds(parser, "a + b")

    def test_partial_match_rewinds_mid_stream(self):
        parser = And([ID, PLUS, INT], lambda r: r)
        assert_rewinds(parser, "; a + b", advance=1)


class TestZeroOrMore:

    def test_collects(self):
        parser = ZeroOrMore(ID, texts)
        assert parser.parse(stream("a b c 1")) == ["a", "b", "c"]

    def test_zero_matches_is_success(self):
        parser = ZeroOrMore(ID, texts)
        s = stream("1")
        assert parser.parse(s) == []
        assert s.save() == 0

    def test_stops_before_partial_item(self):
        pair = And([ID, PLUS], lambda r: r[0].text)
        parser = ZeroOrMore(pair)
        s = stream("a + b + c")
        assert parser.parse(s) == ["a", "b"]
        assert s.peek().text == "c"


class TestSeparatedBy:

    def test_list(self):
        parser = ID.separated_by(COMMA)
        assert texts(parser.parse(stream("a, b, c"))) == ["a", "b", "c"]

    def test_empty_list(self):
        parser = SeparatedBy(ID, COMMA)
        s = stream(")")
        assert parser.parse(s) == []
        assert s.save() == 0

    def test_trailing_separator_is_not_consumed(self):
        parser = SeparatedBy(ID, COMMA)
        s = stream("a, b, )")
        assert texts(parser.parse(s)) == ["a", "b"]
        assert s.peek().text == ","


class TestPrefixOperation:

    STAR = TokenValue("*")
    NAME = Action(ID, lambda t: t.text)

    def test_nests_innermost_first(self):
        parser = PrefixOperation(self.STAR, self.NAME, lambda op, e: ("ptr", e))
        assert parser.parse(stream("**x")) == ("ptr", ("ptr", "x"))

    def test_prefixes_applied_in_reverse_order(self):
        signs = TokenCondition(lambda t: t.text in ("+", "-"))
        parser = PrefixOperation(signs, self.NAME, lambda op, e: f"{op.text}({e})")
        # '+' is outermost, '-' innermost
        assert parser.parse(stream("+ - x")) == "+(-(x))"

    def test_no_prefix(self):
        parser = PrefixOperation(self.STAR, self.NAME, lambda op, e: ("ptr", e))
        assert parser.parse(stream("x")) == "x"

    def test_operand_failure_fails_even_with_prefixes(self):
        parser = PrefixOperation(self.STAR, self.NAME, lambda op, e: ("ptr", e))
        assert_rewinds(parser, "** 1")


class TestPostfixOperation:

    CALL = And([TokenValue("("), TokenValue(")")], lambda r: "call")

    def test_folds_left(self):
        parser = PostfixOperation(Action(ID, lambda t: t.text), self.CALL, lambda e, p: f"{e}()")
        assert parser.parse(stream("f()()")) == "f()()"

    def test_no_postfix(self):
        parser = PostfixOperation(ID, self.CALL, lambda e, p: ("call", e))
        assert parser.parse(stream("f;")).text == "f"

    def test_partial_postfix_is_rewound(self):
        parser = PostfixOperation(ID, self.CALL, lambda e, p: ("call", e))
        s = stream("f(;")
        assert parser.parse(s).text == "f"
        assert s.peek().text == "("

    def test_operand_failure(self):
        parser = PostfixOperation(ID, self.CALL, lambda e, p: ("call", e))
        assert_rewinds(parser, "()")


class TestLeftAssociativeBinaryOperation:

    @staticmethod
    def parser():
        operand = Action(Or(ID, INT), lambda t: t.text)
        return LeftAssociativeBinaryOperation(
            operand,
            Or(PLUS, TokenValue("-")),
            lambda lhs, op, rhs: (lhs, op.text, rhs),
        )

    def test_single_operand(self):
        assert self.parser().parse(stream("a")) == "a"

    def test_left_associative(self):
        assert self.parser().parse(stream("a + b - c")) == (("a", "+", "b"), "-", "c")

    def test_stops_without_operator(self):
        s = stream("a + b ;")
        assert self.parser().parse(s) == ("a", "+", "b")
        assert s.peek().text == ";"

    def test_dangling_operator_is_hard_failure(self):
        assert_rewinds(self.parser(), "a + b + ;")

    def test_first_operand_failure(self):
        assert_rewinds(self.parser(), "+ a")


# =============================================================================
# Forward References
# =============================================================================

class TestForwardRef:

    def test_delegates(self):
        ref = ForwardRef("item")
        ref.define(ID)
        assert ref.parse(stream("x")).text == "x"

    def test_recursive_rule(self):
        """Nested parentheses through a self-reference."""
        nested = ForwardRef("nested")
        nested.define(Or(
            Action(ID, lambda t: t.text),
            And([TokenValue("("), nested, TokenValue(")")], lambda r: [r[1]]),
        ))
        assert nested.parse(stream("((x))")) == [["x"]]
        assert_rewinds(nested, "((x)")

    def test_undefined_reference_raises(self):
        ref = ForwardRef("missing")
        with pytest.raises(GrammarError, match="missing"):
            ref.parse(stream("x"))

    def test_cannot_define_twice(self):
        ref = ForwardRef("once")
        ref.define(ID)
        with pytest.raises(GrammarError):
            ref.define(INT)

    def test_repr_uses_name(self):
        assert repr(ForwardRef("expression")) == "<ForwardRef expression>"


class TestNoMatch:

    def test_sentinel_is_falsy_singleton(self):
        assert not NO_MATCH
        assert type(NO_MATCH)() is NO_MATCH
        assert repr(NO_MATCH) == "NO_MATCH"
