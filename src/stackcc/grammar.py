"""
stackcc Grammar
===============

The concrete grammar, wired from the combinators in
stackcc.combinators. Building a Grammar also builds the Vocabulary the
lexer needs: every keyword() and symbol() terminal registers its text,
and the vocabulary is frozen once all rules are in place.

Rules
-----
    primary_expression  := id | int | float | '(' expression ')'
    function_call       := primary_expression ( '(' declaration,* ')' )*
    additive_expression := function_call ( ('+' | '-') function_call )*
    expression          := additive_expression ( '=' additive_expression )*
    typeid              := 'int' | 'float' | 'char'
    declarator          := '*'* id ( '(' declaration,* ')' )*
    declaration         := typeid declarator
    statement           := return_statement | declaration_statement
                         | expression_statement | block_statement
    function_definition := declaration block_statement
    translation_unit    := ( function_definition | declaration_statement )* EOF

Call arguments are parsed as declarations, like parameter lists. The
code generator never evaluates them.

Usage
-----
>>> from stackcc.grammar import parse_source
>>> ast = parse_source("int x; int main() { return x; }")
>>> ast.tag
<NodeTag.TRANSLATION_UNIT: 'translation_unit'>
"""

import logging
from typing import Optional, Sequence

from stackcc.ast import Node, NodeTag, node
from stackcc.combinators import (
    NO_MATCH,
    Action,
    And,
    ForwardRef,
    LeftAssociativeBinaryOperation,
    Or,
    Parser,
    PostfixOperation,
    PrefixOperation,
    TokenKindMatcher,
    TokenStream,
    TokenValue,
    ZeroOrMore,
)
from stackcc.errors import GrammarError
from stackcc.lexer import Token, TokenKind, Vocabulary, lex

logger = logging.getLogger(__name__)


TYPE_KEYWORDS = ("int", "float", "char")


class Grammar:
    """
    The rule graph for the stackcc language.

    Each instance owns a fresh graph and Vocabulary, so grammars never share
    state. After __init__ returns every forward reference is defined and
    the vocabulary is frozen.

    Attributes:
        vocabulary: Keywords and symbols registered by the terminal rules
        translation_unit: The start rule
    """

    def __init__(self) -> None:
        self.vocabulary = Vocabulary()
        self._forward_refs: list[ForwardRef] = []

        self._build()

        self._check_forward_refs()
        self.vocabulary.freeze()
        logger.debug(
            "grammar built: %d keywords, %d symbols",
            len(self.vocabulary.keywords),
            len(self.vocabulary.symbols),
        )

    # =========================================================================
    # Terminal Factories
    # =========================================================================

    def keyword(self, text: str) -> TokenValue:
        """Matcher for a keyword; registers it with the vocabulary."""
        self.vocabulary.add_keyword(text)
        return TokenValue(text)

    def symbol(self, text: str) -> TokenValue:
        """Matcher for a symbol; registers it with the vocabulary."""
        self.vocabulary.add_symbol(text)
        return TokenValue(text)

    def forward(self, name: str) -> ForwardRef:
        ref = ForwardRef(name)
        self._forward_refs.append(ref)
        return ref

    # =========================================================================
    # Rule Wiring
    # =========================================================================

    def _build(self) -> None:
        expression = self.forward("expression")
        declaration = self.forward("declaration")
        statement = self.forward("statement")

        # --- Expressions ---------------------------------------------------
        self.id = Action(
            TokenKindMatcher(TokenKind.ID),
            lambda tok: node(NodeTag.ID, tok),
        ).named("id")
        self.int = Action(
            TokenKindMatcher(TokenKind.INT),
            lambda tok: node(NodeTag.INT, tok),
        ).named("int")
        self.float = Action(
            TokenKindMatcher(TokenKind.FLOAT),
            lambda tok: node(NodeTag.FLOAT, tok),
        ).named("float")
        self.parenthetical_expression = And(
            [self.symbol("("), expression, self.symbol(")")],
            lambda results: results[1],
        ).named("parenthetical_expression")
        self.primary_expression = Or(
            self.id, self.int, self.float, self.parenthetical_expression,
        ).named("primary_expression")

        self.argument_list = And(
            [self.symbol("("), declaration.separated_by(self.symbol(",")), self.symbol(")")],
            lambda results: results[1],
        ).named("argument_list")
        self.function_call = PostfixOperation(
            self.primary_expression,
            self.argument_list,
            lambda callee, args: node(NodeTag.FUNCTION_CALL, callee, *args),
        ).named("function_call")

        self.additive_expression = LeftAssociativeBinaryOperation(
            self.function_call,
            Or(self.symbol("+"), self.symbol("-")),
            lambda lhs, op, rhs: node(NodeTag.BINARY_OPERATION, lhs, op, rhs),
        ).named("additive_expression")

        # Assignment binds loosest by being the outermost operation
        self.expression = LeftAssociativeBinaryOperation(
            self.additive_expression,
            self.symbol("="),
            lambda lhs, eq, rhs: node(NodeTag.ASSIGNMENT, lhs, eq, rhs),
        ).named("assignment")
        expression.define(self.expression)

        # --- Declarations --------------------------------------------------
        self.typeid = Or(*(self.keyword(t) for t in TYPE_KEYWORDS)).named("typeid")
        self.declarator_argument_list = And(
            [self.symbol("("), declaration.separated_by(self.symbol(",")), self.symbol(")")],
            lambda results: results[1],
        ).named("declarator_argument_list")
        self.declarator = PrefixOperation(
            self.symbol("*"),
            PostfixOperation(
                self.id,
                self.declarator_argument_list,
                lambda inner, params: node(NodeTag.FUNCTION_DECLARATOR, inner, *params),
            ),
            lambda star, inner: node(NodeTag.POINTER_DECLARATOR, star, inner),
        ).named("declarator")
        self.declaration = And(
            [self.typeid, self.declarator],
            lambda results: node(NodeTag.DECLARATION, results[0], results[1]),
        ).named("declaration")
        declaration.define(self.declaration)

        # --- Statements ----------------------------------------------------
        self.declaration_statement = And(
            [self.declaration, self.symbol(";")],
            lambda results: node(NodeTag.DECLARATION_STATEMENT, results[0]),
        ).named("declaration_statement")
        self.expression_statement = And(
            [self.expression, self.symbol(";")],
            lambda results: node(NodeTag.EXPRESSION_STATEMENT, results[0]),
        ).named("expression_statement")
        self.return_statement = And(
            [self.keyword("return"), self.expression, self.symbol(";")],
            lambda results: node(NodeTag.RETURN_STATEMENT, results[1]),
        ).named("return_statement")
        self.block_statement = And(
            [self.symbol("{"), ZeroOrMore(statement), self.symbol("}")],
            lambda results: node(NodeTag.BLOCK_STATEMENT, *results[1]),
        ).named("block_statement")
        self.statement = Or(
            self.return_statement,
            self.declaration_statement,
            self.expression_statement,
            self.block_statement,
        ).named("statement")
        statement.define(self.statement)

        # --- Top Level -----------------------------------------------------
        self.function_definition = And(
            [self.declaration, self.block_statement],
            lambda results: node(NodeTag.FUNCTION_DEFINITION, results[0], results[1]),
        ).named("function_definition")
        self.global_item = Or(
            self.function_definition,
            self.declaration_statement,
        ).named("global_item")
        self.translation_unit = And(
            [
                ZeroOrMore(self.global_item, lambda items: node(NodeTag.TRANSLATION_UNIT, *items)),
                TokenKindMatcher(TokenKind.EOF),
            ],
            lambda results: results[0],
        ).named("translation_unit")

    def _check_forward_refs(self) -> None:
        undefined = [ref.name for ref in self._forward_refs if not ref.is_defined]
        if undefined:
            raise GrammarError(f"undefined grammar rules: {', '.join(undefined)}")

    # =========================================================================
    # Parsing Entry Points
    # =========================================================================

    def lex(self, source: str, filename: str = "<input>") -> list[Token]:
        return lex(source, self.vocabulary, filename)

    def parse_stream(self, stream: TokenStream, rule: Optional[Parser] = None) -> Optional[Node]:
        """
        Parse with rule (default: translation_unit).

        Returns None when the rule does not match.
        """
        if rule is None:
            rule = self.translation_unit
        result = rule.parse(stream)
        if result is NO_MATCH:
            return None
        return result

    def parse(self, tokens: Sequence[Token]) -> Optional[Node]:
        """
        Parse a complete program.

        Returns the translation_unit node, or None if the tokens do not form
        a complete program.
        """
        return self.parse_stream(TokenStream(tokens))

    def parse_source(self, source: str, filename: str = "<input>") -> Optional[Node]:
        """
        Lex and parse source text.

        Raises:
            LexicalError: If the source contains unrecognized input
        """
        return self.parse(self.lex(source, filename))


_default_grammar: Optional[Grammar] = None


def default_grammar() -> Grammar:
    """Return the shared grammar, building it on first use."""
    global _default_grammar
    if _default_grammar is None:
        _default_grammar = Grammar()
    return _default_grammar


def parse_source(source: str, filename: str = "<input>") -> Optional[Node]:
    """Lex and parse source text with the default grammar."""
    return default_grammar().parse_source(source, filename)
