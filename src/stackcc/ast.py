"""
stackcc Abstract Syntax Tree
============================

The AST is a tagged-variant tree: every node is a NodeTag plus an
ordered tuple of children. Children are either nodes or tokens, and
their positions carry meaning (child 0 of an assignment is the target,
child 2 the value).

Child Layouts
-------------
| Tag                   | Children                                      |
|-----------------------|-----------------------------------------------|
| TRANSLATION_UNIT      | top-level items                               |
| DECLARATION_STATEMENT | (declaration,)                                |
| BLOCK_STATEMENT       | statements                                    |
| EXPRESSION_STATEMENT  | (expression,)                                 |
| RETURN_STATEMENT      | (expression,)                                 |
| FUNCTION_DEFINITION   | (declaration, block)                          |
| ASSIGNMENT            | (target, '=' token, value)                    |
| INT / FLOAT / ID      | (token,)                                      |
| BINARY_OPERATION      | (left, operator token, right)                 |
| FUNCTION_CALL         | (callee, *argument declarations)              |
| DECLARATION           | (type keyword token, declarator)              |
| FUNCTION_DECLARATOR   | (inner declarator, *parameter declarations)   |
| POINTER_DECLARATOR    | ('*' token, inner declarator)                 |

Nodes are frozen dataclasses and the tree is strictly tree-shaped: the
grammar builds a fresh node for every match and never shares subtrees.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from stackcc.errors import SourceLocation
from stackcc.lexer import Token


class NodeTag(Enum):
    """Discriminant of an AST node."""

    TRANSLATION_UNIT = "translation_unit"
    DECLARATION_STATEMENT = "declaration_statement"
    BLOCK_STATEMENT = "block_statement"
    EXPRESSION_STATEMENT = "expression_statement"
    RETURN_STATEMENT = "return_statement"
    FUNCTION_DEFINITION = "function_definition"
    ASSIGNMENT = "assignment"
    INT = "int"
    FLOAT = "float"
    ID = "id"
    BINARY_OPERATION = "binary_operation"
    FUNCTION_CALL = "function_call"
    DECLARATION = "declaration"
    FUNCTION_DECLARATOR = "function_declarator"
    POINTER_DECLARATOR = "pointer_declarator"


STATEMENT_TAGS = frozenset({
    NodeTag.DECLARATION_STATEMENT,
    NodeTag.BLOCK_STATEMENT,
    NodeTag.EXPRESSION_STATEMENT,
    NodeTag.RETURN_STATEMENT,
})

EXPRESSION_TAGS = frozenset({
    NodeTag.ASSIGNMENT,
    NodeTag.INT,
    NodeTag.FLOAT,
    NodeTag.ID,
    NodeTag.BINARY_OPERATION,
    NodeTag.FUNCTION_CALL,
})

DECLARATOR_TAGS = frozenset({
    NodeTag.DECLARATION,
    NodeTag.FUNCTION_DECLARATOR,
    NodeTag.POINTER_DECLARATOR,
})


Child = Union["Node", Token]


@dataclass(frozen=True)
class Node:
    """
    A tagged AST node.

    Attributes:
        tag: The NodeTag discriminant
        children: Ordered children (nodes or tokens)
    """
    tag: NodeTag
    children: tuple[Child, ...] = ()

    def __getitem__(self, index: int) -> Child:
        return self.children[index]

    def __len__(self) -> int:
        return len(self.children)

    def __repr__(self) -> str:
        return f"Node({self.tag.value}, {list(self.children)!r})"

    @property
    def is_statement(self) -> bool:
        return self.tag in STATEMENT_TAGS

    @property
    def is_expression(self) -> bool:
        return self.tag in EXPRESSION_TAGS

    @property
    def name(self) -> Optional[str]:
        """
        The identifier this node declares or refers to.

        Declarators delegate to the part of the declarator that holds the
        identifier, so `int *f(int a)` names `f`. Tags that do not name
        anything return None.
        """
        tag = self.tag
        if tag is NodeTag.ID:
            return self.children[0].text
        if tag is NodeTag.FUNCTION_DEFINITION:
            return self.children[0].name
        if tag is NodeTag.DECLARATION:
            return self.children[1].name
        if tag is NodeTag.FUNCTION_DECLARATOR:
            return self.children[0].name
        if tag is NodeTag.POINTER_DECLARATOR:
            return self.children[1].name
        if tag is NodeTag.DECLARATION_STATEMENT:
            return self.children[0].name
        return None

    @property
    def location(self) -> Optional[SourceLocation]:
        """Location of the first token under this node, if any."""
        for child in self.children:
            if isinstance(child, Token):
                return child.location
            location = child.location
            if location is not None:
                return location
        return None


def node(tag: NodeTag, *children: Child) -> Node:
    """Shorthand constructor used by grammar actions."""
    return Node(tag, tuple(children))


# =============================================================================
# AST Printer
# =============================================================================

class ASTPrinter:
    """
    Pretty printer for AST debugging.

    Usage:
        printer = ASTPrinter()
        print(printer.print(ast))

    Output for `int x;`:
        translation_unit
          declaration_statement
            declaration
              keyword 'int'
              id 'x'
    """

    def __init__(self, indent: str = "  "):
        self.indent = indent
        self.output: list[str] = []

    def print(self, root: Node) -> str:
        """Print the AST and return it as a string."""
        self.output = []
        self._visit(root, 0)
        return "\n".join(self.output)

    def _visit(self, item: Child, depth: int) -> None:
        prefix = self.indent * depth
        if isinstance(item, Token):
            self.output.append(f"{prefix}{item.kind.value} {item.text!r}")
            return
        # Leaves print on a single line
        if item.tag in (NodeTag.INT, NodeTag.FLOAT, NodeTag.ID):
            self.output.append(f"{prefix}{item.tag.value} {item.children[0].text!r}")
            return
        self.output.append(f"{prefix}{item.tag.value}")
        for child in item.children:
            self._visit(child, depth + 1)
