"""
x86 Stack-Machine Code Generator
================================

This module generates 32-bit NASM assembly from the stackcc AST in a
single tree walk.

Code Generation Strategy
------------------------
The hardware stack is used as the evaluation stack:

1. Every expression leaves exactly one dword pushed on the stack
2. Every statement leaves the stack depth unchanged
3. Binary operations pop the right operand into ECX, the left into EAX,
   combine them in EAX and push the result
4. Function results are returned in EAX

All declared names, wherever they are declared, become zero-initialized
dword cells in the data section. There are no stack frames, parameters
or locals.

Register Usage
--------------
| Register | Usage                                   |
|----------|-----------------------------------------|
| EAX      | Left operand, results, return value     |
| ECX      | Right operand of a binary operation     |
| ESP      | Evaluation stack                        |

Generated Assembly Format
-------------------------
    section .text
    global _start
    _start:
        call _main
        push eax            ; exit status
        mov eax, 0x1        ; sys_exit
        sub esp, 4
        int 0x80
    _main:
        push dword 0
        pop eax
        ret
    section .data
        _x dd 0

Every identifier is prefixed with an underscore to form its label.

Usage
-----
>>> from stackcc.grammar import parse_source
>>> from stackcc.codegen import CodeGenerator
>>> asm = CodeGenerator().generate(parse_source("int main() { return 0; }"))
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable

from stackcc.ast import Node, NodeTag
from stackcc.errors import (
    CodeGenError,
    InvalidAssignmentTargetError,
    UnsupportedFeatureError,
)

logger = logging.getLogger(__name__)


LABEL_PREFIX = "_"


def label(name: str) -> str:
    """Assembly label for a source identifier."""
    return f"{LABEL_PREFIX}{name}"


# =============================================================================
# Emission Context
# =============================================================================

class EmissionMode(Enum):
    """
    How the walk is currently interpreting identifier references.

    An identifier is only loaded onto the stack in EXPRESSION mode.
    """
    GLOBAL = auto()
    EXPRESSION = auto()
    FUNCTION_DEFINITION = auto()


@dataclass
class EmissionContext:
    """
    Mutable state threaded through one generation walk.

    Attributes:
        mode: Current EmissionMode
        globals: Declared global names in first-declaration order
        code: Emitted lines of the text section
    """
    mode: EmissionMode = EmissionMode.GLOBAL
    globals: dict[str, None] = field(default_factory=dict)
    code: list[str] = field(default_factory=list)

    def emit(self, line: str) -> None:
        self.code.append(line)

    def instruction(self, text: str) -> None:
        self.code.append(f"\t{text}")

    def add_global(self, name: str) -> None:
        # Redeclaring a name reuses its cell
        self.globals.setdefault(name, None)

    def data_section(self) -> list[str]:
        lines = ["section .data"]
        lines.extend(f"\t{label(name)} dd 0" for name in self.globals)
        return lines

    @property
    def assembly(self) -> str:
        return "\n".join(self.code + self.data_section()) + "\n"


# =============================================================================
# Code Generator Class
# =============================================================================

BINARY_OPERATORS = {
    "+": "add eax, ecx",
    "-": "sub eax, ecx",
}


class CodeGenerator:
    """
    Generates NASM assembly from a stackcc AST.

    Dispatch is a table keyed by NodeTag; every tag has exactly one
    handler. visit() rejects a node whose tag has no handler.

    Attributes:
        emit_runtime: Emit the _start stub that calls the entry point and
            exits with its result. False produces "library mode" output.
        entry_point: Function called by _start
    """

    def __init__(self, emit_runtime: bool = True, entry_point: str = "main"):
        self.emit_runtime = emit_runtime
        self.entry_point = entry_point

    def generate(self, root: Node) -> str:
        """
        Generate assembly for a translation unit.

        Args:
            root: The TRANSLATION_UNIT node

        Returns:
            Complete assembly text
        """
        if root.tag is not NodeTag.TRANSLATION_UNIT:
            raise CodeGenError(f"expected a translation_unit, got {root.tag.value}")
        ctx = EmissionContext()
        try:
            self.visit(root, ctx)
        except RecursionError:
            raise CodeGenError(
                "expression nesting too deep",
                hint="split long expressions into several statements",
            ) from None
        assembly = ctx.assembly
        logger.debug(
            "generated %d code lines, %d globals",
            len(ctx.code),
            len(ctx.globals),
        )
        return assembly

    def visit(self, node: Node, ctx: EmissionContext) -> None:
        handler = self._HANDLERS.get(node.tag)
        if handler is None:
            raise CodeGenError(f"no code generation rule for {node.tag.value} nodes")
        handler(self, node, ctx)

    # =========================================================================
    # Top Level and Statements
    # =========================================================================

    def _generate_translation_unit(self, node: Node, ctx: EmissionContext) -> None:
        ctx.mode = EmissionMode.GLOBAL
        ctx.emit("section .text")
        if self.emit_runtime:
            ctx.emit("global _start")
            ctx.emit("_start:")
            ctx.instruction(f"call {label(self.entry_point)}")
            ctx.instruction("push eax")        # exit status
            ctx.instruction("mov eax, 0x1")    # sys_exit
            ctx.instruction("sub esp, 4")
            ctx.instruction("int 0x80")
        for child in node.children:
            self.visit(child, ctx)

    def _generate_declaration_statement(self, node: Node, ctx: EmissionContext) -> None:
        ctx.add_global(node.name)

    def _generate_block_statement(self, node: Node, ctx: EmissionContext) -> None:
        for child in node.children:
            self.visit(child, ctx)

    def _generate_expression_statement(self, node: Node, ctx: EmissionContext) -> None:
        ctx.mode = EmissionMode.EXPRESSION
        self.visit(node[0], ctx)
        ctx.instruction("pop eax")             # discard the statement's value

    def _generate_return_statement(self, node: Node, ctx: EmissionContext) -> None:
        ctx.mode = EmissionMode.EXPRESSION
        self.visit(node[0], ctx)
        ctx.instruction("pop eax")
        ctx.instruction("ret")

    def _generate_function_definition(self, node: Node, ctx: EmissionContext) -> None:
        ctx.mode = EmissionMode.FUNCTION_DEFINITION
        ctx.emit(f"{label(node.name)}:")
        self.visit(node[1], ctx)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _generate_assignment(self, node: Node, ctx: EmissionContext) -> None:
        target = node[0]
        if target.tag is not NodeTag.ID:
            raise InvalidAssignmentTargetError(node.location)
        cell = label(target.name)
        self.visit(node[2], ctx)
        ctx.instruction(f"pop  dword [{cell}]")
        ctx.instruction(f"push dword [{cell}]")  # the assignment's value

    def _generate_int(self, node: Node, ctx: EmissionContext) -> None:
        ctx.instruction(f"push dword {node[0].text}")

    def _generate_float(self, node: Node, ctx: EmissionContext) -> None:
        raise UnsupportedFeatureError(
            f"floating-point literal '{node[0].text}'",
            location=node.location,
            alternative="use an integer literal",
        )

    def _generate_id(self, node: Node, ctx: EmissionContext) -> None:
        if ctx.mode is EmissionMode.EXPRESSION:
            ctx.instruction(f"push dword [{label(node.name)}]")

    def _generate_binary_operation(self, node: Node, ctx: EmissionContext) -> None:
        operator = node[1]
        instruction = BINARY_OPERATORS.get(operator.text)
        if instruction is None:
            raise CodeGenError(
                f"no code generation rule for operator '{operator.text}'",
                location=operator.location,
            )
        self.visit(node[0], ctx)
        self.visit(node[2], ctx)
        ctx.instruction("pop ecx")
        ctx.instruction("pop eax")
        ctx.instruction(instruction)
        ctx.instruction("push eax")

    def _generate_function_call(self, node: Node, ctx: EmissionContext) -> None:
        callee = node[0]
        if callee.tag is not NodeTag.ID:
            raise CodeGenError(
                "called object is not a function name",
                location=node.location,
            )
        # TODO: evaluate and push arguments once call arguments are parsed as expressions
        if len(node) > 1:
            logger.warning(
                "%s: arguments to '%s' are ignored",
                node.location,
                callee.name,
            )
        ctx.instruction(f"call {label(callee.name)}")
        ctx.instruction("push eax")            # the call's value

    def _generate_declarator(self, node: Node, ctx: EmissionContext) -> None:
        raise CodeGenError(
            f"{node.tag.value} node cannot be generated on its own",
            location=node.location,
        )

    _HANDLERS: dict[NodeTag, Callable[["CodeGenerator", Node, EmissionContext], None]] = {
        NodeTag.TRANSLATION_UNIT: _generate_translation_unit,
        NodeTag.DECLARATION_STATEMENT: _generate_declaration_statement,
        NodeTag.BLOCK_STATEMENT: _generate_block_statement,
        NodeTag.EXPRESSION_STATEMENT: _generate_expression_statement,
        NodeTag.RETURN_STATEMENT: _generate_return_statement,
        NodeTag.FUNCTION_DEFINITION: _generate_function_definition,
        NodeTag.ASSIGNMENT: _generate_assignment,
        NodeTag.INT: _generate_int,
        NodeTag.FLOAT: _generate_float,
        NodeTag.ID: _generate_id,
        NodeTag.BINARY_OPERATION: _generate_binary_operation,
        NodeTag.FUNCTION_CALL: _generate_function_call,
        NodeTag.DECLARATION: _generate_declarator,
        NodeTag.FUNCTION_DECLARATOR: _generate_declarator,
        NodeTag.POINTER_DECLARATOR: _generate_declarator,
    }
