# =============================================================================
# test_codegen.py - Code Generator Unit Tests
# =============================================================================
# Tests for the x86 stack-machine code generator.
#
# Test coverage includes:
#   - Program prologue and data section
#   - Per-tag emission rules
#   - Stack neutrality of statements and expressions
#   - Errors for constructs without an emission rule
# =============================================================================

import logging

import pytest

from stackcc.ast import NodeTag, node
from stackcc.codegen import (
    CodeGenerator,
    EmissionContext,
    EmissionMode,
)
from stackcc.errors import (
    CodeGenError,
    InvalidAssignmentTargetError,
    UnsupportedFeatureError,
)
from stackcc.grammar import default_grammar, parse_source
from stackcc.combinators import TokenStream
from stackcc.lexer import Token, TokenKind


# =============================================================================
# Helper Functions
# =============================================================================

PROLOGUE = [
    "section .text",
    "global _start",
    "_start:",
    "\tcall _main",
    "\tpush eax",
    "\tmov eax, 0x1",
    "\tsub esp, 4",
    "\tint 0x80",
]


def generate(source: str, **kwargs) -> str:
    ast = parse_source(source)
    assert ast is not None, f"failed to parse {source!r}"
    return CodeGenerator(**kwargs).generate(ast)


def lines(source: str) -> list:
    return generate(source).splitlines()


def body_lines(source: str) -> list:
    """Instructions after the prologue and before the data section."""
    all_lines = lines(source)
    return all_lines[len(PROLOGUE):all_lines.index("section .data")]


def expression_code(expression: str) -> list:
    """Instructions for a single expression evaluated in expression mode."""
    grammar = default_grammar()
    tree = grammar.parse_stream(TokenStream(grammar.lex(expression)), grammar.expression)
    ctx = EmissionContext(mode=EmissionMode.EXPRESSION)
    CodeGenerator().visit(tree, ctx)
    return [line.strip() for line in ctx.code]


def stack_effect(code: list) -> int:
    """Net number of values pushed by a run of instructions."""
    effect = 0
    for line in code:
        op = line.strip().split()[0] if line.strip() else ""
        if op == "push":
            effect += 1
        elif op == "pop":
            effect -= 1
    return effect


# =============================================================================
# Program Structure
# =============================================================================

class TestProgramStructure:

    def test_prologue(self):
        assert lines("")[:len(PROLOGUE)] == PROLOGUE

    def test_empty_program_has_empty_data_section(self):
        assert lines("") == PROLOGUE + ["section .data"]

    def test_output_ends_with_newline(self):
        assert generate("").endswith("section .data\n")

    def test_data_section_after_code(self):
        result = lines("int x; int main(){ return 0; }")
        assert result.index("_main:") < result.index("section .data")
        assert result[-1] == "\t_x dd 0"

    def test_globals_in_declaration_order(self):
        result = lines("int b; int a; char c;")
        assert result[-3:] == ["\t_b dd 0", "\t_a dd 0", "\t_c dd 0"]

    def test_duplicate_globals_share_one_cell(self):
        result = lines("int x; int x;")
        assert result.count("\t_x dd 0") == 1

    def test_declarations_inside_functions_are_global(self):
        result = lines("int main(){ int y; return 0; }")
        assert result[-1] == "\t_y dd 0"

    def test_declaration_emits_no_code(self):
        assert body_lines("int x; int *p;") == []

    def test_library_mode_omits_entry_stub(self):
        result = generate("int f(){ return 1; }", emit_runtime=False).splitlines()
        assert result[0] == "section .text"
        assert "_start:" not in result
        assert result[1] == "_f:"

    def test_custom_entry_point(self):
        result = generate("int begin(){ return 1; }", entry_point="begin")
        assert "\tcall _begin" in result

    def test_requires_translation_unit(self):
        with pytest.raises(CodeGenError):
            CodeGenerator().generate(node(NodeTag.BLOCK_STATEMENT))


# =============================================================================
# Statements
# =============================================================================

class TestStatements:

    def test_return_constant(self):
        assert body_lines("int main(){ return 0; }") == [
            "_main:",
            "\tpush dword 0",
            "\tpop eax",
            "\tret",
        ]

    def test_expression_statement_discards_value(self):
        assert body_lines("int main(){ 5; }") == [
            "_main:",
            "\tpush dword 5",
            "\tpop eax",
        ]

    def test_nested_block(self):
        assert body_lines("int main(){ { return 1; } }") == [
            "_main:",
            "\tpush dword 1",
            "\tpop eax",
            "\tret",
        ]

    def test_multiple_functions_in_order(self):
        result = lines("int f(){ return 1; } int main(){ return f(); }")
        assert result.index("_f:") < result.index("_main:")

    def test_pointer_function_label_uses_name(self):
        assert "_f:" in lines("int *f(){ return 0; }")


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:

    def test_int(self):
        assert expression_code("7") == ["push dword 7"]

    def test_identifier_load(self):
        assert expression_code("x") == ["push dword [_x]"]

    def test_identifier_outside_expression_mode_emits_nothing(self):
        ctx = EmissionContext(mode=EmissionMode.FUNCTION_DEFINITION)
        CodeGenerator().visit(node(NodeTag.ID, Token(TokenKind.ID, "x")), ctx)
        assert ctx.code == []

    def test_assignment(self):
        assert expression_code("x = 4") == [
            "push dword 4",
            "pop  dword [_x]",
            "push dword [_x]",
        ]

    def test_addition(self):
        assert expression_code("x + y") == [
            "push dword [_x]",
            "push dword [_y]",
            "pop ecx",
            "pop eax",
            "add eax, ecx",
            "push eax",
        ]

    def test_subtraction(self):
        code = expression_code("1 - 2")
        assert code == [
            "push dword 1",
            "push dword 2",
            "pop ecx",
            "pop eax",
            "sub eax, ecx",
            "push eax",
        ]

    def test_function_call(self):
        assert expression_code("foo()") == ["call _foo", "push eax"]

    def test_parenthesized_call(self):
        assert expression_code("(foo)()") == ["call _foo", "push eax"]

    def test_call_arguments_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="stackcc.codegen"):
            code = expression_code("foo(int a)")
        assert code == ["call _foo", "push eax"]
        assert "arguments to 'foo' are ignored" in caplog.text

    def test_chained_assignment_target_is_rejected(self):
        with pytest.raises(InvalidAssignmentTargetError):
            expression_code("x = y = 1")


# =============================================================================
# Stack Neutrality
# =============================================================================

class TestStackNeutrality:

    EXPRESSIONS = [
        "1",
        "x",
        "x = 1",
        "a + b - c",
        "x = a + f()",
        "(a + (b - 1)) + g()",
    ]

    @pytest.mark.parametrize("expression", EXPRESSIONS)
    def test_expression_pushes_one_value(self, expression):
        assert stack_effect(expression_code(expression)) == 1

    @pytest.mark.parametrize("expression", EXPRESSIONS)
    def test_statement_is_neutral(self, expression):
        code = body_lines(f"int main(){{ {expression}; }}")
        assert stack_effect(code[1:]) == 0

    def test_return_is_neutral_before_ret(self):
        code = body_lines("int main(){ return a + b; }")
        assert code[-1] == "\tret"
        assert stack_effect(code[1:-1]) == 0


# =============================================================================
# Errors
# =============================================================================

class TestErrors:

    def test_float_literal_unsupported(self):
        with pytest.raises(UnsupportedFeatureError) as exc_info:
            generate("int main(){ return 3.14; }")
        assert "3.14" in str(exc_info.value)
        assert exc_info.value.location.line == 1

    def test_assignment_to_literal(self):
        with pytest.raises(InvalidAssignmentTargetError):
            generate("int main(){ 4 = x; }")

    def test_assignment_to_call(self):
        with pytest.raises(InvalidAssignmentTargetError):
            generate("int main(){ f() = 1; }")

    def test_call_of_non_identifier(self):
        with pytest.raises(CodeGenError, match="not a function name"):
            generate("int main(){ 1(); }")

    def test_unknown_operator(self):
        tree = node(
            NodeTag.BINARY_OPERATION,
            node(NodeTag.INT, Token(TokenKind.INT, "1")),
            Token(TokenKind.SYMBOL, "*"),
            node(NodeTag.INT, Token(TokenKind.INT, "2")),
        )
        with pytest.raises(CodeGenError, match="operator '\\*'"):
            CodeGenerator().visit(tree, EmissionContext(mode=EmissionMode.EXPRESSION))

    def test_declarator_cannot_be_generated(self):
        decl = parse_source("int x;")[0][0]
        with pytest.raises(CodeGenError):
            CodeGenerator().visit(decl, EmissionContext())

    def test_every_tag_has_a_rule(self):
        assert set(CodeGenerator._HANDLERS) == set(NodeTag)

    def test_tag_without_rule_is_rejected(self):
        class IntOnlyGenerator(CodeGenerator):
            _HANDLERS = {NodeTag.INT: CodeGenerator._HANDLERS[NodeTag.INT]}

        tree = node(NodeTag.ID, Token(TokenKind.ID, "x"))
        ctx = EmissionContext(mode=EmissionMode.EXPRESSION)
        with pytest.raises(CodeGenError, match="no code generation rule for id nodes"):
            IntOnlyGenerator().visit(tree, ctx)
