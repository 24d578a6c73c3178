# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the autoMATic recursive descent parser.
#
# Test coverage includes:
#   - Global variables and function definitions
#   - Statements (blocks, if/else, while, for, return)
#   - Operator precedence and associativity
#   - Matrix types, literals and element access
#   - Syntax errors
#   - AST pretty printing
# =============================================================================

import pytest

from automatic.compiler.parser import parse_source
from automatic.compiler.types import INT, FLOAT, VOID, AUTO, BaseType, matrix_type
from automatic.compiler.ast import (
    ASTPrinter,
    ASTVisitor,
    AssignmentExpression,
    BinaryExpression,
    BinaryOperator,
    BlockStatement,
    BoolLiteral,
    CallExpression,
    ExpressionStatement,
    FloatLiteral,
    ForStatement,
    FunctionNode,
    IdentifierExpression,
    IfStatement,
    IndexExpression,
    IntLiteral,
    MatrixLiteral,
    ReturnStatement,
    StringLiteral,
    UnaryExpression,
    UnaryOperator,
    VariableDeclaration,
    WhileStatement,
)
from automatic.compiler.errors import ParseError, MissingTokenError, UnexpectedTokenError


def parse_expr(text: str):
    """Parse TEXT as the expression of a single statement in main."""
    program = parse_source(f"void main() {{ {text}; }}")
    stmt = program.functions[0].body.statements[0]
    assert isinstance(stmt, ExpressionStatement)
    return stmt.expression


def parse_body(text: str) -> list:
    """Parse TEXT as the body of main and return its statements."""
    program = parse_source(f"void main() {{ {text} }}")
    return program.functions[0].body.statements


# =============================================================================
# Declaration Tests
# =============================================================================

class TestDeclarations:
    """Tests for top-level declarations."""

    def test_empty_program(self):
        """An empty unit parses to an empty program."""
        program = parse_source("")
        assert program.declarations == []

    def test_global_variable(self):
        """A global is 'type name;' without initializer."""
        program = parse_source("float scale;")
        decl = program.declarations[0]
        assert isinstance(decl, VariableDeclaration)
        assert decl.is_global
        assert decl.name == "scale"
        assert decl.var_type == FLOAT
        assert decl.initializer is None

    def test_function(self):
        """Functions carry return type, parameters and body."""
        program = parse_source("int add(int a, float b) { return a; }")
        func = program.functions[0]
        assert isinstance(func, FunctionNode)
        assert func.name == "add"
        assert func.return_type == INT
        assert [(p.param_type, p.name) for p in func.parameters] == [(INT, "a"), (FLOAT, "b")]
        assert isinstance(func.body, BlockStatement)

    def test_declaration_order_preserved(self):
        """Globals and functions stay interleaved in source order."""
        program = parse_source("int a; void f() {} int b; void g() {}")
        assert [d.name for d in program.declarations] == ["a", "f", "b", "g"]
        assert [g.name for g in program.globals] == ["a", "b"]
        assert [f.name for f in program.functions] == ["f", "g"]

    def test_void_and_auto_parse(self):
        """'void' and 'auto' are accepted by the grammar anywhere a type is."""
        program = parse_source("void v; auto f(auto x) {}")
        assert program.declarations[0].var_type == VOID
        assert program.functions[0].return_type == AUTO
        assert program.functions[0].parameters[0].param_type == AUTO

    def test_matrix_type(self):
        """matrix<elem, rows, cols> builds a matrix type."""
        program = parse_source("matrix<float, 2, 3> m;")
        assert program.globals[0].var_type == matrix_type(BaseType.FLOAT, 2, 3)

    def test_matrix_type_rejects_string_elements(self):
        """Matrix elements must be int, float or bool."""
        with pytest.raises(UnexpectedTokenError, match="unexpected token 'string'"):
            parse_source("matrix<string, 2, 2> m;")

    def test_global_initializer_rejected(self):
        """Globals cannot be initialized."""
        with pytest.raises(UnexpectedTokenError, match="unexpected token '='"):
            parse_source("int x = 1;")

    def test_missing_semicolon_at_end(self):
        """Running out of input reports end of input."""
        with pytest.raises(ParseError, match="end of input"):
            parse_source("int x")


# =============================================================================
# Statement Tests
# =============================================================================

class TestStatements:
    """Tests for statement parsing."""

    def test_local_declarations(self):
        """Locals may be declared anywhere in a block, with or without value."""
        stmts = parse_body("int x; x = 1; float y = 2.5;")
        assert isinstance(stmts[0], VariableDeclaration)
        assert not stmts[0].is_global
        assert isinstance(stmts[1], ExpressionStatement)
        assert isinstance(stmts[2].initializer, FloatLiteral)

    def test_if_without_else(self):
        """A missing else becomes an empty block."""
        stmt = parse_body("if (true) x = 1;")[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.then_branch, ExpressionStatement)
        assert isinstance(stmt.else_branch, BlockStatement)
        assert stmt.else_branch.statements == []

    def test_dangling_else(self):
        """else binds to the nearest if."""
        stmt = parse_body("if (a) if (b) x = 1; else x = 2;")[0]
        inner = stmt.then_branch
        assert isinstance(inner, IfStatement)
        assert isinstance(inner.else_branch, ExpressionStatement)
        assert stmt.else_branch.statements == []

    def test_while(self):
        """while takes a condition and a body."""
        stmt = parse_body("while (i < 10) { i = i + 1; }")[0]
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.condition, BinaryExpression)
        assert isinstance(stmt.body, BlockStatement)

    def test_for_all_clauses(self):
        """All three for clauses are expressions."""
        stmt = parse_body("for (i = 0; i < 3; i = i + 1) print(i);")[0]
        assert isinstance(stmt, ForStatement)
        assert isinstance(stmt.initializer, AssignmentExpression)
        assert isinstance(stmt.condition, BinaryExpression)
        assert isinstance(stmt.update, AssignmentExpression)

    def test_for_empty_clauses(self):
        """Every for clause may be omitted."""
        stmt = parse_body("for (;;) {}")[0]
        assert stmt.initializer is None
        assert stmt.condition is None
        assert stmt.update is None

    def test_for_rejects_declaration(self):
        """The for initializer is an expression, not a declaration."""
        with pytest.raises(ParseError):
            parse_body("for (int i = 0; i < 3; i = i + 1) {}")

    def test_return_forms(self):
        """return may carry a value or not."""
        stmts = parse_body("return; return 1;")
        assert isinstance(stmts[0], ReturnStatement)
        assert stmts[0].value is None
        assert isinstance(stmts[1].value, IntLiteral)

    def test_nested_block(self):
        """Blocks nest."""
        stmt = parse_body("{ { int x; } }")[0]
        assert isinstance(stmt, BlockStatement)
        assert isinstance(stmt.statements[0], BlockStatement)

    def test_missing_semicolon(self):
        """A statement must end with ';'."""
        with pytest.raises(MissingTokenError, match="expected ';' before '}'"):
            parse_source("int main() { return 1 }")

    def test_unclosed_block(self):
        """A block must be closed before the end of input."""
        with pytest.raises(ParseError, match="end of input"):
            parse_source("int main() { return 1;")

    def test_if_requires_parentheses(self):
        """The if condition is parenthesized."""
        with pytest.raises(MissingTokenError, match="'\\(' after 'if'"):
            parse_body("if x > 1 {}")


# =============================================================================
# Expression Tests
# =============================================================================

class TestExpressions:
    """Tests for expression parsing and precedence."""

    def test_multiplication_binds_tighter(self):
        """a + b * c parses as a + (b * c)."""
        expr = parse_expr("a + b * c")
        assert expr.operator == BinaryOperator.ADD
        assert expr.right.operator == BinaryOperator.MULTIPLY

    def test_left_associative(self):
        """a - b - c parses as (a - b) - c."""
        expr = parse_expr("a - b - c")
        assert expr.operator == BinaryOperator.SUBTRACT
        assert isinstance(expr.left, BinaryExpression)
        assert isinstance(expr.right, IdentifierExpression)

    def test_assignment_right_associative(self):
        """a = b = c parses as a = (b = c)."""
        expr = parse_expr("a = b = c")
        assert isinstance(expr, AssignmentExpression)
        assert isinstance(expr.value, AssignmentExpression)

    def test_logical_precedence(self):
        """&& binds tighter than ||, comparisons tighter than both."""
        expr = parse_expr("a < b || c == d && e")
        assert expr.operator == BinaryOperator.LOGICAL_OR
        assert expr.left.operator == BinaryOperator.LESS
        assert expr.right.operator == BinaryOperator.LOGICAL_AND
        assert expr.right.left.operator == BinaryOperator.EQUAL

    def test_parentheses(self):
        """Parentheses override precedence."""
        expr = parse_expr("(a + b) * c")
        assert expr.operator == BinaryOperator.MULTIPLY
        assert expr.left.operator == BinaryOperator.ADD

    def test_unary(self):
        """Unary operators nest and bind tighter than binary ones."""
        expr = parse_expr("-x * !y")
        assert expr.operator == BinaryOperator.MULTIPLY
        assert expr.left.operator == UnaryOperator.NEGATE
        assert expr.right.operator == UnaryOperator.LOGICAL_NOT

        nested = parse_expr("- -x")
        assert isinstance(nested.operand, UnaryExpression)

    def test_literals(self):
        """Every literal kind."""
        assert parse_expr("7").value == 7
        assert parse_expr("0.5").value == 0.5
        assert isinstance(parse_expr("true"), BoolLiteral)
        assert parse_expr("false").value is False
        assert isinstance(parse_expr('"text"'), StringLiteral)

    def test_call(self):
        """Calls take zero or more arguments."""
        expr = parse_expr("f(1, x + 2)")
        assert isinstance(expr, CallExpression)
        assert expr.function_name == "f"
        assert len(expr.arguments) == 2
        assert parse_expr("g()").arguments == []

    def test_matrix_literal(self):
        """Matrix literals keep their rows."""
        expr = parse_expr("[[1, 2, 3], [4, 5, 6]]")
        assert isinstance(expr, MatrixLiteral)
        assert [len(row) for row in expr.rows] == [3, 3]
        assert expr.rows[1][2].value == 6

    def test_ragged_literal_parses(self):
        """Row lengths are checked after parsing."""
        expr = parse_expr("[[1], [2, 3]]")
        assert [len(row) for row in expr.rows] == [1, 2]

    def test_flat_list_rejected(self):
        """A matrix literal needs nested rows."""
        with pytest.raises(MissingTokenError, match="matrix row"):
            parse_expr("[1, 2]")

    def test_element_access(self):
        """m[i][j] is one index expression."""
        expr = parse_expr("m[i + 1][0]")
        assert isinstance(expr, IndexExpression)
        assert isinstance(expr.matrix, IdentifierExpression)
        assert expr.row.operator == BinaryOperator.ADD

    def test_element_access_needs_two_indices(self):
        """A single subscript is a syntax error."""
        with pytest.raises(MissingTokenError, match="second index"):
            parse_expr("m[1]")

    def test_element_assignment(self):
        """Element access is a valid assignment target."""
        expr = parse_expr("m[0][1] = 5")
        assert isinstance(expr, AssignmentExpression)
        assert isinstance(expr.target, IndexExpression)

    def test_unexpected_token(self):
        """A token that cannot start an expression is reported."""
        with pytest.raises(UnexpectedTokenError, match="unexpected token '\\)'") as exc_info:
            parse_expr(")")
        assert exc_info.value.hint == "expected expression"

    def test_error_location(self):
        """Errors point at the offending token with its source line."""
        with pytest.raises(ParseError) as exc_info:
            parse_source("int main() {\n  x = ;\n}", "prog.mc")
        error = exc_info.value
        assert error.location.line == 2
        assert error.location.column == 7
        assert "  x = ;" in str(error)


# =============================================================================
# Visitor and Printer Tests
# =============================================================================

class TestASTPrinter:
    """Tests for the AST visitor and pretty printer."""

    def test_print_program(self):
        """The printer shows declarations and nesting."""
        program = parse_source(
            "int g;\n"
            "int main() {\n"
            "  int x = 1;\n"
            "  if (x > 0) print(x); else return 0;\n"
            "  return x;\n"
            "}\n"
        )
        assert ASTPrinter().print(program) == "\n".join([
            "Program",
            "  Variable (global): int g",
            "  Function: int main()",
            "    Block",
            "      Variable (local): int x = 1",
            "      If ((x > 0))",
            "        Then:",
            "          Expr: print(x)",
            "        Else:",
            "          Return 0",
            "      Return x",
        ])

    def test_print_loops_and_matrices(self):
        """Loops, matrix literals and element access print compactly."""
        program = parse_source(
            "void f(matrix<int, 1, 2> m) {\n"
            "  for (;;) m[0][1] = -m[0][0];\n"
            "  while (true) m = [[1, 2]];\n"
            "}\n"
        )
        assert ASTPrinter().print(program) == "\n".join([
            "Program",
            "  Function: void f(matrix<int, 1, 2> m)",
            "    Block",
            "      For (; ; )",
            "        Expr: (m[0][1] = (-m[0][0]))",
            "      While (true)",
            "        Expr: (m = [[1, 2]])",
        ])

    def test_visitor_reaches_nested_nodes(self):
        """generic_visit descends into matrix literal rows."""

        class LiteralCounter(ASTVisitor):
            def __init__(self):
                self.count = 0

            def visit_IntLiteral(self, node):
                self.count += 1

        counter = LiteralCounter()
        counter.visit(parse_source("void f() { g([[1, 2], [3, 4]], 5); }"))
        assert counter.count == 5
