# =============================================================================
# test_semant.py - Semantic Analyzer Unit Tests
# =============================================================================
# Tests for scope resolution and type checking.
#
# Test coverage includes:
#   - Global, function and block scopes, shadowing
#   - 'auto' inference
#   - Operator, assignment, condition and return typing
#   - Matrix literals and element access
#   - Built-in functions and user calls
#   - "did you mean" suggestions
# =============================================================================

import pytest

from automatic.compiler.parser import parse_source
from automatic.compiler.semant import (
    SemanticAnalyzer,
    analyze,
    find_similar_names,
    _edit_distance,
)
from automatic.compiler.scope import GLOBAL_SCOPE
from automatic.compiler.types import INT, FLOAT, BOOL, BaseType, matrix_type
from automatic.compiler.sast import (
    SBlock,
    SBoolLit,
    SCall,
    SFor,
    SId,
    SIndexAssign,
    SNoexpr,
    SVarDecl,
)
from automatic.compiler.errors import (
    SemanticError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
    TypeMismatchError,
    ArgumentCountError,
    InvalidLValueError,
    AutoWithoutInitializerError,
)


def check(source: str):
    """Parse and analyze SOURCE."""
    return analyze(parse_source(source, "test.mc"))


def check_body(body: str, prelude: str = ""):
    """Analyze BODY inside 'void main()' and return the typed body block."""
    sprogram = check(f"{prelude}\nvoid main() {{ {body} }}")
    return sprogram.functions[-1].body


# =============================================================================
# Scope Tests
# =============================================================================

class TestScopes:
    """Tests for name resolution and scoping."""

    def test_globals_visible_everywhere(self):
        """Globals are visible in functions defined before them."""
        sprogram = check("int f() { return g; } int g;")
        assert [g.name for g in sprogram.globals] == ["g"]

    def test_function_scope_parent_is_global(self):
        """Each function scope hangs off the global scope."""
        sprogram = check("void f(int a) {} void g(int a) {}")
        f, g = sprogram.functions
        assert f.scope_id != g.scope_id
        assert sprogram.scopes[f.scope_id].parent == GLOBAL_SCOPE
        assert sprogram.scopes[f.scope_id].symbols == {"a": INT}

    def test_local_shadows_global(self):
        """A local may reuse a global's name with a different type."""
        body = check_body("float x = 1.5; x = 2.5;", prelude="int x;")
        assert body.statements[0].type == FLOAT

    def test_inner_block_shadows(self):
        """A nested block may redeclare an outer local."""
        body = check_body("int x = 1; { bool x = true; x = false; } x = 2;")
        inner = body.statements[1]
        assert isinstance(inner, SBlock)
        assert inner.statements[0].type == BOOL

    def test_block_local_not_visible_after_block(self):
        """Names declared in a block end with it."""
        with pytest.raises(UndeclaredIdentifierError, match="undeclared identifier 'y'"):
            check_body("{ int y = 1; } y = 2;")

    def test_lone_branch_declaration_does_not_leak(self):
        """An unbraced if body is its own scope."""
        with pytest.raises(UndeclaredIdentifierError, match="'y'"):
            check_body("if (true) int y = 1; y = 2;")

    def test_for_header_scope(self):
        """The for loop gets a scope of its own."""
        body = check_body("int i; for (i = 0; i < 3; i = i + 1) { int j = i; }")
        loop = body.statements[1]
        assert isinstance(loop, SFor)
        assert loop.scope_id != body.scope_id

    def test_duplicate_local(self):
        """Two declarations of one name in one block are rejected."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate variable 'x'"):
            check_body("int x; float x;")

    def test_duplicate_global(self):
        """Two globals may not share a name."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate global 'x'"):
            check("int x; bool x;")

    def test_duplicate_parameter(self):
        """Formals of one function must be distinct."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate parameter 'a'"):
            check("void f(int a, float a) {}")

    def test_local_cannot_redeclare_parameter(self):
        """Top-level locals share the formals' scope."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate variable 'a'"):
            check("int f(int a) { int a = 1; return a; }")

    def test_initializer_cannot_see_its_own_name(self):
        """'int x = x;' refers to an outer x, if any."""
        with pytest.raises(UndeclaredIdentifierError, match="'x'"):
            check_body("int x = x;")
        check_body("int x = x;", prelude="int x;")

    def test_use_before_declaration(self):
        """A local is visible only after its declaration."""
        with pytest.raises(UndeclaredIdentifierError):
            check_body("x = 1; int x;")

    def test_void_variable(self):
        """Variables cannot be void."""
        with pytest.raises(SemanticError, match="variable 'v' declared void"):
            check("void v;")
        with pytest.raises(SemanticError, match="variable 'v' declared void"):
            check_body("void v;")

    def test_void_parameter(self):
        """Parameters cannot be void."""
        with pytest.raises(SemanticError, match="parameter 'p' declared void"):
            check("void f(void p) {}")

    def test_main_is_optional(self):
        """A unit without main is still valid."""
        sprogram = check("int twice(int n) { return n * 2; }")
        assert [f.name for f in sprogram.functions] == ["twice"]

    def test_analyzer_is_reusable(self):
        """analyze() starts from a fresh scope arena each time."""
        analyzer = SemanticAnalyzer()
        first = analyzer.analyze(parse_source("int x; void f() {}"))
        second = analyzer.analyze(parse_source("int x; void f() {}"))
        assert len(first.scopes) == len(second.scopes)


# =============================================================================
# Auto Inference Tests
# =============================================================================

class TestAuto:
    """Tests for 'auto' declarations."""

    def test_infer_scalar(self):
        """auto takes the initializer's type."""
        body = check_body("auto a = 1; auto b = 2.0; auto c = a < 3;")
        assert [s.type for s in body.statements] == [INT, FLOAT, BOOL]

    def test_infer_matrix(self):
        """auto infers the full matrix shape."""
        body = check_body("auto m = [[1.0, 2.0, 3.0]];")
        assert body.statements[0].type == matrix_type(BaseType.FLOAT, 1, 3)

    def test_inferred_type_is_enforced(self):
        """Once inferred, the type is fixed."""
        with pytest.raises(TypeMismatchError, match="cannot assign to 'a'"):
            check_body("auto a = 1; a = 1.5;")

    def test_auto_without_initializer(self):
        """auto needs an initializer."""
        with pytest.raises(AutoWithoutInitializerError, match="cannot infer type of 'a'"):
            check_body("auto a;")

    def test_auto_global(self):
        """Globals have no initializer, so cannot be auto."""
        with pytest.raises(AutoWithoutInitializerError):
            check("auto g;")

    def test_auto_parameter(self):
        """Formals cannot be auto."""
        with pytest.raises(AutoWithoutInitializerError, match="'p'"):
            check("void f(auto p) {}")

    def test_auto_return_type(self):
        """Return types cannot be auto."""
        with pytest.raises(SemanticError, match="function 'f' cannot return 'auto'"):
            check("auto f() { return 1; }")

    def test_auto_from_void_call(self):
        """A void call has no type to infer from."""
        with pytest.raises(TypeMismatchError, match="from a void expression"):
            check_body("auto x = g();", prelude="void g() {}")

    def test_no_auto_survives(self):
        """Every declaration in the typed tree has a concrete type."""
        body = check_body("auto a = 1; { auto b = a; }")
        assert not body.statements[0].type.is_auto
        assert not body.statements[1].statements[0].type.is_auto


# =============================================================================
# Expression Typing Tests
# =============================================================================

class TestExpressionTyping:
    """Tests for operator and assignment typing."""

    def test_arithmetic_keeps_type(self):
        """Arithmetic on like types yields that type."""
        body = check_body("auto a = 1 + 2 * 3; auto b = 1.0 / 2.0;")
        assert body.statements[0].type == INT
        assert body.statements[1].type == FLOAT

    def test_comparison_yields_bool(self):
        """Relational and equality operators yield bool."""
        body = check_body("auto a = 1 <= 2; auto b = 1.0 != 2.0;")
        assert body.statements[0].type == BOOL
        assert body.statements[1].type == BOOL

    def test_no_implicit_conversion(self):
        """int and float never mix."""
        with pytest.raises(TypeMismatchError, match=r"invalid operands to '\+': 'int' and 'float'"):
            check_body("auto a = 1 + 2.0;")

    def test_bool_equality_rejected(self):
        """Equality is defined on numbers only."""
        with pytest.raises(TypeMismatchError, match="'=='"):
            check_body("auto a = true == false;")

    def test_logical_requires_bool(self):
        """&& and || take bool operands."""
        check_body("auto a = true && (1 < 2) || false;")
        with pytest.raises(TypeMismatchError, match="'&&'"):
            check_body("auto a = 1 && 2;")

    def test_unary_negate(self):
        """Negation applies to numbers only."""
        assert check_body("auto a = -1.5;").statements[0].type == FLOAT
        with pytest.raises(TypeMismatchError, match="unary '-'"):
            check_body("auto a = -true;")

    def test_unary_not(self):
        """'!' applies to bool only."""
        assert check_body("auto a = !false;").statements[0].type == BOOL
        with pytest.raises(TypeMismatchError, match="'!'"):
            check_body("auto a = !1;")

    def test_assignment_is_expression(self):
        """An assignment yields the target's type."""
        body = check_body("int x; int y = (x = 3);")
        assert body.statements[1].type == INT

    def test_initializer_type_mismatch(self):
        """The initializer must match the declared type."""
        with pytest.raises(TypeMismatchError, match="cannot initialize 'x'") as exc_info:
            check_body("int x = 1.0;")
        assert exc_info.value.hint == "expected 'int', got 'float'"

    def test_invalid_lvalue(self):
        """Only variables and elements are assignable."""
        with pytest.raises(InvalidLValueError, match="not assignable"):
            check_body("1 = 2;")
        with pytest.raises(InvalidLValueError):
            check_body("int x; (x + 1) = 2;")

    def test_string_variables(self):
        """Strings can be stored and passed to printstr."""
        body = check_body('string s = "hi"; printstr(s);')
        assert isinstance(body.statements[1].expr.expr, SCall)


# =============================================================================
# Matrix Typing Tests
# =============================================================================

class TestMatrixTyping:
    """Tests for matrix literals, element access and shapes."""

    def test_literal_shape(self):
        """A literal's type records element type, rows and cols."""
        body = check_body("auto m = [[true], [false]];")
        assert body.statements[0].type == matrix_type(BaseType.BOOL, 2, 1)

    def test_ragged_literal(self):
        """Every row must have the same length."""
        with pytest.raises(TypeMismatchError, match="rows must all have the same length"):
            check_body("auto m = [[1, 2], [3]];")

    def test_mixed_element_types(self):
        """Elements share one type."""
        with pytest.raises(TypeMismatchError, match="same type"):
            check_body("auto m = [[1, 2.0]];")

    def test_string_elements_rejected(self):
        """Matrices hold int, float or bool."""
        with pytest.raises(TypeMismatchError, match="must be int, float or bool"):
            check_body('auto m = [["a"]];')

    def test_shape_must_match(self):
        """Dimensions are part of the type."""
        with pytest.raises(TypeMismatchError) as exc_info:
            check_body("matrix<int, 2, 2> m = [[1, 2, 3]];")
        assert "matrix<int, 2, 2>" in exc_info.value.hint
        assert "matrix<int, 1, 3>" in exc_info.value.hint

    def test_element_access_type(self):
        """m[i][j] has the element type."""
        body = check_body("matrix<float, 2, 2> m; float f = m[0][1];")
        assert body.statements[1].type == FLOAT

    def test_element_assignment(self):
        """Element assignment builds an SIndexAssign."""
        body = check_body("matrix<int, 2, 2> m; m[1][1] = 4;")
        assert isinstance(body.statements[1].expr.expr, SIndexAssign)

    def test_element_assignment_type(self):
        """The stored value must match the element type."""
        with pytest.raises(TypeMismatchError, match="cannot assign to matrix element"):
            check_body("matrix<int, 2, 2> m; m[0][0] = 1.5;")

    def test_subscript_non_matrix(self):
        """Only matrices can be indexed."""
        with pytest.raises(TypeMismatchError, match="subscripted value is not a matrix"):
            check_body("int x; x[0][0] = 1;")

    def test_index_must_be_int(self):
        """Indices are ints."""
        with pytest.raises(TypeMismatchError, match="matrix index must be int"):
            check_body("matrix<int, 2, 2> m; int x = m[0][1.0];")

    def test_matrix_assignment(self):
        """Whole matrices of one shape can be assigned."""
        body = check_body("matrix<int, 1, 2> a; auto b = [[1, 2]]; a = b;")
        assert body.statements[2].expr.type == matrix_type(BaseType.INT, 1, 2)


# =============================================================================
# Statement Typing Tests
# =============================================================================

class TestStatements:
    """Tests for conditions and returns."""

    def test_if_condition_must_be_bool(self):
        """There is no truthiness."""
        with pytest.raises(TypeMismatchError, match="condition of 'if' must be bool"):
            check_body("if (1) {}")

    def test_while_condition_must_be_bool(self):
        """while needs a bool condition."""
        with pytest.raises(TypeMismatchError, match="condition of 'while' must be bool"):
            check_body("while (1.0) {}")

    def test_for_condition_must_be_bool(self):
        """for needs a bool condition when present."""
        with pytest.raises(TypeMismatchError, match="condition of 'for' must be bool"):
            check_body("int i; for (i = 0; i; i = i + 1) {}")

    def test_for_defaults(self):
        """Missing for clauses become empty expressions and a true test."""
        loop = check_body("for (;;) {}").statements[0]
        assert isinstance(loop.initializer.expr, SNoexpr)
        assert isinstance(loop.update.expr, SNoexpr)
        assert loop.condition.type == BOOL
        assert loop.condition.expr == SBoolLit(True)

    def test_return_value_required(self):
        """Non-void functions must return a value."""
        with pytest.raises(TypeMismatchError, match="'f' must return a value"):
            check("int f() { return; }")

    def test_void_return_value_rejected(self):
        """Void functions return nothing."""
        with pytest.raises(TypeMismatchError, match="void function 'f' cannot return a value"):
            check("void f() { return 1; }")

    def test_return_type_mismatch(self):
        """The returned value must match the declared type."""
        with pytest.raises(TypeMismatchError, match="wrong return type in 'f'"):
            check("float f() { return 1; }")

    def test_missing_return_allowed(self):
        """Falling off the end is not an analysis error."""
        check("int f(bool b) { if (b) return 1; }")


# =============================================================================
# Call Tests
# =============================================================================

class TestCalls:
    """Tests for built-ins and user function calls."""

    def test_builtin_types(self):
        """rows and cols yield int; print and printstr yield void."""
        body = check_body(
            "matrix<int, 2, 3> m; int r = rows(m); int c = cols(m); print(r); printstr(\"x\");"
        )
        assert body.statements[1].type == INT
        assert body.statements[3].expr.type.is_void

    def test_print_accepts_scalars(self):
        """print takes int, bool or float."""
        check_body("print(1); print(true); print(2.5);")

    def test_print_rejects_string(self):
        """Strings go through printstr."""
        with pytest.raises(TypeMismatchError, match="invalid argument to 'print'") as exc_info:
            check_body('print("x");')
        assert exc_info.value.hint == "expected 'int, bool or float', got 'string'"

    def test_printstr_rejects_int(self):
        """printstr takes a string."""
        with pytest.raises(TypeMismatchError, match="invalid argument to 'printstr'"):
            check_body("printstr(1);")

    def test_rows_rejects_scalar(self):
        """rows takes a matrix."""
        with pytest.raises(TypeMismatchError, match="invalid argument to 'rows'"):
            check_body("int r = rows(1);")

    def test_builtin_arity(self):
        """Built-ins take exactly one argument."""
        with pytest.raises(ArgumentCountError, match="'print' expects 1 argument, got 2"):
            check_body("print(1, 2);")
        with pytest.raises(ArgumentCountError, match="got 0"):
            check_body("print();")

    def test_forward_call(self):
        """Functions may be called before their definition."""
        sprogram = check("int f() { return g(2); } int g(int n) { return n; }")
        ret = sprogram.functions[0].body.statements[0]
        assert ret.expr.expr.name == "g"

    def test_recursion(self):
        """A function may call itself."""
        check("int fact(int n) { if (n < 2) return 1; return n * fact(n - 1); }")

    def test_user_arity(self):
        """User calls check argument count."""
        with pytest.raises(ArgumentCountError, match="'add' expects 2 arguments, got 1"):
            check("int add(int a, int b) { return a + b; } void main() { add(1); }")

    def test_argument_types(self):
        """Arguments must match the formals exactly."""
        with pytest.raises(TypeMismatchError, match="argument 2 of 'f' has the wrong type"):
            check("void f(int a, float b) {} void main() { f(1, 2); }")

    def test_matrix_argument_shape(self):
        """Matrix formals accept only the same shape."""
        with pytest.raises(TypeMismatchError):
            check("void f(matrix<int, 2, 2> m) {} void main() { f([[1, 2]]); }")

    def test_undeclared_function_suggestion(self):
        """Misspelled calls get a suggestion."""
        with pytest.raises(UndeclaredIdentifierError, match="undeclared function 'comptue'") as exc_info:
            check("int compute() { return 1; } void main() { comptue(); }")
        assert exc_info.value.similar_identifiers == ["compute"]
        assert exc_info.value.hint == "did you mean 'compute'?"

    def test_misspelled_builtin_suggestion(self):
        """Built-in names are suggested too."""
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            check_body("pirnt(1);")
        assert "print" in exc_info.value.similar_identifiers

    def test_undeclared_variable_suggestion(self):
        """Variables visible at the point of use are suggested."""
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            check_body("int count = 0; coutn = 1;")
        assert exc_info.value.similar_identifiers == ["count"]

    def test_duplicate_function(self):
        """Function names are unique."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate function 'f'"):
            check("void f() {} int f() { return 1; }")

    def test_builtin_name_reserved(self):
        """Built-in names cannot be redefined."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate function 'print'"):
            check("void print(int x) {}")

    def test_printf_reserved(self):
        """printf is reserved for the runtime."""
        with pytest.raises(DuplicateDeclarationError, match="duplicate function 'printf'"):
            check("int printf() { return 0; }")

    def test_global_may_share_function_name(self):
        """Variables and functions live in separate namespaces."""
        sprogram = check("int f; int f() { return f; }")
        ret = sprogram.functions[0].body.statements[0]
        assert ret.expr.expr == SId("f")


# =============================================================================
# Suggestion Helper Tests
# =============================================================================

class TestSimilarNames:
    """Tests for the edit-distance suggestion helper."""

    def test_edit_distance(self):
        """Levenshtein distance."""
        assert _edit_distance("kitten", "sitting") == 3
        assert _edit_distance("abc", "abc") == 0
        assert _edit_distance("", "ab") == 2

    def test_transposition_found(self):
        """Two swapped letters are within reach."""
        assert find_similar_names("lenght", ["length", "width"]) == ["length"]

    def test_case_insensitive_match(self):
        """Names differing only in case always match."""
        assert find_similar_names("Total", ["total"]) == ["total"]

    def test_length_difference_limit(self):
        """Candidates of very different length are skipped."""
        assert find_similar_names("ab", ["abcd"]) == []

    def test_at_most_three(self):
        """No more than three suggestions are returned."""
        assert len(find_similar_names("a1", ["a2", "a3", "a4", "a5"])) == 3
