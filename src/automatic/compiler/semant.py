"""
autoMATic Semantic Analyzer
===========================

This module checks a parsed program against the language's scoping and
typing rules and produces the typed tree consumed by the code generator.

Analysis Steps
--------------
1. Globals are declared in the global scope (scope 0), in source order
2. Every function signature is registered, so calls resolve regardless
   of definition order
3. Each function body is checked in a child scope of the global scope
   that holds its formals; every nested block gets its own child scope

Typing Rules
------------
| Construct            | Operands                    | Result          |
|----------------------|-----------------------------|-----------------|
| + - * /              | both int or both float      | operand type    |
| < <= > >= == !=      | both int or both float      | bool            |
| && ||                | both bool                   | bool            |
| -x                   | int or float                | operand type    |
| !x                   | bool                        | bool            |
| x = v                | v has the type of x         | type of x       |
| m[i][j]              | m matrix, i and j int       | element type    |
| print(x)             | int, bool or float          | void            |
| printstr(s)          | string                      | void            |
| rows(m), cols(m)     | any matrix                  | int             |

There are no implicit conversions: mixing int and float is an error.
Matrix types match only if element type and both dimensions match.

The first violation raises a SemanticError subclass and analysis stops.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from automatic.errors import SourceLocation
from automatic.compiler.types import (
    Type,
    BaseType,
    INT,
    BOOL,
    FLOAT,
    STRING,
    VOID,
    matrix_type,
)
from automatic.compiler.ast import (
    ASTVisitor,
    ProgramNode,
    FunctionNode,
    VariableDeclaration,
    BlockStatement,
    ExpressionStatement,
    IfStatement,
    WhileStatement,
    ForStatement,
    ReturnStatement,
    Expression,
    BinaryExpression,
    UnaryExpression,
    AssignmentExpression,
    CallExpression,
    IndexExpression,
    IdentifierExpression,
    IntLiteral,
    FloatLiteral,
    BoolLiteral,
    StringLiteral,
    MatrixLiteral,
    BinaryOperator,
    UnaryOperator,
)
from automatic.compiler.scope import ScopeTable, GLOBAL_SCOPE
from automatic.compiler.sast import (
    TypedExpr,
    SIntLit,
    SFloatLit,
    SBoolLit,
    SStrLit,
    SMatrixLit,
    SId,
    SBinop,
    SUnop,
    SAssign,
    SIndex,
    SIndexAssign,
    SCall,
    SBlock,
    SVarDecl,
    SExprStmt,
    SReturn,
    SIf,
    SWhile,
    SFor,
    SGlobal,
    SFunction,
    SProgram,
    noexpr,
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

logger = logging.getLogger(__name__)


ARITHMETIC_OPERATORS = frozenset({
    BinaryOperator.ADD,
    BinaryOperator.SUBTRACT,
    BinaryOperator.MULTIPLY,
    BinaryOperator.DIVIDE,
})

COMPARISON_OPERATORS = frozenset({
    BinaryOperator.EQUAL,
    BinaryOperator.NOT_EQUAL,
    BinaryOperator.LESS,
    BinaryOperator.LESS_EQ,
    BinaryOperator.GREATER,
    BinaryOperator.GREATER_EQ,
})

LOGICAL_OPERATORS = frozenset({
    BinaryOperator.LOGICAL_AND,
    BinaryOperator.LOGICAL_OR,
})


# =============================================================================
# Function Signatures
# =============================================================================

@dataclass
class FunctionSignature:
    """
    Signature of a user-defined function.

    Attributes:
        name: Function name
        return_type: Declared return type
        param_types: Formal types in order
        location: Where the function was defined
    """
    name: str
    return_type: Type
    param_types: list[Type]
    location: Optional[SourceLocation] = None


@dataclass
class BuiltinFunction:
    """
    A built-in pseudo-function taking exactly one argument.

    Attributes:
        name: Built-in name
        return_type: Result type
        accepts: Predicate on the argument type
        expected: Description of accepted argument types for errors
    """
    name: str
    return_type: Type
    accepts: Callable[[Type], bool]
    expected: str


BUILTINS: dict[str, BuiltinFunction] = {
    "print": BuiltinFunction("print", VOID, lambda t: t.is_printable, "int, bool or float"),
    "printstr": BuiltinFunction("printstr", VOID, lambda t: t == STRING, "string"),
    "rows": BuiltinFunction("rows", INT, lambda t: t.is_matrix, "matrix"),
    "cols": BuiltinFunction("cols", INT, lambda t: t.is_matrix, "matrix"),
}

# Names the generated module declares for its own use
RUNTIME_FUNCTIONS = frozenset({"printf"})


# =============================================================================
# Analyzer
# =============================================================================

class SemanticAnalyzer(ASTVisitor):
    """
    Checks an AST and builds the typed tree.

    Statement visitors return typed statements and expression visitors
    return TypedExpr objects. The current scope id is kept on the
    analyzer while a function body is walked.

    Usage:
        sprogram = SemanticAnalyzer().analyze(program)
    """

    def __init__(self):
        self._scopes = ScopeTable()
        self._functions: dict[str, FunctionSignature] = {}
        self._scope = GLOBAL_SCOPE
        self._current_function: Optional[FunctionSignature] = None

    def analyze(self, program: ProgramNode) -> SProgram:
        """
        Analyze a program.

        Returns:
            The typed program, sharing this analyzer's scope arena

        Raises:
            SemanticError: On the first scoping or typing violation
        """
        self._scopes = ScopeTable()
        self._functions = {}
        self._scope = GLOBAL_SCOPE

        sglobals = [self._check_global(decl) for decl in program.globals]

        for func in program.functions:
            self._register_function(func)

        sfunctions = [self._check_function(func) for func in program.functions]

        logger.debug(
            f"analyzed {len(sglobals)} globals, {len(sfunctions)} functions, "
            f"{len(self._scopes)} scopes"
        )
        return SProgram(globals=sglobals, functions=sfunctions, scopes=self._scopes)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _check_global(self, decl: VariableDeclaration) -> SGlobal:
        if decl.var_type.is_void:
            raise SemanticError(f"variable '{decl.name}' declared void", decl.location)
        if decl.var_type.is_auto:
            raise AutoWithoutInitializerError(decl.name, decl.location)
        self._declare(GLOBAL_SCOPE, decl.name, decl.var_type, decl.location, "global")
        return SGlobal(decl.var_type, decl.name)

    def _register_function(self, func: FunctionNode) -> None:
        if func.name in BUILTINS or func.name in RUNTIME_FUNCTIONS or func.name in self._functions:
            raise DuplicateDeclarationError(func.name, "function", func.location)
        if func.return_type.is_auto:
            raise SemanticError(
                f"function '{func.name}' cannot return 'auto'",
                func.location,
                hint="declare the return type explicitly",
            )
        self._functions[func.name] = FunctionSignature(
            func.name,
            func.return_type,
            [p.param_type for p in func.parameters],
            func.location,
        )

    def _check_function(self, func: FunctionNode) -> SFunction:
        scope_id = self._scopes.new_scope(GLOBAL_SCOPE)
        formals = []

        for param in func.parameters:
            if param.param_type.is_void:
                raise SemanticError(f"parameter '{param.name}' declared void", param.location)
            if param.param_type.is_auto:
                raise AutoWithoutInitializerError(param.name, param.location)
            self._declare(scope_id, param.name, param.param_type, param.location, "parameter")
            formals.append((param.param_type, param.name))

        self._current_function = self._functions[func.name]
        self._scope = scope_id
        try:
            statements = [self.visit(stmt) for stmt in func.body.statements]
        finally:
            self._current_function = None
            self._scope = GLOBAL_SCOPE

        logger.debug(f"checked function '{func.name}' (scope {scope_id})")
        return SFunction(
            name=func.name,
            formals=formals,
            return_type=func.return_type,
            body=SBlock(statements, scope_id),
            scope_id=scope_id,
        )

    def _declare(
        self,
        scope_id: int,
        name: str,
        var_type: Type,
        location: SourceLocation,
        kind: str,
    ) -> None:
        try:
            self._scopes.declare(scope_id, name, var_type)
        except KeyError:
            raise DuplicateDeclarationError(name, kind, location) from None

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_VariableDeclaration(self, node: VariableDeclaration) -> SVarDecl:
        if node.var_type.is_void:
            raise SemanticError(f"variable '{node.name}' declared void", node.location)

        # The initializer cannot see the name being declared
        initializer = None
        if node.initializer is not None:
            initializer = self.visit(node.initializer)

        var_type = node.var_type
        if var_type.is_auto:
            if initializer is None:
                raise AutoWithoutInitializerError(node.name, node.location)
            if initializer.type.is_void:
                raise TypeMismatchError(
                    f"cannot infer type of '{node.name}' from a void expression",
                    location=node.location,
                )
            var_type = initializer.type
        elif initializer is not None:
            self._require_same(
                var_type,
                initializer.type,
                f"cannot initialize '{node.name}'",
                node.initializer.location,
            )

        self._declare(self._scope, node.name, var_type, node.location, "variable")
        return SVarDecl(var_type, node.name, initializer)

    def visit_BlockStatement(self, node: BlockStatement) -> SBlock:
        return self._check_block(node.statements)

    def _check_block(self, statements: list) -> SBlock:
        """Check STATEMENTS in a new child of the current scope."""
        outer = self._scope
        self._scope = self._scopes.new_scope(outer)
        try:
            checked = [self.visit(stmt) for stmt in statements]
            return SBlock(checked, self._scope)
        finally:
            self._scope = outer

    def _check_branch(self, stmt):
        """
        Check the body of an if, while or for.

        A body that is not a block still gets its own scope, so a lone
        declaration never leaks into the enclosing block.
        """
        if isinstance(stmt, BlockStatement):
            return self.visit(stmt)
        return self._check_block([stmt])

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> SExprStmt:
        return SExprStmt(self.visit(node.expression))

    def visit_IfStatement(self, node: IfStatement) -> SIf:
        condition = self._check_condition(node.condition, "if")
        then_branch = self._check_branch(node.then_branch)
        else_branch = self._check_branch(node.else_branch)
        return SIf(condition, then_branch, else_branch)

    def visit_WhileStatement(self, node: WhileStatement) -> SWhile:
        condition = self._check_condition(node.condition, "while")
        return SWhile(condition, self._check_branch(node.body))

    def visit_ForStatement(self, node: ForStatement) -> SFor:
        outer = self._scope
        self._scope = self._scopes.new_scope(outer)
        try:
            initializer = self.visit(node.initializer) if node.initializer else noexpr()
            if node.condition is not None:
                condition = self._check_condition(node.condition, "for")
            else:
                condition = TypedExpr(BOOL, SBoolLit(True))
            update = self.visit(node.update) if node.update else noexpr()
            body = self._check_branch(node.body)
            return SFor(initializer, condition, update, body, self._scope)
        finally:
            self._scope = outer

    def visit_ReturnStatement(self, node: ReturnStatement) -> SReturn:
        return_type = self._current_function.return_type
        name = self._current_function.name

        if node.value is None:
            if not return_type.is_void:
                raise TypeMismatchError(
                    f"'{name}' must return a value",
                    expected_type=str(return_type),
                    actual_type="void",
                    location=node.location,
                )
            return SReturn(noexpr())

        value = self.visit(node.value)
        if return_type.is_void:
            raise TypeMismatchError(
                f"void function '{name}' cannot return a value",
                expected_type="void",
                actual_type=str(value.type),
                location=node.location,
            )
        self._require_same(
            return_type,
            value.type,
            f"wrong return type in '{name}'",
            node.value.location,
        )
        return SReturn(value)

    def _check_condition(self, expr: Expression, construct: str) -> TypedExpr:
        condition = self.visit(expr)
        if condition.type != BOOL:
            raise TypeMismatchError(
                f"condition of '{construct}' must be bool",
                expected_type="bool",
                actual_type=str(condition.type),
                location=expr.location,
            )
        return condition

    # =========================================================================
    # Expressions
    # =========================================================================

    def visit_IntLiteral(self, node: IntLiteral) -> TypedExpr:
        return TypedExpr(INT, SIntLit(node.value))

    def visit_FloatLiteral(self, node: FloatLiteral) -> TypedExpr:
        return TypedExpr(FLOAT, SFloatLit(node.value))

    def visit_BoolLiteral(self, node: BoolLiteral) -> TypedExpr:
        return TypedExpr(BOOL, SBoolLit(node.value))

    def visit_StringLiteral(self, node: StringLiteral) -> TypedExpr:
        return TypedExpr(STRING, SStrLit(node.value))

    def visit_IdentifierExpression(self, node: IdentifierExpression) -> TypedExpr:
        return TypedExpr(self._lookup_variable(node.name, node.location), SId(node.name))

    def visit_MatrixLiteral(self, node: MatrixLiteral) -> TypedExpr:
        rows = [[self.visit(element) for element in row] for row in node.rows]

        cols = len(rows[0])
        for row in rows:
            if len(row) != cols:
                raise TypeMismatchError(
                    "matrix literal rows must all have the same length",
                    location=node.location,
                )

        element_type = rows[0][0].type
        for row_nodes, row in zip(node.rows, rows):
            for element_node, element in zip(row_nodes, row):
                if not element.type.is_printable:
                    raise TypeMismatchError(
                        "matrix elements must be int, float or bool",
                        actual_type=str(element.type),
                        location=element_node.location,
                    )
                self._require_same(
                    element_type,
                    element.type,
                    "matrix elements must all have the same type",
                    element_node.location,
                )

        result_type = matrix_type(element_type.base, len(rows), cols)
        return TypedExpr(result_type, SMatrixLit(tuple(tuple(row) for row in rows)))

    def visit_BinaryExpression(self, node: BinaryExpression) -> TypedExpr:
        left = self.visit(node.left)
        right = self.visit(node.right)
        op = node.operator

        if op in LOGICAL_OPERATORS:
            if left.type != BOOL or right.type != BOOL:
                raise self._operand_error(op, left.type, right.type, "bool", node.location)
            return TypedExpr(BOOL, SBinop(left, op, right))

        if left.type != right.type or not left.type.is_numeric:
            raise self._operand_error(op, left.type, right.type, "int or float", node.location)

        result_type = left.type if op in ARITHMETIC_OPERATORS else BOOL
        return TypedExpr(result_type, SBinop(left, op, right))

    @staticmethod
    def _operand_error(
        op: BinaryOperator,
        left: Type,
        right: Type,
        expected: str,
        location: SourceLocation,
    ) -> TypeMismatchError:
        return TypeMismatchError(
            f"invalid operands to '{op}': '{left}' and '{right}' "
            f"(both operands must be {expected} of the same type)",
            location=location,
        )

    def visit_UnaryExpression(self, node: UnaryExpression) -> TypedExpr:
        operand = self.visit(node.operand)

        if node.operator == UnaryOperator.NEGATE:
            if not operand.type.is_numeric:
                raise TypeMismatchError(
                    f"invalid operand to unary '-': '{operand.type}'",
                    expected_type="int or float",
                    actual_type=str(operand.type),
                    location=node.location,
                )
        elif operand.type != BOOL:
            raise TypeMismatchError(
                f"invalid operand to '!': '{operand.type}'",
                expected_type="bool",
                actual_type=str(operand.type),
                location=node.location,
            )

        return TypedExpr(operand.type, SUnop(node.operator, operand))

    def visit_AssignmentExpression(self, node: AssignmentExpression) -> TypedExpr:
        target = node.target

        if isinstance(target, IdentifierExpression):
            target_type = self._lookup_variable(target.name, target.location)
            value = self.visit(node.value)
            self._require_same(
                target_type, value.type, f"cannot assign to '{target.name}'", node.value.location
            )
            return TypedExpr(target_type, SAssign(target.name, value))

        if isinstance(target, IndexExpression):
            element = self.visit(target)
            value = self.visit(node.value)
            self._require_same(
                element.type, value.type, "cannot assign to matrix element", node.value.location
            )
            index = element.expr
            return TypedExpr(
                element.type,
                SIndexAssign(index.matrix, index.row, index.col, value),
            )

        raise InvalidLValueError(target.location)

    def visit_IndexExpression(self, node: IndexExpression) -> TypedExpr:
        matrix = self.visit(node.matrix)
        if not matrix.type.is_matrix:
            raise TypeMismatchError(
                "subscripted value is not a matrix",
                expected_type="matrix",
                actual_type=str(matrix.type),
                location=node.location,
            )

        row = self.visit(node.row)
        col = self.visit(node.col)
        for index_node, index in ((node.row, row), (node.col, col)):
            if index.type != INT:
                raise TypeMismatchError(
                    "matrix index must be int",
                    expected_type="int",
                    actual_type=str(index.type),
                    location=index_node.location,
                )

        return TypedExpr(matrix.type.element_type, SIndex(matrix, row, col))

    def visit_CallExpression(self, node: CallExpression) -> TypedExpr:
        name = node.function_name
        args = [self.visit(arg) for arg in node.arguments]

        builtin = BUILTINS.get(name)
        if builtin is not None:
            if len(args) != 1:
                raise ArgumentCountError(name, 1, len(args), node.location)
            if not builtin.accepts(args[0].type):
                raise TypeMismatchError(
                    f"invalid argument to '{name}'",
                    expected_type=builtin.expected,
                    actual_type=str(args[0].type),
                    location=node.arguments[0].location,
                )
            return TypedExpr(builtin.return_type, SCall(name, tuple(args)))

        signature = self._functions.get(name)
        if signature is None:
            candidates = list(self._functions) + list(BUILTINS)
            raise UndeclaredIdentifierError(
                name,
                "function",
                node.location,
                similar_identifiers=find_similar_names(name, candidates),
            )

        if len(args) != len(signature.param_types):
            raise ArgumentCountError(name, len(signature.param_types), len(args), node.location)

        for position, (arg_node, arg, formal_type) in enumerate(
            zip(node.arguments, args, signature.param_types), start=1
        ):
            self._require_same(
                formal_type,
                arg.type,
                f"argument {position} of '{name}' has the wrong type",
                arg_node.location,
            )

        return TypedExpr(signature.return_type, SCall(name, tuple(args)))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lookup_variable(self, name: str, location: SourceLocation) -> Type:
        var_type = self._scopes.lookup(self._scope, name)
        if var_type is None:
            raise UndeclaredIdentifierError(
                name,
                "identifier",
                location,
                similar_identifiers=find_similar_names(
                    name, self._scopes.visible_names(self._scope)
                ),
            )
        return var_type

    @staticmethod
    def _require_same(
        expected: Type,
        actual: Type,
        message: str,
        location: SourceLocation,
    ) -> None:
        if expected != actual:
            raise TypeMismatchError(
                message,
                expected_type=str(expected),
                actual_type=str(actual),
                location=location,
            )


# =============================================================================
# Name Suggestions
# =============================================================================

def find_similar_names(name: str, candidates: list[str]) -> list[str]:
    """
    Find names similar to NAME for "did you mean" hints.

    Uses a simple edit distance heuristic and returns at most three
    suggestions.
    """
    name_lower = name.lower()
    similar = []

    for candidate in candidates:
        candidate_lower = candidate.lower()
        if candidate_lower == name_lower or (
            abs(len(candidate) - len(name)) <= 1
            and _edit_distance(name_lower, candidate_lower) <= 2
        ):
            similar.append(candidate)

    return similar[:3]


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min(distances[j], distances[j + 1], new_distances[-1]))
        distances = new_distances

    return distances[-1]


def analyze(program: ProgramNode) -> SProgram:
    """Analyze PROGRAM and return its typed tree."""
    return SemanticAnalyzer().analyze(program)
