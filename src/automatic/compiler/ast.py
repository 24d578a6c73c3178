"""
autoMATic Abstract Syntax Tree (AST) Definitions
================================================

This module defines the AST node types produced by the parser. The AST
is untyped: declared types are kept exactly as written (including
'auto'), and no name has been resolved yet. The semantic analyzer turns
it into the typed tree defined in automatic.compiler.sast.

Node Hierarchy
--------------
ASTNode (base)
├── ProgramNode - root node, globals and functions in source order
├── Declarations
│   ├── FunctionNode - function definition
│   ├── VariableDeclaration - global or local variable
│   └── ParameterNode - function parameter
├── Statements
│   ├── BlockStatement - { ... }
│   ├── IfStatement - if/else (else is always present)
│   ├── WhileStatement - while loop
│   ├── ForStatement - for loop
│   ├── ReturnStatement - return [expr];
│   └── ExpressionStatement - expression as statement
└── Expressions
    ├── BinaryExpression - arithmetic, comparison, logical
    ├── UnaryExpression - '-' and '!'
    ├── AssignmentExpression - target = value
    ├── CallExpression - f(args)
    ├── IndexExpression - m[i][j]
    ├── IdentifierExpression - variable reference
    ├── IntLiteral, FloatLiteral, BoolLiteral, StringLiteral
    └── MatrixLiteral - [[a, b], [c, d]]

Design Notes
------------
- All nodes are dataclasses for clean representation
- Each node stores its source location for error reporting
- Local variable declarations are statements and may appear anywhere
  in a block
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from automatic.errors import SourceLocation
from automatic.compiler.types import Type


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node appears
    """
    location: SourceLocation

    def __repr__(self) -> str:
        """Default representation showing node type."""
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


@dataclass
class Expression(ASTNode):
    """Base class for all expression nodes."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for all statement nodes."""
    pass


@dataclass
class Declaration(ASTNode):
    """Base class for nodes that introduce a name."""
    pass


# =============================================================================
# Declaration Nodes
# =============================================================================

@dataclass
class ParameterNode(Declaration):
    """
    Function parameter declaration.

    Attributes:
        name: Parameter name
        param_type: Declared type
    """
    name: str = ""
    param_type: Type = field(default=None)


@dataclass
class VariableDeclaration(Declaration):
    """
    Variable declaration (global or local).

    Represents declarations like:
        int x;
        float y = 1.5;
        auto m = [[1, 2], [3, 4]];

    Globals never have an initializer.

    Attributes:
        name: Variable name
        var_type: Declared type, possibly 'auto'
        initializer: Optional initialization expression
        is_global: True for global variables
    """
    name: str = ""
    var_type: Type = field(default=None)
    initializer: Optional[Expression] = None
    is_global: bool = False


@dataclass
class FunctionNode(Declaration):
    """
    Function definition.

    Attributes:
        name: Function name
        return_type: Declared return type
        parameters: Formal parameters in order
        body: Function body
    """
    name: str = ""
    return_type: Type = field(default=None)
    parameters: list[ParameterNode] = field(default_factory=list)
    body: "BlockStatement" = None


# =============================================================================
# Program Root Node
# =============================================================================

@dataclass
class ProgramNode(ASTNode):
    """
    Root node of the AST representing a complete autoMATic unit.

    Attributes:
        declarations: Global variables and functions in source order
    """
    declarations: list[Union[VariableDeclaration, FunctionNode]] = field(default_factory=list)

    @property
    def globals(self) -> list[VariableDeclaration]:
        return [d for d in self.declarations if isinstance(d, VariableDeclaration)]

    @property
    def functions(self) -> list[FunctionNode]:
        return [d for d in self.declarations if isinstance(d, FunctionNode)]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class BlockStatement(Statement):
    """
    Block statement enclosed in braces.

    Attributes:
        statements: Statements and local declarations in source order
    """
    statements: list[Union[Statement, VariableDeclaration]] = field(default_factory=list)


@dataclass
class ExpressionStatement(Statement):
    """
    Expression used as a statement (followed by semicolon).

    Attributes:
        expression: The expression
    """
    expression: Expression = None


@dataclass
class IfStatement(Statement):
    """
    If statement.

    A missing else clause is represented by an empty block, so
    else_branch is never None.
    """
    condition: Expression = None
    then_branch: Statement = None
    else_branch: Statement = None


@dataclass
class WhileStatement(Statement):
    condition: Expression = None
    body: Statement = None


@dataclass
class ForStatement(Statement):
    """
    For loop statement.

    Attributes:
        initializer: Optional initialization expression
        condition: Optional loop condition (None means true)
        update: Optional update expression
        body: Loop body statement
    """
    initializer: Optional[Expression] = None
    condition: Optional[Expression] = None
    update: Optional[Expression] = None
    body: Statement = None


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


# =============================================================================
# Expression Nodes
# =============================================================================

class BinaryOperator(Enum):
    """Binary operator types."""
    # Arithmetic
    ADD = auto()        # +
    SUBTRACT = auto()   # -
    MULTIPLY = auto()   # *
    DIVIDE = auto()     # /

    # Comparison
    EQUAL = auto()      # ==
    NOT_EQUAL = auto()  # !=
    LESS = auto()       # <
    LESS_EQ = auto()    # <=
    GREATER = auto()    # >
    GREATER_EQ = auto() # >=

    # Logical
    LOGICAL_AND = auto()  # &&
    LOGICAL_OR = auto()   # ||

    def __str__(self) -> str:
        return BINARY_SYMBOLS[self]


class UnaryOperator(Enum):
    """Unary operator types."""
    NEGATE = auto()       # -x
    LOGICAL_NOT = auto()  # !x

    def __str__(self) -> str:
        return UNARY_SYMBOLS[self]


BINARY_SYMBOLS = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUBTRACT: "-",
    BinaryOperator.MULTIPLY: "*",
    BinaryOperator.DIVIDE: "/",
    BinaryOperator.EQUAL: "==",
    BinaryOperator.NOT_EQUAL: "!=",
    BinaryOperator.LESS: "<",
    BinaryOperator.LESS_EQ: "<=",
    BinaryOperator.GREATER: ">",
    BinaryOperator.GREATER_EQ: ">=",
    BinaryOperator.LOGICAL_AND: "&&",
    BinaryOperator.LOGICAL_OR: "||",
}

UNARY_SYMBOLS = {
    UnaryOperator.NEGATE: "-",
    UnaryOperator.LOGICAL_NOT: "!",
}


@dataclass
class BinaryExpression(Expression):
    operator: BinaryOperator = None
    left: Expression = None
    right: Expression = None


@dataclass
class UnaryExpression(Expression):
    operator: UnaryOperator = None
    operand: Expression = None


@dataclass
class AssignmentExpression(Expression):
    """
    Assignment expression (target = value).

    The parser accepts any expression as target; the analyzer rejects
    anything that is not a variable or a matrix element.
    """
    target: Expression = None
    value: Expression = None


@dataclass
class CallExpression(Expression):
    """
    Function call, including the built-ins print, printstr, rows, cols.

    Attributes:
        function_name: Name of the callee
        arguments: Argument expressions in order
    """
    function_name: str = ""
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class IndexExpression(Expression):
    """
    Matrix element access: matrix[row][col].

    Attributes:
        matrix: Expression producing the matrix
        row: Row index expression
        col: Column index expression
    """
    matrix: Expression = None
    row: Expression = None
    col: Expression = None


@dataclass
class IdentifierExpression(Expression):
    name: str = ""


@dataclass
class IntLiteral(Expression):
    value: int = 0


@dataclass
class FloatLiteral(Expression):
    value: float = 0.0


@dataclass
class BoolLiteral(Expression):
    value: bool = False


@dataclass
class StringLiteral(Expression):
    value: str = ""


@dataclass
class MatrixLiteral(Expression):
    """
    Matrix literal: [[e, ...], ...].

    Attributes:
        rows: Element expressions, one list per row
    """
    rows: list[list[Expression]] = field(default_factory=list)


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Provides a visitor pattern for traversing the AST. Subclasses
    override visit_* methods for specific node types they care about.

    Usage:
        class MyVisitor(ASTVisitor):
            def visit_FunctionNode(self, node):
                # Handle function definitions
                pass

        visitor = MyVisitor()
        visitor.visit(program)
    """

    def visit(self, node: ASTNode):
        """
        Visit a node by dispatching to the appropriate method.

        Args:
            node: The AST node to visit

        Returns:
            The result of the visit method (varies by node type)
        """
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """
        Default visit method for unhandled node types.

        Visits all children of the node, including nested lists such as
        the rows of a matrix literal.
        """
        for field_value in node.__dict__.values():
            self._visit_value(field_value)

    def _visit_value(self, value) -> None:
        if isinstance(value, ASTNode):
            self.visit(value)
        elif isinstance(value, list):
            for item in value:
                self._visit_value(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Produces a human-readable, indented representation of the AST.

    Usage:
        printer = ASTPrinter()
        output = printer.print(ast)
        print(output)
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return as string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _indent(self) -> None:
        self.indent_level += 1

    def _dedent(self) -> None:
        self.indent_level = max(0, self.indent_level - 1)

    def _nested(self, node: ASTNode) -> None:
        self._indent()
        self.visit(node)
        self._dedent()

    def visit_ProgramNode(self, node: ProgramNode):
        self._emit("Program")
        self._indent()
        for decl in node.declarations:
            self.visit(decl)
        self._dedent()

    def visit_FunctionNode(self, node: FunctionNode):
        params = ", ".join(f"{p.param_type} {p.name}" for p in node.parameters)
        self._emit(f"Function: {node.return_type} {node.name}({params})")
        self._nested(node.body)

    def visit_VariableDeclaration(self, node: VariableDeclaration):
        scope = "global" if node.is_global else "local"
        init = f" = {self._expr_str(node.initializer)}" if node.initializer else ""
        self._emit(f"Variable ({scope}): {node.var_type} {node.name}{init}")

    def visit_BlockStatement(self, node: BlockStatement):
        self._emit("Block")
        self._indent()
        for stmt in node.statements:
            self.visit(stmt)
        self._dedent()

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"If ({self._expr_str(node.condition)})")
        self._indent()
        self._emit("Then:")
        self._nested(node.then_branch)
        self._emit("Else:")
        self._nested(node.else_branch)
        self._dedent()

    def visit_WhileStatement(self, node: WhileStatement):
        self._emit(f"While ({self._expr_str(node.condition)})")
        self._nested(node.body)

    def visit_ForStatement(self, node: ForStatement):
        init = self._expr_str(node.initializer)
        cond = self._expr_str(node.condition)
        update = self._expr_str(node.update)
        self._emit(f"For ({init}; {cond}; {update})")
        self._nested(node.body)

    def visit_ReturnStatement(self, node: ReturnStatement):
        if node.value:
            self._emit(f"Return {self._expr_str(node.value)}")
        else:
            self._emit("Return")

    def visit_ExpressionStatement(self, node: ExpressionStatement):
        self._emit(f"Expr: {self._expr_str(node.expression)}")

    def _expr_str(self, expr: Optional[Expression]) -> str:
        """Convert expression to string representation."""
        if expr is None:
            return ""
        if isinstance(expr, BoolLiteral):
            return "true" if expr.value else "false"
        if isinstance(expr, (IntLiteral, FloatLiteral)):
            return str(expr.value)
        if isinstance(expr, StringLiteral):
            return f'"{expr.value}"'
        if isinstance(expr, IdentifierExpression):
            return expr.name
        if isinstance(expr, BinaryExpression):
            return f"({self._expr_str(expr.left)} {expr.operator} {self._expr_str(expr.right)})"
        if isinstance(expr, UnaryExpression):
            return f"({expr.operator}{self._expr_str(expr.operand)})"
        if isinstance(expr, AssignmentExpression):
            return f"({self._expr_str(expr.target)} = {self._expr_str(expr.value)})"
        if isinstance(expr, CallExpression):
            args = ", ".join(self._expr_str(a) for a in expr.arguments)
            return f"{expr.function_name}({args})"
        if isinstance(expr, IndexExpression):
            return (
                f"{self._expr_str(expr.matrix)}"
                f"[{self._expr_str(expr.row)}][{self._expr_str(expr.col)}]"
            )
        if isinstance(expr, MatrixLiteral):
            rows = ", ".join(
                "[" + ", ".join(self._expr_str(e) for e in row) + "]"
                for row in expr.rows
            )
            return f"[{rows}]"
        return f"<{type(expr).__name__}>"
