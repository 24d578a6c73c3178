"""
autoMATic Typed Syntax Tree
===========================

The semantic analyzer turns the parser's AST into this typed tree. Every
expression is wrapped in a TypedExpr that pairs it with its resolved
type, and every block and function remembers the id of its scope in the
ScopeTable. The code generator reads the types verbatim and never
re-derives them.

Node Overview
-------------
TypedExpr(type, expr) where expr is one of
    SIntLit, SFloatLit, SBoolLit, SStrLit, SMatrixLit, SNoexpr,
    SId, SBinop, SUnop, SAssign, SIndex, SIndexAssign, SCall

Statements
    SBlock(statements, scope_id)
    SVarDecl(type, name, initializer)
    SExprStmt(expr)
    SReturn(expr)            - expr is an SNoexpr for 'return;'
    SIf(condition, then_branch, else_branch)
    SWhile(condition, body)
    SFor(initializer, condition, update, body, scope_id)

Top level
    SGlobal(type, name), SFunction(...), SProgram(globals, functions, scopes)

No 'auto' type survives analysis.
"""

from dataclasses import dataclass, field
from typing import Union

from automatic.compiler.types import Type, VOID
from automatic.compiler.ast import BinaryOperator, UnaryOperator
from automatic.compiler.scope import ScopeTable


# =============================================================================
# Expressions
# =============================================================================

@dataclass(frozen=True)
class SIntLit:
    value: int


@dataclass(frozen=True)
class SFloatLit:
    value: float


@dataclass(frozen=True)
class SBoolLit:
    value: bool


@dataclass(frozen=True)
class SStrLit:
    value: str


@dataclass(frozen=True)
class SMatrixLit:
    """Matrix literal; rows are lists of typed element expressions."""
    rows: tuple[tuple["TypedExpr", ...], ...]


@dataclass(frozen=True)
class SNoexpr:
    """Absent expression (empty for clause, bare return)."""
    pass


@dataclass(frozen=True)
class SId:
    name: str


@dataclass(frozen=True)
class SBinop:
    left: "TypedExpr"
    op: BinaryOperator
    right: "TypedExpr"


@dataclass(frozen=True)
class SUnop:
    op: UnaryOperator
    operand: "TypedExpr"


@dataclass(frozen=True)
class SAssign:
    name: str
    value: "TypedExpr"


@dataclass(frozen=True)
class SIndex:
    matrix: "TypedExpr"
    row: "TypedExpr"
    col: "TypedExpr"


@dataclass(frozen=True)
class SIndexAssign:
    matrix: "TypedExpr"
    row: "TypedExpr"
    col: "TypedExpr"
    value: "TypedExpr"


@dataclass(frozen=True)
class SCall:
    name: str
    args: tuple["TypedExpr", ...]


SExpr = Union[
    SIntLit, SFloatLit, SBoolLit, SStrLit, SMatrixLit, SNoexpr,
    SId, SBinop, SUnop, SAssign, SIndex, SIndexAssign, SCall,
]


@dataclass(frozen=True)
class TypedExpr:
    """
    An expression paired with the type analysis resolved for it.

    Attributes:
        type: Resolved type (never 'auto')
        expr: The expression variant
    """
    type: Type
    expr: SExpr


def noexpr() -> TypedExpr:
    """Return the typed empty expression."""
    return TypedExpr(VOID, SNoexpr())


# =============================================================================
# Statements
# =============================================================================

@dataclass
class SBlock:
    """
    Sequence of statements evaluated in the given scope.

    Attributes:
        statements: Statements in source order
        scope_id: Scope the statements' declarations belong to
    """
    statements: list["SStmt"]
    scope_id: int


@dataclass
class SVarDecl:
    type: Type
    name: str
    initializer: Union[TypedExpr, None] = None


@dataclass
class SExprStmt:
    expr: TypedExpr


@dataclass
class SReturn:
    expr: TypedExpr


@dataclass
class SIf:
    condition: TypedExpr
    then_branch: "SStmt"
    else_branch: "SStmt"


@dataclass
class SWhile:
    condition: TypedExpr
    body: "SStmt"


@dataclass
class SFor:
    """
    For loop as analyzed. The code generator rewrites it into an SBlock
    holding the initializer and an SWhile before emitting anything.

    Attributes:
        initializer: Evaluated once (SNoexpr if absent)
        condition: Loop test (true literal if absent)
        update: Evaluated after each body pass (SNoexpr if absent)
        body: Loop body
        scope_id: Scope of the loop header
    """
    initializer: TypedExpr
    condition: TypedExpr
    update: TypedExpr
    body: "SStmt"
    scope_id: int


SStmt = Union[SBlock, SVarDecl, SExprStmt, SReturn, SIf, SWhile, SFor]


# =============================================================================
# Top Level
# =============================================================================

@dataclass
class SGlobal:
    """Global variable; implicitly zero-initialized."""
    type: Type
    name: str


@dataclass
class SFunction:
    """
    A checked function.

    Attributes:
        name: Function name
        formals: (type, name) pairs in order
        return_type: Declared return type
        body: Body block, evaluated in the function scope
        scope_id: Function scope (holds formals and top-level locals)
    """
    name: str
    formals: list[tuple[Type, str]]
    return_type: Type
    body: SBlock
    scope_id: int


@dataclass
class SProgram:
    """
    A fully analyzed program.

    Attributes:
        globals: Globals in source order
        functions: Functions in source order
        scopes: Arena holding every scope referenced by the tree
    """
    globals: list[SGlobal] = field(default_factory=list)
    functions: list[SFunction] = field(default_factory=list)
    scopes: ScopeTable = field(default_factory=ScopeTable)
