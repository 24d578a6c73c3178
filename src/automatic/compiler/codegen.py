"""
autoMATic LLVM Code Generator
=============================

This module lowers the typed tree produced by the semantic analyzer to an
LLVM IR module built with llvmlite. The generator trusts the analyzer: it
never re-checks types, it only re-resolves which storage a name refers to.

Type Mapping
------------
| autoMATic type          | LLVM type                  |
|-------------------------|----------------------------|
| int                     | i32                        |
| bool                    | i1                         |
| float                   | double                     |
| void                    | void                       |
| string                  | i8*                        |
| matrix<e, r, c>         | [r x [c x e]]*  (nullable) |

Module Layout
-------------
1. The variadic ``printf`` declaration used by print and printstr
2. Every user function, declared up front so calls resolve by name
3. One zero-initialized global per program global
4. Function bodies, each starting with an ``entry`` block that holds
   every stack slot of the function
5. Format strings and string literals as private constants, created on
   first use

Control Flow
------------
    if (c) A else B      entry -> then | else, both fall through to merge
    while (c) S          entry -> while (test) -> while_body -> while
                                              \\-> merge
    for (i; c; u) S      rewritten to { i; while (c) { S; u; } }

A block never receives two terminators: statements that follow a return
in the same block are unreachable and are not emitted, and a branch only
falls through to its merge block when it is still open.

Example
-------
>>> from automatic.compiler.codegen import generate
>>> module = generate(sprogram)
>>> print(module)
"""

import logging
from typing import Callable, Optional

from llvmlite import ir

from automatic.compiler.types import Type, BaseType, FLOAT, BOOL, INT, STRING
from automatic.compiler.ast import BinaryOperator, UnaryOperator
from automatic.compiler.scope import ScopeTable, GLOBAL_SCOPE
from automatic.compiler.sast import (
    TypedExpr,
    SBlock,
    SVarDecl,
    SExprStmt,
    SReturn,
    SIf,
    SWhile,
    SFor,
    SFunction,
    SProgram,
)
from automatic.compiler.errors import InternalCompilerError

logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================

I1 = ir.IntType(1)
I8 = ir.IntType(8)
I32 = ir.IntType(32)
DOUBLE = ir.DoubleType()
VOID_TYPE = ir.VoidType()
I8_PTR = I8.as_pointer()

SCALAR_TYPES = {
    BaseType.INT: I32,
    BaseType.BOOL: I1,
    BaseType.FLOAT: DOUBLE,
    BaseType.VOID: VOID_TYPE,
    BaseType.STRING: I8_PTR,
}

MATRIX_ELEMENTS = {
    BaseType.INT: I32,
    BaseType.BOOL: I1,
    BaseType.FLOAT: DOUBLE,
}


def matrix_storage_type(var_type: Type) -> ir.ArrayType:
    """Return the ``[rows x [cols x elem]]`` array backing a matrix type."""
    element = MATRIX_ELEMENTS.get(var_type.element)
    if element is None:
        raise InternalCompilerError(f"invalid matrix element type '{var_type.element}'")
    return ir.ArrayType(ir.ArrayType(element, var_type.cols), var_type.rows)


def llvm_type(var_type: Type) -> ir.Type:
    """
    Map an autoMATic type to its LLVM type.

    Raises:
        InternalCompilerError: For 'auto' or a malformed matrix type
    """
    if var_type.is_matrix:
        return matrix_storage_type(var_type).as_pointer()
    if var_type.base in SCALAR_TYPES:
        return SCALAR_TYPES[var_type.base]
    raise InternalCompilerError(f"type '{var_type}' has no machine representation")


def zero_value(var_type: Type) -> ir.Constant:
    """Zero of the given type: 0, 0.0, false or a null pointer."""
    return ir.Constant(llvm_type(var_type), None)


# =============================================================================
# Operator Lowering
# =============================================================================

BinaryLowering = Callable[[ir.IRBuilder, ir.Value, ir.Value], ir.Value]


def _instruction(method: str) -> BinaryLowering:
    return lambda builder, lhs, rhs: getattr(builder, method)(lhs, rhs, name="tmp")


def _fcmp(op: str) -> BinaryLowering:
    return lambda builder, lhs, rhs: builder.fcmp_ordered(op, lhs, rhs, name="tmp")


def _icmp(op: str) -> BinaryLowering:
    return lambda builder, lhs, rhs: builder.icmp_signed(op, lhs, rhs, name="tmp")


# operator -> (float form, integer form); the left operand's type selects
BINARY_LOWERING: dict[BinaryOperator, tuple[Optional[BinaryLowering], BinaryLowering]] = {
    BinaryOperator.ADD: (_instruction("fadd"), _instruction("add")),
    BinaryOperator.SUBTRACT: (_instruction("fsub"), _instruction("sub")),
    BinaryOperator.MULTIPLY: (_instruction("fmul"), _instruction("mul")),
    BinaryOperator.DIVIDE: (_instruction("fdiv"), _instruction("sdiv")),
    BinaryOperator.EQUAL: (_fcmp("=="), _icmp("==")),
    BinaryOperator.NOT_EQUAL: (_fcmp("!="), _icmp("!=")),
    BinaryOperator.LESS: (_fcmp("<"), _icmp("<")),
    BinaryOperator.LESS_EQ: (_fcmp("<="), _icmp("<=")),
    BinaryOperator.GREATER: (_fcmp(">"), _icmp(">")),
    BinaryOperator.GREATER_EQ: (_fcmp(">="), _icmp(">=")),
    BinaryOperator.LOGICAL_AND: (None, _instruction("and_")),
    BinaryOperator.LOGICAL_OR: (None, _instruction("or_")),
}


def lower_binary(
    builder: ir.IRBuilder,
    op: BinaryOperator,
    operand_type: Type,
    lhs: ir.Value,
    rhs: ir.Value,
) -> ir.Value:
    """
    Emit the instruction for a binary operator.

    Args:
        builder: Builder positioned where the instruction goes
        op: The operator
        operand_type: Static type of the left operand
        lhs: Left operand value
        rhs: Right operand value

    Raises:
        InternalCompilerError: If the operator has no form for the type
    """
    float_form, int_form = BINARY_LOWERING[op]
    form = float_form if operand_type == FLOAT else int_form
    if form is None:
        raise InternalCompilerError(f"operator '{op}' is not defined on '{operand_type}'")
    return form(builder, lhs, rhs)


# =============================================================================
# For Loop Rewriting
# =============================================================================

def desugar_for(stmt: SFor) -> SBlock:
    """
    Rewrite a for loop into a block holding its initializer and a while.

    ``for (i; c; u) S`` becomes ``{ i; while (c) { S; u; } }``. The new
    blocks live in the loop's header scope, so the update sees the same
    names as the condition.
    """
    loop_body = SBlock([stmt.body, SExprStmt(stmt.update)], stmt.scope_id)
    return SBlock(
        [SExprStmt(stmt.initializer), SWhile(stmt.condition, loop_body)],
        stmt.scope_id,
    )


# =============================================================================
# Module Generation
# =============================================================================

class CodeGenerator:
    """
    Builds one LLVM module from a typed program.

    Module-level state (globals, function declarations, constant strings)
    lives here; each function body is emitted by a FunctionEmitter that
    owns its own IRBuilder.

    Usage:
        module = CodeGenerator("demo").generate(sprogram)
    """

    def __init__(self, module_name: str = "autoMATic", target_triple: Optional[str] = None):
        self.module_name = module_name
        self.target_triple = target_triple
        self.module: Optional[ir.Module] = None
        self.scopes: Optional[ScopeTable] = None
        self.functions: dict[str, ir.Function] = {}
        self.globals: dict[str, ir.GlobalVariable] = {}
        self.printf: Optional[ir.Function] = None
        self._format_strings: dict[str, ir.GlobalVariable] = {}

    def generate(self, program: SProgram) -> ir.Module:
        """
        Generate the module for PROGRAM.

        Returns:
            The finished llvmlite module; ``str()`` gives the IR text
        """
        self.module = ir.Module(name=self.module_name)
        if self.target_triple:
            self.module.triple = self.target_triple
        self.scopes = program.scopes
        self.functions = {}
        self.globals = {}
        self._format_strings = {}

        printf_type = ir.FunctionType(I32, [I8_PTR], var_arg=True)
        self.printf = ir.Function(self.module, printf_type, name="printf")

        for sfunc in program.functions:
            self._declare_function(sfunc)

        for sglobal in program.globals:
            variable = ir.GlobalVariable(
                self.module,
                llvm_type(sglobal.type),
                name=self.module.get_unique_name(sglobal.name),
            )
            variable.initializer = zero_value(sglobal.type)
            self.globals[sglobal.name] = variable

        for sfunc in program.functions:
            FunctionEmitter(self, sfunc).emit()
            logger.debug(f"generated function '{sfunc.name}'")

        return self.module

    def _declare_function(self, sfunc: SFunction) -> None:
        function_type = ir.FunctionType(
            llvm_type(sfunc.return_type),
            [llvm_type(formal_type) for formal_type, _ in sfunc.formals],
        )
        function = ir.Function(self.module, function_type, name=sfunc.name)
        for arg, (_, name) in zip(function.args, sfunc.formals):
            arg.name = name
        self.functions[sfunc.name] = function

    def global_variable(self, name: str) -> ir.GlobalVariable:
        variable = self.globals.get(name)
        if variable is None:
            raise InternalCompilerError(f"no storage for '{name}'")
        return variable

    def format_string(self, fmt: str) -> ir.GlobalVariable:
        """Return the constant holding FMT, creating it on first use."""
        if fmt not in self._format_strings:
            self._format_strings[fmt] = self._string_constant(fmt, "fmt")
        return self._format_strings[fmt]

    def string_literal(self, text: str) -> ir.GlobalVariable:
        return self._string_constant(text, ".str")

    def _string_constant(self, text: str, name: str) -> ir.GlobalVariable:
        data = bytearray(text.encode("utf-8")) + b"\0"
        array_type = ir.ArrayType(I8, len(data))
        variable = ir.GlobalVariable(self.module, array_type, name=self.module.get_unique_name(name))
        variable.linkage = "private"
        variable.global_constant = True
        variable.unnamed_addr = True
        variable.initializer = ir.Constant(array_type, data)
        return variable


# =============================================================================
# Function Bodies
# =============================================================================

class FunctionEmitter:
    """
    Emits the body of one function.

    Stack slots are keyed by (scope id, name) and become visible only once
    their declaration has been emitted, so a use that precedes a shadowing
    declaration in the same block still reaches the outer variable. The
    current scope follows the typed tree's blocks.
    """

    def __init__(self, generator: CodeGenerator, sfunc: SFunction):
        self.generator = generator
        self.sfunc = sfunc
        self.function = generator.functions[sfunc.name]
        self.builder = ir.IRBuilder(self.function.append_basic_block("entry"))
        self._slots: dict[tuple[int, str], ir.AllocaInstr] = {}
        self._last_alloca: Optional[ir.AllocaInstr] = None
        self._scope = sfunc.scope_id

    def emit(self) -> None:
        for arg, (_, name) in zip(self.function.args, self.sfunc.formals):
            slot = self._alloca(arg.type, name)
            self.builder.store(arg, slot)
            self._slots[(self.sfunc.scope_id, name)] = slot

        self.emit_statement(self.sfunc.body)

        # Falling off the end returns a zero value
        if not self.builder.block.is_terminated:
            if self.sfunc.return_type.is_void:
                self.builder.ret_void()
            else:
                self.builder.ret(zero_value(self.sfunc.return_type))

    # =========================================================================
    # Storage
    # =========================================================================

    def _alloca(self, slot_type: ir.Type, name: str) -> ir.AllocaInstr:
        """Allocate a stack slot in the entry block, after the previous one."""
        with self.builder.goto_entry_block():
            if self._last_alloca is None:
                self.builder.position_at_start(self.function.entry_basic_block)
            else:
                self.builder.position_after(self._last_alloca)
            self._last_alloca = self.builder.alloca(slot_type, name=name)
        return self._last_alloca

    def _lookup(self, name: str) -> ir.Value:
        for scope_id in self.generator.scopes.chain(self._scope):
            if scope_id == GLOBAL_SCOPE:
                return self.generator.global_variable(name)
            slot = self._slots.get((scope_id, name))
            if slot is not None:
                return slot
        raise InternalCompilerError(f"no storage for '{name}'")

    # =========================================================================
    # Statements
    # =========================================================================

    def emit_statement(self, stmt) -> None:
        method = getattr(self, f"_emit_{type(stmt).__name__}", None)
        if method is None:
            raise InternalCompilerError(f"cannot generate {type(stmt).__name__}")
        method(stmt)

    def _emit_SBlock(self, stmt: SBlock) -> None:
        outer = self._scope
        self._scope = stmt.scope_id
        try:
            for child in stmt.statements:
                if self.builder.block.is_terminated:
                    break
                self.emit_statement(child)
        finally:
            self._scope = outer

    def _emit_SVarDecl(self, stmt: SVarDecl) -> None:
        slot = self._alloca(llvm_type(stmt.type), stmt.name)
        if stmt.initializer is not None:
            value = self.emit_expression(stmt.initializer)
        else:
            value = zero_value(stmt.type)
        self.builder.store(value, slot)
        self._slots[(self._scope, stmt.name)] = slot

    def _emit_SExprStmt(self, stmt: SExprStmt) -> None:
        self.emit_expression(stmt.expr)

    def _emit_SReturn(self, stmt: SReturn) -> None:
        if self.sfunc.return_type.is_void:
            self.builder.ret_void()
        else:
            self.builder.ret(self.emit_expression(stmt.expr))

    def _emit_SIf(self, stmt: SIf) -> None:
        condition = self.emit_expression(stmt.condition)
        then_block = self.function.append_basic_block("then")
        else_block = self.function.append_basic_block("else")
        self.builder.cbranch(condition, then_block, else_block)

        open_ends = []
        for block, branch in ((then_block, stmt.then_branch), (else_block, stmt.else_branch)):
            self.builder.position_at_end(block)
            self.emit_statement(branch)
            if not self.builder.block.is_terminated:
                open_ends.append(self.builder.block)

        merge_block = self.function.append_basic_block("merge")
        for block in open_ends:
            self.builder.position_at_end(block)
            self.builder.branch(merge_block)
        self.builder.position_at_end(merge_block)

    def _emit_SWhile(self, stmt: SWhile) -> None:
        test_block = self.function.append_basic_block("while")
        self.builder.branch(test_block)

        body_block = self.function.append_basic_block("while_body")
        self.builder.position_at_end(body_block)
        self.emit_statement(stmt.body)
        if not self.builder.block.is_terminated:
            self.builder.branch(test_block)

        merge_block = self.function.append_basic_block("merge")
        self.builder.position_at_end(test_block)
        condition = self.emit_expression(stmt.condition)
        self.builder.cbranch(condition, body_block, merge_block)
        self.builder.position_at_end(merge_block)

    def _emit_SFor(self, stmt: SFor) -> None:
        self.emit_statement(desugar_for(stmt))

    # =========================================================================
    # Expressions
    # =========================================================================

    def emit_expression(self, typed: TypedExpr) -> Optional[ir.Value]:
        """
        Emit TYPED and return its value.

        Returns None for the empty expression; void calls return the call
        instruction, which callers ignore.
        """
        method = getattr(self, f"_expr_{type(typed.expr).__name__}", None)
        if method is None:
            raise InternalCompilerError(f"cannot generate {type(typed.expr).__name__}")
        return method(typed)

    def _expr_SIntLit(self, typed: TypedExpr) -> ir.Value:
        return ir.Constant(I32, typed.expr.value)

    def _expr_SFloatLit(self, typed: TypedExpr) -> ir.Value:
        return ir.Constant(DOUBLE, typed.expr.value)

    def _expr_SBoolLit(self, typed: TypedExpr) -> ir.Value:
        return ir.Constant(I1, 1 if typed.expr.value else 0)

    def _expr_SStrLit(self, typed: TypedExpr) -> ir.Value:
        return self._string_pointer(self.generator.string_literal(typed.expr.value))

    def _expr_SNoexpr(self, typed: TypedExpr) -> None:
        return None

    def _expr_SId(self, typed: TypedExpr) -> ir.Value:
        return self.builder.load(self._lookup(typed.expr.name), name=typed.expr.name)

    def _expr_SAssign(self, typed: TypedExpr) -> ir.Value:
        value = self.emit_expression(typed.expr.value)
        self.builder.store(value, self._lookup(typed.expr.name))
        return value

    def _expr_SBinop(self, typed: TypedExpr) -> ir.Value:
        expr = typed.expr
        lhs = self.emit_expression(expr.left)
        rhs = self.emit_expression(expr.right)
        return lower_binary(self.builder, expr.op, expr.left.type, lhs, rhs)

    def _expr_SUnop(self, typed: TypedExpr) -> ir.Value:
        expr = typed.expr
        operand = self.emit_expression(expr.operand)
        if expr.op == UnaryOperator.LOGICAL_NOT:
            return self.builder.not_(operand, name="tmp")
        if expr.operand.type == FLOAT:
            return self.builder.fneg(operand, name="tmp")
        return self.builder.neg(operand, name="tmp")

    def _expr_SMatrixLit(self, typed: TypedExpr) -> ir.Value:
        storage = self._alloca(matrix_storage_type(typed.type), "matrix")
        for i, row in enumerate(typed.expr.rows):
            for j, element in enumerate(row):
                value = self.emit_expression(element)
                pointer = self._element_pointer(storage, ir.Constant(I32, i), ir.Constant(I32, j))
                self.builder.store(value, pointer)
        return storage

    def _expr_SIndex(self, typed: TypedExpr) -> ir.Value:
        expr = typed.expr
        matrix = self.emit_expression(expr.matrix)
        row = self.emit_expression(expr.row)
        col = self.emit_expression(expr.col)
        return self.builder.load(self._element_pointer(matrix, row, col), name="element")

    def _expr_SIndexAssign(self, typed: TypedExpr) -> ir.Value:
        expr = typed.expr
        matrix = self.emit_expression(expr.matrix)
        row = self.emit_expression(expr.row)
        col = self.emit_expression(expr.col)
        value = self.emit_expression(expr.value)
        self.builder.store(value, self._element_pointer(matrix, row, col))
        return value

    def _element_pointer(self, matrix: ir.Value, row: ir.Value, col: ir.Value) -> ir.Value:
        return self.builder.gep(matrix, [ir.Constant(I32, 0), row, col], inbounds=True)

    def _expr_SCall(self, typed: TypedExpr) -> ir.Value:
        expr = typed.expr
        if expr.name in ("print", "printstr"):
            return self._emit_print(expr.args[0])
        if expr.name in ("rows", "cols"):
            return self._emit_dimension(expr.name, expr.args[0])

        callee = self.generator.functions[expr.name]
        args = [self.emit_expression(arg) for arg in expr.args]
        result_name = "" if typed.type.is_void else f"{expr.name}_result"
        return self.builder.call(callee, args, name=result_name)

    def _emit_print(self, arg: TypedExpr) -> ir.Value:
        value = self.emit_expression(arg)
        if arg.type == STRING:
            fmt = "%s\n"
        elif arg.type == FLOAT:
            fmt = "%g\n"
        elif arg.type in (INT, BOOL):
            fmt = "%d\n"
            if arg.type == BOOL:
                value = self.builder.zext(value, I32, name="tmp")
        else:
            raise InternalCompilerError(f"cannot print a value of type '{arg.type}'")

        fmt_pointer = self._string_pointer(self.generator.format_string(fmt))
        return self.builder.call(self.generator.printf, [fmt_pointer, value], name="printf")

    def _emit_dimension(self, which: str, arg: TypedExpr) -> ir.Value:
        """rows()/cols(): the static size, or 0 for a null matrix."""
        matrix = self.emit_expression(arg)
        size = arg.type.rows if which == "rows" else arg.type.cols
        is_null = self.builder.icmp_unsigned(
            "==", matrix, ir.Constant(matrix.type, None), name="isnull"
        )
        return self.builder.select(
            is_null, ir.Constant(I32, 0), ir.Constant(I32, size), name=which
        )

    def _string_pointer(self, variable: ir.GlobalVariable) -> ir.Value:
        zero = ir.Constant(I32, 0)
        return self.builder.gep(variable, [zero, zero], inbounds=True, name="str")


def generate(
    program: SProgram,
    module_name: str = "autoMATic",
    target_triple: Optional[str] = None,
) -> ir.Module:
    """Generate the LLVM module for a typed program."""
    return CodeGenerator(module_name, target_triple).generate(program)
