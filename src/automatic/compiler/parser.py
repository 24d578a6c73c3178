"""
autoMATic Recursive Descent Parser
==================================

This module implements a recursive descent parser for the autoMATic
language. It takes the token stream from the lexer and builds an
Abstract Syntax Tree (AST).

Grammar (Simplified EBNF)
-------------------------
program         ::= (global_decl | function_def)* EOF
global_decl     ::= type IDENTIFIER ';'
function_def    ::= type IDENTIFIER '(' params? ')' block
params          ::= type IDENTIFIER (',' type IDENTIFIER)*
type            ::= 'int' | 'bool' | 'float' | 'void' | 'string' | 'auto'
                  | 'matrix' '<' ('int' | 'float' | 'bool') ',' INT ',' INT '>'

block           ::= '{' statement* '}'
statement       ::= local_decl | block | if_stmt | while_stmt | for_stmt
                  | return_stmt | expr_stmt
local_decl      ::= type IDENTIFIER ('=' expr)? ';'
if_stmt         ::= 'if' '(' expr ')' statement ('else' statement)?
while_stmt      ::= 'while' '(' expr ')' statement
for_stmt        ::= 'for' '(' expr? ';' expr? ';' expr? ')' statement
return_stmt     ::= 'return' expr? ';'
expr_stmt       ::= expr ';'

Expression Precedence (lowest to highest)
-----------------------------------------
1. assignment     =  (right-associative)
2. logical_or     ||
3. logical_and    &&
4. equality       == !=
5. relational     < > <= >=
6. additive       + -
7. multiplicative * /
8. unary          - !
9. postfix        f(args)  m[i][j]
10. primary       literals, true, false, IDENTIFIER, '(' expr ')',
                  matrix literal '[' '[' expr, ... ']', ... ']'

There is no error recovery: the first token that does not fit the
grammar raises a ParseError and parsing stops.

Example Usage
-------------
>>> from automatic.compiler.lexer import Lexer
>>> from automatic.compiler.parser import Parser
>>> tokens = list(Lexer('int main() { return 42; }', "test.mc").tokenize())
>>> program = Parser(tokens, "test.mc").parse()
>>> program.functions[0].name
'main'
"""

from typing import Optional, Callable

from automatic.errors import SourceLocation
from automatic.compiler.lexer import Lexer, Token, TokenType
from automatic.compiler.types import (
    Type,
    BaseType,
    INT,
    BOOL,
    FLOAT,
    VOID,
    STRING,
    AUTO,
    matrix_type,
)
from automatic.compiler.ast import (
    ProgramNode,
    FunctionNode,
    VariableDeclaration,
    ParameterNode,
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
from automatic.compiler.errors import (
    UnexpectedTokenError,
    MissingTokenError,
)


# Keyword -> scalar type
SCALAR_TYPES = {
    TokenType.INT: INT,
    TokenType.BOOL: BOOL,
    TokenType.FLOAT: FLOAT,
    TokenType.VOID: VOID,
    TokenType.STRING: STRING,
    TokenType.AUTO: AUTO,
}

# Keyword -> matrix element kind
ELEMENT_TYPES = {
    TokenType.INT: BaseType.INT,
    TokenType.FLOAT: BaseType.FLOAT,
    TokenType.BOOL: BaseType.BOOL,
}


class Parser:
    """
    Recursive descent parser for autoMATic.

    Parses a stream of tokens into an Abstract Syntax Tree (AST), using
    one method per precedence level for expressions.

    Attributes:
        tokens: List of tokens to parse (ending with EOF)
        filename: Source filename for error reporting
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            filename: Source filename for error messages
            source_lines: Source lines for error context
        """
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self._pos = 0

    def parse(self) -> ProgramNode:
        """
        Parse the token stream into an AST.

        Returns:
            ProgramNode containing all globals and functions in order

        Raises:
            ParseError: On the first syntax error
        """
        declarations = []
        while not self._at_end():
            declarations.append(self._parse_top_level_declaration())

        return ProgramNode(
            location=SourceLocation(self.filename, 1, 1),
            declarations=declarations,
        )

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _advance(self) -> Token:
        if not self._at_end():
            token = self.tokens[self._pos]
            self._pos += 1
            return token
        return self.tokens[-1]

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Consume the current token if it matches one of TYPES."""
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """
        Expect and consume a specific token type.

        Args:
            token_type: The expected token type
            message: Description of the expected token for the error

        Raises:
            MissingTokenError: If the expected token is not found
        """
        if self._check(token_type):
            return self._advance()

        current = self._peek()
        raise MissingTokenError(
            message,
            self._describe(current),
            current.location,
            self._get_source_line(current.line),
        )

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        current = self._peek()
        return UnexpectedTokenError(
            self._describe(current),
            expected,
            current.location,
            self._get_source_line(current.line),
        )

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of input"
        return str(token.value)

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    # =========================================================================
    # Declarations
    # =========================================================================

    def _parse_top_level_declaration(self):
        """
        Parse a global variable or a function definition.

        Both start with 'type IDENTIFIER'; the next token decides.
        """
        start = self._peek()
        decl_type = self._parse_type()
        name = self._expect(TokenType.IDENTIFIER, "identifier").value

        if self._match(TokenType.SEMICOLON):
            return VariableDeclaration(
                location=start.location,
                name=name,
                var_type=decl_type,
                is_global=True,
            )

        if self._check(TokenType.LPAREN):
            return self._parse_function(start, decl_type, name)

        raise self._unexpected("';' or '('")

    def _parse_function(self, start: Token, return_type: Type, name: str) -> FunctionNode:
        self._expect(TokenType.LPAREN, "'('")

        parameters = []
        if not self._check(TokenType.RPAREN):
            parameters.append(self._parse_parameter())
            while self._match(TokenType.COMMA):
                parameters.append(self._parse_parameter())
        self._expect(TokenType.RPAREN, "')'")

        body = self._parse_block()
        return FunctionNode(
            location=start.location,
            name=name,
            return_type=return_type,
            parameters=parameters,
            body=body,
        )

    def _parse_parameter(self) -> ParameterNode:
        start = self._peek()
        param_type = self._parse_type()
        name = self._expect(TokenType.IDENTIFIER, "parameter name").value
        return ParameterNode(location=start.location, name=name, param_type=param_type)

    def _parse_type(self) -> Type:
        """Parse a type. 'auto' and 'void' are accepted here and checked later."""
        token = self._peek()

        if token.type in SCALAR_TYPES:
            self._advance()
            return SCALAR_TYPES[token.type]

        if token.type == TokenType.MATRIX:
            self._advance()
            self._expect(TokenType.LT, "'<'")

            element_token = self._peek()
            if element_token.type not in ELEMENT_TYPES:
                raise self._unexpected("matrix element type 'int', 'float' or 'bool'")
            self._advance()

            self._expect(TokenType.COMMA, "','")
            rows = self._expect(TokenType.INT_LITERAL, "row count").value
            self._expect(TokenType.COMMA, "','")
            cols = self._expect(TokenType.INT_LITERAL, "column count").value
            self._expect(TokenType.GT, "'>'")
            return matrix_type(ELEMENT_TYPES[element_token.type], rows, cols)

        raise self._unexpected("type name")

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_block(self) -> BlockStatement:
        start = self._expect(TokenType.LBRACE, "'{'")
        statements = []
        while not self._check(TokenType.RBRACE):
            if self._at_end():
                raise self._unexpected("'}'")
            statements.append(self._parse_statement())
        self._expect(TokenType.RBRACE, "'}'")
        return BlockStatement(location=start.location, statements=statements)

    def _parse_statement(self):
        token = self._peek()

        if token.is_type_keyword():
            return self._parse_local_declaration()
        if token.type == TokenType.LBRACE:
            return self._parse_block()
        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.RETURN:
            return self._parse_return_statement()

        expr = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ExpressionStatement(location=token.location, expression=expr)

    def _parse_local_declaration(self) -> VariableDeclaration:
        start = self._peek()
        var_type = self._parse_type()
        name = self._expect(TokenType.IDENTIFIER, "identifier").value

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        return VariableDeclaration(
            location=start.location,
            name=name,
            var_type=var_type,
            initializer=initializer,
        )

    def _parse_if_statement(self) -> IfStatement:
        start = self._advance()  # 'if'
        self._expect(TokenType.LPAREN, "'(' after 'if'")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")
        then_branch = self._parse_statement()

        # else binds to the nearest if
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()
        else:
            else_branch = BlockStatement(location=start.location)

        return IfStatement(
            location=start.location,
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_statement(self) -> WhileStatement:
        start = self._advance()  # 'while'
        self._expect(TokenType.LPAREN, "'(' after 'while'")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")
        body = self._parse_statement()
        return WhileStatement(location=start.location, condition=condition, body=body)

    def _parse_for_statement(self) -> ForStatement:
        start = self._advance()  # 'for'
        self._expect(TokenType.LPAREN, "'(' after 'for'")

        initializer = None
        if not self._check(TokenType.SEMICOLON):
            initializer = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        update = None
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")

        body = self._parse_statement()
        return ForStatement(
            location=start.location,
            initializer=initializer,
            condition=condition,
            update=update,
            body=body,
        )

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._advance()  # 'return'
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ReturnStatement(location=start.location, value=value)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment expression (right-associative)."""
        expr = self._parse_logical_or()

        if self._match(TokenType.ASSIGN):
            value = self._parse_assignment()
            return AssignmentExpression(location=expr.location, target=expr, value=value)

        return expr

    def _parse_logical_or(self) -> Expression:
        return self._parse_binary(
            self._parse_logical_and,
            {TokenType.OR: BinaryOperator.LOGICAL_OR},
        )

    def _parse_logical_and(self) -> Expression:
        return self._parse_binary(
            self._parse_equality,
            {TokenType.AND: BinaryOperator.LOGICAL_AND},
        )

    def _parse_equality(self) -> Expression:
        return self._parse_binary(
            self._parse_relational,
            {
                TokenType.EQ: BinaryOperator.EQUAL,
                TokenType.NE: BinaryOperator.NOT_EQUAL,
            },
        )

    def _parse_relational(self) -> Expression:
        return self._parse_binary(
            self._parse_additive,
            {
                TokenType.LT: BinaryOperator.LESS,
                TokenType.LE: BinaryOperator.LESS_EQ,
                TokenType.GT: BinaryOperator.GREATER,
                TokenType.GE: BinaryOperator.GREATER_EQ,
            },
        )

    def _parse_additive(self) -> Expression:
        return self._parse_binary(
            self._parse_multiplicative,
            {
                TokenType.PLUS: BinaryOperator.ADD,
                TokenType.MINUS: BinaryOperator.SUBTRACT,
            },
        )

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(
            self._parse_unary,
            {
                TokenType.STAR: BinaryOperator.MULTIPLY,
                TokenType.SLASH: BinaryOperator.DIVIDE,
            },
        )

    def _parse_binary(
        self,
        operand_parser: Callable[[], Expression],
        operators: dict[TokenType, BinaryOperator],
    ) -> Expression:
        """
        Generic left-associative binary expression parser.

        Args:
            operand_parser: Function to parse operands
            operators: Map of token types to binary operators
        """
        expr = operand_parser()

        while self._peek().type in operators:
            op_token = self._advance()
            right = operand_parser()
            expr = BinaryExpression(
                location=expr.location,
                operator=operators[op_token.type],
                left=expr,
                right=right,
            )

        return expr

    def _parse_unary(self) -> Expression:
        """Parse unary expression (- !)."""
        token = self._peek()

        unary_ops = {
            TokenType.MINUS: UnaryOperator.NEGATE,
            TokenType.NOT: UnaryOperator.LOGICAL_NOT,
        }

        if token.type in unary_ops:
            self._advance()
            operand = self._parse_unary()
            return UnaryExpression(
                location=token.location,
                operator=unary_ops[token.type],
                operand=operand,
            )

        return self._parse_postfix()

    def _parse_postfix(self) -> Expression:
        """Parse element access m[i][j] after a primary expression."""
        expr = self._parse_primary()

        while self._check(TokenType.LBRACKET):
            self._advance()
            row = self._parse_expression()
            self._expect(TokenType.RBRACKET, "']'")
            self._expect(TokenType.LBRACKET, "second index '['")
            col = self._parse_expression()
            self._expect(TokenType.RBRACKET, "']'")
            expr = IndexExpression(location=expr.location, matrix=expr, row=row, col=col)

        return expr

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if token.type == TokenType.INT_LITERAL:
            self._advance()
            return IntLiteral(location=token.location, value=token.value)

        if token.type == TokenType.FLOAT_LITERAL:
            self._advance()
            return FloatLiteral(location=token.location, value=token.value)

        if token.type == TokenType.STRING_LITERAL:
            self._advance()
            return StringLiteral(location=token.location, value=token.value)

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return BoolLiteral(location=token.location, value=token.type == TokenType.TRUE)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                return self._parse_call(token)
            return IdentifierExpression(location=token.location, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACKET:
            return self._parse_matrix_literal()

        raise self._unexpected("expression")

    def _parse_call(self, name_token: Token) -> CallExpression:
        self._expect(TokenType.LPAREN, "'('")
        arguments = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "')'")
        return CallExpression(
            location=name_token.location,
            function_name=name_token.value,
            arguments=arguments,
        )

    def _parse_matrix_literal(self) -> MatrixLiteral:
        """
        Parse [[e, ...], ...].

        The outer brackets hold one or more rows; each row holds one or
        more expressions. Shape and element types are checked later.
        """
        start = self._expect(TokenType.LBRACKET, "'['")
        rows = [self._parse_matrix_row()]
        while self._match(TokenType.COMMA):
            rows.append(self._parse_matrix_row())
        self._expect(TokenType.RBRACKET, "']'")
        return MatrixLiteral(location=start.location, rows=rows)

    def _parse_matrix_row(self) -> list[Expression]:
        self._expect(TokenType.LBRACKET, "'[' to start a matrix row")
        row = [self._parse_expression()]
        while self._match(TokenType.COMMA):
            row.append(self._parse_expression())
        self._expect(TokenType.RBRACKET, "']'")
        return row


# =============================================================================
# Convenience Function
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> ProgramNode:
    """
    Tokenize and parse already-preprocessed source.

    Args:
        source: Source code (no directives)
        filename: Source filename for error messages

    Returns:
        The parsed program
    """
    tokens = list(Lexer(source, filename).tokenize())
    return Parser(tokens, filename, source.splitlines()).parse()
