"""
Buddy Parser

Recursive descent parser that produces an AST from tokens.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import List, Optional, Tuple

from .tokens import Token, TokenType, SYNC_TOKENS, MODIFIER_TOKENS
from .ast import *
from .errors import ParseError

logger = logging.getLogger(__name__)

ASSIGNABLE = (VariableExpr, IndexExpr, GetExpr, OptionalChainingExpr)


class Parser:
    """Recursive descent parser for Buddy."""

    def __init__(self, tokens: List[Token]):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
        """
        self.tokens = tokens
        self.current = 0
        self.errors: List[ParseError] = []
        self.allow_trailing_closures = True

    def parse(self) -> Program:
        """
        Parse the token stream into an AST.

        Declarations that fail to parse are left out of the program and
        their errors are collected in ``self.errors``.

        Returns:
            Program AST node
        """
        statements = []

        while not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)

        return Program(statements)

    # =========================================================================
    # Declarations
    # =========================================================================

    def declaration(self) -> Optional[Statement]:
        """Parse a declaration or statement, recovering on error."""
        try:
            attributes = self.attributes()
            modifiers = self.modifiers()

            if self.match(TokenType.VAR, TokenType.LET):
                return self.var_declaration(modifiers)
            if self.match(TokenType.FUNC):
                return self.function(FunctionKind.FUNCTION, attributes, modifiers)
            if self.match(TokenType.STRUCT):
                return self.struct_declaration()
            if self.match(TokenType.CLASS):
                return self.class_declaration()
            if self.match(TokenType.ENUM):
                return self.enum_declaration()
            if self.match(TokenType.PROTOCOL):
                return self.protocol_declaration()
            if self.match(TokenType.TYPEALIAS):
                return self.typealias_declaration()
            if attributes or modifiers:
                raise self.error(self.peek(), "Expect declaration after modifiers.")
            return self.statement()
        except ParseError as e:
            logger.debug("parse error: %s", e)
            self.errors.append(e)
            self.synchronize()
            return None

    def attributes(self) -> List[Attribute]:
        """Parse '@name' and '@name(args)' attributes."""
        attributes = []
        while self.match(TokenType.AT):
            name = self.consume(TokenType.IDENTIFIER, "Expect attribute name after '@'.")
            arguments = []
            if self.match(TokenType.LEFT_PAREN):
                if not self.check(TokenType.RIGHT_PAREN):
                    arguments.append(self.expression())
                    while self.match(TokenType.COMMA):
                        arguments.append(self.expression())
                self.consume(TokenType.RIGHT_PAREN, "Expect ')' after attribute arguments.")
            attributes.append(Attribute(name, arguments))
        return attributes

    def modifiers(self) -> set:
        """Parse access and declaration modifiers in any order."""
        found = set()
        while self.peek().type in MODIFIER_TOKENS:
            found.add(self.advance().type)
        return found

    def var_declaration(self, modifiers=frozenset()) -> VarDeclaration:
        """Parse a variable declaration after 'var' or 'let'."""
        is_constant = self.previous().type == TokenType.LET
        name = self.consume(TokenType.IDENTIFIER, "Expect variable name.")

        type = self.type_identifier() if self.match(TokenType.COLON) else None
        initializer = self.expression() if self.match(TokenType.EQUAL) else None

        self.match(TokenType.SEMICOLON)

        return VarDeclaration(
            name, type, initializer, is_constant,
            is_private=TokenType.PRIVATE in modifiers,
            is_static=TokenType.STATIC in modifiers,
        )

    def function(self, kind: FunctionKind, attributes=None,
                 modifiers=frozenset()) -> FunctionDeclaration:
        """Parse a function, method or initializer after 'func' or 'init'."""
        label = kind.value
        if kind == FunctionKind.INITIALIZER:
            name = self.previous()
        else:
            name = self.consume(TokenType.IDENTIFIER, f"Expect {label} name.")

        self.consume(TokenType.LEFT_PAREN, f"Expect '(' after {label} name.")
        parameters = self.parameter_list()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")

        can_throw = self.match(TokenType.THROWS)
        return_type = self.type_identifier() if self.match(TokenType.RIGHT_ARROW) else None

        self.consume(TokenType.LEFT_BRACE, f"Expect '{{' before {label} body.")
        body = self.block()

        return FunctionDeclaration(
            name, kind, parameters, body,
            return_type=return_type,
            attributes=attributes or [],
            is_static=TokenType.STATIC in modifiers,
            is_private=TokenType.PRIVATE in modifiers,
            can_throw=can_throw,
        )

    def parameter_list(self, allow_nameless: bool = False) -> List[Parameter]:
        """Parse a comma separated parameter list (without the parens)."""
        parameters = []
        if self.check(TokenType.RIGHT_PAREN):
            return parameters

        parameters.append(self.parameter(allow_nameless))
        while self.match(TokenType.COMMA):
            if self.check(TokenType.RIGHT_PAREN):
                break
            parameters.append(self.parameter(allow_nameless))
        return parameters

    def parameter(self, allow_nameless: bool = False) -> Parameter:
        """
        Parse one parameter.

        Forms:
            name: T             label and internal name are the same
            label name: T       explicit call-site label
            _ name: T           no call-site label (passed positionally)
            T                   nameless, enum associated values only
        """
        named = self.check(TokenType.IDENTIFIER) and (
            self.check_next(TokenType.COLON) or self.check_next(TokenType.IDENTIFIER))

        if allow_nameless and not named:
            start = self.peek()
            type = self.type_identifier()
            placeholder = Token(TokenType.IDENTIFIER, "_", "_", start.line, start.column)
            return Parameter(None, placeholder, type)

        first = self.consume(TokenType.IDENTIFIER, "Expect parameter name.")
        if self.check(TokenType.IDENTIFIER):
            internal_name = self.advance()
            external_name = None if first.lexeme == "_" else first
        else:
            internal_name = first
            external_name = first

        self.consume(TokenType.COLON, "Expect ':' after parameter name.")
        type = self.type_identifier()

        is_variadic = self.match(TokenType.DOT_DOT_DOT)
        default_value = self.expression() if self.match(TokenType.EQUAL) else None

        return Parameter(external_name, internal_name, type, is_variadic, default_value)

    def type_identifier(self) -> TypeIdentifier:
        """Parse a type: Name, Dotted.Name, [T], [K: V], optionally T?."""
        if self.match(TokenType.LEFT_BRACKET):
            first = self.type_identifier()
            if self.match(TokenType.COLON):
                value = self.type_identifier()
                self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after dictionary value type.")
                type = DictionaryType(first, value)
            else:
                self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after array element type.")
                type = ArrayType(first)
        else:
            token = self.consume(TokenType.IDENTIFIER, "Expect type name.")
            name = token.lexeme
            while self.check(TokenType.DOT) and self.check_next(TokenType.IDENTIFIER):
                self.advance()
                name += "." + self.advance().lexeme
            type = IdentifierType(name, token)

        if self.match(TokenType.ATTACHED_QUESTION):
            type = OptionalType(type)

        return type

    def inheritance_list(self, message: str) -> List[Token]:
        names = []
        if self.match(TokenType.COLON):
            names.append(self.consume(TokenType.IDENTIFIER, message))
            while self.match(TokenType.COMMA):
                names.append(self.consume(TokenType.IDENTIFIER, message))
        return names

    def struct_declaration(self) -> StructDeclaration:
        """Parse a struct declaration after 'struct'."""
        name = self.consume(TokenType.IDENTIFIER, "Expect struct name.")
        inherited_types = self.inheritance_list("Expect inherited type name.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before struct body.")

        members: List[Statement] = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            attributes = self.attributes()
            modifiers = self.modifiers()

            if self.match(TokenType.INIT):
                members.append(self.function(FunctionKind.INITIALIZER, attributes, modifiers))
            elif self.match(TokenType.VAR, TokenType.LET):
                members.append(self.var_declaration(modifiers))
            elif self.match(TokenType.FUNC):
                members.append(self.function(FunctionKind.METHOD, attributes, modifiers))
            elif self.match(TokenType.STRUCT):
                members.append(self.struct_declaration())
            elif self.match(TokenType.CLASS):
                members.append(self.class_declaration())
            elif self.match(TokenType.ENUM):
                members.append(self.enum_declaration())
            elif self.match(TokenType.PROTOCOL):
                members.append(self.protocol_declaration())
            elif self.match(TokenType.TYPEALIAS):
                members.append(self.typealias_declaration())
            else:
                raise self.error(self.peek(), "Expect method or property declaration in struct.")

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after struct body.")
        return StructDeclaration(name, inherited_types, members)

    def class_declaration(self) -> ClassDeclaration:
        """Parse a class declaration after 'class'."""
        name = self.consume(TokenType.IDENTIFIER, "Expect class name.")
        inherited_types = self.inheritance_list("Expect superclass name.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before class body.")

        methods: List[FunctionDeclaration] = []
        properties: List[Statement] = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            attributes = self.attributes()
            modifiers = self.modifiers()

            if self.match(TokenType.INIT):
                methods.append(self.function(FunctionKind.INITIALIZER, attributes, modifiers))
            elif self.match(TokenType.FUNC):
                methods.append(self.function(FunctionKind.METHOD, attributes, modifiers))
            elif self.match(TokenType.VAR, TokenType.LET):
                properties.append(self.var_declaration(modifiers))
            else:
                raise self.error(self.peek(), "Expect method or property declaration in class.")

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after class body.")
        return ClassDeclaration(name, inherited_types, methods, properties)

    def enum_declaration(self) -> EnumDeclaration:
        """Parse an enum declaration after 'enum'."""
        name = self.consume(TokenType.IDENTIFIER, "Expect enum name.")
        # Raw value types are accepted and ignored
        self.inheritance_list("Expect raw value type name.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before enum cases.")

        cases: List[EnumCase] = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            self.match(TokenType.INDIRECT)
            self.consume(TokenType.CASE, "Expect 'case' before enum case name.")

            while True:
                case_name = self.consume(TokenType.IDENTIFIER, "Expect enum case name.")
                raw_value = None
                associated_values: List[Parameter] = []

                if self.match(TokenType.EQUAL):
                    raw_value = self.expression()
                elif self.match(TokenType.LEFT_PAREN):
                    associated_values = self.parameter_list(allow_nameless=True)
                    self.consume(TokenType.RIGHT_PAREN, "Expect ')' after associated value(s).")

                cases.append(EnumCase(case_name, raw_value, associated_values))

                if not self.match(TokenType.COMMA) or not self.check(TokenType.IDENTIFIER):
                    break
            self.match(TokenType.SEMICOLON)

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after enum cases.")
        return EnumDeclaration(name, cases)

    def protocol_declaration(self) -> ProtocolDeclaration:
        """Parse a protocol declaration after 'protocol'."""
        name = self.consume(TokenType.IDENTIFIER, "Expect protocol name.")
        inherited = self.inheritance_list("Expect inherited protocol name.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before protocol body.")

        members: List[Statement] = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            self.modifiers()
            if self.match(TokenType.VAR, TokenType.LET):
                members.append(self.protocol_property())
            elif self.match(TokenType.FUNC):
                members.append(self.protocol_method())
            else:
                raise self.error(self.peek(), "Expect property or method declaration in protocol.")

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after protocol body.")
        return ProtocolDeclaration(name, inherited, members)

    def protocol_property(self) -> ProtocolPropertyDeclaration:
        is_constant = self.previous().type == TokenType.LET
        name = self.consume(TokenType.IDENTIFIER, "Expect variable name.")
        self.consume(TokenType.COLON, "Expect ':' after property name.")
        property_type = self.type_identifier()

        getter, setter = True, False
        if self.match(TokenType.LEFT_BRACE):
            getter = False
            while self.match(TokenType.GET, TokenType.SET):
                if self.previous().type == TokenType.GET:
                    getter = True
                else:
                    setter = True
            self.consume(TokenType.RIGHT_BRACE, "Expect '}' after getter/setter specification.")

        return ProtocolPropertyDeclaration(name, property_type, is_constant, getter, setter)

    def protocol_method(self) -> ProtocolMethodDeclaration:
        name = self.consume(TokenType.IDENTIFIER, "Expect method name.")
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after method name.")
        parameters = self.parameter_list()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")
        self.match(TokenType.THROWS)
        return_type = self.type_identifier() if self.match(TokenType.RIGHT_ARROW) else None
        return ProtocolMethodDeclaration(name, parameters, return_type)

    def typealias_declaration(self) -> TypealiasDeclaration:
        name = self.consume(TokenType.IDENTIFIER, "Expect typealias name.")
        self.consume(TokenType.EQUAL, "Expect '=' after typealias name.")
        return TypealiasDeclaration(name, self.type_identifier())

    # =========================================================================
    # Statements
    # =========================================================================

    def statement(self) -> Statement:
        """Parse a statement."""
        if self.match(TokenType.IF):
            return self.if_statement()
        if self.match(TokenType.GUARD):
            return self.guard_statement()
        if self.match(TokenType.SWITCH):
            return self.switch_statement()
        if self.match(TokenType.FOR):
            return self.for_statement()
        if self.match(TokenType.WHILE):
            return self.while_statement()
        if self.match(TokenType.REPEAT):
            return self.repeat_statement()
        if self.match(TokenType.RETURN):
            return self.return_statement()
        if self.match(TokenType.BREAK):
            keyword = self.previous()
            self.match(TokenType.SEMICOLON)
            return BreakStmt(keyword)
        if self.match(TokenType.CONTINUE):
            keyword = self.previous()
            self.match(TokenType.SEMICOLON)
            return ContinueStmt(keyword)
        if self.match(TokenType.DO):
            return self.do_catch_statement()
        if self.match(TokenType.THROW):
            return self.throw_statement()
        if self.match(TokenType.INDIRECT):
            return BlankStmt()
        if self.match(TokenType.LEFT_BRACE):
            return self.block()

        return self.expression_statement()

    def condition(self) -> Expression:
        """Parse the condition of a control statement (no trailing closures)."""
        with self.trailing_closures(False):
            return self.expression()

    def if_statement(self) -> Statement:
        """Parse an if or if-let statement after 'if'."""
        if self.match(TokenType.LET, TokenType.VAR):
            name = self.consume(TokenType.IDENTIFIER, "Expect variable name after 'if let'.")
            value = self.condition() if self.match(TokenType.EQUAL) else None
            self.consume(TokenType.LEFT_BRACE, "Expect '{' after if let condition.")
            then_branch = self.block()
            else_branch = self.statement() if self.match(TokenType.ELSE) else None
            return IfLetStmt(name, value, then_branch, else_branch)

        condition = self.condition()
        self.consume(TokenType.LEFT_BRACE, "Expect '{' after if condition.")
        then_branch = self.block()
        else_branch = self.statement() if self.match(TokenType.ELSE) else None
        return IfStmt(condition, then_branch, else_branch)

    def guard_statement(self) -> Statement:
        """Parse a guard or guard-let statement after 'guard'."""
        if self.match(TokenType.LET, TokenType.VAR):
            name = self.consume(TokenType.IDENTIFIER, "Expect variable name after 'guard let'.")
            self.consume(TokenType.EQUAL, "Expect '=' after variable name in guard let.")
            value = self.condition()
            self.consume(TokenType.ELSE, "Expect 'else' after guard let condition.")
            self.consume(TokenType.LEFT_BRACE, "Expect '{' after guard let condition.")
            return GuardLetStmt(name, value, self.block())

        condition = self.condition()
        self.consume(TokenType.ELSE, "Expect 'else' after guard condition.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' after guard condition.")
        return GuardStmt(condition, self.block())

    def switch_statement(self) -> SwitchStmt:
        expression = self.condition()
        self.consume(TokenType.LEFT_BRACE, "Expect '{' after switch expression.")

        cases: List[SwitchCase] = []
        default_case = None

        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            if self.match(TokenType.CASE):
                expressions = [self.expression()]
                while self.match(TokenType.COMMA):
                    expressions.append(self.expression())
                self.consume(TokenType.COLON, "Expect ':' after case value.")
                cases.append(SwitchCase(expressions, self.case_body()))
            elif self.match(TokenType.DEFAULT):
                self.consume(TokenType.COLON, "Expect ':' after 'default'.")
                default_case = self.case_body()
            else:
                raise self.error(self.peek(), "Expect 'case' or 'default' in switch statement.")

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after switch cases.")
        return SwitchStmt(expression, cases, default_case)

    def case_body(self) -> List[Statement]:
        statements = []
        while (not self.check(TokenType.CASE) and not self.check(TokenType.DEFAULT)
               and not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end()):
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    def for_statement(self) -> ForStmt:
        """Parse a for-in loop after 'for'."""
        parens = self.match(TokenType.LEFT_PAREN)
        variable = self.consume(TokenType.IDENTIFIER, "Expect variable name in for-in loop.")
        self.consume(TokenType.IN, "Expect 'in' after variable name in for-in loop.")
        iterable = self.condition()
        if parens:
            self.consume(TokenType.RIGHT_PAREN, "Expect matching ')' after for-in loop.")
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before for loop body.")
        return ForStmt(variable, iterable, self.block())

    def while_statement(self) -> WhileStmt:
        """Parse a while loop after 'while'."""
        condition = self.condition()
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before while loop body.")
        return WhileStmt(condition, self.block())

    def repeat_statement(self) -> RepeatStmt:
        """Parse a repeat-while loop after 'repeat'."""
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before repeat loop body.")
        body = self.block()
        self.consume(TokenType.WHILE, "Expect 'while' after repeat loop body.")
        condition = self.condition()
        self.match(TokenType.SEMICOLON)
        return RepeatStmt(body, condition)

    def return_statement(self) -> ReturnStmt:
        """Parse a return statement; the value stops at the end of the line."""
        keyword = self.previous()
        value = None
        if not (keyword.end_of_line or self.check(TokenType.RIGHT_BRACE)
                or self.check(TokenType.SEMICOLON) or self.is_at_end()):
            value = self.expression()
        self.match(TokenType.SEMICOLON)
        return ReturnStmt(keyword, value)

    def do_catch_statement(self) -> DoCatchStmt:
        """Parse 'do { } catch [let name] { }' after 'do'."""
        self.consume(TokenType.LEFT_BRACE, "Expect '{' after 'do'.")
        body = self.block()
        catch = self.consume(TokenType.CATCH, "Expect 'catch' after do block.")

        if self.match(TokenType.LET, TokenType.VAR) or self.check(TokenType.IDENTIFIER):
            error_name = self.consume(TokenType.IDENTIFIER, "Expect error name after 'catch let'.")
        else:
            error_name = Token(TokenType.IDENTIFIER, "error", "error", catch.line, catch.column)

        self.consume(TokenType.LEFT_BRACE, "Expect '{' after catch clause.")
        return DoCatchStmt(body, self.block(), error_name)

    def throw_statement(self) -> ThrowStmt:
        keyword = self.previous()
        expression = self.expression()
        self.match(TokenType.SEMICOLON)
        return ThrowStmt(keyword, expression)

    def block(self, in_body_parameters: Optional[List[Parameter]] = None) -> BlockStmt:
        """Parse a block body; the opening brace has already been consumed."""
        statements = []
        with self.trailing_closures(True):
            while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
                stmt = self.declaration()
                if stmt is not None:
                    statements.append(stmt)
        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")
        return BlockStmt(statements, in_body_parameters or [])

    def expression_statement(self) -> ExpressionStmt:
        """Parse an expression statement."""
        expr = self.expression()
        self.match(TokenType.SEMICOLON)
        return ExpressionStmt(expr)

    # =========================================================================
    # Expressions (lowest to highest precedence)
    # =========================================================================

    def expression(self) -> Expression:
        """Parse an expression."""
        return self.assignment()

    def assignment(self) -> Expression:
        """Parse assignment (right-associative)."""
        expr = self.ternary()

        if self.match(TokenType.EQUAL, TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL):
            operator = self.previous()
            value = self.assignment()

            if isinstance(expr, ASSIGNABLE):
                return AssignExpr(expr, operator, value)

            raise self.error(operator, "Invalid assignment target.")

        return expr

    def ternary(self) -> Expression:
        """Parse ternary conditional."""
        expr = self.coalescing()

        if self.match(TokenType.QUESTION):
            then_expr = self.ternary()
            self.consume(TokenType.COLON, "Expect ':' in ternary expression.")
            else_expr = self.ternary()
            return TernaryExpr(expr, then_expr, else_expr)

        return expr

    def coalescing(self) -> Expression:
        expr = self.or_expr()
        while self.match(TokenType.QUESTION_QUESTION):
            operator = self.previous()
            expr = BinaryExpr(expr, operator, self.or_expr())
        return expr

    def or_expr(self) -> Expression:
        """Parse logical OR."""
        expr = self.and_expr()
        while self.match(TokenType.PIPE_PIPE):
            operator = self.previous()
            expr = LogicalExpr(expr, operator, self.and_expr())
        return expr

    def and_expr(self) -> Expression:
        """Parse logical AND."""
        expr = self.equality()
        while self.match(TokenType.AMPERSAND_AMPERSAND):
            operator = self.previous()
            expr = LogicalExpr(expr, operator, self.equality())
        return expr

    def equality(self) -> Expression:
        """Parse equality operators."""
        expr = self.comparison()
        while self.match(TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL):
            operator = self.previous()
            expr = BinaryExpr(expr, operator, self.comparison())
        return expr

    def comparison(self) -> Expression:
        """Parse comparison operators."""
        expr = self.type_test()
        while self.match(TokenType.LESS, TokenType.LESS_EQUAL,
                         TokenType.GREATER, TokenType.GREATER_EQUAL):
            operator = self.previous()
            expr = BinaryExpr(expr, operator, self.type_test())
        return expr

    def type_test(self) -> Expression:
        """Parse 'expr is Type'."""
        expr = self.range()
        while self.match(TokenType.IS):
            expr = IsExpr(expr, self.type_identifier())
        return expr

    def range(self) -> Expression:
        expr = self.term()
        while self.match(TokenType.DOT_DOT_DOT, TokenType.DOT_DOT_LESS):
            operator = self.previous()
            expr = RangeExpr(expr, operator, self.term())
        return expr

    def term(self) -> Expression:
        """Parse addition and subtraction."""
        expr = self.factor()
        while self.match(TokenType.PLUS, TokenType.MINUS):
            operator = self.previous()
            expr = BinaryExpr(expr, operator, self.factor())
        return expr

    def factor(self) -> Expression:
        """Parse multiplication, division, and modulo."""
        expr = self.cast()
        while self.match(TokenType.STAR, TokenType.SLASH, TokenType.PERCENT):
            operator = self.previous()
            expr = BinaryExpr(expr, operator, self.cast())
        return expr

    def cast(self) -> Expression:
        """Parse 'as', 'as?' and 'as!'."""
        expr = self.try_expr()
        while self.match(TokenType.AS):
            is_optional = self.match(TokenType.ATTACHED_QUESTION)
            is_force_unwrap = not is_optional and self.match(TokenType.ATTACHED_BANG)
            expr = AsExpr(expr, self.type_identifier(), is_optional, is_force_unwrap)
        return expr

    def try_expr(self) -> Expression:
        """Parse 'try', 'try?' and 'try!'."""
        if self.match(TokenType.TRY):
            is_optional = self.match(TokenType.ATTACHED_QUESTION)
            is_force_unwrap = not is_optional and self.match(TokenType.ATTACHED_BANG)
            return TryExpr(self.try_expr(), is_optional, is_force_unwrap)
        return self.unary()

    def unary(self) -> Expression:
        """Parse prefix '!' and '-'."""
        if self.match(TokenType.BANG, TokenType.ATTACHED_BANG, TokenType.MINUS):
            operator = self.previous()
            return UnaryExpr(operator, self.unary())
        return self.call()

    def call(self) -> Expression:
        """Parse the postfix chain: calls, member access, subscripts, '?' and '!'."""
        expr = self.primary()

        while True:
            if self.match(TokenType.LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(TokenType.DOT):
                name = self.member_name()
                expr = GetExpr(expr, name)
            elif self.match(TokenType.LEFT_BRACKET):
                expr = self.finish_index(expr)
            elif self.match(TokenType.ATTACHED_QUESTION, TokenType.ATTACHED_BANG):
                force_unwrap = self.previous().type == TokenType.ATTACHED_BANG
                expr = OptionalChainingExpr(expr, force_unwrap)

                if self.match(TokenType.LEFT_PAREN):
                    expr = self.finish_call(expr, is_optional=True)
                elif self.match(TokenType.DOT):
                    name = self.member_name()
                    expr = GetExpr(expr, name, is_optional=True)
                elif self.match(TokenType.LEFT_BRACKET):
                    expr = self.finish_index(expr, is_optional=True)
                elif not force_unwrap:
                    raise self.error(self.peek(), "Expect property, subscript, or method call after '?'.")
            elif self.trailing_closure_follows(expr):
                brace = self.advance()
                closure = self.closure()
                if isinstance(expr, CallExpr):
                    expr = replace(expr, arguments=expr.arguments + [Argument(None, closure)])
                else:
                    expr = CallExpr(expr, [Argument(None, closure)], brace)
            else:
                break

        return expr

    def trailing_closure_follows(self, expr: Expression) -> bool:
        """A '{' on the same line right after a callee starts a trailing closure."""
        return (self.allow_trailing_closures
                and self.check(TokenType.LEFT_BRACE)
                and not self.previous().end_of_line
                and isinstance(expr, (CallExpr, GetExpr, VariableExpr)))

    def member_name(self) -> Token:
        """Name after '.'; keywords are allowed (super.init, options.default)."""
        if self.peek().is_keyword():
            return self.advance()
        return self.consume(TokenType.IDENTIFIER, "Expect property name after '.'.")

    def finish_call(self, callee: Expression, is_optional: bool = False) -> CallExpr:
        """Parse call arguments after '('."""
        paren = self.previous()
        arguments: List[Argument] = []

        with self.trailing_closures(True):
            if not self.check(TokenType.RIGHT_PAREN):
                arguments.append(self.argument())
                while self.match(TokenType.COMMA):
                    arguments.append(self.argument())

        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
        return CallExpr(callee, arguments, paren, is_optional)

    def argument(self) -> Argument:
        label = None
        if self.check(TokenType.IDENTIFIER) and self.check_next(TokenType.COLON):
            label = self.advance()
            self.advance()
        return Argument(label, self.expression())

    def finish_index(self, obj: Expression, is_optional: bool = False) -> IndexExpr:
        bracket = self.previous()
        with self.trailing_closures(True):
            index = self.expression()
        self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after index.")
        return IndexExpr(obj, index, bracket, is_optional)

    def primary(self) -> Expression:
        """Parse primary expressions."""
        if self.match(TokenType.FALSE):
            return LiteralExpr(False, self.previous())
        if self.match(TokenType.TRUE):
            return LiteralExpr(True, self.previous())
        if self.match(TokenType.NIL):
            return LiteralExpr(None, self.previous())
        if self.match(TokenType.SELF):
            return SelfExpr(self.previous())

        if self.match(TokenType.STRING, TokenType.CHARACTER):
            return StringLiteralExpr(self.previous().value)
        if self.match(TokenType.STRING_MULTILINE):
            return StringLiteralExpr(self.previous().value, is_multi_line=True)

        if self.match(TokenType.INT):
            return IntLiteralExpr(int(self.previous().lexeme))
        if self.match(TokenType.DOUBLE):
            return DoubleLiteralExpr(float(self.previous().lexeme))

        if self.match(TokenType.IDENTIFIER):
            token = self.previous()
            return VariableExpr(token.lexeme, token)

        if self.match(TokenType.DOLLAR):
            dollar = self.previous()
            index = self.consume(TokenType.INT, "Expect parameter number after '$'.")
            return VariableExpr(f"${index.lexeme}", dollar)

        if self.match(TokenType.LEFT_PAREN):
            with self.trailing_closures(True):
                expr = self.expression()
            self.consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return GroupExpr(expr)

        if self.match(TokenType.LEFT_BRACKET):
            with self.trailing_closures(True):
                return self.collection_literal()

        if self.match(TokenType.LEFT_BRACE):
            return self.closure()

        raise self.error(self.peek(), "Expect expression.")

    def collection_literal(self) -> Expression:
        """Parse an array or dictionary literal after '['."""
        if self.match(TokenType.COLON):
            self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after empty dictionary literal.")
            return DictionaryLiteralExpr([])

        if self.match(TokenType.RIGHT_BRACKET):
            return ArrayLiteralExpr([])

        first = self.expression()

        if self.match(TokenType.COLON):
            pairs = [KeyValuePair(first, self.expression())]
            while self.match(TokenType.COMMA):
                if self.check(TokenType.RIGHT_BRACKET):
                    break
                key = self.expression()
                self.consume(TokenType.COLON, "Expect ':' after dictionary key.")
                pairs.append(KeyValuePair(key, self.expression()))
            self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after dictionary pairs.")
            return DictionaryLiteralExpr(pairs)

        elements = [first]
        while self.match(TokenType.COMMA):
            if self.check(TokenType.RIGHT_BRACKET):
                break
            elements.append(self.expression())
        self.consume(TokenType.RIGHT_BRACKET, "Expect ']' after array elements.")
        return ArrayLiteralExpr(elements)

    def closure(self) -> ClosureExpr:
        """Parse a closure body after '{'."""
        names = self.in_body_parameter_names()
        if names is not None:
            parameters = [Parameter(None, name) for name in names]
        else:
            parameters = [
                Parameter(None, Token(TokenType.IDENTIFIER, f"${n}", f"${n}",
                                      self.peek().line, self.peek().column))
                for n in range(self.implicit_parameter_count())
            ]
        return ClosureExpr(self.block(parameters))

    # =========================================================================
    # Lookahead
    # =========================================================================

    def token_at(self, index: int) -> Token:
        """Token at an absolute index, EOF when past the end."""
        if index < len(self.tokens):
            return self.tokens[index]
        return self.tokens[-1]

    def in_body_parameter_names(self) -> Optional[List[Token]]:
        """
        Consume an 'a, b in' closure parameter prefix if one starts here.

        Returns:
            The parameter name tokens, or None (consuming nothing) when the
            block does not open with such a prefix
        """
        index = self.current
        parens = self.token_at(index).type == TokenType.LEFT_PAREN
        if parens:
            index += 1

        names = []
        while self.token_at(index).type == TokenType.IDENTIFIER:
            names.append(self.token_at(index))
            index += 1
            if self.token_at(index).type != TokenType.COMMA:
                break
            index += 1

        if parens:
            if self.token_at(index).type != TokenType.RIGHT_PAREN:
                return None
            index += 1

        if not names or self.token_at(index).type != TokenType.IN:
            return None

        self.current = index + 1
        return names

    def implicit_parameter_count(self) -> int:
        """Number of '$N' parameters referenced directly in this closure body."""
        depth = 0
        highest = -1
        index = self.current
        while True:
            token = self.token_at(index)
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.LEFT_BRACE:
                depth += 1
            elif token.type == TokenType.RIGHT_BRACE:
                if depth == 0:
                    break
                depth -= 1
            elif (token.type == TokenType.DOLLAR and depth == 0
                  and self.token_at(index + 1).type == TokenType.INT):
                highest = max(highest, int(self.token_at(index + 1).lexeme))
            index += 1
        return highest + 1

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @contextmanager
    def trailing_closures(self, enabled: bool):
        """Temporarily enable or disable trailing closure parsing."""
        saved = self.allow_trailing_closures
        self.allow_trailing_closures = enabled
        try:
            yield
        finally:
            self.allow_trailing_closures = saved

    def match(self, *types: TokenType) -> bool:
        """Check if current token matches any of the given types and advance."""
        for type in types:
            if self.check(type):
                self.advance()
                return True
        return False

    def check(self, type: TokenType) -> bool:
        """Check if current token is of given type."""
        if self.is_at_end():
            return False
        return self.peek().type == type

    def check_next(self, type: TokenType) -> bool:
        """Check if next token is of given type."""
        if self.is_at_end():
            return False
        return self.token_at(self.current + 1).type == type

    def advance(self) -> Token:
        """Consume and return the current token."""
        if not self.is_at_end():
            self.current += 1
        return self.previous()

    def is_at_end(self) -> bool:
        """Check if we've reached the end of tokens."""
        return self.peek().type == TokenType.EOF

    def peek(self) -> Token:
        """Return the current token."""
        return self.tokens[self.current]

    def previous(self) -> Token:
        """Return the previous token."""
        return self.tokens[self.current - 1]

    def consume(self, type: TokenType, message: str) -> Token:
        """Consume a token of the expected type or raise an error."""
        if self.check(type):
            return self.advance()
        raise self.error(self.peek(), message)

    def error(self, token: Token, message: str) -> ParseError:
        return ParseError(message, token)

    def synchronize(self) -> None:
        """Skip tokens until a statement boundary to continue parsing."""
        self.advance()

        while not self.is_at_end():
            if self.previous().type == TokenType.SEMICOLON:
                return
            if self.peek().type in SYNC_TOKENS:
                return
            self.advance()


def parse(tokens: List[Token]) -> Tuple[Program, List[ParseError]]:
    """
    Parse tokens into a program.

    Returns:
        The program (failed declarations omitted) and the collected errors
    """
    parser = Parser(tokens)
    program = parser.parse()
    logger.debug("parsed %d top-level statements with %d error(s)",
                 len(program.statements), len(parser.errors))
    return program, parser.errors
