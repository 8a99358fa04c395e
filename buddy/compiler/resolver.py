"""
Buddy Resolver

Binds names to lexical scopes, reports redeclarations and marks calls
whose callee names a struct or class as initializer calls. References to
types nested in a struct or class are qualified with the enclosing type
(Outer.Inner). The pass is pure: it returns a new tree and leaves its input untouched.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from .ast import *
from .errors import ResolveError

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    GLOBAL = auto()
    STRUCT = auto()
    CLASS = auto()
    ENUM = auto()
    PROTOCOL = auto()
    EXTENSION = auto()
    FUNCTION = auto()
    BLOCK = auto()


class EntityKind(Enum):
    VARIABLE = auto()
    FUNCTION = auto()
    STRUCT = auto()
    CLASS = auto()
    ENUM = auto()
    PROTOCOL = auto()
    EXTENSION = auto()


TYPE_ENTITIES = (EntityKind.STRUCT, EntityKind.CLASS)
NESTED_ENTITIES = (EntityKind.STRUCT, EntityKind.CLASS, EntityKind.ENUM)

# Scopes whose declarations become static members of a type
MEMBER_SCOPES = (ScopeKind.STRUCT, ScopeKind.CLASS)


@dataclass
class Entity:
    kind: EntityKind
    is_initialized: bool = False


@dataclass
class Scope:
    """One lexical scope frame; parent is only used for lookups."""
    kind: ScopeKind
    parent: Optional['Scope'] = None
    owner: Optional[str] = None
    entities: Dict[str, Entity] = field(default_factory=dict)

    def ancestry(self):
        """Yield this scope and its parents, innermost first."""
        scope = self
        while scope is not None:
            yield scope
            scope = scope.parent


class Resolver(ASTVisitor):
    """Scope analysis over a parsed program."""

    def __init__(self):
        self.current: Optional[Scope] = None
        self.errors: List[ResolveError] = []

    def resolve(self, program: Program) -> Program:
        """
        Resolve a program.

        Statements that fail keep their original form; the errors are
        collected in ``self.errors``.

        Returns:
            The resolved program
        """
        return program.accept(self)

    # =========================================================================
    # Scope handling
    # =========================================================================

    @contextmanager
    def scope(self, kind: ScopeKind, owner: Optional[str] = None):
        """Push a scope for the duration of the block, popping it even on error."""
        self.current = Scope(kind, self.current, owner)
        try:
            yield self.current
        finally:
            self.current = self.current.parent

    def declare(self, name: Token, kind: EntityKind) -> None:
        if name.lexeme in self.current.entities:
            raise ResolveError(f"'{name.lexeme}' is already declared in this scope.",
                               name.line, name.column)
        self.current.entities[name.lexeme] = Entity(kind)

    def define(self, name: Token) -> None:
        entity = self.current.entities.get(name.lexeme)
        if entity is not None:
            entity.is_initialized = True

    def qualified(self, name: Token) -> str:
        """Path of a type declared in the current scope, as seen from outside it."""
        if self.current.kind in MEMBER_SCOPES:
            return f"{self.current.owner}.{name.lexeme}"
        return name.lexeme

    @staticmethod
    def member_path(owner: str, node: VariableExpr) -> Expression:
        """Rewrite a reference to a nested type as Outer.Inner."""
        expr = None
        for segment in owner.split(".") + [node.name]:
            token = replace(node.token, lexeme=segment)
            expr = VariableExpr(segment, token) if expr is None else GetExpr(expr, token)
        return expr

    def resolve_statements(self, statements: List[Statement]) -> List[Statement]:
        """Resolve each statement, recording errors and keeping failed ones as-is."""
        resolved = []
        for stmt in statements:
            try:
                resolved.append(stmt.accept(self))
            except ResolveError as e:
                logger.debug("resolve error: %s", e)
                self.errors.append(e)
                resolved.append(stmt)
        return resolved

    def resolve_optional(self, node):
        return node.accept(self) if node is not None else None

    def resolve_parameter(self, parameter: Parameter) -> Parameter:
        return replace(parameter,
                       default_value=self.resolve_optional(parameter.default_value))

    def declare_parameters(self, parameters: List[Parameter]) -> List[Parameter]:
        resolved = []
        for parameter in parameters:
            self.declare(parameter.internal_name, EntityKind.VARIABLE)
            self.define(parameter.internal_name)
            resolved.append(self.resolve_parameter(parameter))
        return resolved

    # =========================================================================
    # Program and declarations
    # =========================================================================

    def visit_program(self, node: Program) -> Program:
        with self.scope(ScopeKind.GLOBAL):
            return Program(self.resolve_statements(node.statements))

    def visit_var_declaration(self, node: VarDeclaration) -> VarDeclaration:
        self.declare(node.name, EntityKind.VARIABLE)
        if node.initializer is None:
            return node
        initializer = node.initializer.accept(self)
        self.define(node.name)
        return replace(node, initializer=initializer)

    def visit_function_declaration(self, node: FunctionDeclaration) -> FunctionDeclaration:
        self.declare(node.name, EntityKind.FUNCTION)
        with self.scope(ScopeKind.FUNCTION):
            parameters = self.declare_parameters(node.parameters)
            attributes = [replace(a, arguments=[arg.accept(self) for arg in a.arguments])
                          for a in node.attributes]
            body = node.body.accept(self)
        self.define(node.name)
        return replace(node, parameters=parameters, attributes=attributes, body=body)

    def visit_struct_declaration(self, node: StructDeclaration) -> StructDeclaration:
        self.declare(node.name, EntityKind.STRUCT)
        with self.scope(ScopeKind.STRUCT, self.qualified(node.name)):
            members = self.resolve_statements(node.members)
        self.define(node.name)
        return replace(node, members=members)

    def visit_class_declaration(self, node: ClassDeclaration) -> ClassDeclaration:
        self.declare(node.name, EntityKind.CLASS)
        with self.scope(ScopeKind.CLASS, self.qualified(node.name)):
            methods = self.resolve_statements(node.methods)
            properties = self.resolve_statements(node.properties)
        self.define(node.name)
        return replace(node, methods=methods, properties=properties)

    def visit_enum_declaration(self, node: EnumDeclaration) -> EnumDeclaration:
        self.declare(node.name, EntityKind.ENUM)
        self.define(node.name)
        cases = []
        with self.scope(ScopeKind.ENUM):
            for case in node.cases:
                self.declare(case.name, EntityKind.VARIABLE)
                self.define(case.name)
                cases.append(replace(
                    case,
                    raw_value=self.resolve_optional(case.raw_value),
                    associated_values=[self.resolve_parameter(p) for p in case.associated_values],
                ))
        return replace(node, cases=cases)

    def visit_protocol_declaration(self, node: ProtocolDeclaration) -> ProtocolDeclaration:
        self.declare(node.name, EntityKind.PROTOCOL)
        self.define(node.name)
        with self.scope(ScopeKind.PROTOCOL):
            members = self.resolve_statements(node.members)
        return replace(node, members=members)

    def visit_protocol_property(self, node: ProtocolPropertyDeclaration) -> ProtocolPropertyDeclaration:
        self.declare(node.name, EntityKind.VARIABLE)
        return node

    def visit_protocol_method(self, node: ProtocolMethodDeclaration) -> ProtocolMethodDeclaration:
        self.declare(node.name, EntityKind.FUNCTION)
        return replace(node, parameters=[self.resolve_parameter(p) for p in node.parameters])

    def visit_typealias(self, node: TypealiasDeclaration) -> TypealiasDeclaration:
        self.declare(node.name, EntityKind.VARIABLE)
        self.define(node.name)
        return node

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_block(self, node: BlockStmt) -> BlockStmt:
        with self.scope(ScopeKind.BLOCK):
            parameters = self.declare_parameters(node.in_body_parameters)
            statements = self.resolve_statements(node.statements)
        return BlockStmt(statements, parameters)

    def visit_expression_stmt(self, node: ExpressionStmt) -> ExpressionStmt:
        return ExpressionStmt(node.expression.accept(self))

    def visit_if(self, node: IfStmt) -> IfStmt:
        return IfStmt(node.condition.accept(self),
                      node.then_branch.accept(self),
                      self.resolve_optional(node.else_branch))

    def visit_if_let(self, node: IfLetStmt) -> IfLetStmt:
        value = self.resolve_optional(node.value)
        with self.scope(ScopeKind.BLOCK):
            self.declare(node.name, EntityKind.VARIABLE)
            self.define(node.name)
            then_branch = node.then_branch.accept(self)
        else_branch = self.resolve_optional(node.else_branch)
        return IfLetStmt(node.name, value, then_branch, else_branch)

    def visit_guard(self, node: GuardStmt) -> GuardStmt:
        return GuardStmt(node.condition.accept(self), node.body.accept(self))

    def visit_guard_let(self, node: GuardLetStmt) -> GuardLetStmt:
        value = node.value.accept(self)
        body = node.body.accept(self)
        # The binding is visible after the guard, in the enclosing scope
        self.declare(node.name, EntityKind.VARIABLE)
        self.define(node.name)
        return GuardLetStmt(node.name, value, body)

    def visit_switch(self, node: SwitchStmt) -> SwitchStmt:
        expression = node.expression.accept(self)
        cases = []
        for case in node.cases:
            expressions = [e.accept(self) for e in case.expressions]
            with self.scope(ScopeKind.BLOCK):
                statements = self.resolve_statements(case.statements)
            cases.append(SwitchCase(expressions, statements))

        default_case = None
        if node.default_case is not None:
            with self.scope(ScopeKind.BLOCK):
                default_case = self.resolve_statements(node.default_case)
        return SwitchStmt(expression, cases, default_case)

    def visit_for(self, node: ForStmt) -> ForStmt:
        iterable = node.iterable.accept(self)
        with self.scope(ScopeKind.BLOCK):
            self.declare(node.variable, EntityKind.VARIABLE)
            self.define(node.variable)
            body = node.body.accept(self)
        return ForStmt(node.variable, iterable, body)

    def visit_while(self, node: WhileStmt) -> WhileStmt:
        return WhileStmt(node.condition.accept(self), node.body.accept(self))

    def visit_repeat(self, node: RepeatStmt) -> RepeatStmt:
        return RepeatStmt(node.body.accept(self), node.condition.accept(self))

    def visit_return(self, node: ReturnStmt) -> ReturnStmt:
        return ReturnStmt(node.keyword, self.resolve_optional(node.value))

    def visit_break(self, node: BreakStmt) -> BreakStmt:
        return node

    def visit_continue(self, node: ContinueStmt) -> ContinueStmt:
        return node

    def visit_blank(self, node: BlankStmt) -> BlankStmt:
        return node

    def visit_do_catch(self, node: DoCatchStmt) -> DoCatchStmt:
        body = node.body.accept(self)
        with self.scope(ScopeKind.BLOCK):
            if node.error_name is not None:
                self.declare(node.error_name, EntityKind.VARIABLE)
                self.define(node.error_name)
            catch_block = node.catch_block.accept(self)
        return DoCatchStmt(body, catch_block, node.error_name)

    def visit_throw(self, node: ThrowStmt) -> ThrowStmt:
        return ThrowStmt(node.keyword, node.expression.accept(self))

    # =========================================================================
    # Expressions
    # =========================================================================

    def visit_call(self, node: CallExpr) -> CallExpr:
        is_initializer = node.is_initializer
        if isinstance(node.callee, VariableExpr):
            # Shadowing a type name with a variable is not detected
            for scope in self.current.ancestry():
                entity = scope.entities.get(node.callee.name)
                if entity is not None and entity.kind in TYPE_ENTITIES:
                    is_initializer = True
                    break

        return replace(
            node,
            callee=node.callee.accept(self),
            arguments=[Argument(a.label, a.value.accept(self)) for a in node.arguments],
            is_initializer=is_initializer,
        )

    def visit_variable(self, node: VariableExpr) -> Expression:
        # Undefined names are left to the JavaScript host
        for scope in self.current.ancestry():
            entity = scope.entities.get(node.name)
            if entity is None:
                continue
            if entity.kind in NESTED_ENTITIES and scope.kind in MEMBER_SCOPES:
                # Nested types are static members of the enclosing type
                return self.member_path(scope.owner, node)
            break
        return node

    def visit_assign(self, node: AssignExpr) -> AssignExpr:
        return AssignExpr(node.target.accept(self), node.operator, node.value.accept(self))

    def visit_ternary(self, node: TernaryExpr) -> TernaryExpr:
        return TernaryExpr(node.condition.accept(self),
                           node.then_expr.accept(self),
                           node.else_expr.accept(self))

    def visit_binary(self, node: BinaryExpr) -> BinaryExpr:
        return BinaryExpr(node.left.accept(self), node.operator, node.right.accept(self))

    def visit_logical(self, node: LogicalExpr) -> LogicalExpr:
        return LogicalExpr(node.left.accept(self), node.operator, node.right.accept(self))

    def visit_range(self, node: RangeExpr) -> RangeExpr:
        return RangeExpr(node.left.accept(self), node.operator, node.right.accept(self))

    def visit_unary(self, node: UnaryExpr) -> UnaryExpr:
        return UnaryExpr(node.operator, node.operand.accept(self))

    def visit_get(self, node: GetExpr) -> GetExpr:
        return replace(node, object=node.object.accept(self))

    def visit_index(self, node: IndexExpr) -> IndexExpr:
        return replace(node, object=node.object.accept(self), index=node.index.accept(self))

    def visit_optional_chaining(self, node: OptionalChainingExpr) -> OptionalChainingExpr:
        return replace(node, object=node.object.accept(self))

    def visit_try(self, node: TryExpr) -> TryExpr:
        return replace(node, expression=node.expression.accept(self))

    def visit_as(self, node: AsExpr) -> AsExpr:
        return replace(node, expression=node.expression.accept(self))

    def visit_is(self, node: IsExpr) -> IsExpr:
        return replace(node, expression=node.expression.accept(self))

    def visit_group(self, node: GroupExpr) -> GroupExpr:
        return GroupExpr(node.expression.accept(self))

    def visit_array_literal(self, node: ArrayLiteralExpr) -> ArrayLiteralExpr:
        return ArrayLiteralExpr([e.accept(self) for e in node.elements])

    def visit_dictionary_literal(self, node: DictionaryLiteralExpr) -> DictionaryLiteralExpr:
        return DictionaryLiteralExpr([KeyValuePair(p.key.accept(self), p.value.accept(self))
                                      for p in node.pairs])

    def visit_closure(self, node: ClosureExpr) -> ClosureExpr:
        with self.scope(ScopeKind.FUNCTION):
            return ClosureExpr(node.body.accept(self))

    def visit_literal(self, node: LiteralExpr) -> LiteralExpr:
        return node

    def visit_string_literal(self, node: StringLiteralExpr) -> StringLiteralExpr:
        return node

    def visit_int_literal(self, node: IntLiteralExpr) -> IntLiteralExpr:
        return node

    def visit_double_literal(self, node: DoubleLiteralExpr) -> DoubleLiteralExpr:
        return node

    def visit_self(self, node: SelfExpr) -> SelfExpr:
        return node


def resolve(program: Program) -> Tuple[Program, List[ResolveError]]:
    """
    Resolve a parsed program.

    Returns:
        The resolved program and the collected errors
    """
    resolver = Resolver()
    resolved = resolver.resolve(program)
    logger.debug("resolved %d top-level statements with %d error(s)",
                 len(resolved.statements), len(resolver.errors))
    return resolved, resolver.errors
