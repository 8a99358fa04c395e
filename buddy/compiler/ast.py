"""
Buddy Abstract Syntax Tree

Defines AST node classes for the Buddy language.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import List, Optional, Any
from .tokens import Token


# =============================================================================
# Base Classes
# =============================================================================

class ASTNode(ABC):
    """Base class for all AST nodes."""

    @abstractmethod
    def accept(self, visitor: 'ASTVisitor') -> Any:
        """Accept a visitor for traversal."""
        pass


class Expression(ASTNode):
    """Base class for expression nodes."""
    pass


class Statement(ASTNode):
    """Base class for statement nodes."""
    pass


class Declaration(Statement):
    """Base class for declaration nodes."""
    pass


# =============================================================================
# Types
# =============================================================================

class TypeIdentifier:
    """Base class for type annotations."""
    pass


@dataclass
class IdentifierType(TypeIdentifier):
    """Nominal type, possibly dotted (Foo.Bar)."""
    name: str
    token: Optional[Token] = None


@dataclass
class ArrayType(TypeIdentifier):
    """[Element]"""
    element: TypeIdentifier


@dataclass
class DictionaryType(TypeIdentifier):
    """[Key: Value]"""
    key: TypeIdentifier
    value: TypeIdentifier


@dataclass
class OptionalType(TypeIdentifier):
    """Type?"""
    base: TypeIdentifier


# =============================================================================
# Helper Records
# =============================================================================

class FunctionKind(Enum):
    FUNCTION = "function"
    METHOD = "method"
    INITIALIZER = "initializer"


@dataclass
class Parameter:
    """
    A function, protocol method, enum payload or closure parameter.

    external_name is None when the parameter has no call-site label; it is
    then passed positionally under the key '_<position>'.
    """
    external_name: Optional[Token]
    internal_name: Token
    type: Optional[TypeIdentifier] = None
    is_variadic: bool = False
    default_value: Optional[Expression] = None

    def key(self, position: int) -> str:
        """Record key the argument is passed under (position is 1-based)."""
        if self.external_name is None:
            return f"_{position}"
        return self.external_name.lexeme


@dataclass
class Argument:
    """Single argument in a call expression."""
    label: Optional[Token]
    value: Expression


@dataclass
class Attribute:
    """@name or @name(arguments) attached to a declaration."""
    name: Token
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class EnumCase:
    name: Token
    raw_value: Optional[Expression] = None
    associated_values: List[Parameter] = field(default_factory=list)


@dataclass
class SwitchCase:
    expressions: List[Expression]
    statements: List[Statement]


@dataclass
class KeyValuePair:
    key: Expression
    value: Expression


# =============================================================================
# Expressions
# =============================================================================

@dataclass
class AssignExpr(Expression):
    """Assignment expression (=, +=, -=)."""
    target: Expression
    operator: Token
    value: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_assign(self)


@dataclass
class TernaryExpr(Expression):
    """Ternary conditional expression (cond ? then : else)."""
    condition: Expression
    then_expr: Expression
    else_expr: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_ternary(self)


@dataclass
class BinaryExpr(Expression):
    """Arithmetic, comparison and nil-coalescing operators."""
    left: Expression
    operator: Token
    right: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_binary(self)


@dataclass
class LogicalExpr(Expression):
    """&& and ||."""
    left: Expression
    operator: Token
    right: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_logical(self)


@dataclass
class RangeExpr(Expression):
    """Closed (...) or half-open (..<) range."""
    left: Expression
    operator: Token
    right: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_range(self)


@dataclass
class UnaryExpr(Expression):
    """Prefix ! or -."""
    operator: Token
    operand: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_unary(self)


@dataclass
class CallExpr(Expression):
    """Function call expression."""
    callee: Expression
    arguments: List[Argument]
    paren: Token  # For error reporting
    is_optional: bool = False
    is_initializer: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_call(self)


@dataclass
class GetExpr(Expression):
    """Property access expression (a.b, a?.b)."""
    object: Expression
    name: Token
    is_optional: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_get(self)


@dataclass
class IndexExpr(Expression):
    """Index/subscript expression (a[b], a?[b])."""
    object: Expression
    index: Expression
    bracket: Token
    is_optional: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_index(self)


@dataclass
class OptionalChainingExpr(Expression):
    """Postfix ? (optional chaining) or ! (force unwrap)."""
    object: Expression
    force_unwrap: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_optional_chaining(self)


@dataclass
class TryExpr(Expression):
    """try, try? and try!."""
    expression: Expression
    is_optional: bool = False
    is_force_unwrap: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_try(self)


@dataclass
class AsExpr(Expression):
    """as, as? and as! casts."""
    expression: Expression
    type: TypeIdentifier
    is_optional: bool = False
    is_force_unwrap: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_as(self)


@dataclass
class IsExpr(Expression):
    """Type test (x is T)."""
    expression: Expression
    type: TypeIdentifier

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_is(self)


@dataclass
class LiteralExpr(Expression):
    """true, false and nil."""
    value: Any
    token: Token

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_literal(self)


@dataclass
class StringLiteralExpr(Expression):
    value: str
    is_multi_line: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_string_literal(self)


@dataclass
class IntLiteralExpr(Expression):
    value: int

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_int_literal(self)


@dataclass
class DoubleLiteralExpr(Expression):
    value: float

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_double_literal(self)


@dataclass
class SelfExpr(Expression):
    token: Token

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_self(self)


@dataclass
class VariableExpr(Expression):
    """Variable, function or type name reference."""
    name: str
    token: Token

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_variable(self)


@dataclass
class GroupExpr(Expression):
    """Parenthesized expression."""
    expression: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_group(self)


@dataclass
class ArrayLiteralExpr(Expression):
    elements: List[Expression]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_array_literal(self)


@dataclass
class DictionaryLiteralExpr(Expression):
    pairs: List[KeyValuePair]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_dictionary_literal(self)


@dataclass
class ClosureExpr(Expression):
    """Brace-delimited closure in expression position."""
    body: 'BlockStmt'

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_closure(self)


# =============================================================================
# Statements
# =============================================================================

@dataclass
class ExpressionStmt(Statement):
    """Expression as a statement."""
    expression: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_expression_stmt(self)


@dataclass
class BlockStmt(Statement):
    """Block of statements, optionally opened by 'a, b in' parameters."""
    statements: List[Statement]
    in_body_parameters: List[Parameter] = field(default_factory=list)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_block(self)


@dataclass
class IfStmt(Statement):
    """If/else statement."""
    condition: Expression
    then_branch: BlockStmt
    else_branch: Optional[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_if(self)


@dataclass
class IfLetStmt(Statement):
    """if let name [= value] { } else ..."""
    name: Token
    value: Optional[Expression]
    then_branch: BlockStmt
    else_branch: Optional[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_if_let(self)


@dataclass
class GuardStmt(Statement):
    condition: Expression
    body: BlockStmt

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_guard(self)


@dataclass
class GuardLetStmt(Statement):
    name: Token
    value: Expression
    body: BlockStmt

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_guard_let(self)


@dataclass
class SwitchStmt(Statement):
    expression: Expression
    cases: List[SwitchCase]
    default_case: Optional[List[Statement]] = None

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_switch(self)


@dataclass
class ForStmt(Statement):
    """for variable in iterable { }"""
    variable: Token
    iterable: Expression
    body: BlockStmt

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_for(self)


@dataclass
class WhileStmt(Statement):
    """While loop statement."""
    condition: Expression
    body: BlockStmt

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_while(self)


@dataclass
class RepeatStmt(Statement):
    """repeat { } while condition"""
    body: BlockStmt
    condition: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_repeat(self)


@dataclass
class ReturnStmt(Statement):
    """Return statement."""
    keyword: Token
    value: Optional[Expression]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_return(self)


@dataclass
class BreakStmt(Statement):
    """Break statement."""
    keyword: Token

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_break(self)


@dataclass
class ContinueStmt(Statement):
    """Continue statement."""
    keyword: Token

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_continue(self)


@dataclass
class BlankStmt(Statement):
    """No-op statement."""

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_blank(self)


@dataclass
class DoCatchStmt(Statement):
    body: BlockStmt
    catch_block: BlockStmt
    error_name: Optional[Token] = None

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_do_catch(self)


@dataclass
class ThrowStmt(Statement):
    keyword: Token
    expression: Expression

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_throw(self)


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class VarDeclaration(Declaration):
    """var/let declaration, at top level or as a member."""
    name: Token
    type: Optional[TypeIdentifier]
    initializer: Optional[Expression]
    is_constant: bool
    is_private: bool = False
    is_static: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_var_declaration(self)


@dataclass
class FunctionDeclaration(Declaration):
    """Function, method or initializer declaration."""
    name: Token
    kind: FunctionKind
    parameters: List[Parameter]
    body: BlockStmt
    return_type: Optional[TypeIdentifier] = None
    attributes: List[Attribute] = field(default_factory=list)
    is_static: bool = False
    is_private: bool = False
    can_throw: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_function_declaration(self)


@dataclass
class StructDeclaration(Declaration):
    name: Token
    inherited_types: List[Token]
    members: List[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_struct_declaration(self)


@dataclass
class ClassDeclaration(Declaration):
    name: Token
    inherited_types: List[Token]
    methods: List[FunctionDeclaration]
    properties: List[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_class_declaration(self)


@dataclass
class EnumDeclaration(Declaration):
    name: Token
    cases: List[EnumCase]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_enum_declaration(self)


@dataclass
class ProtocolDeclaration(Declaration):
    name: Token
    inherited_protocols: List[Token]
    members: List[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_protocol_declaration(self)


@dataclass
class ProtocolPropertyDeclaration(Declaration):
    name: Token
    property_type: TypeIdentifier
    is_constant: bool
    getter: bool = True
    setter: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_protocol_property(self)


@dataclass
class ProtocolMethodDeclaration(Declaration):
    name: Token
    parameters: List[Parameter]
    return_type: Optional[TypeIdentifier] = None

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_protocol_method(self)


@dataclass
class TypealiasDeclaration(Declaration):
    name: Token
    type: TypeIdentifier

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_typealias(self)


@dataclass
class Program(ASTNode):
    """Root node of the AST."""
    statements: List[Statement]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_program(self)


# =============================================================================
# Visitor Interface
# =============================================================================

class ASTVisitor(ABC):
    """Visitor interface for AST traversal; one method per node kind."""

    # Expressions
    @abstractmethod
    def visit_assign(self, node: AssignExpr) -> Any:
        pass

    @abstractmethod
    def visit_ternary(self, node: TernaryExpr) -> Any:
        pass

    @abstractmethod
    def visit_binary(self, node: BinaryExpr) -> Any:
        pass

    @abstractmethod
    def visit_logical(self, node: LogicalExpr) -> Any:
        pass

    @abstractmethod
    def visit_range(self, node: RangeExpr) -> Any:
        pass

    @abstractmethod
    def visit_unary(self, node: UnaryExpr) -> Any:
        pass

    @abstractmethod
    def visit_call(self, node: CallExpr) -> Any:
        pass

    @abstractmethod
    def visit_get(self, node: GetExpr) -> Any:
        pass

    @abstractmethod
    def visit_index(self, node: IndexExpr) -> Any:
        pass

    @abstractmethod
    def visit_optional_chaining(self, node: OptionalChainingExpr) -> Any:
        pass

    @abstractmethod
    def visit_try(self, node: TryExpr) -> Any:
        pass

    @abstractmethod
    def visit_as(self, node: AsExpr) -> Any:
        pass

    @abstractmethod
    def visit_is(self, node: IsExpr) -> Any:
        pass

    @abstractmethod
    def visit_literal(self, node: LiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_string_literal(self, node: StringLiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_int_literal(self, node: IntLiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_double_literal(self, node: DoubleLiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_self(self, node: SelfExpr) -> Any:
        pass

    @abstractmethod
    def visit_variable(self, node: VariableExpr) -> Any:
        pass

    @abstractmethod
    def visit_group(self, node: GroupExpr) -> Any:
        pass

    @abstractmethod
    def visit_array_literal(self, node: ArrayLiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_dictionary_literal(self, node: DictionaryLiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_closure(self, node: ClosureExpr) -> Any:
        pass

    # Statements
    @abstractmethod
    def visit_expression_stmt(self, node: ExpressionStmt) -> Any:
        pass

    @abstractmethod
    def visit_block(self, node: BlockStmt) -> Any:
        pass

    @abstractmethod
    def visit_if(self, node: IfStmt) -> Any:
        pass

    @abstractmethod
    def visit_if_let(self, node: IfLetStmt) -> Any:
        pass

    @abstractmethod
    def visit_guard(self, node: GuardStmt) -> Any:
        pass

    @abstractmethod
    def visit_guard_let(self, node: GuardLetStmt) -> Any:
        pass

    @abstractmethod
    def visit_switch(self, node: SwitchStmt) -> Any:
        pass

    @abstractmethod
    def visit_for(self, node: ForStmt) -> Any:
        pass

    @abstractmethod
    def visit_while(self, node: WhileStmt) -> Any:
        pass

    @abstractmethod
    def visit_repeat(self, node: RepeatStmt) -> Any:
        pass

    @abstractmethod
    def visit_return(self, node: ReturnStmt) -> Any:
        pass

    @abstractmethod
    def visit_break(self, node: BreakStmt) -> Any:
        pass

    @abstractmethod
    def visit_continue(self, node: ContinueStmt) -> Any:
        pass

    @abstractmethod
    def visit_blank(self, node: BlankStmt) -> Any:
        pass

    @abstractmethod
    def visit_do_catch(self, node: DoCatchStmt) -> Any:
        pass

    @abstractmethod
    def visit_throw(self, node: ThrowStmt) -> Any:
        pass

    # Declarations
    @abstractmethod
    def visit_var_declaration(self, node: VarDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_function_declaration(self, node: FunctionDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_struct_declaration(self, node: StructDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_class_declaration(self, node: ClassDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_enum_declaration(self, node: EnumDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_protocol_declaration(self, node: ProtocolDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_protocol_property(self, node: ProtocolPropertyDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_protocol_method(self, node: ProtocolMethodDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_typealias(self, node: TypealiasDeclaration) -> Any:
        pass

    @abstractmethod
    def visit_program(self, node: Program) -> Any:
        pass


# =============================================================================
# AST Printer (for debugging)
# =============================================================================

class ASTPrinter:
    """Prints an indented outline of any AST node (for -debug dumps)."""

    def __init__(self):
        self.indent = 0

    def print(self, node: Any) -> str:
        lines: List[str] = []
        self._walk(node, None, lines)
        return "\n".join(lines)

    def _indent(self) -> str:
        return "  " * self.indent

    def _walk(self, node: Any, label: Optional[str], lines: List[str]) -> None:
        prefix = f"{self._indent()}{label}: " if label else self._indent()

        if isinstance(node, Token):
            lines.append(f"{prefix}{node.lexeme}")
            return
        if isinstance(node, Enum):
            lines.append(f"{prefix}{node.value}")
            return
        if isinstance(node, list):
            if not node:
                return
            lines.append(f"{prefix}[{len(node)}]")
            self.indent += 1
            for item in node:
                self._walk(item, None, lines)
            self.indent -= 1
            return
        if not is_dataclass(node):
            lines.append(f"{prefix}{node!r}")
            return

        # Leaf fields go on the header line, child nodes below it
        scalars = []
        children = []
        for f in fields(node):
            value = getattr(node, f.name)
            if value is None or value is False or value == []:
                continue
            if isinstance(value, Token):
                scalars.append(f"{f.name}={value.lexeme}")
            elif isinstance(value, (str, int, float, bool, Enum)):
                scalars.append(f"{f.name}={value.value if isinstance(value, Enum) else value!r}")
            else:
                children.append((f.name, value))

        header = type(node).__name__
        if scalars:
            header += "(" + ", ".join(scalars) + ")"
        lines.append(prefix + header)
        self.indent += 1
        for name, value in children:
            self._walk(value, name, lines)
        self.indent -= 1


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Token):
        return {"type": value.type.name, "lexeme": value.lexeme,
                "line": value.line, "column": value.column}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    if is_dataclass(value):
        result = {"node": type(value).__name__}
        for f in fields(value):
            result[f.name] = _to_jsonable(getattr(value, f.name))
        return result
    return value


def ast_to_json(node: Any, indent: int = 2) -> str:
    """Serialize an AST (or any part of it) as JSON."""
    return json.dumps(_to_jsonable(node), indent=indent)
