"""
Buddy Transpiler

Renders a (resolved) Buddy AST as JavaScript, or TypeScript when type
annotations are requested.

Every function takes one record argument named ``params`` and destructures
it in its body; every call passes a single record literal keyed by argument
label, or by ``_<position>`` for unlabeled arguments.
"""

import logging
import textwrap
from typing import List, Optional

from .tokens import TokenType
from .ast import *
from .errors import TranspileError
from .runtime import RUNTIME

logger = logging.getLogger(__name__)

INDENT = "  "
MEMBER_SEPARATOR = "\n\n"
CASE_SEPARATOR = ",\n"

OPERATORS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.BANG: "!",
    TokenType.ATTACHED_BANG: "!",
    TokenType.EQUAL: "=",
    TokenType.PLUS_EQUAL: "+=",
    TokenType.MINUS_EQUAL: "-=",
    TokenType.EQUAL_EQUAL: "===",
    TokenType.BANG_EQUAL: "!==",
    TokenType.LESS: "<",
    TokenType.LESS_EQUAL: "<=",
    TokenType.GREATER: ">",
    TokenType.GREATER_EQUAL: ">=",
    TokenType.AMPERSAND_AMPERSAND: "&&",
    TokenType.PIPE_PIPE: "||",
    TokenType.QUESTION_QUESTION: "??",
}

# JavaScript binding strength of binary operators; higher binds tighter
PRECEDENCE = {
    TokenType.QUESTION_QUESTION: 1,
    TokenType.PIPE_PIPE: 2,
    TokenType.AMPERSAND_AMPERSAND: 3,
    TokenType.EQUAL_EQUAL: 4,
    TokenType.BANG_EQUAL: 4,
    TokenType.LESS: 5,
    TokenType.LESS_EQUAL: 5,
    TokenType.GREATER: 5,
    TokenType.GREATER_EQUAL: 5,
    TokenType.PLUS: 6,
    TokenType.MINUS: 6,
    TokenType.STAR: 7,
    TokenType.SLASH: 7,
    TokenType.PERCENT: 7,
}

SHORT_CIRCUIT = {TokenType.PIPE_PIPE, TokenType.AMPERSAND_AMPERSAND}

TS_TYPES = {
    "Int": "number",
    "Double": "number",
    "Float": "number",
    "String": "string",
    "Character": "string",
    "Bool": "boolean",
    "Any": "any",
    "Void": "void",
}

TYPEOF_TESTS = {
    "Int": "number",
    "Double": "number",
    "Float": "number",
    "String": "string",
    "Character": "string",
    "Bool": "boolean",
}

# Expressions that never need parentheses as an operand
ATOMS = (VariableExpr, GetExpr, CallExpr, IndexExpr, SelfExpr, GroupExpr,
         LiteralExpr, StringLiteralExpr, IntLiteralExpr, ArrayLiteralExpr)


def block(body: str) -> str:
    """Wrap rendered statements in braces, indenting them one level."""
    if not body:
        return "{}"
    return "{\n" + textwrap.indent(body, INDENT) + "\n}"


def join(parts, separator: str = "\n") -> str:
    """Join rendered pieces, dropping the ones that render to nothing."""
    return separator.join(part for part in parts if part)


class Transpiler(ASTVisitor):
    """Generates JavaScript or TypeScript source from an AST."""

    def __init__(self, emit_ts: bool = False, capitalized_constructors: bool = False):
        """
        Args:
            emit_ts: Emit TypeScript type annotations and declarations
            capitalized_constructors: Treat calls to capitalized names as
                constructor calls, for trees that were not resolved
        """
        self.emit_ts = emit_ts
        self.capitalized_constructors = capitalized_constructors

    def transpile(self, program: Program, include_runtime: bool = True) -> str:
        """
        Render a whole program.

        Args:
            program: Root of the AST
            include_runtime: Prepend the runtime support preamble

        Returns:
            Output source text
        """
        code = program.accept(self)
        logger.debug("generated %d lines of %s", code.count("\n") + 1,
                     "TypeScript" if self.emit_ts else "JavaScript")
        if not include_runtime:
            return code
        return RUNTIME + "\n\n// Compiled code\n\n" + code

    def visit_program(self, node: Program) -> str:
        return join(stmt.accept(self) for stmt in node.statements)

    # =========================================================================
    # Types and parameters
    # =========================================================================

    def type(self, type: TypeIdentifier) -> str:
        """Render a TypeScript type."""
        if isinstance(type, IdentifierType):
            return TS_TYPES.get(type.name, type.name)
        if isinstance(type, ArrayType):
            element = self.type(type.element)
            if isinstance(type.element, OptionalType):
                element = f"({element})"
            return f"{element}[]"
        if isinstance(type, DictionaryType):
            return f"{{ [key: {self.type(type.key)}]: {self.type(type.value)} }}"
        if isinstance(type, OptionalType):
            return f"{self.type(type.base)} | null | undefined"
        raise TranspileError(f"Unsupported type: {type!r}")

    def annotation(self, type: Optional[TypeIdentifier]) -> str:
        if not self.emit_ts or type is None:
            return ""
        return f": {self.type(type)}"

    def params_signature(self, parameters: List[Parameter]) -> str:
        """The single record parameter, typed in TypeScript mode."""
        if not self.emit_ts or not parameters:
            return "params = {}"

        fields = []
        for position, param in enumerate(parameters, 1):
            type = self.type(param.type) if param.type is not None else "any"
            if param.is_variadic:
                type = f"{type}[]"
            optional = "?" if param.default_value is not None else ""
            fields.append(f"{param.key(position)}{optional}: {type}")

        record = "{ " + "; ".join(fields) + " }"
        if all(param.default_value is not None for param in parameters):
            return f"params: {record} = {{}}"
        return f"params: {record}"

    def params_destructuring(self, parameters: List[Parameter]) -> str:
        """Bind each parameter's internal name out of the params record."""
        if not parameters:
            return ""

        bindings = []
        for position, param in enumerate(parameters, 1):
            key = param.key(position)
            internal = param.internal_name.lexeme
            binding = internal if key == internal else f"{key}: {internal}"
            if param.default_value is not None:
                binding += f" = {param.default_value.accept(self)}"
            bindings.append(binding)

        return "const { " + ", ".join(bindings) + " } = params;"

    # =========================================================================
    # Declarations
    # =========================================================================

    def visit_var_declaration(self, node: VarDeclaration) -> str:
        # A constant without initializer is assigned later, which const forbids
        keyword = "const" if node.is_constant and node.initializer is not None else "let"
        initializer = f" = {node.initializer.accept(self)}" if node.initializer else ""
        return f"{keyword} {node.name.lexeme}{self.annotation(node.type)}{initializer};"

    def field(self, node: VarDeclaration) -> str:
        """A stored property rendered as a class field."""
        modifiers = ""
        if self.emit_ts and node.is_private:
            modifiers += "private "
        if node.is_static:
            modifiers += "static "
        if self.emit_ts and node.is_constant and node.initializer is not None:
            modifiers += "readonly "
        initializer = f" = {node.initializer.accept(self)}" if node.initializer else ""
        return f"{modifiers}{node.name.lexeme}{self.annotation(node.type)}{initializer};"

    def visit_function_declaration(self, node: FunctionDeclaration) -> str:
        if node.kind == FunctionKind.INITIALIZER:
            head = "constructor"
        elif node.kind == FunctionKind.METHOD:
            head = node.name.lexeme
            if node.is_static:
                head = "static " + head
            if self.emit_ts and node.is_private:
                head = "private " + head
        else:
            head = f"function {node.name.lexeme}"

        signature = self.params_signature(node.parameters)
        return_type = ""
        if node.kind != FunctionKind.INITIALIZER:
            return_type = self.annotation(node.return_type)

        body = join([self.params_destructuring(node.parameters), node.body.accept(self)])
        return f"{head}({signature}){return_type} {block(body)}"

    def member(self, node: Statement) -> str:
        """Render a struct or class member inside a class body."""
        if isinstance(node, VarDeclaration):
            return self.field(node)
        if isinstance(node, FunctionDeclaration):
            return node.accept(self)
        if isinstance(node, EnumDeclaration):
            return f"static {node.name.lexeme} = {self.enum_object(node)};"
        if isinstance(node, StructDeclaration):
            return f"static {node.name.lexeme} = {self.struct_class(node)};"
        if isinstance(node, ClassDeclaration):
            return f"static {node.name.lexeme} = {node.accept(self)};"
        if isinstance(node, ProtocolDeclaration):
            return "" if self.emit_ts else f"static {node.name.lexeme} = {node.accept(self)};"
        if isinstance(node, TypealiasDeclaration):
            return ""
        raise TranspileError(f"Unsupported member: {type(node).__name__}")

    @staticmethod
    def has_initializer(members) -> bool:
        return any(isinstance(m, FunctionDeclaration) and m.kind == FunctionKind.INITIALIZER
                   for m in members)

    def synthesized_constructor(self, superclass: Optional[str] = None) -> str:
        lines = []
        if superclass:
            lines.append("super(params);")
        lines.append("Object.assign(this, params);")
        signature = "params: any = {}" if self.emit_ts else "params = {}"
        return f"constructor({signature}) {block(join(lines))}"

    def struct_class(self, node: StructDeclaration, fields=None) -> str:
        """The class half of a struct, with a memberwise constructor if needed."""
        members = node.members if fields is None else fields
        parts = [self.member(m) for m in members
                 if not isinstance(m, FunctionDeclaration)]
        if not self.has_initializer(node.members):
            parts.append(self.synthesized_constructor())
        parts.extend(self.member(m) for m in node.members
                     if isinstance(m, FunctionDeclaration))
        return f"class {node.name.lexeme} {block(join(parts, MEMBER_SEPARATOR))}"

    def visit_struct_declaration(self, node: StructDeclaration) -> str:
        if not self.emit_ts:
            return self.struct_class(node)

        # Interface for the declared shape, merged with a class for the value
        signatures = []
        for m in node.members:
            if isinstance(m, VarDeclaration) and m.initializer is None and not m.is_static:
                readonly = "readonly " if m.is_constant else ""
                signatures.append(f"{readonly}{m.name.lexeme}{self.annotation(m.type) or ': any'};")
        extends = ""
        if node.inherited_types:
            extends = " extends " + ", ".join(t.lexeme for t in node.inherited_types)
        interface = f"interface {node.name.lexeme}{extends} {block(join(signatures))}"

        fields = [m for m in node.members
                  if not (isinstance(m, VarDeclaration) and m.initializer is None and not m.is_static)]
        return interface + "\n\n" + self.struct_class(node, fields)

    def visit_class_declaration(self, node: ClassDeclaration) -> str:
        superclass = node.inherited_types[0].lexeme if node.inherited_types else None

        parts = [self.member(p) for p in node.properties]
        if not self.has_initializer(node.methods):
            parts.append(self.synthesized_constructor(superclass))
        parts.extend(self.member(m) for m in node.methods)

        extends = f" extends {superclass}" if superclass else ""
        return f"class {node.name.lexeme}{extends} {block(join(parts, MEMBER_SEPARATOR))}"

    def enum_case_value(self, case: EnumCase) -> str:
        if case.associated_values:
            values = ", ".join(f"params.{p.key(position)}"
                               for position, p in enumerate(case.associated_values, 1))
            return (f"(params = {{}}) => Object.freeze({{ case: \"{case.name.lexeme}\", "
                    f"values: [{values}] }})")
        if case.raw_value is not None:
            return case.raw_value.accept(self)
        return f"\"{case.name.lexeme}\""

    def enum_object(self, node: EnumDeclaration) -> str:
        cases = [f"{c.name.lexeme}: {self.enum_case_value(c)}" for c in node.cases]
        return f"Object.freeze({block(join(cases, CASE_SEPARATOR))})"

    def visit_enum_declaration(self, node: EnumDeclaration) -> str:
        simple = all(
            not c.associated_values and (
                c.raw_value is None
                or isinstance(c.raw_value, (StringLiteralExpr, IntLiteralExpr, DoubleLiteralExpr)))
            for c in node.cases)

        if self.emit_ts and simple:
            cases = [f"{c.name.lexeme} = {self.enum_case_value(c)}" for c in node.cases]
            return f"enum {node.name.lexeme} {block(join(cases, CASE_SEPARATOR))}"

        return f"const {node.name.lexeme} = {self.enum_object(node)};"

    def visit_protocol_declaration(self, node: ProtocolDeclaration) -> str:
        members = join(member.accept(self) for member in node.members)
        if self.emit_ts:
            extends = ""
            if node.inherited_protocols:
                extends = " extends " + ", ".join(t.lexeme for t in node.inherited_protocols)
            return f"interface {node.name.lexeme}{extends} {block(members)}"
        return f"class {node.name.lexeme} {block(members)}"

    def visit_protocol_property(self, node: ProtocolPropertyDeclaration) -> str:
        if not self.emit_ts:
            return f"{node.name.lexeme};"
        readonly = "readonly " if node.getter and not node.setter else ""
        return f"{readonly}{node.name.lexeme}: {self.type(node.property_type)};"

    def visit_protocol_method(self, node: ProtocolMethodDeclaration) -> str:
        signature = self.params_signature(node.parameters)
        if not self.emit_ts:
            return f"{node.name.lexeme}({signature}) {{}}"
        return_type = self.type(node.return_type) if node.return_type else "void"
        return f"{node.name.lexeme}({signature}): {return_type};"

    def visit_typealias(self, node: TypealiasDeclaration) -> str:
        if not self.emit_ts:
            return ""
        return f"type {node.name.lexeme} = {self.type(node.type)};"

    # =========================================================================
    # Statements
    # =========================================================================

    def condition(self, expr: Expression) -> str:
        """Render a condition for 'if (...)', dropping redundant parentheses."""
        if isinstance(expr, GroupExpr):
            expr = expr.expression
        return expr.accept(self)

    def body(self, node: BlockStmt) -> str:
        return block(node.accept(self))

    def visit_block(self, node: BlockStmt) -> str:
        """Render the statements of a block, without braces."""
        return join(stmt.accept(self) for stmt in node.statements)

    def else_clause(self, else_branch: Optional[Statement]) -> str:
        if else_branch is None:
            return ""
        if isinstance(else_branch, (IfStmt, IfLetStmt)):
            return f" else {else_branch.accept(self)}"
        if isinstance(else_branch, BlockStmt):
            return f" else {self.body(else_branch)}"
        return f" else {block(else_branch.accept(self))}"

    def visit_expression_stmt(self, node: ExpressionStmt) -> str:
        return f"{node.expression.accept(self)};"

    def visit_if(self, node: IfStmt) -> str:
        return (f"if ({self.condition(node.condition)}) {self.body(node.then_branch)}"
                f"{self.else_clause(node.else_branch)}")

    def visit_if_let(self, node: IfLetStmt) -> str:
        name = node.name.lexeme
        if node.value is None:
            return (f"if ({name} !== undefined && {name} !== null) {self.body(node.then_branch)}"
                    f"{self.else_clause(node.else_branch)}")

        # Evaluate the value once; the else branch must not see the binding
        temp = "$" + name
        body = join([f"const {name} = {temp};", node.then_branch.accept(self)])
        check = (f"if ({temp} !== undefined && {temp} !== null) {block(body)}"
                 f"{self.else_clause(node.else_branch)}")
        return block(f"const {temp} = {node.value.accept(self)};\n{check}")

    def visit_guard(self, node: GuardStmt) -> str:
        return f"if (!({node.condition.accept(self)})) {self.body(node.body)}"

    def visit_guard_let(self, node: GuardLetStmt) -> str:
        name = node.name.lexeme
        value = node.value.accept(self)
        check = f"if ({name} === undefined || {name} === null) {self.body(node.body)}"
        if value == name:
            return check
        return f"const {name} = {value};\n{check}"

    def visit_switch(self, node: SwitchStmt) -> str:
        clauses = []
        for case in node.cases:
            labels = "\n".join(f"case {e.accept(self)}:" for e in case.expressions)
            body = join([stmt.accept(self) for stmt in case.statements] + ["break;"])
            clauses.append(f"{labels} {block(body)}")
        if node.default_case is not None:
            body = join(stmt.accept(self) for stmt in node.default_case)
            clauses.append(f"default: {block(body)}")
        return f"switch ({self.condition(node.expression)}) {block(join(clauses))}"

    def visit_for(self, node: ForStmt) -> str:
        return (f"for (const {node.variable.lexeme} of {node.iterable.accept(self)}) "
                f"{self.body(node.body)}")

    def visit_while(self, node: WhileStmt) -> str:
        return f"while ({self.condition(node.condition)}) {self.body(node.body)}"

    def visit_repeat(self, node: RepeatStmt) -> str:
        return f"do {self.body(node.body)} while ({self.condition(node.condition)});"

    def visit_return(self, node: ReturnStmt) -> str:
        if node.value is None:
            return "return;"
        return f"return {node.value.accept(self)};"

    def visit_break(self, node: BreakStmt) -> str:
        return "break;"

    def visit_continue(self, node: ContinueStmt) -> str:
        return "continue;"

    def visit_blank(self, node: BlankStmt) -> str:
        return ""

    def visit_do_catch(self, node: DoCatchStmt) -> str:
        name = node.error_name.lexeme if node.error_name is not None else "error"
        return f"try {self.body(node.body)} catch ({name}) {self.body(node.catch_block)}"

    def visit_throw(self, node: ThrowStmt) -> str:
        return f"throw {node.expression.accept(self)};"

    # =========================================================================
    # Expressions
    # =========================================================================

    def operator(self, token: Token) -> str:
        try:
            return OPERATORS[token.type]
        except KeyError:
            raise TranspileError(f"Unsupported operator '{token.lexeme}'",
                                 token.line, token.column) from None

    def operand(self, expr: Expression) -> str:
        """Render an operand, parenthesized unless it is atomic."""
        text = expr.accept(self)
        return text if isinstance(expr, ATOMS) else f"({text})"

    def visit_assign(self, node: AssignExpr) -> str:
        return f"{node.target.accept(self)} {self.operator(node.operator)} {node.value.accept(self)}"

    def visit_ternary(self, node: TernaryExpr) -> str:
        return (f"{node.condition.accept(self)} ? {node.then_expr.accept(self)} "
                f": {node.else_expr.accept(self)}")

    def binary_operand(self, expr: Expression, parent: Token, right: bool = False) -> str:
        """
        Render one side of a binary operator, adding the parentheses
        JavaScript needs to keep the tree's grouping.
        """
        text = expr.accept(self)
        if isinstance(expr, (BinaryExpr, LogicalExpr)):
            outer = PRECEDENCE.get(parent.type, 0)
            inner = PRECEDENCE.get(expr.operator.type, 0)
            # '??' may not be mixed with '&&' or '||' unparenthesized
            pair = {parent.type, expr.operator.type}
            mixed = TokenType.QUESTION_QUESTION in pair and bool(pair & SHORT_CIRCUIT)
            if inner < outer or (right and inner == outer) or mixed:
                return f"({text})"
            return text
        if isinstance(expr, (AssignExpr, TernaryExpr, IsExpr, ClosureExpr)):
            return f"({text})"
        return text

    def binary(self, node) -> str:
        operator = self.operator(node.operator)
        left = self.binary_operand(node.left, node.operator)
        right = self.binary_operand(node.right, node.operator, right=True)
        return f"{left} {operator} {right}"

    def visit_binary(self, node: BinaryExpr) -> str:
        return self.binary(node)

    def visit_logical(self, node: LogicalExpr) -> str:
        return self.binary(node)

    def visit_range(self, node: RangeExpr) -> str:
        left = node.left.accept(self)
        right = node.right.accept(self)
        if node.operator.type == TokenType.DOT_DOT_LESS:
            right = f"{right} - 1"
        return f"range({left}, {right})"

    def slice(self, node: RangeExpr) -> str:
        """Arguments of the slice call an indexed range turns into."""
        left = node.left.accept(self)
        right = node.right.accept(self)
        if node.operator.type == TokenType.DOT_DOT_DOT:
            right = f"{right} + 1"
        return f"slice({left}, {right})"

    def visit_unary(self, node: UnaryExpr) -> str:
        operand = node.operand.accept(self)
        # '- -x' must not become the decrement '--x'
        if isinstance(node.operand, UnaryExpr):
            operand = f"({operand})"
        return f"{self.operator(node.operator)}{operand}"

    def chained(self, obj: Expression):
        """
        Split the object of a member access into its rendering and the
        access separator ('?.' after an optional chain, '.' otherwise).
        """
        if isinstance(obj, OptionalChainingExpr):
            return obj.object.accept(self), "." if obj.force_unwrap else "?."
        return obj.accept(self), "."

    def arguments(self, arguments: List[Argument]) -> str:
        """Render call arguments as a single record literal."""
        entries = []
        for position, arg in enumerate(arguments, 1):
            key = arg.label.lexeme if arg.label is not None else f"_{position}"
            entries.append(f"{key}: {arg.value.accept(self)}")
        if not entries:
            return "{}"
        return "{ " + ", ".join(entries) + " }"

    def is_constructor_call(self, node: CallExpr) -> bool:
        if node.is_initializer:
            return True
        return (self.capitalized_constructors
                and isinstance(node.callee, VariableExpr)
                and node.callee.name[:1].isupper())

    def visit_call(self, node: CallExpr) -> str:
        callee = node.callee
        args = self.arguments(node.arguments)

        # super.init(...) calls the superclass constructor
        if (isinstance(callee, GetExpr) and callee.name.lexeme == "init"
                and isinstance(callee.object, VariableExpr) and callee.object.name == "super"):
            return f"super({args})"

        if node.is_optional and isinstance(callee, OptionalChainingExpr):
            inner = callee.object.accept(self)
            separator = "" if callee.force_unwrap else "?."
            return f"{inner}{separator}({args})"

        rendered = self.operand(callee)
        if self.is_constructor_call(node):
            rendered = "new " + rendered
        return f"{rendered}({args})"

    def visit_get(self, node: GetExpr) -> str:
        obj, separator = self.chained(node.object)
        if not isinstance(node.object, (OptionalChainingExpr,) + ATOMS):
            obj = f"({obj})"
        return f"{obj}{separator}{node.name.lexeme}"

    def visit_index(self, node: IndexExpr) -> str:
        if isinstance(node.object, OptionalChainingExpr):
            obj = node.object.object.accept(self)
            optional = not node.object.force_unwrap
        else:
            obj = self.operand(node.object)
            optional = False

        if isinstance(node.index, RangeExpr):
            return f"{obj}{'?.' if optional else '.'}{self.slice(node.index)}"
        return f"{obj}{'?.' if optional else ''}[{node.index.accept(self)}]"

    def visit_optional_chaining(self, node: OptionalChainingExpr) -> str:
        if not node.force_unwrap:
            raise TranspileError("Optional chaining without a member access")
        return node.object.accept(self)

    def visit_try(self, node: TryExpr) -> str:
        expression = node.expression.accept(self)
        if node.is_optional:
            return f"tryOptional(() => {expression})"
        if node.is_force_unwrap:
            return f"tryForce(() => {expression})"
        return expression

    def type_test(self, value: str, type: TypeIdentifier) -> str:
        """JavaScript test that 'value' holds an instance of 'type'."""
        if isinstance(type, OptionalType):
            return f"({value} === null || {value} === undefined || {self.type_test(value, type.base)})"
        if isinstance(type, ArrayType):
            return f"Array.isArray({value})"
        if isinstance(type, DictionaryType):
            return f"(typeof {value} === \"object\" && {value} !== null)"
        if type.name == "Any":
            return "true"
        if type.name in TYPEOF_TESTS:
            return f"typeof {value} === \"{TYPEOF_TESTS[type.name]}\""
        return f"{value} instanceof {type.name}"

    def visit_is(self, node: IsExpr) -> str:
        return self.type_test(self.operand(node.expression), node.type)

    def visit_as(self, node: AsExpr) -> str:
        expression = node.expression.accept(self)
        if node.is_optional:
            return f"((v) => {self.type_test('v', node.type)} ? v : null)({expression})"
        if self.emit_ts:
            return f"({expression} as {self.type(node.type)})"
        return expression

    def visit_literal(self, node: LiteralExpr) -> str:
        if node.value is None:
            return "null"
        return "true" if node.value else "false"

    def visit_string_literal(self, node: StringLiteralExpr) -> str:
        value = node.value.replace("\r", "\\r").replace("\n", "\\n")
        if node.is_multi_line:
            value = value.replace("`", "\\`").replace("${", "\\${")
            return f"`{value}`"
        return f"\"{value}\""

    def visit_int_literal(self, node: IntLiteralExpr) -> str:
        return str(node.value)

    def visit_double_literal(self, node: DoubleLiteralExpr) -> str:
        return repr(node.value)

    def visit_self(self, node: SelfExpr) -> str:
        return "this"

    def visit_variable(self, node: VariableExpr) -> str:
        return node.name

    def visit_group(self, node: GroupExpr) -> str:
        return f"({node.expression.accept(self)})"

    def visit_array_literal(self, node: ArrayLiteralExpr) -> str:
        return "[" + ", ".join(e.accept(self) for e in node.elements) + "]"

    def visit_dictionary_literal(self, node: DictionaryLiteralExpr) -> str:
        if not node.pairs:
            return "({})"
        entries = []
        for pair in node.pairs:
            key = pair.key.accept(self)
            if not isinstance(pair.key, (VariableExpr, StringLiteralExpr, IntLiteralExpr)):
                key = f"[{key}]"
            entries.append(f"{key}: {pair.value.accept(self)}")
        return "({ " + ", ".join(entries) + " })"

    def visit_closure(self, node: ClosureExpr) -> str:
        statements = node.body.statements
        if (len(statements) == 1 and isinstance(statements[0], ExpressionStmt)
                and not isinstance(statements[0].expression, AssignExpr)):
            # Single-expression closures return their value
            body = f"return {statements[0].expression.accept(self)};"
        else:
            body = node.body.accept(self)

        params = node.body.in_body_parameters
        body = join([self.params_destructuring(params), body])
        return f"({self.params_signature(params)}) => {block(body)}"


def transpile(program: Program, emit_ts: bool = False, include_runtime: bool = True,
              capitalized_constructors: bool = False) -> str:
    """Render a program as JavaScript (or TypeScript with emit_ts)."""
    transpiler = Transpiler(emit_ts, capitalized_constructors)
    return transpiler.transpile(program, include_runtime)
