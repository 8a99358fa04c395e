"""
Buddy Parser Tests

Tests for expression precedence, statements, declarations and error recovery.
"""

import json

import pytest
from buddy.compiler import parse, tokenize
from buddy.compiler.ast import *


def parse_source(source):
    program, errors = parse(tokenize(source))
    assert errors == []
    return program


def parse_errors(source):
    return parse(tokenize(source))[1]


def expr(source):
    return parse_source(source).statements[0].expression


def first(source):
    return parse_source(source).statements[0]


# =============================================================================
# Expression Tests
# =============================================================================

class TestParserPrecedence:
    """Operator precedence and associativity."""

    def test_multiplication_binds_tighter_than_addition(self):
        e = expr("1 + 2 * 3")
        assert isinstance(e, BinaryExpr)
        assert e.operator.lexeme == "+"
        assert isinstance(e.right, BinaryExpr)
        assert e.right.operator.lexeme == "*"

    def test_subtraction_is_left_associative(self):
        e = expr("a - b - c")
        assert e.operator.lexeme == "-"
        assert isinstance(e.left, BinaryExpr)
        assert isinstance(e.right, VariableExpr)

    def test_assignment_is_right_associative(self):
        e = expr("a = b = c")
        assert isinstance(e, AssignExpr)
        assert isinstance(e.value, AssignExpr)

    def test_compound_assignment(self):
        e = expr("total += 1")
        assert isinstance(e, AssignExpr)
        assert e.operator.lexeme == "+="

    def test_coalescing_below_or(self):
        e = expr("a ?? b || c")
        assert isinstance(e, BinaryExpr)
        assert e.operator.lexeme == "??"
        assert isinstance(e.right, LogicalExpr)

    def test_and_binds_tighter_than_or(self):
        e = expr("a || b && c")
        assert isinstance(e, LogicalExpr)
        assert e.operator.lexeme == "||"
        assert e.right.operator.lexeme == "&&"

    def test_comparison_binds_tighter_than_equality(self):
        e = expr("a == b < c")
        assert e.operator.lexeme == "=="
        assert e.right.operator.lexeme == "<"

    def test_range_operands_are_terms(self):
        e = expr("0..<n + 1")
        assert isinstance(e, RangeExpr)
        assert e.operator.lexeme == "..<"
        assert isinstance(e.right, BinaryExpr)

    def test_ternary(self):
        e = expr("ok ? a : b")
        assert isinstance(e, TernaryExpr)
        assert isinstance(e.condition, VariableExpr)

    def test_nested_ternary_in_else(self):
        e = expr("a ? b : c ? d : e")
        assert isinstance(e.else_expr, TernaryExpr)

    def test_unary_binds_tighter_than_factor(self):
        e = expr("-a * b")
        assert e.operator.lexeme == "*"
        assert isinstance(e.left, UnaryExpr)

    def test_not(self):
        e = expr("!a && b")
        assert isinstance(e, LogicalExpr)
        assert isinstance(e.left, UnaryExpr)
        assert e.left.operator.lexeme == "!"

    def test_type_test(self):
        e = expr("x is String")
        assert isinstance(e, IsExpr)
        assert e.type == IdentifierType("String", e.type.token)

    def test_casts(self):
        assert expr("x as Int").is_optional is False
        assert expr("x as? Int").is_optional
        assert expr("x as! Int").is_force_unwrap

    def test_try_variants(self):
        plain = expr("try load()")
        optional = expr("try? load()")
        forced = expr("try! load()")
        assert isinstance(plain, TryExpr)
        assert not plain.is_optional and not plain.is_force_unwrap
        assert optional.is_optional
        assert forced.is_force_unwrap
        assert isinstance(forced.expression, CallExpr)


class TestParserPostfix:
    """Calls, member access, subscripts and optional chains."""

    def test_labeled_and_positional_arguments(self):
        e = expr("f(x: 1, 2)")
        assert isinstance(e, CallExpr)
        assert e.arguments[0].label.lexeme == "x"
        assert e.arguments[1].label is None

    def test_method_call(self):
        e = expr("list.append(4)")
        assert isinstance(e.callee, GetExpr)
        assert e.callee.name.lexeme == "append"

    def test_optional_chain(self):
        e = expr("a?.b?.c")
        assert isinstance(e, GetExpr) and e.is_optional
        assert isinstance(e.object, OptionalChainingExpr)
        inner = e.object.object
        assert isinstance(inner, GetExpr) and inner.name.lexeme == "b"

    def test_optional_call(self):
        e = expr("handler?()")
        assert isinstance(e, CallExpr)
        assert e.is_optional
        assert isinstance(e.callee, OptionalChainingExpr)

    def test_optional_subscript(self):
        e = expr("items?[0]")
        assert isinstance(e, IndexExpr)
        assert e.is_optional

    def test_force_unwrap(self):
        e = expr("value!")
        assert isinstance(e, OptionalChainingExpr)
        assert e.force_unwrap

    def test_force_unwrap_member(self):
        e = expr("value!.count")
        assert isinstance(e, GetExpr)
        assert e.object.force_unwrap

    def test_bare_optional_is_an_error(self):
        errors = parse_errors("value?")
        assert len(errors) == 1
        assert errors[0].message == "Expect property, subscript, or method call after '?'."

    def test_subscript_with_range(self):
        e = expr("arr[0...2]")
        assert isinstance(e, IndexExpr)
        assert isinstance(e.index, RangeExpr)


class TestParserAssignmentTargets:
    """Only variables, members and subscripts can be assigned."""

    @pytest.mark.parametrize("source,target", [
        ("x = 5", VariableExpr),
        ("x.y = 5", GetExpr),
        ("x[0] = 5", IndexExpr),
        ("x?.y = 5", GetExpr),
        ("self.name = name", GetExpr),
    ])
    def test_valid_targets(self, source, target):
        e = expr(source)
        assert isinstance(e, AssignExpr)
        assert isinstance(e.target, target)

    def test_invalid_target(self):
        errors = parse_errors("1 + 1 = 5")
        assert len(errors) == 1
        assert errors[0].message == "Invalid assignment target."
        assert (errors[0].line, errors[0].column) == (1, 7)


class TestParserLiterals:
    """Primary expressions."""

    def test_numbers(self):
        assert expr("42") == IntLiteralExpr(42)
        assert expr("2.5") == DoubleLiteralExpr(2.5)

    def test_keywords(self):
        assert expr("true").value is True
        assert expr("false").value is False
        assert expr("nil").value is None
        assert isinstance(expr("self"), SelfExpr)

    def test_strings(self):
        assert expr('"hi"') == StringLiteralExpr("hi")
        assert expr("'c'") == StringLiteralExpr("c")
        assert expr('"""a\nb"""') == StringLiteralExpr("a\nb", is_multi_line=True)

    def test_array_with_trailing_comma(self):
        e = expr("[1, 2, 3,]")
        assert isinstance(e, ArrayLiteralExpr)
        assert len(e.elements) == 3

    def test_empty_collections(self):
        assert expr("[]") == ArrayLiteralExpr([])
        assert expr("[:]") == DictionaryLiteralExpr([])

    def test_dictionary(self):
        e = expr('["a": 1, "b": 2]')
        assert isinstance(e, DictionaryLiteralExpr)
        assert [p.key.value for p in e.pairs] == ["a", "b"]

    def test_group(self):
        e = expr("(1 + 2) * 3")
        assert isinstance(e.left, GroupExpr)

    def test_implicit_parameter_reference(self):
        e = expr("$1")
        assert isinstance(e, VariableExpr)
        assert e.name == "$1"


# =============================================================================
# Closure Tests
# =============================================================================

class TestParserClosures:
    """Closure literals and trailing closures."""

    def test_trailing_closure_on_member(self):
        e = expr("numbers.map { $0 * 2 }")
        assert isinstance(e, CallExpr)
        assert isinstance(e.callee, GetExpr)
        closure = e.arguments[0].value
        assert isinstance(closure, ClosureExpr)
        assert [p.internal_name.lexeme for p in closure.body.in_body_parameters] == ["$0"]

    def test_trailing_closure_after_arguments(self):
        e = expr("reduce(0) { acc, x in acc + x }")
        assert len(e.arguments) == 2
        closure = e.arguments[1].value
        assert [p.internal_name.lexeme for p in closure.body.in_body_parameters] == ["acc", "x"]

    def test_parenthesized_in_body_parameters(self):
        stmt = first("let f = { (a, b) in a + b }")
        params = stmt.initializer.body.in_body_parameters
        assert [p.internal_name.lexeme for p in params] == ["a", "b"]
        assert all(p.external_name is None for p in params)

    def test_implicit_parameters_counted_to_highest(self):
        stmt = first("let f = { $1 - $0 }")
        params = stmt.initializer.body.in_body_parameters
        assert [p.internal_name.lexeme for p in params] == ["$0", "$1"]

    def test_nested_closure_parameters_are_not_counted(self):
        stmt = first("let f = { items.map { $0 } }")
        outer = stmt.initializer
        assert outer.body.in_body_parameters == []
        inner = outer.body.statements[0].expression.arguments[0].value
        assert len(inner.body.in_body_parameters) == 1

    def test_no_trailing_closure_in_condition(self):
        stmt = first("if ready { go() }")
        assert isinstance(stmt, IfStmt)
        assert isinstance(stmt.condition, VariableExpr)

    def test_trailing_closure_inside_call_in_condition(self):
        stmt = first("if any(items.filter { $0 > 1 }) { go() }")
        argument = stmt.condition.arguments[0].value
        assert isinstance(argument, CallExpr)
        assert isinstance(argument.arguments[0].value, ClosureExpr)

    def test_brace_on_next_line_is_a_block(self):
        program = parse_source("foo\n{ 1 }")
        assert isinstance(program.statements[0], ExpressionStmt)
        assert isinstance(program.statements[1], BlockStmt)


# =============================================================================
# Statement Tests
# =============================================================================

class TestParserStatements:
    """Statement parsing tests."""

    def test_if_else_if(self):
        stmt = first("if a { } else if b { } else { }")
        assert isinstance(stmt.else_branch, IfStmt)
        assert isinstance(stmt.else_branch.else_branch, BlockStmt)

    def test_if_let(self):
        stmt = first("if let v = maybe { use(v) } else { }")
        assert isinstance(stmt, IfLetStmt)
        assert stmt.name.lexeme == "v"
        assert isinstance(stmt.value, VariableExpr)

    def test_if_let_shorthand(self):
        stmt = first("if let v { }")
        assert stmt.value is None

    def test_guard(self):
        stmt = first("guard x > 0 else { return }")
        assert isinstance(stmt, GuardStmt)
        assert isinstance(stmt.body.statements[0], ReturnStmt)

    def test_guard_let(self):
        stmt = first("guard let v = maybe else { return }")
        assert isinstance(stmt, GuardLetStmt)
        assert stmt.name.lexeme == "v"

    def test_switch(self):
        stmt = first(
            "switch x {\n"
            "case 1, 2:\n"
            "    print(\"small\")\n"
            "case 3:\n"
            "    print(\"three\")\n"
            "    print(\"!\")\n"
            "default:\n"
            "    print(\"other\")\n"
            "}"
        )
        assert isinstance(stmt, SwitchStmt)
        assert len(stmt.cases) == 2
        assert len(stmt.cases[0].expressions) == 2
        assert len(stmt.cases[1].statements) == 2
        assert len(stmt.default_case) == 1

    def test_for_in(self):
        stmt = first("for i in 0..<3 { }")
        assert isinstance(stmt, ForStmt)
        assert stmt.variable.lexeme == "i"
        assert isinstance(stmt.iterable, RangeExpr)

    def test_for_in_with_parentheses(self):
        stmt = first("for (item in items) { }")
        assert isinstance(stmt.iterable, VariableExpr)

    def test_while_and_break(self):
        stmt = first("while true { break }")
        assert isinstance(stmt, WhileStmt)
        assert isinstance(stmt.body.statements[0], BreakStmt)

    def test_repeat_while(self):
        stmt = first("repeat { i += 1 } while i < 10")
        assert isinstance(stmt, RepeatStmt)
        assert isinstance(stmt.condition, BinaryExpr)

    def test_throw(self):
        stmt = first("throw failure")
        assert isinstance(stmt, ThrowStmt)

    def test_do_catch_default_name(self):
        stmt = first("do { try risky() } catch { print(error) }")
        assert isinstance(stmt, DoCatchStmt)
        assert stmt.error_name.lexeme == "error"

    @pytest.mark.parametrize("clause", ["catch let e", "catch var e", "catch e"])
    def test_do_catch_named(self, clause):
        stmt = first(f"do {{ try risky() }} {clause} {{ print(e) }}")
        assert stmt.error_name.lexeme == "e"

    def test_indirect_statement_is_blank(self):
        assert isinstance(first("indirect"), BlankStmt)


class TestParserReturn:
    """The return value stops at the end of the line."""

    def test_return_on_its_own_line(self):
        func = first("func f() {\n    return\n}")
        assert func.body.statements[0].value is None

    def test_return_before_brace(self):
        func = first("func f() { return }")
        assert func.body.statements[0].value is None

    def test_return_value(self):
        func = first("func f() { return 1 }")
        assert func.body.statements[0].value == IntLiteralExpr(1)

    def test_value_on_next_line_is_a_statement(self):
        func = first("func f() {\n    return\n    g()\n}")
        assert len(func.body.statements) == 2
        assert func.body.statements[0].value is None


# =============================================================================
# Declaration Tests
# =============================================================================

class TestParserDeclarations:
    """Declaration parsing tests."""

    def test_var_and_let(self):
        program = parse_source("var a = 1\nlet b: Int = 2\nvar c: String")
        a, b, c = program.statements
        assert not a.is_constant and b.is_constant
        assert b.type == IdentifierType("Int", b.type.token)
        assert c.initializer is None

    def test_optional_array_type(self):
        stmt = first("var names: [String]? = nil")
        assert isinstance(stmt.type, OptionalType)
        assert isinstance(stmt.type.base, ArrayType)

    def test_function_parameters(self):
        func = first("func f(_ a: Int, to b: Int = 2, rest: Int...) -> Int { return a }")
        a, b, rest = func.parameters
        assert a.external_name is None
        assert a.internal_name.lexeme == "a"
        assert b.external_name.lexeme == "to"
        assert b.default_value == IntLiteralExpr(2)
        assert rest.is_variadic
        assert [p.key(i) for i, p in enumerate(func.parameters, 1)] == ["_1", "to", "rest"]
        assert func.return_type.name == "Int"

    def test_throwing_function(self):
        func = first("func load() throws -> String { return \"\" }")
        assert func.can_throw

    def test_attributes_and_modifiers(self):
        func = first("@discardableResult\nprivate static func f() { }")
        assert func.attributes[0].name.lexeme == "discardableResult"
        assert func.is_private and func.is_static

    def test_modifiers_without_declaration(self):
        errors = parse_errors("private 5")
        assert errors[0].message == "Expect declaration after modifiers."

    def test_struct(self):
        stmt = first(
            "struct Point: Equatable {\n"
            "    var x: Int\n"
            "    let y: Int = 0\n"
            "    init(x: Int) { self.x = x }\n"
            "    func norm() -> Int { return x }\n"
            "    enum Kind { case a }\n"
            "}"
        )
        assert isinstance(stmt, StructDeclaration)
        assert [t.lexeme for t in stmt.inherited_types] == ["Equatable"]
        kinds = [type(m).__name__ for m in stmt.members]
        assert kinds == ["VarDeclaration", "VarDeclaration", "FunctionDeclaration",
                         "FunctionDeclaration", "EnumDeclaration"]
        assert stmt.members[2].kind == FunctionKind.INITIALIZER
        assert stmt.members[3].kind == FunctionKind.METHOD

    def test_struct_rejects_statements(self):
        errors = parse_errors("struct S { 5 }")
        assert errors[0].message == "Expect method or property declaration in struct."

    def test_class(self):
        stmt = first('class Dog: Animal {\n    var name: String = "rex"\n    func bark() { }\n}')
        assert isinstance(stmt, ClassDeclaration)
        assert len(stmt.methods) == 1
        assert len(stmt.properties) == 1
        assert stmt.inherited_types[0].lexeme == "Animal"

    def test_enum(self):
        stmt = first(
            "enum Shape {\n"
            "    case circle(radius: Double), square(Double)\n"
            "    indirect case pair(Shape, Shape)\n"
            "    case empty\n"
            "}"
        )
        assert isinstance(stmt, EnumDeclaration)
        names = [c.name.lexeme for c in stmt.cases]
        assert names == ["circle", "square", "pair", "empty"]
        circle, square, pair, empty = stmt.cases
        assert circle.associated_values[0].external_name.lexeme == "radius"
        assert square.associated_values[0].external_name is None
        assert len(pair.associated_values) == 2
        assert empty.associated_values == []

    def test_enum_raw_values(self):
        stmt = first('enum Color: String { case red = "r", green = "g" }')
        assert [c.raw_value.value for c in stmt.cases] == ["r", "g"]

    def test_protocol(self):
        stmt = first(
            "protocol Named: Base {\n"
            "    var name: String { get }\n"
            "    var age: Int { get set }\n"
            "    func greet(other: String) -> String\n"
            "}"
        )
        assert isinstance(stmt, ProtocolDeclaration)
        name, age, greet = stmt.members
        assert name.getter and not name.setter
        assert age.getter and age.setter
        assert isinstance(greet, ProtocolMethodDeclaration)
        assert greet.return_type.name == "String"

    def test_typealias(self):
        stmt = first("typealias Table = [String: Int]")
        assert isinstance(stmt, TypealiasDeclaration)
        assert isinstance(stmt.type, DictionaryType)

    def test_dotted_type(self):
        stmt = first("var k: Shape.Kind")
        assert stmt.type.name == "Shape.Kind"


# =============================================================================
# Error Recovery Tests
# =============================================================================

class TestParserRecovery:
    """Synchronization after syntax errors."""

    def test_multiple_errors_are_collected(self):
        program, errors = parse(tokenize("let = 5\nlet = 6\nlet z = 3"))
        assert len(errors) == 2
        assert len(program.statements) == 1
        assert program.statements[0].name.lexeme == "z"

    def test_semicolon_ends_a_failed_statement(self):
        program, errors = parse(tokenize("1 + ; let a = 1"))
        assert len(errors) == 1
        assert isinstance(program.statements[0], VarDeclaration)

    def test_whitespace_does_not_change_the_tree(self):
        compact = "func f(a: Int) -> Int { return a * 2 }\nlet y = f(a: 3)"
        spaced = ("func  f ( a : Int )  ->  Int  {\n    return a * 2\n}\n\n\n"
                  "let y = f( a : 3 )")
        printer = ASTPrinter()
        assert printer.print(parse_source(compact)) == printer.print(parse_source(spaced))


class TestASTDumps:
    """Debug dumps of the tree."""

    def test_printer_outline(self):
        text = ASTPrinter().print(parse_source("let x = 5"))
        assert text.splitlines() == [
            "Program",
            "  statements: [1]",
            "    VarDeclaration(name=x, is_constant=True)",
            "      initializer: IntLiteralExpr(value=5)",
        ]

    def test_json_dump(self):
        data = json.loads(ast_to_json(parse_source("let x = 5")))
        stmt = data["statements"][0]
        assert stmt["node"] == "VarDeclaration"
        assert stmt["name"]["lexeme"] == "x"
        assert stmt["initializer"] == {"node": "IntLiteralExpr", "value": 5}
