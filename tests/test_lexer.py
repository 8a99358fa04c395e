"""
Buddy Lexer Tests

Tests for tokenization and source positions.
"""

import pytest
from buddy.compiler import Lexer, tokenize
from buddy.compiler.errors import LexError
from buddy.compiler.source import SourceText
from buddy.compiler.tokens import TokenType


def types(source):
    return [t.type for t in tokenize(source)]


# =============================================================================
# Lexer Tests
# =============================================================================

class TestLexerBasics:
    """Basic lexer functionality tests."""

    def test_empty_source(self):
        tokens = Lexer("").tokenize()
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        tokens = Lexer("   \t\n  ").tokenize()
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_declaration(self):
        assert types("let x = 5") == [
            TokenType.LET, TokenType.IDENTIFIER, TokenType.EQUAL,
            TokenType.INT, TokenType.EOF,
        ]

    def test_positions(self):
        tokens = tokenize("let x\n  y")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (1, 5)
        assert (tokens[2].line, tokens[2].column) == (2, 3)


class TestLexerLiterals:
    """Literal tokenization tests."""

    def test_integer(self):
        token = tokenize("42")[0]
        assert token.type == TokenType.INT
        assert token.lexeme == "42"

    def test_double(self):
        token = tokenize("3.14")[0]
        assert token.type == TokenType.DOUBLE
        assert token.lexeme == "3.14"

    def test_string(self):
        token = tokenize('"hello"')[0]
        assert token.type == TokenType.STRING
        assert token.value == "hello"
        assert token.lexeme == '"hello"'

    def test_escaped_quote_stays_in_string(self):
        token = tokenize(r'"a\"b"')[0]
        assert token.type == TokenType.STRING
        assert token.value == r'a\"b'

    def test_multi_line_string(self):
        token = tokenize('"""one\ntwo"""')[0]
        assert token.type == TokenType.STRING_MULTILINE
        assert token.value == "one\ntwo"

    def test_character(self):
        token = tokenize("'c'")[0]
        assert token.type == TokenType.CHARACTER
        assert token.value == "c"

    @pytest.mark.parametrize("keyword,expected_type", [
        ("var", TokenType.VAR),
        ("let", TokenType.LET),
        ("func", TokenType.FUNC),
        ("guard", TokenType.GUARD),
        ("repeat", TokenType.REPEAT),
        ("struct", TokenType.STRUCT),
        ("protocol", TokenType.PROTOCOL),
        ("typealias", TokenType.TYPEALIAS),
        ("nil", TokenType.NIL),
        ("self", TokenType.SELF),
        ("init", TokenType.INIT),
    ])
    def test_keywords(self, keyword, expected_type):
        assert tokenize(keyword)[0].type == expected_type

    def test_identifier_with_underscore_and_digits(self):
        token = tokenize("_value2")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.lexeme == "_value2"


class TestLexerOperators:
    """Operator tokenization tests."""

    @pytest.mark.parametrize("op,expected_type", [
        ("==", TokenType.EQUAL_EQUAL),
        ("!=", TokenType.BANG_EQUAL),
        ("<=", TokenType.LESS_EQUAL),
        (">=", TokenType.GREATER_EQUAL),
        ("+=", TokenType.PLUS_EQUAL),
        ("-=", TokenType.MINUS_EQUAL),
        ("->", TokenType.RIGHT_ARROW),
        ("&&", TokenType.AMPERSAND_AMPERSAND),
        ("||", TokenType.PIPE_PIPE),
        ("??", TokenType.QUESTION_QUESTION),
        ("...", TokenType.DOT_DOT_DOT),
        ("..<", TokenType.DOT_DOT_LESS),
        ("#", TokenType.HASH),
        ("@", TokenType.AT),
        ("$", TokenType.DOLLAR),
    ])
    def test_operators(self, op, expected_type):
        assert tokenize(op)[0].type == expected_type

    def test_ranges_between_integers(self):
        assert types("1..<3") == [TokenType.INT, TokenType.DOT_DOT_LESS,
                                  TokenType.INT, TokenType.EOF]
        assert types("0...2") == [TokenType.INT, TokenType.DOT_DOT_DOT,
                                  TokenType.INT, TokenType.EOF]

    def test_attached_question(self):
        assert types("x?.y") == [TokenType.IDENTIFIER, TokenType.ATTACHED_QUESTION,
                                 TokenType.DOT, TokenType.IDENTIFIER, TokenType.EOF]

    def test_detached_question(self):
        assert types("a ? b : c")[1] == TokenType.QUESTION

    def test_attached_bang(self):
        assert types("x!")[1] == TokenType.ATTACHED_BANG

    def test_detached_bang(self):
        assert types("if !done")[1] == TokenType.BANG

    def test_bang_at_start_of_source_is_detached(self):
        assert types("!x")[0] == TokenType.BANG

    def test_punctuation_lexemes_reproduce_source(self):
        source = ("( ) { } [ ] , . : ; + - * / % == != <= >= < > = += -= -> "
                  "&& || ?? ... ..< ? !")
        tokens = tokenize(source)[:-1]
        assert " ".join(t.lexeme for t in tokens) == source


class TestLexerLines:
    """End-of-line flags and comments."""

    def test_end_of_line_flag(self):
        tokens = tokenize("a\nb")
        assert tokens[0].end_of_line
        assert not tokens[1].end_of_line
        assert tokens[2].type == TokenType.EOF

    def test_line_comment(self):
        tokens = tokenize("42 // this is a comment")
        assert len(tokens) == 2
        assert tokens[0].type == TokenType.INT

    def test_block_comment(self):
        tokens = tokenize("42 /* block */ 10")
        assert [t.lexeme for t in tokens[:-1]] == ["42", "10"]

    def test_block_comment_spanning_lines_ends_line(self):
        tokens = tokenize("a /* one\ntwo */ b")
        assert tokens[0].end_of_line
        assert tokens[1].lexeme == "b"
        assert tokens[1].line == 2


class TestLexerErrors:
    """Lexical errors."""

    def test_unterminated_string_points_at_quote(self):
        with pytest.raises(LexError) as info:
            tokenize('let s = "abc')
        assert info.value.message == "Unterminated string"
        assert info.value.line == 1
        assert info.value.column == 9

    def test_unterminated_multi_line_string(self):
        with pytest.raises(LexError, match="Unterminated string"):
            tokenize('"""abc')

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError, match="Unterminated block comment"):
            tokenize("x /* never closed")

    def test_invalid_character_literal(self):
        with pytest.raises(LexError, match="Invalid character literal"):
            tokenize("'ab'")

    def test_unexpected_character(self):
        with pytest.raises(LexError) as info:
            tokenize("let a = 1\nlet b = ^")
        assert "Unexpected character" in info.value.message
        assert (info.value.line, info.value.column) == (2, 9)

    def test_error_message_includes_location(self):
        with pytest.raises(LexError) as info:
            tokenize('"abc')
        assert str(info.value) == "line 1:1: Unterminated string"


# =============================================================================
# Source Text Tests
# =============================================================================

class TestSourceText:
    """Offset and line bookkeeping."""

    def test_location(self):
        text = SourceText("ab\ncd")
        assert text.location(0) == (1, 1)
        assert text.location(2) == (1, 3)
        assert text.location(3) == (2, 1)
        assert text.location(4) == (2, 2)

    def test_location_counts_code_points(self):
        text = SourceText("é😀\nx")
        assert len(text) == 4
        assert text.location(3) == (2, 1)

    def test_char_at_out_of_range(self):
        text = SourceText("ab")
        assert text.char_at(-1) == "\0"
        assert text.char_at(2) == "\0"
        assert text.char_at(1) == "b"

    def test_slice(self):
        text = SourceText("hello")
        assert text.slice(1, 3) == "el"
        assert text.slice(3, 1) == ""
        assert text.slice(0, 10) == ""

    def test_lines(self):
        text = SourceText("one\r\ntwo\nthree")
        assert text.line_count == 3
        assert text.line_text(1) == "one"
        assert text.line_text(3) == "three"
        assert text.line_text(4) == ""

    def test_empty(self):
        text = SourceText("")
        assert len(text) == 0
        assert text.location(0) == (1, 1)
