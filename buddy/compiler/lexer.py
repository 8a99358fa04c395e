"""
Buddy Lexer

Tokenizes Buddy source code into a stream of tokens.
"""

import logging
from dataclasses import replace
from typing import List

from .tokens import Token, TokenType, KEYWORDS
from .source import SourceText
from .errors import LexError

logger = logging.getLogger(__name__)

WHITESPACE = ' \t\r\n'


class Lexer:
    """Lexical analyzer for Buddy source code."""

    def __init__(self, source: str):
        """
        Initialize the lexer.

        Args:
            source: Buddy source code to tokenize
        """
        self.source = SourceText(source)
        self.tokens: List[Token] = []
        self.start = 0      # Start of current token
        self.current = 0    # Current position

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source code.

        Returns:
            List of tokens, always ending with an EOF token

        Raises:
            LexError: On an unterminated literal or comment, or an
                unexpected character
        """
        while not self.is_at_end():
            self.start = self.current
            self.scan_token()

        line, column = self.source.location(self.current)
        self.tokens.append(Token(TokenType.EOF, "", None, line, column, True))
        logger.debug("tokenized %d characters into %d tokens",
                     len(self.source), len(self.tokens))
        return self.tokens

    def scan_token(self) -> None:
        """Scan the next token."""
        c = self.advance()

        # Skip whitespace
        if c in ' \t\r':
            return

        # Newline ends the line for the last emitted token
        if c == '\n':
            self.mark_end_of_line()
            return

        # Comments
        if c == '/':
            if self.match('/'):
                # Line comment
                while self.peek() != '\n' and not self.is_at_end():
                    self.advance()
                return
            elif self.match('*'):
                self.block_comment()
                return
            else:
                self.add_token(TokenType.SLASH)
                return

        # Single-character tokens
        if c == '(':
            self.add_token(TokenType.LEFT_PAREN)
        elif c == ')':
            self.add_token(TokenType.RIGHT_PAREN)
        elif c == '{':
            self.add_token(TokenType.LEFT_BRACE)
        elif c == '}':
            self.add_token(TokenType.RIGHT_BRACE)
        elif c == '[':
            self.add_token(TokenType.LEFT_BRACKET)
        elif c == ']':
            self.add_token(TokenType.RIGHT_BRACKET)
        elif c == ',':
            self.add_token(TokenType.COMMA)
        elif c == ':':
            self.add_token(TokenType.COLON)
        elif c == ';':
            self.add_token(TokenType.SEMICOLON)
        elif c == '*':
            self.add_token(TokenType.STAR)
        elif c == '%':
            self.add_token(TokenType.PERCENT)
        elif c == '#':
            self.add_token(TokenType.HASH)
        elif c == '@':
            self.add_token(TokenType.AT)
        elif c == '\\':
            self.add_token(TokenType.BACKSLASH)
        elif c == '~':
            self.add_token(TokenType.TILDE)
        elif c == '$':
            self.add_token(TokenType.DOLLAR)

        # Dots and ranges
        elif c == '.':
            self.dot()

        # Operators with possible assignment
        elif c == '+':
            self.add_token(TokenType.PLUS_EQUAL if self.match('=') else TokenType.PLUS)
        elif c == '-':
            if self.match('='):
                self.add_token(TokenType.MINUS_EQUAL)
            elif self.match('>'):
                self.add_token(TokenType.RIGHT_ARROW)
            else:
                self.add_token(TokenType.MINUS)
        elif c == '&':
            self.add_token(TokenType.AMPERSAND_AMPERSAND if self.match('&') else TokenType.AMPERSAND)
        elif c == '|':
            self.add_token(TokenType.PIPE_PIPE if self.match('|') else TokenType.PIPE)

        # Comparison operators
        elif c == '=':
            self.add_token(TokenType.EQUAL_EQUAL if self.match('=') else TokenType.EQUAL)
        elif c == '<':
            self.add_token(TokenType.LESS_EQUAL if self.match('=') else TokenType.LESS)
        elif c == '>':
            self.add_token(TokenType.GREATER_EQUAL if self.match('=') else TokenType.GREATER)

        # Attached or detached '!' and '?'
        elif c == '!':
            if self.match('='):
                self.add_token(TokenType.BANG_EQUAL)
            elif self.follows_whitespace():
                self.add_token(TokenType.BANG)
            else:
                self.add_token(TokenType.ATTACHED_BANG)
        elif c == '?':
            if self.match('?'):
                self.add_token(TokenType.QUESTION_QUESTION)
            elif self.follows_whitespace():
                self.add_token(TokenType.QUESTION)
            else:
                self.add_token(TokenType.ATTACHED_QUESTION)

        # String and character literals
        elif c == '"':
            if self.peek() == '"' and self.peek_next() == '"':
                self.advance()
                self.advance()
                self.multi_line_string()
            else:
                self.string()
        elif c == "'":
            self.character()

        # Numbers
        elif self.is_digit(c):
            self.number()

        # Identifiers and keywords
        elif self.is_alpha(c):
            self.identifier()

        else:
            self.error(f"Unexpected character: {c!r}", self.start)

    def advance(self) -> str:
        """Consume and return the current character."""
        c = self.source.char_at(self.current)
        self.current += 1
        return c

    def peek(self) -> str:
        """Return the current character without consuming it."""
        return self.source.char_at(self.current)

    def peek_next(self) -> str:
        """Return the next character without consuming it."""
        return self.source.char_at(self.current + 1)

    def peek_next_next(self) -> str:
        return self.source.char_at(self.current + 2)

    def peek_previous(self) -> str:
        """Return the character before the current token, or '\\0' at the start."""
        return self.source.char_at(self.start - 1)

    def match(self, expected: str) -> bool:
        """Consume the current character if it matches expected."""
        if self.is_at_end():
            return False
        if self.source.char_at(self.current) != expected:
            return False
        self.current += 1
        return True

    def is_at_end(self) -> bool:
        """Check if we've reached the end of the source."""
        return self.current >= len(self.source)

    def follows_whitespace(self) -> bool:
        """True when the current token is preceded by whitespace or starts the source."""
        return self.start == 0 or self.peek_previous() in WHITESPACE

    def add_token(self, type: TokenType, value=None) -> None:
        """Add a token to the token list."""
        lexeme = self.source.slice(self.start, self.current)
        line, column = self.source.location(self.start)
        self.tokens.append(Token(type, lexeme, lexeme if value is None else value,
                                 line, column))

    def mark_end_of_line(self) -> None:
        """Flag the most recent token as the last one on its line."""
        if self.tokens and not self.tokens[-1].end_of_line:
            self.tokens[-1] = replace(self.tokens[-1], end_of_line=True)

    def error(self, message: str, offset: int) -> None:
        line, column = self.source.location(offset)
        raise LexError(message, line, column)

    def dot(self) -> None:
        """Scan '.', '...' or '..<'."""
        if self.peek() == '.':
            if self.peek_next() == '.':
                self.advance()
                self.advance()
                self.add_token(TokenType.DOT_DOT_DOT)
                return
            if self.peek_next() == '<':
                self.advance()
                self.advance()
                self.add_token(TokenType.DOT_DOT_LESS)
                return
            # '..' is two separate dots
            self.add_token(TokenType.DOT)
            self.start = self.current
            self.advance()
        self.add_token(TokenType.DOT)

    def string(self) -> None:
        """Scan a double-quoted string literal."""
        while self.peek() != '"' and not self.is_at_end():
            if self.peek() == '\\' and self.peek_next() == '"':
                self.advance()  # Keep the escaped quote inside the literal
            self.advance()

        if self.is_at_end():
            self.error("Unterminated string", self.start)

        # Consume closing quote
        self.advance()

        value = self.source.slice(self.start + 1, self.current - 1)
        self.add_token(TokenType.STRING, value)

    def multi_line_string(self) -> None:
        """Scan a triple-quoted string literal."""
        while not self.is_at_end():
            if self.peek() == '\\' and self.peek_next() == '"':
                self.advance()
                self.advance()
                continue
            if self.peek() == '"' and self.peek_next() == '"' and self.peek_next_next() == '"':
                break
            self.advance()

        if self.is_at_end():
            self.error("Unterminated string", self.start)

        # Consume closing quotes
        self.advance()
        self.advance()
        self.advance()

        value = self.source.slice(self.start + 3, self.current - 3)
        self.add_token(TokenType.STRING_MULTILINE, value)

    def character(self) -> None:
        """Scan a character literal holding exactly one character."""
        if self.is_at_end() or self.peek() == '\n':
            self.error("Unterminated character literal", self.start)

        self.advance()
        if self.peek() != "'":
            self.error("Invalid character literal", self.start)
        self.advance()

        value = self.source.slice(self.start + 1, self.current - 1)
        self.add_token(TokenType.CHARACTER, value)

    def number(self) -> None:
        """Scan an integer or floating-point literal."""
        while self.is_digit(self.peek()):
            self.advance()

        # Fractional part
        if self.peek() == '.' and self.is_digit(self.peek_next()):
            self.advance()  # Consume '.'
            while self.is_digit(self.peek()):
                self.advance()
            self.add_token(TokenType.DOUBLE)
            return

        self.add_token(TokenType.INT)

    def identifier(self) -> None:
        """Scan an identifier or keyword."""
        while self.is_alpha_numeric(self.peek()):
            self.advance()

        text = self.source.slice(self.start, self.current)
        self.add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    def block_comment(self) -> None:
        """Skip a non-nested block comment /* ... */."""
        while not self.is_at_end():
            if self.peek() == '*' and self.peek_next() == '/':
                self.advance()
                self.advance()
                return
            if self.peek() == '\n':
                self.mark_end_of_line()
            self.advance()

        self.error("Unterminated block comment", self.start)

    @staticmethod
    def is_digit(c: str) -> bool:
        return '0' <= c <= '9'

    @staticmethod
    def is_alpha(c: str) -> bool:
        return ('a' <= c <= 'z') or ('A' <= c <= 'Z') or c == '_'

    @classmethod
    def is_alpha_numeric(cls, c: str) -> bool:
        return cls.is_alpha(c) or cls.is_digit(c)


def tokenize(source: str) -> List[Token]:
    """Tokenize source code; raises LexError on invalid input."""
    return Lexer(source).tokenize()
