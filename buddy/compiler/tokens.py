"""
Buddy Token Definitions

Defines all token types and the Token class for lexical analysis.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any


class TokenType(Enum):
    """All token types in Buddy."""
    
    # Literals
    INT = auto()
    DOUBLE = auto()
    STRING = auto()
    STRING_MULTILINE = auto()
    CHARACTER = auto()
    IDENTIFIER = auto()
    
    # Keywords
    IF = auto()
    ELSE = auto()
    GUARD = auto()
    SWITCH = auto()
    CASE = auto()
    DEFAULT = auto()
    FOR = auto()
    IN = auto()
    REPEAT = auto()
    WHILE = auto()
    VAR = auto()
    LET = auto()
    FUNC = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    THROWS = auto()
    THROW = auto()
    DO = auto()
    TRY = auto()
    CATCH = auto()
    STRUCT = auto()
    ENUM = auto()
    INDIRECT = auto()
    PROTOCOL = auto()
    EXTENSION = auto()
    NIL = auto()
    TRUE = auto()
    FALSE = auto()
    CLASS = auto()
    INIT = auto()
    DEINIT = auto()
    STATIC = auto()
    FINAL = auto()
    PRIVATE = auto()
    PUBLIC = auto()
    INTERNAL = auto()
    TYPEALIAS = auto()
    SELF = auto()
    AS = auto()
    IS = auto()
    GET = auto()
    SET = auto()
    
    # Operators
    PLUS = auto()              # +
    MINUS = auto()             # -
    STAR = auto()              # *
    SLASH = auto()             # /
    PERCENT = auto()           # %
    BANG = auto()              # !   (detached: logical not)
    ATTACHED_BANG = auto()     # x!  (force unwrap)
    QUESTION = auto()          # ?   (detached: ternary)
    ATTACHED_QUESTION = auto() # x?  (optional chaining / optional type)
    QUESTION_QUESTION = auto() # ??
    AMPERSAND = auto()         # &
    AMPERSAND_AMPERSAND = auto() # &&
    PIPE = auto()              # |
    PIPE_PIPE = auto()         # ||
    RIGHT_ARROW = auto()       # ->
    
    # Comparison
    EQUAL_EQUAL = auto()       # ==
    BANG_EQUAL = auto()        # !=
    LESS = auto()              # <
    LESS_EQUAL = auto()        # <=
    GREATER = auto()           # >
    GREATER_EQUAL = auto()     # >=
    
    # Assignment
    EQUAL = auto()             # =
    PLUS_EQUAL = auto()        # +=
    MINUS_EQUAL = auto()       # -=
    
    # Ranges
    DOT_DOT_DOT = auto()       # ...
    DOT_DOT_LESS = auto()      # ..<
    
    # Delimiters
    LEFT_PAREN = auto()        # (
    RIGHT_PAREN = auto()       # )
    LEFT_BRACE = auto()        # {
    RIGHT_BRACE = auto()       # }
    LEFT_BRACKET = auto()      # [
    RIGHT_BRACKET = auto()     # ]
    COMMA = auto()             # ,
    DOT = auto()               # .
    COLON = auto()             # :
    SEMICOLON = auto()         # ;
    
    # Reserved punctuation
    HASH = auto()              # #
    AT = auto()                # @
    BACKSLASH = auto()         # \
    TILDE = auto()             # ~
    DOLLAR = auto()            # $
    
    # Special
    EOF = auto()


# Keyword mapping
KEYWORDS = {
    'if': TokenType.IF,
    'else': TokenType.ELSE,
    'guard': TokenType.GUARD,
    'switch': TokenType.SWITCH,
    'case': TokenType.CASE,
    'default': TokenType.DEFAULT,
    'for': TokenType.FOR,
    'in': TokenType.IN,
    'repeat': TokenType.REPEAT,
    'while': TokenType.WHILE,
    'var': TokenType.VAR,
    'let': TokenType.LET,
    'func': TokenType.FUNC,
    'return': TokenType.RETURN,
    'break': TokenType.BREAK,
    'continue': TokenType.CONTINUE,
    'throws': TokenType.THROWS,
    'throw': TokenType.THROW,
    'do': TokenType.DO,
    'try': TokenType.TRY,
    'catch': TokenType.CATCH,
    'struct': TokenType.STRUCT,
    'enum': TokenType.ENUM,
    'indirect': TokenType.INDIRECT,
    'protocol': TokenType.PROTOCOL,
    'extension': TokenType.EXTENSION,
    'nil': TokenType.NIL,
    'true': TokenType.TRUE,
    'false': TokenType.FALSE,
    'class': TokenType.CLASS,
    'init': TokenType.INIT,
    'deinit': TokenType.DEINIT,
    'static': TokenType.STATIC,
    'final': TokenType.FINAL,
    'private': TokenType.PRIVATE,
    'public': TokenType.PUBLIC,
    'internal': TokenType.INTERNAL,
    'typealias': TokenType.TYPEALIAS,
    'self': TokenType.SELF,
    'as': TokenType.AS,
    'is': TokenType.IS,
    'get': TokenType.GET,
    'set': TokenType.SET,
}


# Tokens that may start a statement or declaration; the parser resumes here
# after a syntax error.
SYNC_TOKENS = frozenset({
    TokenType.FUNC, TokenType.VAR, TokenType.LET, TokenType.FOR,
    TokenType.IF, TokenType.WHILE, TokenType.RETURN, TokenType.STRUCT,
    TokenType.ENUM, TokenType.PROTOCOL, TokenType.TYPEALIAS,
    TokenType.EXTENSION, TokenType.GUARD, TokenType.SWITCH,
})

MODIFIER_TOKENS = frozenset({
    TokenType.PRIVATE, TokenType.PUBLIC, TokenType.INTERNAL,
    TokenType.FINAL, TokenType.STATIC,
})


@dataclass(frozen=True)
class Token:
    """Represents a single token from the source code."""
    
    type: TokenType
    lexeme: str
    value: Any
    line: int
    column: int
    end_of_line: bool = False
    
    def __repr__(self) -> str:
        if self.value is not None and self.value != self.lexeme:
            return f"Token({self.type.name}, {self.lexeme!r}, {self.value!r}, line={self.line})"
        return f"Token({self.type.name}, {self.lexeme!r}, line={self.line})"
    
    def is_keyword(self) -> bool:
        """Check if this token is a keyword."""
        return self.type in KEYWORDS.values()
    
    def is_literal(self) -> bool:
        """Check if this token is a literal value."""
        return self.type in (TokenType.INT, TokenType.DOUBLE, TokenType.STRING,
                            TokenType.STRING_MULTILINE, TokenType.CHARACTER,
                            TokenType.TRUE, TokenType.FALSE, TokenType.NIL)
    
    def is_assignment(self) -> bool:
        """Check if this token is an assignment operator."""
        return self.type in (TokenType.EQUAL, TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL)
