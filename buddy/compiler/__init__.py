"""
Buddy Compiler Package

Compiles Buddy source code (a Swift-flavored subset) to JavaScript or
TypeScript: lexer -> parser -> resolver -> transpiler.
"""

import logging
from pathlib import Path
from typing import List, Union

from .tokens import Token, TokenType
from .lexer import Lexer, tokenize
from .ast import *
from .parser import Parser, parse
from .resolver import Resolver, resolve
from .transpiler import Transpiler, transpile
from .source import SourceText
from .errors import (BuddyError, LexError, ParseError, ResolveError,
                     TranspileError, CompileError)

logger = logging.getLogger(__name__)

__version__ = "0.1.0"
__all__ = [
    "Token",
    "TokenType",
    "Lexer",
    "Parser",
    "Resolver",
    "Transpiler",
    "SourceText",
    "tokenize",
    "scan",
    "parse",
    "resolve",
    "transpile",
    "compile_source",
    "compile_file",
    "BuddyError",
    "LexError",
    "ParseError",
    "ResolveError",
    "TranspileError",
    "CompileError",
]


def scan(source: str, filename: str = None) -> List[Token]:
    """Tokenize source, tagging a lexical error with the filename."""
    try:
        return tokenize(source)
    except LexError as e:
        if e.filename is None:
            e.filename = filename
        raise


def compile_program(source: str, filename: str = None, resolve_names: bool = True,
                    tokens: List[Token] = None) -> Program:
    """
    Run the front end (lexer, parser and optionally resolver).

    Raises:
        LexError: On a lexical error
        CompileError: If the parser or resolver reported errors
    """
    if tokens is None:
        tokens = scan(source, filename)
    program, errors = parse(tokens)
    if errors:
        raise CompileError(errors, filename)

    if resolve_names:
        program, errors = resolve(program)
        if errors:
            raise CompileError(errors, filename)

    return program


def compile_source(source: str, emit_ts: bool = False, include_runtime: bool = True,
                   resolve: bool = True, filename: str = None) -> str:
    """
    Compile Buddy source code to JavaScript.

    Args:
        source: Buddy source code string
        emit_ts: Emit TypeScript instead of plain JavaScript
        include_runtime: Prepend the runtime support preamble
        resolve: Run the resolver; otherwise capitalized callees are
            treated as constructors
        filename: Name used in error messages

    Returns:
        Output source text

    Raises:
        LexError: On a lexical error
        CompileError: If compilation fails
    """
    program = compile_program(source, filename, resolve)
    return transpile(program, emit_ts=emit_ts, include_runtime=include_runtime,
                     capitalized_constructors=not resolve)


def read_sources(*paths: Union[str, Path]) -> str:
    """Read source files and join them with newlines."""
    return "\n".join(Path(p).read_text(encoding="utf-8") for p in paths)


def compile_file(*paths: Union[str, Path], **options) -> str:
    """
    Compile one or more Buddy source files as a single program.

    Args:
        paths: Source files, concatenated in order
        options: Same keyword options as compile_source

    Returns:
        Output source text
    """
    if not paths:
        raise ValueError("compile_file() needs at least one path")
    options.setdefault("filename", str(paths[0]) if len(paths) == 1 else None)
    logger.debug("compiling %d file(s)", len(paths))
    return compile_source(read_sources(*paths), **options)
