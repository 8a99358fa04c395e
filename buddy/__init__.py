"""
Buddy - Swift-flavored scripting that compiles to JavaScript

Buddy reads a Swift-like language (structs, classes, enums, protocols,
optionals, closures) and emits equivalent JavaScript or TypeScript.

Example:
    import buddy

    ctx = buddy.Context()
    script = ctx.compile('''
        func greet(name: String) -> String {
            return "Hello, " + name + "!"
        }
        print(greet(name: "world"))
    ''')
    print(ctx.interpret(script))  # Hello, world!
"""

from .api.context import Context, Script, create_context, run
from .compiler import compile_source, compile_file
from .compiler.errors import BuddyError, CompileError, LexError

__version__ = "0.1.0"
__author__ = "Buddy Team"

__all__ = [
    # Main API
    'Context',
    'Script',
    'create_context',
    'run',

    # Compiler
    'compile_source',
    'compile_file',

    # Errors
    'BuddyError',
    'CompileError',
    'LexError',
]


def version() -> str:
    """Get Buddy version string."""
    return __version__
