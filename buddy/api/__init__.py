"""
Buddy Python API

Provides the Python interface for compiling Buddy code and running the
generated JavaScript with Node.js.
"""

from .context import Context, Script, create_context, run

__all__ = [
    'Context',
    'Script',
    'create_context',
    'run',
]
