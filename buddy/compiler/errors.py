"""
Buddy Compiler Errors

Defines exception classes for compilation errors.
"""

from typing import List, Optional, Sequence


class BuddyError(Exception):
    """Base exception for all Buddy errors."""
    
    def __init__(self, message: str, line: Optional[int] = None, 
                 column: Optional[int] = None, filename: Optional[str] = None):
        self.message = message
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(self._format_message())
    
    def _format_message(self) -> str:
        """Format the error message with location information."""
        parts = []
        
        if self.filename:
            parts.append(self.filename)
        
        if self.line is not None:
            if parts:
                parts.append(f"{self.line}")
            else:
                parts.append(f"line {self.line}")
            
            if self.column is not None:
                parts.append(f"{self.column}")
        
        if parts:
            return f"{':'.join(parts)}: {self.message}"
        return self.message

    def __str__(self) -> str:
        return self._format_message()


class LexError(BuddyError):
    """Raised for unrecoverable errors while tokenizing."""
    pass


class ParseError(BuddyError):
    """A syntax error collected by the parser."""
    
    def __init__(self, message: str, token=None, filename: Optional[str] = None):
        self.token = token
        line = token.line if token is not None else None
        column = token.column if token is not None else None
        super().__init__(message, line, column, filename)


class ResolveError(BuddyError):
    """A scoping error collected by the resolver."""
    pass


class TranspileError(BuddyError):
    """Raised when the transpiler meets a node it cannot render."""
    pass


class CompileError(BuddyError):
    """Raised by the high level API when any stage reported errors."""
    
    def __init__(self, errors: Sequence[BuddyError], filename: Optional[str] = None):
        self.errors: List[BuddyError] = list(errors)
        for error in self.errors:
            if filename and error.filename is None:
                error.filename = filename
        first = self.errors[0] if self.errors else None
        super().__init__(
            f"compilation failed with {len(self.errors)} error(s)",
            first.line if first else None,
            first.column if first else None,
            filename,
        )
    
    def __str__(self) -> str:
        return "\n".join(error._format_message() for error in self.errors) or self.message
