"""
Buddy Source Text

Character-offset view over the source used by the lexer: bounds-checked
access and offset to line/column mapping.
"""

from typing import Tuple

import numpy as np


class SourceText:
    """Source code addressed by Unicode scalar offset."""
    
    def __init__(self, text: str):
        self.text = text
        self.length = len(text)
        
        # One uint32 per code point; line starts sit just after each '\n'.
        if text:
            codepoints = np.frombuffer(text.encode('utf-32-le', 'surrogatepass'), dtype=np.uint32)
        else:
            codepoints = np.zeros(0, dtype=np.uint32)
        newlines = np.flatnonzero(codepoints == ord('\n')) + 1
        self.line_starts = np.concatenate(([0], newlines)).astype(np.int64)
    
    def __len__(self) -> int:
        return self.length
    
    def char_at(self, index: int) -> str:
        """Return the character at index, or '\\0' when out of range."""
        if index < 0 or index >= self.length:
            return '\0'
        return self.text[index]
    
    def slice(self, start: int, end: int) -> str:
        """Return text[start:end], or '' for an invalid range."""
        if start < 0 or end < start or end > self.length:
            return ''
        return self.text[start:end]
    
    def location(self, offset: int) -> Tuple[int, int]:
        """Map a character offset to a 1-based (line, column) pair."""
        line_index = int(np.searchsorted(self.line_starts, offset, side='right')) - 1
        line_index = max(line_index, 0)
        return line_index + 1, offset - int(self.line_starts[line_index]) + 1
    
    @property
    def line_count(self) -> int:
        return len(self.line_starts)
    
    def line_text(self, line: int) -> str:
        """Return the text of a 1-based line without its newline."""
        if line < 1 or line > self.line_count:
            return ''
        start = int(self.line_starts[line - 1])
        if line < self.line_count:
            end = int(self.line_starts[line]) - 1
        else:
            end = self.length
        return self.text[start:end].rstrip('\r')
