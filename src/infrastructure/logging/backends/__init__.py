"""
Logging Backends

- ConsoleBackend / ColorConsoleBackend: stdlib logging bridge
- FileBackend: buffered async file logging with rotation
"""

from .console import ConsoleBackend, ColorConsoleBackend
from .file import FileBackend

__all__ = [
    'ConsoleBackend',
    'ColorConsoleBackend',
    'FileBackend',
]
