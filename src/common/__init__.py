"""
Common shared components.

- ring_buffer: bounded buffer backing the logger's record queue
"""

__all__ = [
    'ring_buffer',
]
