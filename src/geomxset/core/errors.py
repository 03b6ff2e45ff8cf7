"""
Exception types raised by the annotated-matrix store and its loaders.

Both subclass a builtin so callers that already catch ``ValueError`` or
``KeyError`` keep working.
"""

from __future__ import annotations

__all__ = ['SchemaMismatchError', 'NotFoundError']


class SchemaMismatchError(ValueError):
    """
    Matrix and annotation key sets (or shapes) disagree.

    Raised at construction/load time; the store is never built from
    inconsistent inputs.
    """


class NotFoundError(KeyError):
    """A named matrix or annotation field is not present in the store."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ''
