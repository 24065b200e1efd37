"""
Callbatch-specific construction errors.
Errors raised by a wrapped target are never translated into these.
"""

from __future__ import annotations


class NotCallableError(TypeError):
    """
    Raised when the batching target is not callable.
    """

    def __init__(self, message: str = "The first argument should be a function") -> None:
        super().__init__(message)


class InvalidOptionsError(ValueError):
    """
    Raised when batching options fail validation.

    Notes
    -----
    The originating ``pydantic.ValidationError`` is kept as ``__cause__``.
    """
