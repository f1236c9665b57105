"""Exceptions raised while validating a module."""

from __future__ import annotations


class ValidationError(Exception):
    """Raised when a module, a function body or an expression is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class StackError(ValidationError):
    """Raised by a bounded stack on overflow, underflow or a bad position."""

    def __str__(self) -> str:
        return f"Stack: {self.message}"