"""Custom exceptions for core logic."""

from __future__ import annotations


class EmptyInputError(ValueError):
    """Raised when text to tokenize is empty or contains only whitespace."""

    def __init__(self, message: str, *, template_index: int | None = None) -> None:
        super().__init__(message)
        self.template_index = template_index


class RegistrationError(ValueError):
    """Raised when a record shape cannot be registered or learned."""


class CompilationError(ValueError):
    """Raised when a template cannot be compiled against its shape."""

    def __init__(self, message: str, *, template_index: int) -> None:
        super().__init__(message)
        self.template_index = template_index


class MistypedFieldError(CompilationError):
    """Raised when a template placeholder does not name a declared field."""

    def __init__(self, *, template_index: int, placeholder: str) -> None:
        super().__init__(
            f"template#{template_index}: mistyped field {placeholder!r}",
            template_index=template_index,
        )
        self.placeholder = placeholder


class NoKeywordError(CompilationError):
    """Raised when a template references no field at all."""

    def __init__(self, *, template_index: int) -> None:
        super().__init__(
            f"template#{template_index}: need at least one field placeholder",
            template_index=template_index,
        )


class NotLearnedError(RuntimeError):
    """Raised when matching is attempted before templates were learned."""
