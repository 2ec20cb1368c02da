from __future__ import annotations


class FormError(Exception):
    """Base class of every error the form service raises on purpose."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FormError):
    """Malformed or missing input; the caller has to correct it and retry."""

    status_code = 400

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class ConflictError(FormError):
    """Illegal lifecycle transition or a duplicate answer in one submission."""

    status_code = 409


class NotFoundError(FormError):
    status_code = 404


class TransientError(FormError):
    """I/O or network failure below the service; surfaced unchanged."""

    status_code = 503
