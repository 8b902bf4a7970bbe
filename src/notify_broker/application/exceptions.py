from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthenticationError(AppError):
    """Credential present but malformed or rejected; fatal to the handshake."""


class InvalidOperation(AppError):
    """Request rejected; the connection stays open."""


class ValidationError(AppError):
    pass


class DeliveryDropped(AppError):
    """A delivery channel refused a message (full or closed)."""


class TransportFailure(AppError):
    """Writing to a live connection failed."""
