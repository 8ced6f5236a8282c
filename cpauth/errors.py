"""Exceptions raised by the authentication protocol."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for recoverable protocol failures."""


class UnknownUser(AuthError):
    def __init__(self, user_name: str) -> None:
        super().__init__(f"User '{user_name}' not found")
        self.user_name = user_name


class UnknownSession(AuthError):
    def __init__(self, auth_id: str) -> None:
        super().__init__(f"Auth id '{auth_id}' not found")
        self.auth_id = auth_id


class VerificationFailed(AuthError):
    def __init__(self, message: str = "Proof verification failed") -> None:
        super().__init__(message)


class MalformedInput(AuthError, ValueError):
    """A field could not be decoded as an unsigned big-endian integer."""


__all__ = [
    "AuthError",
    "MalformedInput",
    "UnknownSession",
    "UnknownUser",
    "VerificationFailed",
]
