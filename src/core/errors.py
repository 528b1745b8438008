"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations

from typing import Optional


class LgtmError(Exception):
    """Base class for all lgtm errors."""


class ConfigError(LgtmError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"configuration error [{field}]: {message}")
        self.field = field
        self.message = message


class AuthenticationError(LgtmError):
    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service} authentication failed: {message}")
        self.service = service
        self.message = message


class InvalidPatternError(LgtmError):
    """Raised when the message pattern does not compile."""


class ValidationError(LgtmError):
    """The target pull request can never be approved as requested."""


class NotFoundError(ValidationError):
    pass


class PermissionDeniedError(ValidationError):
    pass


class InvalidStateError(ValidationError):
    pass


class CodeHostError(LgtmError):
    """Failure surfaced by the code-host capability.

    ``status`` carries the HTTP status code when the remote call produced one;
    it is None for network-level failures.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
