"""Errors raised by the client side of the submission workflow."""

from typing import Any, Optional


class FlintClientError(Exception):
    """Base class for everything the client raises."""


class TransportError(FlintClientError):
    """The request never got a response (DNS, connection reset, timeout)."""


class ApiError(FlintClientError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MfaRequired(FlintClientError):
    """
    409 with `step: "mfa"`: the bank wants the user to re-authenticate.

    Deliberately not an ApiError, so generic failure handling never
    swallows it.
    """

    def __init__(self, connect_token: Optional[str], message: str = "Additional authentication required"):
        super().__init__(message)
        self.connect_token = connect_token
        self.status_code = 409


class AmountValidationError(FlintClientError):
    """Input rejected locally, before any request was made."""
