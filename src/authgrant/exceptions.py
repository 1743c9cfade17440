"""Exception hierarchy for authgrant.

All exceptions inherit from :class:`AuthgrantError`, so callers that do not
care about the failure class can catch a single type.

Subclass hierarchy::

    AuthgrantError
    +-- ConfigError     (missing or invalid provider configuration)
    +-- ExchangeError   (token endpoint rejected or garbled the exchange)
    +-- EncodingError   (a value could not be form-encoded; internal)
"""

from __future__ import annotations

from typing import Optional


class AuthgrantError(Exception):
    """Base exception for all authgrant errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(AuthgrantError):
    """Raised when a client is constructed with missing or invalid configuration."""


class ExchangeError(AuthgrantError):
    """Raised when a token exchange fails.

    Covers non-2xx responses, transport failures, and bodies that cannot be
    parsed into a key/value mapping. The OAuth2 error vocabulary
    (``invalid_grant``, ``invalid_client``, ...) is passed through untouched
    in :attr:`error` so that callers can branch on it.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the token endpoint response, if one
            was received.
        body: Raw response body text, if one was received.
        error: The ``error`` field of an OAuth2 error response.
        error_description: The ``error_description`` field, if present.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.error = error
        self.error_description = error_description


class EncodingError(AuthgrantError):
    """Raised when a value cannot be UTF-8 form-encoded.

    Only malformed text (e.g. lone surrogates) can trigger this. It signals
    a programming error, not a condition callers are expected to recover from.
    """
