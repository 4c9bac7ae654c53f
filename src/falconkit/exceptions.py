"""Exception hierarchy for falconkit.

All exceptions inherit from :class:`FalconError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`falconkit.exit_codes`.
Resource services catch ``FalconError`` and turn it into a failed
:class:`~falconkit.models.RequestResult`; the CLI entry point in
:func:`falconkit.app.main` exits with the appropriate code.

Subclass hierarchy::

    FalconError (exit 1)
    +-- ConfigError             (exit 2)
    +-- AuthError               (exit 3)
    +-- TransportError          (exit 6)
    |   +-- UnauthorizedError   (exit 3)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError         (exit 5)
    |   +-- ConnectionError_    (exit 6)
    +-- ResponseParseError      (exit 7)
    +-- ApiLevelError           (exit 1)
"""

from __future__ import annotations

from typing import Optional

from falconkit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_PARSE_ERROR,
    EXIT_SERVER_ERROR,
)


class FalconError(Exception):
    """Base exception for all falconkit errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    status_code: Optional[int] = None
    body: Optional[str] = None

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(FalconError):
    """Raised for an invalid base URL or empty credentials. Never retried."""

    exit_code = EXIT_CONFIG_ERROR


class AuthError(FalconError):
    """Raised when a bearer token cannot be obtained from the token endpoint.

    Covers an unreachable endpoint after all retries as well as a response
    that carries no ``access_token``.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportError(FalconError):
    """Raised when a resource call fails at the HTTP level.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the failed response, or ``None`` when no
            response was received.
        body: Raw response body, when one was received.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnauthorizedError(TransportError):
    """Raised when the API returns HTTP 401 or 403 for a resource call."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TransportError):
    """Raised for HTTP 5xx and any other unexpected non-2xx status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ResponseParseError(FalconError):
    """Raised when a response body is not valid JSON or not a page envelope."""

    exit_code = EXIT_PARSE_ERROR


class ApiLevelError(FalconError):
    """An ``errors`` array reported inside an otherwise successful response.

    The library never raises this on its own: API-level errors are logged as
    warnings and recorded on :class:`~falconkit.models.RequestResult`.
    Callers that want to treat them as fatal can raise it themselves via
    :meth:`~falconkit.models.RequestResult.raise_for_api_errors`.
    """
