"""Numeric process exit codes used by the ``falconkit`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~falconkit.exceptions.FalconError` subclass.
Shell scripts wrapping the CLI can inspect the exit code to determine the
failure class without parsing stderr.

Example::

    $ falconkit devices servers
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token endpoint rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""The configuration (base URL, client ID, client secret) is invalid."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned an unexpected non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_PARSE_ERROR = 7
"""A response body could not be parsed into the expected envelope."""
