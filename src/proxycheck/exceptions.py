"""Exception hierarchy for proxycheck.

All exceptions inherit from :class:`ProxyCheckError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`proxycheck.exit_codes`.
The CLI entry point catches ``ProxyCheckError`` and exits with the
appropriate code.

Remote failures share the :class:`LookupFailedError` base so library callers
can catch every "the lookup did not complete" case at once, while still
telling a malformed response apart from a transport or unknown failure.

Subclass hierarchy::

    ProxyCheckError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- ConfigError                (exit 1)
    +-- LookupFailedError          (exit 1)
        +-- ConnectionError_       (exit 6)
        +-- ServerError            (exit 5)
        +-- ResponseFormatError    (exit 7)
        +-- UnexpectedLookupError  (exit 1)
"""

from proxycheck.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RESPONSE_FORMAT_ERROR,
    EXIT_SERVER_ERROR,
)


class ProxyCheckError(Exception):
    """Base exception for all proxycheck errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ProxyCheckError):
    """Raised for an empty address batch or an address that does not parse."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ProxyCheckError):
    """Raised for configuration problems (invalid JSON, bad credential sources, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class LookupFailedError(ProxyCheckError):
    """Base for failures of the remote lookup; the underlying cause is chained."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionError_(LookupFailedError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ServerError(LookupFailedError):
    """Raised when the service answers with an HTTP error status."""

    exit_code = EXIT_SERVER_ERROR


class ResponseFormatError(LookupFailedError):
    """Raised when the response body is not the shape the decoder expects."""

    exit_code = EXIT_RESPONSE_FORMAT_ERROR


class UnexpectedLookupError(LookupFailedError):
    """Raised when a lookup or decoder collaborator fails in an unanticipated way."""

    exit_code = EXIT_GENERIC_FAILURE
