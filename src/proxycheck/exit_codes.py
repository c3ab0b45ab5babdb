"""Numeric process exit codes for the ``proxycheck`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~proxycheck.exceptions.ProxyCheckError` subclass.
Shell scripts can inspect the exit code to tell a rejected address from an
unreachable service without parsing stderr.

Example::

    $ proxycheck query 999.1.1.1
    $ echo $?
    2   # EXIT_INVALID_USAGE -- the address could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or malformed addresses."""

EXIT_SERVER_ERROR = 5
"""The lookup service answered with an HTTP error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RESPONSE_FORMAT_ERROR = 7
"""The lookup service answered with a body that could not be decoded."""
