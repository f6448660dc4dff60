"""Custom exceptions for the A2A client."""

from typing import Any

from a2a_dispatch.utils.errors import ErrorKind


class A2AClientError(Exception):
    """Base exception for A2A Client errors."""

    kind: ErrorKind = ErrorKind.network_error


class A2AClientHTTPError(A2AClientError):
    """Client exception for network failures and non-success responses."""

    kind = ErrorKind.network_error

    def __init__(
        self, status_code: int, message: str, payload: Any | None = None
    ):
        """Initializes the A2AClientHTTPError.

        Args:
            status_code: The HTTP status code of the response, or 503 when
                the peer could not be reached.
            message: A descriptive error message.
            payload: The error body returned by the peer, if any.
        """
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f'HTTP Error {status_code}: {message}')


class A2AClientJSONError(A2AClientError):
    """Client exception for JSON errors during response parsing or validation."""

    kind = ErrorKind.parse_error

    def __init__(self, message: str):
        """Initializes the A2AClientJSONError.

        Args:
            message: A descriptive error message.
        """
        self.message = message
        super().__init__(f'JSON Error: {message}')
