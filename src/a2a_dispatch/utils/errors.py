"""Error taxonomy shared by the dispatch engine and the A2A server."""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of failures that can occur while handling a task."""

    validation_error = 'validation_error'
    network_error = 'network_error'
    parse_error = 'parse_error'
    missing_parameters = 'missing_parameters'
    self_reference = 'self_reference'
    capability_not_found = 'capability_not_found'
    capability_error = 'capability_error'
    reasoning_engine_error = 'reasoning_engine_error'
    store_error = 'store_error'


class A2ADispatchError(Exception):
    """Base exception for dispatch engine errors."""

    kind: ErrorKind = ErrorKind.capability_error

    def __init__(self, message: str):
        """Initializes the error.

        Args:
            message: A descriptive error message.
        """
        self.message = message
        super().__init__(message)


class TaskValidationError(A2ADispatchError):
    """Raised when an inbound tasks/send request is malformed."""

    kind = ErrorKind.validation_error

    def __init__(
        self,
        message: str = 'Invalid tasks/send request format.',
        task_id: str | None = None,
    ):
        """Initializes the TaskValidationError.

        Args:
            message: A descriptive error message.
            task_id: The task id found in the request, if any.
        """
        self.task_id = task_id
        super().__init__(message)


class InputExtractionError(A2ADispatchError):
    """Raised when no usable text or data part can be found in a message."""

    kind = ErrorKind.validation_error


class ReasoningEngineError(A2ADispatchError):
    """Raised when the reasoning engine fails to produce an output."""

    kind = ErrorKind.reasoning_engine_error


class StoreError(A2ADispatchError):
    """Raised by memory backends when the backing store is unusable."""

    kind = ErrorKind.store_error
