"""Client-side components for interacting with peer A2A agents."""

from a2a_dispatch.client.client import A2ACardResolver, A2AClient
from a2a_dispatch.client.errors import (
    A2AClientError,
    A2AClientHTTPError,
    A2AClientJSONError,
)
from a2a_dispatch.client.helpers import summarize_task


__all__ = [
    'A2ACardResolver',
    'A2AClient',
    'A2AClientError',
    'A2AClientHTTPError',
    'A2AClientJSONError',
    'summarize_task',
]
