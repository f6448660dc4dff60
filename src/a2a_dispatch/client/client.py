import json
import logging

from typing import Any
from urllib.parse import urljoin

import httpx

from pydantic import ValidationError

from a2a_dispatch.client.errors import (
    A2AClientError,
    A2AClientHTTPError,
    A2AClientJSONError,
)
from a2a_dispatch.client.helpers import summarize_task
from a2a_dispatch.dispatch.result import CapabilityResult
from a2a_dispatch.types import AgentCard, Task
from a2a_dispatch.utils.errors import ErrorKind
from a2a_dispatch.utils.task import new_task_request
from a2a_dispatch.utils.telemetry import SpanKind, trace_class


logger = logging.getLogger(__name__)

AGENT_CARD_PATH = '/.well-known/agent.json'
DEFAULT_TASK_ENDPOINT = '/a2a/message'
DISCOVERY_TIMEOUT = 5.0
SEND_TIMEOUT = 15.0


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


async def _request(
    httpx_client: httpx.AsyncClient,
    method: str,
    url: str,
    timeout: float,
    **kwargs: Any,
) -> Any:
    """Performs one HTTP exchange and returns the decoded JSON body.

    Raises:
        A2AClientHTTPError: On timeouts, connection failures and
            non-success status codes.
        A2AClientJSONError: If the body is not valid JSON.
    """
    try:
        response = await httpx_client.request(
            method, url, timeout=timeout, **kwargs
        )
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        raise A2AClientHTTPError(
            e.response.status_code,
            str(e),
            payload=_error_payload(e.response),
        ) from e
    except httpx.TimeoutException as e:
        raise A2AClientHTTPError(
            504, f'Request timed out after {timeout:g}s'
        ) from e
    except httpx.RequestError as e:
        raise A2AClientHTTPError(
            503, f'Network communication error: {e}'
        ) from e
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError from the response body.
        raise A2AClientJSONError(str(e)) from e


class A2ACardResolver:
    """Agent Card resolver."""

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        base_url: str,
        agent_card_path: str = AGENT_CARD_PATH,
    ):
        """Initializes the A2ACardResolver.

        Args:
            httpx_client: An async HTTP client instance.
            base_url: The base URL of the agent's host.
            agent_card_path: The path to the agent card endpoint, relative to the base URL.
        """
        self.base_url = base_url.rstrip('/')
        self.agent_card_path = agent_card_path.lstrip('/')
        self.httpx_client = httpx_client

    async def get_agent_card(
        self, timeout: float = DISCOVERY_TIMEOUT
    ) -> AgentCard:
        """Fetches and validates the agent card.

        Raises:
            A2AClientHTTPError: If the card cannot be fetched.
            A2AClientJSONError: If the body is not a valid AgentCard.
        """
        data = await _request(
            self.httpx_client,
            'GET',
            f'{self.base_url}/{self.agent_card_path}',
            timeout,
        )
        try:
            return AgentCard.model_validate(data)
        except ValidationError as e:
            raise A2AClientJSONError(f'Invalid agent card: {e}') from e


def is_valid_base_url(target: str) -> bool:
    try:
        url = httpx.URL(target)
    except (httpx.InvalidURL, TypeError):
        return False
    return url.scheme in ('http', 'https') and bool(url.host)


@trace_class(kind=SpanKind.CLIENT)
class A2AClient:
    """Client side of the A2A protocol: discovers peers and sends them tasks.

    `discover` and `send_task` raise `A2AClientError` subclasses;
    `ask_agent` combines them and converts every failure into a
    `CapabilityResult` error so nothing escapes to the caller.
    """

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        discovery_timeout: float = DISCOVERY_TIMEOUT,
        send_timeout: float = SEND_TIMEOUT,
    ):
        """Initializes the A2AClient.

        Args:
            httpx_client: An async HTTP client instance.
            discovery_timeout: Bound in seconds for fetching an agent card.
            send_timeout: Bound in seconds for a tasks/send exchange.
        """
        self.httpx_client = httpx_client
        self.discovery_timeout = discovery_timeout
        self.send_timeout = send_timeout

    async def discover(self, target_base_url: str) -> str:
        """Resolves the messaging endpoint of the agent at `target_base_url`.

        Reads `taskEndpoints.send` from the agent card (falling back to
        `/a2a/message`) and resolves it against the card's `url`, or the
        target itself when the card declares none.
        """
        card = await A2ACardResolver(
            self.httpx_client, target_base_url
        ).get_agent_card(timeout=self.discovery_timeout)
        send_path = (
            card.taskEndpoints.send
            if card.taskEndpoints and card.taskEndpoints.send
            else DEFAULT_TASK_ENDPOINT
        )
        try:
            endpoint = urljoin(card.url or target_base_url, send_path)
        except ValueError as e:
            raise A2AClientJSONError(
                f'Invalid messaging endpoint in agent card: {e}'
            ) from e
        if not is_valid_base_url(endpoint):
            raise A2AClientJSONError(
                f'Invalid messaging endpoint in agent card: {endpoint!r}'
            )
        logger.debug(f'Discovered messaging endpoint {endpoint} for {target_base_url}')
        return endpoint

    async def send_task(self, endpoint: str, task_input: Any) -> Task:
        """Sends `task_input` as a new task and returns the peer's Task."""
        request = new_task_request(task_input)
        logger.debug(
            f'Sending A2A task {request.task.id} to {endpoint}: {task_input}'
        )
        data = await _request(
            self.httpx_client,
            'POST',
            endpoint,
            self.send_timeout,
            json=request.model_dump(mode='json', exclude_none=True),
        )
        try:
            return Task.model_validate(data)
        except ValidationError as e:
            raise A2AClientJSONError(f'Invalid task response: {e}') from e

    async def ask_agent(self, target: str, task_input: Any) -> CapabilityResult:
        """Delegates `task_input` to the agent at `target`.

        Returns:
            A successful result carrying a one-line summary of the peer's
            response, or an error result describing what went wrong.
        """
        if not is_valid_base_url(target):
            return CapabilityResult.failure(
                ErrorKind.validation_error,
                f'Error: Invalid target agent URL format: {target!r}',
            )

        try:
            endpoint = await self.discover(target)
        except A2AClientError as e:
            detail = (
                f'Status {e.status_code}'
                if isinstance(e, A2AClientHTTPError) and e.payload is not None
                else e.message
            )
            logger.error(f'Discovery of agent {target} failed: {e}')
            return CapabilityResult.failure(
                e.kind, f'Error: Could not contact agent {target}. {detail}'
            )

        try:
            task = await self.send_task(endpoint, task_input)
        except A2AClientError as e:
            payload = getattr(e, 'payload', None)
            detail = json.dumps(payload) if payload is not None else e.message
            logger.error(f'Error in A2A communication with {target}: {e}')
            return CapabilityResult.failure(
                e.kind, f'Error communicating with agent {target}. {detail}'
            )

        logger.debug(f'Received A2A response from {target}: {task}')
        return CapabilityResult.success(summarize_task(target, task))
