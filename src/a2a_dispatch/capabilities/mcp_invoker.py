"""Capability invoker that bridges tools of a remote MCP server.

Connects over the streamable HTTP transport, discovers the server's tools
once at connect time and forwards invocations to it.
"""

import contextlib
import json
import logging

from typing import Any

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from a2a_dispatch.capabilities.invoker import (
    CapabilityInvoker,
    CapabilityNotFoundError,
)


logger = logging.getLogger(__name__)


def render_tool_content(content: list[Any]) -> str:
    """Joins the content blocks of an MCP tool result into text."""
    parts: list[str] = []
    for block in content:
        if getattr(block, 'text', None) is not None:
            parts.append(block.text)
        elif hasattr(block, 'model_dump'):
            parts.append(json.dumps(block.model_dump(mode='json')))
        else:
            parts.append(str(block))
    return '\n'.join(parts) if parts else '(no output)'


class McpCapabilityInvoker(CapabilityInvoker):
    """Exposes the tools of one MCP server as local capabilities."""

    def __init__(self, server_url: str | None, client_name: str = 'a2a-dispatch'):
        """Initializes the McpCapabilityInvoker.

        Args:
            server_url: URL of the MCP server's streamable HTTP endpoint.
                When None the invoker exposes no tools.
            client_name: Name announced to the MCP server.
        """
        self.server_url = server_url
        self.client_name = client_name
        self._session: ClientSession | None = None
        self._exit_stack: contextlib.AsyncExitStack | None = None
        self._tools: dict[str, str] = {}

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Opens the MCP session and discovers available tools.

        Connection failures are logged; the invoker then exposes no tools.
        """
        if self.is_connected:
            return
        if not self.server_url:
            logger.warning(
                'MCP server URL not configured. No MCP tools will be available.'
            )
            return

        logger.info(f'Initializing MCP client at {self.server_url}')
        exit_stack = contextlib.AsyncExitStack()
        try:
            read_stream, write_stream, _ = await exit_stack.enter_async_context(
                streamablehttp_client(self.server_url)
            )
            session = await exit_stack.enter_async_context(
                ClientSession(read_stream, write_stream)
            )
            await session.initialize()
            listing = await session.list_tools()
        except Exception as e:
            logger.error(f'Failed to initialize MCP client: {e}')
            await exit_stack.aclose()
            return

        self._exit_stack = exit_stack
        self._session = session
        self._tools = {
            tool.name: tool.description or f'MCP tool: {tool.name}'
            for tool in listing.tools
        }
        logger.info(
            f'MCP client connected ({len(self._tools)} tools: {", ".join(self._tools)})'
        )

    async def close(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
        self._exit_stack = None
        self._session = None
        self._tools = {}

    def names(self) -> list[str]:
        return list(self._tools)

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        if self._session is None or name not in self._tools:
            raise CapabilityNotFoundError(name)

        logger.info(f"Calling MCP tool '{name}'")
        logger.debug(f'Tool args: {arguments}')
        result = await self._session.call_tool(name, arguments)
        text = render_tool_content(result.content)
        if result.isError:
            raise RuntimeError(f"MCP tool '{name}' failed: {text}")
        return text
