"""The per-process dispatch context.

Everything a request handler needs is built once at startup into a
`DispatchContext` and passed to the handlers by reference.
"""

import logging

from dataclasses import dataclass, field

import httpx

from a2a_dispatch.capabilities.invoker import (
    CapabilityInvoker,
    StaticCapabilityInvoker,
)
from a2a_dispatch.capabilities.mcp_invoker import McpCapabilityInvoker
from a2a_dispatch.client.client import A2AClient
from a2a_dispatch.config import AgentConfig, build_agent_card
from a2a_dispatch.dispatch.peers import Peer, PeerRegistry
from a2a_dispatch.dispatch.pipeline import DispatchPipeline
from a2a_dispatch.dispatch.router import CapabilityRouter
from a2a_dispatch.memory.manager import (
    ConversationMemoryManager,
    create_store_factory,
)
from a2a_dispatch.reasoning.chat_completions import ChatCompletionsEngine
from a2a_dispatch.reasoning.engine import ReasoningEngine
from a2a_dispatch.types import AgentCard


logger = logging.getLogger(__name__)


@dataclass
class DispatchContext:
    """Shared, long-lived collaborators of the request handlers."""

    agent_card: AgentCard
    memory: ConversationMemoryManager
    pipeline: DispatchPipeline
    httpx_client: httpx.AsyncClient
    local_invoker: CapabilityInvoker
    owns_httpx_client: bool = field(default=False)

    async def startup(self) -> None:
        if isinstance(self.local_invoker, McpCapabilityInvoker):
            await self.local_invoker.connect()

    async def shutdown(self) -> None:
        if isinstance(self.local_invoker, McpCapabilityInvoker):
            await self.local_invoker.close()
        await self.memory.close()
        if self.owns_httpx_client:
            await self.httpx_client.aclose()


def build_peer_registry(config: AgentConfig) -> PeerRegistry:
    peers = [
        Peer(name=agent.name, base_url=agent.base_url, skills=tuple(agent.skills))
        for agent in config.a2a.known_agents
    ]
    return PeerRegistry(
        self_id=config.server.base_url,
        peers=peers,
        redirect_peer=config.a2a.self_redirect_peer,
    )


def build_reasoning_engine(
    config: AgentConfig, httpx_client: httpx.AsyncClient
) -> ReasoningEngine:
    llm = config.llm
    if llm.provider == 'anthropic':
        from a2a_dispatch.reasoning.anthropic_messages import (
            AnthropicMessagesEngine,
        )

        logger.info(f'Using Anthropic model {llm.model}')
        return AnthropicMessagesEngine(
            model=llm.model,
            system_prompt=config.agent.system_prompt,
            api_key=llm.anthropic.api_key,
            temperature=llm.temperature,
            max_tokens=llm.anthropic.max_tokens,
            timeout=llm.timeout,
        )
    if llm.provider == 'ollama':
        logger.info(
            f'Using Ollama model {llm.model} via OpenAI-compatible interface'
        )
        base_url = f'{(llm.ollama.base_url or "").rstrip("/")}/v1'
        api_key = None
    else:
        logger.info(f'Using OpenAI model {llm.model}')
        base_url = llm.openai.api_url
        api_key = llm.openai.api_key
    return ChatCompletionsEngine(
        httpx_client,
        model=llm.model,
        system_prompt=config.agent.system_prompt,
        base_url=base_url,
        api_key=api_key,
        temperature=llm.temperature,
        timeout=llm.timeout,
    )


def build_context(
    config: AgentConfig,
    httpx_client: httpx.AsyncClient | None = None,
    engine: ReasoningEngine | None = None,
    local_invoker: CapabilityInvoker | None = None,
    memory: ConversationMemoryManager | None = None,
) -> DispatchContext:
    """Builds the dispatch context from configuration.

    Any collaborator can be supplied explicitly; the rest are derived
    from `config`.
    """
    owns_httpx_client = httpx_client is None
    if httpx_client is None:
        httpx_client = httpx.AsyncClient()

    if local_invoker is None:
        if config.mcp.server_url:
            local_invoker = McpCapabilityInvoker(
                config.mcp.server_url, client_name=config.server.name
            )
        else:
            local_invoker = StaticCapabilityInvoker()

    if memory is None:
        backend = config.memory.backend
        memory = ConversationMemoryManager(
            backend=config.memory.type,
            store_factory=create_store_factory(
                config.memory.type,
                backend.url if backend else None,
                backend.chat_history_ttl if backend else None,
            ),
        )

    router = CapabilityRouter(
        remote_client=A2AClient(httpx_client),
        local_invoker=local_invoker,
        peers=build_peer_registry(config),
    )
    pipeline = DispatchPipeline(
        engine=engine or build_reasoning_engine(config, httpx_client),
        router=router,
    )
    return DispatchContext(
        agent_card=build_agent_card(config),
        memory=memory,
        pipeline=pipeline,
        httpx_client=httpx_client,
        local_invoker=local_invoker,
        owns_httpx_client=owns_httpx_client,
    )
