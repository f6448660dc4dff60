import logging

from a2a_dispatch.capabilities.invoker import (
    CapabilityInvoker,
    CapabilityNotFoundError,
)
from a2a_dispatch.client.client import A2AClient
from a2a_dispatch.dispatch.peers import PeerRegistry, SelfReferenceError
from a2a_dispatch.dispatch.result import CapabilityResult, Directive
from a2a_dispatch.utils.errors import ErrorKind
from a2a_dispatch.utils.telemetry import trace_class


logger = logging.getLogger(__name__)

REMOTE_DELEGATION_CAPABILITY = 'ask_another_a2a_agent'
TARGET_AGENT_ARGUMENT = 'targetAgentId'
TASK_INPUT_ARGUMENT = 'taskInput'


@trace_class()
class CapabilityRouter:
    """Dispatches a directive to a peer agent or a local capability.

    Every outcome, including failures, comes back as a `CapabilityResult`.
    """

    def __init__(
        self,
        remote_client: A2AClient,
        local_invoker: CapabilityInvoker,
        peers: PeerRegistry,
    ):
        self.remote_client = remote_client
        self.local_invoker = local_invoker
        self.peers = peers

    def capability_names(self) -> list[str]:
        return [*self.local_invoker.names(), REMOTE_DELEGATION_CAPABILITY]

    async def route(self, directive: Directive) -> CapabilityResult:
        """Executes `directive` and returns its outcome."""
        if directive.capability_name == REMOTE_DELEGATION_CAPABILITY:
            return await self._delegate(directive)
        return await self._invoke_local(directive)

    async def _delegate(self, directive: Directive) -> CapabilityResult:
        target = directive.arguments.get(TARGET_AGENT_ARGUMENT)
        task_input = directive.arguments.get(TASK_INPUT_ARGUMENT)
        if not target or task_input is None or task_input == '':
            logger.error(
                f'Missing required parameters for {REMOTE_DELEGATION_CAPABILITY}: '
                f'{directive.arguments}'
            )
            return CapabilityResult.failure(
                ErrorKind.missing_parameters,
                f'Error: Missing required parameters for '
                f'{REMOTE_DELEGATION_CAPABILITY} '
                f'({TARGET_AGENT_ARGUMENT}, {TASK_INPUT_ARGUMENT})',
            )

        try:
            base_url = self.peers.resolve(str(target))
        except SelfReferenceError as e:
            logger.error(e.message)
            return CapabilityResult.failure(e.kind, e.message)

        logger.info(f'Delegating task to agent {base_url}')
        return await self.remote_client.ask_agent(base_url, task_input)

    async def _invoke_local(self, directive: Directive) -> CapabilityResult:
        name = directive.capability_name
        if not self.local_invoker.has(name):
            logger.error(
                f"Capability '{name}' not found. Available capabilities: "
                f'{", ".join(self.capability_names())}'
            )
            return CapabilityResult.failure(
                ErrorKind.capability_not_found,
                f"Error: Capability '{name}' not found",
            )

        logger.info(f"Executing capability '{name}'")
        logger.debug(f'Capability arguments: {directive.arguments}')
        try:
            result = await self.local_invoker.invoke(name, directive.arguments)
        except CapabilityNotFoundError:
            return CapabilityResult.failure(
                ErrorKind.capability_not_found,
                f"Error: Capability '{name}' not found",
            )
        except Exception as e:
            logger.exception(f"Capability '{name}' failed")
            return CapabilityResult.failure(
                ErrorKind.capability_error,
                f"Error executing capability '{name}': {e}",
            )
        logger.info(f"Capability '{name}' completed")
        return CapabilityResult.success(result)
