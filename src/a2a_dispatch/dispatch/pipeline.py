import logging

from a2a_dispatch.dispatch.classifier import classify_output
from a2a_dispatch.dispatch.result import FinalAnswer
from a2a_dispatch.dispatch.router import CapabilityRouter
from a2a_dispatch.memory.history import ConversationHandle
from a2a_dispatch.reasoning.engine import ReasoningEngine
from a2a_dispatch.utils.errors import ReasoningEngineError
from a2a_dispatch.utils.telemetry import trace_class


logger = logging.getLogger(__name__)


@trace_class()
class DispatchPipeline:
    """Runs one turn: reasoning engine, then classifier, then router.

    At most one capability is invoked per turn. Capability failures come
    back as text; only reasoning-engine failures raise.
    """

    def __init__(self, engine: ReasoningEngine, router: CapabilityRouter):
        self.engine = engine
        self.router = router

    async def run(self, conversation: ConversationHandle, user_input: str) -> str:
        """Produces the final reply text for `user_input`.

        Raises:
            ReasoningEngineError: If the reasoning engine fails.
        """
        logger.info(f'Processing prompt for conversation {conversation.id}')
        logger.debug(f'Prompt content: "{user_input}"')
        try:
            output = await self.engine.generate(conversation, user_input)
        except ReasoningEngineError:
            raise
        except Exception as e:
            raise ReasoningEngineError(f'Agent execution error: {e}') from e

        classified = classify_output(output)
        if isinstance(classified, FinalAnswer):
            logger.info(f'Agent produced a final answer for {conversation.id}')
            return classified.text

        logger.info(
            f'Detected directive for capability {classified.capability_name} '
            f'in output for {conversation.id}'
        )
        result = await self.router.route(classified)
        if not result.ok:
            logger.warning(
                f'Capability {classified.capability_name} failed '
                f'({result.error.kind.value}): {result.error.detail}'
            )
        return result.text
