import logging

from typing import Any

from a2a_dispatch.memory.history import ConversationHandle
from a2a_dispatch.reasoning.engine import (
    ReasoningEngine,
    expand_continuation_command,
)
from a2a_dispatch.types import Role
from a2a_dispatch.utils.errors import ReasoningEngineError
from a2a_dispatch.utils.telemetry import SpanKind, trace_class


try:
    import anthropic
except ImportError as e:
    raise ImportError(
        'AnthropicMessagesEngine requires the anthropic package. '
        "Install with: 'pip install a2a-dispatch[anthropic]'"
    ) from e


logger = logging.getLogger(__name__)


@trace_class(kind=SpanKind.CLIENT)
class AnthropicMessagesEngine(ReasoningEngine):
    """Reasoning engine backed by the Anthropic Messages API.

    The system prompt travels in the request's `system` field rather than
    as a history entry.
    """

    def __init__(
        self,
        model: str,
        system_prompt: str,
        api_key: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: float = 60.0,
        client: Any = None,
    ):
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout
        )

    async def _complete(self, messages: list[dict[str, str]]) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                system=self.system_prompt,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except anthropic.APIStatusError as e:
            raise ReasoningEngineError(
                f'Model request failed with status {e.status_code}: {e.message}'
            ) from e
        except anthropic.APIError as e:
            raise ReasoningEngineError(
                f'Model request failed: {type(e).__name__}: {e}'
            ) from e

        text = ''.join(
            block.text
            for block in response.content
            if getattr(block, 'type', None) == 'text'
        )
        if not text:
            raise ReasoningEngineError('Agent produced invalid output format.')
        return text

    async def generate(
        self, conversation: ConversationHandle, user_input: str
    ) -> str:
        prompt = expand_continuation_command(user_input)
        messages = [
            {'role': message.role, 'content': message.content}
            for message in await conversation.read()
        ]
        messages.append({'role': Role.user.value, 'content': prompt})
        logger.debug(
            f'Requesting Anthropic completion for conversation {conversation.id} '
            f'with {len(messages)} messages'
        )
        output = await self._complete(messages)

        await conversation.append(Role.user.value, prompt)
        await conversation.append(Role.assistant.value, output)
        return output
