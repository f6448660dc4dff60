import logging

from typing import Any

import httpx

from a2a_dispatch.memory.history import ConversationHandle
from a2a_dispatch.reasoning.engine import (
    ReasoningEngine,
    expand_continuation_command,
)
from a2a_dispatch.types import Role
from a2a_dispatch.utils.errors import ReasoningEngineError
from a2a_dispatch.utils.telemetry import SpanKind, trace_class


logger = logging.getLogger(__name__)

OPENAI_BASE_URL = 'https://api.openai.com/v1'


@trace_class(kind=SpanKind.CLIENT)
class ChatCompletionsEngine(ReasoningEngine):
    """Reasoning engine backed by an OpenAI-compatible chat completions API.

    Works against OpenAI itself or any compatible server (e.g. Ollama's
    ``/v1`` endpoint). The conversation history is sent with every
    request and the new exchange is appended to it afterwards.
    """

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        model: str,
        system_prompt: str,
        base_url: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ):
        self.httpx_client = httpx_client
        self.model = model
        self.system_prompt = system_prompt
        self.base_url = (base_url or OPENAI_BASE_URL).rstrip('/')
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout

    async def _build_messages(
        self, conversation: ConversationHandle, prompt: str
    ) -> list[dict[str, str]]:
        messages = [{'role': 'system', 'content': self.system_prompt}]
        for message in await conversation.read():
            messages.append({'role': message.role, 'content': message.content})
        messages.append({'role': Role.user.value, 'content': prompt})
        return messages

    async def _complete(self, messages: list[dict[str, str]]) -> str:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        payload: dict[str, Any] = {
            'model': self.model,
            'messages': messages,
            'temperature': self.temperature,
        }
        try:
            response = await self.httpx_client.post(
                f'{self.base_url}/chat/completions',
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise ReasoningEngineError(
                f'Model request failed with status {e.response.status_code}: '
                f'{e.response.text}'
            ) from e
        except httpx.RequestError as e:
            raise ReasoningEngineError(
                f'Model request failed: {type(e).__name__}: {e}'
            ) from e
        except ValueError as e:
            raise ReasoningEngineError(f'Model returned invalid JSON: {e}') from e

        try:
            content = body['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError) as e:
            raise ReasoningEngineError(
                f'Unexpected model response shape: {body}'
            ) from e
        if not isinstance(content, str):
            raise ReasoningEngineError('Agent produced invalid output format.')
        return content

    async def generate(
        self, conversation: ConversationHandle, user_input: str
    ) -> str:
        prompt = expand_continuation_command(user_input)
        if prompt != user_input:
            logger.info(
                f'Detected continuation command for conversation {conversation.id}'
            )

        messages = await self._build_messages(conversation, prompt)
        logger.debug(
            f'Requesting completion for conversation {conversation.id} '
            f'with {len(messages)} messages'
        )
        output = await self._complete(messages)

        await conversation.append(Role.user.value, prompt)
        await conversation.append(Role.assistant.value, output)
        return output
