from typing import Any
from unittest.mock import AsyncMock

import pytest

from a2a_dispatch.dispatch.pipeline import DispatchPipeline
from a2a_dispatch.memory import (
    ChatMessage,
    ConversationMemoryManager,
    InMemoryChatHistory,
    PersistentChatStore,
)
from a2a_dispatch.server.task_handler import (
    A2ATaskHandler,
    TaskPhase,
    task_conversation_id,
)
from a2a_dispatch.types import AgentCard, TaskState
from a2a_dispatch.utils.errors import ReasoningEngineError


AGENT_CARD = AgentCard(name='TestAgent', url='http://localhost:3000')


def task_request(
    task_id: Any = 't1', parts: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    if parts is None:
        parts = [{'type': 'text', 'content': '2+2'}]
    return {'task': {'id': task_id, 'message': {'role': 'user', 'parts': parts}}}


@pytest.fixture
def memory() -> ConversationMemoryManager:
    return ConversationMemoryManager()


@pytest.fixture
def pipeline(memory: ConversationMemoryManager) -> AsyncMock:
    pipeline = AsyncMock(spec=DispatchPipeline)

    async def run(conversation, user_input):
        await conversation.append('user', user_input)
        return f'echo: {user_input}'

    pipeline.run.side_effect = run
    return pipeline


@pytest.fixture
def handler(memory, pipeline) -> A2ATaskHandler:
    return A2ATaskHandler(agent_card=AGENT_CARD, memory=memory, pipeline=pipeline)


@pytest.mark.asyncio
async def test_completed_task(handler: A2ATaskHandler, pipeline: AsyncMock):
    outcome = await handler.handle(task_request())

    assert outcome.status_code == 200
    assert outcome.phase == TaskPhase.completed
    assert outcome.task.id == 't1'
    assert outcome.task.status.state == TaskState.completed
    assert outcome.task.status.message.parts[0].content == 'echo: 2+2'
    conversation = pipeline.run.await_args.args[0]
    assert conversation.id == task_conversation_id('t1') == 'a2a-task-t1'


@pytest.mark.asyncio
async def test_data_part_input_is_serialized(
    handler: A2ATaskHandler, pipeline: AsyncMock
):
    await handler.handle(
        task_request(parts=[{'type': 'data', 'content': {'x': 1}}])
    )
    assert pipeline.run.await_args.args[1] == '{"x": 1}'


@pytest.mark.asyncio
async def test_conversation_is_released_after_completion(
    handler: A2ATaskHandler, memory: ConversationMemoryManager
):
    await handler.handle(task_request())
    conversation = await memory.get_or_create('a2a-task-t1')
    assert await conversation.read() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    'payload',
    [
        {},
        {'task': {}},
        task_request(task_id=''),
        task_request(task_id=7),
        task_request(parts=[]),
        task_request(parts=[{'type': 'text', 'content': ''}]),
        task_request(parts=[{'type': 'text'}]),
        'not a dict',
    ],
)
async def test_invalid_request_yields_400_with_generated_id(
    handler: A2ATaskHandler, pipeline: AsyncMock, payload
):
    outcome = await handler.handle(payload)

    assert outcome.status_code == 400
    assert outcome.task.id
    assert outcome.task.status.state == TaskState.failed
    assert (
        outcome.task.status.message.parts[0].content
        == 'Invalid tasks/send request format.'
    )
    pipeline.run.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_request_echoes_task_id(handler: A2ATaskHandler):
    outcome = await handler.handle(task_request(task_id='t9', parts=[]))
    assert outcome.status_code == 400
    assert outcome.task.id == 't9'


@pytest.mark.asyncio
async def test_unsupported_part_type_is_internal_error(handler: A2ATaskHandler):
    outcome = await handler.handle(
        task_request(parts=[{'type': 'file', 'content': 'blob'}])
    )
    assert outcome.status_code == 500
    assert outcome.task.status.message.parts[0].content == (
        "Internal Server Error: No suitable 'text' or 'data' part found in "
        'incoming A2A message.'
    )


@pytest.mark.asyncio
async def test_reasoning_engine_failure_yields_500(
    handler: A2ATaskHandler,
    pipeline: AsyncMock,
    memory: ConversationMemoryManager,
):
    async def run(conversation, user_input):
        await conversation.append('user', user_input)
        raise ReasoningEngineError('model down')

    pipeline.run.side_effect = run

    outcome = await handler.handle(task_request())

    assert outcome.status_code == 500
    assert outcome.phase == TaskPhase.failed
    assert outcome.task.id == 't1'
    assert (
        outcome.task.status.message.parts[0].content
        == 'Task processing failed: model down'
    )
    conversation = await memory.get_or_create('a2a-task-t1')
    assert await conversation.read() == []


@pytest.mark.asyncio
async def test_unexpected_failure_yields_internal_error(
    handler: A2ATaskHandler, pipeline: AsyncMock
):
    pipeline.run.side_effect = RuntimeError('kaput')

    outcome = await handler.handle(task_request())

    assert outcome.status_code == 500
    assert (
        outcome.task.status.message.parts[0].content
        == 'Internal Server Error: kaput'
    )


@pytest.mark.asyncio
async def test_release_happens_even_when_memory_falls_back(pipeline: AsyncMock):
    def unreachable():
        raise ConnectionError('redis down')

    memory = ConversationMemoryManager('redis', store_factory=unreachable)
    handler = A2ATaskHandler(agent_card=AGENT_CARD, memory=memory, pipeline=pipeline)

    outcome = await handler.handle(task_request())

    assert outcome.status_code == 200
    assert memory._transient == {}


@pytest.mark.asyncio
async def test_store_failing_mid_task_still_completes(pipeline: AsyncMock):
    class DroppedConnectionHistory(InMemoryChatHistory):
        async def add_message(self, message: ChatMessage) -> None:
            raise ConnectionError('connection reset by peer')

        async def get_messages(self) -> list[ChatMessage]:
            raise ConnectionError('connection reset by peer')

        async def clear(self) -> None:
            raise ConnectionError('connection reset by peer')

    store = AsyncMock(spec=PersistentChatStore)
    store.ttl_seconds = None
    store.history = lambda conversation_id: DroppedConnectionHistory()
    memory = ConversationMemoryManager('redis', store_factory=lambda: store)
    handler = A2ATaskHandler(agent_card=AGENT_CARD, memory=memory, pipeline=pipeline)

    outcome = await handler.handle(task_request())

    assert outcome.status_code == 200
    assert outcome.task.status.state == TaskState.completed
    assert outcome.task.status.message.parts[0].content == 'echo: 2+2'


def test_agent_card_is_static(handler: A2ATaskHandler):
    assert handler.agent_card() is AGENT_CARD
