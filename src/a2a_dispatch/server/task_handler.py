"""Inbound tasks/send handling.

Each inbound task moves through RECEIVED -> VALIDATED -> PROCESSING and
ends in COMPLETED or FAILED. The task gets its own transient conversation,
derived from the task id, which is released on every exit path.
"""

import logging

from enum import Enum
from typing import Any, NamedTuple

from pydantic import ValidationError

from a2a_dispatch.dispatch.pipeline import DispatchPipeline
from a2a_dispatch.memory.manager import ConversationMemoryManager
from a2a_dispatch.types import AgentCard, Task, TaskSendRequest
from a2a_dispatch.utils.errors import (
    InputExtractionError,
    ReasoningEngineError,
    TaskValidationError,
)
from a2a_dispatch.utils.message import get_primary_input
from a2a_dispatch.utils.task import completed_task, failed_task
from a2a_dispatch.utils.telemetry import trace_class


logger = logging.getLogger(__name__)


class TaskPhase(str, Enum):
    received = 'received'
    validated = 'validated'
    processing = 'processing'
    completed = 'completed'
    failed = 'failed'


class TaskOutcome(NamedTuple):
    """The task response and the HTTP status it should be sent with."""

    task: Task
    status_code: int
    phase: TaskPhase


def task_conversation_id(task_id: str) -> str:
    """Derives the transient conversation id used for an inbound task."""
    return f'a2a-task-{task_id}'


def _echo_task_id(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    task = payload.get('task')
    if isinstance(task, dict) and isinstance(task.get('id'), str):
        return task['id'] or None
    return None


def _has_content(part: Any) -> bool:
    if not isinstance(part, dict):
        return False
    return part.get('content') not in (None, '')


@trace_class(exclude_list=['agent_card', 'validate'])
class A2ATaskHandler:
    """Drives inbound delegated tasks to a terminal task response."""

    def __init__(
        self,
        agent_card: AgentCard,
        memory: ConversationMemoryManager,
        pipeline: DispatchPipeline,
    ):
        self._agent_card = agent_card
        self.memory = memory
        self.pipeline = pipeline

    def agent_card(self) -> AgentCard:
        """Returns the static agent card."""
        return self._agent_card

    def validate(self, payload: Any) -> TaskSendRequest:
        """Checks the structure of a tasks/send request.

        Raises:
            TaskValidationError: If the task id is missing or the message
                has no non-empty part.
        """
        task_id = _echo_task_id(payload)
        task = payload.get('task') if isinstance(payload, dict) else None
        message = task.get('message') if isinstance(task, dict) else None
        parts = message.get('parts') if isinstance(message, dict) else None
        if (
            task_id is None
            or not isinstance(parts, list)
            or not any(_has_content(part) for part in parts)
        ):
            raise TaskValidationError(task_id=task_id)
        try:
            return TaskSendRequest.model_validate(payload)
        except ValidationError as e:
            raise TaskValidationError(task_id=task_id) from e

    async def handle(self, payload: Any) -> TaskOutcome:
        """Processes one inbound tasks/send request.

        Validation faults yield a failed task with status 400,
        reasoning-engine and other internal faults a failed task with
        status 500. Capability faults are part of a completed reply.
        """
        logger.debug(f'Task phase: {TaskPhase.received.value}')
        try:
            request = self.validate(payload)
        except TaskValidationError as e:
            logger.error(f'Invalid A2A tasks/send request format: {payload}')
            return TaskOutcome(
                failed_task(e.task_id, e.message), 400, TaskPhase.failed
            )

        task_id = request.task.id
        conversation_id = task_conversation_id(task_id)
        logger.debug(f'Task {task_id} phase: {TaskPhase.validated.value}')
        logger.info(f'Processing incoming A2A task {task_id}')
        try:
            user_input = get_primary_input(request.task.message)
            if user_input is None:
                raise InputExtractionError(
                    "No suitable 'text' or 'data' part found in incoming A2A message."
                )
            conversation = await self.memory.get_or_create(conversation_id)
            logger.debug(f'Task {task_id} phase: {TaskPhase.processing.value}')
            reply = await self.pipeline.run(conversation, user_input)
        except ReasoningEngineError as e:
            logger.error(f'Task {task_id} failed: {e.message}')
            outcome = TaskOutcome(
                failed_task(task_id, f'Task processing failed: {e.message}'),
                500,
                TaskPhase.failed,
            )
        except Exception as e:
            logger.exception(f'Error processing A2A task {task_id}')
            outcome = TaskOutcome(
                failed_task(task_id, f'Internal Server Error: {e}'),
                500,
                TaskPhase.failed,
            )
        else:
            outcome = TaskOutcome(
                completed_task(task_id, reply), 200, TaskPhase.completed
            )
        finally:
            await self.memory.clear(conversation_id)

        logger.info(f'Task {task_id} finished in state {outcome.phase.value}')
        return outcome
