"""Utility functions for creating Task objects."""

import uuid

from a2a_dispatch.types import (
    Task,
    TaskPayload,
    TaskSendRequest,
    TaskState,
    TaskStatus,
)
from a2a_dispatch.utils.message import (
    new_assistant_text_message,
    new_user_message,
)


def new_task_request(task_input) -> TaskSendRequest:
    """Builds an outbound tasks/send envelope with a freshly generated id."""
    return TaskSendRequest(
        task=TaskPayload(
            id=str(uuid.uuid4()), message=new_user_message(task_input)
        )
    )


def completed_task(task_id: str, text: str) -> Task:
    """Creates a Task in the 'completed' state carrying `text`."""
    return Task(
        id=task_id,
        status=TaskStatus(
            state=TaskState.completed,
            message=new_assistant_text_message(text),
        ),
    )


def failed_task(task_id: str | None, text: str) -> Task:
    """Creates a Task in the 'failed' state.

    A new id is generated when `task_id` is missing.
    """
    return Task(
        id=task_id or str(uuid.uuid4()),
        status=TaskStatus(
            state=TaskState.failed,
            message=new_assistant_text_message(text),
        ),
    )
