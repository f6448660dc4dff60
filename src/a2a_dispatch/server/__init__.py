"""Server-side components of the A2A dispatch agent."""

from a2a_dispatch.server.context import DispatchContext, build_context
from a2a_dispatch.server.task_handler import (
    A2ATaskHandler,
    TaskOutcome,
    TaskPhase,
    task_conversation_id,
)


__all__ = [
    'A2ATaskHandler',
    'DispatchContext',
    'TaskOutcome',
    'TaskPhase',
    'build_context',
    'task_conversation_id',
]
