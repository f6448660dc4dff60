"""Utility functions for the A2A dispatch engine."""

from a2a_dispatch.utils.message import (
    get_primary_input,
    new_assistant_text_message,
    new_input_part,
    new_text_part,
    new_user_message,
    summarize_parts,
)
from a2a_dispatch.utils.task import (
    completed_task,
    failed_task,
    new_task_request,
)


__all__ = [
    'completed_task',
    'failed_task',
    'get_primary_input',
    'new_assistant_text_message',
    'new_input_part',
    'new_task_request',
    'new_text_part',
    'new_user_message',
    'summarize_parts',
]
