"""Utility functions for creating and reading Message objects."""

import json

from typing import Any

from a2a_dispatch.types import Message, Part, Role


def new_text_part(content: str) -> Part:
    """Creates a `text` part."""
    return Part(type='text', content=content)


def new_input_part(task_input: Any) -> Part:
    """Creates the part carrying a task input.

    Strings become a `text` part; anything else is sent as a `data` part
    with the payload untouched.
    """
    if isinstance(task_input, str):
        return new_text_part(task_input)
    return Part(type='data', content=task_input)


def new_user_message(task_input: Any) -> Message:
    """Creates a user message with a single part holding `task_input`."""
    return Message(role=Role.user, parts=[new_input_part(task_input)])


def new_assistant_text_message(text: str) -> Message:
    """Creates an assistant message containing a single text part.

    Args:
        text: The text content of the message.

    Returns:
        A new `Message` object with role 'assistant'.
    """
    return Message(role=Role.assistant, parts=[new_text_part(text)])


def first_part_of_type(parts: list[Part], part_type: str) -> Part | None:
    """Returns the first part whose type is `part_type`, or None."""
    return next((p for p in parts if p.type == part_type), None)


def get_primary_input(message: Message) -> str | None:
    """Extracts the primary input of an inbound message.

    The first text part wins; otherwise the first data part is serialized
    to JSON. Returns None when neither exists.
    """
    text_part = first_part_of_type(message.parts, 'text')
    if text_part is not None:
        return str(text_part.content)
    data_part = first_part_of_type(message.parts, 'data')
    if data_part is not None:
        return json.dumps(data_part.content)
    return None


def summarize_parts(parts: list[Part]) -> str:
    """Renders the parts of a response message as text.

    Uses the first text part's content, falling back to the JSON of the
    first part's content when there is no text part.
    """
    text_part = first_part_of_type(parts, 'text')
    if text_part is not None:
        return str(text_part.content)
    return json.dumps(parts[0].content)
