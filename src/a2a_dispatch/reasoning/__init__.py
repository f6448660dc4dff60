"""Reasoning engines that turn user input into agent output."""

from a2a_dispatch.reasoning.chat_completions import ChatCompletionsEngine
from a2a_dispatch.reasoning.engine import (
    ReasoningEngine,
    expand_continuation_command,
    is_continuation_command,
)


__all__ = [
    'ChatCompletionsEngine',
    'ReasoningEngine',
    'expand_continuation_command',
    'is_continuation_command',
]
