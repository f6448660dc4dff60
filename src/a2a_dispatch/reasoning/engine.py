import re

from abc import ABC, abstractmethod

from a2a_dispatch.memory.history import ConversationHandle


CONTINUATION_PATTERN = re.compile(r'^@agent\s+Continue:', re.IGNORECASE)
QUOTED_CONTINUATION_PATTERN = re.compile(
    r'^@agent\s+Continue:\s*"(.+?)"$', re.IGNORECASE
)


class ReasoningEngine(ABC):
    """Produces the text of one turn for a conversation.

    Implementations may emit directive-shaped text but never route it
    themselves.
    """

    @abstractmethod
    async def generate(
        self, conversation: ConversationHandle, user_input: str
    ) -> str:
        """Generates a reply to `user_input` within `conversation`.

        Raises:
            ReasoningEngineError: If no output could be produced.
        """


def is_continuation_command(prompt: str) -> bool:
    return bool(CONTINUATION_PATTERN.match(prompt))


def expand_continuation_command(prompt: str) -> str:
    """Rewrites an ``@agent Continue: "..."`` command into a prompt.

    Non-continuation prompts are returned unchanged.
    """
    if not is_continuation_command(prompt):
        return prompt

    match = QUOTED_CONTINUATION_PATTERN.match(prompt.strip())
    if match:
        continuation = match.group(1)
    else:
        continuation = prompt.split(':', 1)[1].strip()
    continuation = continuation or 'Continue with the previous task'
    return (
        f'{continuation} (This is a continuation of our previous conversation. '
        'Please maintain the context of what we were discussing and continue '
        'from where we left off.)'
    )
