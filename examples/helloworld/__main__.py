import json
import logging
import re

import uvicorn

from a2a_dispatch.capabilities import StaticCapabilityInvoker
from a2a_dispatch.config import load_config
from a2a_dispatch.memory import ConversationHandle
from a2a_dispatch.reasoning import ReasoningEngine
from a2a_dispatch.server import build_context
from a2a_dispatch.server.apps import A2ADispatchApplication


ADD_PATTERN = re.compile(r'^\s*(-?\d+)\s*\+\s*(-?\d+)\s*$')
ASK_PATTERN = re.compile(r'^ask\s+(\S+)\s+(.+)$', re.IGNORECASE)


class RuleBasedEngine(ReasoningEngine):
    """Answers without a language model.

    `2+2` becomes a call to the local `add` capability and
    `ask <agent url> <question>` delegates the question to a peer.
    """

    async def generate(self, conversation: ConversationHandle, user_input: str) -> str:
        if match := ADD_PATTERN.match(user_input):
            output = json.dumps(
                {
                    'tool': 'add',
                    'tool_input': {'a': int(match[1]), 'b': int(match[2])},
                }
            )
        elif match := ASK_PATTERN.match(user_input):
            output = json.dumps(
                {
                    'tool': 'ask_another_a2a_agent',
                    'targetAgentId': match[1],
                    'taskInput': match[2],
                }
            )
        else:
            output = f'Hello! You said: {user_input}'
        await conversation.append('user', user_input)
        await conversation.append('assistant', output)
        return output


if __name__ == '__main__':
    config = load_config()
    logging.basicConfig(level=config.logging.level)

    context = build_context(
        config,
        engine=RuleBasedEngine(),
        local_invoker=StaticCapabilityInvoker({'add': lambda a, b: a + b}),
    )
    server = A2ADispatchApplication(context)

    uvicorn.run(server.build(), host='0.0.0.0', port=config.server.port)
