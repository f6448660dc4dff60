import logging

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel


logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    """One entry of a conversation history."""

    role: str
    content: str


class ChatHistory(ABC):
    """Ordered message history of a single conversation."""

    @abstractmethod
    async def add_message(self, message: ChatMessage) -> None:
        """Appends a message to the history."""

    @abstractmethod
    async def get_messages(self) -> list[ChatMessage]:
        """Returns every message in insertion order."""

    @abstractmethod
    async def clear(self) -> None:
        """Removes every message."""


class InMemoryChatHistory(ChatHistory):
    """In-process history. Entries never expire."""

    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []

    async def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    async def get_messages(self) -> list[ChatMessage]:
        return list(self.messages)

    async def clear(self) -> None:
        self.messages = []


class PersistentChatStore(ABC):
    """A durable store handing out per-session histories with a TTL."""

    ttl_seconds: int | None

    @abstractmethod
    async def initialize(self) -> None:
        """Connects to the backing store.

        Raises:
            StoreError: If the store is unreachable or misconfigured.
        """

    @abstractmethod
    def history(self, session_id: str) -> ChatHistory:
        """Returns the history bound to `session_id`."""

    @abstractmethod
    async def close(self) -> None:
        """Releases connections held by the store."""


class BackendKind(str, Enum):
    persistent = 'persistent'
    transient = 'transient'


@dataclass
class ConversationHandle:
    """A conversation id bound to the history backing it."""

    id: str
    history: ChatHistory
    backend: BackendKind
    ttl_seconds: int | None = None

    async def append(self, role: str, content: str) -> None:
        await self.history.add_message(ChatMessage(role=role, content=content))

    async def read(self) -> list[ChatMessage]:
        return await self.history.get_messages()
