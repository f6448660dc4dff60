"""Conversation memory backends and their lifecycle manager."""

from a2a_dispatch.memory.history import (
    BackendKind,
    ChatHistory,
    ChatMessage,
    ConversationHandle,
    InMemoryChatHistory,
    PersistentChatStore,
)
from a2a_dispatch.memory.manager import (
    ConversationMemoryManager,
    FallbackChatHistory,
    create_store_factory,
)


__all__ = [
    'BackendKind',
    'ChatHistory',
    'ChatMessage',
    'ConversationHandle',
    'ConversationMemoryManager',
    'FallbackChatHistory',
    'InMemoryChatHistory',
    'PersistentChatStore',
    'create_store_factory',
]
