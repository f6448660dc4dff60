"""Conversation memory lifecycle: backend selection, fallback and teardown.

When a persistent backend is configured every access first tries it; any
failure is logged and the conversation silently falls back to an
in-process history keyed by the same id. Neither `get_or_create` nor
`clear` ever raises.

Concurrent requests on the same conversation id are not serialized; the
last write wins.
"""

import logging

from collections.abc import Callable

from a2a_dispatch.memory.history import (
    BackendKind,
    ChatHistory,
    ChatMessage,
    ConversationHandle,
    InMemoryChatHistory,
    PersistentChatStore,
)
from a2a_dispatch.utils.errors import StoreError


logger = logging.getLogger(__name__)

PERSISTENT_BACKENDS = ('redis', 'database')

StoreFactory = Callable[[], PersistentChatStore]


def create_store_factory(
    backend: str,
    url: str | None,
    ttl_seconds: int | None,
) -> StoreFactory | None:
    """Returns a factory for the persistent store named `backend`.

    Imports happen inside the factory so that a missing optional
    dependency surfaces as an ordinary store failure.
    """
    if backend not in PERSISTENT_BACKENDS:
        return None

    def factory() -> PersistentChatStore:
        if not url:
            raise StoreError(f'{backend} memory backend has no URL configured')
        if backend == 'redis':
            from a2a_dispatch.memory.redis_history import RedisChatStore

            return RedisChatStore(url, ttl_seconds=ttl_seconds)

        from a2a_dispatch.memory.database_history import DatabaseChatStore

        return DatabaseChatStore(url, ttl_seconds=ttl_seconds)

    return factory


class FallbackChatHistory(ChatHistory):
    """Persistent history that degrades to an in-process one on store errors.

    The first failing store call switches the conversation to the
    transient history for the rest of the handle's lifetime.
    """

    def __init__(
        self,
        conversation_id: str,
        primary: ChatHistory,
        fallback: Callable[[], ChatHistory],
        backend: str,
    ):
        self.conversation_id = conversation_id
        self.primary: ChatHistory | None = primary
        self.fallback = fallback
        self.backend = backend

    @property
    def degraded(self) -> bool:
        return self.primary is None

    def _degrade(self, operation: str, error: Exception) -> None:
        logger.warning(
            f'{self.backend} memory failed during {operation}: {error}. '
            f'Falling back to in-memory storage for conversation {self.conversation_id}.'
        )
        self.primary = None

    async def add_message(self, message: ChatMessage) -> None:
        if self.primary is not None:
            try:
                await self.primary.add_message(message)
                return
            except Exception as e:
                self._degrade('add_message', e)
        await self.fallback().add_message(message)

    async def get_messages(self) -> list[ChatMessage]:
        if self.primary is not None:
            try:
                return await self.primary.get_messages()
            except Exception as e:
                self._degrade('get_messages', e)
        return await self.fallback().get_messages()

    async def clear(self) -> None:
        if self.primary is not None:
            try:
                await self.primary.clear()
                return
            except Exception as e:
                self._degrade('clear', e)
        await self.fallback().clear()


class ConversationMemoryManager:
    """Maps conversation ids to their message histories."""

    def __init__(
        self,
        backend: str = 'memory',
        store_factory: StoreFactory | None = None,
    ):
        """Initializes the ConversationMemoryManager.

        Args:
            backend: `memory` for in-process histories, or the name of a
                persistent backend (`redis`, `database`).
            store_factory: Builds the persistent store on first use.
                Ignored for the `memory` backend.
        """
        self.backend = backend
        self.store_factory = store_factory
        self.store: PersistentChatStore | None = None
        self._transient: dict[str, InMemoryChatHistory] = {}

    @property
    def uses_persistent_backend(self) -> bool:
        return self.backend in PERSISTENT_BACKENDS

    async def _ready_store(self) -> PersistentChatStore:
        if self.store is None:
            if self.store_factory is None:
                raise StoreError(
                    f'No store configured for {self.backend} memory backend'
                )
            self.store = self.store_factory()
        await self.store.initialize()
        return self.store

    def _transient_history(self, conversation_id: str) -> InMemoryChatHistory:
        history = self._transient.get(conversation_id)
        if history is None:
            history = InMemoryChatHistory()
            self._transient[conversation_id] = history
            logger.debug(
                f'Created new in-memory storage for conversation {conversation_id}'
            )
        return history

    def _transient_handle(self, conversation_id: str) -> ConversationHandle:
        return ConversationHandle(
            id=conversation_id,
            history=self._transient_history(conversation_id),
            backend=BackendKind.transient,
        )

    async def get_or_create(self, conversation_id: str) -> ConversationHandle:
        """Returns the handle for `conversation_id`, creating it if needed."""
        if self.uses_persistent_backend:
            try:
                store = await self._ready_store()
                handle = ConversationHandle(
                    id=conversation_id,
                    history=FallbackChatHistory(
                        conversation_id,
                        store.history(conversation_id),
                        fallback=lambda: self._transient_history(conversation_id),
                        backend=self.backend,
                    ),
                    backend=BackendKind.persistent,
                    ttl_seconds=store.ttl_seconds,
                )
            except Exception as e:
                logger.warning(
                    f'{self.backend} memory unavailable: {e}. '
                    f'Falling back to in-memory storage for conversation {conversation_id}.'
                )
            else:
                logger.debug(
                    f'Using {self.backend} memory for conversation {conversation_id}'
                )
                return handle
        return self._transient_handle(conversation_id)

    async def clear(self, conversation_id: str) -> None:
        """Removes all stored history for `conversation_id`."""
        if self.uses_persistent_backend:
            try:
                store = await self._ready_store()
                await store.history(conversation_id).clear()
                logger.info(
                    f'Cleared {self.backend} memory for conversation {conversation_id}'
                )
            except Exception as e:
                logger.error(f'Failed to clear {self.backend} memory: {e}')

        if self._transient.pop(conversation_id, None) is not None:
            logger.info(
                f'Cleared in-memory storage for conversation {conversation_id}'
            )

    async def close(self) -> None:
        if self.store is not None:
            try:
                await self.store.close()
            except Exception as e:
                logger.error(f'Failed to close {self.backend} memory: {e}')
            self.store = None
