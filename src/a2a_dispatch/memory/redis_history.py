"""Redis-backed conversation histories.

Each session is a Redis list under ``chat_history:{session_id}`` holding
JSON-encoded messages. Every append refreshes the key's TTL, so sessions
expire after a period of inactivity.
"""

import asyncio
import logging

from a2a_dispatch.memory.history import (
    ChatHistory,
    ChatMessage,
    PersistentChatStore,
)
from a2a_dispatch.utils.errors import StoreError


try:
    import redis.asyncio as aioredis

    from redis.exceptions import RedisError
except ImportError as e:
    raise ImportError(
        'RedisChatStore requires the redis package. '
        "Install with: 'pip install a2a-dispatch[redis]'"
    ) from e


logger = logging.getLogger(__name__)

KEY_PREFIX = 'chat_history:'


class RedisChatHistory(ChatHistory):
    """History of one session stored in a Redis list."""

    def __init__(
        self, client: aioredis.Redis, session_id: str, ttl_seconds: int | None
    ):
        self.client = client
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds
        self.key = f'{KEY_PREFIX}{session_id}'

    async def add_message(self, message: ChatMessage) -> None:
        await self.client.rpush(self.key, message.model_dump_json())
        if self.ttl_seconds:
            await self.client.expire(self.key, self.ttl_seconds)

    async def get_messages(self) -> list[ChatMessage]:
        raw_messages = await self.client.lrange(self.key, 0, -1)
        return [ChatMessage.model_validate_json(raw) for raw in raw_messages]

    async def clear(self) -> None:
        await self.client.delete(self.key)


class RedisChatStore(PersistentChatStore):
    """Hands out Redis-backed histories sharing one connection pool."""

    def __init__(
        self,
        url: str,
        ttl_seconds: int | None = 86400,
        connect_timeout: float = 2.0,
    ) -> None:
        """Initializes the RedisChatStore.

        Args:
            url: Redis connection URL, e.g. ``redis://localhost:6379/0``.
            ttl_seconds: Sliding expiry applied to every session.
            connect_timeout: Socket connect timeout in seconds.
        """
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.connect_timeout = connect_timeout
        self.client: aioredis.Redis | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            if self.client is not None:
                return
            client = aioredis.from_url(
                self.url,
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
            )
            try:
                await client.ping()
            except (RedisError, OSError) as e:
                await client.aclose()
                raise StoreError(
                    f'Redis at {self.url} is unreachable: {e}'
                ) from e
            self.client = client
            logger.info(f'Connected to Redis at {self.url}')

    def history(self, session_id: str) -> RedisChatHistory:
        if self.client is None:
            raise StoreError('RedisChatStore is not initialized')
        return RedisChatHistory(self.client, session_id, self.ttl_seconds)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info('Disconnected from Redis')
