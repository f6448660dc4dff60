import logging
import time

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from a2a_dispatch.memory.history import (
    ChatHistory,
    ChatMessage,
    PersistentChatStore,
)
from a2a_dispatch.memory.models import Base, ChatMessageModel, ChatSessionModel
from a2a_dispatch.utils.errors import StoreError


logger = logging.getLogger(__name__)


class DatabaseChatHistory(ChatHistory):
    """History of one session stored through SQLAlchemy."""

    def __init__(self, store: 'DatabaseChatStore', session_id: str):
        self.store = store
        self.session_id = session_id

    async def add_message(self, message: ChatMessage) -> None:
        await self.store.append(self.session_id, message)

    async def get_messages(self) -> list[ChatMessage]:
        return await self.store.read(self.session_id)

    async def clear(self) -> None:
        await self.store.delete(self.session_id)


class DatabaseChatStore(PersistentChatStore):
    """SQLAlchemy-based conversation store.

    Each append pushes the session's `expires_at` forward by the TTL; a
    session read after its expiry is deleted and reported as empty.
    """

    engine: AsyncEngine
    async_session_maker: async_sessionmaker[AsyncSession]
    create_table: bool
    _initialized: bool

    def __init__(
        self,
        db_url: str,
        ttl_seconds: int | None = 86400,
        create_table: bool = True,
    ) -> None:
        """Initializes the DatabaseChatStore.

        Args:
            db_url: Database connection string.
            ttl_seconds: Sliding expiry applied to every session.
            create_table: If true, create the tables on initialization.
        """
        logger.debug(f'Initializing DatabaseChatStore with DB URL: {db_url}')
        self.engine = create_async_engine(db_url, echo=False)
        self.async_session_maker = async_sessionmaker(
            self.engine, expire_on_commit=False
        )
        self.ttl_seconds = ttl_seconds
        self.create_table = create_table
        self._initialized = False

    async def initialize(self) -> None:
        """Checks connectivity and creates the tables if needed."""
        if self._initialized:
            return

        logger.debug('Initializing database schema...')
        try:
            async with self.engine.begin() as conn:
                if self.create_table:
                    await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f'Database is unreachable: {e}') from e
        self._initialized = True
        logger.debug('Database schema initialized.')

    async def close(self) -> None:
        """Close the database connection engine."""
        logger.debug('Closing database engine.')
        await self.engine.dispose()
        self._initialized = False

    def history(self, session_id: str) -> DatabaseChatHistory:
        return DatabaseChatHistory(self, session_id)

    def _expiry(self, now: float) -> float | None:
        if not self.ttl_seconds:
            return None
        return now + self.ttl_seconds

    async def append(self, session_id: str, message: ChatMessage) -> None:
        now = time.time()
        async with self.async_session_maker.begin() as session:
            chat_session = await session.get(ChatSessionModel, session_id)
            if chat_session is None:
                session.add(
                    ChatSessionModel(
                        session_id=session_id, expires_at=self._expiry(now)
                    )
                )
                await session.flush()
            else:
                expires_at = chat_session.expires_at
                if expires_at is not None and expires_at <= now:
                    # An expired session starts over empty.
                    logger.debug(f'Session {session_id} expired, discarding it')
                    await session.execute(
                        delete(ChatMessageModel).where(
                            ChatMessageModel.session_id == session_id
                        )
                    )
                chat_session.expires_at = self._expiry(now)
            session.add(
                ChatMessageModel(
                    session_id=session_id,
                    role=message.role,
                    content=message.content,
                )
            )
        logger.debug(f'Appended {message.role} message to session {session_id}')

    async def read(self, session_id: str) -> list[ChatMessage]:
        async with self.async_session_maker() as session:
            chat_session = await session.get(ChatSessionModel, session_id)
            if chat_session is None:
                return []
            expires_at = chat_session.expires_at

            if expires_at is not None and expires_at <= time.time():
                logger.debug(f'Session {session_id} expired')
            else:
                result = await session.execute(
                    select(ChatMessageModel)
                    .where(ChatMessageModel.session_id == session_id)
                    .order_by(ChatMessageModel.id)
                )
                return [
                    ChatMessage(role=row.role, content=row.content)
                    for row in result.scalars()
                ]

        await self.delete(session_id)
        return []

    async def delete(self, session_id: str) -> None:
        async with self.async_session_maker.begin() as session:
            await session.execute(
                delete(ChatMessageModel).where(
                    ChatMessageModel.session_id == session_id
                )
            )
            result = await session.execute(
                delete(ChatSessionModel).where(
                    ChatSessionModel.session_id == session_id
                )
            )
        if result.rowcount > 0:
            logger.info(f'Session {session_id} deleted successfully.')
        else:
            logger.debug(f'No stored session {session_id} to delete.')
