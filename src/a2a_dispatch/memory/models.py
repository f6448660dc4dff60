try:
    from sqlalchemy import Float, ForeignKey, Integer, String, Text
    from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
except ImportError as e:
    raise ImportError(
        'Database models require SQLAlchemy. '
        'Install with one of: '
        "'pip install a2a-dispatch[postgresql]', "
        "'pip install a2a-dispatch[sqlite]', "
        "or 'pip install a2a-dispatch[sql]'"
    ) from e


class Base(DeclarativeBase):
    """Base class for the conversation memory tables."""


class ChatSessionModel(Base):
    """One row per conversation; carries the session's expiry."""

    __tablename__ = 'chat_sessions'

    session_id: Mapped[str] = mapped_column(String, primary_key=True)
    # Epoch seconds; NULL means the session never expires.
    expires_at: Mapped[float | None] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return (
            f'<ChatSessionModel(session_id="{self.session_id}", '
            f'expires_at={self.expires_at})>'
        )


class ChatMessageModel(Base):
    """A single message belonging to a chat session."""

    __tablename__ = 'chat_messages'

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    session_id: Mapped[str] = mapped_column(
        String,
        ForeignKey('chat_sessions.session_id', ondelete='CASCADE'),
        index=True,
    )
    role: Mapped[str] = mapped_column(String(32))
    content: Mapped[str] = mapped_column(Text)

    def __repr__(self) -> str:
        return (
            f'<ChatMessageModel(id={self.id}, session_id="{self.session_id}", '
            f'role="{self.role}")>'
        )
