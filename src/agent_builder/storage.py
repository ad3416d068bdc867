"""Agent record persistence with async SQLAlchemy.

Provides the ``agents`` table model, engine/session management for
PostgreSQL via asyncpg, and a small repository used by the provisioning
service and the HTTP API.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text, select
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import NullPool

from .config import config
from .exceptions import UpstreamServiceError
from .logging_utils import get_logger
from .models import AgentRecordData

logger = get_logger(__name__)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class AgentRecord(Base):
    """A provisioned voice agent.

    Attributes:
        id: Unique identifier (UUID).
        name: Person or company name from the form.
        email: Contact email from the form.
        is_company: Whether the agent represents a company.
        url: Profile or company URL.
        use_case: What the agent is for.
        voice_style: Voice persona.
        scraped_data: Raw profile snapshot as submitted.
        agent_prompt: Prompt the voice agent was created with.
        knowledge_base: Knowledge base derived from the profile.
        conversation_flow: Conversation flow snapshot (wire format).
        eleven_labs_agent_id: Agent id returned by ElevenLabs.
        user_id: Opaque id of the owning user.
        created_at: Timestamp when the agent was created.
    """

    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_company: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    use_case: Mapped[str] = mapped_column(String(50), nullable=False)
    voice_style: Mapped[str] = mapped_column(String(50), nullable=False)

    scraped_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    agent_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    knowledge_base: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    conversation_flow: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list
    )

    eleven_labs_agent_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="ElevenLabs conversational agent id"
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    def __repr__(self) -> str:
        return f"<AgentRecord(id={self.id!r}, name={self.name!r})>"


class DatabaseManager:
    """Manages the async database engine and session factory."""

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def get_database_url(cls) -> str:
        """Get the database URL from configuration.

        Returns:
            PostgreSQL connection URL with asyncpg driver.

        Raises:
            ConfigError: If DATABASE_URL is not set.
            ValueError: If DATABASE_URL is not a PostgreSQL URL.
        """
        config.validate_for_database()
        database_url = config.DATABASE_URL

        # Convert postgresql:// to postgresql+asyncpg:// if needed
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace(
                "postgresql://", "postgresql+asyncpg://", 1
            )
        elif not database_url.startswith("postgresql+asyncpg://"):
            raise ValueError(
                "DATABASE_URL must start with 'postgresql://' or 'postgresql+asyncpg://'"
            )

        return database_url

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            cls._engine = create_async_engine(
                cls.get_database_url(),
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=3600,
                echo=config.DATABASE_ECHO,
            )
            logger.info("Database engine created successfully")
        return cls._engine

    @classmethod
    def get_session_factory(cls) -> async_sessionmaker[AsyncSession]:
        if cls._session_factory is None:
            cls._session_factory = async_sessionmaker(
                cls.get_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return cls._session_factory

    @classmethod
    async def create_tables(cls) -> None:
        """Create all tables. Call once at application startup."""
        async with cls.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    @classmethod
    async def close(cls) -> None:
        """Dispose of the engine and release all connections."""
        if cls._engine is not None:
            await cls._engine.dispose()
            cls._engine = None
            cls._session_factory = None
            logger.info("Database engine closed")


def create_test_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine for tests (NullPool, no echo).

    Args:
        database_url: Optional database URL. Defaults to the configured one.
    """
    if database_url is None:
        database_url = DatabaseManager.get_database_url()

    return create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )


class AgentRepository:
    """Reads and writes agent records.

    Args:
        session_factory: Factory for async sessions. Defaults to the
            application-wide factory from :class:`DatabaseManager`.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.logger = get_logger(__name__)
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = DatabaseManager.get_session_factory()
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on exception."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def insert(self, **fields: Any) -> AgentRecordData:
        """Insert one agent record and return it as persisted.

        Raises:
            UpstreamServiceError: If the database rejects the insert.
        """
        record = AgentRecord(**fields)
        try:
            async with self.session() as session:
                session.add(record)
                await session.flush()
                await session.refresh(record)
                data = AgentRecordData.model_validate(record)
        except Exception as e:
            self.logger.error(f"Failed to store agent record: {e}")
            raise UpstreamServiceError(
                f"Failed to store agent record: {e}", stage="persistence"
            ) from e

        self.logger.info(
            "Agent record stored",
            extra={"agent_record_id": data.id, "user_id": data.user_id}
        )
        return data

    async def list_agents(self, user_id: Optional[str] = None) -> List[AgentRecordData]:
        """Return agent records, newest first, optionally for one user."""
        stmt = select(AgentRecord).order_by(AgentRecord.created_at.desc())
        if user_id is not None:
            stmt = stmt.where(AgentRecord.user_id == user_id)

        async with self.session() as session:
            result = await session.execute(stmt)
            return [AgentRecordData.model_validate(row) for row in result.scalars().all()]
