import logging
from typing import AsyncGenerator, List, Optional

from fastapi import Request
from sqlalchemy import inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()


def create_engine_for(database_url: str) -> AsyncEngine:
    """Create the process-wide async engine for the given URL."""
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize the database by creating the messages table and its indexes.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {engine.url!r}")
    try:
        # Import models to register them with Base.metadata
        from messagewall.models import Message  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get a database session from the app's session factory.
    Yields a session and ensures it's closed after use.
    """
    async with request.app.state.session_factory() as db:
        yield db


async def check_db_health(session_factory: async_sessionmaker) -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy and the messages table exists, False otherwise.
    """
    try:
        async with session_factory() as db:
            await db.execute(text("SELECT 1"))
            conn = await db.connection()
            has_table = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table("messages")
            )
            if not has_table:
                logger.error("Database schema not applied: 'messages' table not found")
                return False
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Message Repository Functions
# =============================================================================

async def create_message(
    db: AsyncSession,
    *,
    identity: str,
    nickname: str,
    content: str,
    kind: str,
    created_at: int,
):
    """
    Insert a new message. Single statement, no upsert.

    Args:
        db: Database session
        identity: Token of the posting client
        nickname: Display name, already clamped
        content: HTML-escaped message body
        kind: "wall" or "note"
        created_at: Server time in milliseconds since epoch

    Returns:
        The persisted Message with its assigned id

    Raises:
        SQLAlchemyError: if the insert fails; the session is rolled back first
    """
    from messagewall.models import Message

    logger.debug(f"Creating message: kind={kind}, identity={identity}")

    message = Message(
        identity=identity,
        nickname=nickname,
        content=content,
        kind=kind,
        created_at=created_at,
    )

    db.add(message)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create message for {identity}: {e}")
        raise

    logger.info(f"Message created successfully: {message.id}")
    return message


async def list_messages(
    db: AsyncSession,
    *,
    limit: int,
    offset: int,
    kind: Optional[str] = None,
    identity: Optional[str] = None,
) -> List:
    """
    Retrieve messages newest first.

    Args:
        db: Database session
        limit: Maximum number of messages to return
        offset: Number of messages to skip
        kind: Only messages of this kind; None means every kind
        identity: Only messages posted by this identity; None means everyone

    Returns:
        List of Message rows ordered by created_at DESC, id DESC
    """
    from messagewall.models import Message

    logger.debug(f"Querying messages: kind={kind}, limit={limit}, offset={offset}")

    query = select(Message)

    if identity is not None:
        query = query.where(Message.identity == identity)

    if kind is not None:
        query = query.where(Message.kind == kind)

    query = (
        query.order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .offset(offset)
    )

    result = await db.execute(query)
    messages = list(result.scalars().all())
    logger.debug(f"Retrieved {len(messages)} messages")
    return messages
