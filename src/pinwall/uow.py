"""Unit of Work pattern for Pinwall.

Provides transaction management with automatic commit/rollback and access to all repositories.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pinwall.repositories.admin_credential import AdminCredentialRepository
from pinwall.repositories.comment import CommentRepository
from pinwall.repositories.record import RecordRepository
from pinwall.repositories.record_file import RecordFileRepository
from pinwall.repositories.upload_key import UploadKeyRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Unit of Work pattern implementation.

    Manages database transactions and provides access to all repositories.
    Use as async context manager for automatic commit/rollback.

    Example:
        async with await uow_factory() as uow:
            record = await uow.records.get_by_id(record_id)
            record.apply_review("approved")
            # Automatically commits on successful exit
            # Automatically rolls back on exception
    """

    def __init__(self, session: AsyncSession):
        """Initialize UnitOfWork with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

        self.record_files = RecordFileRepository(session)
        self.records = RecordRepository(session, self.record_files)
        self.comments = CommentRepository(session)
        self.upload_keys = UploadKeyRepository(session)
        self.admin_credentials = AdminCredentialRepository(session)

    async def commit(self) -> None:
        """Commit explicitly before the context exits.

        Used when a side effect (file deletion) must only happen once the
        database change is durable.
        """
        await self.session.commit()

    async def __aenter__(self):
        """Enter async context manager.

        Returns:
            self: UnitOfWork instance with all repositories available
        """
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager with automatic commit/rollback.

        The session is closed in both cases.

        Returns:
            False: Always re-raise exceptions after rollback
        """
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.info("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Create a factory function that produces UnitOfWork instances.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        Callable that creates UnitOfWork instances from new sessions

    Example:
        session_factory = setup_db_session(db_url, pool_size=20)
        uow_factory = create_uow_factory(session_factory)

        async with await uow_factory() as uow:
            await uow.records.list_by_status(RecordStatus.APPROVED)
    """

    async def _create_uow():
        """Create a new UnitOfWork instance with a new session."""
        session = session_factory()
        return UnitOfWork(session)

    return _create_uow
