"""Comment repository for Pinwall."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pinwall.models.comment import Comment


class CommentRepository:
    """Repository for append-only Comment entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, comment: Comment) -> Comment:
        """Persist new comment."""
        self.session.add(comment)
        await self.session.flush()
        return comment

    async def list_by_record(self, record_id: str) -> list[Comment]:
        """Retrieve comments of a record, oldest first.

        Args:
            record_id: Record the comments belong to

        Returns:
            Comments ordered by created_at ascending (empty list if none)
        """
        result = await self.session.execute(
            select(Comment)
            .where(Comment.record_id == record_id)  # type: ignore[arg-type]
            .order_by(Comment.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
