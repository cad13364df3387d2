"""Comment entity - immutable remark on an approved record."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from pinwall.core.timezone import utc_now


class Comment(SQLModel, table=True):
    """Comment is append-only; it is never edited or deleted."""

    __tablename__ = "comments"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    record_id: str = Field(foreign_key="records.id", index=True, max_length=32)
    content: str
    commenter_identity: str = Field(max_length=64)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime, index=True)
