"""RecordFile entity - one stored image attached to a record."""

from typing import Optional

from sqlmodel import Field, SQLModel


class RecordFile(SQLModel, table=True):
    """RecordFile maps a stored filename to its owning record.

    Each record has at most one ``is_main`` file; ``position`` keeps upload order.
    """

    __tablename__ = "record_files"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    record_id: str = Field(foreign_key="records.id", index=True, max_length=32)
    filename: str = Field(max_length=255, unique=True)
    original_filename: Optional[str] = Field(default=None, max_length=255)
    file_size: int = Field(default=0, ge=0)
    is_main: bool = Field(default=False)
    position: int = Field(default=0, ge=0)
