"""Record entity - a moderated submission with its review lifecycle.

Lifecycle:
    pending --review--> approved | rejected

Review may be repeated on an already reviewed record (administrator
correction); the new decision overwrites the old one. Nothing moves a record
back to pending. Approved records stay editable only while ``editable`` is set.
"""

import secrets
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from pinwall.core.timezone import utc_now
from pinwall.services.exceptions import InvalidStatusError, NotEditableError


class RecordStatus(str, Enum):
    """Record moderation status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


REVIEW_STATUSES = (RecordStatus.APPROVED, RecordStatus.REJECTED)


def generate_record_id() -> str:
    """Generate a non-sequential record id.

    12 hex chars of millisecond timestamp followed by 20 random hex chars.
    """
    millis = int(utc_now().timestamp() * 1000)
    return f"{millis:012x}{secrets.token_hex(10)}"


def parse_review_status(value: str) -> RecordStatus:
    """Parse a review decision.

    Raises:
        InvalidStatusError: If value is not "approved" or "rejected"
    """
    try:
        status = RecordStatus(value)
    except ValueError:
        raise InvalidStatusError(
            f"Invalid review status {value!r}. Expected one of: approved, rejected."
        )
    if status not in REVIEW_STATUSES:
        raise InvalidStatusError(
            f"Invalid review status {value!r}. Expected one of: approved, rejected."
        )
    return status


class Record(SQLModel, table=True):
    """Record represents one submission (caption + files) under moderation."""

    __tablename__ = "records"  # type: ignore[assignment]

    id: str = Field(default_factory=generate_record_id, primary_key=True, max_length=32)
    caption: str = Field(default="")
    title: Optional[str] = Field(default=None, max_length=255)
    primary_filename: str = Field(max_length=255)
    original_filename: Optional[str] = Field(default=None, max_length=255)
    file_size: int = Field(default=0, ge=0)
    uploader_identity: str = Field(max_length=64, index=True)
    upload_timestamp: datetime = Field(default_factory=utc_now, sa_type=DateTime, index=True)
    status: RecordStatus = Field(default=RecordStatus.PENDING, index=True)
    editable: bool = Field(default=False)
    image_count: int = Field(default=0, ge=0)
    reviewed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)

    @property
    def is_public(self) -> bool:
        """Approved records with files left are listed, randomly surfaced and commentable.

        A rejected record has lost its files; approving it again keeps it hidden.
        """
        return self.status == RecordStatus.APPROVED and self.image_count > 0

    @property
    def accepts_comments(self) -> bool:
        return self.is_public

    def apply_review(self, status: RecordStatus | str) -> RecordStatus:
        """Apply an administrator review decision.

        Args:
            status: approved or rejected

        Returns:
            The previous status

        Raises:
            InvalidStatusError: If status is not approved or rejected
        """
        raw = status.value if isinstance(status, RecordStatus) else status
        new_status = parse_review_status(raw)
        previous = self.status
        self.status = new_status
        self.reviewed_at = utc_now()
        self.updated_at = self.reviewed_at
        return previous

    def ensure_editable(self, identity: str | None = None) -> None:
        """Raise NotEditableError unless the record is approved and editable.

        Args:
            identity: Digest of the editing client; when given it must be the
                uploader's
        """
        if self.status != RecordStatus.APPROVED:
            raise NotEditableError(
                f"Record {self.id} is {self.status.value}. Only approved records can be edited."
            )
        if not self.editable:
            raise NotEditableError(f"Record {self.id} is locked and cannot be edited.")
        if identity is not None and identity != self.uploader_identity:
            raise NotEditableError(f"Record {self.id} can only be edited by its uploader.")
