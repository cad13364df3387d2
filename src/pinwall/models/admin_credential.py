"""AdminCredential entity - the single administrator password hash."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from pinwall.core.timezone import utc_now

ADMIN_CREDENTIAL_ID = 1


class AdminCredential(SQLModel, table=True):
    """Single-row table (id is always 1) holding the bcrypt hash.

    The hash string is self-describing (scheme, cost and salt included).
    """

    __tablename__ = "admin_credentials"  # type: ignore[assignment]

    id: int = Field(default=ADMIN_CREDENTIAL_ID, primary_key=True)
    password_hash: str = Field(max_length=128)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
