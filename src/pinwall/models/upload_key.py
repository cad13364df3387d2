"""UploadKey entity - single-use, identity-bound, day-scoped upload authorization."""

from datetime import date, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from pinwall.core.timezone import utc_now


class UploadKey(SQLModel, table=True):
    """UploadKey rows are never deleted; they double as rate-limit history.

    A key is redeemable only while ``consumed`` is False and ``issued_date``
    is today (UTC). Keys from prior days are permanently invalid.
    """

    __tablename__ = "keys"  # type: ignore[assignment]

    token: str = Field(primary_key=True, max_length=64)
    identity: str = Field(max_length=64, index=True)
    network_address: str = Field(max_length=255)
    client_agent: str = Field(default="", max_length=1024)
    issued_date: date = Field(index=True)
    consumed: bool = Field(default=False)
    issued_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
