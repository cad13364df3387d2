"""UploadKey repository for Pinwall.

Provides UPSERT issuance and compare-and-set consumption of upload keys.
"""

from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pinwall.models.upload_key import UploadKey


class UploadKeyRepository:
    """Repository for UploadKey entities.

    Methods:
    - get_by_token: Retrieve key row by token
    - upsert: Issue (or re-issue) a key for today
    - is_consumed: Whether a key has been spent
    - consume: Atomically mark a valid key consumed
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(UploadKey)
        if dialect == "sqlite":
            return sqlite_insert(UploadKey)
        raise NotImplementedError(f"UPSERT not supported for dialect {dialect}")

    async def get_by_token(self, token: str) -> UploadKey | None:
        """Retrieve key by token.

        Args:
            token: Upload key token

        Returns:
            UploadKey if found, None otherwise
        """
        result = await self.session.execute(select(UploadKey).where(UploadKey.token == token))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def upsert(
        self,
        token: str,
        identity: str,
        network_address: str,
        client_agent: str,
        issued_date: date,
        issued_at: datetime,
    ) -> None:
        """Issue a key (UPSERT).

        Uses INSERT ... ON CONFLICT (token) DO UPDATE so that re-requesting on
        the same day overwrites the existing row instead of creating a second
        valid key. ``consumed`` is left as is: a spent key stays spent even when a
        re-request raced the upload that consumed it.

        Args:
            token: Deterministic token for (identity, day)
            identity: Identity digest the key is bound to
            network_address: Raw client address (audit)
            client_agent: Raw client agent (audit)
            issued_date: Calendar day of issuance (UTC)
            issued_at: Issuance timestamp
        """
        values = {
            "token": token,
            "identity": identity,
            "network_address": network_address,
            "client_agent": client_agent,
            "issued_date": issued_date,
            "consumed": False,
            "issued_at": issued_at,
        }
        stmt = self._insert().values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["token"],
            set_={
                "identity": identity,
                "issued_date": issued_date,
                "issued_at": issued_at,
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def is_consumed(self, token: str) -> bool:
        """Read the current ``consumed`` flag of a key (False if the key is unknown)."""
        result = await self.session.execute(
            select(UploadKey.consumed).where(UploadKey.token == token)  # type: ignore[arg-type]
        )
        return bool(result.scalar_one_or_none())

    async def consume(self, token: str, identity: str, today: date) -> bool:
        """Mark a key consumed if, and only if, it is currently redeemable.

        Single conditional UPDATE (compare-and-set on ``consumed``): two
        concurrent requests for the same token cannot both succeed.

        Query explanation:
        - WHERE token/identity match: key bound to this client
        - AND consumed = false: not yet spent
        - AND issued_date = today: keys from prior days are dead

        Args:
            token: Upload key token
            identity: Identity digest of the redeeming client
            today: Current calendar day (UTC)

        Returns:
            True if the key was consumed by this call, False otherwise
        """
        result = await self.session.execute(
            update(UploadKey)
            .where(
                UploadKey.token == token,  # type: ignore[arg-type]
                UploadKey.identity == identity,  # type: ignore[arg-type]
                UploadKey.consumed == False,  # type: ignore[arg-type]  # noqa: E712
                UploadKey.issued_date == today,  # type: ignore[arg-type]
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined]
