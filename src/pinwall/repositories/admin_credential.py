"""AdminCredential repository for Pinwall."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pinwall.core.timezone import utc_now
from pinwall.models.admin_credential import ADMIN_CREDENTIAL_ID, AdminCredential


class AdminCredentialRepository:
    """Repository for the single-row administrator credential table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self) -> AdminCredential | None:
        """Retrieve the administrator credential, None if not yet set."""
        result = await self.session.execute(
            select(AdminCredential).where(AdminCredential.id == ADMIN_CREDENTIAL_ID)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def set(self, password_hash: str) -> AdminCredential:
        """Create or replace the administrator credential."""
        credential = await self.get()
        if credential is None:
            credential = AdminCredential(id=ADMIN_CREDENTIAL_ID, password_hash=password_hash)
            self.session.add(credential)
        else:
            credential.password_hash = password_hash
            credential.updated_at = utc_now()
        await self.session.flush()
        return credential
