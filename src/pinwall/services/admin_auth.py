"""Administrator credential check.

The single administrator password is stored as a bcrypt hash (passlib
``CryptContext``) in the ``admin_credentials`` table. The hash string carries
its own salt and cost factor. Hashing and verification are CPU-bound and run
in a worker thread so the event loop keeps serving requests.
"""

import asyncio

import structlog
from passlib.context import CryptContext

from pinwall.uow import UnitOfWork

logger = structlog.get_logger()

BCRYPT_ROUNDS = 12


class AdminAuthService:
    """Set and verify the administrator password."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """Initialize service.

        Args:
            rounds: bcrypt cost factor for newly stored hashes
        """
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    async def hash_password(self, password: str) -> str:
        return await asyncio.to_thread(self.pwd_context.hash, password)

    async def set_password(self, uow: UnitOfWork, password: str) -> None:
        """Store a new administrator password (replaces any previous one).

        Raises:
            ValueError: If password is empty
        """
        if not password:
            raise ValueError("Administrator password must not be empty")
        await uow.admin_credentials.set(password_hash=await self.hash_password(password))
        logger.info("admin.password_set")

    async def ensure_password(self, uow: UnitOfWork, password: str) -> bool:
        """Bootstrap the credential row if it does not exist yet.

        Returns:
            True if a credential was created, False if one already existed
        """
        if await uow.admin_credentials.get() is not None:
            return False
        if not password:
            logger.warning("admin.password_not_configured")
            return False
        await self.set_password(uow, password)
        return True

    async def verify(self, uow: UnitOfWork, password: str | None) -> bool:
        """Check a presented password against the stored hash.

        Returns:
            True if the password matches, False otherwise (including when no
            credential has been configured)
        """
        if not password:
            return False
        credential = await uow.admin_credentials.get()
        if credential is None:
            return False
        return await asyncio.to_thread(
            self.pwd_context.verify, password, credential.password_hash
        )
