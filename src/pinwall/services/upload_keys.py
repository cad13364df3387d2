"""Upload key issuance and validation.

Keys are deterministic per identity per calendar day (HMAC-SHA256 over
address, agent and date, keyed with the server secret), so there is never
more than one valid key per identity per day. Expiry is evaluated lazily by
date comparison; no sweeper runs.
"""

import hashlib
import hmac
from datetime import date

import structlog

from pinwall.core.timezone import Clock, utc_now
from pinwall.services.exceptions import InvalidKeyError, RateLimitError
from pinwall.services.identity import Identity
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()


def derive_token(secret: str, identity: Identity, day: date) -> str:
    """Derive the upload token of an identity for a calendar day.

    Args:
        secret: Server secret keying the HMAC
        identity: Client identity
        day: Calendar day (UTC)

    Returns:
        Hex-encoded HMAC-SHA256 digest (64 chars)
    """
    message = "\x1f".join([identity.network_address, identity.client_agent, day.isoformat()])
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class UploadKeyService:
    """Issue and redeem single-use upload keys."""

    def __init__(self, secret: str, clock: Clock = utc_now):
        """Initialize service.

        Args:
            secret: Server secret keying token derivation
            clock: Returns the current naive UTC datetime (injectable for tests)
        """
        self.secret = secret
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    async def request_key(self, uow: UnitOfWork, identity: Identity) -> str:
        """Issue today's upload key for an identity.

        Re-requesting on the same day returns the same token. A key that is
        already spent is never re-armed: if the rate-limit check read before
        the consuming upload committed, the spent key is caught after the
        upsert and the request is refused.

        Args:
            uow: Active unit of work
            identity: Requesting client

        Returns:
            Upload token

        Raises:
            RateLimitError: If the identity already created a record today
        """
        now = self.clock()
        today = now.date()

        if await uow.records.has_upload_on(identity.digest, today):
            logger.info("upload_key.rate_limited", identity=identity.short, day=today.isoformat())
            raise RateLimitError("You have already uploaded today. Please come back tomorrow.")

        token = derive_token(self.secret, identity, today)
        await uow.upload_keys.upsert(
            token=token,
            identity=identity.digest,
            network_address=identity.network_address,
            client_agent=identity.client_agent,
            issued_date=today,
            issued_at=now,
        )
        if await uow.upload_keys.is_consumed(token):
            logger.info("upload_key.already_spent", identity=identity.short, day=today.isoformat())
            raise RateLimitError("You have already uploaded today. Please come back tomorrow.")

        logger.info("upload_key.issued", identity=identity.short, day=today.isoformat())
        return token

    async def validate_and_consume(self, uow: UnitOfWork, token: str, identity: Identity) -> None:
        """Redeem an upload key.

        Args:
            uow: Active unit of work (consumption commits with the upload)
            token: Upload token presented by the client
            identity: Redeeming client

        Raises:
            InvalidKeyError: If the token is missing, bound to another identity,
                already consumed, or was issued on a prior day
        """
        if not token:
            raise InvalidKeyError("Upload key is required.")

        consumed = await uow.upload_keys.consume(token, identity.digest, self.today())
        if not consumed:
            logger.warning("upload_key.rejected", identity=identity.short)
            raise InvalidKeyError("Upload key is invalid, expired or already used.")

        logger.info("upload_key.consumed", identity=identity.short)
