"""FastAPI dependencies for request context and common operations.

This module provides reusable FastAPI dependencies for:
- Unit of Work and service access (from app.state)
- Client identity derivation from the connection
- Administrator authentication
"""

from typing import Annotated, AsyncGenerator, Callable

import structlog
from fastapi import Depends, Header, HTTPException, Request, status

from pinwall.core.config import Settings
from pinwall.services.admin_auth import AdminAuthService
from pinwall.services.identity import Identity, fingerprint
from pinwall.services.moderation import ModerationService
from pinwall.services.storage import FileStorage
from pinwall.services.upload_keys import UploadKeyService
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()


def get_settings(request: Request) -> Settings:
    """Get the application settings loaded at startup."""
    return request.app.state.settings


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.post("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.records.get_by_id(record_id)
    """
    return request.app.state.uow_factory


async def get_uow(request: Request) -> AsyncGenerator[UnitOfWork, None]:
    """Yield a request-scoped UnitOfWork.

    Committed on successful request completion, rolled back on exception.
    """
    uow_factory = request.app.state.uow_factory
    async with await uow_factory() as uow:
        yield uow


def get_moderation(request: Request) -> ModerationService:
    return request.app.state.moderation


def get_storage(request: Request) -> FileStorage:
    return request.app.state.storage


def get_upload_keys(request: Request) -> UploadKeyService:
    return request.app.state.upload_keys


def get_admin_auth(request: Request) -> AdminAuthService:
    return request.app.state.admin_auth


def get_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Derive the client identity from the connection.

    Uses the first X-Forwarded-For hop when TRUST_PROXY_HEADERS is enabled,
    otherwise the socket peer address, plus the User-Agent header.
    """
    address = ""
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        address = forwarded.split(",")[0].strip()
    if not address and request.client is not None:
        address = request.client.host
    return fingerprint(address, request.headers.get("user-agent"))


async def require_admin(
    x_admin_password: Annotated[str | None, Header()] = None,
    uow: UnitOfWork = Depends(get_uow),
    admin_auth: AdminAuthService = Depends(get_admin_auth),
) -> None:
    """Reject the request with 401 unless X-Admin-Password is correct.

    Raises:
        HTTPException: 401 Unauthorized if the header is missing or wrong
    """
    if not x_admin_password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Admin-Password header"
        )

    if not await admin_auth.verify(uow, x_admin_password):
        logger.warning("admin.authentication_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid administrator password"
        )
