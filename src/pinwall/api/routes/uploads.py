"""Upload authorization and submission endpoints.

- POST /api/keys - Issue today's single-use upload key for the calling client
- POST /api/upload - Redeem a key and submit images with caption text

Each client (network address + User-Agent) may create one record per UTC day.
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from pinwall.api.dependencies import get_identity, get_moderation, get_upload_keys, get_uow
from pinwall.api.schemas import KeyResponse, RecordDTO
from pinwall.services.identity import Identity
from pinwall.services.moderation import ModerationService
from pinwall.services.storage import IncomingFile
from pinwall.services.upload_keys import UploadKeyService
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["uploads"])


async def read_incoming(files: list[UploadFile] | None) -> list[IncomingFile]:
    """Read multipart uploads into memory."""
    incoming = []
    for upload in files or []:
        incoming.append(
            IncomingFile(original_filename=upload.filename or "", content=await upload.read())
        )
    return incoming


@router.post("/keys", response_model=KeyResponse, status_code=status.HTTP_200_OK)
async def request_upload_key(
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
    upload_keys: UploadKeyService = Depends(get_upload_keys),
) -> KeyResponse:
    """Issue today's upload key for the calling client.

    Returns:
        KeyResponse with the token

    Raises:
        RateLimitError (400): The client already uploaded today
    """
    token = await upload_keys.request_key(uow, identity)
    return KeyResponse(token=token)


@router.post("/upload", response_model=RecordDTO, status_code=status.HTTP_201_CREATED)
async def upload(
    key: str = Form(default=""),
    text: str = Form(default=""),
    title: str | None = Form(default=None),
    editable: bool = Form(default=False),
    image: list[UploadFile] | None = File(default=None),
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> RecordDTO:
    """Redeem an upload key and create a pending record.

    Multipart fields:
        key: Upload key from POST /api/keys
        text: Caption text
        title: Optional title
        editable: Whether the record may be edited after approval
        image: One or more image files (first is the primary image)

    Raises:
        ValidationError (400): Missing, empty, oversized or unsupported files
        InvalidKeyError (400): Missing, foreign, used or expired key
    """
    files = await read_incoming(image)
    logger.info(
        "upload.received",
        client=identity.short,
        file_count=len(files),
        total_bytes=sum(len(f.content) for f in files),
    )
    hydrated = await moderation.submit_upload(
        uow,
        token=key.strip(),
        identity=identity,
        files=files,
        caption=text,
        title=title,
        editable=editable,
    )
    return RecordDTO.from_hydrated(hydrated)
