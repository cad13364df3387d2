"""Public record endpoints.

- GET /api/records - Approved records with their files
- GET /api/records/random - One uniformly random approved record
- GET /api/records/{record_id} - One approved record
- PATCH|PUT /api/records/{record_id} - Edit an approved, editable record
- POST /api/records/{record_id}/comments - Comment on an approved record
- GET /api/records/{record_id}/comments - Comments, oldest first
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from pinwall.api.dependencies import get_identity, get_moderation, get_uow
from pinwall.api.routes.uploads import read_incoming
from pinwall.api.schemas import CommentDTO, CommentRequest, RecordDTO
from pinwall.services.edit_gate import RecordUpdate
from pinwall.services.identity import Identity
from pinwall.services.moderation import ModerationService
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()
router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("", response_model=list[RecordDTO], status_code=status.HTTP_200_OK)
async def list_records(
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> list[RecordDTO]:
    """List approved records, newest first, each with its files (primary first).

    Always returns 200 OK with empty array if nothing is approved yet.
    """
    records = await moderation.list_public(uow)
    logger.debug("records_listed", total=len(records))
    return [RecordDTO.from_hydrated(r) for r in records]


@router.get("/random", response_model=RecordDTO, status_code=status.HTTP_200_OK)
async def random_record(
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> RecordDTO:
    """Return one approved record chosen uniformly at random.

    Raises:
        HTTPException 404: No approved record exists
    """
    hydrated = await moderation.random_public(uow)
    if hydrated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No records available")
    return RecordDTO.from_hydrated(hydrated)


@router.get("/{record_id}", response_model=RecordDTO, status_code=status.HTTP_200_OK)
async def get_record(
    record_id: str,
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> RecordDTO:
    """Return one approved record (404 for missing, pending or rejected records)."""
    return RecordDTO.from_hydrated(await moderation.get_public(uow, record_id))


@router.api_route(
    "/{record_id}",
    methods=["PATCH", "PUT"],
    response_model=RecordDTO,
    status_code=status.HTTP_200_OK,
)
async def edit_record(
    record_id: str,
    text: str | None = Form(default=None),
    title: str | None = Form(default=None),
    image_count: int | None = Form(default=None),
    image: list[UploadFile] | None = File(default=None),
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> RecordDTO:
    """Edit caption, title or images of an approved, editable record.

    Supplying ``image`` replaces the whole image set. Omitted fields are left
    unchanged; a request with no fields returns the record as is.

    Raises:
        NotFoundError (404): Record missing
        NotEditableError (403): Record not approved or locked
        ValidationError (400): Invalid images or image_count
    """
    images = await read_incoming(image) if image else None
    update = RecordUpdate(caption=text, title=title, images=images, image_count=image_count)
    hydrated = await moderation.edit(uow, record_id, update, identity)
    return RecordDTO.from_hydrated(hydrated)


@router.post(
    "/{record_id}/comments", response_model=CommentDTO, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    record_id: str,
    request: CommentRequest,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> CommentDTO:
    """Add a comment to an approved record.

    Raises:
        400: Blank content
        NotFoundError (404): Record missing or not approved
    """
    comment = await moderation.add_comment(uow, record_id, request.content, identity)
    return CommentDTO.from_model(comment)


@router.get(
    "/{record_id}/comments", response_model=list[CommentDTO], status_code=status.HTTP_200_OK
)
async def list_comments(
    record_id: str,
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> list[CommentDTO]:
    """List comments of an approved record, oldest first."""
    comments = await moderation.list_comments(uow, record_id)
    return [CommentDTO.from_model(c) for c in comments]
