"""Administrator moderation endpoints.

All endpoints require the X-Admin-Password header.

- GET /api/admin/records?status= - All records, optionally filtered by status
- GET /api/admin/records/pending - The moderation queue
- POST /api/admin/records/{record_id}/review - Approve or reject a record
"""

import structlog
from fastapi import APIRouter, Depends, Query, status

from pinwall.api.dependencies import get_moderation, get_uow, require_admin
from pinwall.api.schemas import AdminRecordDTO, ReviewRequest
from pinwall.models.record import RecordStatus
from pinwall.services.moderation import ModerationService
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


@router.get("/records", response_model=list[AdminRecordDTO], status_code=status.HTTP_200_OK)
async def list_all_records(
    record_status: RecordStatus | None = Query(default=None, alias="status"),
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> list[AdminRecordDTO]:
    """List every record, or only those in ``status``, newest first."""
    records = await moderation.list_records(uow, record_status)
    return [AdminRecordDTO.from_hydrated(r) for r in records]


@router.get(
    "/records/pending", response_model=list[AdminRecordDTO], status_code=status.HTTP_200_OK
)
async def list_pending_records(
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> list[AdminRecordDTO]:
    """List records awaiting review, newest first."""
    records = await moderation.list_records(uow, RecordStatus.PENDING)
    logger.debug("pending_records_listed", total=len(records))
    return [AdminRecordDTO.from_hydrated(r) for r in records]


@router.post(
    "/records/{record_id}/review",
    response_model=AdminRecordDTO,
    status_code=status.HTTP_200_OK,
)
async def review_record(
    record_id: str,
    request: ReviewRequest,
    uow: UnitOfWork = Depends(get_uow),
    moderation: ModerationService = Depends(get_moderation),
) -> AdminRecordDTO:
    """Approve or reject a record.

    Reviewing an already reviewed record overwrites the previous decision.
    Rejection deletes the record's files.

    Raises:
        InvalidStatusError (400): status is not approved or rejected
        NotFoundError (404): Record missing
    """
    hydrated = await moderation.review(uow, record_id, request.status)
    return AdminRecordDTO.from_hydrated(hydrated)
