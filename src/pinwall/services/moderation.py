"""Upload and moderation workflow.

Ties together key redemption, file storage, the record state machine, the
comment ledger and the edit gate. Every method takes the caller's unit of
work; validation and domain-rule failures are raised before any durable
mutation.
"""

import random

import structlog

from pinwall.models.comment import Comment
from pinwall.models.record import Record, RecordStatus, parse_review_status
from pinwall.models.record_file import RecordFile
from pinwall.repositories.record import HydratedRecord
from pinwall.services.edit_gate import EditGate, RecordUpdate
from pinwall.services.exceptions import NotFoundError, ValidationError
from pinwall.services.identity import Identity
from pinwall.services.storage import FileStorage, IncomingFile
from pinwall.services.upload_keys import UploadKeyService
from pinwall.services.upload_policy import UploadPolicy
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()


class ModerationService:
    """Record lifecycle operations: submit, list, review, comment, edit."""

    def __init__(
        self,
        storage: FileStorage,
        policy: UploadPolicy,
        keys: UploadKeyService,
        rng: random.Random | None = None,
    ):
        self.storage = storage
        self.policy = policy
        self.keys = keys
        self.rng = rng
        self.edit_gate = EditGate(storage, policy)

    async def submit_upload(
        self,
        uow: UnitOfWork,
        token: str,
        identity: Identity,
        files: list[IncomingFile],
        caption: str = "",
        title: str | None = None,
        editable: bool = False,
    ) -> HydratedRecord:
        """Redeem an upload key and create a pending record.

        Steps:
        1. Validate the image set (nothing written yet)
        2. Consume the key (same transaction as the record)
        3. Write files concurrently to storage
        4. Insert the record and file index rows, commit

        If step 4 fails, the files written in step 3 are removed and the key
        consumption rolls back with the transaction.

        Raises:
            ValidationError: Missing or invalid files
            InvalidKeyError: Missing, foreign, consumed or expired key
            StorageError: Files could not be written
        """
        self.policy.check(files)
        await self.keys.validate_and_consume(uow, token, identity)

        stored = await self.storage.write_all(files, identity.short)
        try:
            record = Record(
                caption=caption,
                title=(title or "").strip() or None,
                primary_filename=stored[0].filename,
                original_filename=stored[0].original_filename,
                file_size=stored[0].size,
                uploader_identity=identity.digest,
                upload_timestamp=self.keys.clock(),
                status=RecordStatus.PENDING,
                editable=editable,
                image_count=len(stored),
            )
            record_files = [
                RecordFile(
                    record_id=record.id,
                    filename=s.filename,
                    original_filename=s.original_filename,
                    file_size=s.size,
                )
                for s in stored
            ]
            hydrated = await uow.records.add(record, record_files)
            await uow.commit()
        except Exception:
            await self.storage.delete_many([s.filename for s in stored])
            raise

        logger.info(
            "record.created",
            record_id=record.id,
            uploader=identity.short,
            image_count=record.image_count,
            editable=record.editable,
        )
        return hydrated

    async def list_public(self, uow: UnitOfWork) -> list[HydratedRecord]:
        """Approved records that still have files, hydrated, newest first."""
        return await uow.records.list_public()

    async def list_records(
        self, uow: UnitOfWork, status: RecordStatus | None = None
    ) -> list[HydratedRecord]:
        """All records, or records in one status (administrator view)."""
        if status is None:
            return await uow.records.list_all()
        return await uow.records.list_by_status(status)

    async def get_public(self, uow: UnitOfWork, record_id: str) -> HydratedRecord:
        """Retrieve one approved record.

        Raises:
            NotFoundError: If the record is missing or not public (approved, with files)
        """
        hydrated = await uow.records.get_hydrated(record_id)
        if hydrated is None or not hydrated.record.is_public:
            raise NotFoundError(f"Record {record_id} not found.")
        return hydrated

    async def random_public(self, uow: UnitOfWork) -> HydratedRecord | None:
        """Uniformly random public record, None if none exist."""
        return await uow.records.get_random_approved(self.rng)

    async def review(self, uow: UnitOfWork, record_id: str, status: str) -> HydratedRecord:
        """Apply an administrator decision to a record.

        Re-reviewing overwrites the previous decision. Rejection removes every
        attached file: the index rows go in the same transaction as the status
        change, the file bodies are deleted once it has committed.

        Raises:
            InvalidStatusError: If status is not approved or rejected
            NotFoundError: If the record does not exist
        """
        new_status = parse_review_status(status)

        hydrated = await uow.records.get_hydrated(record_id)
        if hydrated is None:
            raise NotFoundError(f"Record {record_id} not found.")

        record = hydrated.record
        previous = record.apply_review(new_status)
        if previous != RecordStatus.PENDING:
            logger.warning(
                "record.review_overwritten",
                record_id=record.id,
                previous=previous.value,
                status=new_status.value,
            )

        removed: list[str] = []
        if new_status == RecordStatus.REJECTED:
            removed = await uow.record_files.delete_for_record(record.id)
            record.image_count = 0
            hydrated = HydratedRecord(record=record, files=[])

        await uow.records.save(record)
        await uow.commit()

        if removed:
            await self.storage.delete_many(removed)

        logger.info(
            "record.reviewed",
            record_id=record.id,
            status=new_status.value,
            files_removed=len(removed),
        )
        return hydrated

    async def add_comment(
        self, uow: UnitOfWork, record_id: str, content: str, identity: Identity
    ) -> Comment:
        """Append a comment to an approved record.

        Raises:
            ValidationError: If content is empty after trimming
            NotFoundError: If the record is missing or not approved
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Comment content must not be empty.")

        record = await uow.records.get_by_id(record_id)
        if record is None or not record.accepts_comments:
            raise NotFoundError(f"Record {record_id} not found or not approved.")

        comment = await uow.comments.add(
            Comment(
                record_id=record.id,
                content=text,
                commenter_identity=identity.digest,
                created_at=self.keys.clock(),
            )
        )
        logger.info("comment.added", record_id=record.id, commenter=identity.short)
        return comment

    async def list_comments(self, uow: UnitOfWork, record_id: str) -> list[Comment]:
        """Comments of an approved record, oldest first.

        Raises:
            NotFoundError: If the record is missing or not approved
        """
        record = await uow.records.get_by_id(record_id)
        if record is None or not record.accepts_comments:
            raise NotFoundError(f"Record {record_id} not found or not approved.")
        return await uow.comments.list_by_record(record_id)

    async def edit(
        self, uow: UnitOfWork, record_id: str, update: RecordUpdate, identity: Identity
    ) -> HydratedRecord:
        """Edit an approved, editable record (see EditGate)."""
        return await self.edit_gate.apply(uow, record_id, update, identity)
