"""In-place editing of approved, editable records.

Image replacement is staged so that the record never references a file that
does not exist:

1. New files are written to storage.
2. The file index and record columns are swapped and committed.
3. Only then are the previous files deleted from storage.

If step 2 fails, the staged files are removed and the previous files stay
referenced. A crash between 2 and 3 leaves orphaned files, which the
reconciliation command cleans up.
"""

from dataclasses import dataclass

import structlog

from pinwall.core.timezone import utc_now
from pinwall.models.record_file import RecordFile
from pinwall.repositories.record import HydratedRecord
from pinwall.services.exceptions import NotFoundError, ValidationError
from pinwall.services.identity import Identity
from pinwall.services.storage import FileStorage, IncomingFile
from pinwall.services.upload_policy import UploadPolicy
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()


@dataclass
class RecordUpdate:
    """Partial update of a record. Fields left as None are unchanged."""

    caption: str | None = None
    title: str | None = None
    images: list[IncomingFile] | None = None
    image_count: int | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.caption is None
            and self.title is None
            and self.images is None
            and self.image_count is None
        )


class EditGate:
    """Apply RecordUpdate to records that are approved and editable."""

    def __init__(self, storage: FileStorage, policy: UploadPolicy):
        self.storage = storage
        self.policy = policy

    async def apply(
        self, uow: UnitOfWork, record_id: str, update: RecordUpdate, identity: Identity
    ) -> HydratedRecord:
        """Edit a record.

        Args:
            uow: Active unit of work (committed by this call when anything changes)
            record_id: Record to edit
            update: Fields to change
            identity: Editing client (must be the uploader; names newly stored files)

        Returns:
            Hydrated record after the edit (unchanged if update is empty)

        Raises:
            NotFoundError: If the record does not exist
            NotEditableError: If the record is not approved, is locked, or the
                client is not its uploader
            ValidationError: If the new images or image_count are invalid
            StorageError: If new files cannot be written
        """
        hydrated = await uow.records.get_hydrated(record_id)
        if hydrated is None:
            raise NotFoundError(f"Record {record_id} not found.")

        record = hydrated.record
        record.ensure_editable(identity.digest)

        if update.is_empty:
            return hydrated

        if update.images is not None:
            self.policy.check(update.images)

        resulting_count = len(update.images) if update.images is not None else len(hydrated.files)
        if update.image_count is not None and update.image_count != resulting_count:
            raise ValidationError(
                f"image_count must equal the number of attached files ({resulting_count})."
            )

        staged = []
        if update.images is not None:
            staged = await self.storage.write_all(update.images, identity.short)

        old_filenames: list[str] = []
        try:
            if update.caption is not None:
                record.caption = update.caption
            if update.title is not None:
                record.title = update.title.strip() or None

            files = hydrated.files
            if update.images is not None:
                old_filenames = await uow.record_files.delete_for_record(record.id)
                files = [
                    RecordFile(
                        record_id=record.id,
                        filename=stored.filename,
                        original_filename=stored.original_filename,
                        file_size=stored.size,
                        is_main=position == 0,
                        position=position,
                    )
                    for position, stored in enumerate(staged)
                ]
                await uow.record_files.add_many(files)
                record.primary_filename = staged[0].filename
                record.original_filename = staged[0].original_filename
                record.file_size = staged[0].size

            record.image_count = len(files)
            record.updated_at = utc_now()
            await uow.records.save(record)
            await uow.commit()
        except Exception:
            await self.storage.delete_many([s.filename for s in staged])
            raise

        await self.storage.delete_many(old_filenames)

        logger.info(
            "record.edited",
            record_id=record.id,
            editor=identity.short,
            replaced_images=update.images is not None,
            image_count=record.image_count,
        )
        return HydratedRecord(record=record, files=files)
