"""Record repository for Pinwall.

Provides data access for Record entities: creation with attached files,
status-filtered hydrated listings, and uniform random selection.
"""

import random
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pinwall.core.timezone import day_bounds
from pinwall.models.record import Record, RecordStatus
from pinwall.models.record_file import RecordFile
from pinwall.repositories.record_file import RecordFileRepository


def public_criteria():
    """WHERE clauses of publicly visible records: approved and with files left.

    A rejected record loses its files; approving it again must not surface a
    record whose primary filename points at a deleted file.
    """
    return (
        Record.status == RecordStatus.APPROVED,  # type: ignore[arg-type]
        Record.image_count > 0,  # type: ignore[operator]
    )


@dataclass
class HydratedRecord:
    """A record together with its attached files (primary first)."""

    record: Record
    files: list[RecordFile] = field(default_factory=list)

    @property
    def attached_files(self) -> list[str]:
        return [f.filename for f in self.files]

    @property
    def primary_file(self) -> RecordFile | None:
        for record_file in self.files:
            if record_file.is_main:
                return record_file
        return None


class RecordRepository:
    """Repository for Record entities.

    Methods:
    - get_by_id / get_hydrated: Retrieve a record (optionally with files)
    - add: Persist a new record together with its files
    - list_all / list_by_status: Hydrated listings, newest first
    - list_public: Approved records that still have files, newest first
    - count_by_status: Number of records in a status
    - get_random_approved: Uniformly random public record
    - has_upload_on: Daily upload limit check
    """

    def __init__(self, session: AsyncSession, files: RecordFileRepository | None = None):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
            files: File index repository sharing the same session
        """
        self.session = session
        self.files = files or RecordFileRepository(session)

    async def get_by_id(self, record_id: str) -> Record | None:
        """Retrieve record by ID.

        Args:
            record_id: Record's unique identifier

        Returns:
            Record if found, None otherwise
        """
        result = await self.session.execute(select(Record).where(Record.id == record_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_hydrated(self, record_id: str) -> HydratedRecord | None:
        """Retrieve record by ID together with its files."""
        record = await self.get_by_id(record_id)
        if record is None:
            return None
        return HydratedRecord(record=record, files=await self.files.list_for_record(record_id))

    async def add(self, record: Record, files: list[RecordFile]) -> HydratedRecord:
        """Persist a new record and its file index rows.

        The first file becomes the primary file; ``image_count`` and the
        primary filename/size are derived from ``files``.

        Args:
            record: Record entity to persist (status should be pending)
            files: File rows in upload order (record_id is filled in)

        Returns:
            Hydrated record
        """
        for position, record_file in enumerate(files):
            record_file.record_id = record.id
            record_file.position = position
            record_file.is_main = position == 0
        if files:
            record.primary_filename = files[0].filename
            record.original_filename = files[0].original_filename
            record.file_size = files[0].file_size
        record.image_count = len(files)

        self.session.add(record)
        await self.session.flush()
        await self.files.add_many(files)
        return HydratedRecord(record=record, files=list(files))

    async def _hydrate(self, records: list[Record]) -> list[HydratedRecord]:
        by_record = await self.files.list_for_records(r.id for r in records)
        return [HydratedRecord(record=r, files=by_record.get(r.id, [])) for r in records]

    async def list_all(self) -> list[HydratedRecord]:
        """Retrieve every record, hydrated, newest first."""
        result = await self.session.execute(
            select(Record).order_by(Record.upload_timestamp.desc(), Record.id.desc())  # type: ignore[attr-defined]
        )
        return await self._hydrate(list(result.scalars().all()))

    async def list_by_status(self, status: RecordStatus) -> list[HydratedRecord]:
        """Retrieve records in a status, hydrated, newest first.

        Args:
            status: Moderation status to filter by

        Returns:
            Hydrated records (empty list if none)
        """
        result = await self.session.execute(
            select(Record)
            .where(Record.status == status)  # type: ignore[arg-type]
            .order_by(Record.upload_timestamp.desc(), Record.id.desc())  # type: ignore[attr-defined]
        )
        return await self._hydrate(list(result.scalars().all()))

    async def list_public(self) -> list[HydratedRecord]:
        """Retrieve public records (see ``public_criteria``), hydrated, newest first."""
        result = await self.session.execute(
            select(Record)
            .where(*public_criteria())
            .order_by(Record.upload_timestamp.desc(), Record.id.desc())  # type: ignore[attr-defined]
        )
        return await self._hydrate(list(result.scalars().all()))

    async def count_by_status(self, status: RecordStatus) -> int:
        """Count records in a status."""
        result = await self.session.execute(
            select(func.count()).select_from(Record).where(Record.status == status)  # type: ignore[arg-type]
        )
        return int(result.scalar_one())

    async def get_random_approved(self, rng: random.Random | None = None) -> HydratedRecord | None:
        """Select a public record uniformly at random.

        Counts public records (approved, with files), picks a random 0-based
        offset and fetches that row in a stable order. Not transactional against concurrent reviews:
        a review landing between the two queries can shift the offset by one
        or leave it past the end, in which case None is returned.

        Args:
            rng: Random source (module-level ``random`` when None)

        Returns:
            Hydrated public record, or None if no public record exists
        """
        count = await self.session.execute(
            select(func.count()).select_from(Record).where(*public_criteria())
        )
        total = int(count.scalar_one())
        if total == 0:
            return None

        offset = (rng or random).randrange(total)
        result = await self.session.execute(
            select(Record)
            .where(*public_criteria())
            .order_by(Record.id.asc())  # type: ignore[attr-defined]
            .offset(offset)
            .limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        return HydratedRecord(record=record, files=await self.files.list_for_record(record.id))

    async def has_upload_on(self, identity: str, day: date) -> bool:
        """Check whether an identity created a record on a calendar day (UTC).

        Any status counts: pending, approved and rejected uploads all use up
        the daily allowance.
        """
        start, end = day_bounds(day)
        result = await self.session.execute(
            select(func.count())
            .select_from(Record)
            .where(
                Record.uploader_identity == identity,  # type: ignore[arg-type]
                Record.upload_timestamp >= start,  # type: ignore[arg-type]
                Record.upload_timestamp < end,  # type: ignore[arg-type]
            )
        )
        return int(result.scalar_one()) > 0

    async def save(self, record: Record) -> Record:
        """Flush pending changes of a tracked record."""
        self.session.add(record)
        await self.session.flush()
        return record
