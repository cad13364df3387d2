"""RecordFile repository for Pinwall.

Provides the file index for records: primary-first hydration queries and the
bulk replacement used by edits and rejection cleanup.
"""

from collections import defaultdict
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pinwall.models.record_file import RecordFile


class RecordFileRepository:
    """Repository for RecordFile entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add_many(self, files: list[RecordFile]) -> list[RecordFile]:
        """Persist file index rows.

        Args:
            files: RecordFile entities to persist

        Returns:
            Persisted entities with generated IDs
        """
        self.session.add_all(files)
        await self.session.flush()
        return files

    async def list_for_record(self, record_id: str) -> list[RecordFile]:
        """Retrieve files of one record, primary first, then upload order."""
        by_record = await self.list_for_records([record_id])
        return by_record.get(record_id, [])

    async def list_for_records(self, record_ids: Iterable[str]) -> dict[str, list[RecordFile]]:
        """Retrieve files for many records in a single query.

        Args:
            record_ids: Record IDs to hydrate

        Returns:
            Mapping of record ID to its files (primary first, then by position).
            Records without files are absent from the mapping.
        """
        ids = list(record_ids)
        if not ids:
            return {}

        result = await self.session.execute(
            select(RecordFile)
            .where(RecordFile.record_id.in_(ids))  # type: ignore[attr-defined]
            .order_by(
                RecordFile.record_id,  # type: ignore[arg-type]
                RecordFile.is_main.desc(),  # type: ignore[attr-defined]
                RecordFile.position.asc(),  # type: ignore[attr-defined]
                RecordFile.id.asc(),  # type: ignore[union-attr]
            )
        )
        grouped: dict[str, list[RecordFile]] = defaultdict(list)
        for record_file in result.scalars().all():
            grouped[record_file.record_id].append(record_file)
        return dict(grouped)

    async def delete_for_record(self, record_id: str) -> list[str]:
        """Delete every file index row of a record.

        Returns:
            Filenames whose rows were removed (callers delete the bodies)
        """
        files = await self.list_for_record(record_id)
        for record_file in files:
            await self.session.delete(record_file)
        await self.session.flush()
        return [f.filename for f in files]

    async def delete_by_filenames(self, filenames: Iterable[str]) -> int:
        """Delete file index rows by stored filename.

        Returns:
            Number of rows removed
        """
        names = list(filenames)
        if not names:
            return 0
        result = await self.session.execute(
            delete(RecordFile).where(RecordFile.filename.in_(names))  # type: ignore[attr-defined]
        )
        await self.session.flush()
        return result.rowcount  # type: ignore[attr-defined]

    async def list_all(self) -> list[RecordFile]:
        """Retrieve the whole file index (reconciliation)."""
        result = await self.session.execute(select(RecordFile).order_by(RecordFile.id))  # type: ignore[arg-type]
        return list(result.scalars().all())
