"""Post-crash reconciliation of the content directory and the file index.

File writes and database commits are not atomic together, so a crash can
leave:
- orphaned files: present on disk, referenced by no ``record_files`` row
- dangling references: ``record_files`` rows whose file is missing on disk

The reconciler reports both and, unless running dry, deletes orphaned files
and drops dangling rows, recomputing the primary file and ``image_count`` of
every affected record.
"""

import os
import time
from dataclasses import dataclass, field

import structlog

from pinwall.core.timezone import utc_now
from pinwall.services.storage import FileStorage
from pinwall.uow import UnitOfWork

logger = structlog.get_logger()


@dataclass
class ReconciliationResult:
    """Outcome of a reconciliation pass."""

    orphaned_files: list[str] = field(default_factory=list)
    dangling_references: list[str] = field(default_factory=list)
    affected_records: list[str] = field(default_factory=list)
    deleted_files: int = 0
    dropped_references: int = 0

    @property
    def is_consistent(self) -> bool:
        return not self.orphaned_files and not self.dangling_references


class Reconciler:
    """Detect and repair file/index drift."""

    def __init__(self, storage: FileStorage, min_orphan_age_seconds: int = 3600):
        """Initialize reconciler.

        Args:
            storage: Content directory
            min_orphan_age_seconds: Unreferenced files younger than this are
                skipped; they may belong to an upload that has not committed yet
        """
        self.storage = storage
        self.min_orphan_age_seconds = min_orphan_age_seconds

    def _old_enough(self, filename: str, now: float) -> bool:
        try:
            mtime = os.path.getmtime(self.storage.path_for(filename))
        except OSError:
            return False
        return now - mtime >= self.min_orphan_age_seconds

    async def run(self, uow: UnitOfWork, dry_run: bool = False) -> ReconciliationResult:
        """Run one reconciliation pass.

        Args:
            uow: Active unit of work
            dry_run: Report only, change nothing

        Returns:
            ReconciliationResult describing what was found (and fixed)
        """
        result = ReconciliationResult()

        on_disk = await self.storage.list_filenames()
        index = await uow.record_files.list_all()
        referenced = {f.filename for f in index}

        now = time.time()
        result.orphaned_files = sorted(
            name for name in on_disk - referenced if self._old_enough(name, now)
        )
        dangling = [f for f in index if f.filename not in on_disk]
        result.dangling_references = [f.filename for f in dangling]
        result.affected_records = sorted({f.record_id for f in dangling})

        logger.info(
            "reconcile.scanned",
            files_on_disk=len(on_disk),
            indexed_files=len(index),
            orphaned=len(result.orphaned_files),
            dangling=len(result.dangling_references),
            dry_run=dry_run,
        )

        if dry_run or result.is_consistent:
            return result

        if dangling:
            result.dropped_references = await uow.record_files.delete_by_filenames(
                result.dangling_references
            )
            for record_id in result.affected_records:
                await self._rehydrate_record(uow, record_id)
            await uow.commit()

        result.deleted_files = await self.storage.delete_many(result.orphaned_files)

        logger.info(
            "reconcile.completed",
            deleted_files=result.deleted_files,
            dropped_references=result.dropped_references,
            affected_records=len(result.affected_records),
        )
        return result

    async def _rehydrate_record(self, uow: UnitOfWork, record_id: str) -> None:
        """Recompute primary file and image_count from the remaining index rows."""
        record = await uow.records.get_by_id(record_id)
        if record is None:
            return
        files = await uow.record_files.list_for_record(record_id)
        if files and not any(f.is_main for f in files):
            files[0].is_main = True
        primary = next((f for f in files if f.is_main), None)
        if primary is not None:
            record.primary_filename = primary.filename
            record.original_filename = primary.original_filename
            record.file_size = primary.file_size
        record.image_count = len(files)
        record.updated_at = utc_now()
        await uow.records.save(record)
