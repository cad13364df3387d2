"""Content directory storage for uploaded images.

Files are addressed by generated storage names of the form
``<identity-prefix>-<millis>-<random hex><ext>``. Blocking file I/O runs in
worker threads; the files of one upload are written concurrently and joined
before the caller commits the database change.
"""

import asyncio
import os
import secrets
from dataclasses import dataclass
from pathlib import Path

import structlog

from pinwall.core.timezone import utc_now
from pinwall.services.exceptions import StorageError

logger = structlog.get_logger()


@dataclass(frozen=True)
class IncomingFile:
    """File body received from a client, not yet written to storage."""

    original_filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return Path(self.original_filename).suffix.lower()

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class StoredFile:
    """File written to the content directory."""

    filename: str
    original_filename: str
    size: int


class FileStorage:
    """Read/write access to the content directory."""

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Create the content directory if missing."""
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Resolve a storage name inside the content directory.

        Raises:
            StorageError: If the name would escape the content directory
        """
        if not filename or Path(filename).name != filename:
            raise StorageError(f"Invalid storage filename {filename!r}")
        return self.root / filename

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    @staticmethod
    def generate_name(identity_prefix: str, extension: str) -> str:
        """Build a collision-resistant storage name preserving the extension."""
        millis = int(utc_now().timestamp() * 1000)
        return f"{identity_prefix}-{millis}-{secrets.token_hex(8)}{extension}"

    def _write(self, filename: str, content: bytes) -> None:
        path = self.path_for(filename)
        # Exclusive create: a name collision must never overwrite another record's file
        with open(path, "xb") as fh:
            fh.write(content)

    def _delete(self, filename: str) -> bool:
        try:
            self.path_for(filename).unlink()
            return True
        except FileNotFoundError:
            return False

    async def write_all(
        self, files: list[IncomingFile], identity_prefix: str
    ) -> list[StoredFile]:
        """Write files concurrently and return their storage names in input order.

        All-or-nothing: if any write fails, files already written by this call
        are removed before StorageError is raised.

        Args:
            files: Incoming file bodies
            identity_prefix: Identity digest prefix used in storage names

        Returns:
            Stored files in the same order as ``files``

        Raises:
            StorageError: If any write fails
        """
        planned = [
            StoredFile(
                filename=self.generate_name(identity_prefix, f.extension),
                original_filename=f.original_filename,
                size=f.size,
            )
            for f in files
        ]

        results = await asyncio.gather(
            *(
                asyncio.to_thread(self._write, stored.filename, incoming.content)
                for stored, incoming in zip(planned, files)
            ),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            written = [
                stored.filename
                for stored, result in zip(planned, results)
                if not isinstance(result, BaseException)
            ]
            await self.delete_many(written)
            logger.error(
                "storage.write_failed",
                attempted=len(planned),
                failed=len(errors),
                error=str(errors[0]),
                error_type=type(errors[0]).__name__,
            )
            raise StorageError(
                f"Failed to write {len(errors)} of {len(planned)} files"
            ) from errors[0]

        logger.debug("storage.files_written", filenames=[s.filename for s in planned])
        return planned

    async def delete_many(self, filenames: list[str]) -> int:
        """Delete files, ignoring ones already missing.

        Deletion failures other than "missing" are logged and skipped so that
        cleanup of the remaining files still happens.

        Returns:
            Number of files actually removed
        """
        removed = 0
        for filename in filenames:
            try:
                if await asyncio.to_thread(self._delete, filename):
                    removed += 1
            except (OSError, StorageError) as e:
                logger.warning(
                    "storage.delete_failed",
                    filename=filename,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        if filenames:
            logger.debug("storage.files_deleted", requested=len(filenames), removed=removed)
        return removed

    async def list_filenames(self) -> set[str]:
        """List every regular file in the content directory."""

        def _scan() -> set[str]:
            if not self.root.is_dir():
                return set()
            return {p.name for p in self.root.iterdir() if p.is_file()}

        return await asyncio.to_thread(_scan)
