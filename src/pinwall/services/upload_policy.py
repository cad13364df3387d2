"""Validation rules for submitted image files."""

from dataclasses import dataclass

from pinwall.core.config import Settings
from pinwall.services.exceptions import ValidationError
from pinwall.services.storage import IncomingFile


@dataclass(frozen=True)
class UploadPolicy:
    """Limits applied to every image set (new uploads and edits)."""

    allowed_extensions: frozenset[str]
    max_file_bytes: int
    max_files: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadPolicy":
        return cls(
            allowed_extensions=settings.allowed_extensions_set,
            max_file_bytes=settings.max_upload_bytes,
            max_files=settings.max_files_per_record,
        )

    def check(self, files: list[IncomingFile]) -> None:
        """Validate an image set before anything is written.

        Raises:
            ValidationError: If the set is empty, too large, or any file is
                empty, oversized or has a disallowed extension
        """
        if not files:
            raise ValidationError("No file uploaded.")
        if len(files) > self.max_files:
            raise ValidationError(f"Too many files: at most {self.max_files} per record.")

        for f in files:
            if f.extension not in self.allowed_extensions:
                allowed = ", ".join(sorted(self.allowed_extensions))
                raise ValidationError(
                    f"File {f.original_filename!r} has an unsupported type. Allowed: {allowed}."
                )
            if f.size == 0:
                raise ValidationError(f"File {f.original_filename!r} is empty.")
            if f.size > self.max_file_bytes:
                raise ValidationError(
                    f"File {f.original_filename!r} exceeds {self.max_file_bytes} bytes."
                )
