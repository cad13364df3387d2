"""Repository layer for Pinwall.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from pinwall.repositories.admin_credential import AdminCredentialRepository
from pinwall.repositories.comment import CommentRepository
from pinwall.repositories.record import HydratedRecord, RecordRepository
from pinwall.repositories.record_file import RecordFileRepository
from pinwall.repositories.upload_key import UploadKeyRepository

__all__ = [
    "AdminCredentialRepository",
    "CommentRepository",
    "HydratedRecord",
    "RecordFileRepository",
    "RecordRepository",
    "UploadKeyRepository",
]
