"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support and ``create_tables``.
"""

from pinwall.models.admin_credential import AdminCredential
from pinwall.models.comment import Comment
from pinwall.models.record import Record, RecordStatus
from pinwall.models.record_file import RecordFile
from pinwall.models.upload_key import UploadKey

__all__ = [
    "AdminCredential",
    "Comment",
    "Record",
    "RecordFile",
    "RecordStatus",
    "UploadKey",
]
