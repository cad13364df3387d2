"""Request/response models shared by the API routers."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from pinwall.models.comment import Comment
from pinwall.repositories.record import HydratedRecord

UPLOADS_URL_PREFIX = "/uploads"


class KeyResponse(BaseModel):
    """Response model for key requests."""

    token: str = Field(..., description="Single-use upload key, valid until the end of the UTC day")


class RecordFileDTO(BaseModel):
    """File attached to a record."""

    filename: str = Field(..., description="Storage name of the file")
    url: str = Field(..., description="Path the file is served from")
    original_filename: str | None = Field(default=None, description="Name given by the uploader")
    file_size: int = Field(..., description="Size in bytes")
    is_main: bool = Field(..., description="True for the primary (representative) image")


class RecordDTO(BaseModel):
    """Data Transfer Object for records in public API responses."""

    id: str
    caption: str = Field(..., description="Caption text submitted with the upload")
    title: str | None = None
    filename: str = Field(..., description="Storage name of the primary file")
    original_filename: str | None = None
    file_size: int
    status: str = Field(..., description="Moderation status (pending, approved, rejected)")
    editable: bool = Field(..., description="True if the record may still be edited")
    image_count: int
    upload_time: datetime
    reviewed_at: datetime | None = None
    files: list[RecordFileDTO] = Field(default_factory=list, description="Primary file first")

    @classmethod
    def from_hydrated(cls, hydrated: HydratedRecord) -> "RecordDTO":
        record = hydrated.record
        return cls(
            id=record.id,
            caption=record.caption,
            title=record.title,
            filename=record.primary_filename,
            original_filename=record.original_filename,
            file_size=record.file_size,
            status=record.status.value,
            editable=record.editable,
            image_count=record.image_count,
            upload_time=record.upload_timestamp,
            reviewed_at=record.reviewed_at,
            files=[
                RecordFileDTO(
                    filename=f.filename,
                    url=f"{UPLOADS_URL_PREFIX}/{f.filename}",
                    original_filename=f.original_filename,
                    file_size=f.file_size,
                    is_main=f.is_main,
                )
                for f in hydrated.files
            ],
        )


class AdminRecordDTO(RecordDTO):
    """Record as seen by the administrator (includes uploader identity)."""

    uploader_identity: str

    @classmethod
    def from_hydrated(cls, hydrated: HydratedRecord) -> "AdminRecordDTO":
        base = RecordDTO.from_hydrated(hydrated)
        return cls(**base.model_dump(), uploader_identity=hydrated.record.uploader_identity)


class ReviewRequest(BaseModel):
    """Request model for record review.

    ``status`` is validated by the moderation service so that an unknown value
    yields the domain error (400) rather than a schema error (422).
    """

    status: str = Field(..., description="approved or rejected")


class CommentRequest(BaseModel):
    """Request model for adding a comment."""

    content: str = Field(..., description="Comment text (must not be blank)", max_length=2000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Trim whitespace and reject blank comments."""
        v = v.strip()
        if not v:
            raise ValueError("Comment content must not be empty")
        return v


class CommentDTO(BaseModel):
    """Data Transfer Object for comments."""

    id: UUID
    record_id: str
    content: str
    created_at: datetime

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentDTO":
        return cls(
            id=comment.id,
            record_id=comment.record_id,
            content=comment.content,
            created_at=comment.created_at,
        )
