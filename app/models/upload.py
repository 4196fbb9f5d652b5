# app/models/upload.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Upload(SQLModel, table=True):
    """
    An uploaded image and its engagement counters.

    Invariants (kept by UploadRepository.mutate + EngagementService):
      - like_count == len(liked_by)
      - liked_by holds each username at most once
      - downloads never decreases

    `uploader` is a plain username, not a foreign key: deleting the
    user leaves their uploads in place.
    """

    __tablename__ = "uploads"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=255, index=True)

    category: str = Field(max_length=100, index=True)

    description: str | None = Field(default=None)

    website_url: str | None = Field(default=None, max_length=2048)

    storage_path: str = Field(
        description="Retrievable path/URL returned by the blob sink",
    )

    uploader: str = Field(
        max_length=100,
        index=True,
        description="Username of the uploader (weak reference)",
    )

    like_count: int = Field(default=0, ge=0)

    liked_by: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    downloads: int = Field(default=0, ge=0)

    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Upload timestamp (UTC)",
    )
