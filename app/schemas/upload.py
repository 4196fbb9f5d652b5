# app/schemas/upload.py
import uuid
from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.base import APIModel


class UploadCreate(APIModel):
    """
    Metadata for a new upload (the file itself travels separately).

    Validation rules:
      - name, category, uploader cannot be empty or whitespace
      - optional text fields are stripped; blank becomes None
    """

    name: str = Field(max_length=255)
    category: str = Field(max_length=100)
    uploader: str = Field(max_length=100)
    description: str | None = None
    website_url: str | None = Field(default=None, max_length=2048)

    @field_validator("name", "category", "uploader")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("description", "website_url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class UploadRead(APIModel):
    """Upload representation for clients; the server copy is authoritative."""

    id: uuid.UUID
    name: str
    category: str
    description: str | None = None
    website_url: str | None = None
    storage_path: str
    uploader: str
    like_count: int
    liked_by: list[str]
    downloads: int
    uploaded_at: datetime


class LikeToggle(APIModel):
    """Body of PUT /uploads/{id}/like."""

    user_name: str | None = None


class UploadEnvelope(APIModel):
    message: str
    upload: UploadRead
