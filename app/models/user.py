# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent account for PinSync.

    Role:
      - "normal" | "artist" | "admin"
      - artists start with approved=False and wait for an admin decision;
        everybody else is approved on creation.

    Only a salted hash of the password is stored (`password_hash`);
    it never leaves the repository layer.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    username: str = Field(
        max_length=100,
        unique=True,
        index=True,
        description="Login name, unique across all users",
    )

    email: str = Field(
        default="",
        max_length=255,
        description="Contact address for approval emails (may be empty)",
    )

    password_hash: str = Field(max_length=255)

    role: str = Field(
        default="normal",
        index=True,
        description="Application role: normal | artist | admin",
    )

    approved: bool = Field(
        default=True,
        description="Only authoritative for role='artist'",
    )

    reviewed_at: datetime | None = Field(
        default=None,
        description="Time of the last admin approval decision; None while pending",
    )

    liked_images: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Upload ids the user has liked",
    )

    portfolio: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="[{filename, path}] submitted with an artist registration",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
