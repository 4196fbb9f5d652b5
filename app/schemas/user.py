# app/schemas/user.py
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import field_validator

from app.schemas.base import APIModel

Role = Literal["normal", "artist", "admin"]

# Roles a client may request through public registration.
# Admins are provisioned with app.scripts.create_admin.
PUBLIC_ROLES: frozenset[str] = frozenset({"normal", "artist"})


@dataclass(frozen=True)
class Registration:
    """
    Registration fields after the router's presence checks.
    Built from multipart form fields, so no pydantic parsing here;
    role is validated by UserService.
    """

    username: str
    password: str
    email: str = ""
    role: str = "normal"


class PortfolioItem(APIModel):
    filename: str
    path: str


class UserRead(APIModel):
    """
    Response schema returned to clients.
    Has no credential field, so the password hash can never be serialized.
    """

    id: uuid.UUID
    username: str
    email: str
    role: Role
    approved: bool
    reviewed_at: datetime | None = None
    liked_images: list[str] = []
    portfolio: list[PortfolioItem] = []
    created_at: datetime


class LoginRequest(APIModel):
    """Both fields optional so the router can answer 400 with a clear message."""

    username: str | None = None
    password: str | None = None


class UserUpdate(APIModel):
    """
    Partial update. Only `likedImages` is editable; omitted means unchanged.
    """

    liked_images: list[str] | None = None

    @field_validator("liked_images")
    @classmethod
    def dedupe(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        # Set semantics, first occurrence wins.
        return list(dict.fromkeys(item.strip() for item in v if item.strip()))


class ApprovalDecision(APIModel):
    """
    Body of PUT /users/{id}/approve.

    `adminId` stays a plain string: an id that does not parse is just
    an id that is not an admin.

    `approved` is optional here only so the router can return the
    "Approved status is required" 400 itself.
    """

    approved: bool | None = None
    admin_id: str | None = None


class AdminAction(APIModel):
    """Body of admin-only calls that carry nothing but the acting admin."""

    admin_id: str | None = None


class UserEnvelope(APIModel):
    """Write endpoints answer with a status message next to the account."""

    message: str
    user: UserRead
