# app/routers/users.py
import uuid

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import ValidationFailed
from app.core.notifications import NotificationSink, get_notifier
from app.core.storage_utils import BlobSink, get_blob_sink, read_upload_file
from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    AdminAction,
    ApprovalDecision,
    LoginRequest,
    Registration,
    UserEnvelope,
    UserRead,
    UserUpdate,
)
from app.services.approval_service import ApprovalService
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

settings = get_settings()

repo = UserRepository()
service = UserService(repo, max_portfolio_files=settings.MAX_PORTFOLIO_FILES)


def _envelope(message: str, user) -> UserEnvelope:
    return UserEnvelope(message=message, user=UserRead.model_validate(user))


def get_approval_service(
    notifier: NotificationSink = Depends(get_notifier),
) -> ApprovalService:
    return ApprovalService(repo, notifier)


# -------- Public endpoints --------


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def register(
    username: str | None = Form(None),
    email: str | None = Form(None),
    password: str | None = Form(None),
    role: str | None = Form(None),
    portfolio: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    sink: BlobSink = Depends(get_blob_sink),
):
    """
    Register a new account (multipart/form-data).

    - `role` is "normal" (default) or "artist".
    - Artists may attach up to MAX_PORTFOLIO_FILES files as `portfolio`;
      they start with approved=false until an admin decides.
    """
    username = (username or "").strip()
    if not username or not password:
        raise ValidationFailed("Username and password are required")

    portfolio = portfolio or []
    files = []
    if service.admit_portfolio(username, role, len(portfolio)):
        files = [
            (f.filename or "file", read_upload_file(f, settings.MAX_UPLOAD_BYTES))
            for f in portfolio
        ]
    payload = Registration(
        username=username,
        password=password,
        email=(email or "").strip(),
        role=role or "normal",
    )
    user = service.register(session, payload, files, sink)
    message = (
        "Artist registration successful, awaiting admin approval"
        if user.role == "artist"
        else "Registration successful"
    )
    return _envelope(message, user)


@router.post("/login", response_model=UserEnvelope)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
):
    """
    Check username/password and return the account.
    """
    if not payload.username or not payload.password:
        raise ValidationFailed("Username and password are required")
    user = service.login(session, payload.username, payload.password)
    return _envelope("Login successful", user)


@router.get("", response_model=list[UserRead])
def list_users(session: Session = Depends(get_session)):
    """
    List all users (credentials stripped).
    """
    return service.list_users(session)


@router.get("/username/{username}", response_model=UserRead)
def get_user_by_username(
    username: str,
    session: Session = Depends(get_session),
):
    return service.get_by_username(session, username)


@router.put("/{user_id}", response_model=UserEnvelope)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    session: Session = Depends(get_session),
):
    """
    Update the user's `likedImages` (duplicates are dropped).
    """
    user = service.update_liked_images(session, user_id, payload.liked_images)
    return _envelope("User updated", user)


# -------- Admin endpoints --------


@router.put("/{user_id}/approve", response_model=UserEnvelope)
def approve_artist(
    user_id: uuid.UUID,
    payload: ApprovalDecision | None = Body(None),
    session: Session = Depends(get_session),
    approvals: ApprovalService = Depends(get_approval_service),
):
    """
    Approve or reject an artist account.

    Body: `{"approved": bool, "adminId": "<admin uuid>"}`.
    The artist is emailed about the decision in the background.
    """
    if payload is None or payload.approved is None:
        raise ValidationFailed("Approved status is required")
    user = approvals.decide(session, user_id, payload.approved, payload.admin_id)
    return _envelope("Artist approved" if payload.approved else "Artist rejected", user)


@router.delete("/{user_id}", response_model=UserEnvelope)
def delete_user(
    user_id: uuid.UUID,
    payload: AdminAction | None = Body(None),
    session: Session = Depends(get_session),
    sink: BlobSink = Depends(get_blob_sink),
):
    """
    Delete a user (admin only). Body: `{"adminId": "<admin uuid>"}`.
    Returns the deleted account.
    """
    admin_id = payload.admin_id if payload else None
    user = service.delete_user(session, user_id, admin_id, sink)
    return _envelope(f"User {user.username} deleted successfully", user)
