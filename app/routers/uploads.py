# app/routers/uploads.py
import uuid

import pydantic
from fastapi import APIRouter, Body, Depends, File, Form, UploadFile, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import ValidationFailed
from app.core.storage_utils import BlobSink, get_blob_sink, read_upload_file
from app.database import get_session
from app.repositories.upload_repo import UploadRepository
from app.schemas.base import MessageResponse
from app.schemas.upload import LikeToggle, UploadCreate, UploadEnvelope, UploadRead
from app.services.engagement_service import EngagementService
from app.services.upload_service import UploadService

router = APIRouter(prefix="/uploads", tags=["Uploads"])

settings = get_settings()

repo = UploadRepository()
service = UploadService(repo)
engagement = EngagementService(repo)


def _envelope(message: str, upload) -> UploadEnvelope:
    return UploadEnvelope(message=message, upload=UploadRead.model_validate(upload))


@router.post("", response_model=UploadEnvelope, status_code=status.HTTP_201_CREATED)
def create_upload(
    file: UploadFile | None = File(None),
    name: str | None = Form(None),
    category: str | None = Form(None),
    description: str | None = Form(None),
    website: str | None = Form(None),
    uploader: str | None = Form(None),
    session: Session = Depends(get_session),
    sink: BlobSink = Depends(get_blob_sink),
):
    """
    Upload an image (multipart/form-data).

    Required: `file`, `name`, `category`, `uploader`.
    Optional: `description`, `website`.
    """
    required = (name, category, uploader)
    if file is None or any(not (value and value.strip()) for value in required):
        raise ValidationFailed("Missing required fields")

    try:
        payload = UploadCreate(
            name=name,
            category=category,
            uploader=uploader,
            description=description,
            website_url=website,
        )
    except pydantic.ValidationError as e:
        raise ValidationFailed("Invalid upload fields") from e

    file_bytes = read_upload_file(file, settings.MAX_UPLOAD_BYTES)
    upload = service.create_upload(
        session,
        payload,
        filename=file.filename or "file",
        file_bytes=file_bytes,
        sink=sink,
    )
    return _envelope("Upload successful", upload)


@router.get("", response_model=list[UploadRead])
def list_uploads(session: Session = Depends(get_session)):
    """
    List all uploads in upload order.
    """
    return service.list_uploads(session)


@router.put("/{upload_id}/like", response_model=UploadEnvelope)
def toggle_like(
    upload_id: uuid.UUID,
    payload: LikeToggle | None = Body(None),
    session: Session = Depends(get_session),
):
    """
    Toggle `userName`'s like on an upload. Body: `{"userName": "carol"}`.

    Calling it again with the same user takes the like back.
    """
    user_name = payload.user_name if payload else None
    upload = engagement.toggle_like(session, upload_id, user_name)
    return _envelope("Like updated", upload)


@router.put("/{upload_id}/download", response_model=UploadEnvelope)
def record_download(
    upload_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Count one download of an upload.
    """
    upload = engagement.record_download(session, upload_id)
    return _envelope("Download updated", upload)


@router.delete("/{upload_id}", response_model=MessageResponse)
def delete_upload(
    upload_id: uuid.UUID,
    session: Session = Depends(get_session),
    sink: BlobSink = Depends(get_blob_sink),
):
    """
    Delete an upload and (best-effort) its stored file.
    """
    service.delete_upload(session, upload_id, sink)
    return MessageResponse(message="Upload deleted successfully")
