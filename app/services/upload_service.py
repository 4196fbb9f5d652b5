# app/services/upload_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.storage_utils import BlobSink, discard_blobs
from app.models.upload import Upload
from app.repositories.upload_repo import UploadRepository
from app.schemas.upload import UploadCreate

logger = logging.getLogger(__name__)


class UploadService:
    """
    Business logic for uploads (creation, listing, deletion).

    Counter changes live in EngagementService.
    """

    def __init__(self, repo: UploadRepository):
        self.repo = repo

    def create_upload(
        self,
        session: Session,
        payload: UploadCreate,
        filename: str,
        file_bytes: bytes,
        sink: BlobSink,
    ) -> Upload:
        """
        Store the file, then the record pointing at it.

        If the record cannot be created the stored file is removed again,
        so a failed upload never leaves a blob without a row (or a row
        without a blob).
        """
        blob = sink.put(filename, file_bytes)
        try:
            upload = self.repo.create(
                session,
                metadata=payload,
                storage_path=blob.path,
                uploader=payload.uploader,
            )
        except Exception:
            discard_blobs(sink, [blob.path])
            raise

        logger.info(f"Upload {upload.id} ({upload.name!r}) stored by {upload.uploader}")
        return upload

    def list_uploads(self, session: Session) -> list[Upload]:
        return self.repo.list_all(session)

    def delete_upload(
        self, session: Session, upload_id: uuid.UUID, sink: BlobSink
    ) -> Upload:
        """
        Delete the record, then (best-effort) its file.

        Raises:
            NotFound: no such upload; nothing is touched.
        """
        upload = self.repo.delete_by_id(session, upload_id)
        discard_blobs(sink, [upload.storage_path])
        logger.info(f"Upload {upload_id} deleted")
        return upload
