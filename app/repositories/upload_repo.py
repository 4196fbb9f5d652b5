# app/repositories/upload_repo.py
import uuid
from collections.abc import Callable

from sqlmodel import Session, select

from app.core.errors import NotFound
from app.core.locks import KeyedLock
from app.models.upload import Upload
from app.schemas.upload import UploadCreate


class UploadRepository:
    """
    Upload store: data access layer for Upload.

    - Pure DB operations (CRUD + queries).
    - `mutate` is the only way counters change; it is atomic per upload id.
    - No FastAPI, no business logic.
    """

    def __init__(self, locks: KeyedLock | None = None):
        self.locks = locks or KeyedLock()

    def get_by_id(self, session: Session, upload_id: uuid.UUID) -> Upload | None:
        return session.get(Upload, upload_id)

    def find_by_id(self, session: Session, upload_id: uuid.UUID) -> Upload:
        upload = self.get_by_id(session, upload_id)
        if upload is None:
            raise NotFound("Upload not found")
        return upload

    def list_all(self, session: Session) -> list[Upload]:
        """All uploads in insertion order."""
        stmt = select(Upload).order_by(Upload.uploaded_at)
        return list(session.exec(stmt).all())

    def create(
        self,
        session: Session,
        metadata: UploadCreate,
        storage_path: str,
        uploader: str,
    ) -> Upload:
        upload = Upload(
            name=metadata.name,
            category=metadata.category,
            description=metadata.description,
            website_url=metadata.website_url,
            storage_path=storage_path,
            uploader=uploader,
        )
        session.add(upload)
        session.commit()
        session.refresh(upload)
        return upload

    def delete_by_id(self, session: Session, upload_id: uuid.UUID) -> Upload:
        with self.locks.hold(upload_id):
            upload = self._locked_get(session, upload_id)
            session.delete(upload)
            session.commit()
            return upload

    def mutate(
        self,
        session: Session,
        upload_id: uuid.UUID,
        fn: Callable[[Upload], None],
    ) -> Upload:
        """
        Read-modify-write one upload as a single atomic unit.

        Steps:
          1. Take the in-process lock for `upload_id` (other ids don't wait).
          2. Re-read the row FOR UPDATE, discarding any stale copy the
             session may already hold.
          3. Apply `fn` to the fresh row, commit, refresh.

        `fn` must assign new values (e.g. a new list for liked_by) rather
        than mutate JSON columns in place, so the change is flushed.

        Raises:
            NotFound: no upload with this id.
        """
        with self.locks.hold(upload_id):
            upload = self._locked_get(session, upload_id)
            try:
                fn(upload)
            except Exception:
                session.rollback()
                raise
            session.add(upload)
            session.commit()
            session.refresh(upload)
            return upload

    def _locked_get(self, session: Session, upload_id: uuid.UUID) -> Upload:
        stmt = (
            select(Upload)
            .where(Upload.id == upload_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        upload = session.exec(stmt).first()
        if upload is None:
            raise NotFound("Upload not found")
        return upload
