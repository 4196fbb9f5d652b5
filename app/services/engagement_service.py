# app/services/engagement_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import ValidationFailed
from app.models.upload import Upload
from app.repositories.upload_repo import UploadRepository

logger = logging.getLogger(__name__)


def apply_like_toggle(upload: Upload, username: str) -> bool:
    """
    Flip `username`'s membership in upload.liked_by and resync like_count.

    Returns True if the user now likes the upload.
    """
    liked_by = list(upload.liked_by or [])
    if username in liked_by:
        liked_by = [name for name in liked_by if name != username]
        liked = False
    else:
        liked_by.append(username)
        liked = True
    upload.liked_by = liked_by
    upload.like_count = len(liked_by)
    return liked


class EngagementService:
    """
    Like and download counters.

    Both operations go through UploadRepository.mutate, so concurrent
    calls on the same upload are applied one after another and none is
    lost. The returned Upload is the post-mutation server state.
    """

    def __init__(self, repo: UploadRepository):
        self.repo = repo

    def toggle_like(
        self, session: Session, upload_id: uuid.UUID, username: str | None
    ) -> Upload:
        """
        Like if not yet liked, unlike otherwise. Calling twice restores
        the original state.

        Raises:
            ValidationFailed: blank username.
            NotFound: no such upload.
        """
        username = (username or "").strip()
        if not username:
            raise ValidationFailed("userName is required")

        outcome: dict[str, bool] = {}

        def _toggle(upload: Upload) -> None:
            outcome["liked"] = apply_like_toggle(upload, username)

        upload = self.repo.mutate(session, upload_id, _toggle)
        logger.info(
            f"{username} {'liked' if outcome['liked'] else 'unliked'} upload "
            f"{upload_id} (likes={upload.like_count})"
        )
        return upload

    def record_download(self, session: Session, upload_id: uuid.UUID) -> Upload:
        """
        Count one download. Not attributed to a user, no upper bound.

        Raises:
            NotFound: no such upload.
        """

        def _increment(upload: Upload) -> None:
            upload.downloads = (upload.downloads or 0) + 1

        return self.repo.mutate(session, upload_id, _increment)
