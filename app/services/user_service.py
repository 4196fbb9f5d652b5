# app/services/user_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import DuplicateUsername, Forbidden, ValidationFailed
from app.core.storage_utils import BlobSink, discard_blobs
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import PUBLIC_ROLES, Registration

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - registration: role allow-list, portfolio files written to the
        blob sink *before* the user row, cleaned up if the row fails
      - login
      - liked-images update
      - admin-only delete
    """

    def __init__(self, repo: UserRepository, max_portfolio_files: int = 10):
        self.repo = repo
        self.max_portfolio_files = max_portfolio_files

    # ----- Public -----

    def admit_portfolio(self, username: str, role: str | None, file_count: int) -> bool:
        """
        Decide, before any file is read, whether a registration's
        portfolio is wanted at all.

        Returns False when the files would be ignored (non-artist).

        Raises:
            ValidationFailed: an artist sent more than `max_portfolio_files`.
        """
        if not file_count:
            return False
        if (role or "normal").strip().lower() != "artist":
            logger.info(f"Ignoring {file_count} portfolio file(s) for non-artist {username}")
            return False
        if file_count > self.max_portfolio_files:
            raise ValidationFailed(
                f"At most {self.max_portfolio_files} portfolio files are allowed"
            )
        return True

    def register(
        self,
        session: Session,
        payload: Registration,
        files: list[tuple[str, bytes]],
        sink: BlobSink,
    ) -> User:
        """
        Create an account.

        Rules:
          - role must be "normal" or "artist" (admins are provisioned
            out of band)
          - portfolio files are kept for artists only
          - at most `max_portfolio_files` files

        Raises:
            ValidationFailed, DuplicateUsername, StorageError
        """
        role = payload.role.strip().lower() if payload.role else "normal"
        if role not in PUBLIC_ROLES:
            raise ValidationFailed(f"Role must be one of: {', '.join(sorted(PUBLIC_ROLES))}")

        if role != "artist" and files:
            logger.info(
                f"Ignoring {len(files)} portfolio file(s) for non-artist {payload.username}"
            )
            files = []

        if len(files) > self.max_portfolio_files:
            raise ValidationFailed(
                f"At most {self.max_portfolio_files} portfolio files are allowed"
            )

        # Cheap early exit so we don't write blobs for a name that is taken.
        # The insert below re-checks under the unique index.
        if self.repo.get_by_username(session, payload.username) is not None:
            raise DuplicateUsername()

        written: list[str] = []
        portfolio: list[dict] = []
        try:
            for filename, data in files:
                blob = sink.put(filename, data)
                written.append(blob.path)
                portfolio.append({"filename": blob.filename, "path": blob.path})

            user = self.repo.create_user(
                session,
                username=payload.username,
                email=payload.email,
                credential=payload.password,
                role=role,
                portfolio=portfolio,
            )
        except Exception:
            discard_blobs(sink, written)
            raise

        if role == "artist":
            logger.info(f"Artist {user.username} registered, awaiting admin approval")
        else:
            logger.info(f"User {user.username} registered")
        return user

    def login(self, session: Session, username: str, password: str) -> User:
        return self.repo.verify_credentials(session, username, password)

    def list_users(self, session: Session) -> list[User]:
        return self.repo.list_all(session)

    def get_by_username(self, session: Session, username: str) -> User:
        return self.repo.find_by_username(session, username)

    def update_liked_images(
        self,
        session: Session,
        user_id: uuid.UUID,
        liked_images: list[str] | None,
    ) -> User:
        """
        Replace the user's liked images. None leaves them unchanged.
        """
        if liked_images is None:
            return self.repo.find_by_id(session, user_id)
        return self.repo.set_liked_images(session, user_id, liked_images)

    # ----- Admin operations -----

    def delete_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        admin_id: uuid.UUID | str | None,
        sink: BlobSink,
    ) -> User:
        """
        Delete a user (admin only) and, best-effort, their portfolio files.
        Uploads are left alone: `Upload.uploader` is a weak reference.

        Raises:
            Forbidden: admin_id missing or not an admin.
            NotFound: no such user.
        """
        admin = self.repo.get_admin(session, admin_id)
        if admin is None:
            raise Forbidden()
        admin_name = admin.username

        user = self.repo.delete_user(session, user_id)
        discard_blobs(sink, [item["path"] for item in user.portfolio or []])
        logger.info(f"User {user.username} deleted by admin {admin_name}")
        return user
