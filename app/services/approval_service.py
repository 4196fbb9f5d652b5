# app/services/approval_service.py
import enum
import logging
import uuid

from sqlmodel import Session

from app.core.errors import Forbidden, InvalidRole
from app.core.notifications import NotificationSink
from app.models.user import User
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class ApprovalState(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def approval_state(user: User) -> ApprovalState | None:
    """
    Where an artist account sits in the approval flow; None for
    non-artists, for whom `approved` carries no meaning.
    """
    if user.role != "artist":
        return None
    if user.reviewed_at is None:
        return ApprovalState.PENDING
    return ApprovalState.APPROVED if user.approved else ApprovalState.REJECTED


class ApprovalService:
    """
    Admin approval of artist accounts.

    Transitions:

      pending  -> approved | rejected
      approved -> approved | rejected   (a fresh decision is allowed)
      rejected -> approved | rejected

    After the decision is committed, exactly one notification attempt
    is handed to the sink. Sink failures are logged and never change
    the outcome returned to the caller.
    """

    def __init__(self, repo: UserRepository, notifier: NotificationSink):
        self.repo = repo
        self.notifier = notifier

    def decide(
        self,
        session: Session,
        target_id: uuid.UUID,
        approved: bool,
        acting_admin_id: uuid.UUID | str | None,
    ) -> User:
        """
        Apply an admin decision to an artist account.

        Raises:
            Forbidden: acting_admin_id is missing or not an admin.
            NotFound: target does not exist.
            InvalidRole: target is not an artist.
        """
        admin = self.repo.get_admin(session, acting_admin_id)
        if admin is None:
            raise Forbidden()

        target = self.repo.find_by_id(session, target_id)
        if target.role != "artist":
            raise InvalidRole()

        before = approval_state(target)
        user = self.repo.set_approval(session, target_id, approved)
        logger.info(
            f"Artist {user.username}: {before.value if before else '-'} -> "
            f"{approval_state(user).value} by admin {admin.username}"
        )

        self._notify(user, approved)
        return user

    def _notify(self, user: User, approved: bool) -> None:
        try:
            self.notifier.notify_decision(user.email, user.username, approved)
        except Exception:
            logger.exception(f"Could not dispatch decision email for {user.username}")
