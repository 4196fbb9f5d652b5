# app/repositories/user_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.auth import hash_password, verify_password
from app.core.errors import DuplicateUsername, InvalidCredentials, InvalidRole, NotFound
from app.core.locks import KeyedLock
from app.models.user import User


class UserRepository:
    """
    Identity store: data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - Username uniqueness (DB unique index is the source of truth)
      - Credential checks against the stored hash
      - No FastAPI, no HTTP

    Every write touches a single row; per-row writes are serialized
    with an in-process lock plus a row lock on databases that have one.
    """

    def __init__(self, locks: KeyedLock | None = None):
        self.locks = locks or KeyedLock()

    # ----- Queries -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def find_by_id(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.get_by_id(session, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_by_username(self, session: Session, username: str) -> User | None:
        """Return a User by unique username, or None if not found."""
        stmt = select(User).where(User.username == username)
        return session.exec(stmt).first()

    def find_by_username(self, session: Session, username: str) -> User:
        user = self.get_by_username(session, username)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_admin(
        self, session: Session, user_id: uuid.UUID | str | None
    ) -> User | None:
        """
        Return the user only if it exists *and* has role 'admin'.
        Ids arrive from request bodies, so a string that is not a UUID
        is treated like any other unknown id.
        """
        if user_id is None:
            return None
        if not isinstance(user_id, uuid.UUID):
            try:
                user_id = uuid.UUID(str(user_id))
            except ValueError:
                return None
        stmt = select(User).where(User.id == user_id, User.role == "admin")
        return session.exec(stmt).first()

    def list_all(self, session: Session) -> list[User]:
        """All users in registration order."""
        stmt = select(User).order_by(User.created_at)
        return list(session.exec(stmt).all())

    # ----- Credentials -----

    def verify_credentials(
        self, session: Session, username: str, credential: str
    ) -> User:
        """
        Return the user if `credential` matches the stored hash.

        Raises:
            InvalidCredentials: unknown username or wrong password
            (deliberately indistinguishable to the caller).
        """
        user = self.get_by_username(session, username)
        if user is None or not verify_password(credential, user.password_hash):
            raise InvalidCredentials()
        return user

    # ----- Writes -----

    def create_user(
        self,
        session: Session,
        username: str,
        email: str | None,
        credential: str,
        role: str,
        portfolio: list[dict] | None = None,
    ) -> User:
        """
        Insert a new User.

        approved = (role != "artist"): artists wait for an admin decision.

        Raises:
            DuplicateUsername: the username is taken, including when a
            concurrent registration wins the race between our check and
            the insert.
        """
        if self.get_by_username(session, username) is not None:
            raise DuplicateUsername()

        user = User(
            username=username,
            email=email or "",
            password_hash=hash_password(credential),
            role=role,
            approved=role != "artist",
            portfolio=list(portfolio or []),
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise DuplicateUsername() from e
        session.refresh(user)
        return user

    def _locked_get(self, session: Session, user_id: uuid.UUID) -> User:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = session.exec(stmt).first()
        if user is None:
            raise NotFound("User not found")
        return user

    def set_approval(self, session: Session, user_id: uuid.UUID, approved: bool) -> User:
        """
        Record an admin decision on an artist account.

        Raises:
            NotFound: no such user.
            InvalidRole: target is not an artist; nothing is written.
        """
        with self.locks.hold(user_id):
            user = self._locked_get(session, user_id)
            if user.role != "artist":
                session.rollback()
                raise InvalidRole()
            user.approved = approved
            user.reviewed_at = datetime.now(timezone.utc)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    def set_liked_images(
        self, session: Session, user_id: uuid.UUID, liked_images: list[str]
    ) -> User:
        with self.locks.hold(user_id):
            user = self._locked_get(session, user_id)
            user.liked_images = list(liked_images)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    def delete_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Delete a User and return the removed row (attributes stay readable).
        """
        with self.locks.hold(user_id):
            user = self._locked_get(session, user_id)
            session.delete(user)
            session.commit()
            return user
