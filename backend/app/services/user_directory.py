import functools
import logging
import math
from typing import Any, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.errors import DuplicateEmail, UserNotFound
from app.models.user import User

logger = logging.getLogger(__name__)

# Columns callers may write; anything else in a field dict is ignored
WRITABLE_FIELDS = (
    "name",
    "email",
    "phone",
    "profile_picture",
    "skills",
    "bio",
    "hourly_rate",
    "hashed_password",
    "is_verified",
    "verification_token",
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


def releases_connection(method):
    """Close the session when the call returns so no pooled connection
    stays checked out between directory calls. Loaded rows stay usable."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        finally:
            self.db.close()
    return wrapper


class UserDirectory:
    """All reads and writes of the users table.

    Email uniqueness is enforced by the table's unique constraint; a write
    that violates it raises DuplicateEmail so callers can compensate.
    """

    def __init__(self, db: Session):
        self.db = db

    @releases_connection
    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    @releases_connection
    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    @releases_connection
    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    @releases_connection
    def insert(self, fields: dict[str, Any]) -> User:
        user = User(**self._writable(fields))
        self.db.add(user)
        self._commit(user.email)
        # Refresh to load generated id and timestamps
        self.db.refresh(user)
        return user

    @releases_connection
    def update(self, user_id: int, fields: dict[str, Any]) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFound(user_id)
        for key, value in self._writable(fields).items():
            setattr(user, key, value)
        self._commit(user.email)
        self.db.refresh(user)
        return user

    @releases_connection
    def delete(self, user_id: int) -> None:
        deleted = self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        if not deleted:
            self.db.rollback()
            raise UserNotFound(user_id)
        self.db.commit()

    @releases_connection
    def list(self, page: int = 1, page_size: int = 10, search: Optional[str] = None) -> tuple[list[User], int]:
        """One page of users, newest first, plus the total matching count"""
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        query = self.db.query(User)
        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                    User.skills.ilike(pattern, escape="\\"),
                )
            )

        total = query.count()
        items = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def _commit(self, email: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against another writer for the same email
            self.db.rollback()
            raise DuplicateEmail(email)
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _writable(fields: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in fields.items() if key in WRITABLE_FIELDS}
