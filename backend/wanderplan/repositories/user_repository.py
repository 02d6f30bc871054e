from __future__ import annotations

from wanderplan.models.orm import User
from sqlalchemy.orm import Session

from .base import BaseRepository


class UserRepository(BaseRepository):
    """User lookups for authentication."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == email).one_or_none()

    def add(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user
