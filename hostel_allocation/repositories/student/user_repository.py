"""
User repository.
"""

from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel_allocation.models.student.user import User
from hostel_allocation.repositories.base.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, session: Session):
        super().__init__(User, session)

    def find_by_emails(self, emails: Iterable[str]) -> Dict[str, User]:
        """Users keyed by (lower-cased) email."""
        wanted = {e for e in emails if e}
        if not wanted:
            return {}
        query = select(User).where(User.email.in_(wanted))
        return {u.email: u for u in self.session.execute(query).scalars()}
