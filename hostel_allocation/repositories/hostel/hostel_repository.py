"""
Hostel repository.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.repositories.base.base_repository import BaseRepository


class HostelRepository(BaseRepository[Hostel]):
    """Repository for hostels."""

    def __init__(self, session: Session):
        super().__init__(Hostel, session)

    def find_by_name(self, name: str) -> Optional[Hostel]:
        query = select(Hostel).where(Hostel.name == name)
        return self.session.execute(query).scalar_one_or_none()

    def find_listed(self, archived: Optional[bool] = False) -> List[Hostel]:
        """
        Hostels ordered by name.

        Args:
            archived: ``False`` for live hostels, ``True`` for archived ones,
                ``None`` for both
        """
        query = select(Hostel).order_by(Hostel.name)
        if archived is not None:
            query = query.where(Hostel.is_archived == archived)
        return list(self.session.execute(query).scalars().all())
