"""
Unit repository.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hostel_allocation.models.hostel.unit import Unit
from hostel_allocation.repositories.base.base_repository import BaseRepository


class UnitRepository(BaseRepository[Unit]):
    """Repository for units of unit-based hostels."""

    def __init__(self, session: Session):
        super().__init__(Unit, session)

    def find_by_hostel(self, hostel_id: str, with_rooms: bool = False) -> List[Unit]:
        query = select(Unit).where(Unit.hostel_id == hostel_id)
        if with_rooms:
            query = query.options(selectinload(Unit.rooms))
        return list(self.session.execute(query).scalars().all())

    def find_by_number(self, hostel_id: str, unit_number: str) -> Optional[Unit]:
        query = select(Unit).where(Unit.hostel_id == hostel_id, Unit.unit_number == unit_number)
        return self.session.execute(query).scalar_one_or_none()

    def find_by_numbers(self, hostel_id: str, unit_numbers: Iterable[str]) -> Dict[str, Unit]:
        """Units of a hostel keyed by unit number."""
        wanted = {n for n in unit_numbers if n is not None}
        if not wanted:
            return {}
        query = select(Unit).where(Unit.hostel_id == hostel_id, Unit.unit_number.in_(wanted))
        return {unit.unit_number: unit for unit in self.session.execute(query).scalars()}
