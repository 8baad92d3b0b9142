"""
Room repository: catalog lookups and occupancy counter maintenance.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session, selectinload

from hostel_allocation.models.room.room import Room
from hostel_allocation.repositories.base.base_repository import BaseRepository

RoomKey = Tuple[Optional[str], str]


class RoomRepository(BaseRepository[Room]):
    """
    Repository for rooms.

    Occupancy is never written as an absolute value computed in Python
    except when it is reset to zero; increments are pushed to the database
    as ``occupancy = occupancy + n`` so concurrent writers compose.
    """

    def __init__(self, session: Session):
        super().__init__(Room, session)

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    def get_for_update(self, room_id: str) -> Optional[Room]:
        """Load a room with a row lock where the backend supports one."""
        return self.session.get(Room, room_id, with_for_update=True, populate_existing=True)

    def find_by_hostel(
        self,
        hostel_id: str,
        unit_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Room]:
        query = select(Room).where(Room.hostel_id == hostel_id)
        if unit_id is not None:
            query = query.where(Room.unit_id == unit_id)
        if status is not None:
            query = query.where(Room.status == status)
        return list(self.session.execute(query).scalars().all())

    def find_by_hostels(self, hostel_ids: Iterable[str]) -> List[Room]:
        ids = list(hostel_ids)
        if not ids:
            return []
        query = select(Room).where(Room.hostel_id.in_(ids))
        return list(self.session.execute(query).scalars().all())

    def find_by_hostel_with_units(self, hostel_id: str) -> List[Room]:
        query = (
            select(Room)
            .where(Room.hostel_id == hostel_id)
            .options(selectinload(Room.unit))
        )
        return list(self.session.execute(query).scalars().all())

    def find_by_number(
        self,
        hostel_id: str,
        room_number: str,
        unit_id: Optional[str] = None,
    ) -> Optional[Room]:
        query = select(Room).where(Room.hostel_id == hostel_id, Room.room_number == room_number)
        if unit_id is None:
            query = query.where(Room.unit_id.is_(None))
        else:
            query = query.where(Room.unit_id == unit_id)
        return self.session.execute(query).scalar_one_or_none()

    def find_by_keys(self, hostel_id: str, keys: Iterable[RoomKey]) -> Dict[RoomKey, Room]:
        """
        Batch lookup keyed by ``(unit_id, room_number)``.

        Room-only hostels use ``None`` as the unit id.
        """
        wanted = set(keys)
        if not wanted:
            return {}
        room_numbers = {room_number for _, room_number in wanted}
        unit_ids = {unit_id for unit_id, _ in wanted if unit_id is not None}
        unit_clause = [Room.unit_id.in_(unit_ids)] if unit_ids else []
        if any(unit_id is None for unit_id, _ in wanted):
            unit_clause.append(Room.unit_id.is_(None))
        query = select(Room).where(
            Room.hostel_id == hostel_id,
            Room.room_number.in_(room_numbers),
            or_(*unit_clause),
        )
        rooms = {}
        for room in self.session.execute(query).scalars():
            key = (room.unit_id, room.room_number)
            if key in wanted:
                rooms[key] = room
        return rooms

    # ============================================================================
    # OCCUPANCY COUNTERS
    # ============================================================================

    def adjust_occupancy(self, room: Room, delta: int) -> None:
        """
        Shift the occupancy counter by ``delta`` inside the current transaction.

        The attribute is assigned a SQL expression, so the flush emits
        ``UPDATE rooms SET occupancy = occupancy + :delta`` and the
        check constraint validates the result against the stored capacity.
        """
        if delta == 0:
            return
        room.occupancy = Room.occupancy + delta
        self.session.flush()

    def reset_occupancy(self, room_ids: Iterable[str]) -> int:
        """Set occupancy to zero; returns the number of rooms touched."""
        ids = list(room_ids)
        if not ids:
            return 0
        result = self.session.execute(
            update(Room)
            .where(Room.id.in_(ids))
            .values(occupancy=0)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def reset_hostel_occupancy(self, hostel_id: str) -> int:
        result = self.session.execute(
            update(Room)
            .where(Room.hostel_id == hostel_id)
            .values(occupancy=0)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
