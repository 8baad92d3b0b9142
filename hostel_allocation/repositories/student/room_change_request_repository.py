"""
Room change request repository.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel_allocation.models.base.enums import RoomChangeStatus
from hostel_allocation.models.student.room_change_request import RoomChangeRequest
from hostel_allocation.repositories.base.base_repository import BaseRepository


class RoomChangeRequestRepository(BaseRepository[RoomChangeRequest]):
    """Repository for room change requests."""

    def __init__(self, session: Session):
        super().__init__(RoomChangeRequest, session)

    def find_pending_by_student(self, student_profile_id: str) -> Optional[RoomChangeRequest]:
        query = select(RoomChangeRequest).where(
            RoomChangeRequest.student_profile_id == student_profile_id,
            RoomChangeRequest.status == RoomChangeStatus.PENDING.value,
        )
        return self.session.execute(query).scalars().first()

    def find_by_status(self, status: RoomChangeStatus) -> List[RoomChangeRequest]:
        query = (
            select(RoomChangeRequest)
            .where(RoomChangeRequest.status == status.value)
            .order_by(RoomChangeRequest.created_at)
        )
        return list(self.session.execute(query).scalars().all())
