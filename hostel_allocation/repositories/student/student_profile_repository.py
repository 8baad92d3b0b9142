"""
Student profile repository.
"""

from typing import Dict, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.repositories.base.base_repository import BaseRepository


class StudentProfileRepository(BaseRepository[StudentProfile]):
    """Repository for student profiles and their allocation back-reference."""

    def __init__(self, session: Session):
        super().__init__(StudentProfile, session)

    def find_by_roll_number(self, roll_number: str) -> Optional[StudentProfile]:
        query = select(StudentProfile).where(StudentProfile.roll_number == roll_number)
        return self.session.execute(query).unique().scalar_one_or_none()

    def find_by_roll_numbers(self, roll_numbers: Iterable[str]) -> Dict[str, StudentProfile]:
        """Profiles keyed by (upper-cased) roll number."""
        wanted = {r for r in roll_numbers if r}
        if not wanted:
            return {}
        query = select(StudentProfile).where(StudentProfile.roll_number.in_(wanted))
        return {p.roll_number: p for p in self.session.execute(query).unique().scalars()}

    def set_current_allocation(self, profile: StudentProfile, allocation_id: Optional[str]) -> None:
        profile.current_room_allocation_id = allocation_id
        self.session.flush()

    def clear_current_allocation(self, allocation_ids: Iterable[str]) -> int:
        """Clear back-references pointing at any of ``allocation_ids``."""
        ids = list(allocation_ids)
        if not ids:
            return 0
        result = self.session.execute(
            update(StudentProfile)
            .where(StudentProfile.current_room_allocation_id.in_(ids))
            .values(current_room_allocation_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
