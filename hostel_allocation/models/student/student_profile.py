"""
Student profile model.
"""

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import StudentStatus

if TYPE_CHECKING:
    from hostel_allocation.models.student.user import User

__all__ = ["StudentProfile"]


class StudentProfile(TimestampModel):
    """
    Academic profile of a resident.

    ``current_room_allocation_id`` is a denormalised pointer at the
    student's Active allocation. It has no foreign key because
    ``room_allocations`` already references this table; the allocation
    and lifecycle services keep it in step inside their transactions.
    """

    __tablename__ = "student_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    roll_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    degree: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    admission_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    guardian: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    guardian_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    guardian_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=StudentStatus.ACTIVE.value)
    is_day_scholar: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    current_room_allocation_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True
    )

    user: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<StudentProfile(id={self.id}, roll_number={self.roll_number})>"
