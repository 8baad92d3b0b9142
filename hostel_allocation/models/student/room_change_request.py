"""
Room change request raised by a student and reviewed by a warden.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import RoomChangeStatus

if TYPE_CHECKING:
    from hostel_allocation.models.room.room import Room
    from hostel_allocation.models.student.student_profile import StudentProfile

__all__ = ["RoomChangeRequest"]


class RoomChangeRequest(TimestampModel):
    """Request to move the student's current allocation to another room."""

    __tablename__ = "room_change_requests"

    student_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Allocation rows may be deleted by room deactivation; keep plain ids.
    current_allocation_id: Mapped[str] = mapped_column(String(36), nullable=False)
    requested_room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    requested_bed_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RoomChangeStatus.PENDING.value
    )

    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    review_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_allocation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    student_profile: Mapped["StudentProfile"] = relationship("StudentProfile")
    requested_room: Mapped["Room"] = relationship("Room")

    __table_args__ = (
        Index("ix_room_change_requests_status", "status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == RoomChangeStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<RoomChangeRequest(id={self.id}, student_profile_id={self.student_profile_id}, "
            f"status={self.status})>"
        )
