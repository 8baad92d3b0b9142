"""
Room allocation model: one student holding one bed of one room.

Two partial unique indexes restricted to ``status = 'Active'`` back the
in-service checks, so racing writers are rejected by the database even
when both passed validation.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.core.utils import RoomLabelUtils
from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import AllocationStatus

if TYPE_CHECKING:
    from hostel_allocation.models.hostel.hostel import Hostel
    from hostel_allocation.models.hostel.unit import Unit
    from hostel_allocation.models.room.room import Room
    from hostel_allocation.models.student.student_profile import StudentProfile

__all__ = ["RoomAllocation"]

ACTIVE_ONLY = text("status = 'Active'")


class RoomAllocation(TimestampModel):
    """Bed assignment of a student."""

    __tablename__ = "room_allocations"

    hostel_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("hostels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=True,
    )
    student_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    bed_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AllocationStatus.ACTIVE.value,
    )
    vacated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Audit
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    last_updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    hostel: Mapped["Hostel"] = relationship("Hostel")
    room: Mapped["Room"] = relationship("Room", back_populates="allocations")
    unit: Mapped[Optional["Unit"]] = relationship("Unit")
    student_profile: Mapped["StudentProfile"] = relationship("StudentProfile")

    __table_args__ = (
        Index(
            "uq_room_allocations_active_bed",
            "room_id",
            "bed_number",
            unique=True,
            sqlite_where=ACTIVE_ONLY,
            postgresql_where=ACTIVE_ONLY,
        ),
        Index(
            "uq_room_allocations_active_student",
            "student_profile_id",
            unique=True,
            sqlite_where=ACTIVE_ONLY,
            postgresql_where=ACTIVE_ONLY,
        ),
        CheckConstraint("bed_number >= 1", name="ck_room_allocations_bed_number"),
        CheckConstraint("status IN ('Active', 'Vacated')", name="ck_room_allocations_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == AllocationStatus.ACTIVE

    @property
    def display_room_number(self) -> str:
        """``<unit><room>-<bed>`` in unit-based hostels, ``<room>-<bed>`` otherwise."""
        unit_number = self.unit.unit_number if self.unit is not None else None
        return RoomLabelUtils.display_room_number(self.room.room_number, self.bed_number, unit_number)

    def __repr__(self) -> str:
        return (
            f"<RoomAllocation(id={self.id}, room_id={self.room_id}, bed={self.bed_number}, "
            f"student_profile_id={self.student_profile_id}, status={self.status})>"
        )
