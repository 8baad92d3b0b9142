"""
Room model with occupancy tracking.

``occupancy`` is a cached count of the room's Active allocations. It is
only ever changed through SQL increments issued by the room repository,
and the check constraints below reject any write that would leave it
negative or above ``capacity``.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import RoomStatus

if TYPE_CHECKING:
    from hostel_allocation.models.hostel.hostel import Hostel
    from hostel_allocation.models.hostel.unit import Unit
    from hostel_allocation.models.room.room_allocation import RoomAllocation

__all__ = ["Room"]


class Room(TimestampModel):
    """
    Physical room inside a hostel.

    Rooms of unit-based hostels carry ``unit_id``; rooms of room-only
    hostels do not. ``room_number`` is unique within that scope.
    """

    __tablename__ = "rooms"

    hostel_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("hostels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    room_number: Mapped[str] = mapped_column(String(50), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    occupancy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RoomStatus.ACTIVE.value,
    )
    # Capacity remembered while the room is Inactive
    original_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    hostel: Mapped["Hostel"] = relationship("Hostel", back_populates="rooms")
    unit: Mapped[Optional["Unit"]] = relationship("Unit", back_populates="rooms")
    allocations: Mapped[List["RoomAllocation"]] = relationship(
        "RoomAllocation", back_populates="room", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("hostel_id", "unit_id", "room_number", name="uq_rooms_hostel_unit_room"),
        # NULL unit ids never collide in a plain unique constraint
        Index(
            "uq_rooms_hostel_room_without_unit",
            "hostel_id",
            "room_number",
            unique=True,
            sqlite_where=text("unit_id IS NULL"),
            postgresql_where=text("unit_id IS NULL"),
        ),
        CheckConstraint("occupancy >= 0 AND occupancy <= capacity", name="ck_rooms_occupancy_bounds"),
        CheckConstraint("status != 'Active' OR capacity >= 1", name="ck_rooms_active_capacity"),
        CheckConstraint("status IN ('Active', 'Inactive')", name="ck_rooms_status"),
        Index("ix_rooms_hostel_status", "hostel_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == RoomStatus.ACTIVE

    @property
    def is_full(self) -> bool:
        return self.occupancy >= self.capacity

    @property
    def vacancy_count(self) -> int:
        """Free beds; zero for inactive rooms."""
        if not self.is_active:
            return 0
        return max(self.capacity - self.occupancy, 0)

    def __repr__(self) -> str:
        return (
            f"<Room(id={self.id}, room_number={self.room_number}, "
            f"occupancy={self.occupancy}/{self.capacity}, status={self.status})>"
        )
