"""
Unit model: a flat or block inside a unit-based hostel.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import RoomStatus

if TYPE_CHECKING:
    from hostel_allocation.models.hostel.hostel import Hostel
    from hostel_allocation.models.room.room import Room

__all__ = ["Unit"]


class Unit(TimestampModel):
    """Group of rooms; ``unit_number`` is unique inside its hostel."""

    __tablename__ = "units"

    hostel_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("hostels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_number: Mapped[str] = mapped_column(String(50), nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    common_area_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    hostel: Mapped["Hostel"] = relationship("Hostel", back_populates="units")
    rooms: Mapped[List["Room"]] = relationship("Room", back_populates="unit")

    __table_args__ = (
        UniqueConstraint("hostel_id", "unit_number", name="uq_units_hostel_unit_number"),
    )

    @property
    def active_rooms(self) -> List["Room"]:
        return [room for room in self.rooms if room.status == RoomStatus.ACTIVE]

    @property
    def capacity(self) -> int:
        """Beds across Active rooms only."""
        return sum(room.capacity for room in self.active_rooms)

    @property
    def occupancy(self) -> int:
        return sum(room.occupancy for room in self.active_rooms)

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, hostel_id={self.hostel_id}, unit_number={self.unit_number})>"
