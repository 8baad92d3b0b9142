"""
Hostel model.

A hostel is either unit-based (rooms are addressed through a unit,
e.g. flat ``A`` room ``101``) or room-only (rooms are addressed directly).
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import HostelType

if TYPE_CHECKING:
    from hostel_allocation.models.hostel.unit import Unit
    from hostel_allocation.models.room.room import Room

__all__ = ["Hostel"]


class Hostel(TimestampModel):
    """Top level container of units and rooms."""

    __tablename__ = "hostels"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    units: Mapped[List["Unit"]] = relationship(
        "Unit", back_populates="hostel", cascade="all, delete-orphan"
    )
    rooms: Mapped[List["Room"]] = relationship(
        "Room", back_populates="hostel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_hostels_is_archived", "is_archived"),
    )

    @property
    def is_unit_based(self) -> bool:
        return self.type == HostelType.UNIT_BASED

    def __repr__(self) -> str:
        return f"<Hostel(id={self.id}, name={self.name}, type={self.type}, archived={self.is_archived})>"
