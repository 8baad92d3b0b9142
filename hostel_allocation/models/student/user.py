"""
User account owning a student profile.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from hostel_allocation.models.base.base_model import TimestampModel
from hostel_allocation.models.base.enums import UserRole

__all__ = ["User"]


class User(TimestampModel):
    """Login identity; ``email`` is unique and stored lower-cased."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.STUDENT.value)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
