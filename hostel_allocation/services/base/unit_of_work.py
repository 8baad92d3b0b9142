"""
Unit of work: one session and the repositories bound to it.

Services receive a ``UnitOfWork`` explicitly instead of reaching for a
global session, so every read and write of an operation happens on the
same connection and inside the same transaction.
"""

from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from hostel_allocation.repositories.hostel.hostel_repository import HostelRepository
from hostel_allocation.repositories.hostel.unit_repository import UnitRepository
from hostel_allocation.repositories.room.room_allocation_repository import RoomAllocationRepository
from hostel_allocation.repositories.room.room_repository import RoomRepository
from hostel_allocation.repositories.student.room_change_request_repository import (
    RoomChangeRequestRepository,
)
from hostel_allocation.repositories.student.student_profile_repository import StudentProfileRepository
from hostel_allocation.repositories.student.user_repository import UserRepository
from hostel_allocation.services.base.transaction_manager import TransactionManager


class UnitOfWork:
    """Session, repositories and transaction manager for one caller."""

    def __init__(self, session: Session, max_retries: Optional[int] = None):
        self.session = session
        self.hostels = HostelRepository(session)
        self.units = UnitRepository(session)
        self.rooms = RoomRepository(session)
        self.allocations = RoomAllocationRepository(session)
        self.profiles = StudentProfileRepository(session)
        self.users = UserRepository(session)
        self.room_change_requests = RoomChangeRequestRepository(session)
        self.transactions = TransactionManager(session, max_retries=max_retries)

    @classmethod
    def from_factory(cls, session_factory: sessionmaker, max_retries: Optional[int] = None) -> "UnitOfWork":
        return cls(session_factory(), max_retries=max_retries)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and self.session.in_transaction():
            self.session.rollback()
        self.close()
