from typing import Iterable, List, Optional

import pytest

from hostel_allocation.config.database import create_db_engine, create_session_factory
from hostel_allocation.config.security import PasswordHasher
from hostel_allocation.db.init_db import init_db
from hostel_allocation.models import Hostel, Room, RoomAllocation, StudentProfile
from hostel_allocation.schemas.student.profile import StudentProfileCreate
from hostel_allocation.services import HostelService, StudentProfileService, UnitOfWork


@pytest.fixture
def engine(tmp_path):
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'hostel_allocation_test.db'}", echo=False)
    init_db(bind=db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def uow(session_factory):
    with UnitOfWork.from_factory(session_factory) as unit:
        yield unit


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(schemes=["pbkdf2_sha256"], pbkdf2_sha256__rounds=1000)


class Factory:
    """Seeds hostels, rooms and students through the services under test."""

    def __init__(self, uow: UnitOfWork, hasher: PasswordHasher):
        self.uow = uow
        self.hostels = HostelService(uow)
        self.profiles = StudentProfileService(uow, hasher)
        self._seq = 0

    def unit_hostel(
        self,
        name: str = "Block A",
        units: Iterable[str] = ("A", "B"),
        rooms: Iterable[str] = ("101", "102"),
        capacity: int = 2,
    ) -> Hostel:
        units = list(units)
        return self.hostels.create_hostel({
            "name": name,
            "type": "unit-based",
            "gender": "Male",
            "units": [{"unit_number": u, "floor": i} for i, u in enumerate(units)],
            "rooms": [
                {"unit_number": u, "room_number": r, "capacity": capacity}
                for u in units for r in rooms
            ],
        })

    def room_only_hostel(
        self,
        name: str = "Annex",
        rooms: Iterable[str] = ("1", "2", "3"),
        capacity: int = 2,
        gender: str = "Female",
    ) -> Hostel:
        return self.hostels.create_hostel({
            "name": name,
            "type": "room-only",
            "gender": gender,
            "rooms": [{"room_number": r, "capacity": capacity} for r in rooms],
        })

    def room(self, hostel: Hostel, room_number: str, unit_number: Optional[str] = None) -> Room:
        unit_id = None
        if unit_number is not None:
            unit_id = self.uow.units.find_by_number(hostel.id, unit_number).id
        return self.uow.rooms.find_by_number(hostel.id, room_number, unit_id)

    def student(
        self,
        roll_number: Optional[str] = None,
        degree: Optional[str] = "B.Tech",
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> StudentProfile:
        self._seq += 1
        roll_number = roll_number or f"R{self._seq:04d}"
        data = StudentProfileCreate(
            roll_number=roll_number,
            email=email or f"{roll_number.lower()}@example.edu",
            name=name or f"Student {roll_number}",
            degree=degree,
        )
        with self.uow.transactions.start("seed_student"):
            profile = self.profiles.create_profile_record(data)
        return profile

    def students(self, count: int, degree: Optional[str] = "B.Tech") -> List[StudentProfile]:
        return [self.student(degree=degree) for _ in range(count)]

    def reload(self, model, entity_id: str):
        """Fresh copy of a row, bypassing the identity map."""
        self.uow.session.expire_all()
        return self.uow.session.get(model, entity_id)

    def active_allocations(self, room_id: str) -> List[RoomAllocation]:
        self.uow.session.expire_all()
        return self.uow.allocations.find_active_by_rooms([room_id])


@pytest.fixture
def factory(uow, hasher):
    return Factory(uow, hasher)
