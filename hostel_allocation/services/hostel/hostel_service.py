"""
Hostel setup and catalog listings.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from hostel_allocation.core.exceptions import (
    DuplicateEntryError,
    HostelNotFoundError,
    UnitNotFoundError,
    ValidationError,
)
from hostel_allocation.core.utils import SortUtils
from hostel_allocation.models.base.enums import RoomStatus
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.room.room import Room
from hostel_allocation.schemas.hostel.hostel import (
    HostelCreate,
    HostelStats,
    RoomCreate,
    RoomListing,
    RoomOccupant,
    UnitCreate,
    UnitSummary,
)
from hostel_allocation.services.base.base_service import BaseService


def _parse(schema, raw):
    if isinstance(raw, schema):
        return raw
    try:
        return schema.model_validate(raw)
    except PydanticValidationError as exc:
        field_errors: Dict[str, List[str]] = defaultdict(list)
        for err in exc.errors():
            field_errors[".".join(str(p) for p in err["loc"]) or "__root__"].append(err["msg"])
        raise ValidationError(f"Invalid {schema.__name__} data", dict(field_errors))


class HostelService(BaseService):
    """Create hostels with their units and rooms, and list them with occupancy figures."""

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def create_hostel(self, data: Union[HostelCreate, Mapping[str, Any]]) -> Hostel:
        """
        Create a hostel, its units and its rooms in one transaction.

        Raises:
            ValidationError: If the layout is inconsistent with the hostel type
            DuplicateEntryError: On a taken hostel name or repeated unit/room numbers
            UnitNotFoundError: If a room references a unit not being created
        """
        data = _parse(HostelCreate, data)

        def work(ctx):
            if self.uow.hostels.find_by_name(data.name) is not None:
                raise DuplicateEntryError("Hostel name already exists", field="name", value=data.name, table="hostels")
            hostel = self.uow.hostels.create({
                "name": data.name,
                "type": data.type.value,
                "gender": data.gender.value,
                "is_archived": False,
            })
            units = self._create_units(hostel, data.units, {})
            self._create_rooms(hostel, data.rooms, units)
            return hostel

        hostel = self._atomic("create_hostel", work)
        self._log_operation(
            "create_hostel",
            {"hostel_id": hostel.id, "units": len(data.units), "rooms": len(data.rooms)},
        )
        return hostel

    def add_rooms(
        self,
        hostel_id: str,
        units: Iterable[Union[UnitCreate, Mapping[str, Any]]] = (),
        rooms: Iterable[Union[RoomCreate, Mapping[str, Any]]] = (),
    ) -> List[Room]:
        """
        Add units and rooms to an existing hostel.

        Units whose number already exists are reused; rooms must be new.
        """
        unit_data = [_parse(UnitCreate, u) for u in units]
        room_data = [_parse(RoomCreate, r) for r in rooms]

        def work(ctx):
            hostel = self.uow.hostels.find_by_id(hostel_id)
            if hostel is None:
                raise HostelNotFoundError(hostel_id)
            if not hostel.is_unit_based and (unit_data or any(r.unit_number for r in room_data)):
                raise ValidationError("Room-only hostels cannot have units")
            if hostel.is_unit_based and any(not r.unit_number for r in room_data):
                raise ValidationError("Rooms of a unit-based hostel need a unit_number")

            existing = {unit.unit_number: unit for unit in self.uow.units.find_by_hostel(hostel.id)}
            known = self._create_units(hostel, [u for u in unit_data if u.unit_number not in existing], existing)
            return self._create_rooms(hostel, room_data, known)

        created = self._atomic("add_rooms", work)
        self._log_operation("add_rooms", {"hostel_id": hostel_id, "rooms": len(created)})
        return created

    def _create_units(self, hostel: Hostel, units: List[UnitCreate], known: Dict[str, Any]) -> Dict[str, Any]:
        known = dict(known)
        for unit in units:
            if unit.unit_number in known:
                raise DuplicateEntryError(
                    "Duplicate unit number in this hostel", field="unit_number", value=unit.unit_number, table="units"
                )
            known[unit.unit_number] = self.uow.units.create({
                "hostel_id": hostel.id,
                "unit_number": unit.unit_number,
                "floor": unit.floor if unit.floor is not None else 0,
                "common_area_details": unit.common_area_details,
            })
        return known

    def _create_rooms(self, hostel: Hostel, rooms: List[RoomCreate], units: Dict[str, Any]) -> List[Room]:
        seen = set()
        created = []
        for room in rooms:
            unit = None
            if room.unit_number:
                unit = units.get(room.unit_number)
                if unit is None:
                    raise UnitNotFoundError(room.unit_number, f"Unit {room.unit_number} not found")
            unit_id = unit.id if unit is not None else None

            key = (unit_id, room.room_number)
            if key in seen or self.uow.rooms.find_by_number(hostel.id, room.room_number, unit_id) is not None:
                raise DuplicateEntryError(
                    "Duplicate room number in this unit/hostel", field="room_number", value=room.room_number,
                    table="rooms",
                )
            seen.add(key)

            active = room.status == RoomStatus.ACTIVE
            created.append(self.uow.rooms.create({
                "hostel_id": hostel.id,
                "unit_id": unit_id,
                "room_number": room.room_number,
                "capacity": room.capacity if active else 0,
                "original_capacity": None if active else room.capacity,
                "occupancy": 0,
                "status": room.status.value,
            }))
        return created

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    def list_hostels(self, archived: Optional[bool] = False) -> List[HostelStats]:
        """Hostels ordered by name with room and occupancy figures."""
        hostels = self.uow.hostels.find_listed(archived)
        rooms_by_hostel: Dict[str, List[Room]] = defaultdict(list)
        for room in self.uow.rooms.find_by_hostels(h.id for h in hostels):
            rooms_by_hostel[room.hostel_id].append(room)

        listing = []
        for hostel in hostels:
            rooms = rooms_by_hostel[hostel.id]
            active = [room for room in rooms if room.is_active]
            listing.append(HostelStats(
                id=hostel.id,
                name=hostel.name,
                type=hostel.type,
                gender=hostel.gender,
                is_archived=hostel.is_archived,
                total_rooms=len(rooms),
                active_rooms=len(active),
                occupied_rooms=sum(1 for room in active if room.occupancy > 0),
                vacant_rooms=sum(1 for room in active if room.occupancy == 0),
                total_capacity=sum(room.capacity if room.is_active else (room.original_capacity or 0) for room in rooms),
                active_capacity=sum(room.capacity for room in active),
                active_occupancy=sum(room.occupancy for room in active),
            ))
        return listing

    def list_units(self, hostel_id: str) -> List[UnitSummary]:
        """Units in natural order; capacity and occupancy count Active rooms only."""
        if self.uow.hostels.find_by_id(hostel_id) is None:
            raise HostelNotFoundError(hostel_id)
        units = sorted(
            self.uow.units.find_by_hostel(hostel_id, with_rooms=True),
            key=lambda u: SortUtils.natural_key(u.unit_number),
        )
        return [
            UnitSummary(
                id=unit.id,
                unit_number=unit.unit_number,
                floor=unit.floor,
                common_area_details=unit.common_area_details,
                room_count=len(unit.rooms),
                capacity=unit.capacity,
                occupancy=unit.occupancy,
            )
            for unit in units
        ]

    def list_rooms(self, hostel_id: str, unit_id: Optional[str] = None) -> List[RoomListing]:
        """Rooms of a hostel, optionally one unit, with their Active occupants."""
        if self.uow.hostels.find_by_id(hostel_id) is None:
            raise HostelNotFoundError(hostel_id)

        rooms = [
            room for room in self.uow.rooms.find_by_hostel_with_units(hostel_id)
            if unit_id is None or room.unit_id == unit_id
        ]
        occupants: Dict[str, List[RoomOccupant]] = defaultdict(list)
        for allocation in self.uow.allocations.find_active_by_hostel(hostel_id, with_students=True):
            profile = allocation.student_profile
            occupants[allocation.room_id].append(RoomOccupant(
                allocation_id=allocation.id,
                student_profile_id=profile.id,
                roll_number=profile.roll_number,
                name=profile.user.name if profile.user is not None else None,
                bed_number=allocation.bed_number,
            ))

        rooms.sort(key=lambda r: (
            SortUtils.natural_key(r.unit.unit_number if r.unit is not None else None),
            SortUtils.natural_key(r.room_number),
        ))
        return [
            RoomListing(
                id=room.id,
                room_number=room.room_number,
                unit_id=room.unit_id,
                unit_number=room.unit.unit_number if room.unit is not None else None,
                capacity=room.capacity,
                occupancy=room.occupancy,
                status=room.status,
                occupants=sorted(occupants[room.id], key=lambda o: o.bed_number),
            )
            for room in rooms
        ]
