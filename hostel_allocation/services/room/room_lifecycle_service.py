"""
Room lifecycle management: activation, deactivation, batch reconciliation
of room states, hostel archiving and hostel-wide allocation reset.

Deactivating a room or resetting a hostel hard-deletes the affected
allocation rows, then clears the profile back-references and zeroes the
occupancy counters in the same transaction.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from hostel_allocation.core.exceptions import (
    CapacityBelowOccupancyError,
    DuplicateEntryError,
    HostelNotFoundError,
    RoomNotFoundError,
    UnitMismatchError,
    UnitNotFoundError,
    UnitRequiredError,
    ValidationError,
)
from hostel_allocation.models.base.enums import RoomStatus
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.room.room import Room
from hostel_allocation.schemas.room.room_state import RoomReconcileReport, RoomStateChange
from hostel_allocation.services.base.base_service import BaseService


class RoomLifecycleService(BaseService):
    """Room status and capacity changes that keep allocations consistent."""

    # -------------------------------------------------------------------------
    # Single room
    # -------------------------------------------------------------------------

    def deactivate_room(self, room_id: str) -> Room:
        """
        Take a room out of service.

        Deletes every allocation of the room and remembers its capacity in
        ``original_capacity``. Deactivating an Inactive room changes nothing.

        Raises:
            RoomNotFoundError: If the room does not exist
        """
        def work(ctx):
            room = self.uow.rooms.get_for_update(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            removed = self._deactivate(room) if room.is_active else 0
            return room, removed

        room, removed = self._atomic("deactivate_room", work)
        self._log_operation("deactivate_room", {"room_id": room_id, "allocations_removed": removed})
        return room

    def activate_room(self, room_id: str, capacity: Optional[int] = None) -> Room:
        """
        Put a room back into service.

        The capacity is ``capacity`` when given, else the capacity remembered
        at deactivation, else the current value. Applied to an Active room,
        ``capacity`` rewrites its capacity.

        Raises:
            RoomNotFoundError: If the room does not exist
            ValidationError: If the resulting capacity is below 1
            CapacityBelowOccupancyError: If an Active room would hold fewer
                beds than it has occupants
        """
        if capacity is not None and capacity < 1:
            raise ValidationError("Capacity must be at least 1", {"capacity": ["must be >= 1"]})

        def work(ctx):
            room = self.uow.rooms.get_for_update(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            if room.is_active:
                if capacity is not None:
                    self._rewrite_capacity(room, capacity)
            else:
                self._activate(room, capacity)
            return room

        room = self._atomic("activate_room", work)
        self._log_operation("activate_room", {"room_id": room_id, "capacity": room.capacity})
        return room

    def _deactivate(self, room: Room) -> int:
        allocation_ids = self.uow.allocations.ids_by_room(room.id)
        self.uow.profiles.clear_current_allocation(allocation_ids)
        removed = self.uow.allocations.delete_by_ids(allocation_ids)
        self.uow.rooms.reset_occupancy([room.id])
        self.uow.rooms.update(room, {
            "status": RoomStatus.INACTIVE.value,
            "original_capacity": room.capacity,
            "capacity": 0,
        })
        return removed

    def _activate(self, room: Room, capacity: Optional[int]) -> None:
        new_capacity = capacity or room.original_capacity or room.capacity
        if not new_capacity or new_capacity < 1:
            raise ValidationError(
                f"Room {room.room_number} has no capacity to restore",
                {"capacity": ["required when the room has no remembered capacity"]},
            )
        self.uow.rooms.update(room, {
            "status": RoomStatus.ACTIVE.value,
            "capacity": new_capacity,
            "original_capacity": None,
            "occupancy": 0,
        })

    def _rewrite_capacity(self, room: Room, capacity: int) -> bool:
        if capacity == room.capacity:
            return False
        if capacity < room.occupancy:
            raise CapacityBelowOccupancyError(room.room_number, capacity, room.occupancy)
        self.uow.rooms.update(room, {"capacity": capacity})
        return True

    # -------------------------------------------------------------------------
    # Batch reconciliation
    # -------------------------------------------------------------------------

    def bulk_reconcile_rooms(
        self,
        hostel_id: str,
        desired_states: Sequence[Union[RoomStateChange, Mapping[str, Any]]],
    ) -> RoomReconcileReport:
        """
        Bring many rooms of one hostel to a desired state in one transaction.

        Each entry names a room by number (plus unit number in unit-based
        hostels) and the wanted ``status`` and/or ``capacity``. Capacity is
        only rewritten on rooms that stay Active; for rooms changing status
        it is used as the activation capacity and ignored on deactivation.

        Raises:
            ValidationError: On malformed or repeated entries
            HostelNotFoundError, UnitNotFoundError, RoomNotFoundError,
            UnitRequiredError, UnitMismatchError, CapacityBelowOccupancyError
        """
        changes = self._parse_changes(desired_states)

        def work(ctx):
            hostel = self.uow.hostels.find_by_id(hostel_id)
            if hostel is None:
                raise HostelNotFoundError(hostel_id)
            rooms = self._resolve_rooms(hostel, changes)

            report = RoomReconcileReport(hostel_id=hostel_id)
            for change in changes:
                room = rooms[(change.unit_number, change.room_number)]
                wanted = change.status
                if wanted == RoomStatus.INACTIVE and room.is_active:
                    self._deactivate(room)
                    report.deactivated.append(room.id)
                elif wanted == RoomStatus.ACTIVE and not room.is_active:
                    self._activate(room, change.capacity)
                    report.activated.append(room.id)
                elif change.capacity is not None and room.is_active and self._rewrite_capacity(room, change.capacity):
                    report.capacity_changed.append(room.id)
                else:
                    report.unchanged.append(room.id)
            return report

        report = self._atomic("bulk_reconcile_rooms", work)
        self._log_operation(
            "bulk_reconcile_rooms",
            {"hostel_id": hostel_id, "activated": len(report.activated),
             "deactivated": len(report.deactivated), "capacity_changed": len(report.capacity_changed)},
        )
        return report

    @staticmethod
    def _parse_changes(desired_states) -> List[RoomStateChange]:
        if not desired_states:
            raise ValidationError("No room states provided")

        changes = []
        field_errors: Dict[str, List[str]] = {}
        seen = set()
        for index, raw in enumerate(desired_states):
            try:
                change = raw if isinstance(raw, RoomStateChange) else RoomStateChange.model_validate(raw)
            except PydanticValidationError as exc:
                field_errors[str(index)] = [err["msg"] for err in exc.errors()]
                continue
            key = (change.unit_number, change.room_number)
            if key in seen:
                field_errors[str(index)] = [f"room {change.room_number} is listed more than once"]
                continue
            seen.add(key)
            changes.append(change)

        if field_errors:
            raise ValidationError("Invalid room states", field_errors)
        return changes

    def _resolve_rooms(self, hostel: Hostel, changes: List[RoomStateChange]) -> Dict[tuple, Room]:
        """Rooms keyed by ``(unit_number, room_number)`` as given in ``changes``."""
        units = {}
        if hostel.is_unit_based:
            units = self.uow.units.find_by_numbers(hostel.id, (c.unit_number for c in changes))

        keys = {}
        for change in changes:
            if hostel.is_unit_based:
                if not change.unit_number:
                    raise UnitRequiredError(hostel.id)
                unit = units.get(change.unit_number)
                if unit is None:
                    raise UnitNotFoundError(change.unit_number, f"Unit {change.unit_number} not found")
                keys[(change.unit_number, change.room_number)] = (unit.id, change.room_number)
            else:
                if change.unit_number:
                    raise UnitMismatchError(change.unit_number, None)
                keys[(None, change.room_number)] = (None, change.room_number)

        found = self.uow.rooms.find_by_keys(hostel.id, keys.values())
        rooms = {}
        for given, key in keys.items():
            room = found.get(key)
            if room is None:
                label = "-".join(part for part in given if part)
                raise RoomNotFoundError(label, f"Room {label} not found")
            rooms[given] = room
        return rooms

    # -------------------------------------------------------------------------
    # Hostel-wide
    # -------------------------------------------------------------------------

    def archive_hostel(self, hostel_id: str, archived: bool = True) -> Hostel:
        """Toggle the archived flag. Rooms and allocations are untouched."""
        def work(ctx):
            hostel = self.uow.hostels.find_by_id(hostel_id)
            if hostel is None:
                raise HostelNotFoundError(hostel_id)
            if hostel.is_archived != archived:
                self.uow.hostels.update(hostel, {"is_archived": archived})
            return hostel

        hostel = self._atomic("archive_hostel", work)
        self._log_operation("archive_hostel", {"hostel_id": hostel_id, "archived": archived})
        return hostel

    def reset_hostel_allocations(self, hostel_id: str) -> int:
        """
        Remove every allocation of a hostel and zero all its rooms.

        Returns:
            Number of allocation rows deleted
        """
        def work(ctx):
            if self.uow.hostels.find_by_id(hostel_id) is None:
                raise HostelNotFoundError(hostel_id)
            allocation_ids = self.uow.allocations.ids_by_hostel(hostel_id)
            self.uow.profiles.clear_current_allocation(allocation_ids)
            removed = self.uow.allocations.delete_by_ids(allocation_ids)
            self.uow.rooms.reset_hostel_occupancy(hostel_id)
            return removed

        removed = self._atomic("reset_hostel_allocations", work)
        self._log_operation("reset_hostel_allocations", {"hostel_id": hostel_id, "removed": removed})
        return removed
