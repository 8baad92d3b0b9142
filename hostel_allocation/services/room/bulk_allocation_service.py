"""
Bulk allocation processor.

Applies a roster of ``{roll_number, unit, room, bed_number}`` rows to one
hostel with partial-success semantics. Each (sub-)batch is planned against
a single snapshot plus an in-memory running delta, then written in one
transaction:

1. structural validation of every row (pydantic)
2. batch resolution of units, rooms, profiles, users and Active allocations
3. profile creation planning with store and in-batch collision checks
4. allocation planning with running occupancy deltas and claimed/released beds
5. one atomic write of all accepted rows, retried on storage conflicts
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from hostel_allocation.config.security import PasswordHasher
from hostel_allocation.config.settings import settings
from hostel_allocation.core.exceptions import (
    BaseAppException,
    DuplicateEntryError,
    HostelNotFoundError,
    RoomNotFoundError,
    StudentNotFoundError,
    UnitMismatchError,
    UnitNotFoundError,
    UnitRequiredError,
    ValidationError,
    handle_database_exception,
)
from hostel_allocation.core.utils import CollectionUtils
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.room.room import Room
from hostel_allocation.models.room.room_allocation import RoomAllocation
from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.schemas.common.bulk import RowFailure
from hostel_allocation.schemas.room.allocation import BulkAllocationReport, BulkRowOutcome, RosterRow
from hostel_allocation.services.base.base_service import BaseService
from hostel_allocation.services.base.unit_of_work import UnitOfWork
from hostel_allocation.services.room.allocation_service import AllocationRules, AllocationService
from hostel_allocation.services.student.student_profile_service import (
    StudentProfileService,
    failure_from_exception,
    validation_failure,
)

IndexedRow = Tuple[int, RosterRow]

ALLOCATED = "allocated"
MOVED = "moved"
UNCHANGED = "unchanged"


@dataclass
class PlannedRow:
    """An accepted row and the write it needs."""

    index: int
    row: RosterRow
    room: Room
    action: str
    profile: Optional[StudentProfile] = None
    existing: Optional[RoomAllocation] = None

    @property
    def creates_profile(self) -> bool:
        return self.profile is None


@dataclass
class BatchPlan:
    """Outcome of planning one sub-batch against a snapshot."""

    accepted: List[PlannedRow] = field(default_factory=list)
    failures: List[RowFailure] = field(default_factory=list)
    # Running bookkeeping keyed by room id
    occupancy_delta: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    claimed_beds: Dict[str, Set[int]] = field(default_factory=lambda: defaultdict(set))
    released_beds: Dict[str, Set[int]] = field(default_factory=lambda: defaultdict(set))

    def reject(self, index: int, row: RosterRow, exc: BaseAppException) -> None:
        self.failures.append(failure_from_exception(index, row.roll_number, exc))


class BulkAllocationService(BaseService):
    """Roster upload processing with per-row outcomes."""

    def __init__(self, uow: UnitOfWork, hasher: Optional[PasswordHasher] = None):
        super().__init__(uow)
        self.allocations = AllocationService(uow)
        self.profiles = StudentProfileService(uow, hasher)

    def bulk_allocate(
        self,
        hostel_id: str,
        rows: Sequence[Union[RosterRow, Mapping[str, Any]]],
        actor_id: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ) -> BulkAllocationReport:
        """
        Allocate a roster of students to beds of one hostel.

        Args:
            hostel_id: Hostel every row refers to
            rows: Roster rows, as ``RosterRow`` or plain mappings
            actor_id: User performing the upload, stored for audit
            chunk_size: Split into independently committed sub-batches;
                defaults to ``settings.BULK_CHUNK_SIZE`` (one batch when unset)

        Returns:
            Report listing successes and failures per row

        Raises:
            ValidationError: If ``rows`` is empty
            HostelNotFoundError: If the hostel does not exist
        """
        if not rows:
            raise ValidationError("No roster rows provided")
        if self.uow.hostels.find_by_id(hostel_id) is None:
            raise HostelNotFoundError(hostel_id)

        report = BulkAllocationReport(hostel_id=hostel_id, total=len(rows))
        parsed: List[IndexedRow] = []
        for index, raw in enumerate(rows):
            try:
                parsed.append((index, raw if isinstance(raw, RosterRow) else RosterRow.model_validate(raw)))
            except PydanticValidationError as exc:
                report.failures.append(validation_failure(index, raw, exc))

        # Repeated roll numbers anywhere in the upload are internal conflicts.
        unique_rows: List[IndexedRow] = []
        seen_rolls: Set[str] = set()
        for index, row in parsed:
            if row.roll_number in seen_rolls:
                report.failures.append(failure_from_exception(index, row.roll_number, DuplicateEntryError(
                    "Roll number is repeated in this batch", field="roll_number", value=row.roll_number,
                )))
                continue
            seen_rolls.add(row.roll_number)
            unique_rows.append((index, row))

        for chunk in CollectionUtils.chunk_list(unique_rows, chunk_size or settings.BULK_CHUNK_SIZE):
            failures, successes = self._process_chunk(hostel_id, list(chunk), actor_id)
            report.failures.extend(failures)
            report.successes.extend(successes)

        report.failures.sort(key=lambda f: f.row_index)
        report.successes.sort(key=lambda s: s.row_index)
        self._log_operation(
            "bulk_allocate",
            {"hostel_id": hostel_id, "total": report.total, "succeeded": report.succeeded_count,
             "failed": report.failed_count, "status": report.status.value},
        )
        return report

    # -------------------------------------------------------------------------
    # Sub-batch execution
    # -------------------------------------------------------------------------

    def _process_chunk(
        self,
        hostel_id: str,
        chunk: List[IndexedRow],
        actor_id: Optional[str],
    ) -> Tuple[List[RowFailure], List[BulkRowOutcome]]:
        last_plan: List[BatchPlan] = []

        def work(ctx):
            hostel = self.uow.hostels.find_by_id(hostel_id)
            plan = self._plan(hostel, chunk)
            last_plan[:] = [plan]
            return plan.failures, self._apply(plan, actor_id)

        try:
            return self._atomic("bulk_allocate", work)
        except (SQLAlchemyError, BaseAppException) as exc:
            # Nothing from this sub-batch was committed.
            self._logger.error(f"Bulk allocation sub-batch for hostel {hostel_id} failed: {exc}")
            error = exc if isinstance(exc, BaseAppException) else handle_database_exception(exc)
            failures = list(last_plan[0].failures) if last_plan else []
            rejected = {f.row_index for f in failures}
            failures.extend(
                RowFailure(
                    row_index=index,
                    roll_number=row.roll_number,
                    error_code=error.error_code.value,
                    message=error.message,
                )
                for index, row in chunk if index not in rejected
            )
            return failures, []

    def _apply(self, plan: BatchPlan, actor_id: Optional[str]) -> List[BulkRowOutcome]:
        """Write accepted rows in planning order; each write is flushed immediately."""
        outcomes = []
        for planned in plan.accepted:
            profile = planned.profile
            if planned.creates_profile:
                profile = self.profiles.create_profile_record(planned.row)

            if planned.action == UNCHANGED:
                allocation = planned.existing
            elif planned.action == MOVED:
                allocation = self.allocations.move_allocation(
                    planned.existing, planned.room, planned.row.bed_number, actor_id, profile
                )
            else:
                allocation = self.allocations.write_allocation(
                    planned.room, profile, planned.row.bed_number, actor_id
                )

            outcomes.append(BulkRowOutcome(
                row_index=planned.index,
                roll_number=planned.row.roll_number,
                allocation_id=allocation.id,
                room_id=planned.room.id,
                bed_number=planned.row.bed_number,
                action=planned.action,
                profile_created=planned.creates_profile,
            ))
        return outcomes

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def _plan(self, hostel: Hostel, chunk: List[IndexedRow]) -> BatchPlan:
        plan = BatchPlan()
        rows = [row for _, row in chunk]

        units = (
            self.uow.units.find_by_numbers(hostel.id, (r.unit for r in rows))
            if hostel.is_unit_based else {}
        )
        room_keys = set()
        for row in rows:
            if hostel.is_unit_based:
                unit = units.get(row.unit)
                if unit is not None:
                    room_keys.add((unit.id, row.room))
            else:
                room_keys.add((None, row.room))
        rooms = self.uow.rooms.find_by_keys(hostel.id, room_keys)

        profiles = self.uow.profiles.find_by_roll_numbers(r.roll_number for r in rows)
        users = self.uow.users.find_by_emails(r.email for r in rows if r.roll_number not in profiles)
        by_student = self.uow.allocations.find_active_by_students(p.id for p in profiles.values())

        # Beds held in the touched rooms and in rooms students are moving out of
        watched_rooms = {room.id for room in rooms.values()} | {a.room_id for a in by_student.values()}
        bed_holders = {
            (a.room_id, a.bed_number): a
            for a in self.uow.allocations.find_active_by_rooms(watched_rooms)
        }
        new_emails: Set[str] = set()

        def holder(room_id: str, bed_number: int) -> Optional[RoomAllocation]:
            if bed_number in plan.released_beds[room_id]:
                return None
            return bed_holders.get((room_id, bed_number))

        for index, row in chunk:
            try:
                room = self._locate_room(hostel, row, units, rooms)
                profile = profiles.get(row.roll_number)
                if profile is None:
                    self._check_new_profile(row, users, new_emails)
                existing = by_student.get(profile.id) if profile is not None else None
                plan.accepted.append(self._plan_row(plan, index, row, room, profile, existing, holder))
            except BaseAppException as exc:
                plan.reject(index, row, exc)
        return plan

    def _locate_room(self, hostel: Hostel, row: RosterRow, units: Dict[str, Any], rooms: Dict) -> Room:
        if hostel.is_unit_based:
            if not row.unit:
                raise UnitRequiredError(hostel.id)
            unit = units.get(row.unit)
            if unit is None:
                raise UnitNotFoundError(row.unit, f"Unit {row.unit} not found")
            key = (unit.id, row.room)
            label = f"{row.unit}-{row.room}"
        else:
            if row.unit:
                raise UnitMismatchError(row.unit, None)
            key = (None, row.room)
            label = row.room

        room = rooms.get(key)
        if room is None:
            raise RoomNotFoundError(label, f"Room {label} not found")
        return room

    def _check_new_profile(self, row: RosterRow, users: Dict[str, Any], new_emails: Set[str]) -> None:
        if not row.can_create_profile:
            raise StudentNotFoundError(row.roll_number, f"Student with roll number {row.roll_number} not found")
        if row.email in users:
            raise DuplicateEntryError("Email already exists", field="email", value=row.email, table="users")
        if row.email in new_emails:
            raise DuplicateEntryError("Email is repeated in this batch", field="email", value=row.email)
        new_emails.add(row.email)

    def _plan_row(
        self,
        plan: BatchPlan,
        index: int,
        row: RosterRow,
        room: Room,
        profile: Optional[StudentProfile],
        existing: Optional[RoomAllocation],
        holder,
    ) -> PlannedRow:
        bed = row.bed_number
        if existing is not None and existing.room_id == room.id and existing.bed_number == bed:
            return PlannedRow(index, row, room, UNCHANGED, profile, existing)

        within_room = existing is not None and existing.room_id == room.id
        occupancy = room.occupancy + plan.occupancy_delta[room.id] - (1 if within_room else 0)
        AllocationRules.check_room_accepts(room, occupancy)
        AllocationRules.check_bed(room, bed, holder, moving=existing, claimed_beds=plan.claimed_beds[room.id])

        plan.claimed_beds[room.id].add(bed)
        plan.released_beds[room.id].discard(bed)
        if existing is None:
            plan.occupancy_delta[room.id] += 1
            return PlannedRow(index, row, room, ALLOCATED, profile, None)

        plan.released_beds[existing.room_id].add(existing.bed_number)
        plan.claimed_beds[existing.room_id].discard(existing.bed_number)
        if not within_room:
            plan.occupancy_delta[existing.room_id] -= 1
            plan.occupancy_delta[room.id] += 1
        return PlannedRow(index, row, room, MOVED, profile, existing)
