"""Tests for roster uploads with partial success."""

import pytest

from hostel_allocation.core.exceptions import ErrorCode, HostelNotFoundError, ValidationError
from hostel_allocation.models import Room, StudentProfile
from hostel_allocation.schemas.common.bulk import BulkStatus
from hostel_allocation.services import AllocationService, BulkAllocationService, OccupancyProjectionService


@pytest.fixture
def service(uow, hasher):
    return BulkAllocationService(uow, hasher)


@pytest.fixture
def block(factory):
    return factory.unit_hostel(capacity=2)


def failure_codes(report):
    return {f.row_index: f.error_code for f in report.failures}


class TestBulkAllocate:
    def test_all_rows_succeed(self, service, factory, block):
        a, b, c = factory.students(3)
        rows = [
            {"roll_number": a.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": b.roll_number, "unit": "A", "room": "101", "bed_number": 2},
            {"roll_number": c.roll_number.lower(), "unit": "B", "room": "102", "bed_number": 1},
        ]

        report = service.bulk_allocate(block.id, rows)

        assert report.status == BulkStatus.ALL_SUCCESS
        assert report.status_code == 200
        assert report.succeeded_count == 3
        assert [s.action for s in report.successes] == ["allocated"] * 3
        assert factory.reload(Room, factory.room(block, "101", "A").id).occupancy == 2
        assert factory.reload(Room, factory.room(block, "102", "B").id).occupancy == 1
        assert factory.reload(StudentProfile, c.id).current_room_allocation_id == report.successes[2].allocation_id

    def test_partial_success_reports_each_failure(self, service, factory, block):
        a, b, c, d = factory.students(4)
        rows = [
            {"roll_number": a.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": b.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": c.roll_number, "unit": "Z", "room": "101", "bed_number": 1},
            {"roll_number": d.roll_number, "room": "102", "bed_number": 1},
            {"roll_number": "NOBODY", "unit": "A", "room": "102", "bed_number": 1},
            {"roll_number": d.roll_number, "unit": "A", "room": "999", "bed_number": 1},
            {"unit": "A", "room": "102", "bed_number": 1},
        ]

        report = service.bulk_allocate(block.id, rows)

        assert report.status == BulkStatus.PARTIAL
        assert report.status_code == 207
        assert [s.row_index for s in report.successes] == [0]
        assert failure_codes(report) == {
            1: ErrorCode.BED_OCCUPIED.value,
            2: ErrorCode.UNIT_NOT_FOUND.value,
            3: ErrorCode.UNIT_REQUIRED.value,
            4: ErrorCode.STUDENT_NOT_FOUND.value,
            5: ErrorCode.DUPLICATE_ENTRY.value,
            6: ErrorCode.VALIDATION_ERROR.value,
        }
        assert factory.reload(Room, factory.room(block, "101", "A").id).occupancy == 1

    def test_running_occupancy_rejects_overflow_within_batch(self, service, factory, block):
        a, b, c = factory.students(3)
        rows = [
            {"roll_number": a.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": b.roll_number, "unit": "A", "room": "101", "bed_number": 2},
            {"roll_number": c.roll_number, "unit": "A", "room": "101", "bed_number": 2},
        ]

        report = service.bulk_allocate(block.id, rows)

        assert failure_codes(report) == {2: ErrorCode.ROOM_FULL.value}
        assert factory.reload(Room, factory.room(block, "101", "A").id).occupancy == 2

    def test_existing_allocation_unchanged_or_moved(self, service, factory, block, uow):
        room = factory.room(block, "101", "A")
        target = factory.room(block, "102", "A")
        stays, moves = factory.students(2)
        allocations = AllocationService(uow)
        stay_id = allocations.allocate(room.id, stays.id, 1, unit_id=room.unit_id).id
        move_id = allocations.allocate(room.id, moves.id, 2, unit_id=room.unit_id).id

        report = service.bulk_allocate(block.id, [
            {"roll_number": stays.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": moves.roll_number, "unit": "A", "room": "102", "bed_number": 2},
        ])

        assert report.status == BulkStatus.ALL_SUCCESS
        outcomes = {s.roll_number: s for s in report.successes}
        assert outcomes[stays.roll_number].action == "unchanged"
        assert outcomes[stays.roll_number].allocation_id == stay_id
        assert outcomes[moves.roll_number].action == "moved"
        assert outcomes[moves.roll_number].allocation_id == move_id
        assert factory.reload(Room, room.id).occupancy == 1
        assert factory.reload(Room, target.id).occupancy == 1

    def test_bed_released_by_move_can_be_claimed(self, service, factory, block, uow):
        room = factory.room(block, "101", "A")
        mover, newcomer = factory.students(2)
        AllocationService(uow).allocate(room.id, mover.id, 1, unit_id=room.unit_id)

        report = service.bulk_allocate(block.id, [
            {"roll_number": mover.roll_number, "unit": "B", "room": "101", "bed_number": 1},
            {"roll_number": newcomer.roll_number, "unit": "A", "room": "101", "bed_number": 1},
        ])

        assert report.status == BulkStatus.ALL_SUCCESS
        assert factory.reload(Room, room.id).occupancy == 1
        assert factory.reload(Room, factory.room(block, "101", "B").id).occupancy == 1

    def test_creates_missing_profiles(self, service, factory, block, hasher):
        report = service.bulk_allocate(block.id, [
            {"roll_number": "new01", "unit": "A", "room": "101", "bed_number": 1,
             "email": "New01@Example.edu", "name": "New Student", "degree": "M.Tech"},
            {"roll_number": "new02", "unit": "A", "room": "101", "bed_number": 2,
             "email": "new01@example.edu", "name": "Same Email"},
        ])

        assert report.profiles_created == 1
        assert failure_codes(report) == {1: ErrorCode.DUPLICATE_ENTRY.value}
        profile = factory.uow.profiles.find_by_roll_number("NEW01")
        assert profile is not None
        assert profile.user.email == "new01@example.edu"
        assert hasher.verify("NEW01", profile.user.password_hash)
        assert profile.current_room_allocation_id == report.successes[0].allocation_id

    def test_profile_creation_rejects_stored_email(self, service, factory, block):
        existing = factory.student(email="taken@example.edu")

        report = service.bulk_allocate(block.id, [
            {"roll_number": "fresh", "unit": "A", "room": "101", "bed_number": 1,
             "email": "taken@example.edu", "name": "Fresh"},
        ])

        assert report.status == BulkStatus.ALL_FAILED
        assert report.status_code == 400
        assert failure_codes(report) == {0: ErrorCode.DUPLICATE_ENTRY.value}
        assert factory.uow.profiles.find_by_roll_number("FRESH") is None
        assert existing.id

    def test_room_only_hostel_rows(self, service, factory):
        annex = factory.room_only_hostel()
        student = factory.student()

        report = service.bulk_allocate(annex.id, [
            {"roll_number": student.roll_number, "room": "2", "bed_number": 2},
        ])

        assert report.status == BulkStatus.ALL_SUCCESS
        assert factory.reload(Room, factory.room(annex, "2").id).occupancy == 1

    def test_chunks_commit_independently(self, service, factory, block):
        a, b, c = factory.students(3)
        rows = [
            {"roll_number": a.roll_number, "unit": "A", "room": "101", "bed_number": 1},
            {"roll_number": b.roll_number, "unit": "A", "room": "101", "bed_number": 2},
            {"roll_number": c.roll_number, "unit": "A", "room": "101", "bed_number": 2},
        ]

        report = service.bulk_allocate(block.id, rows, chunk_size=2)

        assert report.succeeded_count == 2
        assert failure_codes(report) == {2: ErrorCode.ROOM_FULL.value}
        assert OccupancyProjectionService(factory.uow).audit_occupancy(block.id) == []

    def test_empty_batch_and_unknown_hostel(self, service, block):
        with pytest.raises(ValidationError):
            service.bulk_allocate(block.id, [])
        with pytest.raises(HostelNotFoundError):
            service.bulk_allocate("missing", [{"roll_number": "X", "room": "1", "bed_number": 1}])

    def test_out_of_range_bed_fails_alone(self, service, factory):
        ward = factory.room_only_hostel(name="Ward", rooms=("1",), capacity=4)
        room = factory.room(ward, "1")
        students = factory.students(5)
        beds = [1, 2, 9, 3, 4]
        rows = [
            {"roll_number": s.roll_number, "room": "1", "bed_number": bed}
            for s, bed in zip(students, beds)
        ]

        report = service.bulk_allocate(ward.id, rows)

        assert report.status == BulkStatus.PARTIAL
        assert failure_codes(report) == {2: ErrorCode.INVALID_BED.value}
        assert [s.row_index for s in report.successes] == [0, 1, 3, 4]
        assert factory.reload(Room, room.id).occupancy == 4

    def test_clash_missed_by_planning_is_reported_as_bed_occupied(
        self, service, factory, block, uow, monkeypatch
    ):
        holder, newcomer = factory.students(2)
        room = factory.room(block, "101", "A")
        AllocationService(uow).allocate(room.id, holder.id, 1, unit_id=room.unit_id)
        monkeypatch.setattr(uow.allocations, "find_active_by_rooms", lambda room_ids: [])

        report = service.bulk_allocate(
            block.id, [{"roll_number": newcomer.roll_number, "unit": "A", "room": "101", "bed_number": 1}]
        )

        assert failure_codes(report) == {0: ErrorCode.BED_OCCUPIED.value}
        assert factory.reload(Room, room.id).occupancy == 1
        assert factory.reload(StudentProfile, newcomer.id).current_room_allocation_id is None
