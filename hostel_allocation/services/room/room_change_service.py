"""
Room change request workflow.

A student holding an Active allocation asks to move to another room; a
warden approves (the move is applied with reassign semantics, so the
allocation keeps its id) or rejects the request.
"""

from datetime import datetime, timezone
from typing import List, Optional

from hostel_allocation.core.exceptions import (
    AllocationNotFoundError,
    InvalidStateError,
    RoomChangeRequestNotFoundError,
    RoomNotFoundError,
    StudentNotFoundError,
    ValidationError,
)
from hostel_allocation.models.base.enums import RoomChangeStatus
from hostel_allocation.models.student.room_change_request import RoomChangeRequest
from hostel_allocation.services.base.base_service import BaseService
from hostel_allocation.services.base.unit_of_work import UnitOfWork
from hostel_allocation.services.room.allocation_service import AllocationService


class RoomChangeService(BaseService):
    """Create and review room change requests."""

    def __init__(self, uow: UnitOfWork):
        super().__init__(uow)
        self.allocations = AllocationService(uow)

    def create_request(
        self,
        student_profile_id: str,
        requested_room_id: str,
        reason: str,
        requested_bed_number: Optional[int] = None,
    ) -> RoomChangeRequest:
        """
        File a request for the student's current allocation.

        Raises:
            ValidationError: If no reason is given
            StudentNotFoundError, RoomNotFoundError
            AllocationNotFoundError: If the student holds no Active allocation
            InvalidStateError: If the student already has a Pending request
        """
        if not reason or not reason.strip():
            raise ValidationError("A reason is required", {"reason": ["must not be empty"]})

        def work(ctx):
            if self.uow.profiles.find_by_id(student_profile_id) is None:
                raise StudentNotFoundError(student_profile_id)
            allocation = self.uow.allocations.find_active_by_student(student_profile_id)
            if allocation is None:
                raise AllocationNotFoundError(student_profile_id, "Student has no active allocation")
            if self.uow.rooms.find_by_id(requested_room_id) is None:
                raise RoomNotFoundError(requested_room_id)
            if self.uow.room_change_requests.find_pending_by_student(student_profile_id) is not None:
                raise InvalidStateError(
                    "Student already has a pending room change request",
                    {"student_profile_id": student_profile_id},
                )
            return self.uow.room_change_requests.create({
                "student_profile_id": student_profile_id,
                "current_allocation_id": allocation.id,
                "requested_room_id": requested_room_id,
                "requested_bed_number": requested_bed_number,
                "reason": reason.strip(),
                "status": RoomChangeStatus.PENDING.value,
            })

        request = self._atomic("create_room_change_request", work)
        self._log_operation(
            "create_room_change_request",
            {"request_id": request.id, "student_profile_id": student_profile_id, "room_id": requested_room_id},
        )
        return request

    def approve_request(
        self,
        request_id: str,
        bed_number: Optional[int] = None,
        reviewer_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> RoomChangeRequest:
        """
        Approve a Pending request and move the student.

        ``bed_number`` defaults to the bed named in the request. The move and
        the status change commit together; any allocation rule violation
        leaves the request Pending.
        """
        def work(ctx):
            request = self._pending(request_id)
            bed = bed_number if bed_number is not None else request.requested_bed_number
            if bed is None:
                raise ValidationError("A bed number is required", {"bed_number": ["required"]})

            room = self.uow.rooms.find_by_id(request.requested_room_id)
            if room is None:
                raise RoomNotFoundError(request.requested_room_id)
            allocation = self.allocations.relocate(
                request.student_profile_id, room.id, bed, reviewer_id, room.unit_id
            )
            self._review(request, RoomChangeStatus.APPROVED, reviewer_id, notes)
            self.uow.room_change_requests.update(request, {
                "requested_bed_number": bed,
                "new_allocation_id": allocation.id,
            })
            return request

        request = self._atomic("approve_room_change_request", work)
        self._log_operation(
            "approve_room_change_request",
            {"request_id": request_id, "allocation_id": request.new_allocation_id},
        )
        return request

    def reject_request(
        self,
        request_id: str,
        reason: Optional[str] = None,
        reviewer_id: Optional[str] = None,
    ) -> RoomChangeRequest:
        def work(ctx):
            request = self._pending(request_id)
            self._review(request, RoomChangeStatus.REJECTED, reviewer_id, reason)
            return request

        request = self._atomic("reject_room_change_request", work)
        self._log_operation("reject_room_change_request", {"request_id": request_id})
        return request

    def list_requests(self, status: RoomChangeStatus = RoomChangeStatus.PENDING) -> List[RoomChangeRequest]:
        return self.uow.room_change_requests.find_by_status(status)

    def _pending(self, request_id: str) -> RoomChangeRequest:
        request = self.uow.room_change_requests.find_by_id(request_id)
        if request is None:
            raise RoomChangeRequestNotFoundError(request_id)
        if not request.is_pending:
            raise InvalidStateError(
                f"Room change request is already {request.status}",
                {"request_id": request_id, "status": request.status},
            )
        return request

    def _review(
        self,
        request: RoomChangeRequest,
        status: RoomChangeStatus,
        reviewer_id: Optional[str],
        notes: Optional[str],
    ) -> None:
        self.uow.room_change_requests.update(request, {
            "status": status.value,
            "reviewed_by": reviewer_id,
            "review_date": datetime.now(timezone.utc),
            "review_notes": notes,
        })
