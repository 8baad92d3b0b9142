"""
Custom Exceptions for the Hostel Allocation Engine

This module defines the exception classes raised by the allocation,
bulk-processing, lifecycle and projection services. Every error carries
a stable ``error_code`` so callers (an HTTP layer, a CLI, a test) can
branch on it without parsing messages.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    TRANSACTION_CONFLICT = "TRANSACTION_CONFLICT"

    # Not found
    HOSTEL_NOT_FOUND = "HOSTEL_NOT_FOUND"
    UNIT_NOT_FOUND = "UNIT_NOT_FOUND"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    ALLOCATION_NOT_FOUND = "ALLOCATION_NOT_FOUND"
    ROOM_CHANGE_REQUEST_NOT_FOUND = "ROOM_CHANGE_REQUEST_NOT_FOUND"

    # Allocation state conflicts
    ROOM_INACTIVE = "ROOM_INACTIVE"
    ROOM_FULL = "ROOM_FULL"
    INVALID_BED = "INVALID_BED"
    BED_OCCUPIED = "BED_OCCUPIED"
    STUDENT_ALREADY_ALLOCATED = "STUDENT_ALREADY_ALLOCATED"
    UNIT_REQUIRED = "UNIT_REQUIRED"
    UNIT_MISMATCH = "UNIT_MISMATCH"
    CAPACITY_BELOW_OCCUPANCY = "CAPACITY_BELOW_OCCUPANCY"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        status_code: int = 422
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, error_code, details, status_code)


class InvalidStateError(BaseAppException):
    """Exception raised when an entity is not in a state that allows the operation"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_STATE, details, 409)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, error_code, details, 404)


class HostelNotFoundError(ResourceNotFoundError):
    """Exception raised when a hostel is not found"""

    def __init__(self, hostel_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Hostel", hostel_id, message, ErrorCode.HOSTEL_NOT_FOUND)


class UnitNotFoundError(ResourceNotFoundError):
    """Exception raised when a unit is not found"""

    def __init__(self, unit_ref: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Unit", unit_ref, message, ErrorCode.UNIT_NOT_FOUND)


class RoomNotFoundError(ResourceNotFoundError):
    """Exception raised when a room is not found"""

    def __init__(self, room_ref: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Room", room_ref, message, ErrorCode.ROOM_NOT_FOUND)


class StudentNotFoundError(ResourceNotFoundError):
    """Exception raised when a student profile is not found"""

    def __init__(self, student_ref: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Student", student_ref, message, ErrorCode.STUDENT_NOT_FOUND)


class AllocationNotFoundError(ResourceNotFoundError):
    """Exception raised when no active allocation matches"""

    def __init__(self, allocation_ref: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Allocation", allocation_ref, message, ErrorCode.ALLOCATION_NOT_FOUND)


class RoomChangeRequestNotFoundError(ResourceNotFoundError):
    """Exception raised when a room change request is not found"""

    def __init__(self, request_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            "RoomChangeRequest", request_id, message, ErrorCode.ROOM_CHANGE_REQUEST_NOT_FOUND
        )


# ========================================
# Allocation State Conflicts
# ========================================

class AllocationConflictError(BaseAppException):
    """Base class for allocation rules that reject the current state"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details, 409)


class RoomInactiveError(AllocationConflictError):
    """The target room is not Active"""

    def __init__(self, room_number: str, room_id: Optional[str] = None):
        super().__init__(
            f"Room {room_number} is inactive",
            ErrorCode.ROOM_INACTIVE,
            {"room_id": room_id, "room_number": room_number},
        )


class RoomFullError(AllocationConflictError):
    """The target room has no free bed"""

    def __init__(self, room_number: Optional[str] = None, capacity: Optional[int] = None,
                 occupancy: Optional[int] = None):
        super().__init__(
            f"Room {room_number} is at full capacity" if room_number else "Room is at full capacity",
            ErrorCode.ROOM_FULL,
            {"room_number": room_number, "capacity": capacity, "occupancy": occupancy},
        )


class InvalidBedError(AllocationConflictError):
    """The bed number is outside ``1..capacity``"""

    def __init__(self, bed_number: Any, capacity: int):
        super().__init__(
            f"Bed number must be between 1 and {capacity}",
            ErrorCode.INVALID_BED,
            {"bed_number": bed_number, "capacity": capacity},
        )


class BedOccupiedError(AllocationConflictError):
    """Another student actively holds the bed"""

    def __init__(self, room_number: Optional[str] = None, bed_number: Optional[int] = None):
        super().__init__(
            f"Bed {bed_number} in room {room_number} is already occupied"
            if room_number else "Bed is already occupied",
            ErrorCode.BED_OCCUPIED,
            {"room_number": room_number, "bed_number": bed_number},
        )


class StudentAlreadyAllocatedError(AllocationConflictError):
    """The student already holds an active allocation"""

    def __init__(self, student_profile_id: Optional[str] = None, allocation_id: Optional[str] = None):
        super().__init__(
            "Student already has an active room allocation",
            ErrorCode.STUDENT_ALREADY_ALLOCATED,
            {"student_profile_id": student_profile_id, "allocation_id": allocation_id},
        )


class TransactionConflictError(AllocationConflictError):
    """Storage kept aborting the transaction after every retry"""

    def __init__(self, operation: str, attempts: int, reason: Optional[str] = None):
        super().__init__(
            f"{operation} could not be committed after {attempts} attempt(s)",
            ErrorCode.TRANSACTION_CONFLICT,
            {"operation": operation, "attempts": attempts, "reason": reason},
        )


class UnitRequiredError(AllocationConflictError):
    """Unit-based hostels address rooms through a unit"""

    def __init__(self, hostel_id: Optional[str] = None):
        super().__init__(
            "Unit is required for unit-based hostels",
            ErrorCode.UNIT_REQUIRED,
            {"hostel_id": hostel_id},
        )


class UnitMismatchError(AllocationConflictError):
    """The supplied unit does not own the room"""

    def __init__(self, unit_id: Optional[str], room_unit_id: Optional[str]):
        super().__init__(
            "Room does not belong to the given unit",
            ErrorCode.UNIT_MISMATCH,
            {"unit_id": unit_id, "room_unit_id": room_unit_id},
        )


class CapacityBelowOccupancyError(AllocationConflictError):
    """A capacity rewrite would strand current occupants"""

    def __init__(self, room_number: str, capacity: int, occupancy: int):
        super().__init__(
            f"Capacity {capacity} for room {room_number} is below its occupancy {occupancy}",
            ErrorCode.CAPACITY_BELOW_OCCUPANCY,
            {"room_number": room_number, "capacity": capacity, "occupancy": occupancy},
        )


# ========================================
# Database Exceptions
# ========================================

class DatabaseError(BaseAppException):
    """Exception raised when database operations fail"""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        table: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        merged = {"operation": operation, "table": table}
        merged.update(details or {})
        super().__init__(message, error_code, merged, status_code)


class DuplicateEntryError(DatabaseError):
    """Exception raised when trying to create a duplicate entry"""

    def __init__(
        self,
        message: str = "Duplicate entry",
        field: Optional[str] = None,
        value: Optional[str] = None,
        table: Optional[str] = None
    ):
        super().__init__(
            message,
            table=table,
            error_code=ErrorCode.DUPLICATE_ENTRY,
            status_code=409,
            details={"field": field, "value": value},
        )


# ========================================
# Utility Functions
# ========================================

# Constraint name (PostgreSQL) or column list (SQLite) -> state conflict
_CONSTRAINT_CONFLICTS = (
    (
        ("uq_room_allocations_active_bed", "room_allocations.room_id, room_allocations.bed_number"),
        lambda params: BedOccupiedError(bed_number=params.get("bed_number")),
    ),
    (
        ("uq_room_allocations_active_student", "room_allocations.student_profile_id"),
        lambda params: StudentAlreadyAllocatedError(params.get("student_profile_id")),
    ),
    (
        ("ck_rooms_occupancy_bounds", "occupancy <= capacity"),
        lambda params: RoomFullError(),
    ),
)


def constraint_violation_error(exc: Exception) -> Optional[AllocationConflictError]:
    """
    Map a violated allocation constraint to its state-conflict error.

    Returns None when the error names none of the allocation constraints.
    """
    error_message = str(getattr(exc, "orig", exc)).lower()
    params = getattr(exc, "params", None)
    params = params if isinstance(params, dict) else {}

    for markers, build in _CONSTRAINT_CONFLICTS:
        if any(marker in error_message for marker in markers):
            return build(params)
    return None


def handle_database_exception(exc: Exception) -> BaseAppException:
    """Convert database exceptions to application exceptions"""
    conflict = constraint_violation_error(exc)
    if conflict is not None:
        return conflict

    error_message = str(exc)

    if "duplicate" in error_message.lower() or "unique constraint" in error_message.lower():
        return DuplicateEntryError(f"Duplicate entry: {error_message}")
    return DatabaseError(f"Database error: {error_message}")


def create_validation_error(field_errors: Dict[str, List[str]]) -> ValidationError:
    """Create a validation error with field-specific errors"""
    total_errors = sum(len(errors) for errors in field_errors.values())
    message = f"Validation failed with {total_errors} error(s)"
    return ValidationError(message, field_errors)


__all__ = [
    'ErrorCode',
    'BaseAppException',
    'ValidationError',
    'InvalidStateError',
    'ResourceNotFoundError',
    'HostelNotFoundError',
    'UnitNotFoundError',
    'RoomNotFoundError',
    'StudentNotFoundError',
    'AllocationNotFoundError',
    'RoomChangeRequestNotFoundError',
    'AllocationConflictError',
    'RoomInactiveError',
    'RoomFullError',
    'InvalidBedError',
    'BedOccupiedError',
    'StudentAlreadyAllocatedError',
    'UnitRequiredError',
    'UnitMismatchError',
    'CapacityBelowOccupancyError',
    'DatabaseError',
    'DuplicateEntryError',
    'TransactionConflictError',
    'constraint_violation_error',
    'handle_database_exception',
    'create_validation_error',
]
