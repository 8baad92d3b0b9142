"""
Database enums shared by models and schemas.

Values are stored as plain strings; the partial unique indexes on
``room_allocations`` filter on the literal ``'Active'``.
"""

import enum


class HostelType(str, enum.Enum):
    """How rooms inside a hostel are addressed."""
    UNIT_BASED = "unit-based"
    ROOM_ONLY = "room-only"


class HostelGender(str, enum.Enum):
    """Residents a hostel admits."""
    MALE = "Male"
    FEMALE = "Female"
    CO_ED = "Co-ed"


class RoomStatus(str, enum.Enum):
    """Room availability status."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class AllocationStatus(str, enum.Enum):
    """Lifecycle of a bed allocation."""
    ACTIVE = "Active"
    VACATED = "Vacated"


class UserRole(str, enum.Enum):
    """User role enumeration."""
    ADMIN = "Admin"
    WARDEN = "Warden"
    STUDENT = "Student"


class StudentStatus(str, enum.Enum):
    """Enrolment state recorded on the student profile."""
    ACTIVE = "Active"
    GRADUATED = "Graduated"
    SUSPENDED = "Suspended"
    WITHDRAWN = "Withdrawn"
    ON_LEAVE = "On Leave"


class RoomChangeStatus(str, enum.Enum):
    """Room change request workflow."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
