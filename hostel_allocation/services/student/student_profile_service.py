"""
Student profile creation.

Creates a user account and its student profile per roster entry. The
bulk allocation processor calls ``create_profile_record`` inside its own
transaction for roll numbers it cannot resolve; ``create_profiles`` is
the standalone batch operation.
"""

from typing import Any, List, Mapping, Optional, Sequence, Set, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from hostel_allocation.config.security import PasswordHasher, get_password_hasher
from hostel_allocation.core.exceptions import (
    BaseAppException,
    DuplicateEntryError,
    ErrorCode,
    ValidationError,
    handle_database_exception,
)
from hostel_allocation.models.base.enums import StudentStatus, UserRole
from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.schemas.common.bulk import RowFailure
from hostel_allocation.schemas.room.allocation import RosterRow
from hostel_allocation.schemas.student.profile import (
    CreatedProfile,
    ProfileCreationReport,
    StudentProfileCreate,
)
from hostel_allocation.services.base.base_service import BaseService
from hostel_allocation.services.base.unit_of_work import UnitOfWork

ProfileSource = Union[StudentProfileCreate, RosterRow]


def validation_failure(index: int, raw: Any, exc: PydanticValidationError) -> RowFailure:
    """Row failure for input that did not pass schema validation."""
    roll_number = raw.get("roll_number") if isinstance(raw, Mapping) else None
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return RowFailure(
        row_index=index,
        roll_number=str(roll_number) if roll_number is not None else None,
        error_code=ErrorCode.VALIDATION_ERROR.value,
        message="; ".join(f"{e['field']}: {e['message']}" for e in errors) or "Invalid row",
        details={"errors": errors},
    )


def failure_from_exception(index: int, roll_number: Optional[str], exc: BaseAppException) -> RowFailure:
    return RowFailure(
        row_index=index,
        roll_number=roll_number,
        error_code=exc.error_code.value,
        message=exc.message,
        details=exc.details,
    )


class StudentProfileService(BaseService):
    """Creates user accounts and student profiles."""

    def __init__(self, uow: UnitOfWork, hasher: Optional[PasswordHasher] = None):
        super().__init__(uow)
        self.hasher = hasher or get_password_hasher()

    # -------------------------------------------------------------------------
    # Single record (inside a caller's transaction)
    # -------------------------------------------------------------------------

    def hash_password(self, data: ProfileSource) -> str:
        """Hash the supplied password, defaulting to the roll number."""
        return self.hasher.hash(data.password or data.roll_number)

    def create_profile_record(self, data: ProfileSource) -> StudentProfile:
        """
        Insert a user and its profile.

        Must run inside an open transaction; collisions with existing emails
        or roll numbers surface as ``IntegrityError`` on flush.
        """
        user = self.uow.users.create({
            "name": data.name,
            "email": data.email,
            "role": UserRole.STUDENT.value,
            "phone": data.phone,
            "profile_image": getattr(data, "profile_image", None),
            "password_hash": self.hash_password(data),
        })
        return self.uow.profiles.create({
            "user_id": user.id,
            "roll_number": data.roll_number,
            "department": data.department,
            "degree": data.degree,
            "gender": data.gender,
            "admission_date": data.admission_date,
            "guardian": data.guardian,
            "guardian_phone": data.guardian_phone,
            "guardian_email": data.guardian_email,
            "status": StudentStatus.ACTIVE.value,
            "is_day_scholar": data.is_day_scholar,
        })

    # -------------------------------------------------------------------------
    # Batch creation
    # -------------------------------------------------------------------------

    def create_profiles(
        self,
        rows: Sequence[Union[StudentProfileCreate, Mapping[str, Any]]],
    ) -> ProfileCreationReport:
        """
        Create many students with per-row outcomes.

        Emails and roll numbers are checked against the store and against
        earlier rows of the same batch. Accepted rows are inserted in one
        transaction; if that transaction cannot be committed every accepted
        row is reported failed with the storage error.
        """
        if not rows:
            raise ValidationError("No student rows provided")

        report = ProfileCreationReport(total=len(rows))
        parsed: List[tuple] = []
        for index, raw in enumerate(rows):
            try:
                parsed.append((index, raw if isinstance(raw, StudentProfileCreate)
                               else StudentProfileCreate.model_validate(raw)))
            except PydanticValidationError as exc:
                report.failures.append(validation_failure(index, raw, exc))

        accepted: List[tuple] = []
        screened: List[RowFailure] = []

        def work(ctx):
            accepted.clear()
            screened[:] = self._screen(parsed, accepted)
            created = []
            for index, data in accepted:
                profile = self.create_profile_record(data)
                created.append(CreatedProfile(
                    row_index=index,
                    student_profile_id=profile.id,
                    user_id=profile.user_id,
                    email=data.email,
                    roll_number=data.roll_number,
                ))
            return list(screened), created

        try:
            failures, created = self._atomic("create_profiles", work)
        except (SQLAlchemyError, BaseAppException) as exc:
            self._logger.error(f"Profile batch could not be committed: {exc}")
            error = exc if isinstance(exc, BaseAppException) else handle_database_exception(exc)
            failures = list(screened)
            rejected = {f.row_index for f in failures}
            failures.extend(
                RowFailure(
                    row_index=index,
                    roll_number=data.roll_number,
                    error_code=error.error_code.value,
                    message=error.message,
                )
                for index, data in parsed if index not in rejected
            )
            created = []

        report.failures.extend(failures)
        report.failures.sort(key=lambda f: f.row_index)
        report.created.extend(created)
        self._log_operation(
            "create_profiles",
            {"total": report.total, "created": len(report.created), "failed": report.failed_count},
        )
        return report

    def _screen(self, parsed: List[tuple], accepted: List[tuple]) -> List[RowFailure]:
        """Reject rows colliding with stored or earlier-in-batch emails and roll numbers."""
        existing_emails = set(self.uow.users.find_by_emails(d.email for _, d in parsed))
        existing_rolls = set(self.uow.profiles.find_by_roll_numbers(d.roll_number for _, d in parsed))
        seen_emails: Set[str] = set()
        seen_rolls: Set[str] = set()
        failures = []

        for index, data in parsed:
            error = None
            if data.email in existing_emails:
                error = DuplicateEntryError("Email already exists", field="email", value=data.email, table="users")
            elif data.roll_number in existing_rolls:
                error = DuplicateEntryError(
                    "Roll number already exists", field="roll_number", value=data.roll_number,
                    table="student_profiles",
                )
            elif data.email in seen_emails:
                error = DuplicateEntryError("Email is repeated in this batch", field="email", value=data.email)
            elif data.roll_number in seen_rolls:
                error = DuplicateEntryError(
                    "Roll number is repeated in this batch", field="roll_number", value=data.roll_number
                )
            seen_emails.add(data.email)
            seen_rolls.add(data.roll_number)

            if error is not None:
                failures.append(failure_from_exception(index, data.roll_number, error))
            else:
                accepted.append((index, data))
        return failures
