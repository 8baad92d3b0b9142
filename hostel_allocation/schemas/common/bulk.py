"""
Shared result shapes for batch operations with per-row outcomes.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, computed_field

from hostel_allocation.schemas.common.base import BaseSchema

__all__ = [
    "BulkStatus",
    "RowFailure",
    "BulkReport",
]


class BulkStatus(str, Enum):
    """Outcome of a batch as a whole."""

    ALL_SUCCESS = "all-success"
    PARTIAL = "partial"
    ALL_FAILED = "all-failed"


class RowFailure(BaseSchema):
    """A rejected input row and why."""

    row_index: int = Field(..., ge=0, description="Position of the row in the submitted batch")
    roll_number: Optional[str] = None
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class BulkReport(BaseSchema):
    """
    Base report: successes are listed by subclasses, failures here.

    ``status`` is derived from the counts so it can never disagree with them.
    """

    total: int = 0
    failures: List[RowFailure] = Field(default_factory=list)

    @computed_field
    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @computed_field
    @property
    def succeeded_count(self) -> int:
        return self.total - len(self.failures)

    @computed_field
    @property
    def status(self) -> BulkStatus:
        if not self.failures:
            return BulkStatus.ALL_SUCCESS
        if len(self.failures) >= self.total:
            return BulkStatus.ALL_FAILED
        return BulkStatus.PARTIAL

    @computed_field
    @property
    def status_code(self) -> int:
        """HTTP-style hint: 200 / 207 partial / 400 nothing applied."""
        return {
            BulkStatus.ALL_SUCCESS: 200,
            BulkStatus.PARTIAL: 207,
            BulkStatus.ALL_FAILED: 400,
        }[self.status]
