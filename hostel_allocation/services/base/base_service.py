"""
Base service class providing common functionality for all services.
"""

from abc import ABC
from typing import Any, Callable, Dict, Optional, TypeVar

from hostel_allocation.config.logging import get_logger
from hostel_allocation.core.exceptions import BaseAppException
from hostel_allocation.services.base.transaction_manager import TransactionContext
from hostel_allocation.services.base.unit_of_work import UnitOfWork

T = TypeVar("T")


class BaseService(ABC):
    """
    Base service with common behaviors:
    - Shared logger and unit of work
    - Atomic execution with bounded retry
    - Consistent logging of operations and rejections
    """

    def __init__(self, uow: UnitOfWork):
        """
        Initialize base service.

        Args:
            uow: Unit of work carrying the session and repositories
        """
        self.uow = uow
        self.db = uow.session
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    def _atomic(self, operation: str, work: Callable[[TransactionContext], T]) -> T:
        """
        Run ``work`` as one all-or-nothing transaction.

        Business rule violations raised by ``work`` roll back and propagate
        unchanged; storage conflicts are retried by the transaction manager.
        """
        try:
            return self.uow.transactions.run(operation, work)
        except BaseAppException as exc:
            self._log_rejection(operation, exc)
            raise

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a completed operation with its identifying details."""
        details = details or {}
        rendered = ", ".join(f"{k}={v}" for k, v in details.items())
        self._logger.info(
            f"{operation} completed" + (f": {rendered}" if rendered else ""),
            extra={"operation": operation, **{k: v for k, v in details.items() if k.endswith("_id")}},
        )

    def _log_rejection(self, operation: str, exc: BaseAppException) -> None:
        self._logger.warning(
            f"{operation} rejected: {exc}",
            extra={"operation": operation},
        )
