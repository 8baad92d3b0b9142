"""
Transaction manager utilities for service layer operations.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Tuple, Type, TypeVar
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_allocation.config.logging import get_logger
from hostel_allocation.config.settings import settings
from hostel_allocation.core.exceptions import TransactionConflictError, handle_database_exception

T = TypeVar("T")

# Errors raised by the database when a concurrent writer won: unique or
# check constraint violations, and lock timeouts / serialization failures.
RETRYABLE_ERRORS: Tuple[Type[SQLAlchemyError], ...] = (IntegrityError, OperationalError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransactionContext:
    """Context information for a transaction."""

    operation: str = "transaction"
    transaction_id: str = field(default_factory=lambda: str(uuid4()))
    attempt: int = 1
    started_at: datetime = field(default_factory=_utcnow)
    committed: bool = False
    rolled_back: bool = False
    completed_at: Optional[datetime] = None
    error: Optional[BaseException] = None

    @property
    def duration_ms(self) -> Optional[float]:
        """Get transaction duration in milliseconds."""
        if self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds() * 1000
        return None

    @property
    def is_completed(self) -> bool:
        """Check if transaction is completed."""
        return self.committed or self.rolled_back


class TransactionManager:
    """
    Transaction management for the service layer:
    - commit on success, rollback on any exception
    - bounded retry of work rejected by concurrent writers
    - transaction logging
    """

    def __init__(self, db_session: Session, max_retries: Optional[int] = None):
        """
        Initialize transaction manager.

        Args:
            db_session: SQLAlchemy database session
            max_retries: Attempts made by ``run`` before giving up;
                defaults to ``settings.ALLOCATION_MAX_RETRIES``
        """
        self.db = db_session
        self.max_retries = max_retries or settings.ALLOCATION_MAX_RETRIES
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Core Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def start(self, operation: str = "transaction", attempt: int = 1) -> Iterator[TransactionContext]:
        """
        Start a new transaction.

        Args:
            operation: Name used in log records
            attempt: Retry attempt number, for logging

        Yields:
            TransactionContext instance

        Example:
            with transaction_manager.start("allocate") as ctx:
                # perform operations
                # automatic commit on success, rollback on exception
        """
        ctx = TransactionContext(operation=operation, attempt=attempt)
        # Identity map entries may predate another writer's commit.
        self.db.expire_all()
        self._logger.debug(
            f"Transaction started: {operation} ({ctx.transaction_id})",
            extra={"transaction_id": ctx.transaction_id, "operation": operation, "attempt": attempt},
        )

        try:
            yield ctx
            self._commit(ctx)
        except BaseException as exc:
            if not ctx.rolled_back:
                self._rollback(ctx, exc)
            raise
        finally:
            ctx.completed_at = _utcnow()
            self._logger.debug(
                f"Transaction completed: {operation} "
                f"({'committed' if ctx.committed else 'rolled back'}) "
                f"in {ctx.duration_ms:.2f}ms",
                extra={"transaction_id": ctx.transaction_id, "operation": operation},
            )

    def run(self, operation: str, work: Callable[[TransactionContext], T]) -> T:
        """
        Execute ``work`` in its own transaction, retrying on storage conflicts.

        ``work`` is re-invoked from scratch on every attempt so that its
        validation sees the state left by the writer that won the race.
        Business exceptions are not retried.

        Args:
            operation: Name used in logs and in the conflict error
            work: Callable receiving the transaction context

        Returns:
            Whatever ``work`` returns

        Raises:
            AllocationConflictError: When every attempt hit a constraint violation;
                the error names the violated rule (bed, student or capacity);
                other integrity errors map through ``handle_database_exception``
            TransactionConflictError: When every attempt failed on locks or
                serialization
        """
        last_error: Optional[SQLAlchemyError] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                with self.start(operation, attempt) as ctx:
                    return work(ctx)
            except RETRYABLE_ERRORS as exc:
                last_error = exc
                self._logger.warning(
                    f"{operation} rejected by the database on attempt {attempt}/{self.max_retries}: "
                    f"{exc.__class__.__name__}",
                    extra={"operation": operation, "attempt": attempt},
                )

        if isinstance(last_error, IntegrityError):
            raise handle_database_exception(last_error) from last_error
        raise TransactionConflictError(
            operation,
            self.max_retries,
            str(getattr(last_error, "orig", last_error)),
        ) from last_error

    def _commit(self, ctx: TransactionContext) -> None:
        """
        Commit the transaction.

        Args:
            ctx: Transaction context
        """
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._logger.error(
                f"Commit failed for {ctx.operation} ({ctx.transaction_id}): {e}",
                extra={"transaction_id": ctx.transaction_id, "operation": ctx.operation},
            )
            self._rollback(ctx, e)
            raise
        ctx.committed = True
        self._logger.info(
            f"Transaction committed: {ctx.operation} ({ctx.transaction_id})",
            extra={"transaction_id": ctx.transaction_id, "operation": ctx.operation},
        )

    def _rollback(self, ctx: TransactionContext, exc: BaseException) -> None:
        """
        Rollback the transaction.

        Args:
            ctx: Transaction context
            exc: Exception that caused rollback
        """
        self.db.rollback()
        ctx.rolled_back = True
        ctx.error = exc
        self._logger.warning(
            f"Transaction rolled back: {ctx.operation} ({ctx.transaction_id}) - {exc}",
            extra={"transaction_id": ctx.transaction_id, "operation": ctx.operation},
        )
